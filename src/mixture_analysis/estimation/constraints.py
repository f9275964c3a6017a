"""
Covariance-structure constraints as an ordered pipeline.

After the raw M-step estimate, the group covariance matrices pass through
the enabled steps, in this order:

    1. same_variance_within     broadcast Σ_g[0, 0] to the diagonal
    2. same_covariance_within   broadcast Σ_g[0, 1] to the off-diagonals
                                (skipped under local independence)
    3. local_independence       zero the off-diagonals
    4. same_covariance_between  replace every Σ_g by Σ_h π_h Σ_h

Later steps override earlier ones on the same matrix. Step 4 pools the
matrices produced by steps 1-3, weighted by the mixing proportions of the
parameters that produced the responsibilities.

Each step maps a stack of covariances (shape (K, D, D)) and the mixing
proportions (shape (K,)) to a new stack; inputs are never modified.
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from mixture_analysis.estimation.config import ModelConstraints

CovarianceTransform = Callable[
    [NDArray[np.float64], NDArray[np.float64]], NDArray[np.float64]
]


@dataclass(frozen=True)
class ConstraintStep:
    """
    One named covariance transformation.

    Attributes:
        name: Name of the constraint flag that enables this step.
        precedence: Position in the pipeline (1 runs first).
        transform: Function (covariances, mixing_proportions) -> covariances.
    """

    name: str
    precedence: int
    transform: CovarianceTransform


def same_variance_within(
    covariances: NDArray[np.float64],
    mixing_proportions: NDArray[np.float64],
) -> NDArray[np.float64]:
    """Set every variance of a group to that group's first variance."""
    result = covariances.copy()
    n_dims = result.shape[1]
    diag = np.arange(n_dims)
    result[:, diag, diag] = result[:, 0, 0][:, np.newaxis]
    return result


def same_covariance_within(
    covariances: NDArray[np.float64],
    mixing_proportions: NDArray[np.float64],
) -> NDArray[np.float64]:
    """Set every covariance of a group to that group's [0, 1] covariance."""
    result = covariances.copy()
    n_dims = result.shape[1]
    if n_dims == 1:
        return result
    off_diagonal = ~np.eye(n_dims, dtype=bool)
    for g in range(result.shape[0]):
        result[g][off_diagonal] = result[g, 0, 1]
    return result


def local_independence(
    covariances: NDArray[np.float64],
    mixing_proportions: NDArray[np.float64],
) -> NDArray[np.float64]:
    """Zero every covariance, keeping the variances."""
    diagonal = np.eye(covariances.shape[1], dtype=bool)[np.newaxis]
    result: NDArray[np.float64] = np.where(diagonal, covariances, 0.0)
    return result


def same_covariance_between(
    covariances: NDArray[np.float64],
    mixing_proportions: NDArray[np.float64],
) -> NDArray[np.float64]:
    """Replace every group matrix by the proportion-weighted average."""
    pooled = np.einsum("g,gij->ij", mixing_proportions, covariances)
    result: NDArray[np.float64] = np.broadcast_to(
        pooled, covariances.shape
    ).copy()
    return result


_STEPS: dict[str, ConstraintStep] = {
    "same_variance_within": ConstraintStep(
        "same_variance_within", 1, same_variance_within
    ),
    "same_covariance_within": ConstraintStep(
        "same_covariance_within", 2, same_covariance_within
    ),
    "local_independence": ConstraintStep(
        "local_independence", 3, local_independence
    ),
    "same_covariance_between": ConstraintStep(
        "same_covariance_between", 4, same_covariance_between
    ),
}


def build_constraint_pipeline(
    constraints: ModelConstraints,
) -> tuple[ConstraintStep, ...]:
    """
    Select the enabled steps, ordered by precedence.

    same_covariance_within is dropped when local_independence is set.
    """
    enabled: list[ConstraintStep] = []
    if constraints.same_variance_within:
        enabled.append(_STEPS["same_variance_within"])
    if (
        constraints.same_covariance_within
        and not constraints.local_independence
    ):
        enabled.append(_STEPS["same_covariance_within"])
    if constraints.local_independence:
        enabled.append(_STEPS["local_independence"])
    if constraints.same_covariance_between:
        enabled.append(_STEPS["same_covariance_between"])
    return tuple(sorted(enabled, key=lambda step: step.precedence))


def apply_constraints(
    covariances: NDArray[np.float64],
    mixing_proportions: NDArray[np.float64],
    pipeline: Sequence[ConstraintStep],
) -> NDArray[np.float64]:
    """
    Run covariances through the pipeline, left to right.

    Args:
        covariances: Raw estimates, shape (K, D, D).
        mixing_proportions: Weights for pooling, shape (K,).
        pipeline: Steps from build_constraint_pipeline.

    Returns:
        Constrained covariances, shape (K, D, D).
    """
    result = covariances
    for step in pipeline:
        result = step.transform(result, mixing_proportions)
    return result

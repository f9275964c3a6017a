"""
Expectation and maximization kernels for multivariate normal mixtures.

All functions are pure: they read an immutable parameter snapshot and the
data and return new arrays. The model orchestrates them and owns the state.

E-step:
    r_gi = π_g f_g(x_i) / Σ_k π_k f_k(x_i)

A row whose weighted densities are all exactly zero (every component
density underflows) has an undefined responsibility; it is NaN in the
responsibility matrix and contributes 0 to every accumulation.

M-step sufficient statistics:
    T1_g = Σ_i r_gi,  T2_g = Σ_i r_gi x_i,  T3_g = Σ_i r_gi x_i x_iᵗ
    μ_g = T2_g / T1_g,  Σ_g = T3_g / T1_g - μ_g μ_gᵗ
"""

from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray
from scipy.special import logsumexp

from mixture_analysis.estimation.component import MvNormalComponent
from mixture_analysis.estimation.exceptions import SingularCovarianceError


@dataclass
class EStepResult:
    """
    Results from the E-step of EM algorithm.

    Attributes:
        responsibilities: Posterior membership, shape (n_observations,
            n_groups). responsibilities[i, g] = P(group g | x_i, params).
            Rows are NaN where every weighted density is zero.
        log_likelihood: Log-likelihood for the current parameters.
        singular_groups: Groups whose covariance could not be factorized;
            their densities were taken as zero.
    """

    responsibilities: NDArray[np.float64]
    log_likelihood: float
    singular_groups: tuple[int, ...]


@dataclass(frozen=True)
class SufficientStatistics:
    """
    Responsibility-weighted moments of the data.

    Attributes:
        t1: Responsibility mass per group, shape (K,).
        t2: Weighted sums of observations, shape (K, D).
        t3: Weighted sums of outer products, shape (K, D, D).
    """

    t1: NDArray[np.float64]
    t2: NDArray[np.float64]
    t3: NDArray[np.float64]


def mixing_proportion_array(
    components: Sequence[MvNormalComponent],
) -> NDArray[np.float64]:
    """Mixing proportions of a snapshot, shape (K,)."""
    return np.array(
        [c.mixing_proportion for c in components], dtype=np.float64
    )


def component_log_densities(
    data: NDArray[np.float64],
    components: Sequence[MvNormalComponent],
) -> tuple[NDArray[np.float64], tuple[int, ...]]:
    """
    Log density of every observation under every component.

    Args:
        data: Observations, shape (N, D).
        components: Parameter snapshot, length K.

    Returns:
        (log_densities of shape (N, K), indices of singular groups). A
        singular group's column is -inf (density 0).
    """
    n_obs = data.shape[0]
    log_dens = np.empty((n_obs, len(components)), dtype=np.float64)
    singular: list[int] = []

    for g, component in enumerate(components):
        try:
            log_dens[:, g] = component.log_density(data)
        except SingularCovarianceError:
            log_dens[:, g] = -np.inf
            singular.append(g)

    return log_dens, tuple(singular)


def responsibilities_from_log_densities(
    log_densities: NDArray[np.float64],
    mixing_proportions: NDArray[np.float64],
) -> NDArray[np.float64]:
    """
    Posterior membership probabilities.

    Returns:
        Array of shape (N, K); rows whose denominator is zero are NaN.
    """
    with np.errstate(under="ignore", over="ignore"):
        weighted = mixing_proportions[np.newaxis, :] * np.exp(log_densities)
    denominator = weighted.sum(axis=1, keepdims=True)

    valid = denominator > 0.0
    with np.errstate(divide="ignore", invalid="ignore"):
        result: NDArray[np.float64] = np.where(
            valid, weighted / denominator, np.nan
        )
    return result


def log_likelihood_from_log_densities(
    log_densities: NDArray[np.float64],
    mixing_proportions: NDArray[np.float64],
) -> float:
    """
    Σ_i log Σ_g π_g f_g(x_i), evaluated with a log-sum-exp.

    Rows whose mixture density is not positive contribute -inf.
    """
    with np.errstate(divide="ignore", invalid="ignore", under="ignore"):
        row_ll, signs = logsumexp(
            log_densities,
            axis=1,
            b=mixing_proportions[np.newaxis, :],
            return_sign=True,
        )
    row_ll = np.where(signs > 0, row_ll, -np.inf)
    return float(np.sum(row_ll))


def e_step(
    data: NDArray[np.float64],
    components: Sequence[MvNormalComponent],
) -> EStepResult:
    """
    E-step: responsibilities and log-likelihood of a parameter snapshot.

    Args:
        data: Observations, shape (N, D).
        components: Parameter snapshot.

    Returns:
        EStepResult with responsibilities and log-likelihood.
    """
    log_dens, singular = component_log_densities(data, components)
    pis = mixing_proportion_array(components)

    return EStepResult(
        responsibilities=responsibilities_from_log_densities(log_dens, pis),
        log_likelihood=log_likelihood_from_log_densities(log_dens, pis),
        singular_groups=singular,
    )


def log_likelihood(
    data: NDArray[np.float64],
    components: Sequence[MvNormalComponent],
) -> tuple[float, tuple[int, ...]]:
    """Log-likelihood of a snapshot and the groups found singular."""
    log_dens, singular = component_log_densities(data, components)
    pis = mixing_proportion_array(components)
    return log_likelihood_from_log_densities(log_dens, pis), singular


def accumulate_sufficient_statistics(
    data: NDArray[np.float64],
    responsibilities: NDArray[np.float64],
) -> SufficientStatistics:
    """
    Accumulate T1, T2 and T3 for every group.

    NaN responsibilities count as 0.

    Args:
        data: Observations, shape (N, D).
        responsibilities: Posterior membership, shape (N, K).

    Returns:
        SufficientStatistics for the M-step.
    """
    r = np.nan_to_num(responsibilities, nan=0.0)
    n_groups = r.shape[1]
    n_dims = data.shape[1]

    t1 = r.sum(axis=0)
    t2 = r.T @ data
    t3 = np.empty((n_groups, n_dims, n_dims), dtype=np.float64)
    for g in range(n_groups):
        weighted = data * r[:, g : g + 1]
        outer = weighted.T @ data
        # Symmetrize away floating point asymmetry from the product order
        t3[g] = (outer + outer.T) / 2.0

    return SufficientStatistics(t1=t1, t2=t2, t3=t3)


def estimate_means_and_covariances(
    stats: SufficientStatistics,
) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    """
    Raw (unconstrained) M-step estimates.

    μ_g = T2_g / T1_g and Σ_g = T3_g / T1_g - μ_g μ_gᵗ, the covariance
    weighted by responsibility mass rather than a sample count. A group
    with no responsibility mass gets NaN estimates.

    Returns:
        (means of shape (K, D), covariances of shape (K, D, D)).
    """
    with np.errstate(divide="ignore", invalid="ignore"):
        means = stats.t2 / stats.t1[:, np.newaxis]
        covariances = stats.t3 / stats.t1[:, np.newaxis, np.newaxis]
    covariances = covariances - np.einsum("gi,gj->gij", means, means)
    return means, covariances


def compute_mixing_proportions(
    t1: NDArray[np.float64],
    n_observations: int,
) -> NDArray[np.float64]:
    """
    Mixing proportions from responsibility mass.

    π_g = T1_g / N for g < K; the last proportion is 1 - Σ_{g<K} π_g so the
    proportions sum to one regardless of round-off or NaN rows.
    """
    pis = t1 / n_observations
    pis[-1] = 1.0 - float(np.sum(pis[:-1]))
    result: NDArray[np.float64] = pis
    return result

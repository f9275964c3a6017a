from dataclasses import dataclass, field

import numpy as np
from omegaconf import MISSING

# Tolerance for the weight sum and for covariance symmetry / PSD checks
VALIDATION_TOLERANCE = 1e-8


@dataclass
class ComponentConfig:
    """One multivariate normal profile of a simulated mixture.

    Attributes:
        weight: Probability that an observation comes from this profile.
        mean: Mean vector, length D.
        covariance: Covariance matrix, D rows of length D. Must be
            symmetric positive semi-definite.
    """

    weight: float = MISSING
    mean: list[float] = MISSING
    covariance: list[list[float]] = MISSING

    def __post_init__(self) -> None:
        if not (0.0 <= self.weight <= 1.0):
            raise ValueError(f"weight must be in [0, 1], got {self.weight}")
        d = len(self.mean)
        if d < 1:
            raise ValueError("mean must have at least 1 element")

        cov = np.asarray(self.covariance, dtype=np.float64)
        if cov.shape != (d, d):
            raise ValueError(
                f"covariance must be {d}x{d} to match the mean, "
                f"got shape {cov.shape}"
            )
        if not np.allclose(cov, cov.T, atol=VALIDATION_TOLERANCE):
            raise ValueError("covariance must be symmetric")
        if np.any(np.linalg.eigvalsh(cov) < -VALIDATION_TOLERANCE):
            raise ValueError("covariance must be positive semi-definite")


@dataclass
class SimulationConfig:
    """Complete configuration for a simulated mixture dataset."""

    n_observations: int = MISSING
    components: list[ComponentConfig] = MISSING

    # Reproducibility
    random_seed: int = MISSING

    column_names: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.n_observations < 1:
            raise ValueError("Must have at least 1 observation")
        if len(self.components) < 1:
            raise ValueError("Must have at least 1 component")

        dims = {len(c.mean) for c in self.components}
        if len(dims) != 1:
            raise ValueError(
                f"All components must have the same dimension, got {dims}"
            )
        total = sum(c.weight for c in self.components)
        if abs(total - 1.0) > VALIDATION_TOLERANCE:
            raise ValueError(f"Component weights must sum to 1, got {total}")
        if self.column_names and len(self.column_names) != dims.pop():
            raise ValueError(
                "column_names must have one entry per dimension"
            )

    @property
    def n_dimensions(self) -> int:
        return len(self.components[0].mean)

    @property
    def n_groups(self) -> int:
        return len(self.components)

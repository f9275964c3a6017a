"""
Configuration dataclasses for mixture model estimation.

This module defines the configuration parameters for:
- Covariance-structure constraints
- EM iteration, convergence and random-start settings
- Overall estimation settings
"""

from dataclasses import dataclass, field
from importlib.metadata import PackageNotFoundError, version

import toml

from mixture_analysis.core.paths import (
    ProjectRootNotFound,
    get_project_root_dir,
)
from mixture_analysis.estimation.exceptions import ConfigurationError

DISTRIBUTION_NAME = "mixture-analysis"

# Default EM settings
DEFAULT_MAX_EM_ITERATIONS = 500
DEFAULT_EM_TOLERANCE = 1e-4
DEFAULT_RANDOM_STARTS = 100

# Rank tolerance of the correlated normal generator used for start values
DEFAULT_START_TOLERANCE = 1e-5

DEFAULT_N_WORKERS = 1


def _get_package_version() -> str:
    try:
        root_dir = get_project_root_dir()
    except ProjectRootNotFound:
        try:
            return version(DISTRIBUTION_NAME)
        except PackageNotFoundError as e:
            raise ValueError(
                "Version not found in pyproject.toml or package metadata"
            ) from e

    with open(root_dir / "pyproject.toml") as f:
        data = toml.load(f)

    project_version = data.get("project", {}).get("version")

    if not project_version:
        raise ValueError("Version not found in pyproject.toml")

    assert isinstance(project_version, str)
    return project_version


@dataclass(frozen=True)
class ModelConstraints:
    """
    Covariance-structure constraints applied after every M-step.

    The constraints are applied in a fixed order (see
    mixture_analysis.estimation.constraints); later steps override earlier
    ones on the same matrix.

    Attributes:
        same_variance_within: Every variance of a group equals that group's
            first variance.
        same_covariance_within: Every covariance of a group equals that
            group's [0, 1] covariance. Ignored under local independence.
        local_independence: Covariances are fixed at zero.
        same_covariance_between: All groups share one covariance matrix,
            the mixing-proportion weighted average of the group matrices.
    """

    same_variance_within: bool = True
    same_covariance_within: bool = True
    local_independence: bool = True
    same_covariance_between: bool = True

    @classmethod
    def unconstrained(cls) -> "ModelConstraints":
        """Free variances and covariances in every group."""
        return cls(
            same_variance_within=False,
            same_covariance_within=False,
            local_independence=False,
            same_covariance_between=False,
        )


@dataclass(frozen=True)
class EMConfig:
    """
    Configuration for the EM algorithm.

    Attributes:
        max_iterations: Maximum number of EM iterations.
        tolerance: Convergence tolerance for the absolute change in
            log-likelihood. EM stops when |LL_new - LL_old| <= tolerance.
        n_random_starts: Number of random starting points scored before EM.
        start_tolerance: Rank tolerance for the correlated normal generator
            that draws starting means.
        n_workers: Threads used to score random starts. 1 runs them inline.
        timeout_seconds: Wall-clock budget for the EM loop, checked once
            per iteration. None disables the budget.
        halt_on_singular: Raise SingularCovarianceError on the first
            singular covariance instead of recording it and continuing.
    """

    max_iterations: int = DEFAULT_MAX_EM_ITERATIONS
    tolerance: float = DEFAULT_EM_TOLERANCE
    n_random_starts: int = DEFAULT_RANDOM_STARTS
    start_tolerance: float = DEFAULT_START_TOLERANCE
    n_workers: int = DEFAULT_N_WORKERS
    timeout_seconds: float | None = None
    halt_on_singular: bool = False

    def __post_init__(self) -> None:
        if self.max_iterations <= 0:
            raise ConfigurationError(
                f"max_iterations must be positive, got {self.max_iterations}"
            )
        if not self.tolerance > 0:
            raise ConfigurationError(
                f"tolerance must be positive, got {self.tolerance}"
            )
        if self.n_random_starts < 1:
            raise ConfigurationError(
                f"n_random_starts must be >= 1, got {self.n_random_starts}"
            )
        if self.start_tolerance < 0:
            raise ConfigurationError(
                f"start_tolerance must be >= 0, got {self.start_tolerance}"
            )
        if self.n_workers < 1:
            raise ConfigurationError(
                f"n_workers must be >= 1, got {self.n_workers}"
            )
        if self.timeout_seconds is not None and not self.timeout_seconds > 0:
            raise ConfigurationError(
                f"timeout_seconds must be positive, got {self.timeout_seconds}"
            )


@dataclass(frozen=True)
class MixtureConfig:
    """
    Master configuration for mixture model estimation.

    Attributes:
        constraints: Covariance-structure constraints.
        em: EM iteration and random-start settings.
        model_version: Version string for reproducibility tracking.
    """

    constraints: ModelConstraints = ModelConstraints()
    em: EMConfig = EMConfig()
    model_version: str = field(default_factory=_get_package_version)


def default_config() -> MixtureConfig:
    """Create a default estimation configuration."""
    return MixtureConfig()

"""
Multivariate normal mixture component.

One component of a finite mixture is a multivariate normal distribution
with mean μ and covariance Σ, weighted by a mixing proportion π:

    f(x) = (2π)^(-D/2) |Σ|^(-1/2) exp(-½ (x - μ)ᵗ Σ⁻¹ (x - μ))

The determinant and the solve against Σ come from a single LU
decomposition. A covariance whose LU factor has a pivot below
SINGULARITY_THRESHOLD (or whose determinant is not positive) is reported
as singular.

Components are immutable snapshots; ``with_*`` methods return a copy with
one field replaced.
"""

import math
import warnings
from typing import Self

import numpy as np
from numpy.random import Generator
from numpy.typing import ArrayLike, NDArray
from pydantic import BaseModel, ConfigDict, model_validator
from scipy import linalg

from mixture_analysis.estimation.exceptions import SingularCovarianceError

# Pivot magnitude below which an LU factor is treated as singular
SINGULARITY_THRESHOLD = 1e-11

LOG_2PI = math.log(2.0 * math.pi)


class MvNormalComponent(BaseModel):
    """
    Parameters for one multivariate normal mixture component.

    Attributes:
        mean: Mean vector μ, length D.
        covariance: Covariance matrix Σ, D rows of length D. Intended to be
            symmetric positive-definite; not enforced, since constrained
            M-steps may produce matrices that are not.
        mixing_proportion: Prior probability π of membership.
    """

    model_config = ConfigDict(frozen=True, ser_json_inf_nan="constants")

    mean: tuple[float, ...]
    covariance: tuple[tuple[float, ...], ...]
    mixing_proportion: float

    @model_validator(mode="after")
    def _validate_shapes(self) -> "MvNormalComponent":
        d = len(self.mean)
        if d < 1:
            raise ValueError("mean must have at least 1 element")
        if len(self.covariance) != d or any(
            len(row) != d for row in self.covariance
        ):
            raise ValueError(
                f"covariance must be {d}x{d} to match the mean, got "
                f"{[len(row) for row in self.covariance]}"
            )
        return self

    @classmethod
    def from_arrays(
        cls,
        mean: ArrayLike,
        covariance: ArrayLike,
        mixing_proportion: float,
    ) -> Self:
        """Build a component from numpy arrays."""
        mean_arr = np.asarray(mean, dtype=np.float64).reshape(-1)
        cov_arr = np.asarray(covariance, dtype=np.float64)
        if cov_arr.ndim == 0:
            cov_arr = cov_arr.reshape(1, 1)
        return cls(
            mean=tuple(float(m) for m in mean_arr),
            covariance=tuple(
                tuple(float(c) for c in row) for row in cov_arr
            ),
            mixing_proportion=float(mixing_proportion),
        )

    @property
    def n_dimensions(self) -> int:
        """Number of variables D."""
        return len(self.mean)

    @property
    def mean_vector(self) -> NDArray[np.float64]:
        """Mean as an array of shape (D,)."""
        return np.array(self.mean, dtype=np.float64)

    @property
    def covariance_matrix(self) -> NDArray[np.float64]:
        """Covariance as an array of shape (D, D)."""
        return np.array(self.covariance, dtype=np.float64).reshape(
            self.n_dimensions, self.n_dimensions
        )

    def with_mean(self, mean: ArrayLike) -> Self:
        """Replace the mean."""
        return self.from_arrays(
            mean, self.covariance_matrix, self.mixing_proportion
        )

    def with_covariance(self, covariance: ArrayLike) -> Self:
        """Replace the covariance matrix."""
        return self.from_arrays(
            self.mean_vector, covariance, self.mixing_proportion
        )

    def with_mixing_proportion(self, mixing_proportion: float) -> Self:
        """Replace the mixing proportion."""
        return self.model_copy(
            update={"mixing_proportion": float(mixing_proportion)}
        )

    def _lu_factor(
        self,
    ) -> tuple[tuple[NDArray[np.float64], NDArray[np.int32]], float]:
        """
        LU-factorize the covariance.

        Returns:
            ((lu, piv), log_det) ready for scipy.linalg.lu_solve.

        Raises:
            SingularCovarianceError: If the covariance is non-finite, has a
                near-zero pivot, or a non-positive determinant.
        """
        sigma = self.covariance_matrix
        if not np.all(np.isfinite(sigma)):
            raise SingularCovarianceError("Covariance has non-finite entries")

        with warnings.catch_warnings():
            # An exactly zero pivot is reported through the threshold below
            warnings.simplefilter("ignore", linalg.LinAlgWarning)
            lu, piv = linalg.lu_factor(sigma, check_finite=False)

        diag = np.diag(lu)
        if np.any(np.abs(diag) < SINGULARITY_THRESHOLD):
            raise SingularCovarianceError("Singular Matrix")

        # det = (-1)^(row swaps) * prod(diag(U))
        n_swaps = int(np.sum(piv != np.arange(len(piv))))
        sign = (-1.0) ** n_swaps * float(np.prod(np.sign(diag)))
        if sign <= 0:
            raise SingularCovarianceError(
                "Covariance determinant is not positive"
            )
        log_det = float(np.sum(np.log(np.abs(diag))))
        return (lu, piv), log_det

    def log_density(self, x: ArrayLike) -> NDArray[np.float64]:
        """
        Log of the multivariate normal density at each row of x.

        Args:
            x: Points, shape (n, D) or (D,).

        Returns:
            Log densities, shape (n,).

        Raises:
            SingularCovarianceError: If the covariance cannot be factorized.
        """
        points = np.asarray(x, dtype=np.float64)
        if points.ndim == 1:
            points = points[np.newaxis, :]
        if points.shape[1] != self.n_dimensions:
            raise ValueError(
                f"Expected {self.n_dimensions} columns, got {points.shape[1]}"
            )

        lu_piv, log_det = self._lu_factor()
        delta = points - self.mean_vector
        # Solve Σ z = (x - μ) for every row at once; shape (D, n)
        solved = linalg.lu_solve(lu_piv, delta.T, check_finite=False)
        mahalanobis = np.einsum("ij,ji->i", delta, solved)

        result: NDArray[np.float64] = -0.5 * (
            self.n_dimensions * LOG_2PI + log_det + mahalanobis
        )
        return result

    def densities(self, x: ArrayLike) -> NDArray[np.float64]:
        """Density at each row of x, shape (n,)."""
        result: NDArray[np.float64] = np.exp(self.log_density(x))
        return result

    def density(self, x: ArrayLike) -> float:
        """
        Density at a single point.

        Args:
            x: Point of shape (D,).

        Returns:
            f(x).

        Raises:
            SingularCovarianceError: If the covariance cannot be factorized.
        """
        return float(self.densities(np.asarray(x, dtype=np.float64))[0])

    def generate_start_values(
        self,
        global_mean: ArrayLike,
        global_covariance: ArrayLike,
        rng: Generator,
        tolerance: float,
    ) -> Self:
        """
        Draw a new starting mean around the global data distribution.

        The mean is one draw from N(global_mean, global_covariance). The
        covariance and mixing proportion of this component are unchanged.

        Args:
            global_mean: Sample mean of the data, shape (D,).
            global_covariance: Sample covariance of the data, shape (D, D).
            rng: Random generator owned by the caller.
            tolerance: Eigenvalues of the covariance at or below this are
                treated as zero when building the generator.

        Returns:
            New component with the drawn mean.
        """
        mean = np.asarray(global_mean, dtype=np.float64).reshape(-1)
        cov = np.asarray(global_covariance, dtype=np.float64).reshape(
            mean.shape[0], mean.shape[0]
        )
        # Rank-revealing square root: directions with variance at or below
        # the tolerance are dropped, so a degenerate covariance still
        # yields draws inside the data's span.
        eigenvalues, eigenvectors = np.linalg.eigh((cov + cov.T) / 2.0)
        eigenvalues = np.where(eigenvalues > tolerance, eigenvalues, 0.0)
        root = eigenvectors * np.sqrt(eigenvalues)
        draw = mean + root @ rng.standard_normal(mean.shape[0])
        return self.with_mean(draw)

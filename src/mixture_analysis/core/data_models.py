"""
Data models for mixture estimation input.

This module defines the data structures for:
- ObservationMatrix: Input data for mixture estimation
"""

from dataclasses import dataclass

import numpy as np
from numpy.typing import ArrayLike, NDArray


@dataclass(frozen=True)
class ObservationMatrix:
    """
    Continuous observations for mixture estimation.

    Attributes:
        values: Array of shape (n_observations, n_dimensions). Each row is
            one examinee (or case), each column one observed variable.
        column_names: Optional variable names, one per column.
    """

    values: NDArray[np.float64]
    column_names: tuple[str, ...] | None = None

    def __post_init__(self) -> None:
        """Validate observation matrix."""
        if self.values.ndim != 2:
            raise ValueError(
                f"values must be 2D, got shape {self.values.shape}"
            )
        if self.values.shape[0] < 1:
            raise ValueError("Must have at least 1 observation")
        if self.values.shape[1] < 1:
            raise ValueError("Must have at least 1 dimension")
        if not np.all(np.isfinite(self.values)):
            raise ValueError("values must be finite (no NaN or inf)")
        if self.column_names is not None and (
            len(self.column_names) != self.values.shape[1]
        ):
            raise ValueError(
                f"Got {len(self.column_names)} column names for "
                f"{self.values.shape[1]} columns"
            )

    @classmethod
    def from_array(
        cls,
        values: ArrayLike,
        column_names: tuple[str, ...] | None = None,
    ) -> "ObservationMatrix":
        """
        Build from any array-like, copying into a float64 buffer.

        One-dimensional input is treated as a single variable.
        """
        arr = np.array(values, dtype=np.float64, copy=True)
        if arr.ndim == 1:
            arr = arr[:, np.newaxis]
        # Freeze the private copy so no fit can mutate shared data
        arr.setflags(write=False)
        return cls(values=arr, column_names=column_names)

    @property
    def n_observations(self) -> int:
        """Number of observations (rows)."""
        return self.values.shape[0]

    @property
    def n_dimensions(self) -> int:
        """Number of variables (columns)."""
        return self.values.shape[1]

    def sample_mean(self) -> NDArray[np.float64]:
        """Column means, shape (n_dimensions,)."""
        result: NDArray[np.float64] = self.values.mean(axis=0)
        return result

    def sample_covariance(self, ddof: int = 1) -> NDArray[np.float64]:
        """
        Sample covariance matrix, shape (n_dimensions, n_dimensions).

        Args:
            ddof: Delta degrees of freedom. 1 gives the unbiased (N-1)
                estimator, 0 the population (N) estimator. With a single
                observation the unbiased estimator is undefined and a zero
                matrix is returned.
        """
        n = self.n_observations
        if n - ddof <= 0:
            return np.zeros(
                (self.n_dimensions, self.n_dimensions), dtype=np.float64
            )
        centered = self.values - self.sample_mean()
        cov: NDArray[np.float64] = (centered.T @ centered) / (n - ddof)
        return cov

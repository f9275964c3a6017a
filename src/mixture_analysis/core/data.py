"""
CSV loading utilities for continuous observation data.
"""

from collections.abc import Sequence
from pathlib import Path

import numpy as np
import pandas as pd

from mixture_analysis.core.data_models import ObservationMatrix


def load_csv_to_observation_matrix(
    path: Path,
    columns: Sequence[str] | None = None,
) -> ObservationMatrix:
    """Load numeric columns of a CSV file into an ObservationMatrix.

    When no columns are given, every numeric column is used. Rows with a
    missing value in any selected column are dropped (listwise deletion).

    Returns:
        ObservationMatrix with the selected columns.

    Raises:
        ValueError: If a requested column is absent or non-numeric, or no
            usable rows remain.
    """
    df = pd.read_csv(path)

    if columns is None:
        selected = df.select_dtypes(include="number")
        if selected.shape[1] == 0:
            raise ValueError("CSV has no numeric columns")
    else:
        missing = [c for c in columns if c not in df.columns]
        if missing:
            raise ValueError(f"Columns not found in CSV: {missing}")
        selected = df[list(columns)]
        non_numeric = [
            c
            for c in selected.columns
            if not pd.api.types.is_numeric_dtype(selected[c])
        ]
        if non_numeric:
            raise ValueError(f"Columns are not numeric: {non_numeric}")

    complete = selected.dropna(axis=0, how="any")
    if complete.shape[0] == 0:
        raise ValueError("No complete rows after dropping missing values")

    return ObservationMatrix(
        values=complete.to_numpy(dtype=np.float64, copy=True),
        column_names=tuple(str(c) for c in complete.columns),
    )

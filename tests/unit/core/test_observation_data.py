"""
Tests for the observation matrix and CSV loading.
"""

from pathlib import Path

import numpy as np
import pytest

from mixture_analysis.core.data import load_csv_to_observation_matrix
from mixture_analysis.core.data_models import ObservationMatrix


class TestObservationMatrix:
    def test_basic_construction(self) -> None:
        """Should construct from a valid 2D array."""
        om = ObservationMatrix.from_array([[1.0, 2.0], [3.0, 4.0], [5.0, 9.0]])

        assert om.n_observations == 3
        assert om.n_dimensions == 2
        assert om.values.dtype == np.float64

    def test_from_array_copies_and_freezes(self) -> None:
        """from_array should not alias the caller's buffer."""
        source = np.array([[1.0, 2.0], [3.0, 4.0]])
        om = ObservationMatrix.from_array(source)
        source[0, 0] = 100.0

        assert om.values[0, 0] == 1.0
        with pytest.raises(ValueError):
            om.values[0, 0] = 5.0

    def test_one_dimensional_input_is_a_column(self) -> None:
        om = ObservationMatrix.from_array([1.0, 2.0, 3.0])
        assert om.values.shape == (3, 1)

    def test_validation_non_2d(self) -> None:
        """Should reject arrays that are not 2D."""
        with pytest.raises(ValueError, match="must be 2D"):
            ObservationMatrix(values=np.zeros((2, 2, 2)))

    def test_validation_empty(self) -> None:
        with pytest.raises(ValueError, match="at least 1 observation"):
            ObservationMatrix(values=np.zeros((0, 2)))
        with pytest.raises(ValueError, match="at least 1 dimension"):
            ObservationMatrix(values=np.zeros((2, 0)))

    def test_validation_non_finite(self) -> None:
        values = np.array([[1.0, np.nan], [2.0, 3.0]])
        with pytest.raises(ValueError, match="finite"):
            ObservationMatrix(values=values)

    def test_validation_column_names(self) -> None:
        with pytest.raises(ValueError, match="column names"):
            ObservationMatrix(values=np.zeros((2, 2)), column_names=("a",))

    def test_sample_moments(self) -> None:
        """Sample mean and covariance should match numpy."""
        rng = np.random.default_rng(0)
        values = rng.normal(size=(50, 3))
        om = ObservationMatrix.from_array(values)

        np.testing.assert_allclose(om.sample_mean(), values.mean(axis=0))
        np.testing.assert_allclose(
            om.sample_covariance(), np.cov(values, rowvar=False)
        )
        np.testing.assert_allclose(
            om.sample_covariance(ddof=0),
            np.cov(values, rowvar=False, ddof=0),
        )

    def test_single_observation_covariance_is_zero(self) -> None:
        om = ObservationMatrix.from_array([[1.0, 2.0]])
        np.testing.assert_array_equal(om.sample_covariance(), np.zeros((2, 2)))


class TestLoadCsv:
    def test_loads_numeric_columns(self, tmp_path: Path) -> None:
        """Non-numeric columns are ignored by default."""
        path = tmp_path / "data.csv"
        path.write_text("id,a,b\nx,1.0,2.0\ny,3.0,4.0\nz,5.0,6.5\n")

        om = load_csv_to_observation_matrix(path)

        assert om.column_names == ("a", "b")
        np.testing.assert_allclose(
            om.values, [[1.0, 2.0], [3.0, 4.0], [5.0, 6.5]]
        )

    def test_selected_columns(self, tmp_path: Path) -> None:
        path = tmp_path / "data.csv"
        path.write_text("a,b,c\n1,2,3\n4,5,6\n")

        om = load_csv_to_observation_matrix(path, columns=["c", "a"])

        assert om.column_names == ("c", "a")
        np.testing.assert_allclose(om.values, [[3.0, 1.0], [6.0, 4.0]])

    def test_rows_with_missing_values_are_dropped(
        self, tmp_path: Path
    ) -> None:
        path = tmp_path / "data.csv"
        path.write_text("a,b\n1,2\n,5\n7,8\n")

        om = load_csv_to_observation_matrix(path)

        assert om.n_observations == 2
        np.testing.assert_allclose(om.values, [[1.0, 2.0], [7.0, 8.0]])

    def test_missing_column_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "data.csv"
        path.write_text("a,b\n1,2\n")
        with pytest.raises(ValueError, match="Columns not found"):
            load_csv_to_observation_matrix(path, columns=["z"])

    def test_non_numeric_column_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "data.csv"
        path.write_text("a,b\n1,x\n2,y\n")
        with pytest.raises(ValueError, match="not numeric"):
            load_csv_to_observation_matrix(path, columns=["a", "b"])

    def test_no_numeric_columns_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "data.csv"
        path.write_text("a,b\nx,y\n")
        with pytest.raises(ValueError, match="no numeric columns"):
            load_csv_to_observation_matrix(path)

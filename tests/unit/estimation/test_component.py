"""
Tests for the multivariate normal mixture component.
"""

import numpy as np
import pytest
from pydantic import ValidationError
from scipy.stats import multivariate_normal

from mixture_analysis.core.utils import get_rng
from mixture_analysis.estimation.component import MvNormalComponent
from mixture_analysis.estimation.exceptions import SingularCovarianceError


@pytest.fixture
def component() -> MvNormalComponent:
    return MvNormalComponent.from_arrays(
        mean=[1.0, -2.0],
        covariance=[[2.0, 0.5], [0.5, 1.0]],
        mixing_proportion=0.3,
    )


class TestConstruction:
    def test_from_arrays(self, component: MvNormalComponent) -> None:
        assert component.n_dimensions == 2
        np.testing.assert_array_equal(component.mean_vector, [1.0, -2.0])
        np.testing.assert_array_equal(
            component.covariance_matrix, [[2.0, 0.5], [0.5, 1.0]]
        )
        assert component.mixing_proportion == 0.3

    def test_scalar_covariance_for_one_dimension(self) -> None:
        c = MvNormalComponent.from_arrays([0.0], 4.0, 1.0)
        assert c.covariance == ((4.0,),)

    def test_shape_mismatch_raises(self) -> None:
        with pytest.raises(ValidationError, match="covariance must be 2x2"):
            MvNormalComponent(
                mean=(0.0, 0.0), covariance=((1.0,),), mixing_proportion=1.0
            )

    def test_frozen(self, component: MvNormalComponent) -> None:
        with pytest.raises(ValidationError):
            component.mixing_proportion = 0.5  # type: ignore[misc]

    def test_with_methods_return_new_instances(
        self, component: MvNormalComponent
    ) -> None:
        """Setters should leave the original snapshot untouched."""
        moved = component.with_mean([0.0, 0.0])
        rescaled = component.with_covariance(np.eye(2))
        reweighted = component.with_mixing_proportion(0.9)

        assert moved.mean == (0.0, 0.0)
        assert rescaled.covariance == ((1.0, 0.0), (0.0, 1.0))
        assert reweighted.mixing_proportion == 0.9
        assert component.mean == (1.0, -2.0)
        assert component.mixing_proportion == 0.3

    def test_accessor_arrays_are_copies(
        self, component: MvNormalComponent
    ) -> None:
        mean = component.mean_vector
        mean[0] = 99.0
        assert component.mean[0] == 1.0


class TestDensity:
    def test_matches_scipy(self, component: MvNormalComponent) -> None:
        points = np.array([[1.0, -2.0], [0.0, 0.0], [3.5, -1.0]])
        expected = multivariate_normal(
            mean=[1.0, -2.0], cov=[[2.0, 0.5], [0.5, 1.0]]
        ).logpdf(points)

        np.testing.assert_allclose(component.log_density(points), expected)
        np.testing.assert_allclose(
            component.densities(points), np.exp(expected)
        )

    def test_single_point(self, component: MvNormalComponent) -> None:
        expected = multivariate_normal(
            mean=[1.0, -2.0], cov=[[2.0, 0.5], [0.5, 1.0]]
        ).pdf([0.5, -1.5])
        assert component.density([0.5, -1.5]) == pytest.approx(expected)

    def test_one_dimension(self) -> None:
        c = MvNormalComponent.from_arrays([0.0], [[1.0]], 1.0)
        assert c.density([0.0]) == pytest.approx(1.0 / np.sqrt(2 * np.pi))

    def test_wrong_dimension_raises(
        self, component: MvNormalComponent
    ) -> None:
        with pytest.raises(ValueError, match="Expected 2 columns"):
            component.log_density(np.zeros((3, 3)))

    def test_singular_covariance_raises(self) -> None:
        c = MvNormalComponent.from_arrays(
            [0.0, 0.0], [[1.0, 1.0], [1.0, 1.0]], 1.0
        )
        with pytest.raises(SingularCovarianceError):
            c.density([0.0, 0.0])

    def test_tiny_pivot_raises(self) -> None:
        """Pivots below the singularity threshold count as singular."""
        c = MvNormalComponent.from_arrays(
            [0.0, 0.0], [[1.0, 0.0], [0.0, 1e-13]], 1.0
        )
        with pytest.raises(SingularCovarianceError):
            c.log_density([[0.0, 0.0]])

    def test_negative_determinant_raises(self) -> None:
        c = MvNormalComponent.from_arrays(
            [0.0, 0.0], [[-1.0, 0.0], [0.0, 1.0]], 1.0
        )
        with pytest.raises(SingularCovarianceError):
            c.density([0.0, 0.0])

    def test_non_finite_covariance_raises(self) -> None:
        c = MvNormalComponent.from_arrays(
            [0.0, 0.0], [[np.nan, 0.0], [0.0, 1.0]], 1.0
        )
        with pytest.raises(SingularCovarianceError):
            c.density([0.0, 0.0])


class TestStartValues:
    def test_only_mean_changes(self, component: MvNormalComponent) -> None:
        drawn = component.generate_start_values(
            global_mean=[0.0, 0.0],
            global_covariance=np.eye(2),
            rng=get_rng(1),
            tolerance=1e-5,
        )
        assert drawn.covariance == component.covariance
        assert drawn.mixing_proportion == component.mixing_proportion
        assert drawn.mean != component.mean

    def test_reproducible(self, component: MvNormalComponent) -> None:
        a = component.generate_start_values([0, 0], np.eye(2), get_rng(5), 0)
        b = component.generate_start_values([0, 0], np.eye(2), get_rng(5), 0)
        assert a.mean == b.mean

    def test_degenerate_covariance_stays_in_span(
        self, component: MvNormalComponent
    ) -> None:
        """Directions with variance below the tolerance are not perturbed."""
        global_cov = np.array([[1.0, 0.0], [0.0, 1e-9]])
        drawn = component.generate_start_values(
            [3.0, 4.0], global_cov, get_rng(2), tolerance=1e-5
        )
        assert drawn.mean[1] == pytest.approx(4.0, abs=1e-12)
        assert drawn.mean[0] != 3.0

    def test_draws_follow_global_distribution(
        self, component: MvNormalComponent
    ) -> None:
        rng = get_rng(11)
        global_cov = np.array([[4.0, 1.0], [1.0, 2.0]])
        draws = np.array(
            [
                component.generate_start_values(
                    [1.0, -1.0], global_cov, rng, 1e-5
                ).mean
                for _ in range(4000)
            ]
        )
        np.testing.assert_allclose(draws.mean(axis=0), [1.0, -1.0], atol=0.1)
        np.testing.assert_allclose(
            np.cov(draws, rowvar=False), global_cov, atol=0.4
        )

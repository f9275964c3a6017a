"""
Tests for initial components and random starts.
"""

import numpy as np
import pytest

from mixture_analysis.core.data_models import ObservationMatrix
from mixture_analysis.core.utils import get_rng
from mixture_analysis.estimation.starting_values import (
    StartCandidate,
    generate_candidates,
    initial_components,
    select_best_candidate,
    uniform_mixing_proportions,
)


@pytest.fixture
def observations() -> ObservationMatrix:
    rng = np.random.default_rng(4)
    values = np.vstack(
        [rng.normal(0.0, 1.0, (60, 2)), rng.normal(4.0, 1.0, (40, 2))]
    )
    return ObservationMatrix.from_array(values)


def _candidates(
    observations: ObservationMatrix, seed: int, n_workers: int
) -> list[StartCandidate]:
    return generate_candidates(
        observations.values,
        initial_components(observations, 3),
        observations.sample_mean(),
        observations.sample_covariance(),
        n_starts=8,
        rng=get_rng(seed),
        tolerance=1e-5,
        n_workers=n_workers,
    )


class TestInitialComponents:
    def test_uniform_mixing_proportions(self) -> None:
        pis = uniform_mixing_proportions(3)
        np.testing.assert_allclose(pis, [1 / 3, 1 / 3, 1 / 3])
        assert pis[-1] == 1.0 - (pis[0] + pis[1])

    def test_single_group(self) -> None:
        np.testing.assert_array_equal(uniform_mixing_proportions(1), [1.0])

    def test_components_start_at_sample_moments(
        self, observations: ObservationMatrix
    ) -> None:
        components = initial_components(observations, 3)

        assert len(components) == 3
        for c in components:
            np.testing.assert_allclose(
                c.mean_vector, observations.sample_mean()
            )
            np.testing.assert_allclose(
                c.covariance_matrix,
                np.cov(observations.values, rowvar=False, ddof=1),
            )


class TestRandomStarts:
    def test_candidates_are_ordered_and_scored(
        self, observations: ObservationMatrix
    ) -> None:
        candidates = _candidates(observations, seed=1, n_workers=1)

        assert [c.index for c in candidates] == list(range(8))
        for c in candidates:
            assert c.is_finite
            pis = [comp.mixing_proportion for comp in c.components]
            assert sum(pis) == pytest.approx(1.0, abs=1e-12)

    def test_independent_of_worker_count(
        self, observations: ObservationMatrix
    ) -> None:
        serial = _candidates(observations, seed=2, n_workers=1)
        threaded = _candidates(observations, seed=2, n_workers=4)

        assert [c.log_likelihood for c in serial] == [
            c.log_likelihood for c in threaded
        ]
        assert serial[5].components == threaded[5].components

    def test_candidates_do_not_change_covariance(
        self, observations: ObservationMatrix
    ) -> None:
        base = initial_components(observations, 3)
        for c in _candidates(observations, seed=3, n_workers=1):
            for drawn, original in zip(c.components, base, strict=True):
                assert drawn.covariance == original.covariance


class TestSelectBest:
    @staticmethod
    def _candidate(index: int, ll: float) -> StartCandidate:
        return StartCandidate(
            index=index, components=(), log_likelihood=ll, singular_groups=()
        )

    def test_highest_finite_wins(self) -> None:
        candidates = [
            self._candidate(0, -50.0),
            self._candidate(1, np.nan),
            self._candidate(2, -10.0),
            self._candidate(3, -np.inf),
        ]
        best = select_best_candidate(candidates)
        assert best is not None
        assert best.index == 2

    def test_ties_go_to_lowest_index(self) -> None:
        candidates = [
            self._candidate(2, -5.0),
            self._candidate(0, -5.0),
            self._candidate(1, -7.0),
        ]
        best = select_best_candidate(candidates)
        assert best is not None
        assert best.index == 0

    def test_no_finite_candidate(self) -> None:
        candidates = [self._candidate(0, -np.inf), self._candidate(1, np.nan)]
        assert select_best_candidate(candidates) is None

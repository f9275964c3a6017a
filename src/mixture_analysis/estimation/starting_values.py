"""
Starting values for mixture estimation.

Every component starts at the global sample mean and sample covariance
with equal mixing proportions. Random starts then perturb the means: each
trial draws a fresh mean per group from N(sample mean, sample covariance),
sets the mixing proportions from one pass of responsibilities (no M-step)
and is scored by its log-likelihood. Trials are independent candidates
built from the same base snapshot; only the best is kept.
"""

import logging
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

import numpy as np
from numpy.random import Generator
from numpy.typing import NDArray

from mixture_analysis.core.data_models import ObservationMatrix
from mixture_analysis.core.utils import spawn_rngs
from mixture_analysis.estimation.component import MvNormalComponent
from mixture_analysis.estimation.em import (
    accumulate_sufficient_statistics,
    compute_mixing_proportions,
    e_step,
    log_likelihood,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StartCandidate:
    """
    One scored random start.

    Attributes:
        index: Trial number, 0-based.
        components: Candidate parameter snapshot.
        log_likelihood: Log-likelihood of the candidate.
        singular_groups: Groups whose covariance was singular while scoring.
    """

    index: int
    components: tuple[MvNormalComponent, ...]
    log_likelihood: float
    singular_groups: tuple[int, ...]

    @property
    def is_finite(self) -> bool:
        return bool(np.isfinite(self.log_likelihood))


def uniform_mixing_proportions(n_groups: int) -> NDArray[np.float64]:
    """1/K for the first K-1 groups; the last takes the remainder."""
    pis = np.full(n_groups, 1.0 / n_groups, dtype=np.float64)
    pis[-1] = 1.0 - float(np.sum(pis[:-1]))
    return pis


def initial_components(
    data: ObservationMatrix,
    n_groups: int,
) -> tuple[MvNormalComponent, ...]:
    """
    K identical components at the sample mean and (N-1) sample covariance.

    Args:
        data: Observations.
        n_groups: Number of components K.

    Returns:
        Tuple of K components with equal mixing proportions.
    """
    mean = data.sample_mean()
    covariance = data.sample_covariance(ddof=1)
    pis = uniform_mixing_proportions(n_groups)
    return tuple(
        MvNormalComponent.from_arrays(mean, covariance, pis[g])
        for g in range(n_groups)
    )


def generate_candidate(
    index: int,
    data: NDArray[np.float64],
    base_components: Sequence[MvNormalComponent],
    global_mean: NDArray[np.float64],
    global_covariance: NDArray[np.float64],
    rng: Generator,
    tolerance: float,
) -> StartCandidate:
    """
    Build and score one random start.

    Args:
        index: Trial number.
        data: Observations, shape (N, D).
        base_components: Snapshot the candidate is derived from.
        global_mean: Sample mean of the data.
        global_covariance: Sample covariance of the data.
        rng: Generator private to this trial.
        tolerance: Rank tolerance of the mean generator.

    Returns:
        The scored candidate.
    """
    drawn = [
        c.generate_start_values(global_mean, global_covariance, rng, tolerance)
        for c in base_components
    ]

    e_result = e_step(data, drawn)
    stats = accumulate_sufficient_statistics(data, e_result.responsibilities)
    pis = compute_mixing_proportions(stats.t1, data.shape[0])
    candidate = tuple(
        c.with_mixing_proportion(p) for c, p in zip(drawn, pis, strict=True)
    )

    ll, singular = log_likelihood(data, candidate)
    return StartCandidate(
        index=index,
        components=candidate,
        log_likelihood=ll,
        singular_groups=tuple(
            sorted(set(e_result.singular_groups) | set(singular))
        ),
    )


def generate_candidates(
    data: NDArray[np.float64],
    base_components: Sequence[MvNormalComponent],
    global_mean: NDArray[np.float64],
    global_covariance: NDArray[np.float64],
    n_starts: int,
    rng: Generator,
    tolerance: float,
    n_workers: int = 1,
) -> list[StartCandidate]:
    """
    Score n_starts independent random starts.

    Each trial gets its own generator spawned from rng, so the candidates
    are the same whatever the number of workers.

    Returns:
        Candidates ordered by trial index.
    """
    trial_rngs = spawn_rngs(rng, n_starts)
    logger.debug(f"Scoring {n_starts} random starts on {n_workers} worker(s)")
    base = tuple(base_components)

    def run_trial(index: int) -> StartCandidate:
        return generate_candidate(
            index,
            data,
            base,
            global_mean,
            global_covariance,
            trial_rngs[index],
            tolerance,
        )

    if n_workers <= 1 or n_starts <= 1:
        return [run_trial(i) for i in range(n_starts)]

    with ThreadPoolExecutor(max_workers=n_workers) as executor:
        return list(executor.map(run_trial, range(n_starts)))


def select_best_candidate(
    candidates: Sequence[StartCandidate],
) -> StartCandidate | None:
    """
    Highest finite log-likelihood; ties go to the lowest trial index.

    Returns:
        The best candidate, or None if no candidate has a finite score.
    """
    best: StartCandidate | None = None
    for candidate in sorted(candidates, key=lambda c: c.index):
        if not candidate.is_finite:
            continue
        if best is None or candidate.log_likelihood > best.log_likelihood:
            best = candidate
    return best

"""
Choosing the number of mixture components.

Fits one model per K in a range and compares them by an information
criterion. Every model owns its own state and generator; only the
observation matrix, which is read-only, is shared between threads.
"""

import logging
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor

import numpy as np
from numpy.random import Generator
from numpy.typing import ArrayLike

from mixture_analysis.core.data_models import ObservationMatrix
from mixture_analysis.core.utils import get_rng, spawn_rngs
from mixture_analysis.estimation.config import MixtureConfig
from mixture_analysis.estimation.data_models import MixtureFitResult
from mixture_analysis.estimation.enums import FitCriterion
from mixture_analysis.estimation.exceptions import ConfigurationError
from mixture_analysis.estimation.model import MixtureModel

logger = logging.getLogger(__name__)


def fit_mixture_range(
    data: ObservationMatrix | ArrayLike,
    min_groups: int,
    max_groups: int,
    config: MixtureConfig | None = None,
    rng: Generator | None = None,
    n_workers: int = 1,
) -> list[MixtureFitResult]:
    """
    Fit models with K = min_groups..max_groups.

    Each K gets a generator spawned from rng, so results do not depend on
    n_workers.

    Args:
        data: Observations.
        min_groups: Smallest K, at least 1.
        max_groups: Largest K, at least min_groups.
        config: Settings shared by every model.
        rng: Parent generator.
        n_workers: Models fitted concurrently.

    Returns:
        Fit results ordered by K.
    """
    if min_groups < 1:
        raise ConfigurationError(
            f"min_groups must be at least 1, got {min_groups}"
        )
    if max_groups < min_groups:
        raise ConfigurationError(
            f"max_groups ({max_groups}) must be >= min_groups ({min_groups})"
        )
    if n_workers < 1:
        raise ConfigurationError(f"n_workers must be >= 1, got {n_workers}")

    if not isinstance(data, ObservationMatrix):
        try:
            data = ObservationMatrix.from_array(data)
        except ValueError as e:
            raise ConfigurationError(f"Invalid data: {e}") from e

    config = config or MixtureConfig()
    rng = rng if rng is not None else get_rng()
    group_counts = list(range(min_groups, max_groups + 1))
    child_rngs = spawn_rngs(rng, len(group_counts))

    def fit_one(index: int) -> MixtureFitResult:
        n_groups = group_counts[index]
        logger.info(f"Fitting mixture with K={n_groups}")
        model = MixtureModel(
            data, n_groups, config=config, rng=child_rngs[index]
        )
        return model.fit()

    if n_workers == 1:
        return [fit_one(i) for i in range(len(group_counts))]

    with ThreadPoolExecutor(max_workers=n_workers) as executor:
        return list(executor.map(fit_one, range(len(group_counts))))


def select_best_model(
    results: Sequence[MixtureFitResult],
    criterion: FitCriterion | str = FitCriterion.BIC,
) -> MixtureFitResult:
    """
    Result with the smallest criterion value.

    Runs whose log-likelihood is not finite are ignored; ties go to the
    smaller K.

    Raises:
        ValueError: If no result has a finite log-likelihood, or the
            criterion name is unknown.
    """
    best: MixtureFitResult | None = None
    best_value = np.inf
    for result in sorted(results, key=lambda r: r.n_groups):
        if not np.isfinite(result.log_likelihood):
            continue
        value = result.get_fit_stat(criterion)
        if best is None or value < best_value:
            best = result
            best_value = value

    if best is None:
        raise ValueError("No fitted model has a finite log-likelihood")
    return best

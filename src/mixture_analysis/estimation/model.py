"""
Finite mixture of multivariate normals fitted by EM.

    f(x) = Σ_g π_g N(x | μ_g, Σ_g)

The model owns an immutable parameter snapshot (one MvNormalComponent per
group). Each EM iteration reads the current snapshot, computes
responsibilities, re-estimates means and covariances, passes the
covariances through the constraint pipeline and installs the new snapshot
in one assignment.

Singular covariances do not abort a fit: the group's density is taken as
zero, the event is recorded in the status and estimation continues. Set
EMConfig.halt_on_singular to raise instead.
"""

import logging
import math
import threading
import time
from collections.abc import Callable
from dataclasses import replace

import numpy as np
from numpy.random import Generator
from numpy.typing import ArrayLike, NDArray

from mixture_analysis.core.data_models import ObservationMatrix
from mixture_analysis.core.utils import get_rng
from mixture_analysis.estimation import em
from mixture_analysis.estimation.component import MvNormalComponent
from mixture_analysis.estimation.config import (
    MixtureConfig,
    ModelConstraints,
)
from mixture_analysis.estimation.constraints import (
    apply_constraints,
    build_constraint_pipeline,
)
from mixture_analysis.estimation.data_models import (
    EMIteration,
    MixtureFitResult,
)
from mixture_analysis.estimation.enums import ConvergenceStatus, FitCriterion
from mixture_analysis.estimation.exceptions import (
    ConfigurationError,
    SingularCovarianceError,
)
from mixture_analysis.estimation.fit_criteria import InformationFitCriteria
from mixture_analysis.estimation.starting_values import (
    generate_candidates,
    initial_components,
    select_best_candidate,
)
from mixture_analysis.estimation.status import (
    Cancelled,
    FitStatus,
    NonConverged,
    Ok,
    SingularCovariance,
    TimedOut,
    status_message,
)

logger = logging.getLogger(__name__)

# (iteration, max_iterations, log_likelihood)
ProgressCallback = Callable[[int, int, float], None]


def _as_observation_matrix(
    data: ObservationMatrix | ArrayLike,
) -> ObservationMatrix:
    if isinstance(data, ObservationMatrix):
        return data
    try:
        return ObservationMatrix.from_array(data)
    except ValueError as e:
        raise ConfigurationError(f"Invalid data: {e}") from e


class MixtureModel:
    """
    Multivariate normal mixture model estimated with EM.

    Typical use:

        model = MixtureModel(data, n_groups=3, rng=get_rng(7))
        model.set_model_constraints(False, False, False, False)
        result = model.fit()

    Args:
        data: Observations, an ObservationMatrix or an (N, D) array-like.
        n_groups: Number of mixture components K >= 1.
        config: Estimation settings. Defaults to MixtureConfig().
        rng: Generator for random starts. Defaults to a fresh generator.

    Raises:
        ConfigurationError: If K is not a positive integer or the data is
            not a finite, non-empty matrix.
    """

    def __init__(
        self,
        data: ObservationMatrix | ArrayLike,
        n_groups: int,
        config: MixtureConfig | None = None,
        rng: Generator | None = None,
    ):
        if isinstance(n_groups, bool) or not isinstance(
            n_groups, int | np.integer
        ):
            raise ConfigurationError(
                f"n_groups must be an integer, got {n_groups!r}"
            )
        if n_groups < 1:
            raise ConfigurationError(
                f"n_groups must be at least 1, got {n_groups}"
            )

        self._data = _as_observation_matrix(data)
        self._n_groups = int(n_groups)
        self.config = config or MixtureConfig()
        self.rng = rng if rng is not None else get_rng()

        self._pipeline = build_constraint_pipeline(self.config.constraints)
        self._components = initial_components(self._data, self._n_groups)

        self._started = False
        self._iteration = 0
        self._history: list[EMIteration] = []
        self._log_likelihood = math.nan
        self._convergence_status = ConvergenceStatus.NOT_RUN
        self._singular_event: SingularCovariance | None = None
        self._stop_status: Cancelled | TimedOut | None = None
        self._fit_criteria: InformationFitCriteria | None = None

    def _check_not_started(self) -> None:
        if self._started:
            raise ConfigurationError(
                "Model cannot be reconfigured after estimation has started"
            )

    def set_model_constraints(
        self,
        same_variance_within: bool,
        same_covariance_within: bool,
        local_independence: bool,
        same_covariance_between: bool,
    ) -> None:
        """Replace the covariance constraints. Only allowed before a run."""
        self._check_not_started()
        constraints = ModelConstraints(
            same_variance_within=same_variance_within,
            same_covariance_within=same_covariance_within,
            local_independence=local_independence,
            same_covariance_between=same_covariance_between,
        )
        self.config = replace(self.config, constraints=constraints)
        self._pipeline = build_constraint_pipeline(constraints)

    def set_em_options(
        self,
        max_iterations: int,
        tolerance: float,
        n_random_starts: int,
    ) -> None:
        """
        Replace the EM iteration settings. Only allowed before a run.

        Raises:
            ConfigurationError: If a value is out of range or a run has
                started.
        """
        self._check_not_started()
        em_config = replace(
            self.config.em,
            max_iterations=max_iterations,
            tolerance=tolerance,
            n_random_starts=n_random_starts,
        )
        self.config = replace(self.config, em=em_config)

    def _record_singular(
        self, groups: tuple[int, ...], iteration: int | None = None
    ) -> None:
        if iteration is None:
            iteration = self._iteration
        for group in groups:
            if self.config.em.halt_on_singular:
                raise SingularCovarianceError(
                    f"Singular covariance in group {group} at iteration "
                    f"{iteration}",
                    group=group,
                    iteration=iteration,
                )
            if self._singular_event is None:
                logger.warning(
                    f"Singular covariance in group {group} at iteration "
                    f"{iteration}; using zero density"
                )
            self._singular_event = SingularCovariance(
                group=group, iteration=iteration
            )

    @property
    def status(self) -> FitStatus:
        """
        Structured status of the fit.

        The most recent singular event wins, then cancellation or timeout,
        then non-convergence.
        """
        if self._singular_event is not None:
            return self._singular_event
        if self._stop_status is not None:
            return self._stop_status
        if self._convergence_status not in (
            ConvergenceStatus.NOT_RUN,
            ConvergenceStatus.CONVERGED,
        ):
            return NonConverged(iterations=self._iteration)
        return Ok()

    @property
    def status_message(self) -> str:
        """Legacy free-text status, "OK" or "Singular Matrix"."""
        return status_message(self.status)

    def _check_group(self, group: int) -> None:
        if not 0 <= group < self._n_groups:
            raise IndexError(
                f"group must be in [0, {self._n_groups}), got {group}"
            )

    def posterior_probability(self, group: int, observation: int) -> float:
        """
        Posterior probability that an observation belongs to a group.

        Returns:
            r_gi, or NaN when every weighted density of the observation is
            zero.
        """
        self._check_group(group)
        if not 0 <= observation < self.sample_size:
            raise IndexError(
                f"observation must be in [0, {self.sample_size}), "
                f"got {observation}"
            )
        row = self._data.values[observation : observation + 1]
        log_dens, singular = em.component_log_densities(row, self._components)
        self._record_singular(singular)
        posteriors = em.responsibilities_from_log_densities(
            log_dens, em.mixing_proportion_array(self._components)
        )
        return float(posteriors[0, group])

    def responsibilities(self) -> NDArray[np.float64]:
        """Posterior membership matrix of shape (N, K)."""
        e_result = em.e_step(self._data.values, self._components)
        self._record_singular(e_result.singular_groups)
        return e_result.responsibilities

    def loglikelihood(self) -> float:
        """Log-likelihood of the current parameters."""
        ll, singular = em.log_likelihood(self._data.values, self._components)
        self._record_singular(singular)
        self._log_likelihood = ll
        return ll

    def m_step(self) -> float:
        """
        One EM iteration on the current snapshot.

        Responsibilities, raw means and covariances, the constraint pipeline
        (pooled with the mixing proportions that produced the
        responsibilities), then new mixing proportions.

        Returns:
            Log-likelihood under the new parameters.
        """
        self._started = True
        data = self._data.values
        snapshot = self._components

        e_result = em.e_step(data, snapshot)
        self._record_singular(e_result.singular_groups)

        stats = em.accumulate_sufficient_statistics(
            data, e_result.responsibilities
        )
        means, covariances = em.estimate_means_and_covariances(stats)
        covariances = apply_constraints(
            covariances, em.mixing_proportion_array(snapshot), self._pipeline
        )
        pis = em.compute_mixing_proportions(stats.t1, self.sample_size)

        self._components = tuple(
            MvNormalComponent.from_arrays(means[g], covariances[g], pis[g])
            for g in range(self._n_groups)
        )

        # The new parameters belong to the next recorded iteration
        ll, singular = em.log_likelihood(data, self._components)
        self._record_singular(singular, iteration=self._iteration + 1)
        self._log_likelihood = ll
        return ll

    def run_em(
        self,
        cancel_event: threading.Event | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> float:
        """
        Iterate m_step until the log-likelihood change is within tolerance.

        Stops early when the log-likelihood is not finite, when
        cancel_event is set or when the configured timeout elapses. Both
        are checked once per iteration.

        Args:
            cancel_event: Optional event that stops the loop when set.
            progress_callback: Called after every iteration with
                (iteration, max_iterations, log_likelihood).

        Returns:
            Final log-likelihood.

        Raises:
            SingularCovarianceError: Only when halt_on_singular is set.
        """
        self._started = True
        em_config = self.config.em
        start_time = time.monotonic()

        ll_prev = self.loglikelihood()
        status = ConvergenceStatus.MAX_ITERATIONS
        self._stop_status = None

        while self._iteration < em_config.max_iterations:
            if cancel_event is not None and cancel_event.is_set():
                logger.info(f"EM cancelled at iteration {self._iteration}")
                status = ConvergenceStatus.CANCELLED
                self._stop_status = Cancelled(iterations=self._iteration)
                break
            if (
                em_config.timeout_seconds is not None
                and time.monotonic() - start_time > em_config.timeout_seconds
            ):
                logger.warning(
                    f"EM timed out after {em_config.timeout_seconds}s "
                    f"({self._iteration} iterations)"
                )
                status = ConvergenceStatus.TIMED_OUT
                self._stop_status = TimedOut(
                    iterations=self._iteration,
                    timeout_seconds=em_config.timeout_seconds,
                )
                break

            ll = self.m_step()
            delta = abs(ll_prev - ll)
            self._iteration += 1
            self._history.append(
                EMIteration(
                    iteration=self._iteration, log_likelihood=ll, delta=delta
                )
            )
            logger.debug(
                f"Iteration {self._iteration}: LL = {ll:.4f}, "
                f"delta = {delta:.6g}"
            )
            if progress_callback is not None:
                progress_callback(
                    self._iteration, em_config.max_iterations, ll
                )

            ll_prev = ll
            if not np.isfinite(ll):
                status = ConvergenceStatus.FAILED
                break
            if delta <= em_config.tolerance:
                status = ConvergenceStatus.CONVERGED
                break

        self._convergence_status = status
        self._log_likelihood = ll_prev
        self._fit_criteria = self.fit_statistics()

        logger.info(
            f"EM finished for K={self._n_groups}: {status.value} "
            f"({self._iteration} iterations, LL={ll_prev:.4f})"
        )
        return ll_prev

    def multiple_random_starts(self) -> float:
        """
        Score random starts and install the best as the EM starting point.

        Every trial is built from the current snapshot with its own
        generator. If no trial has a finite log-likelihood the snapshot is
        left unchanged.

        Returns:
            Log-likelihood of the installed start, or -inf if none was
            finite.
        """
        self._started = True
        em_config = self.config.em
        candidates = generate_candidates(
            self._data.values,
            self._components,
            self._data.sample_mean(),
            self._data.sample_covariance(ddof=1),
            em_config.n_random_starts,
            self.rng,
            em_config.start_tolerance,
            n_workers=em_config.n_workers,
        )
        for candidate in candidates:
            self._record_singular(candidate.singular_groups)

        best = select_best_candidate(candidates)
        if best is None:
            logger.warning(
                f"None of {len(candidates)} random starts had a finite "
                f"log-likelihood; keeping the current starting values"
            )
            return -math.inf

        self._components = best.components
        self._log_likelihood = best.log_likelihood
        logger.info(
            f"Best of {len(candidates)} random starts: trial {best.index}, "
            f"LL = {best.log_likelihood:.4f}"
        )
        return best.log_likelihood

    def fit(
        self,
        cancel_event: threading.Event | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> MixtureFitResult:
        """
        Random starts followed by EM.

        Returns:
            MixtureFitResult describing the final parameters.
        """
        self.multiple_random_starts()
        self.run_em(
            cancel_event=cancel_event, progress_callback=progress_callback
        )
        return self.to_result()

    def free_parameters(self) -> int:
        """
        Number of freely estimated parameters.

        Per covariance matrix: 1 variance under same_variance_within, else
        D; 1 covariance under same_covariance_within, none under local
        independence, else D(D+1)/2 - D. Matrices count once when shared
        between groups. Add D means per group and K-1 mixing proportions.
        """
        c = self.config.constraints
        d = self.n_dimensions
        k = self._n_groups

        n_variances = 1 if c.same_variance_within else d
        if c.local_independence:
            n_covariances = 0
        elif c.same_covariance_within:
            n_covariances = 1
        else:
            n_covariances = d * (d + 1) // 2 - d

        n_matrices = 1 if c.same_covariance_between else k
        return (n_variances + n_covariances) * n_matrices + d * k + (k - 1)

    def fit_statistics(self) -> InformationFitCriteria:
        """Snapshot of the information criteria for the current parameters."""
        ll = self.loglikelihood()
        return InformationFitCriteria.from_responsibilities(
            n_groups=self._n_groups,
            sample_size=self.sample_size,
            free_parameters=self.free_parameters(),
            log_likelihood=ll,
            responsibilities=self.responsibilities(),
        )

    @property
    def fit_criteria(self) -> InformationFitCriteria:
        """Criteria from the end of the last run, or of the current state."""
        if self._fit_criteria is None:
            self._fit_criteria = self.fit_statistics()
        return self._fit_criteria

    def get_fit_stat(self, criterion: FitCriterion | str) -> float:
        return self.fit_criteria.get_fit_stat(criterion)

    @property
    def n_groups(self) -> int:
        return self._n_groups

    @property
    def n_dimensions(self) -> int:
        return self._data.n_dimensions

    @property
    def sample_size(self) -> int:
        return self._data.n_observations

    @property
    def components(self) -> tuple[MvNormalComponent, ...]:
        return self._components

    @property
    def converged(self) -> bool:
        return self._convergence_status == ConvergenceStatus.CONVERGED

    @property
    def convergence_status(self) -> ConvergenceStatus:
        return self._convergence_status

    @property
    def n_iterations(self) -> int:
        return self._iteration

    @property
    def history(self) -> tuple[EMIteration, ...]:
        return tuple(self._history)

    @property
    def log_likelihood(self) -> float:
        """Last computed log-likelihood (NaN before any evaluation)."""
        return self._log_likelihood

    def get_mean(self, group: int) -> NDArray[np.float64]:
        self._check_group(group)
        return self._components[group].mean_vector

    def get_covariance(self, group: int) -> NDArray[np.float64]:
        self._check_group(group)
        return self._components[group].covariance_matrix

    def get_mixing_proportion(self, group: int) -> float:
        self._check_group(group)
        return self._components[group].mixing_proportion

    def to_result(self) -> MixtureFitResult:
        """Immutable summary of the current fit."""
        return MixtureFitResult(
            n_groups=self._n_groups,
            n_dimensions=self.n_dimensions,
            sample_size=self.sample_size,
            components=self._components,
            constraints=self.config.constraints,
            log_likelihood=self._log_likelihood,
            n_iterations=self._iteration,
            convergence_status=self._convergence_status,
            status=self.status,
            history=tuple(self._history),
            fit_criteria=self.fit_criteria,
            model_version=self.config.model_version,
        )

from pydantic import BaseModel, ConfigDict

from mixture_analysis.estimation.component import MvNormalComponent
from mixture_analysis.estimation.config import ModelConstraints
from mixture_analysis.estimation.enums import ConvergenceStatus, FitCriterion
from mixture_analysis.estimation.fit_criteria import InformationFitCriteria
from mixture_analysis.estimation.status import FitStatus, status_message


class EMIteration(BaseModel):
    """
    One recorded EM iteration.

    Attributes:
        iteration: 1-based iteration number.
        log_likelihood: Log-likelihood after the M-step of this iteration.
        delta: Absolute change from the previous log-likelihood.
    """

    model_config = ConfigDict(frozen=True, ser_json_inf_nan="constants")

    iteration: int
    log_likelihood: float
    delta: float


class MixtureFitResult(BaseModel):
    """
    Result of mixture model estimation.

    Attributes:
        n_groups: Number of mixture components K.
        n_dimensions: Number of observed variables D.
        sample_size: Number of observations N.
        components: Estimated components, one per group.
        constraints: Covariance constraints the model was fitted with.
        log_likelihood: Final log-likelihood value.
        n_iterations: Number of EM iterations performed.
        convergence_status: Status indicating how estimation terminated.
        status: Structured fit status.
        history: Per-iteration log-likelihood trace.
        fit_criteria: Information criteria of the final parameters.
        model_version: Version string for reproducibility tracking.
    """

    model_config = ConfigDict(frozen=True, ser_json_inf_nan="constants")

    n_groups: int
    n_dimensions: int
    sample_size: int
    components: tuple[MvNormalComponent, ...]
    constraints: ModelConstraints
    log_likelihood: float
    n_iterations: int
    convergence_status: ConvergenceStatus
    status: FitStatus
    history: tuple[EMIteration, ...]
    fit_criteria: InformationFitCriteria
    model_version: str

    @property
    def converged(self) -> bool:
        """Whether estimation converged successfully."""
        return self.convergence_status == ConvergenceStatus.CONVERGED

    @property
    def status_message(self) -> str:
        """Legacy message, "OK" or "Singular Matrix"."""
        return status_message(self.status)

    def get_fit_stat(self, criterion: FitCriterion | str) -> float:
        return self.fit_criteria.get_fit_stat(criterion)

from enum import StrEnum


class ConvergenceStatus(StrEnum):
    CONVERGED = "converged"
    MAX_ITERATIONS = "max_iterations"
    FAILED = "failed"
    CANCELLED = "cancelled"
    TIMED_OUT = "timed_out"
    NOT_RUN = "not_run"


class FitCriterion(StrEnum):
    AIC = "aic"
    BIC = "bic"
    CAIC = "caic"
    SABIC = "sabic"
    SACAIC = "sacaic"
    ENTROPY = "entropy"
    ICLBIC = "iclbic"

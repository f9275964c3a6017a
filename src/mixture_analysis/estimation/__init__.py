"""
Mixture model estimation module.

This module provides infrastructure for estimating finite mixtures of
multivariate normal distributions (latent profile analysis) via the EM
algorithm.

Key components:
- MixtureConfig: Configuration for estimation
- MvNormalComponent: One mixture component
- MixtureModel: EM estimator with random starts and constraints
- MixtureFitResult: Output from estimation
- InformationFitCriteria: Model-selection statistics
- fit_mixture_range / select_best_model: Choosing the number of groups
"""

from mixture_analysis.estimation.component import MvNormalComponent
from mixture_analysis.estimation.config import (
    EMConfig,
    MixtureConfig,
    ModelConstraints,
    default_config,
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
from mixture_analysis.estimation.model import MixtureModel
from mixture_analysis.estimation.selection import (
    fit_mixture_range,
    select_best_model,
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

__all__ = [
    "Cancelled",
    "ConfigurationError",
    "ConvergenceStatus",
    "EMConfig",
    "EMIteration",
    "FitCriterion",
    "FitStatus",
    "InformationFitCriteria",
    "MixtureConfig",
    "MixtureFitResult",
    "MixtureModel",
    "ModelConstraints",
    "MvNormalComponent",
    "NonConverged",
    "Ok",
    "SingularCovariance",
    "SingularCovarianceError",
    "TimedOut",
    "default_config",
    "fit_mixture_range",
    "select_best_model",
    "status_message",
]

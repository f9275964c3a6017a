"""
Information criteria for comparing fitted mixture models.

With log-likelihood ll, p free parameters and sample size N:

    AIC    = -2 ll + 2 p
    BIC    = -2 ll + p ln N
    CAIC   = -2 ll + p (ln N + 1)
    SABIC  = -2 ll + p ln((N + 2) / 24)
    SACAIC = -2 ll + p (ln((N + 2) / 24) + 1)
    ICL-BIC = BIC + 2 E,   E = -Σ_g Σ_i r_gi ln r_gi

Lower values indicate a better trade-off between fit and complexity.
"""

import math
from typing import Self

import numpy as np
from numpy.typing import NDArray
from pydantic import BaseModel, ConfigDict

from mixture_analysis.estimation.enums import FitCriterion


def classification_entropy(responsibilities: NDArray[np.float64]) -> float:
    """
    E = -Σ_g Σ_i r_gi ln r_gi.

    Zero and NaN responsibilities contribute 0.
    """
    r = np.nan_to_num(responsibilities, nan=0.0)
    positive = r > 0.0
    terms = np.zeros_like(r)
    terms[positive] = r[positive] * np.log(r[positive])
    return float(-np.sum(terms))


class InformationFitCriteria(BaseModel):
    """
    Model-selection statistics for one fitted model.

    A frozen snapshot: the statistics describe the parameters the snapshot
    was taken from, not the model's current state.

    Attributes:
        n_groups: Number of mixture components K.
        sample_size: Number of observations N.
        free_parameters: Number of freely estimated parameters p.
        log_likelihood: Log-likelihood of the snapshot.
        entropy: Classification entropy of the snapshot responsibilities.
    """

    model_config = ConfigDict(frozen=True, ser_json_inf_nan="constants")

    n_groups: int
    sample_size: int
    free_parameters: int
    log_likelihood: float
    entropy: float

    @classmethod
    def from_responsibilities(
        cls,
        n_groups: int,
        sample_size: int,
        free_parameters: int,
        log_likelihood: float,
        responsibilities: NDArray[np.float64],
    ) -> Self:
        return cls(
            n_groups=n_groups,
            sample_size=sample_size,
            free_parameters=free_parameters,
            log_likelihood=log_likelihood,
            entropy=classification_entropy(responsibilities),
        )

    @property
    def _deviance(self) -> float:
        return -2.0 * self.log_likelihood

    def aic(self) -> float:
        return self._deviance + 2.0 * self.free_parameters

    def bic(self) -> float:
        return self._deviance + self.free_parameters * math.log(
            self.sample_size
        )

    def caic(self) -> float:
        return self._deviance + self.free_parameters * (
            math.log(self.sample_size) + 1.0
        )

    def sabic(self) -> float:
        """Sample-size adjusted BIC."""
        n_star = (self.sample_size + 2.0) / 24.0
        return self._deviance + self.free_parameters * math.log(n_star)

    def sacaic(self) -> float:
        """Sample-size adjusted CAIC."""
        n_star = (self.sample_size + 2.0) / 24.0
        return self._deviance + self.free_parameters * (
            math.log(n_star) + 1.0
        )

    def iclbic(self) -> float:
        """BIC penalized by twice the classification entropy."""
        return self.bic() + 2.0 * self.entropy

    def get_fit_stat(self, criterion: FitCriterion | str) -> float:
        """
        Look up a statistic by criterion.

        Args:
            criterion: A FitCriterion or its name, case-insensitive
                (e.g. "BIC", "sabic").

        Returns:
            Value of the statistic.

        Raises:
            ValueError: If the name is not a known criterion.
        """
        try:
            key = FitCriterion(str(criterion).lower())
        except ValueError as e:
            valid = ", ".join(c.value for c in FitCriterion)
            raise ValueError(
                f"Unknown fit statistic '{criterion}'. Valid: {valid}"
            ) from e

        match key:
            case FitCriterion.AIC:
                return self.aic()
            case FitCriterion.BIC:
                return self.bic()
            case FitCriterion.CAIC:
                return self.caic()
            case FitCriterion.SABIC:
                return self.sabic()
            case FitCriterion.SACAIC:
                return self.sacaic()
            case FitCriterion.ENTROPY:
                return self.entropy
            case FitCriterion.ICLBIC:
                return self.iclbic()

    def as_dict(self) -> dict[str, float]:
        """All statistics keyed by criterion name."""
        return {c.value: self.get_fit_stat(c) for c in FitCriterion}

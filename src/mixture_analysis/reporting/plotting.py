"""
Plotting utilities for fitted mixture models.
"""

from collections.abc import Sequence

import numpy as np
from matplotlib.figure import Figure

from mixture_analysis.estimation.data_models import MixtureFitResult
from mixture_analysis.estimation.enums import FitCriterion


def plot_em_history(result: MixtureFitResult) -> Figure:
    """
    Log-likelihood by EM iteration.

    Args:
        result: Fitted model with a recorded history.

    Returns:
        matplotlib Figure with the trace.
    """
    import matplotlib.pyplot as plt

    iterations = [step.iteration for step in result.history]
    values = [step.log_likelihood for step in result.history]

    fig, ax = plt.subplots(figsize=(8, 5))
    ax.plot(iterations, values, marker="o", markersize=3)
    ax.set_xlabel("Iteration")
    ax.set_ylabel("Log-likelihood")
    ax.set_title(
        f"EM History (K={result.n_groups}, {result.convergence_status.value})"
    )
    ax.grid(True, alpha=0.3)

    fig.tight_layout()
    return fig


def plot_information_criteria(
    results: Sequence[MixtureFitResult],
    criteria: Sequence[FitCriterion] = (
        FitCriterion.AIC,
        FitCriterion.BIC,
        FitCriterion.SABIC,
    ),
) -> Figure:
    """
    Information criteria against the number of groups.

    Models with a non-finite log-likelihood are left out.

    Args:
        results: One fit per K.
        criteria: Criteria to draw, one line each.

    Returns:
        matplotlib Figure with one line per criterion.
    """
    import matplotlib.pyplot as plt

    finite = sorted(
        (r for r in results if np.isfinite(r.log_likelihood)),
        key=lambda r: r.n_groups,
    )
    groups = [r.n_groups for r in finite]

    fig, ax = plt.subplots(figsize=(8, 5))
    for criterion in criteria:
        values = [r.get_fit_stat(criterion) for r in finite]
        ax.plot(groups, values, marker="o", label=criterion.value.upper())

    ax.set_xlabel("Number of groups (K)")
    ax.set_ylabel("Criterion value")
    ax.set_xticks(groups)
    ax.set_title("Information Criteria by Number of Groups")
    ax.legend()
    ax.grid(True, alpha=0.3)

    fig.tight_layout()
    return fig

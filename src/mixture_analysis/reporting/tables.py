"""
Text reports for fitted mixture models.

Tables are rich renderables so scripts can print them to a console;
render_results turns the whole report into plain text for log files.
"""

import io
from collections.abc import Sequence

from rich.console import Console, Group, RenderableType
from rich.table import Table
from rich.text import Text

from mixture_analysis.estimation.data_models import (
    EMIteration,
    MixtureFitResult,
)
from mixture_analysis.estimation.enums import FitCriterion
from mixture_analysis.estimation.fit_criteria import InformationFitCriteria

REPORT_WIDTH = 100

_CRITERION_LABELS = {
    FitCriterion.AIC: "AIC",
    FitCriterion.BIC: "BIC",
    FitCriterion.CAIC: "CAIC",
    FitCriterion.SABIC: "Sample-size adjusted BIC",
    FitCriterion.SACAIC: "Sample-size adjusted CAIC",
    FitCriterion.ENTROPY: "Entropy",
    FitCriterion.ICLBIC: "ICL-BIC",
}


def history_table(history: Sequence[EMIteration]) -> Table:
    """EM iteration trace: iteration, log-likelihood and change."""
    table = Table(title="EM History")
    table.add_column("Iteration", justify="right")
    table.add_column("Log-likelihood", justify="right")
    table.add_column("Delta", justify="right")

    for step in history:
        table.add_row(
            str(step.iteration),
            f"{step.log_likelihood:.6f}",
            f"{step.delta:.8f}",
        )
    return table


def fit_statistics_table(criteria: InformationFitCriteria) -> Table:
    table = Table(title="Fit Statistics")
    table.add_column("Statistic", style="bold")
    table.add_column("Value", justify="right")

    table.add_row("Log-likelihood", f"{criteria.log_likelihood:.4f}")
    table.add_row("Free parameters", str(criteria.free_parameters))
    for criterion, value in criteria.as_dict().items():
        table.add_row(
            _CRITERION_LABELS[FitCriterion(criterion)], f"{value:.4f}"
        )
    return table


def components_table(result: MixtureFitResult) -> Table:
    """Mixing proportion, mean and covariance of each group."""
    table = Table(title="Group Parameters")
    table.add_column("Group", justify="right", style="bold")
    table.add_column("Mix Prop", justify="right")
    table.add_column("Mean")
    table.add_column("Covariance")

    for g, component in enumerate(result.components, start=1):
        mean = "  ".join(f"{m:.4f}" for m in component.mean)
        covariance = "\n".join(
            "  ".join(f"{c:.4f}" for c in row) for row in component.covariance
        )
        table.add_row(
            str(g), f"{component.mixing_proportion:.4f}", mean, covariance
        )
    return table


def model_selection_table(
    results: Sequence[MixtureFitResult],
    best: MixtureFitResult | None = None,
) -> Table:
    """One row per fitted K with every criterion; the best row is marked."""
    table = Table(title="Model Selection")
    table.add_column("K", justify="right", style="bold")
    table.add_column("Converged")
    table.add_column("Status")
    table.add_column("LL", justify="right")
    for criterion in FitCriterion:
        table.add_column(criterion.value.upper(), justify="right")

    for result in results:
        stats = result.fit_criteria.as_dict()
        style = "green" if best is not None and result is best else None
        table.add_row(
            str(result.n_groups),
            "Y" if result.converged else "N",
            result.status_message,
            f"{result.log_likelihood:.4f}",
            *(f"{stats[c.value]:.4f}" for c in FitCriterion),
            style=style,
        )
    return table


def _summary(result: MixtureFitResult) -> Text:
    lines = [
        f"Number of groups = {result.n_groups}",
        f"Free parameters = {result.fit_criteria.free_parameters}",
        f"Sample size = {result.sample_size}",
        f"Log-likelihood = {result.log_likelihood:.4f}",
        f"Converged = {result.converged}",
        f"Status = {result.status_message}",
    ]
    return Text("\n".join(lines))


def results_renderable(result: MixtureFitResult) -> RenderableType:
    """Summary, fit statistics and group parameters as one renderable."""
    return Group(
        _summary(result),
        fit_statistics_table(result.fit_criteria),
        components_table(result),
    )


def render_results(result: MixtureFitResult, width: int = REPORT_WIDTH) -> str:
    """Full report of a fitted model as plain text."""
    buffer = io.StringIO()
    console = Console(
        file=buffer, width=width, color_system=None, force_terminal=False
    )
    console.print(results_renderable(result))
    return buffer.getvalue()


def delimited_fit_record(result: MixtureFitResult) -> str:
    """
    One comma-separated line per model.

    Fields: converged (Y/N), status message, K, log-likelihood, AIC, BIC,
    CAIC, SABIC, SACAIC, entropy and ICL-BIC.
    """
    criteria = result.fit_criteria
    fields = [
        "Y" if result.converged else "N",
        result.status_message,
        str(result.n_groups),
        str(criteria.log_likelihood),
        str(criteria.aic()),
        str(criteria.bic()),
        str(criteria.caic()),
        str(criteria.sabic()),
        str(criteria.sacaic()),
        str(criteria.entropy),
        str(criteria.iclbic()),
    ]
    return ",".join(fields)

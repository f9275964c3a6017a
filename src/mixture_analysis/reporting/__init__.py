from mixture_analysis.reporting.plotting import (
    plot_em_history,
    plot_information_criteria,
)
from mixture_analysis.reporting.tables import (
    components_table,
    delimited_fit_record,
    fit_statistics_table,
    history_table,
    model_selection_table,
    render_results,
    results_renderable,
)

__all__ = [
    "components_table",
    "delimited_fit_record",
    "fit_statistics_table",
    "history_table",
    "model_selection_table",
    "plot_em_history",
    "plot_information_criteria",
    "render_results",
    "results_renderable",
]

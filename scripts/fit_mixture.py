#!/usr/bin/env python
"""
Fit multivariate normal mixtures to a CSV file and pick the number of groups.
"""

from pathlib import Path

import numpy as np
import typer
from rich.console import Console
from rich.panel import Panel

from mixture_analysis.core.data import load_csv_to_observation_matrix
from mixture_analysis.estimation import (
    ConfigurationError,
    EMConfig,
    FitCriterion,
    MixtureConfig,
    MixtureFitResult,
    ModelConstraints,
    fit_mixture_range,
    select_best_model,
)
from mixture_analysis.estimation.config import (
    DEFAULT_EM_TOLERANCE,
    DEFAULT_MAX_EM_ITERATIONS,
    DEFAULT_RANDOM_STARTS,
)
from mixture_analysis.reporting import (
    delimited_fit_record,
    model_selection_table,
    plot_information_criteria,
    results_renderable,
)

PROJECT_DIR = Path(__file__).parent.parent.absolute()
DEFAULT_OUTPUT_DIR = PROJECT_DIR / "data" / "fitted-models"

console = Console(force_terminal=True, legacy_windows=True)
app = typer.Typer()


def save_model(model: MixtureFitResult, output_path: Path) -> None:
    """Save fitted model to json file."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w") as f:
        f.write(model.model_dump_json(indent=4))


@app.command()
def main(
    input_path: Path = typer.Argument(
        ...,
        help="Path to CSV file with one numeric column per variable",
    ),
    columns: str | None = typer.Option(
        None,
        "--columns",
        help="Comma-separated column names to use (default: all numeric)",
    ),
    min_groups: int = typer.Option(1, "--min-groups", help="Smallest K"),
    max_groups: int = typer.Option(4, "--max-groups", help="Largest K"),
    starts: int = typer.Option(
        DEFAULT_RANDOM_STARTS, "--starts", help="Random starts per model"
    ),
    max_iter: int = typer.Option(
        DEFAULT_MAX_EM_ITERATIONS, "--max-iter", help="Maximum EM iterations"
    ),
    tolerance: float = typer.Option(
        DEFAULT_EM_TOLERANCE, "--tolerance", help="EM convergence tolerance"
    ),
    workers: int = typer.Option(
        1, "--workers", help="Models fitted concurrently"
    ),
    criterion: FitCriterion = typer.Option(
        FitCriterion.BIC, "--criterion", help="Criterion used to pick K"
    ),
    same_variance_within: bool = typer.Option(
        False,
        "--same-variance-within/--free-variance-within",
        help="Equal variances within each group",
    ),
    same_covariance_within: bool = typer.Option(
        False,
        "--same-covariance-within/--free-covariance-within",
        help="Equal covariances within each group",
    ),
    local_independence: bool = typer.Option(
        False,
        "--local-independence/--correlated",
        help="Zero covariances within each group",
    ),
    same_covariance_between: bool = typer.Option(
        False,
        "--same-covariance-between/--free-covariance-between",
        help="One covariance matrix shared by all groups",
    ),
    output_dir: Path = typer.Option(
        DEFAULT_OUTPUT_DIR,
        "-o",
        "--output-dir",
        help="Output directory for fitted models",
    ),
    seed: int | None = typer.Option(
        None,
        "-s",
        "--seed",
        help="Random seed for reproducibility",
    ),
) -> None:
    """Fit mixtures for a range of K and save every model as JSON."""

    # Validate input
    if not input_path.exists():
        console.print(f"[red]File not found: {input_path}[/red]")
        raise typer.Exit(1)
    if input_path.suffix != ".csv":
        console.print("[red]Only .csv files are supported[/red]")
        raise typer.Exit(1)

    # Load data
    console.print("[dim]Loading data...[/dim]")
    selected = (
        [c.strip() for c in columns.split(",") if c.strip()]
        if columns
        else None
    )
    try:
        data = load_csv_to_observation_matrix(input_path, columns=selected)
    except ValueError as e:
        console.print(f"[red]Error loading CSV: {e}[/red]")
        raise typer.Exit(1) from e

    try:
        config = MixtureConfig(
            constraints=ModelConstraints(
                same_variance_within=same_variance_within,
                same_covariance_within=same_covariance_within,
                local_independence=local_independence,
                same_covariance_between=same_covariance_between,
            ),
            em=EMConfig(
                max_iterations=max_iter,
                tolerance=tolerance,
                n_random_starts=starts,
            ),
        )
    except ConfigurationError as e:
        console.print(f"[red]Invalid options: {e}[/red]")
        raise typer.Exit(1) from e

    console.print(
        Panel(
            f"[bold]Fit Mixture Models[/bold]\n\n"
            f"Input: [cyan]{input_path}[/cyan]\n"
            f"Observations: [cyan]{data.n_observations}[/cyan]\n"
            f"Variables: [cyan]{data.n_dimensions}[/cyan]\n"
            f"Groups: [cyan]{min_groups}-{max_groups}[/cyan]\n"
            f"Random starts: [cyan]{starts}[/cyan]",
            title="Configuration",
        )
    )

    # Fit models
    console.print("[dim]Fitting mixture models...[/dim]")
    rng = np.random.default_rng(seed) if seed is not None else None
    try:
        results = fit_mixture_range(
            data,
            min_groups,
            max_groups,
            config=config,
            rng=rng,
            n_workers=workers,
        )
        best = select_best_model(results, criterion)
    except ValueError as e:
        console.print(f"[red]Estimation failed: {e}[/red]")
        raise typer.Exit(1) from e

    console.print(model_selection_table(results, best=best))
    console.print(
        f"Selected K = {best.n_groups} by {criterion.value.upper()}"
    )
    console.print(results_renderable(best))

    # Save models
    output_dir.mkdir(parents=True, exist_ok=True)
    for result in results:
        save_model(
            result, output_dir / f"{input_path.stem}_k{result.n_groups}.json"
        )
    summary_path = output_dir / f"{input_path.stem}_fit.csv"
    with open(summary_path, "w") as f:
        for result in results:
            f.write(delimited_fit_record(result) + "\n")

    figure_path = output_dir / f"{input_path.stem}_criteria.png"
    fig = plot_information_criteria(results)
    fig.savefig(figure_path, dpi=150)

    console.print(
        Panel(
            f"[bold green]Models saved[/bold green]\n\n"
            f"Output: [cyan]{output_dir}[/cyan]",
            title="Done",
        )
    )


if __name__ == "__main__":
    app()

"""
Command-line interface for the maintainability index.
"""

import json
import logging
from enum import Enum

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from maintainability_index import __version__
from maintainability_index.config import load_config, set_verify_ssl
from maintainability_index.core import analyze_repository
from maintainability_index.exceptions import AnalysisError, ConfigurationError
from maintainability_index.http_client import close_http_client
from maintainability_index.report import CompositeReport
from maintainability_index.scoring import Tier

# --- Typer App ---
app = typer.Typer(help="Score the maintainability of a GitHub repository.")
console = Console()
err_console = Console(stderr=True)

EXIT_ANALYSIS_ERROR = 1
EXIT_CONFIGURATION_ERROR = 2

_TIER_COLORS = {
    Tier.EXCELLENT: "green",
    Tier.GOOD: "green",
    Tier.FAIR: "yellow",
    Tier.POOR: "red",
    Tier.CRITICAL: "red",
}


class OutputFormat(str, Enum):
    TEXT = "text"
    JSON = "json"


# --- Helper Functions ---


def configure_logging(verbose: bool = False, quiet: bool = False) -> None:
    """Route library logging through Rich on stderr."""
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    else:
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _score_color(score: float) -> str:
    if score >= 75:
        return "green"
    if score >= 60:
        return "yellow"
    return "red"


def display_report(report: CompositeReport) -> None:
    """Display the report as a rich table followed by the summary."""
    table = Table(title=f"Maintainability Report: {report.repository.full_name}")
    table.add_column("Metric", justify="left", style="cyan", no_wrap=True)
    table.add_column("Score", justify="center")
    table.add_column("Weight", justify="center", style="magenta")
    table.add_column("Observations", justify="left")

    for result in report.metric_results:
        if result.available:
            color = _score_color(result.score)
            score_text = f"[{color}]{result.score:.1f}/100[/{color}]"
            observations = "\n".join(result.findings)
        else:
            score_text = "[dim]unavailable[/dim]"
            observations = "\n".join(
                [f"Unavailable: {result.unavailable_reason}", *result.findings]
            )
        weight = report.weights.get(result.name, 0.0)
        table.add_row(result.name.value, score_text, f"{weight:.0%}", observations)

    console.print(table)

    if report.composite_available:
        color = _TIER_COLORS[report.tier]
        console.print(
            f"\nMaintainability Index: [bold {color}]{report.composite_index:.1f}/100"
            f"[/bold {color}] ({report.tier.value})"
        )
    else:
        console.print("\n[bold red]Composite index unavailable[/bold red]")

    console.print(report.recommendation)

    if report.narrative:
        console.print("\n[bold cyan]Assessment[/bold cyan]")
        console.print(report.narrative)

    if report.warnings:
        console.print("\n[bold yellow]Warnings[/bold yellow]")
        for warning in report.warnings:
            console.print(f"  [yellow]- {warning}[/yellow]")


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"rmi {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show the version and exit.",
    ),
):
    """Repository Maintainability Index."""


@app.command()
def analyze(
    repository: str = typer.Argument(
        ..., help="Repository to analyze (format: 'owner/repo' or a GitHub URL)."
    ),
    token: str | None = typer.Option(
        None,
        "--token",
        "-t",
        help="GitHub token (default: GITHUB_TOKEN environment variable).",
    ),
    output_format: OutputFormat = typer.Option(
        OutputFormat.TEXT,
        "--format",
        "-f",
        case_sensitive=False,
        help="Output format: text or json.",
    ),
    llm: bool = typer.Option(
        False,
        "--llm",
        "-l",
        help="Add a narrative assessment (requires OPENROUTER_API_KEY).",
    ),
    model: str | None = typer.Option(
        None,
        "--model",
        "-m",
        help="Model used for the narrative assessment.",
    ),
    enhancer_timeout: float | None = typer.Option(
        None,
        "--enhancer-timeout",
        help="Seconds to wait for the narrative assessment (default: 60).",
    ),
    window_days: int | None = typer.Option(
        None,
        "--window-days",
        help="Days of commit history to consider (default: 90).",
    ),
    parallel: bool = typer.Option(
        False,
        "--parallel",
        help="Run the metric calculators concurrently.",
    ),
    insecure: bool = typer.Option(
        False,
        "--insecure",
        help="Disable SSL certificate verification for HTTPS requests.",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Only log errors.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Log debug details.",
    ),
):
    """Analyze a repository and print its maintainability report."""
    configure_logging(verbose=verbose, quiet=quiet)
    if insecure:
        set_verify_ssl(False)

    try:
        config = load_config(
            token=token,
            enable_enhancer=llm or None,
            enhancer_timeout=enhancer_timeout,
            commit_window_days=window_days,
            llm_model=model,
            parallel_metrics=parallel or None,
        )
        if not quiet and output_format is OutputFormat.TEXT:
            err_console.print(f"🔍 Analyzing [bold]{repository}[/bold]...")
        report = analyze_repository(repository, config)
    except ConfigurationError as e:
        err_console.print(f"[red]Configuration error: {e}[/red]")
        raise typer.Exit(code=EXIT_CONFIGURATION_ERROR) from None
    except AnalysisError as e:
        err_console.print(f"[red]Analysis failed: {e}[/red]")
        raise typer.Exit(code=EXIT_ANALYSIS_ERROR) from None
    finally:
        close_http_client()

    if output_format is OutputFormat.JSON:
        typer.echo(json.dumps(report.to_dict(), indent=2))
    else:
        display_report(report)


if __name__ == "__main__":
    app()

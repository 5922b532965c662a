"""
Command-line interface for TAPD-SDN.

Provides a rich command-line interface with:
- Progress bar driven by the detection run stages
- Colored output for status and errors
- Result, strategy comparison and cost tables

Usage:
    tapd-sdn run detection.yaml
    tapd-sdn validate detection.yaml
    tapd-sdn generate --output detection.yaml
    tapd-sdn info
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table
from rich.text import Text
from rich.tree import Tree

from tapd_sdn import __version__
from tapd_sdn.config import ConfigLoader, DetectionConfig, load_detection_config
from tapd_sdn.config.loader import ConfigError
from tapd_sdn.core.decision import DecisionStrategy
from tapd_sdn.exceptions import TapdError
from tapd_sdn.pipeline import RunResult, RunStage, run_experiment

# Initialize Rich console
console = Console()

# Create Typer app
app = typer.Typer(
    name="tapd-sdn",
    help="TAPD-SDN - Trusted Adaptive Poisoning Detection for SDN controllers",
    add_completion=True,
    rich_markup_mode="rich",
)


# =============================================================================
# Utility Functions
# =============================================================================


def setup_logging(verbose: bool = False, log_file: Path | None = None) -> None:
    """Configure logging with Rich handler."""
    level = logging.DEBUG if verbose else logging.INFO

    handlers: list[logging.Handler] = [
        RichHandler(
            console=console,
            show_time=True,
            show_path=verbose,
            rich_tracebacks=True,
        )
    ]

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
        handlers.append(file_handler)

    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=handlers,
        force=True,
    )


def create_progress() -> Progress:
    """Create a Rich progress bar with standard columns."""
    return Progress(
        SpinnerColumn(),
        TextColumn("[bold blue]{task.description}"),
        BarColumn(bar_width=40),
        TaskProgressColumn(),
        TimeElapsedColumn(),
        console=console,
    )


def print_header() -> None:
    """Print the CLI header banner."""
    header = Text()
    header.append("TAPD-SDN", style="bold blue")
    header.append(" v", style="dim")
    header.append(__version__, style="cyan")

    console.print(
        Panel(
            header,
            subtitle="Trusted Adaptive Poisoning Detection",
            border_style="blue",
        )
    )


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green][+][/green] {message}")


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[red][-][/red] {message}")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[yellow][!][/yellow] {message}")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[blue][*][/blue] {message}")


# =============================================================================
# Commands
# =============================================================================


@app.command()
def run(
    config_path: Path = typer.Argument(
        ...,
        help="Path to detection configuration YAML file",
        exists=True,
        readable=True,
    ),
    output_dir: Path | None = typer.Option(
        None,
        "--output",
        "-o",
        help="Override output directory from config",
    ),
    dataset: Path | None = typer.Option(
        None,
        "--dataset",
        "-d",
        help="Override dataset path from config",
    ),
    strategy: DecisionStrategy | None = typer.Option(
        None,
        "--strategy",
        "-s",
        help="Override decision strategy from config",
        case_sensitive=False,
    ),
    seed: int | None = typer.Option(
        None,
        "--seed",
        help="Override random seed from config",
        min=0,
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        "-n",
        help="Validate config and show what would be executed",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose output",
    ),
    log_file: Path | None = typer.Option(
        None,
        "--log-file",
        "-l",
        help="Path to log file",
    ),
) -> None:
    """
    Run a poisoning detection round.

    Trains one model per controller, cross-evaluates them, votes on
    outliers and reports the suspected compromised controllers.
    """
    print_header()
    setup_logging(verbose, log_file)

    try:
        with console.status("[bold blue]Loading configuration..."):
            config = load_detection_config(config_path)

        print_success(f"Loaded configuration: {config.name}")

        if not verbose:
            logging.getLogger().setLevel(config.output.log_level)

        if output_dir:
            config.output.output_dir = str(output_dir)
        if dataset:
            config.dataset.path = str(dataset)
        if strategy:
            config.decision.strategy = DecisionStrategy(strategy)
        if seed is not None:
            config.seed = seed

        _display_run_summary(config)

        if dry_run:
            print_info("Dry run mode - no detection will be executed")
            return

        result = _execute_run(config)
        _display_results(result)

    except ConfigError as e:
        print_error(f"Configuration error: {e}")
        raise typer.Exit(1) from e
    except TapdError as e:
        print_error(e.diagnostic())
        raise typer.Exit(1) from e
    except KeyboardInterrupt:
        print_warning("Run interrupted by user")
        raise typer.Abort() from None
    except Exception as e:
        print_error(f"Unexpected error: {e}")
        if verbose:
            console.print_exception()
        raise typer.Exit(1) from e


@app.command()
def validate(
    config_path: Path = typer.Argument(
        ...,
        help="Path to configuration YAML file",
        exists=True,
        readable=True,
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Show detailed validation output",
    ),
) -> None:
    """
    Validate a configuration file.

    Checks the configuration file for syntax errors and validates
    all fields against the schema.
    """
    print_header()

    loader = ConfigLoader()

    try:
        with console.status("[bold blue]Validating detection configuration..."):
            config = loader.load_detection(config_path)

        print_success(f"Configuration is valid: {config.name}")

        if verbose:
            _display_config_details(config)

    except ConfigError as e:
        print_error(f"Validation failed: {e}")
        raise typer.Exit(1) from e


@app.command()
def generate(
    output: Path | None = typer.Option(
        None,
        "--output",
        "-o",
        help="Output file path (default: stdout)",
    ),
) -> None:
    """
    Generate a configuration template.

    Creates a template configuration file that can be customized
    for your controllers and dataset.
    """
    print_header()

    config_content = ConfigLoader.generate_template()

    if output:
        output.write_text(config_content, encoding="utf-8")
        print_success(f"Configuration template written to: {output}")
    else:
        console.print(Panel(config_content, title="Detection Template"))


@app.command()
def info() -> None:
    """
    Display framework information.

    Shows version, installed components, and available strategies.
    """
    print_header()

    table = Table(title="System Information", show_header=True)
    table.add_column("Component", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Version", __version__)
    table.add_row("Python", sys.version.split()[0])
    table.add_row("Platform", sys.platform)
    table.add_row("Time", datetime.now().strftime("%Y-%m-%d %H:%M:%S"))

    for dep, available in _check_dependencies().items():
        status = "[green]Available[/green]" if available else "[dim]Not installed[/dim]"
        table.add_row(f"  {dep}", status)

    console.print(table)

    tree = Tree("[bold blue]Available Features")

    detection = tree.add("[cyan]Detection")
    detection.add("Transfer error matrix (cross-evaluation)")
    detection.add("Per-source IQR outlier voting (MAD fallback)")
    detection.add("Confidence-weighted vote fusion")

    strategies = tree.add("[cyan]Decision Strategies")
    for s in DecisionStrategy:
        strategies.add(s.value)

    simulation = tree.add("[cyan]Simulation")
    simulation.add("Random label manipulation (RLM)")
    simulation.add("Random forest controller models")

    reporting = tree.add("[cyan]Reporting")
    reporting.add("Metrics log (cost_results.csv)")
    reporting.add("Cost estimation")
    reporting.add("Error, vote and metrics charts")

    console.print(tree)


@app.command()
def version() -> None:
    """Display version information."""
    console.print(f"tapd-sdn version [bold cyan]{__version__}[/bold cyan]")


# =============================================================================
# Helper Functions
# =============================================================================


def _display_run_summary(config: DetectionConfig) -> None:
    """Display detection configuration summary."""
    console.print()

    table = Table(title="Detection Configuration", show_header=True)
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="white")

    table.add_row("Name", config.name)
    table.add_row("Description", config.description or "N/A")
    table.add_row("Controllers (N)", str(config.n_controllers))
    table.add_row("Theta", f"{config.theta:.3f}")
    table.add_row("Eta", f"{config.eta:.3f}")
    table.add_row("Trees", str(config.trees))
    table.add_row("Seed", str(config.seed))
    table.add_row(
        "Compromised",
        str(config.compromised) if config.compromised is not None
        else f"sampled ({config.compromise_fraction:.0%})",
    )
    table.add_row("Strategy", config.decision.strategy.value)
    table.add_row("Dataset", config.dataset.path or "N/A")
    table.add_row("Output Directory", config.output.output_dir)

    console.print(table)
    console.print()


def _display_config_details(config: DetectionConfig) -> None:
    """Display detailed configuration information."""
    console.print()

    table = Table(title="Detection Configuration Details")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="white")

    data = config.model_dump(mode="json")
    for key, value in data.items():
        if isinstance(value, list):
            table.add_row(key, f"[{len(value)} items]")
        else:
            table.add_row(key, str(value))

    console.print(table)


def _execute_run(config: DetectionConfig) -> RunResult:
    """Execute a detection run with progress tracking."""
    console.print()
    print_info("Starting detection run...")

    stages = list(RunStage)[1:]

    with create_progress() as progress:
        task = progress.add_task("[bold]Preparing dataset...", total=len(stages))

        def on_stage(stage: RunStage) -> None:
            if stage == RunStage.INIT:
                progress.update(task, description="[bold]Inputs validated")
                return
            progress.update(task, description=f"[bold]Stage: {stage.value}")
            progress.advance(task)

        result = run_experiment(config, on_stage=on_stage)

    console.print()
    print_success("Detection run completed successfully!")
    return result


def _display_results(result: RunResult) -> None:
    """Display detection results, strategy comparison and cost."""
    stats = result.stats

    results_table = Table(title="Results Summary")
    results_table.add_column("Metric", style="cyan")
    results_table.add_column("Value", style="green")

    results_table.add_row("Run ID", str(result.run_id))
    results_table.add_row("Compromised (truth)", str(result.compromised))
    results_table.add_row(
        f"Suspects ({result.decision.strategy.value})", str(sorted(result.decision.suspects))
    )
    results_table.add_row("TP / FP / FN / TN", f"{stats.tp} / {stats.fp} / {stats.fn} / {stats.tn}")
    results_table.add_row("Accuracy", f"{stats.accuracy:.4f}")
    results_table.add_row("Precision", f"{stats.precision:.4f}")
    results_table.add_row("Recall", f"{stats.recall:.4f}")
    results_table.add_row("F1", f"{stats.f1:.4f}")
    if result.mean_test_accuracy is not None:
        results_table.add_row("Mean Test Accuracy", f"{result.mean_test_accuracy:.2%}")

    console.print(results_table)

    if result.comparison:
        comparison_table = Table(title="Strategy Comparison")
        comparison_table.add_column("Strategy", style="yellow")
        comparison_table.add_column("Suspects", style="white")
        comparison_table.add_column("Precision", style="green")
        comparison_table.add_column("Recall", style="green")
        comparison_table.add_column("F1", style="green")

        for name, outcome in result.comparison.items():
            comparison_table.add_row(
                name,
                str(sorted(outcome.decision.suspects)),
                f"{outcome.stats.precision:.4f}",
                f"{outcome.stats.recall:.4f}",
                f"{outcome.stats.f1:.4f}",
            )

        console.print(comparison_table)

    if result.cost is not None:
        _display_cost(result.cost.to_dict())

    for name, path in result.artifacts.items():
        print_info(f"{name}: {path}")


def _display_cost(cost: dict[str, Any]) -> None:
    cost_table = Table(title="Cost Estimate")
    cost_table.add_column("Component", style="cyan")
    cost_table.add_column("Value", style="white")

    labels = {
        "dn_bytes": "DN (dataset bytes)",
        "mn_bytes": "MN (model bytes)",
        "cn_units": "CN (compute units)",
        "cf_bytes": "CF (communication bytes)",
        "ec_ms": "EC (error matrix ms)",
        "oc_ms": "OC (outlier detection ms)",
        "fc_estimate": "FC (total)",
    }
    for key, label in labels.items():
        cost_table.add_row(label, f"{cost[key]:,.2f}")

    console.print(cost_table)


def _check_dependencies() -> dict[str, bool]:
    """Check availability of runtime dependencies."""
    import importlib.util

    return {
        "NumPy": importlib.util.find_spec("numpy") is not None,
        "pandas": importlib.util.find_spec("pandas") is not None,
        "openpyxl": importlib.util.find_spec("openpyxl") is not None,
        "Scikit-learn": importlib.util.find_spec("sklearn") is not None,
        "Matplotlib": importlib.util.find_spec("matplotlib") is not None,
    }


# =============================================================================
# Entry Point
# =============================================================================


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()

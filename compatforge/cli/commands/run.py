"""``compatforge run`` — execute the full matrix pipeline.

Checks out the source once, builds every variant in parallel, publishes
the HTML report and prints a summary.  Exit codes: 0 on success or
unstable (1 on unstable with ``--strict``), 1 on failure.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from compatforge.cli.commands._common import load_matrix_or_exit
from compatforge.config import ForgeSettings
from compatforge.core.checkout import CheckoutError
from compatforge.core.pipeline import MatrixPipeline, PipelineError, load_record
from compatforge.core.report import ReportMissingError
from compatforge.core.stash import StashError
from compatforge.models.results import RunStatus
from compatforge.monitor.renderer import RunRenderer

console = Console()


def run_cmd(
    matrix_file: Path = typer.Option(
        None,
        "--matrix",
        "-m",
        help="Matrix TOML file.  Defaults to COMPATFORGE_MATRIX_FILE or the built-in matrix.",
    ),
    build_number: int = typer.Option(
        None,
        "--build-number",
        "-n",
        min=1,
        help="Build number to use.  Defaults to BUILD_NUMBER or the next free number.",
    ),
    workers: int = typer.Option(
        None,
        "--workers",
        "-w",
        min=1,
        help="Cap the fan-out width.  Defaults to one worker per variant.",
    ),
    strict: bool = typer.Option(
        False,
        "--strict",
        help="Exit non-zero when the run is unstable.",
    ),
) -> None:
    """Run the compatibility matrix and publish its report."""
    settings = ForgeSettings()
    overrides: dict[str, int] = {}
    if build_number is not None:
        overrides["build_number"] = build_number
    if workers is not None:
        overrides["max_workers"] = workers
    if overrides:
        settings = settings.model_copy(update=overrides)

    matrix = load_matrix_or_exit(console, matrix_file, settings)
    pipeline = MatrixPipeline(matrix, settings)
    renderer = RunRenderer(console=console)

    try:
        record = pipeline.run()
    except PipelineError as exc:
        console.print(f"[bold red]Cannot start run:[/bold red] {exc}")
        raise typer.Exit(code=1) from exc
    except (CheckoutError, StashError, ReportMissingError, OSError) as exc:
        try:
            renderer.print_record(load_record(settings.runs_path))
        except FileNotFoundError:
            console.print(f"[bold red]Run failed:[/bold red] {exc}")
        raise typer.Exit(code=1) from exc

    renderer.print_record(record)

    if record.status == RunStatus.FAILURE:
        raise typer.Exit(code=1)
    if record.status == RunStatus.UNSTABLE and strict:
        raise typer.Exit(code=1)

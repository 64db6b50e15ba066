"""``compatforge show`` and ``compatforge history`` — inspect stored runs.

Both commands are read-only projections over the ``run.json`` records in
the workspace.
"""

from __future__ import annotations

import typer
from rich.console import Console

from compatforge.config import ForgeSettings
from compatforge.core.pipeline import list_records, load_record
from compatforge.monitor.renderer import RunRenderer

console = Console()


def show_cmd(
    build_number: int = typer.Argument(
        None,
        help="Build number to show.  Defaults to the latest run.",
    ),
) -> None:
    """Show the summary of a stored run."""
    settings = ForgeSettings()
    try:
        record = load_record(settings.runs_path, build_number)
    except FileNotFoundError as exc:
        console.print(f"[bold red]{exc}[/bold red]")
        raise typer.Exit(code=1) from exc
    RunRenderer(console=console).print_record(record)


def history_cmd() -> None:
    """List every stored run, oldest first."""
    settings = ForgeSettings()
    records = list_records(settings.runs_path)
    if not records:
        console.print("[dim]No runs recorded.[/dim]")
        return
    RunRenderer(console=console).print_history(records)

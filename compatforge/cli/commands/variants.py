"""``compatforge variants`` — list the configured build variants."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from compatforge.cli.commands._common import load_matrix_or_exit
from compatforge.config import ForgeSettings
from compatforge.core.build import BuildConfigError, render_command
from compatforge.models.variants import artifact_name

console = Console()


def variants_cmd(
    matrix_file: Path = typer.Option(
        None,
        "--matrix",
        "-m",
        help="Matrix TOML file.  Defaults to COMPATFORGE_MATRIX_FILE or the built-in matrix.",
    ),
    show_commands: bool = typer.Option(
        False,
        "--commands",
        "-c",
        help="Also show the rendered build command per variant.",
    ),
) -> None:
    """List variants in configured order with their dependency-tree file names."""
    matrix = load_matrix_or_exit(console, matrix_file, ForgeSettings())

    table = Table(
        title=f"{escape(matrix.project_name)} @ {escape(matrix.repository.branch)}",
        header_style="bold cyan",
    )
    table.add_column("#", justify="right", style="dim")
    table.add_column("Version", style="cyan")
    table.add_column("Dependency tree")
    if show_commands:
        table.add_column("Command")

    for i, variant in enumerate(matrix.variants, start=1):
        row = [
            str(i),
            escape(variant.version),
            escape(artifact_name(variant.version, matrix.build.tree_file_pattern)),
        ]
        if show_commands:
            try:
                row.append(escape(render_command(matrix.build, variant)))
            except BuildConfigError as exc:
                console.print(f"[bold red]Invalid build command:[/bold red] {exc}")
                raise typer.Exit(code=1) from exc
        table.add_row(*row)

    console.print(table)

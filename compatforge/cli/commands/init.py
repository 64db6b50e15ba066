"""``compatforge init`` — write a sample matrix file to edit."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from compatforge.models.matrix import SAMPLE_MATRIX_TOML

console = Console()


def init_cmd(
    path: Path = typer.Argument(
        Path("compatforge.toml"),
        help="Where to write the matrix file.",
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite an existing file."
    ),
) -> None:
    """Write a sample matrix definition."""
    if path.exists() and not force:
        console.print(f"[bold red]Refusing to overwrite:[/bold red] {path}")
        console.print("[dim]Pass --force to replace it.[/dim]")
        raise typer.Exit(code=1)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(SAMPLE_MATRIX_TOML, encoding="utf-8")
    console.print(f"[green]Wrote matrix file:[/green] {path}")

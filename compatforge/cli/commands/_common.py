"""Helpers shared by CLI commands."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from compatforge.config import ForgeSettings
from compatforge.models.matrix import MatrixConfig, MatrixConfigError, resolve_matrix


def load_matrix_or_exit(
    console: Console, matrix_file: Path | None, settings: ForgeSettings
) -> MatrixConfig:
    """Resolve the matrix, printing the error and exiting 1 if it is invalid.

    An explicit ``--matrix`` path must exist; the settings default may be absent,
    in which case the built-in matrix is used.
    """
    if matrix_file is not None and not matrix_file.is_file():
        console.print(f"[bold red]Matrix file not found:[/bold red] {matrix_file}")
        raise typer.Exit(code=1)
    try:
        return resolve_matrix(matrix_file or settings.matrix_file)
    except MatrixConfigError as exc:
        console.print(f"[bold red]Invalid matrix:[/bold red] {exc}")
        raise typer.Exit(code=1) from exc

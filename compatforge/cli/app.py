"""Main Typer application — imports and registers all CLI commands.

Entry point: ``compatforge`` (configured via pyproject.toml scripts).
"""

from __future__ import annotations

import logging

import typer
from rich.logging import RichHandler

from compatforge.cli.commands.history import history_cmd, show_cmd
from compatforge.cli.commands.init import init_cmd
from compatforge.cli.commands.run import run_cmd
from compatforge.cli.commands.variants import variants_cmd
from compatforge.config import ForgeSettings

app = typer.Typer(
    name="compatforge",
    help="compatforge: build one project against a matrix of dependency versions.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

# Register subcommands
app.command(name="run", help="Check out, build every variant, publish the report.")(run_cmd)
app.command(name="variants", help="List the configured variants.")(variants_cmd)
app.command(name="show", help="Show a stored run (latest by default).")(show_cmd)
app.command(name="history", help="List stored runs.")(history_cmd)
app.command(name="init", help="Write a sample matrix file.")(init_cmd)


def configure_logging(level: str) -> None:
    """Send log records through Rich at *level*."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
        force=True,
    )


@app.callback()
def main_callback(
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Log at DEBUG level."
    ),
) -> None:
    """Configure logging before any command runs."""
    settings = ForgeSettings()
    configure_logging("DEBUG" if verbose or settings.debug else settings.log_level)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()

"""Rich terminal renderer for run records.

Color scheme
------------
- green     : SUCCESS / PASSED
- red       : FAILURE / FAILED
- yellow    : UNSTABLE / RUNNING
- dim       : NOT_STARTED / SKIPPED
"""

from __future__ import annotations

from rich.console import Console, Group
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from compatforge.models.results import (
    PIPELINE_STAGES,
    BranchStatus,
    RunRecord,
    RunStatus,
    StageState,
)

_STAGE_LABELS: dict[StageState, str] = {
    StageState.PASSED: "[green]PASSED[/green]",
    StageState.FAILED: "[bold red]FAILED[/bold red]",
    StageState.UNSTABLE: "[yellow]UNSTABLE[/yellow]",
    StageState.RUNNING: "[yellow]RUNNING[/yellow]",
    StageState.NOT_STARTED: "[dim]NOT STARTED[/dim]",
    StageState.SKIPPED: "[dim]SKIPPED[/dim]",
}

_RUN_STYLES: dict[RunStatus, str] = {
    RunStatus.SUCCESS: "green",
    RunStatus.UNSTABLE: "yellow",
    RunStatus.FAILURE: "red",
}


class RunRenderer:
    """Renders a ``RunRecord`` as Rich terminal output.

    Parameters
    ----------
    console:
        Rich Console instance.  A new one is created if not provided.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def _stage_table(self, record: RunRecord) -> Table:
        table = Table(show_header=True, header_style="bold cyan", expand=True)
        table.add_column("Stage", min_width=22)
        table.add_column("State", justify="center", min_width=12)
        for stage in PIPELINE_STAGES:
            state = record.stage_states.get(stage.stage_id, StageState.NOT_STARTED)
            table.add_row(stage.display_name, _STAGE_LABELS[state])
        return table

    def _variant_table(self, record: RunRecord) -> Table:
        table = Table(show_header=True, header_style="bold cyan", expand=True)
        table.add_column("Version", style="cyan", min_width=10)
        table.add_column("Status", justify="center", min_width=9)
        table.add_column("Category")
        table.add_column("Details", min_width=20)
        table.add_column("Time", justify="right", width=9)

        for result in record.results:
            if result.status == BranchStatus.SUCCESS:
                status = "[green]SUCCESS[/green]"
                details = escape(result.artifact_name)
            else:
                status = "[bold red]FAILURE[/bold red]"
                details = f"[red]{escape(result.message or '-')}[/red]"
            category = result.category.value if result.category else "[dim]-[/dim]"
            table.add_row(
                escape(result.version),
                status,
                category,
                details,
                f"{result.duration_ms / 1000:.1f}s",
            )
        return table

    def render(self, record: RunRecord) -> Panel:
        """Return a Panel summarizing *record*."""
        style = _RUN_STYLES[record.status]
        parts = [
            f"[bold]Project:[/bold] {escape(record.project_name)}",
            f"[bold]Status:[/bold] [{style}]{record.status.value.upper()}[/{style}]",
        ]
        if record.results:
            ok = sum(1 for r in record.results if r.succeeded)
            parts.append(f"[bold]Variants:[/bold] {ok}/{len(record.results)}")
        if record.report_path:
            parts.append(f"[bold]Report:[/bold] {escape(str(record.report_path))}")
        if record.error:
            parts.append(f"[red][bold]Error:[/bold] {escape(record.error)}[/red]")

        renderables = [self._stage_table(record)]
        if record.results:
            renderables.extend([Text(""), self._variant_table(record)])
        renderables.extend([Text(""), Text.from_markup("  |  ".join(parts))])

        return Panel(
            Group(*renderables),
            title=f"[bold]Build #{record.build_number}[/bold]",
            subtitle=f"Started: {record.started_at.strftime('%Y-%m-%d %H:%M:%S UTC')}",
            border_style=style,
            padding=(1, 2),
        )

    def print_record(self, record: RunRecord) -> None:
        self.console.print(self.render(record))

    def print_history(self, records: list[RunRecord]) -> None:
        """Print one line per stored run."""
        table = Table(title="Runs", header_style="bold cyan")
        table.add_column("#", justify="right")
        table.add_column("Project")
        table.add_column("Status", justify="center")
        table.add_column("Failed variants")
        for record in records:
            style = _RUN_STYLES[record.status]
            table.add_row(
                str(record.build_number),
                escape(record.project_name),
                f"[{style}]{record.status.value}[/{style}]",
                escape(", ".join(record.failed_versions)) or "[dim]-[/dim]",
            )
        self.console.print(table)

"""Matrix pipeline — the central coordinator for compatforge runs.

Wires the stash store, checkout, build branches, fan-out, report rendering
and publishing into one numbered run with three sequential stages:

    s0_checkout -> s1_build (parallel per variant) -> s2_report

Per-run workspace layout::

    {workspace}/runs/{n}/checkout/   fresh clone
    {workspace}/runs/{n}/stash/      stash store for the run
    {workspace}/runs/{n}/work/       per-variant work dirs and logs
    {workspace}/runs/{n}/report/     rendered report before publishing
    {workspace}/runs/{n}/run.json    persisted RunRecord
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path

from compatforge.config import ForgeSettings
from compatforge.core.build import BuildBranch
from compatforge.core.checkout import (
    CheckoutError,
    GitCheckout,
    SourceCheckout,
    checkout_and_stage,
)
from compatforge.core.executors import BuildExecutor, ShellBuildExecutor
from compatforge.core.fanout import fan_out, overall_status
from compatforge.core.report import (
    ReportMissingError,
    ReportPublisher,
    collect_rows,
    write_report,
)
from compatforge.core.stash import StashError, StashStore
from compatforge.models.matrix import MatrixConfig
from compatforge.models.results import RunRecord, RunStatus, StageState

logger = logging.getLogger(__name__)

RUN_RECORD_FILE = "run.json"


class PipelineError(RuntimeError):
    """Raised when a run cannot be set up."""


def _run_numbers(runs_path: Path) -> list[int]:
    if not runs_path.exists():
        return []
    return sorted(
        int(child.name)
        for child in runs_path.iterdir()
        if child.is_dir() and child.name.isdigit()
    )


def next_build_number(runs_path: Path) -> int:
    """One more than the highest run number on disk, starting at 1."""
    numbers = _run_numbers(runs_path)
    return numbers[-1] + 1 if numbers else 1


def load_record(runs_path: Path, build_number: int | None = None) -> RunRecord:
    """Load a stored run record; the latest one when *build_number* is None."""
    runs_path = Path(runs_path)
    if build_number is None:
        numbers = _run_numbers(runs_path)
        if not numbers:
            raise FileNotFoundError(f"No runs recorded under {runs_path}")
        build_number = numbers[-1]
    path = runs_path / str(build_number) / RUN_RECORD_FILE
    if not path.is_file():
        raise FileNotFoundError(f"No run record for build #{build_number}: {path}")
    return RunRecord.model_validate_json(path.read_text(encoding="utf-8"))


def list_records(runs_path: Path) -> list[RunRecord]:
    """All stored run records, oldest first.  Runs without a record are skipped."""
    records: list[RunRecord] = []
    for number in _run_numbers(Path(runs_path)):
        path = Path(runs_path) / str(number) / RUN_RECORD_FILE
        if path.is_file():
            records.append(RunRecord.model_validate_json(path.read_text(encoding="utf-8")))
    return records


class MatrixPipeline:
    """Runs the build matrix for one project.

    Parameters
    ----------
    matrix:
        What to build.
    settings:
        Where and how to run.  Uses defaults if not provided.
    executor:
        Build backend.  Defaults to ``ShellBuildExecutor``.
    checkout:
        Source checkout backend.  Defaults to ``GitCheckout``.
    """

    def __init__(
        self,
        matrix: MatrixConfig,
        settings: ForgeSettings | None = None,
        *,
        executor: BuildExecutor | None = None,
        checkout: SourceCheckout | None = None,
    ) -> None:
        self.matrix = matrix
        self.settings = settings or ForgeSettings()
        self.executor = executor or ShellBuildExecutor(
            timeout_seconds=self.settings.build_timeout_seconds
        )
        self.checkout = checkout or GitCheckout(
            git_executable=self.settings.git_executable,
            timeout_seconds=self.settings.checkout_timeout_seconds,
        )
        self.publisher = ReportPublisher(self.settings.reports_path)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def run_dir(self, build_number: int) -> Path:
        return self.settings.runs_path / str(build_number)

    def _allocate_build_number(self) -> int:
        number = self.settings.build_number
        if number is None:
            number = next_build_number(self.settings.runs_path)
        elif number < 1:
            raise PipelineError(f"Build number must be positive, got {number}")
        if self.run_dir(number).exists():
            raise PipelineError(f"Build #{number} already exists at {self.run_dir(number)}")
        return number

    def _save(self, record: RunRecord) -> None:
        path = self.run_dir(record.build_number) / RUN_RECORD_FILE
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(record.model_dump_json(indent=2), encoding="utf-8")

    @staticmethod
    def _enter(record: RunRecord, stage_id: str, state: StageState) -> None:
        logger.debug("Stage %s -> %s", stage_id, state.value)
        record.stage_states[stage_id] = state

    def _finish(self, record: RunRecord) -> RunRecord:
        record.finished_at = datetime.now(timezone.utc)
        self._save(record)
        logger.info("Build #%d finished: %s", record.build_number, record.status.value)
        return record

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    def run(self) -> RunRecord:
        """Execute checkout, the build fan-out and the report, in order.

        Checkout and publishing errors fail the run and are re-raised after
        the record is saved.  Variant build failures only make it unstable.
        """
        build_number = self._allocate_build_number()
        run_dir = self.run_dir(build_number)
        run_dir.mkdir(parents=True)
        record = RunRecord(build_number=build_number, project_name=self.matrix.project_name)
        self._save(record)
        logger.info(
            "Build #%d of %s: %d variant(s)",
            build_number,
            self.matrix.project_name,
            len(self.matrix.variants),
        )

        stash_store = StashStore(run_dir / "stash")

        # s0 — checkout and stage
        self._enter(record, "s0_checkout", StageState.RUNNING)
        try:
            checkout_and_stage(
                self.checkout, self.matrix.repository, stash_store, run_dir / "checkout"
            )
        except (CheckoutError, StashError) as exc:
            logger.error("Checkout failed: %s", exc)
            self._enter(record, "s0_checkout", StageState.FAILED)
            self._enter(record, "s1_build", StageState.SKIPPED)
            self._enter(record, "s2_report", StageState.SKIPPED)
            record.status = RunStatus.FAILURE
            record.error = str(exc)
            self._finish(record)
            raise
        self._enter(record, "s0_checkout", StageState.PASSED)

        # s1 — parallel build fan-out
        self._enter(record, "s1_build", StageState.RUNNING)
        branch = BuildBranch(
            self.matrix.build, stash_store, self.executor, run_dir / "work"
        )
        record.results = fan_out(
            self.matrix.variants,
            branch.run,
            max_workers=self.settings.max_workers,
            tree_file_pattern=self.matrix.build.tree_file_pattern,
        )
        record.status = overall_status(record.results)
        if record.status == RunStatus.UNSTABLE:
            logger.warning(
                "Build #%d is unstable; failed variant(s): %s",
                build_number,
                ", ".join(record.failed_versions),
            )
            self._enter(record, "s1_build", StageState.UNSTABLE)
        else:
            self._enter(record, "s1_build", StageState.PASSED)
        self._save(record)

        # s2 — report aggregation and publishing
        self._enter(record, "s2_report", StageState.RUNNING)
        report_dir = run_dir / "report"
        try:
            record.rows = collect_rows(
                self.matrix.variants,
                record.results,
                stash_store,
                report_dir,
                tree_file_pattern=self.matrix.build.tree_file_pattern,
            )
            write_report(build_number, record.rows, report_dir, self.matrix.report)
            record.report_path = self.publisher.publish(
                build_number, report_dir, self.matrix.report, record.status
            )
        except (ReportMissingError, OSError) as exc:
            logger.error("Publishing the report failed: %s", exc)
            self._enter(record, "s2_report", StageState.FAILED)
            record.status = RunStatus.FAILURE
            record.error = str(exc)
            self._finish(record)
            raise
        self._enter(record, "s2_report", StageState.PASSED)

        return self._finish(record)

"""Tests for the Rich run renderer."""

from __future__ import annotations

from pathlib import Path

from rich.console import Console

from compatforge.models.results import (
    BranchResult,
    BranchStatus,
    FailureCategory,
    RunRecord,
    RunStatus,
    StageState,
)
from compatforge.monitor.renderer import RunRenderer


def _render(record: RunRecord) -> str:
    console = Console(record=True, width=160, color_system=None)
    RunRenderer(console=console).print_record(record)
    return console.export_text()


def _record(**overrides) -> RunRecord:
    data = {
        "build_number": 12,
        "project_name": "probe",
        "status": RunStatus.UNSTABLE,
        "stage_states": {
            "s0_checkout": StageState.PASSED,
            "s1_build": StageState.UNSTABLE,
            "s2_report": StageState.PASSED,
        },
        "results": [
            BranchResult(
                version="1.0",
                status=BranchStatus.SUCCESS,
                artifact_name="dependency-tree-1.0.txt",
                duration_ms=1500,
            ),
            BranchResult.failure(
                "2.0",
                "dependency-tree-2.0.txt",
                FailureCategory.BUILD,
                "build command exited with status [2]",
            ),
        ],
        "report_path": Path("reports/build-12/index.html"),
    }
    data.update(overrides)
    return RunRecord(**data)


class TestRunRenderer:
    def test_header_and_status(self):
        text = _render(_record())
        assert "Build #12" in text
        assert "UNSTABLE" in text
        assert "Variants: 1/2" in text

    def test_stage_rows(self):
        text = _render(_record())
        assert "Checkout & Stage" in text
        assert "Build Matrix" in text
        assert "Compatibility Report" in text

    def test_failure_message_is_shown_verbatim(self):
        text = _render(_record())
        assert "build" in text
        assert "exited with status [2]" in text

    def test_success_shows_artifact(self):
        assert "dependency-tree-1.0.txt" in _render(_record())

    def test_record_without_results(self):
        record = _record(
            status=RunStatus.FAILURE,
            results=[],
            report_path=None,
            error="git clone exited with 128",
            stage_states={
                "s0_checkout": StageState.FAILED,
                "s1_build": StageState.SKIPPED,
                "s2_report": StageState.SKIPPED,
            },
        )
        text = _render(record)
        assert "FAILURE" in text
        assert "SKIPPED" in text
        assert "git clone exited with 128" in text

    def test_history(self):
        console = Console(record=True, width=120, color_system=None)
        RunRenderer(console=console).print_history(
            [_record(), _record(build_number=13, status=RunStatus.SUCCESS, results=[])]
        )
        text = console.export_text()
        assert "12" in text and "13" in text
        assert "2.0" in text

    def test_bracketed_values_render_verbatim(self):
        record = _record(
            project_name="platform[core]",
            results=[
                BranchResult.failure(
                    "1.0[rc1]", "dependency-tree-1.0[rc1].txt", FailureCategory.BUILD, "x"
                )
            ],
        )
        assert "1.0[rc1]" in _render(record)
        assert "platform[core]" in _render(record)

        console = Console(record=True, width=120, color_system=None)
        RunRenderer(console=console).print_history([record])
        text = console.export_text()
        assert "1.0[rc1]" in text and "platform[core]" in text

"""Branch results, report rows and the persisted run record."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class BranchStatus(str, Enum):
    """Outcome of one variant's build branch."""

    SUCCESS = "success"
    FAILURE = "failure"


class FailureCategory(str, Enum):
    """Why a build branch failed."""

    CHECKOUT = "checkout"
    BUILD = "build"
    TIMEOUT = "timeout"
    ARTIFACT_MISSING = "artifact_missing"
    STASH = "stash"
    INFRASTRUCTURE = "infrastructure"
    INTERNAL = "internal"


class RunStatus(str, Enum):
    """Overall status of a matrix run."""

    SUCCESS = "success"
    UNSTABLE = "unstable"
    FAILURE = "failure"


class StageState(str, Enum):
    """State of one sequential pipeline stage."""

    NOT_STARTED = "not_started"
    RUNNING = "running"
    PASSED = "passed"
    UNSTABLE = "unstable"
    FAILED = "failed"
    SKIPPED = "skipped"


class StageDefinition(BaseModel):
    """One named, sequential phase of a run."""

    model_config = ConfigDict(frozen=True)

    stage_id: str
    display_name: str
    prerequisites: list[str] = []


PIPELINE_STAGES: list[StageDefinition] = [
    StageDefinition(stage_id="s0_checkout", display_name="Checkout & Stage"),
    StageDefinition(
        stage_id="s1_build",
        display_name="Build Matrix",
        prerequisites=["s0_checkout"],
    ),
    StageDefinition(
        stage_id="s2_report",
        display_name="Compatibility Report",
        prerequisites=["s1_build"],
    ),
]


class BranchResult(BaseModel):
    """Typed result of one build branch.

    ``category`` and ``message`` are set only for failures.
    """

    model_config = ConfigDict(frozen=True)

    version: str
    status: BranchStatus
    artifact_name: str
    category: FailureCategory | None = None
    message: str | None = None
    returncode: int | None = None
    duration_ms: int = 0
    log_path: Path | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == BranchStatus.SUCCESS

    @classmethod
    def failure(
        cls,
        version: str,
        artifact_name: str,
        category: FailureCategory,
        message: str,
        **extra,
    ) -> BranchResult:
        return cls(
            version=version,
            status=BranchStatus.FAILURE,
            artifact_name=artifact_name,
            category=category,
            message=message,
            **extra,
        )


class ReportRow(BaseModel):
    """One row of the compatibility table."""

    model_config = ConfigDict(frozen=True)

    version: str
    status: BranchStatus
    link: str | None = None


class RunRecord(BaseModel):
    """Everything known about one numbered run, persisted as ``run.json``."""

    build_number: int
    project_name: str
    status: RunStatus = RunStatus.SUCCESS
    stage_states: dict[str, StageState] = Field(
        default_factory=lambda: {
            s.stage_id: StageState.NOT_STARTED for s in PIPELINE_STAGES
        }
    )
    results: list[BranchResult] = Field(default_factory=list)
    rows: list[ReportRow] = Field(default_factory=list)
    report_path: Path | None = None
    error: str | None = None
    started_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    finished_at: datetime | None = None

    @property
    def failed_versions(self) -> list[str]:
        return [r.version for r in self.results if not r.succeeded]

"""compatforge data models — Pydantic v2, frozen where they describe configuration."""

from compatforge.models.matrix import (
    DEFAULT_MATRIX,
    BuildTemplate,
    MatrixConfig,
    MatrixConfigError,
    ReportOptions,
    RepositorySpec,
    load_matrix,
    resolve_matrix,
)
from compatforge.models.results import (
    PIPELINE_STAGES,
    BranchResult,
    BranchStatus,
    FailureCategory,
    ReportRow,
    RunRecord,
    RunStatus,
    StageDefinition,
    StageState,
)
from compatforge.models.variants import (
    DEFAULT_VARIANTS,
    BuildVariant,
    artifact_name,
    stash_name,
)

__all__ = [
    # variants
    "BuildVariant",
    "DEFAULT_VARIANTS",
    "artifact_name",
    "stash_name",
    # matrix
    "RepositorySpec",
    "BuildTemplate",
    "ReportOptions",
    "MatrixConfig",
    "MatrixConfigError",
    "DEFAULT_MATRIX",
    "load_matrix",
    "resolve_matrix",
    # results
    "BranchStatus",
    "FailureCategory",
    "BranchResult",
    "ReportRow",
    "RunStatus",
    "RunRecord",
    # stages
    "StageState",
    "StageDefinition",
    "PIPELINE_STAGES",
]

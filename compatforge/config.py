"""Runtime configuration — env-driven.

Centralized settings using pydantic-settings.  Reads from a .env file and
COMPATFORGE_* environment variables.  The matrix itself (what to build) lives
in the matrix file; these settings describe where and how to run it.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ForgeSettings(BaseSettings):
    """Runtime settings with environment variable overrides.

    Examples
    --------
    Override via environment::

        export COMPATFORGE_LOG_LEVEL=DEBUG
        export COMPATFORGE_MAX_WORKERS=4
        export COMPATFORGE_WORKSPACE_PATH=/data/compatforge

    The CI host's ``BUILD_NUMBER`` is honoured when
    ``COMPATFORGE_BUILD_NUMBER`` is not set.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="COMPATFORGE_",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Runtime environment
    environment: str = "development"
    log_level: str = "INFO"
    debug: bool = False

    # Storage paths
    workspace_path: Path = Path(".compatforge/workspace")
    reports_path: Path = Path(".compatforge/reports")
    matrix_file: Path = Path("compatforge.toml")

    # Fan-out width; None means one worker per variant
    max_workers: int | None = None

    # Timeouts
    build_timeout_seconds: int = 1800
    checkout_timeout_seconds: int = 600

    git_executable: str = "git"

    build_number: int | None = Field(
        default=None,
        ge=1,
        validation_alias=AliasChoices("COMPATFORGE_BUILD_NUMBER", "BUILD_NUMBER"),
    )

    @property
    def runs_path(self) -> Path:
        """Directory holding one sub-directory per numbered run."""
        return self.workspace_path / "runs"

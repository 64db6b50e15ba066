"""Pluggable build executor backends.

Defines the ``BuildExecutor`` Protocol that build branches use to run the
rendered shell command, along with the default subprocess implementation.
Tests and alternative hosts plug in their own Protocol-compatible objects.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)


class BuildError(RuntimeError):
    """Base class for failures inside a build branch."""


class BuildCommandError(BuildError):
    """Raised when the build command exits non-zero."""

    def __init__(self, message: str, returncode: int) -> None:
        super().__init__(message)
        self.returncode = returncode


class BuildTimeoutError(BuildError):
    """Raised when the build command exceeds its timeout."""


class BuildLaunchError(BuildError):
    """Raised when the build command cannot be started at all."""


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class BuildExecutor(Protocol):
    """Protocol for build execution backends.

    Any object with a matching ``run`` method satisfies this protocol.
    """

    def run(
        self,
        command: str,
        cwd: Path,
        env: dict[str, str],
        log_path: Path,
    ) -> int:
        """Run *command* in *cwd* and return its exit code.

        Implementations write the command's combined output to *log_path*.
        A non-zero return is not an exception at this level; the caller
        decides.  Timeouts and launch failures raise ``BuildError`` subclasses.
        """
        ...


# ---------------------------------------------------------------------------
# Default implementation
# ---------------------------------------------------------------------------


class ShellBuildExecutor:
    """Runs the build command through ``/bin/sh`` with a timeout.

    Parameters
    ----------
    timeout_seconds:
        Per-build upper bound.  ``None`` disables the timeout.
    """

    def __init__(self, timeout_seconds: int | None = 1800) -> None:
        self.timeout_seconds = timeout_seconds

    def run(
        self,
        command: str,
        cwd: Path,
        env: dict[str, str],
        log_path: Path,
    ) -> int:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        logger.debug("Running in %s: %s", cwd, command)
        with log_path.open("w", encoding="utf-8") as log:
            log.write(f"$ {command}\n")
            log.flush()
            try:
                completed = subprocess.run(
                    command,
                    shell=True,
                    cwd=cwd,
                    env=env,
                    stdout=log,
                    stderr=subprocess.STDOUT,
                    timeout=self.timeout_seconds,
                )
            except subprocess.TimeoutExpired as exc:
                raise BuildTimeoutError(
                    f"build timed out after {self.timeout_seconds}s"
                ) from exc
            except OSError as exc:
                raise BuildLaunchError(f"build could not start: {exc}") from exc
        return completed.returncode

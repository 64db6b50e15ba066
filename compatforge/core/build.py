"""Build branch: one variant's build-and-package run against the staged source.

Lifecycle of ``BuildBranch.run``::

    unstash source -> render command -> execute -> require tree file
        -> stash tree file -> BranchResult

Every exception raised inside the branch is caught at this boundary and
turned into a failed ``BranchResult`` carrying its category and message.
A failed branch never affects its siblings.
"""

from __future__ import annotations

import glob
import logging
import os
import string
import time
from collections.abc import Mapping
from pathlib import Path

from compatforge.core.executors import (
    BuildCommandError,
    BuildError,
    BuildExecutor,
    BuildLaunchError,
    BuildTimeoutError,
)
from compatforge.core.stash import StashError, StashStore
from compatforge.models.matrix import BuildTemplate
from compatforge.models.results import BranchResult, BranchStatus, FailureCategory
from compatforge.models.variants import (
    SOURCE_STASH,
    BuildVariant,
    artifact_name,
    stash_name,
)

logger = logging.getLogger(__name__)

_PLACEHOLDERS = frozenset({"version", "tree_file"})


class BuildConfigError(BuildError):
    """Raised when the command template cannot be rendered."""


class ArtifactMissingError(BuildError):
    """Raised when the build succeeded but produced no dependency-tree file."""


def render_command(template: BuildTemplate, variant: BuildVariant) -> str:
    """Substitute the variant into the command template.

    Only ``{version}`` and ``{tree_file}`` are recognized.  Literal braces
    are written as ``{{`` and ``}}``.
    """
    try:
        fields = {
            name
            for _, name, _, _ in string.Formatter().parse(template.command)
            if name is not None
        }
    except ValueError as exc:
        raise BuildConfigError(f"Malformed command template: {exc}") from exc

    unknown = fields - _PLACEHOLDERS
    if unknown:
        raise BuildConfigError(
            f"Unknown placeholder(s) in command template: {sorted(unknown)}"
        )
    return template.command.format(
        version=variant.version,
        tree_file=artifact_name(variant.version, template.tree_file_pattern),
    )


def build_environment(
    template: BuildTemplate, base_env: Mapping[str, str] | None = None
) -> dict[str, str]:
    """Return the build environment: *base_env* plus the fixed PATH augmentation."""
    env = dict(os.environ if base_env is None else base_env)
    env.update(template.env)
    if template.path_prepend:
        parts = [*template.path_prepend]
        if env.get("PATH"):
            parts.append(env["PATH"])
        env["PATH"] = os.pathsep.join(parts)
    return env


def classify_failure(exc: BaseException) -> FailureCategory:
    """Map an exception raised in a branch to a failure category."""
    if isinstance(exc, BuildTimeoutError):
        return FailureCategory.TIMEOUT
    if isinstance(exc, ArtifactMissingError):
        return FailureCategory.ARTIFACT_MISSING
    if isinstance(exc, (BuildCommandError, BuildConfigError)):
        return FailureCategory.BUILD
    if isinstance(exc, StashError):
        return FailureCategory.STASH
    if isinstance(exc, (BuildLaunchError, OSError)):
        return FailureCategory.INFRASTRUCTURE
    return FailureCategory.INTERNAL


class BuildBranch:
    """Runs one variant's build in a private work directory.

    Parameters
    ----------
    template:
        The matrix's build template.
    stash_store:
        Store holding the staged source; receives the tree file stash.
    executor:
        Backend that actually runs the shell command.
    work_root:
        Parent directory for per-variant work dirs.
    base_env:
        Environment to augment.  Defaults to ``os.environ``.
    """

    def __init__(
        self,
        template: BuildTemplate,
        stash_store: StashStore,
        executor: BuildExecutor,
        work_root: Path,
        *,
        base_env: Mapping[str, str] | None = None,
    ) -> None:
        self.template = template
        self.stash_store = stash_store
        self.executor = executor
        self.work_root = Path(work_root)
        self.base_env = base_env

    def work_dir(self, variant: BuildVariant) -> Path:
        return self.work_root / variant.version

    def log_path(self, variant: BuildVariant) -> Path:
        return self.work_root / f"{variant.version}.log"

    def _build(self, variant: BuildVariant) -> int:
        """Run the branch; raises on any failure.  Returns the exit code."""
        work_dir = self.work_dir(variant)
        self.stash_store.unstash(SOURCE_STASH, work_dir)

        command = render_command(self.template, variant)
        env = build_environment(self.template, self.base_env)
        returncode = self.executor.run(command, work_dir, env, self.log_path(variant))
        if returncode != 0:
            raise BuildCommandError(
                f"build command exited with status {returncode}", returncode
            )

        tree_file = artifact_name(variant.version, self.template.tree_file_pattern)
        if not (work_dir / tree_file).is_file():
            raise ArtifactMissingError(
                f"build succeeded but {tree_file} was not produced"
            )
        self.stash_store.stash(
            stash_name(variant.version), work_dir, includes=(glob.escape(tree_file),)
        )
        return returncode

    def run(self, variant: BuildVariant) -> BranchResult:
        """Run the branch and return its typed result.  Never raises ``Exception``."""
        name = artifact_name(variant.version, self.template.tree_file_pattern)
        log_path = self.log_path(variant)
        started = time.monotonic()
        logger.info("Building variant %s", variant.version)

        try:
            returncode = self._build(variant)
        except Exception as exc:
            category = classify_failure(exc)
            duration_ms = int((time.monotonic() - started) * 1000)
            logger.warning(
                "Variant %s failed (%s): %s", variant.version, category.value, exc
            )
            return BranchResult.failure(
                variant.version,
                name,
                category,
                str(exc) or type(exc).__name__,
                returncode=getattr(exc, "returncode", None),
                duration_ms=duration_ms,
                log_path=log_path if log_path.exists() else None,
            )

        duration_ms = int((time.monotonic() - started) * 1000)
        logger.info("Variant %s succeeded in %d ms", variant.version, duration_ms)
        return BranchResult(
            version=variant.version,
            status=BranchStatus.SUCCESS,
            artifact_name=name,
            returncode=returncode,
            duration_ms=duration_ms,
            log_path=log_path if log_path.exists() else None,
        )

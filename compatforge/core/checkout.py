"""Checkout-and-stage: fetch the source tree once and stash it for all branches."""

from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path
from typing import Protocol, runtime_checkable

from compatforge.core.stash import StashStore
from compatforge.models.artifacts import StashManifest
from compatforge.models.matrix import RepositorySpec
from compatforge.models.variants import SOURCE_STASH

logger = logging.getLogger(__name__)


class CheckoutError(RuntimeError):
    """Raised when the source tree cannot be fetched."""


@runtime_checkable
class SourceCheckout(Protocol):
    """Anything that can materialize a repository at *dest*."""

    def fetch(self, repository: RepositorySpec, dest: Path) -> None:
        ...


class GitCheckout:
    """Shallow single-branch ``git clone``.  No retries.

    Parameters
    ----------
    git_executable:
        Name or path of the git binary.
    timeout_seconds:
        Upper bound for the clone.
    """

    def __init__(self, git_executable: str = "git", timeout_seconds: int = 600) -> None:
        self.git_executable = git_executable
        self.timeout_seconds = timeout_seconds

    def command(self, repository: RepositorySpec, dest: Path) -> list[str]:
        return [
            self.git_executable,
            "clone",
            "--depth",
            "1",
            "--branch",
            repository.branch,
            "--single-branch",
            repository.url,
            str(dest),
        ]

    def fetch(self, repository: RepositorySpec, dest: Path) -> None:
        if shutil.which(self.git_executable) is None:
            raise CheckoutError(f"git executable not found: {self.git_executable}")

        logger.info("Cloning %s@%s into %s", repository.url, repository.branch, dest)
        try:
            result = subprocess.run(
                self.command(repository, dest),
                capture_output=True,
                text=True,
                timeout=self.timeout_seconds,
            )
        except subprocess.TimeoutExpired as exc:
            raise CheckoutError(
                f"git clone timed out after {self.timeout_seconds}s"
            ) from exc
        except OSError as exc:
            raise CheckoutError(f"git clone could not start: {exc}") from exc

        if result.returncode != 0:
            raise CheckoutError(
                f"git clone exited with {result.returncode}: {result.stderr.strip()}"
            )


def checkout_and_stage(
    checkout: SourceCheckout,
    repository: RepositorySpec,
    stash_store: StashStore,
    checkout_dir: Path,
) -> StashManifest:
    """Fetch *repository* once into *checkout_dir* and stash it as ``source``.

    The stash is written before any build branch starts and is only read
    afterwards.
    """
    checkout_dir = Path(checkout_dir)
    if checkout_dir.exists() and any(checkout_dir.iterdir()):
        raise CheckoutError(f"Checkout directory is not empty: {checkout_dir}")
    checkout_dir.parent.mkdir(parents=True, exist_ok=True)

    checkout.fetch(repository, checkout_dir)

    if not checkout_dir.is_dir():
        raise CheckoutError(f"Checkout produced no directory at {checkout_dir}")

    manifest = stash_store.stash(SOURCE_STASH, checkout_dir)
    logger.info(
        "Staged source tree: %d file(s), manifest %s",
        manifest.file_count,
        manifest.manifest_hash[:12],
    )
    return manifest

"""Shared test fixtures for compatforge."""

from __future__ import annotations

import os
import threading
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any

import pytest

from compatforge.config import ForgeSettings
from compatforge.core.stash import StashStore
from compatforge.models.matrix import BuildTemplate, MatrixConfig, RepositorySpec
from compatforge.models.variants import BuildVariant

# Fake build commands look like: build --version 1.0 --out dependency-tree-1.0.txt
TEST_COMMAND = "build --version {version} --out {tree_file}"


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the host's CI variables out of settings-driven tests."""
    monkeypatch.delenv("BUILD_NUMBER", raising=False)
    for key in list(os.environ):
        if key.startswith("COMPATFORGE_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def tmp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test artifacts."""
    return tmp_path


@pytest.fixture
def stash_store(tmp_dir: Path) -> StashStore:
    """Provide a fresh StashStore in a temp directory."""
    return StashStore(tmp_dir / "stash")


@pytest.fixture
def settings(tmp_dir: Path) -> ForgeSettings:
    """Provide settings whose every path lives under the temp directory."""
    return ForgeSettings(
        workspace_path=tmp_dir / "workspace",
        reports_path=tmp_dir / "reports",
        matrix_file=tmp_dir / "compatforge.toml",
    )


@pytest.fixture
def make_matrix() -> Callable[..., MatrixConfig]:
    """Factory fixture: build a MatrixConfig with test-friendly defaults."""

    def _factory(versions: Iterable[str] = ("1.0", "2.0", "3.0"), **overrides: Any) -> MatrixConfig:
        defaults: dict[str, Any] = {
            "project_name": "probe",
            "repository": RepositorySpec(url="https://git.example.com/probe.git", branch="main"),
            "variants": [BuildVariant(version=v) for v in versions],
            "build": BuildTemplate(command=TEST_COMMAND, path_prepend=["/opt/tools/bin"]),
        }
        defaults.update(overrides)
        return MatrixConfig(**defaults)

    return _factory


@pytest.fixture
def matrix(make_matrix: Callable[..., MatrixConfig]) -> MatrixConfig:
    """Convenience: a three-variant matrix."""
    return make_matrix()


# ---------------------------------------------------------------------------
# Fake backends
# ---------------------------------------------------------------------------


class FakeCheckout:
    """SourceCheckout that writes a small tree instead of cloning."""

    def __init__(
        self,
        files: dict[str, str] | None = None,
        error: Exception | None = None,
    ) -> None:
        self.files = files if files is not None else {
            "pom.xml": "<project/>",
            "src/Main.java": "class Main {}",
            ".git/HEAD": "ref: refs/heads/main",
        }
        self.error = error
        self.calls: list[tuple[str, str, Path]] = []

    def fetch(self, repository: RepositorySpec, dest: Path) -> None:
        self.calls.append((repository.url, repository.branch, dest))
        if self.error is not None:
            raise self.error
        for relpath, content in self.files.items():
            target = dest / relpath
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content)


class FakeExecutor:
    """BuildExecutor that interprets ``TEST_COMMAND`` without a shell.

    Parameters
    ----------
    fail:
        Versions whose build exits with status 2.
    skip_tree:
        Versions that exit 0 but write no dependency tree.
    raise_for:
        Mapping of version -> exception to raise from ``run``.
    """

    def __init__(
        self,
        fail: Iterable[str] = (),
        skip_tree: Iterable[str] = (),
        raise_for: dict[str, Exception] | None = None,
    ) -> None:
        self.fail = set(fail)
        self.skip_tree = set(skip_tree)
        self.raise_for = raise_for or {}
        self.commands: list[str] = []
        self.envs: list[dict[str, str]] = []
        self.cwds: list[Path] = []
        self._lock = threading.Lock()

    def run(self, command: str, cwd: Path, env: dict[str, str], log_path: Path) -> int:
        with self._lock:
            self.commands.append(command)
            self.envs.append(env)
            self.cwds.append(cwd)
        tokens = command.split()
        version, tree_file = tokens[2], tokens[4]
        log_path.parent.mkdir(parents=True, exist_ok=True)
        log_path.write_text(f"$ {command}\n")
        if version in self.raise_for:
            raise self.raise_for[version]
        if version in self.fail:
            return 2
        if version not in self.skip_tree:
            (cwd / tree_file).write_text(f"probe:{version}\n+- dep:{version}\n")
        return 0


@pytest.fixture
def fake_checkout() -> FakeCheckout:
    return FakeCheckout()


@pytest.fixture
def fake_executor() -> FakeExecutor:
    return FakeExecutor()

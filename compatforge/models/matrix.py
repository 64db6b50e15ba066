"""Matrix definition models and the TOML matrix-file loader."""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from compatforge.models.variants import (
    DEFAULT_TREE_FILE_PATTERN,
    DEFAULT_VARIANTS,
    BuildVariant,
)


class MatrixConfigError(ValueError):
    """Raised when a matrix file is missing or does not describe a valid matrix."""


class RepositorySpec(BaseModel):
    """Where the source tree comes from."""

    model_config = ConfigDict(frozen=True)

    url: str = "https://git.example.com/platform/compat-probe.git"
    branch: str = "main"


class BuildTemplate(BaseModel):
    """Shell invocation template run once per variant.

    ``command`` is formatted with ``{version}`` and, optionally,
    ``{tree_file}`` (the variant's dependency-tree file name).
    """

    model_config = ConfigDict(frozen=True)

    command: str = (
        "mvn -B -Dhadoop.version={version} clean package "
        "dependency:tree -DoutputFile={tree_file}"
    )
    path_prepend: list[str] = Field(default_factory=lambda: ["/opt/maven/bin"])
    tree_file_pattern: str = DEFAULT_TREE_FILE_PATTERN
    env: dict[str, str] = Field(default_factory=dict)

    @field_validator("tree_file_pattern")
    @classmethod
    def _check_pattern(cls, value: str) -> str:
        if "{version}" not in value:
            raise ValueError("tree_file_pattern must contain {version}")
        return value


class ReportOptions(BaseModel):
    """Publishing options for the HTML compatibility report."""

    model_config = ConfigDict(frozen=True)

    title: str = "Compatibility Matrix"
    report_dir: str = "compatibility-matrix"
    index_file: str = "index.html"
    always_link_to_last_build: bool = True
    keep_all: bool = True
    allow_missing: bool = False


class MatrixConfig(BaseModel):
    """Complete definition of one project's build matrix."""

    model_config = ConfigDict(frozen=True)

    project_name: str = "compat-probe"
    repository: RepositorySpec = RepositorySpec()
    variants: list[BuildVariant] = Field(
        default_factory=lambda: list(DEFAULT_VARIANTS)
    )
    build: BuildTemplate = BuildTemplate()
    report: ReportOptions = ReportOptions()

    @field_validator("variants")
    @classmethod
    def _check_variants(cls, value: list[BuildVariant]) -> list[BuildVariant]:
        if not value:
            raise ValueError("matrix must define at least one variant")
        seen: set[str] = set()
        for variant in value:
            if variant.version in seen:
                raise ValueError(f"duplicate variant version {variant.version!r}")
            seen.add(variant.version)
        return value

    @property
    def versions(self) -> list[str]:
        return [v.version for v in self.variants]


DEFAULT_MATRIX = MatrixConfig()


def _normalize(raw: dict[str, Any]) -> dict[str, Any]:
    """Map the TOML file layout onto ``MatrixConfig`` fields."""
    data: dict[str, Any] = {}
    project = raw.get("project", {})
    if "name" in project:
        data["project_name"] = project["name"]
    for section in ("repository", "build", "report"):
        if section in raw:
            data[section] = raw[section]
    if "variants" in raw:
        data["variants"] = [
            {"version": item} if isinstance(item, str) else item
            for item in raw["variants"]
        ]
    return data


def load_matrix(path: Path | str) -> MatrixConfig:
    """Load a matrix definition from a TOML file.

    Variants may be given either as a list of version strings::

        variants = ["3.2.4", "3.3.6"]

    or as an array of tables::

        [[variants]]
        version = "3.2.4"
    """
    path = Path(path)
    if not path.is_file():
        raise MatrixConfigError(f"Matrix file not found: {path}")
    try:
        with path.open("rb") as fh:
            raw = tomllib.load(fh)
    except tomllib.TOMLDecodeError as exc:
        raise MatrixConfigError(f"Invalid TOML in {path}: {exc}") from exc

    try:
        return MatrixConfig.model_validate(_normalize(raw))
    except ValidationError as exc:
        raise MatrixConfigError(f"Invalid matrix definition in {path}: {exc}") from exc


def resolve_matrix(path: Path | str | None) -> MatrixConfig:
    """Load *path* if it exists, else fall back to the built-in matrix."""
    if path is not None and Path(path).is_file():
        return load_matrix(path)
    return DEFAULT_MATRIX


SAMPLE_MATRIX_TOML = """\
variants = ["2.7.1", "2.8.5", "3.0.3", "3.1.4", "3.2.4"]

[project]
name = "compat-probe"

[repository]
url = "https://git.example.com/platform/compat-probe.git"
branch = "main"

[build]
command = "mvn -B -Dhadoop.version={version} clean package dependency:tree -DoutputFile={tree_file}"
path_prepend = ["/opt/maven/bin"]
tree_file_pattern = "dependency-tree-{version}.txt"

[report]
title = "Compatibility Matrix"
always_link_to_last_build = true
keep_all = true
allow_missing = false
"""

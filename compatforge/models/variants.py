"""Build variant model and deterministic artifact naming.

A variant is one parameterized build configuration, distinguished only by
the dependency version string it is compiled against.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, field_validator

DEFAULT_TREE_FILE_PATTERN = "dependency-tree-{version}.txt"
SOURCE_STASH = "source"


class BuildVariant(BaseModel):
    """One entry of the build matrix.  Read-only once constructed."""

    model_config = ConfigDict(frozen=True)

    version: str

    @field_validator("version")
    @classmethod
    def _check_version(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("variant version must be non-empty")
        if "/" in value or "\\" in value or value in (".", ".."):
            raise ValueError(
                f"variant version {value!r} cannot be used in a file name"
            )
        return value

    @property
    def label(self) -> str:
        """Human-readable label used in reports."""
        return self.version


def artifact_name(version: str, pattern: str = DEFAULT_TREE_FILE_PATTERN) -> str:
    """Return the dependency-tree file name for *version*.

    >>> artifact_name("2.4.1")
    'dependency-tree-2.4.1.txt'
    """
    if "{version}" not in pattern:
        raise ValueError(f"tree file pattern {pattern!r} lacks a {{version}} field")
    return pattern.replace("{version}", version)


def stash_name(version: str) -> str:
    """Return the stash name holding the dependency tree for *version*."""
    return f"deptree-{version}"


# The literal default matrix, used when no matrix file is present.
DEFAULT_VARIANTS: list[BuildVariant] = [
    BuildVariant(version="2.7.1"),
    BuildVariant(version="2.8.5"),
    BuildVariant(version="3.0.3"),
    BuildVariant(version="3.1.4"),
    BuildVariant(version="3.2.4"),
]

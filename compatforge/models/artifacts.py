"""Stash manifest model — the file set behind one named stash."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field


class StashManifest(BaseModel):
    """A named, immutable file set.

    ``files`` maps POSIX relative paths to SHA-256 digests of the blobs
    held in the stash store.  The bytes themselves live in the store.
    ``modes`` keeps each file's permission bits so executables stay
    executable after unstashing.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    files: dict[str, str]
    modes: dict[str, int] = Field(default_factory=dict)
    manifest_hash: str
    size_bytes: int = 0
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    @property
    def file_count(self) -> int:
        return len(self.files)

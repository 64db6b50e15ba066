"""Named stash/unstash over a content-addressed blob store.

Storage layout::

    {base_path}/objects/{sha256[0:2]}/{sha256[2:4]}/{sha256}.dat
    {base_path}/stashes/{name}.json

A stash is write-once: there is no update or delete.  File blobs are
deduplicated by digest, so stashing identical files twice costs nothing.
"""

from __future__ import annotations

import fnmatch
import logging
import os
import shutil
import stat
import threading
from collections.abc import Iterable
from pathlib import Path

from compatforge.core.hasher import manifest_hash, sha256_file
from compatforge.models.artifacts import StashManifest

logger = logging.getLogger(__name__)


class StashError(RuntimeError):
    """Base class for stash store failures."""


class StashNotFoundError(StashError):
    """Raised when unstashing a name that was never stashed."""


class StashExistsError(StashError):
    """Raised when stashing under a name that is already taken."""


class StashEmptyError(StashError):
    """Raised when the include/exclude patterns match no files."""


class StashIntegrityError(StashError):
    """Raised when a stored blob no longer matches its digest."""


def _matches(relpath: str, patterns: Iterable[str]) -> bool:
    for pattern in patterns:
        if fnmatch.fnmatchcase(relpath, pattern):
            return True
        # "dir/**" also covers "dir" itself and everything under it
        if pattern.endswith("/**") and (
            relpath == pattern[:-3] or relpath.startswith(pattern[:-2])
        ):
            return True
    return False


class StashStore:
    """Persist named file sets across execution contexts within one run.

    Parameters
    ----------
    base_path:
        Root directory for blobs and manifests.
    """

    DEFAULT_EXCLUDES: tuple[str, ...] = (".git/**",)

    def __init__(self, base_path: Path) -> None:
        self._base = Path(base_path)
        self._objects = self._base / "objects"
        self._stashes = self._base / "stashes"
        self._objects.mkdir(parents=True, exist_ok=True)
        self._stashes.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    @property
    def base_path(self) -> Path:
        return self._base

    def _blob_path(self, digest: str) -> Path:
        return self._objects / digest[:2] / digest[2:4] / f"{digest}.dat"

    def _manifest_path(self, name: str) -> Path:
        if not name or "/" in name or "\\" in name or name in (".", ".."):
            raise StashError(f"Invalid stash name: {name!r}")
        return self._stashes / f"{name}.json"

    # ------------------------------------------------------------------
    # Stash
    # ------------------------------------------------------------------

    def stash(
        self,
        name: str,
        root: Path,
        *,
        includes: Iterable[str] = ("**",),
        excludes: Iterable[str] | None = None,
    ) -> StashManifest:
        """Store every file under *root* matching *includes* as stash *name*.

        Patterns are matched against POSIX paths relative to *root*.
        ``.git/**`` is excluded unless *excludes* is given explicitly.
        """
        root = Path(root)
        includes = tuple(includes)
        excludes = tuple(self.DEFAULT_EXCLUDES if excludes is None else excludes)
        manifest_path = self._manifest_path(name)

        if manifest_path.exists():
            raise StashExistsError(f"Stash already exists: {name}")

        files: dict[str, str] = {}
        modes: dict[str, int] = {}
        total = 0
        for path in sorted(root.rglob("*")):
            if not path.is_file():
                continue
            relpath = path.relative_to(root).as_posix()
            if not _matches(relpath, includes) or _matches(relpath, excludes):
                continue
            digest = sha256_file(path)
            blob = self._blob_path(digest)
            if not blob.exists():
                blob.parent.mkdir(parents=True, exist_ok=True)
                shutil.copyfile(path, blob)
            info = path.stat()
            files[relpath] = digest
            modes[relpath] = stat.S_IMODE(info.st_mode)
            total += info.st_size

        if not files:
            raise StashEmptyError(
                f"Stash {name!r}: no files under {root} matched {list(includes)}"
            )

        manifest = StashManifest(
            name=name,
            files=files,
            modes=modes,
            manifest_hash=manifest_hash(files),
            size_bytes=total,
        )
        with self._lock:
            if manifest_path.exists():
                raise StashExistsError(f"Stash already exists: {name}")
            manifest_path.write_text(manifest.model_dump_json(), encoding="utf-8")

        logger.debug(
            "Stashed %s: %d file(s), %d bytes", name, len(files), total
        )
        return manifest

    # ------------------------------------------------------------------
    # Unstash
    # ------------------------------------------------------------------

    def manifest(self, name: str) -> StashManifest:
        """Return the manifest for stash *name*."""
        path = self._manifest_path(name)
        if not path.exists():
            raise StashNotFoundError(f"No such stash: {name}")
        return StashManifest.model_validate_json(path.read_text(encoding="utf-8"))

    def unstash(self, name: str, dest: Path, *, verify: bool = True) -> list[Path]:
        """Materialize stash *name* into *dest* and return the written paths."""
        manifest = self.manifest(name)
        dest = Path(dest)
        written: list[Path] = []
        for relpath, digest in sorted(manifest.files.items()):
            blob = self._blob_path(digest)
            if not blob.exists():
                raise StashIntegrityError(
                    f"Stash {name!r}: blob for {relpath} is missing"
                )
            if verify and sha256_file(blob) != digest:
                raise StashIntegrityError(
                    f"Stash {name!r}: blob for {relpath} failed integrity check"
                )
            target = dest / relpath
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(blob, target)
            if relpath in manifest.modes:
                os.chmod(target, manifest.modes[relpath])
            written.append(target)

        logger.debug("Unstashed %s into %s (%d file(s))", name, dest, len(written))
        return written

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def exists(self, name: str) -> bool:
        """Check whether stash *name* has been written."""
        return self._manifest_path(name).exists()

    def list_stashes(self) -> list[str]:
        """Return all stash names, sorted."""
        return sorted(p.stem for p in self._stashes.glob("*.json"))

"""Report aggregation: collect dependency trees and render the HTML matrix.

The report is deliberately plain: a literal build-number header and one
table row per variant with a green/red status cell (legacy ``bgcolor``
styling) and a link to the dependency tree for successful variants.
Failure diagnostics stay in the logs and the run record, never in the HTML.
"""

from __future__ import annotations

import html
import logging
import shutil
from collections.abc import Sequence
from pathlib import Path

from compatforge.core.stash import StashError, StashStore
from compatforge.models.matrix import ReportOptions
from compatforge.models.results import BranchResult, BranchStatus, ReportRow, RunStatus
from compatforge.models.variants import (
    DEFAULT_TREE_FILE_PATTERN,
    BuildVariant,
    artifact_name,
    stash_name,
)

logger = logging.getLogger(__name__)

_STATUS_COLORS: dict[BranchStatus, str] = {
    BranchStatus.SUCCESS: "green",
    BranchStatus.FAILURE: "red",
}


class ReportMissingError(RuntimeError):
    """Raised when publishing requires a report that was not generated."""


# ---------------------------------------------------------------------------
# Collect
# ---------------------------------------------------------------------------


def collect_rows(
    variants: Sequence[BuildVariant],
    results: Sequence[BranchResult],
    stash_store: StashStore,
    dest: Path,
    *,
    tree_file_pattern: str = DEFAULT_TREE_FILE_PATTERN,
) -> list[ReportRow]:
    """Build one row per variant, in configured order.

    A variant is reported as SUCCESS only if its branch reported success
    and its dependency tree could be retrieved into *dest*.
    """
    by_version = {r.version: r for r in results}
    dest = Path(dest)
    dest.mkdir(parents=True, exist_ok=True)
    rows: list[ReportRow] = []

    for variant in variants:
        name = artifact_name(variant.version, tree_file_pattern)
        result = by_version.get(variant.version)
        if result is None or not result.succeeded:
            rows.append(ReportRow(version=variant.version, status=BranchStatus.FAILURE))
            continue
        try:
            stash_store.unstash(stash_name(variant.version), dest)
        except StashError as exc:
            logger.warning(
                "Variant %s built but its dependency tree is unavailable: %s",
                variant.version,
                exc,
            )
            rows.append(ReportRow(version=variant.version, status=BranchStatus.FAILURE))
            continue
        rows.append(
            ReportRow(version=variant.version, status=BranchStatus.SUCCESS, link=name)
        )
    return rows


# ---------------------------------------------------------------------------
# Render
# ---------------------------------------------------------------------------


def _render_row(row: ReportRow) -> str:
    color = _STATUS_COLORS[row.status]
    label = html.escape(row.version)
    status = row.status.value.upper()
    if row.status == BranchStatus.SUCCESS and row.link:
        href = html.escape(row.link, quote=True)
        link_cell = f'<td><a href="{href}">dependency tree</a></td>'
    else:
        link_cell = "<td></td>"
    return (
        f"<tr><td>{label}</td>"
        f'<td bgcolor="{color}">{status}</td>'
        f"{link_cell}</tr>"
    )


def render_report(
    build_number: int,
    rows: Sequence[ReportRow],
    *,
    title: str = "Compatibility Matrix",
) -> str:
    """Render the compatibility matrix as a standalone HTML page."""
    body = "\n".join(_render_row(row) for row in rows)
    safe_title = html.escape(title)
    return (
        "<!DOCTYPE html>\n"
        f"<html>\n<head><meta charset=\"utf-8\"><title>{safe_title}</title></head>\n"
        "<body>\n"
        f"<h1>Build #{build_number}</h1>\n"
        f"<h2>{safe_title}</h2>\n"
        '<table border="1">\n'
        "<tr><th>Version</th><th>Status</th><th>Dependency Tree</th></tr>\n"
        f"{body}\n"
        "</table>\n"
        "</body>\n</html>\n"
    )


def write_report(
    build_number: int,
    rows: Sequence[ReportRow],
    dest: Path,
    options: ReportOptions,
) -> Path:
    """Render and write the index file into *dest*; return its path."""
    dest = Path(dest)
    dest.mkdir(parents=True, exist_ok=True)
    index = dest / options.index_file
    index.write_text(
        render_report(build_number, rows, title=options.title), encoding="utf-8"
    )
    return index


# ---------------------------------------------------------------------------
# Publish
# ---------------------------------------------------------------------------


class ReportPublisher:
    """Publishes report directories under ``{reports_root}/{report_dir}/``.

    Layout::

        {reports_root}/{report_dir}/build-{n}/   one per published build
        {reports_root}/{report_dir}/latest/      copy of the linked build
    """

    def __init__(self, reports_root: Path) -> None:
        self._root = Path(reports_root)

    def report_root(self, options: ReportOptions) -> Path:
        return self._root / options.report_dir

    def build_dir(self, options: ReportOptions, build_number: int) -> Path:
        return self.report_root(options) / f"build-{build_number}"

    def latest_dir(self, options: ReportOptions) -> Path:
        return self.report_root(options) / "latest"

    def published_builds(self, options: ReportOptions) -> list[int]:
        """Build numbers with a published report, ascending."""
        root = self.report_root(options)
        if not root.exists():
            return []
        numbers: list[int] = []
        for child in root.iterdir():
            if child.is_dir() and child.name.startswith("build-"):
                suffix = child.name.removeprefix("build-")
                if suffix.isdigit():
                    numbers.append(int(suffix))
        return sorted(numbers)

    def publish(
        self,
        build_number: int,
        source_dir: Path,
        options: ReportOptions,
        run_status: RunStatus,
    ) -> Path:
        """Copy *source_dir* into the report tree and return the published index.

        With ``allow_missing`` false, a missing index file is an error.
        With ``allow_missing`` true and nothing to publish, the source
        directory's index path is returned unchanged.
        """
        source_dir = Path(source_dir)
        index = source_dir / options.index_file
        if not index.is_file():
            if not options.allow_missing:
                raise ReportMissingError(f"Report not found: {index}")
            logger.warning("No report at %s; nothing published", index)
            return index

        target = self.build_dir(options, build_number)
        if target.exists():
            shutil.rmtree(target)
        shutil.copytree(source_dir, target)
        logger.info("Published report for build #%d to %s", build_number, target)

        if not options.keep_all:
            for old in self.published_builds(options):
                if old != build_number:
                    shutil.rmtree(self.build_dir(options, old))
                    logger.debug("Pruned report for build #%d", old)

        if options.always_link_to_last_build or run_status == RunStatus.SUCCESS:
            latest = self.latest_dir(options)
            if latest.exists():
                shutil.rmtree(latest)
            shutil.copytree(target, latest)

        return target / options.index_file

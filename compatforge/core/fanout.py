"""Fixed-width parallel fan-out / fan-in over the matrix variants."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor

from compatforge.models.results import BranchResult, FailureCategory, RunStatus
from compatforge.models.variants import DEFAULT_TREE_FILE_PATTERN, BuildVariant, artifact_name

logger = logging.getLogger(__name__)

Branch = Callable[[BuildVariant], BranchResult]


def fan_out(
    variants: Sequence[BuildVariant],
    branch: Branch,
    *,
    max_workers: int | None = None,
    tree_file_pattern: str = DEFAULT_TREE_FILE_PATTERN,
) -> list[BranchResult]:
    """Run *branch* once per variant concurrently and wait for all of them.

    Width defaults to one worker per variant.  Results come back in the
    configured variant order, independent of completion order.  An exception
    escaping *branch* becomes an ``internal`` failure for that variant only.
    """
    if not variants:
        return []
    width = len(variants) if max_workers is None else max(1, min(max_workers, len(variants)))
    logger.info("Fanning out %d variant(s) across %d worker(s)", len(variants), width)

    with ThreadPoolExecutor(max_workers=width, thread_name_prefix="variant") as pool:
        futures = [pool.submit(branch, variant) for variant in variants]

    results: list[BranchResult] = []
    for variant, future in zip(variants, futures):
        try:
            results.append(future.result())
        except Exception as exc:
            logger.error("Branch for %s raised: %s", variant.version, exc)
            results.append(
                BranchResult.failure(
                    variant.version,
                    artifact_name(variant.version, tree_file_pattern),
                    FailureCategory.INTERNAL,
                    str(exc) or type(exc).__name__,
                )
            )
    return results


def overall_status(results: Sequence[BranchResult]) -> RunStatus:
    """``UNSTABLE`` iff at least one branch failed, else ``SUCCESS``."""
    if any(not r.succeeded for r in results):
        return RunStatus.UNSTABLE
    return RunStatus.SUCCESS

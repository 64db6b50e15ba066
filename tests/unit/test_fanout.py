"""Tests for the parallel fan-out / fan-in."""

from __future__ import annotations

import threading
import time

from compatforge.core.fanout import fan_out, overall_status
from compatforge.models.results import BranchResult, BranchStatus, FailureCategory, RunStatus
from compatforge.models.variants import BuildVariant


def _ok(variant: BuildVariant) -> BranchResult:
    return BranchResult(
        version=variant.version,
        status=BranchStatus.SUCCESS,
        artifact_name=f"dependency-tree-{variant.version}.txt",
    )


def _variants(*versions: str) -> list[BuildVariant]:
    return [BuildVariant(version=v) for v in versions]


class TestFanOut:
    def test_results_in_configured_order(self):
        delays = {"a": 0.15, "b": 0.0, "c": 0.05}

        def branch(variant: BuildVariant) -> BranchResult:
            time.sleep(delays[variant.version])
            return _ok(variant)

        results = fan_out(_variants("a", "b", "c"), branch)
        assert [r.version for r in results] == ["a", "b", "c"]

    def test_width_defaults_to_variant_count(self):
        barrier = threading.Barrier(3, timeout=5)

        def branch(variant: BuildVariant) -> BranchResult:
            # Deadlocks (and times out) unless all three run at once
            barrier.wait()
            return _ok(variant)

        results = fan_out(_variants("a", "b", "c"), branch)
        assert all(r.succeeded for r in results)

    def test_max_workers_caps_concurrency(self):
        lock = threading.Lock()
        active = 0
        peak = 0

        def branch(variant: BuildVariant) -> BranchResult:
            nonlocal active, peak
            with lock:
                active += 1
                peak = max(peak, active)
            time.sleep(0.05)
            with lock:
                active -= 1
            return _ok(variant)

        fan_out(_variants("a", "b", "c", "d"), branch, max_workers=2)
        assert peak <= 2

    def test_escaping_exception_fails_only_that_variant(self):
        def branch(variant: BuildVariant) -> BranchResult:
            if variant.version == "b":
                raise ValueError("unexpected")
            return _ok(variant)

        results = fan_out(_variants("a", "b", "c"), branch)
        assert [r.status for r in results] == [
            BranchStatus.SUCCESS,
            BranchStatus.FAILURE,
            BranchStatus.SUCCESS,
        ]
        assert results[1].category == FailureCategory.INTERNAL
        assert results[1].message == "unexpected"
        assert results[1].artifact_name == "dependency-tree-b.txt"

    def test_empty_matrix(self):
        assert fan_out([], _ok) == []


class TestOverallStatus:
    def test_all_success(self):
        assert overall_status([_ok(v) for v in _variants("a", "b")]) == RunStatus.SUCCESS

    def test_any_failure_is_unstable(self):
        results = [
            _ok(BuildVariant(version="a")),
            BranchResult.failure("b", "dependency-tree-b.txt", FailureCategory.BUILD, "x"),
        ]
        assert overall_status(results) == RunStatus.UNSTABLE

    def test_all_failures_still_unstable(self):
        results = [
            BranchResult.failure(v, f"t-{v}", FailureCategory.BUILD, "x") for v in "ab"
        ]
        assert overall_status(results) == RunStatus.UNSTABLE

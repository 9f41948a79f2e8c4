"""
Tests for in-memory metrics.
"""

import pytest

from atomic_graph.utils.metrics import (
    BRANCH_LATENCY_MS,
    BRANCH_TRAVERSALS,
    RELATIONSHIPS_DETECTED,
    SNAPSHOT_BUILD_MS,
    SNAPSHOTS_BUILT,
    Metrics,
    TimingStats,
    increment_relationships_detected,
    time_branch_traversal,
    time_snapshot_build,
)


class TestTimingStats:

    def test_record(self):
        stats = TimingStats()
        stats.record(10.0)
        stats.record(30.0)

        assert stats.count == 2
        assert stats.avg_ms == 20.0
        assert stats.min_ms == 10.0
        assert stats.max_ms == 30.0

    def test_empty_to_dict(self):
        assert TimingStats().to_dict()["min_ms"] == 0.0


class TestMetrics:
    """Tests for the global collector."""

    def test_singleton(self):
        assert Metrics.get() is Metrics.get()

    def test_counters(self):
        metrics = Metrics.get()

        assert metrics.increment("x") == 1
        assert metrics.increment("x", 4) == 5
        assert metrics.get_counter("missing") == 0

    def test_timer_records_on_error(self):
        metrics = Metrics.get()

        with pytest.raises(RuntimeError):
            with metrics.timer("op_ms"):
                raise RuntimeError("boom")

        assert metrics.get_timing("op_ms").count == 1

    def test_reset(self):
        metrics = Metrics.get()
        metrics.increment("x")
        metrics.observe("op_ms", 1.0)

        Metrics.reset()

        assert metrics.get_counter("x") == 0
        assert metrics.get_timing("op_ms") is None

    def test_graph_helpers(self):
        with time_branch_traversal():
            pass
        with time_snapshot_build():
            pass
        increment_relationships_detected(3)

        snapshot = Metrics.get().snapshot()

        assert snapshot["counters"] == {
            BRANCH_TRAVERSALS: 1,
            SNAPSHOTS_BUILT: 1,
            RELATIONSHIPS_DETECTED: 3,
        }
        assert set(snapshot["timings"]) == {BRANCH_LATENCY_MS, SNAPSHOT_BUILD_MS}

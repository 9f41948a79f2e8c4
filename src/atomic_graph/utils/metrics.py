"""
Lightweight in-memory metrics for the graph engine.

Counters and latency timings for traversals, snapshot builds and
relationship detection, kept in process without an external backend.
"""

import threading
import time
from collections import defaultdict
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import ClassVar, Iterator

BRANCH_TRAVERSALS = "branch_traversals"
BRANCH_LATENCY_MS = "branch_latency_ms"
SNAPSHOTS_BUILT = "snapshots_built"
SNAPSHOT_BUILD_MS = "snapshot_build_ms"
RELATIONSHIPS_DETECTED = "relationships_detected"


@dataclass
class TimingStats:
    """Statistics for timing measurements."""

    count: int = 0
    total_ms: float = 0.0
    min_ms: float = float("inf")
    max_ms: float = 0.0

    @property
    def avg_ms(self) -> float:
        """Average latency in milliseconds."""
        return self.total_ms / self.count if self.count > 0 else 0.0

    def record(self, duration_ms: float) -> None:
        """Record a timing measurement."""
        self.count += 1
        self.total_ms += duration_ms
        self.min_ms = min(self.min_ms, duration_ms)
        self.max_ms = max(self.max_ms, duration_ms)

    def to_dict(self) -> dict:
        return {
            "count": self.count,
            "total_ms": round(self.total_ms, 2),
            "avg_ms": round(self.avg_ms, 2),
            "min_ms": round(self.min_ms, 2) if self.count > 0 else 0.0,
            "max_ms": round(self.max_ms, 2),
        }


@dataclass
class Metrics:
    """
    Thread-safe in-memory metrics collector.

    Example:
        >>> metrics = Metrics.get()
        >>> metrics.increment("branch_traversals")
        >>> with metrics.timer("branch_latency_ms"):
        ...     result = traversal.traverse(request)
        >>> metrics.snapshot()["counters"]["branch_traversals"]
        1
    """

    _counters: dict[str, int] = field(default_factory=lambda: defaultdict(int))
    _timings: dict[str, TimingStats] = field(
        default_factory=lambda: defaultdict(TimingStats)
    )
    _lock: threading.Lock = field(default_factory=threading.Lock)

    _instance: ClassVar["Metrics | None"] = None

    @classmethod
    def get(cls) -> "Metrics":
        """Get the global metrics instance, creating it on first use."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Clear all recorded metrics."""
        if cls._instance is not None:
            with cls._instance._lock:
                cls._instance._counters.clear()
                cls._instance._timings.clear()

    def increment(self, name: str, value: int = 1) -> int:
        """Increment a counter and return its new value."""
        with self._lock:
            self._counters[name] += value
            return self._counters[name]

    def get_counter(self, name: str) -> int:
        with self._lock:
            return self._counters.get(name, 0)

    def observe(self, name: str, duration_ms: float) -> None:
        """Record a timing observation in milliseconds."""
        with self._lock:
            self._timings[name].record(duration_ms)

    def get_timing(self, name: str) -> TimingStats | None:
        """Get a copy of the timing statistics for a metric."""
        with self._lock:
            if name not in self._timings:
                return None
            stats = self._timings[name]
            return TimingStats(
                count=stats.count,
                total_ms=stats.total_ms,
                min_ms=stats.min_ms,
                max_ms=stats.max_ms,
            )

    @contextmanager
    def timer(self, name: str) -> Iterator[None]:
        """Time the enclosed block and record it under name."""
        start = time.perf_counter()
        try:
            yield
        finally:
            self.observe(name, (time.perf_counter() - start) * 1000)

    def snapshot(self) -> dict:
        """Get all counters and timings as plain dictionaries."""
        with self._lock:
            return {
                "counters": dict(self._counters),
                "timings": {
                    name: stats.to_dict()
                    for name, stats in self._timings.items()
                },
            }


@contextmanager
def time_branch_traversal() -> Iterator[None]:
    """Count a branch traversal and record its latency."""
    metrics = Metrics.get()
    metrics.increment(BRANCH_TRAVERSALS)
    with metrics.timer(BRANCH_LATENCY_MS):
        yield


@contextmanager
def time_snapshot_build() -> Iterator[None]:
    """Count a snapshot build and record its latency."""
    metrics = Metrics.get()
    metrics.increment(SNAPSHOTS_BUILT)
    with metrics.timer(SNAPSHOT_BUILD_MS):
        yield


def increment_relationships_detected(count: int = 1) -> None:
    Metrics.get().increment(RELATIONSHIPS_DETECTED, count)

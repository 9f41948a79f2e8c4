"""
Utilities module for the atomic knowledge graph.

Provides logging setup and in-memory metrics.
"""

from atomic_graph.utils.logging import (
    setup_logging,
    get_logger,
    get_logger_with_context,
    reset_logging,
)
from atomic_graph.utils.metrics import (
    Metrics,
    TimingStats,
    time_branch_traversal,
    time_snapshot_build,
    increment_relationships_detected,
)

__all__ = [
    # Logging
    "setup_logging",
    "get_logger",
    "get_logger_with_context",
    "reset_logging",
    # Metrics
    "Metrics",
    "TimingStats",
    "time_branch_traversal",
    "time_snapshot_build",
    "increment_relationships_detected",
]

"""
Atomic Graph - A relationship graph engine for atomic knowledge units.

This package stores small knowledge units and the directed, typed
relationships between them, and lets callers explore that graph through
branch traversal, shortest paths, neighborhoods and statistics.
"""

from atomic_graph.config import Settings, load_config
from atomic_graph.utils.logging import setup_logging, get_logger
from atomic_graph.core.exceptions import AtomicGraphError
from atomic_graph.graph_store import GraphService, BranchRequest, BranchTraversal

__version__ = "0.1.0"
__author__ = "Atomic Graph Team"

__all__ = [
    "Settings",
    "load_config",
    "setup_logging",
    "get_logger",
    "AtomicGraphError",
    "GraphService",
    "BranchRequest",
    "BranchTraversal",
]

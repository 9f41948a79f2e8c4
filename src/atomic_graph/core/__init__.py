"""
Core module for the atomic knowledge graph.

Contains the exception hierarchy shared by every subsystem.
"""

from atomic_graph.core.exceptions import (
    AtomicGraphError,
    ConfigurationError,
    StorageError,
    StoreUnavailableError,
    DatabaseError,
    GraphError,
    NotFoundError,
    InvalidParameterError,
    RetryableError,
)

__all__ = [
    # Base
    "AtomicGraphError",
    "ConfigurationError",
    # Storage
    "StorageError",
    "StoreUnavailableError",
    "DatabaseError",
    # Graph
    "GraphError",
    "NotFoundError",
    "InvalidParameterError",
    # Retry
    "RetryableError",
]

"""
Custom exceptions for the atomic knowledge graph.

Every error raised by the graph engine inherits from AtomicGraphError,
so callers (an HTTP layer, the CLI) can map the whole family at once
or react to a specific failure.

Exception Hierarchy:
    AtomicGraphError (base)
    ├── ConfigurationError
    ├── StorageError
    │   └── StoreUnavailableError (retryable)
    │       └── DatabaseError
    └── GraphError
        ├── NotFoundError
        └── InvalidParameterError
"""

from typing import Any


class AtomicGraphError(Exception):
    """
    Base exception for all graph engine errors.

    Attributes:
        message: Human-readable error description
        details: Optional dictionary with additional context
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(
                f"{k}={v!r}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, details={self.details!r})"


class RetryableError(AtomicGraphError):
    """Marker class for errors where a later attempt may succeed."""

    pass


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(AtomicGraphError):
    """
    Error in configuration loading or validation.

    Raised when a configuration file is missing, malformed,
    or holds values that fail validation.
    """

    pass


# =============================================================================
# Storage Errors
# =============================================================================


class StorageError(AtomicGraphError):
    """Base error for persistence operations."""

    pass


class StoreUnavailableError(StorageError, RetryableError):
    """
    The backing store could not complete a read or write.

    Propagated unchanged from the store; the retry policy belongs
    to the caller. Traversals never write, so retrying one is safe.
    """

    pass


class DatabaseError(StoreUnavailableError):
    """
    Error in SQLite database operations.

    Raised when:
    - Database connection fails
    - Query execution fails
    - Schema migration fails
    """

    def __init__(
        self,
        message: str,
        query: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if query:
            query = " ".join(query.split())
            details["query"] = query[:200] + \
                "..." if len(query) > 200 else query
        super().__init__(message, details)
        self.query = query


# =============================================================================
# Graph Errors
# =============================================================================


class GraphError(AtomicGraphError):
    """Base error for graph queries and traversals."""

    pass


class NotFoundError(GraphError):
    """
    A requested unit does not exist.

    Raised when the root of a branch traversal, or another unit a
    query depends on, cannot be resolved by the unit store.
    """

    def __init__(
        self,
        message: str,
        unit_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if unit_id is not None:
            details["unit_id"] = unit_id
        super().__init__(message, details)
        self.unit_id = unit_id


class InvalidParameterError(GraphError):
    """
    A query parameter is out of bounds or unrecognized.

    Raised for depth or limit values outside their ranges, unknown
    direction tokens and unknown relationship type tokens.
    """

    def __init__(
        self,
        message: str,
        parameter: str | None = None,
        value: Any = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if parameter:
            details["parameter"] = parameter
            details["value"] = value
        super().__init__(message, details)
        self.parameter = parameter
        self.value = value

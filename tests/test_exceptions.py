"""
Tests for exception hierarchy.

Tests custom exceptions and error handling.
"""

import pytest

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


class TestExceptionHierarchy:
    """Tests for exception inheritance."""

    def test_base_exception(self):
        """AtomicGraphError should be the base for all custom exceptions."""
        exc = AtomicGraphError("Test error")

        assert isinstance(exc, Exception)
        assert str(exc) == "Test error"

    def test_configuration_error(self):
        exc = ConfigurationError("Invalid config")

        assert isinstance(exc, AtomicGraphError)

    def test_database_error_is_store_unavailable(self):
        """DatabaseError should be a retryable StoreUnavailableError."""
        exc = DatabaseError("Query failed")

        assert isinstance(exc, StoreUnavailableError)
        assert isinstance(exc, StorageError)
        assert isinstance(exc, RetryableError)
        assert isinstance(exc, AtomicGraphError)

    def test_graph_errors(self):
        assert isinstance(NotFoundError("missing"), GraphError)
        assert isinstance(InvalidParameterError("bad"), GraphError)
        assert not isinstance(NotFoundError("missing"), StorageError)

    def test_catch_by_base(self):
        """All errors can be caught through the base class."""
        with pytest.raises(AtomicGraphError):
            raise InvalidParameterError("depth out of range")


class TestExceptionDetails:
    """Tests for exception detail handling."""

    def test_details_rendered(self):
        exc = AtomicGraphError("Failed", details={"unit": "u1"})

        assert exc.details == {"unit": "u1"}
        assert str(exc) == "Failed (unit='u1')"

    def test_not_found_carries_unit_id(self):
        exc = NotFoundError("Unit not found", unit_id="u-9")

        assert exc.unit_id == "u-9"
        assert exc.details["unit_id"] == "u-9"
        assert "u-9" in str(exc)

    def test_invalid_parameter_carries_value(self):
        exc = InvalidParameterError("Bad depth", parameter="depth", value=7)

        assert exc.parameter == "depth"
        assert exc.value == 7
        assert exc.details == {"parameter": "depth", "value": 7}

    def test_database_error_query_collapsed(self):
        """Query text is whitespace-collapsed into details."""
        exc = DatabaseError("Failed", query="SELECT *\n    FROM  atomic_units")

        assert exc.details["query"] == "SELECT * FROM atomic_units"

    def test_database_error_query_truncated(self):
        query = "SELECT " + ", ".join(f"col{i}" for i in range(100))
        exc = DatabaseError("Failed", query=query)

        assert len(exc.details["query"]) == 203
        assert exc.details["query"].endswith("...")

    def test_repr(self):
        exc = NotFoundError("Unit not found", unit_id="x")

        assert repr(exc).startswith("NotFoundError(")


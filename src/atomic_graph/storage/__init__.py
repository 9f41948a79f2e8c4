"""
Storage module for the atomic knowledge graph.

Provides SQLite-based storage with:
- Connection management with WAL mode
- Versioned schema and migrations
- The unit store interface and its repository
"""

from atomic_graph.storage.database import (
    Database,
    reset_database,
)
from atomic_graph.storage.schema import (
    SchemaManager,
    SCHEMA_VERSION,
)
from atomic_graph.storage.models import (
    KnowledgeUnit,
    UnitSummary,
    UnitType,
    UnitFilter,
)
from atomic_graph.storage.repositories import (
    UnitStore,
    UnitRepository,
)

__all__ = [
    # Database
    "Database",
    "reset_database",
    # Schema
    "SchemaManager",
    "SCHEMA_VERSION",
    # Models
    "KnowledgeUnit",
    "UnitSummary",
    "UnitType",
    "UnitFilter",
    # Repositories
    "UnitStore",
    "UnitRepository",
]

"""
Shared pytest fixtures for atomic graph tests.

Provides reusable fixtures for:
- Configuration and settings
- Database instances and stores
- The seeded branch example graph
- Temporary resources
"""

import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Generator

import pytest

from atomic_graph.config import Settings, reset_settings
from atomic_graph.graph_store import (
    GraphService,
    RelationshipEdge,
    RelationshipSource,
    RelationshipType,
    SQLiteRelationshipStore,
)
from atomic_graph.storage import (
    Database,
    KnowledgeUnit,
    UnitRepository,
    UnitType,
    reset_database,
)
from atomic_graph.utils.logging import reset_logging
from atomic_graph.utils.metrics import Metrics

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def reset_global_state():
    """
    Reset global database, settings, logging and metrics state.

    This ensures tests are isolated and don't share global state.
    """
    reset_database()
    reset_settings()
    reset_logging()
    Metrics.reset()
    yield
    reset_database()
    reset_settings()
    reset_logging()
    Metrics.reset()


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory that's cleaned up after the test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def test_settings(temp_dir: Path) -> Settings:
    """Provide test settings with a temporary database path."""
    return Settings(
        storage={"database_path": str(temp_dir / "test.db")},
    )


@pytest.fixture
def database(test_settings: Settings) -> Generator[Database, None, None]:
    """
    Provide an initialized test database.

    Uses Database.create() so each test gets its own instance.
    """
    db = Database.create(test_settings)
    yield db
    db.close()


@pytest.fixture
def unit_repo(database: Database) -> UnitRepository:
    return UnitRepository(database)


@pytest.fixture
def relationship_store(database: Database) -> SQLiteRelationshipStore:
    return SQLiteRelationshipStore(database)


@pytest.fixture
def service(database: Database, test_settings: Settings) -> GraphService:
    return GraphService(database, test_settings)


def make_unit(
    unit_id: str,
    keywords: list[str] | None = None,
    unit_type: UnitType = UnitType.INSIGHT,
    category: str = "general",
) -> KnowledgeUnit:
    """Build a unit whose title is derived from its id."""
    return KnowledgeUnit(
        id=unit_id,
        title=f"Unit {unit_id}",
        type=unit_type,
        category=category,
        keywords=keywords or [],
    )


def make_edge(
    from_id: str,
    to_id: str,
    relationship_type: RelationshipType = RelationshipType.RELATED,
    confidence: float | None = None,
    minutes: int = 0,
) -> RelationshipEdge:
    """Build a manual edge created `minutes` after BASE_TIME."""
    return RelationshipEdge(
        from_id=from_id,
        to_id=to_id,
        relationship_type=relationship_type,
        source=RelationshipSource.MANUAL,
        confidence=confidence,
        created_at=BASE_TIME + timedelta(minutes=minutes),
    )


def insert_raw_edge(
    database: Database,
    from_id: str,
    to_id: str,
    relationship_type: str,
    confidence: object = None,
) -> None:
    """Write a relationship row directly, bypassing model validation."""
    database.execute(
        """
        INSERT INTO unit_relationships (
            from_unit, to_unit, relationship_type, source, confidence, created_at
        )
        VALUES (?, ?, ?, 'manual', ?, ?)
        """,
        (from_id, to_id, relationship_type, confidence, BASE_TIME.isoformat()),
    )


@pytest.fixture
def branch_graph(
    unit_repo: UnitRepository,
    relationship_store: SQLiteRelationshipStore,
) -> dict:
    """
    Seed the reference branch example.

    Root R with R->A (builds_on .95), R->B (references .85),
    A->C (related .75), In->R (contradicts .65) and the cycle
    A->R (related .55).
    """
    units = [
        make_unit("R", unit_type=UnitType.DECISION),
        make_unit("A"),
        make_unit("B", unit_type=UnitType.REFERENCE),
        make_unit("C", unit_type=UnitType.CODE),
        make_unit("In", unit_type=UnitType.QUESTION),
    ]
    edges = [
        make_edge("R", "A", RelationshipType.BUILDS_ON, 0.95),
        make_edge("R", "B", RelationshipType.REFERENCES, 0.85),
        make_edge("A", "C", RelationshipType.RELATED, 0.75),
        make_edge("In", "R", RelationshipType.CONTRADICTS, 0.65),
        make_edge("A", "R", RelationshipType.RELATED, 0.55),
    ]
    unit_repo.upsert_many(units)
    relationship_store.upsert_batch(edges)
    return {"units": units, "edges": edges}

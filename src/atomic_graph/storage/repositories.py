"""
Unit store interface and its SQLite repository.

The graph engine only needs two reads from the unit store: a summary
lookup for traversal output and a bounded listing for snapshot
windows. UnitRepository implements those plus the writes needed to
populate and maintain the atomic_units table.
"""

from typing import Iterable, Protocol

from atomic_graph.storage.database import Database
from atomic_graph.storage.models import (
    KnowledgeUnit,
    UnitFilter,
    UnitSummary,
)
from atomic_graph.utils.logging import get_logger

logger = get_logger(__name__)


class UnitStore(Protocol):
    """Read interface the graph engine consumes from the unit store."""

    def get_unit_summary(self, unit_id: str) -> UnitSummary | None: ...

    def list_units(
        self, unit_filter: UnitFilter | None = None, limit: int = 500
    ) -> list[KnowledgeUnit]: ...


_UPSERT_UNIT_SQL = """
    INSERT INTO atomic_units (id, type, title, category, keywords, timestamp)
    VALUES (:id, :type, :title, :category, :keywords, :timestamp)
    ON CONFLICT(id) DO UPDATE SET
        type = excluded.type,
        title = excluded.title,
        category = excluded.category,
        keywords = excluded.keywords,
        timestamp = excluded.timestamp
"""


class UnitRepository:
    """
    Repository for knowledge units.

    Example:
        >>> repo = UnitRepository(database)
        >>> repo.upsert(KnowledgeUnit(id="u1", title="Retry budgets", keywords=["retry"]))
        >>> repo.get_unit_summary("u1").title
        'Retry budgets'
    """

    def __init__(self, db: Database) -> None:
        self.db = db

    def upsert(self, unit: KnowledgeUnit) -> None:
        """Insert a unit or replace the stored copy with the same id."""
        self.db.execute(_UPSERT_UNIT_SQL, unit.to_row())

    def upsert_many(self, units: Iterable[KnowledgeUnit]) -> int:
        """Insert or replace several units in one transaction."""
        rows = [unit.to_row() for unit in units]
        with self.db.transaction() as conn:
            conn.executemany(_UPSERT_UNIT_SQL, rows)
        logger.debug(f"Upserted {len(rows)} units")
        return len(rows)

    def get(self, unit_id: str) -> KnowledgeUnit | None:
        row = self.db.fetch_one(
            "SELECT * FROM atomic_units WHERE id = ?",
            (unit_id,),
        )
        return KnowledgeUnit.from_row(row) if row else None

    def get_unit_summary(self, unit_id: str) -> UnitSummary | None:
        """Get the id/title/type/category view of a unit, or None."""
        row = self.db.fetch_one(
            "SELECT id, title, type, category FROM atomic_units WHERE id = ?",
            (unit_id,),
        )
        if not row:
            return None
        return UnitSummary(
            id=row["id"],
            title=row["title"] or "",
            type=row["type"],
            category=row["category"] or "",
        )

    def list_units(
        self,
        unit_filter: UnitFilter | None = None,
        limit: int = 500,
    ) -> list[KnowledgeUnit]:
        """
        List units, newest first, optionally filtered by type and category.

        Args:
            unit_filter: Optional type/category filter
            limit: Maximum units returned
        """
        query = "SELECT * FROM atomic_units"
        clauses: list[str] = []
        params: list = []

        if unit_filter is not None:
            if unit_filter.type is not None:
                clauses.append("type = ?")
                params.append(unit_filter.type.value)
            if unit_filter.category is not None:
                clauses.append("category = ?")
                params.append(unit_filter.category)

        if clauses:
            query += " WHERE " + " AND ".join(clauses)

        query += " ORDER BY COALESCE(timestamp, created_at) DESC, id LIMIT ?"
        params.append(limit)

        rows = self.db.fetch_all(query, tuple(params))
        return [KnowledgeUnit.from_row(r) for r in rows]

    def count(self) -> int:
        row = self.db.fetch_one("SELECT COUNT(*) AS count FROM atomic_units")
        return row["count"] if row else 0

    def delete(self, unit_id: str) -> bool:
        """
        Delete a unit and every relationship touching it.

        Returns:
            True if the unit existed
        """
        with self.db.transaction() as conn:
            conn.execute(
                "DELETE FROM unit_relationships WHERE from_unit = ? OR to_unit = ?",
                (unit_id, unit_id),
            )
            cursor = conn.execute(
                "DELETE FROM atomic_units WHERE id = ?",
                (unit_id,),
            )

        deleted = cursor.rowcount > 0
        if deleted:
            logger.debug(f"Deleted unit {unit_id} and its relationships")
        return deleted

"""
Relationship store.

Durable storage for typed edges between knowledge units in the
unit_relationships table. Endpoints are plain unit ids and are not
checked against the unit store.
"""

from typing import Iterable, Protocol, Sequence

from atomic_graph.config import Settings
from atomic_graph.storage import Database
from atomic_graph.storage.models import utc_now
from atomic_graph.graph_store.models import (
    RelationType,
    RelationshipEdge,
    parse_relationship_type,
)
from atomic_graph.utils.logging import get_logger

logger = get_logger(__name__)

# SQLite's default bound-parameter limit is 999; touching() binds each id twice
_ID_CHUNK_SIZE = 400

_UPSERT_SQL = """
    INSERT INTO unit_relationships (
        from_unit, to_unit, relationship_type,
        source, confidence, explanation, created_at
    )
    VALUES (
        :from_unit, :to_unit, :relationship_type,
        :source, :confidence, :explanation, :created_at
    )
    ON CONFLICT(from_unit, to_unit, relationship_type) DO UPDATE SET
        source = excluded.source,
        confidence = excluded.confidence,
        explanation = excluded.explanation,
        created_at = excluded.created_at
"""


class RelationshipReader(Protocol):
    """Adjacency reads needed by branch traversal."""

    def outgoing(self, unit_id: str) -> list[RelationshipEdge]: ...

    def incoming(self, unit_id: str) -> list[RelationshipEdge]: ...


class SQLiteRelationshipStore:
    """
    SQLite-backed relationship store.

    Each write commits before returning. upsert_batch() writes all
    of its edges or none of them.

    Example:
        >>> store = SQLiteRelationshipStore(database)
        >>> store.upsert(RelationshipEdge("a", "b", RelationshipType.BUILDS_ON))
        >>> [e.to_id for e in store.outgoing("a")]
        ['b']
    """

    def __init__(self, database: Database) -> None:
        self.db = database

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        database: Database | None = None,
    ) -> "SQLiteRelationshipStore":
        """
        Create a store from settings.

        Args:
            settings: Application settings
            database: Optional pre-configured database
        """
        if database is None:
            database = Database.initialize(settings)
        return cls(database=database)

    def _row_for(self, edge: RelationshipEdge) -> dict:
        if edge.created_at is None:
            edge = edge.with_created_at(utc_now())
        return edge.to_row()

    def upsert(self, edge: RelationshipEdge) -> None:
        """Insert an edge or overwrite the stored edge with the same key."""
        self.db.execute(_UPSERT_SQL, self._row_for(edge))
        logger.debug(
            f"Upserted relationship: {edge.from_id} "
            f"-[{edge.relationship_type.value}]-> {edge.to_id}"
        )

    def upsert_batch(self, edges: Iterable[RelationshipEdge]) -> int:
        """
        Upsert several edges in one transaction.

        Returns:
            Number of edges written
        """
        rows = [self._row_for(edge) for edge in edges]
        if not rows:
            return 0

        with self.db.transaction() as conn:
            conn.executemany(_UPSERT_SQL, rows)

        logger.debug(f"Upserted {len(rows)} relationships")
        return len(rows)

    def get(
        self,
        from_id: str,
        to_id: str,
        relationship_type: "str | RelationType",
    ) -> RelationshipEdge | None:
        rel_type = parse_relationship_type(relationship_type)
        row = self.db.fetch_one(
            """
            SELECT * FROM unit_relationships
            WHERE from_unit = ? AND to_unit = ? AND relationship_type = ?
            """,
            (from_id, to_id, rel_type.value),
        )
        return RelationshipEdge.from_row(row) if row else None

    def outgoing(self, unit_id: str) -> list[RelationshipEdge]:
        """Edges leaving a unit, ordered by target id then type."""
        rows = self.db.fetch_all(
            """
            SELECT * FROM unit_relationships
            WHERE from_unit = ?
            ORDER BY to_unit, relationship_type
            """,
            (unit_id,),
        )
        return [RelationshipEdge.from_row(r) for r in rows]

    def incoming(self, unit_id: str) -> list[RelationshipEdge]:
        """Edges arriving at a unit, ordered by source id then type."""
        rows = self.db.fetch_all(
            """
            SELECT * FROM unit_relationships
            WHERE to_unit = ?
            ORDER BY from_unit, relationship_type
            """,
            (unit_id,),
        )
        return [RelationshipEdge.from_row(r) for r in rows]

    def by_type(
        self,
        relationship_type: "str | RelationType",
        limit: int = 100,
    ) -> list[RelationshipEdge]:
        """Edges of one type, newest first."""
        rel_type = parse_relationship_type(relationship_type)
        rows = self.db.fetch_all(
            """
            SELECT * FROM unit_relationships
            WHERE relationship_type = ?
            ORDER BY created_at DESC, from_unit, to_unit
            LIMIT ?
            """,
            (rel_type.value, limit),
        )
        return [RelationshipEdge.from_row(r) for r in rows]

    def touching(self, ids: Sequence[str]) -> list[RelationshipEdge]:
        """
        Edges with at least one endpoint in ids.

        Ids are queried in chunks; an edge spanning two chunks is
        returned once.
        """
        unique_ids = list(dict.fromkeys(ids))
        seen: set[tuple[str, str, str]] = set()
        edges: list[RelationshipEdge] = []

        for start in range(0, len(unique_ids), _ID_CHUNK_SIZE):
            chunk = unique_ids[start:start + _ID_CHUNK_SIZE]
            placeholders = ", ".join("?" for _ in chunk)
            rows = self.db.fetch_all(
                f"""
                SELECT * FROM unit_relationships
                WHERE from_unit IN ({placeholders}) OR to_unit IN ({placeholders})
                ORDER BY from_unit, to_unit, relationship_type
                """,
                tuple(chunk) + tuple(chunk),
            )
            for row in rows:
                edge = RelationshipEdge.from_row(row)
                if edge.key not in seen:
                    seen.add(edge.key)
                    edges.append(edge)

        return edges

    def delete(
        self,
        from_id: str,
        to_id: str,
        relationship_type: "str | RelationType | None" = None,
    ) -> int:
        """
        Delete edges from one unit to another.

        Without a type, every type between the ordered pair is removed.

        Returns:
            Number of edges deleted
        """
        if relationship_type is None:
            removed = self.db.delete(
                "unit_relationships",
                "from_unit = ? AND to_unit = ?",
                (from_id, to_id),
            )
        else:
            rel_type = parse_relationship_type(relationship_type)
            removed = self.db.delete(
                "unit_relationships",
                "from_unit = ? AND to_unit = ? AND relationship_type = ?",
                (from_id, to_id, rel_type.value),
            )

        if removed:
            logger.debug(f"Deleted {removed} relationship(s) {from_id} -> {to_id}")
        return removed

    def delete_for_unit(self, unit_id: str) -> int:
        """Delete every edge touching a unit."""
        return self.db.delete(
            "unit_relationships",
            "from_unit = ? OR to_unit = ?",
            (unit_id, unit_id),
        )

    def count(self) -> int:
        row = self.db.fetch_one(
            "SELECT COUNT(*) AS count FROM unit_relationships")
        return row["count"] if row else 0

    def type_counts(self) -> dict[str, int]:
        """Edge count per relationship type, most frequent first."""
        rows = self.db.fetch_all(
            """
            SELECT relationship_type, COUNT(*) AS count
            FROM unit_relationships
            GROUP BY relationship_type
            ORDER BY count DESC, relationship_type
            """
        )
        return {r["relationship_type"]: r["count"] for r in rows}


RelationshipStore = SQLiteRelationshipStore

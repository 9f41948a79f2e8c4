"""
Database schema definition and migration.

Version history:
    1  atomic_units and a bare unit_relationships(from, to, type) table
    2  typed relationships: source, confidence, explanation, created_at
"""

import sqlite3

from atomic_graph.utils.logging import get_logger

logger = get_logger(__name__)

SCHEMA_VERSION = 2


class SchemaManager:
    """
    Manages database schema creation and migrations.

    Example:
        >>> manager = SchemaManager(connection)
        >>> manager.initialize()
        >>> manager.get_version()
        2
    """

    def __init__(self, connection: sqlite3.Connection) -> None:
        self.conn = connection
        self._migrations = {
            2: self._migrate_v2_typed_relationships,
        }

    def initialize(self, target_version: int = SCHEMA_VERSION) -> None:
        """
        Create the schema if missing, then apply pending migrations.

        Args:
            target_version: Stop migrating at this version
        """
        logger.info("Initializing database schema")

        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY,
                applied_at TEXT DEFAULT CURRENT_TIMESTAMP
            )
        """)

        if self.get_version() == 0:
            self._create_schema_v1()
            self._record_version(1)
            logger.info("Created schema version 1")

        self.migrate(target_version)

    def _create_schema_v1(self) -> None:
        """Create version 1 of the database schema."""

        # Knowledge units, owned by the unit store
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS atomic_units (
                id TEXT PRIMARY KEY,
                type TEXT NOT NULL,
                title TEXT NOT NULL,
                category TEXT DEFAULT '',
                keywords TEXT DEFAULT '[]',
                timestamp TEXT,
                created_at TEXT DEFAULT CURRENT_TIMESTAMP
            )
        """)

        self.conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_units_type ON atomic_units(type)"
        )
        self.conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_units_category ON atomic_units(category)"
        )

        # No foreign keys: endpoints are not checked against atomic_units
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS unit_relationships (
                from_unit TEXT NOT NULL,
                to_unit TEXT NOT NULL,
                relationship_type TEXT NOT NULL,
                PRIMARY KEY (from_unit, to_unit, relationship_type)
            )
        """)

        self.conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_relationships_to ON unit_relationships(to_unit)"
        )
        self.conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_relationships_type ON unit_relationships(relationship_type)"
        )

    def _migrate_v2_typed_relationships(self) -> None:
        """Add provenance columns to unit_relationships and backfill old rows."""
        existing = {
            row[1]
            for row in self.conn.execute("PRAGMA table_info(unit_relationships)")
        }

        # SQLite does not accept CURRENT_TIMESTAMP defaults in ALTER TABLE
        for column, column_type in (
            ("source", "TEXT"),
            ("confidence", "REAL"),
            ("explanation", "TEXT"),
            ("created_at", "TEXT"),
        ):
            if column not in existing:
                self.conn.execute(
                    f"ALTER TABLE unit_relationships ADD COLUMN {column} {column_type}"
                )

        self.conn.execute("""
            UPDATE unit_relationships
            SET
                source = COALESCE(source, 'auto_detected'),
                confidence = COALESCE(confidence, 0.5),
                created_at = COALESCE(created_at, strftime('%Y-%m-%dT%H:%M:%S+00:00', 'now'))
            WHERE source IS NULL OR created_at IS NULL
        """)

        self.conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_relationships_source ON unit_relationships(source)"
        )
        self.conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_relationships_confidence ON unit_relationships(confidence)"
        )

    def _record_version(self, version: int) -> None:
        self.conn.execute(
            "INSERT INTO schema_version (version) VALUES (?)",
            (version,),
        )
        self.conn.commit()

    def get_version(self) -> int:
        """Get current schema version (0 for an empty database)."""
        cursor = self.conn.execute("SELECT MAX(version) FROM schema_version")
        version = cursor.fetchone()[0]
        return version or 0

    def migrate(self, target_version: int = SCHEMA_VERSION) -> None:
        """Apply every pending migration up to target_version."""
        current = self.get_version()

        for version in range(current + 1, target_version + 1):
            logger.info(f"Migrating schema from version {version - 1} to {version}")
            self._migrations[version]()
            self._record_version(version)

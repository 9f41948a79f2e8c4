"""
SQLite database connection management.

One connection per thread, WAL journaling, and an explicit
transaction context for all-or-nothing batch writes.
"""

import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from atomic_graph.config import Settings
from atomic_graph.core.exceptions import DatabaseError
from atomic_graph.storage.schema import SchemaManager
from atomic_graph.utils.logging import get_logger

logger = get_logger(__name__)

# Shared instance handed out by Database.initialize()
_shared: "Database | None" = None
_shared_lock = threading.Lock()


def reset_database() -> None:
    """Close and forget the shared database instance."""
    global _shared

    with _shared_lock:
        if _shared is not None:
            _shared.close()
        _shared = None


class Database:
    """
    SQLite database manager.

    Connections run in autocommit mode; single statements commit as
    they execute and transaction() groups statements atomically.

    Example:
        >>> db = Database.create(settings)
        >>> with db.transaction() as conn:
        ...     conn.execute("DELETE FROM unit_relationships WHERE from_unit = ?", ("a",))
        >>> db.fetch_all("SELECT * FROM atomic_units")
    """

    def __init__(
        self,
        database_path: Path,
        wal_mode: bool = True,
        cache_size_mb: int = 64,
    ) -> None:
        self.database_path = Path(database_path)
        self.wal_mode = wal_mode
        self.cache_size_mb = cache_size_mb

        self._connections: dict[int, sqlite3.Connection] = {}
        self._lock = threading.Lock()
        self._ready = False

        logger.info(f"Opening knowledge database at {self.database_path}")

    @classmethod
    def create(cls, settings: Settings) -> "Database":
        """Open a database of its own for the configured path, schema up to date."""
        storage = settings.storage
        database = cls(
            database_path=storage.database_path,
            wal_mode=storage.wal_mode,
            cache_size_mb=storage.cache_size_mb,
        )
        database._prepare()
        return database

    @classmethod
    def initialize(cls, settings: Settings) -> "Database":
        """Return the shared instance, creating it on first use."""
        global _shared

        with _shared_lock:
            if _shared is None:
                _shared = cls.create(settings)
            return _shared

    def _prepare(self) -> None:
        self.database_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            SchemaManager(self._get_connection()).initialize()
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Schema initialization failed: {e}",
                details={"path": str(self.database_path)},
            ) from e

        self._ready = True
        logger.info(f"Knowledge database ready ({self.database_path.name})")

    def _pragmas(self) -> list[str]:
        journal = "WAL" if self.wal_mode else "DELETE"
        return [
            # Negative cache_size is in KiB
            f"PRAGMA cache_size = -{self.cache_size_mb * 1024}",
            f"PRAGMA journal_mode = {journal}",
            "PRAGMA synchronous = NORMAL",
            "PRAGMA temp_store = MEMORY",
        ]

    def _get_connection(self) -> sqlite3.Connection:
        """Connection owned by the calling thread, opened on first use."""
        thread_id = threading.get_ident()
        conn = self._connections.get(thread_id)
        if conn is not None:
            return conn

        with self._lock:
            if thread_id not in self._connections:
                self._connections[thread_id] = self._open_connection()
            return self._connections[thread_id]

    def _open_connection(self) -> sqlite3.Connection:
        try:
            conn = sqlite3.connect(
                str(self.database_path),
                check_same_thread=False,
                timeout=30.0,
                isolation_level=None,
            )
            conn.row_factory = sqlite3.Row
            for pragma in self._pragmas():
                conn.execute(pragma)
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to open database connection: {e}",
                details={"path": str(self.database_path)},
            ) from e

        logger.debug(f"Opened connection for thread {threading.get_ident()}")
        return conn

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """
        Run the enclosed statements in a single write transaction.

        Commits on success, rolls back on any error.
        """
        conn = self._get_connection()
        try:
            conn.execute("BEGIN IMMEDIATE")
        except sqlite3.Error as e:
            raise DatabaseError(f"Failed to begin transaction: {e}") from e

        try:
            yield conn
        except sqlite3.Error as e:
            conn.rollback()
            raise DatabaseError(f"Transaction failed: {e}") from e
        except Exception:
            conn.rollback()
            raise
        else:
            conn.commit()

    def execute(self, sql: str, params: tuple | dict = ()) -> sqlite3.Cursor:
        """Run one statement; sqlite errors surface as DatabaseError."""
        try:
            return self._get_connection().execute(sql, params)
        except sqlite3.Error as e:
            raise DatabaseError(f"Query execution failed: {e}", query=sql) from e

    def fetch_one(self, sql: str, params: tuple = ()) -> dict | None:
        row = self.execute(sql, params).fetchone()
        return dict(row) if row else None

    def fetch_all(self, sql: str, params: tuple = ()) -> list[dict]:
        return [dict(row) for row in self.execute(sql, params).fetchall()]

    def delete(self, table: str, where: str, params: tuple = ()) -> int:
        """Delete matching rows and return how many went."""
        return self.execute(f"DELETE FROM {table} WHERE {where}", params).rowcount

    def close(self) -> None:
        """Close every per-thread connection."""
        with self._lock:
            connections = list(self._connections.values())
            self._connections.clear()

        for conn in connections:
            try:
                conn.close()
            except sqlite3.Error as e:
                logger.warning(f"Failed to close connection cleanly: {e}")

        logger.info(f"Closed {len(connections)} database connection(s)")

    def __repr__(self) -> str:
        state = "ready" if self._ready else "not ready"
        return f"Database(path={self.database_path!r}, {state})"

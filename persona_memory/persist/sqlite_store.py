"""
SQLite database wrapper for the memory engine.

Single-statement writes run in autocommit mode and are atomic on their own;
multi-statement operations use `transaction()` (BEGIN IMMEDIATE).
Schema is brought up to date through versioned migrations on open.
"""

import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, List, Optional, Sequence, Union

from persona_memory.errors import StoreUnavailableError
from .migrations import MIGRATIONS, Migration, apply_migrations, current_version


class SQLiteDatabase:
    """
    File-backed SQLite database.

    Thread-safe with WAL mode and IMMEDIATE transactions. Every low-level
    failure other than a constraint violation is reported as
    StoreUnavailableError.
    """

    def __init__(
        self,
        db_path: Union[str, Path],
        migrations: Sequence[Migration] = MIGRATIONS,
    ):
        """
        Open (and migrate) the database at the given path.

        Args:
            db_path: Path to SQLite database file, or ":memory:"
            migrations: Ordered schema migrations to apply

        Raises:
            StoreUnavailableError: If the file cannot be opened or migrated
        """
        self.db_path = str(db_path)
        self._lock = threading.RLock()
        self._depth = 0
        self._conn: Optional[sqlite3.Connection] = None

        try:
            if self.db_path != ":memory:":
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

            self._conn = sqlite3.connect(
                self.db_path,
                check_same_thread=False,  # Allow multi-threaded access
                timeout=10.0,
                isolation_level=None,
            )
            self._conn.row_factory = sqlite3.Row

            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.execute("PRAGMA synchronous=NORMAL")

            apply_migrations(self._conn, migrations)
        except (OSError, sqlite3.Error, ValueError) as e:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
            raise StoreUnavailableError(f"Memory database unavailable at {self.db_path}: {e}") from e

    @property
    def schema_version(self) -> int:
        """Schema version currently recorded in the database."""
        with self._lock:
            return current_version(self._connection())

    @property
    def closed(self) -> bool:
        return self._conn is None

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StoreUnavailableError(f"Memory database at {self.db_path} is closed")
        return self._conn

    def execute(self, sql: str, params: Sequence[Any] = ()) -> sqlite3.Cursor:
        """
        Execute one statement.

        Raises:
            sqlite3.IntegrityError: On constraint violations
            StoreUnavailableError: On any other database failure
        """
        with self._lock:
            conn = self._connection()
            try:
                return conn.execute(sql, params)
            except sqlite3.IntegrityError:
                raise
            except sqlite3.Error as e:
                raise StoreUnavailableError(f"Memory database error: {e}") from e

    def query(self, sql: str, params: Sequence[Any] = ()) -> List[sqlite3.Row]:
        """Execute a SELECT and fetch all rows."""
        with self._lock:
            return self.execute(sql, params).fetchall()

    def executemany(self, sql: str, rows: Sequence[Sequence[Any]]) -> int:
        """Execute a statement for each parameter row inside one transaction."""
        with self.transaction():
            conn = self._connection()
            try:
                cursor = conn.executemany(sql, rows)
            except sqlite3.IntegrityError:
                raise
            except sqlite3.Error as e:
                raise StoreUnavailableError(f"Memory database error: {e}") from e
            return cursor.rowcount

    @contextmanager
    def transaction(self) -> Iterator["SQLiteDatabase"]:
        """
        Group statements into one IMMEDIATE transaction.

        Nested calls join the outer transaction. Any exception rolls back.
        """
        with self._lock:
            if self._depth > 0:
                self._depth += 1
                try:
                    yield self
                finally:
                    self._depth -= 1
                return

            self.execute("BEGIN IMMEDIATE")
            self._depth = 1
            try:
                yield self
            except BaseException:
                self._depth = 0
                if self._conn is not None:
                    self._conn.execute("ROLLBACK")
                raise
            self._depth = 0
            self.execute("COMMIT")

    def vacuum(self) -> None:
        """
        Reclaim space and optimize database.

        Should be called periodically after large deletions.
        """
        self.execute("VACUUM")

    def close(self) -> None:
        """Close database connection."""
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()

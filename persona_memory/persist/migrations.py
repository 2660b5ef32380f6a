"""
Versioned schema migrations for the memory database.

The applied version is tracked in `PRAGMA user_version`. Each migration runs
in its own transaction and bumps the version on commit, so a database is
always at exactly one known schema version.
"""

import logging
import sqlite3
from dataclasses import dataclass
from typing import List, Sequence, Tuple

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Migration:
    """One ordered schema change."""

    version: int
    name: str
    statements: Tuple[str, ...]


MIGRATIONS: Tuple[Migration, ...] = (
    Migration(
        version=1,
        name="create_persona_memories",
        statements=(
            """
            CREATE TABLE persona_memories (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                persona_id TEXT NOT NULL,
                content TEXT NOT NULL,
                embedding BLOB,
                timestamp REAL NOT NULL,
                context TEXT,
                importance_score REAL NOT NULL DEFAULT 0.5
            )
            """,
            "CREATE INDEX idx_persona_memories_user_persona ON persona_memories(user_id, persona_id)",
            "CREATE INDEX idx_persona_memories_timestamp ON persona_memories(timestamp)",
            "CREATE INDEX idx_persona_memories_importance ON persona_memories(importance_score)",
        ),
    ),
    Migration(
        version=2,
        name="add_memory_lifecycle_columns",
        statements=(
            "ALTER TABLE persona_memories ADD COLUMN memory_type TEXT NOT NULL DEFAULT 'general'",
            "ALTER TABLE persona_memories ADD COLUMN access_count INTEGER NOT NULL DEFAULT 0",
            "ALTER TABLE persona_memories ADD COLUMN last_accessed_at REAL",
            "ALTER TABLE persona_memories ADD COLUMN decay_factor REAL NOT NULL DEFAULT 1.0",
            "ALTER TABLE persona_memories ADD COLUMN consolidated_from TEXT",
        ),
    ),
    Migration(
        version=3,
        name="index_memory_type",
        statements=(
            "CREATE INDEX idx_persona_memories_type ON persona_memories(user_id, persona_id, memory_type)",
        ),
    ),
    Migration(
        version=4,
        name="create_embedding_cache",
        statements=(
            """
            CREATE TABLE embedding_cache (
                key TEXT PRIMARY KEY,
                model TEXT NOT NULL,
                value BLOB NOT NULL,
                ts INTEGER NOT NULL
            )
            """,
            "CREATE INDEX idx_embedding_cache_ts ON embedding_cache(ts)",
        ),
    ),
)


def current_version(conn: sqlite3.Connection) -> int:
    """Return the schema version recorded in the database."""
    return conn.execute("PRAGMA user_version").fetchone()[0]


def _validate(migrations: Sequence[Migration]) -> None:
    expected = 1
    for migration in migrations:
        if migration.version != expected:
            raise ValueError(
                f"Migration {migration.name} has version {migration.version}, expected {expected}"
            )
        expected += 1


def apply_migrations(
    conn: sqlite3.Connection,
    migrations: Sequence[Migration] = MIGRATIONS,
) -> List[int]:
    """
    Bring the database up to the latest migration.

    The connection must be in autocommit mode (isolation_level=None).

    Args:
        conn: Open SQLite connection
        migrations: Ordered migrations, versions 1..N without gaps

    Returns:
        Versions applied by this call (empty if already current)

    Raises:
        ValueError: If the migration list is not contiguous, or the database
            is newer than the code
        sqlite3.Error: If a migration statement fails (rolled back)
    """
    _validate(migrations)

    version = current_version(conn)
    if version > len(migrations):
        raise ValueError(
            f"Database schema version {version} is newer than supported version {len(migrations)}"
        )

    applied = []
    for migration in migrations[version:]:
        conn.execute("BEGIN IMMEDIATE")
        try:
            for statement in migration.statements:
                conn.execute(statement)
            # PRAGMA does not accept bound parameters
            conn.execute(f"PRAGMA user_version = {int(migration.version)}")
            conn.execute("COMMIT")
        except sqlite3.Error:
            conn.execute("ROLLBACK")
            raise
        logger.info(f"Applied schema migration {migration.version}: {migration.name}")
        applied.append(migration.version)

    return applied

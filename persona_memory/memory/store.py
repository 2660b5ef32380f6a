"""
Memory persistence layer using SQLite.

Every read and write is scoped by (owner_id, persona_id).
"""

import json
import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Union

from persona_memory.errors import InvalidMemoryError
from persona_memory.persist.sqlite_store import SQLiteDatabase
from persona_memory.persist.vectors import decode_vector, encode_vector
from .schemas import MAX_IMPORTANCE, MemoryRecord, clamp_importance

logger = logging.getLogger(__name__)

_COLUMNS = (
    "id, user_id, persona_id, content, embedding, timestamp, context, importance_score, "
    "memory_type, access_count, last_accessed_at, decay_factor, consolidated_from"
)

ORDERINGS: Dict[str, str] = {
    "newest": "timestamp DESC, id",
    "oldest": "timestamp ASC, id",
    "importance": "importance_score DESC, timestamp DESC, id",
    "core": "importance_score DESC, access_count DESC, timestamp DESC, id",
    "retention": "importance_score ASC, timestamp ASC, id",
}

MUTABLE_FIELDS = frozenset({"importance_score", "decay_factor", "access_count", "last_accessed_at"})


class MemoryStore:
    """
    Persistent storage for persona memories.

    Table `persona_memories`, one row per MemoryRecord; embeddings are
    float32 blobs.

    Features:
    - Insert, scoped get/update/delete
    - Scans filtered by memory type, embedding presence, importance
    - Named orderings (newest, importance, core, retention)
    - Transactions spanning several writes
    """

    def __init__(
        self,
        db_path: Optional[Union[str, Path]] = None,
        db: Optional[SQLiteDatabase] = None,
    ):
        """
        Initialize memory store.

        Args:
            db_path: Path to SQLite database (default: data/memory/memories.db)
            db: Already-open database (takes precedence over db_path)

        Raises:
            StoreUnavailableError: If the database cannot be opened
        """
        if db is None:
            db = SQLiteDatabase(db_path or Path("data/memory/memories.db"))
        self.db = db

    # ------------------------------------------------------------------
    # Row mapping
    # ------------------------------------------------------------------

    @staticmethod
    def _to_row(record: MemoryRecord) -> tuple:
        return (
            record.id,
            record.owner_id,
            record.persona_id,
            record.content,
            encode_vector(record.embedding) if record.embedding else None,
            record.timestamp,
            record.context,
            record.importance_score,
            record.memory_type,
            record.access_count,
            record.last_accessed_at,
            record.decay_factor,
            json.dumps(record.consolidated_from) if record.consolidated_from is not None else None,
        )

    @staticmethod
    def _from_row(row: sqlite3.Row) -> MemoryRecord:
        consolidated_from = row["consolidated_from"]
        return MemoryRecord(
            id=row["id"],
            owner_id=row["user_id"],
            persona_id=row["persona_id"],
            content=row["content"],
            embedding=decode_vector(row["embedding"]),
            timestamp=row["timestamp"],
            context=row["context"],
            importance_score=row["importance_score"],
            memory_type=row["memory_type"],
            access_count=row["access_count"],
            last_accessed_at=row["last_accessed_at"],
            decay_factor=row["decay_factor"],
            consolidated_from=json.loads(consolidated_from) if consolidated_from else None,
        )

    def _records(self, rows: Iterable[sqlite3.Row]) -> List[MemoryRecord]:
        records = []
        for row in rows:
            try:
                records.append(self._from_row(row))
            except (json.JSONDecodeError, ValueError) as e:
                logger.warning(f"Skipping unreadable memory row {row['id']}: {e}")
        return records

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @contextmanager
    def transaction(self) -> Iterator["MemoryStore"]:
        """Group several writes into one atomic transaction."""
        with self.db.transaction():
            yield self

    def insert(self, record: MemoryRecord) -> str:
        """
        Store a new memory record.

        Returns:
            Memory ID

        Raises:
            InvalidMemoryError: If a record with the same id already exists
        """
        try:
            self.db.execute(
                f"INSERT INTO persona_memories ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                self._to_row(record),
            )
        except sqlite3.IntegrityError as e:
            raise InvalidMemoryError(f"Memory {record.id} could not be inserted: {e}") from e
        return record.id

    def update_fields(
        self,
        owner_id: str,
        persona_id: str,
        memory_id: str,
        **fields: Any,
    ) -> bool:
        """
        Update mutable fields of one memory.

        Allowed fields: importance_score (clamped), decay_factor,
        access_count, last_accessed_at.

        Returns:
            True if a record was updated, False if not found

        Raises:
            ValueError: If an immutable or unknown field is passed
        """
        unknown = set(fields) - MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update fields: {sorted(unknown)}")
        if not fields:
            return False

        if "importance_score" in fields:
            fields["importance_score"] = clamp_importance(fields["importance_score"])

        names = sorted(fields)
        assignments = ", ".join(f"{name} = ?" for name in names)
        cursor = self.db.execute(
            f"UPDATE persona_memories SET {assignments} WHERE id = ? AND user_id = ? AND persona_id = ?",
            [fields[name] for name in names] + [memory_id, owner_id, persona_id],
        )
        return cursor.rowcount > 0

    def reinforce(
        self,
        owner_id: str,
        persona_id: str,
        memory_id: str,
        accessed_at: float,
        boost: float,
    ) -> Optional[MemoryRecord]:
        """
        Record one recall in a single UPDATE: access_count + 1, last access
        time, and importance raised by `boost` (capped at 1.0).

        Returns:
            Updated record, or None if not found
        """
        with self.db.transaction():
            cursor = self.db.execute(
                """
                UPDATE persona_memories
                SET access_count = access_count + 1,
                    last_accessed_at = ?,
                    importance_score = MIN(?, importance_score + ?)
                WHERE id = ? AND user_id = ? AND persona_id = ?
                """,
                (accessed_at, MAX_IMPORTANCE, boost, memory_id, owner_id, persona_id),
            )
            if cursor.rowcount == 0:
                return None
            return self.get(owner_id, persona_id, memory_id)

    def delete(self, owner_id: str, persona_id: str, memory_id: str) -> bool:
        """
        Delete a memory.

        Returns:
            True if deleted, False if not found
        """
        cursor = self.db.execute(
            "DELETE FROM persona_memories WHERE id = ? AND user_id = ? AND persona_id = ?",
            (memory_id, owner_id, persona_id),
        )
        return cursor.rowcount > 0

    def delete_many(self, owner_id: str, persona_id: str, memory_ids: Sequence[str]) -> int:
        """
        Delete a set of memories in one transaction.

        Returns:
            Number of memories deleted
        """
        if not memory_ids:
            return 0

        deleted = 0
        with self.db.transaction():
            for memory_id in dict.fromkeys(memory_ids):
                if self.delete(owner_id, persona_id, memory_id):
                    deleted += 1
        return deleted

    def delete_scope(self, owner_id: str, persona_id: str) -> int:
        """
        Delete all memories for a persona.

        Returns:
            Number of memories deleted
        """
        cursor = self.db.execute(
            "DELETE FROM persona_memories WHERE user_id = ? AND persona_id = ?",
            (owner_id, persona_id),
        )
        return cursor.rowcount

    def delete_older_than(
        self,
        owner_id: str,
        persona_id: str,
        cutoff: float,
        importance_below: float,
    ) -> int:
        """
        Delete memories created before `cutoff` with importance below a bound.

        Returns:
            Number of memories deleted
        """
        cursor = self.db.execute(
            """
            DELETE FROM persona_memories
            WHERE user_id = ? AND persona_id = ? AND timestamp < ? AND importance_score < ?
            """,
            (owner_id, persona_id, cutoff, importance_below),
        )
        return cursor.rowcount

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, owner_id: str, persona_id: str, memory_id: str) -> Optional[MemoryRecord]:
        """
        Retrieve a memory by ID.

        Returns:
            MemoryRecord if found in this scope, else None
        """
        rows = self.db.query(
            f"SELECT {_COLUMNS} FROM persona_memories WHERE id = ? AND user_id = ? AND persona_id = ?",
            (memory_id, owner_id, persona_id),
        )
        records = self._records(rows)
        return records[0] if records else None

    def scan(
        self,
        owner_id: str,
        persona_id: str,
        memory_types: Optional[Sequence[str]] = None,
        embedded_only: bool = False,
        min_importance: Optional[float] = None,
        order_by: str = "newest",
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[MemoryRecord]:
        """
        List memories for a persona.

        Args:
            owner_id: Owning user
            persona_id: Persona
            memory_types: Restrict to these types (None = all)
            embedded_only: Skip records without an embedding
            min_importance: Keep records with importance >= this value
            order_by: One of ORDERINGS
            limit: Maximum results (None = unlimited)
            offset: Rows to skip

        Returns:
            List of MemoryRecord objects
        """
        if order_by not in ORDERINGS:
            raise ValueError(f"Unknown ordering {order_by!r}; expected one of {sorted(ORDERINGS)}")

        clauses = ["user_id = ?", "persona_id = ?"]
        params: List[Any] = [owner_id, persona_id]

        if memory_types is not None:
            if not memory_types:
                return []
            clauses.append(f"memory_type IN ({', '.join('?' for _ in memory_types)})")
            params.extend(memory_types)
        if embedded_only:
            clauses.append("embedding IS NOT NULL")
        if min_importance is not None:
            clauses.append("importance_score >= ?")
            params.append(min_importance)

        sql = f"SELECT {_COLUMNS} FROM persona_memories WHERE {' AND '.join(clauses)} ORDER BY {ORDERINGS[order_by]}"
        if limit is not None:
            sql += " LIMIT ? OFFSET ?"
            params.extend([limit, offset])
        elif offset:
            sql += " LIMIT -1 OFFSET ?"
            params.append(offset)

        return self._records(self.db.query(sql, params))

    def count(self, owner_id: str, persona_id: str) -> int:
        """Count memories for a persona."""
        rows = self.db.query(
            "SELECT COUNT(*) AS n FROM persona_memories WHERE user_id = ? AND persona_id = ?",
            (owner_id, persona_id),
        )
        return rows[0]["n"]

    def close(self) -> None:
        """Close the underlying database."""
        self.db.close()

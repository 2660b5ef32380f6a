"""
Embedding cache - wrap any embedder with a SQLite-backed cache.

Caches embeddings by content hash to avoid recomputing.
"""

import time
from typing import List, Optional

from persona_memory.embeddings.base import BaseEmbedder
from .hashing import embedding_key
from .sqlite_store import SQLiteDatabase
from .vectors import decode_vector, encode_vector


class CachingEmbedder(BaseEmbedder):
    """
    Wrapper for an embedder that caches embeddings.

    Key = blake2b(text + model)
    Value = float32 vector bytes

    Failed embeddings (None) are never cached, so a later call retries the
    backend.

    Usage:
        >>> db = SQLiteDatabase("data/memory/memories.db")
        >>> embedder = CachingEmbedder(OllamaEmbedder(), db)
        >>> embedder.embed("I like hiking", "nomic-embed-text")
        >>> # Second call hits cache
        >>> embedder.embed("I like hiking", "nomic-embed-text")
    """

    def __init__(self, embedder: BaseEmbedder, db: SQLiteDatabase):
        """
        Initialize caching embedder.

        Args:
            embedder: Backend embedder to call on cache misses
            db: Database holding the embedding_cache table
        """
        self.embedder = embedder
        self.db = db

        # Track cache hits/misses
        self.hits = 0
        self.misses = 0

    def embed(self, text: str, model: str) -> Optional[List[float]]:
        """
        Embed text, serving repeated (text, model) pairs from the cache.

        Returns:
            Embedding vector, or None if the backend failed
        """
        key = embedding_key(text, model)
        rows = self.db.query("SELECT value FROM embedding_cache WHERE key = ?", (key,))

        if rows:
            self.hits += 1
            return decode_vector(rows[0]["value"])

        self.misses += 1
        vector = self.embedder.embed(text, model)
        if vector is None:
            return None

        self.db.execute(
            "INSERT OR REPLACE INTO embedding_cache (key, model, value, ts) VALUES (?, ?, ?, ?)",
            (key, model, encode_vector(vector), int(time.time())),
        )
        return vector

    def is_available(self) -> bool:
        return self.embedder.is_available()

    def purge(self, model: Optional[str] = None) -> int:
        """
        Delete cached embeddings.

        Args:
            model: Only purge entries for this model (default: all)

        Returns:
            Number of entries deleted
        """
        if model is None:
            cursor = self.db.execute("DELETE FROM embedding_cache")
        else:
            cursor = self.db.execute("DELETE FROM embedding_cache WHERE model = ?", (model,))
        return cursor.rowcount

    def get_stats(self) -> dict:
        """Get cache statistics."""
        total = self.hits + self.misses
        hit_rate = self.hits / total if total > 0 else 0.0

        return {
            "hits": self.hits,
            "misses": self.misses,
            "total": total,
            "hit_rate": hit_rate,
        }

    def reset_stats(self) -> None:
        """Reset cache statistics."""
        self.hits = 0
        self.misses = 0

"""
Persistence layer for persona memories.

Provides:
- SQLite database wrapper with versioned migrations
- Fixed-width float32 vector encoding
- Stable hashing for content-addressable caching
- SQLite-backed embedding cache
"""

from .hashing import stable_hash, embedding_key
from .vectors import encode_vector, decode_vector
from .migrations import MIGRATIONS, Migration, apply_migrations, current_version
from .sqlite_store import SQLiteDatabase
from .embedding_cache import CachingEmbedder

__all__ = [
    "stable_hash",
    "embedding_key",
    "encode_vector",
    "decode_vector",
    "MIGRATIONS",
    "Migration",
    "apply_migrations",
    "current_version",
    "SQLiteDatabase",
    "CachingEmbedder",
]

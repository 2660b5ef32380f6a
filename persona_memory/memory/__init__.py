"""
Persona semantic memory.

Provides:
- Memory classification and importance scoring
- Deduplicated storage with reinforcement
- Similarity search with composite relevance scoring
- Time-based decay and consolidation of near-duplicates
- Core-memory extraction, statistics, export/import
"""

from .schemas import (
    MemoryRecord,
    MemoryType,
    MEMORY_TYPES,
    CORE_MEMORY_TYPES,
    MemorySearchResult,
    ConsolidationResult,
    MemoryStats,
    MemoryStatus,
    PersonaMemorySettings,
    clamp_importance,
)
from .classifier import classify_memory_type, score_importance, TYPE_WEIGHTS
from .decay import decay_importance, recency_bonus
from .recall import cosine_similarity, rank_memories, find_most_similar, format_memory_context
from .store import MemoryStore
from .consolidation import MemoryConsolidator, cluster_memories, merge_cluster
from .engine import MemoryEngine, create_memory_engine

__all__ = [
    "MemoryRecord",
    "MemoryType",
    "MEMORY_TYPES",
    "CORE_MEMORY_TYPES",
    "MemorySearchResult",
    "ConsolidationResult",
    "MemoryStats",
    "MemoryStatus",
    "PersonaMemorySettings",
    "clamp_importance",
    "classify_memory_type",
    "score_importance",
    "TYPE_WEIGHTS",
    "decay_importance",
    "recency_bonus",
    "cosine_similarity",
    "rank_memories",
    "find_most_similar",
    "format_memory_context",
    "MemoryStore",
    "MemoryConsolidator",
    "cluster_memories",
    "merge_cluster",
    "MemoryEngine",
    "create_memory_engine",
]

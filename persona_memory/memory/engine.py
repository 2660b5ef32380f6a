"""
Persona memory engine.

Single entry point for storing, searching, maintaining and exporting the
memories of one (owner, persona) pair. Embedding failures never escape this
class; store failures (StoreUnavailableError) always do.
"""

import logging
import time
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Union

from pydantic import ValidationError

from persona_memory.config.settings import EngineSettings, Settings, load_settings
from persona_memory.embeddings.base import BaseEmbedder
from persona_memory.embeddings.ollama_embedder import OllamaEmbedder
from persona_memory.embeddings.registry import EmbeddingModel, list_embedding_models
from persona_memory.errors import InvalidMemoryError, StoreUnavailableError
from persona_memory.persist.embedding_cache import CachingEmbedder
from persona_memory.persist.vectors import is_storable_vector
from persona_memory.telemetry import timed_operation
from .classifier import classify_memory_type, score_importance
from .consolidation import MemoryConsolidator
from .decay import SECONDS_PER_DAY, decay_importance
from .recall import find_most_similar, format_memory_context, rank_memories
from .schemas import (
    CORE_MEMORY_TYPES,
    ConsolidationResult,
    MemoryRecord,
    MemorySearchResult,
    MemoryStats,
    MemoryStatus,
    MemoryType,
    PersonaMemorySettings,
    clamp_importance,
)
from .store import MemoryStore

logger = logging.getLogger(__name__)

REINFORCEMENT_BOOST = 0.05
APPROX_BYTES_PER_MEMORY = 1024


class MemoryEngine:
    """
    Semantic memory for chat personas.

    Provides:
    - Classified, scored, deduplicated writes
    - Similarity search with composite relevance and reinforcement
    - Decay, consolidation and retention maintenance passes
    - Core-memory extraction, statistics, export/import
    """

    def __init__(
        self,
        store: Optional[MemoryStore],
        embedder: BaseEmbedder,
        settings: Optional[EngineSettings] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize memory engine.

        Args:
            store: Memory store (None makes every store-backed call raise
                StoreUnavailableError)
            embedder: Embedding backend
            settings: Thresholds and defaults
            clock: Time source returning unix seconds
        """
        self.store = store
        self.embedder = embedder
        self.settings = settings or EngineSettings()
        self.clock = clock

    def _require_store(self) -> MemoryStore:
        if self.store is None:
            raise StoreUnavailableError("Memory store not configured")
        return self.store

    def _embed(self, text: str, model: Optional[str]) -> Optional[List[float]]:
        model = model or self.settings.default_embedding_model
        try:
            vector = self.embedder.embed(text, model)
        except Exception as e:
            logger.error(f"Embedder raised for model {model}: {e}")
            return None
        if vector is None:
            logger.warning(f"Failed to generate embedding with model {model}")
        elif not is_storable_vector(vector):
            logger.warning(f"Discarding non-finite embedding from model {model}")
            return None
        return vector

    def get_embedding_models(self) -> List[EmbeddingModel]:
        """Known embedding models."""
        return list_embedding_models()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def store_memory(
        self,
        owner_id: str,
        persona_id: str,
        content: str,
        model: Optional[str] = None,
        context: Optional[str] = None,
        importance_score: Optional[float] = None,
        memory_type: Optional[MemoryType] = None,
    ) -> MemoryRecord:
        """
        Store a memory, or reinforce an existing near-duplicate.

        Args:
            owner_id: Owning user
            persona_id: Persona
            content: Memory text
            model: Embedding model (default from settings)
            context: Optional annotation
            importance_score: Override for the computed importance
            memory_type: Override for the classified type

        Returns:
            The new record, or the reinforced existing record on a
            duplicate match

        Raises:
            InvalidMemoryError: If content is empty
            StoreUnavailableError: If the store is unavailable
        """
        content = (content or "").strip()
        if not content:
            raise InvalidMemoryError("Memory content must not be empty")

        store = self._require_store()

        with timed_operation("store_memory", owner_id, persona_id) as extra:
            if memory_type is None:
                memory_type = classify_memory_type(content)
            if importance_score is None:
                importance_score = score_importance(content, memory_type)

            embedding = self._embed(content, model)

            if embedding is not None:
                candidates = store.scan(owner_id, persona_id, embedded_only=True)
                match = find_most_similar(embedding, candidates, self.settings.dedup_threshold)
                if match is not None:
                    existing, similarity = match
                    extra.update(deduplicated=True, memory_id=existing.id, similarity=round(similarity, 4))
                    reinforced = self.reinforce(owner_id, persona_id, existing.id)
                    return reinforced or existing

            record = MemoryRecord(
                owner_id=owner_id,
                persona_id=persona_id,
                content=content,
                embedding=embedding,
                timestamp=self.clock(),
                context=context,
                importance_score=importance_score,
                memory_type=memory_type,
            )
            store.insert(record)
            extra.update(
                deduplicated=False,
                memory_id=record.id,
                memory_type=memory_type,
                embedded=embedding is not None,
            )
            return record

    def reinforce(self, owner_id: str, persona_id: str, memory_id: str) -> Optional[MemoryRecord]:
        """
        Mark a memory as recalled: bump access count, last access and
        importance (+0.05, capped at 1.0).

        Returns:
            Updated record, or None if not found in this scope
        """
        return self._require_store().reinforce(
            owner_id, persona_id, memory_id, accessed_at=self.clock(), boost=REINFORCEMENT_BOOST
        )

    def update_memory_importance(
        self,
        owner_id: str,
        persona_id: str,
        memory_id: str,
        importance_score: float,
    ) -> bool:
        """
        Set a memory's importance (clamped to [0.1, 1.0]).

        Returns:
            True if updated, False if not found in this scope
        """
        return self._require_store().update_fields(
            owner_id, persona_id, memory_id, importance_score=clamp_importance(importance_score)
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def search_memories(
        self,
        owner_id: str,
        persona_id: str,
        query: str,
        model: Optional[str] = None,
        top_k: Optional[int] = None,
        min_similarity: Optional[float] = None,
        memory_types: Optional[Sequence[MemoryType]] = None,
    ) -> List[MemorySearchResult]:
        """
        Semantic search over a persona's memories.

        Every returned memory is reinforced. If the query cannot be
        embedded, returns an empty list.

        Args:
            owner_id: Owning user
            persona_id: Persona
            query: Query text
            model: Embedding model (default from settings)
            top_k: Maximum results (default from settings)
            min_similarity: Minimum cosine similarity (default from settings)
            memory_types: Restrict to these types

        Returns:
            Ranked MemorySearchResult list
        """
        store = self._require_store()
        top_k = self.settings.default_top_k if top_k is None else top_k
        min_similarity = self.settings.default_min_similarity if min_similarity is None else min_similarity

        with timed_operation("search_memories", owner_id, persona_id) as extra:
            query_vector = self._embed(query, model) if query and query.strip() else None
            if query_vector is None:
                extra.update(results=0, embedded=False)
                return []

            candidates = store.scan(owner_id, persona_id, memory_types=memory_types, embedded_only=True)
            results = rank_memories(query_vector, candidates, self.clock(), top_k, min_similarity)

            reinforced_results = []
            for result in results:
                reinforced = self.reinforce(owner_id, persona_id, result.entry.id)
                if reinforced is not None:
                    result = result.model_copy(update={"entry": reinforced})
                reinforced_results.append(result)

            extra.update(results=len(reinforced_results), candidates=len(candidates))
            return reinforced_results

    def get_memories(
        self,
        owner_id: str,
        persona_id: str,
        limit: int = 100,
        offset: int = 0,
    ) -> List[MemoryRecord]:
        """Page through a persona's memories, newest first."""
        return self._require_store().scan(owner_id, persona_id, order_by="newest", limit=limit, offset=offset)

    def get_memory_count(self, owner_id: str, persona_id: str) -> int:
        return self._require_store().count(owner_id, persona_id)

    def get_memory_status(self, owner_id: str, persona_id: str) -> MemoryStatus:
        """Memory count and approximate size (1 KiB per memory)."""
        count = self.get_memory_count(owner_id, persona_id)
        size_mb = round(count * APPROX_BYTES_PER_MEMORY / (1024 * 1024), 2)
        return MemoryStatus(
            status="active" if count else "wiped",
            memory_count=count,
            size_mb=size_mb,
        )

    def get_memory_stats(self, owner_id: str, persona_id: str) -> MemoryStats:
        """Counts by type, average importance, time range and access totals."""
        records = self._require_store().scan(owner_id, persona_id, order_by="oldest")
        if not records:
            return MemoryStats()

        count_by_type: Dict[str, int] = {}
        for record in records:
            count_by_type[record.memory_type] = count_by_type.get(record.memory_type, 0) + 1

        return MemoryStats(
            total_count=len(records),
            count_by_type=count_by_type,
            average_importance=sum(r.importance_score for r in records) / len(records),
            oldest_timestamp=min(r.timestamp for r in records),
            newest_timestamp=max(r.timestamp for r in records),
            total_access_count=sum(r.access_count for r in records),
            embedded_count=sum(1 for r in records if r.has_embedding),
        )

    def get_core_memories(self, owner_id: str, persona_id: str, limit: int = 10) -> List[MemoryRecord]:
        """
        High-importance facts, preferences and instructions.

        Ordered by importance, then access count; no embedding required.
        """
        return self._require_store().scan(
            owner_id,
            persona_id,
            memory_types=CORE_MEMORY_TYPES,
            min_importance=self.settings.core_importance_threshold,
            order_by="core",
            limit=limit,
        )

    def build_memory_context(
        self,
        owner_id: str,
        persona_id: str,
        query: Optional[str] = None,
        model: Optional[str] = None,
        top_k: Optional[int] = None,
        core_limit: int = 5,
    ) -> str:
        """
        Prompt block with core memories followed by query-relevant ones.

        Returns:
            Formatted context, "" when there is nothing to inject
        """
        records = self.get_core_memories(owner_id, persona_id, core_limit)
        seen = {r.id for r in records}

        if query:
            for result in self.search_memories(owner_id, persona_id, query, model=model, top_k=top_k):
                if result.entry.id not in seen:
                    records.append(result.entry)
                    seen.add(result.entry.id)

        return format_memory_context(records)

    # ------------------------------------------------------------------
    # Bulk operations
    # ------------------------------------------------------------------

    def wipe_memories(self, owner_id: str, persona_id: str) -> int:
        """Delete every memory of a persona; returns the number deleted."""
        with timed_operation("wipe_memories", owner_id, persona_id) as extra:
            deleted = self._require_store().delete_scope(owner_id, persona_id)
            extra["deleted"] = deleted
            return deleted

    def export_memories(self, owner_id: str, persona_id: str) -> List[MemoryRecord]:
        """All memories of a persona, oldest first, embeddings included."""
        return self._require_store().scan(owner_id, persona_id, order_by="oldest")

    def import_memories(
        self,
        memories: Iterable[Union[MemoryRecord, Dict[str, Any]]],
        target_owner_id: str,
    ) -> int:
        """
        Import exported memories under another owner.

        Malformed records and id collisions are logged and skipped.

        Returns:
            Number of memories actually imported
        """
        store = self._require_store()
        imported = 0

        for item in memories:
            try:
                data = item.model_dump() if isinstance(item, MemoryRecord) else dict(item)
                data["owner_id"] = target_owner_id
                record = MemoryRecord.model_validate(data)
                store.insert(record)
                imported += 1
            except (ValidationError, InvalidMemoryError, ValueError, TypeError, OverflowError) as e:
                logger.warning(f"Failed to import memory: {e}")
                continue

        logger.info(f"Imported {imported} memories for owner {target_owner_id}")
        return imported

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def cleanup_old_memories(self, owner_id: str, persona_id: str, retention_days: float) -> int:
        """
        Delete memories older than `retention_days` whose importance is
        below 0.7. Important memories survive regardless of age.

        Returns:
            Number of memories deleted
        """
        with timed_operation("cleanup_old_memories", owner_id, persona_id) as extra:
            cutoff = self.clock() - retention_days * SECONDS_PER_DAY
            deleted = self._require_store().delete_older_than(
                owner_id, persona_id, cutoff, self.settings.cleanup_importance_threshold
            )
            extra.update(deleted=deleted, retention_days=retention_days)
            return deleted

    def apply_global_decay(self, owner_id: str, persona_id: str) -> int:
        """
        Persist decayed importance for every memory of a persona.

        Each record's decay_factor becomes new/old importance.

        Returns:
            Number of memories updated
        """
        store = self._require_store()
        with timed_operation("apply_global_decay", owner_id, persona_id) as extra:
            now = self.clock()
            records = store.scan(owner_id, persona_id, order_by="oldest")

            with store.transaction():
                for record in records:
                    decayed = decay_importance(
                        record.importance_score,
                        record.timestamp,
                        record.access_count,
                        record.last_accessed_at,
                        now,
                    )
                    store.update_fields(
                        owner_id,
                        persona_id,
                        record.id,
                        importance_score=decayed,
                        decay_factor=decayed / record.importance_score,
                    )

            extra["updated"] = len(records)
            return len(records)

    def consolidate_memories(
        self,
        owner_id: str,
        persona_id: str,
        model: Optional[str] = None,
        similarity_threshold: Optional[float] = None,
    ) -> ConsolidationResult:
        """
        Merge clusters of near-duplicate memories.

        Args:
            owner_id: Owning user
            persona_id: Persona
            model: Embedding model for the merged contents
            similarity_threshold: Minimum similarity to a cluster seed
                (default from settings)

        Returns:
            ConsolidationResult with counts and new record ids
        """
        store = self._require_store()
        threshold = (
            self.settings.consolidation_threshold if similarity_threshold is None else similarity_threshold
        )
        consolidator = MemoryConsolidator(store, _SafeEmbedder(self))

        with timed_operation("consolidate_memories", owner_id, persona_id) as extra:
            result = consolidator.consolidate(
                owner_id,
                persona_id,
                model or self.settings.default_embedding_model,
                threshold,
                self.clock(),
            )
            extra.update(
                groups=result.consolidated_groups,
                deleted=result.deleted_count,
                threshold=threshold,
            )
            return result

    def apply_retention_policy(
        self,
        owner_id: str,
        persona_id: str,
        settings: PersonaMemorySettings,
    ) -> int:
        """
        Enforce a persona's retention settings.

        Runs age-based cleanup when auto_cleanup is on, then trims the
        least important (oldest first) memories above max_memories.

        Returns:
            Number of memories deleted
        """
        if not settings.enabled:
            return 0

        store = self._require_store()
        deleted = 0
        if settings.auto_cleanup:
            deleted += self.cleanup_old_memories(owner_id, persona_id, settings.retention_days)

        surplus = store.count(owner_id, persona_id) - settings.max_memories
        if surplus > 0:
            victims = store.scan(owner_id, persona_id, order_by="retention", limit=surplus)
            deleted += store.delete_many(owner_id, persona_id, [r.id for r in victims])

        return deleted


class _SafeEmbedder(BaseEmbedder):
    """Routes consolidation embeddings through the engine's failure handling."""

    def __init__(self, engine: MemoryEngine):
        self.engine = engine

    def embed(self, text: str, model: str) -> Optional[List[float]]:
        return self.engine._embed(text, model)

    def is_available(self) -> bool:
        return self.engine.embedder.is_available()


def create_memory_engine(settings: Optional[Settings] = None) -> MemoryEngine:
    """
    Build an engine from settings: SQLite store plus a cached Ollama embedder.

    Args:
        settings: Application settings (default: load_settings())

    Returns:
        Configured MemoryEngine
    """
    settings = settings or load_settings()
    store = MemoryStore(db_path=settings.storage.db_path)
    embedder = CachingEmbedder(
        OllamaEmbedder(base_url=settings.ollama.base_url, timeout=settings.ollama.timeout),
        store.db,
    )
    return MemoryEngine(store, embedder, settings.engine)

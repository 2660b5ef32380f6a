"""
Memory consolidation.

Merges clusters of near-duplicate memories into single records. Clustering
is greedy and seeded in importance order: each unprocessed record collects
every other unprocessed record whose similarity to it reaches the threshold.
Membership is decided against the seed only, so results depend on seed order
when three or more memories are only partly similar to each other.
"""

import logging
from collections import Counter
from typing import List, Optional, Sequence, Tuple

from persona_memory.embeddings.base import BaseEmbedder
from .recall import cosine_similarity
from .schemas import ConsolidationResult, MemoryRecord, clamp_importance
from .store import MemoryStore

logger = logging.getLogger(__name__)

IMPORTANCE_BOOST = 1.1


def seed_order(records: Sequence[MemoryRecord]) -> List[MemoryRecord]:
    """Most important first, most recent first among equals."""
    return sorted(records, key=lambda r: (-r.importance_score, -r.timestamp))


def cluster_memories(
    records: Sequence[MemoryRecord],
    threshold: float,
) -> List[List[MemoryRecord]]:
    """
    Greedily group similar memories.

    Args:
        records: Embedded memories in seed order
        threshold: Minimum similarity to the seed for membership

    Returns:
        Clusters with at least two members, seed first; singletons omitted
    """
    processed = set()
    clusters = []

    for i, seed in enumerate(records):
        if seed.id in processed or not seed.has_embedding:
            continue
        processed.add(seed.id)

        cluster = [seed]
        for candidate in records[i + 1:]:
            if candidate.id in processed or not candidate.has_embedding:
                continue
            if cosine_similarity(seed.embedding, candidate.embedding) >= threshold:
                cluster.append(candidate)
                processed.add(candidate.id)

        if len(cluster) > 1:
            clusters.append(cluster)

    return clusters


def merge_content(cluster: Sequence[MemoryRecord]) -> str:
    """Longest content wins (first on ties); larger clusters get a count note."""
    base = max(cluster, key=lambda r: len(r.content)).content
    if len(cluster) > 2:
        return f"{base} [consolidated from {len(cluster)} memories]"
    return base


def merge_type(cluster: Sequence[MemoryRecord]) -> str:
    """Majority memory type; ties go to the type seen first."""
    counts = Counter(r.memory_type for r in cluster)
    # Counter preserves insertion order, max() returns the first maximum
    return max(counts, key=counts.get)


def merge_cluster(
    cluster: Sequence[MemoryRecord],
    now: float,
    embedding: Optional[List[float]] = None,
) -> MemoryRecord:
    """
    Build the record that replaces a cluster.

    Args:
        cluster: Two or more memories from the same persona
        now: Merge time, used as timestamp and last access
        embedding: Fresh embedding of the merged content, if available

    Returns:
        New MemoryRecord with consolidated_from set to the member ids
    """
    seed = cluster[0]
    mean_importance = sum(r.importance_score for r in cluster) / len(cluster)

    return MemoryRecord(
        owner_id=seed.owner_id,
        persona_id=seed.persona_id,
        content=merge_content(cluster),
        embedding=embedding,
        timestamp=now,
        context=f"consolidated from {len(cluster)} memories",
        importance_score=clamp_importance(mean_importance * IMPORTANCE_BOOST),
        memory_type=merge_type(cluster),
        access_count=sum(r.access_count for r in cluster),
        last_accessed_at=now,
        decay_factor=1.0,
        consolidated_from=[r.id for r in cluster],
    )


class MemoryConsolidator:
    """
    Runs consolidation passes over one persona's memories.

    Merged records are built (and re-embedded) first; inserts and deletes
    are then applied in a single transaction.
    """

    def __init__(self, store: MemoryStore, embedder: BaseEmbedder):
        """
        Initialize consolidator.

        Args:
            store: Memory store
            embedder: Embedder for the merged contents
        """
        self.store = store
        self.embedder = embedder

    def plan(
        self,
        owner_id: str,
        persona_id: str,
        model: str,
        threshold: float,
        now: float,
    ) -> List[Tuple[List[MemoryRecord], MemoryRecord]]:
        """
        Compute clusters and their merged replacements without writing.

        Returns:
            List of (members, merged_record) pairs
        """
        records = self.store.scan(owner_id, persona_id, embedded_only=True, order_by="importance")
        clusters = cluster_memories(seed_order(records), threshold)

        plan = []
        for cluster in clusters:
            merged = merge_cluster(cluster, now)
            embedding = self.embedder.embed(merged.content, model)
            if embedding is None:
                logger.warning(
                    f"Re-embedding failed for merged memory {merged.id}; storing it without an embedding"
                )
            else:
                merged = merged.model_copy(update={"embedding": embedding})
            plan.append((cluster, merged))
        return plan

    def consolidate(
        self,
        owner_id: str,
        persona_id: str,
        model: str,
        threshold: float,
        now: float,
    ) -> ConsolidationResult:
        """
        Merge near-duplicate memories for a persona.

        Returns:
            ConsolidationResult with group and deletion counts
        """
        plan = self.plan(owner_id, persona_id, model, threshold, now)
        if not plan:
            return ConsolidationResult()

        to_delete: List[str] = []
        created: List[str] = []
        with self.store.transaction():
            for members, merged in plan:
                self.store.insert(merged)
                created.append(merged.id)
                to_delete.extend(m.id for m in members)
            deleted = self.store.delete_many(owner_id, persona_id, to_delete)

        return ConsolidationResult(
            consolidated_groups=len(plan),
            deleted_count=deleted,
            created_ids=created,
        )

"""
Memory recall with semantic scoring.

Ranks embedded memories against a query vector.

Scoring:
- Cosine similarity (50%)
- Decayed importance (25%)
- Recency bonus: +0.1 under 24h, +0.05 under 7 days
"""

from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np

from .decay import decay_importance, recency_bonus
from .schemas import MemoryRecord, MemorySearchResult

SIMILARITY_WEIGHT = 0.5
IMPORTANCE_WEIGHT = 0.25


def cosine_similarity(a: Optional[Sequence[float]], b: Optional[Sequence[float]]) -> float:
    """
    Cosine similarity in [-1, 1].

    Returns 0.0 when either vector is missing, empty, zero-norm or
    non-finite, or the lengths differ.
    """
    if a is None or b is None:
        return 0.0

    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.ndim != 1 or va.shape != vb.shape or va.size == 0:
        return 0.0
    if not (np.isfinite(va).all() and np.isfinite(vb).all()):
        return 0.0

    norm_a = np.linalg.norm(va)
    norm_b = np.linalg.norm(vb)
    if norm_a == 0 or norm_b == 0:
        return 0.0

    similarity = np.dot(va, vb) / (norm_a * norm_b)
    if not np.isfinite(similarity):
        return 0.0
    return float(np.clip(similarity, -1.0, 1.0))


def relevance_score(record: MemoryRecord, similarity: float, now: float) -> float:
    """Composite relevance of one memory for a query."""
    decayed = decay_importance(
        record.importance_score,
        record.timestamp,
        record.access_count,
        record.last_accessed_at,
        now,
    )
    return (
        SIMILARITY_WEIGHT * similarity
        + IMPORTANCE_WEIGHT * decayed
        + recency_bonus(record.timestamp, now)
    )


def rank_memories(
    query_vector: Sequence[float],
    candidates: Iterable[MemoryRecord],
    now: float,
    top_k: int = 5,
    min_similarity: float = 0.3,
) -> List[MemorySearchResult]:
    """
    Score and rank candidate memories for a query vector.

    Candidates without an embedding or below `min_similarity` are dropped.

    Returns:
        Up to `top_k` results sorted by relevance, ranks starting at 1
    """
    scored = []
    for record in candidates:
        if not record.has_embedding:
            continue

        similarity = cosine_similarity(query_vector, record.embedding)
        if similarity < min_similarity:
            continue

        scored.append((relevance_score(record, similarity, now), similarity, record))

    # Stable sort keeps scan order for equal scores
    scored.sort(key=lambda item: item[0], reverse=True)

    return [
        MemorySearchResult(
            entry=record,
            similarity_score=similarity,
            relevance_score=score,
            relevance_rank=rank,
        )
        for rank, (score, similarity, record) in enumerate(scored[:max(0, top_k)], start=1)
    ]


def find_most_similar(
    vector: Sequence[float],
    candidates: Iterable[MemoryRecord],
    threshold: float,
) -> Optional[Tuple[MemoryRecord, float]]:
    """
    Find the candidate most similar to `vector` whose similarity strictly
    exceeds `threshold`.

    Returns:
        (record, similarity) or None if nothing clears the threshold
    """
    best: Optional[Tuple[MemoryRecord, float]] = None
    for record in candidates:
        if not record.has_embedding:
            continue
        similarity = cosine_similarity(vector, record.embedding)
        if similarity > threshold and (best is None or similarity > best[1]):
            best = (record, similarity)
    return best


def format_memory_context(records: Sequence[MemoryRecord], header: str = "[PERSONA MEMORIES]") -> str:
    """
    Format memories for injection into a prompt.

    Args:
        records: Memories in the order they should appear
        header: First line of the block

    Returns:
        Formatted context string ("" when there are no records)
    """
    if not records:
        return ""

    lines = [header]
    for record in records:
        lines.append(f"- ({record.memory_type}) {record.content}")
    lines.append("")

    return "\n".join(lines)

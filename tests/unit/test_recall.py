"""
Unit tests for similarity, ranking and memory context formatting.

Tests:
- cosine_similarity(): symmetry, self-similarity, degenerate vectors
- rank_memories(): thresholding, composite relevance, top-k, ranks
- find_most_similar(): strict threshold, best match
- format_memory_context(): prompt block layout
"""

import pytest

from persona_memory.memory.decay import SECONDS_PER_DAY
from persona_memory.memory.recall import (
    cosine_similarity,
    find_most_similar,
    format_memory_context,
    rank_memories,
    relevance_score,
)


# ============================================================================
# Cosine Similarity Tests
# ============================================================================

def test_cosine_self_similarity():
    v = [0.3, -1.2, 4.0, 0.01]
    assert cosine_similarity(v, v) == pytest.approx(1.0)


def test_cosine_symmetric():
    a = [1.0, 2.0, 3.0]
    b = [-2.0, 0.5, 1.0]
    assert cosine_similarity(a, b) == pytest.approx(cosine_similarity(b, a))


def test_cosine_orthogonal_and_opposite():
    assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)
    assert cosine_similarity([1.0, 0.0], [-1.0, 0.0]) == pytest.approx(-1.0)


@pytest.mark.parametrize(
    "a, b",
    [
        (None, [1.0]),
        ([1.0], None),
        ([], []),
        ([0.0, 0.0], [1.0, 1.0]),
        ([1.0, 2.0], [1.0, 2.0, 3.0]),
    ],
)
def test_cosine_degenerate_inputs_are_zero(a, b):
    assert cosine_similarity(a, b) == 0.0


def test_cosine_stays_in_range():
    a = [1e-8, 1e-8]
    assert -1.0 <= cosine_similarity(a, a) <= 1.0


@pytest.mark.parametrize(
    "a, b",
    [
        ([float("inf"), 1.0], [1.0, 1.0]),
        ([1.0, 1.0], [float("nan"), 1.0]),
    ],
)
def test_cosine_non_finite_is_zero(a, b):
    assert cosine_similarity(a, b) == 0.0


# ============================================================================
# Ranking Tests
# ============================================================================

def test_relevance_score_composite(make_record, clock):
    """0.5 * similarity + 0.25 * decayed importance + recency bonus."""
    record = make_record(embedding=[1.0, 0.0], importance_score=0.8)
    assert relevance_score(record, 1.0, clock.now) == pytest.approx(0.5 + 0.2 + 0.1)


def test_rank_filters_by_similarity(make_record, clock):
    close = make_record(content="close", embedding=[1.0, 0.0])
    partial = make_record(content="partial", embedding=[0.6, 0.8])
    far = make_record(content="far", embedding=[0.0, 1.0])
    unembedded = make_record(content="unembedded")

    results = rank_memories([1.0, 0.0], [far, partial, unembedded, close], clock.now)

    assert [r.entry.content for r in results] == ["close", "partial"]
    assert [r.relevance_rank for r in results] == [1, 2]
    assert results[1].similarity_score == pytest.approx(0.6)


def test_rank_respects_top_k(make_record, clock):
    records = [make_record(content=f"m{i}", embedding=[1.0, i * 0.01]) for i in range(10)]
    results = rank_memories([1.0, 0.0], records, clock.now, top_k=3)
    assert len(results) == 3
    assert results[0].relevance_score >= results[1].relevance_score >= results[2].relevance_score


def test_rank_zero_top_k(make_record, clock):
    records = [make_record(embedding=[1.0, 0.0])]
    assert rank_memories([1.0, 0.0], records, clock.now, top_k=0) == []


def test_rank_drops_non_finite_vectors(make_record, clock):
    """A corrupted stored vector scores 0 and falls under the threshold."""
    corrupted = make_record(embedding=[1.0, 1.0]).model_copy(update={"embedding": [float("inf"), 1.0]})

    assert rank_memories([1.0, 1.0], [corrupted], clock.now, min_similarity=0.9) == []


def test_rank_prefers_recent_over_stale(make_record, clock):
    """Same similarity and importance: the fresher memory ranks first."""
    stale = make_record(content="stale", embedding=[1.0, 0.0], timestamp=clock.now - 30 * SECONDS_PER_DAY)
    fresh = make_record(content="fresh", embedding=[1.0, 0.0], timestamp=clock.now - 3600)

    results = rank_memories([1.0, 0.0], [stale, fresh], clock.now)

    assert [r.entry.content for r in results] == ["fresh", "stale"]


def test_rank_importance_can_outweigh_similarity(make_record, clock):
    strong = make_record(content="important", embedding=[0.9, 0.436], importance_score=1.0)
    weak = make_record(content="trivial", embedding=[1.0, 0.0], importance_score=0.1,
                       timestamp=clock.now - 30 * SECONDS_PER_DAY)

    results = rank_memories([1.0, 0.0], [weak, strong], clock.now)

    assert results[0].entry.content == "important"


# ============================================================================
# Duplicate Detection Tests
# ============================================================================

def test_find_most_similar_picks_best(make_record):
    a = make_record(content="a", embedding=[1.0, 0.1])
    b = make_record(content="b", embedding=[1.0, 0.0])
    match = find_most_similar([1.0, 0.0], [a, b], threshold=0.85)
    assert match is not None
    assert match[0].content == "b"
    assert match[1] == pytest.approx(1.0)


def test_find_most_similar_threshold_is_strict(make_record):
    record = make_record(embedding=[1.0, 0.0])
    assert find_most_similar([1.0, 0.0], [record], threshold=1.0) is None


def test_find_most_similar_none_below_threshold(make_record):
    record = make_record(embedding=[0.0, 1.0])
    assert find_most_similar([1.0, 0.0], [record], threshold=0.85) is None


def test_find_most_similar_skips_unembedded(make_record):
    record = make_record()
    assert find_most_similar([1.0, 0.0], [record], threshold=0.0) is None


# ============================================================================
# Context Formatting Tests
# ============================================================================

def test_format_memory_context(make_record):
    records = [
        make_record(content="My name is Alex", memory_type="fact"),
        make_record(content="I like hiking", memory_type="preference"),
    ]
    text = format_memory_context(records)
    assert text.splitlines() == [
        "[PERSONA MEMORIES]",
        "- (fact) My name is Alex",
        "- (preference) I like hiking",
    ]


def test_format_memory_context_empty():
    assert format_memory_context([]) == ""

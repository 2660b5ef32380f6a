"""
Unit tests for memory consolidation.

Records are inserted straight into the store with hand-made vectors so that
near-duplicates exist without going through write-time deduplication.
"""

import pytest

from persona_memory.errors import StoreUnavailableError
from persona_memory.memory.consolidation import (
    cluster_memories,
    merge_cluster,
    merge_content,
    merge_type,
    seed_order,
)

OWNER = "user_1"
PERSONA = "persona_1"


@pytest.fixture
def seeded(engine, make_record):
    """Two near-duplicates about hiking plus one unrelated memory."""
    records = {
        "long": make_record(
            content="I like hiking in the mountains",
            memory_type="preference",
            importance_score=0.8,
            access_count=2,
            embedding=[1.0, 0.0, 0.0],
        ),
        "short": make_record(
            content="I like hiking",
            memory_type="preference",
            importance_score=0.6,
            access_count=1,
            embedding=[0.95, 0.05, 0.0],
        ),
        "other": make_record(
            content="My name is Alex",
            memory_type="fact",
            importance_score=0.5,
            access_count=7,
            embedding=[0.0, 1.0, 0.0],
        ),
    }
    for record in records.values():
        engine.store.insert(record)
    return records


# ============================================================================
# Pure Helper Tests
# ============================================================================

def test_seed_order(make_record, clock):
    low = make_record(content="low", importance_score=0.3)
    high_old = make_record(content="high old", importance_score=0.9, timestamp=clock.now - 10)
    high_new = make_record(content="high new", importance_score=0.9)

    ordered = seed_order([low, high_old, high_new])

    assert [r.content for r in ordered] == ["high new", "high old", "low"]


def test_cluster_membership_decided_by_seed(make_record):
    """Single-link to the seed only: results depend on seed order."""
    seed = make_record(content="seed", embedding=[1.0, 0.0])
    near = make_record(content="near", embedding=[0.8, 0.6])
    far = make_record(content="far", embedding=[0.28, 0.96])

    clusters = cluster_memories([seed, near, far], threshold=0.75)

    assert [[r.content for r in c] for c in clusters] == [["seed", "near"]]

    reordered = cluster_memories([near, seed, far], threshold=0.75)
    assert [[r.content for r in c] for c in reordered] == [["near", "seed", "far"]]


def test_cluster_skips_unembedded(make_record):
    a = make_record(content="a", embedding=[1.0, 0.0])
    b = make_record(content="b")
    assert cluster_memories([a, b], threshold=0.0) == []


def test_merge_content_longest_wins(make_record):
    cluster = [make_record(content="short"), make_record(content="much longer text")]
    assert merge_content(cluster) == "much longer text"


def test_merge_content_notes_large_clusters(make_record):
    cluster = [make_record(content=c) for c in ("aa", "a", "aaa")]
    assert merge_content(cluster) == "aaa [consolidated from 3 memories]"


def test_merge_type_majority_and_ties(make_record):
    assert merge_type([
        make_record(memory_type="fact"),
        make_record(memory_type="preference"),
        make_record(memory_type="preference"),
    ]) == "preference"
    assert merge_type([make_record(memory_type="fact"), make_record(memory_type="preference")]) == "fact"


def test_merge_cluster_fields(make_record, clock):
    cluster = [
        make_record(content="one", importance_score=0.9, access_count=3),
        make_record(content="three", importance_score=0.95, access_count=4),
    ]

    merged = merge_cluster(cluster, clock.now, embedding=[0.5, 0.5])

    assert merged.content == "three"
    assert merged.importance_score == 1.0
    assert merged.access_count == 7
    assert merged.consolidated_from == [cluster[0].id, cluster[1].id]
    assert merged.context == "consolidated from 2 memories"
    assert merged.timestamp == clock.now
    assert merged.last_accessed_at == clock.now
    assert merged.embedding == [0.5, 0.5]
    assert merged.id not in merged.consolidated_from


# ============================================================================
# Engine Consolidation Tests
# ============================================================================

def test_consolidate_merges_near_duplicates(engine, seeded):
    result = engine.consolidate_memories(OWNER, PERSONA)

    assert result.consolidated_groups == 1
    assert result.deleted_count == 2
    assert len(result.created_ids) == 1

    records = {r.id: r for r in engine.get_memories(OWNER, PERSONA)}
    assert set(records) == {seeded["other"].id, result.created_ids[0]}

    merged = records[result.created_ids[0]]
    assert merged.content == "I like hiking in the mountains"
    assert merged.memory_type == "preference"
    assert merged.importance_score == pytest.approx(0.7 * 1.1)
    assert merged.consolidated_from == [seeded["long"].id, seeded["short"].id]
    assert merged.has_embedding


def test_consolidate_conserves_access_counts_and_ids(engine, seeded):
    before = {r.id: r.access_count for r in engine.get_memories(OWNER, PERSONA)}

    result = engine.consolidate_memories(OWNER, PERSONA)

    after = engine.get_memories(OWNER, PERSONA)
    assert sum(r.access_count for r in after) == sum(before.values())

    accounted = set()
    for record in after:
        if record.consolidated_from:
            accounted.update(record.consolidated_from)
        else:
            accounted.add(record.id)
    assert accounted == set(before)
    assert result.created_ids[0] not in before


def test_consolidate_is_idempotent(engine, seeded):
    engine.consolidate_memories(OWNER, PERSONA)
    second = engine.consolidate_memories(OWNER, PERSONA)

    assert second.consolidated_groups == 0
    assert second.deleted_count == 0
    assert engine.get_memory_count(OWNER, PERSONA) == 2


def test_consolidate_nothing_to_merge(engine, make_record):
    engine.store.insert(make_record(content="a", embedding=[1.0, 0.0]))
    engine.store.insert(make_record(content="b", embedding=[0.0, 1.0]))

    result = engine.consolidate_memories(OWNER, PERSONA)

    assert result.consolidated_groups == 0
    assert result.created_ids == []
    assert engine.get_memory_count(OWNER, PERSONA) == 2


def test_consolidate_threshold_override(engine, seeded):
    result = engine.consolidate_memories(OWNER, PERSONA, similarity_threshold=0.9999)
    assert result.consolidated_groups == 0


def test_consolidate_three_members(engine, make_record):
    for content, vector in (("I like hiking", [1.0, 0.0]), ("I love hiking", [0.99, 0.1]),
                            ("Hiking is my favourite hobby", [0.97, 0.2])):
        engine.store.insert(make_record(content=content, embedding=vector))

    result = engine.consolidate_memories(OWNER, PERSONA)

    merged = engine.store.get(OWNER, PERSONA, result.created_ids[0])
    assert merged.content == "Hiking is my favourite hobby [consolidated from 3 memories]"
    assert merged.context == "consolidated from 3 memories"
    assert len(merged.consolidated_from) == 3


def test_consolidate_reembed_failure_keeps_merge(engine, make_record):
    """The merged record is stored without an embedding if re-embedding fails."""
    engine.store.insert(make_record(content="FAIL hiking notes, long version", embedding=[1.0, 0.0]))
    engine.store.insert(make_record(content="FAIL hiking", embedding=[1.0, 0.01]))

    result = engine.consolidate_memories(OWNER, PERSONA)

    assert result.consolidated_groups == 1
    merged = engine.store.get(OWNER, PERSONA, result.created_ids[0])
    assert merged is not None
    assert not merged.has_embedding


def test_consolidate_scoped(engine, seeded, make_record):
    engine.store.insert(make_record(owner_id="user_2", content="x", embedding=[1.0, 0.0, 0.0]))
    engine.store.insert(make_record(owner_id="user_2", content="y", embedding=[1.0, 0.0, 0.0]))

    engine.consolidate_memories(OWNER, PERSONA)

    assert engine.get_memory_count("user_2", PERSONA) == 2


def test_consolidate_is_atomic(engine, seeded, monkeypatch):
    """A failure while deleting members rolls back the merged inserts."""
    before = {r.id for r in engine.get_memories(OWNER, PERSONA)}

    def fail(*args, **kwargs):
        raise StoreUnavailableError("disk full")

    monkeypatch.setattr(engine.store, "delete_many", fail)

    with pytest.raises(StoreUnavailableError):
        engine.consolidate_memories(OWNER, PERSONA)

    assert {r.id for r in engine.get_memories(OWNER, PERSONA)} == before

"""
Unit tests for memory classification and importance scoring.

Tests:
- classify_memory_type(): lexical cues and family precedence
- score_importance(): type weights, length, specificity, questions, clamping
"""

import pytest

from persona_memory.memory.classifier import TYPE_WEIGHTS, classify_memory_type, score_importance
from persona_memory.memory.schemas import MEMORY_TYPES, clamp_importance


# ============================================================================
# Classification Tests
# ============================================================================

@pytest.mark.parametrize(
    "content, expected",
    [
        ("I love jazz", "preference"),
        ("My favourite colour is green", "preference"),
        ("I'm a huge fan of Miyazaki films", "preference"),
        ("My name is Alex", "fact"),
        ("I work as a nurse", "fact"),
        ("I live in Lisbon", "fact"),
        ("I feel anxious about tomorrow", "emotional"),
        ("I'm so stressed lately", "emotional"),
        ("Please always answer in French", "instruction"),
        ("From now on call me Sam", "instruction"),
        ("Yesterday I went to the beach", "experience"),
        ("We did that three years ago", "experience"),
        ("The weather is nice", "general"),
    ],
)
def test_classify_examples(content, expected):
    """Test classification of typical statements."""
    assert classify_memory_type(content) == expected


def test_classify_preference_beats_fact():
    """Preference cues win over fact cues."""
    assert classify_memory_type("I love my job") == "preference"


def test_classify_fact_beats_emotional():
    assert classify_memory_type("My name is Alex and I feel great") == "fact"


def test_classify_emotional_beats_instruction():
    assert classify_memory_type("I feel tired, please be brief") == "emotional"


def test_classify_instruction_beats_experience():
    assert classify_memory_type("Yesterday I went out, so please never mention it") == "instruction"


def test_classify_is_case_insensitive():
    assert classify_memory_type("I LOVE JAZZ") == "preference"


def test_classify_never_infers_context():
    """The context type is only ever assigned explicitly."""
    samples = [
        "Context: this conversation is about tax returns",
        "We are in a meeting",
        "",
        "?!",
    ]
    for sample in samples:
        assert classify_memory_type(sample) != "context"


def test_classify_is_deterministic():
    content = "I prefer tea over coffee"
    assert {classify_memory_type(content) for _ in range(5)} == {"preference"}


def test_weights_cover_every_type():
    assert set(TYPE_WEIGHTS) == set(MEMORY_TYPES)
    assert TYPE_WEIGHTS["instruction"] > TYPE_WEIGHTS["fact"] > TYPE_WEIGHTS["preference"]
    assert TYPE_WEIGHTS["context"] == pytest.approx(0.4)


# ============================================================================
# Importance Scoring Tests
# ============================================================================

def test_short_content_penalty():
    """Fewer than 10 words lose 0.1 from the type weight."""
    assert score_importance("I like hiking", "preference") == pytest.approx(0.65)


def test_capitalized_word_is_specific():
    """A capitalized word past the first position adds a specificity bonus."""
    assert score_importance("My name is Alex", "fact") == pytest.approx(0.75)


def test_medium_length_no_adjustment():
    content = "the weather was pleasant enough for a long walk by the river"
    assert len(content.split()) >= 10
    assert score_importance(content, "general") == pytest.approx(0.5)


def test_specificity_signals_counted_once_each():
    """Year, capitalized word and duration each add 0.05."""
    content = "I moved to Berlin in 2019 and stayed 3 years there with friends"
    assert classify_memory_type(content) == "experience"
    assert score_importance(content, "experience") == pytest.approx(0.75)


def test_repeated_signal_counts_once():
    content = "we met in 2019 and again in 2020 and then in 2021 for the reunion"
    assert score_importance(content, "general") == pytest.approx(0.55)


def test_short_date_signal():
    content = "the appointment is on 12/05 at the clinic near the old station"
    assert score_importance(content, "general") == pytest.approx(0.55)


@pytest.mark.parametrize(
    "content, expected",
    [
        ("the parcel weighs 3.5 kg and arrives at the house next door", 0.5),
        ("the dose went from 2.25 to 10.5 units over the first visit", 0.5),
        ("the appointment is on 12.05.24 at the clinic near the station", 0.55),
    ],
)
def test_decimals_are_not_dates(content, expected):
    assert score_importance(content, "general") == pytest.approx(expected)


def test_question_bonus():
    assert score_importance("is this a good idea?", "general") == pytest.approx(0.45)


def test_long_content_bonus():
    content = " ".join(["word"] * 60)
    assert score_importance(content, "experience") == pytest.approx(0.7)


def test_score_clamped_to_max():
    content = "Please " + " ".join(["remember"] * 60) + " in 2024 for 3 days?"
    assert score_importance(content, "instruction") == 1.0


def test_score_never_below_min():
    assert score_importance("ok", "context") >= 0.1


def test_unknown_type_uses_general_weight():
    content = "the weather was pleasant enough for a long walk by the river"
    assert score_importance(content, "mystery") == pytest.approx(0.5)


# ============================================================================
# Clamping Tests
# ============================================================================

@pytest.mark.parametrize(
    "value, expected",
    [(-3.0, 0.1), (0.0, 0.1), (0.1, 0.1), (0.55, 0.55), (1.0, 1.0), (7.5, 1.0)],
)
def test_clamp_importance(value, expected):
    assert clamp_importance(value) == pytest.approx(expected)

"""
Memory classification and importance scoring.

Both functions are pure and pattern-based, so they run without an
embedding backend.
"""

import re
from typing import Dict, List, Pattern, Tuple

from .schemas import MemoryType, clamp_importance


def _compile(patterns: List[str]) -> List[Pattern[str]]:
    return [re.compile(p, re.IGNORECASE) for p in patterns]


# Pattern families in precedence order: the first family with a match wins.
TYPE_PATTERNS: Tuple[Tuple[MemoryType, List[Pattern[str]]], ...] = (
    ("preference", _compile([
        r"\bi\s+(?:really\s+|absolutely\s+|just\s+)?(?:love|like|enjoy|prefer|adore|hate|dislike|detest)\b",
        r"\bi\s+(?:don't|do not|can't|cannot)\s+(?:like|stand)\b",
        r"\bmy\s+fav(?:ou)?rite\b",
        r"\bi(?:'m|\s+am)\s+(?:a\s+|an\s+|a\s+big\s+|a\s+huge\s+)?fan\s+of\b",
        r"\bi(?:'d|\s+would)\s+rather\b",
    ])),
    ("fact", _compile([
        r"\bmy\s+name\s+is\b",
        r"\bi(?:'m|\s+am)\s+(?:a|an)\s+\w+",
        r"\bi(?:'m|\s+am)\s+\d+\s*(?:years?\s+old)?\b",
        r"\bi(?:'m|\s+am)\s+from\b",
        r"\bi\s+(?:work|worked)\s+(?:as|at|for|in)\b",
        r"\bi\s+live\s+in\b",
        r"\bi\s+was\s+born\b",
        r"\bi\s+have\s+(?:a|an|two|three|\d+)\s+\w+",
        r"\bmy\s+(?:wife|husband|partner|son|daughter|mother|father|mom|dad|brother|sister|job|birthday|email|address)\b",
        r"\bi\s+speak\b",
        r"\bi\s+studied\b",
    ])),
    ("emotional", _compile([
        r"\bi\s+(?:feel|felt)\b",
        r"\bi(?:'m|\s+am)\s+(?:so\s+|really\s+|very\s+)?(?:happy|sad|angry|upset|anxious|worried|stressed|excited|scared|afraid|lonely|frustrated|depressed|nervous|overwhelmed)\b",
        r"\b(?:feeling|emotions?|heartbroken|grateful|thrilled)\b",
    ])),
    ("instruction", _compile([
        r"\bplease\b",
        r"\b(?:always|never)\s+\w+",
        r"\b(?:don't|do not)\s+\w+",
        r"\bmake\s+sure\b",
        r"\bremember\s+(?:to|that)\b",
        r"\byou\s+(?:should|must|need\s+to)\b",
        r"\bcall\s+me\b",
        r"\bfrom\s+now\s+on\b",
    ])),
    ("experience", _compile([
        r"\b(?:yesterday|last\s+(?:night|week|month|year|weekend|summer|winter))\b",
        r"\bi\s+(?:went|visited|traveled|travelled|met|saw|tried|did|made|finished|started|moved)\b",
        r"\bi(?:'ve|\s+have)\s+(?:been|done|seen|visited|tried)\b",
        r"\bwhen\s+i\s+was\b",
        r"\b(?:\w+\s+)?(?:days|weeks|months|years)\s+ago\b",
    ])),
)

TYPE_WEIGHTS: Dict[str, float] = {
    "instruction": 0.9,
    "fact": 0.8,
    "preference": 0.75,
    "emotional": 0.7,
    "experience": 0.6,
    "general": 0.5,
    "context": 0.4,
}

SPECIFICITY_PATTERNS: Tuple[Pattern[str], ...] = (
    re.compile(r"\b(?:19|20)\d{2}\b"),                              # year
    re.compile(r"(?<![\d.])\d{1,2}(?:[/-]\d{1,2}(?:[/-]\d{2,4})?|\.\d{1,2}\.\d{2,4})(?![\d.]?\d)"),  # short date, not a decimal
    re.compile(r"(?<=\s)[A-Z][a-z]+\b"),                            # capitalized word, not first
    re.compile(
        r"\b\d+\s+(?:seconds?|minutes?|hours?|days?|weeks?|months?|years?)\b",
        re.IGNORECASE,
    ),                                                              # duration
)

LONG_CONTENT_WORDS = 50
SHORT_CONTENT_WORDS = 10


def classify_memory_type(content: str) -> MemoryType:
    """
    Classify memory content by lexical cues.

    Precedence: preference > fact > emotional > instruction > experience.
    Content matching no family is "general"; "context" is never inferred.

    Examples:
        >>> classify_memory_type("I love jazz")
        'preference'
        >>> classify_memory_type("The weather is nice")
        'general'
    """
    for memory_type, patterns in TYPE_PATTERNS:
        if any(p.search(content) for p in patterns):
            return memory_type
    return "general"


def score_importance(content: str, memory_type: MemoryType) -> float:
    """
    Score how important a memory is, in [0.1, 1.0].

    Starts from the per-type weight, then adjusts for length, specificity
    signals (+0.05 each distinct signal) and questions (+0.05).
    """
    score = TYPE_WEIGHTS.get(memory_type, TYPE_WEIGHTS["general"])

    word_count = len(content.split())
    if word_count > LONG_CONTENT_WORDS:
        score = min(1.0, score + 0.1)
    elif word_count < SHORT_CONTENT_WORDS:
        score = max(0.1, score - 0.1)

    signals = sum(1 for p in SPECIFICITY_PATTERNS if p.search(content))
    score += 0.05 * signals

    if "?" in content:
        score += 0.05

    return clamp_importance(score)

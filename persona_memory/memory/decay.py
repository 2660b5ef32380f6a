"""
Time-based importance decay.

`decay_importance` is pure: given the same inputs (including `now`) it
returns the same float, so on-read decay in search and the batch decay pass
agree exactly.
"""

import math
from typing import Optional

from .schemas import MAX_IMPORTANCE, clamp_importance

SECONDS_PER_DAY = 86400.0

# exp(-0.003 * 231) ~= 0.5
DECAY_RATE_PER_DAY = 0.003
REINFORCEMENT_PER_ACCESS = 0.02
MAX_REINFORCEMENT = 0.3
RECENCY_FLOOR = 0.3
RECENCY_FLOOR_DAYS = 7.0


def age_in_days(since: float, now: float) -> float:
    """Days elapsed from `since` to `now`, never negative."""
    return max(0.0, (now - since) / SECONDS_PER_DAY)


def decay_importance(
    importance: float,
    created_at: float,
    access_count: int,
    last_accessed_at: Optional[float],
    now: float,
) -> float:
    """
    Decay an importance score by neglect.

    Args:
        importance: Stored importance score
        created_at: Creation time (unix seconds)
        access_count: Number of retrievals/reinforcements
        last_accessed_at: Last touch time, None if never accessed
        now: Evaluation time (unix seconds)

    Returns:
        Decayed importance in [0.1, 1.0]
    """
    touched_at = last_accessed_at if last_accessed_at is not None else created_at
    days_since_touch = age_in_days(touched_at, now)

    decayed = importance * math.exp(-DECAY_RATE_PER_DAY * days_since_touch)
    decayed = min(MAX_IMPORTANCE, decayed + min(MAX_REINFORCEMENT, access_count * REINFORCEMENT_PER_ACCESS))

    if age_in_days(created_at, now) < RECENCY_FLOOR_DAYS:
        decayed = max(decayed, RECENCY_FLOOR)

    return clamp_importance(decayed)


def recency_bonus(created_at: float, now: float) -> float:
    """Search bonus for fresh memories: 0.1 under a day old, 0.05 under a week."""
    age = age_in_days(created_at, now)
    if age < 1.0:
        return 0.1
    if age < RECENCY_FLOOR_DAYS:
        return 0.05
    return 0.0

"""
Proficiency score for a card after a review.

This is a pure computation module with no I/O. The terms are summed in
Decimal so midpoints such as 0.805 round half-up instead of drifting
below the midpoint in binary floating point.
"""

import math
from decimal import ROUND_HALF_UP, Decimal

from wordwise.domain.constants import (
    LATENCY_CEILING_MS,
    MAX_MASTERY_LEVEL,
    MIN_MASTERY_LEVEL,
    SCORE_PRECISION,
    STREAK_BONUS_SATURATION,
)

_ZERO = Decimal(0)
_ONE = Decimal(1)


def compute_score(mastery_level: int, correct_streak: int, response_time_ms: float) -> float:
    """
    Blend mastery, streak and latency into a score.

    score = mastery + min(streak / 5, 1) + clamp((5000 - latency) / 5000, 0, 1)

    Inputs are clamped rather than rejected, so the result always lies in
    [mastery_level, mastery_level + 2].
    """
    base = Decimal(min(max(int(mastery_level), MIN_MASTERY_LEVEL), MAX_MASTERY_LEVEL))
    total = base + _streak_term(correct_streak) + _latency_term(response_time_ms)
    return float(total.quantize(Decimal(SCORE_PRECISION), rounding=ROUND_HALF_UP))


def streak_bonus(correct_streak: int) -> float:
    return float(_streak_term(correct_streak))


def latency_bonus(response_time_ms: float) -> float:
    """Full bonus at 0 ms, none at or beyond the ceiling. Negative latency counts as 0."""
    return float(_latency_term(response_time_ms))


def _streak_term(correct_streak: int) -> Decimal:
    streak = max(int(correct_streak), 0)
    return min(Decimal(streak) / STREAK_BONUS_SATURATION, _ONE)


def _latency_term(response_time_ms: float) -> Decimal:
    if response_time_ms is None or math.isnan(response_time_ms):
        return _ZERO
    if math.isinf(response_time_ms):
        return _ZERO if response_time_ms > 0 else _ONE
    # str() keeps the shortest decimal spelling of a float, e.g. 1975.0 -> "1975.0"
    latency = max(Decimal(str(response_time_ms)), _ZERO)
    ceiling = Decimal(LATENCY_CEILING_MS)
    return min(max((ceiling - latency) / ceiling, _ZERO), _ONE)

"""
Mastery-state classification for a single review outcome.

Builds the new classification by:
1. Advancing streak, mastery level and review count from the outcome
2. Picking the most demanding threshold row the record now satisfies
3. Falling back to a fixed streak ladder when no row matches
"""

from collections.abc import Sequence

from wordwise.domain.constants import (
    KNOWN_STREAK,
    LEARNING_STREAK,
    LONG_TERM_MAX_RESPONSE_MS,
    LONG_TERM_STREAK,
    MASTERED_STREAK,
    MAX_MASTERY_LEVEL,
    MIN_MASTERY_LEVEL,
)
from wordwise.domain.models import CardProgress, Classification, MasteryState, StateThreshold


def classify(
    previous: CardProgress,
    correct: bool,
    response_time_ms: float,
    thresholds: Sequence[StateThreshold] | None = None,
) -> Classification:
    """
    Classify a card after one review.

    An incorrect answer resets the streak but only decrements mastery, so a
    card demotes gradually instead of collapsing to ``unknown``.

    Args:
        previous: Progress before this review (zero-state for a first review).
        correct: Whether the learner answered correctly.
        response_time_ms: Latency of this review.
        thresholds: Threshold table; None or empty uses the fallback ladder.

    Returns:
        Classification with the new state, mastery level, streak and review count.
    """
    if correct:
        streak = previous.correct_streak + 1
        mastery = min(previous.mastery_level + 1, MAX_MASTERY_LEVEL)
    else:
        streak = 0
        mastery = max(previous.mastery_level - 1, MIN_MASTERY_LEVEL)
    review_count = previous.review_count + 1

    matched = match_threshold(thresholds or [], mastery, streak, review_count)
    if matched is not None:
        state = matched.state
    else:
        state = fallback_state(correct, streak, response_time_ms)

    return Classification(
        state=state,
        mastery_level=mastery,
        correct_streak=streak,
        review_count=review_count,
    )


def match_threshold(
    thresholds: Sequence[StateThreshold],
    mastery_level: int,
    correct_streak: int,
    review_count: int,
) -> StateThreshold | None:
    """
    Return the most demanding row whose requirements are all met.

    Rows are scanned from the highest ``min_mastery_level`` down, so table
    order never decides the outcome.
    """
    for row in sorted(thresholds, key=lambda t: (t.strictness, t.state.rank), reverse=True):
        if (
            mastery_level >= row.min_mastery_level
            and correct_streak >= row.min_correct_streak
            and review_count >= row.min_review_count
        ):
            return row
    return None


def fallback_state(correct: bool, correct_streak: int, response_time_ms: float) -> MasteryState:
    """Fixed streak ladder used when the threshold table is absent or misconfigured."""
    if not correct and correct_streak == 0:
        return MasteryState.UNKNOWN
    if correct_streak >= LONG_TERM_STREAK and response_time_ms <= LONG_TERM_MAX_RESPONSE_MS:
        return MasteryState.LONG_TERM
    if correct_streak >= MASTERED_STREAK:
        return MasteryState.MASTERED
    if correct_streak >= KNOWN_STREAK:
        return MasteryState.KNOWN
    if correct_streak >= LEARNING_STREAK:
        return MasteryState.LEARNING
    return MasteryState.UNKNOWN

"""
Progress summary for a user.

This is a pure computation module with no I/O.
"""

from collections.abc import Iterable
from datetime import datetime

from wordwise.application.scheduling.card_selector import is_due
from wordwise.domain.models import CardProgress, MasteryState, ProgressStats

MASTERED_STATES = frozenset({MasteryState.MASTERED, MasteryState.LONG_TERM})


def summarize_progress(records: Iterable[CardProgress], now: datetime) -> ProgressStats:
    """
    Aggregate a user's records into dashboard figures.

    Only reviewed cards count; cards without a record are not "words" yet.
    """
    stats = ProgressStats()
    total_score = 0.0

    for record in records:
        stats.total_words += 1
        stats.state_counts[record.state] += 1
        stats.total_reviews += record.review_count
        stats.best_streak = max(stats.best_streak, record.correct_streak)
        total_score += record.score
        if record.state in MASTERED_STATES:
            stats.words_mastered += 1
        if is_due(record, now):
            stats.due_count += 1

    if stats.total_words:
        stats.average_score = round(total_score / stats.total_words, 2)
    return stats


def list_by_state(
    records: Iterable[CardProgress], state: MasteryState | None = None
) -> list[CardProgress]:
    """
    Records grouped by state, weakest state first, then by flashcard ID.

    With ``state`` only that group is returned.
    """
    selected = [r for r in records if state is None or r.state == state]
    return sorted(selected, key=lambda r: (r.state.rank, r.flashcard_id))

"""
Smart-practice queue ordering.

Review backlog comes first, then cards the user has never seen, then
cards that are not yet due. Callers rebuild the queue after every review.
"""

from collections.abc import Iterable
from datetime import datetime

from wordwise.application.utils.time import as_utc
from wordwise.domain.models import CardProgress


def is_due(record: CardProgress, now: datetime) -> bool:
    """A card is due when its next review is at or before ``now``; unset counts as due."""
    if record.next_review is None:
        return True
    return as_utc(record.next_review) <= as_utc(now)


def select_queue(
    all_progress: Iterable[CardProgress],
    all_card_ids: Iterable[str],
    now: datetime,
) -> list[str]:
    """
    Order flashcard IDs for a practice session.

    Args:
        all_progress: Every progress record for the user.
        all_card_ids: Every flashcard ID, in catalog order.
        now: Reference time for due checks.

    Returns:
        Due cards (oldest first), then unseen cards (catalog order),
        then scheduled cards (soonest first).
    """
    now = as_utc(now)
    by_card = {record.flashcard_id: record for record in all_progress}

    due: list[tuple[datetime, int, str]] = []
    unseen: list[str] = []
    scheduled: list[tuple[datetime, int, str]] = []

    seen_ids: set[str] = set()
    for position, card_id in enumerate(all_card_ids):
        if card_id in seen_ids:
            continue
        seen_ids.add(card_id)

        record = by_card.get(card_id)
        if record is None:
            unseen.append(card_id)
            continue

        when = as_utc(record.next_review) if record.next_review is not None else now
        if when <= now:
            due.append((when, position, card_id))
        else:
            scheduled.append((when, position, card_id))

    due.sort()
    scheduled.sort()
    return [c for _, _, c in due] + unseen + [c for _, _, c in scheduled]

"""
In-memory store: process-local implementation of every persistence port.

Used by tests and by the ``memory`` backend for throwaway sessions.
"""

import logging
from collections.abc import Iterable, Sequence

from wordwise.application.scheduling.thresholds import DEFAULT_THRESHOLDS
from wordwise.domain.models import CardProgress, StateThreshold
from wordwise.domain.ports import CardCatalog, ProgressRepository, ThresholdRepository

logger = logging.getLogger(__name__)


class InMemoryStore(ProgressRepository, CardCatalog, ThresholdRepository):
    """
    Dictionary-backed store.

    CardProgress is immutable, so records can be shared with callers
    without copying.
    """

    def __init__(
        self,
        card_ids: Iterable[str] = (),
        thresholds: Iterable[StateThreshold] | None = None,
    ):
        self._progress: dict[tuple[str, str], CardProgress] = {}
        self._card_ids: list[str] = []
        self._thresholds: list[StateThreshold] = list(
            DEFAULT_THRESHOLDS if thresholds is None else thresholds
        )
        self.add_flashcards(card_ids)

    async def get_progress(self, user_id: str, flashcard_id: str) -> CardProgress | None:
        return self._progress.get((user_id, flashcard_id))

    async def upsert_progress(self, record: CardProgress) -> CardProgress:
        self._progress[record.key] = record
        return record

    async def get_all_progress_for_user(self, user_id: str) -> list[CardProgress]:
        return [r for (uid, _), r in self._progress.items() if uid == user_id]

    async def delete_all_progress_for_user(self, user_id: str) -> None:
        doomed = [key for key in self._progress if key[0] == user_id]
        for key in doomed:
            del self._progress[key]
        logger.debug(f"Deleted {len(doomed)} progress records for user={user_id}")

    async def get_all_card_ids(self) -> list[str]:
        return list(self._card_ids)

    async def get_state_thresholds(self) -> list[StateThreshold]:
        return list(self._thresholds)

    def add_flashcards(self, card_ids: Iterable[str]) -> int:
        """Append unknown card IDs to the catalog. Returns how many were new."""
        added = 0
        for card_id in card_ids:
            if card_id not in self._card_ids:
                self._card_ids.append(card_id)
                added += 1
        return added

    async def replace_state_thresholds(self, thresholds: Sequence[StateThreshold]) -> None:
        """Swap the threshold table; takes effect on the next review."""
        self._thresholds = list(thresholds)

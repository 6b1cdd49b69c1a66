"""
Ports (interfaces) for progress persistence and configuration.

These define the contract that infrastructure adapters must implement.
Application services depend on these abstractions, not concrete implementations.
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence

from .models import CardProgress, StateThreshold


class ProgressRepository(ABC):
    """
    Port for reading and writing per-card review progress.

    Implementations:
        - InMemoryStore: process-local dictionaries.
        - SqlStore: SQLAlchemy-backed relational tables.

    Adapters raise TransientStoreError for failures worth retrying.
    """

    @abstractmethod
    async def get_progress(self, user_id: str, flashcard_id: str) -> CardProgress | None:
        """Return the stored record, or None if the user never reviewed the card."""
        pass

    @abstractmethod
    async def upsert_progress(self, record: CardProgress) -> CardProgress:
        """
        Insert or replace the record keyed on (user_id, flashcard_id).

        Returns:
            The record as persisted.
        """
        pass

    @abstractmethod
    async def get_all_progress_for_user(self, user_id: str) -> list[CardProgress]:
        pass

    @abstractmethod
    async def delete_all_progress_for_user(self, user_id: str) -> None:
        """Administrative full wipe of one user's progress."""
        pass


class CardCatalog(ABC):
    """Port for enumerating the flashcards that exist."""

    @abstractmethod
    async def get_all_card_ids(self) -> list[str]:
        """Return every flashcard ID in a stable order."""
        pass


class ThresholdRepository(ABC):
    """
    Port for the administrator-editable state-threshold table.

    The engine calls this on every review, so implementations must not
    cache indefinitely.
    """

    @abstractmethod
    async def get_state_thresholds(self) -> list[StateThreshold]:
        """
        Returns:
            Validated threshold rows.

        Raises:
            ConfigurationError: The table could not be read.
        """
        pass

    @abstractmethod
    async def replace_state_thresholds(self, thresholds: Sequence[StateThreshold]) -> None:
        """Replace the whole table with already-validated rows."""
        pass

"""
Progress Engine: Application layer orchestrator.

Applies a review outcome to a card's progress record by coordinating the
pure scheduling functions with the persistence ports:
1. Load the prior record (or synthesize the zero state)
2. Classify, score and schedule the card
3. Upsert the merged record, which is the commit point
"""

import asyncio
import logging
import math
from collections.abc import AsyncIterator, Awaitable, Callable, Sequence
from contextlib import asynccontextmanager
from datetime import datetime
from typing import TypeVar

from wordwise.application.retry import retry_async
from wordwise.application.scheduling import (
    DEFAULT_THRESHOLDS,
    classify,
    compute_score,
    delay_table_from,
    next_review_at,
    order_thresholds,
    select_queue,
)
from wordwise.application.stats import list_by_state, summarize_progress
from wordwise.application.utils.time import utc_now
from wordwise.domain.constants import (
    DEFAULT_RESPONSE_TIME_MS,
    RETRY_ATTEMPTS,
    RETRY_BASE_DELAY,
    RETRY_MAX_DELAY,
)
from wordwise.domain.exceptions import ConfigurationError, NotAuthenticated, ValidationError
from wordwise.domain.models import CardProgress, MasteryState, ProgressStats, StateThreshold
from wordwise.domain.ports import CardCatalog, ProgressRepository, ThresholdRepository

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ProgressEngine:
    """
    Application service that owns every mutation of CardProgress.

    Follows Dependency Inversion: depends on the repository ports, not on
    concrete stores. Reviews for the same (user, card) pair are serialized
    so concurrent submissions cannot lose updates.
    """

    def __init__(
        self,
        progress_repo: ProgressRepository,
        threshold_repo: ThresholdRepository | None = None,
        catalog: CardCatalog | None = None,
        *,
        retry_attempts: int = RETRY_ATTEMPTS,
        retry_base_delay: float = RETRY_BASE_DELAY,
        retry_max_delay: float = RETRY_MAX_DELAY,
        default_response_time_ms: float = DEFAULT_RESPONSE_TIME_MS,
        clock: Callable[[], datetime] = utc_now,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Args:
            progress_repo: Store for per-card progress records.
            threshold_repo: Source of the threshold table, re-read on every
                review. None uses the built-in default table.
            catalog: Flashcard enumeration, needed only for queue building.
            clock: Returns the current UTC time.
            sleep: Awaitable used between retries.
        """
        self._repo = progress_repo
        self._thresholds = threshold_repo
        self._catalog = catalog
        self._retry_attempts = retry_attempts
        self._retry_base_delay = retry_base_delay
        self._retry_max_delay = retry_max_delay
        self._default_response_time_ms = default_response_time_ms
        self._clock = clock
        self._sleep = sleep

        self._locks: dict[tuple[str, str], asyncio.Lock] = {}
        self._lock_holders: dict[tuple[str, str], int] = {}

    async def apply_review(
        self,
        user_id: str | None,
        flashcard_id: str,
        correct: bool,
        response_time_ms: float | None = None,
    ) -> CardProgress:
        """
        Record one review and return the persisted progress.

        Raises:
            NotAuthenticated: No user context.
            ValidationError: Malformed review input or a corrupt stored record.
            PersistenceError: Load or upsert failed after retries. The prior
                record stays authoritative.
        """
        user_id = _require_user(user_id)
        if not isinstance(flashcard_id, str) or not flashcard_id.strip():
            raise ValidationError("flashcard_id must be a non-empty string")
        if not isinstance(correct, bool):
            raise ValidationError(f"correct must be a boolean, got {correct!r}")
        if response_time_ms is None:
            response_time_ms = self._default_response_time_ms
        _validate_response_time(response_time_ms)

        logger.debug(
            f"Review received user={user_id} card={flashcard_id} "
            f"correct={correct} response_time_ms={response_time_ms}"
        )

        async with self._card_lock((user_id, flashcard_id)):
            previous = await self._retry(
                lambda: self._repo.get_progress(user_id, flashcard_id),
                f"load progress for {user_id}/{flashcard_id}",
            )
            if previous is None:
                previous = CardProgress.initial(user_id, flashcard_id)
            else:
                problems = previous.invariant_violations()
                if problems:
                    raise ValidationError(
                        f"Stored progress for {user_id}/{flashcard_id} is invalid: "
                        + "; ".join(problems)
                    )

            thresholds = await self.current_thresholds()
            outcome = classify(previous, correct, response_time_ms, thresholds)
            now = self._clock()

            record = CardProgress(
                user_id=user_id,
                flashcard_id=flashcard_id,
                state=outcome.state,
                mastery_level=outcome.mastery_level,
                correct_streak=outcome.correct_streak,
                review_count=outcome.review_count,
                score=compute_score(
                    outcome.mastery_level, outcome.correct_streak, response_time_ms
                ),
                last_reviewed=now,
                next_review=next_review_at(outcome.state, now, delay_table_from(thresholds)),
                response_time_ms=response_time_ms,
            )

            persisted = await self._retry(
                lambda: self._repo.upsert_progress(record),
                f"upsert progress for {user_id}/{flashcard_id}",
            )

        logger.info(
            f"Review applied user={user_id} card={flashcard_id} "
            f"state={previous.state.value}->{persisted.state.value} "
            f"mastery={persisted.mastery_level} streak={persisted.correct_streak} "
            f"score={persisted.score} next_review={persisted.next_review.isoformat()}"
        )
        return persisted

    async def current_thresholds(self) -> list[StateThreshold]:
        """
        Fetch the threshold table for this call.

        An unreadable table yields an empty list, which routes classification
        and scheduling through their fixed fallbacks instead of failing.
        """
        if self._thresholds is None:
            return list(DEFAULT_THRESHOLDS)
        try:
            return list(await self._thresholds.get_state_thresholds())
        except ConfigurationError as e:
            logger.warning(f"Threshold table unavailable, using fallback ladder: {e}")
            return []

    async def replace_thresholds(
        self, thresholds: Sequence[StateThreshold]
    ) -> list[StateThreshold]:
        """
        Install a new threshold table, effective from the next review.

        An empty table is accepted and routes reviews through the fallback ladder.

        Raises:
            ConfigurationError: The engine has no threshold source to write to.
            ValidationError: Two rows name the same state.
            PersistenceError: The write failed after retries.
        """
        if self._thresholds is None:
            raise ConfigurationError("No threshold source configured")

        seen: set[MasteryState] = set()
        for row in thresholds:
            if row.state in seen:
                raise ValidationError(f"Duplicate threshold row for state '{row.state.value}'")
            seen.add(row.state)

        table = order_thresholds(thresholds)
        await self._retry(
            lambda: self._thresholds.replace_state_thresholds(table),
            "replace state thresholds",
        )
        if table:
            logger.info(f"Threshold table replaced: {', '.join(t.state.value for t in table)}")
        else:
            logger.warning("Threshold table cleared, reviews will use the fallback ladder")
        return table

    async def build_queue(self, user_id: str | None, now: datetime | None = None) -> list[str]:
        """Ordered smart-practice queue: due, then unseen, then scheduled cards."""
        user_id = _require_user(user_id)
        if self._catalog is None:
            raise ConfigurationError("No card catalog configured for queue building")

        records = await self._retry(
            lambda: self._repo.get_all_progress_for_user(user_id),
            f"load progress for {user_id}",
        )
        card_ids = await self._retry(self._catalog.get_all_card_ids, "load card catalog")
        return select_queue(records, card_ids, now or self._clock())

    async def get_stats(self, user_id: str | None, now: datetime | None = None) -> ProgressStats:
        user_id = _require_user(user_id)
        records = await self._retry(
            lambda: self._repo.get_all_progress_for_user(user_id),
            f"load progress for {user_id}",
        )
        return summarize_progress(records, now or self._clock())

    async def list_progress(
        self, user_id: str | None, state: MasteryState | str | None = None
    ) -> list[CardProgress]:
        """The user's reviewed cards grouped by state, optionally a single state."""
        user_id = _require_user(user_id)
        if state is not None:
            try:
                state = MasteryState.parse(state)
            except ValueError as e:
                raise ValidationError(f"Unknown state {state!r}") from e

        records = await self._retry(
            lambda: self._repo.get_all_progress_for_user(user_id),
            f"load progress for {user_id}",
        )
        return list_by_state(records, state)

    async def reset_progress(self, user_id: str | None) -> None:
        """Wipe every progress record of a user; the next review of any card is a first review."""
        user_id = _require_user(user_id)
        await self._retry(
            lambda: self._repo.delete_all_progress_for_user(user_id),
            f"reset progress for {user_id}",
        )
        logger.info(f"Progress reset for user={user_id}")

    async def _retry(self, operation: Callable[[], Awaitable[T]], description: str) -> T:
        return await retry_async(
            operation,
            description=description,
            attempts=self._retry_attempts,
            base_delay=self._retry_base_delay,
            max_delay=self._retry_max_delay,
            sleep=self._sleep,
        )

    @asynccontextmanager
    async def _card_lock(self, key: tuple[str, str]) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._lock_holders[key] = self._lock_holders.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_holders[key] -= 1
            if self._lock_holders[key] == 0:
                del self._lock_holders[key]
                del self._locks[key]


def _require_user(user_id: str | None) -> str:
    if not isinstance(user_id, str) or not user_id.strip():
        raise NotAuthenticated("A user is required to access review progress")
    return user_id


def _validate_response_time(response_time_ms: float) -> None:
    if isinstance(response_time_ms, bool) or not isinstance(response_time_ms, (int, float)):
        raise ValidationError(f"response_time_ms must be a number, got {response_time_ms!r}")
    if not math.isfinite(response_time_ms) or response_time_ms < 0:
        raise ValidationError(
            f"response_time_ms must be a finite, non-negative number, got {response_time_ms}"
        )

"""
Domain models for review progress.

These are pure data structures with no I/O or external dependencies.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from .constants import MAX_MASTERY_LEVEL, MIN_MASTERY_LEVEL


class MasteryState(str, Enum):
    """Coarse proficiency classification, declared from weakest to strongest."""

    UNKNOWN = "unknown"
    LEARNING = "learning"
    KNOWN = "known"
    MASTERED = "mastered"
    LONG_TERM = "long-term"

    @property
    def rank(self) -> int:
        return _STATE_ORDER.index(self)

    @classmethod
    def parse(cls, value: "str | MasteryState") -> "MasteryState":
        """
        Parse a stored state name.

        Older rows call the initial state ``new``; it is read as ``unknown``.
        """
        if isinstance(value, MasteryState):
            return value
        name = str(value).strip().lower()
        if name == "new":
            return cls.UNKNOWN
        return cls(name)


_STATE_ORDER = list(MasteryState)


@dataclass(frozen=True)
class CardProgress:
    """
    Review progress for one (user, flashcard) pair.

    Attributes:
        state: Classification derived from the last applied review.
        mastery_level: 0-5 proficiency signal driving state and score.
        correct_streak: Consecutive correct reviews; 0 after any miss.
        review_count: Total reviews ever recorded.
        score: Derived proficiency score, rounded to 2 places.
        last_reviewed: None only before the first review.
        next_review: When the card becomes due; None means due now.
        response_time_ms: Latency of the most recent review.
    """

    user_id: str
    flashcard_id: str
    state: MasteryState = MasteryState.UNKNOWN
    mastery_level: int = 0
    correct_streak: int = 0
    review_count: int = 0
    score: float = 0.0
    last_reviewed: datetime | None = None
    next_review: datetime | None = None
    response_time_ms: float | None = None

    @classmethod
    def initial(cls, user_id: str, flashcard_id: str) -> "CardProgress":
        """Zero-state record for a card the user has never reviewed."""
        return cls(user_id=user_id, flashcard_id=flashcard_id)

    @property
    def key(self) -> tuple[str, str]:
        return (self.user_id, self.flashcard_id)

    def invariant_violations(self) -> list[str]:
        """Return a description of every broken record invariant."""
        problems = []
        if not MIN_MASTERY_LEVEL <= self.mastery_level <= MAX_MASTERY_LEVEL:
            problems.append(f"mastery_level {self.mastery_level} outside [0, 5]")
        if self.correct_streak < 0:
            problems.append(f"correct_streak {self.correct_streak} is negative")
        if self.review_count < 0:
            problems.append(f"review_count {self.review_count} is negative")
        if self.correct_streak > self.review_count:
            problems.append(
                f"correct_streak {self.correct_streak} exceeds review_count {self.review_count}"
            )
        if self.score < 0:
            problems.append(f"score {self.score} is negative")
        return problems


@dataclass(frozen=True)
class StateThreshold:
    """
    One row of the administrator-configurable threshold table.

    A record qualifies for ``state`` when its mastery level, streak and
    review count all meet the minimums. ``next_review_delay`` is a human
    duration such as ``"4 hours"`` or ``"1 week"``.
    """

    state: MasteryState
    min_mastery_level: int = 0
    min_correct_streak: int = 0
    min_review_count: int = 0
    score_weight: float = 0.0
    next_review_delay: str | None = None

    @property
    def strictness(self) -> tuple[int, int, int]:
        return (self.min_mastery_level, self.min_correct_streak, self.min_review_count)


@dataclass(frozen=True)
class Classification:
    """Outcome of classifying a single review."""

    state: MasteryState
    mastery_level: int
    correct_streak: int
    review_count: int


@dataclass
class ProgressStats:
    """Per-user summary of review progress."""

    total_words: int = 0
    words_mastered: int = 0
    best_streak: int = 0
    average_score: float = 0.0
    total_reviews: int = 0
    due_count: int = 0
    state_counts: dict[MasteryState, int] = field(
        default_factory=lambda: {state: 0 for state in MasteryState}
    )

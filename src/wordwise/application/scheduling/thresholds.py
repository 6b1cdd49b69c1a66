"""
Load-time validation for the state-threshold table.

Rows arrive loosely typed (YAML mappings, database rows, API payloads).
Each row is validated once here; malformed rows are logged and skipped so
classification never sees them.
"""

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as RowValidationError

from wordwise.domain.constants import MAX_MASTERY_LEVEL, MIN_MASTERY_LEVEL
from wordwise.domain.exceptions import ValidationError
from wordwise.domain.models import MasteryState, StateThreshold

logger = logging.getLogger(__name__)


class StateThresholdRow(BaseModel):
    """Wire shape of one threshold row."""

    model_config = ConfigDict(extra="ignore")

    state: MasteryState
    min_mastery_level: int = Field(default=0, ge=MIN_MASTERY_LEVEL, le=MAX_MASTERY_LEVEL)
    min_correct_streak: int = Field(default=0, ge=0)
    min_review_count: int = Field(default=0, ge=0)
    score_weight: float = Field(default=0.0, ge=0)
    next_review_delay: str | None = None

    @field_validator("state", mode="before")
    @classmethod
    def parse_state(cls, v: Any) -> MasteryState:
        return MasteryState.parse(v)

    @field_validator("next_review_delay", mode="before")
    @classmethod
    def blank_delay_is_none(cls, v: Any) -> str | None:
        if v is None:
            return None
        text = str(v).strip()
        return text or None

    def to_domain(self) -> StateThreshold:
        return StateThreshold(
            state=self.state,
            min_mastery_level=self.min_mastery_level,
            min_correct_streak=self.min_correct_streak,
            min_review_count=self.min_review_count,
            score_weight=self.score_weight,
            next_review_delay=self.next_review_delay,
        )

    @classmethod
    def from_domain(cls, threshold: StateThreshold) -> "StateThresholdRow":
        return cls(
            state=threshold.state,
            min_mastery_level=threshold.min_mastery_level,
            min_correct_streak=threshold.min_correct_streak,
            min_review_count=threshold.min_review_count,
            score_weight=threshold.score_weight,
            next_review_delay=threshold.next_review_delay,
        )


def parse_threshold_rows(
    rows: Iterable[Mapping[str, Any]], strict: bool = False
) -> list[StateThreshold]:
    """
    Validate raw rows into an ordered threshold table.

    Returns:
        Rows sorted by ascending strictness. Invalid rows and repeated
        states are dropped with a warning; the first row for a state wins.

    Raises:
        ValidationError: With ``strict``, on the first row that would be dropped.
    """
    parsed: list[StateThreshold] = []
    seen: set[MasteryState] = set()

    for index, raw in enumerate(rows):
        if not isinstance(raw, Mapping):
            _reject(strict, f"threshold row #{index}: expected a mapping, got {raw!r}")
            continue
        try:
            row = StateThresholdRow.model_validate(dict(raw))
        except (RowValidationError, ValueError) as e:
            _reject(strict, f"malformed threshold row #{index}: {e}")
            continue

        if row.state in seen:
            _reject(strict, f"duplicate threshold row #{index} for state '{row.state.value}'")
            continue
        seen.add(row.state)
        parsed.append(row.to_domain())

    return order_thresholds(parsed)


def order_thresholds(thresholds: Iterable[StateThreshold]) -> list[StateThreshold]:
    """Least demanding row first; ties keep the weaker state first."""
    return sorted(thresholds, key=lambda t: (t.strictness, t.state.rank))


def _reject(strict: bool, problem: str) -> None:
    if strict:
        raise ValidationError(f"Rejected {problem}")
    logger.warning(f"Skipping {problem}")


DEFAULT_THRESHOLDS: list[StateThreshold] = [
    StateThreshold(MasteryState.UNKNOWN, 0, 0, 0, 0.0, "1 hour"),
    StateThreshold(MasteryState.LEARNING, 1, 0, 1, 1.0, "4 hours"),
    StateThreshold(MasteryState.KNOWN, 2, 0, 2, 2.0, "1 day"),
    StateThreshold(MasteryState.MASTERED, 3, 0, 3, 3.0, "3 days"),
    StateThreshold(MasteryState.LONG_TERM, 5, 10, 10, 4.0, "1 week"),
]

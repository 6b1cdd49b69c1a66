"""
Next-review timestamps for a mastery state.

Pure and deterministic: the same (state, now, delay table) always yields
the same timestamp.
"""

import re
from collections.abc import Iterable, Mapping
from datetime import datetime, timedelta

from wordwise.domain.constants import HOURS_PER_DAY, HOURS_PER_WEEK, UNRECOGNIZED_DELAY_HOURS
from wordwise.domain.models import MasteryState, StateThreshold

FALLBACK_DELAYS: dict[MasteryState, timedelta] = {
    MasteryState.UNKNOWN: timedelta(hours=1),
    MasteryState.LEARNING: timedelta(hours=4),
    MasteryState.KNOWN: timedelta(days=1),
    MasteryState.MASTERED: timedelta(days=3),
    MasteryState.LONG_TERM: timedelta(days=7),
}

_DELAY_RE = re.compile(r"^\s*(\d+)\s*([A-Za-z]+)\s*$")

DelayTable = Mapping[MasteryState, str | timedelta]


def next_review_at(
    state: MasteryState,
    now: datetime,
    delay_table: DelayTable | None = None,
) -> datetime:
    """
    When a card in ``state`` should next be shown.

    A configured delay for the state wins; otherwise the fixed fallback
    table applies (1h / 4h / 1d / 3d / 7d).
    """
    configured = (delay_table or {}).get(state)
    if configured is not None:
        if isinstance(configured, timedelta):
            return now + configured
        return now + timedelta(hours=parse_delay_hours(configured))
    return now + FALLBACK_DELAYS[state]


def parse_delay_hours(delay: str) -> int:
    """
    Convert a duration such as ``"4 hours"``, ``"1 day"`` or ``"2 weeks"`` to hours.

    Unrecognized units (or text that does not parse) count as one hour.
    """
    match = _DELAY_RE.match(delay)
    if not match:
        return UNRECOGNIZED_DELAY_HOURS

    value = int(match.group(1))
    unit = match.group(2).lower()
    if unit.startswith("hour"):
        return value
    if unit.startswith("day"):
        return value * HOURS_PER_DAY
    if unit.startswith("week"):
        return value * HOURS_PER_WEEK
    return UNRECOGNIZED_DELAY_HOURS


def delay_table_from(thresholds: Iterable[StateThreshold]) -> dict[MasteryState, str]:
    """Extract the per-state delays configured in a threshold table."""
    return {row.state: row.next_review_delay for row in thresholds if row.next_review_delay}

# Application Scheduling Package
from .card_selector import is_due, select_queue
from .review_scheduler import FALLBACK_DELAYS, delay_table_from, next_review_at, parse_delay_hours
from .score_calculator import compute_score
from .state_classifier import classify, fallback_state, match_threshold
from .thresholds import (
    DEFAULT_THRESHOLDS,
    StateThresholdRow,
    order_thresholds,
    parse_threshold_rows,
)

__all__ = [
    "compute_score",
    "classify",
    "match_threshold",
    "fallback_state",
    "next_review_at",
    "parse_delay_hours",
    "delay_table_from",
    "FALLBACK_DELAYS",
    "select_queue",
    "is_due",
    "parse_threshold_rows",
    "order_thresholds",
    "StateThresholdRow",
    "DEFAULT_THRESHOLDS",
]

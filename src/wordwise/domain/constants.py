"""Centralized constants for the wordwise engine.

All magic numbers and scheduling defaults live here so every layer
imports from a single source of truth.
"""

# ---------- Mastery ----------
MIN_MASTERY_LEVEL = 0
MAX_MASTERY_LEVEL = 5

# ---------- Score ----------
STREAK_BONUS_SATURATION = 5  # streak length that earns the full bonus
LATENCY_CEILING_MS = 5000  # responses at or above this earn no latency bonus
SCORE_PRECISION = "0.01"

# ---------- Fallback ladder (used when no threshold row matches) ----------
LONG_TERM_STREAK = 10
LONG_TERM_MAX_RESPONSE_MS = 5000
MASTERED_STREAK = 5
KNOWN_STREAK = 3
LEARNING_STREAK = 1

# ---------- Review delays ----------
HOURS_PER_DAY = 24
HOURS_PER_WEEK = 24 * 7
UNRECOGNIZED_DELAY_HOURS = 1

# ---------- Reviews ----------
DEFAULT_RESPONSE_TIME_MS = 5000

# ---------- Persistence retry ----------
RETRY_ATTEMPTS = 3
RETRY_BASE_DELAY = 1.0  # seconds
RETRY_MAX_DELAY = 10.0  # seconds

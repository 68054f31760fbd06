"""Centralized constants for the cadence scheduler.

All magic numbers and parameter defaults live here so every layer
imports from a single source of truth.
"""

# ---------- Time ----------
MINUTES_PER_DAY = 1440
DEFAULT_TIMEZONE = "UTC"

# ---------- Daily limits ----------
DEFAULT_NEW_CARDS_PER_DAY = 20
DEFAULT_MAX_REVIEWS_PER_DAY = 200  # 0 = unlimited

# ---------- Steps (minutes) ----------
DEFAULT_LEARNING_STEPS = (1, 10)
DEFAULT_RELEARNING_STEPS = (10, 1440)

# ---------- Graduation (days) ----------
DEFAULT_GRADUATING_INTERVAL = 1
DEFAULT_EASY_INTERVAL = 4

# ---------- Ease (SM-2) ----------
DEFAULT_STARTING_EASE = 2.5
DEFAULT_MINIMUM_EASE = 1.3
DEFAULT_EASY_BONUS = 1.3
EASY_EASE_BONUS = 0.15  # Added to ease on Easy in review

# ---------- Interval factors ----------
DEFAULT_HARD_INTERVAL_FACTOR = 1.0
DEFAULT_EASY_INTERVAL_FACTOR = 1.3
DEFAULT_INTERVAL_MODIFIER = 1.0

# ---------- Lapses ----------
DEFAULT_LAPSE_RECOVERY_FACTOR = 0.2
DEFAULT_LAPSE_EASE_PENALTY = 0.2
DEFAULT_LEECH_THRESHOLD = 8
DEFAULT_MAX_INTERVAL = 36500  # 100 years

# ---------- Queue ----------
REVIEW_AHEAD_DAYS = 1

# ---------- Session ----------
UNDO_HISTORY_LIMIT = 20

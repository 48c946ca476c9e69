"""Centralized constants for recite.

All magic numbers and scheduling defaults live here so every layer
imports from a single source of truth.
"""

# ---------- Quality scale ----------
MIN_QUALITY = 0
MAX_QUALITY = 5
PASSING_QUALITY = 3  # below this an outcome counts as a lapse
REINFORCED_QUALITY = 4  # at or above this an item leaves the sitting

# ---------- SM-2 ----------
DEFAULT_EFACTOR = 2.5
MIN_EFACTOR = 1.3
FIRST_INTERVAL_DAYS = 1
SECOND_INTERVAL_DAYS = 6
LAPSE_INTERVAL_DAYS = 1

# ---------- Strength ----------
STRENGTH_STREAK_SATURATION = 5  # consecutive correct reviews for full weight

# ---------- Forgetting curve ----------
STRENGTH_HORIZON_HOURS = 24 * 30  # strength 1.0 ~ one month
MIN_MEMORY_HORIZON_HOURS = 1e-9

# ---------- Queue Builder ----------
DEFAULT_MAX_QUEUE_SIZE = 20
DEFAULT_AGGRESSIVENESS = 0.8
OVERDUE_WEIGHT = 10.0
WEAKNESS_WEIGHT = 5.0
DIFFICULTY_WEIGHT = 3.0

# ---------- Statistics ----------
STRONG_STRENGTH = 0.7
WEAK_STRENGTH = 0.3

# ---------- Practice ----------
MAX_ACCURACY = 100  # accuracy is a whole percentage

# ---------- Storage ----------
SQLITE_TIMEOUT = 5.0  # seconds

# ---------- Logging ----------
LOG_MAX_BYTES = 1024 * 1024
LOG_BACKUP_COUNT = 3

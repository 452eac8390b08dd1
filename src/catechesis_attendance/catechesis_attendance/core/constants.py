"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

# Session dates accepted for registration: [today - MAX_BACKDATE_DAYS, today]
MAX_BACKDATE_DAYS = 30

# Risk thresholds (inclusive lower bounds, percentages)
EXCELLENT_MIN_PERCENTAGE = 90
GOOD_MIN_PERCENTAGE = 80
REGULAR_MIN_PERCENTAGE = 70
AT_RISK_THRESHOLD = REGULAR_MIN_PERCENTAGE

PERCENTAGE_DECIMALS = 2

# Automatic retries of a whole batch after a store conflict
STORE_CONFLICT_RETRIES = 1
DEFAULT_STORE_LOCK_TIMEOUT_SECONDS = 5

DEFAULT_STATS_CACHE_TTL_SECONDS = 300

EXPORT_FILENAME_PREFIX = "resumen_asistencia"

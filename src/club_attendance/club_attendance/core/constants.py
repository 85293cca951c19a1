"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

from datetime import date

DEFAULT_TIMEZONE = "Asia/Tokyo"

REGISTRATION_TOKEN_PREFIX = "qr_"
REGISTRATION_TOKEN_TTL_MINUTES = 30
REGISTRATION_TOKEN_MAX_TTL_MINUTES = 24 * 60

PUNCH_MAX_ATTEMPTS = 3
BULK_LOGOUT_MAX_ATTEMPTS = 3

DEFAULT_STATS_DAYS = 30
MAX_QUERY_RANGE_DAYS = 366
MIN_QUERY_DATE = date(2000, 1, 1)
MAX_QUERY_DATE = date(2099, 12, 31)
DEFAULT_LOG_LIMIT = 100

FALLBACK_DISPLAY_NAME = "Anonymous"
UNASSIGNED_TEAM = "unassigned"
UNKNOWN_GRADE = "unknown"

LOGOUT_WINDOW_START = "22:50"
LOGOUT_WINDOW_END = "23:50"

"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_TOTAL_POINTS = 100
DEFAULT_COURSE_MONTHS = 3
DEFAULT_JWT_EXPIRES_DAYS = 7
DEFAULT_OTP_TTL_SECONDS = 600
OTP_LENGTH = 6

UPCOMING_SESSIONS_LIMIT = 10
PAST_SESSIONS_LIMIT = 20

MIN_PASSWORD_LENGTH = 6
NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 50
COURSE_TITLE_MIN_LENGTH = 3
COURSE_TITLE_MAX_LENGTH = 100
ASSIGNMENT_TITLE_MAX_LENGTH = 100

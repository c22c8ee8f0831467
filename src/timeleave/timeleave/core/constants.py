"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

from datetime import time
from decimal import Decimal

DEFAULT_HISTORY_LIMIT = 500
DEFAULT_LIST_LIMIT = 200

# Employee clock-in override meaning "no restriction".
NO_RESTRICTION = "N/R"

DEFAULT_AUTO_CLOCK_OUT_CUTOFF = time(23, 11)
DEFAULT_ARM_WINDOW_MINUTES = 15
DEFAULT_CHECK_SECONDS = 60

DEFAULT_MAX_LATE_DAYS = 0
DEFAULT_PENALTY_LEAVE_DAYS = Decimal("0.5")
DEFAULT_PENALTY_LEAVE_TYPE = "casual"

# org_settings keys
SETTING_CLOCK_IN_TIME_LIMIT = "defaultClockInTimeLimit"
SETTING_MAX_LATE_DAYS = "maxLateDays"

# Leave amounts are stored with 4 decimal places (short days are fractions of 24h).
DAYS_QUANTUM = Decimal("0.0001")
HALF_DAY = Decimal("0.5")
SHORT_DAY_FALLBACK = Decimal("0.25")

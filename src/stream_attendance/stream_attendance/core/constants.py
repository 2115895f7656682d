"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

from datetime import date

# Range start used when a stream has never had a timetable.
EPOCH = date(1970, 1, 1)

# Sorts after every valid "HH:MM" so entries without a start time come last.
MISSING_TIME_SORT_KEY = "99:99"

PERCENT_DECIMALS = 2
DEFAULT_VIEW_DAYS = 7

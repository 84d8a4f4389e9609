"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_LEDGER_UTC_OFFSET_HOURS = 9
DEFAULT_CORRECTION_TIMEOUT_MINUTES = 5

# Item limit of the outer selection widget.
MAX_SELECTION_ITEMS = 25
SELECT_ALL_KEY = "all"

HISTORY_DAYS = 30
HISTORY_MAX_DATES = 20

# datetime.weekday() value the week starts on (Monday).
WEEK_START_WEEKDAY = 0

# Oldest ledger date the correction flow may change, in days before today.
MAX_CORRECTION_DAYS_BACK = 7

"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

# Largest page the record store returns for a single read.
READ_PAGE_SIZE = 1000

# Extra read-decide-write attempts after an open-record conflict.
SCAN_CONFLICT_RETRIES = 1

HISTORY_FILTERS = ("all", "attended", "missed")

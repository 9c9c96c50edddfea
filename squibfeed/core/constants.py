"""
Centralized constants for the feed cache and the Squibs backend contract.

Change thresholds and wire limits here instead of scattering literals across stores and controllers.
"""

# Cached feed data is served without a network call while younger than this (whole-record TTL)
FRESHNESS_WINDOW_MS = 5 * 60 * 1000

# limit >= this tells the backend to ignore pagination and return the full result set
FETCH_ALL_LIMIT = 1000
DEFAULT_PAGE_SIZE = 10

# Persisted fetch-all snapshot of the user's own squibs
USER_SNAPSHOT_TTL_MINUTES = 30
USER_SNAPSHOT_KEY_PREFIX = "user_squibs_"
# Location-feed snapshots kept by earlier mobile builds under this prefix; never written here, only swept on sign-out
LOCATION_SNAPSHOT_KEY_PREFIX = "squibs_"

# Backend filters by longitude/latitude rounded to this many decimals
COORD_DECIMALS = 2

# Human-readable time_stamp written by the mobile client, e.g. "Jan 05 2025 3:04 PM"
TIME_STAMP_FORMAT = "%b %d %Y %I:%M %p"

# Store names (one store per feed type)
LOCAL_FEED = "local"
MY_SQUIBS_FEED = "mine"
FEED_NAMES = (LOCAL_FEED, MY_SQUIBS_FEED)

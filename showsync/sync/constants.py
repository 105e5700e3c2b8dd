"""Constants for paginated show synchronization."""

from enum import Enum


class SyncKind(str, Enum):
    POPULAR = "popular"
    TRENDING = "trending"
    WATCHED = "watched"


# Tables a page write touches; read views re-query when these change
SHOWS_TABLE = "shows"
PAGE_ENTRIES_TABLE = "page_entries"
SYNC_RUNS_TABLE = "sync_runs"
PAGE_WRITE_TABLES = (SHOWS_TABLE, PAGE_ENTRIES_TABLE)

DEFAULT_PAGE_SIZE = 21
DEFAULT_MAX_PAGES = 50

# Retry defaults for page fetches
DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_DELAY_SECONDS = 0.5
DEFAULT_MAX_DELAY_SECONDS = 5.0
DEFAULT_BACKOFF_FACTOR = 2.0
DEFAULT_JITTER = 0.1

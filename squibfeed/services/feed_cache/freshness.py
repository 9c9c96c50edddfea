"""Freshness policy: whole-record TTL, no per-item expiry."""
from squibfeed.core.constants import FRESHNESS_WINDOW_MS
from squibfeed.models.cache_record import CacheRecord


def is_cache_valid(record: CacheRecord, now: int) -> bool:
    """True if the record was refreshed at some point and less than FRESHNESS_WINDOW_MS ago."""
    return record.last_refreshed_at > 0 and now - record.last_refreshed_at < FRESHNESS_WINDOW_MS


def has_data(record: CacheRecord) -> bool:
    """True if there is anything to render, stale or not."""
    return len(record.items) > 0

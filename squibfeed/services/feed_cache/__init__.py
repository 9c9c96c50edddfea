"""
Feed cache: in-memory stores, freshness policy and pagination merge.
The store never does I/O; controllers fetch and then write results here.
"""
from squibfeed.services.feed_cache.freshness import has_data, is_cache_valid
from squibfeed.services.feed_cache.merge import append_items, normalize_item, normalize_page, replace_items, sort_for_display
from squibfeed.services.feed_cache.registry import FeedStores, build_feed_stores
from squibfeed.services.feed_cache.store import FeedCacheStore

__all__ = [
    "FeedCacheStore",
    "FeedStores",
    "append_items",
    "build_feed_stores",
    "has_data",
    "is_cache_valid",
    "normalize_item",
    "normalize_page",
    "replace_items",
    "sort_for_display",
]

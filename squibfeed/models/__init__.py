from squibfeed.models.cache_record import CacheRecord, FeedPage, GeoPoint
from squibfeed.models.feed_item import FeedItem, ItemType, MediaKind, MediaRef, PlaceName
from squibfeed.models.feed_snapshot import FeedSnapshot

__all__ = [
    "CacheRecord",
    "FeedItem",
    "FeedPage",
    "FeedSnapshot",
    "GeoPoint",
    "ItemType",
    "MediaKind",
    "MediaRef",
    "PlaceName",
]

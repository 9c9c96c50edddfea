"""Container for the per-feed stores. Built once by the host (app lifespan, script, test) and passed down."""
import logging
from dataclasses import dataclass, field

from squibfeed.core.clock import Clock, now_ms
from squibfeed.core.constants import LOCAL_FEED, MY_SQUIBS_FEED
from squibfeed.services.feed_cache.store import FeedCacheStore

logger = logging.getLogger(__name__)


@dataclass
class FeedStores:
    local: FeedCacheStore = field(default_factory=lambda: FeedCacheStore(LOCAL_FEED))
    mine: FeedCacheStore = field(default_factory=lambda: FeedCacheStore(MY_SQUIBS_FEED))

    def get(self, name: str) -> FeedCacheStore:
        """Get store by feed name. Raises KeyError if unknown."""
        if name == LOCAL_FEED:
            return self.local
        if name == MY_SQUIBS_FEED:
            return self.mine
        raise KeyError(f"Unknown feed: {name}. Available: {[LOCAL_FEED, MY_SQUIBS_FEED]}")

    def clear_all(self) -> None:
        self.local.clear_cache()
        self.mine.clear_cache()


def build_feed_stores(clock: Clock = now_ms) -> FeedStores:
    stores = FeedStores(local=FeedCacheStore(LOCAL_FEED, clock=clock), mine=FeedCacheStore(MY_SQUIBS_FEED, clock=clock))
    logger.info("Built feed stores: %s, %s", stores.local.name, stores.mine.name)
    return stores

"""Public feed: squibs near the device, paged by the backend."""
import logging
from typing import Any

from squibfeed.core.errors import LocationPermissionDenied
from squibfeed.models.cache_record import GeoPoint
from squibfeed.services.feed_cache.merge import normalize_page
from squibfeed.services.feed_cache.store import FeedCacheStore
from squibfeed.services.feeds.base import FeedController, FetchResult
from squibfeed.services.feeds.location import LocationProvider
from squibfeed.services.squibs import SquibsClient, fetch_local_page

logger = logging.getLogger(__name__)


class LocalFeedController(FeedController):
    def __init__(self, store: FeedCacheStore, client: SquibsClient, location: LocationProvider, **kwargs) -> None:
        super().__init__(store, client, **kwargs)
        self.location = location

    async def _position(self) -> GeoPoint:
        if not await self.location.has_permission():
            raise LocationPermissionDenied("Location permission not granted")
        return await self.location.current_position()

    async def _fetch_first_page(self) -> FetchResult:
        point = await self._position()
        page = await fetch_local_page(self.client, point, cursor=None, limit=self.page_size)
        items = normalize_page(page.items, self.store.now())
        logger.debug("local feed: %s item(s) near %s (total=%s)", len(items), point.rounded(), page.total_items)
        return FetchResult(items=items, cursor=page.cursor, extra={"query_context": point})

    async def _fetch_next_page(self, cursor: Any) -> FetchResult:
        # Keep paging the area the cached pages came from, even if the device has moved since.
        point = self.store.get_location() or await self._position()
        page = await fetch_local_page(self.client, point, cursor=cursor, limit=self.page_size)
        return FetchResult(items=normalize_page(page.items, self.store.now()), cursor=page.cursor)

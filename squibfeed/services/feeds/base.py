"""
Feed controller: the only writer of a cache store.

Reads the store on focus, decides via the freshness policy whether to hit the network, and writes
successful results back. Fetch failures never touch the store, so the last good data stays visible.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

from squibfeed.core.constants import DEFAULT_PAGE_SIZE
from squibfeed.core.errors import LocationPermissionDenied, SquibFeedError, user_message_for
from squibfeed.models.feed_item import FeedItem
from squibfeed.services.feed_cache.store import FeedCacheStore
from squibfeed.services.squibs import SquibsClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FeedView:
    """What the UI renders: sorted items plus load/error state."""

    items: list[FeedItem] = field(default_factory=list)
    cursor: Any = None
    scroll_offset: float = 0
    from_cache: bool = False
    refreshing: bool = False
    error: str | None = None
    permission_denied: bool = False

    @property
    def has_more(self) -> bool:
        return self.cursor is not None


@dataclass(frozen=True)
class FetchResult:
    items: list[FeedItem]
    cursor: Any = None
    extra: dict[str, Any] = field(default_factory=dict)  # other record fields to set, e.g. query_context


class FeedController:
    """Shared focus / refresh / load-more / scroll flow. Subclasses supply the two fetches."""

    def __init__(
        self,
        store: FeedCacheStore,
        client: SquibsClient,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
        background_refresh: bool = False,
    ) -> None:
        self.store = store
        self.client = client
        self.page_size = page_size
        self.background_refresh = background_refresh
        self._loading_more = False
        self._background_task: asyncio.Task | None = None

    def view(self, **state: Any) -> FeedView:
        record = self.store.get_data()
        return FeedView(
            items=self.store.sorted_items(),
            cursor=record.cursor,
            scroll_offset=record.scroll_offset,
            **state,
        )

    # -- subclass hooks ------------------------------------------------------

    async def _fetch_first_page(self) -> FetchResult:
        raise NotImplementedError

    async def _fetch_next_page(self, cursor: Any) -> FetchResult:
        raise NotImplementedError

    def _may_load(self, cursor: Any) -> bool:
        return True

    def _on_refreshed(self) -> None:
        pass

    def _on_page_loaded(self, cursor: Any) -> None:
        pass

    # -- flow ----------------------------------------------------------------

    async def on_focus(self) -> FeedView:
        """Serve a fresh, non-empty cache without a network call; otherwise load."""
        if self.store.is_cache_valid() and self.store.has_data():
            refreshing = False
            if self.background_refresh:
                refreshing = self._schedule_background_refresh()
            return self.view(from_cache=True, refreshing=refreshing)
        return await self.refresh()

    async def refresh(self) -> FeedView:
        """Reload the first page and replace the cached items. Only the latest refresh may write."""
        seq = self.store.begin_request()
        try:
            result = await self._fetch_first_page()
        except LocationPermissionDenied:
            logger.info("%s feed: location permission denied", self.store.name)
            return self.view(permission_denied=True)
        except SquibFeedError as e:
            logger.warning("%s feed: refresh failed: %s", self.store.name, e)
            return self.view(error=user_message_for(e))
        if not self.store.is_current(seq):
            logger.debug("%s feed: discarding stale refresh #%s", self.store.name, seq)
            return self.view()
        self.store.set_data(
            items=result.items,
            cursor=result.cursor,
            last_refreshed_at=self.store.now(),
            **result.extra,
        )
        self._on_refreshed()
        return self.view()

    async def load_more(self) -> FeedView:
        """Fetch the page after the cached cursor and append it. No-op without a cursor or while loading."""
        record = self.store.get_data()
        cursor = record.cursor
        if cursor is None or self._loading_more or not self._may_load(cursor):
            return self.view()
        # A refresh or clear issued meanwhile bumps the sequence and makes this page stale.
        seq = record.request_seq
        self._loading_more = True
        try:
            result = await self._fetch_next_page(cursor)
        except SquibFeedError as e:
            logger.warning("%s feed: load more failed: %s", self.store.name, e)
            return self.view(error=user_message_for(e))
        finally:
            self._loading_more = False
        if not self.store.is_current(seq):
            logger.debug("%s feed: discarding stale page for cursor %s", self.store.name, cursor)
            return self.view()
        self.store.append_data(result.items, result.cursor)
        self._on_page_loaded(cursor)
        return self.view()

    def on_scroll(self, offset: float) -> None:
        self.store.set_scroll_position(max(0.0, float(offset)))

    def restore_scroll(self) -> float:
        return self.store.get_scroll_position()

    def reset(self) -> None:
        """Forget per-session controller state (sign-out)."""
        self._loading_more = False

    # -- background refresh --------------------------------------------------

    def _schedule_background_refresh(self) -> bool:
        if self._background_task is not None and not self._background_task.done():
            return True
        try:
            self._background_task = asyncio.get_running_loop().create_task(self.refresh())
        except RuntimeError:
            return False
        self._background_task.add_done_callback(self._log_background_failure)
        return True

    def _log_background_failure(self, task: asyncio.Task) -> None:
        # refresh() handles fetch errors itself; anything else (e.g. the snapshot DB) ends up here
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("%s feed: background refresh failed", self.store.name, exc_info=exc)

    async def aclose(self) -> None:
        task, self._background_task = self._background_task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

"""
Personal feed: the signed-in user's own squibs.

The backend is asked for everything at once (fetch-all); the result is persisted as a snapshot and
pages are sliced locally, so "load more" normally costs no network round-trip.
"""
import json
import logging
from typing import Any, Callable

from sqlalchemy.orm import Session

from squibfeed.core.errors import SessionMissingError
from squibfeed.services.feed_cache.merge import normalize_page
from squibfeed.services.feed_cache.store import FeedCacheStore
from squibfeed.services.feeds.base import FeedController, FeedView, FetchResult
from squibfeed.services.squibs import SquibsClient, cursor_page, delete_squib, fetch_all_user_squibs
from squibfeed.services.user_snapshot import get_user_snapshot, invalidate_user_snapshot, save_user_snapshot, slice_snapshot

logger = logging.getLogger(__name__)


def _cursor_key(cursor: Any) -> str:
    return json.dumps(cursor, sort_keys=True, default=str)


class MySquibsController(FeedController):
    def __init__(
        self,
        store: FeedCacheStore,
        client: SquibsClient,
        session_factory: Callable[[], Session],
        *,
        user_id: str | None = None,
        **kwargs,
    ) -> None:
        super().__init__(store, client, **kwargs)
        self._session_factory = session_factory
        self._user_id = user_id
        self._loaded_cursors: set[str] = set()

    @property
    def user_id(self) -> str | None:
        return self._user_id

    def set_user(self, user_id: str | None) -> None:
        """Bind the signed-in user. Switching users drops the previous user's cached feed."""
        if user_id == self._user_id:
            return
        if self._user_id is not None:
            logger.info("mine feed: user changed, clearing cached squibs")
            self.store.clear_cache()
            self._loaded_cursors.clear()
        self._user_id = user_id

    def _require_user(self) -> str:
        if not self._user_id:
            raise SessionMissingError("No user session found")
        return self._user_id

    async def _all_squibs(self, user_id: str) -> list[dict[str, Any]]:
        db = self._session_factory()
        try:
            cached = get_user_snapshot(db, user_id)
        finally:
            db.close()
        if cached is not None:
            return cached
        items = await fetch_all_user_squibs(self.client, user_id)
        db = self._session_factory()
        try:
            save_user_snapshot(db, user_id, items)
        finally:
            db.close()
        logger.info("mine feed: cached %s squib(s) for user %s", len(items), user_id)
        return items

    async def _fetch_page(self, page: int, start: int | None = None) -> FetchResult:
        user_id = self._require_user()
        sliced = slice_snapshot(await self._all_squibs(user_id), page, self.page_size, start=start)
        return FetchResult(items=normalize_page(sliced.items, self.store.now()), cursor=sliced.cursor)

    async def _fetch_first_page(self) -> FetchResult:
        return await self._fetch_page(0)

    async def _fetch_next_page(self, cursor: Any) -> FetchResult:
        # Cached items are the loaded prefix of the snapshot, so the next page starts right after them.
        # A deleted post shortens both, and page * limit would skip one.
        return await self._fetch_page(cursor_page(cursor) or 0, start=len(self.store.get_data().items))

    def _may_load(self, cursor: Any) -> bool:
        return _cursor_key(cursor) not in self._loaded_cursors

    def _on_refreshed(self) -> None:
        self._loaded_cursors.clear()

    def _on_page_loaded(self, cursor: Any) -> None:
        self._loaded_cursors.add(_cursor_key(cursor))

    async def refresh(self, force: bool = False) -> FeedView:
        """Reload page 0. force drops the persisted snapshot first so the backend is asked again."""
        if force and self._user_id:
            self._invalidate(self._user_id)
        return await super().refresh()

    async def delete_post(self, post_id: str) -> FeedView:
        """Delete one of the user's squibs. Raises FeedFetchError (store untouched) if the backend refuses."""
        user_id = self._require_user()
        await delete_squib(self.client, post_id)
        self.store.remove_item(post_id)
        self._invalidate(user_id)
        return self.view()

    def _invalidate(self, user_id: str) -> None:
        db = self._session_factory()
        try:
            invalidate_user_snapshot(db, user_id)
        finally:
            db.close()

    def reset(self) -> None:
        super().reset()
        self._loaded_cursors.clear()
        self._user_id = None

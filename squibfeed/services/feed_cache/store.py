"""
In-memory cache store: one instance per feed type, constructed explicitly and handed to whoever needs it.

All operations are synchronous in-memory swaps of an immutable CacheRecord, so they cannot fail
and readers holding an older record never see it mutate.
"""
import dataclasses
import logging
from typing import Any, Iterable

from squibfeed.core.clock import Clock, now_ms
from squibfeed.models.cache_record import CacheRecord, GeoPoint
from squibfeed.models.feed_item import FeedItem
from squibfeed.services.feed_cache import freshness
from squibfeed.services.feed_cache.merge import append_items, replace_items, sort_for_display

logger = logging.getLogger(__name__)

# Fields callers may overwrite through set_data. request_seq is owned by begin_request/clear_cache.
SETTABLE_FIELDS = frozenset({"items", "cursor", "last_refreshed_at", "query_context", "scroll_offset"})


class FeedCacheStore:
    """Cached items, cursor, freshness timestamp, query context and scroll offset for one feed."""

    def __init__(self, name: str, *, clock: Clock = now_ms) -> None:
        self.name = name
        self._clock = clock
        self._record = CacheRecord()

    def __repr__(self) -> str:
        return f"FeedCacheStore(name={self.name!r}, items={len(self._record.items)})"

    def now(self) -> int:
        return self._clock()

    # -- reads ---------------------------------------------------------------

    def get_data(self) -> CacheRecord:
        return self._record

    def has_data(self) -> bool:
        return freshness.has_data(self._record)

    def is_cache_valid(self) -> bool:
        return freshness.is_cache_valid(self._record, self._clock())

    def sorted_items(self) -> list[FeedItem]:
        return sort_for_display(self._record.items)

    def get_scroll_position(self) -> float:
        return self._record.scroll_offset

    def get_location(self) -> GeoPoint | None:
        return self._record.query_context

    # -- writes --------------------------------------------------------------

    def set_data(self, **fields: Any) -> None:
        """Shallow-merge any subset of SETTABLE_FIELDS. items is replaced wholesale, never appended."""
        unknown = set(fields) - SETTABLE_FIELDS
        if unknown:
            raise TypeError(f"Unknown cache fields for {self.name}: {sorted(unknown)}")
        if "items" in fields:
            fields["items"] = replace_items(fields["items"] or ())
        self._record = dataclasses.replace(self._record, **fields)
        logger.debug(
            "%s cache: data set (items=%s, cursor=%s, last_refreshed_at=%s, scroll=%s)",
            self.name,
            len(self._record.items),
            self._record.cursor is not None,
            self._record.last_refreshed_at,
            self._record.scroll_offset,
        )

    def append_data(self, new_items: Iterable[FeedItem], cursor: Any) -> None:
        """Pagination merge: append after existing items (de-duplicated by id) and move the cursor."""
        new_items = list(new_items)
        before = len(self._record.items)
        items = append_items(self._record.items, new_items)
        self._record = dataclasses.replace(self._record, items=items, cursor=cursor)
        logger.debug(
            "%s cache: appended %s item(s), %s new, total=%s",
            self.name,
            len(new_items),
            len(items) - before,
            len(items),
        )

    def remove_item(self, item_id: str) -> bool:
        items = tuple(i for i in self._record.items if i.id != item_id)
        if len(items) == len(self._record.items):
            return False
        self._record = dataclasses.replace(self._record, items=items)
        logger.debug("%s cache: removed item %s", self.name, item_id)
        return True

    def set_scroll_position(self, position: float) -> None:
        self._record = dataclasses.replace(self._record, scroll_offset=position)

    def set_location(self, location: GeoPoint | None) -> None:
        self._record = dataclasses.replace(self._record, query_context=location)

    def clear_cache(self) -> None:
        """Reset to the empty record. Keeps the sequence moving so in-flight fetches become stale."""
        self._record = CacheRecord(request_seq=self._record.request_seq + 1)
        logger.info("%s cache: cleared", self.name)

    # -- request ordering ----------------------------------------------------

    def begin_request(self) -> int:
        """Issue the next fetch sequence number; only the latest one may write its result."""
        seq = self._record.request_seq + 1
        self._record = dataclasses.replace(self._record, request_seq=seq)
        return seq

    def is_current(self, seq: int) -> bool:
        return seq == self._record.request_seq

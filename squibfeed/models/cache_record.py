"""Per-feed cache record and the paged result shape the backend returns."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from squibfeed.core.constants import COORD_DECIMALS
from squibfeed.models.feed_item import FeedItem


@dataclass(frozen=True)
class GeoPoint:
    lon: float
    lat: float

    def rounded(self) -> tuple[str, str]:
        """Wire form: (lon, lat) as strings with 2 decimals, the backend's filter granularity."""
        return f"{self.lon:.{COORD_DECIMALS}f}", f"{self.lat:.{COORD_DECIMALS}f}"


@dataclass(frozen=True)
class CacheRecord:
    """
    Snapshot of one feed's cached state.

    Frozen with tuple items so a caller holding a record across an await never sees it change;
    the store swaps in a new record on every write.
    """

    items: tuple[FeedItem, ...] = ()
    cursor: Any = None  # opaque page token; None = no further pages
    last_refreshed_at: int = 0  # epoch millis, 0 = never
    query_context: GeoPoint | None = None
    scroll_offset: float = 0
    request_seq: int = 0


@dataclass(frozen=True)
class FeedPage:
    """One parsed backend response: { items, cursor, total_items, current_page }."""

    items: list[dict[str, Any]] = field(default_factory=list)  # raw records, normalized later
    cursor: Any = None
    total_items: int = 0
    current_page: int = 0

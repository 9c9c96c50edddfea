"""
Pagination merge logic: normalize raw backend records into FeedItems, then replace or append.

Storage keeps insertion (server page) order; sort_for_display is applied at read time only.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Iterable

from squibfeed.core.constants import TIME_STAMP_FORMAT
from squibfeed.models.feed_item import FeedItem, ItemType, MediaKind, MediaRef, PlaceName, derive_item_type

logger = logging.getLogger(__name__)

_ID_KEYS = ("post_id", "uuid", "id")


def _clean_str(v: Any) -> str | None:
    if v is None or isinstance(v, (dict, list)):
        return None
    s = str(v).strip()
    return s or None


def _as_number(v: Any) -> float | None:
    """Number from int/float or numeric string. bool is not a number here."""
    if isinstance(v, bool) or v is None:
        return None
    if isinstance(v, (int, float)):
        return float(v)
    if isinstance(v, str):
        try:
            return float(v.strip())
        except ValueError:
            return None
    return None


def _as_list(v: Any) -> list[str]:
    """Media fields arrive as a single key, a list of keys, or nothing."""
    if v is None:
        return []
    values = v if isinstance(v, (list, tuple)) else [v]
    return [s for s in (_clean_str(x) for x in values) if s]


def _parse_time_stamp(value: str) -> int | None:
    """Parse the client's human time_stamp ("Jan 05 2025 3:04 PM") or ISO-8601. Naive times are UTC."""
    s = value.strip()
    parsed = None
    try:
        parsed = datetime.strptime(s, TIME_STAMP_FORMAT)
    except ValueError:
        try:
            parsed = datetime.fromisoformat(s.replace("Z", "+00:00"))
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp() * 1000)


def derive_created_at(raw: dict[str, Any], now: int) -> int:
    """
    Sort key in epoch millis: date_key if numeric, else time_stamp (number or parseable string),
    else ingestion time. Items with no usable timestamp therefore sort as newest.
    """
    date_key = _as_number(raw.get("date_key"))
    if date_key is not None:
        return int(date_key)
    ts = raw.get("time_stamp")
    ts_num = _as_number(ts)
    if ts_num is not None:
        return int(ts_num)
    if isinstance(ts, str):
        parsed = _parse_time_stamp(ts)
        if parsed is not None:
            return parsed
    return now


def _place_name(v: Any) -> PlaceName | None:
    if not isinstance(v, dict):
        return None
    place = PlaceName(city=_clean_str(v.get("city")), state=_clean_str(v.get("state")), country=_clean_str(v.get("country")))
    return place if place.label() else None


def normalize_item(raw: Any, now: int) -> FeedItem | None:
    """Raw backend record -> FeedItem. Returns None for malformed records (no id or no author)."""
    if not isinstance(raw, dict):
        return None
    item_id = next((s for s in (_clean_str(raw.get(k)) for k in _ID_KEYS) if s), None)
    author_id = _clean_str(raw.get("user_id"))
    if not item_id or not author_id:
        return None
    media = tuple(
        [MediaRef(MediaKind.PHOTO, ref) for ref in _as_list(raw.get("image"))]
        + [MediaRef(MediaKind.VIDEO, ref) for ref in _as_list(raw.get("video"))]
    )
    wire_type = raw.get("type")
    item_type = ItemType(wire_type) if wire_type in {t.value for t in ItemType} else derive_item_type(media)
    time_stamp = raw.get("time_stamp")
    return FeedItem(
        id=item_id,
        author_id=author_id,
        created_at=derive_created_at(raw, now),
        author_name=_clean_str(raw.get("user_name")),
        author_photo=_clean_str(raw.get("user_photo")),
        text=_clean_str(raw.get("text")),
        media=media,
        type=item_type,
        display_time=str(time_stamp) if time_stamp is not None else None,
        location=_place_name(raw.get("location")),
        lon=_as_number(raw.get("lon")),
        lat=_as_number(raw.get("lat")),
    )


def normalize_page(raw_items: Iterable[Any], now: int) -> list[FeedItem]:
    """Normalize a page; malformed records are dropped and logged, never raised."""
    out: list[FeedItem] = []
    dropped = 0
    for raw in raw_items:
        item = normalize_item(raw, now)
        if item is None:
            dropped += 1
            continue
        out.append(item)
    if dropped:
        logger.warning("Dropped %s malformed feed record(s) during normalization", dropped)
    return out


def replace_items(items: Iterable[FeedItem]) -> tuple[FeedItem, ...]:
    """Full replace; duplicate ids within the new list keep their first occurrence."""
    seen: set[str] = set()
    out: list[FeedItem] = []
    for item in items:
        if item.id in seen:
            continue
        seen.add(item.id)
        out.append(item)
    return tuple(out)


def append_items(existing: Iterable[FeedItem], incoming: Iterable[FeedItem]) -> tuple[FeedItem, ...]:
    """
    Append a page after the cached items, de-duplicated by id.
    An incoming item already cached replaces the cached entry in place; new ids go at the end in page order.
    """
    merged = list(existing)
    index = {item.id: i for i, item in enumerate(merged)}
    for item in incoming:
        pos = index.get(item.id)
        if pos is not None:
            merged[pos] = item
        else:
            index[item.id] = len(merged)
            merged.append(item)
    return tuple(merged)


def sort_for_display(items: Iterable[FeedItem]) -> list[FeedItem]:
    """Newest first; equal created_at ordered by id ascending so the view is deterministic."""
    return sorted(sorted(items, key=lambda i: i.id), key=lambda i: i.created_at, reverse=True)

"""Squibs API: request building and page parsing. Client below just sends the request."""
from typing import Any

from squibfeed.core.constants import FETCH_ALL_LIMIT
from squibfeed.core.errors import FeedFetchError
from squibfeed.models.cache_record import FeedPage, GeoPoint
from squibfeed.services.squibs.client import SquibsClient
from squibfeed.services.squibs.config import SquibsConfig
from squibfeed.services.squibs.types import (
    LocalSquibsRequest,
    RawSquib,
    SquibLocation,
    SquibPageBody,
    UserSquibsRequest,
)


def cursor_page(cursor: Any) -> int | None:
    """Page number carried by a cursor like {"page": 2, "totalItems": 37}; None for other tokens."""
    if isinstance(cursor, dict) and cursor.get("page") is not None:
        try:
            return int(cursor["page"])
        except (TypeError, ValueError):
            return None
    return None


def _raise_on_error(raw: dict[str, Any], what: str) -> None:
    if raw.get("error"):
        raise FeedFetchError(f"{what}: {raw['error']}", status_code=raw.get("status_code"), detail=raw.get("detail"))


def page_from_response(raw: dict[str, Any], *, page: int = 0, limit: int | None = None) -> FeedPage:
    """
    Parse a page body into FeedPage. Accepts Items/LastEvaluatedKey/TotalItems/CurrentPage and the
    lower-case items/cursor/lastKey/totalItems/currentPage spelling. A body without an item list is an
    empty page (backend answered, just not with data). In fetch-all mode the cursor is always None.
    """
    items = raw.get("Items")
    if items is None:
        items = raw.get("items")
    if not isinstance(items, list):
        return FeedPage(items=[], cursor=None, total_items=0, current_page=page)
    cursor = raw.get("LastEvaluatedKey")
    if cursor is None:
        cursor = raw.get("cursor", raw.get("lastKey"))
    if limit is not None and limit >= FETCH_ALL_LIMIT:
        cursor = None
    total = raw.get("TotalItems") or raw.get("totalItems") or len(items)
    current = raw.get("CurrentPage") or raw.get("currentPage") or page
    if cursor in (None, {}):
        cursor = None
    return FeedPage(items=items, cursor=cursor, total_items=int(total), current_page=int(current))


def local_request(location: GeoPoint, *, cursor: Any = None, limit: int = 10) -> LocalSquibsRequest:
    """Request body for the location feed; the page number comes from the cursor when it carries one."""
    lon, lat = location.rounded()
    body: LocalSquibsRequest = {"lon": lon, "lat": lat, "limit": limit, "page": 0}
    page = cursor_page(cursor)
    if page is not None:
        body["page"] = page
    elif cursor is not None:
        body["lastKey"] = cursor
    return body


async def fetch_local_page(client: SquibsClient, location: GeoPoint, *, cursor: Any = None, limit: int = 10) -> FeedPage:
    """One page of squibs near location. Raises FeedFetchError when the backend call fails."""
    body = local_request(location, cursor=cursor, limit=limit)
    raw = await client.local_squibs(body)
    _raise_on_error(raw, "local-squibs")
    return page_from_response(raw, page=body["page"], limit=limit)


async def fetch_all_user_squibs(client: SquibsClient, user_id: str) -> list[dict[str, Any]]:
    """Every squib the user posted, in backend order (newest first). Raises FeedFetchError on failure."""
    raw = await client.user_squibs({"uuid": user_id, "limit": FETCH_ALL_LIMIT, "page": 0})
    _raise_on_error(raw, "user-squibs")
    return page_from_response(raw, page=0, limit=FETCH_ALL_LIMIT).items


async def delete_squib(client: SquibsClient, post_id: str) -> None:
    raw = await client.delete_squib(post_id)
    _raise_on_error(raw, "delete-squib")


__all__ = [
    "SquibsClient",
    "SquibsConfig",
    "cursor_page",
    "delete_squib",
    "fetch_all_user_squibs",
    "fetch_local_page",
    "local_request",
    "page_from_response",
    "LocalSquibsRequest",
    "RawSquib",
    "SquibLocation",
    "SquibPageBody",
    "UserSquibsRequest",
]

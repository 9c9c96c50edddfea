"""
Typed definitions for Squibs API payloads.

Both list endpoints (POST /local-squibs, POST /user-squibs) answer with a page body, either directly
or wrapped as {"body": "<json string>"} by the Lambda proxy. Items are the raw post records below;
they are normalized into FeedItem before they reach a cache store.
"""

from typing import Any, TypedDict


class SquibLocation(TypedDict, total=False):
    """Reverse-geocoded place attached when the post was created."""
    city: str
    state: str
    country: str


class RawSquib(TypedDict, total=False):
    """One post record as stored by the backend."""
    post_id: str  # public feed id
    uuid: str  # id on the user's own squibs
    user_id: str
    user_name: str
    user_photo: str
    text: str
    image: list[str] | str  # photo storage keys
    video: list[str] | str  # video storage keys
    time_stamp: str | int  # e.g. "Jan 05 2025 3:04 PM"
    date_key: int  # epoch millis, sort key
    lon: str | float  # 2-decimal string as posted
    lat: str | float
    location: SquibLocation
    type: str  # "photo" | "video"


class SquibPageBody(TypedDict, total=False):
    """Page body. LastEvaluatedKey is opaque; the API layer uses {"page": n, "totalItems": n}."""
    Items: list[RawSquib]
    LastEvaluatedKey: Any
    TotalItems: int
    CurrentPage: int


class LocalSquibsRequest(TypedDict, total=False):
    lon: str
    lat: str
    limit: int
    page: int
    lastKey: Any


class UserSquibsRequest(TypedDict):
    uuid: str
    limit: int
    page: int

"""Normalized feed item. Same shape for the public feed and the user's own squibs."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class MediaKind(str, Enum):
    PHOTO = "photo"
    VIDEO = "video"


class ItemType(str, Enum):
    """Rendering discriminator; derivable from media when the server omits it."""

    PHOTO = "photo"
    VIDEO = "video"
    TEXT = "text"


@dataclass(frozen=True)
class MediaRef:
    kind: MediaKind
    ref: str  # storage key or URL as sent by the backend


@dataclass(frozen=True)
class PlaceName:
    """Reverse-geocoded place attached at post time. Descriptive only, never used for filtering."""

    city: str | None = None
    state: str | None = None
    country: str | None = None

    def label(self) -> str:
        return ", ".join(p for p in (self.city, self.state, self.country) if p)


@dataclass(frozen=True)
class FeedItem:
    id: str
    author_id: str
    created_at: int  # epoch millis; sort key
    author_name: str | None = None
    author_photo: str | None = None
    text: str | None = None
    media: tuple[MediaRef, ...] = field(default_factory=tuple)
    type: ItemType = ItemType.TEXT
    display_time: str | None = None
    location: PlaceName | None = None
    lon: float | None = None
    lat: float | None = None

    @property
    def photos(self) -> list[str]:
        return [m.ref for m in self.media if m.kind is MediaKind.PHOTO]

    @property
    def videos(self) -> list[str]:
        return [m.ref for m in self.media if m.kind is MediaKind.VIDEO]

    def to_dict(self) -> dict[str, Any]:
        """Format for API responses: { id, author_id, ..., media: [{kind, ref}], location }."""
        return {
            "id": self.id,
            "author_id": self.author_id,
            "author_name": self.author_name,
            "author_photo": self.author_photo,
            "text": self.text,
            "media": [{"kind": m.kind.value, "ref": m.ref} for m in self.media],
            "type": self.type.value,
            "created_at": self.created_at,
            "display_time": self.display_time,
            "location": (
                {"city": self.location.city, "state": self.location.state, "country": self.location.country}
                if self.location
                else None
            ),
            "lon": self.lon,
            "lat": self.lat,
        }


def derive_item_type(media: tuple[MediaRef, ...] | list[MediaRef]) -> ItemType:
    if any(m.kind is MediaKind.VIDEO for m in media):
        return ItemType.VIDEO
    if media:
        return ItemType.PHOTO
    return ItemType.TEXT

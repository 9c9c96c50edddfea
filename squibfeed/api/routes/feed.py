"""
Feed session API: lets a UI shell drive the feed engine over local HTTP.

Each route maps one UI event (screen focus, pull-to-refresh, scroll-to-end, scroll, delete, sign-out)
onto a feed controller. The shell owns the GPS and passes lon/lat; the signed-in user comes from X-User-Id.
"""
import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from squibfeed.core.constants import FEED_NAMES
from squibfeed.core.errors import SessionMissingError, SquibFeedError, feed_error_to_http
from squibfeed.db.session import get_db
from squibfeed.models.cache_record import GeoPoint
from squibfeed.models.feed_item import FeedItem
from squibfeed.services.feed_cache.store import FeedCacheStore
from squibfeed.services.feeds import FeedControllers, FeedView, MySquibsController, ReportedLocationProvider

router = APIRouter()
logger = logging.getLogger(__name__)


class MediaOut(BaseModel):
    kind: str
    ref: str


class PlaceOut(BaseModel):
    city: str | None = None
    state: str | None = None
    country: str | None = None


class FeedItemOut(BaseModel):
    id: str
    author_id: str
    author_name: str | None = None
    author_photo: str | None = None
    text: str | None = None
    media: list[MediaOut] = Field(default_factory=list)
    type: str
    created_at: int
    display_time: str | None = None
    location: PlaceOut | None = None
    lon: float | None = None
    lat: float | None = None

    @classmethod
    def from_item(cls, item: FeedItem) -> "FeedItemOut":
        return cls(**item.to_dict())


class FeedViewOut(BaseModel):
    items: list[FeedItemOut]
    cursor: Any = None
    has_more: bool
    scroll_offset: float
    from_cache: bool
    refreshing: bool
    error: str | None = None
    permission_denied: bool

    @classmethod
    def from_view(cls, view: FeedView) -> "FeedViewOut":
        return cls(
            items=[FeedItemOut.from_item(i) for i in view.items],
            cursor=view.cursor,
            has_more=view.has_more,
            scroll_offset=view.scroll_offset,
            from_cache=view.from_cache,
            refreshing=view.refreshing,
            error=view.error,
            permission_denied=view.permission_denied,
        )


class ScrollBody(BaseModel):
    offset: float = Field(..., ge=0, description="Scroll offset in points")


class FeedStateOut(BaseModel):
    feed: str
    items_count: int
    has_more: bool
    last_refreshed_at: str | None
    cache_valid: bool
    scroll_offset: float
    query_context: dict[str, float] | None = None


def get_controllers(request: Request) -> FeedControllers:
    return request.app.state.controllers


def get_location(request: Request) -> ReportedLocationProvider:
    return request.app.state.location


def _store(controllers: FeedControllers, feed: str) -> FeedCacheStore:
    if feed not in FEED_NAMES:
        raise HTTPException(status_code=404, detail=f"Unknown feed: {feed}")
    return controllers.stores.get(feed)


def _report_location(location: ReportedLocationProvider, lon: float | None, lat: float | None) -> None:
    if lon is None and lat is None:
        return
    if lon is None or lat is None:
        raise HTTPException(status_code=422, detail="lon and lat must be sent together")
    location.report(GeoPoint(lon=lon, lat=lat))


def _mine_for(controllers: FeedControllers, user_id: str | None) -> MySquibsController:
    user_id = (user_id or "").strip()
    if not user_id:
        raise feed_error_to_http(SessionMissingError("X-User-Id header missing"))
    controllers.mine.set_user(user_id)
    return controllers.mine


# --- public feed -------------------------------------------------------------

@router.post("/feeds/local/focus", response_model=FeedViewOut)
async def local_focus(
    lon: float | None = Query(None, ge=-180, le=180),
    lat: float | None = Query(None, ge=-90, le=90),
    controllers: FeedControllers = Depends(get_controllers),
    location: ReportedLocationProvider = Depends(get_location),
):
    """Screen focus: cached feed if fresh, else a network load."""
    _report_location(location, lon, lat)
    return FeedViewOut.from_view(await controllers.local.on_focus())


@router.post("/feeds/local/refresh", response_model=FeedViewOut)
async def local_refresh(
    lon: float | None = Query(None, ge=-180, le=180),
    lat: float | None = Query(None, ge=-90, le=90),
    controllers: FeedControllers = Depends(get_controllers),
    location: ReportedLocationProvider = Depends(get_location),
):
    """Pull-to-refresh."""
    _report_location(location, lon, lat)
    return FeedViewOut.from_view(await controllers.local.refresh())


@router.post("/feeds/local/more", response_model=FeedViewOut)
async def local_more(controllers: FeedControllers = Depends(get_controllers)):
    """Scroll reached the end: next page from the cached cursor."""
    return FeedViewOut.from_view(await controllers.local.load_more())


# --- personal feed -----------------------------------------------------------

@router.post("/feeds/mine/focus", response_model=FeedViewOut)
async def mine_focus(
    x_user_id: str | None = Header(None),
    controllers: FeedControllers = Depends(get_controllers),
):
    return FeedViewOut.from_view(await _mine_for(controllers, x_user_id).on_focus())


@router.post("/feeds/mine/refresh", response_model=FeedViewOut)
async def mine_refresh(
    force: bool = Query(False, description="Drop the persisted snapshot and ask the backend again"),
    x_user_id: str | None = Header(None),
    controllers: FeedControllers = Depends(get_controllers),
):
    return FeedViewOut.from_view(await _mine_for(controllers, x_user_id).refresh(force=force))


@router.post("/feeds/mine/more", response_model=FeedViewOut)
async def mine_more(
    x_user_id: str | None = Header(None),
    controllers: FeedControllers = Depends(get_controllers),
):
    return FeedViewOut.from_view(await _mine_for(controllers, x_user_id).load_more())


@router.delete("/feeds/mine/{post_id}", response_model=FeedViewOut)
async def mine_delete(
    post_id: str,
    x_user_id: str | None = Header(None),
    controllers: FeedControllers = Depends(get_controllers),
):
    """Delete one of the user's squibs and drop it from the cached feed."""
    mine = _mine_for(controllers, x_user_id)
    try:
        view = await mine.delete_post(post_id)
    except SquibFeedError as e:
        logger.warning("Delete of %s failed: %s", post_id, e)
        raise feed_error_to_http(e) from e
    return FeedViewOut.from_view(view)


# --- scroll / state ----------------------------------------------------------

@router.put("/feeds/{feed}/scroll")
async def set_scroll(feed: str, body: ScrollBody, controllers: FeedControllers = Depends(get_controllers)):
    _store(controllers, feed).set_scroll_position(body.offset)
    return {"ok": True, "offset": body.offset}


@router.get("/feeds/{feed}/scroll")
async def get_scroll(feed: str, controllers: FeedControllers = Depends(get_controllers)):
    return {"offset": _store(controllers, feed).get_scroll_position()}


@router.get("/feeds/{feed}/state", response_model=FeedStateOut)
async def feed_state(feed: str, controllers: FeedControllers = Depends(get_controllers)):
    """Record summary for debugging: counts, cursor presence and freshness."""
    store = _store(controllers, feed)
    record = store.get_data()
    refreshed = (
        datetime.fromtimestamp(record.last_refreshed_at / 1000, tz=timezone.utc).isoformat()
        if record.last_refreshed_at
        else None
    )
    ctx = record.query_context
    return FeedStateOut(
        feed=feed,
        items_count=len(record.items),
        has_more=record.cursor is not None,
        last_refreshed_at=refreshed,
        cache_valid=store.is_cache_valid(),
        scroll_offset=record.scroll_offset,
        query_context={"lon": ctx.lon, "lat": ctx.lat} if ctx else None,
    )


# --- session -----------------------------------------------------------------

@router.post("/session/sign-out")
async def session_sign_out(
    controllers: FeedControllers = Depends(get_controllers),
    location: ReportedLocationProvider = Depends(get_location),
    db: Session = Depends(get_db),
):
    """Clear both feeds and all persisted snapshots so the next user starts empty."""
    controllers.sign_out(db)
    location.revoke()
    return {"ok": True}

import asyncio
import logging

import pytest
from sqlalchemy.exc import OperationalError

from squibfeed.core.constants import FRESHNESS_WINDOW_MS
from squibfeed.core.errors import MSG_LOAD_FAILED, MSG_LOCATION_TIMEOUT, FeedFetchError, LocationTimeout
from squibfeed.models.cache_record import GeoPoint
from squibfeed.services.feeds import (
    LocalFeedController,
    MySquibsController,
    ReportedLocationProvider,
    build_feed_controllers,
)

HERE = GeoPoint(lon=-73.99, lat=40.73)


class TimingOutLocation:
    async def has_permission(self):
        return True

    async def current_position(self):
        raise LocationTimeout("no fix within 8s")


@pytest.fixture
def local(stores, backend):
    return LocalFeedController(stores.local, backend, ReportedLocationProvider(HERE), page_size=2)


@pytest.fixture
def mine(stores, backend, session_factory):
    return MySquibsController(stores.mine, backend, session_factory, user_id="u-1", page_size=2)


# --- public feed -------------------------------------------------------------

@pytest.mark.asyncio
async def test_first_focus_loads_and_sorts(local, backend, stores, clock, raw_squib):
    backend.local_responses.append(
        {"Items": [raw_squib("old", 100), raw_squib("new", 300)], "LastEvaluatedKey": {"page": 1, "totalItems": 3}}
    )
    view = await local.on_focus()
    assert [i.id for i in view.items] == ["new", "old"]
    assert not view.from_cache
    assert view.has_more
    record = stores.local.get_data()
    assert [i.id for i in record.items] == ["old", "new"]
    assert record.last_refreshed_at == clock.now
    assert record.query_context == HERE
    assert backend.local_calls == [{"lon": "-73.99", "lat": "40.73", "limit": 2, "page": 0}]


@pytest.mark.asyncio
async def test_fresh_cache_skips_network(local, backend, clock, raw_squib):
    backend.local_responses.append({"Items": [raw_squib("a", 1)]})
    await local.on_focus()
    clock.advance(FRESHNESS_WINDOW_MS - 1)
    view = await local.on_focus()
    assert view.from_cache
    assert len(backend.local_calls) == 1


@pytest.mark.asyncio
async def test_stale_cache_refetches(local, backend, clock, raw_squib):
    backend.local_responses += [{"Items": [raw_squib("a", 1)]}, {"Items": [raw_squib("b", 2)]}]
    await local.on_focus()
    clock.advance(FRESHNESS_WINDOW_MS)
    view = await local.on_focus()
    assert not view.from_cache
    assert [i.id for i in view.items] == ["b"]


@pytest.mark.asyncio
async def test_empty_fresh_cache_still_fetches(local, backend):
    await local.on_focus()  # backend answers with no items
    await local.on_focus()
    assert len(backend.local_calls) == 2


@pytest.mark.asyncio
async def test_load_more_appends_with_cached_location(local, backend, stores, raw_squib):
    backend.local_responses += [
        {"Items": [raw_squib("a", 300), raw_squib("b", 200)], "LastEvaluatedKey": {"page": 1}},
        {"Items": [raw_squib("b", 200), raw_squib("c", 100)], "LastEvaluatedKey": None},
    ]
    await local.refresh()
    local.location.report(GeoPoint(lon=2.35, lat=48.85))  # device moved; paging stays on the cached area
    view = await local.load_more()
    assert [i.id for i in view.items] == ["a", "b", "c"]
    assert view.cursor is None
    assert backend.local_calls[1] == {"lon": "-73.99", "lat": "40.73", "limit": 2, "page": 1}
    # no cursor left: no further request
    await local.load_more()
    assert len(backend.local_calls) == 2


@pytest.mark.asyncio
async def test_load_more_does_not_touch_refresh_time(local, backend, stores, clock, raw_squib):
    backend.local_responses += [{"Items": [raw_squib("a", 1)], "LastEvaluatedKey": "k2"}, {"Items": [raw_squib("b", 0)]}]
    await local.refresh()
    refreshed_at = stores.local.get_data().last_refreshed_at
    clock.advance(1000)
    await local.load_more()
    assert stores.local.get_data().last_refreshed_at == refreshed_at


@pytest.mark.asyncio
async def test_failed_refresh_keeps_last_good_data(local, backend, stores, clock, raw_squib):
    backend.local_responses += [{"Items": [raw_squib("a", 1)]}, {"error": "Squibs API error: 500", "status_code": 500}]
    await local.refresh()
    before = stores.local.get_data()
    clock.advance(FRESHNESS_WINDOW_MS + 1)
    view = await local.refresh()
    assert view.error == MSG_LOAD_FAILED
    assert [i.id for i in view.items] == ["a"]
    after = stores.local.get_data()
    assert after.items == before.items
    assert after.last_refreshed_at == before.last_refreshed_at


@pytest.mark.asyncio
async def test_permission_denied_leaves_cache(stores, backend):
    controller = LocalFeedController(stores.local, backend, ReportedLocationProvider(), page_size=2)
    view = await controller.on_focus()
    assert view.permission_denied
    assert view.error is None
    assert backend.local_calls == []
    assert stores.local.get_data().last_refreshed_at == 0


@pytest.mark.asyncio
async def test_location_timeout_message(stores, backend):
    controller = LocalFeedController(stores.local, backend, TimingOutLocation())
    view = await controller.refresh()
    assert view.error == MSG_LOCATION_TIMEOUT
    assert backend.local_calls == []


@pytest.mark.asyncio
async def test_stale_refresh_completion_is_discarded(local, backend, stores, raw_squib):
    slow_gate = asyncio.Event()
    backend.local_responses += [
        (slow_gate, {"Items": [raw_squib("stale", 1)]}),
        {"Items": [raw_squib("fresh", 2)]},
    ]
    slow = asyncio.create_task(local.refresh())
    await asyncio.sleep(0)  # first request is now in flight
    await local.refresh()
    slow_gate.set()
    await slow
    assert [i.id for i in stores.local.get_data().items] == ["fresh"]


@pytest.mark.asyncio
async def test_page_in_flight_during_refresh_is_discarded(local, backend, stores, raw_squib):
    page_gate = asyncio.Event()
    backend.local_responses += [
        {"Items": [raw_squib("a", 5)], "LastEvaluatedKey": {"page": 1}},
        (page_gate, {"Items": [raw_squib("old-page", 1)], "LastEvaluatedKey": None}),
        {"Items": [raw_squib("b", 6)], "LastEvaluatedKey": {"page": 1}},
    ]
    await local.refresh()
    more = asyncio.create_task(local.load_more())
    await asyncio.sleep(0)
    await local.refresh()
    page_gate.set()
    await more
    record = stores.local.get_data()
    assert [i.id for i in record.items] == ["b"]
    assert record.cursor == {"page": 1}


@pytest.mark.asyncio
async def test_clear_during_fetch_stays_clear(local, backend, stores, raw_squib):
    gate = asyncio.Event()
    backend.local_responses.append((gate, {"Items": [raw_squib("leak", 1)]}))
    task = asyncio.create_task(local.refresh())
    await asyncio.sleep(0)
    stores.local.clear_cache()
    gate.set()
    await task
    assert not stores.local.has_data()


@pytest.mark.asyncio
async def test_scroll_round_trip(local):
    local.on_scroll(420.5)
    assert local.restore_scroll() == 420.5
    local.on_scroll(-3)
    assert local.restore_scroll() == 0


@pytest.mark.asyncio
async def test_background_refresh_on_fresh_focus(stores, backend, raw_squib):
    controller = LocalFeedController(stores.local, backend, ReportedLocationProvider(HERE), background_refresh=True)
    backend.local_responses += [{"Items": [raw_squib("a", 1)]}, {"Items": [raw_squib("b", 2)]}]
    await controller.on_focus()
    view = await controller.on_focus()
    assert view.from_cache
    assert view.refreshing
    assert [i.id for i in view.items] == ["a"]
    await controller._background_task
    assert [i.id for i in stores.local.get_data().items] == ["b"]
    await controller.aclose()


@pytest.mark.asyncio
async def test_background_refresh_failure_is_logged(stores, backend, clock, make_item, caplog):
    def broken_db():
        raise OperationalError("SELECT", {}, Exception("disk I/O error"))

    controller = MySquibsController(stores.mine, backend, broken_db, user_id="u-1", background_refresh=True)
    stores.mine.set_data(items=[make_item("a", 1)], last_refreshed_at=clock.now)
    with caplog.at_level(logging.ERROR, logger="squibfeed.services.feeds.base"):
        view = await controller.on_focus()
        assert view.refreshing
        await asyncio.wait([controller._background_task])
        await asyncio.sleep(0)
    assert "background refresh failed" in caplog.text
    assert [i.id for i in stores.mine.get_data().items] == ["a"]


# --- personal feed -----------------------------------------------------------

@pytest.mark.asyncio
async def test_mine_fetches_all_once_and_pages_locally(mine, backend, stores, raw_squib):
    backend.user_responses.append({"Items": [raw_squib(None, 30 - n, uuid=f"s{n}") for n in range(5)]})
    view = await mine.on_focus()
    assert [i.id for i in view.items] == ["s0", "s1"]
    assert view.cursor == {"page": 1, "totalItems": 5}
    await mine.load_more()
    view = await mine.load_more()
    assert [i.id for i in view.items] == ["s0", "s1", "s2", "s3", "s4"]
    assert view.cursor is None
    assert backend.user_calls == [{"uuid": "u-1", "limit": 1000, "page": 0}]


@pytest.mark.asyncio
async def test_mine_refresh_uses_snapshot_unless_forced(mine, backend, raw_squib):
    backend.user_responses += [{"Items": [raw_squib("a", 1)]}, {"Items": [raw_squib("b", 2)]}]
    await mine.refresh()
    view = await mine.refresh()
    assert [i.id for i in view.items] == ["a"]
    assert len(backend.user_calls) == 1
    view = await mine.refresh(force=True)
    assert [i.id for i in view.items] == ["b"]
    assert len(backend.user_calls) == 2


@pytest.mark.asyncio
async def test_mine_does_not_reload_same_cursor(mine, stores, backend, raw_squib):
    backend.user_responses.append({"Items": [raw_squib(f"p{n}", 10 - n) for n in range(5)]})
    await mine.refresh()
    first_cursor = stores.mine.get_data().cursor
    await mine.load_more()
    stores.mine.set_data(cursor=first_cursor)  # host replays an old cursor
    view = await mine.load_more()
    assert [i.id for i in view.items] == ["p0", "p1", "p2", "p3"]


@pytest.mark.asyncio
async def test_mine_without_user_reports_session_error(stores, backend, session_factory):
    controller = MySquibsController(stores.mine, backend, session_factory)
    view = await controller.refresh()
    assert view.error == "No user session found."
    assert backend.user_calls == []


@pytest.mark.asyncio
async def test_mine_user_switch_clears_previous_feed(mine, stores, backend, raw_squib):
    backend.user_responses.append({"Items": [raw_squib("a", 1)]})
    await mine.refresh()
    mine.set_user("u-2")
    assert not stores.mine.has_data()


@pytest.mark.asyncio
async def test_delete_post_removes_item_and_snapshot(mine, stores, backend, raw_squib):
    backend.user_responses += [{"Items": [raw_squib("a", 2), raw_squib("b", 1)]}, {"Items": [raw_squib("b", 1)]}]
    await mine.refresh()
    view = await mine.delete_post("a")
    assert backend.delete_calls == ["a"]
    assert [i.id for i in view.items] == ["b"]
    await mine.refresh()
    assert len(backend.user_calls) == 2


@pytest.mark.asyncio
async def test_load_more_after_delete_keeps_every_post(mine, backend, raw_squib):
    posts = [raw_squib(p, 10 - n) for n, p in enumerate("abcd")]
    backend.user_responses += [{"Items": posts}, {"Items": posts[1:]}]
    await mine.refresh()
    await mine.delete_post("a")
    view = await mine.load_more()
    assert [i.id for i in view.items] == ["b", "c", "d"]
    assert view.cursor is None


@pytest.mark.asyncio
async def test_failed_delete_keeps_item(mine, stores, backend, raw_squib):
    backend.user_responses.append({"Items": [raw_squib("a", 2)]})
    backend.delete_responses.append({"error": "Squibs API error: 500", "status_code": 500})
    await mine.refresh()
    with pytest.raises(FeedFetchError):
        await mine.delete_post("a")
    assert [i.id for i in stores.mine.get_data().items] == ["a"]


# --- sign-out ----------------------------------------------------------------

@pytest.mark.asyncio
async def test_sign_out_clears_both_feeds_and_snapshots(stores, backend, session_factory, raw_squib):
    controllers = build_feed_controllers(
        stores, backend, ReportedLocationProvider(HERE), session_factory, page_size=10
    )
    controllers.mine.set_user("u-1")
    backend.local_responses.append({"Items": [raw_squib("l", 1)]})
    backend.user_responses += [{"Items": [raw_squib("m", 1)]}, {"Items": []}]
    await controllers.local.refresh()
    await controllers.mine.refresh()
    controllers.local.on_scroll(99)

    db = session_factory()
    try:
        controllers.sign_out(db)
    finally:
        db.close()

    assert not stores.local.has_data()
    assert not stores.mine.has_data()
    assert stores.local.get_scroll_position() == 0
    assert controllers.mine.user_id is None
    controllers.mine.set_user("u-1")
    await controllers.mine.refresh()
    assert len(backend.user_calls) == 2  # snapshot was dropped too

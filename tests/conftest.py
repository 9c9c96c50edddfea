"""Test fixtures: fake clock, item factory, in-memory snapshot DB and a scriptable Squibs backend."""
from typing import Any

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from squibfeed.db.base import Base
from squibfeed.models.feed_item import FeedItem
from squibfeed.services.feed_cache import build_feed_stores

NOW_MS = 1_750_000_000_000


class FakeClock:
    def __init__(self, now: int = NOW_MS):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class FakeSquibsBackend:
    """
    Stands in for SquibsClient: same three request methods, answers from queued responses.
    A queued response may be an asyncio.Event-gated tuple (event, response) to hold a request open.
    """

    def __init__(self):
        self.local_responses: list[Any] = []
        self.user_responses: list[Any] = []
        self.delete_responses: list[Any] = []
        self.local_calls: list[dict[str, Any]] = []
        self.user_calls: list[dict[str, Any]] = []
        self.delete_calls: list[str] = []

    @staticmethod
    async def _answer(queue: list[Any]) -> dict[str, Any]:
        resp = queue.pop(0) if queue else {"Items": []}
        if isinstance(resp, tuple):
            gate, resp = resp
            await gate.wait()
        return resp

    async def local_squibs(self, body):
        self.local_calls.append(dict(body))
        return await self._answer(self.local_responses)

    async def user_squibs(self, body):
        self.user_calls.append(dict(body))
        return await self._answer(self.user_responses)

    async def delete_squib(self, post_id):
        self.delete_calls.append(post_id)
        return await self._answer(self.delete_responses) if self.delete_responses else {"ok": True}


def _raw_squib(post_id: str, date_key: int | None = None, **extra) -> dict[str, Any]:
    raw = {"post_id": post_id, "user_id": "u-1", "user_name": "Ada", "text": f"squib {post_id}", "image": [f"{post_id}.jpg"]}
    if date_key is not None:
        raw["date_key"] = date_key
    raw.update(extra)
    return raw


@pytest.fixture
def raw_squib():
    return _raw_squib


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def stores(clock):
    return build_feed_stores(clock=clock)


@pytest.fixture
def make_item():
    def _make(item_id: str, created_at: int = 0, **kwargs) -> FeedItem:
        return FeedItem(id=item_id, author_id=kwargs.pop("author_id", "u-1"), created_at=created_at, **kwargs)

    return _make


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    import squibfeed.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def backend():
    return FakeSquibsBackend()


"""Controller wiring and sign-out. Sign-out must leave no trace of the previous user's feeds."""
import logging
from dataclasses import dataclass
from typing import Callable

from sqlalchemy.orm import Session

from squibfeed.services.feed_cache.registry import FeedStores
from squibfeed.services.feeds.local import LocalFeedController
from squibfeed.services.feeds.location import LocationProvider
from squibfeed.services.feeds.mine import MySquibsController
from squibfeed.services.squibs import SquibsClient
from squibfeed.services.user_snapshot import clear_all_snapshots

logger = logging.getLogger(__name__)


def sign_out(stores: FeedStores, db: Session) -> None:
    """Clear both in-memory stores, then every persisted snapshot. The in-memory clear cannot fail."""
    stores.clear_all()
    try:
        clear_all_snapshots(db)
    except Exception:
        db.rollback()
        logger.warning("Sign-out: failed to clear persisted snapshots", exc_info=True)
        raise
    logger.info("Signed out: feed caches cleared")


@dataclass
class FeedControllers:
    stores: FeedStores
    local: LocalFeedController
    mine: MySquibsController

    def sign_out(self, db: Session) -> None:
        self.local.reset()
        self.mine.reset()
        sign_out(self.stores, db)

    async def aclose(self) -> None:
        await self.local.aclose()
        await self.mine.aclose()


def build_feed_controllers(
    stores: FeedStores,
    client: SquibsClient,
    location: LocationProvider,
    session_factory: Callable[[], Session],
    *,
    page_size: int,
    background_refresh: bool = False,
) -> FeedControllers:
    return FeedControllers(
        stores=stores,
        local=LocalFeedController(
            stores.local, client, location, page_size=page_size, background_refresh=background_refresh
        ),
        mine=MySquibsController(
            stores.mine, client, session_factory, page_size=page_size, background_refresh=background_refresh
        ),
    )

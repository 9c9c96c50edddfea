"""
Feed controllers: orchestrate location, backend calls and cache reads/writes for each feed.
"""
from squibfeed.services.feeds.base import FeedController, FeedView, FetchResult
from squibfeed.services.feeds.local import LocalFeedController
from squibfeed.services.feeds.location import LocationProvider, ReportedLocationProvider
from squibfeed.services.feeds.mine import MySquibsController
from squibfeed.services.feeds.session import FeedControllers, build_feed_controllers, sign_out

__all__ = [
    "FeedController",
    "FeedControllers",
    "FeedView",
    "FetchResult",
    "LocalFeedController",
    "LocationProvider",
    "MySquibsController",
    "ReportedLocationProvider",
    "build_feed_controllers",
    "sign_out",
]

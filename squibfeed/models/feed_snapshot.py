"""Persisted fetch-all snapshot of a feed, keyed like the mobile client's storage keys."""
from sqlalchemy import Column, DateTime, String, Text
from sqlalchemy.sql import func

from squibfeed.db.base import Base


class FeedSnapshot(Base):
    __tablename__ = "feed_snapshots"

    cache_key = Column(String(128), primary_key=True)  # e.g. user_squibs_<user_id>
    payload_json = Column(Text, nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

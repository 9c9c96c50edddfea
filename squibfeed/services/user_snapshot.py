"""
Persisted fetch-all snapshot of the user's own squibs.
The personal feed pulls everything once (limit >= FETCH_ALL_LIMIT) and serves pages by slicing the snapshot.
"""
import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy import or_
from sqlalchemy.orm import Session

from squibfeed.core.constants import LOCATION_SNAPSHOT_KEY_PREFIX, USER_SNAPSHOT_KEY_PREFIX, USER_SNAPSHOT_TTL_MINUTES
from squibfeed.models.cache_record import FeedPage
from squibfeed.models.feed_snapshot import FeedSnapshot

logger = logging.getLogger(__name__)


def user_snapshot_key(user_id: str) -> str:
    return f"{USER_SNAPSHOT_KEY_PREFIX}{user_id}"


def save_user_snapshot(db: Session, user_id: str, items: list[dict[str, Any]], *, now: datetime | None = None) -> None:
    """Upsert the raw fetch-all result for user_id."""
    key = user_snapshot_key(user_id)
    now = now or datetime.now(timezone.utc)
    row = db.query(FeedSnapshot).filter(FeedSnapshot.cache_key == key).first()
    if row:
        row.payload_json = json.dumps(items)
        row.updated_at = now
    else:
        db.add(FeedSnapshot(cache_key=key, payload_json=json.dumps(items), updated_at=now))
    db.commit()
    logger.debug("Saved %s squib(s) for user %s", len(items), user_id)


def get_user_snapshot(db: Session, user_id: str, *, now: datetime | None = None) -> list[dict[str, Any]] | None:
    """
    Return cached raw items if present and not stale.
    Returns None if missing, stale or undecodable; stale rows are deleted.
    """
    key = user_snapshot_key(user_id)
    row = db.query(FeedSnapshot).filter(FeedSnapshot.cache_key == key).first()
    if not row or not row.payload_json:
        return None
    cutoff = (now or datetime.now(timezone.utc)) - timedelta(minutes=USER_SNAPSHOT_TTL_MINUTES)
    updated = row.updated_at
    if updated and updated.tzinfo is None:
        updated = updated.replace(tzinfo=timezone.utc)
    if updated is None or updated < cutoff:
        logger.info("Snapshot expired for user %s", user_id)
        db.delete(row)
        db.commit()
        return None
    try:
        items = json.loads(row.payload_json)
    except (TypeError, json.JSONDecodeError):
        return None
    return items if isinstance(items, list) else None


def invalidate_user_snapshot(db: Session, user_id: str) -> None:
    """Drop the snapshot after the user's posts changed (new post, delete)."""
    deleted = db.query(FeedSnapshot).filter(FeedSnapshot.cache_key == user_snapshot_key(user_id)).delete()
    db.commit()
    if deleted:
        logger.info("Invalidated snapshot for user %s", user_id)


def clear_all_snapshots(db: Session) -> int:
    """Delete every user and location snapshot (sign-out). Returns rows removed."""
    deleted = (
        db.query(FeedSnapshot)
        .filter(
            or_(
                FeedSnapshot.cache_key.startswith(USER_SNAPSHOT_KEY_PREFIX, autoescape=True),
                FeedSnapshot.cache_key.startswith(LOCATION_SNAPSHOT_KEY_PREFIX, autoescape=True),
            )
        )
        .delete(synchronize_session=False)
    )
    db.commit()
    logger.info("Cleared %s feed snapshot(s)", deleted)
    return deleted


def slice_snapshot(items: list[dict[str, Any]], page: int, limit: int, *, start: int | None = None) -> FeedPage:
    """
    Page `page` of the snapshot; cursor {"page": page + 1, "totalItems": n} while more remain.
    start overrides the page offset when the caller already holds a different number of items (after a delete).
    """
    page = max(0, page)
    start = page * limit if start is None else max(0, start)
    end = start + limit
    total = len(items)
    cursor = {"page": page + 1, "totalItems": total} if total > end else None
    return FeedPage(items=items[start:end], cursor=cursor, total_items=total, current_page=page)

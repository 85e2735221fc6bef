"""
Content item and content error repositories.
"""

from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import asc, desc, func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from brief_aggregation.logger import get_logger
from brief_aggregation.models import (
    ContentErrorCreate,
    ContentErrorModel,
    ContentItemCreate,
    ContentItemModel,
    FeedSourceModel,
)
from brief_aggregation.storage.repositories.base import BaseRepository

logger = get_logger(__name__)


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class ContentItemRepository(BaseRepository[ContentItemModel, ContentItemCreate, ContentItemCreate]):
    """Repository for stored content items.

    Also serves as the lookup the deduplicator runs against.
    """

    def __init__(self, session: Session) -> None:
        super().__init__(session, ContentItemModel)

    def get_by_url(self, feed_source_id: int, url: str) -> Optional[ContentItemModel]:
        """Exact URL lookup within one source."""
        return (
            self.session.query(ContentItemModel)
            .filter(ContentItemModel.feed_source_id == feed_source_id)
            .filter(ContentItemModel.url == url)
            .first()
        )

    def find_title_candidates(
        self, feed_source_id: int, prefix: str, limit: int = 5
    ) -> list[ContentItemModel]:
        """Items of one source whose title contains ``prefix``, case-insensitively.

        Results are in insertion order so callers can rely on first-seen ties.
        """
        if not prefix:
            return []

        return (
            self.session.query(ContentItemModel)
            .filter(ContentItemModel.feed_source_id == feed_source_id)
            .filter(ContentItemModel.title.ilike(f"%{_escape_like(prefix)}%", escape="\\"))
            .order_by(asc(ContentItemModel.id))
            .limit(limit)
            .all()
        )

    def insert_if_absent(self, item: ContentItemCreate) -> Optional[ContentItemModel]:
        """Insert an item unless (feed_source_id, url) already exists.

        Each insert runs in its own savepoint so a concurrent writer that
        stored the same URL first only rolls back this one row.

        Returns:
            The new ContentItemModel, or None if the URL was already stored
        """
        db_obj = ContentItemModel(**item.model_dump(exclude_none=True))
        try:
            with self.session.begin_nested():
                self.session.add(db_obj)
                self.session.flush()
        except IntegrityError:
            logger.debug(f"Content already stored for source {item.feed_source_id}: {item.url}")
            return None
        return db_obj

    def count_for_source(self, feed_source_id: int) -> int:
        return self.count(feed_source_id=feed_source_id)

    def list_for_digest(
        self,
        feed_source_ids: Iterable[int],
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        category: Optional[str] = None,
        search: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[ContentItemModel]:
        """Items eligible for a digest, newest first.

        Args:
            feed_source_ids: Sources to read from
            since: Only items published (or, undated, fetched) after this time
            until: Only items published before this time
            category: Only items whose owning source has this category
            search: Case-insensitive text that must appear in title or description
            limit: Maximum number of items

        Returns:
            List of ContentItemModel instances
        """
        source_ids = list(feed_source_ids)
        if not source_ids:
            return []

        item_time = func.coalesce(ContentItemModel.published_at, ContentItemModel.fetched_at)
        query = self.session.query(ContentItemModel).filter(
            ContentItemModel.feed_source_id.in_(source_ids)
        )

        if since is not None:
            query = query.filter(item_time >= since)
        if until is not None:
            query = query.filter(item_time < until)

        if category:
            query = query.join(
                FeedSourceModel, FeedSourceModel.id == ContentItemModel.feed_source_id
            ).filter(func.lower(FeedSourceModel.category) == category.lower())

        if search:
            pattern = f"%{_escape_like(search.strip())}%"
            query = query.filter(
                or_(
                    ContentItemModel.title.ilike(pattern, escape="\\"),
                    ContentItemModel.description.ilike(pattern, escape="\\"),
                )
            )

        query = query.order_by(desc(item_time), asc(ContentItemModel.id))
        if limit:
            query = query.limit(limit)
        return query.all()

    def delete_older_than(self, cutoff: datetime) -> int:
        """Purge items fetched before ``cutoff``.

        Returns:
            Number of deleted items
        """
        deleted = (
            self.session.query(ContentItemModel)
            .filter(ContentItemModel.fetched_at < cutoff)
            .delete(synchronize_session=False)
        )
        self.session.flush()
        return deleted


class ContentErrorRepository(BaseRepository[ContentErrorModel, ContentErrorCreate, ContentErrorCreate]):
    """Repository for append-only fetch error records."""

    def __init__(self, session: Session) -> None:
        super().__init__(session, ContentErrorModel)

    def recent_for_source(self, feed_source_id: int, limit: int = 5) -> list[ContentErrorModel]:
        """Most recent errors of one source, newest first."""
        return (
            self.session.query(ContentErrorModel)
            .filter(ContentErrorModel.feed_source_id == feed_source_id)
            .order_by(desc(ContentErrorModel.timestamp), desc(ContentErrorModel.id))
            .limit(limit)
            .all()
        )

    def count_sources_with_errors_since(self, since: datetime) -> int:
        """Number of distinct sources that recorded an error after ``since``."""
        return (
            self.session.query(func.count(func.distinct(ContentErrorModel.feed_source_id)))
            .filter(ContentErrorModel.timestamp >= since)
            .scalar()
            or 0
        )

    def delete_older_than(self, cutoff: datetime) -> int:
        """Purge errors recorded before ``cutoff``."""
        deleted = (
            self.session.query(ContentErrorModel)
            .filter(ContentErrorModel.timestamp < cutoff)
            .delete(synchronize_session=False)
        )
        self.session.flush()
        return deleted

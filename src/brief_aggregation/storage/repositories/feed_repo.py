"""
Feed source and subscription repositories.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import asc
from sqlalchemy.orm import Session

from brief_aggregation.models import (
    FeedSourceCreate,
    FeedSourceModel,
    FeedSourceUpdate,
    SubscriptionCreate,
    UserFeedModel,
    utcnow,
)
from brief_aggregation.storage.repositories.base import BaseRepository


class FeedSourceRepository(BaseRepository[FeedSourceModel, FeedSourceCreate, FeedSourceUpdate]):
    """Repository for FeedSource operations.

    Sources are never hard-deleted; ``deactivate`` and ``enable`` flip
    ``is_active`` instead.
    """

    def __init__(self, session: Session) -> None:
        super().__init__(session, FeedSourceModel)

    def get_by_url(self, url: str) -> Optional[FeedSourceModel]:
        """Get a source by its unique URL."""
        return self.session.query(FeedSourceModel).filter(FeedSourceModel.url == url).first()

    def list_active(
        self,
        source_type: Optional[str] = None,
        limit: int = 500,
    ) -> list[FeedSourceModel]:
        """List pollable sources, least recently fetched first.

        Args:
            source_type: Restrict to one source type
            limit: Maximum number of sources

        Returns:
            List of active FeedSourceModel instances
        """
        query = self.session.query(FeedSourceModel).filter(FeedSourceModel.is_active.is_(True))
        if source_type:
            query = query.filter(FeedSourceModel.type == source_type)

        # NULL last_fetched_at sorts first on SQLite and PostgreSQL ascending
        query = query.order_by(asc(FeedSourceModel.last_fetched_at), asc(FeedSourceModel.id))
        return query.limit(limit).all()

    def list_for_subscriber(
        self, subscriber_id: str, active_only: bool = True
    ) -> list[FeedSourceModel]:
        """List sources a subscriber actively follows."""
        query = (
            self.session.query(FeedSourceModel)
            .join(UserFeedModel, UserFeedModel.feed_source_id == FeedSourceModel.id)
            .filter(UserFeedModel.subscriber_id == subscriber_id)
            .filter(UserFeedModel.is_active.is_(True))
        )
        if active_only:
            query = query.filter(FeedSourceModel.is_active.is_(True))
        return query.order_by(asc(FeedSourceModel.id)).all()

    def count_active(self) -> int:
        """Count active sources."""
        return self.count(is_active=True)

    def mark_fetched(self, source: FeedSourceModel, fetched_at: Optional[datetime] = None) -> FeedSourceModel:
        """Record the time of the latest fetch attempt."""
        source.last_fetched_at = fetched_at or utcnow()
        self.session.flush()
        return source

    def set_channel(
        self,
        source: FeedSourceModel,
        channel_id: str,
        favicon_url: Optional[str] = None,
    ) -> FeedSourceModel:
        """Cache a resolved YouTube channel id and backfill its thumbnail."""
        source.channel_id = channel_id
        if favicon_url and not source.favicon_url:
            source.favicon_url = favicon_url
        self.session.flush()
        return source

    def deactivate(self, source: FeedSourceModel, reason: Optional[str] = None) -> FeedSourceModel:
        """Suspend a source so it is no longer polled."""
        source.is_active = False
        source.disabled_reason = reason
        self.session.flush()
        self.session.refresh(source)
        return source

    def enable(self, source: FeedSourceModel) -> FeedSourceModel:
        """Re-enable a suspended source. Suspension is never lifted automatically."""
        source.is_active = True
        source.disabled_reason = None
        self.session.flush()
        self.session.refresh(source)
        return source


class SubscriptionRepository(BaseRepository[UserFeedModel, SubscriptionCreate, SubscriptionCreate]):
    """Repository for subscriber-to-source edges."""

    def __init__(self, session: Session) -> None:
        super().__init__(session, UserFeedModel)

    def get(self, subscriber_id: str, feed_source_id: int) -> Optional[UserFeedModel]:
        """Get the edge for one (subscriber, source) pair."""
        return (
            self.session.query(UserFeedModel)
            .filter(UserFeedModel.subscriber_id == subscriber_id)
            .filter(UserFeedModel.feed_source_id == feed_source_id)
            .first()
        )

    def subscribe(self, subscriber_id: str, feed_source_id: int) -> UserFeedModel:
        """Create or reactivate a subscription."""
        existing = self.get(subscriber_id, feed_source_id)
        if existing:
            existing.is_active = True
            self.session.flush()
            return existing

        subscription = UserFeedModel(subscriber_id=subscriber_id, feed_source_id=feed_source_id)
        self.session.add(subscription)
        self.session.flush()
        self.session.refresh(subscription)
        return subscription

    def unsubscribe(self, subscriber_id: str, feed_source_id: int) -> bool:
        """Remove a subscription.

        Returns:
            True if a subscription existed
        """
        existing = self.get(subscriber_id, feed_source_id)
        if not existing:
            return False
        self.delete(existing)
        return True

    def list_for_subscriber(self, subscriber_id: str, active_only: bool = True) -> list[UserFeedModel]:
        """List a subscriber's subscriptions."""
        filters = {"subscriber_id": subscriber_id}
        if active_only:
            filters["is_active"] = True
        return self.list(limit=1000, **filters)

    def list_subscriber_ids(self) -> list[str]:
        """Distinct subscribers holding at least one active subscription."""
        rows = (
            self.session.query(UserFeedModel.subscriber_id)
            .filter(UserFeedModel.is_active.is_(True))
            .distinct()
            .order_by(asc(UserFeedModel.subscriber_id))
            .all()
        )
        return [row[0] for row in rows]

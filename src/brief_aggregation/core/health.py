"""
Feed health tracking.

Records fetch failures per source and suspends a source whose recent
failures cluster inside a short window. Suspension is lifted only by an
explicit enable.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from brief_aggregation.config import HealthConfig, get_config
from brief_aggregation.logger import get_logger
from brief_aggregation.models import ContentErrorCreate, ContentErrorModel, FeedSourceModel, utcnow
from brief_aggregation.storage.repositories import (
    ContentErrorRepository,
    ContentItemRepository,
    FeedSourceRepository,
)

logger = get_logger(__name__)


@dataclass
class SourceHealth:
    """Snapshot of source health across the system."""

    total_sources: int = 0
    active_sources: int = 0
    error_sources: int = 0
    checked_at: datetime = field(default_factory=utcnow)


@dataclass
class FeedHealth:
    """Health of a single source."""

    feed_source_id: int
    is_active: bool
    should_disable: bool
    recent_errors: list[ContentErrorModel] = field(default_factory=list)
    disabled_reason: Optional[str] = None


class FeedHealthTracker:
    """Error bookkeeping and suspension policy for feed sources."""

    def __init__(self, session: Session, config: Optional[HealthConfig] = None):
        """Initialize health tracker.

        Args:
            session: Database session the tracker reads and writes through
            config: Window, threshold and retention settings
        """
        self.session = session
        self.config = config or get_config().health
        self.errors = ContentErrorRepository(session)
        self.sources = FeedSourceRepository(session)

    def record_error(self, error: ContentErrorCreate) -> ContentErrorModel:
        """Append one failure record."""
        record = self.errors.create(error)
        logger.info(
            f"Recorded {record.error_type} for source {record.feed_source_id}: {record.error_message}"
        )
        return record

    def get_feed_errors(self, feed_source_id: int, limit: int = 10) -> list[ContentErrorModel]:
        """Most recent errors of a source, newest first. Empty on storage failure."""
        try:
            return self.errors.recent_for_source(feed_source_id, limit=limit)
        except SQLAlchemyError as e:
            logger.warning(f"Could not read errors for source {feed_source_id}: {e}")
            return []

    def should_disable(self, feed_source_id: int, now: Optional[datetime] = None) -> bool:
        """Whether enough of the latest errors fall inside the rolling window.

        Looks at the ``recent_errors_considered`` most recent errors and
        returns True when at least ``error_threshold`` of them happened in
        the last ``window_minutes``. No history means healthy.
        """
        now = now or utcnow()
        window_start = now - timedelta(minutes=self.config.window_minutes)

        recent = self.get_feed_errors(feed_source_id, limit=self.config.recent_errors_considered)
        in_window = sum(1 for error in recent if error.timestamp >= window_start)
        return in_window >= self.config.error_threshold

    def suspend_if_unhealthy(self, source: FeedSourceModel, now: Optional[datetime] = None) -> bool:
        """Deactivate ``source`` if its error pattern calls for it.

        Returns:
            True if the source was suspended by this call
        """
        if not source.is_active or not self.should_disable(source.id, now=now):
            return False

        reason = (
            f"Suspended after {self.config.error_threshold}+ errors "
            f"within {self.config.window_minutes} minutes"
        )
        self.sources.deactivate(source, reason=reason)
        logger.warning(f"Suspending source {source.id} ({source.name}): {reason}")
        return True

    def get_feed_health(self, source: FeedSourceModel) -> FeedHealth:
        """Health report of a single source."""
        return FeedHealth(
            feed_source_id=source.id,
            is_active=source.is_active,
            should_disable=self.should_disable(source.id),
            recent_errors=self.get_feed_errors(source.id, limit=self.config.recent_errors_considered),
            disabled_reason=source.disabled_reason,
        )

    def get_source_health(self, now: Optional[datetime] = None) -> SourceHealth:
        """Totals over all sources; errors counted over the last 24 hours."""
        now = now or utcnow()
        try:
            return SourceHealth(
                total_sources=self.sources.count(),
                active_sources=self.sources.count_active(),
                error_sources=self.errors.count_sources_with_errors_since(now - timedelta(hours=24)),
                checked_at=now,
            )
        except SQLAlchemyError as e:
            logger.warning(f"Could not compute source health: {e}")
            return SourceHealth(checked_at=now)

    def cleanup_old_errors(self, days: Optional[int] = None, now: Optional[datetime] = None) -> int:
        """Purge error records older than the retention window."""
        days = days or self.config.error_retention_days
        deleted = self.errors.delete_older_than((now or utcnow()) - timedelta(days=days))
        logger.info(f"Purged {deleted} content errors older than {days} days")
        return deleted

    def cleanup_old_content(self, days: Optional[int] = None, now: Optional[datetime] = None) -> int:
        """Purge content items older than the retention window."""
        days = days or self.config.content_retention_days
        deleted = ContentItemRepository(self.session).delete_older_than(
            (now or utcnow()) - timedelta(days=days)
        )
        logger.info(f"Purged {deleted} content items older than {days} days")
        return deleted


def create_health_tracker(session: Session, config: Optional[HealthConfig] = None) -> FeedHealthTracker:
    """Create a configured FeedHealthTracker instance."""
    return FeedHealthTracker(session, config=config)

"""
Digest service.

Gathers a subscriber's recent content, balances it across feeds, scores,
assembles and stores the digest, then announces it on the event bus.
"""

from collections import defaultdict
from datetime import date, datetime, time, timedelta
from typing import Optional

from brief_aggregation.config import DigestConfig, get_config
from brief_aggregation.core.assembler import DigestAssembler
from brief_aggregation.core.digest_store import DigestStore, assembled_response
from brief_aggregation.core.events import DigestAssembled, DigestEventBus, NotificationRequest
from brief_aggregation.core.relevance import RelevanceProcessor, ScoredItem
from brief_aggregation.logger import get_logger
from brief_aggregation.models import ContentItemModel, DigestResponse, utcnow
from brief_aggregation.storage.database import DatabaseManager
from brief_aggregation.storage.repositories import (
    ContentItemRepository,
    FeedSourceRepository,
    SubscriptionRepository,
)

logger = get_logger(__name__)

RECENCY_POINTS_PER_HOUR = 2
REDDIT_UPVOTE_POINTS = 0.1
REDDIT_COMMENT_POINTS = 0.5


def engagement_score(item: ContentItemModel, now: datetime, window_hours: int) -> float:
    """Recency points plus Reddit engagement points."""
    item_time = item.published_at or item.fetched_at or now
    hours_ago = (now - item_time).total_seconds() / 3600
    score = max(0.0, window_hours - hours_ago) * RECENCY_POINTS_PER_HOUR

    if item.content_type == "reddit":
        score += (item.score or 0) * REDDIT_UPVOTE_POINTS
        score += (item.num_comments or 0) * REDDIT_COMMENT_POINTS
    return score


class DigestService:
    """Produces daily digests for subscribers."""

    def __init__(
        self,
        db_manager: DatabaseManager,
        processor: RelevanceProcessor,
        assembler: DigestAssembler,
        store: DigestStore,
        events: Optional[DigestEventBus] = None,
        config: Optional[DigestConfig] = None,
    ):
        """Initialize digest service.

        Args:
            db_manager: Database manager providing sessions
            processor: Relevance processor scoring items
            assembler: Digest assembler
            store: Digest store
            events: Event bus announcing stored digests
            config: Window and balancing settings
        """
        self.db_manager = db_manager
        self.processor = processor
        self.assembler = assembler
        self.store = store
        self.events = events
        self.config = config or get_config().digest

    def _window(
        self, digest_date: date, now: datetime, hours: int
    ) -> tuple[datetime, Optional[datetime]]:
        # Today's window ends now; a past date's window ends at that day's end
        if digest_date >= now.date():
            return now - timedelta(hours=hours), None
        until = datetime.combine(digest_date + timedelta(days=1), time.min)
        return until - timedelta(hours=hours), until

    def balance(self, items: list[ContentItemModel], now: datetime) -> list[ContentItemModel]:
        """Cap items per feed and in total, keeping the most engaging ones."""
        if not self.config.balance_feeds:
            return items[: self.config.total_max_items]

        window = self.config.time_window_hours

        def by_engagement(item: ContentItemModel) -> float:
            return engagement_score(item, now, window)

        by_feed: dict[int, list[ContentItemModel]] = defaultdict(list)
        for item in items:
            by_feed[item.feed_source_id].append(item)

        limited: list[ContentItemModel] = []
        for feed_id, feed_items in by_feed.items():
            selected = sorted(feed_items, key=by_engagement, reverse=True)[: self.config.max_items_per_feed]
            logger.debug(f"Feed {feed_id}: {len(feed_items)} items -> {len(selected)} selected")
            limited.extend(selected)

        return sorted(limited, key=by_engagement, reverse=True)[: self.config.total_max_items]

    def collect_content(
        self,
        subscriber_id: str,
        digest_date: date,
        now: datetime,
        category: Optional[str] = None,
        search: Optional[str] = None,
        time_window_hours: Optional[int] = None,
    ) -> Optional[list[ContentItemModel]]:
        """Content eligible for a subscriber's digest.

        Returns:
            Balanced list of items, or None if the subscriber has no active
            subscriptions
        """
        hours = time_window_hours or self.config.time_window_hours
        since, until = self._window(digest_date, now, hours)

        with self.db_manager.session() as session:
            sources = FeedSourceRepository(session).list_for_subscriber(subscriber_id, active_only=False)
            if not sources:
                return None
            items = ContentItemRepository(session).list_for_digest(
                [source.id for source in sources],
                since=since,
                until=until,
                category=category,
                search=search,
            )

        logger.info(
            f"Collected {len(items)} items from {len(sources)} sources for {subscriber_id} "
            f"(window {hours}h)"
        )
        return self.balance(items, now)

    def score_content(
        self, items: list[ContentItemModel], preferences: Optional[dict] = None
    ) -> list[ScoredItem]:
        """Score ``items`` and drop those below ``min_relevance_score``."""
        scored = self.processor.score(items, preferences)
        threshold = self.config.min_relevance_score
        if threshold <= 0:
            return scored
        kept = [item for item in scored if item.relevance_score >= threshold]
        logger.debug(f"{len(scored) - len(kept)} of {len(scored)} items below relevance {threshold}")
        return kept

    def generate_digest(
        self,
        subscriber_id: str,
        digest_date: Optional[date] = None,
        preferences: Optional[dict] = None,
        now: Optional[datetime] = None,
    ) -> Optional[DigestResponse]:
        """Assemble, store and announce a subscriber's digest.

        Returns:
            The stored digest, or None when the subscriber has no active
            subscriptions

        Raises:
            DigestStoreError: If the digest cannot be stored
        """
        now = now or utcnow()
        digest_date = digest_date or now.date()

        items = self.collect_content(subscriber_id, digest_date, now)
        if items is None:
            logger.info(f"No active subscriptions for {subscriber_id}, no digest generated")
            return None

        scored = self.score_content(items, preferences)
        digest = self.assembler.assemble(subscriber_id, digest_date, scored)
        digest_id = self.store.put(digest)

        if self.events is not None:
            self.events.publish(
                DigestAssembled(
                    subscriber_id=subscriber_id,
                    digest_id=digest_id,
                    digest_date=digest_date,
                    total_items=digest.total_items,
                )
            )
            self.events.publish(
                NotificationRequest(
                    subscriber_id=subscriber_id,
                    summary=digest.summary,
                    digest_id=digest_id,
                )
            )

        return self.store.get(subscriber_id, digest_date) or assembled_response(
            digest, digest_id=digest_id, persisted=True
        )

    def query_digest(
        self,
        subscriber_id: str,
        digest_date: date,
        category: Optional[str] = None,
        search: Optional[str] = None,
        time_window_hours: Optional[int] = None,
        preferences: Optional[dict] = None,
        now: Optional[datetime] = None,
    ) -> Optional[DigestResponse]:
        """Read a digest, optionally narrowed by category, text or time window.

        Without filters the stored digest is returned. With filters the
        digest is assembled from matching content and not persisted.
        """
        if not (category or search or time_window_hours):
            return self.store.get(subscriber_id, digest_date)

        now = now or utcnow()
        items = self.collect_content(
            subscriber_id,
            digest_date,
            now,
            category=category,
            search=search,
            time_window_hours=time_window_hours,
        )
        if items is None:
            return None

        scored = self.score_content(items, preferences)
        digest = self.assembler.assemble(subscriber_id, digest_date, scored)
        return assembled_response(digest, persisted=False)

    def generate_all(self, digest_date: Optional[date] = None) -> dict[str, Optional[int]]:
        """Generate digests for every subscriber with active subscriptions.

        Returns:
            Mapping of subscriber id to stored digest id (None on failure)
        """
        with self.db_manager.session() as session:
            subscriber_ids = SubscriptionRepository(session).list_subscriber_ids()

        results: dict[str, Optional[int]] = {}
        for subscriber_id in subscriber_ids:
            try:
                digest = self.generate_digest(subscriber_id, digest_date)
                results[subscriber_id] = digest.id if digest else None
            except Exception as e:
                logger.exception(f"Digest generation failed for {subscriber_id}: {e}")
                results[subscriber_id] = None

        logger.info(f"Generated digests for {sum(1 for v in results.values() if v)} of {len(results)} subscribers")
        return results

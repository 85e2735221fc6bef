"""
Digest store.

Persists assembled digests and serves them back as DigestResponse objects.
Storage failures surface as DigestStoreError; a missing digest is None.
"""

import json
from datetime import date
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from brief_aggregation.config import get_config
from brief_aggregation.core.assembler import AssembledDigest
from brief_aggregation.core.relevance import ScoredItem
from brief_aggregation.logger import get_logger
from brief_aggregation.models import (
    DailyDigestItemModel,
    DailyDigestModel,
    DigestItemResponse,
    DigestResponse,
    DigestStatsResponse,
)
from brief_aggregation.storage.database import DatabaseManager
from brief_aggregation.storage.repositories import DigestRepository

logger = get_logger(__name__)


class DigestStoreError(Exception):
    """Raised when a digest cannot be read or written."""


def _group(items: list[DigestItemResponse]) -> dict[str, list[DigestItemResponse]]:
    categories: dict[str, list[DigestItemResponse]] = {}
    for item in items:
        categories.setdefault(item.category, []).append(item)
    return categories


def scored_item_response(item: ScoredItem, display_order: int) -> DigestItemResponse:
    return DigestItemResponse(
        content_item_id=item.content_item_id,
        relevance_score=item.relevance_score,
        category=item.category,
        summary=item.summary,
        key_points=list(item.key_points),
        estimated_read_time=item.estimated_read_time,
        display_order=display_order,
        title=item.title,
        url=item.url,
        image_url=item.image_url,
        published_at=item.published_at,
        feed_source_id=item.feed_source_id,
    )


def stored_item_response(item: DailyDigestItemModel) -> DigestItemResponse:
    content = item.content_item
    return DigestItemResponse(
        content_item_id=item.content_item_id,
        relevance_score=item.relevance_score,
        category=item.category,
        summary=item.summary,
        key_points=item.key_points_list,
        estimated_read_time=item.estimated_read_time,
        display_order=item.display_order,
        title=content.title if content else None,
        url=content.url if content else None,
        image_url=content.image_url if content else None,
        published_at=content.published_at if content else None,
        feed_source_id=content.feed_source_id if content else None,
    )


def assembled_response(
    digest: AssembledDigest,
    digest_id: Optional[int] = None,
    persisted: bool = False,
) -> DigestResponse:
    """Response view of a digest that has not been read back from storage."""
    items = [scored_item_response(item, order) for order, item in enumerate(digest.items)]
    return DigestResponse(
        id=digest_id,
        subscriber_id=digest.subscriber_id,
        digest_date=digest.digest_date,
        summary=digest.summary,
        total_items=digest.total_items,
        estimated_read_time=digest.estimated_read_time,
        items=items,
        top_stories=items[: len(digest.top_stories)],
        categories=_group(items),
        persisted=persisted,
    )


def stored_response(model: DailyDigestModel, top_stories: int) -> DigestResponse:
    items = [stored_item_response(item) for item in sorted(model.items, key=lambda i: i.display_order)]
    return DigestResponse(
        id=model.id,
        subscriber_id=model.subscriber_id,
        digest_date=model.digest_date,
        summary=model.summary,
        total_items=model.total_items,
        estimated_read_time=model.estimated_read_time,
        created_at=model.created_at,
        items=items,
        top_stories=items[:top_stories],
        categories=_group(items),
        persisted=True,
    )


class DigestStore:
    """Transactional persistence of daily digests."""

    def __init__(self, db_manager: DatabaseManager, top_stories: Optional[int] = None):
        """Initialize digest store.

        Args:
            db_manager: Database manager providing sessions
            top_stories: Number of leading items reported as top stories
        """
        self.db_manager = db_manager
        self.top_stories = top_stories or get_config().digest.top_stories

    def put(self, digest: AssembledDigest) -> int:
        """Store ``digest``, fully replacing one for the same subscriber and date.

        Returns:
            ID of the stored digest

        Raises:
            DigestStoreError: If the write fails; the previous digest is kept
        """
        model = DailyDigestModel(
            subscriber_id=digest.subscriber_id,
            digest_date=digest.digest_date,
            summary=digest.summary,
            total_items=digest.total_items,
            estimated_read_time=digest.estimated_read_time,
        )
        items = [
            DailyDigestItemModel(
                content_item_id=item.content_item_id,
                relevance_score=item.relevance_score,
                category=item.category,
                summary=item.summary,
                key_points=json.dumps(item.key_points),
                estimated_read_time=item.estimated_read_time,
                display_order=order,
            )
            for order, item in enumerate(digest.items)
        ]

        try:
            with self.db_manager.session() as session:
                stored = DigestRepository(session).replace(model, items)
                digest_id = stored.id
        except SQLAlchemyError as e:
            logger.error(f"Failed to store digest for {digest.subscriber_id} on {digest.digest_date}: {e}")
            raise DigestStoreError(f"Could not store digest: {e}") from e

        logger.info(
            f"Stored digest {digest_id} for {digest.subscriber_id} on {digest.digest_date} "
            f"({digest.total_items} items)"
        )
        return digest_id

    def get(self, subscriber_id: str, digest_date: date) -> Optional[DigestResponse]:
        """Stored digest for one date, or None."""
        try:
            with self.db_manager.session() as session:
                model = DigestRepository(session).get_for_date(subscriber_id, digest_date)
                return stored_response(model, self.top_stories) if model else None
        except SQLAlchemyError as e:
            raise DigestStoreError(f"Could not read digest: {e}") from e

    def list_recent(self, subscriber_id: str, limit: int = 7) -> list[DigestResponse]:
        """Most recent digests, newest date first."""
        try:
            with self.db_manager.session() as session:
                return [
                    stored_response(model, self.top_stories)
                    for model in DigestRepository(session).list_recent(subscriber_id, limit=limit)
                ]
        except SQLAlchemyError as e:
            raise DigestStoreError(f"Could not list digests: {e}") from e

    def exists(self, subscriber_id: str, digest_date: date) -> bool:
        try:
            with self.db_manager.session() as session:
                return DigestRepository(session).exists(subscriber_id, digest_date)
        except SQLAlchemyError as e:
            raise DigestStoreError(f"Could not check digest: {e}") from e

    def delete(self, digest_id: int) -> bool:
        """Delete a digest and its items.

        Returns:
            True if a digest was deleted, False if none had that id
        """
        try:
            with self.db_manager.session() as session:
                deleted = DigestRepository(session).delete_by_id(digest_id)
        except SQLAlchemyError as e:
            raise DigestStoreError(f"Could not delete digest {digest_id}: {e}") from e

        if deleted:
            logger.info(f"Deleted digest {digest_id}")
        return deleted

    def get_stats(self, subscriber_id: str) -> DigestStatsResponse:
        """Aggregates over every stored digest of a subscriber."""
        try:
            with self.db_manager.session() as session:
                repo = DigestRepository(session)
                total, average_items, average_read_time = repo.aggregate_stats(subscriber_id)
                category = repo.most_active_category(subscriber_id)
        except SQLAlchemyError as e:
            raise DigestStoreError(f"Could not compute digest stats: {e}") from e

        return DigestStatsResponse(
            total_digests=total,
            average_items=round(average_items, 2),
            average_read_time=round(average_read_time, 2),
            most_active_category=category,
        )


def create_digest_store(db_manager: DatabaseManager, top_stories: Optional[int] = None) -> DigestStore:
    """Create a DigestStore bound to ``db_manager``."""
    return DigestStore(db_manager, top_stories=top_stories)

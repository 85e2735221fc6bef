"""
Daily digest repository.
"""

from datetime import date
from typing import Optional

from sqlalchemy import desc, func
from sqlalchemy.orm import Session, selectinload

from brief_aggregation.models import DailyDigestItemModel, DailyDigestModel
from brief_aggregation.storage.repositories.base import BaseRepository


class DigestRepository(BaseRepository[DailyDigestModel, DailyDigestModel, DailyDigestModel]):
    """Repository for daily digests and their items."""

    def __init__(self, session: Session) -> None:
        super().__init__(session, DailyDigestModel)

    def get_for_date(self, subscriber_id: str, digest_date: date) -> Optional[DailyDigestModel]:
        """Get a subscriber's digest for one date, items loaded in display order."""
        return (
            self.session.query(DailyDigestModel)
            .options(
                selectinload(DailyDigestModel.items).selectinload(DailyDigestItemModel.content_item)
            )
            .filter(DailyDigestModel.subscriber_id == subscriber_id)
            .filter(DailyDigestModel.digest_date == digest_date)
            .first()
        )

    def exists(self, subscriber_id: str, digest_date: date) -> bool:
        return (
            self.session.query(DailyDigestModel.id)
            .filter(DailyDigestModel.subscriber_id == subscriber_id)
            .filter(DailyDigestModel.digest_date == digest_date)
            .first()
            is not None
        )

    def list_recent(self, subscriber_id: str, limit: int = 7) -> list[DailyDigestModel]:
        """Most recent digests of a subscriber, newest date first."""
        return (
            self.session.query(DailyDigestModel)
            .options(selectinload(DailyDigestModel.items))
            .filter(DailyDigestModel.subscriber_id == subscriber_id)
            .order_by(desc(DailyDigestModel.digest_date))
            .limit(limit)
            .all()
        )

    def replace(
        self,
        digest: DailyDigestModel,
        items: list[DailyDigestItemModel],
    ) -> DailyDigestModel:
        """Store a digest, replacing any digest for the same (subscriber, date).

        Runs inside the caller's transaction: the old rows are deleted and
        flushed before the new ones are inserted, so the unique constraint
        never sees both and a failure rolls back to the previous digest.
        """
        existing = (
            self.session.query(DailyDigestModel)
            .filter(DailyDigestModel.subscriber_id == digest.subscriber_id)
            .filter(DailyDigestModel.digest_date == digest.digest_date)
            .first()
        )
        if existing is not None:
            self.session.query(DailyDigestItemModel).filter(
                DailyDigestItemModel.digest_id == existing.id
            ).delete(synchronize_session=False)
            self.session.delete(existing)
            self.session.flush()

        digest.items = items
        self.session.add(digest)
        self.session.flush()
        self.session.refresh(digest)
        return digest

    def delete_by_id(self, digest_id: int) -> bool:
        """Delete a digest and its items.

        Returns:
            True if a digest was deleted
        """
        digest = self.get_by_id(digest_id)
        if digest is None:
            return False
        self.session.query(DailyDigestItemModel).filter(
            DailyDigestItemModel.digest_id == digest_id
        ).delete(synchronize_session=False)
        self.session.delete(digest)
        self.session.flush()
        return True

    def count_items(self, digest_id: int) -> int:
        return (
            self.session.query(func.count(DailyDigestItemModel.id))
            .filter(DailyDigestItemModel.digest_id == digest_id)
            .scalar()
            or 0
        )

    def aggregate_stats(self, subscriber_id: str) -> tuple[int, float, float]:
        """Total digests, average item count and average read time."""
        total, avg_items, avg_read = (
            self.session.query(
                func.count(DailyDigestModel.id),
                func.avg(DailyDigestModel.total_items),
                func.avg(DailyDigestModel.estimated_read_time),
            )
            .filter(DailyDigestModel.subscriber_id == subscriber_id)
            .one()
        )
        return int(total or 0), float(avg_items or 0.0), float(avg_read or 0.0)

    def most_active_category(self, subscriber_id: str) -> Optional[str]:
        """Category with the most digest items across a subscriber's digests."""
        item_count = func.count(DailyDigestItemModel.id)
        row = (
            self.session.query(DailyDigestItemModel.category, item_count)
            .join(DailyDigestModel, DailyDigestModel.id == DailyDigestItemModel.digest_id)
            .filter(DailyDigestModel.subscriber_id == subscriber_id)
            .group_by(DailyDigestItemModel.category)
            .order_by(desc(item_count), DailyDigestItemModel.category)
            .first()
        )
        return row[0] if row else None

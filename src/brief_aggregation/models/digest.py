"""
Daily digest data models.
"""

import json
from datetime import date, datetime
from typing import Optional, TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import Date, DateTime, Float, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from brief_aggregation.models.base import Base, utcnow

if TYPE_CHECKING:
    from brief_aggregation.models.content import ContentItemModel


class DailyDigestModel(Base):
    """SQLAlchemy ORM model for one subscriber's digest on one date."""

    __tablename__ = "daily_digests"

    __table_args__ = (
        UniqueConstraint("subscriber_id", "digest_date", name="uq_daily_digests_subscriber_date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    subscriber_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    digest_date: Mapped[date] = mapped_column(Date, nullable=False)
    summary: Mapped[str] = mapped_column(Text, nullable=False, default="")
    total_items: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    estimated_read_time: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    items: Mapped[list["DailyDigestItemModel"]] = relationship(
        "DailyDigestItemModel",
        back_populates="digest",
        cascade="all, delete-orphan",
        order_by="DailyDigestItemModel.display_order",
    )

    def __repr__(self) -> str:
        return (
            f"<DailyDigestModel(id={self.id}, subscriber_id='{self.subscriber_id}', "
            f"digest_date={self.digest_date}, total_items={self.total_items})>"
        )


class DailyDigestItemModel(Base):
    """One ranked entry of a daily digest."""

    __tablename__ = "daily_digest_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    digest_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("daily_digests.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # Retention may purge the content item; the digest keeps its own summary
    content_item_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("content_items.id", ondelete="SET NULL"), nullable=True, index=True
    )
    relevance_score: Mapped[float] = mapped_column(Float, nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False, default="General")
    summary: Mapped[str] = mapped_column(Text, nullable=False, default="")
    key_points: Mapped[str] = mapped_column(Text, nullable=False, default="[]")
    estimated_read_time: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False)

    digest: Mapped["DailyDigestModel"] = relationship("DailyDigestModel", back_populates="items")
    content_item: Mapped[Optional["ContentItemModel"]] = relationship("ContentItemModel")

    @property
    def key_points_list(self) -> list[str]:
        """Decoded key points."""
        try:
            value = json.loads(self.key_points or "[]")
        except ValueError:
            return []
        return [str(point) for point in value] if isinstance(value, list) else []

    def __repr__(self) -> str:
        return (
            f"<DailyDigestItemModel(digest_id={self.digest_id}, "
            f"content_item_id={self.content_item_id}, display_order={self.display_order})>"
        )


# Pydantic models for API


class DigestItemResponse(BaseModel):
    """Schema for one digest entry."""

    content_item_id: Optional[int] = None
    relevance_score: float = Field(..., ge=0.0, le=1.0)
    category: str
    summary: str
    key_points: list[str] = Field(default_factory=list)
    estimated_read_time: int
    display_order: int
    title: Optional[str] = None
    url: Optional[str] = None
    image_url: Optional[str] = None
    published_at: Optional[datetime] = None
    feed_source_id: Optional[int] = None


class DigestResponse(BaseModel):
    """Schema for a stored or ad-hoc digest."""

    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None
    subscriber_id: str
    digest_date: date
    summary: str
    total_items: int
    estimated_read_time: int
    created_at: Optional[datetime] = None
    items: list[DigestItemResponse] = Field(default_factory=list)
    top_stories: list[DigestItemResponse] = Field(default_factory=list)
    categories: dict[str, list[DigestItemResponse]] = Field(default_factory=dict)
    persisted: bool = True


class DigestStatsResponse(BaseModel):
    """Aggregate statistics over a subscriber's digests."""

    total_digests: int = 0
    average_items: float = 0.0
    average_read_time: float = 0.0
    most_active_category: Optional[str] = None

"""
Feed source and subscription data models.
"""

from datetime import datetime
from enum import Enum
from typing import Optional, TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from brief_aggregation.models.base import Base, utcnow

if TYPE_CHECKING:
    from brief_aggregation.models.content import ContentItemModel


class SourceType(str, Enum):
    """Kinds of origin a feed source can point at."""

    RSS = "rss"
    REDDIT = "reddit"
    YOUTUBE = "youtube"
    SOCIAL = "social"


class FeedSourceModel(Base):
    """SQLAlchemy ORM model for a subscribable content origin."""

    __tablename__ = "feed_sources"

    __table_args__ = (
        Index("ix_feed_sources_type_active", "type", "is_active"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    url: Mapped[str] = mapped_column(String(2048), unique=True, nullable=False, index=True)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    favicon_url: Mapped[Optional[str]] = mapped_column(String(2048), nullable=True)

    # Resolved YouTube channel id, cached so handles are looked up once
    channel_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    disabled_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    last_fetched_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow, nullable=False
    )

    content_items: Mapped[list["ContentItemModel"]] = relationship(
        "ContentItemModel",
        back_populates="feed_source",
        passive_deletes=True,
    )
    subscriptions: Mapped[list["UserFeedModel"]] = relationship(
        "UserFeedModel",
        back_populates="feed_source",
    )

    def __repr__(self) -> str:
        return f"<FeedSourceModel(id={self.id}, type='{self.type}', url='{self.url}')>"


class UserFeedModel(Base):
    """Ownership edge between a subscriber and a feed source."""

    __tablename__ = "user_feeds"

    __table_args__ = (
        UniqueConstraint("subscriber_id", "feed_source_id", name="uq_user_feeds_subscriber_source"),
        Index("ix_user_feeds_subscriber_active", "subscriber_id", "is_active"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    subscriber_id: Mapped[str] = mapped_column(String(100), nullable=False)
    feed_source_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("feed_sources.id"), nullable=False, index=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    feed_source: Mapped["FeedSourceModel"] = relationship(
        "FeedSourceModel", back_populates="subscriptions"
    )

    def __repr__(self) -> str:
        return (
            f"<UserFeedModel(subscriber_id='{self.subscriber_id}', "
            f"feed_source_id={self.feed_source_id}, is_active={self.is_active})>"
        )


# Pydantic models for API


class FeedSourceBase(BaseModel):
    """Base FeedSource schema."""

    model_config = ConfigDict(use_enum_values=True)

    url: str = Field(..., min_length=1, max_length=2048, description="Origin URL")
    name: str = Field(..., min_length=1, max_length=500, description="Display name")
    type: SourceType = Field(SourceType.RSS.value, description="Source type")
    category: Optional[str] = Field(None, max_length=100, description="Feed category")
    favicon_url: Optional[str] = Field(None, max_length=2048)

    @field_validator("url")
    @classmethod
    def strip_url(cls, v: str) -> str:
        """Trim whitespace around the URL."""
        v = v.strip()
        if not v:
            raise ValueError("url must not be blank")
        return v


class FeedSourceCreate(FeedSourceBase):
    """Schema for creating a new feed source."""

    is_active: bool = True


class FeedSourceUpdate(BaseModel):
    """Schema for updating a feed source."""

    name: Optional[str] = Field(None, max_length=500)
    category: Optional[str] = Field(None, max_length=100)
    is_active: Optional[bool] = None
    favicon_url: Optional[str] = Field(None, max_length=2048)
    channel_id: Optional[str] = Field(None, max_length=100)
    disabled_reason: Optional[str] = None


class FeedSourceResponse(FeedSourceBase):
    """Schema for feed source response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    is_active: bool
    channel_id: Optional[str] = None
    disabled_reason: Optional[str] = None
    last_fetched_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class SubscriptionCreate(BaseModel):
    """Payload accepted when a subscriber adds a feed."""

    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    subscriber_id: str = Field(..., min_length=1, max_length=100, alias="subscriberId")
    url: str = Field(..., min_length=1, max_length=2048)
    type: SourceType = SourceType.RSS.value
    name: Optional[str] = Field(None, max_length=500)


class SubscriptionResponse(BaseModel):
    """Schema for subscription response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    subscriber_id: str
    feed_source_id: int
    is_active: bool
    created_at: datetime

"""
Content item and fetch error data models.
"""

from datetime import datetime
from enum import Enum
from typing import Optional, TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from brief_aggregation.models.base import Base, utcnow

if TYPE_CHECKING:
    from brief_aggregation.models.feed import FeedSourceModel


class ErrorType(str, Enum):
    """Classification of a failed fetch or parse attempt."""

    FETCH_ERROR = "fetch_error"
    PARSE_ERROR = "parse_error"
    RATE_LIMIT = "rate_limit"
    AUTH_ERROR = "auth_error"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"


class ContentItemModel(Base):
    """SQLAlchemy ORM model for one normalized piece of content."""

    __tablename__ = "content_items"

    __table_args__ = (
        UniqueConstraint("feed_source_id", "url", name="uq_content_items_source_url"),
        Index("ix_content_items_source_published", "feed_source_id", "published_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    feed_source_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("feed_sources.id", ondelete="CASCADE"), nullable=False, index=True
    )

    title: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)
    url: Mapped[str] = mapped_column(String(2048), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    image_url: Mapped[Optional[str]] = mapped_column(String(2048), nullable=True)
    published_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True, index=True)
    content_type: Mapped[str] = mapped_column(String(20), nullable=False, default="rss")
    author: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # Reddit-only fields
    score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    num_comments: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    subreddit: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    permalink: Mapped[Optional[str]] = mapped_column(String(2048), nullable=True)

    fetched_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False, index=True)

    feed_source: Mapped["FeedSourceModel"] = relationship(
        "FeedSourceModel", back_populates="content_items"
    )

    def __repr__(self) -> str:
        return f"<ContentItemModel(id={self.id}, title='{self.title}', url='{self.url}')>"


class ContentErrorModel(Base):
    """One record per failed fetch or parse attempt. Append-only."""

    __tablename__ = "content_errors"

    __table_args__ = (
        Index("ix_content_errors_source_timestamp", "feed_source_id", "timestamp"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    feed_source_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("feed_sources.id", ondelete="CASCADE"), nullable=False
    )
    error_type: Mapped[str] = mapped_column(String(20), nullable=False)
    error_message: Mapped[str] = mapped_column(Text, nullable=False, default="")
    timestamp: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False, index=True)
    retry_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    def __repr__(self) -> str:
        return (
            f"<ContentErrorModel(feed_source_id={self.feed_source_id}, "
            f"error_type='{self.error_type}', timestamp={self.timestamp})>"
        )


# Pydantic models


class ContentItemCreate(BaseModel):
    """Schema for storing a normalized content item."""

    feed_source_id: int
    title: Optional[str] = Field(None, max_length=1000)
    url: str = Field(..., min_length=1, max_length=2048)
    description: Optional[str] = None
    image_url: Optional[str] = Field(None, max_length=2048)
    published_at: Optional[datetime] = None
    content_type: str = "rss"
    author: Optional[str] = Field(None, max_length=500)
    score: Optional[int] = None
    num_comments: Optional[int] = None
    subreddit: Optional[str] = None
    permalink: Optional[str] = None


class ContentItemResponse(BaseModel):
    """Schema for content item response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    feed_source_id: int
    title: Optional[str] = None
    url: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    published_at: Optional[datetime] = None
    content_type: str
    author: Optional[str] = None
    score: Optional[int] = None
    num_comments: Optional[int] = None
    subreddit: Optional[str] = None
    fetched_at: datetime


class ContentErrorCreate(BaseModel):
    """Schema for recording a fetch failure."""

    model_config = ConfigDict(use_enum_values=True)

    feed_source_id: int
    error_type: ErrorType = ErrorType.UNKNOWN.value
    error_message: str = ""
    timestamp: Optional[datetime] = None
    retry_count: int = Field(0, ge=0)

"""Data models for brief aggregation."""

from brief_aggregation.models.base import Base, utcnow
from brief_aggregation.models.content import (
    ContentErrorCreate,
    ContentErrorModel,
    ContentItemCreate,
    ContentItemModel,
    ContentItemResponse,
    ErrorType,
)
from brief_aggregation.models.digest import (
    DailyDigestItemModel,
    DailyDigestModel,
    DigestItemResponse,
    DigestResponse,
    DigestStatsResponse,
)
from brief_aggregation.models.feed import (
    FeedSourceCreate,
    FeedSourceModel,
    FeedSourceResponse,
    FeedSourceUpdate,
    SourceType,
    SubscriptionCreate,
    SubscriptionResponse,
    UserFeedModel,
)

__all__ = [
    "Base",
    "utcnow",
    "SourceType",
    "FeedSourceModel",
    "FeedSourceCreate",
    "FeedSourceUpdate",
    "FeedSourceResponse",
    "UserFeedModel",
    "SubscriptionCreate",
    "SubscriptionResponse",
    "ErrorType",
    "ContentItemModel",
    "ContentItemCreate",
    "ContentItemResponse",
    "ContentErrorModel",
    "ContentErrorCreate",
    "DailyDigestModel",
    "DailyDigestItemModel",
    "DigestItemResponse",
    "DigestResponse",
    "DigestStatsResponse",
]

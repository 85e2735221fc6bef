"""Repository pattern implementations for data access."""

from brief_aggregation.storage.repositories.content_repo import (
    ContentErrorRepository,
    ContentItemRepository,
)
from brief_aggregation.storage.repositories.digest_repo import DigestRepository
from brief_aggregation.storage.repositories.feed_repo import (
    FeedSourceRepository,
    SubscriptionRepository,
)

__all__ = [
    "ContentErrorRepository",
    "ContentItemRepository",
    "DigestRepository",
    "FeedSourceRepository",
    "SubscriptionRepository",
]

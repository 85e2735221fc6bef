"""Source adapters, one per origin type."""

from typing import Optional

from brief_aggregation.core.adapters.base import (
    AdapterError,
    AdapterResult,
    RawItem,
    SourceAdapter,
    classify_exception,
    classify_status,
)
from brief_aggregation.core.adapters.reddit import RedditAdapter
from brief_aggregation.core.adapters.rss import RSSAdapter
from brief_aggregation.core.adapters.social import SocialAdapter
from brief_aggregation.core.adapters.youtube import YouTubeAdapter

ADAPTER_CLASSES: dict[str, type[SourceAdapter]] = {
    RSSAdapter.source_type: RSSAdapter,
    RedditAdapter.source_type: RedditAdapter,
    YouTubeAdapter.source_type: YouTubeAdapter,
    SocialAdapter.source_type: SocialAdapter,
}


def get_adapter_class(source_type: str) -> Optional[type[SourceAdapter]]:
    """Adapter class for a source type, or None if unsupported."""
    return ADAPTER_CLASSES.get((source_type or "").lower())


__all__ = [
    "ADAPTER_CLASSES",
    "AdapterError",
    "AdapterResult",
    "RawItem",
    "RSSAdapter",
    "RedditAdapter",
    "SocialAdapter",
    "SourceAdapter",
    "YouTubeAdapter",
    "classify_exception",
    "classify_status",
    "get_adapter_class",
]

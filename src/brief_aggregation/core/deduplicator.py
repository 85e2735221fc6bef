"""
Duplicate detection for incoming content items.

An item duplicates a stored one when it has the same URL within the same
source, or when its title overlaps a stored title from that source by at
least the configured word-similarity threshold.
"""

from collections import Counter
from dataclasses import dataclass
from typing import Any, Optional, Protocol

from brief_aggregation.config import DeduplicatorConfig, get_config
from brief_aggregation.logger import get_logger

logger = get_logger(__name__)


class ContentLookup(Protocol):
    """Storage queries the deduplicator needs."""

    def get_by_url(self, feed_source_id: int, url: str) -> Optional[Any]:
        ...

    def find_title_candidates(self, feed_source_id: int, prefix: str, limit: int = 5) -> list[Any]:
        ...


@dataclass
class DedupResult:
    """Result of a duplicate check."""

    is_duplicate: bool
    existing_id: Optional[int] = None
    similarity: Optional[float] = None
    reason: Optional[str] = None


def title_similarity(title_a: str, title_b: str) -> float:
    """Share of common words relative to the longer title.

    Tokens are lower-cased and split on whitespace; a repeated word counts
    as common only as often as it appears in both titles.
    """
    words_a = (title_a or "").lower().split()
    words_b = (title_b or "").lower().split()
    longest = max(len(words_a), len(words_b))
    if longest == 0:
        return 0.0

    common = sum((Counter(words_a) & Counter(words_b)).values())
    return common / longest


class Deduplicator:
    """Storage-agnostic duplicate checker."""

    def __init__(self, lookup: ContentLookup, config: Optional[DeduplicatorConfig] = None):
        """Initialize deduplicator.

        Args:
            lookup: Object answering URL and title-prefix queries (a ContentItemRepository)
            config: Thresholds and switches; defaults to the global config
        """
        self.lookup = lookup
        self.config = config or get_config().deduplicator

    def check_duplicate(
        self,
        feed_source_id: int,
        url: Optional[str],
        title: Optional[str],
    ) -> DedupResult:
        """Check a candidate against stored items of the same source.

        Args:
            feed_source_id: Owning source
            url: Candidate URL
            title: Candidate title; without one the fuzzy pass is skipped

        Returns:
            DedupResult
        """
        if not self.config.enabled:
            return DedupResult(is_duplicate=False)

        if self.config.check_by_url and url:
            existing = self.lookup.get_by_url(feed_source_id, url)
            if existing is not None:
                return DedupResult(
                    is_duplicate=True,
                    existing_id=existing.id,
                    similarity=1.0,
                    reason="url",
                )

        if not self.config.check_by_title or not title or not title.strip():
            return DedupResult(is_duplicate=False)

        prefix = title.strip()[: self.config.title_prefix_length]
        candidates = self.lookup.find_title_candidates(
            feed_source_id, prefix, limit=self.config.max_candidates
        )

        best_id: Optional[int] = None
        best_score = 0.0
        for candidate in candidates:
            score = title_similarity(title, candidate.title or "")
            # strict comparison keeps the first-seen candidate on ties
            if score > best_score:
                best_id, best_score = candidate.id, score

        if best_id is not None and best_score >= self.config.title_similarity_threshold:
            logger.debug(
                f"Title duplicate in source {feed_source_id}: {title!r} "
                f"matches item {best_id} ({best_score:.2f})"
            )
            return DedupResult(
                is_duplicate=True,
                existing_id=best_id,
                similarity=best_score,
                reason="title",
            )

        return DedupResult(is_duplicate=False, similarity=best_score if candidates else None)


def create_deduplicator(lookup: ContentLookup, config: Optional[DeduplicatorConfig] = None) -> Deduplicator:
    """Create a configured Deduplicator instance."""
    return Deduplicator(lookup, config=config)

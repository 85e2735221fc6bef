"""
Digest assembler.

Ranks scored items, picks the top stories, groups by category and computes
digest totals.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Callable, Optional, Sequence

from brief_aggregation.config import DigestConfig, get_config
from brief_aggregation.core.relevance import ScoredItem, fallback_digest_summary
from brief_aggregation.logger import get_logger

logger = get_logger(__name__)

_EPOCH = datetime(1970, 1, 1)

Summarizer = Callable[[Sequence[ScoredItem], date], str]


@dataclass
class AssembledDigest:
    """A digest ready to be stored or served."""

    subscriber_id: str
    digest_date: date
    summary: str
    items: list[ScoredItem] = field(default_factory=list)
    top_stories: list[ScoredItem] = field(default_factory=list)
    categories: dict[str, list[ScoredItem]] = field(default_factory=dict)
    total_items: int = 0
    estimated_read_time: int = 0


def rank_key(item: ScoredItem) -> tuple:
    """Sort key: score desc, published desc with undated last, id asc."""
    if item.published_at is None:
        recency = (1, 0.0)
    else:
        recency = (0, -(item.published_at - _EPOCH).total_seconds())
    return (-item.relevance_score, *recency, item.content_item_id)


def rank_items(items: Sequence[ScoredItem]) -> list[ScoredItem]:
    return sorted(items, key=rank_key)


class DigestAssembler:
    """Builds AssembledDigest objects from scored items."""

    def __init__(
        self,
        summarizer: Optional[Summarizer] = None,
        config: Optional[DigestConfig] = None,
    ):
        """Initialize digest assembler.

        Args:
            summarizer: Produces the digest summary from top stories and date,
                typically ``RelevanceProcessor.summarize_digest``
            config: Top-N setting
        """
        self.summarizer = summarizer or fallback_digest_summary
        self.config = config or get_config().digest

    def assemble(
        self,
        subscriber_id: str,
        digest_date: date,
        scored_items: Sequence[ScoredItem],
    ) -> AssembledDigest:
        """Rank, select and group ``scored_items`` into a digest."""
        ranked = rank_items(scored_items)
        top_stories = ranked[: self.config.top_stories]

        categories: dict[str, list[ScoredItem]] = {}
        for item in ranked:
            categories.setdefault(item.category, []).append(item)

        digest = AssembledDigest(
            subscriber_id=subscriber_id,
            digest_date=digest_date,
            summary=self.summarizer(top_stories, digest_date),
            items=ranked,
            top_stories=top_stories,
            categories=categories,
            total_items=len(ranked),
            estimated_read_time=sum(item.estimated_read_time for item in ranked),
        )
        logger.debug(
            f"Assembled digest for {subscriber_id} on {digest_date}: "
            f"{digest.total_items} items in {len(categories)} categories"
        )
        return digest


def create_assembler(
    summarizer: Optional[Summarizer] = None,
    config: Optional[DigestConfig] = None,
) -> DigestAssembler:
    """Create a configured DigestAssembler instance."""
    return DigestAssembler(summarizer=summarizer, config=config)

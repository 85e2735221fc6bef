"""
Relevance processor.

Scores, categorizes and summarizes content items for a subscriber. A
remote chat-completions oracle is used when configured; a deterministic
fallback scorer covers every batch the oracle cannot answer.
"""

import json
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Optional, Sequence

import httpx

from brief_aggregation.config import RelevanceConfig, get_config
from brief_aggregation.core.parser import truncate_on_word_boundary
from brief_aggregation.logger import get_logger
from brief_aggregation.models import ContentItemModel

logger = get_logger(__name__)

READ_CHARS_PER_MINUTE = 200

SYSTEM_PROMPT = (
    "You are a content curator for a daily digest read by busy professionals. "
    "You rank, categorize and summarize content items and answer only with JSON."
)


class OracleError(Exception):
    """The remote oracle could not produce a usable answer."""


class OracleProtocolError(OracleError):
    """The oracle answered about an item it was never asked about."""


@dataclass
class ScoredItem:
    """A content item with its relevance annotations."""

    content_item_id: int
    title: str
    url: str
    relevance_score: float
    category: str
    summary: str
    key_points: list[str] = field(default_factory=list)
    estimated_read_time: int = 0
    published_at: Optional[datetime] = None
    feed_source_id: Optional[int] = None
    image_url: Optional[str] = None
    content_type: Optional[str] = None


def clamp_score(value: Any, default: float = 0.5) -> float:
    """Clamp a raw score into [0, 1]; non-numeric values get ``default``."""
    try:
        score = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(score):
        return default
    return max(0.0, min(1.0, score))


def strip_markdown_fences(text: str) -> str:
    """Remove a surrounding ``` fence (with optional language tag)."""
    text = (text or "").strip()
    if text.startswith("```"):
        first_newline = text.find("\n")
        text = text[first_newline + 1 :] if first_newline != -1 else text[3:]
        if text.endswith("```"):
            text = text[:-3]
        text = text.strip()
    return text


def extract_json_array(text: str) -> list:
    """Parse the first JSON array found in an oracle answer.

    Raises:
        OracleError: If no array can be decoded
    """
    text = strip_markdown_fences(text)
    candidates = [text]
    start, end = text.find("["), text.rfind("]")
    if start != -1 and end > start and (start, end) != (0, len(text) - 1):
        candidates.append(text[start : end + 1])

    for candidate in candidates:
        try:
            value = json.loads(candidate)
        except ValueError:
            continue
        if isinstance(value, list):
            return value

    raise OracleError(f"Oracle answer is not a JSON array: {text[:200]!r}")


def estimate_read_time(text: Optional[str]) -> int:
    """Minutes to read ``text`` at a flat characters-per-minute rate."""
    return math.ceil(len(text or "") / READ_CHARS_PER_MINUTE)


def fallback_digest_summary(top_stories: Sequence[ScoredItem], digest_date: date) -> str:
    return (
        f"Your daily digest for {digest_date.isoformat()} contains "
        f"{len(top_stories)} curated stories to keep you informed."
    )


class Scorer(ABC):
    """Capability that annotates content items and summarizes digests."""

    @abstractmethod
    def score(
        self,
        items: Sequence[ContentItemModel],
        preferences: Optional[dict] = None,
    ) -> list[ScoredItem]:
        """Annotate ``items``. Implementations may omit items."""

    @abstractmethod
    def summarize(self, top_stories: Sequence[ScoredItem], digest_date: date) -> str:
        """One short paragraph introducing a digest."""


class FallbackScorer(Scorer):
    """Deterministic scorer that never fails."""

    def __init__(self, config: Optional[RelevanceConfig] = None):
        self.config = config or get_config().relevance

    def score_item(self, item: ContentItemModel) -> ScoredItem:
        description = item.description or ""
        return _scored(
            item,
            relevance_score=self.config.default_score,
            category=self.config.default_category,
            summary=truncate_on_word_boundary(description, self.config.summary_length),
            key_points=[],
            estimated_read_time=estimate_read_time(description),
        )

    def score(
        self,
        items: Sequence[ContentItemModel],
        preferences: Optional[dict] = None,
    ) -> list[ScoredItem]:
        return [self.score_item(item) for item in items]

    def summarize(self, top_stories: Sequence[ScoredItem], digest_date: date) -> str:
        return fallback_digest_summary(top_stories, digest_date)


class RemoteScorer(Scorer):
    """Scorer backed by an OpenAI-compatible chat-completions endpoint."""

    def __init__(
        self,
        config: Optional[RelevanceConfig] = None,
        client: Optional[httpx.Client] = None,
    ):
        """Initialize remote scorer.

        Args:
            config: Endpoint, credentials and limits
            client: Pre-built httpx client (tests inject a MockTransport one)
        """
        self.config = config or get_config().relevance
        self._client = client

    @property
    def is_available(self) -> bool:
        return bool(self.config.enabled and self.config.api_key and self.config.api_url)

    def _complete(self, prompt: str) -> str:
        payload = {
            "model": self.config.model,
            "temperature": self.config.temperature,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
        }
        headers = {"Authorization": f"Bearer {self.config.api_key}"}

        client = self._client or httpx.Client(timeout=self.config.timeout_seconds)
        try:
            response = client.post(
                self.config.api_url,
                json=payload,
                headers=headers,
                timeout=self.config.timeout_seconds,
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            raise OracleError(f"Oracle request failed: {e}") from e
        except ValueError as e:
            raise OracleError(f"Oracle returned invalid JSON: {e}") from e
        finally:
            if self._client is None:
                client.close()

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise OracleError(f"Unexpected oracle response shape: {e}") from e
        if not isinstance(content, str) or not content.strip():
            raise OracleError("Oracle returned an empty answer")
        return content

    @staticmethod
    def build_prompt(items: Sequence[ContentItemModel], preferences: Optional[dict]) -> str:
        context = (
            f"Subscriber preferences: {json.dumps(preferences, sort_keys=True)}"
            if preferences
            else "No specific subscriber preferences provided"
        )
        payload = [
            {
                "id": item.id,
                "title": item.title,
                "description": item.description,
                "url": item.url,
                "contentType": item.content_type,
                "publishedAt": item.published_at.isoformat() if item.published_at else None,
            }
            for item in items
        ]
        return (
            f"{context}\n\n"
            "For every content item below provide a relevance score between 0 and 1, "
            "a concise summary of 2-3 sentences, a category (e.g. Technology, Business, "
            "Startups, Productivity, News), 2-3 key points and an estimated read time "
            "in minutes.\n\n"
            f"Content items:\n{json.dumps(payload, indent=2)}\n\n"
            "Respond only with a JSON array where each element looks like:\n"
            '{"id": 1, "summary": "...", "relevanceScore": 0.85, "category": "Technology", '
            '"keyPoints": ["...", "..."], "estimatedReadTime": 3}'
        )

    def score(
        self,
        items: Sequence[ContentItemModel],
        preferences: Optional[dict] = None,
    ) -> list[ScoredItem]:
        """Score one batch.

        Raises:
            OracleError: Unreachable oracle or malformed answer
            OracleProtocolError: Answer references an id not in ``items``
        """
        if not items:
            return []

        entries = extract_json_array(self._complete(self.build_prompt(items, preferences)))
        by_id = {str(item.id): item for item in items}

        scored: list[ScoredItem] = []
        seen: set[str] = set()
        for entry in entries:
            if not isinstance(entry, dict):
                raise OracleError(f"Oracle entry is not an object: {entry!r}")

            entry_id = str(entry.get("id"))
            item = by_id.get(entry_id)
            if item is None:
                raise OracleProtocolError(f"Oracle returned unknown item id {entry.get('id')!r}")
            if entry_id in seen:
                continue
            seen.add(entry_id)

            key_points = entry.get("keyPoints")
            read_time = entry.get("estimatedReadTime")
            scored.append(
                _scored(
                    item,
                    relevance_score=clamp_score(entry.get("relevanceScore"), self.config.default_score),
                    category=str(entry.get("category") or self.config.default_category),
                    summary=str(entry.get("summary") or ""),
                    key_points=[str(p) for p in key_points] if isinstance(key_points, list) else [],
                    estimated_read_time=(
                        max(0, int(read_time))
                        if isinstance(read_time, (int, float))
                        and not isinstance(read_time, bool)
                        and math.isfinite(read_time)
                        else estimate_read_time(item.description)
                    ),
                )
            )
        return scored

    def summarize(self, top_stories: Sequence[ScoredItem], digest_date: date) -> str:
        lines = "\n".join(f"- {story.title}: {story.summary}" for story in top_stories)
        prompt = (
            f"Write a brief, engaging summary of 2-3 sentences for the daily digest of "
            f"{digest_date.isoformat()} based on these top stories:\n\n{lines}\n\n"
            "Respond with just the summary text, no additional formatting."
        )
        summary = strip_markdown_fences(self._complete(prompt)).replace('"', "").strip()
        if not summary:
            raise OracleError("Oracle returned an empty summary")
        return summary


class RelevanceProcessor:
    """Batching front of the scorer oracle with per-batch fallback."""

    def __init__(
        self,
        remote: Optional[RemoteScorer] = None,
        fallback: Optional[FallbackScorer] = None,
        config: Optional[RelevanceConfig] = None,
    ):
        """Initialize relevance processor.

        Args:
            remote: Oracle scorer; used only when available
            fallback: Deterministic scorer
            config: Batch size and fallback values
        """
        self.config = config or get_config().relevance
        self.remote = remote
        self.fallback = fallback or FallbackScorer(self.config)

    @property
    def uses_remote(self) -> bool:
        return self.remote is not None and self.remote.is_available

    def score(
        self,
        items: Sequence[ContentItemModel],
        preferences: Optional[dict] = None,
    ) -> list[ScoredItem]:
        """Score ``items`` in input order.

        Every input item gets exactly one ScoredItem. Batches the oracle
        cannot answer, and items it leaves out, get fallback values.
        """
        items = list(items)
        if not items:
            return []
        if not self.uses_remote:
            return self.fallback.score(items, preferences)

        size = self.config.batch_size
        results: list[ScoredItem] = []
        for start in range(0, len(items), size):
            results.extend(self._score_batch(items[start : start + size], preferences, start // size))
        return results

    def _score_batch(
        self,
        batch: list[ContentItemModel],
        preferences: Optional[dict],
        batch_idx: int,
    ) -> list[ScoredItem]:
        try:
            answered = {scored.content_item_id: scored for scored in self.remote.score(batch, preferences)}
        except OracleProtocolError as e:
            logger.error(f"Oracle protocol drift in batch {batch_idx}, using fallback: {e}")
            return self.fallback.score(batch, preferences)
        except (OracleError, ValueError, TypeError, OverflowError) as e:
            logger.warning(f"Oracle unavailable for batch {batch_idx}, using fallback: {e}")
            return self.fallback.score(batch, preferences)

        missing = [item for item in batch if item.id not in answered]
        if missing:
            logger.debug(f"Oracle omitted {len(missing)} items in batch {batch_idx}")

        return [answered.get(item.id) or self.fallback.score_item(item) for item in batch]

    def summarize_digest(self, top_stories: Sequence[ScoredItem], digest_date: date) -> str:
        """Digest-level summary seeded with the top stories."""
        if self.uses_remote and top_stories:
            try:
                return self.remote.summarize(top_stories, digest_date)
            except OracleError as e:
                logger.warning(f"Oracle summary failed, using fallback: {e}")
        return self.fallback.summarize(top_stories, digest_date)


def _scored(item: ContentItemModel, **annotations: Any) -> ScoredItem:
    return ScoredItem(
        content_item_id=item.id,
        title=item.title or "Untitled",
        url=item.url,
        published_at=item.published_at,
        feed_source_id=item.feed_source_id,
        image_url=item.image_url,
        content_type=item.content_type,
        **annotations,
    )


def create_relevance_processor(
    config: Optional[RelevanceConfig] = None,
    client: Optional[httpx.Client] = None,
) -> RelevanceProcessor:
    """Create a RelevanceProcessor, wiring the remote scorer when configured."""
    config = config or get_config().relevance
    remote = RemoteScorer(config, client=client) if config.enabled and config.api_key else None
    return RelevanceProcessor(remote=remote, fallback=FallbackScorer(config), config=config)

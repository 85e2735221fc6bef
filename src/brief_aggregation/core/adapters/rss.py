"""
RSS/Atom adapter built on httpx and feedparser.
"""

from typing import Any, Optional

import feedparser

from brief_aggregation.core.adapters.base import AdapterError, AdapterResult, RawItem, SourceAdapter
from brief_aggregation.logger import get_logger
from brief_aggregation.models import ErrorType, FeedSourceModel, SourceType, utcnow

logger = get_logger(__name__)

_IMAGE_TYPES = ("image/",)


class RSSAdapter(SourceAdapter):
    """Adapter for RSS 2.0 and Atom feeds."""

    source_type = SourceType.RSS.value

    def _fetch_into(self, source: FeedSourceModel, result: AdapterResult) -> None:
        with self.http_client() as client:
            response = self.request(client, "GET", source.url)

        parsed = feedparser.parse(response.content)

        # bozo feeds with entries are still usable; only give up when nothing parsed
        if parsed.bozo and not parsed.entries:
            reason = parsed.get("bozo_exception")
            raise AdapterError(ErrorType.PARSE_ERROR, f"Unparseable feed {source.url}: {reason}")

        fetched_at = utcnow()
        self.normalize_entries(
            parsed.entries,
            lambda entry: self._normalize(entry, fetched_at),
            result,
            source,
        )

    def _normalize(self, entry: Any, fetched_at) -> Optional[RawItem]:
        link = self.parser.normalize_link(entry.get("link"))
        if not link:
            return None

        description = entry.get("summary") or entry.get("description")
        if not description and entry.get("content"):
            description = entry["content"][0].get("value")

        published = (
            entry.get("published_parsed")
            or entry.get("updated_parsed")
            or entry.get("published")
        )

        return RawItem(
            title=self.parser.normalize_title(entry.get("title")),
            url=link,
            description=self.parser.clean_description(description),
            image_url=self._extract_image(entry),
            published_at=self.parser.parse_date(published) or fetched_at,
            content_type="article",
            author=self._extract_author(entry),
        )

    def _extract_author(self, entry: Any) -> Optional[str]:
        # feedparser maps dc:creator onto author; itunes:author stays separate
        for key in ("author", "dc_creator", "itunes_author"):
            author = self.parser.normalize_author(entry.get(key))
            if author:
                return author
        return self.parser.normalize_author(entry.get("author_detail"))

    def _extract_image(self, entry: Any) -> Optional[str]:
        for enclosure in entry.get("enclosures") or []:
            href = enclosure.get("href") or enclosure.get("url")
            if href and (enclosure.get("type") or "image/").startswith(_IMAGE_TYPES):
                return href

        for media in entry.get("media_thumbnail") or entry.get("media_content") or []:
            if media.get("url"):
                return media["url"]

        return None

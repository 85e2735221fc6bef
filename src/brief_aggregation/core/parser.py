"""
Content parser for normalizing raw origin fields.

Handles HTML cleaning, entity decoding, date parsing, link validation and
length limits. Every adapter runs its raw fields through one ContentParser.
"""

import re
from calendar import timegm
from datetime import datetime, timezone
from html import unescape
from time import struct_time
from typing import Any, Optional

from bs4 import BeautifulSoup
from feedparser.datetimes import _parse_date as parse_feed_date

from brief_aggregation.config import get_config
from brief_aggregation.logger import get_logger

logger = get_logger(__name__)


def truncate_on_word_boundary(text: str, limit: int, suffix: str = "...") -> str:
    """Cut ``text`` to at most ``limit`` characters, ending on a word boundary.

    The suffix is appended only when something was cut. A boundary is used
    only when it keeps at least 80% of the allowed length.
    """
    if not text or len(text) <= limit:
        return text or ""

    cut = text[:limit].rstrip()
    last_space = cut.rfind(" ")
    if last_space > limit * 0.8:
        cut = cut[:last_space]
    return cut.rstrip(" ,;:.") + suffix


class ContentParser:
    """Parser for normalizing and cleaning raw item fields."""

    def __init__(self, max_description_length: Optional[int] = None):
        """Initialize content parser.

        Args:
            max_description_length: Maximum stored description length in characters
        """
        config = get_config()
        self.max_description_length = (
            max_description_length or config.fetcher.max_description_length
        )

    def normalize_title(self, title: Optional[str]) -> Optional[str]:
        """Strip markup and collapse whitespace in a title."""
        if not title:
            return None

        title = str(title)
        if "<" in title:
            title = self.strip_html(title)
        title = unescape(title)
        title = re.sub(r"\s+", " ", title).strip()

        if len(title) > 1000:
            title = title[:997] + "..."

        return title or None

    def normalize_link(self, link: Optional[str]) -> Optional[str]:
        """Return the link if it is an absolute http(s) URL."""
        if not link:
            return None

        link = str(link).strip()
        if not link.startswith(("http://", "https://")):
            logger.warning(f"Invalid link format: {link}")
            return None

        return link

    def normalize_author(self, author: Any) -> Optional[str]:
        """Normalize an author field, which may be a string or a name/email dict."""
        if not author:
            return None

        if isinstance(author, dict):
            author = author.get("name") or author.get("email")
            if not author:
                return None

        author = unescape(str(author)).strip()
        author = re.sub(r"^(by|posted by)\s+", "", author, flags=re.IGNORECASE)

        if len(author) > 200:
            author = author[:197] + "..."

        return author or None

    def clean_description(self, text: Optional[str]) -> Optional[str]:
        """Turn an HTML or plain-text description into bounded plain text."""
        if not text:
            return None

        text = str(text)
        if "<" in text:
            text = self.strip_html(text)
        text = unescape(text)
        text = re.sub(r"\s+", " ", text).strip()

        if len(text) > self.max_description_length:
            text = truncate_on_word_boundary(text, self.max_description_length)
            logger.debug(f"Description truncated to {self.max_description_length} characters")

        return text or None

    def strip_html(self, html: str) -> str:
        """Strip HTML tags, dropping script and style bodies."""
        if not html:
            return ""

        soup = BeautifulSoup(html, "html.parser")
        for element in soup(["script", "style", "noscript"]):
            element.decompose()

        return soup.get_text(separator=" ").strip()

    def parse_date(self, value: Any) -> Optional[datetime]:
        """Parse a date into a naive UTC datetime.

        Accepts datetimes, ``time.struct_time`` (as produced by feedparser),
        unix timestamps and RFC 822 / ISO 8601 strings.
        """
        if value is None or value == "":
            return None

        if isinstance(value, datetime):
            if value.tzinfo is not None:
                value = value.astimezone(timezone.utc).replace(tzinfo=None)
            return value

        if isinstance(value, struct_time):
            return datetime.fromtimestamp(timegm(value), tz=timezone.utc).replace(tzinfo=None)

        if isinstance(value, (int, float)):
            try:
                return datetime.fromtimestamp(float(value), tz=timezone.utc).replace(tzinfo=None)
            except (OverflowError, OSError, ValueError):
                logger.warning(f"Invalid timestamp: {value}")
                return None

        text = str(value).strip()

        # ISO 8601, including a trailing Z
        try:
            return self.parse_date(datetime.fromisoformat(text.replace("Z", "+00:00")))
        except ValueError:
            pass

        # feedparser understands RFC 822 and most feed date dialects
        parsed = parse_feed_date(text)
        if parsed:
            return self.parse_date(parsed)

        logger.warning(f"Failed to parse date: {text}")
        return None


def create_parser(max_description_length: Optional[int] = None) -> ContentParser:
    """Create a configured ContentParser instance."""
    return ContentParser(max_description_length=max_description_length)

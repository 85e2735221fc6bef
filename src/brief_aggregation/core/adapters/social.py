"""
Social posts adapter (X/Twitter API v2 recent search).
"""

import re
from typing import Any, Optional
from urllib.parse import urlparse

from brief_aggregation.config import SocialConfig, get_config
from brief_aggregation.core.adapters.base import AdapterError, AdapterResult, RawItem, SourceAdapter
from brief_aggregation.models import ErrorType, FeedSourceModel, SourceType

TITLE_LENGTH = 80


def extract_username(url: str) -> Optional[str]:
    """Get the account name from a profile URL or an ``@name``."""
    raw = (url or "").strip()
    if "://" in raw:
        parts = [part for part in urlparse(raw).path.split("/") if part]
        raw = parts[0] if parts else ""
    raw = raw.lstrip("@")
    return raw if re.fullmatch(r"[A-Za-z0-9_]{1,50}", raw) else None


class SocialAdapter(SourceAdapter):
    """Adapter for one account's recent posts."""

    source_type = SourceType.SOCIAL.value

    def __init__(self, social_config: Optional[SocialConfig] = None, **kwargs: Any):
        super().__init__(**kwargs)
        self.social = social_config or get_config().social

    def _fetch_into(self, source: FeedSourceModel, result: AdapterResult) -> None:
        if not self.social.bearer_token:
            raise AdapterError(ErrorType.AUTH_ERROR, "Social API bearer token not configured")

        username = extract_username(source.url)
        if not username:
            raise AdapterError(ErrorType.PARSE_ERROR, f"Not a profile URL: {source.url}")

        with self.http_client() as client:
            data = self.get_json(
                client,
                f"{self.social.api_base_url.rstrip('/')}/tweets/search/recent",
                params={
                    "query": f"from:{username}",
                    "tweet.fields": "created_at,entities",
                    "max_results": self.social.max_results,
                },
                headers={"Authorization": f"Bearer {self.social.bearer_token}"},
            )

        if not isinstance(data, dict):
            raise AdapterError(ErrorType.PARSE_ERROR, "Unexpected search response")

        self.normalize_entries(
            data.get("data") or [],
            lambda post: self._normalize(post, username),
            result,
            source,
        )

    def _normalize(self, post: dict, username: str) -> Optional[RawItem]:
        post_id = post.get("id")
        text = self.parser.clean_description(post.get("text"))
        if not post_id or not text:
            return None

        return RawItem(
            title=text[:TITLE_LENGTH],
            url=f"https://twitter.com/{username}/status/{post_id}",
            description=text,
            published_at=self.parser.parse_date(post.get("created_at")),
            content_type="social",
            author=username,
        )

"""
Reddit adapter reading subreddit listings.

Uses OAuth client credentials when configured. Anonymous requests that the
OAuth host refuses are retried against the public JSON listing.
"""

import re
from typing import Any, Optional

import httpx

from brief_aggregation.config import RedditConfig, get_config
from brief_aggregation.core.adapters.base import AdapterError, AdapterResult, RawItem, SourceAdapter
from brief_aggregation.logger import get_logger
from brief_aggregation.models import ErrorType, FeedSourceModel, SourceType

logger = get_logger(__name__)

TOKEN_URL = "https://www.reddit.com/api/v1/access_token"
OAUTH_BASE_URL = "https://oauth.reddit.com"
PUBLIC_BASE_URL = "https://www.reddit.com"

_SUBREDDIT_RE = re.compile(r"(?:^|/)r/([A-Za-z0-9_]+)")


def extract_subreddit(url: str) -> Optional[str]:
    """Get the subreddit name from a URL, an ``r/name`` path or a bare name."""
    if not url:
        return None
    match = _SUBREDDIT_RE.search(url)
    if match:
        return match.group(1)
    candidate = url.strip().strip("/")
    return candidate if re.fullmatch(r"[A-Za-z0-9_]+", candidate) else None


class RedditAdapter(SourceAdapter):
    """Adapter for subreddit listings."""

    source_type = SourceType.REDDIT.value

    def __init__(self, reddit_config: Optional[RedditConfig] = None, **kwargs: Any):
        super().__init__(**kwargs)
        self.reddit = reddit_config or get_config().reddit

    @property
    def has_credentials(self) -> bool:
        return bool(self.reddit.client_id and self.reddit.client_secret)

    def _fetch_into(self, source: FeedSourceModel, result: AdapterResult) -> None:
        subreddit = extract_subreddit(source.url)
        if not subreddit:
            raise AdapterError(ErrorType.PARSE_ERROR, f"Not a subreddit URL: {source.url}")

        with self.http_client() as client:
            token = self._get_access_token(client)
            listing = self._get_listing(client, subreddit, token)

        try:
            children = listing["data"]["children"]
        except (KeyError, TypeError) as e:
            raise AdapterError(ErrorType.PARSE_ERROR, f"Unexpected listing shape for r/{subreddit}: {e}")

        self.normalize_entries(
            (child.get("data") or {} for child in children),
            self._normalize,
            result,
            source,
        )

    def _get_access_token(self, client: httpx.Client) -> Optional[str]:
        """Client-credentials token, or None to read the public listing."""
        if not self.has_credentials:
            logger.debug("Reddit credentials not configured, requesting anonymously")
            return None

        try:
            response = self.request(
                client,
                "POST",
                TOKEN_URL,
                auth=(self.reddit.client_id, self.reddit.client_secret),
                data={"grant_type": "client_credentials"},
                headers={"User-Agent": self.reddit.user_agent},
            )
            return response.json().get("access_token")
        except (AdapterError, ValueError) as e:
            logger.warning(f"Could not obtain Reddit access token: {e}")
            return None

    def _get_listing(self, client: httpx.Client, subreddit: str, token: Optional[str]) -> Any:
        path = f"/r/{subreddit}/{self.reddit.listing}.json"
        params = {"limit": self.reddit.limit}
        headers = {"User-Agent": self.reddit.user_agent}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        try:
            return self.get_json(client, OAUTH_BASE_URL + path, params=params, headers=headers)
        except AdapterError as e:
            # oauth.reddit.com refuses anonymous clients; the public listing does not
            if e.status_code == 403 and not token:
                logger.info(f"Retrying r/{subreddit} on the public endpoint")
                return self.get_json(client, PUBLIC_BASE_URL + path, params=params, headers=headers)
            raise

    def _normalize(self, post: dict) -> Optional[RawItem]:
        permalink = post.get("permalink") or ""
        permalink_url = f"https://www.reddit.com{permalink}" if permalink else None

        url = permalink_url if post.get("is_self") else (post.get("url") or permalink_url)
        url = self.parser.normalize_link(url)
        if not url:
            return None

        title = self.parser.normalize_title(post.get("title"))
        thumbnail = post.get("thumbnail")

        return RawItem(
            title=title,
            url=url,
            description=self.parser.clean_description(post.get("selftext")) or title,
            image_url=thumbnail if thumbnail and thumbnail.startswith("http") else None,
            published_at=self.parser.parse_date(post.get("created_utc")),
            content_type="reddit",
            author=self.parser.normalize_author(post.get("author")),
            score=int(post.get("score") or 0),
            num_comments=int(post.get("num_comments") or 0),
            subreddit=post.get("subreddit"),
            permalink=permalink or None,
        )

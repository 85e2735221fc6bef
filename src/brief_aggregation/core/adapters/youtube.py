"""
YouTube adapter listing a channel's uploads through the Data API v3.
"""

import re
from typing import Any, Optional
from urllib.parse import unquote, urlparse

import httpx

from brief_aggregation.config import YouTubeConfig, get_config
from brief_aggregation.core.adapters.base import AdapterError, AdapterResult, RawItem, SourceAdapter
from brief_aggregation.logger import get_logger
from brief_aggregation.models import ErrorType, FeedSourceModel, SourceType

logger = get_logger(__name__)

_CHANNEL_ID_RE = re.compile(r"^UC[A-Za-z0-9_-]{22}$")


def parse_channel_reference(url: str) -> tuple[str, str]:
    """Split a channel URL into (kind, value).

    ``kind`` is one of ``id``, ``handle``, ``user``, ``custom`` or ``query``.

    >>> parse_channel_reference("https://www.youtube.com/@veritasium")
    ('handle', 'veritasium')
    """
    raw = (url or "").strip()
    if raw.startswith("@"):
        return "handle", raw[1:]
    if _CHANNEL_ID_RE.match(raw):
        return "id", raw

    if "youtube.com" in raw and "://" not in raw:
        raw = f"https://{raw}"
    path = unquote(urlparse(raw).path if "://" in raw else raw)
    parts = [part for part in path.split("/") if part]

    if parts:
        head = parts[0]
        if head.startswith("@"):
            return "handle", head[1:]
        if len(parts) > 1:
            if head == "channel":
                return "id", parts[1]
            if head == "user":
                return "user", parts[1]
            if head == "c":
                return "custom", parts[1]
        if "youtube.com" not in raw:
            return "query", head

    return "query", raw


class YouTubeAdapter(SourceAdapter):
    """Adapter for YouTube channel uploads.

    A channel handle or URL is resolved to a channel id once; the id is
    returned in ``AdapterResult.source_updates`` so the caller can cache it
    on the FeedSource, and later fetches skip resolution.
    """

    source_type = SourceType.YOUTUBE.value

    def __init__(self, youtube_config: Optional[YouTubeConfig] = None, **kwargs: Any):
        super().__init__(**kwargs)
        self.youtube = youtube_config or get_config().youtube

    def _api(self, client: httpx.Client, endpoint: str, **params: Any) -> dict:
        params["key"] = self.youtube.api_key
        url = f"{self.youtube.api_base_url.rstrip('/')}/{endpoint}"
        data = self.get_json(client, url, params=params)
        if not isinstance(data, dict):
            raise AdapterError(ErrorType.PARSE_ERROR, f"Unexpected {endpoint} response")
        return data

    def _fetch_into(self, source: FeedSourceModel, result: AdapterResult) -> None:
        if not self.youtube.api_key:
            raise AdapterError(ErrorType.AUTH_ERROR, "YouTube API key not configured")

        with self.http_client() as client:
            channel_id = source.channel_id or self.resolve_channel_id(client, source.url)
            if not channel_id:
                logger.warning(f"Could not resolve YouTube channel for {source.url}, skipping")
                raise AdapterError(ErrorType.PARSE_ERROR, f"Unresolvable channel: {source.url}")

            if channel_id != source.channel_id:
                result.source_updates["channel_id"] = channel_id

            channel = self._get_channel(client, channel_id)
            thumbnail = self._best_thumbnail(
                channel.get("snippet", {}).get("thumbnails"), sizes=("default", "medium", "high")
            )
            if thumbnail and thumbnail != source.favicon_url:
                result.source_updates["favicon_url"] = thumbnail

            uploads = (
                channel.get("contentDetails", {}).get("relatedPlaylists", {}).get("uploads")
            )
            if not uploads:
                raise AdapterError(ErrorType.PARSE_ERROR, f"Channel {channel_id} has no uploads playlist")

            playlist = self._api(
                client,
                "playlistItems",
                part="snippet",
                playlistId=uploads,
                maxResults=self.youtube.max_results,
            )

        self.normalize_entries(playlist.get("items") or [], self._normalize, result, source)

    def resolve_channel_id(self, client: httpx.Client, url: str) -> Optional[str]:
        """Resolve a channel URL, handle or name to a channel id.

        Tries the exact lookup for the URL form first and falls back to a
        channel search.
        """
        kind, value = parse_channel_reference(url)
        if kind == "id":
            return value

        channel_id = None
        if kind == "handle":
            channel_id = self._first_id(self._api(client, "channels", part="id", forHandle=f"@{value}"))
        elif kind == "user":
            channel_id = self._first_id(self._api(client, "channels", part="id", forUsername=value))

        if channel_id:
            return channel_id

        found = self._api(client, "search", part="snippet", q=value, type="channel", maxResults=1)
        for item in found.get("items") or []:
            channel_id = (item.get("snippet") or {}).get("channelId") or (item.get("id") or {}).get("channelId")
            if channel_id:
                logger.info(f"Resolved YouTube channel {value!r} by search: {channel_id}")
                return channel_id
        return None

    def _get_channel(self, client: httpx.Client, channel_id: str) -> dict:
        data = self._api(client, "channels", part="contentDetails,snippet", id=channel_id)
        items = data.get("items") or []
        if not items:
            raise AdapterError(ErrorType.PARSE_ERROR, f"Channel not found: {channel_id}")
        return items[0]

    @staticmethod
    def _first_id(data: dict) -> Optional[str]:
        items = data.get("items") or []
        return items[0].get("id") if items else None

    @staticmethod
    def _best_thumbnail(
        thumbnails: Optional[dict], sizes: tuple[str, ...] = ("high", "medium", "default")
    ) -> Optional[str]:
        if not thumbnails:
            return None
        for size in sizes:
            url = (thumbnails.get(size) or {}).get("url")
            if url:
                return url
        return None

    def _normalize(self, entry: dict) -> Optional[RawItem]:
        snippet = entry.get("snippet") or {}
        video_id = (snippet.get("resourceId") or {}).get("videoId")
        if not video_id:
            return None

        return RawItem(
            title=self.parser.normalize_title(snippet.get("title")),
            url=f"https://www.youtube.com/watch?v={video_id}",
            description=self.parser.clean_description(snippet.get("description")),
            image_url=self._best_thumbnail(snippet.get("thumbnails")),
            published_at=self.parser.parse_date(snippet.get("publishedAt")),
            content_type="youtube",
            author=self.parser.normalize_author(
                snippet.get("videoOwnerChannelTitle") or snippet.get("channelTitle")
            ),
        )

"""Unit tests for source adapters."""

from datetime import datetime

import httpx
import pytest

from brief_aggregation.config import FetcherConfig, RedditConfig, SocialConfig, YouTubeConfig
from brief_aggregation.core.adapters import (
    AdapterError,
    AdapterResult,
    RawItem,
    RedditAdapter,
    RSSAdapter,
    SocialAdapter,
    YouTubeAdapter,
    classify_exception,
    classify_status,
    get_adapter_class,
)
from brief_aggregation.core.adapters.reddit import extract_subreddit
from brief_aggregation.core.adapters.social import extract_username
from brief_aggregation.core.adapters.youtube import parse_channel_reference
from brief_aggregation.models import ErrorType, FeedSourceModel, utcnow


RSS_FEED = b"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:dc="http://purl.org/dc/elements/1.1/">
  <channel>
    <title>Example Blog</title>
    <link>https://example.com</link>
    <item>
      <title>First &amp; Foremost</title>
      <link>https://example.com/first</link>
      <description>&lt;p&gt;Hello &lt;b&gt;world&lt;/b&gt;&lt;/p&gt;</description>
      <pubDate>Tue, 10 Mar 2026 12:00:00 GMT</pubDate>
      <dc:creator>Jane Doe</dc:creator>
      <enclosure url="https://example.com/first.jpg" type="image/jpeg" length="1" />
    </item>
    <item>
      <title>No date</title>
      <link>https://example.com/second</link>
    </item>
    <item>
      <title>Broken link</title>
      <link>/relative</link>
    </item>
  </channel>
</rss>
"""


def make_source(url, source_type="rss", source_id=1, **kwargs):
    return FeedSourceModel(id=source_id, name="Test", url=url, type=source_type, **kwargs)


def make_client(handler):
    return httpx.Client(transport=httpx.MockTransport(handler))


@pytest.fixture
def fetcher_config():
    return FetcherConfig(max_retries=2, retry_delay_seconds=1.0)


@pytest.fixture
def sleeps():
    return []


def build(adapter_class, handler, fetcher_config, sleeps, **kwargs):
    return adapter_class(
        fetcher_config=fetcher_config,
        client=make_client(handler),
        sleep=sleeps.append,
        **kwargs,
    )


class TestClassification:
    """Tests for error classification helpers."""

    @pytest.mark.parametrize(
        "status,expected",
        [
            (429, ErrorType.RATE_LIMIT),
            (401, ErrorType.AUTH_ERROR),
            (403, ErrorType.AUTH_ERROR),
            (404, ErrorType.FETCH_ERROR),
            (503, ErrorType.FETCH_ERROR),
        ],
    )
    def test_classify_status(self, status, expected):
        assert classify_status(status) == expected

    def test_classify_exceptions(self):
        request = httpx.Request("GET", "https://example.com")
        assert classify_exception(httpx.ReadTimeout("slow", request=request)).error_type == ErrorType.TIMEOUT
        assert classify_exception(httpx.ConnectError("down", request=request)).error_type == ErrorType.FETCH_ERROR
        assert classify_exception(ValueError("bad json")).error_type == ErrorType.PARSE_ERROR
        assert classify_exception(RuntimeError("?")).error_type == ErrorType.UNKNOWN

    def test_adapter_error_passthrough(self):
        error = AdapterError(ErrorType.AUTH_ERROR, "no key")
        assert classify_exception(error) is error
        assert str(error) == "auth_error: no key"

    def test_failed_result_cannot_carry_items(self):
        with pytest.raises(ValueError):
            AdapterResult(
                feed_source_id=1,
                items=[RawItem(title="t", url="https://e.com")],
                error=AdapterError(ErrorType.TIMEOUT, "slow"),
            )

    def test_registry(self):
        assert get_adapter_class("RSS") is RSSAdapter
        assert get_adapter_class("youtube") is YouTubeAdapter
        assert get_adapter_class("podcast") is None


class TestRetries:
    """Tests for the shared request retry loop."""

    def test_server_error_retried_then_succeeds(self, fetcher_config, sleeps):
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) < 3:
                return httpx.Response(503)
            return httpx.Response(200, content=RSS_FEED)

        adapter = build(RSSAdapter, handler, fetcher_config, sleeps)
        result = adapter.fetch(make_source("https://example.com/feed"))

        assert result.success
        assert len(calls) == 3
        assert sleeps == [1.0, 2.0]

    def test_retries_exhausted(self, fetcher_config, sleeps):
        adapter = build(RSSAdapter, lambda r: httpx.Response(500), fetcher_config, sleeps)
        result = adapter.fetch(make_source("https://example.com/feed"))

        assert not result.success
        assert result.error.error_type == ErrorType.FETCH_ERROR
        assert result.retry_count == 2
        assert result.items == []

    def test_client_error_not_retried(self, fetcher_config, sleeps):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(429)

        adapter = build(RSSAdapter, handler, fetcher_config, sleeps)
        result = adapter.fetch(make_source("https://example.com/feed"))

        assert result.error.error_type == ErrorType.RATE_LIMIT
        assert result.error.status_code == 429
        assert len(calls) == 1
        assert sleeps == []

    def test_timeout_classified(self, fetcher_config, sleeps):
        def handler(request):
            raise httpx.ReadTimeout("too slow", request=request)

        adapter = build(RSSAdapter, handler, fetcher_config, sleeps)
        result = adapter.fetch(make_source("https://example.com/feed"))

        assert result.error.error_type == ErrorType.TIMEOUT
        assert len(sleeps) == 2


class TestRSSAdapter:
    """Tests for RSSAdapter."""

    def test_normalizes_entries(self, fetcher_config, sleeps):
        adapter = build(RSSAdapter, lambda r: httpx.Response(200, content=RSS_FEED), fetcher_config, sleeps)
        result = adapter.fetch(make_source("https://example.com/feed"))

        assert result.success
        assert result.skipped_entries == 1
        assert [item.url for item in result.items] == [
            "https://example.com/first",
            "https://example.com/second",
        ]

        first = result.items[0]
        assert first.title == "First & Foremost"
        assert first.description == "Hello world"
        assert first.author == "Jane Doe"
        assert first.image_url == "https://example.com/first.jpg"
        assert first.published_at == datetime(2026, 3, 10, 12, 0)
        assert first.content_type == "article"

    def test_undated_item_uses_fetch_time(self, fetcher_config, sleeps):
        adapter = build(RSSAdapter, lambda r: httpx.Response(200, content=RSS_FEED), fetcher_config, sleeps)
        before = utcnow().replace(microsecond=0)
        result = adapter.fetch(make_source("https://example.com/feed"))

        assert result.items[1].published_at >= before

    def test_garbage_is_parse_error(self, fetcher_config, sleeps):
        adapter = build(
            RSSAdapter, lambda r: httpx.Response(200, content=b"<html><oops"), fetcher_config, sleeps
        )
        result = adapter.fetch(make_source("https://example.com/feed"))

        assert result.error.error_type == ErrorType.PARSE_ERROR

    def test_max_items_per_source(self, sleeps):
        config = FetcherConfig(max_items_per_source=1, retry_delay_seconds=0)
        adapter = build(RSSAdapter, lambda r: httpx.Response(200, content=RSS_FEED), config, sleeps)

        assert len(adapter.fetch(make_source("https://example.com/feed")).items) == 1

    def test_item_to_create(self):
        item = RawItem(title="t", url="https://e.com/x", content_type="article")
        create = item.to_create(feed_source_id=7)
        assert create.feed_source_id == 7
        assert create.url == "https://e.com/x"


REDDIT_LISTING = {
    "data": {
        "children": [
            {
                "data": {
                    "title": "Show HN style post",
                    "url": "https://blog.example.com/post",
                    "permalink": "/r/python/comments/abc/show/",
                    "is_self": False,
                    "selftext": "",
                    "created_utc": 1773144000,
                    "author": "alice",
                    "score": 42,
                    "num_comments": 7,
                    "subreddit": "python",
                    "thumbnail": "https://b.thumbs.redditmedia.com/x.jpg",
                }
            },
            {
                "data": {
                    "title": "Self post",
                    "permalink": "/r/python/comments/def/self/",
                    "is_self": True,
                    "selftext": "Body text",
                    "created_utc": 1773144000,
                    "author": "bob",
                    "subreddit": "python",
                    "thumbnail": "self",
                }
            },
        ]
    }
}


class TestRedditAdapter:
    """Tests for RedditAdapter."""

    @pytest.mark.parametrize(
        "url,expected",
        [
            ("https://www.reddit.com/r/Python/", "Python"),
            ("r/learnpython", "learnpython"),
            ("rust", "rust"),
            ("https://example.com/feed", None),
        ],
    )
    def test_extract_subreddit(self, url, expected):
        assert extract_subreddit(url) == expected

    def test_anonymous_fetch_falls_back_to_public(self, fetcher_config, sleeps):
        hosts = []

        def handler(request):
            hosts.append(request.url.host)
            if request.url.host == "oauth.reddit.com":
                return httpx.Response(403)
            assert request.url.path == "/r/python/hot.json"
            return httpx.Response(200, json=REDDIT_LISTING)

        adapter = build(RedditAdapter, handler, fetcher_config, sleeps, reddit_config=RedditConfig())
        result = adapter.fetch(make_source("https://www.reddit.com/r/python", "reddit"))

        assert result.success
        assert hosts == ["oauth.reddit.com", "www.reddit.com"]

        link, self_post = result.items
        assert link.url == "https://blog.example.com/post"
        assert link.content_type == "reddit"
        assert link.score == 42
        assert link.num_comments == 7
        assert link.subreddit == "python"
        assert link.image_url == "https://b.thumbs.redditmedia.com/x.jpg"

        assert self_post.url == "https://www.reddit.com/r/python/comments/def/self/"
        assert self_post.description == "Body text"
        assert self_post.image_url is None

    def test_oauth_token_used(self, fetcher_config, sleeps):
        seen = {}

        def handler(request):
            if request.url.path == "/api/v1/access_token":
                return httpx.Response(200, json={"access_token": "tok"})
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json=REDDIT_LISTING)

        config = RedditConfig(client_id="id", client_secret="secret", listing="new")
        adapter = build(RedditAdapter, handler, fetcher_config, sleeps, reddit_config=config)
        result = adapter.fetch(make_source("r/python", "reddit"))

        assert result.success
        assert seen["auth"] == "Bearer tok"

    def test_unexpected_shape(self, fetcher_config, sleeps):
        adapter = build(
            RedditAdapter,
            lambda r: httpx.Response(200, json={"kind": "Listing"}),
            fetcher_config,
            sleeps,
            reddit_config=RedditConfig(),
        )
        result = adapter.fetch(make_source("r/python", "reddit"))
        assert result.error.error_type == ErrorType.PARSE_ERROR


class TestYouTubeAdapter:
    """Tests for YouTubeAdapter."""

    @pytest.mark.parametrize(
        "url,expected",
        [
            ("https://www.youtube.com/@veritasium", ("handle", "veritasium")),
            ("@veritasium", ("handle", "veritasium")),
            ("https://www.youtube.com/channel/UC1234567890123456789012", ("id", "UC1234567890123456789012")),
            ("youtube.com/user/oldname", ("user", "oldname")),
            ("https://youtube.com/c/Custom", ("custom", "Custom")),
            ("UCabcdefghijklmnopqrstuv", ("id", "UCabcdefghijklmnopqrstuv")),
        ],
    )
    def test_parse_channel_reference(self, url, expected):
        assert parse_channel_reference(url) == expected

    def test_missing_api_key(self, fetcher_config, sleeps):
        adapter = build(
            YouTubeAdapter,
            lambda r: httpx.Response(200),
            fetcher_config,
            sleeps,
            youtube_config=YouTubeConfig(api_key=None),
        )
        result = adapter.fetch(make_source("https://www.youtube.com/@x", "youtube"))
        assert result.error.error_type == ErrorType.AUTH_ERROR

    def test_resolves_handle_and_reports_updates(self, fetcher_config, sleeps):
        def handler(request):
            endpoint = request.url.path.rsplit("/", 1)[-1]
            params = request.url.params
            if endpoint == "channels" and params.get("forHandle") == "@science":
                return httpx.Response(200, json={"items": [{"id": "UCsci"}]})
            if endpoint == "channels":
                assert params["id"] == "UCsci"
                return httpx.Response(
                    200,
                    json={
                        "items": [
                            {
                                "snippet": {"thumbnails": {"default": {"url": "https://yt/thumb.jpg"}}},
                                "contentDetails": {"relatedPlaylists": {"uploads": "UUsci"}},
                            }
                        ]
                    },
                )
            assert endpoint == "playlistItems"
            assert params["playlistId"] == "UUsci"
            return httpx.Response(
                200,
                json={
                    "items": [
                        {
                            "snippet": {
                                "title": "Why the sky is blue",
                                "description": "Rayleigh scattering",
                                "publishedAt": "2026-03-10T09:00:00Z",
                                "channelTitle": "Science",
                                "resourceId": {"videoId": "vid1"},
                                "thumbnails": {"high": {"url": "https://yt/vid1.jpg"}},
                            }
                        },
                        {"snippet": {"title": "deleted video", "resourceId": {}}},
                    ]
                },
            )

        adapter = build(
            YouTubeAdapter, handler, fetcher_config, sleeps, youtube_config=YouTubeConfig(api_key="k")
        )
        result = adapter.fetch(make_source("https://www.youtube.com/@science", "youtube"))

        assert result.success
        assert result.source_updates == {"channel_id": "UCsci", "favicon_url": "https://yt/thumb.jpg"}
        assert result.skipped_entries == 1

        video = result.items[0]
        assert video.url == "https://www.youtube.com/watch?v=vid1"
        assert video.content_type == "youtube"
        assert video.author == "Science"
        assert video.image_url == "https://yt/vid1.jpg"
        assert video.published_at == datetime(2026, 3, 10, 9, 0)

    def test_cached_channel_skips_resolution(self, fetcher_config, sleeps):
        endpoints = []

        def handler(request):
            endpoint = request.url.path.rsplit("/", 1)[-1]
            endpoints.append(endpoint)
            if endpoint == "channels":
                return httpx.Response(
                    200, json={"items": [{"contentDetails": {"relatedPlaylists": {"uploads": "UU1"}}}]}
                )
            return httpx.Response(200, json={"items": []})

        adapter = build(
            YouTubeAdapter, handler, fetcher_config, sleeps, youtube_config=YouTubeConfig(api_key="k")
        )
        result = adapter.fetch(make_source("https://www.youtube.com/@x", "youtube", channel_id="UCcached"))

        assert result.success
        assert endpoints == ["channels", "playlistItems"]
        assert result.source_updates == {}


class TestSocialAdapter:
    """Tests for SocialAdapter."""

    @pytest.mark.parametrize(
        "url,expected",
        [
            ("https://twitter.com/python_dev", "python_dev"),
            ("https://x.com/guido/", "guido"),
            ("@guido", "guido"),
            ("https://x.com/", None),
            ("not a handle!", None),
        ],
    )
    def test_extract_username(self, url, expected):
        assert extract_username(url) == expected

    def test_missing_token(self, fetcher_config, sleeps):
        adapter = build(
            SocialAdapter, lambda r: httpx.Response(200), fetcher_config, sleeps, social_config=SocialConfig()
        )
        result = adapter.fetch(make_source("https://x.com/guido", "social"))
        assert result.error.error_type == ErrorType.AUTH_ERROR

    def test_posts_normalized(self, fetcher_config, sleeps):
        text = "A" * 100

        def handler(request):
            assert request.headers["Authorization"] == "Bearer t"
            assert request.url.params["query"] == "from:guido"
            return httpx.Response(
                200,
                json={"data": [{"id": "1", "text": text, "created_at": "2026-03-10T08:00:00.000Z"}]},
            )

        adapter = build(
            SocialAdapter, handler, fetcher_config, sleeps, social_config=SocialConfig(bearer_token="t")
        )
        result = adapter.fetch(make_source("https://x.com/guido", "social"))

        post = result.items[0]
        assert post.title == "A" * 80
        assert post.description == text
        assert post.url == "https://twitter.com/guido/status/1"
        assert post.author == "guido"
        assert post.published_at == datetime(2026, 3, 10, 8, 0)

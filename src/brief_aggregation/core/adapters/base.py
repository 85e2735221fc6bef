"""
Source adapter contract, result types and the shared HTTP retry loop.
"""

import time
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Iterable, Iterator, Optional

import httpx

from brief_aggregation.config import FetcherConfig, get_config
from brief_aggregation.core.parser import ContentParser
from brief_aggregation.logger import get_logger
from brief_aggregation.models import ContentItemCreate, ErrorType, FeedSourceModel

logger = get_logger(__name__)


class AdapterError(Exception):
    """A classified failure talking to a content origin."""

    def __init__(
        self,
        error_type: ErrorType,
        message: str,
        status_code: Optional[int] = None,
        retry_count: int = 0,
    ):
        super().__init__(message)
        self.error_type = ErrorType(error_type)
        self.message = message
        self.status_code = status_code
        self.retry_count = retry_count

    def __str__(self) -> str:
        return f"{self.error_type.value}: {self.message}"


def classify_status(status_code: int) -> ErrorType:
    """Map an HTTP error status onto the error taxonomy."""
    if status_code == 429:
        return ErrorType.RATE_LIMIT
    if status_code in (401, 403):
        return ErrorType.AUTH_ERROR
    return ErrorType.FETCH_ERROR


def classify_exception(exc: BaseException) -> AdapterError:
    """Convert any exception raised while fetching into an AdapterError."""
    if isinstance(exc, AdapterError):
        return exc
    if isinstance(exc, httpx.TimeoutException):
        return AdapterError(ErrorType.TIMEOUT, f"Timeout: {exc}")
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return AdapterError(classify_status(status), f"HTTP {status}: {exc}", status_code=status)
    if isinstance(exc, httpx.RequestError):
        return AdapterError(ErrorType.FETCH_ERROR, f"Request error: {exc}")
    if isinstance(exc, ValueError):
        return AdapterError(ErrorType.PARSE_ERROR, f"Malformed payload: {exc}")
    return AdapterError(ErrorType.UNKNOWN, f"Unexpected error: {type(exc).__name__}: {exc}")


@dataclass
class RawItem:
    """A normalized item candidate produced by an adapter."""

    title: Optional[str]
    url: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    published_at: Optional[datetime] = None
    content_type: str = "article"
    author: Optional[str] = None
    score: Optional[int] = None
    num_comments: Optional[int] = None
    subreddit: Optional[str] = None
    permalink: Optional[str] = None

    def to_create(self, feed_source_id: int) -> ContentItemCreate:
        """Build the storage schema for this item."""
        return ContentItemCreate(
            feed_source_id=feed_source_id,
            title=self.title,
            url=self.url,
            description=self.description,
            image_url=self.image_url,
            published_at=self.published_at,
            content_type=self.content_type,
            author=self.author,
            score=self.score,
            num_comments=self.num_comments,
            subreddit=self.subreddit,
            permalink=self.permalink,
        )


@dataclass
class AdapterResult:
    """Result of one adapter invocation for one source."""

    feed_source_id: int
    items: list[RawItem] = field(default_factory=list)
    error: Optional[AdapterError] = None
    skipped_entries: int = 0
    fetch_time_seconds: float = 0.0

    # Fields the caller should persist on the FeedSource (e.g. channel_id)
    source_updates: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        """Validate adapter result."""
        if self.error is not None and self.items:
            raise ValueError("A failed fetch cannot carry items")

    @property
    def success(self) -> bool:
        return self.error is None

    @property
    def retry_count(self) -> int:
        return self.error.retry_count if self.error else 0


class SourceAdapter(ABC):
    """Fetches raw items from one kind of origin.

    Adapters are stateless per call: the same source fetched twice talks to
    the origin twice and returns the same normalization. Failures never
    escape ``fetch``; they come back classified on ``AdapterResult.error``.
    """

    source_type: str = ""

    def __init__(
        self,
        fetcher_config: Optional[FetcherConfig] = None,
        parser: Optional[ContentParser] = None,
        client: Optional[httpx.Client] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize adapter.

        Args:
            fetcher_config: HTTP settings (timeout, retries, user agent)
            parser: Field normalizer shared with other adapters
            client: Optional pre-built httpx client (tests pass a MockTransport client)
            sleep: Backoff sleep function
        """
        self.config = fetcher_config or get_config().fetcher
        self.parser = parser or ContentParser()
        self._client = client
        self._sleep = sleep

    def fetch(self, source: FeedSourceModel) -> AdapterResult:
        """Fetch and normalize the current items of ``source``."""
        start_time = time.time()
        result = AdapterResult(feed_source_id=source.id)

        try:
            self._fetch_into(source, result)
        except Exception as e:
            error = classify_exception(e)
            if error.error_type == ErrorType.UNKNOWN:
                logger.exception(f"Unexpected error fetching {source.url}: {e}")
            else:
                logger.warning(f"Fetch failed for {source.name or source.url}: {error}")
            result.items = []
            result.error = error

        result.fetch_time_seconds = time.time() - start_time
        if result.success:
            logger.info(
                f"Fetched {len(result.items)} items from {source.name or source.url} "
                f"in {result.fetch_time_seconds:.2f}s"
            )
        return result

    @abstractmethod
    def _fetch_into(self, source: FeedSourceModel, result: AdapterResult) -> None:
        """Populate ``result.items``; raise to report a source-level failure."""
        ...

    @contextmanager
    def http_client(self) -> Iterator[httpx.Client]:
        """Yield the injected client, or a short-lived one built from config."""
        if self._client is not None:
            yield self._client
            return

        with httpx.Client(
            timeout=self.config.timeout_seconds,
            follow_redirects=self.config.follow_redirects,
            max_redirects=self.config.max_redirects,
            headers={"User-Agent": self.config.user_agent},
        ) as client:
            yield client

    def request(
        self,
        client: httpx.Client,
        method: str,
        url: str,
        **kwargs: Any,
    ) -> httpx.Response:
        """Send a request, retrying transient failures with linear backoff.

        Timeouts, network errors and 5xx are retried up to
        ``max_retries`` times; 4xx fails immediately.

        Raises:
            AdapterError: classified failure with the number of retries used
        """
        last_error: Optional[AdapterError] = None

        for attempt in range(self.config.max_retries + 1):
            try:
                response = client.request(method, url, **kwargs)
                response.raise_for_status()
                return response

            except httpx.HTTPStatusError as e:
                last_error = classify_exception(e)
                last_error.retry_count = attempt
                if 400 <= e.response.status_code < 500:
                    raise last_error
                logger.warning(
                    f"HTTP {e.response.status_code} from {url} "
                    f"(attempt {attempt + 1}/{self.config.max_retries + 1})"
                )

            except (httpx.TimeoutException, httpx.RequestError) as e:
                last_error = classify_exception(e)
                last_error.retry_count = attempt
                logger.warning(
                    f"{last_error.error_type.value} fetching {url} "
                    f"(attempt {attempt + 1}/{self.config.max_retries + 1})"
                )

            if attempt < self.config.max_retries:
                self._sleep(self.config.retry_delay_seconds * (attempt + 1))

        raise last_error or AdapterError(ErrorType.UNKNOWN, f"No response from {url}")

    def get_json(self, client: httpx.Client, url: str, **kwargs: Any) -> Any:
        """GET a URL and decode its JSON body.

        Raises:
            AdapterError: ``parse_error`` if the body is not JSON
        """
        response = self.request(client, "GET", url, **kwargs)
        try:
            return response.json()
        except ValueError as e:
            raise AdapterError(ErrorType.PARSE_ERROR, f"Invalid JSON from {url}: {e}")

    def normalize_entries(
        self,
        entries: Iterable[Any],
        normalize: Callable[[Any], Optional[RawItem]],
        result: AdapterResult,
        source: FeedSourceModel,
    ) -> None:
        """Normalize entries one by one, skipping any that fail.

        A malformed entry is logged and counted, never fatal to the batch.
        Items keep the order the origin returned them in.
        """
        for entry in entries:
            if len(result.items) >= self.config.max_items_per_source:
                break
            try:
                item = normalize(entry)
            except Exception as e:
                logger.warning(f"Skipping malformed entry from {source.name or source.url}: {e}")
                result.skipped_entries += 1
                continue

            if item is None or not item.url:
                result.skipped_entries += 1
                continue
            result.items.append(item)

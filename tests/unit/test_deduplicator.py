"""Unit tests for deduplicator."""

from types import SimpleNamespace

import pytest

from brief_aggregation.config import DeduplicatorConfig
from brief_aggregation.core.deduplicator import (
    DedupResult,
    Deduplicator,
    create_deduplicator,
    title_similarity,
)
from brief_aggregation.models import ContentItemCreate, FeedSourceCreate
from brief_aggregation.storage.database import DatabaseManager
from brief_aggregation.storage.repositories import ContentItemRepository, FeedSourceRepository


class StubLookup:
    """In-memory stand-in for the content repository."""

    def __init__(self, items=()):
        self.items = [SimpleNamespace(**item) for item in items]
        self.prefixes = []

    def get_by_url(self, feed_source_id, url):
        for item in self.items:
            if item.feed_source_id == feed_source_id and item.url == url:
                return item
        return None

    def find_title_candidates(self, feed_source_id, prefix, limit=5):
        self.prefixes.append(prefix)
        return [
            item
            for item in self.items
            if item.feed_source_id == feed_source_id and prefix.lower() in (item.title or "").lower()
        ][:limit]


def stored(item_id, title, url=None, feed_source_id=1):
    return {
        "id": item_id,
        "feed_source_id": feed_source_id,
        "title": title,
        "url": url or f"https://example.com/{item_id}",
    }


@pytest.fixture
def db_manager():
    """Create an in-memory database for testing."""
    manager = DatabaseManager(":memory:")
    manager.init_db()
    yield manager
    manager.close()


@pytest.fixture
def db_session(db_manager):
    """Get a database session for testing."""
    with db_manager.session() as session:
        yield session


class TestTitleSimilarity:
    """Tests for title_similarity."""

    def test_identical(self):
        assert title_similarity("Python 3.14 Released", "python 3.14 released") == 1.0

    def test_relative_to_longer_title(self):
        assert title_similarity("a b c d e", "a b c d") == 0.8

    def test_repeated_words_counted_once_per_match(self):
        assert title_similarity("the the the cat", "the cat sat down") == 0.5

    def test_empty(self):
        assert title_similarity("", "") == 0.0
        assert title_similarity("words here", "") == 0.0


class TestDeduplicator:
    """Tests for Deduplicator with a stub lookup."""

    def test_url_duplicate(self):
        lookup = StubLookup([stored(7, "Anything", url="https://example.com/a")])
        result = Deduplicator(lookup, DeduplicatorConfig()).check_duplicate(
            1, "https://example.com/a", "Different title"
        )

        assert result == DedupResult(is_duplicate=True, existing_id=7, similarity=1.0, reason="url")

    def test_url_is_scoped_to_source(self):
        lookup = StubLookup([stored(7, "Title", url="https://example.com/a", feed_source_id=2)])
        result = Deduplicator(lookup, DeduplicatorConfig()).check_duplicate(
            1, "https://example.com/a", "Unrelated"
        )

        assert result.is_duplicate is False

    def test_title_at_threshold_is_duplicate(self):
        """Four of five shared words reaches the 0.8 threshold."""
        lookup = StubLookup([stored(3, "python releases new version today")])
        result = Deduplicator(lookup, DeduplicatorConfig(title_prefix_length=10)).check_duplicate(
            1, "https://example.com/new", "python releases new version tomorrow"
        )

        assert result.is_duplicate is True
        assert result.existing_id == 3
        assert result.similarity == 0.8
        assert result.reason == "title"

    def test_title_below_threshold(self):
        """Three of four shared words (0.75) is not a duplicate."""
        lookup = StubLookup([stored(3, "rust ships big update")])
        result = Deduplicator(lookup, DeduplicatorConfig(title_prefix_length=8)).check_duplicate(
            1, "https://example.com/new", "rust ships big news"
        )

        assert result.is_duplicate is False
        assert result.similarity == 0.75

    def test_prefix_used_for_candidates(self):
        lookup = StubLookup()
        Deduplicator(lookup, DeduplicatorConfig(title_prefix_length=5)).check_duplicate(
            1, None, "  Hello world again"
        )
        assert lookup.prefixes == ["Hello"]

    def test_first_seen_candidate_wins_ties(self):
        lookup = StubLookup(
            [
                stored(1, "breaking market news today"),
                stored(2, "breaking market news today"),
            ]
        )
        result = Deduplicator(lookup, DeduplicatorConfig()).check_duplicate(
            1, "https://example.com/x", "breaking market news today"
        )

        assert result.existing_id == 1

    def test_missing_title_skips_fuzzy_pass(self):
        lookup = StubLookup([stored(1, "Something")])
        result = Deduplicator(lookup, DeduplicatorConfig()).check_duplicate(1, "https://e.com/z", "   ")

        assert result == DedupResult(is_duplicate=False)
        assert lookup.prefixes == []

    def test_disabled(self):
        lookup = StubLookup([stored(1, "Same", url="https://e.com/1")])
        dedup = Deduplicator(lookup, DeduplicatorConfig(enabled=False))

        assert dedup.check_duplicate(1, "https://e.com/1", "Same").is_duplicate is False

    def test_url_check_can_be_turned_off(self):
        lookup = StubLookup([stored(1, "Alpha", url="https://e.com/1")])
        dedup = Deduplicator(lookup, DeduplicatorConfig(check_by_url=False, check_by_title=False))

        assert dedup.check_duplicate(1, "https://e.com/1", "Beta").is_duplicate is False


class TestDeduplicatorWithRepository:
    """Deduplication against the SQL-backed repository."""

    def test_url_and_title_duplicates(self, db_session):
        source = FeedSourceRepository(db_session).create(
            FeedSourceCreate(url="https://example.com/feed", name="Example")
        )
        repo = ContentItemRepository(db_session)
        repo.insert_if_absent(
            ContentItemCreate(
                feed_source_id=source.id,
                url="https://example.com/a",
                title="Python releases new version today",
            )
        )
        dedup = create_deduplicator(repo, DeduplicatorConfig(title_prefix_length=15))

        by_url = dedup.check_duplicate(source.id, "https://example.com/a", "whatever")
        by_title = dedup.check_duplicate(
            source.id, "https://example.com/b", "Python releases new version tomorrow"
        )
        fresh = dedup.check_duplicate(source.id, "https://example.com/c", "Completely unrelated story")

        assert by_url.reason == "url"
        assert by_title.reason == "title"
        assert fresh.is_duplicate is False

    def test_check_is_idempotent(self, db_session):
        source = FeedSourceRepository(db_session).create(
            FeedSourceCreate(url="https://example.com/feed", name="Example")
        )
        repo = ContentItemRepository(db_session)
        repo.insert_if_absent(
            ContentItemCreate(feed_source_id=source.id, url="https://example.com/a", title="Hello")
        )
        dedup = create_deduplicator(repo, DeduplicatorConfig())

        first = dedup.check_duplicate(source.id, "https://example.com/a", "Hello")
        second = dedup.check_duplicate(source.id, "https://example.com/a", "Hello")
        assert first == second

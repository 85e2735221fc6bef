"""Unit tests for database manager and repositories."""

from datetime import datetime, timedelta

import pytest
from sqlalchemy import inspect

from brief_aggregation.models import (
    ContentErrorCreate,
    ContentItemCreate,
    FeedSourceCreate,
    FeedSourceUpdate,
    SourceType,
)
from brief_aggregation.storage.database import DatabaseManager
from brief_aggregation.storage.repositories import (
    ContentErrorRepository,
    ContentItemRepository,
    FeedSourceRepository,
    SubscriptionRepository,
)


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


def _source(session, url="https://example.com/feed.xml", **kwargs):
    values = {"url": url, "name": "Example"}
    values.update(kwargs)
    return FeedSourceRepository(session).create(FeedSourceCreate(**values))


class TestDatabaseManager:
    """Tests for DatabaseManager class."""

    def test_init_db_creates_tables(self, db_manager):
        tables = set(inspect(db_manager.engine).get_table_names())
        assert {
            "feed_sources",
            "user_feeds",
            "content_items",
            "content_errors",
            "daily_digests",
            "daily_digest_items",
        } <= tables

    def test_session_commits(self, db_manager):
        with db_manager.session() as session:
            _source(session)

        with db_manager.session() as session:
            assert FeedSourceRepository(session).count() == 1

    def test_session_rolls_back_on_error(self, db_manager):
        with pytest.raises(RuntimeError):
            with db_manager.session() as session:
                _source(session)
                raise RuntimeError("boom")

        with db_manager.session() as session:
            assert FeedSourceRepository(session).count() == 0

    def test_objects_usable_after_commit(self, db_manager):
        with db_manager.session() as session:
            source = _source(session, name="Detached")

        assert source.name == "Detached"

    def test_context_manager_closes(self):
        with DatabaseManager(":memory:") as manager:
            manager.init_db()
            assert manager.engine is not None
        assert manager._engine is None


class TestFeedSourceRepository:
    """Tests for FeedSourceRepository."""

    def test_create_defaults(self, db_session):
        source = _source(db_session)

        assert source.id is not None
        assert source.type == SourceType.RSS.value
        assert source.is_active is True
        assert source.created_at is not None

    def test_get_by_url(self, db_session):
        source = _source(db_session)
        repo = FeedSourceRepository(db_session)

        assert repo.get_by_url("https://example.com/feed.xml").id == source.id
        assert repo.get_by_url("https://missing.example.com") is None

    def test_list_active_orders_never_fetched_first(self, db_session):
        repo = FeedSourceRepository(db_session)
        fetched = _source(db_session, url="https://a.example.com/rss")
        never = _source(db_session, url="https://b.example.com/rss")
        reddit = _source(db_session, url="https://reddit.com/r/python", type="reddit")
        inactive = _source(db_session, url="https://c.example.com/rss")
        repo.mark_fetched(fetched, datetime(2026, 1, 1))
        repo.deactivate(inactive, "test")

        ids = [s.id for s in repo.list_active(source_type="rss")]
        assert ids == [never.id, fetched.id]
        assert reddit.id in [s.id for s in repo.list_active()]

    def test_deactivate_and_enable(self, db_session):
        repo = FeedSourceRepository(db_session)
        source = _source(db_session)

        repo.deactivate(source, "3 errors in 60 minutes")
        assert source.is_active is False
        assert source.disabled_reason == "3 errors in 60 minutes"
        assert repo.count_active() == 0

        repo.enable(source)
        assert source.is_active is True
        assert source.disabled_reason is None

    def test_update_only_set_fields(self, db_session):
        repo = FeedSourceRepository(db_session)
        source = _source(db_session, category="Technology")

        repo.update(source, FeedSourceUpdate(name="Renamed"))
        assert source.name == "Renamed"
        assert source.category == "Technology"

    def test_set_channel_keeps_existing_favicon(self, db_session):
        repo = FeedSourceRepository(db_session)
        source = _source(db_session, type="youtube", favicon_url="https://img/own.png")

        repo.set_channel(source, "UC123", favicon_url="https://img/thumb.png")
        assert source.channel_id == "UC123"
        assert source.favicon_url == "https://img/own.png"

    def test_list_for_subscriber(self, db_session):
        repo = FeedSourceRepository(db_session)
        subs = SubscriptionRepository(db_session)
        first = _source(db_session, url="https://a.example.com/rss")
        second = _source(db_session, url="https://b.example.com/rss")
        _source(db_session, url="https://c.example.com/rss")
        subs.subscribe("alice", first.id)
        subs.subscribe("alice", second.id)
        repo.deactivate(second, "suspended")

        assert [s.id for s in repo.list_for_subscriber("alice")] == [first.id]
        assert len(repo.list_for_subscriber("alice", active_only=False)) == 2
        assert repo.list_for_subscriber("bob") == []


class TestSubscriptionRepository:
    """Tests for SubscriptionRepository."""

    def test_subscribe_is_idempotent(self, db_session):
        source = _source(db_session)
        repo = SubscriptionRepository(db_session)

        first = repo.subscribe("alice", source.id)
        second = repo.subscribe("alice", source.id)

        assert first.id == second.id
        assert repo.count() == 1

    def test_unsubscribe(self, db_session):
        source = _source(db_session)
        repo = SubscriptionRepository(db_session)
        repo.subscribe("alice", source.id)

        assert repo.unsubscribe("alice", source.id) is True
        assert repo.unsubscribe("alice", source.id) is False
        assert repo.get("alice", source.id) is None

    def test_list_subscriber_ids(self, db_session):
        source = _source(db_session)
        repo = SubscriptionRepository(db_session)
        repo.subscribe("bob", source.id)
        repo.subscribe("alice", source.id)

        assert repo.list_subscriber_ids() == ["alice", "bob"]


class TestContentItemRepository:
    """Tests for ContentItemRepository."""

    def _item(self, feed_source_id, url, title="A title", **kwargs):
        return ContentItemCreate(feed_source_id=feed_source_id, url=url, title=title, **kwargs)

    def test_insert_if_absent(self, db_session):
        source = _source(db_session)
        repo = ContentItemRepository(db_session)

        stored = repo.insert_if_absent(self._item(source.id, "https://example.com/1"))
        again = repo.insert_if_absent(self._item(source.id, "https://example.com/1"))

        assert stored is not None
        assert again is None
        assert repo.count_for_source(source.id) == 1

    def test_same_url_allowed_across_sources(self, db_session):
        first = _source(db_session, url="https://a.example.com/rss")
        second = _source(db_session, url="https://b.example.com/rss")
        repo = ContentItemRepository(db_session)

        assert repo.insert_if_absent(self._item(first.id, "https://shared.example.com/x"))
        assert repo.insert_if_absent(self._item(second.id, "https://shared.example.com/x"))

    def test_get_by_url_scoped_to_source(self, db_session):
        first = _source(db_session, url="https://a.example.com/rss")
        second = _source(db_session, url="https://b.example.com/rss")
        repo = ContentItemRepository(db_session)
        repo.insert_if_absent(self._item(first.id, "https://example.com/1"))

        assert repo.get_by_url(first.id, "https://example.com/1") is not None
        assert repo.get_by_url(second.id, "https://example.com/1") is None

    def test_find_title_candidates(self, db_session):
        source = _source(db_session)
        repo = ContentItemRepository(db_session)
        repo.insert_if_absent(self._item(source.id, "https://e.com/1", "Python 3.14 Released Today"))
        repo.insert_if_absent(self._item(source.id, "https://e.com/2", "Rust news"))
        repo.insert_if_absent(self._item(source.id, "https://e.com/3", "BIG: python 3.14 released"))

        titles = [c.title for c in repo.find_title_candidates(source.id, "python 3.14 released")]
        assert titles == ["Python 3.14 Released Today", "BIG: python 3.14 released"]
        assert repo.find_title_candidates(source.id, "") == []

    def test_find_title_candidates_escapes_wildcards(self, db_session):
        source = _source(db_session)
        repo = ContentItemRepository(db_session)
        repo.insert_if_absent(self._item(source.id, "https://e.com/1", "Growth of 50 percent"))

        assert repo.find_title_candidates(source.id, "50%") == []

    def test_list_for_digest_window_and_filters(self, db_session):
        tech = _source(db_session, url="https://a.example.com/rss", category="Technology")
        news = _source(db_session, url="https://b.example.com/rss", category="News")
        repo = ContentItemRepository(db_session)
        now = datetime(2026, 3, 10, 12, 0)

        repo.insert_if_absent(
            self._item(tech.id, "https://e.com/new", "Fresh Python tips", published_at=now - timedelta(hours=1))
        )
        repo.insert_if_absent(
            self._item(tech.id, "https://e.com/old", "Stale", published_at=now - timedelta(days=3))
        )
        repo.insert_if_absent(
            self._item(news.id, "https://e.com/news", "Election", published_at=now - timedelta(hours=2))
        )

        since = now - timedelta(hours=24)
        in_window = repo.list_for_digest([tech.id, news.id], since=since, until=now)
        assert [i.url for i in in_window] == ["https://e.com/new", "https://e.com/news"]

        only_news = repo.list_for_digest([tech.id, news.id], since=since, category="news")
        assert [i.url for i in only_news] == ["https://e.com/news"]

        searched = repo.list_for_digest([tech.id, news.id], since=since, search="PYTHON")
        assert [i.url for i in searched] == ["https://e.com/new"]

        assert repo.list_for_digest([]) == []

    def test_delete_older_than(self, db_session):
        source = _source(db_session)
        repo = ContentItemRepository(db_session)
        old = repo.insert_if_absent(self._item(source.id, "https://e.com/old"))
        old.fetched_at = datetime(2020, 1, 1)
        repo.insert_if_absent(self._item(source.id, "https://e.com/new"))
        db_session.flush()

        assert repo.delete_older_than(datetime(2021, 1, 1)) == 1
        assert repo.count_for_source(source.id) == 1


class TestContentErrorRepository:
    """Tests for ContentErrorRepository."""

    def test_recent_for_source_newest_first(self, db_session):
        source = _source(db_session)
        repo = ContentErrorRepository(db_session)
        base = datetime(2026, 3, 10, 12, 0)
        for minutes in (0, 10, 5):
            repo.create(
                ContentErrorCreate(
                    feed_source_id=source.id,
                    error_type="timeout",
                    timestamp=base + timedelta(minutes=minutes),
                )
            )

        recent = repo.recent_for_source(source.id, limit=2)
        assert [e.timestamp.minute for e in recent] == [10, 5]

    def test_count_sources_with_errors_since(self, db_session):
        first = _source(db_session, url="https://a.example.com/rss")
        second = _source(db_session, url="https://b.example.com/rss")
        repo = ContentErrorRepository(db_session)
        now = datetime(2026, 3, 10, 12, 0)
        repo.create(ContentErrorCreate(feed_source_id=first.id, timestamp=now))
        repo.create(ContentErrorCreate(feed_source_id=first.id, timestamp=now))
        repo.create(ContentErrorCreate(feed_source_id=second.id, timestamp=now - timedelta(days=2)))

        assert repo.count_sources_with_errors_since(now - timedelta(hours=1)) == 1
        assert repo.count_sources_with_errors_since(now - timedelta(days=3)) == 2

    def test_delete_older_than(self, db_session):
        source = _source(db_session)
        repo = ContentErrorRepository(db_session)
        now = datetime(2026, 3, 10, 12, 0)
        repo.create(ContentErrorCreate(feed_source_id=source.id, timestamp=now - timedelta(days=8)))
        repo.create(ContentErrorCreate(feed_source_id=source.id, timestamp=now))

        assert repo.delete_older_than(now - timedelta(days=7)) == 1
        assert repo.count() == 1

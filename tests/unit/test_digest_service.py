"""Unit tests for the digest service."""

from datetime import date, datetime, timedelta

import pytest

from brief_aggregation.config import DigestConfig, RelevanceConfig
from brief_aggregation.core.assembler import DigestAssembler
from brief_aggregation.core.digest_service import DigestService, engagement_score
from brief_aggregation.core.digest_store import DigestStore
from brief_aggregation.core.events import DigestAssembled, DigestEventBus, NotificationRequest
from brief_aggregation.core.relevance import create_relevance_processor
from brief_aggregation.models import ContentItemCreate, ContentItemModel, FeedSourceCreate
from brief_aggregation.storage.database import DatabaseManager
from brief_aggregation.storage.repositories import (
    ContentItemRepository,
    FeedSourceRepository,
    SubscriptionRepository,
)

NOW = datetime(2026, 3, 10, 12, 0)
TODAY = NOW.date()


@pytest.fixture
def db_manager():
    """Create an in-memory database for testing."""
    manager = DatabaseManager(":memory:")
    manager.init_db()
    yield manager
    manager.close()


@pytest.fixture
def events():
    return DigestEventBus()


def make_service(db_manager, events=None, **digest_overrides):
    config = DigestConfig(**digest_overrides)
    processor = create_relevance_processor(RelevanceConfig())
    return DigestService(
        db_manager,
        processor,
        DigestAssembler(summarizer=processor.summarize_digest, config=config),
        DigestStore(db_manager, top_stories=config.top_stories),
        events=events,
        config=config,
    )


def add_source(db_manager, url, category="Technology", subscriber="alice"):
    with db_manager.session() as session:
        source = FeedSourceRepository(session).create(
            FeedSourceCreate(url=url, name=url, category=category)
        )
        if subscriber:
            SubscriptionRepository(session).subscribe(subscriber, source.id)
        return source.id


def add_items(db_manager, source_id, *hours_ago, title="Item"):
    with db_manager.session() as session:
        repo = ContentItemRepository(session)
        for hours in hours_ago:
            repo.insert_if_absent(
                ContentItemCreate(
                    feed_source_id=source_id,
                    url=f"https://example.com/{source_id}/{hours}",
                    title=f"{title} {source_id}-{hours}",
                    description="x" * 250,
                    published_at=NOW - timedelta(hours=hours),
                )
            )


class TestEngagementScore:
    """Tests for engagement_score."""

    def test_recency_points(self):
        item = ContentItemModel(published_at=NOW - timedelta(hours=4), content_type="article")
        assert engagement_score(item, NOW, 24) == 40

    def test_reddit_points(self):
        item = ContentItemModel(
            published_at=NOW - timedelta(hours=24), content_type="reddit", score=100, num_comments=10
        )
        assert engagement_score(item, NOW, 24) == pytest.approx(15.0)

    def test_old_items_get_no_recency(self):
        item = ContentItemModel(published_at=NOW - timedelta(hours=48), content_type="article")
        assert engagement_score(item, NOW, 24) == 0


class TestGenerateDigest:
    """Tests for DigestService.generate_digest."""

    def test_no_subscriptions(self, db_manager):
        assert make_service(db_manager).generate_digest("nobody", now=NOW) is None

    def test_generates_and_stores(self, db_manager, events):
        source_id = add_source(db_manager, "https://a.example.com/rss")
        add_items(db_manager, source_id, 1, 2, 30)
        subscription = events.subscribe()

        digest = make_service(db_manager, events).generate_digest("alice", now=NOW)

        assert digest.persisted is True
        assert digest.digest_date == TODAY
        assert digest.total_items == 2
        assert digest.estimated_read_time == 4
        assert all(item.category == "General" for item in digest.items)
        assert digest.summary == (
            "Your daily digest for 2026-03-10 contains 2 curated stories to keep you informed."
        )

        assembled, notification = subscription.drain()
        assert isinstance(assembled, DigestAssembled)
        assert assembled.digest_id == digest.id
        assert isinstance(notification, NotificationRequest)
        assert notification.type == "daily_digest"
        assert notification.summary == digest.summary

    def test_empty_window_still_stores(self, db_manager):
        source_id = add_source(db_manager, "https://a.example.com/rss")
        add_items(db_manager, source_id, 48)

        digest = make_service(db_manager).generate_digest("alice", now=NOW)

        assert digest.total_items == 0
        assert digest.id is not None

    def test_balances_per_feed(self, db_manager):
        busy = add_source(db_manager, "https://busy.example.com/rss")
        quiet = add_source(db_manager, "https://quiet.example.com/rss")
        add_items(db_manager, busy, 1, 2, 3, 4, 5)
        add_items(db_manager, quiet, 10)

        digest = make_service(db_manager, max_items_per_feed=2).generate_digest("alice", now=NOW)

        per_feed = {}
        for item in digest.items:
            per_feed[item.feed_source_id] = per_feed.get(item.feed_source_id, 0) + 1
        assert per_feed == {busy: 2, quiet: 1}

    def test_suspended_source_content_included(self, db_manager):
        source_id = add_source(db_manager, "https://a.example.com/rss")
        add_items(db_manager, source_id, 1)
        with db_manager.session() as session:
            repo = FeedSourceRepository(session)
            repo.deactivate(repo.get_by_id(source_id), "suspended")

        digest = make_service(db_manager).generate_digest("alice", now=NOW)
        assert digest.total_items == 1

    def test_past_date_window(self, db_manager):
        source_id = add_source(db_manager, "https://a.example.com/rss")
        # 14h and 20h before NOW fall on 2026-03-09; 2h before does not
        add_items(db_manager, source_id, 2, 14, 20)

        digest = make_service(db_manager).generate_digest("alice", date(2026, 3, 9), now=NOW)

        assert digest.digest_date == date(2026, 3, 9)
        assert digest.total_items == 2

    def test_regenerate_replaces(self, db_manager):
        source_id = add_source(db_manager, "https://a.example.com/rss")
        add_items(db_manager, source_id, 1)
        service = make_service(db_manager)

        service.generate_digest("alice", now=NOW)
        add_items(db_manager, source_id, 2)
        digest = service.generate_digest("alice", now=NOW)

        assert digest.total_items == 2
        assert len(service.store.list_recent("alice")) == 1

    def test_min_relevance_score_filters_before_assembly(self, db_manager):
        source_id = add_source(db_manager, "https://a.example.com/rss")
        add_items(db_manager, source_id, 1, 2)

        kept = make_service(db_manager, min_relevance_score=0.5).generate_digest("alice", now=NOW)
        dropped = make_service(db_manager, min_relevance_score=0.6).generate_digest("alice", now=NOW)

        # fallback scores are 0.5
        assert kept.total_items == 2
        assert dropped.total_items == 0


class TestQueryDigest:
    """Tests for filtered digest reads."""

    def test_without_filters_reads_store(self, db_manager):
        source_id = add_source(db_manager, "https://a.example.com/rss")
        add_items(db_manager, source_id, 1)
        service = make_service(db_manager)

        assert service.query_digest("alice", TODAY) is None
        service.generate_digest("alice", now=NOW)
        assert service.query_digest("alice", TODAY).persisted is True

    def test_category_filter_not_persisted(self, db_manager):
        tech = add_source(db_manager, "https://tech.example.com/rss", category="Technology")
        news = add_source(db_manager, "https://news.example.com/rss", category="News")
        add_items(db_manager, tech, 1, 2)
        add_items(db_manager, news, 1)
        service = make_service(db_manager)

        digest = service.query_digest("alice", TODAY, category="news", now=NOW)

        assert digest.persisted is False
        assert digest.id is None
        assert [item.feed_source_id for item in digest.items] == [news]
        assert service.store.exists("alice", TODAY) is False

    def test_search_and_window(self, db_manager):
        source_id = add_source(db_manager, "https://a.example.com/rss")
        add_items(db_manager, source_id, 1, title="Python")
        add_items(db_manager, source_id, 5, title="Rust")
        service = make_service(db_manager)

        assert service.query_digest("alice", TODAY, search="python", now=NOW).total_items == 1
        assert service.query_digest("alice", TODAY, time_window_hours=3, now=NOW).total_items == 1

    def test_unknown_subscriber(self, db_manager):
        assert make_service(db_manager).query_digest("nobody", TODAY, search="x", now=NOW) is None


class TestGenerateAll:
    """Tests for generating every subscriber's digest."""

    def test_generate_all(self, db_manager):
        first = add_source(db_manager, "https://a.example.com/rss", subscriber="alice")
        with db_manager.session() as session:
            SubscriptionRepository(session).subscribe("bob", first)
        add_items(db_manager, first, 1)

        results = make_service(db_manager).generate_all()

        assert set(results) == {"alice", "bob"}
        assert all(results.values())

    def test_failure_isolated(self, db_manager):
        add_source(db_manager, "https://a.example.com/rss", subscriber="alice")
        add_source(db_manager, "https://b.example.com/rss", subscriber="bob")
        service = make_service(db_manager)
        original = service.generate_digest

        def flaky(subscriber_id, digest_date=None):
            if subscriber_id == "alice":
                raise RuntimeError("boom")
            return original(subscriber_id, digest_date)

        service.generate_digest = flaky
        results = service.generate_all()

        assert results["alice"] is None
        assert results["bob"] is not None

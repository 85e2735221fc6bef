"""
Ingestion pipeline.

Fetches sources through their adapters, deduplicates and stores new items,
and records failures with the health tracker. Fetches of the same source
never overlap; different sources fan out over a thread pool.
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy.orm import Session

from brief_aggregation.config import DeduplicatorConfig, HealthConfig, get_config
from brief_aggregation.core.adapters import AdapterResult, SourceAdapter
from brief_aggregation.core.deduplicator import Deduplicator
from brief_aggregation.core.health import FeedHealthTracker
from brief_aggregation.logger import get_logger, source_context
from brief_aggregation.models import ContentErrorCreate, FeedSourceModel
from brief_aggregation.storage.database import DatabaseManager
from brief_aggregation.storage.repositories import ContentItemRepository, FeedSourceRepository

logger = get_logger(__name__)


@dataclass
class IngestResult:
    """Outcome of ingesting one or more sources."""

    sources: int = 0
    processed: int = 0
    new_items: int = 0
    duplicates: int = 0
    errors: int = 0
    suspended: list[int] = field(default_factory=list)

    def merge(self, other: "IngestResult") -> "IngestResult":
        self.sources += other.sources
        self.processed += other.processed
        self.new_items += other.new_items
        self.duplicates += other.duplicates
        self.errors += other.errors
        self.suspended.extend(other.suspended)
        return self


class IngestionPipeline:
    """Runs adapters against sources and stores what they return."""

    def __init__(
        self,
        db_manager: DatabaseManager,
        adapters: dict[str, SourceAdapter],
        dedup_config: Optional[DeduplicatorConfig] = None,
        health_config: Optional[HealthConfig] = None,
        max_workers: Optional[int] = None,
    ):
        """Initialize ingestion pipeline.

        Args:
            db_manager: Database manager providing sessions
            adapters: Adapter instance per source type
            dedup_config: Duplicate detection settings
            health_config: Suspension policy settings
            max_workers: Concurrent source fetches per cycle
        """
        config = get_config()
        self.db_manager = db_manager
        self.adapters = adapters
        self.dedup_config = dedup_config or config.deduplicator
        self.health_config = health_config or config.health
        self.max_workers = max_workers or config.scheduler.max_workers

        self._locks: dict[int, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, source_id: int) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(source_id)
            if lock is None:
                lock = self._locks[source_id] = threading.Lock()
            return lock

    def fetch_source(self, source_id: int, source_type: Optional[str] = None) -> IngestResult:
        """Fetch and store one source.

        Inactive sources, unknown ids and sources of another type than
        ``source_type`` are skipped. Waits if the same source is being
        fetched by another thread.
        """
        with self._lock_for(source_id), source_context(source_id):
            with self.db_manager.session() as session:
                source = FeedSourceRepository(session).get_by_id(source_id)

            if source is None:
                logger.warning(f"Source {source_id} not found, skipping")
                return IngestResult()
            if not source.is_active:
                logger.debug(f"Source {source_id} is inactive, skipping")
                return IngestResult()
            if source_type and source.type != source_type:
                logger.warning(f"Source {source_id} is {source.type}, not {source_type}, skipping")
                return IngestResult()

            adapter = self.adapters.get(source.type)
            if adapter is None:
                logger.error(f"No adapter for source type {source.type!r}")
                return IngestResult()

            # Network call happens outside any database session
            fetched = adapter.fetch(source)

            with self.db_manager.session() as session:
                return self._store(session, source_id, fetched)

    def _store(self, session: Session, source_id: int, fetched: AdapterResult) -> IngestResult:
        sources = FeedSourceRepository(session)
        source = sources.get_by_id(source_id)
        result = IngestResult(sources=1)
        if source is None:
            return result

        tracker = FeedHealthTracker(session, self.health_config)

        # Resolved identity is kept even when the listing itself failed
        self._apply_source_updates(sources, source, fetched.source_updates)

        if not fetched.success:
            error = fetched.error
            tracker.record_error(
                ContentErrorCreate(
                    feed_source_id=source.id,
                    error_type=error.error_type.value,
                    error_message=error.message,
                    retry_count=error.retry_count,
                )
            )
            result.errors = 1
            if tracker.suspend_if_unhealthy(source):
                result.suspended.append(source.id)
            sources.mark_fetched(source)
            return result

        content = ContentItemRepository(session)
        dedup = Deduplicator(content, self.dedup_config)

        for item in fetched.items:
            result.processed += 1
            check = dedup.check_duplicate(source.id, item.url, item.title)
            if check.is_duplicate:
                result.duplicates += 1
                continue

            if content.insert_if_absent(item.to_create(source.id)) is None:
                result.duplicates += 1
            else:
                result.new_items += 1

        sources.mark_fetched(source)

        logger.info(
            f"Source {source.id} ({source.name}): {result.processed} fetched, "
            f"{result.new_items} new, {result.duplicates} duplicates"
        )
        return result

    @staticmethod
    def _apply_source_updates(sources: FeedSourceRepository, source: FeedSourceModel, updates: dict) -> None:
        if updates.get("channel_id"):
            sources.set_channel(source, updates["channel_id"], updates.get("favicon_url"))
        elif updates.get("favicon_url") and not source.favicon_url:
            source.favicon_url = updates["favicon_url"]

    def _safe_fetch(self, source_id: int, source_type: Optional[str]) -> IngestResult:
        try:
            return self.fetch_source(source_id, source_type)
        except Exception as e:
            logger.exception(f"Ingestion failed for source {source_id}: {e}")
            return IngestResult(sources=1, errors=1)

    def run_cycle(self, source_type: Optional[str] = None) -> IngestResult:
        """Fetch every active source, optionally of one type only.

        A failing source never aborts its siblings.
        """
        with self.db_manager.session() as session:
            source_ids = [s.id for s in FeedSourceRepository(session).list_active(source_type=source_type)]

        total = IngestResult()
        if not source_ids:
            logger.debug(f"No active {source_type or 'any'} sources to fetch")
            return total

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            for result in executor.map(lambda sid: self._safe_fetch(sid, source_type), source_ids):
                total.merge(result)

        logger.info(
            f"Cycle {source_type or 'all'}: {total.sources} sources, {total.processed} items, "
            f"{total.new_items} new, {total.errors} errors"
        )
        return total

    def run_maintenance(self) -> dict[str, int]:
        """Purge expired errors and content."""
        with self.db_manager.session() as session:
            tracker = FeedHealthTracker(session, self.health_config)
            return {
                "errors_deleted": tracker.cleanup_old_errors(),
                "content_deleted": tracker.cleanup_old_content(),
            }

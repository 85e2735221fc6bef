"""
Factory functions for creating core components with explicit dependency injection.

Nothing here is a process-wide singleton: ``create_components`` builds one
wired set of objects that the caller owns and passes around.

Usage:
    from brief_aggregation.core.factories import create_components

    components = create_components(DatabaseManager(":memory:"))
    components.pipeline.run_cycle("rss")
    components.digest_service.generate_digest("subscriber-1")
"""

from dataclasses import dataclass
from typing import Optional

import httpx

from brief_aggregation.config import Config, get_config
from brief_aggregation.core.adapters import (
    RedditAdapter,
    RSSAdapter,
    SocialAdapter,
    SourceAdapter,
    YouTubeAdapter,
)
from brief_aggregation.core.assembler import DigestAssembler
from brief_aggregation.core.categorizer import FeedCategorizer
from brief_aggregation.core.digest_service import DigestService
from brief_aggregation.core.digest_store import DigestStore
from brief_aggregation.core.events import DigestEventBus
from brief_aggregation.core.parser import ContentParser
from brief_aggregation.core.pipeline import IngestionPipeline
from brief_aggregation.core.relevance import RelevanceProcessor, create_relevance_processor
from brief_aggregation.core.scheduler import AggregationScheduler
from brief_aggregation.storage.database import DatabaseManager


@dataclass
class Components:
    """One wired set of pipeline components."""

    db_manager: DatabaseManager
    pipeline: IngestionPipeline
    processor: RelevanceProcessor
    assembler: DigestAssembler
    store: DigestStore
    digest_service: DigestService
    events: DigestEventBus
    categorizer: FeedCategorizer
    scheduler: AggregationScheduler


def create_adapters(
    config: Optional[Config] = None,
    client: Optional[httpx.Client] = None,
) -> dict[str, SourceAdapter]:
    """Create one adapter per source type.

    Args:
        config: Application configuration
        client: Optional shared httpx client (tests pass a MockTransport client)

    Returns:
        Mapping of source type to adapter
    """
    config = config or get_config()
    parser = ContentParser(max_description_length=config.fetcher.max_description_length)
    common = {"fetcher_config": config.fetcher, "parser": parser, "client": client}

    adapters: list[SourceAdapter] = [
        RSSAdapter(**common),
        RedditAdapter(reddit_config=config.reddit, **common),
        YouTubeAdapter(youtube_config=config.youtube, **common),
        SocialAdapter(social_config=config.social, **common),
    ]
    return {adapter.source_type: adapter for adapter in adapters}


def create_pipeline(
    db_manager: DatabaseManager,
    adapters: Optional[dict[str, SourceAdapter]] = None,
    config: Optional[Config] = None,
) -> IngestionPipeline:
    """Create a configured IngestionPipeline instance."""
    config = config or get_config()
    return IngestionPipeline(
        db_manager,
        adapters if adapters is not None else create_adapters(config),
        dedup_config=config.deduplicator,
        health_config=config.health,
        max_workers=config.scheduler.max_workers,
    )


def create_components(
    db_manager: Optional[DatabaseManager] = None,
    config: Optional[Config] = None,
    adapters: Optional[dict[str, SourceAdapter]] = None,
    oracle_client: Optional[httpx.Client] = None,
) -> Components:
    """Build and wire every component.

    Args:
        db_manager: Database manager; defaults to one on the configured database
        config: Application configuration
        adapters: Adapter overrides per source type
        oracle_client: httpx client for the relevance oracle

    Returns:
        Components
    """
    config = config or get_config()
    db_manager = db_manager or DatabaseManager(db_config=config.database)

    pipeline = create_pipeline(db_manager, adapters=adapters, config=config)
    processor = create_relevance_processor(config.relevance, client=oracle_client)
    assembler = DigestAssembler(summarizer=processor.summarize_digest, config=config.digest)
    store = DigestStore(db_manager, top_stories=config.digest.top_stories)
    events = DigestEventBus()
    digest_service = DigestService(
        db_manager,
        processor,
        assembler,
        store,
        events=events,
        config=config.digest,
    )
    scheduler = AggregationScheduler(
        pipeline,
        digest_job=digest_service.generate_all,
        config=config.scheduler,
    )

    return Components(
        db_manager=db_manager,
        pipeline=pipeline,
        processor=processor,
        assembler=assembler,
        store=store,
        digest_service=digest_service,
        events=events,
        categorizer=FeedCategorizer(),
        scheduler=scheduler,
    )

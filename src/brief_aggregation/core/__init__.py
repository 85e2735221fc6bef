"""Core business logic modules for brief aggregation.

Components are built and wired by ``core.factories``; web and script code
receive a ``Components`` instance instead of constructing pieces ad hoc.

    from brief_aggregation.core import create_components

    components = create_components()
    components.pipeline.fetch_source(source_id)
"""

from brief_aggregation.core.adapters import AdapterError, AdapterResult, RawItem
from brief_aggregation.core.assembler import AssembledDigest, DigestAssembler
from brief_aggregation.core.deduplicator import DedupResult, Deduplicator
from brief_aggregation.core.digest_store import DigestStore, DigestStoreError
from brief_aggregation.core.events import DigestAssembled, DigestEventBus, NotificationRequest
from brief_aggregation.core.factories import Components, create_adapters, create_components
from brief_aggregation.core.health import FeedHealthTracker, SourceHealth
from brief_aggregation.core.pipeline import IngestionPipeline, IngestResult
from brief_aggregation.core.relevance import (
    FallbackScorer,
    OracleError,
    OracleProtocolError,
    RelevanceProcessor,
    RemoteScorer,
    ScoredItem,
)
from brief_aggregation.core.scheduler import AggregationScheduler, JobStatus, SchedulerStats

__all__ = [
    # Wiring
    "Components",
    "create_adapters",
    "create_components",
    # Components
    "AggregationScheduler",
    "Deduplicator",
    "DigestAssembler",
    "DigestEventBus",
    "DigestStore",
    "FeedHealthTracker",
    "IngestionPipeline",
    "RelevanceProcessor",
    "FallbackScorer",
    "RemoteScorer",
    # Result types
    "AdapterResult",
    "AssembledDigest",
    "DedupResult",
    "IngestResult",
    "JobStatus",
    "RawItem",
    "SchedulerStats",
    "ScoredItem",
    "SourceHealth",
    # Events
    "DigestAssembled",
    "NotificationRequest",
    # Errors
    "AdapterError",
    "DigestStoreError",
    "OracleError",
    "OracleProtocolError",
]

"""Core business logic modules for the security feed aggregator.

Data flow of one refresh:

    OPML sources -> FeedFetcher (per feed, classified)
                 -> Aggregator (batched, deduplicated, sorted)
                 -> RefreshPipeline (time window)
                 -> Notifier (push-state filter, digest, delivery, mark)

Components are normally built through ``core.factories``.
"""

from secfeed_aggregation.core.aggregator import AggregationStats, Aggregator
from secfeed_aggregation.core.classifier import Classifier
from secfeed_aggregation.core.deduplicator import DedupResult, DedupStats, Deduplicator
from secfeed_aggregation.core.fetcher import FeedFetcher, FetchResult, FetchStats
from secfeed_aggregation.core.notifier import DeliveryResult, Notifier, NotifyResult
from secfeed_aggregation.core.pipeline import (
    ManualPushResult,
    PipelineContext,
    RefreshPipeline,
    RefreshResult,
)
from secfeed_aggregation.core.push_state import PushStateTracker, message_id
from secfeed_aggregation.core.summarizer import AISummarizer, SummaryResult

__all__ = [
    "AISummarizer",
    "AggregationStats",
    "Aggregator",
    "Classifier",
    "DedupResult",
    "DedupStats",
    "Deduplicator",
    "DeliveryResult",
    "FeedFetcher",
    "FetchResult",
    "FetchStats",
    "ManualPushResult",
    "Notifier",
    "NotifyResult",
    "PipelineContext",
    "PushStateTracker",
    "RefreshPipeline",
    "RefreshResult",
    "SummaryResult",
    "message_id",
]

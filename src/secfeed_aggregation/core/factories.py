"""
Factory functions for wiring core components from configuration.

Each component module exposes its own ``create_*``; this module gathers
them and assembles the full refresh pipeline.

Usage:
    from secfeed_aggregation.core.factories import build_pipeline
    from secfeed_aggregation.storage import create_cache

    cache = create_cache()
    await cache.connect()
    pipeline = build_pipeline(cache)
    await pipeline.refresh()
"""

from functools import partial
from typing import Optional

import httpx

from secfeed_aggregation.config import get_config
from secfeed_aggregation.core.aggregator import create_aggregator
from secfeed_aggregation.core.classifier import create_classifier
from secfeed_aggregation.core.deduplicator import create_deduplicator
from secfeed_aggregation.core.fetcher import create_fetcher
from secfeed_aggregation.core.notifier import create_notifier
from secfeed_aggregation.core.parser import create_parser
from secfeed_aggregation.core.pipeline import RefreshPipeline, create_pipeline
from secfeed_aggregation.core.push_state import create_push_state
from secfeed_aggregation.core.scheduler import create_scheduler
from secfeed_aggregation.core.summarizer import create_summarizer
from secfeed_aggregation.delivery.telegram import create_telegram_client
from secfeed_aggregation.sources.opml import load_feed_sources
from secfeed_aggregation.storage.cache.base import CacheStore


def build_pipeline(
    cache: CacheStore,
    http_client: Optional[httpx.AsyncClient] = None,
    opml_path: Optional[str] = None,
) -> RefreshPipeline:
    """Assemble a RefreshPipeline from configuration.

    Args:
        cache: Connected cache store (push state and item list)
        http_client: Shared HTTP client for feeds and delivery
        opml_path: Override for the configured OPML path

    Returns:
        Ready-to-run RefreshPipeline
    """
    config = get_config()

    fetcher = create_fetcher(client=http_client, classifier=create_classifier())
    aggregator = create_aggregator(fetcher=fetcher, deduplicator=create_deduplicator())

    notifier = create_notifier(
        delivery=create_telegram_client(client=http_client),
        push_state=create_push_state(cache),
        summarizer=create_summarizer(),
    )
    if not config.telegram.enabled:
        notifier.chat_ids = []

    return create_pipeline(
        sources_provider=partial(load_feed_sources, opml_path or config.feed.opml_path),
        aggregator=aggregator,
        notifier=notifier,
        cache=cache,
    )


__all__ = [
    "build_pipeline",
    "create_aggregator",
    "create_classifier",
    "create_deduplicator",
    "create_fetcher",
    "create_notifier",
    "create_parser",
    "create_pipeline",
    "create_push_state",
    "create_scheduler",
    "create_summarizer",
    "create_telegram_client",
]

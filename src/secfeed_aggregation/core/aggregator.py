"""
Multi-feed aggregation: batched concurrent fetch, dedup, filter, sort.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Optional

from secfeed_aggregation.config import get_config
from secfeed_aggregation.core.deduplicator import Deduplicator
from secfeed_aggregation.core.fetcher import FeedFetcher
from secfeed_aggregation.logger import get_logger
from secfeed_aggregation.models.feed import FeedSource
from secfeed_aggregation.models.item import Category, SecurityItem

logger = get_logger(__name__)


@dataclass
class AggregationStats:
    """Counters for one aggregation run."""

    feeds: int = 0
    failed_feeds: int = 0
    raw_items: int = 0
    deduped_items: int = 0
    returned_items: int = 0
    duration_seconds: float = 0.0


def sort_newest_first(items: list[SecurityItem]) -> list[SecurityItem]:
    """Stable sort by publish time, newest first; undated items last."""
    return sorted(items, key=lambda item: item.timestamp, reverse=True)


class Aggregator:
    """Fetches many feeds concurrently and merges their items."""

    def __init__(
        self,
        fetcher: FeedFetcher,
        deduplicator: Deduplicator,
        batch_size: Optional[int] = None,
    ):
        """Initialize aggregator.

        Args:
            fetcher: Fetcher used for every feed
            deduplicator: Deduplicator applied to the merged items
            batch_size: Feeds fetched concurrently per batch
        """
        config = get_config()

        self.fetcher = fetcher
        self.deduplicator = deduplicator
        self.batch_size = batch_size or config.aggregator.batch_size
        self.last_stats = AggregationStats()

    async def fetch_all(
        self,
        sources: list[FeedSource],
        category_filter: Optional[Category] = None,
    ) -> list[SecurityItem]:
        """Fetch all sources and return deduplicated items, newest first.

        A failing feed never aborts the run; its items are simply missing.

        Args:
            sources: Feeds to fetch
            category_filter: Keep only items of this category

        Returns:
            Deduplicated, filtered, sorted items
        """
        start_time = time.time()
        stats = AggregationStats(feeds=len(sources))
        collected: list[SecurityItem] = []

        for offset in range(0, len(sources), self.batch_size):
            batch = sources[offset : offset + self.batch_size]
            results = await asyncio.gather(
                *(self.fetcher.fetch(source) for source in batch),
                return_exceptions=True,
            )

            for source, result in zip(batch, results):
                if isinstance(result, BaseException):
                    stats.failed_feeds += 1
                    logger.warning(f"Failed to fetch feed {source.title}: {result}")
                    continue
                collected.extend(result)

        stats.raw_items = len(collected)
        logger.info(f"Before deduplication: {len(collected)} items from {len(sources)} feeds")

        items = self.deduplicator.dedupe(collected)
        stats.deduped_items = len(items)
        logger.info(f"After deduplication: {len(items)} items")

        if category_filter is not None:
            items = [item for item in items if item.category == category_filter]

        items = sort_newest_first(items)

        stats.returned_items = len(items)
        stats.duration_seconds = time.time() - start_time
        self.last_stats = stats

        return items


def create_aggregator(
    fetcher: FeedFetcher,
    deduplicator: Deduplicator,
) -> Aggregator:
    """Create a configured Aggregator instance."""
    return Aggregator(fetcher=fetcher, deduplicator=deduplicator)

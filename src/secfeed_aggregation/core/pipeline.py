"""
Refresh pipeline: aggregate all feeds, cache the result, push what is new.

One refresh runs at a time. A refresh requested while another is in
flight is skipped, not queued. Pushing selects items published after the
last successful push (or within the push interval when nothing has been
pushed yet) and leaves push-state dedup to the notifier.
"""

import asyncio
import json
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from pydantic import TypeAdapter, ValidationError

from secfeed_aggregation.config import get_config
from secfeed_aggregation.core.aggregator import Aggregator
from secfeed_aggregation.core.notifier import Notifier, NotifyResult
from secfeed_aggregation.exceptions import CacheUnavailableError
from secfeed_aggregation.logger import get_logger
from secfeed_aggregation.models.feed import FeedSource
from secfeed_aggregation.models.item import Category, SecurityItem, Subcategory
from secfeed_aggregation.storage.cache.base import CacheStore

logger = get_logger(__name__)

_ITEM_LIST = TypeAdapter(list[SecurityItem])


def filter_by_subcategory(
    items: list[SecurityItem],
    subcategory: Optional[Subcategory],
) -> list[SecurityItem]:
    """Keep items tagged with ``subcategory`` (all items when None)."""
    if subcategory is None:
        return list(items)
    return [item for item in items if item.subcategory == subcategory]


def filter_by_category(
    items: list[SecurityItem],
    category: Optional[Category],
) -> list[SecurityItem]:
    if category is None:
        return list(items)
    return [item for item in items if item.category == category]


def published_after(items: list[SecurityItem], cutoff: datetime) -> list[SecurityItem]:
    """Items with a publish date strictly after ``cutoff``; undated items are excluded."""
    selected = []
    for item in items:
        published = item.published_at
        if published is not None and published > cutoff:
            selected.append(item)
    return selected


class PipelineContext:
    """Mutable state shared by refreshes, pushes and readers."""

    def __init__(self):
        self.lock = asyncio.Lock()
        self.last_refresh_time: Optional[datetime] = None
        self.last_push_time: Optional[datetime] = None
        self.items: list[SecurityItem] = []

    @property
    def in_flight(self) -> bool:
        return self.lock.locked()


@dataclass
class RefreshResult:
    """Outcome of one refresh."""

    success: bool
    skipped: bool = False
    total_items: int = 0
    new_items: int = 0
    notify: Optional[NotifyResult] = None
    duration_seconds: float = 0.0


@dataclass
class ManualPushResult:
    """Outcome of a manual push."""

    success: bool
    items_count: int = 0
    sent: int = 0
    already_pushed: int = 0
    time_range: str = ""
    used_fallback: bool = False


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RefreshPipeline:
    """Periodic aggregate-then-push cycle."""

    def __init__(
        self,
        sources_provider: Callable[[], list[FeedSource]],
        aggregator: Aggregator,
        notifier: Notifier,
        cache: Optional[CacheStore] = None,
        context: Optional[PipelineContext] = None,
        push_interval_minutes: Optional[int] = None,
        items_cache_key: Optional[str] = None,
        items_cache_ttl_seconds: Optional[int] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        """Initialize the pipeline.

        Args:
            sources_provider: Returns the feed list (called on every refresh)
            aggregator: Multi-feed aggregator
            notifier: Digest notifier
            cache: Store for the cached item list (optional)
            context: Shared state; a fresh one is created if omitted
            push_interval_minutes: Window used when no push happened yet
            items_cache_key: Key of the cached item list
            items_cache_ttl_seconds: TTL of the cached item list
            clock: Returns the current aware datetime
        """
        config = get_config()

        self.sources_provider = sources_provider
        self.aggregator = aggregator
        self.notifier = notifier
        self.cache = cache
        self.context = context or PipelineContext()
        self.push_interval_minutes = push_interval_minutes or config.push.interval_minutes
        self.items_cache_key = items_cache_key or config.cache.items_key
        self.items_cache_ttl_seconds = items_cache_ttl_seconds or config.cache.items_ttl_seconds
        self.clock = clock

    @property
    def push_interval(self) -> timedelta:
        return timedelta(minutes=self.push_interval_minutes)

    def time_range_label(self, now: datetime) -> str:
        """Window label for the digest header."""
        last_push = self.context.last_push_time
        if last_push is not None:
            minutes = int((now - last_push).total_seconds() // 60)
            return f"过去 {minutes} 分钟"
        return f"最近 {self.push_interval_minutes} 分钟"

    async def refresh(self) -> RefreshResult:
        """Aggregate all feeds, update the caches and push new items.

        Returns:
            RefreshResult (``skipped=True`` when another refresh was running)
        """
        if self.context.in_flight:
            logger.info("Refresh already in progress, skipping")
            return RefreshResult(success=True, skipped=True)

        async with self.context.lock:
            start_time = time.time()
            logger.info("Starting refresh")

            sources = self.sources_provider()
            items = await self.aggregator.fetch_all(sources)

            now = self.clock()
            self.context.items = items
            self.context.last_refresh_time = now
            await self.store_items(items)

            cutoff = self.context.last_push_time or (now - self.push_interval)
            new_items = published_after(items, cutoff)

            logger.info(f"Refresh complete: {len(items)} items ({len(new_items)} new by time)")

            result = RefreshResult(
                success=True,
                total_items=len(items),
                new_items=len(new_items),
            )

            if new_items:
                notify_result = await self.notifier.push_new(new_items, self.time_range_label(now))
                if notify_result.any_delivered:
                    self.context.last_push_time = now
                result.notify = notify_result
                result.success = notify_result.success
            else:
                logger.info("No new items by time, skipping push")

            result.duration_seconds = time.time() - start_time
            return result

    async def manual_push(
        self,
        limit: Optional[int] = None,
        fallback_to_latest: bool = False,
    ) -> ManualPushResult:
        """Fetch fresh items and push the recent ones immediately.

        Args:
            limit: Maximum items to push
            fallback_to_latest: When nothing is recent, push the latest
                ``limit`` items instead of nothing

        Returns:
            ManualPushResult with counts
        """
        limit = limit or get_config().push.manual_push_limit
        logger.info("Manual push triggered")

        items = await self.aggregator.fetch_all(self.sources_provider())
        now = self.clock()

        selected = published_after(items, now - self.push_interval)[:limit]
        time_range = f"最近 {self.push_interval_minutes} 分钟"
        used_fallback = False

        if not selected:
            if not fallback_to_latest:
                logger.info("No recent items to push")
                return ManualPushResult(success=True, time_range=time_range)
            selected = items[:limit]
            time_range = "最新数据"
            used_fallback = True

        notify_result = await self.notifier.push_new(selected, time_range)
        if notify_result.any_delivered:
            self.context.last_push_time = now

        return ManualPushResult(
            success=notify_result.success,
            items_count=len(selected),
            sent=notify_result.sent,
            already_pushed=notify_result.already_pushed,
            time_range=time_range,
            used_fallback=used_fallback,
        )

    def get_cached_items(
        self,
        category: Optional[Category] = None,
        subcategory: Optional[Subcategory] = None,
    ) -> list[SecurityItem]:
        """Items from the last refresh, optionally filtered."""
        items = filter_by_category(self.context.items, category)
        return filter_by_subcategory(items, subcategory)

    async def store_items(self, items: list[SecurityItem]) -> bool:
        """Write the item list to the cache store; best effort."""
        if self.cache is None:
            return False

        payload = json.dumps(
            [item.model_dump(mode="json") for item in items],
            ensure_ascii=False,
        )
        try:
            await self.cache.set_with_expiry(
                self.items_cache_key, payload, self.items_cache_ttl_seconds
            )
        except CacheUnavailableError as e:
            logger.warning(f"Cannot cache item list: {e}")
            return False
        return True

    async def load_cached_items(self) -> list[SecurityItem]:
        """Read the item list back from the cache store.

        Fills the in-process list when it is still empty, so a restarted
        process can serve readers before its first refresh.
        """
        if self.cache is None:
            return []

        try:
            payload = await self.cache.get(self.items_cache_key)
        except CacheUnavailableError as e:
            logger.warning(f"Cannot read cached item list: {e}")
            return []

        if not payload:
            return []

        try:
            items = _ITEM_LIST.validate_json(payload)
        except ValidationError as e:
            logger.warning(f"Discarding invalid cached item list: {e}")
            return []

        if not self.context.items:
            self.context.items = items
        return items


def create_pipeline(
    sources_provider: Callable[[], list[FeedSource]],
    aggregator: Aggregator,
    notifier: Notifier,
    cache: Optional[CacheStore] = None,
) -> RefreshPipeline:
    """Create a configured RefreshPipeline instance."""
    return RefreshPipeline(
        sources_provider=sources_provider,
        aggregator=aggregator,
        notifier=notifier,
        cache=cache,
    )

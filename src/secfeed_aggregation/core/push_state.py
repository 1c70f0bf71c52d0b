"""
Tracking of items already delivered to the messaging channel.

Pushed items are recorded as message ids in one set in the cache store.
The set has a rolling expiry that is reset on every add, so an id is
remembered for at least ``ttl_hours`` after the most recent push.
"""

from typing import Optional

from secfeed_aggregation.config import get_config
from secfeed_aggregation.core.similarity import normalize_link, normalize_title
from secfeed_aggregation.exceptions import CacheUnavailableError
from secfeed_aggregation.logger import get_logger
from secfeed_aggregation.models.item import SecurityItem
from secfeed_aggregation.storage.cache.base import CacheStore

logger = get_logger(__name__)


def message_id(item: SecurityItem) -> str:
    """Stable identity of an item for push tracking.

    The canonical link when the item has one, otherwise
    ``<title>:<feed url>`` (both lower-cased and trimmed).
    """
    if item.link:
        return normalize_link(item.link)
    return f"{normalize_title(item.title)}:{item.feed_url.lower().strip()}"


class PushStateTracker:
    """Remembers which items were pushed, backed by a cache store set."""

    def __init__(
        self,
        cache: CacheStore,
        set_key: Optional[str] = None,
        ttl_hours: Optional[int] = None,
    ):
        """Initialize push-state tracker.

        Args:
            cache: Cache store holding the pushed set
            set_key: Key of the pushed set
            ttl_hours: Rolling expiry of the pushed set
        """
        config = get_config()

        self.cache = cache
        self.set_key = set_key or config.push.set_key
        self.ttl_hours = ttl_hours or config.push.ttl_hours

    async def filter_unpushed(self, items: list[SecurityItem]) -> list[SecurityItem]:
        """Drop items that were already pushed.

        Fails open: when the cache is unavailable every item is returned, so
        a cache outage can cause duplicates but never silent loss.

        Args:
            items: Candidate items

        Returns:
            Items not yet pushed, input order preserved
        """
        if not items:
            return []

        ids = [message_id(item) for item in items]
        try:
            pushed = await self.cache.are_members(self.set_key, ids)
        except CacheUnavailableError as e:
            logger.warning(f"Cannot filter pushed messages, passing all through: {e}")
            return list(items)

        unpushed = [item for item, seen in zip(items, pushed) if not seen]
        logger.info(
            f"Filtered {len(items)} items: {len(unpushed)} new, "
            f"{len(items) - len(unpushed)} already pushed"
        )
        return unpushed

    async def mark_pushed(
        self,
        items: list[SecurityItem],
        ttl_hours: Optional[int] = None,
    ) -> bool:
        """Record items as pushed and reset the set expiry.

        Args:
            items: Items that were delivered
            ttl_hours: Override for the configured expiry

        Returns:
            True on success (or nothing to record), False if the cache failed
        """
        if not items:
            return True

        ids = [message_id(item) for item in items]
        ttl_seconds = (ttl_hours or self.ttl_hours) * 3600
        try:
            await self.cache.add_members(self.set_key, ids)
            await self.cache.expire(self.set_key, ttl_seconds)
        except CacheUnavailableError as e:
            logger.warning(f"Cannot mark messages as pushed: {e}")
            return False

        logger.info(f"Marked {len(ids)} messages as pushed")
        return True

    async def is_pushed(self, item: SecurityItem) -> bool:
        """Whether an item was pushed; False when the cache is unavailable."""
        try:
            return await self.cache.is_member(self.set_key, message_id(item))
        except CacheUnavailableError as e:
            logger.warning(f"Cannot check pushed message: {e}")
            return False

    async def pushed_count(self) -> int:
        try:
            return await self.cache.set_size(self.set_key)
        except CacheUnavailableError as e:
            logger.warning(f"Cannot count pushed messages: {e}")
            return 0

    async def clear(self) -> bool:
        """Forget every pushed id."""
        try:
            await self.cache.delete(self.set_key)
        except CacheUnavailableError as e:
            logger.warning(f"Cannot clear pushed messages: {e}")
            return False
        logger.info("Cleared all pushed messages")
        return True


def create_push_state(cache: CacheStore) -> PushStateTracker:
    """Create a configured PushStateTracker instance."""
    return PushStateTracker(cache=cache)

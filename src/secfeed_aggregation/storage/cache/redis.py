"""Redis cache store."""

import asyncio
from typing import Optional

from redis import asyncio as aioredis
from redis.exceptions import RedisError

from secfeed_aggregation.exceptions import CacheUnavailableError
from secfeed_aggregation.logger import get_logger
from secfeed_aggregation.storage.cache.base import CacheStats, CacheStore

logger = get_logger(__name__)


class RedisCache(CacheStore):
    """Cache store backed by Redis (redis-py asyncio client).

    Connection attempts are bounded: ``connect_retries`` attempts with a
    linear backoff of ``retry_backoff_ms`` per attempt.
    """

    name = "redis"

    def __init__(
        self,
        url: str,
        connect_retries: int = 10,
        retry_backoff_ms: int = 100,
        socket_timeout_seconds: float = 5.0,
        client: Optional[aioredis.Redis] = None,
    ):
        self.url = url
        self.connect_retries = connect_retries
        self.retry_backoff_ms = retry_backoff_ms
        self.socket_timeout_seconds = socket_timeout_seconds
        self._client = client
        self._connected = False

    @property
    def is_connected(self) -> bool:
        return self._connected and self._client is not None

    async def connect(self) -> bool:
        if self.is_connected:
            return True

        if self._client is None:
            self._client = aioredis.from_url(
                self.url,
                decode_responses=True,
                socket_timeout=self.socket_timeout_seconds,
                socket_connect_timeout=self.socket_timeout_seconds,
            )

        attempts = max(1, self.connect_retries)
        for attempt in range(1, attempts + 1):
            try:
                await self._client.ping()
                self._connected = True
                logger.info("Redis connected")
                return True
            except (RedisError, OSError) as e:
                logger.debug(f"Redis connection attempt {attempt}/{attempts} failed: {e}")
                if attempt < attempts:
                    await asyncio.sleep(attempt * self.retry_backoff_ms / 1000)

        logger.error(f"Failed to connect to Redis after {attempts} attempts")
        self._connected = False
        return False

    async def close(self) -> None:
        if self._client is None:
            return
        try:
            await self._client.aclose()
            logger.info("Redis connection closed")
        except (RedisError, OSError) as e:
            logger.warning(f"Error closing Redis connection: {e}")
        finally:
            self._client = None
            self._connected = False

    def _require_client(self) -> aioredis.Redis:
        if not self.is_connected:
            raise CacheUnavailableError("Redis not connected")
        return self._client

    async def get(self, key: str) -> Optional[str]:
        client = self._require_client()
        try:
            return await client.get(key)
        except RedisError as e:
            raise CacheUnavailableError(f"Error getting key {key}: {e}") from e

    async def set_with_expiry(self, key: str, value: str, ttl_seconds: int) -> bool:
        client = self._require_client()
        try:
            return bool(await client.setex(key, ttl_seconds, value))
        except RedisError as e:
            raise CacheUnavailableError(f"Error setting key {key}: {e}") from e

    async def delete(self, key: str) -> bool:
        client = self._require_client()
        try:
            return await client.delete(key) > 0
        except RedisError as e:
            raise CacheUnavailableError(f"Error deleting key {key}: {e}") from e

    async def is_member(self, set_key: str, value: str) -> bool:
        client = self._require_client()
        try:
            return bool(await client.sismember(set_key, value))
        except RedisError as e:
            raise CacheUnavailableError(f"Error checking membership in {set_key}: {e}") from e

    async def are_members(self, set_key: str, values: list[str]) -> list[bool]:
        if not values:
            return []
        client = self._require_client()
        try:
            async with client.pipeline(transaction=False) as pipe:
                for value in values:
                    pipe.sismember(set_key, value)
                results = await pipe.execute()
        except RedisError as e:
            raise CacheUnavailableError(f"Error checking membership in {set_key}: {e}") from e
        return [bool(result) for result in results]

    async def add_members(self, set_key: str, values: list[str]) -> int:
        if not values:
            return 0
        client = self._require_client()
        try:
            return await client.sadd(set_key, *values)
        except RedisError as e:
            raise CacheUnavailableError(f"Error adding to {set_key}: {e}") from e

    async def expire(self, key: str, ttl_seconds: int) -> bool:
        client = self._require_client()
        try:
            return bool(await client.expire(key, ttl_seconds))
        except RedisError as e:
            raise CacheUnavailableError(f"Error setting expiry on {key}: {e}") from e

    async def set_size(self, set_key: str) -> int:
        client = self._require_client()
        try:
            return await client.scard(set_key)
        except RedisError as e:
            raise CacheUnavailableError(f"Error counting {set_key}: {e}") from e

    async def flush(self) -> bool:
        client = self._require_client()
        try:
            await client.flushdb()
        except RedisError as e:
            raise CacheUnavailableError(f"Error flushing database: {e}") from e
        logger.info("All cache cleared")
        return True

    async def size(self) -> int:
        client = self._require_client()
        try:
            return await client.dbsize()
        except RedisError as e:
            raise CacheUnavailableError(f"Error reading database size: {e}") from e

    async def stats(self) -> CacheStats:
        if not self.is_connected:
            return CacheStats(backend=self.name, connected=False)
        try:
            keys = await self._client.dbsize()
            memory = await self._client.info("memory")
        except RedisError as e:
            logger.warning(f"Error getting cache stats: {e}")
            return CacheStats(backend=self.name, connected=True)
        return CacheStats(
            backend=self.name,
            connected=True,
            keys=keys,
            used_memory=memory.get("used_memory_human"),
        )

"""Storage layer modules for the security feed aggregator."""

from secfeed_aggregation.storage.cache import (
    CacheStats,
    CacheStore,
    MemoryCache,
    RedisCache,
    create_cache,
)

__all__ = [
    "CacheStats",
    "CacheStore",
    "MemoryCache",
    "RedisCache",
    "create_cache",
]

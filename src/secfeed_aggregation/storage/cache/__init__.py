"""Cache store backends.

The pushed-message set and the cached item list live in an external
key/value store. Redis is used in production; the in-memory backend serves
development and tests.
"""

from typing import Optional

from secfeed_aggregation.config import CacheConfig, get_config
from secfeed_aggregation.storage.cache.base import CacheStats, CacheStore
from secfeed_aggregation.storage.cache.memory import MemoryCache
from secfeed_aggregation.storage.cache.redis import RedisCache


def _build_redis(config: CacheConfig) -> CacheStore:
    return RedisCache(
        url=config.url,
        connect_retries=config.connect_retries,
        retry_backoff_ms=config.retry_backoff_ms,
        socket_timeout_seconds=config.socket_timeout_seconds,
    )


def _build_memory(config: CacheConfig) -> CacheStore:
    return MemoryCache()


# Backend registry
_BACKEND_REGISTRY = {
    "redis": _build_redis,
    "memory": _build_memory,
}


def create_cache(config: Optional[CacheConfig] = None) -> CacheStore:
    """Create a cache store from configuration.

    Args:
        config: Cache configuration (defaults to the global config)

    Returns:
        Unconnected cache store; call ``connect()`` before use

    Raises:
        ValueError: If the backend name is not supported
    """
    config = config or get_config().cache
    backend = config.backend.lower()
    if backend not in _BACKEND_REGISTRY:
        supported = ", ".join(sorted(_BACKEND_REGISTRY))
        raise ValueError(
            f"Unsupported cache backend: {config.backend!r}. "
            f"Supported backends: {supported}"
        )
    return _BACKEND_REGISTRY[backend](config)


__all__ = [
    "CacheStats",
    "CacheStore",
    "MemoryCache",
    "RedisCache",
    "create_cache",
]

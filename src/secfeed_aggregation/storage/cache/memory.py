"""In-process cache store for development and tests."""

import time
from typing import Optional, Union

from secfeed_aggregation.exceptions import CacheUnavailableError
from secfeed_aggregation.logger import get_logger
from secfeed_aggregation.storage.cache.base import CacheStore

logger = get_logger(__name__)

_Value = Union[str, set]


class MemoryCache(CacheStore):
    """Dict-backed cache store with lazy expiry.

    Behaves like the Redis backend for the operations used here, including
    raising ``CacheUnavailableError`` while disconnected. State is lost when
    the process exits.
    """

    name = "memory"

    def __init__(self, clock=time.monotonic):
        self._clock = clock
        self._data: dict[str, _Value] = {}
        self._expires_at: dict[str, float] = {}
        self._connected = False

    @property
    def is_connected(self) -> bool:
        return self._connected

    async def connect(self) -> bool:
        self._connected = True
        return True

    async def close(self) -> None:
        self._connected = False

    def _check(self) -> None:
        if not self._connected:
            raise CacheUnavailableError("Memory cache not connected")

    def _lookup(self, key: str) -> Optional[_Value]:
        expires_at = self._expires_at.get(key)
        if expires_at is not None and self._clock() >= expires_at:
            self._data.pop(key, None)
            self._expires_at.pop(key, None)
        return self._data.get(key)

    def _lookup_set(self, set_key: str) -> Optional[set]:
        value = self._lookup(set_key)
        if value is not None and not isinstance(value, set):
            raise CacheUnavailableError(f"Key {set_key} does not hold a set")
        return value

    async def get(self, key: str) -> Optional[str]:
        self._check()
        value = self._lookup(key)
        if isinstance(value, set):
            raise CacheUnavailableError(f"Key {key} does not hold a string")
        return value

    async def set_with_expiry(self, key: str, value: str, ttl_seconds: int) -> bool:
        self._check()
        self._data[key] = value
        self._expires_at[key] = self._clock() + ttl_seconds
        return True

    async def delete(self, key: str) -> bool:
        self._check()
        existed = self._lookup(key) is not None
        self._data.pop(key, None)
        self._expires_at.pop(key, None)
        return existed

    async def is_member(self, set_key: str, value: str) -> bool:
        self._check()
        members = self._lookup_set(set_key)
        return members is not None and value in members

    async def are_members(self, set_key: str, values: list[str]) -> list[bool]:
        self._check()
        members = self._lookup_set(set_key) or set()
        return [value in members for value in values]

    async def add_members(self, set_key: str, values: list[str]) -> int:
        self._check()
        members = self._lookup_set(set_key)
        if members is None:
            members = set()
            self._data[set_key] = members
        before = len(members)
        members.update(values)
        return len(members) - before

    async def expire(self, key: str, ttl_seconds: int) -> bool:
        self._check()
        if self._lookup(key) is None:
            return False
        self._expires_at[key] = self._clock() + ttl_seconds
        return True

    async def set_size(self, set_key: str) -> int:
        self._check()
        members = self._lookup_set(set_key)
        return len(members) if members else 0

    async def flush(self) -> bool:
        self._check()
        self._data.clear()
        self._expires_at.clear()
        return True

    async def size(self) -> int:
        self._check()
        for key in list(self._data):
            self._lookup(key)
        return len(self._data)

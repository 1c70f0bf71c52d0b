"""Abstract base for external cache stores."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass
class CacheStats:
    """Cache store statistics."""

    backend: str
    connected: bool
    keys: int = 0
    used_memory: Optional[str] = None


class CacheStore(ABC):
    """Abstract base class for cache stores.

    A cache store is a key/value store with per-key expiry and string sets.
    It holds the pushed-message set and the cached item list. Backends raise
    ``CacheUnavailableError`` from every data method when not connected or
    when the backend fails; callers decide how to degrade.
    """

    name: str = "base"

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        """Whether the store is currently usable."""
        ...

    @abstractmethod
    async def connect(self) -> bool:
        """Open the connection.

        Returns:
            True when connected, False when every attempt failed
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """Close the connection (no-op when already closed)."""
        ...

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Get a string value, or None when missing or expired."""
        ...

    @abstractmethod
    async def set_with_expiry(self, key: str, value: str, ttl_seconds: int) -> bool:
        """Set a string value that expires after ``ttl_seconds``."""
        ...

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete a key. Returns True when something was removed."""
        ...

    @abstractmethod
    async def is_member(self, set_key: str, value: str) -> bool:
        """Whether ``value`` is in the set stored at ``set_key``."""
        ...

    @abstractmethod
    async def are_members(self, set_key: str, values: list[str]) -> list[bool]:
        """Membership of each value, in order, in one round trip."""
        ...

    @abstractmethod
    async def add_members(self, set_key: str, values: list[str]) -> int:
        """Add values to a set. Returns the number newly added."""
        ...

    @abstractmethod
    async def expire(self, key: str, ttl_seconds: int) -> bool:
        """(Re)set the expiry of an existing key."""
        ...

    @abstractmethod
    async def set_size(self, set_key: str) -> int:
        """Number of members in a set (0 when missing)."""
        ...

    @abstractmethod
    async def flush(self) -> bool:
        """Remove every key."""
        ...

    @abstractmethod
    async def size(self) -> int:
        """Number of keys."""
        ...

    async def stats(self) -> CacheStats:
        """Backend statistics; never raises."""
        if not self.is_connected:
            return CacheStats(backend=self.name, connected=False)
        return CacheStats(backend=self.name, connected=True, keys=await self.size())

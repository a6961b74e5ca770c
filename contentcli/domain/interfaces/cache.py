"""Interface for caching mechanisms.

Defines the contract for storing, retrieving, and managing cached data,
grouped by prefix and expiring by TTL.
"""

import abc
from typing import Any, Dict, Optional

from ..models.common import CacheKey, CachePrefix


class CacheService(abc.ABC):
    """Abstract Base Class for caching operations."""

    @abc.abstractmethod
    async def get(self, prefix: CachePrefix, key: CacheKey) -> Optional[Any]:
        """Retrieves an item if present and not expired, otherwise None."""
        pass

    @abc.abstractmethod
    async def set(
        self, prefix: CachePrefix, key: CacheKey, value: Any, ttl: Optional[int] = None
    ) -> None:
        """Stores an item.

        Args:
            prefix: Category of the entry, used for bulk clearing.
            key: The cache key within the prefix.
            value: The item to store (must be picklable).
            ttl: Time-to-live in seconds (uses the default if None).
        """
        pass

    @abc.abstractmethod
    async def delete(self, prefix: CachePrefix, key: CacheKey) -> None:
        """Deletes a single item."""
        pass

    @abc.abstractmethod
    async def clear(self, prefix: Optional[CachePrefix] = None) -> int:
        """Clears every item under a prefix, or everything when prefix is None.

        Returns:
            Number of entries removed from the persistent level.
        """
        pass

    @abc.abstractmethod
    async def cleanup(self) -> int:
        """Removes expired entries and returns how many were removed."""
        pass

    @abc.abstractmethod
    def stats(self) -> Dict[str, int]:
        """Returns entry count and size information."""
        pass

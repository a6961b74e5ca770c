"""Two-level cache: L1 in-memory with TTL and LRU bound, L2 on disk via diskcache.

Entries are keyed by prefix plus a SHA-256 of the key text and tagged with
their prefix, so a whole category (e.g. 'research') can be evicted at once.
"""

import collections
import hashlib
import logging
import pickle
import sqlite3
import time
from pathlib import Path
from typing import Any, Dict, Optional, OrderedDict, Tuple, Union

import diskcache as dc

from contentcli.domain.interfaces.cache import CacheService
from contentcli.domain.models.common import CacheKey, CachePrefix

logger = logging.getLogger(__name__)

# --- Cache Configuration ---
L1_CACHE_SIZE = 128
L1_DEFAULT_TTL_SECONDS = 60 * 15
L2_DEFAULT_TTL_SECONDS = 60 * 60 * 24

# Failures of the disk level are logged and treated as misses
DISK_ERRORS = (OSError, sqlite3.Error, dc.Timeout)
SERIALIZATION_ERRORS = (pickle.PickleError, TypeError, AttributeError)


def make_cache_key(prefix: str, key: str) -> str:
    digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
    return f"{prefix}-{digest}"


class DiskCachingService(CacheService):
    """Provides multi-level caching (L1: in-memory, L2: disk-based)."""

    def __init__(
        self,
        cache_dir: Union[str, Path],
        l2_default_ttl: int = L2_DEFAULT_TTL_SECONDS,
        l1_default_ttl: int = L1_DEFAULT_TTL_SECONDS,
        l1_max_size: int = L1_CACHE_SIZE,
        enabled: bool = True,
    ):
        self.l2_default_ttl = l2_default_ttl
        self.l1_default_ttl = l1_default_ttl
        self.enabled = enabled
        self._l1_max_size = l1_max_size
        # key -> (expiry, prefix, value); ordered oldest access first
        self._memory_cache: OrderedDict[str, Tuple[float, str, Any]] = collections.OrderedDict()

        self.disk_cache = dc.Cache(str(cache_dir), timeout=1, tag_index=True)
        logger.info(
            f"Initialized cache at: {self.disk_cache.directory} "
            f"(L2 TTL: {self.l2_default_ttl}s, L1 size: {self._l1_max_size}, enabled: {self.enabled})"
        )

    def close(self) -> None:
        self.disk_cache.close()

    # --- L1 Cache Operations ---

    def _prune_l1_cache(self) -> int:
        """Drops expired L1 entries and returns how many were dropped."""
        now = time.monotonic()
        expired = [k for k, (expiry, _, _) in self._memory_cache.items() if expiry <= now]
        for key in expired:
            del self._memory_cache[key]
        return len(expired)

    def _get_from_memory(self, key: str) -> Optional[Any]:
        entry = self._memory_cache.get(key)
        if entry is None:
            return None
        expiry, _, value = entry
        if expiry <= time.monotonic():
            del self._memory_cache[key]
            logger.debug(f"L1 Cache EXPIRED key: {key[:20]}...")
            return None
        self._memory_cache.move_to_end(key)
        logger.debug(f"L1 Cache HIT for key: {key[:20]}...")
        return value

    def _put_in_memory(self, key: str, prefix: str, value: Any, ttl_seconds: Optional[int]) -> None:
        effective_ttl = min(ttl_seconds, self.l1_default_ttl) if ttl_seconds is not None else self.l1_default_ttl
        self._memory_cache[key] = (time.monotonic() + effective_ttl, prefix, value)
        self._memory_cache.move_to_end(key)
        while len(self._memory_cache) > self._l1_max_size:
            lru_key, _ = self._memory_cache.popitem(last=False)
            logger.debug(f"L1 Cache EVICTED key (LRU): {lru_key[:20]}...")

    # --- Public Interface ---

    async def get(self, prefix: CachePrefix, key: CacheKey) -> Optional[Any]:
        """Retrieves item from cache (L1 -> L2)."""
        if not self.enabled:
            return None
        cache_key = make_cache_key(prefix, key)

        value = self._get_from_memory(cache_key)
        if value is not None:
            return value

        try:
            value, expire_time = self.disk_cache.get(cache_key, default=None, expire_time=True)
        except DISK_ERRORS as e:
            logger.error(f"Error getting from L2 cache (key: {cache_key[:20]}...): {e}", exc_info=True)
            return None
        if value is None:
            logger.debug(f"Cache MISS for key: {cache_key[:20]}...")
            return None

        logger.debug(f"L2 Cache HIT for key: {cache_key[:20]}...")
        remaining = int(expire_time - time.time()) if expire_time else None
        if remaining is None or remaining > 0:
            self._put_in_memory(cache_key, prefix, value, remaining)
        return value

    async def set(self, prefix: CachePrefix, key: CacheKey, value: Any, ttl: Optional[int] = None) -> None:
        """Stores an item in both levels."""
        if not self.enabled:
            return
        cache_key = make_cache_key(prefix, key)
        effective_ttl = ttl if ttl is not None else self.l2_default_ttl
        try:
            self.disk_cache.set(cache_key, value, expire=effective_ttl, tag=prefix)
        except DISK_ERRORS + SERIALIZATION_ERRORS as e:
            logger.error(f"Error putting into L2 cache (key: {cache_key[:20]}...): {e}", exc_info=True)
            return
        self._put_in_memory(cache_key, prefix, value, effective_ttl)
        logger.debug(f"Cache PUT key: {cache_key[:20]}... TTL: {effective_ttl}s")

    async def delete(self, prefix: CachePrefix, key: CacheKey) -> None:
        cache_key = make_cache_key(prefix, key)
        self._memory_cache.pop(cache_key, None)
        self.disk_cache.delete(cache_key)

    async def clear(self, prefix: Optional[CachePrefix] = None) -> int:
        """Clears a prefix, or everything when prefix is None."""
        if prefix is None:
            return await self.clear_all()
        for key in [k for k, (_, p, _) in self._memory_cache.items() if p == prefix]:
            del self._memory_cache[key]
        removed = self.disk_cache.evict(prefix)
        logger.info(f"Cleared {removed} cache entries with prefix '{prefix}'.")
        return removed

    async def clear_all(self) -> int:
        self._memory_cache.clear()
        removed = self.disk_cache.clear()
        logger.info(f"Cleared all {removed} cache entries.")
        return removed

    async def cleanup(self) -> int:
        """Purges expired entries from both levels."""
        self._prune_l1_cache()
        removed = self.disk_cache.expire()
        if removed:
            logger.info(f"Removed {removed} expired cache entries.")
        return removed

    def stats(self) -> Dict[str, int]:
        return {
            "total": len(self.disk_cache),
            "size_bytes": self.disk_cache.volume(),
            "memory_entries": len(self._memory_cache),
        }

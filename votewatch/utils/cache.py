"""
In-process LRU cache with per-entry TTL and a stale fallback store.

Every successful computation is also written to a stale store that
outlives TTL expiry and LRU eviction. When recomputation fails, the last
good value is served instead of propagating the error, unless the caller
listed that error type as one that must always propagate.

Responsibility: Memoize expensive reads and external lookups
"""

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Generic, Iterable, Tuple, Type, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')


class CacheStatus(str, Enum):
    """Where a value returned by the cache came from"""
    HIT = "hit"
    MISS = "miss"
    STALE = "stale"


@dataclass
class CacheLookup(Generic[T]):
    value: T
    status: CacheStatus


@dataclass
class _Entry:
    value: Any
    expires_at: float


class TTLCache:
    """
    Bounded LRU cache whose entries expire after a fixed TTL.
    
    ``None`` is a legitimate cached value. The cache is shared by many
    asyncio tasks; store mutations happen under a lock, while compute
    functions are awaited outside of it.
    
    Example:
        cache = TTLCache(max_size=500, ttl_seconds=600)
        stats = await cache.get_or_compute("db_stats", load_stats)
    """
    
    def __init__(
        self,
        max_size: int = 500,
        ttl_seconds: float = 600.0,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Initialize cache.
        
        Args:
            max_size: Maximum number of live entries before LRU eviction
            ttl_seconds: Lifetime of an entry after it is stored
            clock: Monotonic time source (injectable for tests)
        """
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        
        self.max_size = max_size
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: "OrderedDict[str, _Entry]" = OrderedDict()
        self._stale: Dict[str, Any] = {}
        self._lock = threading.RLock()
        
        self.hits = 0
        self.misses = 0
        self.stale_hits = 0
    
    def _lookup(self, key: str) -> Tuple[bool, Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False, None
            if entry.expires_at <= self._clock():
                del self._entries[key]
                return False, None
            self._entries.move_to_end(key)
            return True, entry.value
    
    def get(self, key: str, default: Any = None) -> Any:
        """Return the live value for ``key`` or ``default``."""
        found, value = self._lookup(key)
        return value if found else default
    
    def __contains__(self, key: str) -> bool:
        found, _ = self._lookup(key)
        return found
    
    def set(self, key: str, value: Any) -> None:
        """Store ``value`` with a fresh TTL, evicting the LRU entry on overflow."""
        with self._lock:
            self._entries[key] = _Entry(value, self._clock() + self.ttl_seconds)
            self._entries.move_to_end(key)
            self._stale[key] = value
            while len(self._entries) > self.max_size:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug(f"Evicted cache entry: {evicted}")
    
    async def get_or_compute(
        self,
        key: str,
        compute_fn: Callable[[], Awaitable[T]],
        propagate: Tuple[Type[BaseException], ...] = (),
    ) -> T:
        """
        Return the cached value for ``key``, computing it on a miss.
        
        Args:
            key: Cache key
            compute_fn: Zero-argument coroutine function producing the value
            propagate: Exception types that are always re-raised, even when
                a stale value exists
        
        Returns:
            Live, freshly computed, or (if compute fails) stale value
        
        Raises:
            Whatever ``compute_fn`` raised, when no stale value exists or the
            error is one of ``propagate``
        """
        lookup = await self.get_or_compute_with_status(key, compute_fn, propagate)
        return lookup.value
    
    async def get_or_compute_with_status(
        self,
        key: str,
        compute_fn: Callable[[], Awaitable[T]],
        propagate: Tuple[Type[BaseException], ...] = (),
    ) -> CacheLookup[T]:
        """
        Same as ``get_or_compute`` but also reports where the value came from.
        """
        found, value = self._lookup(key)
        if found:
            with self._lock:
                self.hits += 1
            return CacheLookup(value, CacheStatus.HIT)
        
        with self._lock:
            self.misses += 1
        
        try:
            value = await compute_fn()
        except Exception as e:
            if propagate and isinstance(e, propagate):
                raise
            with self._lock:
                has_stale = key in self._stale
                stale_value = self._stale.get(key)
                if has_stale:
                    self.stale_hits += 1
            if not has_stale:
                raise
            logger.warning(f"Serving stale value for {key} after compute failure: {e}")
            return CacheLookup(stale_value, CacheStatus.STALE)
        
        self.set(key, value)
        return CacheLookup(value, CacheStatus.MISS)
    
    def invalidate(self, keys: Iterable[str]) -> int:
        """
        Drop ``keys`` from both the live and stale stores.
        
        Returns:
            Number of live entries removed
        """
        removed = 0
        with self._lock:
            for key in keys:
                if self._entries.pop(key, None) is not None:
                    removed += 1
                self._stale.pop(key, None)
        return removed
    
    def invalidate_prefix(self, prefix: str) -> int:
        """Drop every key starting with ``prefix``."""
        with self._lock:
            keys = [k for k in set(self._entries) | set(self._stale) if k.startswith(prefix)]
        return self.invalidate(keys)
    
    def clear_all(self) -> None:
        with self._lock:
            self._entries.clear()
            self._stale.clear()
        logger.info("Cache cleared")
    
    def _purge_expired(self) -> None:
        now = self._clock()
        for key in [k for k, e in self._entries.items() if e.expires_at <= now]:
            del self._entries[key]
    
    def stats(self) -> Dict[str, Any]:
        """
        Snapshot of cache occupancy and counters.
        
        Returns:
            Dict with size, max_size, keys, hits, misses, stale_hits
        """
        with self._lock:
            self._purge_expired()
            return {
                "size": len(self._entries),
                "max_size": self.max_size,
                "keys": list(self._entries.keys()),
                "hits": self.hits,
                "misses": self.misses,
                "stale_hits": self.stale_hits,
            }

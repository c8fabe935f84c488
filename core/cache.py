"""
Caching System for the Profile Widget API.

The profile gateway keeps normalized Discord profiles in memory to bound the
number of upstream calls and the latency of repeated widget renders.

Key Components:
- CacheBackend (ABC): the interface every cache implementation provides.
- MemoryCacheBackend: dictionary-backed store with per-entry TTL and a
  least-recently-used bound on the number of entries. Expired entries are
  dropped when read and by `purge_expired`, which the application runs
  periodically.
- CacheManager: facade used by services. Backend failures are logged and turned
  into misses so that a broken cache never fails a request.

The in-memory backend is per process. Several API instances behind a load
balancer each keep their own copy; nothing is shared between them.
"""

import asyncio
from abc import ABC, abstractmethod
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

from core.logging_config import get_logger

logger = get_logger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class CacheEntry:
    """Stored value plus the timestamps that decide its freshness"""

    value: Any
    created_at: datetime
    expires_at: Optional[datetime] = None
    access_count: int = 0
    last_accessed: Optional[datetime] = None

    def __post_init__(self):
        if self.last_accessed is None:
            self.last_accessed = self.created_at

    def is_expired(self, now: datetime) -> bool:
        """An entry is fresh while now - created_at < ttl"""
        if self.expires_at is None:
            return False
        return now >= self.expires_at


class CacheBackend(ABC):
    """Abstract base class for cache backends"""

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """Get cache entry value by key"""

    @abstractmethod
    async def set(self, key: str, value: Any, ttl: Optional[float] = None) -> bool:
        """Set cache entry with optional TTL in seconds"""

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete cache entry"""

    @abstractmethod
    async def clear(self) -> bool:
        """Clear all cache entries"""

    @abstractmethod
    async def purge_expired(self) -> int:
        """Drop every expired entry, returning how many were removed"""

    @abstractmethod
    async def stats(self) -> Dict[str, Any]:
        """Get cache statistics"""


class MemoryCacheBackend(CacheBackend):
    """In-memory cache backend with TTL expiry and LRU eviction"""

    def __init__(
        self,
        max_size: int = 1000,
        default_ttl: Optional[float] = 300,
        clock: Clock = utc_now,
    ):
        self.max_size = max_size
        self.default_ttl = default_ttl
        self.clock = clock
        # Insertion order doubles as recency order; most recent at the end.
        self.cache: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self.hits = 0
        self.misses = 0
        self.evictions = 0
        self.expirations = 0
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> Optional[Any]:
        async with self._lock:
            entry = self.cache.get(key)
            if entry is None:
                self.misses += 1
                logger.debug(f"Cache lookup missed: {key}")
                return None

            now = self.clock()
            if entry.is_expired(now):
                del self.cache[key]
                self.expirations += 1
                self.misses += 1
                logger.debug(f"Cache entry {key} expired on read")
                return None

            entry.access_count += 1
            entry.last_accessed = now
            self.cache.move_to_end(key)

            self.hits += 1
            logger.debug(f"Cache lookup hit: {key}")
            return entry.value

    async def set(self, key: str, value: Any, ttl: Optional[float] = None) -> bool:
        async with self._lock:
            if ttl is None:
                ttl = self.default_ttl

            now = self.clock()
            expires_at = now + timedelta(seconds=ttl) if ttl else None
            entry = CacheEntry(value=value, created_at=now, expires_at=expires_at)

            if key in self.cache:
                del self.cache[key]
            else:
                self._ensure_capacity()

            self.cache[key] = entry
            logger.debug(f"Cached {key} (ttl={ttl}s)")
            return True

    async def delete(self, key: str) -> bool:
        async with self._lock:
            if key in self.cache:
                del self.cache[key]
                logger.debug(f"Removed cache entry {key}")
                return True
            return False

    async def clear(self) -> bool:
        async with self._lock:
            self.cache.clear()
            logger.info("Profile cache cleared")
            return True

    async def purge_expired(self) -> int:
        async with self._lock:
            now = self.clock()
            expired = [key for key, entry in self.cache.items() if entry.is_expired(now)]
            for key in expired:
                del self.cache[key]
            self.expirations += len(expired)
            if expired:
                logger.debug(f"Purged {len(expired)} expired cache entries")
            return len(expired)

    async def stats(self) -> Dict[str, Any]:
        async with self._lock:
            total_requests = self.hits + self.misses
            hit_rate = (self.hits / total_requests) if total_requests > 0 else 0.0

            return {
                "backend": "memory",
                "total_keys": len(self.cache),
                "max_size": self.max_size,
                "default_ttl": self.default_ttl,
                "hits": self.hits,
                "misses": self.misses,
                "hit_rate": hit_rate,
                "evictions": self.evictions,
                "expirations": self.expirations,
            }

    def _ensure_capacity(self) -> None:
        """Evict least recently used entries until one more fits"""
        while len(self.cache) >= self.max_size:
            lru_key, _ = self.cache.popitem(last=False)
            self.evictions += 1
            logger.debug(f"Cache full, evicted least recently used {lru_key}")


class CacheManager:
    """Facade over a backend that degrades failures to misses.

    A profile that cannot be read from or written to the cache is fetched
    upstream instead, so backend errors are logged and never raised.
    """

    def __init__(self, backend: CacheBackend):
        self.backend = backend
        self.logger = get_logger(f"{__name__}.CacheManager")

    def _backend_failed(self, operation: str, key: str, error: Exception) -> None:
        self.logger.error(
            f"Profile cache {operation} failed: {error}",
            extra={"cache_key": key, "error_type": type(error).__name__},
        )

    async def get(self, key: str) -> Optional[Any]:
        try:
            return await self.backend.get(key)
        except Exception as e:
            self._backend_failed("read", key, e)
            return None

    async def set(self, key: str, value: Any, ttl: Optional[float] = None) -> bool:
        try:
            return await self.backend.set(key, value, ttl)
        except Exception as e:
            self._backend_failed("write", key, e)
            return False

    async def delete(self, key: str) -> bool:
        try:
            return await self.backend.delete(key)
        except Exception as e:
            self._backend_failed("delete", key, e)
            return False

    async def purge_expired(self) -> int:
        try:
            return await self.backend.purge_expired()
        except Exception as e:
            self._backend_failed("sweep", "*", e)
            return 0

    async def stats(self) -> Dict[str, Any]:
        return await self.backend.stats()

    async def health_check(self) -> Dict[str, Any]:
        """Backend status from its statistics; stored entries and counters are untouched"""
        try:
            stats = await self.backend.stats()
        except Exception as e:
            self.logger.error(f"Profile cache health check failed: {e}")
            return {"status": "unhealthy", "backend_type": "unknown", "error": str(e)}

        return {
            "status": "healthy",
            "backend_type": stats.get("backend", "unknown"),
            "stats": stats,
        }


async def run_periodic_sweep(cache: CacheManager, interval_seconds: float) -> None:
    """Purge expired entries every `interval_seconds` until cancelled"""
    while True:
        await asyncio.sleep(interval_seconds)
        removed = await cache.purge_expired()
        if removed:
            logger.info(f"Cache sweep removed {removed} expired entries")


def cache_key(*key_parts) -> str:
    """Join non-null parts with ':', e.g. ``profile:<account id>``"""
    return ":".join(str(part) for part in key_parts if part is not None)


# Process-wide cache, replaced at startup by init_cache
cache_manager: Optional[CacheManager] = None


def get_cache() -> CacheManager:
    global cache_manager
    if cache_manager is None:
        cache_manager = CacheManager(MemoryCacheBackend())
    return cache_manager


def init_cache(backend: Optional[CacheBackend] = None) -> CacheManager:
    """Install a new process-wide cache around `backend`"""
    global cache_manager
    cache_manager = CacheManager(backend or MemoryCacheBackend())
    return cache_manager

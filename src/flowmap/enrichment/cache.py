"""In-memory cache for IP enrichment records.

Many readers may look up entries at once; a write waits for in-progress
reads to finish and blocks new ones until it is done.
"""

import asyncio
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any

from flowmap.common.logging import get_logger
from flowmap.common.metrics import (
    ENRICHMENT_CACHE_HITS,
    ENRICHMENT_CACHE_MISSES,
    ENRICHMENT_CACHE_SIZE,
)
from flowmap.enrichment.models import IPEnrichment

logger = get_logger(__name__)


class ReadWriteLock:
    """Asyncio reader/writer lock with writer preference.

    Waiting writers hold off new readers so a steady stream of lookups
    cannot starve inserts.
    """

    def __init__(self) -> None:
        self._cond = asyncio.Condition()
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @property
    def readers(self) -> int:
        """Number of readers currently holding the lock."""
        return self._readers

    @property
    def writer_active(self) -> bool:
        """True while a writer holds the lock."""
        return self._writer

    @asynccontextmanager
    async def reading(self) -> AsyncIterator[None]:
        """Hold the lock shared."""
        async with self._cond:
            await self._cond.wait_for(
                lambda: not self._writer and self._writers_waiting == 0
            )
            self._readers += 1
        try:
            yield
        finally:
            async with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @asynccontextmanager
    async def writing(self) -> AsyncIterator[None]:
        """Hold the lock exclusively."""
        async with self._cond:
            self._writers_waiting += 1
            try:
                await self._cond.wait_for(
                    lambda: not self._writer and self._readers == 0
                )
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            async with self._cond:
                self._writer = False
                self._cond.notify_all()


@dataclass
class CacheEntry:
    """Cached record with optional expiry."""

    value: IPEnrichment
    expires_at: float | None = None

    def is_expired(self, now: float) -> bool:
        """Check if entry has expired."""
        return self.expires_at is not None and now >= self.expires_at


class EnrichmentCache:
    """IP string to IPEnrichment map shared by all enrichment tasks.

    Without a TTL entries live for the process lifetime. With one, an
    entry older than the TTL reads as a miss and is replaced by the next
    write.
    """

    def __init__(self, ttl: int | None = None, name: str = "enrichment") -> None:
        """Initialize cache.

        Args:
            ttl: Entry lifetime in seconds, None for no expiry.
            name: Cache name for logs and stats.
        """
        self._ttl = ttl
        self._name = name
        self._entries: dict[str, CacheEntry] = {}
        self._lock = ReadWriteLock()
        self._hits = 0
        self._misses = 0

    async def get(self, ip: str) -> IPEnrichment | None:
        """Get a cached record, or None when absent or expired."""
        async with self._lock.reading():
            entry = self._entries.get(ip)
            expired = entry is not None and entry.is_expired(time.monotonic())

        if entry is None or expired:
            self._misses += 1
            ENRICHMENT_CACHE_MISSES.inc()
            return None

        self._hits += 1
        ENRICHMENT_CACHE_HITS.inc()
        return entry.value

    async def peek(self, ip: str) -> IPEnrichment | None:
        """Like get(), but not counted in hit/miss statistics."""
        async with self._lock.reading():
            entry = self._entries.get(ip)
            if entry is None or entry.is_expired(time.monotonic()):
                return None
            return entry.value

    async def set(self, ip: str, record: IPEnrichment) -> None:
        """Store a record, replacing any previous one."""
        expires_at = time.monotonic() + self._ttl if self._ttl else None

        async with self._lock.writing():
            self._entries[ip] = CacheEntry(value=record, expires_at=expires_at)
            size = len(self._entries)

        ENRICHMENT_CACHE_SIZE.set(size)

    async def delete(self, ip: str) -> None:
        """Delete entry from cache."""
        async with self._lock.writing():
            self._entries.pop(ip, None)
            size = len(self._entries)

        ENRICHMENT_CACHE_SIZE.set(size)

    async def clear(self) -> None:
        """Clear all entries."""
        async with self._lock.writing():
            self._entries.clear()

        ENRICHMENT_CACHE_SIZE.set(0)

    async def cleanup_expired(self) -> int:
        """Remove expired entries.

        Returns:
            Number of entries removed.
        """
        now = time.monotonic()
        async with self._lock.writing():
            expired = [ip for ip, entry in self._entries.items() if entry.is_expired(now)]
            for ip in expired:
                del self._entries[ip]
            size = len(self._entries)

        if expired:
            ENRICHMENT_CACHE_SIZE.set(size)
            logger.debug(
                "Cleaned up expired cache entries",
                cache=self._name,
                removed=len(expired),
            )

        return len(expired)

    def size(self) -> int:
        """Get current cache size."""
        return len(self._entries)

    @property
    def stats(self) -> dict[str, Any]:
        """Get cache statistics."""
        total = self._hits + self._misses
        hit_rate = (self._hits / total * 100) if total > 0 else 0.0

        return {
            "name": self._name,
            "size": len(self._entries),
            "ttl": self._ttl,
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": round(hit_rate, 2),
        }

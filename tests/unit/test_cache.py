"""Unit tests for the enrichment cache."""

import asyncio
import time

import pytest

from flowmap.enrichment.cache import CacheEntry, EnrichmentCache, ReadWriteLock
from flowmap.enrichment.models import IPEnrichment


@pytest.mark.unit
class TestCacheEntry:
    """Test cases for CacheEntry."""

    def test_no_expiry(self):
        """Test entries without expiry never expire."""
        entry = CacheEntry(value=IPEnrichment(ip="8.8.8.8"))
        assert entry.is_expired(1e12) is False

    def test_expired(self):
        """Test entry is expired at its deadline."""
        entry = CacheEntry(value=IPEnrichment(ip="8.8.8.8"), expires_at=100.0)
        assert entry.is_expired(99.0) is False
        assert entry.is_expired(100.0) is True


@pytest.mark.unit
class TestEnrichmentCache:
    """Test cases for EnrichmentCache."""

    @pytest.fixture
    def cache(self) -> EnrichmentCache:
        return EnrichmentCache()

    @pytest.mark.asyncio
    async def test_get_miss(self, cache):
        """Test get returns None on cache miss."""
        assert await cache.get("8.8.8.8") is None

    @pytest.mark.asyncio
    async def test_set_and_get(self, cache):
        """Test a stored record is returned as the same instance."""
        record = IPEnrichment(ip="8.8.8.8", country="United States")
        await cache.set("8.8.8.8", record)

        assert await cache.get("8.8.8.8") is record
        assert cache.size() == 1

    @pytest.mark.asyncio
    async def test_set_replaces(self, cache):
        """Test a second set overwrites the first."""
        await cache.set("8.8.8.8", IPEnrichment(ip="8.8.8.8"))
        newer = IPEnrichment(ip="8.8.8.8", city="Mountain View")
        await cache.set("8.8.8.8", newer)

        assert await cache.get("8.8.8.8") is newer
        assert cache.size() == 1

    @pytest.mark.asyncio
    async def test_delete_and_clear(self, cache):
        """Test removal operations."""
        await cache.set("1.1.1.1", IPEnrichment(ip="1.1.1.1"))
        await cache.set("8.8.8.8", IPEnrichment(ip="8.8.8.8"))

        await cache.delete("1.1.1.1")
        assert await cache.get("1.1.1.1") is None
        assert cache.size() == 1

        await cache.clear()
        assert cache.size() == 0

    @pytest.mark.asyncio
    async def test_no_ttl_never_expires(self, cache):
        """Test entries live indefinitely without a TTL."""
        await cache.set("8.8.8.8", IPEnrichment(ip="8.8.8.8"))

        assert cache._entries["8.8.8.8"].expires_at is None
        assert await cache.get("8.8.8.8") is not None

    @pytest.mark.asyncio
    async def test_ttl_expiry(self):
        """Test entries older than the TTL read as misses."""
        cache = EnrichmentCache(ttl=60)
        await cache.set("8.8.8.8", IPEnrichment(ip="8.8.8.8"))
        await cache.set("1.1.1.1", IPEnrichment(ip="1.1.1.1"))

        entry = cache._entries["8.8.8.8"]
        assert entry.expires_at == pytest.approx(time.monotonic() + 60, abs=5)
        assert await cache.get("8.8.8.8") is not None

        entry.expires_at = time.monotonic() - 1
        assert await cache.get("8.8.8.8") is None
        assert await cache.cleanup_expired() == 1
        assert cache.size() == 1

    @pytest.mark.asyncio
    async def test_peek_not_counted(self, cache):
        """Test peek reads entries without touching statistics."""
        record = IPEnrichment(ip="8.8.8.8")
        await cache.set("8.8.8.8", record)

        assert await cache.peek("8.8.8.8") is record
        assert await cache.peek("1.1.1.1") is None
        assert cache.stats["hits"] == 0
        assert cache.stats["misses"] == 0

    @pytest.mark.asyncio
    async def test_stats(self, cache):
        """Test hit/miss accounting."""
        await cache.set("8.8.8.8", IPEnrichment(ip="8.8.8.8"))
        await cache.get("8.8.8.8")
        await cache.get("1.1.1.1")

        stats = cache.stats
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["hit_rate"] == 50.0
        assert stats["size"] == 1


@pytest.mark.unit
class TestReadWriteLock:
    """Test cases for ReadWriteLock."""

    @pytest.mark.asyncio
    async def test_readers_share(self):
        """Test several readers hold the lock at once."""
        lock = ReadWriteLock()
        entered = asyncio.Event()
        release = asyncio.Event()
        peak = 0

        async def reader():
            nonlocal peak
            async with lock.reading():
                peak = max(peak, lock.readers)
                if lock.readers == 3:
                    entered.set()
                await release.wait()

        tasks = [asyncio.create_task(reader()) for _ in range(3)]
        await asyncio.wait_for(entered.wait(), timeout=1)
        release.set()
        await asyncio.gather(*tasks)

        assert peak == 3
        assert lock.readers == 0

    @pytest.mark.asyncio
    async def test_writer_excludes_readers(self):
        """Test a writer waits for readers and blocks new ones."""
        lock = ReadWriteLock()
        events: list[str] = []
        release_reader = asyncio.Event()

        async def first_reader():
            async with lock.reading():
                events.append("read1-start")
                await release_reader.wait()
                events.append("read1-end")

        async def writer():
            async with lock.writing():
                assert lock.readers == 0
                events.append("write")

        async def second_reader():
            async with lock.reading():
                assert lock.writer_active is False
                events.append("read2")

        r1 = asyncio.create_task(first_reader())
        await asyncio.sleep(0)
        w = asyncio.create_task(writer())
        await asyncio.sleep(0)
        r2 = asyncio.create_task(second_reader())
        await asyncio.sleep(0)

        # Writer is queued, so the second reader must not have entered
        assert events == ["read1-start"]

        release_reader.set()
        await asyncio.gather(r1, w, r2)

        assert events == ["read1-start", "read1-end", "write", "read2"]

    @pytest.mark.asyncio
    async def test_writers_are_exclusive(self):
        """Test two writers never overlap."""
        lock = ReadWriteLock()
        active = 0
        peak = 0

        async def writer():
            nonlocal active, peak
            async with lock.writing():
                active += 1
                peak = max(peak, active)
                await asyncio.sleep(0.01)
                active -= 1

        await asyncio.gather(*(writer() for _ in range(5)))

        assert peak == 1

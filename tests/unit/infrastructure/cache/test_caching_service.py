import time

import pytest

from contentcli.domain.models.research import RedditTopic
from contentcli.infrastructure.cache.caching_service import DiskCachingService, make_cache_key


@pytest.fixture
def cache(tmp_path):
    service = DiskCachingService(tmp_path / "cache")
    yield service
    service.close()


def test_cache_key_is_prefixed_hash():
    key = make_cache_key("research", "soc 2 cost")
    assert key.startswith("research-")
    assert len(key) == len("research-") + 64
    assert key == make_cache_key("research", "soc 2 cost")
    assert key != make_cache_key("serp", "soc 2 cost")


@pytest.mark.asyncio
async def test_set_and_get(cache):
    topic = RedditTopic(topic="soc 2", pain_points=["audit problem"])
    await cache.set("research", "soc 2", topic)

    assert await cache.get("research", "soc 2") == topic
    assert await cache.get("research", "other") is None
    assert await cache.get("serp", "soc 2") is None


@pytest.mark.asyncio
async def test_disk_level_survives_new_instance(tmp_path):
    first = DiskCachingService(tmp_path / "cache")
    await first.set("research", "hipaa", {"volume": 1000})
    first.close()

    second = DiskCachingService(tmp_path / "cache")
    try:
        assert await second.get("research", "hipaa") == {"volume": 1000}
    finally:
        second.close()


@pytest.mark.asyncio
async def test_expired_entry_is_a_miss(cache):
    await cache.set("research", "short", "value", ttl=1)
    time.sleep(1.1)
    assert await cache.get("research", "short") is None


@pytest.mark.asyncio
async def test_delete(cache):
    await cache.set("research", "k", "v")
    await cache.delete("research", "k")
    assert await cache.get("research", "k") is None


@pytest.mark.asyncio
async def test_clear_by_prefix_keeps_other_prefixes(cache):
    await cache.set("research", "a", 1)
    await cache.set("research", "b", 2)
    await cache.set("trending", "c", 3)

    assert await cache.clear("research") == 2
    assert await cache.get("research", "a") is None
    assert await cache.get("trending", "c") == 3


@pytest.mark.asyncio
async def test_clear_all(cache):
    await cache.set("research", "a", 1)
    await cache.set("trending", "b", 2)

    assert await cache.clear() == 2
    assert cache.stats()["total"] == 0
    assert cache.stats()["memory_entries"] == 0


@pytest.mark.asyncio
async def test_cleanup_removes_expired(cache):
    await cache.set("research", "old", 1, ttl=1)
    await cache.set("research", "fresh", 2)
    time.sleep(1.1)

    assert await cache.cleanup() == 1
    assert cache.stats()["total"] == 1


@pytest.mark.asyncio
async def test_stats(cache):
    await cache.set("research", "a", "x" * 100)
    stats = cache.stats()
    assert stats["total"] == 1
    assert stats["size_bytes"] > 0


@pytest.mark.asyncio
async def test_disabled_cache_is_a_no_op(tmp_path):
    cache = DiskCachingService(tmp_path / "cache", enabled=False)
    try:
        await cache.set("research", "a", 1)
        assert await cache.get("research", "a") is None
        assert cache.stats()["total"] == 0
    finally:
        cache.close()


@pytest.mark.asyncio
async def test_memory_level_is_bounded(tmp_path):
    cache = DiskCachingService(tmp_path / "cache", l1_max_size=2)
    try:
        for i in range(5):
            await cache.set("research", str(i), i)
        assert cache.stats()["memory_entries"] == 2
        # Evicted from memory but still on disk
        assert await cache.get("research", "0") == 0
    finally:
        cache.close()

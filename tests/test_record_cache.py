"""Tests for record cache backends."""

import pickle
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from file_uploader.config import MemoryCacheConfig, NullCacheConfig, RedisCacheConfig
from file_uploader.core.files import cache as cache_module
from file_uploader.core.files.cache import (
    MemoryRecordCache,
    NullRecordCache,
    RedisRecordCache,
    create_record_cache,
)
from file_uploader.core.files.records import FileRecord


def make_record(file_id: str = "file-1", data: bytes = b"payload") -> FileRecord:
    return FileRecord(id=file_id, name=f"{file_id}.txt", type="text/plain", data=data)


@pytest.fixture
def mock_redis():
    """Create a mock redis.asyncio client."""
    client = AsyncMock()
    client.ping = AsyncMock(return_value=True)
    client.get = AsyncMock(return_value=None)
    client.set = AsyncMock(return_value=True)
    client.delete = AsyncMock(return_value=1)
    client.aclose = AsyncMock()
    return client


# -----------------------------------------------------------------------------
# Memory cache
# -----------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_memory_cache_put_get_evict():
    cache = MemoryRecordCache()
    record = make_record()

    assert await cache.get("file-1") is None
    await cache.put("file-1", record)
    assert await cache.get("file-1") == record

    await cache.evict("file-1")
    assert await cache.get("file-1") is None

    stats = await cache.stats()
    assert stats["hits"] == 1
    assert stats["misses"] == 2
    assert stats["evictions"] == 1
    assert stats["size"] == 0


@pytest.mark.asyncio
async def test_memory_cache_evict_missing_key_is_noop():
    cache = MemoryRecordCache()
    await cache.evict("nothing")
    assert (await cache.stats())["evictions"] == 0


@pytest.mark.asyncio
async def test_memory_cache_max_size_drops_oldest():
    cache = MemoryRecordCache(max_size=2)
    for file_id in ("a", "b", "c"):
        await cache.put(file_id, make_record(file_id))

    assert len(cache) == 2
    assert await cache.get("a") is None
    assert await cache.get("b") is not None
    assert await cache.get("c") is not None


@pytest.mark.asyncio
async def test_memory_cache_ttl_expiry(monkeypatch):
    now = [1000.0]
    monkeypatch.setattr(cache_module, "time", SimpleNamespace(monotonic=lambda: now[0]))

    cache = MemoryRecordCache(ttl_seconds=10)
    await cache.put("file-1", make_record())

    now[0] += 5
    assert await cache.get("file-1") is not None

    now[0] += 10
    assert await cache.get("file-1") is None
    assert len(cache) == 0


@pytest.mark.asyncio
async def test_memory_cache_clear():
    cache = MemoryRecordCache()
    await cache.put("a", make_record("a"))
    await cache.put("b", make_record("b"))

    await cache.clear()

    assert len(cache) == 0


@pytest.mark.asyncio
async def test_null_cache_never_holds_records():
    cache = NullRecordCache()
    await cache.put("file-1", make_record())
    assert await cache.get("file-1") is None


# -----------------------------------------------------------------------------
# Redis cache
# -----------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_redis_cache_hit(mock_redis):
    record = make_record()
    mock_redis.get.return_value = pickle.dumps(record)

    cache = RedisRecordCache(client=mock_redis, key_prefix="test:")
    await cache.initialize()

    assert await cache.get("file-1") == record
    mock_redis.get.assert_awaited_once_with("test:file-1")


@pytest.mark.asyncio
async def test_redis_cache_miss(mock_redis):
    cache = RedisRecordCache(client=mock_redis)
    await cache.initialize()

    assert await cache.get("file-1") is None
    assert (await cache.stats())["misses"] == 1


@pytest.mark.asyncio
async def test_redis_cache_put_without_expiry(mock_redis):
    cache = RedisRecordCache(client=mock_redis, key_prefix="test:")
    await cache.initialize()
    record = make_record()

    await cache.put("file-1", record)

    mock_redis.set.assert_awaited_once_with("test:file-1", pickle.dumps(record), ex=None)


@pytest.mark.asyncio
async def test_redis_cache_evict(mock_redis):
    cache = RedisRecordCache(client=mock_redis, key_prefix="test:")
    await cache.initialize()

    await cache.evict("file-1")

    mock_redis.delete.assert_awaited_once_with("test:file-1")
    assert (await cache.stats())["evictions"] == 1


@pytest.mark.asyncio
async def test_redis_cache_get_retries_then_misses(mock_redis):
    mock_redis.get.side_effect = RedisConnectionError("connection refused")

    cache = RedisRecordCache(client=mock_redis, max_retries=2, retry_delay=0)
    await cache.initialize()

    assert await cache.get("file-1") is None
    assert mock_redis.get.await_count == 3
    assert (await cache.stats())["errors"] == 3


@pytest.mark.asyncio
async def test_redis_cache_failed_evict_makes_next_read_miss(mock_redis):
    """After an eviction that never lands, the old entry is not served."""
    mock_redis.delete.side_effect = RedisConnectionError("connection reset")
    mock_redis.get.return_value = pickle.dumps(make_record(data=b"old"))

    cache = RedisRecordCache(client=mock_redis, max_retries=2, retry_delay=0)
    await cache.initialize()

    await cache.evict("file-1")

    assert mock_redis.delete.await_count == 3
    assert (await cache.stats())["errors"] == 3
    assert await cache.get("file-1") is None
    mock_redis.get.assert_not_called()

    # Writing a fresh record over the entry makes it readable again
    fresh = make_record(data=b"new")
    mock_redis.get.return_value = pickle.dumps(fresh)
    await cache.put("file-1", fresh)
    assert await cache.get("file-1") == fresh


@pytest.mark.asyncio
async def test_redis_cache_evict_retries_until_it_succeeds(mock_redis):
    mock_redis.delete.side_effect = [RedisConnectionError("connection reset"), 1]

    cache = RedisRecordCache(client=mock_redis, retry_delay=0)
    await cache.initialize()

    await cache.evict("file-1")

    stats = await cache.stats()
    assert stats["evictions"] == 1
    assert stats["errors"] == 1
    mock_redis.get.return_value = pickle.dumps(make_record())
    assert await cache.get("file-1") == make_record()


@pytest.mark.asyncio
async def test_redis_cache_unreadable_entry_is_a_miss(mock_redis):
    mock_redis.get.return_value = b"not-a-pickle"

    cache = RedisRecordCache(client=mock_redis, key_prefix="test:")
    await cache.initialize()

    assert await cache.get("file-1") is None
    mock_redis.delete.assert_awaited_once_with("test:file-1")
    stats = await cache.stats()
    assert stats["errors"] == 1
    assert stats["misses"] == 1


@pytest.mark.asyncio
async def test_redis_cache_disabled_when_unreachable(mock_redis):
    mock_redis.ping.side_effect = RedisConnectionError("connection refused")

    cache = RedisRecordCache(client=mock_redis)
    await cache.initialize()

    assert cache.redis is None
    assert await cache.get("file-1") is None
    await cache.put("file-1", make_record())
    mock_redis.set.assert_not_called()


@pytest.mark.asyncio
async def test_redis_cache_close(mock_redis):
    cache = RedisRecordCache(client=mock_redis)
    await cache.initialize()

    await cache.close()

    mock_redis.aclose.assert_awaited_once()


# -----------------------------------------------------------------------------
# Factory
# -----------------------------------------------------------------------------


def test_create_record_cache():
    memory = create_record_cache(MemoryCacheConfig(max_size=10))
    assert isinstance(memory, MemoryRecordCache)

    redis_cache = create_record_cache(RedisCacheConfig(host="cache", port=6380, db=2))
    assert isinstance(redis_cache, RedisRecordCache)
    assert redis_cache.redis_url == "redis://cache:6380/2"

    assert isinstance(create_record_cache(NullCacheConfig()), NullRecordCache)

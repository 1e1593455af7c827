"""Read-through cache backends for file records.

Supports multiple backends:
- In-process memory (single worker, development)
- Redis (shared between workers and replicas)
- Null (caching disabled)

Cache failures are logged and treated as misses; they never fail a file
operation.
"""

import asyncio
import pickle
import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from typing import Any

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from file_uploader.config import (
    CacheBackendConfig,
    MemoryCacheConfig,
    NullCacheConfig,
    RedisCacheConfig,
)
from file_uploader.core.files.records import FileRecord
from file_uploader.observability.logging import get_logger

logger = get_logger(__name__)


class RecordCache(ABC):
    """Abstract base class for file record caches, keyed by file ID."""

    def __init__(self) -> None:
        self._stats: dict[str, int] = {
            "hits": 0,
            "misses": 0,
            "errors": 0,
            "puts": 0,
            "evictions": 0,
        }

    async def initialize(self) -> None:
        """Open connections, if the backend has any."""

    @abstractmethod
    async def get(self, file_id: str) -> FileRecord | None:
        """Return the cached record, or None on a miss."""
        ...

    @abstractmethod
    async def put(self, file_id: str, record: FileRecord) -> None:
        ...

    @abstractmethod
    async def evict(self, file_id: str) -> None:
        """Drop the entry for ``file_id`` if present."""
        ...

    @abstractmethod
    async def clear(self) -> None:
        ...

    async def stats(self) -> dict[str, int | float]:
        """Get cache statistics."""
        stats: dict[str, int | float] = dict(self._stats)
        total_requests = stats["hits"] + stats["misses"]
        stats["hit_rate"] = stats["hits"] / total_requests if total_requests else 0.0
        return stats

    async def close(self) -> None:
        """Close any open connections."""


class NullRecordCache(RecordCache):
    """Cache that never holds anything."""

    async def get(self, file_id: str) -> FileRecord | None:
        self._stats["misses"] += 1
        return None

    async def put(self, file_id: str, record: FileRecord) -> None:
        pass

    async def evict(self, file_id: str) -> None:
        pass

    async def clear(self) -> None:
        pass


class MemoryRecordCache(RecordCache):
    """Process-wide in-memory cache.

    Entries live until evicted. ``max_size`` bounds the cache by dropping the
    oldest entry; ``ttl_seconds`` adds lazy expiry on read.
    """

    def __init__(
        self,
        max_size: int | None = None,
        ttl_seconds: int | None = None,
    ):
        super().__init__()
        self._max_size = max_size
        self._ttl = ttl_seconds
        # file_id -> (record, expires_at)
        self._entries: OrderedDict[str, tuple[FileRecord, float | None]] = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    async def get(self, file_id: str) -> FileRecord | None:
        entry = self._entries.get(file_id)
        if entry is not None:
            record, expires_at = entry
            if expires_at is None or expires_at > time.monotonic():
                self._stats["hits"] += 1
                return record
            del self._entries[file_id]

        self._stats["misses"] += 1
        return None

    async def put(self, file_id: str, record: FileRecord) -> None:
        expires_at = time.monotonic() + self._ttl if self._ttl else None
        self._entries[file_id] = (record, expires_at)
        self._entries.move_to_end(file_id)
        self._stats["puts"] += 1

        if self._max_size is not None:
            while len(self._entries) > self._max_size:
                self._entries.popitem(last=False)

    async def evict(self, file_id: str) -> None:
        if self._entries.pop(file_id, None) is not None:
            self._stats["evictions"] += 1

    async def clear(self) -> None:
        self._entries.clear()

    async def stats(self) -> dict[str, int | float]:
        stats = await super().stats()
        stats["size"] = len(self._entries)
        return stats


class RedisRecordCache(RecordCache):
    """Redis-backed cache shared by every worker.

    Records are pickled under ``<key_prefix><file_id>``. If Redis cannot be
    reached during ``initialize`` the cache runs disabled (every get misses).
    Unreadable entries are dropped and read as misses. An id whose eviction
    fails keeps missing until a fresh record is written over it.
    """

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379",
        *,
        key_prefix: str = "file_uploader:file:",
        ttl_seconds: int | None = None,
        max_retries: int = 3,
        retry_delay: float = 0.1,
        client: Any = None,
    ):
        super().__init__()
        self.redis_url = redis_url
        self.key_prefix = key_prefix
        self.ttl_seconds = ttl_seconds
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.redis: aioredis.Redis | None = client
        # Ids whose eviction failed; their entries may still hold old records
        self._stale_ids: set[str] = set()

    async def initialize(self) -> None:
        """Initialize Redis connection."""
        try:
            if self.redis is None:
                self.redis = aioredis.from_url(
                    self.redis_url,
                    decode_responses=False,
                    retry_on_timeout=True,
                    socket_connect_timeout=5,
                    socket_timeout=5,
                    health_check_interval=30,
                )

            await self.redis.ping()
            logger.info("Record cache connected", redis_url=self.redis_url)

        except (RedisError, OSError) as e:
            logger.error("Failed to initialize record cache", error=str(e))
            # Continue without caching if Redis is unavailable
            self.redis = None

    def _make_key(self, file_id: str) -> str:
        return f"{self.key_prefix}{file_id}"

    async def get(self, file_id: str) -> FileRecord | None:
        if not self.redis:
            self._stats["misses"] += 1
            return None

        # A failed eviction may have left a replaced record behind
        if file_id in self._stale_ids:
            self._stats["misses"] += 1
            logger.debug("Cache miss (stale)", file_id=file_id)
            return None

        key = self._make_key(file_id)

        for attempt in range(self.max_retries + 1):
            try:
                value = await self.redis.get(key)
            except RedisError as e:
                self._stats["errors"] += 1
                logger.warning(
                    "Cache get error", key=key, attempt=attempt + 1, error=str(e)
                )
                if attempt < self.max_retries:
                    await asyncio.sleep(self.retry_delay * (2**attempt))
                continue

            if value is None:
                self._stats["misses"] += 1
                logger.debug("Cache miss", key=key)
                return None

            try:
                record = pickle.loads(value)
            except (
                pickle.UnpicklingError,
                AttributeError,
                EOFError,
                TypeError,
                ValueError,
            ) as e:
                self._stats["errors"] += 1
                self._stats["misses"] += 1
                logger.warning("Discarding unreadable cache entry", key=key, error=str(e))
                await self.evict(file_id)
                return None

            self._stats["hits"] += 1
            logger.debug("Cache hit", key=key)
            return record

        self._stats["misses"] += 1
        return None

    async def put(self, file_id: str, record: FileRecord) -> None:
        if not self.redis:
            return

        key = self._make_key(file_id)
        payload = pickle.dumps(record)

        for attempt in range(self.max_retries + 1):
            try:
                await self.redis.set(key, payload, ex=self.ttl_seconds)
                self._stats["puts"] += 1
                # The fresh record has replaced whatever was left behind
                self._stale_ids.discard(file_id)
                return
            except RedisError as e:
                self._stats["errors"] += 1
                logger.warning(
                    "Cache set error", key=key, attempt=attempt + 1, error=str(e)
                )
                if attempt < self.max_retries:
                    await asyncio.sleep(self.retry_delay * (2**attempt))

    async def evict(self, file_id: str) -> None:
        """Delete the entry, retrying like ``put``.

        If every attempt fails the id is remembered as stale and reads of it
        miss until a later ``put`` overwrites the entry.
        """
        if not self.redis:
            return

        key = self._make_key(file_id)

        for attempt in range(self.max_retries + 1):
            try:
                if await self.redis.delete(key):
                    self._stats["evictions"] += 1
                    logger.debug("Cache evict", key=key)
                self._stale_ids.discard(file_id)
                return
            except RedisError as e:
                self._stats["errors"] += 1
                logger.warning(
                    "Cache evict error", key=key, attempt=attempt + 1, error=str(e)
                )
                if attempt < self.max_retries:
                    await asyncio.sleep(self.retry_delay * (2**attempt))

        self._stale_ids.add(file_id)
        logger.error("Cache entry could not be evicted", key=key)

    async def clear(self) -> None:
        """Delete every key under this cache's prefix."""
        if not self.redis:
            return

        try:
            keys = [key async for key in self.redis.scan_iter(match=f"{self.key_prefix}*")]
            if keys:
                deleted = await self.redis.delete(*keys)
                logger.info("Cache cleared", prefix=self.key_prefix, deleted=deleted)
            self._stale_ids.clear()
        except RedisError as e:
            self._stats["errors"] += 1
            logger.warning("Cache clear error", prefix=self.key_prefix, error=str(e))

    async def stats(self) -> dict[str, int | float]:
        stats = await super().stats()
        stats["connected"] = int(self.redis is not None)
        return stats

    async def close(self) -> None:
        """Close Redis connection."""
        if self.redis:
            await self.redis.aclose()
            logger.info("Record cache closed")


def create_record_cache(config: CacheBackendConfig) -> RecordCache:
    """Factory function to create a record cache from config."""
    match config:
        case MemoryCacheConfig():
            return MemoryRecordCache(
                max_size=config.max_size,
                ttl_seconds=config.ttl_seconds,
            )
        case RedisCacheConfig():
            return RedisRecordCache(
                redis_url=config.url,
                key_prefix=config.key_prefix,
                ttl_seconds=config.ttl_seconds,
            )
        case NullCacheConfig():
            return NullRecordCache()
        case _:
            raise ValueError(f"Unknown cache backend type: {type(config)}")

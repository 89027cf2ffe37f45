"""
Redis-backed cache entry store.

Every logical key is stored at ``cache:<key>`` as a hash::

    value       JSON text of the cached value
    created_at  ISO-8601, written once by put/put_with_ttl
    updated_at  ISO-8601, rewritten by every mutation

Reads go through an in-process ``LocalCache`` that mutations keep in step
(write-through). Redis stays the source of truth; the local layer only saves
round trips for repeated reads. Entries with an expiry are never held
locally, so a key Redis has expired is never served from memory.
"""

import json
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from operator import attrgetter
from typing import Any, Dict, Optional, Set, TYPE_CHECKING

import redis.asyncio as redis
from redis.exceptions import RedisError

from shared.errors import NotFoundError, StoreUnavailableError
from shared.logging import get_logger
from shared.memoize import LocalCache, Uncached, cache_evict, cache_put, cacheable
from ..models import CacheEntry

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


CACHE_KEY_PREFIX = "cache:"

# PTTL sentinels, returned unchanged to callers
TTL_NO_EXPIRY = -1
TTL_KEY_MISSING = -2


def _logical_key(key: str, *args, **kwargs) -> str:
    return key


class RedisCacheStore:
    """Namespaced CRUD and TTL access to cache entries in Redis."""

    def __init__(
        self,
        client: redis.Redis,
        local_cache: Optional[LocalCache] = None,
        metrics: Optional["MetricsCollector"] = None,
        prefix: str = CACHE_KEY_PREFIX
    ):
        self.redis = client
        self.prefix = prefix
        self.metrics = metrics
        self.local_cache = local_cache or LocalCache("cache", metrics=metrics)
        self.logger = get_logger("cache.store")

        self.get = cacheable(self.local_cache, key_func=_logical_key)(self._get)
        self.put = cache_put(
            self.local_cache, key_func=attrgetter("key"), value_func=attrgetter("value")
        )(self._put)
        self.update = cache_put(self.local_cache, key_func=_logical_key)(self._update)
        self.put_with_ttl = cache_evict(self.local_cache, key_func=_logical_key)(self._put_with_ttl)
        self.delete = cache_evict(self.local_cache, key_func=_logical_key)(self._delete)
        self.clear_all = cache_evict(self.local_cache, all_entries=True)(self._clear_all)

    def _redis_key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    @asynccontextmanager
    async def _store_call(self, operation: str, key: Optional[str] = None):
        """Translate client failures into ``StoreUnavailableError``."""
        try:
            if self.metrics:
                with self.metrics.time_store_operation(operation):
                    yield
            else:
                yield
        except RedisError as e:
            self.logger.error("Store call failed", operation=operation, key=key, error=str(e))
            raise StoreUnavailableError(operation, str(e), key=key) from e

    @staticmethod
    def _encode(value: Any) -> str:
        return json.dumps(value)

    @staticmethod
    def _decode(raw: str) -> Any:
        return json.loads(raw)

    def _entry_mapping(self, entry: CacheEntry) -> Dict[str, str]:
        return {
            "value": self._encode(entry.value),
            "created_at": entry.created_at.isoformat(),
            "updated_at": entry.updated_at.isoformat(),
        }

    async def _get(self, key: str) -> Optional[Any]:
        """Get the stored value, or None if the key is absent."""
        self.logger.info("Retrieving value", key=key)
        redis_key = self._redis_key(key)

        async with self._store_call("retrieve value", key):
            async with self.redis.pipeline(transaction=True) as pipe:
                pipe.hget(redis_key, "value")
                pipe.pttl(redis_key)
                raw, ttl_ms = await pipe.execute()

        if raw is None:
            return None

        value = self._decode(raw)
        if ttl_ms != TTL_NO_EXPIRY:
            return Uncached(value)
        return value

    async def get_entry(self, key: str) -> Optional[CacheEntry]:
        """Get the full entry including timestamps."""
        async with self._store_call("retrieve entry", key):
            fields = await self.redis.hgetall(self._redis_key(key))

        if not fields or "value" not in fields:
            return None

        updated_at = fields.get("updated_at") or fields.get("created_at")
        return CacheEntry(
            key=key,
            value=self._decode(fields["value"]),
            created_at=datetime.fromisoformat(fields.get("created_at") or updated_at),
            updated_at=datetime.fromisoformat(updated_at)
        )

    async def exists(self, key: str) -> bool:
        async with self._store_call("check key", key):
            return bool(await self.redis.exists(self._redis_key(key)))

    async def _put(self, entry: CacheEntry) -> CacheEntry:
        """Store ``entry``, replacing any previous value and expiry."""
        self.logger.info("Storing value", key=entry.key)
        redis_key = self._redis_key(entry.key)

        async with self._store_call("store value", entry.key):
            async with self.redis.pipeline(transaction=True) as pipe:
                pipe.delete(redis_key)
                pipe.hset(redis_key, mapping=self._entry_mapping(entry))
                await pipe.execute()

        return entry

    async def _put_with_ttl(self, key: str, value: Any, ttl: timedelta) -> None:
        """Store a value that Redis evicts once ``ttl`` has elapsed."""
        ttl_ms = int(ttl.total_seconds() * 1000)
        if ttl_ms <= 0:
            raise ValueError("ttl must be at least one millisecond")

        self.logger.info("Storing value with TTL", key=key, ttl_ms=ttl_ms)
        entry = CacheEntry(key=key, value=value)
        redis_key = self._redis_key(key)

        async with self._store_call("store value with TTL", key):
            async with self.redis.pipeline(transaction=True) as pipe:
                pipe.delete(redis_key)
                pipe.hset(redis_key, mapping=self._entry_mapping(entry))
                pipe.pexpire(redis_key, ttl_ms)
                await pipe.execute()

    async def _update(self, key: str, value: Any) -> Any:
        """Overwrite the value of an existing key; TTL and created_at are kept."""
        self.logger.info("Updating value", key=key)
        redis_key = self._redis_key(key)

        async with self._store_call("update value", key):
            ttl_ms = await self.redis.pttl(redis_key)
        if ttl_ms == TTL_KEY_MISSING:
            raise NotFoundError(key)

        entry = CacheEntry(key=key, value=value)
        mapping = self._entry_mapping(entry)
        del mapping["created_at"]

        async with self._store_call("update value", key):
            await self.redis.hset(redis_key, mapping=mapping)

        if ttl_ms != TTL_NO_EXPIRY:
            return Uncached(value)
        return value

    async def _delete(self, key: str) -> bool:
        """Delete a key; False when there was nothing to delete."""
        self.logger.info("Deleting value", key=key)
        async with self._store_call("delete value", key):
            removed = await self.redis.delete(self._redis_key(key))

        self.logger.debug("Deleted key", key=key, result=bool(removed))
        return removed > 0

    async def list_keys(self) -> Set[str]:
        """All logical keys currently stored under the prefix."""
        async with self._store_call("retrieve keys"):
            redis_keys = await self.redis.keys(f"{self.prefix}*")

        return {k[len(self.prefix):] for k in redis_keys}

    async def _clear_all(self) -> int:
        """Delete every key under the prefix."""
        self.logger.info("Clearing all cache entries")
        async with self._store_call("clear cache"):
            redis_keys = await self.redis.keys(f"{self.prefix}*")
            if not redis_keys:
                return 0
            removed = await self.redis.delete(*redis_keys)

        self.logger.info("Cleared cache entries", count=removed)
        return removed

    async def get_ttl_remaining(self, key: str) -> int:
        """Milliseconds until expiry; -1 without expiry, -2 when absent."""
        async with self._store_call("get expiration", key):
            return await self.redis.pttl(self._redis_key(key))

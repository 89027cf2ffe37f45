"""
Test helper functions and factory methods for the Redis cache access layer.
"""

import fnmatch
import time
from typing import Any, Dict, List, Optional, Tuple

from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import ResponseError


WRONGTYPE = "WRONGTYPE Operation against a key holding the wrong kind of value"


class InMemoryRedis:
    """In-memory stand-in for ``redis.asyncio.Redis`` with decoded responses.

    Covers the commands the cache service issues, including PTTL sentinels,
    glob patterns for KEYS and queued pipelines. Set ``unavailable`` to make
    every command fail like a refused connection.
    """

    def __init__(self, unavailable: bool = False):
        self.unavailable = unavailable
        self.calls: List[str] = []
        self._data: Dict[str, Tuple[str, Any]] = {}
        self._expires_at: Dict[str, float] = {}

    def _command(self, name: str) -> None:
        self.calls.append(name)
        if self.unavailable:
            raise RedisConnectionError("Error 111 connecting to localhost:6379. Connection refused.")

    def _alive(self, key: str) -> bool:
        deadline = self._expires_at.get(key)
        if deadline is not None and time.monotonic() >= deadline:
            self._data.pop(key, None)
            self._expires_at.pop(key, None)
        return key in self._data

    def _hash(self, key: str, create: bool = False) -> Optional[Dict[str, str]]:
        if not self._alive(key):
            if not create:
                return None
            self._data[key] = ("hash", {})
        kind, payload = self._data[key]
        if kind != "hash":
            raise ResponseError(WRONGTYPE)
        return payload

    def call_count(self, name: str) -> int:
        return self.calls.count(name)

    async def ping(self) -> bool:
        self._command("ping")
        return True

    async def set(self, name: str, value: Any, px: Optional[int] = None) -> bool:
        self._command("set")
        self._data[name] = ("string", str(value))
        self._expires_at.pop(name, None)
        if px is not None:
            self._expires_at[name] = time.monotonic() + px / 1000
        return True

    async def get(self, name: str) -> Optional[str]:
        self._command("get")
        if not self._alive(name):
            return None
        kind, payload = self._data[name]
        if kind != "string":
            raise ResponseError(WRONGTYPE)
        return payload

    async def hset(self, name: str, key: Optional[str] = None, value: Any = None,
                   mapping: Optional[Dict[str, Any]] = None) -> int:
        self._command("hset")
        fields = dict(mapping or {})
        if key is not None:
            fields[key] = value
        target = self._hash(name, create=True)
        added = len([f for f in fields if f not in target])
        target.update({f: str(v) for f, v in fields.items()})
        return added

    async def hget(self, name: str, key: str) -> Optional[str]:
        self._command("hget")
        target = self._hash(name)
        return None if target is None else target.get(key)

    async def hgetall(self, name: str) -> Dict[str, str]:
        self._command("hgetall")
        target = self._hash(name)
        return {} if target is None else dict(target)

    async def exists(self, *names: str) -> int:
        self._command("exists")
        return sum(1 for name in names if self._alive(name))

    async def delete(self, *names: str) -> int:
        self._command("delete")
        removed = 0
        for name in names:
            if self._alive(name):
                del self._data[name]
                self._expires_at.pop(name, None)
                removed += 1
        return removed

    async def keys(self, pattern: str = "*") -> List[str]:
        self._command("keys")
        return [k for k in list(self._data) if self._alive(k) and fnmatch.fnmatchcase(k, pattern)]

    async def pexpire(self, name: str, time_ms: int) -> bool:
        self._command("pexpire")
        if not self._alive(name):
            return False
        self._expires_at[name] = time.monotonic() + time_ms / 1000
        return True

    async def pttl(self, name: str) -> int:
        self._command("pttl")
        if not self._alive(name):
            return -2
        deadline = self._expires_at.get(name)
        if deadline is None:
            return -1
        return max(0, int((deadline - time.monotonic()) * 1000))

    async def dbsize(self) -> int:
        self._command("dbsize")
        return len([k for k in list(self._data) if self._alive(k)])

    async def aclose(self) -> None:
        self.calls.append("aclose")

    def pipeline(self, transaction: bool = True) -> "InMemoryPipeline":
        return InMemoryPipeline(self)


class InMemoryPipeline:
    """Queues commands and runs them against ``InMemoryRedis`` on execute."""

    def __init__(self, client: InMemoryRedis):
        self.client = client
        self._queued: List[Tuple[str, tuple, dict]] = []

    async def __aenter__(self) -> "InMemoryPipeline":
        return self

    async def __aexit__(self, *exc_info) -> None:
        self._queued.clear()

    def _queue(self, name: str, *args, **kwargs) -> "InMemoryPipeline":
        self._queued.append((name, args, kwargs))
        return self

    def delete(self, *names: str) -> "InMemoryPipeline":
        return self._queue("delete", *names)

    def hset(self, name: str, key: Optional[str] = None, value: Any = None,
             mapping: Optional[Dict[str, Any]] = None) -> "InMemoryPipeline":
        return self._queue("hset", name, key, value, mapping=mapping)

    def pexpire(self, name: str, time_ms: int) -> "InMemoryPipeline":
        return self._queue("pexpire", name, time_ms)

    def hget(self, name: str, key: str) -> "InMemoryPipeline":
        return self._queue("hget", name, key)

    def pttl(self, name: str) -> "InMemoryPipeline":
        return self._queue("pttl", name)

    async def execute(self) -> List[Any]:
        self.client._command("multi")
        results = []
        for name, args, kwargs in self._queued:
            results.append(await getattr(self.client, name)(*args, **kwargs))
        self._queued.clear()
        return results


class CacheDataFactory:
    """Factory for creating test data."""

    @staticmethod
    def create_cache_values() -> Dict[str, Any]:
        """Keys mapped to values of every JSON shape."""
        return {
            "user:123": "John Doe",
            "session:456": {"user_id": "123", "roles": ["user", "analyst"]},
            "counter": 42,
            "ratio": 0.75,
            "flags": [True, False, True],
            "enabled": False,
        }


class CacheTestEnvironment:
    """Test environment configuration."""

    @staticmethod
    def get_mock_config() -> Dict[str, Any]:
        """Get mock environment configuration."""
        return {
            "CACHE_ENV": "test",
            "CACHE_LOG_LEVEL": "debug",
            "CACHE_REDIS_URL": "redis://localhost:6379/0",
            "CACHE_LOCAL_CACHE_TTL_SECONDS": "30",
            "CACHE_CATALOG_DELAY_SECONDS": "0",
        }


cache_data_factory = CacheDataFactory()
cache_test_environment = CacheTestEnvironment()

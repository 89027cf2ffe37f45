"""
In-process memoization with explicit invalidation.

Wrappers take a ``LocalCache`` and a key-derivation function and are
applied where the wrapped coroutine is wired up, e.g.::

    self.get = cacheable(local, key_func=lambda key: key)(self._get)
    self.delete = cache_evict(local, key_func=lambda key: key)(self._delete)

``cacheable`` serves hits from the local cache, ``cache_put`` stores the
call's result after it succeeds, and ``cache_evict`` drops one entry (or all
of them) after the call succeeds. A failing call never touches the cache.

A wrapped call returns ``Uncached(value)`` to hand back ``value`` while
keeping it out of the cache. A read that overlaps any write to the region is
not remembered, so a slow read cannot bring back a value the write replaced.
"""

import functools
from typing import Any, Awaitable, Callable, Dict, Hashable, Optional, TYPE_CHECKING

from cachetools import TTLCache

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


KeyFunc = Callable[..., Hashable]
AsyncFunc = Callable[..., Awaitable[Any]]

_MISSING = object()


class Uncached:
    """Result marker: return ``value`` to the caller without caching it."""

    __slots__ = ("value",)

    def __init__(self, value: Any):
        self.value = value


def _identity(result: Any) -> Any:
    return result


class LocalCache:
    """Named, size- and age-bounded in-process cache region."""

    def __init__(
        self,
        name: str,
        max_entries: int = 1024,
        ttl_seconds: float = 60.0,
        metrics: Optional["MetricsCollector"] = None
    ):
        self.name = name
        self.metrics = metrics
        self._entries: TTLCache = TTLCache(maxsize=max_entries, ttl=ttl_seconds)
        self.hits = 0
        self.misses = 0
        # Bumped by every write; reads compare it across their await
        self.version = 0

    def lookup(self, key: Hashable) -> Any:
        """Return the cached value or the module sentinel on a miss."""
        value = self._entries.get(key, _MISSING)
        if value is _MISSING:
            self.misses += 1
            if self.metrics:
                self.metrics.increment_counter("cache_misses_total", cache_type=self.name)
        else:
            self.hits += 1
            if self.metrics:
                self.metrics.increment_counter("cache_hits_total", cache_type=self.name)
        return value

    def put(self, key: Hashable, value: Any) -> None:
        self.version += 1
        self._entries[key] = value

    def evict(self, key: Hashable) -> None:
        self.version += 1
        self._entries.pop(key, None)

    def clear(self) -> None:
        self.version += 1
        self._entries.clear()

    def __contains__(self, key: Hashable) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def stats(self) -> Dict[str, Any]:
        """Get hit/miss statistics for this region."""
        total = self.hits + self.misses
        return {
            "name": self.name,
            "size": len(self._entries),
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": self.hits / total if total else 0.0
        }


def is_miss(value: Any) -> bool:
    return value is _MISSING


def cacheable(cache: LocalCache, key_func: KeyFunc, cache_none: bool = False):
    """Serve calls from ``cache`` and remember results on a miss."""
    def decorator(func: AsyncFunc) -> AsyncFunc:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            cache_key = key_func(*args, **kwargs)
            cached = cache.lookup(cache_key)
            if not is_miss(cached):
                return cached

            version = cache.version
            result = await func(*args, **kwargs)
            if isinstance(result, Uncached):
                return result.value
            if cache.version != version:
                return result
            if result is not None or cache_none:
                cache.put(cache_key, result)
            return result

        return wrapper
    return decorator


def cache_put(
    cache: LocalCache,
    key_func: KeyFunc,
    value_func: Callable[[Any], Any] = _identity
):
    """Always run the call, then store ``value_func(result)`` under the derived key."""
    def decorator(func: AsyncFunc) -> AsyncFunc:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            result = await func(*args, **kwargs)
            cache_key = key_func(*args, **kwargs)
            if isinstance(result, Uncached):
                cache.evict(cache_key)
                return result.value
            cache.put(cache_key, value_func(result))
            return result

        return wrapper
    return decorator


def cache_evict(cache: LocalCache, key_func: Optional[KeyFunc] = None, all_entries: bool = False):
    """Run the call, then drop the derived key (or every entry)."""
    if key_func is None and not all_entries:
        raise ValueError("cache_evict needs key_func unless all_entries is set")

    def decorator(func: AsyncFunc) -> AsyncFunc:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            result = await func(*args, **kwargs)
            if all_entries:
                cache.clear()
            else:
                cache.evict(key_func(*args, **kwargs))
            return result

        return wrapper
    return decorator

"""
Catalog lookups memoized in-process.
"""

import asyncio
import time
from typing import Optional

from shared.logging import get_logger
from shared.memoize import LocalCache, cache_evict, cache_put, cacheable


def _item_key(item_id: str, *args) -> str:
    return item_id


class CatalogService:
    """Slow catalog lookup fronted by a local cache region."""

    def __init__(self, delay_seconds: float = 1.0, local_cache: Optional[LocalCache] = None):
        self.delay_seconds = delay_seconds
        self.local_cache = local_cache or LocalCache("catalog")
        self.logger = get_logger("cache.catalog")

        self.get_data = cacheable(self.local_cache, key_func=_item_key)(self._load)
        self.update_data = cache_put(self.local_cache, key_func=_item_key)(self._update)
        self.evict = cache_evict(self.local_cache, key_func=_item_key)(self._evict)
        self.evict_all = cache_evict(self.local_cache, all_entries=True)(self._evict_all)

    async def _load(self, item_id: str) -> str:
        self.logger.info("Loading catalog data", item_id=item_id)
        await asyncio.sleep(self.delay_seconds)
        return f"Expensive data for {item_id} at {int(time.time() * 1000)}"

    async def _update(self, item_id: str, data: str) -> str:
        self.logger.info("Updating catalog data", item_id=item_id)
        return data

    async def _evict(self, item_id: str) -> None:
        self.logger.info("Evicting catalog data", item_id=item_id)

    async def _evict_all(self) -> None:
        self.logger.info("Evicting all catalog data")

"""
Cache service: REST access to namespaced Redis cache entries.
"""

from typing import Any, Dict, Optional

import redis.asyncio as redis
from fastapi import Body, Query
from fastapi.responses import JSONResponse

from shared.base_service import BaseService
from shared.config import ServiceConfig, get_config
from shared.errors import ValidationError
from shared.memoize import LocalCache

from .cache.redis_store import RedisCacheStore
from .catalog.service import CatalogService
from .checkpoint.trigger import CheckpointTrigger, SnapshotProvider, build_snapshot_provider
from .health.probe import RedisHealthProbe
from .models import CacheEntry, CacheEntryCreateRequest, HealthStatus, parse_ttl


SERVICE_NAME = "cache"
SERVICE_PORT = 8080


def ttl_ms_to_seconds(ttl_ms: int) -> int:
    """Round a PTTL reply to whole seconds, keeping the -1/-2 sentinels."""
    if ttl_ms < 0:
        return ttl_ms
    return (ttl_ms + 500) // 1000


class CacheService(BaseService):
    """Cache service implementation."""

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        redis_client: Optional[redis.Redis] = None,
        snapshot_provider: Optional[SnapshotProvider] = None
    ):
        super().__init__(SERVICE_NAME, SERVICE_PORT, config or get_config(SERVICE_NAME, SERVICE_PORT))

        self.redis = redis_client or redis.from_url(
            self.config.redis_url,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=self.config.redis_connect_timeout,
            socket_timeout=self.config.redis_socket_timeout,
            health_check_interval=30
        )

        self.store = RedisCacheStore(
            self.redis,
            local_cache=LocalCache(
                "cache",
                max_entries=self.config.local_cache_max_entries,
                ttl_seconds=self.config.local_cache_ttl_seconds,
                metrics=self.metrics
            ),
            metrics=self.metrics
        )
        self.health_probe = RedisHealthProbe(
            self.redis,
            timeout_seconds=self.config.health_timeout_seconds,
            metrics=self.metrics
        )
        self.checkpoint = CheckpointTrigger(
            snapshot_provider or build_snapshot_provider(self.config.checkpoint_command),
            metrics=self.metrics
        )
        self.catalog = CatalogService(
            delay_seconds=self.config.catalog_delay_seconds,
            local_cache=LocalCache(
                "catalog",
                max_entries=self.config.local_cache_max_entries,
                ttl_seconds=self.config.local_cache_ttl_seconds,
                metrics=self.metrics
            )
        )

        self._setup_cache_routes()
        self._setup_health_routes()
        self._setup_admin_routes()
        self._setup_catalog_routes()

    def _setup_cache_routes(self):
        """Set up cache entry routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": SERVICE_NAME,
                "message": "Redis cache access layer - Cache Service",
                "version": "1.0.0",
                "capabilities": ["cache", "ttl", "health", "checkpoint"]
            }

        @self.app.get("/api/cache/{key}")
        async def get_value(key: str):
            """Retrieve a cached value."""
            self.logger.info("GET request for key", key=key)
            value = await self.store.get(key)

            if value is None:
                return JSONResponse(
                    status_code=404,
                    content={"key": key, "value": None, "exists": False, "error": "Key not found"}
                )
            return {"key": key, "value": value, "exists": True}

        @self.app.post("/api/cache", status_code=201)
        async def set_value(request: CacheEntryCreateRequest):
            """Store a value, overwriting any existing one."""
            self.logger.info("POST request to set key", key=request.key)
            if request.value is None:
                raise ValidationError("Value is required", key=request.key)

            stored = await self.store.put(CacheEntry(key=request.key, value=request.value))
            return {
                "key": stored.key,
                "value": stored.value,
                "created": True,
                "timestamp": stored.created_at.isoformat()
            }

        @self.app.post("/api/cache/ttl", status_code=201)
        async def set_value_with_ttl(
            key: str = Query(..., min_length=1),
            value: str = Query(...),
            ttl: int = Query(300),
            unit: str = Query("SECONDS")
        ):
            """Store a value that expires after ``ttl`` units."""
            self.logger.info("POST request to set key with TTL", key=key, ttl=ttl, unit=unit)
            duration = parse_ttl(ttl, unit, key=key)

            await self.store.put_with_ttl(key, value, duration)
            return {
                "key": key,
                "value": value,
                "ttl": ttl,
                "unit": unit,
                "created": True
            }

        @self.app.put("/api/cache/{key}")
        async def update_value(key: str, payload: Dict[str, Any] = Body(...)):
            """Update the value of an existing key."""
            self.logger.info("PUT request to update key", key=key)
            value = payload.get("value")
            if value is None:
                raise ValidationError("Value is required", key=key)

            updated = await self.store.update(key, value)
            return {"key": key, "value": updated, "updated": True}

        @self.app.delete("/api/cache/{key}")
        async def delete_value(key: str):
            """Delete a key."""
            self.logger.info("DELETE request for key", key=key)
            deleted = await self.store.delete(key)

            if not deleted:
                return JSONResponse(
                    status_code=404,
                    content={"key": key, "deleted": False, "error": "Key not found"}
                )
            return {"key": key, "deleted": True}

        @self.app.get("/api/cache")
        async def get_all_keys():
            """List every key in the cache namespace."""
            keys = sorted(await self.store.list_keys())
            return {"keys": keys, "count": len(keys)}

        @self.app.delete("/api/cache")
        async def clear_all():
            """Delete every key in the cache namespace."""
            self.logger.info("DELETE request to clear all cache")
            count = await self.store.clear_all()
            return {"cleared": True, "message": "All cache entries cleared", "count": count}

        @self.app.get("/api/cache/{key}/expiration")
        async def get_expiration(key: str):
            """Remaining TTL in seconds; -1 means no expiry, -2 means no such key."""
            ttl_ms = await self.store.get_ttl_remaining(key)
            return {"key": key, "expiration": ttl_ms_to_seconds(ttl_ms), "unit": "seconds"}

    def _setup_health_routes(self):
        """Set up store health routes."""

        @self.app.get("/health/redis")
        async def redis_health():
            """Detailed Redis health check."""
            report = await self.health_probe.check_detailed()
            return JSONResponse(
                status_code=200 if report.is_up else 503,
                content=report.model_dump(mode="json", exclude_none=True)
            )

        @self.app.get("/health/redis/simple")
        async def redis_health_simple():
            """Ping-only Redis health check."""
            healthy = await self.health_probe.check_simple()
            status = HealthStatus.UP if healthy else HealthStatus.DOWN
            return JSONResponse(
                status_code=200 if healthy else 503,
                content={"status": status.value, "healthy": healthy}
            )

    def _setup_admin_routes(self):
        """Set up administrative routes."""

        @self.app.post("/admin/checkpoint")
        async def trigger_checkpoint():
            """Snapshot the process; only returns when the snapshot did not happen."""
            self.logger.info("Checkpoint trigger requested")
            outcome = await self.checkpoint.trigger()
            return JSONResponse(status_code=outcome.http_status, content=outcome.to_response())

    def _setup_catalog_routes(self):
        """Set up catalog routes backed by the local cache only."""

        @self.app.get("/api/catalog/{item_id}")
        async def get_catalog_data(item_id: str):
            return await self.catalog.get_data(item_id)

        @self.app.post("/api/catalog/{item_id}")
        async def put_catalog_data(item_id: str, data: str = Query(...)):
            return await self.catalog.update_data(item_id, data)

        @self.app.delete("/api/catalog/all")
        async def evict_all_catalog_data():
            await self.catalog.evict_all()
            return "All cache entries evicted"

        @self.app.delete("/api/catalog/{item_id}")
        async def evict_catalog_data(item_id: str):
            await self.catalog.evict(item_id)
            return f"Cache evicted for id: {item_id}"

    async def _check_dependencies(self) -> Dict[str, str]:
        """Check cache service dependencies."""
        return {"redis": "ok" if await self.health_probe.check_simple() else "error"}

    async def start(self):
        """Verify the store is reachable; the service starts either way."""
        if not await self.health_probe.check_simple():
            self.logger.warning("Redis not reachable at startup", redis_url=self.config.redis_url)
        self.logger.info("Cache service started")

    async def stop(self):
        """Release the Redis connection pool."""
        await self.redis.aclose()
        self.logger.info("Cache service stopped")


def create_app(**kwargs):
    """Create cache service application."""
    service = CacheService(**kwargs)
    return service.app


if __name__ == "__main__":
    service = CacheService()
    service.run()

"""
Redis health probe.
"""

import asyncio
import time
from typing import Optional, TYPE_CHECKING

import redis.asyncio as redis

from shared.logging import get_logger
from ..models import HealthReport, HealthStatus

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


PONG = "PONG"
PROBE_KEY_PREFIX = "health:check:"
PROBE_VALUE = "test_connection"


class RedisHealthProbe:
    """Liveness and read/write checks against the backing store."""

    def __init__(
        self,
        client: redis.Redis,
        timeout_seconds: float = 3.0,
        metrics: Optional["MetricsCollector"] = None
    ):
        self.redis = client
        self.timeout_seconds = timeout_seconds
        self.metrics = metrics
        self.logger = get_logger("cache.health")

    async def _ping(self) -> str:
        # redis-py turns the PONG reply into True
        reply = await asyncio.wait_for(self.redis.ping(), timeout=self.timeout_seconds)
        return PONG if reply is True else str(reply)

    async def _round_trip(self) -> bool:
        probe_key = f"{PROBE_KEY_PREFIX}{int(time.time() * 1000)}"
        try:
            await self.redis.set(probe_key, PROBE_VALUE)
            retrieved = await self.redis.get(probe_key)
        finally:
            await self.redis.delete(probe_key)
        return retrieved == PROBE_VALUE

    async def _key_count(self) -> Optional[int]:
        try:
            return int(await asyncio.wait_for(self.redis.dbsize(), timeout=self.timeout_seconds))
        except Exception as e:
            self.logger.warning("Could not count store keys", error=str(e))
            return None

    async def check_detailed(self) -> HealthReport:
        """Ping, write/read/delete a probe key, then count keys."""
        try:
            ping = await self._ping()
            round_trip_pass = await asyncio.wait_for(self._round_trip(), timeout=self.timeout_seconds)
        except Exception as e:
            self.logger.error("Redis health check failed", error=str(e))
            report = HealthReport(status=HealthStatus.DOWN, error=str(e) or type(e).__name__)
            self._record(report.status, "detailed")
            return report

        status = HealthStatus.UP if ping == PONG and round_trip_pass else HealthStatus.DOWN
        report = HealthReport(
            status=status,
            ping=ping,
            round_trip_pass=round_trip_pass,
            key_count=await self._key_count()
        )
        if status == HealthStatus.DOWN:
            self.logger.warning("Redis health check degraded", ping=ping, round_trip_pass=round_trip_pass)
        self._record(report.status, "detailed")
        return report

    async def check_simple(self) -> bool:
        """True iff the store answers PING with PONG."""
        try:
            healthy = await self._ping() == PONG
        except Exception as e:
            self.logger.error("Redis ping failed", error=str(e))
            healthy = False

        self._record(HealthStatus.UP if healthy else HealthStatus.DOWN, "simple")
        return healthy

    def _record(self, status: HealthStatus, check: str) -> None:
        if self.metrics:
            self.metrics.record_health_check(status.value, check=check)

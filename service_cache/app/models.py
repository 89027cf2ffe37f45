"""
Data models for the cache service.
"""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from shared.errors import ValidationError


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CacheEntry(BaseModel):
    """A cached value with creation and modification timestamps."""

    key: str = Field(..., min_length=1, description="The cache key identifier")
    value: Any = Field(..., description="Any JSON-serializable value")
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def set_value(self, value: Any) -> None:
        """Replace the value and refresh ``updated_at``."""
        self.value = value
        self.updated_at = utc_now()


class CacheEntryCreateRequest(BaseModel):
    """Body of ``POST /api/cache``."""

    key: str = Field(..., min_length=1)
    value: Any = None


class HealthStatus(str, Enum):
    """Backing store health."""

    UP = "UP"
    DOWN = "DOWN"


class HealthReport(BaseModel):
    """Result of a detailed store health check."""

    status: HealthStatus
    ping: Optional[str] = None
    round_trip_pass: bool = False
    key_count: Optional[int] = None
    error: Optional[str] = None

    @property
    def is_up(self) -> bool:
        return self.status == HealthStatus.UP


class CheckpointStatus(str, Enum):
    """How a checkpoint attempt ended when control came back to the caller."""

    FAILED = "FAILED"
    UNSUPPORTED = "UNSUPPORTED"
    UNEXPECTED_RETURN = "UNEXPECTED_RETURN"
    ERROR = "ERROR"


_CHECKPOINT_HTTP_STATUS = {
    CheckpointStatus.FAILED: 500,
    CheckpointStatus.UNSUPPORTED: 501,
    CheckpointStatus.UNEXPECTED_RETURN: 500,
    CheckpointStatus.ERROR: 500,
}


class CheckpointOutcome(BaseModel):
    """Classified outcome of a checkpoint trigger."""

    status: CheckpointStatus
    message: str
    error: Optional[str] = None
    exception: Optional[str] = None

    @classmethod
    def failed(cls, message: str, exception: Optional[str] = None) -> "CheckpointOutcome":
        return cls(
            status=CheckpointStatus.FAILED,
            message="Checkpoint failed",
            error=f"Checkpoint failed: {message}",
            exception=exception
        )

    @classmethod
    def unsupported(cls, message: str) -> "CheckpointOutcome":
        return cls(
            status=CheckpointStatus.UNSUPPORTED,
            message="Make sure the process runs where snapshot/restore is available",
            error=message
        )

    @classmethod
    def unexpected_return(cls) -> "CheckpointOutcome":
        return cls(
            status=CheckpointStatus.UNEXPECTED_RETURN,
            message="Checkpoint returned unexpectedly"
        )

    @classmethod
    def error_raised(cls, message: str, exception: str) -> "CheckpointOutcome":
        return cls(
            status=CheckpointStatus.ERROR,
            message="Unexpected error during checkpoint",
            error=f"Unexpected error: {message}",
            exception=exception
        )

    @property
    def http_status(self) -> int:
        return _CHECKPOINT_HTTP_STATUS[self.status]

    def to_response(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class TimeUnitName(str, Enum):
    """Duration units accepted by ``POST /api/cache/ttl``."""

    NANOSECONDS = "NANOSECONDS"
    MICROSECONDS = "MICROSECONDS"
    MILLISECONDS = "MILLISECONDS"
    SECONDS = "SECONDS"
    MINUTES = "MINUTES"
    HOURS = "HOURS"
    DAYS = "DAYS"


_UNIT_TO_TIMEDELTA_KWARG = {
    TimeUnitName.MICROSECONDS: "microseconds",
    TimeUnitName.MILLISECONDS: "milliseconds",
    TimeUnitName.SECONDS: "seconds",
    TimeUnitName.MINUTES: "minutes",
    TimeUnitName.HOURS: "hours",
    TimeUnitName.DAYS: "days",
}


def parse_ttl(ttl: int, unit: str, key: Optional[str] = None) -> timedelta:
    """Turn an amount and a unit name into a positive ``timedelta``."""
    try:
        unit_name = TimeUnitName(unit.upper())
    except ValueError:
        raise ValidationError(
            f"Unsupported time unit: {unit}",
            details={"allowed": [u.value for u in TimeUnitName]},
            key=key
        )

    if ttl <= 0:
        raise ValidationError("TTL must be positive", details={"ttl": ttl}, key=key)

    try:
        if unit_name == TimeUnitName.NANOSECONDS:
            duration = timedelta(microseconds=ttl / 1000)
        else:
            duration = timedelta(**{_UNIT_TO_TIMEDELTA_KWARG[unit_name]: ttl})
    except OverflowError:
        raise ValidationError("TTL too large", details={"ttl": ttl, "unit": unit_name.value}, key=key)

    if duration < timedelta(milliseconds=1):
        raise ValidationError(
            "TTL must be at least one millisecond",
            details={"ttl": ttl, "unit": unit_name.value},
            key=key
        )
    return duration

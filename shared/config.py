"""
Shared configuration management for the Redis cache access service.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="CACHE_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Environment
    env: str = Field(default="local", description="Deployment environment name")
    log_level: str = Field(default="info", description="Root log level")

    # Redis
    redis_url: str = Field(default="redis://localhost:6379/0")
    redis_socket_timeout: float = Field(default=5.0, gt=0)
    redis_connect_timeout: float = Field(default=5.0, gt=0)
    health_timeout_seconds: float = Field(default=3.0, gt=0)

    # In-process memoization layer
    local_cache_max_entries: int = Field(default=1024, ge=1)
    local_cache_ttl_seconds: float = Field(default=60.0, gt=0)

    # Catalog demo
    catalog_delay_seconds: float = Field(default=1.0, ge=0)

    # Checkpoint
    checkpoint_command: Optional[str] = Field(
        default=None,
        description="External command that snapshots and restores this process"
    )


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int
    host: str = "0.0.0.0"

    def __init__(self, service_name: str, port: int, **kwargs):
        super().__init__(service_name=service_name, port=port, **kwargs)


def get_config(service_name: str, port: int, **overrides) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, port=port, **overrides)

"""Configuration objects for the infrastructure layer."""

from __future__ import annotations

import os
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

ENV_PREFIX = "KV_REGISTRY_"


class RegistryConfig(BaseModel):
    """Strongly-typed configuration for the service registry.

    Durations are in seconds. Records are written with a TTL of
    ``ttl + ttl_grace`` and renewed every ``ttl``, so a maintained record
    never reaches the end of its lifetime.
    """

    model_config = ConfigDict(
        extra="forbid",
        str_strip_whitespace=True,
        strict=True,
        validate_assignment=True,
    )

    namespace: str = Field(
        default="/microservices",
        min_length=1,
        description="Key prefix shared by every registration",
    )
    ttl: float = Field(
        default=60.0,
        gt=0,
        description="Renewal period in seconds",
    )
    watcher_ttl: float = Field(
        default=60.0,
        gt=0,
        description="Watcher poll period in seconds",
    )
    scan_count: int = Field(
        default=20,
        ge=1,
        description="Number of keys requested per scan batch",
    )
    ttl_grace: float = Field(
        default=2.0,
        ge=0,
        description="Seconds added to every written TTL",
    )
    renew_threshold: float = Field(
        default=1.0,
        ge=0,
        description="Remaining TTL above which renewal only extends the TTL",
    )
    heartbeat_stop_timeout: float = Field(
        default=2.0,
        gt=0,
        description="Seconds to wait for a renewal task before cancelling it",
    )

    @field_validator("namespace")
    @classmethod
    def validate_namespace(cls, v: str) -> str:
        """Drop trailing separators so keys never contain an empty segment."""
        stripped = v.rstrip("/")
        if not stripped:
            raise ValueError(f"Invalid namespace: {v!r}")
        return stripped

    @property
    def record_ttl(self) -> float:
        """TTL applied to every registration write."""
        return self.ttl + self.ttl_grace

    def registration_key(self, service_name: str, instance_id: str) -> str:
        """Key of one registration record: ``{namespace}/{service}/{instance}``."""
        return f"{self.namespace}/{service_name}/{instance_id}"

    def service_prefix(self, service_name: str) -> str:
        """Prefix covering every instance of a service: ``{namespace}/{service}``."""
        return f"{self.namespace}/{service_name}"

    @classmethod
    def from_env(cls, prefix: str = ENV_PREFIX) -> RegistryConfig:
        """Build a configuration from environment variables.

        Reads ``{prefix}NAMESPACE``, ``{prefix}TTL``, ``{prefix}WATCHER_TTL``,
        ``{prefix}SCAN_COUNT`` and ``{prefix}TTL_GRACE``; unset variables keep
        their defaults.
        """
        converters: dict[str, Any] = {
            "namespace": str,
            "ttl": float,
            "watcher_ttl": float,
            "scan_count": int,
            "ttl_grace": float,
        }
        values: dict[str, Any] = {}
        for field, convert in converters.items():
            raw = os.getenv(f"{prefix}{field.upper()}")
            if raw is None or not raw.strip():
                continue
            try:
                values[field] = convert(raw.strip())
            except ValueError as e:
                raise ValueError(f"Invalid value for {prefix}{field.upper()}: {raw!r}") from e
        return cls(**values)


class RedisConnectionConfig(BaseModel):
    """Strongly-typed configuration for Redis connections."""

    model_config = ConfigDict(
        extra="forbid",
        str_strip_whitespace=True,
        strict=True,
        validate_assignment=True,
    )

    url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL",
    )
    socket_timeout: float | None = Field(
        default=5.0,
        gt=0,
        description="Seconds to wait for a command reply",
    )
    socket_connect_timeout: float | None = Field(
        default=5.0,
        gt=0,
        description="Seconds to wait for the connection to open",
    )
    health_check_interval: int = Field(
        default=0,
        ge=0,
        description="Seconds between connection health checks, 0 to disable",
    )

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate the Redis URL scheme."""
        if not v.startswith(("redis://", "rediss://", "unix://")):
            raise ValueError(
                f"Invalid Redis URL: {v}. Must start with redis://, rediss://, or unix://"
            )
        return v

    def to_connection_params(self) -> dict[str, Any]:
        """Convert to keyword arguments for ``redis.asyncio.from_url``."""
        return {
            "decode_responses": True,
            "socket_timeout": self.socket_timeout,
            "socket_connect_timeout": self.socket_connect_timeout,
            "health_check_interval": self.health_check_interval,
        }

    @classmethod
    def from_env(cls, prefix: str = ENV_PREFIX) -> RedisConnectionConfig:
        """Build a configuration from ``{prefix}REDIS_URL`` if it is set."""
        url = os.getenv(f"{prefix}REDIS_URL")
        if url:
            return cls(url=url)
        return cls()

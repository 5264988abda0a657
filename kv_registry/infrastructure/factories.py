"""Factories wiring registries to their stores."""

from __future__ import annotations

from ..ports.clock import ClockPort
from ..ports.logger import LoggerPort
from .config import RedisConnectionConfig, RegistryConfig
from .in_memory_kv_store import InMemoryKVStore
from .kv_service_registry import KVServiceRegistry
from .redis_kv_store import RedisKVStore


def create_redis_registry(
    redis_config: RedisConnectionConfig | None = None,
    registry_config: RegistryConfig | None = None,
    logger: LoggerPort | None = None,
) -> KVServiceRegistry:
    """Create a registry backed by Redis.

    The registry's store owns its client; call ``registry.kv_store.close()``
    after ``registry.close()`` to release the connection pool.

    Example:
        >>> registry = create_redis_registry(RedisConnectionConfig(url="redis://cache:6379/2"))
        >>> await registry.register(ServiceInstance(id="i1", name="orders"))
    """
    store = RedisKVStore.from_config(redis_config or RedisConnectionConfig(), logger=logger)
    return KVServiceRegistry(store, config=registry_config, logger=logger)


def create_in_memory_registry(
    registry_config: RegistryConfig | None = None,
    clock: ClockPort | None = None,
    logger: LoggerPort | None = None,
) -> KVServiceRegistry:
    """Create a registry backed by a process-local store (tests, local runs)."""
    return KVServiceRegistry(InMemoryKVStore(clock=clock), config=registry_config, logger=logger)


def create_registry_from_env(logger: LoggerPort | None = None) -> KVServiceRegistry:
    """Create a Redis-backed registry configured from ``KV_REGISTRY_*`` variables."""
    return create_redis_registry(
        RedisConnectionConfig.from_env(),
        RegistryConfig.from_env(),
        logger=logger,
    )

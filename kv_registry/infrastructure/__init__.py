"""Infrastructure layer - Concrete implementations of ports."""

from .config import RedisConnectionConfig, RegistryConfig
from .enumeration import scan_instances
from .factories import create_in_memory_registry, create_redis_registry, create_registry_from_env
from .heartbeat import RegistrationHeartbeat
from .in_memory_kv_store import InMemoryKVStore
from .kv_service_registry import KVServiceRegistry
from .redis_kv_store import RedisKVStore
from .serialization import decode_instance, encode_instance
from .simple_logger import SimpleLogger
from .system_clock import SystemClock
from .watcher import KVWatcher

__all__ = [
    "InMemoryKVStore",
    "KVServiceRegistry",
    "KVWatcher",
    "RedisConnectionConfig",
    "RedisKVStore",
    "RegistrationHeartbeat",
    "RegistryConfig",
    "SimpleLogger",
    "SystemClock",
    "create_in_memory_registry",
    "create_redis_registry",
    "create_registry_from_env",
    "decode_instance",
    "encode_instance",
    "scan_instances",
]

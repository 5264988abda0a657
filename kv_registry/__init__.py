"""kv-registry - Service registration and discovery over a TTL key-value store."""

from .domain.models import ServiceInstance
from .infrastructure.config import RedisConnectionConfig, RegistryConfig
from .infrastructure.kv_service_registry import KVServiceRegistry

__all__ = ["KVServiceRegistry", "RedisConnectionConfig", "RegistryConfig", "ServiceInstance"]
__version__ = "0.1.0"

"""Domain layer - Core entities and errors."""

from .exceptions import (
    ContextError,
    DeadlineExceededError,
    RegistryError,
    SerializationError,
    StoreError,
    ValidationError,
    WatcherStoppedError,
)
from .models import ServiceInstance

__all__ = [
    "ContextError",
    "DeadlineExceededError",
    "RegistryError",
    "SerializationError",
    "ServiceInstance",
    "StoreError",
    "ValidationError",
    "WatcherStoppedError",
]

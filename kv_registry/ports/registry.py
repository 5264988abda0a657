"""Registrar, discovery and watcher ports - the host framework contract."""

from __future__ import annotations

from abc import ABC, abstractmethod

from ..domain.models import ServiceInstance


class WatcherPort(ABC):
    """Handle yielding repeated snapshots of one service's instances."""

    @abstractmethod
    async def next(self) -> list[ServiceInstance]:
        """Block until the next snapshot is due and return it.

        Returns:
            Every instance currently alive under the watched service

        Raises:
            ContextError: If the watcher was stopped or its deadline passed
            StoreError: If the store fails while enumerating
        """
        ...

    @abstractmethod
    async def stop(self) -> None:
        """Stop the watcher. Safe to call more than once."""
        ...


class RegistrarPort(ABC):
    """Abstract interface for registering service instances."""

    @abstractmethod
    async def register(self, instance: ServiceInstance) -> None:
        """Register a service instance and keep it alive.

        Args:
            instance: The service instance to register

        Raises:
            ValidationError: If the instance has no name or id
            SerializationError: If the instance cannot be encoded
            StoreError: If the initial write fails
        """
        ...

    @abstractmethod
    async def deregister(self, instance: ServiceInstance) -> None:
        """Stop keeping an instance alive and remove its registration.

        Args:
            instance: The service instance to remove

        Raises:
            StoreError: If deletion fails
        """
        ...


class DiscoveryPort(ABC):
    """Abstract interface for discovering service instances."""

    @abstractmethod
    async def get_service(self, service_name: str) -> list[ServiceInstance]:
        """List the currently alive instances of a service.

        Args:
            service_name: Name of the service

        Returns:
            List of alive service instances

        Raises:
            StoreError: If the store fails while enumerating
            SerializationError: If a stored record cannot be decoded
        """
        ...

    @abstractmethod
    async def watch(self, service_name: str, timeout: float | None = None) -> WatcherPort:
        """Create a watcher polling the instances of a service.

        Args:
            service_name: Name of the service
            timeout: Optional lifetime in seconds after which the watcher expires

        Returns:
            A watcher bound to the service
        """
        ...

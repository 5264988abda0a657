"""KV Store-based implementation of the registrar and discovery ports."""

from __future__ import annotations

import asyncio

from ..domain.exceptions import ValidationError
from ..domain.models import ServiceInstance
from ..ports.kv_store import KVStorePort
from ..ports.logger import LoggerPort
from ..ports.registry import DiscoveryPort, RegistrarPort
from .config import RegistryConfig
from .enumeration import scan_instances
from .heartbeat import RegistrationHeartbeat
from .serialization import encode_instance
from .simple_logger import SimpleLogger
from .watcher import KVWatcher

KEY_SEPARATOR = "/"


class KVServiceRegistry(RegistrarPort, DiscoveryPort):
    """Service registry keeping registrations alive in a KV store.

    Each registration is a record at ``{namespace}/{service}/{instance}``
    written with a TTL of ``ttl + ttl_grace`` and renewed every ``ttl`` by
    its own heartbeat task. Deregistering an instance stops only that
    instance's heartbeat; ``close`` stops all of them and leaves the records
    to expire on their own.
    """

    def __init__(
        self,
        kv_store: KVStorePort,
        config: RegistryConfig | None = None,
        logger: LoggerPort | None = None,
    ):
        """Initialize KV-based service registry.

        Args:
            kv_store: The KV store port implementation
            config: Registry configuration (namespace, TTLs, scan batch size)
            logger: Optional logger, defaults to a simple console logger
        """
        self._kv_store = kv_store
        self._config = config or RegistryConfig()
        self._logger = logger or SimpleLogger("kv_registry.registry")
        self._heartbeats: dict[str, RegistrationHeartbeat] = {}
        # register and deregister of one key never interleave
        self._key_locks: dict[str, asyncio.Lock] = {}

    @property
    def config(self) -> RegistryConfig:
        return self._config

    @property
    def kv_store(self) -> KVStorePort:
        return self._kv_store

    async def register(self, instance: ServiceInstance) -> None:
        """Write the registration record and start renewing it.

        Registering an instance that is already registered replaces its
        heartbeat with a new one carrying the latest record value.
        """
        if not instance.is_addressable():
            raise ValidationError(
                "Service instance requires a non-empty name and id",
                details={"name": instance.name, "id": instance.id},
            )

        key = self._config.registration_key(instance.name, instance.id)
        value = encode_instance(instance)

        async with self._lock_for(key):
            await self._start_registration(instance, key, value)

        self._logger.info(
            "Service instance registered",
            service=instance.name,
            instance=instance.id,
            ttl=self._config.record_ttl,
        )

    async def _start_registration(self, instance: ServiceInstance, key: str, value: str) -> None:
        try:
            await self.renew(key, value)
        except Exception as e:
            self._logger.error(
                "Failed to register service instance",
                service=instance.name,
                instance=instance.id,
                error=str(e),
            )
            raise

        previous = self._heartbeats.pop(key, None)
        if previous is not None:
            await previous.stop()

        heartbeat = RegistrationHeartbeat(
            renew=lambda: self.renew(key, value),
            period=self._config.ttl,
            key=key,
            logger=self._logger,
            stop_timeout=self._config.heartbeat_stop_timeout,
        )
        self._heartbeats[key] = heartbeat
        heartbeat.start()

    def _lock_for(self, key: str) -> asyncio.Lock:
        lock = self._key_locks.get(key)
        if lock is None:
            lock = self._key_locks[key] = asyncio.Lock()
        return lock

    async def renew(self, key: str, value: str) -> bool:
        """Keep a record alive, rewriting it only when it is about to vanish.

        If more than ``renew_threshold`` seconds remain, only the TTL is
        extended and the stored value is left untouched. Otherwise (record
        missing or nearly expired) the value is written again in full.

        Returns:
            True if the value was rewritten, False if only the TTL was extended
        """
        ttl = self._config.record_ttl
        remaining = await self._kv_store.ttl(key)

        if remaining > self._config.renew_threshold:
            await self._kv_store.expire(key, ttl)
            self._logger.debug("Registration TTL extended", key=key, ttl=ttl)
            return False

        await self._kv_store.set(key, value, ttl)
        self._logger.debug("Registration written", key=key, ttl=ttl, remaining=remaining)
        return True

    async def deregister(self, instance: ServiceInstance) -> None:
        """Stop renewing an instance and delete its record.

        A registration of the same instance still in flight completes first,
        so once this returns nothing writes the record again.
        """
        key = self._config.registration_key(instance.name, instance.id)

        async with self._lock_for(key):
            heartbeat = self._heartbeats.pop(key, None)
            if heartbeat is not None:
                await heartbeat.stop()

            try:
                deleted = await self._kv_store.delete(key)
            except Exception as e:
                self._logger.error(
                    "Failed to deregister service instance",
                    service=instance.name,
                    instance=instance.id,
                    error=str(e),
                )
                raise

        if deleted:
            self._logger.info(
                "Service instance deregistered",
                service=instance.name,
                instance=instance.id,
            )
        else:
            self._logger.warning(
                "Service instance not found for deregistration",
                service=instance.name,
                instance=instance.id,
            )

    async def get_service(self, service_name: str) -> list[ServiceInstance]:
        """List every live instance of a service."""
        return await scan_instances(
            self._kv_store,
            self._config.service_prefix(service_name),
            count=self._config.scan_count,
            logger=self._logger,
            separator=KEY_SEPARATOR,
        )

    async def watch(self, service_name: str, timeout: float | None = None) -> KVWatcher:
        """Create a watcher polling a service every ``watcher_ttl`` seconds."""
        return KVWatcher(
            self._kv_store,
            self._config.service_prefix(service_name),
            period=self._config.watcher_ttl,
            timeout=timeout,
            scan_count=self._config.scan_count,
            separator=KEY_SEPARATOR,
            logger=self._logger,
        )

    def registered_keys(self) -> list[str]:
        """Keys of the registrations this registry is currently renewing."""
        return sorted(key for key, hb in self._heartbeats.items() if hb.is_running)

    def is_registered(self, instance: ServiceInstance) -> bool:
        """Check whether this registry is renewing the given instance."""
        heartbeat = self._heartbeats.get(
            self._config.registration_key(instance.name, instance.id)
        )
        return heartbeat is not None and heartbeat.is_running

    async def close(self) -> None:
        """Stop every heartbeat. Records are left to expire."""
        heartbeats = list(self._heartbeats.values())
        self._heartbeats.clear()
        if heartbeats:
            await asyncio.gather(*(hb.stop() for hb in heartbeats))
            self._logger.info("Registry closed", stopped_heartbeats=len(heartbeats))

    async def __aenter__(self) -> KVServiceRegistry:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

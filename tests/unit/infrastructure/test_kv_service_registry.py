"""Unit tests for KV-based service registry implementation."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from kv_registry.domain.exceptions import (
    SerializationError,
    StoreError,
    ValidationError,
    WatcherStoppedError,
)
from kv_registry.domain.models import ServiceInstance
from kv_registry.infrastructure.config import RegistryConfig
from kv_registry.infrastructure.in_memory_kv_store import InMemoryKVStore
from kv_registry.infrastructure.kv_service_registry import KVServiceRegistry
from kv_registry.infrastructure.serialization import encode_instance
from kv_registry.infrastructure.watcher import KVWatcher


@pytest.fixture
async def registry(mock_kv_store, mock_logger):
    """Create a registry over a mock store with a long renewal period."""
    registry = KVServiceRegistry(
        mock_kv_store, RegistryConfig(namespace="/ms", ttl=5), logger=mock_logger
    )
    yield registry
    await registry.close()


@pytest.fixture
async def live_registry(fast_config, mock_logger):
    """Create a registry over a real in-memory store with fast renewals."""
    registry = KVServiceRegistry(InMemoryKVStore(), fast_config, logger=mock_logger)
    yield registry
    await registry.close()


class TestRegister:
    """Test cases for registration."""

    @pytest.mark.asyncio
    async def test_writes_new_record(self, registry, mock_kv_store, sample_instance):
        await registry.register(sample_instance)

        mock_kv_store.ttl.assert_awaited_once_with("/ms/orders/i1")
        mock_kv_store.set.assert_awaited_once_with(
            "/ms/orders/i1", encode_instance(sample_instance), 7.0
        )
        mock_kv_store.expire.assert_not_called()
        assert registry.is_registered(sample_instance)

    @pytest.mark.asyncio
    async def test_live_record_only_extended(self, registry, mock_kv_store, sample_instance):
        mock_kv_store.ttl.return_value = 4.5

        await registry.register(sample_instance)

        mock_kv_store.expire.assert_awaited_once_with("/ms/orders/i1", 7.0)
        mock_kv_store.set.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("name", "instance_id"), [("", "i1"), ("orders", ""), ("", "")]
    )
    async def test_requires_name_and_id(self, registry, mock_kv_store, name, instance_id):
        with pytest.raises(ValidationError):
            await registry.register(ServiceInstance(id=instance_id, name=name))
        mock_kv_store.ttl.assert_not_called()

    @pytest.mark.asyncio
    async def test_serialization_failure_writes_nothing(
        self, registry, mock_kv_store, sample_instance, monkeypatch
    ):
        def fail(instance):
            raise SerializationError("cannot encode")

        monkeypatch.setattr(
            "kv_registry.infrastructure.kv_service_registry.encode_instance", fail
        )

        with pytest.raises(SerializationError):
            await registry.register(sample_instance)

        mock_kv_store.ttl.assert_not_called()
        mock_kv_store.set.assert_not_called()
        assert not registry.is_registered(sample_instance)

    @pytest.mark.asyncio
    async def test_store_failure_propagates_without_heartbeat(
        self, registry, mock_kv_store, mock_logger, sample_instance
    ):
        error = StoreError("Redis set failed", operation="set")
        mock_kv_store.set.side_effect = error

        with pytest.raises(StoreError) as exc_info:
            await registry.register(sample_instance)

        assert exc_info.value is error
        assert not registry.is_registered(sample_instance)
        mock_logger.error.assert_called_once()

    @pytest.mark.asyncio
    async def test_reregister_replaces_heartbeat(self, live_registry, sample_instance):
        await live_registry.register(sample_instance)
        updated = sample_instance.model_copy(update={"version": "v2.0.0"})

        await live_registry.register(updated)

        assert live_registry.registered_keys() == ["/ms/orders/i1"]
        [instance] = await live_registry.get_service("orders")
        # The record was still alive, so only its TTL was refreshed.
        assert instance.version == "v1.0.0"


class TestRenew:
    """Test cases for the renew-or-write rule."""

    @pytest.mark.asyncio
    async def test_extends_without_rewriting(self, memory_store, fake_clock, mock_logger):
        registry = KVServiceRegistry(memory_store, RegistryConfig(ttl=5), logger=mock_logger)
        await memory_store.set("k", "original", ttl=7)
        fake_clock.advance(3)

        rewritten = await registry.renew("k", "replacement")

        assert rewritten is False
        assert memory_store.raw_value("k") == "original"
        assert await memory_store.ttl("k") == pytest.approx(7.0)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("elapsed", [6.0, 6.5])
    async def test_rewrites_when_about_to_expire(
        self, memory_store, fake_clock, mock_logger, elapsed
    ):
        registry = KVServiceRegistry(memory_store, RegistryConfig(ttl=5), logger=mock_logger)
        await memory_store.set("k", "original", ttl=7)
        fake_clock.advance(elapsed)

        rewritten = await registry.renew("k", "replacement")

        assert rewritten is True
        assert memory_store.raw_value("k") == "replacement"
        assert await memory_store.ttl("k") == pytest.approx(7.0)

    @pytest.mark.asyncio
    async def test_rewrites_missing_record(self, memory_store, mock_logger):
        registry = KVServiceRegistry(memory_store, RegistryConfig(ttl=5), logger=mock_logger)

        assert await registry.renew("k", "value") is True
        assert memory_store.raw_value("k") == "value"

    @pytest.mark.asyncio
    async def test_rewrites_record_without_expiry(self, memory_store, mock_logger):
        registry = KVServiceRegistry(memory_store, RegistryConfig(ttl=5), logger=mock_logger)
        memory_store.put_raw("k", "stale")

        assert await registry.renew("k", "value") is True
        assert await memory_store.ttl("k") == pytest.approx(7.0)


class TestHeartbeat:
    """Test cases for background renewal."""

    @pytest.mark.asyncio
    async def test_record_outlives_its_ttl(self, mock_logger, sample_instance):
        config = RegistryConfig(namespace="/ms", ttl=0.05, ttl_grace=0.03)
        store = InMemoryKVStore()
        async with KVServiceRegistry(store, config, logger=mock_logger) as registry:
            await registry.register(sample_instance)
            await asyncio.sleep(0.3)
            assert [i.id for i in await registry.get_service("orders")] == ["i1"]

    @pytest.mark.asyncio
    async def test_record_expires_after_close(self, mock_logger, sample_instance):
        config = RegistryConfig(namespace="/ms", ttl=0.05, ttl_grace=0.03)
        store = InMemoryKVStore()
        registry = KVServiceRegistry(store, config, logger=mock_logger)
        await registry.register(sample_instance)

        await registry.close()
        await asyncio.sleep(0.15)

        assert await registry.get_service("orders") == []

    @pytest.mark.asyncio
    async def test_renewal_failure_does_not_stop_heartbeat(
        self, fast_config, mock_kv_store, mock_logger, sample_instance
    ):
        mock_kv_store.ttl.side_effect = [
            -2.0,
            StoreError("Redis ttl failed", operation="ttl"),
        ] + [5.0] * 100
        registry = KVServiceRegistry(mock_kv_store, fast_config, logger=mock_logger)

        await registry.register(sample_instance)
        await asyncio.sleep(0.2)

        assert registry.is_registered(sample_instance)
        assert mock_kv_store.expire.await_count >= 1
        mock_logger.warning.assert_called()
        await registry.close()


class TestDeregister:
    """Test cases for deregistration."""

    @pytest.mark.asyncio
    async def test_deletes_record(self, registry, mock_kv_store, sample_instance):
        await registry.register(sample_instance)

        await registry.deregister(sample_instance)

        mock_kv_store.delete.assert_awaited_once_with("/ms/orders/i1")
        assert not registry.is_registered(sample_instance)

    @pytest.mark.asyncio
    async def test_missing_record_logs_warning(self, registry, mock_kv_store, mock_logger):
        mock_kv_store.delete.return_value = False

        await registry.deregister(ServiceInstance(id="ghost", name="orders"))

        mock_logger.warning.assert_called_once()

    @pytest.mark.asyncio
    async def test_delete_failure_still_stops_heartbeat(
        self, registry, mock_kv_store, sample_instance
    ):
        await registry.register(sample_instance)
        mock_kv_store.delete.side_effect = StoreError("Redis delete failed", operation="delete")

        with pytest.raises(StoreError):
            await registry.deregister(sample_instance)

        assert not registry.is_registered(sample_instance)

    @pytest.mark.asyncio
    async def test_no_writes_after_deregister(self, fast_config, mock_logger, sample_instance):
        store = InMemoryKVStore()
        store.set = AsyncMock(wraps=store.set)
        store.expire = AsyncMock(wraps=store.expire)
        registry = KVServiceRegistry(store, fast_config, logger=mock_logger)

        await registry.register(sample_instance)
        await asyncio.sleep(0.12)
        await registry.deregister(sample_instance)
        writes = store.set.await_count + store.expire.await_count

        await asyncio.sleep(0.15)

        assert store.set.await_count + store.expire.await_count == writes
        assert store.keys() == []

    @pytest.mark.asyncio
    async def test_deregister_during_registration_wins(
        self, fast_config, mock_logger, sample_instance
    ):
        store = InMemoryKVStore()
        original_set = store.set

        async def slow_set(key, value, ttl):
            await asyncio.sleep(0.05)
            await original_set(key, value, ttl)

        store.set = AsyncMock(side_effect=slow_set)
        registry = KVServiceRegistry(store, fast_config, logger=mock_logger)

        registering = asyncio.create_task(registry.register(sample_instance))
        await asyncio.sleep(0.01)
        await registry.deregister(sample_instance)
        await registering
        writes = store.set.await_count

        await asyncio.sleep(0.15)

        assert store.keys() == []
        assert not registry.is_registered(sample_instance)
        assert store.set.await_count == writes
        await registry.close()

    @pytest.mark.asyncio
    async def test_only_targeted_instance_stops(self, live_registry, sample_instance):
        other = ServiceInstance(id="i2", name="orders")
        await live_registry.register(sample_instance)
        await live_registry.register(other)

        await live_registry.deregister(sample_instance)
        await asyncio.sleep(0.1)

        assert live_registry.is_registered(other)
        assert not live_registry.is_registered(sample_instance)
        assert [i.id for i in await live_registry.get_service("orders")] == ["i2"]


class TestDiscovery:
    """Test cases for get_service and watch."""

    @pytest.mark.asyncio
    async def test_register_then_discover_scenario(self, mock_logger):
        """Register i1, see exactly i1, deregister, see nothing."""
        config = RegistryConfig(namespace="/ms", ttl=5)
        async with KVServiceRegistry(InMemoryKVStore(), config, logger=mock_logger) as registry:
            instance = ServiceInstance(id="i1", name="orders")
            await registry.register(instance)

            found = await registry.get_service("orders")
            assert [i.id for i in found] == ["i1"]

            await registry.deregister(instance)
            assert await registry.get_service("orders") == []

    @pytest.mark.asyncio
    async def test_get_service_scans_service_prefix(self, registry, mock_kv_store):
        await registry.get_service("orders")

        cursor, match, count = mock_kv_store.scan.call_args.args
        assert (cursor, match, count) == (0, "/ms/orders*", 20)

    @pytest.mark.asyncio
    async def test_get_service_ignores_sibling_services(self, live_registry):
        await live_registry.register(ServiceInstance(id="a", name="orders"))
        await live_registry.register(ServiceInstance(id="b", name="orders-archive"))

        assert [i.id for i in await live_registry.get_service("orders")] == ["a"]

    @pytest.mark.asyncio
    async def test_get_service_propagates_store_errors(self, registry, mock_kv_store):
        mock_kv_store.scan.side_effect = StoreError("Redis scan failed", operation="scan")

        with pytest.raises(StoreError):
            await registry.get_service("orders")

    @pytest.mark.asyncio
    async def test_watch_returns_bound_watcher(self, live_registry, fast_config):
        watcher = await live_registry.watch("orders")

        assert isinstance(watcher, KVWatcher)
        assert watcher.prefix == "/ms/orders"
        assert watcher.period == fast_config.watcher_ttl
        await watcher.stop()

    @pytest.mark.asyncio
    async def test_watch_agrees_with_get_service(self, live_registry):
        for i in range(3):
            await live_registry.register(ServiceInstance(id=f"i{i}", name="orders"))
        watcher = await live_registry.watch("orders")

        snapshot = await watcher.next()
        listed = await live_registry.get_service("orders")

        assert sorted(i.id for i in snapshot) == sorted(i.id for i in listed)
        await watcher.stop()

    @pytest.mark.asyncio
    async def test_watcher_outlives_registry_close(self, live_registry):
        watcher = await live_registry.watch("orders")
        await live_registry.close()

        assert await watcher.next() == []
        await watcher.stop()
        with pytest.raises(WatcherStoppedError):
            await watcher.next()


class TestClose:
    """Test cases for registry shutdown."""

    @pytest.mark.asyncio
    async def test_close_stops_all_heartbeats(self, live_registry, mock_logger):
        await live_registry.register(ServiceInstance(id="a", name="orders"))
        await live_registry.register(ServiceInstance(id="b", name="payments"))

        await live_registry.close()

        assert live_registry.registered_keys() == []
        mock_logger.info.assert_any_call("Registry closed", stopped_heartbeats=2)

    @pytest.mark.asyncio
    async def test_close_without_registrations(self, registry):
        await registry.close()
        assert registry.registered_keys() == []

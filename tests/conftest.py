"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, Mock

import pytest

from kv_registry.domain.models import ServiceInstance
from kv_registry.infrastructure.config import RegistryConfig
from kv_registry.infrastructure.in_memory_kv_store import InMemoryKVStore
from kv_registry.ports.clock import ClockPort
from kv_registry.ports.kv_store import KVStorePort
from kv_registry.ports.logger import LoggerPort


class FakeClock(ClockPort):
    """Manually advanced clock for deterministic expiry."""

    def __init__(self, start: datetime | None = None) -> None:
        self._now = start or datetime(2025, 1, 1, tzinfo=UTC)

    def now(self) -> datetime:
        return self._now

    def advance(self, seconds: float) -> None:
        self._now += timedelta(seconds=seconds)


@pytest.fixture
def fake_clock():
    """Create a manually advanced clock."""
    return FakeClock()


@pytest.fixture
def memory_store(fake_clock):
    """Create an in-memory KV store driven by the fake clock."""
    return InMemoryKVStore(clock=fake_clock)


@pytest.fixture
def mock_kv_store():
    """Create a mock KV store for testing."""
    mock = Mock(spec=KVStorePort)
    mock.set = AsyncMock()
    mock.get_many = AsyncMock(return_value=[])
    mock.ttl = AsyncMock(return_value=-2.0)
    mock.expire = AsyncMock(return_value=True)
    mock.delete = AsyncMock(return_value=True)
    mock.scan = AsyncMock(return_value=(0, []))
    mock.close = AsyncMock()
    return mock


@pytest.fixture
def mock_logger():
    """Create a mock logger for testing."""
    return Mock(spec=LoggerPort)


@pytest.fixture
def fast_config():
    """Registry configuration with sub-second periods."""
    return RegistryConfig(namespace="/ms", ttl=0.05, watcher_ttl=0.05, ttl_grace=2.0)


@pytest.fixture
def sample_instance():
    """Create a sample service instance."""
    return ServiceInstance(
        id="i1",
        name="orders",
        version="v1.0.0",
        endpoints=["http://10.0.0.1:8000"],
        metadata={"region": "eu"},
    )

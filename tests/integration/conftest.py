"""Fixtures for integration tests against a real Redis server."""

import os

import pytest
import pytest_asyncio

from kv_registry.infrastructure.config import RedisConnectionConfig
from kv_registry.infrastructure.redis_kv_store import RedisKVStore


@pytest.fixture(scope="session")
def redis_url():
    """Start a Redis container for integration tests."""
    # Skip if explicitly disabled
    if os.getenv("SKIP_INTEGRATION_TESTS", "").lower() == "true":
        pytest.skip("Integration tests disabled")

    # Use existing Redis if available
    if os.getenv("REDIS_URL"):
        yield os.getenv("REDIS_URL")
        return

    from testcontainers.redis import RedisContainer

    container = RedisContainer("redis:7-alpine")
    try:
        container.start()
    except Exception as e:
        pytest.skip(f"Redis container unavailable: {e}")

    host = container.get_container_host_ip()
    yield f"redis://{host}:{container.get_exposed_port(6379)}/0"

    container.stop()


@pytest_asyncio.fixture
async def redis_store(redis_url, mock_logger):
    """Create a Redis KV store on a flushed database."""
    store = RedisKVStore.from_config(RedisConnectionConfig(url=redis_url), logger=mock_logger)
    await store.client.flushdb()

    yield store

    await store.client.flushdb()
    await store.close()

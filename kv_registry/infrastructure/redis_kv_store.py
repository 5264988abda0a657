"""Redis KV Store adapter - Concrete implementation of KVStorePort."""

from __future__ import annotations

import redis.asyncio as redis
from redis.exceptions import RedisError

from ..domain.exceptions import StoreError
from ..ports.kv_store import SCAN_START, TTL_MISSING, TTL_PERSISTENT, KVStorePort
from ..ports.logger import LoggerPort
from .config import RedisConnectionConfig
from .simple_logger import SimpleLogger


def _to_millis(ttl: float) -> int:
    return max(int(ttl * 1000), 1)


class RedisKVStore(KVStorePort):
    """Redis implementation of the KV Store port.

    The client must be created with ``decode_responses=True`` so values and
    keys come back as ``str``. Every ``RedisError`` is re-raised as a
    ``StoreError`` naming the failed operation and key.
    """

    def __init__(
        self,
        client: redis.Redis,
        logger: LoggerPort | None = None,
        owns_client: bool = False,
    ):
        """Initialize the Redis KV Store adapter.

        Args:
            client: An async Redis client with ``decode_responses=True``
            logger: Optional logger port. If not provided, uses simple logger.
            owns_client: Whether ``close()`` should also close the client
        """
        self._client = client
        self._logger = logger or SimpleLogger("kv_registry.redis_kv_store")
        self._owns_client = owns_client

    @classmethod
    def from_config(
        cls, config: RedisConnectionConfig | None = None, logger: LoggerPort | None = None
    ) -> RedisKVStore:
        """Create an adapter owning a new client built from configuration."""
        config = config or RedisConnectionConfig()
        client = redis.from_url(config.url, **config.to_connection_params())
        return cls(client, logger=logger, owns_client=True)

    @property
    def client(self) -> redis.Redis:
        """The underlying Redis client."""
        return self._client

    def _fail(self, operation: str, key: str | None, error: Exception) -> StoreError:
        self._logger.error(
            f"Redis {operation} failed",
            operation=operation,
            key=key,
            error=str(error),
        )
        return StoreError(f"Redis {operation} failed: {error}", key=key, operation=operation)

    async def set(self, key: str, value: str, ttl: float) -> None:
        try:
            await self._client.set(key, value, px=_to_millis(ttl))
        except RedisError as e:
            raise self._fail("set", key, e) from e

    async def get_many(self, keys: list[str]) -> list[str | None]:
        if not keys:
            return []
        try:
            values = await self._client.mget(keys)
        except RedisError as e:
            raise self._fail("get_many", keys[0], e) from e
        return [v if isinstance(v, str) else None for v in values]

    async def ttl(self, key: str) -> float:
        try:
            millis = await self._client.pttl(key)
        except RedisError as e:
            raise self._fail("ttl", key, e) from e
        if millis == -2:
            return TTL_MISSING
        if millis == -1:
            return TTL_PERSISTENT
        return millis / 1000.0

    async def expire(self, key: str, ttl: float) -> bool:
        try:
            return bool(await self._client.pexpire(key, _to_millis(ttl)))
        except RedisError as e:
            raise self._fail("expire", key, e) from e

    async def delete(self, key: str) -> bool:
        try:
            return int(await self._client.delete(key)) > 0
        except RedisError as e:
            raise self._fail("delete", key, e) from e

    async def scan(self, cursor: int, match: str, count: int) -> tuple[int, list[str]]:
        try:
            next_cursor, keys = await self._client.scan(cursor=cursor, match=match, count=count)
        except RedisError as e:
            raise self._fail("scan", match, e) from e
        return int(next_cursor or SCAN_START), list(keys)

    async def ping(self) -> bool:
        """Check the server answers."""
        try:
            return bool(await self._client.ping())
        except RedisError as e:
            raise self._fail("ping", None, e) from e

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

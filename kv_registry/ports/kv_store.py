"""Key-Value Store interface - Port definition for the registration store."""

from abc import ABC, abstractmethod

# Cursor value that both starts a scan and marks a completed cycle.
SCAN_START = 0

# Remaining-TTL markers returned by ``KVStorePort.ttl``.
TTL_MISSING = -2.0
TTL_PERSISTENT = -1.0


class KVStorePort(ABC):
    """Abstract interface for the key-value store holding registrations.

    This port defines the contract the registry needs from its store:
    TTL-bound writes, TTL inspection and extension, batched reads and
    cursor-based key scans. Implementations raise ``StoreError`` for any
    transport or command failure.
    """

    @abstractmethod
    async def set(self, key: str, value: str, ttl: float) -> None:
        """Store a value that expires after ``ttl`` seconds.

        Args:
            key: The key to store
            value: The serialized value
            ttl: Time-to-live in seconds

        Raises:
            StoreError: If the write fails
        """
        ...

    @abstractmethod
    async def get_many(self, keys: list[str]) -> list[str | None]:
        """Get multiple values by keys.

        Args:
            keys: List of keys to retrieve

        Returns:
            Values in the same order as ``keys``, ``None`` for missing keys

        Raises:
            StoreError: If the read fails
        """
        ...

    @abstractmethod
    async def ttl(self, key: str) -> float:
        """Get the remaining time-to-live of a key.

        Args:
            key: The key to inspect

        Returns:
            Remaining seconds, ``TTL_MISSING`` if the key does not exist or
            ``TTL_PERSISTENT`` if it never expires

        Raises:
            StoreError: If the query fails
        """
        ...

    @abstractmethod
    async def expire(self, key: str, ttl: float) -> bool:
        """Reset the time-to-live of an existing key without touching its value.

        Args:
            key: The key to extend
            ttl: New time-to-live in seconds

        Returns:
            True if the key existed and was updated, False otherwise

        Raises:
            StoreError: If the command fails
        """
        ...

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete a key.

        Args:
            key: The key to delete

        Returns:
            True if deleted, False if not found

        Raises:
            StoreError: If the command fails
        """
        ...

    @abstractmethod
    async def scan(self, cursor: int, match: str, count: int) -> tuple[int, list[str]]:
        """Fetch one batch of keys matching a glob pattern.

        Args:
            cursor: Cursor returned by the previous call, ``SCAN_START`` to begin
            match: Glob pattern keys must match
            count: Batch size hint

        Returns:
            Tuple of the next cursor (``SCAN_START`` once the cycle is
            complete) and the matching keys of this batch

        Raises:
            StoreError: If the command fails
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release the underlying connection."""
        ...

"""In-memory implementation of the KVStorePort.

This is an infrastructure adapter for testing and local development. It
mirrors the Redis behaviour the registry relies on: per-key expiry,
``PTTL`` markers, glob ``MATCH`` patterns and cursor-based scans that may
return short or empty batches before the cycle completes.
"""

from __future__ import annotations

import bisect
import re
from datetime import datetime, timedelta

from ..domain.exceptions import StoreError
from ..ports.clock import ClockPort
from ..ports.kv_store import SCAN_START, TTL_MISSING, TTL_PERSISTENT, KVStorePort
from .system_clock import SystemClock


def glob_to_regex(pattern: str) -> re.Pattern[str]:
    """Translate a Redis glob pattern (``*``, ``?``, ``[...]``, ``\\`` escapes)."""
    parts: list[str] = []
    i = 0
    while i < len(pattern):
        char = pattern[i]
        if char == "\\" and i + 1 < len(pattern):
            parts.append(re.escape(pattern[i + 1]))
            i += 2
            continue
        if char == "*":
            parts.append(".*")
        elif char == "?":
            parts.append(".")
        elif char == "[":
            end = pattern.find("]", i + 1)
            if end == -1:
                parts.append(re.escape(char))
            else:
                body = pattern[i + 1 : end]
                if body.startswith("^"):
                    body = "^" + re.escape(body[1:]).replace("\\-", "-")
                else:
                    body = re.escape(body).replace("\\-", "-")
                parts.append(f"[{body}]")
                i = end
        else:
            parts.append(re.escape(char))
        i += 1
    return re.compile("".join(parts) + r"\Z", re.DOTALL)


class InMemoryKVStore(KVStorePort):
    """Dict-backed key-value store with TTL expiry."""

    def __init__(self, clock: ClockPort | None = None) -> None:
        """Initialize the in-memory storage.

        Args:
            clock: Time source used for expiry (default: system UTC clock)
        """
        self._clock = clock or SystemClock()
        # key -> (value, expires_at or None for persistent keys)
        self._storage: dict[str, tuple[str, datetime | None]] = {}
        # open scan cursor -> last key it examined
        self._cursors: dict[int, str] = {}
        self._last_cursor = SCAN_START
        self._closed = False

    def _check_open(self, operation: str) -> None:
        if self._closed:
            raise StoreError("In-memory store is closed", operation=operation)

    def _purge_expired(self) -> None:
        now = self._clock.now()
        expired = [
            key
            for key, (_, expires_at) in self._storage.items()
            if expires_at is not None and expires_at <= now
        ]
        for key in expired:
            del self._storage[key]

    async def set(self, key: str, value: str, ttl: float) -> None:
        self._check_open("set")
        if ttl <= 0:
            raise StoreError(f"Invalid TTL {ttl} for set", key=key, operation="set")
        self._storage[key] = (value, self._clock.now() + timedelta(seconds=ttl))

    async def get_many(self, keys: list[str]) -> list[str | None]:
        self._check_open("get_many")
        self._purge_expired()
        values: list[str | None] = []
        for key in keys:
            entry = self._storage.get(key)
            values.append(entry[0] if entry else None)
        return values

    async def ttl(self, key: str) -> float:
        self._check_open("ttl")
        self._purge_expired()
        entry = self._storage.get(key)
        if entry is None:
            return TTL_MISSING
        expires_at = entry[1]
        if expires_at is None:
            return TTL_PERSISTENT
        return (expires_at - self._clock.now()).total_seconds()

    async def expire(self, key: str, ttl: float) -> bool:
        self._check_open("expire")
        self._purge_expired()
        entry = self._storage.get(key)
        if entry is None:
            return False
        if ttl <= 0:
            del self._storage[key]
            return True
        self._storage[key] = (entry[0], self._clock.now() + timedelta(seconds=ttl))
        return True

    async def delete(self, key: str) -> bool:
        self._check_open("delete")
        self._purge_expired()
        return self._storage.pop(key, None) is not None

    async def scan(self, cursor: int, match: str, count: int) -> tuple[int, list[str]]:
        """Examine up to ``count`` keys after the cursor's position in key order.

        A cursor remembers the last key it examined rather than an index, so
        keys removed earlier in the order never shift later keys out of the
        cycle. A key live for the whole cycle is always returned.
        """
        self._check_open("scan")
        last_key: str | None = None
        if cursor != SCAN_START:
            last_key = self._cursors.pop(cursor, None)
            if last_key is None:
                raise StoreError(f"Invalid scan cursor {cursor}", operation="scan")
        self._purge_expired()
        ordered = sorted(self._storage)
        start = 0 if last_key is None else bisect.bisect_right(ordered, last_key)
        window = ordered[start : start + max(count, 1)]
        regex = glob_to_regex(match)
        batch = [key for key in window if regex.match(key)]
        if start + len(window) >= len(ordered):
            return SCAN_START, batch

        self._last_cursor += 1
        self._cursors[self._last_cursor] = window[-1]
        return self._last_cursor, batch

    async def close(self) -> None:
        self._closed = True

    def put_raw(self, key: str, value: str, ttl: float | None = None) -> None:
        """Store a value directly, bypassing validation (useful for testing)."""
        expires_at = self._clock.now() + timedelta(seconds=ttl) if ttl is not None else None
        self._storage[key] = (value, expires_at)

    def keys(self) -> list[str]:
        """Get every live key (useful for testing)."""
        self._purge_expired()
        return sorted(self._storage)

    def raw_value(self, key: str) -> str | None:
        """Get a stored value without going through the port (useful for testing)."""
        self._purge_expired()
        entry = self._storage.get(key)
        return entry[0] if entry else None

    def clear(self) -> None:
        """Drop every key (useful for testing)."""
        self._storage.clear()

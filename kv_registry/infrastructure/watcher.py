"""Polling watcher over one service's registration records."""

from __future__ import annotations

import asyncio
import math

from ..domain.exceptions import DeadlineExceededError, WatcherStoppedError
from ..domain.models import ServiceInstance
from ..ports.kv_store import KVStorePort
from ..ports.logger import LoggerPort
from ..ports.registry import WatcherPort
from .enumeration import DEFAULT_SCAN_COUNT, scan_instances
from .simple_logger import SimpleLogger


class KVWatcher(WatcherPort):
    """Watcher returning a full snapshot of a prefix on every tick.

    Ticks follow a fixed schedule starting when the watcher is created;
    ticks missed while the caller was busy are dropped rather than queued.
    Each successful ``next()`` returns every live instance, not a diff.
    Use ``ChangeWatcher`` for change-only semantics.

    Must be created from within a running event loop.
    """

    def __init__(
        self,
        kv_store: KVStorePort,
        prefix: str,
        period: float,
        timeout: float | None = None,
        scan_count: int = DEFAULT_SCAN_COUNT,
        separator: str | None = "/",
        logger: LoggerPort | None = None,
    ) -> None:
        """Initialize the watcher.

        Args:
            kv_store: Store holding the registration records
            prefix: Key prefix of the watched service
            period: Seconds between snapshots
            timeout: Optional lifetime in seconds, after which ``next`` fails
            scan_count: Scan batch size
            separator: Segment separator following the prefix in record keys
            logger: Logger for watcher events
        """
        if period <= 0:
            raise ValueError(f"Watcher period must be positive, got {period}")
        if timeout is not None and timeout <= 0:
            raise ValueError(f"Watcher timeout must be positive, got {timeout}")

        self._kv_store = kv_store
        self._prefix = prefix
        self._period = period
        self._timeout = timeout
        self._scan_count = scan_count
        self._separator = separator
        self._logger = logger or SimpleLogger("kv_registry.watcher")

        self._loop = asyncio.get_running_loop()
        started = self._loop.time()
        self._next_tick = started + period
        self._deadline = started + timeout if timeout is not None else None
        self._stop_event = asyncio.Event()
        self._inflight: asyncio.Future[list[ServiceInstance]] | None = None

    @property
    def prefix(self) -> str:
        return self._prefix

    @property
    def period(self) -> float:
        return self._period

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def _check_alive(self) -> None:
        if self._stop_event.is_set():
            raise WatcherStoppedError(self._prefix)
        if self._deadline is not None and self._loop.time() >= self._deadline:
            raise DeadlineExceededError(self._prefix, self._timeout or 0.0)

    async def next(self) -> list[ServiceInstance]:
        """Wait for the next tick and return the current snapshot.

        Raises:
            WatcherStoppedError: If the watcher is stopped before or while waiting
            DeadlineExceededError: If the watcher's lifetime ends first
            StoreError: If the store fails while enumerating
            SerializationError: If a stored record cannot be decoded
        """
        self._check_alive()

        now = self._loop.time()
        delay = max(self._next_tick - now, 0.0)
        hits_deadline = self._deadline is not None and self._deadline - now <= delay
        if hits_deadline:
            delay = max(self._deadline - now, 0.0)  # type: ignore[operator]

        if delay > 0:
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
            except TimeoutError:
                pass
        self._check_alive()
        if hits_deadline:
            raise DeadlineExceededError(self._prefix, self._timeout or 0.0)

        self._advance_schedule()
        self._logger.debug("Watcher tick", prefix=self._prefix)
        return await self._snapshot()

    def _advance_schedule(self) -> None:
        now = self._loop.time()
        missed = max(math.floor((now - self._next_tick) / self._period), 0)
        self._next_tick += (missed + 1) * self._period

    async def _snapshot(self) -> list[ServiceInstance]:
        scan = asyncio.ensure_future(
            scan_instances(
                self._kv_store,
                self._prefix,
                count=self._scan_count,
                logger=self._logger,
                separator=self._separator,
            )
        )
        self._inflight = scan
        try:
            if self._deadline is None:
                return await scan
            async with asyncio.timeout_at(self._deadline):
                return await scan
        except TimeoutError:
            if self._deadline is not None and self._loop.time() >= self._deadline:
                raise DeadlineExceededError(self._prefix, self._timeout or 0.0) from None
            raise
        except asyncio.CancelledError:
            current = asyncio.current_task()
            outer_cancelled = current is not None and current.cancelling() > 0
            if self._stop_event.is_set() and not outer_cancelled:
                raise WatcherStoppedError(self._prefix) from None
            raise
        finally:
            self._inflight = None

    async def stop(self) -> None:
        """Stop the watcher, waking any pending ``next``. Idempotent."""
        if self._stop_event.is_set():
            return
        self._stop_event.set()
        if self._inflight is not None and not self._inflight.done():
            self._inflight.cancel()
        self._logger.debug("Watcher stopped", prefix=self._prefix)

    def __aiter__(self) -> KVWatcher:
        return self

    async def __anext__(self) -> list[ServiceInstance]:
        try:
            return await self.next()
        except (WatcherStoppedError, DeadlineExceededError):
            raise StopAsyncIteration from None

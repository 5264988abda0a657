"""Periodic renewal of a single registration record."""

from __future__ import annotations

import asyncio
import contextlib
import math
from collections.abc import Awaitable, Callable

from ..ports.logger import LoggerPort
from .simple_logger import SimpleLogger


class RegistrationHeartbeat:
    """Owned, cancelable task that keeps one registration alive.

    Every ``period`` seconds, on a schedule fixed at start, the heartbeat
    invokes ``renew``; a renewal overrunning its period is followed at once
    by the next one and further missed ticks are dropped. A failed
    renewal is logged and the heartbeat simply waits for the next tick;
    nothing is retried early, so a store outage longer than the record's
    TTL lets the record expire until the next successful renewal writes it
    back.
    """

    def __init__(
        self,
        renew: Callable[[], Awaitable[object]],
        period: float,
        key: str,
        logger: LoggerPort | None = None,
        stop_timeout: float = 2.0,
    ) -> None:
        """Initialize the heartbeat.

        Args:
            renew: Coroutine function applying one renewal
            period: Seconds between renewals
            key: Registration key, used for logging
            logger: Logger for heartbeat events
            stop_timeout: Seconds ``stop`` waits before cancelling the task
        """
        if period <= 0:
            raise ValueError(f"Heartbeat period must be positive, got {period}")
        self._renew = renew
        self._period = period
        self._key = key
        self._logger = logger or SimpleLogger("kv_registry.heartbeat")
        self._stop_timeout = stop_timeout

        self._task: asyncio.Task | None = None
        self._stop_event = asyncio.Event()
        self._renewals = 0
        self._failures = 0

    @property
    def key(self) -> str:
        return self._key

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def renewals(self) -> int:
        """Number of successful renewals."""
        return self._renewals

    @property
    def failures(self) -> int:
        """Number of failed renewals."""
        return self._failures

    def start(self) -> None:
        """Start the renewal task."""
        if self.is_running:
            self._logger.warning("Heartbeat already running", key=self._key)
            return

        self._stop_event.clear()
        self._task = asyncio.create_task(self._run(), name=f"heartbeat:{self._key}")
        self._logger.debug("Started heartbeat", key=self._key, period=f"{self._period}s")

    async def stop(self) -> None:
        """Stop the renewal task and wait for it to finish. Idempotent."""
        self._stop_event.set()
        task, self._task = self._task, None
        if task is None:
            return

        if not task.done():
            try:
                await asyncio.wait_for(asyncio.shield(task), timeout=self._stop_timeout)
            except TimeoutError:
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task
        self._logger.debug("Stopped heartbeat", key=self._key, renewals=self._renewals)

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        next_tick = loop.time() + self._period
        while True:
            if self._stop_event.is_set():
                return
            delay = next_tick - loop.time()
            if delay > 0:
                try:
                    await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
                    return
                except TimeoutError:
                    pass

            # Fixed schedule: slow renewals do not push later ticks back.
            missed = max(math.floor((loop.time() - next_tick) / self._period), 0)
            next_tick += (missed + 1) * self._period

            try:
                await self._renew()
                self._renewals += 1
            except Exception as e:
                self._failures += 1
                self._logger.warning(
                    "Failed to renew registration, waiting for next tick",
                    key=self._key,
                    error=str(e),
                    failures=self._failures,
                )

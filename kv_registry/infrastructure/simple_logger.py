"""Simple logger implementation backed by the standard logging module."""

import logging
from typing import Any

from ..ports.logger import LoggerPort

# Attributes already defined on logging.LogRecord; extras may not reuse them.
_RESERVED_ATTRS = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}


class SimpleLogger(LoggerPort):
    """Logger adapter using Python's standard logging.

    Structured keyword context is attached to the record as extras and
    rendered after the message as ``key=value`` pairs, so plain console
    output still shows which service and instance an event concerns.
    """

    def __init__(self, name: str = "kv_registry", level: int = logging.INFO):
        """Initialize the logger.

        Args:
            name: Logger name (default: "kv_registry")
            level: Logging level (default: INFO)
        """
        self._logger = logging.getLogger(name)
        self._logger.setLevel(level)

        if not self._logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
            handler.setFormatter(formatter)
            self._logger.addHandler(handler)

    @property
    def name(self) -> str:
        """Name of the backing logger."""
        return self._logger.name

    def _render(self, message: str, context: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        if not context:
            return message, {}
        pairs = " ".join(f"{k}={v}" for k, v in context.items())
        extra = {(f"ctx_{k}" if k in _RESERVED_ATTRS else k): v for k, v in context.items()}
        return f"{message} [{pairs}]", extra

    def log(
        self,
        level: int,
        message: str,
        exc_info: BaseException | None = None,
        **context: Any,
    ) -> None:
        """Emit a record with context as extras and ``key=value`` suffix."""
        msg, extra = self._render(message, context)
        self._logger.log(level, msg, exc_info=exc_info, extra=extra)

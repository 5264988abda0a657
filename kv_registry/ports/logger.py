"""Logger port for structured registry logging."""

import logging
import sys
from abc import ABC, abstractmethod
from typing import Any


class LoggerPort(ABC):
    """Sink for registry events with structured context.

    Adapters implement ``log`` only. Keyword context (service, instance,
    key, ttl, error) travels alongside the message instead of being
    formatted into it, so adapters decide how to render it.
    """

    @abstractmethod
    def log(
        self,
        level: int,
        message: str,
        exc_info: BaseException | None = None,
        **context: Any,
    ) -> None:
        """Emit one event at a ``logging`` level."""
        ...

    def debug(self, message: str, **context: Any) -> None:
        self.log(logging.DEBUG, message, **context)

    def info(self, message: str, **context: Any) -> None:
        self.log(logging.INFO, message, **context)

    def warning(self, message: str, **context: Any) -> None:
        self.log(logging.WARNING, message, **context)

    def error(self, message: str, **context: Any) -> None:
        self.log(logging.ERROR, message, **context)

    def exception(
        self, message: str, exc_info: BaseException | None = None, **context: Any
    ) -> None:
        """Log at error level with a traceback, the current one by default."""
        self.log(logging.ERROR, message, exc_info=exc_info or sys.exception(), **context)

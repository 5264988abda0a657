"""Clock port abstraction for time handling.

Decouples TTL bookkeeping from system time so expiry can be driven
deterministically in tests.
"""

from abc import ABC, abstractmethod
from datetime import datetime


class ClockPort(ABC):
    """Abstract clock interface for time operations."""

    @abstractmethod
    def now(self) -> datetime:
        """Get the current time as a timezone-aware datetime.

        Note:
            Implementations MUST return timezone-aware datetimes.
        """
        ...

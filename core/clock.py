"""
Core Module - Clock.

============================================================
RESPONSIBILITY
============================================================
Time source for registration and downtime timestamps.

- Directory writes stamp rows with clock.now()
- Downtime expiry is compared against the same clock
- Tests swap in a FixedClock for deterministic timestamps

All times are timezone-aware UTC.

============================================================
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Optional


class ClockProtocol(ABC):
    """Abstract interface for the clock."""

    @abstractmethod
    def now(self) -> datetime:
        """Get current UTC datetime."""
        pass


class SystemClock(ClockProtocol):
    """Wall clock, UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock(ClockProtocol):
    """
    Clock frozen at a given instant until advanced.

    Args:
        initial_time: Starting time (defaults to current UTC)
    """

    def __init__(self, initial_time: Optional[datetime] = None):
        self._time = initial_time or datetime.now(timezone.utc)

    def now(self) -> datetime:
        return self._time

    def advance(self, **kwargs) -> datetime:
        """Move the clock forward by a timedelta built from kwargs."""
        self._time = self._time + timedelta(**kwargs)
        return self._time

"""
Time source for ledger entries and transition records.

The adjuster stamps every ledger entry with ``clock.now()`` and the
transition service stamps the idempotency record the same way.  Tests
pass a DeterministicClock so those timestamps are exact values.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone

STOCK_EPOCH = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class Clock(ABC):
    """Source of timezone-aware UTC timestamps."""

    @abstractmethod
    def now(self) -> datetime: ...


class SystemClock(Clock):
    """Wall-clock time in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Frozen clock for tests.

    ``now()`` keeps returning the same instant until the test moves it
    with ``advance``, ``tick`` or ``set_time``.  Starts at STOCK_EPOCH.
    """

    def __init__(self, start: datetime | None = None):
        self._current = start or STOCK_EPOCH

    def now(self) -> datetime:
        return self._current

    def set_time(self, when: datetime) -> None:
        self._current = when

    def advance(self, seconds: int = 1) -> None:
        self._current += timedelta(seconds=seconds)

    def tick(self) -> datetime:
        """Move forward one second and return the new instant."""
        self.advance()
        return self._current

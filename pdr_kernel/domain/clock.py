"""
Clock -- injectable time source.

Responsibility:
    Every lifecycle timestamp (submitted_at, locked_at, meeting_booked_at,
    completed_at, calibrated_at) and every financial-year lookup takes "now"
    from a Clock handed in by the composing application, never from
    ``datetime.now()``.

Architecture position:
    Kernel > Domain.  ``SystemClock`` is the only place the kernel reads
    the wall clock.

Invariants enforced:
    - Clocks only ever return timezone-aware datetimes.  A naive datetime
      would silently shift a 30 June submission into the wrong financial
      year once converted to the organisation's timezone.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone


def _require_aware(at: datetime) -> datetime:
    if at.tzinfo is None or at.utcoffset() is None:
        raise ValueError(f"Clock times must be timezone-aware, got {at!r}")
    return at


class Clock(ABC):
    """Source of "now" for the state machine and the services."""

    @abstractmethod
    def now(self) -> datetime:
        ...


class SystemClock(Clock):
    """Wall-clock time in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Frozen clock for tests.  Time moves only when ``advance`` is called, so
    two actions in one test get distinct, predictable timestamps.
    """

    def __init__(self, start: datetime | None = None):
        self._current = _require_aware(
            start or datetime(2025, 7, 14, 9, 0, 0, tzinfo=timezone.utc)
        )

    def now(self) -> datetime:
        return self._current

    def advance(self, seconds: float = 1) -> datetime:
        self._current += timedelta(seconds=seconds)
        return self._current

    def advance_days(self, days: int) -> datetime:
        return self.advance(days * 86400)

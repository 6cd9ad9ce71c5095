"""UTC time helpers shared by the ledger models and services.

Synopsis:
All persisted ledger timestamps are UTC. Movement timestamps come from a
process-wide monotonic clock so entries written by one process always sort in
write order, even when the wall clock stalls or steps backwards.

Glossary:
- Monotonic timestamp: a UTC datetime strictly greater than every timestamp
  previously issued by the same clock instance.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone as dt_timezone
from threading import Lock

_TICK = timedelta(microseconds=1)


class TimezoneUtils:
    @staticmethod
    def utc_now() -> datetime:
        """Return the current UTC timestamp (timezone aware)."""
        return datetime.now(dt_timezone.utc)

    @staticmethod
    def ensure_timezone_aware(dt: datetime | None, assume_utc: bool = True) -> datetime | None:
        """Attach UTC to naive datetimes; convert aware ones to UTC."""
        if dt is None:
            return None
        if dt.tzinfo is None:
            if not assume_utc:
                raise ValueError("Naive datetime provided without explicit timezone handling")
            return dt.replace(tzinfo=dt_timezone.utc)
        return dt.astimezone(dt_timezone.utc)

    @staticmethod
    def format_datetime_for_api(dt: datetime | None) -> str | None:
        if dt is None:
            return None
        return TimezoneUtils.ensure_timezone_aware(dt).isoformat()


class MonotonicClock:
    """Hands out strictly increasing UTC timestamps."""

    def __init__(self, now=TimezoneUtils.utc_now):
        self._now = now
        self._last: datetime | None = None
        self._lock = Lock()

    def __call__(self) -> datetime:
        with self._lock:
            current = self._now()
            if self._last is not None and current <= self._last:
                current = self._last + _TICK
            self._last = current
            return current


movement_clock = MonotonicClock()

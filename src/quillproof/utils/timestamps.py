"""
Timestamp utilities:
- ISO-8601 timestamp generator
- wall-clock milliseconds (edit and leaf timestamps)
- monotonic millisecond timer (for elapsed time)
"""

from __future__ import annotations
import datetime as _dt
import time


def utc_now() -> _dt.datetime:
    """Return a timezone-aware UTC datetime."""
    return _dt.datetime.now(tz=_dt.timezone.utc)


def now_iso() -> str:
    """Return the current UTC time as an ISO-8601 string with Z suffix."""
    return utc_now().isoformat().replace("+00:00", "Z")


def now_ms() -> float:
    """Milliseconds since the Unix epoch, as a float."""
    return float(time.time_ns() // 1_000_000)


def monotonic_ms() -> float:
    """
    Monotonic millisecond counter.
    Useful for measuring durations independent of system clock changes.
    """
    return time.perf_counter() * 1000.0

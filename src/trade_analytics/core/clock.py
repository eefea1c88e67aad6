"""Clock abstraction for time-dependent analytics.

WallClock: real wall-clock time (default)
FixedClock: pinned time for deterministic tests and replays

Relative date windows and the importer's "now" fallback never call
datetime.now() directly; they ask a clock.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Protocol


class IClock(Protocol):
    """Clock interface used by all time-dependent code."""

    def now(self) -> datetime:
        """Current time as timezone-aware UTC datetime."""
        ...


class WallClock:
    """Real wall-clock time."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """Clock pinned to a single instant.

    Naive datetimes are interpreted as UTC.
    """

    def __init__(self, instant: datetime | None = None) -> None:
        instant = instant or datetime(2024, 1, 1, tzinfo=timezone.utc)
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=timezone.utc)
        self._time = instant

    def now(self) -> datetime:
        return self._time

    def set_time(self, t: datetime) -> None:
        if t.tzinfo is None:
            t = t.replace(tzinfo=timezone.utc)
        self._time = t

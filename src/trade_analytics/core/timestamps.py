"""Timestamp parsing and formatting helpers.

Trade records carry their dates as ISO-8601 strings so that a dirty pool
(hand-edited entries, legacy imports) can still be loaded.  Everything that
needs an actual instant goes through :func:`parse_timestamp`, which never
raises: an unusable value comes back as ``None``.
"""

from __future__ import annotations

from datetime import datetime, timezone, tzinfo
from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dateutil import parser as date_parser

from .errors import ConfigError


def parse_timestamp(
    value: str | datetime | None,
    *,
    default_tz: tzinfo = timezone.utc,
) -> datetime | None:
    """Parse an ISO-8601 (or loosely formatted) timestamp.

    Naive results are interpreted in ``default_tz``.  Returns ``None`` for
    empty or unparseable input.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            try:
                parsed = date_parser.parse(text)
            except (ValueError, OverflowError):
                return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=default_tz)
    return parsed


def to_iso(dt: datetime) -> str:
    """Format an instant as a UTC ISO-8601 string with millisecond precision."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    text = dt.astimezone(timezone.utc).isoformat(timespec="milliseconds")
    return text.replace("+00:00", "Z")


@lru_cache(maxsize=32)
def get_zone(name: str) -> tzinfo:
    """Resolve an IANA timezone name, raising ConfigError for unknown zones."""
    if name.upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ConfigError(f"Unknown timezone: {name!r}") from exc

"""Time parsing and arithmetic utilities."""

from __future__ import annotations

import math
from datetime import UTC, date, datetime, timedelta, tzinfo

from zoneinfo import ZoneInfo


class TimestampError(ValueError):
    """Raised when an upstream timestamp cannot be parsed."""


def tzinfo_from_name(tz_name: str) -> tzinfo:
    """Create tzinfo from an IANA timezone name.

    Raises:
        ValueError: If timezone name is invalid on this system.
    """

    try:
        return ZoneInfo(tz_name)
    except Exception as exc:  # ZoneInfo raises KeyError / ZoneInfoNotFoundError (platform dependent)
        raise ValueError(f"Invalid time zone: {tz_name!r}. Example: America/New_York") from exc


def _has_explicit_zone(text: str) -> bool:
    if text.endswith(("Z", "z")):
        return True
    # Offsets only ever appear after the date part ("YYYY-MM-DD").
    tail = text[10:]
    return "+" in tail or "-" in tail


def parse_utc_timestamp(value: str | datetime) -> datetime:
    """Parse an upstream timestamp into an aware UTC datetime.

    The telematics feed returns ISO timestamps in UTC without a ``Z`` suffix
    (e.g. ``2025-12-10T13:09:55``). Any timestamp lacking ``Z`` or an explicit
    offset is therefore treated as UTC, never as local time.

    Args:
        value: ISO-8601 text, or a datetime (naive datetimes are taken as UTC).

    Returns:
        Timezone-aware datetime in UTC.

    Raises:
        TimestampError: If the text cannot be parsed.
    """

    if isinstance(value, datetime):
        dt = value
    else:
        s = value.strip()
        if not s:
            raise TimestampError("Empty timestamp")
        if len(s) > 10 and not _has_explicit_zone(s):
            s = s + "Z"
        try:
            dt = datetime.fromisoformat(s)
        except ValueError as exc:
            raise TimestampError(f"Cannot parse timestamp: {value!r}. Expected ISO-8601, e.g. 2025-12-10T13:09:55") from exc

    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def parse_optional_timestamp(value: str | datetime | None) -> datetime | None:
    """Like parse_utc_timestamp, but empty/None values map to None."""

    if value is None:
        return None
    if isinstance(value, str) and not value.strip():
        return None
    return parse_utc_timestamp(value)


def round_minutes(delta: timedelta) -> int:
    """Round a duration to whole minutes, halves rounding up."""

    return math.floor(delta.total_seconds() / 60.0 + 0.5)


def minutes_between(start: datetime, end: datetime) -> int:
    """Whole minutes from start to end (negative when end precedes start)."""

    return round_minutes(end - start)


def day_of_week(day: date) -> str:
    """Full weekday name, e.g. 'Monday'."""

    return day.strftime("%A")


def local_hour(dt: datetime, tz_name: str) -> int:
    """Hour of day of an aware datetime in the given zone."""

    return dt.astimezone(tzinfo_from_name(tz_name)).hour


def format_local(dt: datetime | None, tz_name: str) -> str:
    """Format an aware datetime as local 'YYYY-MM-DD HH:MM:SS', or '' for None."""

    if dt is None:
        return ""
    return dt.astimezone(tzinfo_from_name(tz_name)).strftime("%Y-%m-%d %H:%M:%S")

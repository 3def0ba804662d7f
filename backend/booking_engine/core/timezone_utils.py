# backend/booking_engine/core/timezone_utils.py
"""
Timezone utilities for the booking engine.

Timestamps are stored and compared as timezone-aware UTC. Business hours are
expressed in the tenant's local wall-clock time.
"""

from datetime import date, datetime, time
from typing import Callable

import pytz

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(pytz.UTC)


def ensure_utc(dt: datetime) -> datetime:
    """
    Normalize a datetime to aware UTC.

    Naive values are assumed to already be UTC (SQLite drops tzinfo on read).
    """
    if dt.tzinfo is None:
        return pytz.UTC.localize(dt)
    return dt.astimezone(pytz.UTC)


def get_timezone(tz_name: str) -> pytz.BaseTzInfo:
    """Resolve an IANA timezone name, raising ValueError for unknown zones."""
    try:
        return pytz.timezone(tz_name)
    except pytz.UnknownTimeZoneError as exc:
        raise ValueError(f"Unknown timezone: {tz_name}") from exc


def to_local(dt: datetime, tz_name: str) -> datetime:
    """Convert a datetime to the given timezone's wall clock."""
    return ensure_utc(dt).astimezone(get_timezone(tz_name))


def local_to_utc(day: date, clock_time: time, tz_name: str) -> datetime:
    """Interpret ``day`` + ``clock_time`` in ``tz_name`` and return aware UTC."""
    tz = get_timezone(tz_name)
    local_dt = tz.localize(datetime.combine(day, clock_time))
    return local_dt.astimezone(pytz.UTC)


def parse_clock_time(value: str) -> time:
    """Parse an ``HH:MM`` string into a time of day."""
    hours, _, minutes = value.strip().partition(":")
    return time(int(hours), int(minutes or 0))


def format_clock_time(value: time) -> str:
    return value.strftime("%H:%M")

# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""DateTime utilities for StudyFlow.

All timestamps read from the database are absolute instants. Python
datetimes handled by the analytics pipeline are timezone-aware; naive
values are interpreted as UTC. Calendar-day and hour bucketing happens in
the configured analytics timezone via ``to_local``.

Usage:
    from studyflow.utils.datetime import utc_now, to_local

    now = utc_now()
    local_day = to_local(now, "Europe/Istanbul").date()
"""

from datetime import date, datetime, time, timezone
from zoneinfo import ZoneInfo


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime.

    Returns:
        Timezone-aware datetime representing current UTC time.
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """Ensure a datetime is timezone-aware UTC.

    Args:
        dt: A datetime object (naive or aware) or None.

    Returns:
        Timezone-aware UTC datetime or None.

    Note:
        - If dt is None, returns None
        - If dt is naive, assumes UTC and adds tzinfo
        - If dt is aware, converts to UTC
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(timezone.utc)


def to_local(dt: datetime, tz_name: str) -> datetime:
    """Convert an instant to wall-clock time in the given IANA timezone."""
    return ensure_utc(dt).astimezone(ZoneInfo(tz_name))


def local_midnight(day: date, tz_name: str) -> datetime:
    """Get the instant of midnight for a calendar day in a timezone.

    Args:
        day: Calendar day.
        tz_name: IANA timezone name.

    Returns:
        Timezone-aware UTC datetime of 00:00 local time on ``day``.
    """
    return datetime.combine(day, time.min, tzinfo=ZoneInfo(tz_name)).astimezone(
        timezone.utc
    )


def minutes_between(start: datetime, end: datetime) -> float:
    """Get the elapsed minutes between two instants."""
    return (ensure_utc(end) - ensure_utc(start)).total_seconds() / 60


def format_iso(dt: datetime | None) -> str | None:
    """Format a datetime as ISO 8601 string.

    Args:
        dt: The datetime to format.

    Returns:
        ISO 8601 string or None if dt is None.
    """
    if dt is None:
        return None
    return ensure_utc(dt).isoformat()

# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Time ranges and date windows for analytics queries."""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum

from studyflow.utils.datetime import ensure_utc, local_midnight, to_local


class InvalidTimeRangeError(ValueError):
    """Raised when a time range name is not recognised."""

    pass


class TimeRange(str, Enum):
    """Selectable analytics periods."""

    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"

    @classmethod
    def parse(cls, value: "TimeRange | str") -> "TimeRange":
        """Parse a time range name.

        Raises:
            InvalidTimeRangeError: If the name is not a known range.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise InvalidTimeRangeError(
                f"Unknown time range '{value}'. Expected one of: "
                + ", ".join(member.value for member in cls)
            ) from None

    @property
    def bucket_count(self) -> int:
        """Number of daily buckets in the study hours series."""
        return 7 if self is TimeRange.WEEK else 30


@dataclass(frozen=True)
class DateWindow:
    """Closed query window ``[start, end]`` in UTC."""

    start: datetime
    end: datetime

    def contains(self, instant: datetime) -> bool:
        """Check whether an instant lies in the window; naive values are UTC."""
        return ensure_utc(self.start) <= ensure_utc(instant) <= ensure_utc(self.end)


def week_start_day(day: date, week_starts_on: str = "sunday") -> date:
    """Get the first day of the week containing ``day``.

    Args:
        day: Any calendar day.
        week_starts_on: ``"sunday"`` or ``"monday"``.
    """
    if week_starts_on == "monday":
        offset = day.weekday()
    else:
        offset = (day.weekday() + 1) % 7
    return day - timedelta(days=offset)


def period_start_day(time_range: TimeRange, today: date, week_starts_on: str = "sunday") -> date:
    """Get the first calendar day of the current period."""
    if time_range is TimeRange.WEEK:
        return week_start_day(today, week_starts_on)
    if time_range is TimeRange.MONTH:
        return today.replace(day=1)
    if time_range is TimeRange.QUARTER:
        return today.replace(month=(today.month - 1) // 3 * 3 + 1, day=1)
    return today.replace(month=1, day=1)


def resolve_window(
    time_range: TimeRange,
    now: datetime,
    tz_name: str = "UTC",
    week_starts_on: str = "sunday",
) -> DateWindow:
    """Map a time range to the window from the start of the current period to ``now``.

    Args:
        time_range: Selected period.
        now: Reference instant.
        tz_name: Timezone whose calendar defines period boundaries.
        week_starts_on: First day of the week.

    Returns:
        DateWindow ending at ``now``.
    """
    today = to_local(now, tz_name).date()
    start_day = period_start_day(time_range, today, week_starts_on)
    return DateWindow(start=local_midnight(start_day, tz_name), end=now)

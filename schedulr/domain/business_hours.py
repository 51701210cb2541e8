"""
Resolve weekly business hours against concrete dates and instants.
"""

from __future__ import annotations

from typing import List, Tuple

from pendulum import DateTime

from .models import TimeRange, within_closed
from .time_arithmetic import (
    DEFAULT_TIMEZONE,
    DateLike,
    DayKey,
    InstantLike,
    at_clock,
    day_key_of,
    normalize_date,
    normalize_instant,
)
from .weekly_hours import DayHours, WeeklyHours


def hours_for(day: DateLike, weekly_hours: WeeklyHours, tz: str = DEFAULT_TIMEZONE) -> DayHours:
    """Return the DayHours that apply to ``day``'s day of the week."""
    return weekly_hours.for_day(day_key_of(normalize_date(day, tz)))


def is_open_on(day: DateLike, weekly_hours: WeeklyHours, tz: str = DEFAULT_TIMEZONE) -> bool:
    """Whether the business is open at all on ``day``."""
    return hours_for(day, weekly_hours, tz).open


def open_interval(day: DateLike, weekly_hours: WeeklyHours, tz: str = DEFAULT_TIMEZONE) -> TimeRange | None:
    """
    Get the absolute opening window for a specific day.
    Returns None if the business is closed that day.
    """
    day_hours = hours_for(day, weekly_hours, tz)
    if not day_hours.open:
        return None

    return TimeRange(
        start=at_clock(day, day_hours.start_clock.minutes, tz),
        end=at_clock(day, day_hours.end_clock.minutes, tz),
    )


def is_within_business_hours(instant: InstantLike, weekly_hours: WeeklyHours, tz: str = DEFAULT_TIMEZONE) -> bool:
    """
    True iff ``instant`` falls inside that day's opening window.

    Both the opening and the closing instant count as inside. A closed day
    never contains any instant, whatever clock values it still carries.
    The instant is first expressed in ``tz``; naive values are read as
    wall-clock time there.
    """
    instant = normalize_instant(instant, tz)
    window = open_interval(instant, weekly_hours, tz)
    if window is None:
        return False
    return within_closed(instant, window.start, window.end)


def week_business_hours(
    week_start: DateLike,
    weekly_hours: WeeklyHours,
    tz: str = DEFAULT_TIMEZONE,
) -> List[Tuple[DateTime, DayKey, DayHours]]:
    """The seven consecutive days from ``week_start`` with their hours."""
    start = normalize_date(week_start, tz)
    week = []
    for offset in range(7):
        day = start.add(days=offset)
        key = day_key_of(day)
        week.append((day, key, weekly_hours.for_day(key)))
    return week


def open_days(
    start_date: DateLike,
    end_date: DateLike,
    weekly_hours: WeeklyHours,
    tz: str = DEFAULT_TIMEZONE,
) -> List[DateTime]:
    """All dates from ``start_date`` to ``end_date`` (inclusive) on which the business is open."""
    current = normalize_date(start_date, tz)
    last = normalize_date(end_date, tz)
    days: List[DateTime] = []

    while current <= last:
        if is_open_on(current, weekly_hours, tz):
            days.append(current)
        current = current.add(days=1)

    return days

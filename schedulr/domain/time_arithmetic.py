"""
Pure helpers for clock times, minute offsets, day keys and instants.

Everything here is stateless. Instants are pendulum ``DateTime`` objects in a
single business timezone; raw inputs (ISO-8601 strings, naive or aware
``datetime`` values) are normalized at the boundary with
:func:`normalize_instant` and :func:`normalize_date`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Union

import pendulum
from pendulum import DateTime

from .exceptions import FormatError

DEFAULT_TIMEZONE = "UTC"

MINUTES_PER_DAY = 24 * 60

CLOCK_TIME_PATTERN = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")
TWELVE_HOUR_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})\s?(AM|PM)$", re.IGNORECASE)

InstantLike = Union[str, datetime, DateTime]
DateLike = Union[str, date, datetime, DateTime]


class DayKey(str, Enum):
    """Lowercase English day name used as a key in weekly hours."""

    SUNDAY = "sunday"
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"

    @property
    def label(self) -> str:
        """Capitalized name for messages ("Monday")."""
        return self.value.capitalize()

    @classmethod
    def ordered(cls) -> list["DayKey"]:
        """All keys in Sunday-first order."""
        return list(cls)


def day_key_of(day: date) -> DayKey:
    """
    Map a date's day-of-week to its DayKey.

    ``isoweekday() % 7`` gives 0=Sunday .. 6=Saturday regardless of locale or
    pendulum version.
    """
    return DayKey.ordered()[day.isoweekday() % 7]


@dataclass(frozen=True, order=True)
class ClockTime:
    """
    A validated 24-hour wall-clock time.

    Only construct through :meth:`parse` or :meth:`from_minutes`.
    """
    minutes: int

    def __post_init__(self):
        if not 0 <= self.minutes < MINUTES_PER_DAY:
            raise FormatError(f"Clock time must be within a day, got {self.minutes} minutes")

    @classmethod
    def parse(cls, value: str) -> "ClockTime":
        return cls(to_minutes(value))

    @classmethod
    def from_minutes(cls, minutes: int) -> "ClockTime":
        return cls(minutes % MINUTES_PER_DAY)

    @property
    def hour(self) -> int:
        return self.minutes // 60

    @property
    def minute(self) -> int:
        return self.minutes % 60

    def __str__(self) -> str:
        return from_minutes(self.minutes)


def to_minutes(value: str) -> int:
    """
    Parse an ``HH:MM`` string into minutes since midnight.

    Raises:
        FormatError: If the value is not a valid 24-hour clock time
    """
    if not isinstance(value, str):
        raise FormatError(f"Clock time must be a string, got {type(value).__name__}")

    match = CLOCK_TIME_PATTERN.match(value.strip())
    if not match:
        raise FormatError(f"Invalid clock time '{value}', expected HH:MM")

    return int(match.group(1)) * 60 + int(match.group(2))


def from_minutes(minutes: int) -> str:
    """
    Format minutes since midnight as zero-padded ``HH:MM``.

    Values outside [0, 1439] wrap modulo 1440, so 1440 is "00:00" and -15 is
    "23:45".
    """
    wrapped = minutes % MINUTES_PER_DAY
    return f"{wrapped // 60:02d}:{wrapped % 60:02d}"


def minute_of_day(instant: datetime) -> int:
    """Minutes since midnight of an instant, ignoring seconds."""
    return instant.hour * 60 + instant.minute


def add_minutes(instant: datetime, minutes: int) -> DateTime:
    """Calendar-aware addition; hour and day rollover is handled by pendulum."""
    return _as_pendulum(instant).add(minutes=minutes)


def at_clock(day: DateLike, minutes: int, tz: str = DEFAULT_TIMEZONE) -> DateTime:
    """Return the instant on ``day``'s calendar date at ``minutes`` past midnight."""
    start = normalize_date(day, tz)
    clock = ClockTime.from_minutes(minutes)
    return start.set(hour=clock.hour, minute=clock.minute, second=0, microsecond=0)


def normalize_instant(value: InstantLike, tz: str = DEFAULT_TIMEZONE) -> DateTime:
    """
    Normalize a timestamp into a pendulum DateTime in the business timezone.

    Naive values are interpreted as wall-clock time in ``tz``; aware values
    are converted to ``tz``.

    Raises:
        FormatError: If the value cannot be interpreted as an instant
    """
    if isinstance(value, str):
        try:
            parsed = pendulum.parse(value, tz=tz)
        except ValueError as exc:
            raise FormatError(f"Invalid timestamp '{value}': {exc}") from exc
        if not isinstance(parsed, DateTime):
            raise FormatError(f"Timestamp '{value}' does not describe an instant")
        return parsed.in_timezone(tz)

    if isinstance(value, datetime):
        if value.tzinfo is None:
            return pendulum.instance(value, tz=tz)
        return pendulum.instance(value).in_timezone(tz)

    raise FormatError(f"Unsupported timestamp value: {value!r}")


def normalize_date(value: DateLike, tz: str = DEFAULT_TIMEZONE) -> DateTime:
    """
    Normalize a calendar date into the start of that day in ``tz``.

    Aware datetimes keep their own timezone so the calendar day does not
    shift.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return pendulum.instance(value, tz=tz).start_of("day")
        return pendulum.instance(value).start_of("day")

    if isinstance(value, date):
        return pendulum.datetime(value.year, value.month, value.day, tz=tz)

    if isinstance(value, str):
        try:
            parsed = pendulum.from_format(value.strip(), "YYYY-MM-DD", tz=tz)
        except ValueError as exc:
            raise FormatError(f"Invalid date '{value}', expected YYYY-MM-DD") from exc
        return parsed.start_of("day")

    raise FormatError(f"Unsupported date value: {value!r}")


def format_time_12_hour(value: str) -> str:
    """Convert ``"13:05"`` to ``"1:05 PM"``."""
    clock = ClockTime.parse(value)
    suffix = "PM" if clock.hour >= 12 else "AM"
    hour = clock.hour % 12 or 12
    return f"{hour}:{clock.minute:02d} {suffix}"


def parse_time_12_hour(value: str) -> str:
    """
    Convert ``"1:05 PM"`` to ``"13:05"``.

    Raises:
        FormatError: If the value is not a 12-hour clock time
    """
    match = TWELVE_HOUR_PATTERN.match(value.strip())
    if not match:
        raise FormatError(f"Invalid 12-hour time '{value}', expected h:MM AM/PM")

    hour, minute, suffix = int(match.group(1)), int(match.group(2)), match.group(3).upper()
    if not 1 <= hour <= 12 or minute > 59:
        raise FormatError(f"Invalid 12-hour time '{value}'")

    if suffix == "PM" and hour != 12:
        hour += 12
    elif suffix == "AM" and hour == 12:
        hour = 0

    return from_minutes(hour * 60 + minute)


def _as_pendulum(instant: datetime) -> DateTime:
    if isinstance(instant, DateTime):
        return instant
    return pendulum.instance(instant)

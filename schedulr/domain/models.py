"""
Domain models for appointments, blocked time and offered slots.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional

from pendulum import DateTime

from .time_arithmetic import (
    DEFAULT_TIMEZONE,
    format_time_12_hour,
    minute_of_day,
    normalize_instant,
)


def intervals_overlap(
    a_start: datetime,
    a_end: datetime,
    b_start: datetime,
    b_end: datetime,
) -> bool:
    """
    Half-open overlap of ``[a_start, a_end)`` and ``[b_start, b_end)``.

    Touching intervals (one ends exactly when the other starts) do not
    overlap.
    """
    return a_start < b_end and a_end > b_start


def within_closed(instant: datetime, start: datetime, end: datetime) -> bool:
    """True if ``instant`` lies in ``[start, end]``, both endpoints included."""
    return start <= instant <= end


@dataclass(frozen=True)
class TimeRange:
    """
    Represents an immutable time range with start and end datetime.

    Invariant: start must be before end.
    """
    start: DateTime
    end: DateTime

    def __post_init__(self):
        if self.start >= self.end:
            raise ValueError(f"Start time {self.start} must be before end time {self.end}")

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return int((self.end - self.start).total_seconds() / 60)

    def overlaps(self, other: "TimeRange") -> bool:
        """Half-open overlap; touching ranges do not overlap."""
        return intervals_overlap(self.start, self.end, other.start, other.end)

    def contains(self, instant: datetime) -> bool:
        """Closed containment; both boundaries count as inside."""
        return within_closed(instant, self.start, self.end)

    def intersect(self, other: "TimeRange") -> "TimeRange | None":
        """
        Calculate the intersection of two time ranges.
        Returns None if there is no overlap.
        """
        if not self.overlaps(other):
            return None

        return TimeRange(start=max(self.start, other.start), end=min(self.end, other.end))

    def __str__(self) -> str:
        return f"{self.start.format('YYYY-MM-DD HH:mm')} - {self.end.format('HH:mm')}"


class RecurrenceType(str, Enum):
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"


class AppointmentStatus(str, Enum):
    SCHEDULED = "SCHEDULED"
    CONFIRMED = "CONFIRMED"
    PENDING = "PENDING"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"
    NO_SHOW = "NO_SHOW"

    @property
    def occupies_slot(self) -> bool:
        """Whether an appointment in this status makes its slot unavailable."""
        return self in (AppointmentStatus.SCHEDULED, AppointmentStatus.CONFIRMED, AppointmentStatus.PENDING)


@dataclass(frozen=True)
class BlockedTimeRange:
    """
    A one-off or recurring period during which nothing can be booked.

    A recurring range is a template: its time-of-day (and, for WEEKLY, its
    day-of-week; for MONTHLY, its day-of-month) repeats until
    ``recurrence_end``, or indefinitely when no end is set.
    """
    id: str
    owner_id: str
    start_time: DateTime
    end_time: DateTime
    reason: Optional[str] = None
    is_recurring: bool = False
    recurrence_type: Optional[RecurrenceType] = None
    recurrence_end: Optional[DateTime] = None

    def __post_init__(self):
        if self.start_time >= self.end_time:
            raise ValueError(f"Start time {self.start_time} must be before end time {self.end_time}")

        if not self.is_recurring:
            # Recurrence details are ignored for one-off blocks.
            object.__setattr__(self, "recurrence_type", None)
            object.__setattr__(self, "recurrence_end", None)
            return

        if self.recurrence_type is None:
            raise ValueError("A recurring blocked time requires a recurrence type")
        object.__setattr__(self, "recurrence_type", RecurrenceType(self.recurrence_type))

        # Recurrence compares minute-of-day spans; a span that wraps past
        # midnight has no defined meaning there.
        if minute_of_day(self.end_time) <= minute_of_day(self.start_time):
            raise ValueError(
                "A recurring blocked time must start and end on the same day "
                f"(got {self.start_time.format('HH:mm')} - {self.end_time.format('HH:mm')})"
            )

    @property
    def time_range(self) -> TimeRange:
        return TimeRange(start=self.start_time, end=self.end_time)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], tz: str = DEFAULT_TIMEZONE) -> "BlockedTimeRange":
        """Build from a stored record, accepting camelCase or snake_case keys."""
        recurrence_end = _pick(data, "recurrence_end", "recurrenceEnd")
        recurrence_type = _pick(data, "recurrence_type", "recurrenceType")
        return cls(
            id=str(data["id"]),
            owner_id=str(_pick(data, "owner_id", "ownerId", "userId", default="")),
            start_time=normalize_instant(_pick(data, "start_time", "startTime"), tz),
            end_time=normalize_instant(_pick(data, "end_time", "endTime"), tz),
            reason=data.get("reason"),
            is_recurring=bool(_pick(data, "is_recurring", "isRecurring", default=False)),
            recurrence_type=RecurrenceType(recurrence_type) if recurrence_type else None,
            recurrence_end=normalize_instant(recurrence_end, tz) if recurrence_end else None,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "ownerId": self.owner_id,
            "startTime": self.start_time.to_iso8601_string(),
            "endTime": self.end_time.to_iso8601_string(),
            "reason": self.reason,
            "isRecurring": self.is_recurring,
            "recurrenceType": self.recurrence_type.value if self.recurrence_type else None,
            "recurrenceEnd": self.recurrence_end.to_iso8601_string() if self.recurrence_end else None,
        }


@dataclass(frozen=True)
class ConflictSummary:
    """What a caller needs to show about a conflicting appointment."""
    id: str
    title: str
    start_time: DateTime
    end_time: DateTime

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "startTime": self.start_time.to_iso8601_string(),
            "endTime": self.end_time.to_iso8601_string(),
        }


@dataclass(frozen=True)
class Appointment:
    """
    A booked appointment.

    Invariant: start_time must be before end_time.
    """
    id: str
    owner_id: str
    client_id: str
    start_time: DateTime
    end_time: DateTime
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    service_id: Optional[str] = None
    title: str = ""
    description: str = ""

    def __post_init__(self):
        if self.start_time >= self.end_time:
            raise ValueError(f"Start time {self.start_time} must be before end time {self.end_time}")
        object.__setattr__(self, "status", AppointmentStatus(self.status))

    @property
    def time_range(self) -> TimeRange:
        return TimeRange(start=self.start_time, end=self.end_time)

    @property
    def is_cancelled(self) -> bool:
        return self.status is AppointmentStatus.CANCELLED

    def summary(self) -> ConflictSummary:
        return ConflictSummary(
            id=self.id,
            title=self.title,
            start_time=self.start_time,
            end_time=self.end_time,
        )

    def with_changes(self, **changes: Any) -> "Appointment":
        return replace(self, **changes)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], tz: str = DEFAULT_TIMEZONE) -> "Appointment":
        """Build from a stored record, accepting camelCase or snake_case keys."""
        return cls(
            id=str(data["id"]),
            owner_id=str(_pick(data, "owner_id", "ownerId", "userId", default="")),
            client_id=str(_pick(data, "client_id", "clientId", default="")),
            start_time=normalize_instant(_pick(data, "start_time", "startTime"), tz),
            end_time=normalize_instant(_pick(data, "end_time", "endTime"), tz),
            status=AppointmentStatus(data.get("status") or AppointmentStatus.SCHEDULED),
            service_id=_pick(data, "service_id", "serviceId"),
            title=data.get("title") or "",
            description=data.get("description") or "",
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "ownerId": self.owner_id,
            "clientId": self.client_id,
            "serviceId": self.service_id,
            "title": self.title,
            "description": self.description,
            "startTime": self.start_time.to_iso8601_string(),
            "endTime": self.end_time.to_iso8601_string(),
            "status": self.status.value,
        }


@dataclass(frozen=True)
class Service:
    """A bookable service; the scheduling engine only needs its duration."""
    id: str
    owner_id: str
    name: str
    duration: int
    price: float = 0.0
    is_visible: bool = True
    padding_time: int = 0

    def __post_init__(self):
        if self.duration <= 0:
            raise ValueError(f"Service duration must be positive, got {self.duration}")
        if self.padding_time < 0:
            raise ValueError(f"Padding time cannot be negative, got {self.padding_time}")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Service":
        return cls(
            id=str(data["id"]),
            owner_id=str(_pick(data, "owner_id", "ownerId", "userId", default="")),
            name=data.get("name", ""),
            duration=int(data["duration"]),
            price=float(data.get("price", 0) or 0),
            is_visible=bool(_pick(data, "is_visible", "isVisible", default=True)),
            padding_time=int(_pick(data, "padding_time", "paddingTime", default=0) or 0),
        )


@dataclass
class TimeSlot:
    """
    A candidate start time offered for a (date, duration) query.
    """
    time: str
    available: bool = True

    def to_dict(self) -> dict:
        return {"time": self.time, "available": self.available}

    def format_display(self) -> str:
        """
        Format the slot for display.
        Format: 9:15 AM (available)
        """
        state = "available" if self.available else "unavailable"
        return f"{format_time_12_hour(self.time)} ({state})"


@dataclass
class DayAvailability:
    """Slots for one day together with the window they were generated from."""
    date: str
    day_key: str
    open: bool
    start: Optional[str] = None
    end: Optional[str] = None
    time_slots: list[TimeSlot] = field(default_factory=list)
    message: Optional[str] = None

    def to_dict(self) -> dict:
        payload: dict = {
            "date": self.date,
            "dayName": self.day_key,
            "timeSlots": [slot.to_dict() for slot in self.time_slots],
        }
        if self.open:
            payload["businessHours"] = {"start": self.start, "end": self.end, "open": True}
        if self.message:
            payload["message"] = self.message
        return payload


def as_time_range(item: Any, tz: str = DEFAULT_TIMEZONE) -> TimeRange:
    """
    Normalize an existing interval into a TimeRange.

    Accepts a TimeRange, anything with a ``time_range`` property
    (appointments, blocked ranges), or a mapping with ``startTime``/``endTime``
    (or ``start``/``end``) timestamps.
    """
    if isinstance(item, TimeRange):
        return item

    time_range = getattr(item, "time_range", None)
    if isinstance(time_range, TimeRange):
        return time_range

    if isinstance(item, Mapping):
        start = _pick(item, "startTime", "start_time", "start")
        end = _pick(item, "endTime", "end_time", "end")
        return TimeRange(start=normalize_instant(start, tz), end=normalize_instant(end, tz))

    raise TypeError(f"Cannot interpret {item!r} as a time range")


def _pick(data: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default

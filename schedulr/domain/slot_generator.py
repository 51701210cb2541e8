"""
Core business logic for generating bookable time slots.

Pure domain logic without any external dependencies (no database, no I/O).
"""

from __future__ import annotations

from typing import Any, Iterable, List, Sequence

from .blocked_time import is_span_blocked
from .business_hours import hours_for
from .models import BlockedTimeRange, TimeRange, TimeSlot, as_time_range
from .time_arithmetic import DEFAULT_TIMEZONE, DateLike, at_clock, from_minutes
from .weekly_hours import WeeklyHours

DEFAULT_INCREMENT_MINUTES = 15


class SlotGenerator:
    """
    Generates the candidate start times offered for one day.

    Algorithm:
    1. Resolve the day's opening window (closed day -> no slots)
    2. Walk the window in fixed increments, keeping only starts whose full
       duration ends by closing time
    3. Mark a candidate unavailable if its span overlaps an existing
       appointment or runs into blocked time
    4. Return candidates in ascending order with their availability
    """

    def __init__(self, increment_minutes: int = DEFAULT_INCREMENT_MINUTES, tz: str = DEFAULT_TIMEZONE):
        if increment_minutes <= 0:
            raise ValueError(f"Slot increment must be positive, got {increment_minutes}")
        self.increment_minutes = increment_minutes
        self.tz = tz

    def generate_slots(
        self,
        date: DateLike,
        weekly_hours: WeeklyHours,
        duration_minutes: int,
        existing_intervals: Iterable[Any] = (),
        blocked_ranges: Sequence[BlockedTimeRange] = (),
    ) -> List[TimeSlot]:
        """
        Generate every candidate slot for ``date``.

        Args:
            date: Calendar day to generate slots for
            weekly_hours: Business hours configuration
            duration_minutes: Length of the service being booked
            existing_intervals: Appointments already occupying time that day
                (TimeRange, Appointment, or ``{startTime, endTime}`` mappings)
            blocked_ranges: Blocked time to exclude in addition to appointments

        Returns:
            Ordered list of TimeSlot objects; callers filter on ``available``
        """
        if duration_minutes <= 0:
            raise ValueError(f"Duration must be positive, got {duration_minutes}")

        day_hours = hours_for(date, weekly_hours, self.tz)
        if not day_hours.open:
            return []

        busy = [as_time_range(item, self.tz) for item in existing_intervals]
        blocked = list(blocked_ranges)

        open_minutes = day_hours.start_clock.minutes
        close_minutes = day_hours.end_clock.minutes

        slots: List[TimeSlot] = []
        minutes = open_minutes
        while minutes + duration_minutes <= close_minutes:
            slot_start = at_clock(date, minutes, self.tz)
            slot_range = TimeRange(start=slot_start, end=slot_start.add(minutes=duration_minutes))

            slots.append(
                TimeSlot(
                    time=from_minutes(minutes),
                    available=self._is_free(slot_range, busy, blocked),
                )
            )
            minutes += self.increment_minutes

        return slots

    def available_times(
        self,
        date: DateLike,
        weekly_hours: WeeklyHours,
        duration_minutes: int,
        existing_intervals: Iterable[Any] = (),
        blocked_ranges: Sequence[BlockedTimeRange] = (),
    ) -> List[str]:
        """Only the ``HH:MM`` start times that can actually be booked."""
        return [
            slot.time
            for slot in self.generate_slots(date, weekly_hours, duration_minutes, existing_intervals, blocked_ranges)
            if slot.available
        ]

    @staticmethod
    def _is_free(
        slot_range: TimeRange,
        busy: List[TimeRange],
        blocked: List[BlockedTimeRange],
    ) -> bool:
        if any(slot_range.overlaps(interval) for interval in busy):
            return False

        if blocked and is_span_blocked(slot_range.start, slot_range.end, blocked):
            return False

        return True

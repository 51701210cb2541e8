"""
Tests for slot generation.
"""

import pendulum
import pytest

from schedulr.domain.models import BlockedTimeRange, RecurrenceType, TimeRange
from schedulr.domain.slot_generator import SlotGenerator
from schedulr.domain.time_arithmetic import to_minutes
from schedulr.domain.weekly_hours import DayHours, WeeklyHours, default_weekly_hours

TZ = "Europe/Berlin"
MONDAY = "2025-01-06"


def at(value: str):
    return pendulum.parse(value, tz=TZ)


def monday_only() -> WeeklyHours:
    return WeeklyHours(monday=DayHours(open=True, start="09:00", end="17:00"))


class TestSlotGenerator:
    """Tests for SlotGenerator."""

    def setup_method(self):
        self.generator = SlotGenerator(increment_minutes=15, tz=TZ)

    def test_last_slot_fits_before_closing(self):
        """An hour-long slot may start at 16:00 but not at 16:15."""
        times = [slot.time for slot in self.generator.generate_slots(MONDAY, monday_only(), 60)]

        assert "16:00" in times
        assert "16:15" not in times
        assert times[0] == "09:00"
        assert times[-1] == "16:00"
        assert len(times) == 29

    @pytest.mark.parametrize("duration", [15, 30, 45, 60, 90, 480])
    def test_every_slot_ends_by_closing(self, duration):
        close = to_minutes("17:00")

        slots = self.generator.generate_slots(MONDAY, monday_only(), duration)

        assert slots
        for slot in slots:
            assert to_minutes(slot.time) + duration <= close

    def test_duration_longer_than_day_yields_nothing(self):
        assert self.generator.generate_slots(MONDAY, monday_only(), 481) == []

    def test_slots_are_ordered(self):
        times = [to_minutes(slot.time) for slot in self.generator.generate_slots(MONDAY, monday_only(), 30)]

        assert times == sorted(times)

    @pytest.mark.parametrize("day", ["2025-01-05", "2025-01-07", "2025-01-11"])
    def test_closed_day_yields_no_slots(self, day):
        """Closed days yield nothing, whatever the duration or existing bookings."""
        existing = [TimeRange(start=at(f"{day} 10:00"), end=at(f"{day} 11:00"))]

        for duration in (15, 60, 240):
            assert self.generator.generate_slots(day, monday_only(), duration) == []
            assert self.generator.generate_slots(day, monday_only(), duration, existing) == []

    def test_closed_day_with_leftover_clock_values(self):
        hours = WeeklyHours(monday=DayHours(open=False, start="09:00", end="17:00"))

        assert self.generator.generate_slots(MONDAY, hours, 30) == []

    def test_invalid_duration_raises_error(self):
        with pytest.raises(ValueError, match="Duration must be positive"):
            self.generator.generate_slots(MONDAY, monday_only(), 0)

    def test_invalid_increment_raises_error(self):
        with pytest.raises(ValueError, match="increment must be positive"):
            SlotGenerator(increment_minutes=0)

    def test_custom_increment(self):
        generator = SlotGenerator(increment_minutes=60, tz=TZ)

        times = [slot.time for slot in generator.generate_slots(MONDAY, monday_only(), 60)]

        assert times == ["09:00", "10:00", "11:00", "12:00", "13:00", "14:00", "15:00", "16:00"]


class TestSlotAvailability:
    """Tests for marking slots unavailable."""

    def setup_method(self):
        self.generator = SlotGenerator(increment_minutes=15, tz=TZ)

    def _availability(self, slots):
        return {slot.time: slot.available for slot in slots}

    def test_existing_appointment_marks_overlapping_slots(self):
        existing = [TimeRange(start=at(f"{MONDAY} 10:00"), end=at(f"{MONDAY} 11:00"))]

        availability = self._availability(self.generator.generate_slots(MONDAY, monday_only(), 30, existing))

        assert availability["09:30"] is True  # ends exactly at 10:00
        assert availability["09:45"] is False
        assert availability["10:00"] is False
        assert availability["10:45"] is False
        assert availability["11:00"] is True  # starts exactly at 11:00

    def test_mapping_intervals_are_accepted(self):
        existing = [{"startTime": f"{MONDAY}T10:00:00", "endTime": f"{MONDAY}T11:00:00"}]

        availability = self._availability(self.generator.generate_slots(MONDAY, monday_only(), 30, existing))

        assert availability["10:15"] is False

    def test_recurring_blocked_time_marks_slots(self):
        lunch = BlockedTimeRange(
            id="lunch",
            owner_id="owner-1",
            start_time=at("2024-12-02 12:00"),
            end_time=at("2024-12-02 13:00"),
            is_recurring=True,
            recurrence_type=RecurrenceType.DAILY,
        )

        availability = self._availability(
            self.generator.generate_slots(MONDAY, monday_only(), 60, blocked_ranges=[lunch])
        )

        assert availability["11:00"] is True
        assert availability["11:15"] is False
        assert availability["12:30"] is False
        assert availability["13:00"] is False  # block end counts as blocked
        assert availability["13:15"] is True

    def test_available_times(self):
        existing = [TimeRange(start=at(f"{MONDAY} 09:00"), end=at(f"{MONDAY} 16:00"))]

        times = self.generator.available_times(MONDAY, default_weekly_hours(), 60, existing)

        assert times == ["16:00"]

"""
Tests for domain models.
"""

import pendulum
import pytest

from schedulr.domain.models import (
    Appointment,
    AppointmentStatus,
    BlockedTimeRange,
    DayAvailability,
    RecurrenceType,
    Service,
    TimeRange,
    TimeSlot,
    as_time_range,
    intervals_overlap,
    within_closed,
)

TZ = "Europe/Berlin"


def at(value: str):
    return pendulum.parse(value, tz=TZ)


class TestTimeRange:
    """Tests for TimeRange model."""

    def test_create_valid_time_range(self):
        """Test creating a valid time range."""
        start = at("2025-01-06 09:00")
        end = at("2025-01-06 17:00")

        tr = TimeRange(start=start, end=end)

        assert tr.start == start
        assert tr.end == end
        assert tr.duration_minutes() == 480  # 8 hours

    def test_invalid_time_range_raises_error(self):
        """Test that creating an invalid time range raises ValueError."""
        with pytest.raises(ValueError, match="Start time .* must be before end time"):
            TimeRange(start=at("2025-01-06 17:00"), end=at("2025-01-06 09:00"))

    def test_overlaps(self):
        """Test overlap detection."""
        tr1 = TimeRange(start=at("2025-01-06 09:00"), end=at("2025-01-06 12:00"))
        tr2 = TimeRange(start=at("2025-01-06 11:00"), end=at("2025-01-06 14:00"))
        tr3 = TimeRange(start=at("2025-01-06 12:00"), end=at("2025-01-06 17:00"))

        assert tr1.overlaps(tr2)
        assert tr2.overlaps(tr1)
        assert not tr1.overlaps(tr3)  # touching
        assert not tr3.overlaps(tr1)

    def test_overlap_is_symmetric(self):
        """Every non-empty intersection is found, from either side."""
        base = at("2025-01-06 10:00")
        spans = [(0, 30), (15, 45), (30, 60), (-15, 15), (-30, 0), (5, 10), (-60, 120)]

        for a_start, a_end in spans:
            for b_start, b_end in spans:
                a = TimeRange(start=base.add(minutes=a_start), end=base.add(minutes=a_end))
                b = TimeRange(start=base.add(minutes=b_start), end=base.add(minutes=b_end))
                expected = max(a_start, b_start) < min(a_end, b_end)

                assert a.overlaps(b) == b.overlaps(a) == expected

    def test_contains_includes_boundaries(self):
        tr = TimeRange(start=at("2025-01-06 09:00"), end=at("2025-01-06 10:00"))

        assert tr.contains(at("2025-01-06 09:00"))
        assert tr.contains(at("2025-01-06 10:00"))
        assert not tr.contains(at("2025-01-06 10:01"))

    def test_intersect(self):
        """Test intersection calculation."""
        tr1 = TimeRange(start=at("2025-01-06 09:00"), end=at("2025-01-06 12:00"))
        tr2 = TimeRange(start=at("2025-01-06 11:00"), end=at("2025-01-06 14:00"))

        intersection = tr1.intersect(tr2)

        assert intersection is not None
        assert intersection.start == at("2025-01-06 11:00")
        assert intersection.end == at("2025-01-06 12:00")

    def test_intersect_no_overlap(self):
        """Test intersection with no overlap returns None."""
        tr1 = TimeRange(start=at("2025-01-06 09:00"), end=at("2025-01-06 12:00"))
        tr2 = TimeRange(start=at("2025-01-06 14:00"), end=at("2025-01-06 17:00"))

        assert tr1.intersect(tr2) is None


class TestIntervalHelpers:
    def test_half_open_overlap(self):
        assert intervals_overlap(at("2025-01-06 09:00"), at("2025-01-06 10:00"), at("2025-01-06 09:59"), at("2025-01-06 11:00"))
        assert not intervals_overlap(at("2025-01-06 09:00"), at("2025-01-06 10:00"), at("2025-01-06 10:00"), at("2025-01-06 11:00"))

    def test_closed_containment(self):
        assert within_closed(at("2025-01-06 10:00"), at("2025-01-06 09:00"), at("2025-01-06 10:00"))
        assert not within_closed(at("2025-01-06 08:59"), at("2025-01-06 09:00"), at("2025-01-06 10:00"))


class TestAppointment:
    """Tests for the Appointment model."""

    def test_from_dict_accepts_camel_case(self):
        appointment = Appointment.from_dict(
            {
                "id": "apt-1",
                "userId": "owner-1",
                "clientId": "client-1",
                "title": "Haircut",
                "startTime": "2025-01-06T09:15:00",
                "endTime": "2025-01-06T10:15:00",
                "status": "CONFIRMED",
            },
            TZ,
        )

        assert appointment.owner_id == "owner-1"
        assert appointment.start_time == at("2025-01-06 09:15")
        assert appointment.status is AppointmentStatus.CONFIRMED
        assert appointment.time_range.duration_minutes() == 60

    def test_status_defaults_to_scheduled(self):
        appointment = Appointment.from_dict(
            {"id": "apt-1", "start_time": "2025-01-06T09:00:00", "end_time": "2025-01-06T09:30:00"},
            TZ,
        )

        assert appointment.status is AppointmentStatus.SCHEDULED
        assert not appointment.is_cancelled

    def test_invalid_range_raises_error(self):
        with pytest.raises(ValueError, match="must be before end time"):
            Appointment(
                id="apt-1",
                owner_id="owner-1",
                client_id="client-1",
                start_time=at("2025-01-06 10:00"),
                end_time=at("2025-01-06 10:00"),
            )

    def test_summary_and_to_dict(self):
        appointment = Appointment(
            id="apt-1",
            owner_id="owner-1",
            client_id="client-1",
            start_time=at("2025-01-06 09:15"),
            end_time=at("2025-01-06 10:15"),
            title="Haircut",
        )

        summary = appointment.summary().to_dict()

        assert summary["id"] == "apt-1"
        assert summary["title"] == "Haircut"
        assert summary["startTime"].startswith("2025-01-06T09:15:00")
        assert appointment.to_dict()["status"] == "SCHEDULED"

    def test_with_changes_returns_new_instance(self):
        appointment = Appointment(
            id="apt-1",
            owner_id="owner-1",
            client_id="client-1",
            start_time=at("2025-01-06 09:15"),
            end_time=at("2025-01-06 10:15"),
        )

        cancelled = appointment.with_changes(status=AppointmentStatus.CANCELLED)

        assert cancelled.is_cancelled
        assert not appointment.is_cancelled

    def test_occupying_statuses(self):
        assert AppointmentStatus.SCHEDULED.occupies_slot
        assert AppointmentStatus.CONFIRMED.occupies_slot
        assert AppointmentStatus.PENDING.occupies_slot
        assert not AppointmentStatus.CANCELLED.occupies_slot
        assert not AppointmentStatus.COMPLETED.occupies_slot


class TestBlockedTimeRange:
    """Tests for BlockedTimeRange construction rules."""

    def test_one_off_block_drops_recurrence_details(self):
        blocked = BlockedTimeRange(
            id="b1",
            owner_id="owner-1",
            start_time=at("2025-01-06 12:00"),
            end_time=at("2025-01-06 13:00"),
            recurrence_type=RecurrenceType.WEEKLY,
        )

        assert blocked.recurrence_type is None
        assert blocked.recurrence_end is None

    def test_recurring_block_requires_type(self):
        with pytest.raises(ValueError, match="requires a recurrence type"):
            BlockedTimeRange(
                id="b1",
                owner_id="owner-1",
                start_time=at("2025-01-06 12:00"),
                end_time=at("2025-01-06 13:00"),
                is_recurring=True,
            )

    def test_recurring_block_cannot_cross_midnight(self):
        with pytest.raises(ValueError, match="same day"):
            BlockedTimeRange(
                id="b1",
                owner_id="owner-1",
                start_time=at("2025-01-06 22:00"),
                end_time=at("2025-01-07 02:00"),
                is_recurring=True,
                recurrence_type=RecurrenceType.DAILY,
            )

    def test_one_off_block_may_cross_midnight(self):
        blocked = BlockedTimeRange(
            id="b1",
            owner_id="owner-1",
            start_time=at("2025-01-06 22:00"),
            end_time=at("2025-01-07 02:00"),
        )

        assert blocked.time_range.duration_minutes() == 240

    def test_from_dict(self):
        blocked = BlockedTimeRange.from_dict(
            {
                "id": "b1",
                "ownerId": "owner-1",
                "startTime": "2025-01-06T12:00:00",
                "endTime": "2025-01-06T13:00:00",
                "isRecurring": True,
                "recurrenceType": "WEEKLY",
                "recurrenceEnd": "2025-02-03",
            },
            TZ,
        )

        assert blocked.recurrence_type is RecurrenceType.WEEKLY
        assert blocked.recurrence_end == at("2025-02-03 00:00")
        assert blocked.to_dict()["recurrenceType"] == "WEEKLY"


class TestServiceAndSlots:
    def test_service_from_dict(self):
        service = Service.from_dict(
            {"id": "s1", "userId": "owner-1", "name": "Haircut", "duration": 30, "isVisible": False, "paddingTime": 10}
        )

        assert service.duration == 30
        assert service.padding_time == 10
        assert not service.is_visible

    def test_service_requires_positive_duration(self):
        with pytest.raises(ValueError, match="duration must be positive"):
            Service(id="s1", owner_id="owner-1", name="Nothing", duration=0)

    def test_time_slot_display(self):
        assert TimeSlot(time="09:15").format_display() == "9:15 AM (available)"
        assert TimeSlot(time="16:00", available=False).format_display() == "4:00 PM (unavailable)"

    def test_closed_day_availability_payload(self):
        payload = DayAvailability(
            date="2025-01-05",
            day_key="sunday",
            open=False,
            message="Business is closed on this day",
        ).to_dict()

        assert payload["timeSlots"] == []
        assert "businessHours" not in payload
        assert payload["message"] == "Business is closed on this day"

    def test_as_time_range_accepts_mappings(self):
        tr = as_time_range({"startTime": "2025-01-06T09:00:00", "endTime": "2025-01-06T09:30:00"}, TZ)

        assert tr.start == at("2025-01-06 09:00")
        assert tr.duration_minutes() == 30

    def test_as_time_range_rejects_unknown_objects(self):
        with pytest.raises(TypeError):
            as_time_range(42, TZ)

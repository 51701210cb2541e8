"""
Domain layer - Pure scheduling logic without storage or I/O.
"""

from .blocked_time import find_overlapping_block, is_blocked, is_span_blocked, matches_recurrence
from .business_hours import is_open_on, is_within_business_hours, open_interval
from .conflict_validator import BusinessHoursPolicy, ConflictValidator, RejectReason, ValidationResult
from .models import (
    Appointment,
    AppointmentStatus,
    BlockedTimeRange,
    ConflictSummary,
    DayAvailability,
    RecurrenceType,
    Service,
    TimeRange,
    TimeSlot,
)
from .slot_generator import SlotGenerator
from .time_arithmetic import ClockTime, DayKey, add_minutes, day_key_of, from_minutes, to_minutes
from .weekly_hours import DayHours, WeeklyHours, default_weekly_hours, parse_weekly_hours

__all__ = [
    "Appointment",
    "AppointmentStatus",
    "BlockedTimeRange",
    "BusinessHoursPolicy",
    "ClockTime",
    "ConflictSummary",
    "ConflictValidator",
    "DayAvailability",
    "DayHours",
    "DayKey",
    "RecurrenceType",
    "RejectReason",
    "Service",
    "SlotGenerator",
    "TimeRange",
    "TimeSlot",
    "ValidationResult",
    "WeeklyHours",
    "add_minutes",
    "day_key_of",
    "default_weekly_hours",
    "find_overlapping_block",
    "from_minutes",
    "is_blocked",
    "is_open_on",
    "is_span_blocked",
    "is_within_business_hours",
    "matches_recurrence",
    "open_interval",
    "parse_weekly_hours",
    "to_minutes",
]

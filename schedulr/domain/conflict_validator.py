"""
Decide whether a proposed appointment or blocked time can be written.

Validation outcomes are values, not exceptions: a rejection carries a
machine-readable reason, a message for the end user, the HTTP status a
route handler should answer with, and for conflicts the appointments in
the way.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional, Sequence

from pendulum import DateTime

from .blocked_time import find_overlapping_block, is_span_blocked
from .business_hours import hours_for, is_within_business_hours, open_interval
from .models import Appointment, BlockedTimeRange, ConflictSummary, intervals_overlap
from .time_arithmetic import DEFAULT_TIMEZONE, InstantLike, day_key_of, normalize_instant
from .weekly_hours import WeeklyHours

logger = logging.getLogger(__name__)


class RejectReason(str, Enum):
    INVALID_RANGE = "INVALID_RANGE"
    OUTSIDE_HOURS = "OUTSIDE_HOURS"
    DAY_CLOSED = "DAY_CLOSED"
    TIME_BLOCKED = "TIME_BLOCKED"
    CONFLICT = "CONFLICT"

    @property
    def http_status(self) -> int:
        if self in (RejectReason.INVALID_RANGE, RejectReason.OUTSIDE_HOURS):
            return 400
        return 409


class BusinessHoursPolicy(str, Enum):
    """How a business-hours violation is treated."""
    ENFORCE = "enforce"
    WARN = "warn"


@dataclass(frozen=True)
class ValidationResult:
    accepted: bool
    reason: Optional[RejectReason] = None
    message: str = ""
    conflicts: List[ConflictSummary] = field(default_factory=list)

    @classmethod
    def accept(cls) -> "ValidationResult":
        return cls(accepted=True)

    @classmethod
    def reject(
        cls,
        reason: RejectReason,
        message: str,
        conflicts: Sequence[ConflictSummary] = (),
    ) -> "ValidationResult":
        return cls(accepted=False, reason=reason, message=message, conflicts=list(conflicts))

    @property
    def http_status(self) -> int:
        return 200 if self.accepted else self.reason.http_status

    def to_dict(self) -> dict:
        if self.accepted:
            return {"accepted": True}
        payload = {"accepted": False, "reason": self.reason.value, "error": self.message}
        if self.conflicts:
            payload["conflicts"] = [conflict.to_dict() for conflict in self.conflicts]
        return payload


class ConflictValidator:
    """
    Validates proposed appointments for one owner.

    Checks run in a fixed order and the first failure decides the result:
    range, business hours, blocked time, overlap with other appointments.
    The caller must hold the owner's write lock while validating and saving.
    """

    def __init__(
        self,
        policy: BusinessHoursPolicy = BusinessHoursPolicy.ENFORCE,
        tz: str = DEFAULT_TIMEZONE,
    ):
        self.policy = BusinessHoursPolicy(policy)
        self.tz = tz

    def validate_appointment(
        self,
        owner_id: str,
        proposed_start: InstantLike,
        proposed_end: InstantLike,
        existing_appointments: Iterable[Appointment],
        weekly_hours: WeeklyHours,
        blocked_ranges: Sequence[BlockedTimeRange] = (),
        exclude_appointment_id: Optional[str] = None,
    ) -> ValidationResult:
        """
        Run every check for a proposed appointment.

        The proposed instants are expressed in the validator's timezone
        first; naive values are read as wall-clock time there.
        """
        proposed_start = normalize_instant(proposed_start, self.tz)
        proposed_end = normalize_instant(proposed_end, self.tz)

        if proposed_start >= proposed_end:
            return ValidationResult.reject(RejectReason.INVALID_RANGE, "End time must be after start time")

        hours_result = self._check_business_hours(proposed_start, proposed_end, weekly_hours)
        if hours_result is not None:
            if self.policy is BusinessHoursPolicy.ENFORCE:
                return hours_result
            logger.warning(
                "Allowing appointment for owner %s outside business hours: %s",
                owner_id,
                hours_result.message,
            )

        if is_span_blocked(proposed_start, proposed_end, blocked_ranges):
            return ValidationResult.reject(RejectReason.TIME_BLOCKED, "This time is blocked off and cannot be booked")

        conflicts = self.find_conflicts(
            owner_id,
            proposed_start,
            proposed_end,
            existing_appointments,
            exclude_appointment_id,
        )
        if conflicts:
            return ValidationResult.reject(
                RejectReason.CONFLICT,
                "This time slot conflicts with an existing appointment",
                [appointment.summary() for appointment in conflicts],
            )

        return ValidationResult.accept()

    def find_conflicts(
        self,
        owner_id: str,
        proposed_start: InstantLike,
        proposed_end: InstantLike,
        existing_appointments: Iterable[Appointment],
        exclude_appointment_id: Optional[str] = None,
    ) -> List[Appointment]:
        """Same-owner, non-cancelled appointments that overlap the proposal."""
        proposed_start = normalize_instant(proposed_start, self.tz)
        proposed_end = normalize_instant(proposed_end, self.tz)
        return [
            appointment
            for appointment in existing_appointments
            if appointment.owner_id == owner_id
            and appointment.id != exclude_appointment_id
            and not appointment.is_cancelled
            and intervals_overlap(proposed_start, proposed_end, appointment.start_time, appointment.end_time)
        ]

    def validate_blocked_time(
        self,
        candidate: BlockedTimeRange,
        existing_blocks: Iterable[BlockedTimeRange],
        exclude_block_id: Optional[str] = None,
    ) -> ValidationResult:
        """Write-time check that a blocked range does not overlap another of the same owner."""
        if candidate.start_time >= candidate.end_time:
            return ValidationResult.reject(RejectReason.INVALID_RANGE, "End time must be after start time")

        overlapping = find_overlapping_block(candidate, existing_blocks, exclude_block_id)
        if overlapping is not None:
            return ValidationResult.reject(
                RejectReason.CONFLICT,
                "This time period overlaps with an existing blocked time",
            )

        return ValidationResult.accept()

    def _check_business_hours(
        self,
        proposed_start: DateTime,
        proposed_end: DateTime,
        weekly_hours: WeeklyHours,
    ) -> ValidationResult | None:
        if not hours_for(proposed_start, weekly_hours, self.tz).open:
            day = day_key_of(proposed_start)
            return ValidationResult.reject(RejectReason.DAY_CLOSED, f"The business is closed on {day.label}")

        window = open_interval(proposed_start, weekly_hours, self.tz)
        if not is_within_business_hours(proposed_start, weekly_hours, self.tz) or proposed_end > window.end:
            return ValidationResult.reject(
                RejectReason.OUTSIDE_HOURS,
                f"Appointments must be between {window.start.format('HH:mm')} and {window.end.format('HH:mm')}",
            )

        return None

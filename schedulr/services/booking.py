"""
Application services for booking appointments and managing blocked time.

The service fetches owner data through a storage adapter and delegates
every availability and conflict decision to the domain layer. Storage is a
protocol so the in-memory adapter and a real database can be swapped
freely.

Reads, validation and the following write for one owner run under that
owner's lock, so two concurrent bookings cannot both validate against the
same stale snapshot.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any, Dict, List, Optional, Protocol

from pendulum import DateTime

from ..domain.blocked_time import occurrences_on
from ..domain.business_hours import hours_for
from ..domain.conflict_validator import ConflictValidator, ValidationResult
from ..domain.exceptions import BookingRejectedError, NotFoundError
from ..domain.models import (
    Appointment,
    AppointmentStatus,
    BlockedTimeRange,
    DayAvailability,
    RecurrenceType,
    Service,
)
from ..domain.slot_generator import SlotGenerator
from ..domain.time_arithmetic import (
    DateLike,
    InstantLike,
    at_clock,
    day_key_of,
    normalize_date,
    normalize_instant,
    to_minutes,
)
from ..domain.weekly_hours import RawWeeklyHours, WeeklyHours, parse_weekly_hours

logger = logging.getLogger(__name__)


class ScheduleStoreProtocol(Protocol):
    """Protocol describing the storage behaviour needed by the service."""

    async def get_weekly_hours(self, owner_id: str) -> RawWeeklyHours:
        """Return the owner's stored business hours (parsed, JSON, or None)."""

    async def list_appointments(
        self,
        owner_id: str,
        start: Optional[DateTime] = None,
        end: Optional[DateTime] = None,
    ) -> List[Appointment]:
        """Return appointments with ``end >= start`` and ``start <= end`` when bounds are given."""

    async def get_appointment(self, owner_id: str, appointment_id: str) -> Optional[Appointment]:
        """Return one appointment, or None."""

    async def save_appointment(self, appointment: Appointment) -> Appointment:
        """Insert or replace an appointment."""

    async def delete_appointment(self, owner_id: str, appointment_id: str) -> bool:
        """Delete an appointment; False if it did not exist."""

    async def list_blocked_times(
        self,
        owner_id: str,
        start: Optional[DateTime] = None,
        end: Optional[DateTime] = None,
    ) -> List[BlockedTimeRange]:
        """Return blocked ranges with ``end >= start`` and ``start <= end`` when bounds are given."""

    async def get_blocked_time(self, owner_id: str, block_id: str) -> Optional[BlockedTimeRange]:
        """Return one blocked range, or None."""

    async def save_blocked_time(self, blocked: BlockedTimeRange) -> BlockedTimeRange:
        """Insert or replace a blocked range."""

    async def delete_blocked_time(self, owner_id: str, block_id: str) -> bool:
        """Delete a blocked range; False if it did not exist."""

    async def get_service(self, owner_id: str, service_id: str) -> Optional[Service]:
        """Return one service, or None."""


class BookingService:
    """
    Orchestrates storage access, availability and conflict validation.
    """

    def __init__(
        self,
        store: ScheduleStoreProtocol,
        slot_generator: SlotGenerator,
        conflict_validator: ConflictValidator,
        timezone: str,
        include_blocked_time_in_slots: bool = True,
        apply_service_padding: bool = False,
    ) -> None:
        self._store = store
        self._slot_generator = slot_generator
        self._validator = conflict_validator
        self._timezone = timezone
        self._include_blocked = include_blocked_time_in_slots
        self._apply_padding = apply_service_padding
        self._owner_locks: Dict[str, asyncio.Lock] = {}

    def owner_lock(self, owner_id: str) -> asyncio.Lock:
        """The serialization point for all writes of one owner."""
        lock = self._owner_locks.get(owner_id)
        if lock is None:
            lock = self._owner_locks.setdefault(owner_id, asyncio.Lock())
        return lock

    # ------------------------------------------------------------------
    # Business hours and availability
    # ------------------------------------------------------------------

    async def get_weekly_hours(self, owner_id: str) -> WeeklyHours:
        """The owner's business hours, or the default schedule."""
        return parse_weekly_hours(await self._store.get_weekly_hours(owner_id))

    async def get_availability(
        self,
        owner_id: str,
        day: DateLike,
        duration_minutes: int,
    ) -> DayAvailability:
        """
        Compute the slots for one day.

        Nothing is cached, so appointments written since the last call are
        always reflected.
        """
        day_start = normalize_date(day, self._timezone)
        weekly_hours = await self.get_weekly_hours(owner_id)
        day_hours = hours_for(day_start, weekly_hours, self._timezone)
        key = day_key_of(day_start)

        if not day_hours.open:
            return DayAvailability(
                date=day_start.to_date_string(),
                day_key=key.value,
                open=False,
                message="Business is closed on this day",
            )

        day_end = day_start.add(days=1)
        appointments = await self._store.list_appointments(owner_id, day_start, day_end)
        occupying = [appointment for appointment in appointments if appointment.status.occupies_slot]

        blocked: List[BlockedTimeRange] = []
        if self._include_blocked:
            blocked = [
                block
                for block in await self._store.list_blocked_times(owner_id)
                if occurrences_on(day_start, block)
            ]

        slots = self._slot_generator.generate_slots(
            day_start,
            weekly_hours,
            duration_minutes,
            existing_intervals=occupying,
            blocked_ranges=blocked,
        )

        return DayAvailability(
            date=day_start.to_date_string(),
            day_key=key.value,
            open=True,
            start=day_hours.start,
            end=day_hours.end,
            time_slots=slots,
        )

    async def get_service_availability(self, owner_id: str, service_id: str, day: DateLike) -> DayAvailability:
        """Slots for a visible service, sized by the service's duration."""
        service = await self._get_visible_service(owner_id, service_id)
        return await self.get_availability(owner_id, day, self._occupied_minutes(service))

    # ------------------------------------------------------------------
    # Appointments
    # ------------------------------------------------------------------

    async def check_appointment(
        self,
        owner_id: str,
        start: InstantLike,
        end: InstantLike,
        exclude_appointment_id: Optional[str] = None,
    ) -> ValidationResult:
        """Validate a proposal without writing anything."""
        start_time = normalize_instant(start, self._timezone)
        end_time = normalize_instant(end, self._timezone)
        return await self._validate(owner_id, start_time, end_time, exclude_appointment_id)

    async def list_appointments(
        self,
        owner_id: str,
        start: Optional[InstantLike] = None,
        end: Optional[InstantLike] = None,
    ) -> List[Appointment]:
        appointments = await self._store.list_appointments(
            owner_id,
            normalize_instant(start, self._timezone) if start is not None else None,
            normalize_instant(end, self._timezone) if end is not None else None,
        )
        return sorted(appointments, key=lambda appointment: appointment.start_time)

    async def create_appointment(
        self,
        owner_id: str,
        client_id: str,
        start: InstantLike,
        end: InstantLike,
        *,
        title: str = "",
        description: str = "",
        service_id: Optional[str] = None,
        status: AppointmentStatus = AppointmentStatus.SCHEDULED,
    ) -> Appointment:
        """
        Create an appointment after full validation.

        Raises:
            NotFoundError: If ``service_id`` does not belong to the owner
            BookingRejectedError: If validation rejects the proposal
        """
        if service_id is not None and await self._store.get_service(owner_id, service_id) is None:
            raise NotFoundError(f"Service not found: {service_id}")

        start_time = normalize_instant(start, self._timezone)
        end_time = normalize_instant(end, self._timezone)

        async with self.owner_lock(owner_id):
            result = await self._validate(owner_id, start_time, end_time)
            self._raise_if_rejected(owner_id, result)

            appointment = Appointment(
                id=str(uuid.uuid4()),
                owner_id=owner_id,
                client_id=client_id,
                start_time=start_time,
                end_time=end_time,
                status=status,
                service_id=service_id,
                title=title,
                description=description,
            )
            saved = await self._store.save_appointment(appointment)

        logger.info("Created appointment %s for owner %s at %s", saved.id, owner_id, saved.start_time)
        return saved

    async def book_service(
        self,
        owner_id: str,
        service_id: str,
        day: DateLike,
        time: str,
        client_id: str,
        *,
        require_approval: bool = False,
    ) -> Appointment:
        """
        Public booking flow: a client picks a visible service, a date and a start time.

        The end time is derived from the service duration. Availability is
        checked once more under the owner lock right before the write.

        Raises:
            NotFoundError: If the service is missing or hidden
            BookingRejectedError: If the time is no longer available
        """
        service = await self._get_visible_service(owner_id, service_id)
        start_time = at_clock(day, to_minutes(time), self._timezone)
        end_time = start_time.add(minutes=self._occupied_minutes(service))
        status = AppointmentStatus.PENDING if require_approval else AppointmentStatus.SCHEDULED

        return await self.create_appointment(
            owner_id,
            client_id,
            start_time,
            end_time,
            title=service.name,
            service_id=service.id,
            status=status,
        )

    async def reschedule_appointment(
        self,
        owner_id: str,
        appointment_id: str,
        start: InstantLike,
        end: InstantLike,
    ) -> Appointment:
        """
        Move an appointment, re-running every check against all other appointments.

        Raises:
            NotFoundError: If the appointment does not exist
            BookingRejectedError: If the new time is rejected
        """
        start_time = normalize_instant(start, self._timezone)
        end_time = normalize_instant(end, self._timezone)

        async with self.owner_lock(owner_id):
            appointment = await self._require_appointment(owner_id, appointment_id)
            result = await self._validate(owner_id, start_time, end_time, appointment_id)
            self._raise_if_rejected(owner_id, result)
            saved = await self._store.save_appointment(
                appointment.with_changes(start_time=start_time, end_time=end_time)
            )

        logger.info("Rescheduled appointment %s for owner %s to %s", appointment_id, owner_id, start_time)
        return saved

    async def update_status(
        self,
        owner_id: str,
        appointment_id: str,
        status: AppointmentStatus,
    ) -> Appointment:
        """
        Change an appointment's status.

        Reactivating a cancelled appointment re-checks it, since its time
        may have been booked in the meantime.
        """
        status = AppointmentStatus(status)

        async with self.owner_lock(owner_id):
            appointment = await self._require_appointment(owner_id, appointment_id)

            if appointment.is_cancelled and status is not AppointmentStatus.CANCELLED:
                result = await self._validate(
                    owner_id,
                    appointment.start_time,
                    appointment.end_time,
                    appointment_id,
                )
                self._raise_if_rejected(owner_id, result)

            saved = await self._store.save_appointment(appointment.with_changes(status=status))

        logger.info("Appointment %s for owner %s is now %s", appointment_id, owner_id, status.value)
        return saved

    async def cancel_appointment(self, owner_id: str, appointment_id: str) -> Appointment:
        """Mark an appointment cancelled, keeping it for history."""
        return await self.update_status(owner_id, appointment_id, AppointmentStatus.CANCELLED)

    async def delete_appointment(self, owner_id: str, appointment_id: str) -> None:
        """
        Remove an appointment entirely.

        Raises:
            NotFoundError: If the appointment does not exist
        """
        async with self.owner_lock(owner_id):
            if not await self._store.delete_appointment(owner_id, appointment_id):
                raise NotFoundError(f"Appointment not found: {appointment_id}")

        logger.info("Deleted appointment %s for owner %s", appointment_id, owner_id)

    # ------------------------------------------------------------------
    # Blocked time
    # ------------------------------------------------------------------

    async def list_blocked_times(
        self,
        owner_id: str,
        start: Optional[InstantLike] = None,
        end: Optional[InstantLike] = None,
    ) -> List[BlockedTimeRange]:
        blocks = await self._store.list_blocked_times(
            owner_id,
            normalize_instant(start, self._timezone) if start is not None else None,
            normalize_instant(end, self._timezone) if end is not None else None,
        )
        return sorted(blocks, key=lambda block: block.start_time)

    async def create_blocked_time(
        self,
        owner_id: str,
        start: InstantLike,
        end: InstantLike,
        *,
        reason: Optional[str] = None,
        is_recurring: bool = False,
        recurrence_type: Optional[RecurrenceType] = None,
        recurrence_end: Optional[InstantLike] = None,
    ) -> BlockedTimeRange:
        """
        Block off time, rejecting overlaps with the owner's other blocks.

        Raises:
            ValueError: If the range itself is invalid
            BookingRejectedError: If it overlaps an existing block
        """
        candidate = self._build_block(
            str(uuid.uuid4()),
            owner_id,
            start,
            end,
            reason,
            is_recurring,
            recurrence_type,
            recurrence_end,
        )

        async with self.owner_lock(owner_id):
            existing = await self._store.list_blocked_times(owner_id)
            result = self._validator.validate_blocked_time(candidate, existing)
            self._raise_if_rejected(owner_id, result)
            saved = await self._store.save_blocked_time(candidate)

        logger.info("Created blocked time %s for owner %s (%s)", saved.id, owner_id, saved.time_range)
        return saved

    async def update_blocked_time(self, owner_id: str, block_id: str, **changes: Any) -> BlockedTimeRange:
        """
        Update fields of a blocked range; omitted fields keep their value.

        Accepted keys: start, end, reason, is_recurring, recurrence_type,
        recurrence_end.

        Raises:
            NotFoundError: If the block does not exist
            BookingRejectedError: If the new range overlaps another block
        """
        async with self.owner_lock(owner_id):
            current = await self._store.get_blocked_time(owner_id, block_id)
            if current is None:
                raise NotFoundError(f"Blocked time not found: {block_id}")

            candidate = self._build_block(
                current.id,
                owner_id,
                changes.get("start", current.start_time),
                changes.get("end", current.end_time),
                changes.get("reason", current.reason),
                changes.get("is_recurring", current.is_recurring),
                changes.get("recurrence_type", current.recurrence_type),
                changes.get("recurrence_end", current.recurrence_end),
            )

            existing = await self._store.list_blocked_times(owner_id)
            result = self._validator.validate_blocked_time(candidate, existing, exclude_block_id=block_id)
            self._raise_if_rejected(owner_id, result)
            saved = await self._store.save_blocked_time(candidate)

        logger.info("Updated blocked time %s for owner %s", block_id, owner_id)
        return saved

    async def delete_blocked_time(self, owner_id: str, block_id: str) -> None:
        async with self.owner_lock(owner_id):
            if not await self._store.delete_blocked_time(owner_id, block_id):
                raise NotFoundError(f"Blocked time not found: {block_id}")

        logger.info("Deleted blocked time %s for owner %s", block_id, owner_id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _validate(
        self,
        owner_id: str,
        start_time: DateTime,
        end_time: DateTime,
        exclude_appointment_id: Optional[str] = None,
    ) -> ValidationResult:
        weekly_hours = await self.get_weekly_hours(owner_id)
        existing = await self._store.list_appointments(owner_id, start_time, end_time)
        blocked = await self._store.list_blocked_times(owner_id)

        return self._validator.validate_appointment(
            owner_id,
            start_time,
            end_time,
            existing,
            weekly_hours,
            blocked,
            exclude_appointment_id,
        )

    def _build_block(
        self,
        block_id: str,
        owner_id: str,
        start: InstantLike,
        end: InstantLike,
        reason: Optional[str],
        is_recurring: bool,
        recurrence_type: Optional[RecurrenceType],
        recurrence_end: Optional[InstantLike],
    ) -> BlockedTimeRange:
        return BlockedTimeRange(
            id=block_id,
            owner_id=owner_id,
            start_time=normalize_instant(start, self._timezone),
            end_time=normalize_instant(end, self._timezone),
            reason=reason,
            is_recurring=bool(is_recurring),
            recurrence_type=RecurrenceType(recurrence_type) if recurrence_type else None,
            recurrence_end=normalize_instant(recurrence_end, self._timezone) if recurrence_end else None,
        )

    async def _get_visible_service(self, owner_id: str, service_id: str) -> Service:
        service = await self._store.get_service(owner_id, service_id)
        if service is None or not service.is_visible:
            raise NotFoundError(f"Service not found: {service_id}")
        return service

    async def _require_appointment(self, owner_id: str, appointment_id: str) -> Appointment:
        appointment = await self._store.get_appointment(owner_id, appointment_id)
        if appointment is None:
            raise NotFoundError(f"Appointment not found: {appointment_id}")
        return appointment

    def _occupied_minutes(self, service: Service) -> int:
        if self._apply_padding:
            return service.duration + service.padding_time
        return service.duration

    @staticmethod
    def _raise_if_rejected(owner_id: str, result: ValidationResult) -> None:
        if result.accepted:
            return
        logger.info("Rejected write for owner %s: %s (%s)", owner_id, result.reason.value, result.message)
        raise BookingRejectedError(result)

"""
In-memory schedule store for local runs and tests.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from pendulum import DateTime

from ..domain.models import Appointment, BlockedTimeRange, Service
from ..domain.time_arithmetic import DEFAULT_TIMEZONE
from ..domain.weekly_hours import RawWeeklyHours

logger = logging.getLogger(__name__)


class _OwnerData:
    def __init__(self) -> None:
        self.business_hours: RawWeeklyHours = None
        self.appointments: Dict[str, Appointment] = {}
        self.blocked_times: Dict[str, BlockedTimeRange] = {}
        self.services: Dict[str, Service] = {}


class InMemoryScheduleStore:
    """
    Store that keeps every owner's schedule in dictionaries.

    It can be seeded from a JSON file of the form::

        {"owners": {"<owner id>": {"businessHours": {...} | "<json>",
                                   "appointments": [...],
                                   "blockedTimes": [...],
                                   "services": [...]}}}

    Business hours are kept exactly as given so that malformed stored values
    reach :func:`parse_weekly_hours` the same way they would from a database.
    """

    def __init__(self, timezone: str = DEFAULT_TIMEZONE):
        self.timezone = timezone
        self._owners: Dict[str, _OwnerData] = {}

    @classmethod
    def load_json(cls, data_file: Path, timezone: str = DEFAULT_TIMEZONE) -> "InMemoryScheduleStore":
        """
        Create a store seeded from a JSON file.

        Raises:
            FileNotFoundError: If the file doesn't exist
            ValueError: If the file is not valid JSON or has the wrong shape
        """
        if not data_file.exists():
            raise FileNotFoundError(f"Data file not found: {data_file}")

        try:
            with open(data_file, "r", encoding="utf-8") as f:
                payload = json.load(f)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid JSON in {data_file}: {exc}") from exc

        store = cls(timezone=timezone)
        store.seed(payload)
        logger.debug("Loaded schedule data for %d owner(s) from %s", len(store._owners), data_file)
        return store

    def seed(self, payload: Mapping[str, Any]) -> None:
        """Add owners from an already decoded seed document."""
        owners = payload.get("owners") if isinstance(payload, Mapping) else None
        if not isinstance(owners, Mapping):
            raise ValueError("Seed data must contain an 'owners' mapping at the root level.")

        for owner_id, record in owners.items():
            owner = self._owner(str(owner_id))
            owner.business_hours = record.get("businessHours", record.get("business_hours"))

            for item in record.get("appointments", []):
                appointment = Appointment.from_dict({"ownerId": owner_id, **item}, self.timezone)
                owner.appointments[appointment.id] = appointment

            for item in record.get("blockedTimes", record.get("blocked_times", [])):
                blocked = BlockedTimeRange.from_dict({"ownerId": owner_id, **item}, self.timezone)
                owner.blocked_times[blocked.id] = blocked

            for item in record.get("services", []):
                service = Service.from_dict({"ownerId": owner_id, **item})
                owner.services[service.id] = service

    def set_weekly_hours(self, owner_id: str, hours: RawWeeklyHours) -> None:
        self._owner(owner_id).business_hours = hours

    def add_service(self, service: Service) -> Service:
        self._owner(service.owner_id).services[service.id] = service
        return service

    def owner_ids(self) -> List[str]:
        return sorted(self._owners)

    # Protocol implementation

    async def get_weekly_hours(self, owner_id: str) -> RawWeeklyHours:
        owner = self._owners.get(owner_id)
        return owner.business_hours if owner else None

    async def list_appointments(
        self,
        owner_id: str,
        start: Optional[DateTime] = None,
        end: Optional[DateTime] = None,
    ) -> List[Appointment]:
        owner = self._owners.get(owner_id)
        if owner is None:
            return []
        return [item for item in owner.appointments.values() if _in_window(item, start, end)]

    async def get_appointment(self, owner_id: str, appointment_id: str) -> Optional[Appointment]:
        owner = self._owners.get(owner_id)
        return owner.appointments.get(appointment_id) if owner else None

    async def save_appointment(self, appointment: Appointment) -> Appointment:
        self._owner(appointment.owner_id).appointments[appointment.id] = appointment
        return appointment

    async def delete_appointment(self, owner_id: str, appointment_id: str) -> bool:
        owner = self._owners.get(owner_id)
        if owner is None:
            return False
        return owner.appointments.pop(appointment_id, None) is not None

    async def list_blocked_times(
        self,
        owner_id: str,
        start: Optional[DateTime] = None,
        end: Optional[DateTime] = None,
    ) -> List[BlockedTimeRange]:
        owner = self._owners.get(owner_id)
        if owner is None:
            return []
        return [item for item in owner.blocked_times.values() if _in_window(item, start, end)]

    async def get_blocked_time(self, owner_id: str, block_id: str) -> Optional[BlockedTimeRange]:
        owner = self._owners.get(owner_id)
        return owner.blocked_times.get(block_id) if owner else None

    async def save_blocked_time(self, blocked: BlockedTimeRange) -> BlockedTimeRange:
        self._owner(blocked.owner_id).blocked_times[blocked.id] = blocked
        return blocked

    async def delete_blocked_time(self, owner_id: str, block_id: str) -> bool:
        owner = self._owners.get(owner_id)
        if owner is None:
            return False
        return owner.blocked_times.pop(block_id, None) is not None

    async def get_service(self, owner_id: str, service_id: str) -> Optional[Service]:
        owner = self._owners.get(owner_id)
        return owner.services.get(service_id) if owner else None

    def _owner(self, owner_id: str) -> _OwnerData:
        if owner_id not in self._owners:
            self._owners[owner_id] = _OwnerData()
        return self._owners[owner_id]


def _in_window(item: Any, start: Optional[DateTime], end: Optional[DateTime]) -> bool:
    # Inclusive on both sides, like the date-range listing queries.
    if start is not None and item.end_time < start:
        return False
    if end is not None and item.start_time > end:
        return False
    return True

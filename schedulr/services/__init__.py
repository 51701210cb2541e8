"""
Service layer helpers that orchestrate storage adapters and domain logic.
"""

from .booking import BookingService, ScheduleStoreProtocol

__all__ = ["BookingService", "ScheduleStoreProtocol"]

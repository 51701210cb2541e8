"""
Adapters layer - Storage backends for the booking service.
"""

from .memory_store import InMemoryScheduleStore

__all__ = ["InMemoryScheduleStore"]

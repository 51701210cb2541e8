"""
Domain-specific exception hierarchy for the scheduling engine.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from .conflict_validator import ValidationResult


class SchedulrError(Exception):
    """Base class for all application-level errors."""


class FormatError(SchedulrError, ValueError):
    """Raised when a clock-time, date or timestamp cannot be parsed."""


class ConfigParseError(SchedulrError):
    """Raised when stored business hours cannot be decoded or validated."""


class NotFoundError(SchedulrError):
    """Raised when an appointment, service or blocked time does not exist for an owner."""


class BookingRejectedError(SchedulrError):
    """Raised by the service layer when a write fails validation."""

    def __init__(self, result: "ValidationResult"):
        super().__init__(result.message)
        self.result = result

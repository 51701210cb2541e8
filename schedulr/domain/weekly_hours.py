"""
Weekly business hours configuration.

A business stores its hours as a mapping from day key to ``{open, start,
end}``. The mapping may arrive already parsed or as a JSON string;
:func:`parse_weekly_hours` is the single decoder and falls back to
:func:`default_weekly_hours` when the stored value is missing or unusable.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Mapping, Optional, Union

from pydantic import BaseModel, Field, StrictBool, ValidationError, field_validator, model_validator

from .exceptions import ConfigParseError
from .time_arithmetic import ClockTime, DayKey, to_minutes

logger = logging.getLogger(__name__)

DEFAULT_OPEN = "09:00"
DEFAULT_CLOSE = "17:00"
DEFAULT_OPEN_DAYS = (
    DayKey.MONDAY,
    DayKey.TUESDAY,
    DayKey.WEDNESDAY,
    DayKey.THURSDAY,
    DayKey.FRIDAY,
)


class DayHours(BaseModel):
    """
    Open flag and clock window for one day of the week.

    ``open`` must be a real boolean. Clock values are checked whenever they
    are present, also on a closed day.
    """
    open: StrictBool = False
    start: Optional[str] = None
    end: Optional[str] = None

    @field_validator("start", "end", mode="before")
    @classmethod
    def blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("start", "end")
    @classmethod
    def validate_clock(cls, value: Optional[str]) -> Optional[str]:
        if value is not None:
            to_minutes(value)
        return value

    @model_validator(mode="after")
    def validate_open_window(self) -> "DayHours":
        """An open day needs a well-formed window that opens before it closes."""
        if not self.open:
            return self

        if self.start is None or self.end is None:
            raise ValueError("An open day requires both start and end times")

        if to_minutes(self.start) >= to_minutes(self.end):
            raise ValueError(f"Start time {self.start} must be before end time {self.end}")

        return self

    @property
    def start_clock(self) -> ClockTime | None:
        if not self.open:
            return None
        return ClockTime.parse(self.start)

    @property
    def end_clock(self) -> ClockTime | None:
        if not self.open:
            return None
        return ClockTime.parse(self.end)

    @classmethod
    def closed(cls) -> "DayHours":
        return cls(open=False)


class WeeklyHours(BaseModel):
    """
    Business hours for every day of the week.

    A day missing from the input is treated as closed.
    """
    sunday: DayHours = Field(default_factory=DayHours.closed)
    monday: DayHours = Field(default_factory=DayHours.closed)
    tuesday: DayHours = Field(default_factory=DayHours.closed)
    wednesday: DayHours = Field(default_factory=DayHours.closed)
    thursday: DayHours = Field(default_factory=DayHours.closed)
    friday: DayHours = Field(default_factory=DayHours.closed)
    saturday: DayHours = Field(default_factory=DayHours.closed)

    def for_day(self, day_key: DayKey) -> DayHours:
        """Return the hours for ``day_key``."""
        return getattr(self, DayKey(day_key).value)

    def open_days(self) -> list[DayKey]:
        return [key for key in DayKey.ordered() if self.for_day(key).open]

    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        """Serialize in the stored ``{day: {open, start, end}}`` shape."""
        return self.model_dump(exclude_none=True)


def default_weekly_hours() -> WeeklyHours:
    """Mon–Fri 09:00–17:00 open, Saturday and Sunday closed."""
    days = {
        key.value: DayHours(open=True, start=DEFAULT_OPEN, end=DEFAULT_CLOSE)
        for key in DEFAULT_OPEN_DAYS
    }
    return WeeklyHours(**days)


RawWeeklyHours = Union[None, str, bytes, Mapping[str, Any], WeeklyHours]


def parse_weekly_hours(raw: RawWeeklyHours) -> WeeklyHours:
    """
    Decode stored business hours.

    Accepts a ``WeeklyHours`` instance, a mapping, or a JSON string. Missing
    or empty input yields the default schedule. Malformed input is logged
    and also yields the default schedule; it is never surfaced to callers.
    """
    if isinstance(raw, WeeklyHours):
        return raw

    if raw is None or (isinstance(raw, (str, bytes)) and not raw.strip()):
        return default_weekly_hours()

    try:
        return _decode_weekly_hours(raw)
    except ConfigParseError as exc:
        logger.warning("Falling back to default business hours: %s", exc)
        return default_weekly_hours()


def is_valid_weekly_hours(raw: Mapping[str, Any]) -> bool:
    """
    Strict check used before saving hours from a settings form.

    Unlike :func:`parse_weekly_hours`, every one of the seven days must be
    present.
    """
    if not isinstance(raw, Mapping):
        return False

    if any(key.value not in raw for key in DayKey):
        return False

    try:
        WeeklyHours.model_validate(raw)
    except (ValidationError, ValueError):
        return False

    return True


def _decode_weekly_hours(raw: Union[str, bytes, Mapping[str, Any]]) -> WeeklyHours:
    if isinstance(raw, (str, bytes)):
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ConfigParseError(f"Business hours are not valid JSON: {exc}") from exc
    else:
        data = raw

    if not isinstance(data, Mapping):
        raise ConfigParseError("Business hours must be a mapping of day names")

    known = {key.value for key in DayKey}
    unknown = [key for key in data if key not in known]
    if unknown:
        raise ConfigParseError(f"Unknown day keys in business hours: {sorted(unknown)}")

    try:
        return WeeklyHours.model_validate(dict(data))
    except (ValidationError, ValueError) as exc:
        raise ConfigParseError(f"Invalid business hours: {exc}") from exc

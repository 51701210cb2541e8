"""
Match instants and spans against one-off and recurring blocked time.

Recurring ranges are templates. Whether a template covers an instant is
decided by one rule shared by all recurrence types: a day predicate
(every day, same weekday, same day of month) followed by the same inclusive
minute-of-day span test.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional

import pendulum
from pendulum import DateTime

from .models import BlockedTimeRange, RecurrenceType, TimeRange, intervals_overlap, within_closed
from .time_arithmetic import at_clock, minute_of_day

DayPredicate = Callable[[datetime, datetime], bool]


def _always(candidate: datetime, template: datetime) -> bool:
    return True


def _same_day_of_week(candidate: datetime, template: datetime) -> bool:
    return candidate.weekday() == template.weekday()


def _same_day_of_month(candidate: datetime, template: datetime) -> bool:
    return candidate.day == template.day


DAY_PREDICATES: Dict[RecurrenceType, DayPredicate] = {
    RecurrenceType.DAILY: _always,
    RecurrenceType.WEEKLY: _same_day_of_week,
    RecurrenceType.MONTHLY: _same_day_of_month,
}


def recurrence_has_ended(instant: datetime, blocked: BlockedTimeRange) -> bool:
    """
    True once ``instant`` is past the recurrence end.

    The end is compared by calendar day, so the whole end day is still
    covered.
    """
    if blocked.recurrence_end is None:
        return False
    return _local(instant, blocked).date() > _local(blocked.recurrence_end, blocked).date()


def matches_recurrence(instant: datetime, blocked: BlockedTimeRange) -> bool:
    """Whether a recurring template covers ``instant`` (ignoring its recurrence end)."""
    if not blocked.is_recurring or blocked.recurrence_type is None:
        return False

    local = _local(instant, blocked)
    if not DAY_PREDICATES[blocked.recurrence_type](local, blocked.start_time):
        return False

    minute = minute_of_day(local)
    return minute_of_day(blocked.start_time) <= minute <= minute_of_day(blocked.end_time)


def is_blocked(instant: datetime, ranges: Iterable[BlockedTimeRange]) -> bool:
    """
    Whether any blocked range covers ``instant``.

    A direct hit on a range's own interval counts with both ends included.
    Otherwise recurring ranges are matched by pattern until their recurrence
    end. The recurrence end is compared by calendar day, so a range still
    matches on the whole end day, not only up to the end timestamp.

    A naive ``instant`` is read as wall-clock time in each range's timezone.
    """
    for blocked in ranges:
        local = _local(instant, blocked)
        if within_closed(local, blocked.start_time, blocked.end_time):
            return True

        if not blocked.is_recurring or recurrence_has_ended(local, blocked):
            continue

        if matches_recurrence(local, blocked):
            return True

    return False


def occurrences_on(day: datetime, blocked: BlockedTimeRange) -> List[TimeRange]:
    """
    Concrete intervals ``blocked`` covers on ``day``'s calendar date.

    The range's own interval is included when it touches that date; for a
    recurring range the template's clock window is added when the date
    matches its pattern and is not past the recurrence end.
    """
    day_start = _local(day, blocked).start_of("day")
    day_end = day_start.add(days=1)

    found: List[TimeRange] = []
    if intervals_overlap(blocked.start_time, blocked.end_time, day_start, day_end):
        found.append(blocked.time_range)

    if not blocked.is_recurring or recurrence_has_ended(day_start, blocked):
        return found

    if DAY_PREDICATES[blocked.recurrence_type](day_start, blocked.start_time):
        occurrence = TimeRange(
            start=at_clock(day_start, minute_of_day(blocked.start_time)),
            end=at_clock(day_start, minute_of_day(blocked.end_time)),
        )
        if occurrence not in found:
            found.append(occurrence)

    return found


def is_span_blocked(start: datetime, end: datetime, ranges: Iterable[BlockedTimeRange]) -> bool:
    """
    Whether a proposed span runs into blocked time.

    The start instant is checked with :func:`is_blocked`; the rest of the
    span is checked for half-open overlap with every occurrence on each
    calendar day it touches.
    """
    ranges = list(ranges)
    if is_blocked(start, ranges):
        return True

    for blocked in ranges:
        local_start = _local(start, blocked)
        local_end = _local(end, blocked)
        current = local_start
        while current.date() <= local_end.date():
            for occurrence in occurrences_on(current, blocked):
                if intervals_overlap(local_start, local_end, occurrence.start, occurrence.end):
                    return True
            current = current.add(days=1)

    return False


def find_overlapping_block(
    candidate: BlockedTimeRange,
    existing: Iterable[BlockedTimeRange],
    exclude_id: Optional[str] = None,
) -> BlockedTimeRange | None:
    """
    First existing block of the same owner whose interval overlaps ``candidate``.

    Only the concrete intervals are compared; touching blocks are allowed.
    """
    for blocked in existing:
        if blocked.id in (candidate.id, exclude_id):
            continue
        if blocked.owner_id != candidate.owner_id:
            continue
        if intervals_overlap(candidate.start_time, candidate.end_time, blocked.start_time, blocked.end_time):
            return blocked
    return None


def _local(instant: datetime, blocked: BlockedTimeRange) -> DateTime:
    """``instant`` expressed in the timezone the block was defined in."""
    tzinfo = blocked.start_time.tzinfo
    if instant.tzinfo is None:
        return pendulum.instance(instant, tz=tzinfo)
    return pendulum.instance(instant.astimezone(tzinfo))

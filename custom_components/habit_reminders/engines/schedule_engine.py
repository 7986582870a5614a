"""Schedule Engine for Habit Reminders.

Pure functions that compute "next fire time" for a habit reminder given its
nominal wall-clock time, the current time and an optional weekday
restriction. Nothing in here reads the wall clock: callers always pass
`current_time` explicitly.

Canonical weekday numbering is `datetime.weekday()` (0=Monday..6=Sunday).
Other numberings (RRULE BYDAY codes) are produced only by to_rrule_string(),
at the notification backend boundary.

IMPORTANT: This module must NOT import from managers or Home Assistant.
Only import from const.py, exceptions.py, type_defs.py and standard libraries.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, time, timedelta
import math
from typing import TYPE_CHECKING

from .. import const
from ..exceptions import ValidationError

if TYPE_CHECKING:
    from ..type_defs import OccurrenceData

ONE_DAY = timedelta(days=1)
DAYS_PER_WEEK = 7
MINUTES_PER_DAY = 24 * 60

# RFC 5545 BYDAY codes, indexed by datetime.weekday()
RRULE_WEEKDAY_CODES = ["MO", "TU", "WE", "TH", "FR", "SA", "SU"]


# =============================================================================
# Weekday helpers
# =============================================================================


def weekday_numbers(days: Iterable[str | int]) -> set[int]:
    """Normalize weekday names (MONDAY..SUNDAY) or numbers (0..6) to 0..6.

    Raises:
        ValidationError: If any entry is not a known weekday.
    """
    result: set[int] = set()
    for day in days:
        if isinstance(day, int) and not isinstance(day, bool):
            if not 0 <= day < DAYS_PER_WEEK:
                raise ValidationError(f"Weekday out of range: {day}")
            result.add(day)
            continue
        name = str(day).strip().upper()
        if name not in const.WEEKDAYS:
            raise ValidationError(f"Unknown weekday: {day!r}")
        result.add(const.WEEKDAYS.index(name))
    return result


def _occurrence_days(occurrence: OccurrenceData) -> list[str] | None:
    """Return the custom day list, or None for daily occurrences."""
    occurrence_type = occurrence.get(const.DATA_OCCURRENCE_TYPE)
    if occurrence_type == const.OCCURRENCE_DAILY:
        return None
    if occurrence_type == const.OCCURRENCE_CUSTOM:
        return list(occurrence.get(const.DATA_OCCURRENCE_DAYS) or [])
    raise ValidationError(f"Unknown occurrence type: {occurrence_type!r}")


def _wall_clock(nominal_time: datetime | time, reference: datetime) -> time:
    """Extract the nominal hour/minute/second as seen in reference's zone."""
    if (
        isinstance(nominal_time, datetime)
        and nominal_time.tzinfo is not None
        and reference.tzinfo is not None
    ):
        nominal_time = nominal_time.astimezone(reference.tzinfo)
    return time(nominal_time.hour, nominal_time.minute, nominal_time.second)


# =============================================================================
# Core calculations
# =============================================================================


def next_daily_fire_time(
    nominal_time: datetime | time, current_time: datetime
) -> datetime:
    """Return the next instant strictly after current_time at the nominal time.

    The candidate sits on current_time's calendar date with nominal_time's
    hour/minute/second and zero microseconds. If the candidate is not after
    current_time (exact equality included) it moves forward one calendar day.

    Examples:
        nominal 09:00, current 2024-01-01T08:00Z -> 2024-01-01T09:00Z
        nominal 09:00, current 2024-01-01T09:00Z -> 2024-01-02T09:00Z
    """
    wall = _wall_clock(nominal_time, current_time)
    candidate = current_time.replace(
        hour=wall.hour, minute=wall.minute, second=wall.second, microsecond=0
    )
    if candidate <= current_time:
        candidate = candidate + ONE_DAY
    return candidate


def next_custom_fire_time(
    candidate: datetime, selected_days: Iterable[str | int]
) -> datetime:
    """Return the first day on or after candidate whose weekday is selected.

    Scans forward at most one full week (0 through 6 days) and preserves
    the candidate's time of day.

    Raises:
        ValidationError: If selected_days is empty, or no match is found.
    """
    day_numbers = weekday_numbers(selected_days)
    if not day_numbers:
        raise ValidationError("Selected days must be a non-empty set")

    start_weekday = candidate.weekday()
    for offset in range(DAYS_PER_WEEK):
        if (start_weekday + offset) % DAYS_PER_WEEK in day_numbers:
            return candidate + timedelta(days=offset)

    raise ValidationError("No valid days selected for notification")


def next_fire_time(
    nominal_time: datetime | time,
    current_time: datetime,
    occurrence: OccurrenceData,
) -> datetime:
    """Compose the daily and custom calculations for an occurrence pattern."""
    candidate = next_daily_fire_time(nominal_time, current_time)
    days = _occurrence_days(occurrence)
    if days is None:
        return candidate
    return next_custom_fire_time(candidate, days)


def following_fire_time(
    fire_at: datetime,
    nominal_time: datetime | time,
    occurrence: OccurrenceData,
) -> datetime:
    """Return the occurrence strictly after fire_at (used for chaining)."""
    return next_fire_time(nominal_time, fire_at, occurrence)


def minutes_until(target: datetime, current_time: datetime) -> int:
    """Return floor((target - current_time) in minutes). May be negative."""
    return math.floor((target - current_time).total_seconds() / 60)


def next_reminder_text(minutes: int) -> str:
    """Describe the gap to the next reminder.

    Negative values mean the nominal time already passed today, so the
    reminder occurs tomorrow: a full day of minutes is added.
    """
    if minutes < 0:
        minutes += MINUTES_PER_DAY
    return f"Next reminder in {minutes} minutes"


# =============================================================================
# Backend boundary
# =============================================================================


def to_rrule_string(nominal_time: datetime | time, occurrence: OccurrenceData) -> str:
    """Generate an RFC 5545 RRULE for backends that repeat natively.

    Returns:
        e.g. "FREQ=DAILY;BYHOUR=9;BYMINUTE=0;BYSECOND=0" or
        "FREQ=WEEKLY;BYDAY=MO,FR;BYHOUR=9;BYMINUTE=0;BYSECOND=0"

    Raises:
        ValidationError: For an empty or invalid custom day set.
    """
    if isinstance(nominal_time, datetime):
        wall = time(nominal_time.hour, nominal_time.minute, nominal_time.second)
    else:
        wall = nominal_time
    clock_part = f"BYHOUR={wall.hour};BYMINUTE={wall.minute};BYSECOND={wall.second}"

    days = _occurrence_days(occurrence)
    if days is None:
        return f"FREQ=DAILY;{clock_part}"

    day_numbers = weekday_numbers(days)
    if not day_numbers:
        raise ValidationError("Selected days must be a non-empty set")
    byday = ",".join(RRULE_WEEKDAY_CODES[number] for number in sorted(day_numbers))
    return f"FREQ=WEEKLY;BYDAY={byday};{clock_part}"

"""Habit Engine for Habit Reminders.

Pure validation and construction helpers for habit records:
- validate_habit(): structural checks used on create/edit
- get_schedulable_config(): precondition checks used before scheduling
- needs_notification_update(): update-trigger predicate for edits
- build_habit(): construct a new habit record

IMPORTANT: This module must NOT import from managers or Home Assistant.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any
import uuid

from .. import const
from ..exceptions import ConfigurationError, TimeError, ValidationError
from ..utils.dt_utils import validate_instant
from .schedule_engine import weekday_numbers

if TYPE_CHECKING:
    from ..type_defs import HabitData, OccurrenceData


def validate_habit(habit: dict[str, Any]) -> list[str]:
    """Return a list of human-readable problems with a habit record.

    An empty list means the habit is structurally valid.
    """
    errors: list[str] = []

    if not str(habit.get(const.DATA_HABIT_ID) or "").strip():
        errors.append("Habit ID is required")

    if not str(habit.get(const.DATA_HABIT_NAME) or "").strip():
        errors.append("Name is required")

    if habit.get(const.DATA_HABIT_TYPE) not in const.HABIT_TYPES:
        errors.append("Invalid habit type")

    occurrence = habit.get(const.DATA_HABIT_OCCURRENCE) or {}
    occurrence_type = occurrence.get(const.DATA_OCCURRENCE_TYPE)
    if occurrence_type not in const.OCCURRENCE_TYPES:
        errors.append("Invalid occurrence configuration")
    elif occurrence_type == const.OCCURRENCE_CUSTOM:
        try:
            if not weekday_numbers(occurrence.get(const.DATA_OCCURRENCE_DAYS) or []):
                errors.append("Custom occurrence requires at least one day")
        except ValidationError as err:
            errors.append(str(err))

    notification = habit.get(const.DATA_HABIT_NOTIFICATION) or {}
    if not str(notification.get(const.DATA_NOTIFICATION_MESSAGE) or "").strip():
        errors.append("Notification message is required")
    try:
        validate_instant(notification.get(const.DATA_NOTIFICATION_TIME))
    except TimeError:
        errors.append("Invalid notification time")

    if not isinstance(habit.get(const.DATA_HABIT_IS_ACTIVE), bool):
        errors.append("Active flag must be a boolean")

    return errors


def get_schedulable_config(habit: HabitData) -> tuple[datetime, str]:
    """Check scheduling preconditions and return (nominal_time, message).

    Does not re-check the custom day set: an empty set is a data-integrity
    bug that the schedule engine reports loudly with ValidationError.

    Raises:
        ConfigurationError: If the habit is inactive, or its notification
            time or message is missing or invalid.
    """
    habit_id = habit.get(const.DATA_HABIT_ID)
    if not habit.get(const.DATA_HABIT_IS_ACTIVE, False):
        raise ConfigurationError(f"Habit '{habit_id}' is not active")

    notification = habit.get(const.DATA_HABIT_NOTIFICATION) or {}
    message = str(notification.get(const.DATA_NOTIFICATION_MESSAGE) or "").strip()
    if not message:
        raise ConfigurationError(f"Habit '{habit_id}' has no notification message")

    raw_time = notification.get(const.DATA_NOTIFICATION_TIME)
    if not raw_time:
        raise ConfigurationError(f"Habit '{habit_id}' has no notification time")
    try:
        nominal_time = validate_instant(raw_time)
    except TimeError as err:
        raise ConfigurationError(
            f"Habit '{habit_id}' has an invalid notification time: {err}"
        ) from err

    return nominal_time, message


def needs_notification_update(old_habit: HabitData, new_habit: HabitData) -> bool:
    """Return True when an edit touches a field that affects the reminder.

    Time, message, name, occurrence pattern and active flag all change what
    (or whether) the backend should fire.
    """
    old_notification = old_habit.get(const.DATA_HABIT_NOTIFICATION) or {}
    new_notification = new_habit.get(const.DATA_HABIT_NOTIFICATION) or {}
    return (
        new_notification.get(const.DATA_NOTIFICATION_TIME)
        != old_notification.get(const.DATA_NOTIFICATION_TIME)
        or str(new_notification.get(const.DATA_NOTIFICATION_MESSAGE, "")).strip()
        != str(old_notification.get(const.DATA_NOTIFICATION_MESSAGE, "")).strip()
        or str(new_habit.get(const.DATA_HABIT_NAME, "")).strip()
        != str(old_habit.get(const.DATA_HABIT_NAME, "")).strip()
        or _normalized_occurrence(new_habit.get(const.DATA_HABIT_OCCURRENCE))
        != _normalized_occurrence(old_habit.get(const.DATA_HABIT_OCCURRENCE))
        or bool(new_habit.get(const.DATA_HABIT_IS_ACTIVE))
        != bool(old_habit.get(const.DATA_HABIT_IS_ACTIVE))
    )


def _normalized_occurrence(occurrence: OccurrenceData | None) -> tuple[Any, ...]:
    occurrence = occurrence or {}
    days = occurrence.get(const.DATA_OCCURRENCE_DAYS) or []
    return (
        occurrence.get(const.DATA_OCCURRENCE_TYPE),
        tuple(sorted(str(day).upper() for day in days)),
    )


def build_habit(
    *,
    name: str,
    message: str,
    time: str,
    now: datetime,
    habit_type: str = const.HABIT_TYPE_BUILD,
    days: list[str] | None = None,
    habit_id: str | None = None,
) -> HabitData:
    """Construct a new active habit record.

    Raises:
        ValidationError: If the resulting habit is structurally invalid.
    """
    occurrence: dict[str, Any] = {const.DATA_OCCURRENCE_TYPE: const.OCCURRENCE_DAILY}
    if days:
        occurrence = {
            const.DATA_OCCURRENCE_TYPE: const.OCCURRENCE_CUSTOM,
            const.DATA_OCCURRENCE_DAYS: [str(day).strip().upper() for day in days],
        }

    habit: dict[str, Any] = {
        const.DATA_HABIT_ID: habit_id or str(uuid.uuid4()),
        const.DATA_HABIT_NAME: name.strip(),
        const.DATA_HABIT_TYPE: habit_type,
        const.DATA_HABIT_OCCURRENCE: occurrence,
        const.DATA_HABIT_NOTIFICATION: {
            const.DATA_NOTIFICATION_MESSAGE: message.strip(),
            const.DATA_NOTIFICATION_TIME: time,
        },
        const.DATA_HABIT_IS_ACTIVE: True,
        const.DATA_HABIT_CREATED_AT: now.isoformat(),
        const.DATA_HABIT_START_DATE: now.isoformat(),
    }

    errors = validate_habit(habit)
    if errors:
        raise ValidationError(", ".join(errors))
    return habit  # type: ignore[return-value]

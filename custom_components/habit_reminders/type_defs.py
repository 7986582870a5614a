"""Type definitions for Habit Reminders data structures.

TypedDict is used for the persisted shapes (habits, progress records) and the
notification payload handed to backends. Everything here is STATIC ANALYSIS
ONLY: TypedDict does not enforce anything at runtime, so validation stays in
engines/habit_engine.py and the storage manager.

IMPORTANT: This file must NOT import from managers, storage or any Home
Assistant module. Only typing machinery.
"""

from typing import Any, Literal, NotRequired, TypedDict

# =============================================================================
# Type Aliases (for readability)
# =============================================================================

HabitId = str
SchedulingHandle = str  # Opaque identifier returned by a notification backend
ISODatetime = str  # ISO 8601 datetime string "2024-01-01T09:00:00+00:00"
ISODate = str  # ISO 8601 date string "2024-01-01"
WeekdayName = Literal[
    "MONDAY", "TUESDAY", "WEDNESDAY", "THURSDAY", "FRIDAY", "SATURDAY", "SUNDAY"
]


# =============================================================================
# Habit
# =============================================================================


class OccurrenceData(TypedDict):
    """Recurrence pattern of a habit.

    `days` is present (and non-empty) only when type is "custom".
    """

    type: Literal["daily", "custom"]
    days: NotRequired[list[WeekdayName]]


class NotificationConfigData(TypedDict):
    """Reminder configuration stored on a habit."""

    message: str
    time: ISODatetime  # Only hour:minute:second are used
    identifier: NotRequired[SchedulingHandle | None]
    chained_identifier: NotRequired[SchedulingHandle | None]


class HabitData(TypedDict):
    """A stored habit."""

    id: HabitId
    name: str
    type: Literal["build", "break"]
    occurrence: OccurrenceData
    notification: NotificationConfigData
    is_active: bool
    created_at: NotRequired[ISODatetime]
    start_date: NotRequired[ISODatetime]


# =============================================================================
# Progress
# =============================================================================


class ProgressRecord(TypedDict):
    """One day of progress for a habit. At most one per (habit_id, date)."""

    habit_id: HabitId
    date: ISODate
    completed: bool
    skipped: bool


# =============================================================================
# Notification Payload
# =============================================================================


class CorrelationData(TypedDict):
    """Data a delivered notification carries back to the integration."""

    habit_id: HabitId
    type: str  # Always "habit_reminder"
    scheduled_at: ISODatetime


class NotificationAction(TypedDict):
    """A companion-app action button."""

    action: str
    title: str


class NotificationContent(TypedDict):
    """Platform-agnostic reminder payload built by notification_helper."""

    title: str
    body: str
    correlation: CorrelationData
    category: str
    tag: str
    actions: list[NotificationAction]


# Raw storage layout (dynamic keys)
StorageData = dict[str, Any]

"""Habit record builders for tests."""

from typing import Any

from custom_components.habit_reminders import const


def make_habit(
    habit_id: str = "habit-0001",
    *,
    name: str = "Drink water",
    time: str = "2024-01-01T09:00:00+00:00",
    message: str = "Time to drink a glass of water",
    days: list[str] | None = None,
    is_active: bool = True,
    habit_type: str = const.HABIT_TYPE_BUILD,
    **notification_extra: Any,
) -> dict[str, Any]:
    """Build a stored habit dict. days=None means a daily habit."""
    occurrence: dict[str, Any] = {const.DATA_OCCURRENCE_TYPE: const.OCCURRENCE_DAILY}
    if days is not None:
        occurrence = {
            const.DATA_OCCURRENCE_TYPE: const.OCCURRENCE_CUSTOM,
            const.DATA_OCCURRENCE_DAYS: days,
        }
    return {
        const.DATA_HABIT_ID: habit_id,
        const.DATA_HABIT_NAME: name,
        const.DATA_HABIT_TYPE: habit_type,
        const.DATA_HABIT_OCCURRENCE: occurrence,
        const.DATA_HABIT_NOTIFICATION: {
            const.DATA_NOTIFICATION_MESSAGE: message,
            const.DATA_NOTIFICATION_TIME: time,
            **notification_extra,
        },
        const.DATA_HABIT_IS_ACTIVE: is_active,
        const.DATA_HABIT_CREATED_AT: "2023-12-01T00:00:00+00:00",
        const.DATA_HABIT_START_DATE: "2023-12-01T00:00:00+00:00",
    }

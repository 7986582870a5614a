"""Engine modules for Habit Reminders integration.

Contains pure computation engines:
- schedule_engine: Next fire time calculation and RRULE generation
- habit_engine: Habit validation, scheduling preconditions, update trigger
"""

# Use relative imports within package to avoid mypy module resolution issues
from .habit_engine import (
    build_habit,
    get_schedulable_config,
    needs_notification_update,
    validate_habit,
)
from .schedule_engine import (
    following_fire_time,
    minutes_until,
    next_custom_fire_time,
    next_daily_fire_time,
    next_fire_time,
    next_reminder_text,
    to_rrule_string,
    weekday_numbers,
)

__all__ = [
    "build_habit",
    "following_fire_time",
    "get_schedulable_config",
    "minutes_until",
    "needs_notification_update",
    "next_custom_fire_time",
    "next_daily_fire_time",
    "next_fire_time",
    "next_reminder_text",
    "to_rrule_string",
    "validate_habit",
    "weekday_numbers",
]

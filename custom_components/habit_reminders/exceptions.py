# File: exceptions.py
"""Error taxonomy for the Habit Reminders scheduling core.

Plain exceptions with ZERO Home Assistant dependencies so that the pure
engines and utils can raise them. Service handlers translate them into
HomeAssistantError at the HA boundary.

    HabitRemindersError
    ├── TimeError
    ├── ValidationError
    │   └── ConfigurationError
    └── SchedulingError
        ├── SchedulingTooSoonError
        └── SchedulingBackendError
"""

from __future__ import annotations


class HabitRemindersError(Exception):
    """Base class for all Habit Reminders errors."""


class TimeError(HabitRemindersError):
    """Malformed or non-finite datetime input."""


class ValidationError(HabitRemindersError):
    """Structurally invalid scheduling configuration or unreachable state."""


class ConfigurationError(ValidationError):
    """A habit is not in a schedulable state (inactive, missing time/message)."""


class SchedulingError(HabitRemindersError):
    """Base class for errors raised while registering a reminder."""


class SchedulingTooSoonError(SchedulingError):
    """Computed fire time violates the minimum lead time."""

    def __init__(self, habit_id: str, lead_seconds: float) -> None:
        """Initialize with the offending lead time."""
        super().__init__(
            f"Reminder for habit '{habit_id}' would fire in {lead_seconds:.3f}s"
        )
        self.habit_id = habit_id
        self.lead_seconds = lead_seconds


class SchedulingBackendError(SchedulingError):
    """The notification backend rejected a submission."""

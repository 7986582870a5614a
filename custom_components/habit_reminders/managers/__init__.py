"""Manager modules for Habit Reminders integration.

Managers orchestrate workflows and coordinate between engines and the
storage/notification collaborators. They are stateful and async.
"""

from .reminder_manager import ReminderManager

__all__ = [
    "ReminderManager",
]

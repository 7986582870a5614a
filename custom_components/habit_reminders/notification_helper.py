# File: notification_helper.py
"""Builds reminder notification payloads for the Habit Reminders integration.

Everything here is pure and deterministic: given a habit and a fire time it
returns the platform-agnostic payload handed to a notification backend. For
actionable notifications the habit id is encoded directly into the action
string ("COMPLETE_HABIT|<habit_id>") so the action handler can route the
callback without any extra lookup state.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

from . import const

if TYPE_CHECKING:
    from .type_defs import HabitData, NotificationAction, NotificationContent


@dataclass(frozen=True)
class ScheduledOccurrence:
    """One concrete scheduled instance of a habit's reminder.

    Produced fresh on every scheduling pass and never mutated; the next pass
    supersedes it.
    """

    habit_id: str
    fire_at: datetime
    content: NotificationContent


def build_notification_tag(habit_id: str) -> str:
    """Build the replacement tag for a habit's reminders.

    A later reminder with the same tag replaces an undismissed earlier one
    instead of stacking. The habit id is truncated to 8 characters to keep
    the tag well under Apple's 64-byte apns-collapse-id limit.

    Example:
        build_notification_tag("4f1c2a9e-...") -> "habit_reminders-4f1c2a9e"
    """
    return f"{const.NOTIFY_TAG_PREFIX}-{habit_id[:8]}"


def build_habit_actions(habit_id: str) -> list[NotificationAction]:
    """Build the Complete and Skip action buttons for a habit reminder."""
    return [
        {
            const.NOTIFY_ACTION: f"{const.ACTION_COMPLETE_HABIT}|{habit_id}",
            const.NOTIFY_TITLE: const.ACTION_TITLE_COMPLETE,
        },
        {
            const.NOTIFY_ACTION: f"{const.ACTION_SKIP_HABIT}|{habit_id}",
            const.NOTIFY_TITLE: const.ACTION_TITLE_SKIP,
        },
    ]


def build_content(habit: HabitData, fire_at: datetime) -> NotificationContent:
    """Assemble the reminder payload for a habit firing at fire_at."""
    habit_id = habit[const.DATA_HABIT_ID]
    notification = habit[const.DATA_HABIT_NOTIFICATION]
    return {
        "title": habit.get(const.DATA_HABIT_NAME) or const.DISPLAY_UNNAMED_HABIT,
        "body": notification[const.DATA_NOTIFICATION_MESSAGE],
        "correlation": {
            "habit_id": habit_id,
            "type": const.NOTIFICATION_TYPE_HABIT_REMINDER,
            "scheduled_at": fire_at.isoformat(),
        },
        "category": const.NOTIFICATION_CATEGORY_HABIT,
        "tag": build_notification_tag(habit_id),
        "actions": build_habit_actions(habit_id),
    }


def build_scheduled_occurrence(
    habit: HabitData, fire_at: datetime
) -> ScheduledOccurrence:
    """Pair a fire time with its payload."""
    return ScheduledOccurrence(
        habit_id=habit[const.DATA_HABIT_ID],
        fire_at=fire_at,
        content=build_content(habit, fire_at),
    )

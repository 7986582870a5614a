# File: notification_action_handler.py
"""Handle reminder deliveries and notification actions.

Two inbound paths re-enter the integration after a reminder is out:

- Delivery: the notification backend fires EVENT_NOTIFICATION_DELIVERED once
  a reminder has been sent. The handler measures drift and schedules the
  next cycle (Scheduled -> Delivered -> Scheduled).
- Action: the HA Companion app fires mobile_app_notification_action when the
  user taps a button. Complete/Skip write today's progress record; every
  action dismisses the delivered notification afterwards.

There is no persisted state machine: everything is reconstructed from the
event data and the stored habit each time.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
import math
from typing import TYPE_CHECKING, Any

from homeassistant.config_entries import ConfigEntryState

from . import const
from .exceptions import HabitRemindersError, TimeError
from .notification_helper import build_notification_tag
from .utils.dt_utils import SystemClock, as_local, validate_instant

if TYPE_CHECKING:
    from homeassistant.core import Event, HomeAssistant

    from . import HabitRemindersRuntimeData
    from .managers import ReminderManager
    from .notification_backend import NotificationBackend
    from .storage_manager import HabitRemindersStorageManager
    from .utils.dt_utils import Clock


# =============================================================================
# ParsedAction Dataclass
# =============================================================================


@dataclass
class ParsedAction:
    """Type-safe parsed notification action.

    Action strings are pipe-separated: "ACTION_TYPE|habit_id".

    Example:
        parsed = ParsedAction(action_type="COMPLETE_HABIT", habit_id="4f1c...")
        parsed.user_action  # "complete"
    """

    action_type: str
    habit_id: str

    @property
    def user_action(self) -> str:
        """Map the action constant to complete / skip / press."""
        return const.ACTION_TO_USER_ACTION[self.action_type]


def parse_notification_action(action_field: str) -> ParsedAction | None:
    """Parse a notification action string into a structured ParsedAction.

    Args:
        action_field: Pipe-separated action string from notification callback

    Returns:
        ParsedAction object if valid, None if invalid/malformed

    Example:
        >>> parsed = parse_notification_action("SKIP_HABIT|4f1c2a9e")
        >>> parsed.action_type  # "SKIP_HABIT"
        >>> parsed.habit_id     # "4f1c2a9e"
    """
    if not action_field:
        return None

    parts = action_field.split("|")
    if len(parts) != 2 or not parts[1]:
        const.LOGGER.warning("Invalid action string format: %s", action_field)
        return None

    action_type, habit_id = parts
    if action_type not in const.ACTION_TO_USER_ACTION:
        const.LOGGER.warning("Unknown action type: %s", action_type)
        return None

    return ParsedAction(action_type=action_type, habit_id=habit_id)


# =============================================================================
# Drift compensation
# =============================================================================


def compute_drift_compensation(
    drift_seconds: float,
    *,
    drift_threshold_seconds: float = const.DEFAULT_DRIFT_THRESHOLD_SECONDS,
    max_compensation_seconds: float = const.DEFAULT_MAX_DRIFT_COMPENSATION_SECONDS,
) -> int:
    """Return how many seconds early the next cycle should fire.

    Deliveries up to the threshold late need no correction. Later ones move
    the next occurrence earlier by floor(drift) seconds, capped at
    max_compensation_seconds. The shift is applied to the nominal occurrence
    each cycle, so it never compounds.

    Example:
        drift 12.4s -> 12 (09:00 next cycle fires at 08:59:48)
    """
    if drift_seconds <= drift_threshold_seconds:
        return 0
    return int(min(math.floor(drift_seconds), max_compensation_seconds))


# =============================================================================
# Delivery Feedback Handler
# =============================================================================


class DeliveryFeedbackHandler:
    """Reacts to delivered reminders and to the user's response to them."""

    def __init__(
        self,
        storage: HabitRemindersStorageManager,
        backend: NotificationBackend,
        reminder_manager: ReminderManager,
        clock: Clock | None = None,
        *,
        drift_threshold_seconds: float = const.DEFAULT_DRIFT_THRESHOLD_SECONDS,
        max_drift_compensation_seconds: float = (
            const.DEFAULT_MAX_DRIFT_COMPENSATION_SECONDS
        ),
    ) -> None:
        """Initialize the handler with its collaborators and drift settings."""
        self.storage = storage
        self.backend = backend
        self.reminder_manager = reminder_manager
        self.clock: Clock = clock or SystemClock()
        self.drift_threshold_seconds = drift_threshold_seconds
        self.max_drift_compensation_seconds = max_drift_compensation_seconds

    async def async_handle_delivered(
        self,
        habit_id: str,
        scheduled_at: Any,
        now: datetime | None = None,
    ) -> str | None:
        """Schedule the next cycle after a reminder was delivered.

        Returns the new scheduling handle, or None when nothing was scheduled
        (unknown/inactive habit, bad event data, or a scheduling error, all
        of which are logged).
        """
        try:
            scheduled = as_local(validate_instant(scheduled_at))
        except TimeError as err:
            const.LOGGER.warning(
                "WARNING: Ignoring delivery of habit '%s' with invalid time: %s",
                habit_id,
                err,
            )
            return None

        habit = self.storage.get_habit(habit_id)
        if habit is None or not habit.get(const.DATA_HABIT_IS_ACTIVE, False):
            const.LOGGER.debug(
                "DEBUG: Delivery for unknown or inactive habit '%s' ignored", habit_id
            )
            return None

        current = as_local(now or self.clock.now())
        drift_seconds = (current - scheduled).total_seconds()
        const.LOGGER.debug(
            "DEBUG: Reminder for habit '%s' scheduled %s, delivered %s (drift %.3fs)",
            habit_id,
            scheduled.isoformat(),
            current.isoformat(),
            drift_seconds,
        )

        compensation = compute_drift_compensation(
            drift_seconds,
            drift_threshold_seconds=self.drift_threshold_seconds,
            max_compensation_seconds=self.max_drift_compensation_seconds,
        )
        if compensation:
            const.LOGGER.info(
                "INFO: Compensating %.0fs drift for habit '%s'; next reminder "
                "fires %ss early",
                drift_seconds,
                habit_id,
                compensation,
            )

        # A compensated reminder fires up to the cap before the occurrence it
        # stands for; the next cycle starts after that occurrence.
        after = scheduled + timedelta(seconds=self.max_drift_compensation_seconds)
        try:
            return await self.reminder_manager.async_schedule(
                habit_id,
                current,
                after=after,
                compensation_seconds=compensation,
            )
        except HabitRemindersError as err:
            const.LOGGER.warning(
                "WARNING: Could not schedule next reminder for habit '%s': %s",
                habit_id,
                err,
            )
            return None

    async def async_handle_action(
        self,
        action: str,
        habit_id: str,
        delivered_handle: str | None,
        now: datetime | None = None,
    ) -> None:
        """Record the user's response and dismiss the delivered notification.

        complete / skip upsert today's progress record; press only logs.
        Failures are logged, never raised.
        """
        if action not in (
            const.USER_ACTION_COMPLETE,
            const.USER_ACTION_SKIP,
            const.USER_ACTION_PRESS,
        ):
            const.LOGGER.warning(
                "WARNING: Unknown action '%s' for habit '%s'", action, habit_id
            )
            return

        if action == const.USER_ACTION_PRESS:
            const.LOGGER.info("INFO: Notification pressed for habit '%s'", habit_id)
        else:
            today = as_local(now or self.clock.now()).date().isoformat()
            try:
                written = await self.storage.async_write_progress(
                    {
                        const.DATA_PROGRESS_HABIT_ID: habit_id,
                        const.DATA_PROGRESS_DATE: today,
                        const.DATA_PROGRESS_COMPLETED: action
                        == const.USER_ACTION_COMPLETE,
                        const.DATA_PROGRESS_SKIPPED: action == const.USER_ACTION_SKIP,
                    }
                )
            except Exception as err:  # pylint: disable=broad-exception-caught
                const.LOGGER.error(
                    "ERROR: Failed to record '%s' for habit '%s': %s",
                    action,
                    habit_id,
                    err,
                )
            else:
                if not written:
                    const.LOGGER.warning(
                        "WARNING: Progress for habit '%s' on %s was not saved",
                        habit_id,
                        today,
                    )

        if not delivered_handle:
            return
        try:
            await self.backend.async_dismiss_delivered(delivered_handle)
        except Exception as err:  # pylint: disable=broad-exception-caught
            const.LOGGER.warning(
                "WARNING: Failed to dismiss notification '%s': %s",
                delivered_handle,
                err,
            )


# =============================================================================
# Event bus glue
# =============================================================================


def _get_runtime_data(hass: HomeAssistant) -> HabitRemindersRuntimeData | None:
    entries = [
        entry
        for entry in hass.config_entries.async_entries(const.DOMAIN)
        if entry.state == ConfigEntryState.LOADED
    ]
    if not entries:
        const.LOGGER.error("No loaded Habit Reminders config entries found")
        return None
    return entries[0].runtime_data


async def async_handle_notification_action(hass: HomeAssistant, event: Event) -> None:
    """Handle notification actions from HA companion notifications.

    Events carrying action strings from other integrations are ignored.
    """
    action_field = event.data.get(const.NOTIFY_ACTION)
    if not action_field:
        const.LOGGER.debug("DEBUG: No action found in event data: %s", event.data)
        return
    if str(action_field).split("|", 1)[0] not in const.ACTION_TO_USER_ACTION:
        return

    parsed = parse_notification_action(action_field)
    if parsed is None:
        const.LOGGER.error("Failed to parse notification action: %s", action_field)
        return

    runtime_data = _get_runtime_data(hass)
    if runtime_data is None:
        return

    delivered_tag = event.data.get(const.NOTIFY_TAG) or build_notification_tag(
        parsed.habit_id
    )
    await runtime_data.delivery_handler.async_handle_action(
        parsed.user_action, parsed.habit_id, delivered_tag
    )


async def async_handle_notification_delivered(
    hass: HomeAssistant, event: Event
) -> None:
    """Schedule the next cycle when the backend reports a delivered reminder."""
    habit_id = event.data.get(const.EVENT_DATA_HABIT_ID)
    scheduled_at = event.data.get(const.EVENT_DATA_SCHEDULED_AT)
    if not habit_id or not scheduled_at:
        const.LOGGER.debug("DEBUG: Incomplete delivery event: %s", event.data)
        return

    runtime_data = _get_runtime_data(hass)
    if runtime_data is None:
        return

    await runtime_data.delivery_handler.async_handle_delivered(habit_id, scheduled_at)

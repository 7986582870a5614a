# File: managers/reminder_manager.py
"""Reminder Manager - schedules, reschedules and cancels habit reminders.

This manager is the only writer of a habit's scheduling handles:
- Always cancels the previously registered reminder(s) before registering
- Serializes all scheduling for one habit behind a per-habit lock
- Re-reads the habit from storage inside the lock, never trusting a copy
- Persists the backend handle only after a successful submission

Backends that cannot repeat natively get a chained one-shot registration for
the following occurrence, so custom weekday patterns keep firing even if the
delivery event for the first one is never processed.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, time, timedelta
from typing import TYPE_CHECKING, Any

from .. import const
from ..engines.habit_engine import get_schedulable_config, needs_notification_update
from ..engines.schedule_engine import (
    following_fire_time,
    minutes_until,
    next_fire_time,
    next_reminder_text,
    to_rrule_string,
)
from ..exceptions import (
    ConfigurationError,
    HabitRemindersError,
    SchedulingBackendError,
    SchedulingTooSoonError,
    ValidationError,
)
from ..notification_backend import ReminderTrigger
from ..notification_helper import build_scheduled_occurrence
from ..utils.dt_utils import SystemClock, as_local

if TYPE_CHECKING:
    from ..notification_backend import NotificationBackend
    from ..storage_manager import HabitRemindersStorageManager
    from ..type_defs import HabitData
    from ..utils.dt_utils import Clock


class ReminderManager:
    """Owns the reminder lifecycle for every habit of one config entry."""

    def __init__(
        self,
        storage: HabitRemindersStorageManager,
        backend: NotificationBackend,
        clock: Clock | None = None,
        *,
        min_lead_seconds: float = const.DEFAULT_MIN_LEAD_SECONDS,
    ) -> None:
        """Initialize the reminder manager.

        Args:
            storage: Source of truth for habits and their handles
            backend: Notification backend that actually delivers reminders
            clock: Time source (defaults to the system clock)
            min_lead_seconds: Smallest acceptable gap between now and fire time
        """
        self.storage = storage
        self.backend = backend
        self.clock: Clock = clock or SystemClock()
        self.min_lead_seconds = min_lead_seconds
        self._locks: dict[str, asyncio.Lock] = {}

    def _lock(self, habit_id: str) -> asyncio.Lock:
        lock = self._locks.get(habit_id)
        if lock is None:
            lock = self._locks[habit_id] = asyncio.Lock()
        return lock

    # =========================================================================
    # Public API
    # =========================================================================

    async def async_schedule(
        self,
        habit_id: str,
        current_time: datetime | None = None,
        *,
        after: datetime | None = None,
        compensation_seconds: float = 0,
    ) -> str:
        """(Re)register the reminder for a habit and return the new handle.

        Args:
            habit_id: Habit to schedule
            current_time: Reference "now" (defaults to the injected clock)
            after: Only consider occurrences strictly after this instant
                (never earlier than now)
            compensation_seconds: Fire this many seconds before the next
                occurrence, used for drift compensation. Applies to this
                cycle only.

        Raises:
            ConfigurationError: Unknown or unschedulable habit, or a habit
                deleted while its reminder was being registered.
            ValidationError: Corrupt custom weekday set. No side effects.
            SchedulingTooSoonError: Fire time under the minimum lead time.
                The previous registration is left untouched.
            SchedulingBackendError: Backend rejected the submission. The habit
                is left without an active reminder.
        """
        async with self._lock(habit_id):
            habit = self.storage.get_habit(habit_id)
            if habit is None:
                raise ConfigurationError(
                    const.ERROR_HABIT_NOT_FOUND_FMT.format(habit_id)
                )

            nominal, _message = get_schedulable_config(habit)
            occurrence = habit[const.DATA_HABIT_OCCURRENCE]

            now = as_local(current_time or self.clock.now())
            reference = now if after is None else max(now, as_local(after))
            # Weekday selection uses the uncompensated occurrence
            occurrence_at = next_fire_time(nominal, reference, occurrence)
            fire_at = occurrence_at - timedelta(seconds=compensation_seconds)
            lead_seconds = (fire_at - now).total_seconds()
            if lead_seconds < self.min_lead_seconds:
                raise SchedulingTooSoonError(habit_id, lead_seconds)

            await self._async_cancel_handles(habit)

            occurrence_data = build_scheduled_occurrence(habit, fire_at)
            trigger = self._build_trigger(fire_at, occurrence_at, occurrence)
            try:
                handle = await self.backend.async_submit(
                    occurrence_data.content, trigger
                )
            except SchedulingBackendError as err:
                await self._async_clear_after_failure(habit_id, err)
                raise
            except Exception as err:  # pylint: disable=broad-exception-caught
                await self._async_clear_after_failure(habit_id, err)
                raise SchedulingBackendError(str(err)) from err

            chained_handle = None
            if not trigger.repeats:
                chained_handle = await self._async_chain_next(
                    habit, occurrence_at, nominal, now
                )

            if self.storage.get_habit(habit_id) is None:
                # Deleted while the backend was registering
                await self._async_cancel_handles(
                    {
                        const.DATA_HABIT_ID: habit_id,
                        const.DATA_HABIT_NOTIFICATION: {
                            const.DATA_NOTIFICATION_IDENTIFIER: handle,
                            const.DATA_NOTIFICATION_CHAINED_IDENTIFIER: (
                                chained_handle
                            ),
                        },
                    }
                )
                raise ConfigurationError(
                    const.ERROR_HABIT_NOT_FOUND_FMT.format(habit_id)
                )

            await self.storage.async_persist_scheduling_handle(
                habit_id, handle, chained_handle
            )
            const.LOGGER.info(
                "INFO: Scheduled reminder for habit '%s' at %s (handle %s%s)",
                habit_id,
                fire_at.isoformat(),
                handle,
                f", chained {chained_handle}" if chained_handle else "",
            )
            return handle

    async def async_cancel(self, habit_id: str) -> None:
        """Cancel every registered reminder for a habit and clear its handles."""
        async with self._lock(habit_id):
            habit = self.storage.get_habit(habit_id)
            if habit is None:
                const.LOGGER.debug(
                    "DEBUG: Cancel requested for unknown habit '%s'", habit_id
                )
                return
            await self._async_cancel_handles(habit)
            await self.storage.async_persist_scheduling_handle(habit_id, None)

    async def async_delete(self, habit_id: str) -> HabitData | None:
        """Delete a habit from storage and cancel its reminders.

        Runs under the habit's lock, so a schedule in flight either finishes
        before the delete (and its handles are cancelled here) or starts after
        it and finds no habit. Returns the removed habit, or None if unknown.
        """
        async with self._lock(habit_id):
            removed = await self.storage.async_delete_habit(habit_id)
            if removed is not None:
                await self._async_cancel_handles(removed)
        self._locks.pop(habit_id, None)
        return removed

    async def async_resync(
        self, current_time: datetime | None = None
    ) -> dict[str, str | None]:
        """Re-register reminders for all habits, best effort.

        Active habits are rescheduled; inactive habits lose any leftover
        registration. Per-habit failures are logged and reported in the
        result instead of aborting the pass.

        Returns:
            {habit_id: handle} for scheduled habits, None for habits that were
            cleared, or an "error: ..." string for habits that failed.
        """
        results: dict[str, str | None] = {}
        for habit_id, habit in self.storage.get_habits().items():
            if not habit.get(const.DATA_HABIT_IS_ACTIVE, False):
                await self.async_cancel(habit_id)
                results[habit_id] = None
                continue
            try:
                results[habit_id] = await self.async_schedule(habit_id, current_time)
            except HabitRemindersError as err:
                const.LOGGER.warning(
                    "WARNING: Could not resync reminder for habit '%s': %s",
                    habit_id,
                    err,
                )
                results[habit_id] = f"error: {err}"
        return results

    async def async_on_habit_changed(
        self, old_habit: HabitData, new_habit: HabitData
    ) -> str | None:
        """Apply an edit: reschedule, cancel, or do nothing.

        Returns the new handle when the reminder was rescheduled.
        """
        habit_id = new_habit[const.DATA_HABIT_ID]
        if not needs_notification_update(old_habit, new_habit):
            const.LOGGER.debug(
                "DEBUG: Edit of habit '%s' does not affect its reminder", habit_id
            )
            return None
        if not new_habit.get(const.DATA_HABIT_IS_ACTIVE, False):
            await self.async_cancel(habit_id)
            return None
        return await self.async_schedule(habit_id)

    def describe_next_reminder(
        self, habit_id: str, current_time: datetime | None = None
    ) -> str:
        """Return "Next reminder in N minutes" for a habit's nominal time.

        Raises:
            ConfigurationError: Unknown or unschedulable habit.
        """
        habit = self.storage.get_habit(habit_id)
        if habit is None:
            raise ConfigurationError(
                const.ERROR_HABIT_NOT_FOUND_FMT.format(habit_id)
            )
        nominal, _message = get_schedulable_config(habit)
        now = as_local(current_time or self.clock.now())
        nominal = as_local(nominal)
        today_at = now.replace(
            hour=nominal.hour,
            minute=nominal.minute,
            second=nominal.second,
            microsecond=0,
        )
        return next_reminder_text(minutes_until(today_at, now))

    # =========================================================================
    # Internals
    # =========================================================================

    def _build_trigger(
        self,
        fire_at: datetime,
        occurrence_at: datetime,
        occurrence: dict[str, Any],
    ) -> ReminderTrigger:
        if not self.backend.supports_native_repeat:
            return ReminderTrigger.once(fire_at)
        kind = (
            const.TRIGGER_DAILY
            if occurrence.get(const.DATA_OCCURRENCE_TYPE) == const.OCCURRENCE_DAILY
            else const.TRIGGER_WEEKLY
        )
        # Later instances repeat at the nominal time, not the compensated one
        return ReminderTrigger.repeating(
            kind, fire_at, to_rrule_string(occurrence_at, occurrence)
        )

    async def _async_clear_after_failure(self, habit_id: str, err: Exception) -> None:
        const.LOGGER.error(
            "ERROR: Failed to register reminder for habit '%s': %s", habit_id, err
        )
        await self.storage.async_persist_scheduling_handle(habit_id, None)

    async def _async_chain_next(
        self,
        habit: HabitData,
        fire_at: datetime,
        nominal: datetime | time,
        now: datetime,
    ) -> str | None:
        """Pre-register the occurrence after fire_at. Returns its handle."""
        habit_id = habit[const.DATA_HABIT_ID]
        try:
            next_at = following_fire_time(
                fire_at, nominal, habit[const.DATA_HABIT_OCCURRENCE]
            )
        except ValidationError:
            return None
        if (next_at - now).total_seconds() < self.min_lead_seconds:
            return None

        occurrence_data = build_scheduled_occurrence(habit, next_at)
        try:
            return await self.backend.async_submit(
                occurrence_data.content, ReminderTrigger.once(next_at)
            )
        except Exception as err:  # pylint: disable=broad-exception-caught
            const.LOGGER.warning(
                "WARNING: Failed to chain next reminder for habit '%s' at %s: %s",
                habit_id,
                next_at.isoformat(),
                err,
            )
            return None

    async def _async_cancel_handles(self, habit: HabitData) -> None:
        """Cancel the primary and chained registrations. Never raises."""
        notification = habit.get(const.DATA_HABIT_NOTIFICATION) or {}
        for key in (
            const.DATA_NOTIFICATION_IDENTIFIER,
            const.DATA_NOTIFICATION_CHAINED_IDENTIFIER,
        ):
            handle = notification.get(key)
            if not handle:
                continue
            try:
                await self.backend.async_cancel(handle)
            except Exception as err:  # pylint: disable=broad-exception-caught
                const.LOGGER.warning(
                    "WARNING: Failed to cancel reminder %s for habit '%s': %s",
                    handle,
                    habit.get(const.DATA_HABIT_ID),
                    err,
                )

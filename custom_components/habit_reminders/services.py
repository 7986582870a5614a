# File: services.py
"""Defines custom services for the Habit Reminders integration.

These services allow habits and their reminders to be managed from scripts,
automations and the developer tools. Scheduling errors raised by the core are
translated into HomeAssistantError so the caller sees a readable message.
"""

from __future__ import annotations

import copy
from datetime import date, datetime, time
from typing import TYPE_CHECKING, Any, NoReturn

import voluptuous as vol
from homeassistant.config_entries import ConfigEntryState
from homeassistant.core import HomeAssistant, ServiceCall, SupportsResponse
from homeassistant.exceptions import HomeAssistantError, ServiceValidationError
from homeassistant.helpers import config_validation as cv

from . import const
from .engines.habit_engine import build_habit, validate_habit
from .exceptions import (
    HabitRemindersError,
    SchedulingTooSoonError,
    TimeError,
    ValidationError,
)
from .utils import dt_utils

if TYPE_CHECKING:
    from . import HabitRemindersRuntimeData

# --- Service Schemas ---
WEEKDAYS_SCHEMA = vol.All(
    cv.ensure_list, [vol.All(cv.string, vol.Upper, vol.In(const.WEEKDAYS))]
)

CREATE_HABIT_SCHEMA = vol.Schema(
    {
        vol.Required(const.FIELD_NAME): cv.string,
        vol.Required(const.FIELD_MESSAGE): cv.string,
        vol.Required(const.FIELD_TIME): vol.Any(cv.time, cv.string),
        vol.Optional(const.FIELD_HABIT_TYPE, default=const.HABIT_TYPE_BUILD): vol.In(
            const.HABIT_TYPES
        ),
        vol.Optional(const.FIELD_DAYS): WEEKDAYS_SCHEMA,
    }
)

UPDATE_HABIT_SCHEMA = vol.Schema(
    {
        vol.Required(const.FIELD_HABIT_ID): cv.string,
        vol.Optional(const.FIELD_NAME): cv.string,
        vol.Optional(const.FIELD_MESSAGE): cv.string,
        vol.Optional(const.FIELD_TIME): vol.Any(cv.time, cv.string),
        vol.Optional(const.FIELD_HABIT_TYPE): vol.In(const.HABIT_TYPES),
        vol.Optional(const.FIELD_DAYS): WEEKDAYS_SCHEMA,
        vol.Optional(const.FIELD_IS_ACTIVE): cv.boolean,
    }
)

HABIT_ID_SCHEMA = vol.Schema({vol.Required(const.FIELD_HABIT_ID): cv.string})

RESYNC_REMINDERS_SCHEMA = vol.Schema({})

RECORD_PROGRESS_SCHEMA = vol.Schema(
    {
        vol.Required(const.FIELD_HABIT_ID): cv.string,
        vol.Optional(const.FIELD_DATE): cv.date,
        vol.Optional(const.FIELD_COMPLETED, default=False): cv.boolean,
        vol.Optional(const.FIELD_SKIPPED, default=False): cv.boolean,
    }
)

SERVICES = [
    const.SERVICE_CREATE_HABIT,
    const.SERVICE_UPDATE_HABIT,
    const.SERVICE_DELETE_HABIT,
    const.SERVICE_SCHEDULE_REMINDER,
    const.SERVICE_CANCEL_REMINDER,
    const.SERVICE_RESYNC_REMINDERS,
    const.SERVICE_RECORD_PROGRESS,
]


# --- Helpers ---


def get_runtime_data(hass: HomeAssistant) -> HabitRemindersRuntimeData:
    """Return the runtime data of the loaded entry.

    Raises:
        HomeAssistantError: If no entry is loaded.
    """
    for entry in hass.config_entries.async_entries(const.DOMAIN):
        if entry.state == ConfigEntryState.LOADED:
            return entry.runtime_data
    raise HomeAssistantError(const.ERROR_NO_ENTRY_FOUND)


def _raise_service_error(err: HabitRemindersError) -> NoReturn:
    """Re-raise a core error as the matching Home Assistant error."""
    if isinstance(err, (ValidationError, TimeError)):
        raise ServiceValidationError(str(err)) from err
    raise HomeAssistantError(str(err)) from err


def _normalize_time(value: time | str) -> str:
    """Turn "09:00" or an ISO datetime into the stored ISO datetime string."""
    if isinstance(value, time):
        return datetime.combine(
            dt_utils.dt_today_local(), value, tzinfo=dt_utils.get_default_timezone()
        ).isoformat()
    try:
        return dt_utils.validate_instant(value).isoformat()
    except TimeError as err:
        raise ServiceValidationError(f"Invalid time: {value}") from err


def _apply_update(habit: dict[str, Any], data: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of habit with the service call's fields applied."""
    updated = copy.deepcopy(habit)
    notification = updated[const.DATA_HABIT_NOTIFICATION]

    if const.FIELD_NAME in data:
        updated[const.DATA_HABIT_NAME] = data[const.FIELD_NAME].strip()
    if const.FIELD_HABIT_TYPE in data:
        updated[const.DATA_HABIT_TYPE] = data[const.FIELD_HABIT_TYPE]
    if const.FIELD_IS_ACTIVE in data:
        updated[const.DATA_HABIT_IS_ACTIVE] = data[const.FIELD_IS_ACTIVE]
    if const.FIELD_MESSAGE in data:
        notification[const.DATA_NOTIFICATION_MESSAGE] = data[
            const.FIELD_MESSAGE
        ].strip()
    if const.FIELD_TIME in data:
        notification[const.DATA_NOTIFICATION_TIME] = _normalize_time(
            data[const.FIELD_TIME]
        )
    if const.FIELD_DAYS in data:
        days = data[const.FIELD_DAYS]
        if days:
            updated[const.DATA_HABIT_OCCURRENCE] = {
                const.DATA_OCCURRENCE_TYPE: const.OCCURRENCE_CUSTOM,
                const.DATA_OCCURRENCE_DAYS: days,
            }
        else:
            updated[const.DATA_HABIT_OCCURRENCE] = {
                const.DATA_OCCURRENCE_TYPE: const.OCCURRENCE_DAILY
            }
    return updated


def async_setup_services(hass: HomeAssistant) -> None:
    """Register Habit Reminders services."""
    if hass.services.has_service(const.DOMAIN, const.SERVICE_CREATE_HABIT):
        return

    async def handle_create_habit(call: ServiceCall) -> dict[str, Any]:
        """Create a habit and schedule its first reminder."""
        runtime_data = get_runtime_data(hass)
        try:
            habit = build_habit(
                name=call.data[const.FIELD_NAME],
                message=call.data[const.FIELD_MESSAGE],
                time=_normalize_time(call.data[const.FIELD_TIME]),
                now=dt_utils.dt_now_local(),
                habit_type=call.data[const.FIELD_HABIT_TYPE],
                days=call.data.get(const.FIELD_DAYS),
            )
        except ValidationError as err:
            _raise_service_error(err)

        habit_id = habit[const.DATA_HABIT_ID]
        await runtime_data.storage_manager.async_add_habit(habit)
        const.LOGGER.info(
            "INFO: Created habit '%s' (%s)", habit[const.DATA_HABIT_NAME], habit_id
        )

        try:
            await runtime_data.reminder_manager.async_schedule(habit_id)
        except SchedulingTooSoonError as err:
            # Created fine; the delivery/resync path picks it up later.
            const.LOGGER.warning("WARNING: Create Habit: %s", err)
        except HabitRemindersError as err:
            _raise_service_error(err)

        return {
            const.FIELD_HABIT_ID: habit_id,
            "next_reminder": runtime_data.reminder_manager.describe_next_reminder(
                habit_id
            ),
        }

    async def handle_update_habit(call: ServiceCall) -> None:
        """Edit a habit, rescheduling its reminder if needed."""
        runtime_data = get_runtime_data(hass)
        habit_id = call.data[const.FIELD_HABIT_ID]
        old_habit = runtime_data.storage_manager.get_habit(habit_id)
        if old_habit is None:
            raise ServiceValidationError(
                const.ERROR_HABIT_NOT_FOUND_FMT.format(habit_id)
            )

        new_habit = _apply_update(old_habit, dict(call.data))
        errors = validate_habit(new_habit)
        if errors:
            raise ServiceValidationError(", ".join(errors))

        await runtime_data.storage_manager.async_update_habit(new_habit)
        try:
            await runtime_data.reminder_manager.async_on_habit_changed(
                old_habit, new_habit
            )
        except HabitRemindersError as err:
            _raise_service_error(err)
        const.LOGGER.info("INFO: Updated habit '%s'", habit_id)

    async def handle_delete_habit(call: ServiceCall) -> None:
        """Delete a habit and cancel its reminders."""
        runtime_data = get_runtime_data(hass)
        habit_id = call.data[const.FIELD_HABIT_ID]
        removed = await runtime_data.reminder_manager.async_delete(habit_id)
        if removed is None:
            raise ServiceValidationError(
                const.ERROR_HABIT_NOT_FOUND_FMT.format(habit_id)
            )
        const.LOGGER.info("INFO: Deleted habit '%s'", habit_id)

    async def handle_schedule_reminder(call: ServiceCall) -> dict[str, Any]:
        """(Re)schedule the reminder of one habit."""
        runtime_data = get_runtime_data(hass)
        habit_id = call.data[const.FIELD_HABIT_ID]
        try:
            handle = await runtime_data.reminder_manager.async_schedule(habit_id)
        except HabitRemindersError as err:
            _raise_service_error(err)
        return {const.FIELD_HABIT_ID: habit_id, "handle": handle}

    async def handle_cancel_reminder(call: ServiceCall) -> None:
        """Cancel the reminder of one habit without touching the habit."""
        runtime_data = get_runtime_data(hass)
        await runtime_data.reminder_manager.async_cancel(
            call.data[const.FIELD_HABIT_ID]
        )

    async def handle_resync_reminders(call: ServiceCall) -> dict[str, Any]:
        """Re-register reminders for every habit."""
        runtime_data = get_runtime_data(hass)
        results = await runtime_data.reminder_manager.async_resync()
        return {"results": results}

    async def handle_record_progress(call: ServiceCall) -> None:
        """Record completion or skip for a habit on a date (today by default)."""
        runtime_data = get_runtime_data(hass)
        habit_id = call.data[const.FIELD_HABIT_ID]
        if runtime_data.storage_manager.get_habit(habit_id) is None:
            raise ServiceValidationError(
                const.ERROR_HABIT_NOT_FOUND_FMT.format(habit_id)
            )

        completed = call.data[const.FIELD_COMPLETED]
        skipped = call.data[const.FIELD_SKIPPED]
        if completed and skipped:
            raise ServiceValidationError("A habit cannot be both completed and skipped")

        record_date: date = call.data.get(const.FIELD_DATE) or dt_utils.dt_today_local()
        written = await runtime_data.storage_manager.async_write_progress(
            {
                const.DATA_PROGRESS_HABIT_ID: habit_id,
                const.DATA_PROGRESS_DATE: record_date.isoformat(),
                const.DATA_PROGRESS_COMPLETED: completed,
                const.DATA_PROGRESS_SKIPPED: skipped,
            }
        )
        if not written:
            raise HomeAssistantError(f"Failed to save progress for habit '{habit_id}'")

    # --- Register Services ---
    hass.services.async_register(
        const.DOMAIN,
        const.SERVICE_CREATE_HABIT,
        handle_create_habit,
        schema=CREATE_HABIT_SCHEMA,
        supports_response=SupportsResponse.OPTIONAL,
    )
    hass.services.async_register(
        const.DOMAIN,
        const.SERVICE_UPDATE_HABIT,
        handle_update_habit,
        schema=UPDATE_HABIT_SCHEMA,
    )
    hass.services.async_register(
        const.DOMAIN,
        const.SERVICE_DELETE_HABIT,
        handle_delete_habit,
        schema=HABIT_ID_SCHEMA,
    )
    hass.services.async_register(
        const.DOMAIN,
        const.SERVICE_SCHEDULE_REMINDER,
        handle_schedule_reminder,
        schema=HABIT_ID_SCHEMA,
        supports_response=SupportsResponse.OPTIONAL,
    )
    hass.services.async_register(
        const.DOMAIN,
        const.SERVICE_CANCEL_REMINDER,
        handle_cancel_reminder,
        schema=HABIT_ID_SCHEMA,
    )
    hass.services.async_register(
        const.DOMAIN,
        const.SERVICE_RESYNC_REMINDERS,
        handle_resync_reminders,
        schema=RESYNC_REMINDERS_SCHEMA,
        supports_response=SupportsResponse.OPTIONAL,
    )
    hass.services.async_register(
        const.DOMAIN,
        const.SERVICE_RECORD_PROGRESS,
        handle_record_progress,
        schema=RECORD_PROGRESS_SCHEMA,
    )

    const.LOGGER.info(
        "INFO: Habit Reminders services have been registered successfully"
    )


async def async_unload_services(hass: HomeAssistant) -> None:
    """Unregister Habit Reminders services when unloading the integration."""
    for service in SERVICES:
        if hass.services.has_service(const.DOMAIN, service):
            hass.services.async_remove(const.DOMAIN, service)

    const.LOGGER.info("INFO: Habit Reminders services have been unregistered")

# File: config_flow.py
"""Config flow for the Habit Reminders integration.

A single instance is allowed. Setup only asks for the notify service used to
deliver reminders; the options flow adjusts the scheduling knobs (lead time,
drift compensation, native repeat).
"""

from __future__ import annotations

from typing import Any

import voluptuous as vol
from homeassistant import config_entries
from homeassistant.core import callback
from homeassistant.helpers import config_validation as cv

from . import const

# pylint: disable=abstract-method


def _validate_notify_service(value: str) -> str | None:
    """Return an error key if value is not a "notify.<service>" name."""
    try:
        cv.service(value)
    except vol.Invalid:
        return const.ERROR_INVALID_NOTIFY_SERVICE
    if not value.startswith(f"{const.NOTIFY_DOMAIN}."):
        return const.ERROR_INVALID_NOTIFY_SERVICE
    return None


def build_options_schema(current: dict[str, Any]) -> vol.Schema:
    """Build the options schema, pre-filled with the current values."""
    return vol.Schema(
        {
            vol.Required(
                const.CONF_NOTIFY_SERVICE,
                default=current.get(
                    const.CONF_NOTIFY_SERVICE, const.DEFAULT_NOTIFY_SERVICE
                ),
            ): cv.string,
            vol.Required(
                const.CONF_MIN_LEAD_SECONDS,
                default=current.get(
                    const.CONF_MIN_LEAD_SECONDS, const.DEFAULT_MIN_LEAD_SECONDS
                ),
            ): vol.All(vol.Coerce(int), vol.Range(min=1, max=3600)),
            vol.Required(
                const.CONF_DRIFT_THRESHOLD_SECONDS,
                default=current.get(
                    const.CONF_DRIFT_THRESHOLD_SECONDS,
                    const.DEFAULT_DRIFT_THRESHOLD_SECONDS,
                ),
            ): vol.All(vol.Coerce(int), vol.Range(min=0, max=3600)),
            vol.Required(
                const.CONF_MAX_DRIFT_COMPENSATION_SECONDS,
                default=current.get(
                    const.CONF_MAX_DRIFT_COMPENSATION_SECONDS,
                    const.DEFAULT_MAX_DRIFT_COMPENSATION_SECONDS,
                ),
            ): vol.All(vol.Coerce(int), vol.Range(min=0, max=3600)),
            vol.Required(
                const.CONF_NATIVE_REPEAT,
                default=current.get(
                    const.CONF_NATIVE_REPEAT, const.DEFAULT_NATIVE_REPEAT
                ),
            ): cv.boolean,
        }
    )


class HabitRemindersConfigFlow(config_entries.ConfigFlow, domain=const.DOMAIN):
    """Config Flow for Habit Reminders."""

    VERSION = 1

    async def async_step_user(self, user_input: dict[str, Any] | None = None):
        """Ask for the notify service that will deliver reminders."""
        if any(self._async_current_entries()):
            return self.async_abort(reason=const.ERROR_SINGLE_INSTANCE)

        errors: dict[str, str] = {}
        if user_input is not None:
            notify_service = user_input[const.CONF_NOTIFY_SERVICE].strip()
            error = _validate_notify_service(notify_service)
            if error:
                errors[const.CONF_NOTIFY_SERVICE] = error
            else:
                return self.async_create_entry(
                    title=const.HABIT_REMINDERS_TITLE,
                    data={const.CONF_NOTIFY_SERVICE: notify_service},
                )

        return self.async_show_form(
            step_id="user",
            data_schema=vol.Schema(
                {
                    vol.Required(
                        const.CONF_NOTIFY_SERVICE,
                        default=const.DEFAULT_NOTIFY_SERVICE,
                    ): cv.string,
                }
            ),
            errors=errors,
        )

    @staticmethod
    @callback
    def async_get_options_flow(config_entry):
        """Return the Options Flow."""
        return HabitRemindersOptionsFlowHandler(config_entry)


class HabitRemindersOptionsFlowHandler(config_entries.OptionsFlow):
    """Options Flow for the scheduling settings."""

    def __init__(self, _config_entry: config_entries.ConfigEntry):
        """Initialize the options flow."""

    async def async_step_init(self, user_input: dict[str, Any] | None = None):
        """Edit notify service, lead time, drift settings and repeat mode."""
        current = {**self.config_entry.data, **self.config_entry.options}
        errors: dict[str, str] = {}

        if user_input is not None:
            error = _validate_notify_service(user_input[const.CONF_NOTIFY_SERVICE])
            if error:
                errors[const.CONF_NOTIFY_SERVICE] = error
            else:
                const.LOGGER.debug("DEBUG: Saving options: %s", user_input)
                return self.async_create_entry(title="", data=user_input)
            current.update(user_input)

        return self.async_show_form(
            step_id="init",
            data_schema=build_options_schema(current),
            errors=errors,
        )

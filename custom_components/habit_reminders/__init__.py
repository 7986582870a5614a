# File: __init__.py
"""Initialization file for the Habit Reminders integration.

Composition root: builds one storage manager, one notification backend, one
ReminderManager and one DeliveryFeedbackHandler per config entry and hands
them around through entry.runtime_data. Nothing is kept in module globals.

Key Features:
- Config entry setup, unload and removal.
- Event listeners for reminder deliveries and companion-app actions.
- Re-registration of every active reminder once Home Assistant is running.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from homeassistant.config_entries import ConfigEntry
from homeassistant.const import EVENT_HOMEASSISTANT_STARTED
from homeassistant.core import CoreState, Event, HomeAssistant

from . import const
from .managers import ReminderManager
from .notification_action_handler import (
    DeliveryFeedbackHandler,
    async_handle_notification_action,
    async_handle_notification_delivered,
)
from .notification_backend import HomeAssistantNotificationBackend
from .services import async_setup_services, async_unload_services
from .storage_manager import HabitRemindersStorageManager


@dataclass
class HabitRemindersRuntimeData:
    """Objects owned by one loaded config entry."""

    storage_manager: HabitRemindersStorageManager
    notification_backend: HomeAssistantNotificationBackend
    reminder_manager: ReminderManager
    delivery_handler: DeliveryFeedbackHandler


def _option(entry: ConfigEntry, key: str, default: Any) -> Any:
    """Read a setting from options first, then from the initial config data."""
    return entry.options.get(key, entry.data.get(key, default))


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Set up the integration from a config entry."""
    const.LOGGER.info(
        "INFO: Starting setup for Habit Reminders entry: %s", entry.entry_id
    )

    # Must be done before anything computes fire times
    const.set_default_timezone(hass)

    storage_manager = HabitRemindersStorageManager(hass, const.STORAGE_KEY)
    await storage_manager.async_initialize()

    backend = HomeAssistantNotificationBackend(
        hass,
        _option(entry, const.CONF_NOTIFY_SERVICE, const.DEFAULT_NOTIFY_SERVICE),
        native_repeat=_option(
            entry, const.CONF_NATIVE_REPEAT, const.DEFAULT_NATIVE_REPEAT
        ),
    )
    reminder_manager = ReminderManager(
        storage_manager,
        backend,
        min_lead_seconds=_option(
            entry, const.CONF_MIN_LEAD_SECONDS, const.DEFAULT_MIN_LEAD_SECONDS
        ),
    )
    delivery_handler = DeliveryFeedbackHandler(
        storage_manager,
        backend,
        reminder_manager,
        drift_threshold_seconds=_option(
            entry,
            const.CONF_DRIFT_THRESHOLD_SECONDS,
            const.DEFAULT_DRIFT_THRESHOLD_SECONDS,
        ),
        max_drift_compensation_seconds=_option(
            entry,
            const.CONF_MAX_DRIFT_COMPENSATION_SECONDS,
            const.DEFAULT_MAX_DRIFT_COMPENSATION_SECONDS,
        ),
    )

    entry.runtime_data = HabitRemindersRuntimeData(
        storage_manager=storage_manager,
        notification_backend=backend,
        reminder_manager=reminder_manager,
        delivery_handler=delivery_handler,
    )

    async_setup_services(hass)

    # Listen for notification actions from the companion app.
    async def handle_notification_event(event: Event) -> None:
        """Handle notification action events."""
        await async_handle_notification_action(hass, event)

    async def handle_delivered_event(event: Event) -> None:
        """Handle reminder delivery events."""
        await async_handle_notification_delivered(hass, event)

    entry.async_on_unload(
        hass.bus.async_listen(const.NOTIFICATION_EVENT, handle_notification_event)
    )
    entry.async_on_unload(
        hass.bus.async_listen(
            const.EVENT_NOTIFICATION_DELIVERED, handle_delivered_event
        )
    )
    entry.async_on_unload(backend.async_shutdown)
    entry.async_on_unload(entry.add_update_listener(_async_update_listener))

    # Timers do not survive a restart; re-register once notify services exist.
    async def _async_resync(_event: Event | None = None) -> None:
        results = await reminder_manager.async_resync()
        const.LOGGER.info("INFO: Resynced %s habit reminder(s)", len(results))

    if hass.state is CoreState.running:
        await _async_resync()
    else:
        hass.bus.async_listen_once(EVENT_HOMEASSISTANT_STARTED, _async_resync)

    const.LOGGER.info(
        "INFO: Habit Reminders setup complete for entry: %s", entry.entry_id
    )
    return True


async def _async_update_listener(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Reload the entry so changed options reach the backend and managers."""
    await hass.config_entries.async_reload(entry.entry_id)


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Unload a config entry."""
    const.LOGGER.info("INFO: Unloading Habit Reminders entry: %s", entry.entry_id)
    await async_unload_services(hass)
    return True


async def async_remove_entry(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Handle removal of a config entry."""
    const.LOGGER.info("INFO: Removing Habit Reminders entry: %s", entry.entry_id)
    storage_manager = HabitRemindersStorageManager(hass, const.STORAGE_KEY)
    await storage_manager.async_delete_storage()
    const.LOGGER.info("INFO: Habit Reminders entry data cleared: %s", entry.entry_id)

"""Tests for Habit Reminders setup, unload and removal."""

from typing import Any

from homeassistant.config_entries import ConfigEntryState
from homeassistant.const import EVENT_HOMEASSISTANT_STARTED
from homeassistant.core import CoreState, HomeAssistant, ServiceCall
from pytest_homeassistant_custom_component.common import MockConfigEntry

from custom_components.habit_reminders import _option, const
from custom_components.habit_reminders.services import SERVICES
from tests.helpers import make_habit


def stored_data(*habits: dict[str, Any]) -> dict[str, Any]:
    """Build a storage file containing the given habits."""
    return {
        "version": const.STORAGE_VERSION,
        "minor_version": 1,
        "key": const.STORAGE_KEY,
        "data": {
            const.DATA_META: {const.DATA_META_SCHEMA_VERSION: const.SCHEMA_VERSION},
            const.DATA_HABITS: {habit[const.DATA_HABIT_ID]: habit for habit in habits},
            const.DATA_PROGRESS: {},
        },
    }


async def test_setup_and_unload(
    hass: HomeAssistant, init_integration: MockConfigEntry
) -> None:
    """Setup registers services; unload removes them."""
    assert init_integration.state is ConfigEntryState.LOADED
    for service in SERVICES:
        assert hass.services.has_service(const.DOMAIN, service)

    assert await hass.config_entries.async_unload(init_integration.entry_id)
    await hass.async_block_till_done()

    assert init_integration.state is ConfigEntryState.NOT_LOADED
    for service in SERVICES:
        assert not hass.services.has_service(const.DOMAIN, service)


async def test_setup_resyncs_stored_habits(
    hass: HomeAssistant,
    hass_storage: dict[str, Any],
    mock_config_entry: MockConfigEntry,
    notify_calls: list[ServiceCall],
) -> None:
    """Active stored habits get their reminders re-registered on setup."""
    hass_storage[const.STORAGE_KEY] = stored_data(
        make_habit("active"),
        make_habit("inactive", is_active=False, identifier="stale"),
    )
    mock_config_entry.add_to_hass(hass)

    assert await hass.config_entries.async_setup(mock_config_entry.entry_id)
    await hass.async_block_till_done()

    runtime_data = mock_config_entry.runtime_data
    active = runtime_data.storage_manager.get_habit("active")
    inactive = runtime_data.storage_manager.get_habit("inactive")
    assert active[const.DATA_HABIT_NOTIFICATION][const.DATA_NOTIFICATION_IDENTIFIER]
    assert (
        inactive[const.DATA_HABIT_NOTIFICATION][const.DATA_NOTIFICATION_IDENTIFIER]
        is None
    )
    assert len(runtime_data.notification_backend.pending_handles) == 2


async def test_resync_waits_for_startup(
    hass: HomeAssistant,
    hass_storage: dict[str, Any],
    mock_config_entry: MockConfigEntry,
    notify_calls: list[ServiceCall],
) -> None:
    """While Home Assistant is starting, resync runs after the started event."""
    hass_storage[const.STORAGE_KEY] = stored_data(make_habit("active"))
    hass.set_state(CoreState.not_running)
    mock_config_entry.add_to_hass(hass)

    assert await hass.config_entries.async_setup(mock_config_entry.entry_id)
    await hass.async_block_till_done()
    backend = mock_config_entry.runtime_data.notification_backend
    assert backend.pending_handles == []

    hass.set_state(CoreState.running)
    hass.bus.async_fire(EVENT_HOMEASSISTANT_STARTED)
    await hass.async_block_till_done()

    assert len(backend.pending_handles) == 2


async def test_unload_disarms_timers(
    hass: HomeAssistant, init_integration: MockConfigEntry
) -> None:
    """Pending reminder timers are dropped on unload."""
    await hass.services.async_call(
        const.DOMAIN,
        const.SERVICE_CREATE_HABIT,
        {
            const.FIELD_NAME: "Stretch",
            const.FIELD_MESSAGE: "Stand up and stretch",
            const.FIELD_TIME: "2099-01-01T09:00:00+00:00",
        },
        blocking=True,
    )
    backend = init_integration.runtime_data.notification_backend
    assert backend.pending_handles

    assert await hass.config_entries.async_unload(init_integration.entry_id)
    await hass.async_block_till_done()

    assert backend.pending_handles == []


async def test_remove_entry_deletes_storage(
    hass: HomeAssistant,
    hass_storage: dict[str, Any],
    mock_config_entry: MockConfigEntry,
    notify_calls: list[ServiceCall],
) -> None:
    """Removing the entry deletes the storage file."""
    hass_storage[const.STORAGE_KEY] = stored_data(make_habit("active"))
    mock_config_entry.add_to_hass(hass)
    assert await hass.config_entries.async_setup(mock_config_entry.entry_id)
    await hass.async_block_till_done()

    assert await hass.config_entries.async_remove(mock_config_entry.entry_id)
    await hass.async_block_till_done()

    assert const.STORAGE_KEY not in hass_storage


def test_option_prefers_options_then_data_then_default() -> None:
    """Settings resolve from options, then initial data, then the default."""
    entry = MockConfigEntry(
        domain=const.DOMAIN,
        data={const.CONF_MIN_LEAD_SECONDS: 5, const.CONF_NATIVE_REPEAT: False},
        options={const.CONF_MIN_LEAD_SECONDS: 30},
    )

    assert _option(entry, const.CONF_MIN_LEAD_SECONDS, 1) == 30
    assert _option(entry, const.CONF_NATIVE_REPEAT, True) is False
    assert _option(entry, const.CONF_DRIFT_THRESHOLD_SECONDS, 5) == 5

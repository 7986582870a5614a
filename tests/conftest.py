"""Shared fixtures for Habit Reminders tests."""

from collections.abc import Generator
from datetime import UTC, datetime
from typing import Any
from zoneinfo import ZoneInfo

import pytest
from freezegun.api import FrozenDateTimeFactory
from homeassistant.core import HomeAssistant, ServiceCall
from pytest_homeassistant_custom_component.common import MockConfigEntry

from custom_components.habit_reminders.const import (
    CONF_NOTIFY_SERVICE,
    DOMAIN,
    HABIT_REMINDERS_TITLE,
)
from custom_components.habit_reminders.managers import ReminderManager
from custom_components.habit_reminders.notification_action_handler import (
    DeliveryFeedbackHandler,
)
from custom_components.habit_reminders.utils import dt_utils
from tests.helpers import FakeBackend, FakeClock, FakeStorageManager

# pylint: disable=invalid-name
pytest_plugins = "pytest_homeassistant_custom_component"
# pylint: enable=invalid-name
# pylint: disable=redefined-outer-name

TEST_NOTIFY_SERVICE = "notify.mobile_app_test_phone"
FROZEN_NOW = datetime(2024, 1, 1, 8, 0, tzinfo=UTC)


@pytest.fixture(autouse=True)
def auto_enable_custom_integrations(enable_custom_integrations: Any) -> Any:
    """Enable custom integrations in tests."""
    # pylint: disable=unused-argument
    yield


@pytest.fixture(autouse=True)
def reset_default_timezone() -> Generator[None]:
    """Keep every test on UTC unless it sets a timezone itself."""
    dt_utils.set_default_timezone(ZoneInfo("UTC"))
    yield
    dt_utils.set_default_timezone(ZoneInfo("UTC"))


@pytest.fixture
def clock() -> FakeClock:
    """Return a clock frozen at 2024-01-01 08:00 UTC (a Monday)."""
    return FakeClock(FROZEN_NOW)


@pytest.fixture
def backend() -> FakeBackend:
    """Return an in-memory one-shot backend."""
    return FakeBackend()


@pytest.fixture
def storage() -> FakeStorageManager:
    """Return an in-memory storage manager."""
    return FakeStorageManager()


@pytest.fixture
def reminder_manager(
    storage: FakeStorageManager, backend: FakeBackend, clock: FakeClock
) -> ReminderManager:
    """Return a ReminderManager wired to the fakes."""
    return ReminderManager(storage, backend, clock)


@pytest.fixture
def delivery_handler(
    storage: FakeStorageManager,
    backend: FakeBackend,
    reminder_manager: ReminderManager,
    clock: FakeClock,
) -> DeliveryFeedbackHandler:
    """Return a DeliveryFeedbackHandler wired to the fakes."""
    return DeliveryFeedbackHandler(storage, backend, reminder_manager, clock)


@pytest.fixture
def notify_calls(hass: HomeAssistant) -> list[ServiceCall]:
    """Register the test notify service and record its calls."""
    calls: list[ServiceCall] = []

    async def mock_notify_service(call: ServiceCall) -> None:
        """Mock notify service handler."""
        calls.append(call)

    domain, service = TEST_NOTIFY_SERVICE.split(".", 1)
    hass.services.async_register(domain, service, mock_notify_service)
    return calls


@pytest.fixture
def mock_config_entry() -> MockConfigEntry:
    """Return a mock config entry."""
    return MockConfigEntry(
        domain=DOMAIN,
        title=HABIT_REMINDERS_TITLE,
        data={CONF_NOTIFY_SERVICE: TEST_NOTIFY_SERVICE},
        options={},
        entry_id="test_entry_id",
    )


@pytest.fixture
async def init_integration(
    hass: HomeAssistant,
    mock_config_entry: MockConfigEntry,
    notify_calls: list[ServiceCall],
) -> MockConfigEntry:
    """Set up the integration with the test notify service available."""
    # pylint: disable=unused-argument
    mock_config_entry.add_to_hass(hass)
    assert await hass.config_entries.async_setup(mock_config_entry.entry_id)
    await hass.async_block_till_done()
    return mock_config_entry


@pytest.fixture
async def utc_integration(
    hass: HomeAssistant,
    freezer: FrozenDateTimeFactory,
    mock_config_entry: MockConfigEntry,
    notify_calls: list[ServiceCall],
) -> MockConfigEntry:
    """Set up the integration on UTC with time frozen at Monday 08:00."""
    # pylint: disable=unused-argument
    await hass.config.async_set_time_zone("UTC")
    freezer.move_to(FROZEN_NOW)
    mock_config_entry.add_to_hass(hass)
    assert await hass.config_entries.async_setup(mock_config_entry.entry_id)
    await hass.async_block_till_done()
    return mock_config_entry

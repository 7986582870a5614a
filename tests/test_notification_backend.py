"""Tests for the timer-driven Home Assistant notification backend.

Timers are fired with async_fire_time_changed; the notify service is the
recording mock registered by the notify_calls fixture.
"""

# pylint: disable=redefined-outer-name

from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest
from homeassistant.core import HomeAssistant, ServiceCall
from homeassistant.util import dt as dt_util
from pytest_homeassistant_custom_component.common import (
    async_capture_events,
    async_fire_time_changed,
)

from custom_components.habit_reminders import const
from custom_components.habit_reminders.engines.schedule_engine import to_rrule_string
from custom_components.habit_reminders.exceptions import SchedulingBackendError
from custom_components.habit_reminders.notification_backend import (
    HomeAssistantNotificationBackend,
    ReminderTrigger,
    split_notify_service,
)
from custom_components.habit_reminders.notification_helper import build_content
from tests.conftest import TEST_NOTIFY_SERVICE
from tests.helpers import make_habit


@pytest.fixture
def ha_backend(
    hass: HomeAssistant, notify_calls: list[ServiceCall]
) -> HomeAssistantNotificationBackend:
    """Return a one-shot backend using the test notify service."""
    return HomeAssistantNotificationBackend(hass, TEST_NOTIFY_SERVICE)


def test_split_notify_service() -> None:
    """Bare service names default to the notify domain."""
    assert split_notify_service("notify.phone") == ("notify", "phone")
    assert split_notify_service("phone") == ("notify", "phone")


async def test_delivers_and_fires_event(
    hass: HomeAssistant,
    ha_backend: HomeAssistantNotificationBackend,
    notify_calls: list[ServiceCall],
) -> None:
    """At fire time the notify service is called and delivery announced."""
    events = async_capture_events(hass, const.EVENT_NOTIFICATION_DELIVERED)
    fire_at = (dt_util.utcnow() + timedelta(seconds=10)).replace(microsecond=0)
    content = build_content(make_habit(), fire_at)

    handle = await ha_backend.async_submit(content, ReminderTrigger.once(fire_at))
    assert ha_backend.pending_handles == [handle]

    async_fire_time_changed(hass, fire_at + timedelta(seconds=1))
    await hass.async_block_till_done()

    assert len(notify_calls) == 1
    data = notify_calls[0].data
    assert data[const.NOTIFY_TITLE] == "Drink water"
    assert data[const.NOTIFY_MESSAGE] == "Time to drink a glass of water"
    assert data[const.NOTIFY_DATA][const.NOTIFY_TAG] == content["tag"]
    assert len(data[const.NOTIFY_DATA][const.NOTIFY_ACTIONS]) == 2
    assert data[const.NOTIFY_DATA]["habit_id"] == "habit-0001"

    assert len(events) == 1
    assert events[0].data == {
        const.EVENT_DATA_HABIT_ID: "habit-0001",
        const.EVENT_DATA_SCHEDULED_AT: fire_at.isoformat(),
        const.EVENT_DATA_HANDLE: handle,
    }
    assert ha_backend.pending_handles == []


async def test_cancel_disarms_timer(
    hass: HomeAssistant,
    ha_backend: HomeAssistantNotificationBackend,
    notify_calls: list[ServiceCall],
) -> None:
    """Cancelled reminders never fire; cancelling twice is harmless."""
    fire_at = dt_util.utcnow() + timedelta(seconds=10)
    handle = await ha_backend.async_submit(
        build_content(make_habit(), fire_at), ReminderTrigger.once(fire_at)
    )

    await ha_backend.async_cancel(handle)
    await ha_backend.async_cancel(handle)
    async_fire_time_changed(hass, fire_at + timedelta(seconds=1))
    await hass.async_block_till_done()

    assert notify_calls == []


async def test_native_repeat_rearms(
    hass: HomeAssistant,
    notify_calls: list[ServiceCall],
) -> None:
    """Repeating triggers stay armed for the next rule instance."""
    backend = HomeAssistantNotificationBackend(
        hass, TEST_NOTIFY_SERVICE, native_repeat=True
    )
    fire_at = (dt_util.utcnow() + timedelta(seconds=10)).replace(microsecond=0)
    rule = to_rrule_string(
        fire_at, {const.DATA_OCCURRENCE_TYPE: const.OCCURRENCE_DAILY}
    )
    handle = await backend.async_submit(
        build_content(make_habit(), fire_at),
        ReminderTrigger.repeating(const.TRIGGER_DAILY, fire_at, rule),
    )

    async_fire_time_changed(hass, fire_at + timedelta(seconds=1))
    await hass.async_block_till_done()
    assert len(notify_calls) == 1
    assert backend.pending_handles == [handle]

    async_fire_time_changed(hass, fire_at + timedelta(days=1, seconds=1))
    await hass.async_block_till_done()
    assert len(notify_calls) == 2
    assert notify_calls[1].data[const.NOTIFY_DATA]["scheduled_at"] == (
        (fire_at + timedelta(days=1)).isoformat()
    )

    backend.async_shutdown()
    assert backend.pending_handles == []


async def test_submit_rejections(hass: HomeAssistant) -> None:
    """Missing services and unsupported repeats are rejected."""
    fire_at = dt_util.utcnow() + timedelta(seconds=10)
    content = build_content(make_habit(), fire_at)
    backend = HomeAssistantNotificationBackend(hass, "notify.missing_phone")

    with pytest.raises(SchedulingBackendError, match="not available"):
        await backend.async_submit(content, ReminderTrigger.once(fire_at))

    async def _noop(call: ServiceCall) -> None:
        """Accept and drop the call."""

    hass.services.async_register("notify", "missing_phone", _noop)
    with pytest.raises(SchedulingBackendError, match="does not support"):
        await backend.async_submit(
            content,
            ReminderTrigger.repeating(
                const.TRIGGER_DAILY, fire_at, "FREQ=DAILY;BYHOUR=9"
            ),
        )


async def test_delivery_failure_is_logged(
    hass: HomeAssistant,
    ha_backend: HomeAssistantNotificationBackend,
    caplog: pytest.LogCaptureFixture,
) -> None:
    """A failing notify call is logged and no delivery event fires."""
    events = async_capture_events(hass, const.EVENT_NOTIFICATION_DELIVERED)
    fire_at = dt_util.utcnow() + timedelta(seconds=10)
    await ha_backend.async_submit(
        build_content(make_habit(), fire_at), ReminderTrigger.once(fire_at)
    )

    with patch(
        "custom_components.habit_reminders.notification_backend"
        ".async_send_notification",
        AsyncMock(side_effect=RuntimeError("phone unreachable")),
    ):
        async_fire_time_changed(hass, fire_at + timedelta(seconds=1))
        await hass.async_block_till_done()

    assert events == []
    assert "Failed to deliver reminder" in caplog.text


async def test_dismiss_delivered(
    hass: HomeAssistant,
    ha_backend: HomeAssistantNotificationBackend,
    notify_calls: list[ServiceCall],
) -> None:
    """Dismissal sends clear_notification for the tag."""
    await ha_backend.async_dismiss_delivered("habit_reminders-habit-00")
    await hass.async_block_till_done()

    assert notify_calls[0].data == {
        const.NOTIFY_MESSAGE: const.NOTIFY_CLEAR_NOTIFICATION,
        const.NOTIFY_DATA: {const.NOTIFY_TAG: "habit_reminders-habit-00"},
    }

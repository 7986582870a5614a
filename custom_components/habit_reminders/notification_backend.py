# File: notification_backend.py
"""Notification backends for the Habit Reminders integration.

The scheduling core talks to a backend through the NotificationBackend
protocol only:

- async_submit(content, trigger) -> handle
- async_cancel(handle)               (idempotent)
- async_dismiss_delivered(handle)    (clears a delivered notification)

HomeAssistantNotificationBackend is the production backend. It arms a
Home Assistant timer per reminder and, when the timer fires, calls the
configured notify service (HA Companion notification with action buttons)
and fires EVENT_NOTIFICATION_DELIVERED on the event bus so the delivery
feedback handler can re-derive the next occurrence.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any, Protocol
import uuid

from dateutil.rrule import rrulestr
from homeassistant.core import HassJob, HomeAssistant, callback
from homeassistant.helpers.event import async_track_point_in_time

from . import const
from .exceptions import SchedulingBackendError

if TYPE_CHECKING:
    from .type_defs import NotificationContent


# =============================================================================
# Triggers
# =============================================================================


@dataclass(frozen=True)
class ReminderTrigger:
    """When a backend should fire a reminder.

    kind is TRIGGER_ONCE (fire once at fire_at) or, for backends that repeat
    natively, TRIGGER_DAILY / TRIGGER_WEEKLY with an RFC 5545 rule whose
    first instance is fire_at.
    """

    kind: str
    fire_at: datetime
    rrule: str | None = None

    @classmethod
    def once(cls, fire_at: datetime) -> ReminderTrigger:
        """Fire once at an absolute instant."""
        return cls(kind=const.TRIGGER_ONCE, fire_at=fire_at)

    @classmethod
    def repeating(cls, kind: str, fire_at: datetime, rule: str) -> ReminderTrigger:
        """Fire at fire_at and then on every later instance of rule."""
        return cls(kind=kind, fire_at=fire_at, rrule=rule)

    @property
    def repeats(self) -> bool:
        """Return True for daily/weekly triggers."""
        return self.kind != const.TRIGGER_ONCE

    def next_after(self, reference: datetime) -> datetime | None:
        """Return the next instance strictly after reference, if any."""
        if not self.repeats or not self.rrule:
            return None
        rule = rrulestr(self.rrule, dtstart=self.fire_at)
        return rule.after(reference, inc=False)


# =============================================================================
# Protocol
# =============================================================================


class NotificationBackend(Protocol):
    """Collaborator contract consumed by the ReminderManager."""

    supports_native_repeat: bool

    async def async_submit(
        self, content: NotificationContent, trigger: ReminderTrigger
    ) -> str:
        """Register a reminder and return an opaque handle.

        Raises:
            SchedulingBackendError: If the registration is rejected.
        """

    async def async_cancel(self, handle: str) -> None:
        """Cancel a registered reminder. Unknown or fired handles are a no-op."""

    async def async_dismiss_delivered(self, handle: str) -> None:
        """Clear a delivered notification from the user's device."""


# =============================================================================
# Module-level helper for testability
# =============================================================================


def split_notify_service(notify_service: str) -> tuple[str, str]:
    """Split "notify.mobile_app_phone" (or "mobile_app_phone") into parts."""
    if "." in notify_service:
        domain, service = notify_service.split(".", 1)
        return domain, service
    return const.NOTIFY_DOMAIN, notify_service


async def async_send_notification(
    hass: HomeAssistant,
    notify_service: str,
    title: str,
    message: str,
    actions: list[dict[str, Any]] | None = None,
    extra_data: dict[str, Any] | None = None,
) -> None:
    """Send a notification via a Home Assistant notify service call.

    This is a module-level function that can be easily mocked in tests.
    """
    domain, service = split_notify_service(notify_service)

    payload: dict[str, Any] = {
        const.NOTIFY_TITLE: title,
        const.NOTIFY_MESSAGE: message,
    }

    if actions:
        data = payload.setdefault(const.NOTIFY_DATA, {})
        data[const.NOTIFY_ACTIONS] = actions

    if extra_data:
        data = payload.setdefault(const.NOTIFY_DATA, {})
        data.update(extra_data)

    const.LOGGER.debug(
        "async_send_notification: %s.%s - title='%s', message='%s'",
        domain,
        service,
        title,
        message,
    )

    await hass.services.async_call(domain, service, payload, blocking=True)


# =============================================================================
# Home Assistant backend
# =============================================================================


class HomeAssistantNotificationBackend:
    """Timer-driven backend delivering through a Home Assistant notify service.

    Handles are random hex ids; each maps to one armed timer. With
    native_repeat enabled the backend accepts daily/weekly triggers and
    re-arms itself after every delivery using the trigger's RRULE; otherwise
    it only accepts one-shot triggers and the ReminderManager chains the
    following occurrence itself.

    Delivered-notification handles (for dismissal) are notification tags,
    which is how the companion app identifies a displayed notification.
    """

    def __init__(
        self,
        hass: HomeAssistant,
        notify_service: str,
        *,
        native_repeat: bool = const.DEFAULT_NATIVE_REPEAT,
    ) -> None:
        """Initialize the backend.

        Args:
            hass: Home Assistant instance
            notify_service: Notify service, e.g. "notify.mobile_app_phone"
            native_repeat: Accept repeating daily/weekly triggers
        """
        self.hass = hass
        self.notify_service = notify_service
        self.supports_native_repeat = native_repeat
        self._timers: dict[str, Callable[[], None]] = {}

    @property
    def pending_handles(self) -> list[str]:
        """Handles whose timers are still armed."""
        return list(self._timers)

    async def async_submit(
        self, content: NotificationContent, trigger: ReminderTrigger
    ) -> str:
        """Arm a timer for the reminder and return its handle."""
        domain, service = split_notify_service(self.notify_service)
        if not self.hass.services.has_service(domain, service):
            raise SchedulingBackendError(
                f"Notification service '{domain}.{service}' is not available"
            )
        if trigger.repeats and not self.supports_native_repeat:
            raise SchedulingBackendError(
                f"Backend does not support repeating '{trigger.kind}' triggers"
            )

        handle = uuid.uuid4().hex
        self._arm(handle, content, trigger, trigger.fire_at)
        const.LOGGER.debug(
            "DEBUG: Armed reminder %s for habit '%s' at %s (%s)",
            handle,
            content["correlation"]["habit_id"],
            trigger.fire_at.isoformat(),
            trigger.kind,
        )
        return handle

    async def async_cancel(self, handle: str) -> None:
        """Disarm a reminder timer. Unknown handles are ignored."""
        unsub = self._timers.pop(handle, None)
        if unsub is None:
            const.LOGGER.debug("DEBUG: Cancel for unknown/fired handle %s", handle)
            return
        unsub()
        const.LOGGER.debug("DEBUG: Cancelled reminder %s", handle)

    async def async_dismiss_delivered(self, handle: str) -> None:
        """Clear a delivered notification (handle is its tag)."""
        domain, service = split_notify_service(self.notify_service)
        await self.hass.services.async_call(
            domain,
            service,
            {
                const.NOTIFY_MESSAGE: const.NOTIFY_CLEAR_NOTIFICATION,
                const.NOTIFY_DATA: {const.NOTIFY_TAG: handle},
            },
        )
        const.LOGGER.debug("DEBUG: Dismissed delivered notification '%s'", handle)

    @callback
    def async_shutdown(self) -> None:
        """Disarm every pending timer (integration unload)."""
        for unsub in self._timers.values():
            unsub()
        self._timers.clear()

    def _arm(
        self,
        handle: str,
        content: NotificationContent,
        trigger: ReminderTrigger,
        fire_at: datetime,
    ) -> None:
        async def _async_fire(now: datetime) -> None:
            await self._async_deliver(handle, content, trigger, fire_at)

        self._timers[handle] = async_track_point_in_time(
            self.hass, HassJob(_async_fire, cancel_on_shutdown=True), fire_at
        )

    async def _async_deliver(
        self,
        handle: str,
        content: NotificationContent,
        trigger: ReminderTrigger,
        fire_at: datetime,
    ) -> None:
        self._timers.pop(handle, None)

        next_fire = trigger.next_after(fire_at)
        if next_fire is not None:
            self._arm(handle, content, trigger, next_fire)

        correlation = dict(content["correlation"])
        correlation["scheduled_at"] = fire_at.isoformat()

        try:
            await async_send_notification(
                self.hass,
                self.notify_service,
                content["title"],
                content["body"],
                actions=list(content["actions"]),
                extra_data={
                    const.NOTIFY_TAG: content["tag"],
                    const.NOTIFY_GROUP: content["category"],
                    **correlation,
                },
            )
        except Exception as err:  # pylint: disable=broad-exception-caught
            # Timer callbacks are fire-and-forget; nothing upstream can catch.
            const.LOGGER.error(
                "ERROR: Failed to deliver reminder %s via '%s': %s",
                handle,
                self.notify_service,
                err,
            )
            return

        self.hass.bus.async_fire(
            const.EVENT_NOTIFICATION_DELIVERED,
            {
                const.EVENT_DATA_HABIT_ID: correlation["habit_id"],
                const.EVENT_DATA_SCHEDULED_AT: correlation["scheduled_at"],
                const.EVENT_DATA_HANDLE: handle,
            },
        )

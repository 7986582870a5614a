# File: const.py
"""Constants for the Habit Reminders integration.

This file centralizes configuration keys, defaults, storage keys, event names,
notification payload keys and service names for consistency across the
integration.
"""

import logging

import homeassistant.util.dt as dt_util

from .utils import dt_utils


def set_default_timezone(hass):
    """Set the default timezone based on the Home Assistant configuration."""
    global DEFAULT_TIME_ZONE
    DEFAULT_TIME_ZONE = dt_util.get_time_zone(hass.config.time_zone)
    if DEFAULT_TIME_ZONE is not None:
        dt_utils.set_default_timezone(DEFAULT_TIME_ZONE)


# ------------------------------------------------------------------------------------------------
# General / Integration Information
# ------------------------------------------------------------------------------------------------
HABIT_REMINDERS_TITLE = "Habit Reminders"

DOMAIN = "habit_reminders"

LOGGER = logging.getLogger(__package__)

# Storage and Versioning
STORAGE_KEY = "habit_reminders_data"
STORAGE_VERSION = 1

# Default timezone: initially None, to be set once hass is available.
DEFAULT_TIME_ZONE = None

# ------------------------------------------------------------------------------------------------
# Configuration Keys
# ------------------------------------------------------------------------------------------------
CONF_NOTIFY_SERVICE = "notify_service"
CONF_MIN_LEAD_SECONDS = "min_lead_seconds"
CONF_DRIFT_THRESHOLD_SECONDS = "drift_threshold_seconds"
CONF_MAX_DRIFT_COMPENSATION_SECONDS = "max_drift_compensation_seconds"
CONF_NATIVE_REPEAT = "native_repeat"

# Defaults
DEFAULT_NOTIFY_SERVICE = "notify.notify"
DEFAULT_MIN_LEAD_SECONDS = 1
DEFAULT_DRIFT_THRESHOLD_SECONDS = 5
DEFAULT_MAX_DRIFT_COMPENSATION_SECONDS = 300
DEFAULT_NATIVE_REPEAT = False

# ------------------------------------------------------------------------------------------------
# Storage Data Keys
# ------------------------------------------------------------------------------------------------
DATA_HABITS = "habits"
DATA_PROGRESS = "progress"
DATA_META = "meta"
DATA_META_SCHEMA_VERSION = "schema_version"
SCHEMA_VERSION = 1

DATA_HABIT_ID = "id"
DATA_HABIT_NAME = "name"
DATA_HABIT_TYPE = "type"
DATA_HABIT_OCCURRENCE = "occurrence"
DATA_HABIT_NOTIFICATION = "notification"
DATA_HABIT_IS_ACTIVE = "is_active"
DATA_HABIT_CREATED_AT = "created_at"
DATA_HABIT_START_DATE = "start_date"

DATA_OCCURRENCE_TYPE = "type"
DATA_OCCURRENCE_DAYS = "days"

DATA_NOTIFICATION_MESSAGE = "message"
DATA_NOTIFICATION_TIME = "time"
DATA_NOTIFICATION_IDENTIFIER = "identifier"
DATA_NOTIFICATION_CHAINED_IDENTIFIER = "chained_identifier"

DATA_PROGRESS_HABIT_ID = "habit_id"
DATA_PROGRESS_DATE = "date"
DATA_PROGRESS_COMPLETED = "completed"
DATA_PROGRESS_SKIPPED = "skipped"

# Habit types (presentation only, never affects scheduling math)
HABIT_TYPE_BUILD = "build"
HABIT_TYPE_BREAK = "break"
HABIT_TYPES = [HABIT_TYPE_BUILD, HABIT_TYPE_BREAK]

# Occurrence types
OCCURRENCE_DAILY = "daily"
OCCURRENCE_CUSTOM = "custom"
OCCURRENCE_TYPES = [OCCURRENCE_DAILY, OCCURRENCE_CUSTOM]

# Weekday names, ordered by datetime.weekday() (0=Monday)
WEEKDAYS = [
    "MONDAY",
    "TUESDAY",
    "WEDNESDAY",
    "THURSDAY",
    "FRIDAY",
    "SATURDAY",
    "SUNDAY",
]

# ------------------------------------------------------------------------------------------------
# Events
# ------------------------------------------------------------------------------------------------
NOTIFICATION_EVENT = "mobile_app_notification_action"
EVENT_NOTIFICATION_DELIVERED = f"{DOMAIN}_notification_delivered"

EVENT_DATA_HABIT_ID = "habit_id"
EVENT_DATA_SCHEDULED_AT = "scheduled_at"
EVENT_DATA_HANDLE = "handle"

# ------------------------------------------------------------------------------------------------
# Notification Payload
# ------------------------------------------------------------------------------------------------
NOTIFY_ACTION = "action"
NOTIFY_ACTIONS = "actions"
NOTIFY_DATA = "data"
NOTIFY_DOMAIN = "notify"
NOTIFY_MESSAGE = "message"
NOTIFY_TITLE = "title"
NOTIFY_TAG = "tag"
NOTIFY_GROUP = "group"
NOTIFY_CLEAR_NOTIFICATION = "clear_notification"
NOTIFY_TAG_PREFIX = "habit_reminders"

NOTIFICATION_TYPE_HABIT_REMINDER = "habit_reminder"
NOTIFICATION_CATEGORY_HABIT = "habit"

# Action identifiers (pipe-separated action strings: "ACTION|habit_id")
ACTION_COMPLETE_HABIT = "COMPLETE_HABIT"
ACTION_SKIP_HABIT = "SKIP_HABIT"
ACTION_PRESS_HABIT = "PRESS_HABIT"

ACTION_TITLE_COMPLETE = "✅ Complete"
ACTION_TITLE_SKIP = "⏭️ Skip"

# User-facing action kinds handled by the delivery feedback handler
USER_ACTION_COMPLETE = "complete"
USER_ACTION_SKIP = "skip"
USER_ACTION_PRESS = "press"

ACTION_TO_USER_ACTION = {
    ACTION_COMPLETE_HABIT: USER_ACTION_COMPLETE,
    ACTION_SKIP_HABIT: USER_ACTION_SKIP,
    ACTION_PRESS_HABIT: USER_ACTION_PRESS,
}

# ------------------------------------------------------------------------------------------------
# Trigger Kinds
# ------------------------------------------------------------------------------------------------
TRIGGER_ONCE = "once"
TRIGGER_DAILY = "daily"
TRIGGER_WEEKLY = "weekly"

# ------------------------------------------------------------------------------------------------
# Services
# ------------------------------------------------------------------------------------------------
SERVICE_CREATE_HABIT = "create_habit"
SERVICE_UPDATE_HABIT = "update_habit"
SERVICE_DELETE_HABIT = "delete_habit"
SERVICE_SCHEDULE_REMINDER = "schedule_reminder"
SERVICE_CANCEL_REMINDER = "cancel_reminder"
SERVICE_RESYNC_REMINDERS = "resync_reminders"
SERVICE_RECORD_PROGRESS = "record_progress"

FIELD_HABIT_ID = "habit_id"
FIELD_NAME = "name"
FIELD_HABIT_TYPE = "habit_type"
FIELD_DAYS = "days"
FIELD_MESSAGE = "message"
FIELD_TIME = "time"
FIELD_IS_ACTIVE = "is_active"
FIELD_DATE = "date"
FIELD_COMPLETED = "completed"
FIELD_SKIPPED = "skipped"

# ------------------------------------------------------------------------------------------------
# Messages
# ------------------------------------------------------------------------------------------------
ERROR_HABIT_NOT_FOUND_FMT = "Habit '{}' not found"
ERROR_NO_ENTRY_FOUND = "No Habit Reminders entry found"
ERROR_SINGLE_INSTANCE = "single_instance_allowed"
ERROR_INVALID_NOTIFY_SERVICE = "invalid_notify_service"

DISPLAY_UNNAMED_HABIT = "Unnamed Habit"

# File: utils/dt_utils.py
"""Date and time utilities for Habit Reminders.

Pure Python date/time functions with ZERO Home Assistant dependencies.
All functions here can be unit tested without Home Assistant mocking.

⚠️ UTILS PURITY: NO `homeassistant.*` imports allowed.
   Uses standard library: datetime, zoneinfo, dateutil.

Functions:
    - set_default_timezone / get_default_timezone: Configure local timezone
    - dt_now_utc: Get current datetime in UTC
    - dt_now_local: Get current datetime in local timezone
    - dt_today_local: Get today's date in local timezone
    - as_utc / as_local: Timezone conversion
    - dt_parse_date: Parse date strings
    - validate_instant: Turn raw input into a valid, timezone-aware datetime
    - format_for_display: Render a reminder time for humans

Classes:
    - Clock: Protocol for injected time sources
    - SystemClock: Production clock backed by the system time
"""

from __future__ import annotations

from datetime import UTC, date, datetime, time
import logging
import math
from typing import Any, Protocol
from zoneinfo import ZoneInfo

from dateutil import parser as dt_parser

from ..exceptions import TimeError

_LOGGER = logging.getLogger(__name__)

# ==============================================================================
# Constants
# ==============================================================================

# Default timezone - can be overridden by caller
DEFAULT_TIME_ZONE: ZoneInfo = ZoneInfo("UTC")

FORMAT_12H = "%I:%M %p"
FORMAT_12H_SECONDS = "%I:%M:%S %p"
FORMAT_24H = "%H:%M"
FORMAT_24H_SECONDS = "%H:%M:%S"


# ==============================================================================
# Timezone Configuration
# ==============================================================================


def set_default_timezone(tz: ZoneInfo) -> None:
    """Set the default timezone for all dt_utils functions.

    Call this during integration setup to configure the user's timezone.

    Args:
        tz: ZoneInfo object representing the default timezone
    """
    global DEFAULT_TIME_ZONE  # noqa: PLW0603
    DEFAULT_TIME_ZONE = tz


def get_default_timezone() -> ZoneInfo:
    """Get the current default timezone."""
    return DEFAULT_TIME_ZONE


# ==============================================================================
# Current Date/Time Functions
# ==============================================================================


def dt_now_utc() -> datetime:
    """Return the current datetime in UTC (timezone-aware)."""
    return datetime.now(UTC)


def dt_now_local(tz: ZoneInfo | None = None) -> datetime:
    """Return the current datetime in local timezone (timezone-aware).

    Args:
        tz: Optional timezone override. Uses DEFAULT_TIME_ZONE if not provided.
    """
    tz_info = tz or DEFAULT_TIME_ZONE
    return datetime.now(tz_info)


def dt_today_local(tz: ZoneInfo | None = None) -> date:
    """Return today's date in local timezone as a `datetime.date`."""
    return dt_now_local(tz).date()


def as_utc(dt_obj: datetime) -> datetime:
    """Convert a datetime to UTC timezone.

    Args:
        dt_obj: Datetime object. Naive values are assumed to be in the
            default timezone.

    Returns:
        Datetime in UTC timezone
    """
    if dt_obj.tzinfo is None:
        dt_obj = dt_obj.replace(tzinfo=DEFAULT_TIME_ZONE)
    return dt_obj.astimezone(UTC)


def as_local(dt_obj: datetime, tz: ZoneInfo | None = None) -> datetime:
    """Convert a datetime to local timezone.

    Args:
        dt_obj: Datetime object. Naive values are assumed to be UTC.
        tz: Optional timezone override. Uses DEFAULT_TIME_ZONE if not provided.

    Returns:
        Datetime in local timezone
    """
    tz_info = tz or DEFAULT_TIME_ZONE
    if dt_obj.tzinfo is None:
        dt_obj = dt_obj.replace(tzinfo=UTC)
    return dt_obj.astimezone(tz_info)


# ==============================================================================
# Date/Time Parsing
# ==============================================================================


def dt_parse_date(date_str: str | None) -> date | None:
    """Safely parse a date string into a `datetime.date`.

    Accepts formats:
    - "2025-04-07" (ISO format)
    - "04/07/2025" (US format)
    - "2025/04/07"

    Returns:
        datetime.date or None if parsing fails.
    """
    if not date_str or not isinstance(date_str, str):
        return None

    try:
        return date.fromisoformat(date_str)
    except ValueError:
        pass

    for fmt in ("%m/%d/%Y", "%Y/%m/%d"):
        try:
            return datetime.strptime(date_str, fmt).date()
        except ValueError:
            continue

    return None


# ==============================================================================
# Validation
# ==============================================================================


def validate_instant(value: Any, default_tzinfo: ZoneInfo | None = None) -> datetime:
    """Convert raw input into a valid, timezone-aware datetime.

    This is the boundary where raw strings and numbers become instants. Any
    malformed input raises TimeError here and never leaks further.

    Args:
        value: A datetime, a date, an ISO 8601 string, or a finite epoch
            timestamp in seconds.
        default_tzinfo: Timezone applied to naive results (defaults to
            DEFAULT_TIME_ZONE).

    Returns:
        Timezone-aware datetime.

    Raises:
        TimeError: If the value is empty, unparseable, non-finite, out of
            range, or of an unsupported type.

    Example:
        >>> validate_instant("2024-01-01T09:00:00Z")
        datetime.datetime(2024, 1, 1, 9, 0, tzinfo=tzutc())
    """
    tz_info = default_tzinfo or DEFAULT_TIME_ZONE
    result: datetime

    if isinstance(value, datetime):
        result = value
    elif isinstance(value, date):
        result = datetime.combine(value, time.min)
    elif isinstance(value, bool):
        raise TimeError(f"Unsupported time value: {value!r}")
    elif isinstance(value, (int, float)):
        if not math.isfinite(value):
            raise TimeError(f"Non-finite timestamp: {value!r}")
        try:
            result = datetime.fromtimestamp(value, UTC)
        except (OverflowError, OSError, ValueError) as err:
            raise TimeError(f"Timestamp out of range: {value!r}") from err
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            raise TimeError("Empty time value")
        try:
            result = dt_parser.isoparse(text)
        except (ValueError, OverflowError) as err:
            raise TimeError(f"Failed to parse time value: {value!r}") from err
    else:
        raise TimeError(f"Unsupported time value: {value!r}")

    if result.tzinfo is None:
        result = result.replace(tzinfo=tz_info)
    return result


def format_for_display(
    instant: Any,
    *,
    hour12: bool = True,
    include_seconds: bool = False,
    tz: ZoneInfo | None = None,
) -> str:
    """Render the wall-clock time of an instant for display.

    Args:
        instant: Anything validate_instant accepts.
        hour12: 12-hour clock with AM/PM (default) or 24-hour clock.
        include_seconds: Append seconds.
        tz: Optional display timezone. Uses DEFAULT_TIME_ZONE if not provided.

    Raises:
        TimeError: If the instant is invalid.

    Example:
        >>> format_for_display("2024-01-01T21:05:00+00:00")
        '09:05 PM'
    """
    valid = as_local(validate_instant(instant), tz)
    if hour12:
        fmt = FORMAT_12H_SECONDS if include_seconds else FORMAT_12H
    else:
        fmt = FORMAT_24H_SECONDS if include_seconds else FORMAT_24H
    return valid.strftime(fmt)


# ==============================================================================
# Clocks
# ==============================================================================


class Clock(Protocol):
    """Anything that can tell the current time."""

    def now(self) -> datetime:
        """Return the current timezone-aware datetime."""


class SystemClock:
    """Clock backed by the system time, in UTC."""

    def now(self) -> datetime:
        """Return the current datetime in UTC."""
        return dt_now_utc()

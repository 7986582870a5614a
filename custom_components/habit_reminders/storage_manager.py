# File: storage_manager.py
"""Handles persistent data storage for the Habit Reminders integration.

Uses Home Assistant's Storage helper to save and load habits and their daily
progress, ensuring reminders and history survive restarts. Habits are keyed
by id; progress is keyed by habit id and then by ISO date, so writing a
record for the same (habit, date) pair replaces the previous one.
"""

from __future__ import annotations

import copy
from datetime import date
from typing import TYPE_CHECKING, Any

from homeassistant.helpers.storage import Store

from . import const
from .utils import dt_utils

if TYPE_CHECKING:
    from homeassistant.core import HomeAssistant

    from .type_defs import HabitData, ProgressRecord


class HabitRemindersStorageManager:
    """Manages loading, saving, and accessing data from Home Assistant's storage.

    Readers get deep copies, so a caller holding a habit never sees a write
    made by somebody else until it reads again.
    """

    def __init__(
        self, hass: HomeAssistant, storage_key: str = const.STORAGE_KEY
    ) -> None:
        """Initialize the storage manager.

        Args:
            hass: Home Assistant core object.
            storage_key: Key to identify storage location (default: const.STORAGE_KEY).

        """
        self.hass = hass
        self._storage_key = storage_key
        self._store: Store = Store(hass, const.STORAGE_VERSION, storage_key)
        self._data: dict[str, Any] = {}

    def _get_default_structure(self) -> dict[str, Any]:
        """Get the default empty data structure."""
        return {
            const.DATA_META: {
                const.DATA_META_SCHEMA_VERSION: const.SCHEMA_VERSION,
            },
            const.DATA_HABITS: {},
            const.DATA_PROGRESS: {},
        }

    async def async_initialize(self) -> None:
        """Load data from storage during startup.

        If no data exists, initializes with an empty structure.
        """
        const.LOGGER.debug(
            "DEBUG: HabitRemindersStorageManager: Loading data from storage"
        )
        existing_data = await self._store.async_load()

        if existing_data is None:
            const.LOGGER.info("INFO: No existing storage found. Initializing new data")
            self._data = self._get_default_structure()
            return

        self._data = existing_data
        for key, value in self._get_default_structure().items():
            self._data.setdefault(key, value)
        const.LOGGER.debug(
            "DEBUG: Loaded existing data from storage: %s",
            {
                "habits": len(self._data[const.DATA_HABITS]),
                "progress": len(self._data[const.DATA_PROGRESS]),
            },
        )

    @property
    def data(self) -> dict[str, Any]:
        """Retrieve the in-memory data cache."""
        return self._data

    # -------------------------------------------------------------------------
    # Habits
    # -------------------------------------------------------------------------

    def get_habit(self, habit_id: str) -> HabitData | None:
        """Return a snapshot of one habit, or None if it does not exist."""
        habit = self._data.get(const.DATA_HABITS, {}).get(habit_id)
        return copy.deepcopy(habit) if habit is not None else None

    def get_habits(self) -> dict[str, HabitData]:
        """Return a snapshot of every habit keyed by id."""
        return copy.deepcopy(self._data.get(const.DATA_HABITS, {}))

    async def async_add_habit(self, habit: HabitData) -> None:
        """Store a new habit.

        Raises:
            ValueError: If a habit with the same id already exists.
        """
        habit_id = habit[const.DATA_HABIT_ID]
        habits = self._data.setdefault(const.DATA_HABITS, {})
        if habit_id in habits:
            raise ValueError(f"Habit '{habit_id}' already exists")
        habits[habit_id] = copy.deepcopy(habit)
        const.LOGGER.debug("DEBUG: Added habit '%s'", habit_id)
        await self.async_save()

    async def async_update_habit(self, habit: HabitData) -> bool:
        """Replace a stored habit. Returns False if it no longer exists."""
        habit_id = habit[const.DATA_HABIT_ID]
        habits = self._data.setdefault(const.DATA_HABITS, {})
        if habit_id not in habits:
            const.LOGGER.warning(
                "WARNING: Attempted to update unknown habit '%s'", habit_id
            )
            return False
        habits[habit_id] = copy.deepcopy(habit)
        return await self.async_save()

    async def async_delete_habit(self, habit_id: str) -> HabitData | None:
        """Remove a habit and its progress. Returns the removed habit."""
        removed = self._data.get(const.DATA_HABITS, {}).pop(habit_id, None)
        self._data.get(const.DATA_PROGRESS, {}).pop(habit_id, None)
        if removed is None:
            return None
        const.LOGGER.debug("DEBUG: Deleted habit '%s'", habit_id)
        await self.async_save()
        return removed

    async def async_persist_scheduling_handle(
        self,
        habit_id: str,
        handle: str | None,
        chained_handle: str | None = None,
    ) -> bool:
        """Record the backend handle(s) currently registered for a habit.

        Passing None for both clears them. Returns False when the habit has
        been deleted in the meantime or the write failed.
        """
        habit = self._data.get(const.DATA_HABITS, {}).get(habit_id)
        if habit is None:
            const.LOGGER.debug(
                "DEBUG: Not persisting handle for deleted habit '%s'", habit_id
            )
            return False

        notification = habit.setdefault(const.DATA_HABIT_NOTIFICATION, {})
        notification[const.DATA_NOTIFICATION_IDENTIFIER] = handle
        notification[const.DATA_NOTIFICATION_CHAINED_IDENTIFIER] = chained_handle
        return await self.async_save()

    # -------------------------------------------------------------------------
    # Progress
    # -------------------------------------------------------------------------

    async def async_write_progress(self, record: ProgressRecord) -> bool:
        """Upsert the progress record for (habit_id, date)."""
        habit_id = record[const.DATA_PROGRESS_HABIT_ID]
        record_date = record[const.DATA_PROGRESS_DATE]
        by_date = self._data.setdefault(const.DATA_PROGRESS, {}).setdefault(
            habit_id, {}
        )
        by_date[record_date] = {
            const.DATA_PROGRESS_HABIT_ID: habit_id,
            const.DATA_PROGRESS_DATE: record_date,
            const.DATA_PROGRESS_COMPLETED: bool(
                record.get(const.DATA_PROGRESS_COMPLETED, False)
            ),
            const.DATA_PROGRESS_SKIPPED: bool(
                record.get(const.DATA_PROGRESS_SKIPPED, False)
            ),
        }
        return await self.async_save()

    def get_progress(
        self,
        habit_id: str,
        start: date | str | None = None,
        end: date | str | None = None,
    ) -> list[ProgressRecord]:
        """Return a habit's progress records in [start, end], oldest first."""
        start_key = _date_key(start)
        end_key = _date_key(end)
        by_date = self._data.get(const.DATA_PROGRESS, {}).get(habit_id, {})
        return [
            copy.deepcopy(record)
            for record_date, record in sorted(by_date.items())
            if (start_key is None or record_date >= start_key)
            and (end_key is None or record_date <= end_key)
        ]

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    async def async_save(self) -> bool:
        """Save the current data structure to storage asynchronously.

        Returns:
            True on success. Errors are logged, never raised.
        """
        try:
            await self._store.async_save(self._data)
        except OSError as err:
            const.LOGGER.error(
                "ERROR: Failed to save storage due to file system error: %s. "
                "Check disk space and file permissions for %s",
                err,
                self._store.path,
            )
            return False
        except (TypeError, ValueError) as err:
            const.LOGGER.error(
                "ERROR: Failed to save storage due to non-serializable data: %s",
                err,
            )
            return False
        const.LOGGER.debug("DEBUG: Data saved successfully to storage")
        return True

    async def async_clear_data(self) -> None:
        """Clear all stored data and reset to default structure."""
        const.LOGGER.warning(
            "WARNING: Clearing all Habit Reminders data and resetting storage"
        )
        self._data = self._get_default_structure()
        await self.async_save()

    async def async_delete_storage(self) -> None:
        """Delete the storage file completely from disk."""
        await self.async_clear_data()
        try:
            await self._store.async_remove()
            const.LOGGER.info(
                "INFO: Storage file removed successfully: %s", self._store.path
            )
        except OSError as err:
            const.LOGGER.error(
                "ERROR: Failed to remove storage file %s: %s. Check file permissions",
                self._store.path,
                err,
            )


def _date_key(value: date | str | None) -> str | None:
    if value is None:
        return None
    if isinstance(value, date):
        return value.isoformat()
    parsed = dt_utils.dt_parse_date(value)
    if parsed is None:
        raise ValueError(f"Invalid date: {value!r}")
    return parsed.isoformat()

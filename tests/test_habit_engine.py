"""Tests for habit validation, scheduling preconditions and the update trigger."""

from datetime import UTC, datetime

import pytest

from custom_components.habit_reminders import const
from custom_components.habit_reminders.engines.habit_engine import (
    build_habit,
    get_schedulable_config,
    needs_notification_update,
    validate_habit,
)
from custom_components.habit_reminders.exceptions import (
    ConfigurationError,
    ValidationError,
)
from tests.helpers import make_habit

NOW = datetime(2024, 1, 1, 8, 0, tzinfo=UTC)


class TestValidateHabit:
    """Tests for validate_habit()."""

    def test_valid_daily_habit(self) -> None:
        """A complete daily habit has no errors."""
        assert validate_habit(make_habit()) == []

    def test_valid_custom_habit(self) -> None:
        """A custom habit with known days has no errors."""
        assert validate_habit(make_habit(days=["MONDAY", "FRIDAY"])) == []

    def test_collects_every_problem(self) -> None:
        """All problems are reported together."""
        habit = make_habit(name=" ", message="", time="not a time")
        habit[const.DATA_HABIT_TYPE] = "quit"

        errors = validate_habit(habit)

        assert "Name is required" in errors
        assert "Invalid habit type" in errors
        assert "Notification message is required" in errors
        assert "Invalid notification time" in errors

    def test_custom_without_days(self) -> None:
        """Custom occurrence needs at least one day."""
        assert validate_habit(make_habit(days=[])) == [
            "Custom occurrence requires at least one day"
        ]

    def test_custom_with_unknown_day(self) -> None:
        """Unknown weekday names are reported."""
        errors = validate_habit(make_habit(days=["MONDAY", "FUNDAY"]))
        assert len(errors) == 1
        assert "FUNDAY" in errors[0]

    def test_active_flag_must_be_bool(self) -> None:
        """is_active must be a real boolean."""
        habit = make_habit()
        habit[const.DATA_HABIT_IS_ACTIVE] = "yes"
        assert validate_habit(habit) == ["Active flag must be a boolean"]


class TestGetSchedulableConfig:
    """Tests for get_schedulable_config()."""

    def test_returns_time_and_message(self) -> None:
        """Valid habits yield their nominal time and stripped message."""
        nominal, message = get_schedulable_config(make_habit(message="  Stretch  "))
        assert nominal == datetime(2024, 1, 1, 9, 0, tzinfo=UTC)
        assert message == "Stretch"

    @pytest.mark.parametrize(
        "habit",
        [
            make_habit(is_active=False),
            make_habit(message="   "),
            make_habit(time=""),
            make_habit(time="25:99"),
        ],
        ids=["inactive", "blank-message", "missing-time", "invalid-time"],
    )
    def test_unschedulable_habits_raise(self, habit: dict) -> None:
        """Inactive or incomplete habits raise ConfigurationError."""
        with pytest.raises(ConfigurationError):
            get_schedulable_config(habit)

    def test_configuration_error_is_a_validation_error(self) -> None:
        """Callers catching ValidationError also catch configuration problems."""
        with pytest.raises(ValidationError):
            get_schedulable_config(make_habit(is_active=False))


class TestNeedsNotificationUpdate:
    """Tests for needs_notification_update()."""

    def test_identical_habits(self) -> None:
        """No change means no update."""
        assert not needs_notification_update(make_habit(), make_habit())

    def test_handle_only_change_is_ignored(self) -> None:
        """Bookkeeping fields do not trigger a reschedule."""
        assert not needs_notification_update(
            make_habit(), make_habit(identifier="handle-1")
        )

    def test_habit_type_change_is_ignored(self) -> None:
        """Build/break is presentation only."""
        assert not needs_notification_update(
            make_habit(), make_habit(habit_type=const.HABIT_TYPE_BREAK)
        )

    def test_day_order_is_ignored(self) -> None:
        """The same day set in a different order is not a change."""
        assert not needs_notification_update(
            make_habit(days=["MONDAY", "FRIDAY"]),
            make_habit(days=["FRIDAY", "MONDAY"]),
        )

    @pytest.mark.parametrize(
        "new_habit",
        [
            make_habit(time="2024-01-01T10:00:00+00:00"),
            make_habit(message="Different"),
            make_habit(name="Different"),
            make_habit(days=["MONDAY"]),
            make_habit(is_active=False),
        ],
        ids=["time", "message", "name", "occurrence", "active"],
    )
    def test_relevant_changes(self, new_habit: dict) -> None:
        """Time, message, name, occurrence and active flag all count."""
        assert needs_notification_update(make_habit(), new_habit)


class TestBuildHabit:
    """Tests for build_habit()."""

    def test_daily_habit(self) -> None:
        """Without days the habit is daily and active."""
        habit = build_habit(
            name=" Read ",
            message=" Read 10 pages ",
            time="2024-01-01T21:00:00+00:00",
            now=NOW,
        )
        assert habit[const.DATA_HABIT_NAME] == "Read"
        assert habit[const.DATA_HABIT_OCCURRENCE] == {
            const.DATA_OCCURRENCE_TYPE: const.OCCURRENCE_DAILY
        }
        assert habit[const.DATA_HABIT_NOTIFICATION][const.DATA_NOTIFICATION_MESSAGE] == (
            "Read 10 pages"
        )
        assert habit[const.DATA_HABIT_IS_ACTIVE] is True
        assert habit[const.DATA_HABIT_CREATED_AT] == NOW.isoformat()
        assert habit[const.DATA_HABIT_ID]

    def test_custom_days_are_upper_cased(self) -> None:
        """Days become a custom occurrence with canonical names."""
        habit = build_habit(
            name="Gym",
            message="Go lift",
            time="2024-01-01T18:00:00+00:00",
            now=NOW,
            days=["monday", "thursday"],
            habit_id="gym",
        )
        assert habit[const.DATA_HABIT_ID] == "gym"
        assert habit[const.DATA_HABIT_OCCURRENCE] == {
            const.DATA_OCCURRENCE_TYPE: const.OCCURRENCE_CUSTOM,
            const.DATA_OCCURRENCE_DAYS: ["MONDAY", "THURSDAY"],
        }

    def test_invalid_input_raises(self) -> None:
        """Structural problems raise ValidationError."""
        with pytest.raises(ValidationError, match="Name is required"):
            build_habit(name="", message="x", time="2024-01-01T09:00:00Z", now=NOW)

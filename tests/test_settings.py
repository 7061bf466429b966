from datetime import datetime, timezone

import pytest

from seren_core.errors import InvalidCadence
from seren_core.notifications import factories
from seren_core.notifications.models import NotificationCategory
from seren_core.scheduling.models import Cadence, CadenceKind, ScheduledTask, TaskState
from seren_core.scheduling.settings import SETTINGS_KEY, UserSettings, load_settings
from seren_core.storage.memory_store import MemoryStore


def test_defaults_match_dashboard_settings() -> None:
    assert UserSettings().to_dict() == {
        "notificationsEnabled": True,
        "emailReminders": True,
        "dailyDigest": True,
        "activityReminders": True,
        "reminderTime": "09:00",
        "digestTime": "20:00",
        "dataSharing": False,
        "language": "en",
    }


def test_merge_accepts_wire_and_field_names() -> None:
    settings = UserSettings().merged(
        {"emailReminders": "false", "digest_time": " 21:15 ", "dataSharing": None, "theme": "dark"}
    )
    assert settings.email_reminders is False
    assert settings.digest_time == "21:15"
    assert settings.digest_clock == (21, 15)
    assert settings.data_sharing is False


def test_validate_names_the_offending_field() -> None:
    with pytest.raises(InvalidCadence, match="digestTime"):
        UserSettings(digest_time="8pm").validate()


def test_load_settings_defaults() -> None:
    store = MemoryStore()
    assert load_settings(store) == UserSettings()
    store.write(SETTINGS_KEY, ["not", "a", "dict"])
    assert load_settings(store) == UserSettings()
    store.write(SETTINGS_KEY, {"activityReminders": False})
    assert load_settings(store).activity_reminders is False


def test_task_id_and_state_transitions() -> None:
    cadence = Cadence("daily_reminder", CadenceKind.DAILY, 9, 0)
    task = ScheduledTask(cadence, datetime(2025, 3, 11, 9, 0, tzinfo=timezone.utc), lambda _now: None)

    assert task.id == "daily_reminder@2025-03-11T09:00:00+00:00"
    task.transition(TaskState.FIRED)
    task.transition(TaskState.CANCELLED)
    assert task.state is TaskState.FIRED


def test_weekly_and_monthly_cadences_require_their_day() -> None:
    now = datetime(2025, 3, 10, 8, 0, tzinfo=timezone.utc)
    with pytest.raises(InvalidCadence):
        Cadence("weekly", CadenceKind.WEEKLY, 18, 0).next_fire(now)
    with pytest.raises(InvalidCadence):
        Cadence("monthly", CadenceKind.MONTHLY, 9, 0).next_fire(now)
    assert not Cadence("custom:x", CadenceKind.CUSTOM, run_at=now).recurring


def test_stock_payloads() -> None:
    reminder = factories.daily_reminder()
    assert reminder.category is NotificationCategory.REMINDER
    assert reminder.action.target == "/dashboard/journal"

    activity = factories.activity_reminder("breathing", "/dashboard/activities/breathing")
    assert activity.message == "Time for your breathing activity! Take a moment for your wellness."

    assert factories.achievement("7 day streak").message == "Congratulations! 7 day streak"
    assert factories.weekly_summary().category is NotificationCategory.SYSTEM
    assert factories.welcome().message == "Welcome to SerenAI! Explore your wellness features."

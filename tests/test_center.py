from datetime import datetime, timezone

import pytest

from seren_core.center import NotificationCenter, build_store
from seren_core.config import AppConfig
from seren_core.errors import InvalidCadence
from seren_core.scheduling.cadences import CadenceCatalog
from seren_core.scheduling.settings import SETTINGS_KEY
from seren_core.storage.memory_store import MemoryStore
from seren_core.storage.redis_store import RedisStore


@pytest.fixture
def config() -> AppConfig:
    return AppConfig(
        store_backend="memory",
        settings_key=SETTINGS_KEY,
        notifications_key="serenai-notifications",
        publish_scheduler_state=True,
    )


@pytest.fixture
def center(config, store, clock, backend) -> NotificationCenter:
    center = NotificationCenter.from_config(config, store=store, clock=clock, backend=backend, catalog=CadenceCatalog())
    yield center
    center.shutdown()


def _keys(center: NotificationCenter) -> list[str]:
    return [task.cadence.key for task in center.scheduler.pending_tasks()]


def test_build_store_selects_backend(config) -> None:
    assert isinstance(build_store(config), MemoryStore)
    assert isinstance(build_store(AppConfig(store_backend="redis")), RedisStore)


def test_start_uses_persisted_settings(center, store) -> None:
    store.write(SETTINGS_KEY, {"emailReminders": False, "digestTime": "21:00"})

    center.start_scheduler()

    assert "daily_reminder" not in _keys(center)
    digest = [task for task in center.scheduler.pending_tasks() if task.cadence.key == "daily_digest"][0]
    assert digest.fire_at == datetime(2025, 3, 10, 21, 0, tzinfo=timezone.utc)
    assert center.watcher.running


def test_rapid_toggle_ends_with_final_value(center) -> None:
    center.start_scheduler()

    center.update_settings({"emailReminders": True})
    center.update_settings({"emailReminders": False})
    center.watcher.flush()

    assert _keys(center).count("daily_reminder") == 0
    assert center.current_settings().email_reminders is False


def test_update_settings_merges_and_persists(center, store) -> None:
    center.start_scheduler()

    merged = center.update_settings({"reminderTime": "08:30", "unknownField": 1})
    center.watcher.flush()

    assert merged.reminder_time == "08:30"
    assert merged.daily_digest is True
    assert store.read(SETTINGS_KEY)["reminderTime"] == "08:30"
    assert "unknownField" not in store.read(SETTINGS_KEY)
    reminder = [task for task in center.scheduler.pending_tasks() if task.cadence.key == "daily_reminder"][0]
    assert reminder.fire_at == datetime(2025, 3, 10, 8, 30, tzinfo=timezone.utc)


def test_invalid_update_raises_and_writes_nothing(center, store) -> None:
    center.start_scheduler()

    with pytest.raises(InvalidCadence):
        center.update_settings({"reminderTime": "24:61"})

    assert store.read(SETTINGS_KEY) is None


def test_test_and_welcome_notifications(center) -> None:
    assert center.send_test_notification()
    assert center.send_test_notification() is False
    assert center.send_welcome("Sam")
    assert center.send_welcome()

    titles = [entry.title for entry in center.list_notifications()]
    assert titles == ["Welcome to SerenAI!", "Welcome to SerenAI!", "Test Notification"]
    assert center.list_notifications()[1].message == "Welcome back, Sam! Start your wellness journey."
    assert center.unread_count() == 3


def test_log_operations_through_center(center) -> None:
    center.send_test_notification()
    notification = center.recent(1)[0]

    assert center.mark_read(notification.id)
    assert center.unread_count() == 0
    assert center.delete(notification.id)
    assert center.list_notifications() == []
    center.send_welcome()
    assert center.mark_all_read()
    assert center.clear()
    assert center.recent() == []


def test_custom_reminder_through_center(center) -> None:
    center.start_scheduler()
    task_id = center.schedule_custom_reminder("Stretch", "Time to stretch", datetime(2025, 3, 10, 8, 30, tzinfo=timezone.utc))

    assert task_id in [task.id for task in center.scheduler.pending_tasks()]
    assert center.cancel_scheduled_task(task_id)
    assert task_id not in [task.id for task in center.scheduler.pending_tasks()]


def test_scheduler_state_is_published_to_store(center, store) -> None:
    center.start_scheduler()
    assert store.read("scheduler:state")["task_count"] == 7


def test_shutdown_stops_watcher_and_scheduler(config, store, clock, backend) -> None:
    center = NotificationCenter.from_config(config, store=store, clock=clock, backend=backend, catalog=CadenceCatalog())
    center.start_scheduler()

    center.shutdown()

    assert not center.watcher.running
    assert not backend.running
    assert center.scheduler.pending_tasks() == []

from datetime import datetime, timezone

from seren_core.scheduling.scheduler import NotificationScheduler
from seren_core.scheduling.settings import SETTINGS_KEY, UserSettings
from seren_core.scheduling.settings_watcher import DEBOUNCE_JOB_ID, SettingsWatcher


def _reminder_fire_at(scheduler: NotificationScheduler) -> datetime | None:
    for task in scheduler.pending_tasks():
        if task.cadence.key == "daily_reminder":
            return task.fire_at
    return None


def test_burst_of_changes_collapses_into_one_reschedule(scheduler, store, backend, monkeypatch) -> None:
    scheduler.start(UserSettings())
    watcher = SettingsWatcher(store, scheduler)
    watcher.start()
    calls: list[UserSettings] = []
    original = scheduler.reschedule
    monkeypatch.setattr(scheduler, "reschedule", lambda settings: calls.append(settings) or original(settings))

    for reminder_time in ("10:00", "11:00", "12:30"):
        store.write(SETTINGS_KEY, UserSettings(reminder_time=reminder_time).to_dict())

    assert calls == []
    assert [job.id for job in backend.get_jobs()].count(DEBOUNCE_JOB_ID) == 1

    assert watcher.flush()
    assert watcher.flush() is False

    assert [settings.reminder_time for settings in calls] == ["12:30"]
    assert _reminder_fire_at(scheduler) == datetime(2025, 3, 10, 12, 30, tzinfo=timezone.utc)
    assert backend.get_job(DEBOUNCE_JOB_ID) is None


def test_unrelated_keys_are_ignored(scheduler, store, backend) -> None:
    scheduler.start(UserSettings())
    watcher = SettingsWatcher(store, scheduler)
    watcher.start()

    store.write("serenai-notifications", [])

    assert backend.get_job(DEBOUNCE_JOB_ID) is None
    assert watcher.flush() is False


def test_without_backend_changes_apply_immediately(log, clock, store) -> None:
    scheduler = NotificationScheduler(log.append, clock=clock)
    scheduler.start(UserSettings())
    watcher = SettingsWatcher(store, scheduler)
    watcher.start()

    store.write(SETTINGS_KEY, {"reminderTime": "07:45"})

    assert scheduler.settings.reminder_time == "07:45"
    assert _reminder_fire_at(scheduler) == datetime(2025, 3, 11, 7, 45, tzinfo=timezone.utc)


def test_disabling_notifications_cancels_everything(log, clock, store) -> None:
    scheduler = NotificationScheduler(log.append, clock=clock)
    scheduler.start(UserSettings())
    SettingsWatcher(store, scheduler).start()

    store.write(SETTINGS_KEY, {"notificationsEnabled": False})

    assert scheduler.pending_tasks() == []


def test_invalid_settings_are_rejected_and_schedule_kept(log, clock, store) -> None:
    scheduler = NotificationScheduler(log.append, clock=clock)
    scheduler.start(UserSettings())
    watcher = SettingsWatcher(store, scheduler)
    watcher.start()
    before = _reminder_fire_at(scheduler)

    store.write(SETTINGS_KEY, {"reminderTime": "9 o'clock"})

    assert _reminder_fire_at(scheduler) == before
    assert scheduler.settings == UserSettings()


def test_unreadable_settings_leave_schedule_alone(log, clock, store) -> None:
    scheduler = NotificationScheduler(log.append, clock=clock)
    scheduler.start(UserSettings())
    SettingsWatcher(store, scheduler).start()

    store.write_raw(SETTINGS_KEY, "{broken")

    assert len(scheduler.pending_tasks()) == 7


def test_stop_unsubscribes_and_cancels_pending_flush(scheduler, store, backend) -> None:
    scheduler.start(UserSettings())
    watcher = SettingsWatcher(store, scheduler)
    watcher.start()
    assert watcher.running

    store.write(SETTINGS_KEY, {"reminderTime": "10:00"})
    watcher.stop()

    assert not watcher.running
    assert backend.get_job(DEBOUNCE_JOB_ID) is None
    store.write(SETTINGS_KEY, {"reminderTime": "11:00"})
    assert watcher.flush() is False
    assert _reminder_fire_at(scheduler) == datetime(2025, 3, 10, 9, 0, tzinfo=timezone.utc)


def test_start_is_idempotent(scheduler, store) -> None:
    watcher = SettingsWatcher(store, scheduler)
    watcher.start()
    watcher.start()
    watcher.stop()
    assert not watcher.running


def test_debounced_flush_is_never_dropped_as_misfired(scheduler, store, backend) -> None:
    scheduler.start(UserSettings())
    SettingsWatcher(store, scheduler).start()

    store.write(SETTINGS_KEY, {"reminderTime": "10:00"})

    assert backend.get_job(DEBOUNCE_JOB_ID).misfire_grace_time is None

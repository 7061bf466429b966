from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime, timedelta
from typing import Any

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.schedulers.base import BaseScheduler

from seren_core.config import AppConfig
from seren_core.errors import StorageError
from seren_core.notifications import factories
from seren_core.notifications.log import AppendResult, NotificationLog
from seren_core.notifications.models import Notification, NotificationAction, NotificationPayload
from seren_core.scheduling.cadences import CadenceCatalog, load_cadence_catalog
from seren_core.scheduling.models import ScheduledTask
from seren_core.scheduling.scheduler import NotificationScheduler
from seren_core.scheduling.settings import SETTINGS_KEY, UserSettings, load_settings
from seren_core.scheduling.settings_watcher import SettingsWatcher
from seren_core.storage import MemoryStore, PersistentStore, RedisStore
from seren_core.utils.clock import Clock, SystemClock

logger = logging.getLogger(__name__)


def build_store(config: AppConfig) -> PersistentStore:
    if config.store_backend == "memory":
        return MemoryStore()
    return RedisStore.from_config(config)


class NotificationCenter:
    """API surface consumed by the dashboard: notification log plus scheduler control."""

    def __init__(
        self,
        store: PersistentStore,
        log: NotificationLog,
        scheduler: NotificationScheduler,
        watcher: SettingsWatcher,
        *,
        settings_key: str = SETTINGS_KEY,
    ) -> None:
        self.store = store
        self.log = log
        self.scheduler = scheduler
        self.watcher = watcher
        self._settings_key = settings_key

    @classmethod
    def from_config(
        cls,
        config: AppConfig,
        *,
        store: PersistentStore | None = None,
        clock: Clock | None = None,
        backend: BaseScheduler | None = None,
        catalog: CadenceCatalog | None = None,
    ) -> "NotificationCenter":
        store = store if store is not None else build_store(config)
        clock = clock or SystemClock(config.system_timezone)
        log = NotificationLog(
            store,
            clock=clock,
            key=config.notifications_key,
            max_size=config.max_log_size,
            duplicate_window=timedelta(seconds=config.duplicate_window_seconds),
        )
        scheduler = NotificationScheduler(
            log.append,
            clock=clock,
            catalog=catalog or load_cadence_catalog(),
            history=log.list,
            backend=backend if backend is not None else BackgroundScheduler(timezone=config.system_timezone),
            misfire_grace_seconds=config.misfire_grace_seconds,
            state_store=store if config.publish_scheduler_state else None,
            state_key=config.scheduler_state_key,
        )
        watcher = SettingsWatcher(
            store,
            scheduler,
            settings_key=config.settings_key,
            debounce_seconds=config.settings_debounce_seconds,
        )
        return cls(store, log, scheduler, watcher, settings_key=config.settings_key)

    # notification log

    def list_notifications(self, unread_only: bool = False) -> list[Notification]:
        return self.log.list(unread_only=unread_only)

    def recent(self, limit: int = 5) -> list[Notification]:
        return self.log.recent(limit)

    def unread_count(self) -> int:
        return self.log.unread_count()

    def mark_read(self, notification_id: str) -> bool:
        return self.log.mark_read(notification_id)

    def mark_all_read(self) -> bool:
        return self.log.mark_all_read()

    def delete(self, notification_id: str) -> bool:
        return self.log.delete(notification_id)

    def clear(self) -> bool:
        return self.log.clear()

    def notify(self, payload: NotificationPayload) -> AppendResult:
        return self.log.append(payload)

    def send_test_notification(self) -> bool:
        return self.log.append(factories.diagnostic_notification()).appended

    def send_welcome(self, user_name: str | None = None) -> bool:
        return self.log.append(factories.welcome(user_name)).appended

    # scheduling

    def start_scheduler(self, settings: UserSettings | None = None) -> list[ScheduledTask]:
        snapshot = settings if settings is not None else self.current_settings()
        tasks = self.scheduler.start(snapshot)
        self.watcher.start()
        return tasks

    def current_settings(self) -> UserSettings:
        try:
            return load_settings(self.store, self._settings_key)
        except StorageError as exc:
            logger.warning("settings_load_failed", extra={"event": "settings_load_failed", "error": str(exc)})
            return self.scheduler.settings or UserSettings()

    def update_settings(self, partial: Mapping[str, Any]) -> UserSettings | None:
        """Persist a partial settings update; the watcher reschedules from the change event.

        Invalid values raise ``InvalidCadence`` before anything is written.
        """
        merged = self.current_settings().merged(partial)
        merged.validate()
        try:
            self.store.write(self._settings_key, merged.to_dict())
        except StorageError as exc:
            logger.warning("settings_save_failed", extra={"event": "settings_save_failed", "error": str(exc)})
            return None
        logger.info("settings_updated", extra={"event": "settings_updated", "fields": sorted(partial)})
        return merged

    def schedule_custom_reminder(
        self,
        title: str,
        message: str,
        at: datetime,
        action: NotificationAction | None = None,
    ) -> str:
        return self.scheduler.schedule_custom_reminder(title, message, at, action)

    def cancel_scheduled_task(self, task_id: str) -> bool:
        return self.scheduler.cancel_task(task_id)

    def shutdown(self) -> None:
        self.watcher.stop()
        self.scheduler.shutdown()

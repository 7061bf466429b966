from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta, timezone

from apscheduler.jobstores.base import JobLookupError
from apscheduler.triggers.date import DateTrigger

from seren_core.errors import InvalidCadence, StorageError
from seren_core.scheduling.scheduler import NotificationScheduler
from seren_core.scheduling.settings import SETTINGS_KEY, load_settings
from seren_core.storage.base import PersistentStore, Unsubscribe

logger = logging.getLogger(__name__)

DEBOUNCE_JOB_ID = "system:settings_debounce"


class SettingsWatcher:
    """Reschedules the scheduler when the persisted settings change.

    Change events are coalesced through a single APScheduler job that is
    pushed back on every event, so a burst of writes ends in one reschedule
    with the final value. Without a timer backend every change flushes
    immediately.
    """

    def __init__(
        self,
        store: PersistentStore,
        scheduler: NotificationScheduler,
        *,
        settings_key: str = SETTINGS_KEY,
        debounce_seconds: float = 0.25,
    ) -> None:
        self._store = store
        self._scheduler = scheduler
        self._settings_key = settings_key
        self._debounce = timedelta(seconds=max(0.0, float(debounce_seconds)))
        self._lock = threading.Lock()
        self._dirty = False
        self._unsubscribe: Unsubscribe | None = None

    @property
    def running(self) -> bool:
        return self._unsubscribe is not None

    def start(self) -> None:
        with self._lock:
            if self._unsubscribe is not None:
                return
            self._unsubscribe = self._store.subscribe(self._on_change)
        logger.info("settings_watcher_started", extra={"event": "settings_watcher_started", "key": self._settings_key})

    def stop(self) -> None:
        with self._lock:
            unsubscribe, self._unsubscribe = self._unsubscribe, None
            self._dirty = False
        if unsubscribe is not None:
            unsubscribe()
        self._cancel_debounce()
        logger.info("settings_watcher_stopped", extra={"event": "settings_watcher_stopped"})

    def flush(self) -> bool:
        """Apply the latest persisted settings if a change is outstanding."""
        with self._lock:
            if not self._dirty:
                return False
            self._dirty = False
        self._cancel_debounce()
        try:
            settings = load_settings(self._store, self._settings_key)
        except StorageError as exc:
            logger.warning("settings_load_failed", extra={"event": "settings_load_failed", "error": str(exc)})
            return False
        try:
            self._scheduler.reschedule(settings)
        except InvalidCadence as exc:
            logger.warning(
                "settings_rejected",
                extra={"event": "settings_rejected", "error": str(exc)},
            )
            return False
        return True

    def _on_change(self, key: str) -> None:
        if key != self._settings_key:
            return
        with self._lock:
            if self._unsubscribe is None:
                return
            self._dirty = True
        backend = self._scheduler.backend
        if backend is None or not backend.running:
            self.flush()
            return
        backend.add_job(
            func=self.flush,
            trigger=DateTrigger(run_date=datetime.now(timezone.utc) + self._debounce),
            id=DEBOUNCE_JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            # a late flush still applies the change
            misfire_grace_time=None,
        )
        logger.debug("settings_change_queued", extra={"event": "settings_change_queued", "key": key})

    def _cancel_debounce(self) -> None:
        backend = self._scheduler.backend
        if backend is None or not backend.running:
            return
        try:
            backend.remove_job(DEBOUNCE_JOB_ID)
        except JobLookupError:
            pass

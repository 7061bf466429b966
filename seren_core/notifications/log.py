"""Bounded, deduplicated notification log persisted as a JSON array.

Entries are kept newest-first. Each mutating call is a full
load -> mutate -> save cycle under an in-process lock; writers in other
processes are last-write-wins.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from uuid import uuid4

from seren_core.errors import CorruptRecord, StorageError
from seren_core.notifications.models import Notification, NotificationPayload
from seren_core.storage.base import PersistentStore
from seren_core.utils.clock import Clock

logger = logging.getLogger(__name__)

MAX_LOG_SIZE = 200
DUPLICATE_WINDOW = timedelta(minutes=5)
NOTIFICATIONS_KEY = "serenai-notifications"


@dataclass(frozen=True, slots=True)
class AppendResult:
    notification: Notification | None
    appended: bool
    reason: str | None = None


class NotificationLog:
    def __init__(
        self,
        store: PersistentStore,
        *,
        clock: Clock,
        key: str = NOTIFICATIONS_KEY,
        max_size: int = MAX_LOG_SIZE,
        duplicate_window: timedelta = DUPLICATE_WINDOW,
    ) -> None:
        if max_size < 1:
            raise ValueError("max_size must be >= 1")
        self._store = store
        self._clock = clock
        self._key = key
        self._max_size = max_size
        self._duplicate_window = duplicate_window
        self._lock = threading.Lock()
        self._snapshot: list[Notification] = []

    @property
    def key(self) -> str:
        return self._key

    def append(self, payload: NotificationPayload) -> AppendResult:
        with self._lock:
            try:
                entries = self._load()
                now = self._now()
                if self._is_duplicate(entries, payload, now):
                    logger.debug(
                        "notification_duplicate_suppressed",
                        extra={"event": "notification_duplicate_suppressed", "title": payload.title},
                    )
                    return AppendResult(notification=None, appended=False, reason="duplicate")
                # createdAt never runs backwards relative to the head entry
                created_at = now if not entries or now >= entries[0].created_at else entries[0].created_at
                notification = Notification(
                    id=f"notif-{uuid4().hex}",
                    title=payload.title,
                    message=payload.message,
                    category=payload.category,
                    created_at=created_at,
                    read=False,
                    action=payload.action,
                )
                updated = [notification, *entries]
                evicted = len(updated) - self._max_size
                self._save(updated[: self._max_size])
            except StorageError as exc:
                logger.warning("notification_append_failed", extra={"event": "notification_append_failed", "error": str(exc)})
                return AppendResult(notification=None, appended=False, reason="storage_error")
        if evicted > 0:
            logger.debug("notification_log_trimmed", extra={"event": "notification_log_trimmed", "evicted": evicted})
        return AppendResult(notification=notification, appended=True)

    def mark_read(self, notification_id: str) -> bool:
        with self._lock:
            try:
                entries = self._load()
                for index, entry in enumerate(entries):
                    if entry.id == notification_id:
                        if not entry.read:
                            entries[index] = entry.mark_read()
                            self._save(entries)
                        return True
                return False
            except StorageError as exc:
                logger.warning("notification_mark_read_failed", extra={"event": "notification_mark_read_failed", "id": notification_id, "error": str(exc)})
                return False

    def mark_all_read(self) -> bool:
        with self._lock:
            try:
                entries = self._load()
                if not entries or all(entry.read for entry in entries):
                    return True
                self._save([entry.mark_read() for entry in entries])
                return True
            except StorageError as exc:
                logger.warning("notification_mark_all_read_failed", extra={"event": "notification_mark_all_read_failed", "error": str(exc)})
                return False

    def delete(self, notification_id: str) -> bool:
        with self._lock:
            try:
                entries = self._load()
                remaining = [entry for entry in entries if entry.id != notification_id]
                if len(remaining) == len(entries):
                    return False
                self._save(remaining)
                return True
            except StorageError as exc:
                logger.warning("notification_delete_failed", extra={"event": "notification_delete_failed", "id": notification_id, "error": str(exc)})
                return False

    def clear(self) -> bool:
        with self._lock:
            try:
                self._store.delete(self._key)
            except StorageError as exc:
                logger.warning("notification_clear_failed", extra={"event": "notification_clear_failed", "error": str(exc)})
                return False
            self._snapshot = []
            return True

    def list(self, unread_only: bool = False) -> list[Notification]:
        entries = self._read_entries()
        if unread_only:
            return [entry for entry in entries if not entry.read]
        return entries

    def unread_count(self) -> int:
        return sum(1 for entry in self._read_entries() if not entry.read)

    def recent(self, limit: int = 5) -> list[Notification]:
        return self._read_entries()[: max(0, int(limit))]

    def _read_entries(self) -> list[Notification]:
        with self._lock:
            try:
                return self._load()
            except StorageError as exc:
                logger.warning("notification_load_failed", extra={"event": "notification_load_failed", "error": str(exc)})
                return list(self._snapshot)

    def _load(self) -> list[Notification]:
        raw = self._store.read(self._key)
        entries: list[Notification] = []
        if raw is None:
            pass
        elif not isinstance(raw, list):
            logger.warning("notification_log_not_a_list", extra={"event": "notification_log_not_a_list", "type": type(raw).__name__})
        else:
            dropped = 0
            for record in raw:
                try:
                    entries.append(Notification.from_record(record))
                except CorruptRecord as exc:
                    dropped += 1
                    logger.debug("notification_record_dropped: %s", exc)
            if dropped:
                logger.debug("notification_records_dropped", extra={"event": "notification_records_dropped", "count": dropped})
        entries = entries[: self._max_size]
        self._snapshot = list(entries)
        return entries

    def _save(self, entries: list[Notification]) -> None:
        self._store.write(self._key, [entry.to_record() for entry in entries])
        self._snapshot = list(entries)

    def _is_duplicate(self, entries: list[Notification], payload: NotificationPayload, now: datetime) -> bool:
        return any(
            entry.title == payload.title
            and entry.message == payload.message
            and now - entry.created_at < self._duplicate_window
            for entry in entries
        )

    def _now(self) -> datetime:
        now = self._clock.now()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        return now

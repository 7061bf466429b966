from __future__ import annotations

import json
import logging
import threading
from typing import Any

from seren_core.errors import StorageReadError, StorageWriteError
from seren_core.storage.base import ChangeListener, Unsubscribe

logger = logging.getLogger(__name__)


class MemoryStore:
    """In-process store used when Redis is not configured, and in tests.

    Values are kept JSON-encoded so they round-trip exactly like the Redis
    backend. Listeners are called synchronously after every write/delete.
    """

    def __init__(self) -> None:
        self._data: dict[str, str] = {}
        self._listeners: list[ChangeListener] = []
        self._lock = threading.Lock()

    def read(self, key: str) -> Any | None:
        with self._lock:
            raw = self._data.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError as exc:
            raise StorageReadError(key, f"invalid JSON payload: {exc}") from exc

    def write(self, key: str, value: Any) -> None:
        try:
            payload = json.dumps(value)
        except (TypeError, ValueError) as exc:
            raise StorageWriteError(key, f"value is not JSON serializable: {exc}") from exc
        with self._lock:
            self._data[key] = payload
        self._notify(key)

    def delete(self, key: str) -> None:
        with self._lock:
            existed = self._data.pop(key, None) is not None
        if existed:
            self._notify(key)

    def subscribe(self, listener: ChangeListener) -> Unsubscribe:
        with self._lock:
            self._listeners.append(listener)

        def _unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self, key: str) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(key)
            except Exception as exc:  # noqa: BLE001
                logger.warning("store_listener_failed", extra={"event": "store_listener_failed", "key": key, "error": str(exc)})

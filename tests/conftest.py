from datetime import datetime, timezone

import pytest
from apscheduler.schedulers.background import BackgroundScheduler

from seren_core.notifications.log import NotificationLog
from seren_core.scheduling.cadences import CadenceCatalog
from seren_core.scheduling.scheduler import NotificationScheduler
from seren_core.storage.memory_store import MemoryStore
from seren_core.utils.clock import ManualClock

# Monday 2025-03-10 08:00 UTC
START = datetime(2025, 3, 10, 8, 0, tzinfo=timezone.utc)


class RawMemoryStore(MemoryStore):
    """MemoryStore that can also hold payloads that are not valid JSON."""

    def write_raw(self, key: str, payload: str) -> None:
        with self._lock:
            self._data[key] = payload
        self._notify(key)


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(START)


@pytest.fixture
def store() -> RawMemoryStore:
    return RawMemoryStore()


@pytest.fixture
def backend():
    scheduler = BackgroundScheduler(timezone="UTC")
    scheduler.start(paused=True)
    yield scheduler
    if scheduler.running:
        scheduler.shutdown(wait=False)


@pytest.fixture
def log(store: RawMemoryStore, clock: ManualClock) -> NotificationLog:
    return NotificationLog(store, clock=clock)


@pytest.fixture
def scheduler(log: NotificationLog, clock: ManualClock, backend) -> NotificationScheduler:
    return NotificationScheduler(
        log.append,
        clock=clock,
        catalog=CadenceCatalog(),
        history=log.list,
        backend=backend,
    )

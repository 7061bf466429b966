"""Recurring notification scheduler.

Scheduler rules:
- Exactly one Pending task per enabled cadence; the pending table is the
  source of truth and APScheduler only supplies the timers.
- A fired cadence is re-armed even when producing or appending its
  notification fails.
- Nothing is persisted: the pending set is recomputed from settings on start.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from apscheduler.events import EVENT_JOB_MISSED, JobExecutionEvent
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.base import BaseScheduler
from apscheduler.triggers.date import DateTrigger

from seren_core.errors import InvalidCadence, StorageError
from seren_core.notifications import factories
from seren_core.notifications.models import (
    Notification,
    NotificationAction,
    NotificationCategory,
    NotificationPayload,
)
from seren_core.scheduling.cadences import ActivitySlot, CadenceCatalog
from seren_core.scheduling.models import Cadence, CadenceKind, FireOutcome, Producer, ScheduledTask, TaskState
from seren_core.scheduling.settings import UserSettings
from seren_core.storage.base import PersistentStore
from seren_core.utils.clock import Clock

logger = logging.getLogger(__name__)

Sink = Callable[[NotificationPayload], Any]
History = Callable[[], Iterable[Notification]]

MONTHLY_ACHIEVEMENT_MESSAGE = "completed another month of wellness activities!"


class NotificationScheduler:
    """Arms one timer per enabled cadence and appends to the sink when they elapse."""

    def __init__(
        self,
        sink: Sink,
        *,
        clock: Clock,
        catalog: CadenceCatalog | None = None,
        history: History | None = None,
        backend: BaseScheduler | None = None,
        misfire_grace_seconds: int = 120,
        state_store: PersistentStore | None = None,
        state_key: str = "scheduler:state",
    ) -> None:
        self._sink = sink
        self._clock = clock
        self._catalog = catalog or CadenceCatalog()
        self._history = history
        self._backend = backend
        self._misfire_grace = max(1, int(misfire_grace_seconds))
        self._state_store = state_store
        self._state_key = state_key
        self._lock = threading.RLock()
        self._pending: dict[str, ScheduledTask] = {}
        self._generation = 0
        self._settings: UserSettings | None = None
        if backend is not None:
            backend.add_listener(self._on_job_missed, EVENT_JOB_MISSED)

    @property
    def backend(self) -> BaseScheduler | None:
        return self._backend

    @property
    def settings(self) -> UserSettings | None:
        return self._settings

    def start(self, settings: UserSettings) -> list[ScheduledTask]:
        return self._apply(settings, event="scheduler_started")

    def reschedule(self, settings: UserSettings) -> list[ScheduledTask]:
        return self._apply(settings, event="scheduler_rescheduled")

    def cleanup(self) -> None:
        with self._lock:
            cancelled = len(self._pending)
            self._cancel_all_locked()
        logger.info("scheduler_cleanup", extra={"event": "scheduler_cleanup", "cancelled": cancelled})
        self._publish_state()

    def shutdown(self) -> None:
        self.cleanup()
        if self._backend is not None and self._backend.running:
            self._backend.shutdown(wait=False)
        logger.info("scheduler_stopped", extra={"event": "scheduler_stopped"})

    def pending_tasks(self) -> list[ScheduledTask]:
        with self._lock:
            return sorted(self._pending.values(), key=lambda task: task.fire_at)

    def get_upcoming_jobs(self, limit: int = 20) -> list[dict[str, Any]]:
        rows = [
            {
                "id": task.id,
                "cadence": task.cadence.key,
                "kind": task.cadence.kind.value,
                "fire_at": task.fire_at.isoformat(),
                "state": task.state.value,
            }
            for task in self.pending_tasks()
        ]
        return rows[: max(1, int(limit))]

    def schedule_custom_reminder(
        self,
        title: str,
        message: str,
        at: datetime,
        action: NotificationAction | None = None,
    ) -> str:
        """Arm a one-shot reminder. It is not re-armed and is cancelled by reschedule."""
        cadence = Cadence(key=f"custom:{uuid4().hex[:12]}", kind=CadenceKind.CUSTOM, run_at=at)
        payload = NotificationPayload(title=title, message=message, category=NotificationCategory.REMINDER, action=action)
        with self._lock:
            fire_at = cadence.next_fire(self._clock.now())
            self._ensure_backend()
            task = self._arm_locked(cadence, lambda _now: payload, fire_at)
        self._publish_state()
        return task.id

    def cancel_task(self, task_id: str) -> bool:
        with self._lock:
            for task in list(self._pending.values()):
                if task.id == task_id:
                    self._cancel_locked(task)
                    break
            else:
                return False
        logger.info("scheduler_task_cancelled", extra={"event": "scheduler_task_cancelled", "task_id": task_id})
        self._publish_state()
        return True

    def run_due(self, now: datetime | None = None) -> list[FireOutcome]:
        """Fire every pending task due at ``now`` (defaults to the clock), oldest first."""
        reference = now or self._clock.now()
        outcomes: list[FireOutcome] = []
        while True:
            with self._lock:
                due = sorted(
                    (task for task in self._pending.values() if task.fire_at <= reference),
                    key=lambda task: task.fire_at,
                )
            if not due:
                return outcomes
            for task in due:
                self._remove_job(task.id)
                outcome = self._fire(task, now=reference)
                if outcome is not None:
                    outcomes.append(outcome)

    def _apply(self, settings: UserSettings, *, event: str) -> list[ScheduledTask]:
        settings.validate()
        with self._lock:
            now = self._clock.now()
            # resolve every fire time before touching the live schedule
            plan = [(cadence, producer, cadence.next_fire(now)) for cadence, producer in self._plan(settings)]
            self._ensure_backend()
            self._cancel_all_locked()
            self._settings = settings
            armed = [self._arm_locked(cadence, producer, fire_at) for cadence, producer, fire_at in plan]
        logger.info(
            event,
            extra={
                "event": event,
                "task_count": len(armed),
                "notifications_enabled": settings.notifications_enabled,
            },
        )
        self._publish_state()
        return armed

    def _plan(self, settings: UserSettings) -> list[tuple[Cadence, Producer]]:
        if not settings.notifications_enabled:
            return []
        plan: list[tuple[Cadence, Producer]] = []
        if settings.email_reminders:
            hour, minute = settings.reminder_clock
            plan.append((Cadence("daily_reminder", CadenceKind.DAILY, hour, minute), _produce_daily_reminder))
        if settings.daily_digest:
            hour, minute = settings.digest_clock
            plan.append((Cadence("daily_digest", CadenceKind.DAILY, hour, minute), _produce_daily_digest))
        if settings.activity_reminders:
            for index, slot in enumerate(self._catalog.activity_slots):
                cadence = Cadence(f"activity_slot:{index}", CadenceKind.ACTIVITY_SLOT, slot.hour, slot.minute)
                plan.append((cadence, _activity_producer(slot)))
        catalog = self._catalog
        plan.append(
            (
                Cadence(
                    "weekly_summary",
                    CadenceKind.WEEKLY,
                    catalog.weekly_summary_hour,
                    catalog.weekly_summary_minute,
                    day_of_week=catalog.weekly_summary_day,
                ),
                _produce_weekly_summary,
            )
        )
        plan.append(
            (
                Cadence(
                    "monthly_achievements",
                    CadenceKind.MONTHLY,
                    catalog.monthly_achievement_hour,
                    catalog.monthly_achievement_minute,
                    day_of_month=catalog.monthly_achievement_day,
                ),
                self._produce_monthly_achievement,
            )
        )
        return plan

    def _produce_monthly_achievement(self, now: datetime) -> NotificationPayload | None:
        if self._history is not None:
            for entry in self._history():
                if entry.category is NotificationCategory.ACHIEVEMENT and _same_day(entry.created_at, now):
                    logger.info("scheduler_achievement_already_sent", extra={"event": "scheduler_achievement_already_sent"})
                    return None
        return factories.achievement(MONTHLY_ACHIEVEMENT_MESSAGE)

    def _on_timer(self, task: ScheduledTask) -> None:
        self._fire(task)

    def _on_job_missed(self, event: JobExecutionEvent) -> None:
        # APScheduler drops a one-shot job that overran its grace period; fire it late instead
        with self._lock:
            task = next((task for task in self._pending.values() if task.id == event.job_id), None)
        if task is None:
            return
        logger.warning(
            "scheduler_task_missed",
            extra={
                "event": "scheduler_task_missed",
                "task_id": task.id,
                "scheduled_run_time": str(event.scheduled_run_time),
            },
        )
        self._fire(task)

    def _fire(self, task: ScheduledTask, now: datetime | None = None) -> FireOutcome | None:
        key = task.cadence.key
        with self._lock:
            is_current = self._pending.get(key) is task
            if is_current:
                task.transition(TaskState.FIRED)
                del self._pending[key]
            elif task.state is not TaskState.CANCELLED:
                # fired already through the other path (timer vs run_due)
                return None
            generation = self._generation

        fired_at = now or self._clock.now()
        appended = False
        error: str | None = None
        try:
            payload = task.producer(fired_at)
            if payload is not None:
                result = self._sink(payload)
                appended = bool(getattr(result, "appended", result))
                reason = getattr(result, "reason", None)
                if not appended and reason not in (None, "duplicate"):
                    error = str(reason)
        except Exception as exc:  # noqa: BLE001
            error = f"{type(exc).__name__}: {exc}"
        if error is not None:
            logger.warning(
                "scheduler_fire_failed",
                extra={"event": "scheduler_fire_failed", "task_id": task.id, "cadence": key, "error": error},
            )

        next_fire_at: datetime | None = None
        if is_current and task.cadence.recurring:
            with self._lock:
                # a reschedule in the meantime already armed (or dropped) this cadence
                if self._generation == generation and key not in self._pending:
                    try:
                        reference = max(fired_at, task.fire_at)
                        next_task = self._arm_locked(task.cadence, task.producer, task.cadence.next_fire(reference))
                        next_fire_at = next_task.fire_at
                    except InvalidCadence as exc:
                        logger.warning(
                            "scheduler_rearm_failed",
                            extra={"event": "scheduler_rearm_failed", "cadence": key, "error": str(exc)},
                        )

        logger.info(
            "scheduler_task_fired",
            extra={
                "event": "scheduler_task_fired",
                "task_id": task.id,
                "cadence": key,
                "appended": appended,
                "stale": not is_current,
                "next_fire_at": next_fire_at.isoformat() if next_fire_at else "",
            },
        )
        self._publish_state()
        return FireOutcome(
            task_id=task.id,
            cadence_key=key,
            fired_at=fired_at,
            appended=appended,
            error=error,
            next_fire_at=next_fire_at,
        )

    def _arm_locked(self, cadence: Cadence, producer: Producer, fire_at: datetime) -> ScheduledTask:
        previous = self._pending.get(cadence.key)
        if previous is not None:
            self._cancel_locked(previous)
        task = ScheduledTask(cadence=cadence, fire_at=fire_at, producer=producer)
        self._pending[cadence.key] = task
        if self._backend is not None:
            self._backend.add_job(
                func=self._on_timer,
                trigger=DateTrigger(run_date=fire_at),
                id=task.id,
                replace_existing=True,
                kwargs={"task": task},
                max_instances=1,
                coalesce=True,
                misfire_grace_time=self._misfire_grace,
            )
        logger.debug(
            "scheduler_task_armed",
            extra={"event": "scheduler_task_armed", "task_id": task.id, "fire_at": fire_at.isoformat()},
        )
        return task

    def _cancel_locked(self, task: ScheduledTask) -> None:
        task.transition(TaskState.CANCELLED)
        if self._pending.get(task.cadence.key) is task:
            del self._pending[task.cadence.key]
        self._remove_job(task.id)

    def _cancel_all_locked(self) -> None:
        self._generation += 1
        for task in list(self._pending.values()):
            self._cancel_locked(task)

    def _remove_job(self, job_id: str) -> None:
        if self._backend is None:
            return
        try:
            self._backend.remove_job(job_id)
        except JobLookupError:
            pass

    def _ensure_backend(self) -> None:
        if self._backend is not None and not self._backend.running:
            self._backend.start()

    def _publish_state(self) -> None:
        if self._state_store is None:
            return
        try:
            self._state_store.write(
                self._state_key,
                {
                    "timestamp": datetime.now(timezone.utc).isoformat(),
                    "task_count": len(self._pending),
                    "upcoming": self.get_upcoming_jobs(limit=100),
                },
            )
        except StorageError as exc:
            logger.debug("scheduler_state_publish_failed: %s", exc)


def _produce_daily_reminder(_now: datetime) -> NotificationPayload:
    return factories.daily_reminder()


def _produce_daily_digest(_now: datetime) -> NotificationPayload:
    return factories.daily_digest()


def _produce_weekly_summary(_now: datetime) -> NotificationPayload:
    return factories.weekly_summary()


def _activity_producer(slot: ActivitySlot) -> Producer:
    def _produce(_now: datetime) -> NotificationPayload:
        return factories.activity_reminder(slot.activity, slot.target)

    return _produce


def _same_day(created_at: datetime, now: datetime) -> bool:
    if now.tzinfo is None:
        return created_at.replace(tzinfo=None).date() == now.date()
    return created_at.astimezone(now.tzinfo).date() == now.date()

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from seren_core.errors import InvalidCadence
from seren_core.notifications.models import NotificationPayload
from seren_core.scheduling.recurrence import next_daily, next_monthly, next_weekly

Producer = Callable[[datetime], NotificationPayload | None]


class CadenceKind(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    ACTIVITY_SLOT = "activity_slot"
    CUSTOM = "custom"


class TaskState(str, Enum):
    PENDING = "pending"
    FIRED = "fired"
    CANCELLED = "cancelled"


@dataclass(frozen=True, slots=True)
class Cadence:
    key: str
    kind: CadenceKind
    hour: int = 0
    minute: int = 0
    day_of_week: int | None = None
    day_of_month: int | None = None
    run_at: datetime | None = None

    @property
    def recurring(self) -> bool:
        return self.kind is not CadenceKind.CUSTOM

    def next_fire(self, now: datetime) -> datetime:
        if self.kind in (CadenceKind.DAILY, CadenceKind.ACTIVITY_SLOT):
            return next_daily(self.hour, self.minute, now)
        if self.kind is CadenceKind.WEEKLY:
            if self.day_of_week is None:
                raise InvalidCadence(f"{self.key}: weekly cadence requires day_of_week")
            return next_weekly(self.day_of_week, self.hour, self.minute, now)
        if self.kind is CadenceKind.MONTHLY:
            if self.day_of_month is None:
                raise InvalidCadence(f"{self.key}: monthly cadence requires day_of_month")
            return next_monthly(self.day_of_month, self.hour, self.minute, now)
        if self.run_at is None or self.run_at <= now:
            raise InvalidCadence(f"{self.key}: one-shot reminder must be in the future")
        return self.run_at


def task_id_for(cadence_key: str, fire_at: datetime) -> str:
    return f"{cadence_key}@{fire_at.isoformat()}"


@dataclass(eq=False)
class ScheduledTask:
    cadence: Cadence
    fire_at: datetime
    producer: Producer
    state: TaskState = TaskState.PENDING
    id: str = field(init=False)

    def __post_init__(self) -> None:
        self.id = task_id_for(self.cadence.key, self.fire_at)

    def transition(self, target: TaskState) -> None:
        """Move out of PENDING; FIRED and CANCELLED are terminal."""
        if self.state is TaskState.PENDING:
            self.state = target


@dataclass(frozen=True, slots=True)
class FireOutcome:
    task_id: str
    cadence_key: str
    fired_at: datetime
    appended: bool
    error: str | None = None
    next_fire_at: datetime | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

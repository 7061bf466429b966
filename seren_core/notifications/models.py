from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from seren_core.errors import CorruptRecord


class NotificationCategory(str, Enum):
    # Written lowercase as the dashboard stores them; "Info"/"Reminder"/... are read too.
    INFO = "info"
    REMINDER = "reminder"
    ACHIEVEMENT = "achievement"
    SYSTEM = "system"


@dataclass(frozen=True, slots=True)
class NotificationAction:
    label: str
    target: str

    def to_dict(self) -> dict[str, str]:
        return {"label": self.label, "target": self.target}


@dataclass(frozen=True, slots=True)
class NotificationPayload:
    """Caller-supplied content; the log assigns identity and timestamps."""

    title: str
    message: str
    category: NotificationCategory = NotificationCategory.INFO
    action: NotificationAction | None = None


@dataclass(frozen=True, slots=True)
class Notification:
    id: str
    title: str
    message: str
    category: NotificationCategory
    created_at: datetime
    read: bool = False
    action: NotificationAction | None = None

    def mark_read(self) -> "Notification":
        return self if self.read else replace(self, read=True)

    def to_record(self) -> dict[str, Any]:
        record: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "message": self.message,
            "category": self.category.value,
            "createdAt": self.created_at.isoformat(),
            "read": self.read,
        }
        if self.action is not None:
            record["action"] = self.action.to_dict()
        return record

    @classmethod
    def from_record(cls, record: Any) -> "Notification":
        if not isinstance(record, dict):
            raise CorruptRecord(f"expected object, got {type(record).__name__}")
        for field_name in ("id", "title", "message"):
            value = record.get(field_name)
            if not isinstance(value, str) or not value:
                raise CorruptRecord(f"missing {field_name}")
        created_at = parse_timestamp(record.get("createdAt"))
        if created_at is None:
            raise CorruptRecord(f"unparseable createdAt for {record['id']}")
        try:
            category = NotificationCategory(str(record.get("category", "info")).strip().lower())
        except ValueError as exc:
            raise CorruptRecord(f"unknown category for {record['id']}") from exc
        return cls(
            id=record["id"],
            title=record["title"],
            message=record["message"],
            category=category,
            created_at=created_at,
            read=bool(record.get("read", False)),
            action=_parse_action(record.get("action")),
        )


def parse_timestamp(value: Any) -> datetime | None:
    if not value or not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _parse_action(raw: Any) -> NotificationAction | None:
    if not isinstance(raw, dict):
        return None
    label = raw.get("label")
    # older records used "href"
    target = raw.get("target", raw.get("href"))
    if not isinstance(label, str) or not isinstance(target, str):
        return None
    return NotificationAction(label=label, target=target)

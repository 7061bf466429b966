from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import asdict, dataclass, fields, replace
from typing import Any

from seren_core.errors import InvalidCadence
from seren_core.scheduling.recurrence import parse_clock
from seren_core.storage.base import PersistentStore

logger = logging.getLogger(__name__)

SETTINGS_KEY = "serenai-notification-settings"

_WIRE_NAMES = {
    "notifications_enabled": "notificationsEnabled",
    "email_reminders": "emailReminders",
    "daily_digest": "dailyDigest",
    "activity_reminders": "activityReminders",
    "reminder_time": "reminderTime",
    "digest_time": "digestTime",
    "data_sharing": "dataSharing",
    "language": "language",
}
_FIELD_NAMES = {wire: name for name, wire in _WIRE_NAMES.items()}


def _coerce_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


@dataclass(frozen=True)
class UserSettings:
    """Snapshot of the user's notification preferences (owned by the settings page)."""

    notifications_enabled: bool = True
    email_reminders: bool = True
    daily_digest: bool = True
    activity_reminders: bool = True
    reminder_time: str = "09:00"
    digest_time: str = "20:00"
    data_sharing: bool = False
    language: str = "en"

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any] | None) -> "UserSettings":
        return cls().merged(raw or {})

    def merged(self, partial: Mapping[str, Any]) -> "UserSettings":
        known = {item.name: item for item in fields(self)}
        updates: dict[str, Any] = {}
        for key, value in partial.items():
            name = _FIELD_NAMES.get(key, key)
            if name not in known or value is None:
                continue
            default = getattr(self, name)
            updates[name] = _coerce_bool(value) if isinstance(default, bool) else str(value).strip()
        return replace(self, **updates)

    def to_dict(self) -> dict[str, Any]:
        return {_WIRE_NAMES[name]: value for name, value in asdict(self).items()}

    def validate(self) -> None:
        for name in ("reminder_time", "digest_time"):
            try:
                parse_clock(getattr(self, name))
            except InvalidCadence as exc:
                raise InvalidCadence(f"{_WIRE_NAMES[name]}: {exc}") from exc

    @property
    def reminder_clock(self) -> tuple[int, int]:
        return parse_clock(self.reminder_time)

    @property
    def digest_clock(self) -> tuple[int, int]:
        return parse_clock(self.digest_time)


def load_settings(store: PersistentStore, key: str = SETTINGS_KEY) -> UserSettings:
    """Read persisted settings merged onto defaults. Storage errors propagate."""
    raw = store.read(key)
    if raw is None:
        return UserSettings()
    if not isinstance(raw, dict):
        logger.warning("settings_payload_invalid", extra={"event": "settings_payload_invalid", "type": type(raw).__name__})
        return UserSettings()
    return UserSettings.from_dict(raw)

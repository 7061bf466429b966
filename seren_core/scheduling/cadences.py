"""Catalog of the fixed cadences (activity slots, weekly summary, monthly check).

Loaded from ``cadences.yaml`` when present; invalid entries are skipped with a
warning and missing sections fall back to the built-in defaults.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from seren_core.errors import InvalidCadence
from seren_core.scheduling.recurrence import parse_clock
from seren_core.utils.config_paths import resolve_config_file

logger = logging.getLogger(__name__)

_WEEKDAY_MAPPING = {
    "sun": 0,
    "sunday": 0,
    "mon": 1,
    "monday": 1,
    "tue": 2,
    "tuesday": 2,
    "wed": 3,
    "wednesday": 3,
    "thu": 4,
    "thursday": 4,
    "fri": 5,
    "friday": 5,
    "sat": 6,
    "saturday": 6,
}


@dataclass(frozen=True)
class ActivitySlot:
    hour: int
    minute: int
    activity: str
    target: str = "/dashboard/activities"


DEFAULT_ACTIVITY_SLOTS = (
    ActivitySlot(10, 0, "breathing", "/dashboard/activities/breathing"),
    ActivitySlot(14, 0, "mindfulness", "/dashboard/activities/mindfulness"),
    ActivitySlot(16, 0, "mood check", "/dashboard/mood"),
)


@dataclass(frozen=True)
class CadenceCatalog:
    activity_slots: tuple[ActivitySlot, ...] = DEFAULT_ACTIVITY_SLOTS
    weekly_summary_day: int = 0
    weekly_summary_hour: int = 18
    weekly_summary_minute: int = 0
    monthly_achievement_day: int = 1
    monthly_achievement_hour: int = 9
    monthly_achievement_minute: int = 0


def normalize_weekday(raw: Any) -> int:
    if isinstance(raw, int) and not isinstance(raw, bool) and 0 <= raw <= 6:
        return raw
    text = str(raw).strip().lower()
    if text in _WEEKDAY_MAPPING:
        return _WEEKDAY_MAPPING[text]
    raise InvalidCadence(f"unknown weekday {raw!r}")


def load_cadence_catalog(path: Path | None = None) -> CadenceCatalog:
    config_path = path or resolve_config_file("cadences.yaml")
    if not config_path.exists():
        logger.info("cadence_catalog_defaults", extra={"event": "cadence_catalog_defaults", "path": str(config_path)})
        return CadenceCatalog()
    try:
        with config_path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except (OSError, yaml.YAMLError) as exc:
        logger.warning("cadence_catalog_load_failed", extra={"event": "cadence_catalog_load_failed", "path": str(config_path), "error": str(exc)})
        return CadenceCatalog()
    if not isinstance(data, dict):
        logger.warning("cadence_catalog_invalid", extra={"event": "cadence_catalog_invalid", "path": str(config_path)})
        return CadenceCatalog()

    defaults = CadenceCatalog()
    slots = _parse_slots(data.get("activity_slots"), defaults.activity_slots)

    weekly_day, weekly_hour, weekly_minute = (
        defaults.weekly_summary_day,
        defaults.weekly_summary_hour,
        defaults.weekly_summary_minute,
    )
    weekly = data.get("weekly_summary")
    if isinstance(weekly, dict):
        try:
            weekly_day = normalize_weekday(weekly.get("weekday", weekly_day))
            weekly_hour, weekly_minute = parse_clock(str(weekly.get("at", f"{weekly_hour:02d}:{weekly_minute:02d}")))
        except InvalidCadence as exc:
            logger.warning("cadence_catalog_entry_skipped", extra={"event": "cadence_catalog_entry_skipped", "entry": "weekly_summary", "error": str(exc)})
            weekly_day, weekly_hour, weekly_minute = (
                defaults.weekly_summary_day,
                defaults.weekly_summary_hour,
                defaults.weekly_summary_minute,
            )

    monthly_day, monthly_hour, monthly_minute = (
        defaults.monthly_achievement_day,
        defaults.monthly_achievement_hour,
        defaults.monthly_achievement_minute,
    )
    monthly = data.get("monthly_achievements")
    if isinstance(monthly, dict):
        try:
            day = int(monthly.get("day", monthly_day))
            if not 1 <= day <= 31:
                raise InvalidCadence(f"day must be within 1..31, got {day}")
            hour, minute = parse_clock(str(monthly.get("at", f"{monthly_hour:02d}:{monthly_minute:02d}")))
            monthly_day, monthly_hour, monthly_minute = day, hour, minute
        except (InvalidCadence, TypeError, ValueError) as exc:
            logger.warning("cadence_catalog_entry_skipped", extra={"event": "cadence_catalog_entry_skipped", "entry": "monthly_achievements", "error": str(exc)})

    catalog = CadenceCatalog(
        activity_slots=slots,
        weekly_summary_day=weekly_day,
        weekly_summary_hour=weekly_hour,
        weekly_summary_minute=weekly_minute,
        monthly_achievement_day=monthly_day,
        monthly_achievement_hour=monthly_hour,
        monthly_achievement_minute=monthly_minute,
    )
    logger.info(
        "cadence_catalog_loaded",
        extra={"event": "cadence_catalog_loaded", "path": str(config_path), "activity_slots": len(catalog.activity_slots)},
    )
    return catalog


def _parse_slots(raw: Any, fallback: tuple[ActivitySlot, ...]) -> tuple[ActivitySlot, ...]:
    if raw is None:
        return fallback
    if not isinstance(raw, list):
        logger.warning("cadence_catalog_entry_skipped", extra={"event": "cadence_catalog_entry_skipped", "entry": "activity_slots", "error": "not a list"})
        return fallback
    slots: list[ActivitySlot] = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        activity = str(item.get("activity", "")).strip()
        if not activity:
            continue
        try:
            hour, minute = parse_clock(str(item.get("at", "")))
        except InvalidCadence as exc:
            logger.warning("cadence_catalog_entry_skipped", extra={"event": "cadence_catalog_entry_skipped", "entry": activity, "error": str(exc)})
            continue
        target = str(item.get("target", "/dashboard/activities")).strip() or "/dashboard/activities"
        slots.append(ActivitySlot(hour=hour, minute=minute, activity=activity, target=target))
    return tuple(slots)

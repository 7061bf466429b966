from seren_core.scheduling.cadences import ActivitySlot, CadenceCatalog, load_cadence_catalog
from seren_core.scheduling.models import Cadence, CadenceKind, FireOutcome, ScheduledTask, TaskState
from seren_core.scheduling.recurrence import next_daily, next_monthly, next_weekly, parse_clock
from seren_core.scheduling.scheduler import NotificationScheduler
from seren_core.scheduling.settings import SETTINGS_KEY, UserSettings, load_settings
from seren_core.scheduling.settings_watcher import SettingsWatcher

__all__ = [
    "ActivitySlot",
    "CadenceCatalog",
    "load_cadence_catalog",
    "Cadence",
    "CadenceKind",
    "FireOutcome",
    "ScheduledTask",
    "TaskState",
    "next_daily",
    "next_monthly",
    "next_weekly",
    "parse_clock",
    "NotificationScheduler",
    "SETTINGS_KEY",
    "UserSettings",
    "load_settings",
    "SettingsWatcher",
]

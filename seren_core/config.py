import os
from dataclasses import dataclass

from dotenv import load_dotenv

from seren_core.utils.clock import safe_timezone_name

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int, minimum: int = 0) -> int:
    try:
        return max(minimum, int(os.getenv(name, str(default))))
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return max(0.0, float(os.getenv(name, str(default))))
    except ValueError:
        return default


@dataclass
class AppConfig:
    store_backend: str = os.getenv("SEREN_STORE_BACKEND", "redis").strip().lower()

    redis_host: str = os.getenv("REDIS_HOST", "redis")
    redis_port: int = _env_int("REDIS_PORT", 6379)
    redis_password: str = os.getenv("REDIS_PASSWORD", "")
    redis_db: int = _env_int("REDIS_DB", 0)
    redis_retry_attempts: int = _env_int("REDIS_RETRY_ATTEMPTS", 3, minimum=1)

    key_prefix: str = os.getenv("SEREN_KEY_PREFIX", "serenai:")
    notifications_key: str = os.getenv("SEREN_NOTIFICATIONS_KEY", "serenai-notifications")
    settings_key: str = os.getenv("SEREN_SETTINGS_KEY", "serenai-notification-settings")
    scheduler_state_key: str = os.getenv("SEREN_SCHEDULER_STATE_KEY", "scheduler:state")
    change_channel: str = os.getenv("SEREN_CHANGE_CHANNEL", "serenai:changes")

    system_timezone: str = safe_timezone_name(os.getenv("TZ", "UTC"), "UTC")

    max_log_size: int = _env_int("NOTIFICATION_MAX_LOG_SIZE", 200, minimum=1)
    duplicate_window_seconds: int = _env_int("NOTIFICATION_DUPLICATE_WINDOW_SECONDS", 300)
    settings_debounce_seconds: float = _env_float("SETTINGS_DEBOUNCE_SECONDS", 0.25)
    misfire_grace_seconds: int = _env_int("SCHEDULER_MISFIRE_GRACE_SECONDS", 120, minimum=1)
    publish_scheduler_state: bool = _env_bool("SCHEDULER_PUBLISH_STATE", True)

    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    def redis_url(self, redacted: bool = False) -> str:
        password = "***" if redacted and self.redis_password else self.redis_password
        auth = f":{password}@" if password else ""
        return f"redis://{auth}{self.redis_host}:{self.redis_port}/{self.redis_db}"

from seren_core.utils.clock import Clock, ManualClock, SystemClock, safe_timezone_name
from seren_core.utils.config_paths import resolve_config_file
from seren_core.utils.retry import RetryError, with_retry

__all__ = [
    "Clock",
    "ManualClock",
    "SystemClock",
    "safe_timezone_name",
    "resolve_config_file",
    "RetryError",
    "with_retry",
]

from seren_core.notifications.log import DUPLICATE_WINDOW, MAX_LOG_SIZE, NOTIFICATIONS_KEY, AppendResult, NotificationLog
from seren_core.notifications.models import (
    Notification,
    NotificationAction,
    NotificationCategory,
    NotificationPayload,
)

__all__ = [
    "DUPLICATE_WINDOW",
    "MAX_LOG_SIZE",
    "NOTIFICATIONS_KEY",
    "AppendResult",
    "NotificationLog",
    "Notification",
    "NotificationAction",
    "NotificationCategory",
    "NotificationPayload",
]

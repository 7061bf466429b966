"""Stock notification payloads used by the scheduler and the dashboard."""

from __future__ import annotations

from seren_core.notifications.models import NotificationAction, NotificationCategory, NotificationPayload

APP_NAME = "SerenAI"


def daily_reminder() -> NotificationPayload:
    return NotificationPayload(
        title="Daily Check-in Reminder",
        message="Don't forget to complete your journal entry for today.",
        category=NotificationCategory.REMINDER,
        action=NotificationAction(label="Write Entry", target="/dashboard/journal"),
    )


def daily_digest() -> NotificationPayload:
    return system_notification(
        "Daily Digest",
        "Here's your daily wellness summary",
        NotificationAction(label="View Summary", target="/dashboard/insights"),
    )


def weekly_summary() -> NotificationPayload:
    return system_notification(
        "Weekly Summary",
        "Review your weekly wellness progress",
        NotificationAction(label="View Insights", target="/dashboard/insights"),
    )


def activity_reminder(activity: str, target: str = "/dashboard/activities") -> NotificationPayload:
    return NotificationPayload(
        title="Activity Reminder",
        message=f"Time for your {activity} activity! Take a moment for your wellness.",
        category=NotificationCategory.REMINDER,
        action=NotificationAction(label="Start Activity", target=target),
    )


def achievement(message: str) -> NotificationPayload:
    return NotificationPayload(
        title="Achievement Unlocked!",
        message=f"Congratulations! {message}",
        category=NotificationCategory.ACHIEVEMENT,
    )


def system_notification(title: str, message: str, action: NotificationAction | None = None) -> NotificationPayload:
    return NotificationPayload(title=title, message=message, category=NotificationCategory.SYSTEM, action=action)


def diagnostic_notification() -> NotificationPayload:
    return system_notification(
        "Test Notification",
        f"This is a test notification from {APP_NAME}",
        NotificationAction(label="Go to Dashboard", target="/dashboard"),
    )


def welcome(user_name: str | None = None) -> NotificationPayload:
    message = (
        f"Welcome back, {user_name}! Start your wellness journey."
        if user_name
        else f"Welcome to {APP_NAME}! Explore your wellness features."
    )
    return NotificationPayload(
        title=f"Welcome to {APP_NAME}!",
        message=message,
        category=NotificationCategory.INFO,
        action=NotificationAction(label="Get Started", target="/dashboard"),
    )

"""
Preference categories per role.

Clients and pros toggle notifications by category, not by kind. These tables
map each notification kind onto the category that controls it. They are
read-only data.
"""

from collections.abc import Mapping
from types import MappingProxyType

from blyss.models.notification import NotificationPreferences, NotificationType, UserRole

CLIENT_CATEGORIES: Mapping[NotificationType, str] = MappingProxyType(
    {
        NotificationType.BOOKING_CONFIRMED: "changes",
        NotificationType.BOOKING_CANCELLED: "changes",
        NotificationType.BOOKING_REMINDER: "reminders",
        NotificationType.MESSAGE_RECEIVED: "messages",
        NotificationType.LATE_ALERT: "late",
        NotificationType.PROMOTIONAL: "offers",
        NotificationType.EMAIL_SUMMARY: "email_summary",
    }
)

PRO_CATEGORIES: Mapping[NotificationType, str] = MappingProxyType(
    {
        NotificationType.NEW_BOOKING: "new_reservation",
        NotificationType.BOOKING_CONFIRMED: "cancel_change",
        NotificationType.BOOKING_CANCELLED: "cancel_change",
        NotificationType.BOOKING_REMINDER: "daily_reminder",
        NotificationType.MESSAGE_RECEIVED: "client_message",
        NotificationType.PAYMENT_RECEIVED: "payment_alert",
        NotificationType.PROMOTIONAL: "activity_summary",
    }
)

FALLBACK_CATEGORY: Mapping[UserRole, str] = MappingProxyType(
    {
        UserRole.CLIENT: "offers",
        UserRole.PRO: "activity_summary",
    }
)

DEFAULT_SETTINGS: Mapping[UserRole, Mapping[str, bool]] = MappingProxyType(
    {
        UserRole.CLIENT: MappingProxyType(
            {
                "reminders": True,
                "changes": True,
                "messages": True,
                "late": True,
                "offers": True,
                "email_summary": False,
            }
        ),
        UserRole.PRO: MappingProxyType(
            {
                "new_reservation": True,
                "cancel_change": True,
                "daily_reminder": True,
                "client_message": True,
                "payment_alert": True,
                "activity_summary": True,
            }
        ),
    }
)


def category_for(role: UserRole, notification_type: NotificationType) -> str:
    """Return the preference category that controls a notification kind."""
    table = PRO_CATEGORIES if role == UserRole.PRO else CLIENT_CATEGORIES
    return table.get(notification_type, FALLBACK_CATEGORY[role])


def default_settings(role: UserRole) -> dict[str, bool]:
    """Fresh copy of the default category switches for a role."""
    return dict(DEFAULT_SETTINGS[role])


def is_enabled(preferences: NotificationPreferences, notification_type: NotificationType) -> bool:
    """
    Check whether a user wants live pushes for a notification kind.

    Categories missing from the stored settings fall back to the role default.
    """
    category = category_for(preferences.role, notification_type)
    if category in preferences.settings:
        return preferences.settings[category]
    return DEFAULT_SETTINGS[preferences.role].get(category, True)


def unknown_categories(role: UserRole, settings: Mapping[str, bool]) -> list[str]:
    """List the keys of `settings` that are not categories of `role`."""
    known = DEFAULT_SETTINGS[role]
    return sorted(k for k in settings if k not in known)

"""
Toast display configuration.

Static per-kind styling used by the client runtime to decide how long a toast
stays up, plus the relative timestamp shown next to each notification.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from types import MappingProxyType
from typing import Optional, Union

from blyss.models.notification import NotificationType


@dataclass(frozen=True)
class ToastStyle:
    duration_ms: int
    icon: str
    color: str
    background: str

    @property
    def duration(self) -> float:
        """Lifetime in seconds."""
        return self.duration_ms / 1000


DEFAULT_STYLE = ToastStyle(4000, "bell", "#8E8E93", "rgba(142, 142, 147, 0.12)")

TOAST_STYLES: Mapping[NotificationType, ToastStyle] = MappingProxyType(
    {
        NotificationType.NEW_BOOKING: ToastStyle(
            5000, "check-circle", "#34C759", "rgba(52, 199, 89, 0.12)"
        ),
        NotificationType.BOOKING_CONFIRMED: ToastStyle(
            4000, "check-circle", "#007AFF", "rgba(0, 122, 255, 0.12)"
        ),
        NotificationType.BOOKING_CANCELLED: ToastStyle(
            6000, "alert-circle", "#FF3B30", "rgba(255, 59, 48, 0.12)"
        ),
        NotificationType.BOOKING_REMINDER: ToastStyle(
            5000, "clock", "#FF9500", "rgba(255, 149, 0, 0.12)"
        ),
        NotificationType.MESSAGE_RECEIVED: ToastStyle(
            4000, "message-square", "#5856D6", "rgba(88, 86, 214, 0.12)"
        ),
        NotificationType.PAYMENT_RECEIVED: ToastStyle(
            4000, "credit-card", "#34C759", "rgba(52, 199, 89, 0.12)"
        ),
        NotificationType.PROMOTIONAL: ToastStyle(
            5000, "gift", "#FF2D55", "rgba(255, 45, 85, 0.12)"
        ),
        NotificationType.LATE_ALERT: ToastStyle(
            6000, "alert-triangle", "#FF9500", "rgba(255, 149, 0, 0.12)"
        ),
        # No dedicated duration; only the icon differs from the default.
        NotificationType.EMAIL_SUMMARY: ToastStyle(
            4000, "mail", "#8E8E93", "rgba(142, 142, 147, 0.12)"
        ),
    }
)


def style_for(notification_type: Union[NotificationType, str]) -> ToastStyle:
    """Look up the style of a kind, falling back to the default style."""
    try:
        return TOAST_STYLES.get(NotificationType(notification_type), DEFAULT_STYLE)
    except ValueError:
        return DEFAULT_STYLE


def toast_duration(notification_type: Union[NotificationType, str]) -> float:
    """Seconds a toast of this kind stays visible."""
    return style_for(notification_type).duration


def relative_time(created_at: datetime, now: Optional[datetime] = None) -> str:
    """
    Short French relative label for a notification timestamp.

    Examples: "maintenant", "il y a 5 min", "il y a 3h", "hier", "il y a 4j",
    then the day and abbreviated month ("12 mars").
    """
    now = now or datetime.now(UTC)
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=UTC)

    elapsed = (now - created_at).total_seconds()
    minutes = int(elapsed // 60)
    hours = int(elapsed // 3600)
    days = int(elapsed // 86400)

    if minutes < 1:
        return "maintenant"
    if minutes < 60:
        return f"il y a {minutes} min"
    if hours < 24:
        return f"il y a {hours}h"
    if days == 1:
        return "hier"
    if days < 7:
        return f"il y a {days}j"

    return f"{created_at.day} {_MONTHS[created_at.month - 1]}"


_MONTHS = (
    "janv.",
    "févr.",
    "mars",
    "avr.",
    "mai",
    "juin",
    "juil.",
    "août",
    "sept.",
    "oct.",
    "nov.",
    "déc.",
)

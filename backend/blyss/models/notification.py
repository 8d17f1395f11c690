"""
Notification data models.

Pydantic models for notifications, per-user notification preferences, and the
REST request/response bodies built on them.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class NotificationType(str, Enum):
    """Semantic kinds of notification produced by the booking platform."""

    NEW_BOOKING = "new_booking"
    BOOKING_CONFIRMED = "booking_confirmed"
    BOOKING_CANCELLED = "booking_cancelled"
    BOOKING_REMINDER = "booking_reminder"
    MESSAGE_RECEIVED = "message_received"
    PAYMENT_RECEIVED = "payment_received"
    PROMOTIONAL = "promotional"
    LATE_ALERT = "late_alert"
    EMAIL_SUMMARY = "email_summary"


class UserRole(str, Enum):
    """Account roles; each has its own preference categories."""

    CLIENT = "client"
    PRO = "pro"


class Notification(BaseModel):
    """Individual notification record persisted to database."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    type: NotificationType
    title: str = Field(..., max_length=200)
    message: str = Field(..., max_length=1000)
    data: Optional[dict[str, Any]] = None
    is_read: bool = False
    created_at: datetime


class NotificationPreferences(BaseModel):
    """Per-category on/off switches for one user."""

    user_id: int
    role: UserRole
    settings: dict[str, bool]
    updated_at: datetime


class NotificationCreateRequest(BaseModel):
    """Admin request to create and push a notification."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "user_id": 12,
                "type": "new_booking",
                "title": "Nouvelle réservation",
                "message": "Léa a réservé une pose complète demain à 14h",
                "data": {"booking_id": 981},
            }
        }
    )

    user_id: int = Field(..., ge=1)
    type: NotificationType
    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1, max_length=1000)
    data: Optional[dict[str, Any]] = None


class NotificationPreferencesUpdate(BaseModel):
    """Partial update of preference categories."""

    settings: dict[str, bool]


class NotificationResponse(BaseModel):
    """Standard response for notification operations."""

    success: bool
    message: Optional[str] = None
    notification_id: Optional[int] = None


class NotificationListResponse(BaseModel):
    """Paginated list of notifications with metadata."""

    data: list[Notification]
    unread_count: int
    pagination: dict[str, Any]


class MarkAllReadResponse(BaseModel):
    """Result of marking every notification read."""

    success: bool
    updated: int

"""
SQLAlchemy ORM Models for the notification subsystem.

Models:
-------
- NotificationORM: User notifications
- NotificationPreferencesORM: Per-user notification category switches
"""

from datetime import UTC, datetime

from sqlalchemy import JSON, Boolean, CheckConstraint, DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from blyss.database import Base
from blyss.models.notification import NotificationType, UserRole

_TYPE_VALUES = ", ".join(f"'{t.value}'" for t in NotificationType)
_ROLE_VALUES = ", ".join(f"'{r.value}'" for r in UserRole)


class NotificationORM(Base):
    """
    User notifications.

    Table: notifications
    Primary Key: id (autoincrement integer)
    Indexes: idx_notifications_user_read
    """

    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    user_id: Mapped[int] = mapped_column(Integer, nullable=False)

    type: Mapped[str] = mapped_column(String(32), nullable=False)

    # Content
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    message: Mapped[str] = mapped_column(String(1000), nullable=False)
    data: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )

    __table_args__ = (
        CheckConstraint(f"type IN ({_TYPE_VALUES})", name="chk_notification_type"),
        Index("idx_notifications_user_read", "user_id", "is_read"),
    )


class NotificationPreferencesORM(Base):
    """
    Notification category switches.

    Table: notification_preferences
    Primary Key: user_id - One preference record per user
    """

    __tablename__ = "notification_preferences"

    user_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)

    role: Mapped[str] = mapped_column(String(16), nullable=False)

    # Category name -> enabled, e.g. {"new_reservation": true, "payment_alert": false}
    settings: Mapped[dict] = mapped_column(JSON, nullable=False)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )

    __table_args__ = (CheckConstraint(f"role IN ({_ROLE_VALUES})", name="chk_preferences_role"),)

"""
Notification Repository

Handles database operations for notifications and notification preferences.
Every notification query is scoped by the owning user id.
"""

from datetime import UTC, datetime
from typing import Any, Optional

from sqlalchemy import and_, desc, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from blyss.models.notification import (
    Notification,
    NotificationPreferences,
    NotificationType,
    UserRole,
)
from blyss.orm.models import NotificationORM, NotificationPreferencesORM


class NotificationRepository:
    """Repository for notification database operations."""

    def __init__(self, session: AsyncSession):
        """
        Initialize repository with database session.

        Args:
            session: SQLAlchemy async session
        """
        self.session = session

    # =============================
    # Notification CRUD Operations
    # =============================

    async def create_notification(
        self,
        user_id: int,
        notification_type: NotificationType,
        title: str,
        message: str,
        data: Optional[dict[str, Any]] = None,
    ) -> Notification:
        """
        Create and persist a new notification.

        Args:
            user_id: Owning user id
            notification_type: Kind of notification
            title: Short display string
            message: Body string
            data: Kind-specific payload

        Returns:
            Created Notification model
        """
        notification = NotificationORM(
            user_id=user_id,
            type=notification_type.value,
            title=title,
            message=message,
            data=data,
            is_read=False,
            created_at=datetime.now(UTC),
        )

        self.session.add(notification)
        await self.session.commit()
        await self.session.refresh(notification)

        return self._orm_to_notification(notification)

    async def get_notifications(
        self,
        user_id: int,
        unread_only: bool = False,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[Notification]:
        """
        Get notifications for a user, newest first.

        Args:
            user_id: Owning user id
            unread_only: Only return unread notifications
            limit: Maximum number of results (None for all)
            offset: Result offset for pagination

        Returns:
            List of notifications
        """
        query = select(NotificationORM).where(NotificationORM.user_id == user_id)

        if unread_only:
            query = query.where(NotificationORM.is_read == False)  # noqa: E712

        query = query.order_by(desc(NotificationORM.created_at), desc(NotificationORM.id))

        if offset:
            query = query.offset(offset)
        if limit is not None:
            query = query.limit(limit)

        result = await self.session.execute(query)
        return [self._orm_to_notification(n) for n in result.scalars().all()]

    async def count_notifications(self, user_id: int, unread_only: bool = False) -> int:
        """
        Count a user's notifications.

        Args:
            user_id: Owning user id
            unread_only: Only count unread notifications

        Returns:
            Number of matching notifications
        """
        query = select(func.count(NotificationORM.id)).where(NotificationORM.user_id == user_id)
        if unread_only:
            query = query.where(NotificationORM.is_read == False)  # noqa: E712

        result = await self.session.execute(query)
        return int(result.scalar_one())

    async def get_unread_count(self, user_id: int) -> int:
        """Get count of unread notifications for a user."""
        return await self.count_notifications(user_id, unread_only=True)

    async def mark_as_read(self, notification_id: int, user_id: int) -> bool:
        """
        Mark a notification as read.

        Args:
            notification_id: Notification id
            user_id: Owning user id (authorization scope)

        Returns:
            True if an unread notification owned by the user was flipped
        """
        stmt = (
            update(NotificationORM)
            .where(
                and_(
                    NotificationORM.id == notification_id,
                    NotificationORM.user_id == user_id,
                    NotificationORM.is_read == False,  # noqa: E712
                )
            )
            .values(is_read=True)
        )

        result = await self.session.execute(stmt)
        await self.session.commit()

        return result.rowcount > 0

    async def mark_all_as_read(self, user_id: int) -> int:
        """
        Mark all of a user's notifications as read.

        Args:
            user_id: Owning user id

        Returns:
            Number of notifications flipped
        """
        stmt = (
            update(NotificationORM)
            .where(
                and_(
                    NotificationORM.user_id == user_id,
                    NotificationORM.is_read == False,  # noqa: E712
                )
            )
            .values(is_read=True)
        )

        result = await self.session.execute(stmt)
        await self.session.commit()

        return result.rowcount

    async def owns_notification(self, notification_id: int, user_id: int) -> bool:
        """Check whether a notification exists and belongs to the user."""
        query = select(NotificationORM.id).where(
            and_(
                NotificationORM.id == notification_id,
                NotificationORM.user_id == user_id,
            )
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none() is not None

    # =============================
    # Preferences CRUD Operations
    # =============================

    async def get_preferences(self, user_id: int) -> Optional[NotificationPreferences]:
        """
        Get notification preferences for a user.

        Returns:
            NotificationPreferences model or None if not set
        """
        stmt = select(NotificationPreferencesORM).where(
            NotificationPreferencesORM.user_id == user_id
        )

        result = await self.session.execute(stmt)
        prefs_orm = result.scalar_one_or_none()

        if not prefs_orm:
            return None

        return self._orm_to_preferences(prefs_orm)

    async def save_preferences(
        self, user_id: int, role: UserRole, settings: dict[str, bool]
    ) -> NotificationPreferences:
        """
        Insert or replace notification preferences for a user.

        Args:
            user_id: User id
            role: Role the categories belong to
            settings: Full category -> enabled mapping

        Returns:
            Stored NotificationPreferences model
        """
        stmt = select(NotificationPreferencesORM).where(
            NotificationPreferencesORM.user_id == user_id
        )
        result = await self.session.execute(stmt)
        prefs_orm = result.scalar_one_or_none()

        now = datetime.now(UTC)
        if prefs_orm is None:
            prefs_orm = NotificationPreferencesORM(
                user_id=user_id,
                role=role.value,
                settings=dict(settings),
                updated_at=now,
            )
            self.session.add(prefs_orm)
        else:
            prefs_orm.role = role.value
            prefs_orm.settings = dict(settings)
            prefs_orm.updated_at = now

        await self.session.commit()
        await self.session.refresh(prefs_orm)

        return self._orm_to_preferences(prefs_orm)

    # =============================
    # Helper Methods
    # =============================

    def _orm_to_notification(self, orm: NotificationORM) -> Notification:
        """Convert ORM model to Pydantic model."""
        return Notification(
            id=orm.id,
            user_id=orm.user_id,
            type=NotificationType(orm.type),
            title=orm.title,
            message=orm.message,
            data=orm.data,
            is_read=orm.is_read,
            created_at=orm.created_at,
        )

    def _orm_to_preferences(self, orm: NotificationPreferencesORM) -> NotificationPreferences:
        """Convert ORM model to Pydantic model."""
        return NotificationPreferences(
            user_id=orm.user_id,
            role=UserRole(orm.role),
            settings=dict(orm.settings),
            updated_at=orm.updated_at,
        )

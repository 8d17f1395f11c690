"""
Notification Service Core

Central entry point for business operations that produce notifications.
Handles:
- Persistence to database
- Preference filtering of the live push (stored notifications are never filtered)
- Delegation to the WebSocket gateway
"""

from typing import TYPE_CHECKING, Any, Optional

import structlog

from blyss.models.notification import (
    Notification,
    NotificationPreferences,
    NotificationType,
    UserRole,
)
from blyss.notifications import preferences as prefs
from blyss.observability.metrics import notification_pushes_total, notifications_created_total
from blyss.repositories.notification_repository import NotificationRepository

if TYPE_CHECKING:
    from blyss.api.websocket import NotificationGateway

logger = structlog.get_logger(__name__)


class UnknownPreferenceError(ValueError):
    """Preference update names categories that do not exist for the role."""

    def __init__(self, role: UserRole, categories: list[str]):
        super().__init__(f"Unknown {role.value} categories: {', '.join(categories)}")
        self.role = role
        self.categories = categories


class NotificationService:
    """
    Core notification orchestration service.

    Persists notifications and forwards them to the user's live socket when the
    user's preferences allow it.
    """

    def __init__(
        self,
        repository: NotificationRepository,
        gateway: Optional["NotificationGateway"] = None,
    ):
        """
        Initialize notification service.

        Args:
            repository: Notification repository for database operations
            gateway: Optional WebSocket gateway for live delivery
        """
        self.repository = repository
        self.gateway = gateway

    async def send_notification(
        self,
        user_id: int,
        notification_type: NotificationType,
        title: str,
        message: str,
        data: Optional[dict[str, Any]] = None,
    ) -> Notification:
        """
        Persist a notification and push it to the user if connected.

        Args:
            user_id: Target user id
            notification_type: Kind of notification
            title: Notification title
            message: Notification message
            data: Kind-specific payload

        Returns:
            The persisted Notification
        """
        notification = await self.repository.create_notification(
            user_id=user_id,
            notification_type=notification_type,
            title=title,
            message=message,
            data=data,
        )

        logger.info(
            "notification_created",
            notification_id=notification.id,
            user_id=user_id,
            notification_type=notification_type.value,
        )
        notifications_created_total.labels(notification_type=notification_type.value).inc()

        if await self._push_allowed(user_id, notification_type):
            await self._push(notification)
        else:
            notification_pushes_total.labels(outcome="filtered").inc()

        return notification

    async def broadcast(
        self,
        user_ids: list[int],
        notification_type: NotificationType,
        title: str,
        message: str,
        data: Optional[dict[str, Any]] = None,
    ) -> list[Notification]:
        """
        Send the same notification to several users.

        Each user gets their own persisted copy so read state stays per user.

        Returns:
            Persisted notifications in the order of `user_ids`
        """
        created = []
        for user_id in dict.fromkeys(user_ids):
            created.append(
                await self.send_notification(user_id, notification_type, title, message, data)
            )

        logger.info(
            "notification_broadcast",
            notification_type=notification_type.value,
            recipients=len(created),
        )
        return created

    async def get_preferences(self, user_id: int, role: UserRole) -> NotificationPreferences:
        """
        Get a user's preferences, storing the role defaults on first access.

        Args:
            user_id: User id
            role: Role used when no preferences exist yet
        """
        existing = await self.repository.get_preferences(user_id)
        if existing is not None:
            return existing

        logger.info("preferences_defaulted", user_id=user_id, role=role.value)
        return await self.repository.save_preferences(
            user_id, role, prefs.default_settings(role)
        )

    async def update_preferences(
        self, user_id: int, role: UserRole, settings: dict[str, bool]
    ) -> NotificationPreferences:
        """
        Merge category switches into a user's preferences.

        Raises:
            UnknownPreferenceError: a key is not a category of `role`
        """
        unknown = prefs.unknown_categories(role, settings)
        if unknown:
            raise UnknownPreferenceError(role, unknown)

        current = await self.get_preferences(user_id, role)
        base = current.settings if current.role == role else prefs.default_settings(role)
        merged = {**base, **settings}

        updated = await self.repository.save_preferences(user_id, role, merged)
        logger.info("preferences_updated", user_id=user_id, role=role.value)
        return updated

    async def _push_allowed(self, user_id: int, notification_type: NotificationType) -> bool:
        try:
            stored = await self.repository.get_preferences(user_id)
        except Exception as e:
            logger.error("preferences_lookup_failed", user_id=user_id, error=str(e))
            return True

        if stored is None:
            return True

        if not prefs.is_enabled(stored, notification_type):
            logger.info(
                "push_disabled_by_preferences",
                user_id=user_id,
                notification_type=notification_type.value,
                category=prefs.category_for(stored.role, notification_type),
            )
            return False

        return True

    async def _push(self, notification: Notification) -> None:
        if self.gateway is None:
            return

        delivered = await self.gateway.push_notification(notification)
        notification_pushes_total.labels(outcome="delivered" if delivered else "offline").inc()
        if not delivered:
            logger.debug(
                "push_not_delivered",
                notification_id=notification.id,
                user_id=notification.user_id,
            )

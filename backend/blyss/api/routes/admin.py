"""
Admin API Routes

- POST /api/v1/admin/notifications - Create a notification and push it live
- GET /api/v1/admin/users/{user_id}/notification-settings - Inspect a user's preferences

All endpoints require the `is_admin` claim.
"""

import structlog
from fastapi import APIRouter, Depends, Path, Query, status

from blyss.api.dependencies import require_admin
from blyss.api.routes.notifications import get_notification_service
from blyss.models.auth import CurrentUser
from blyss.models.notification import (
    Notification,
    NotificationCreateRequest,
    NotificationPreferences,
    UserRole,
)
from blyss.notifications.service import NotificationService

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/v1/admin", tags=["admin"])


@router.post(
    "/notifications",
    response_model=Notification,
    status_code=status.HTTP_201_CREATED,
)
async def create_notification(
    request: NotificationCreateRequest,
    admin: CurrentUser = Depends(require_admin),
    service: NotificationService = Depends(get_notification_service),
):
    """
    Create a notification for a user.

    The notification is always stored; it is pushed over the user's socket if
    one is bound and the user's preferences allow the category.
    """
    notification = await service.send_notification(
        user_id=request.user_id,
        notification_type=request.type,
        title=request.title,
        message=request.message,
        data=request.data,
    )

    logger.info(
        "admin_notification_created",
        admin_id=admin.id,
        user_id=request.user_id,
        notification_id=notification.id,
    )
    return notification


@router.get("/users/{user_id}/notification-settings", response_model=NotificationPreferences)
async def get_user_notification_settings(
    user_id: int = Path(..., ge=1, description="User ID"),
    role: UserRole = Query(UserRole.CLIENT, description="Role used if no settings exist"),
    admin: CurrentUser = Depends(require_admin),
    service: NotificationService = Depends(get_notification_service),
):
    """Get a user's notification settings, creating role defaults on first access."""
    return await service.get_preferences(user_id, role)

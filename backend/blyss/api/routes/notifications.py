"""
Notification API Routes

Provides REST endpoints for:
- GET /api/v1/notifications - List notifications with pagination
- PATCH /api/v1/notifications/{id}/read - Mark as read
- POST /api/v1/notifications/read-all - Mark everything as read
- GET /api/v1/notifications/preferences - Get preferences
- PUT /api/v1/notifications/preferences - Update preferences

The WebSocket gateway serves the same list and mark operations; these routes
cover clients that are not connected.
"""

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from blyss.api.dependencies import get_current_user, get_db_session
from blyss.models.auth import CurrentUser
from blyss.models.notification import (
    MarkAllReadResponse,
    NotificationListResponse,
    NotificationPreferences,
    NotificationPreferencesUpdate,
    NotificationResponse,
)
from blyss.notifications.service import NotificationService, UnknownPreferenceError
from blyss.repositories.notification_repository import NotificationRepository

router = APIRouter(prefix="/api/v1/notifications", tags=["notifications"])


# Dependency to get notification repository
async def get_notification_repository(
    session: AsyncSession = Depends(get_db_session),
) -> NotificationRepository:
    """Get notification repository instance."""
    return NotificationRepository(session)


# Dependency to get notification service
async def get_notification_service(
    repository: NotificationRepository = Depends(get_notification_repository),
) -> NotificationService:
    """Get notification service wired to the live gateway."""
    from blyss.api.websocket import gateway

    return NotificationService(repository=repository, gateway=gateway)


@router.get("", response_model=NotificationListResponse)
async def get_notifications(
    unread_only: bool = Query(False, description="Only return unread notifications"),
    limit: int = Query(50, ge=1, le=100, description="Maximum results to return"),
    offset: int = Query(0, ge=0, description="Offset for pagination"),
    current_user: CurrentUser = Depends(get_current_user),
    repository: NotificationRepository = Depends(get_notification_repository),
):
    """
    Get notifications for current user.

    Returns a page of notifications ordered by most recent first.
    """
    notifications = await repository.get_notifications(
        user_id=current_user.id,
        unread_only=unread_only,
        limit=limit,
        offset=offset,
    )
    total_count = await repository.count_notifications(current_user.id, unread_only=unread_only)
    unread_count = await repository.get_unread_count(current_user.id)

    return {
        "data": notifications,
        "unread_count": unread_count,
        "pagination": {
            "returned_count": len(notifications),
            "total_count": total_count,
            "limit": limit,
            "offset": offset,
            "has_more": (offset + len(notifications)) < total_count,
        },
    }


@router.patch("/{notification_id}/read", response_model=NotificationResponse)
async def mark_notification_read(
    notification_id: int = Path(..., description="Notification ID"),
    current_user: CurrentUser = Depends(get_current_user),
    repository: NotificationRepository = Depends(get_notification_repository),
):
    """
    Mark a notification as read.

    Only the owning user can mark their notifications as read. Marking an
    already read notification succeeds without change.
    """
    if not await repository.owns_notification(notification_id, current_user.id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Notification not found",
        )

    await repository.mark_as_read(notification_id=notification_id, user_id=current_user.id)

    return NotificationResponse(
        success=True,
        message="Notification marked as read",
        notification_id=notification_id,
    )


@router.post("/read-all", response_model=MarkAllReadResponse)
async def mark_all_notifications_read(
    current_user: CurrentUser = Depends(get_current_user),
    repository: NotificationRepository = Depends(get_notification_repository),
):
    """Mark every notification of the current user as read."""
    updated = await repository.mark_all_as_read(current_user.id)
    return MarkAllReadResponse(success=True, updated=updated)


@router.get("/preferences", response_model=NotificationPreferences)
async def get_preferences(
    current_user: CurrentUser = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    """
    Get notification preferences for current user.

    Returns the role defaults (and stores them) if the user never saved any.
    """
    return await service.get_preferences(current_user.id, current_user.role)


@router.put("/preferences", response_model=NotificationPreferences)
async def update_preferences(
    update: NotificationPreferencesUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    """
    Update notification preferences for current user.

    Only the categories present in the body change; category names must exist
    for the user's role.
    """
    try:
        return await service.update_preferences(
            current_user.id, current_user.role, update.settings
        )
    except UnknownPreferenceError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(e),
        ) from e

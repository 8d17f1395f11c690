"""
Unit Tests for NotificationService

Tests persistence, preference gating of the live push, and gateway delegation
with mocks. Repository behavior is covered in
tests/integration/test_notification_repository.py.
"""

from datetime import UTC, datetime
from unittest.mock import AsyncMock

import pytest

from blyss.models.notification import (
    Notification,
    NotificationPreferences,
    NotificationType,
    UserRole,
)
from blyss.notifications.service import NotificationService, UnknownPreferenceError


def make_notification(user_id: int = 12, notification_id: int = 1) -> Notification:
    return Notification(
        id=notification_id,
        user_id=user_id,
        type=NotificationType.NEW_BOOKING,
        title="Nouvelle réservation",
        message="Demain 14h",
        created_at=datetime.now(UTC),
    )


class TestNotificationService:
    """Test suite for NotificationService."""

    @pytest.fixture
    def mock_repository(self):
        """Mock NotificationRepository."""
        repository = AsyncMock()
        repository.get_preferences.return_value = None
        return repository

    @pytest.fixture
    def mock_gateway(self):
        """Mock WebSocket gateway."""
        gateway = AsyncMock()
        gateway.push_notification.return_value = True
        return gateway

    @pytest.fixture
    def notification_service(self, mock_repository, mock_gateway):
        return NotificationService(repository=mock_repository, gateway=mock_gateway)

    # =============================
    # send_notification
    # =============================

    @pytest.mark.asyncio
    async def test_send_persists_then_pushes(
        self, notification_service, mock_repository, mock_gateway
    ):
        created = make_notification()
        mock_repository.create_notification.return_value = created

        result = await notification_service.send_notification(
            user_id=12,
            notification_type=NotificationType.NEW_BOOKING,
            title="Nouvelle réservation",
            message="Demain 14h",
            data={"booking_id": 981},
        )

        assert result == created
        mock_repository.create_notification.assert_awaited_once_with(
            user_id=12,
            notification_type=NotificationType.NEW_BOOKING,
            title="Nouvelle réservation",
            message="Demain 14h",
            data={"booking_id": 981},
        )
        mock_gateway.push_notification.assert_awaited_once_with(created)

    @pytest.mark.asyncio
    async def test_disabled_category_skips_push_but_stores(
        self, notification_service, mock_repository, mock_gateway
    ):
        mock_repository.create_notification.return_value = make_notification()
        mock_repository.get_preferences.return_value = NotificationPreferences(
            user_id=12,
            role=UserRole.PRO,
            settings={"new_reservation": False},
            updated_at=datetime.now(UTC),
        )

        result = await notification_service.send_notification(
            12, NotificationType.NEW_BOOKING, "t", "m"
        )

        assert result.id == 1
        mock_repository.create_notification.assert_awaited_once()
        mock_gateway.push_notification.assert_not_called()

    @pytest.mark.asyncio
    async def test_preference_lookup_failure_still_pushes(
        self, notification_service, mock_repository, mock_gateway
    ):
        mock_repository.create_notification.return_value = make_notification()
        mock_repository.get_preferences.side_effect = RuntimeError("db down")

        await notification_service.send_notification(12, NotificationType.NEW_BOOKING, "t", "m")

        mock_gateway.push_notification.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_offline_user_is_not_an_error(
        self, notification_service, mock_repository, mock_gateway
    ):
        mock_repository.create_notification.return_value = make_notification()
        mock_gateway.push_notification.return_value = False

        result = await notification_service.send_notification(
            12, NotificationType.NEW_BOOKING, "t", "m"
        )

        assert result.id == 1

    @pytest.mark.asyncio
    async def test_without_gateway_only_persists(self, mock_repository):
        service = NotificationService(repository=mock_repository)
        mock_repository.create_notification.return_value = make_notification()

        result = await service.send_notification(12, NotificationType.NEW_BOOKING, "t", "m")

        assert result.id == 1

    @pytest.mark.asyncio
    async def test_broadcast_creates_one_copy_per_distinct_user(
        self, notification_service, mock_repository, mock_gateway
    ):
        mock_repository.create_notification.side_effect = [
            make_notification(user_id=1, notification_id=10),
            make_notification(user_id=2, notification_id=11),
        ]

        created = await notification_service.broadcast(
            [1, 2, 1], NotificationType.PROMOTIONAL, "Offre", "-20%"
        )

        assert [n.user_id for n in created] == [1, 2]
        assert mock_gateway.push_notification.await_count == 2

    # =============================
    # Preferences
    # =============================

    @pytest.mark.asyncio
    async def test_get_preferences_stores_defaults_on_first_access(
        self, notification_service, mock_repository
    ):
        stored = NotificationPreferences(
            user_id=12, role=UserRole.CLIENT, settings={}, updated_at=datetime.now(UTC)
        )
        mock_repository.save_preferences.return_value = stored

        result = await notification_service.get_preferences(12, UserRole.CLIENT)

        assert result == stored
        user_id, role, settings = mock_repository.save_preferences.await_args.args
        assert (user_id, role) == (12, UserRole.CLIENT)
        assert settings["email_summary"] is False

    @pytest.mark.asyncio
    async def test_update_preferences_merges(self, notification_service, mock_repository):
        mock_repository.get_preferences.return_value = NotificationPreferences(
            user_id=12,
            role=UserRole.CLIENT,
            settings={"offers": True, "late": True},
            updated_at=datetime.now(UTC),
        )
        mock_repository.save_preferences.side_effect = lambda u, r, s: NotificationPreferences(
            user_id=u, role=r, settings=s, updated_at=datetime.now(UTC)
        )

        result = await notification_service.update_preferences(
            12, UserRole.CLIENT, {"offers": False}
        )

        assert result.settings == {"offers": False, "late": True}

    @pytest.mark.asyncio
    async def test_update_preferences_rejects_unknown_category(self, notification_service):
        with pytest.raises(UnknownPreferenceError) as exc_info:
            await notification_service.update_preferences(
                12, UserRole.CLIENT, {"new_reservation": True}
            )

        assert exc_info.value.categories == ["new_reservation"]

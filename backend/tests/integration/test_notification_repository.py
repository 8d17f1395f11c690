"""
Integration tests for NotificationRepository against in-memory SQLite.
"""

import pytest

from blyss.models.notification import NotificationType, UserRole


@pytest.mark.asyncio
async def test_create_assigns_increasing_ids(repository, test_user_id):
    first = await repository.create_notification(
        test_user_id, NotificationType.NEW_BOOKING, "A", "a", {"booking_id": 1}
    )
    second = await repository.create_notification(
        test_user_id, NotificationType.NEW_BOOKING, "B", "b"
    )

    assert second.id > first.id
    assert first.is_read is False
    assert first.data == {"booking_id": 1}
    assert second.data is None


@pytest.mark.asyncio
async def test_get_notifications_newest_first(repository, test_user_id):
    for title in ("A", "B", "C"):
        await repository.create_notification(test_user_id, NotificationType.PROMOTIONAL, title, "x")

    notifications = await repository.get_notifications(test_user_id)

    assert [n.title for n in notifications] == ["C", "B", "A"]


@pytest.mark.asyncio
async def test_get_notifications_unread_only_and_paging(repository, test_user_id):
    created = [
        await repository.create_notification(test_user_id, NotificationType.PROMOTIONAL, t, "x")
        for t in ("A", "B", "C")
    ]
    await repository.mark_as_read(created[2].id, test_user_id)

    unread = await repository.get_notifications(test_user_id, unread_only=True)
    page = await repository.get_notifications(test_user_id, limit=1, offset=1)

    assert [n.title for n in unread] == ["B", "A"]
    assert [n.title for n in page] == ["B"]
    assert await repository.count_notifications(test_user_id) == 3


@pytest.mark.asyncio
async def test_mark_as_read_is_idempotent(repository, test_user_id):
    created = await repository.create_notification(
        test_user_id, NotificationType.NEW_BOOKING, "A", "a"
    )

    assert await repository.mark_as_read(created.id, test_user_id) is True
    assert await repository.mark_as_read(created.id, test_user_id) is False
    assert await repository.get_unread_count(test_user_id) == 0


@pytest.mark.asyncio
async def test_mark_as_read_is_scoped_to_owner(repository, test_user_id, test_user_id_2):
    created = await repository.create_notification(
        test_user_id, NotificationType.NEW_BOOKING, "A", "a"
    )

    assert await repository.mark_as_read(created.id, test_user_id_2) is False
    assert await repository.get_unread_count(test_user_id) == 1
    assert await repository.owns_notification(created.id, test_user_id) is True
    assert await repository.owns_notification(created.id, test_user_id_2) is False


@pytest.mark.asyncio
async def test_mark_all_as_read_counts_only_flipped(repository, test_user_id, test_user_id_2):
    a = await repository.create_notification(test_user_id, NotificationType.NEW_BOOKING, "A", "a")
    await repository.create_notification(test_user_id, NotificationType.NEW_BOOKING, "B", "b")
    await repository.create_notification(test_user_id_2, NotificationType.NEW_BOOKING, "X", "x")
    await repository.mark_as_read(a.id, test_user_id)

    assert await repository.mark_all_as_read(test_user_id) == 1
    assert await repository.get_unread_count(test_user_id_2) == 1


@pytest.mark.asyncio
async def test_preferences_upsert(repository, test_user_id):
    assert await repository.get_preferences(test_user_id) is None

    await repository.save_preferences(test_user_id, UserRole.CLIENT, {"offers": True})
    updated = await repository.save_preferences(test_user_id, UserRole.CLIENT, {"offers": False})

    assert updated.settings == {"offers": False}
    stored = await repository.get_preferences(test_user_id)
    assert stored.role == UserRole.CLIENT
    assert stored.settings == {"offers": False}

"""
Unit tests for NotificationState.
"""

from datetime import UTC, datetime

from blyss.client.state import NotificationState
from blyss.models.notification import Notification, NotificationType


def make_notification(notification_id: int, is_read: bool = False) -> Notification:
    return Notification(
        id=notification_id,
        user_id=12,
        type=NotificationType.NEW_BOOKING,
        title=f"N{notification_id}",
        message="x",
        is_read=is_read,
        created_at=datetime.now(UTC),
    )


def test_replace_recomputes_unread():
    state = NotificationState()
    state.replace([make_notification(3), make_notification(2, is_read=True), make_notification(1)])

    assert state.unread_count == 2
    assert [n.id for n in state.notifications] == [3, 2, 1]


def test_add_prepends_and_counts():
    state = NotificationState()
    state.replace([make_notification(1)])

    assert state.add(make_notification(2)) is True
    assert [n.id for n in state.notifications] == [2, 1]
    assert state.unread_count == 2


def test_add_ignores_known_id():
    state = NotificationState()
    state.add(make_notification(1))

    assert state.add(make_notification(1)) is False
    assert state.unread_count == 1
    assert len(state.notifications) == 1


def test_toasts_keep_three_newest():
    state = NotificationState()
    evicted = []
    for i in range(1, 6):
        state.add(make_notification(i))
        evicted.extend(state.push_toast(make_notification(i)))

    assert [t.id for t in state.toasts] == [5, 4, 3]
    assert evicted == [1, 2]
    assert len(state.notifications) == 5


def test_dismiss_keeps_notification():
    state = NotificationState()
    state.add(make_notification(1))
    state.push_toast(make_notification(1))

    assert state.dismiss(1) is True
    assert state.dismiss(1) is False
    assert state.toasts == []
    assert state.get(1) is not None


def test_mark_read_twice_decrements_once():
    state = NotificationState()
    state.replace([make_notification(1), make_notification(2)])

    assert state.mark_read(1) is True
    assert state.mark_read(1) is False
    assert state.unread_count == 1
    assert state.get(1).is_read is True


def test_mark_read_unknown_id():
    state = NotificationState()
    state.replace([make_notification(1)])

    assert state.mark_read(99) is False
    assert state.unread_count == 1


def test_mark_all_read():
    state = NotificationState()
    state.replace([make_notification(1), make_notification(2, is_read=True)])

    assert state.mark_all_read() == 1
    assert state.unread_count == 0
    assert all(n.is_read for n in state.notifications)


def test_unread_never_negative():
    state = NotificationState()
    state.replace([make_notification(1)])
    state.unread_count = 0

    state.mark_read(1)

    assert state.unread_count == 0

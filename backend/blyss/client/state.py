"""
Client-side notification state.

Holds the notification list, unread count, visible toasts and connection flag
for one client session. No I/O happens here; the runtime applies server
messages and user actions to it and notifies listeners afterwards.
"""

from typing import Optional

from blyss.models.notification import Notification

MAX_TOASTS = 3


class NotificationState:
    """
    Mutable view model of a user's notifications.

    Invariants:
    - `unread_count` drops only when an entry flips to read, never below zero
    - `toasts` holds at most `max_toasts` notifications, newest first
    - a toast always has the same id as an entry in `notifications`
    """

    def __init__(self, max_toasts: int = MAX_TOASTS) -> None:
        self.max_toasts = max_toasts
        self.notifications: list[Notification] = []
        self.unread_count = 0
        self.toasts: list[Notification] = []
        self.is_connected = False

    def get(self, notification_id: int) -> Optional[Notification]:
        for notification in self.notifications:
            if notification.id == notification_id:
                return notification
        return None

    def replace(self, notifications: list[Notification]) -> None:
        """Adopt the server's full list; unread is recomputed from it."""
        self.notifications = list(notifications)
        self.unread_count = sum(1 for n in self.notifications if not n.is_read)
        known = {n.id for n in self.notifications}
        self.toasts = [t for t in self.toasts if t.id in known]

    def add(self, notification: Notification) -> bool:
        """
        Prepend a newly pushed notification.

        Returns:
            False if a notification with the same id is already known
        """
        if self.get(notification.id) is not None:
            return False

        self.notifications.insert(0, notification)
        if not notification.is_read:
            self.unread_count += 1
        return True

    def push_toast(self, notification: Notification) -> list[int]:
        """
        Show a toast for `notification` at the front of the stack.

        Returns:
            Ids of toasts evicted to respect the cap
        """
        self.toasts = [t for t in self.toasts if t.id != notification.id]
        self.toasts.insert(0, notification)

        evicted = [t.id for t in self.toasts[self.max_toasts :]]
        del self.toasts[self.max_toasts :]
        return evicted

    def dismiss(self, notification_id: int) -> bool:
        """Remove a toast. The notification itself stays in the list."""
        before = len(self.toasts)
        self.toasts = [t for t in self.toasts if t.id != notification_id]
        return len(self.toasts) != before

    def mark_read(self, notification_id: int) -> bool:
        """
        Flip one entry to read.

        Returns:
            True only on the first flip of an existing unread entry
        """
        for index, notification in enumerate(self.notifications):
            if notification.id != notification_id:
                continue
            if notification.is_read:
                return False
            self.notifications[index] = notification.model_copy(update={"is_read": True})
            self.unread_count = max(0, self.unread_count - 1)
            return True
        return False

    def mark_all_read(self) -> int:
        """Flip every entry to read and zero the unread count."""
        flipped = 0
        for index, notification in enumerate(self.notifications):
            if not notification.is_read:
                self.notifications[index] = notification.model_copy(update={"is_read": True})
                flipped += 1
        self.unread_count = 0
        return flipped

    def set_connected(self, connected: bool) -> bool:
        """Returns True if the flag changed."""
        if self.is_connected == connected:
            return False
        self.is_connected = connected
        return True

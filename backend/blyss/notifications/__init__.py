"""
Notification delivery.

Persists notifications, applies per-user category preferences, and pushes
them to connected sockets through the notification gateway.
"""

from blyss.notifications.service import NotificationService

__all__ = ["NotificationService"]

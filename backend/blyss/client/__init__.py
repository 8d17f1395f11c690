"""Notification client runtime."""

from blyss.client.credentials import FileTokenStore, InMemoryTokenStore, TokenStore
from blyss.client.runtime import NotificationClient
from blyss.client.state import NotificationState

__all__ = [
    "FileTokenStore",
    "InMemoryTokenStore",
    "NotificationClient",
    "NotificationState",
    "TokenStore",
]

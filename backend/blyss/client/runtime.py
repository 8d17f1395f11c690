"""
Notification client runtime with auto-reconnection and token refresh.

Keeps one authenticated WebSocket to the notification gateway, applies server
messages to a NotificationState, and manages toast lifetimes.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any

import httpx
import structlog
import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from blyss.auth.token_service import TOKEN_EXPIRED
from blyss.client.credentials import TokenStore
from blyss.client.display import toast_duration
from blyss.client.state import MAX_TOASTS, NotificationState
from blyss.config import settings
from blyss.models.messages import (
    AuthErrorMessage,
    AuthMessage,
    AuthPayload,
    AuthSuccessMessage,
    MalformedMessageError,
    MarkAllReadMessage,
    MarkAllReadSuccessMessage,
    MarkReadMessage,
    MarkReadSuccessMessage,
    NewNotificationMessage,
    NotificationRef,
    NotificationsMessage,
    dump_message,
    parse_server_message,
)

logger = structlog.get_logger(__name__)


StateListener = Callable[[NotificationState], None]
Connect = Callable[[str], Awaitable[Any]]

DEFAULT_RECONNECT_DELAY = 3.0  # Seconds before reopening after an unexpected close
DEFAULT_AUTH_RETRY_DELAY = 0.5  # Seconds between an expired-token close and the refresh call
NEW_NOTIFICATION_PULSE_MS = 10
MARK_READ_PULSE_MS = 5
MARK_ALL_READ_PULSE_MS = 10

REFRESH_PATH = "/api/v1/auth/refresh"


class _Outcome(Enum):
    """How a single connection ended."""

    CLOSED = "closed"  # reconnect after the delay
    REAUTH = "reauth"  # token refreshed, reconnect now
    STOP = "stop"  # nothing more to do


class NotificationClient:
    """
    Real-time notification client.

    Features:
    - One socket at a time, authenticated with the stored access token
    - Refresh and reconnect when the gateway reports an expired token
    - Reconnect after an unexpected close
    - Toasts capped at 3, each dismissed after its kind's duration

    Usage:
        client = NotificationClient(ws_url, api_base_url, InMemoryTokenStore(token))
        client.on_state_change(render)
        await client.start()
        ...
        await client.mark_as_read(42)
        ...
        await client.stop()
    """

    def __init__(
        self,
        ws_url: str,
        api_base_url: str,
        token_store: TokenStore,
        *,
        connect: Connect | None = None,
        http_client: httpx.AsyncClient | None = None,
        on_session_expired: Callable[[], None] | None = None,
        on_haptic: Callable[[int], None] | None = None,
        reconnect_delay: float = DEFAULT_RECONNECT_DELAY,
        auth_retry_delay: float = DEFAULT_AUTH_RETRY_DELAY,
        max_toasts: int = MAX_TOASTS,
    ):
        """
        Initialize notification client.

        Args:
            ws_url: Gateway WebSocket URL
            api_base_url: Base URL of the REST API (for token refresh)
            token_store: Where the access token is read and written
            connect: Socket factory (default websockets.connect)
            http_client: HTTP client for refresh calls (created and owned if omitted)
            on_session_expired: Called once when the token can no longer be refreshed
            on_haptic: Called with a pulse length in milliseconds
            reconnect_delay: Seconds before reconnecting after a close (default 3)
            auth_retry_delay: Seconds before refreshing an expired token (default 0.5)
            max_toasts: Visible toast cap (default 3)
        """
        self.ws_url = ws_url
        self.api_base_url = api_base_url.rstrip("/")
        self.token_store = token_store
        self.state = NotificationState(max_toasts=max_toasts)

        self._connect = connect or websockets.connect
        self._http_client = http_client
        self._owns_http_client = http_client is None
        self._on_session_expired = on_session_expired
        self._on_haptic = on_haptic
        self._reconnect_delay = reconnect_delay
        self._auth_retry_delay = auth_retry_delay

        # State
        self._active = False
        self._loop: asyncio.AbstractEventLoop | None = None
        self._ws: Any = None
        self._socket_open = False

        # Callbacks
        self._listeners: list[StateListener] = []

        # Background work
        self._connection_task: asyncio.Task | None = None
        self._reconnect_handle: asyncio.TimerHandle | None = None
        self._toast_timers: dict[int, asyncio.TimerHandle] = {}

    @classmethod
    def from_settings(cls, token_store: TokenStore, **kwargs: Any) -> NotificationClient:
        """Build a client from the application settings."""
        options: dict[str, Any] = {
            "reconnect_delay": settings.client_reconnect_delay,
            "auth_retry_delay": settings.client_auth_retry_delay,
            "max_toasts": settings.client_max_toasts,
        }
        options.update(kwargs)
        return cls(settings.ws_url, settings.api_base_url, token_store, **options)

    @property
    def is_running(self) -> bool:
        """Check if client is running (started and not stopped)."""
        return self._active

    @property
    def is_connected(self) -> bool:
        """True once the gateway has accepted the current socket's token."""
        return self.state.is_connected

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_handle is not None

    # =============================
    # Lifecycle
    # =============================

    async def start(self) -> None:
        """Activate the client and open the first connection."""
        if self._active:
            logger.warning("client_already_running")
            return

        self._active = True
        self._loop = asyncio.get_running_loop()
        self._open_connection()
        logger.info("client_started", ws_url=self.ws_url)

    async def stop(self) -> None:
        """Stop reconnecting, cancel timers, close the socket and any owned HTTP client."""
        was_active = self._active
        self._active = False
        self._cancel_timers()

        ws = self._ws
        if ws is not None:
            try:
                await ws.close()
            except Exception as e:
                logger.debug("socket_close_failed", error=str(e))

        task = self._connection_task
        self._connection_task = None
        if task is not None and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        await self._close_http_client()

        if was_active:
            logger.info("client_stopped")

    def _open_connection(self) -> None:
        if not self._active or self._loop is None:
            return
        if self._connection_task is not None and not self._connection_task.done():
            logger.debug("connection_already_open")
            return
        self._connection_task = self._loop.create_task(self._run_connection())

    async def _run_connection(self) -> None:
        while self._active:
            outcome = await self._connect_once()
            if outcome is _Outcome.REAUTH:
                continue
            if outcome is _Outcome.CLOSED:
                self._schedule_reconnect()
            return

    async def _connect_once(self) -> _Outcome:
        token = self.token_store.get_token()
        if not token:
            logger.warning("no_token_available")
            return _Outcome.STOP

        try:
            ws = await self._connect(self.ws_url)
        except (OSError, asyncio.TimeoutError, WebSocketException) as e:
            logger.warning("connect_failed", ws_url=self.ws_url, error=str(e))
            return _Outcome.CLOSED

        self._ws = ws
        self._socket_open = True
        logger.info("socket_opened", ws_url=self.ws_url)

        try:
            await ws.send(json.dumps(dump_message(AuthMessage(data=AuthPayload(token=token)))))

            while True:
                raw = await ws.recv()
                outcome = await self._dispatch(ws, raw, token)
                if outcome is not None:
                    return outcome
        except ConnectionClosed as e:
            logger.info("socket_closed", code=getattr(e.rcvd, "code", None))
            return _Outcome.CLOSED
        finally:
            self._socket_open = False
            self._ws = None
            if self.state.set_connected(False):
                self._notify()

    def _schedule_reconnect(self) -> None:
        if not self._active or self._loop is None:
            return

        if self._reconnect_handle is not None:
            self._reconnect_handle.cancel()

        self._reconnect_handle = self._loop.call_later(self._reconnect_delay, self._reconnect)
        logger.info("reconnect_scheduled", delay=self._reconnect_delay)

    def _reconnect(self) -> None:
        self._reconnect_handle = None
        if not self._active:
            return
        logger.info("reconnecting")
        self._open_connection()

    # =============================
    # Inbound messages
    # =============================

    async def _dispatch(self, ws: Any, raw: str | bytes, token: str) -> _Outcome | None:
        try:
            message = parse_server_message(raw)
        except MalformedMessageError as e:
            logger.warning("malformed_message", error=str(e))
            return None

        if message is None:
            return None

        if isinstance(message, AuthErrorMessage):
            if self._is_expired(message):
                return await self._handle_expired_token(ws, token)
            logger.warning("auth_rejected", code=message.data.code, reason=message.data.message)
        elif isinstance(message, AuthSuccessMessage):
            logger.info("authenticated")
            if self.state.set_connected(True):
                self._notify()
        elif isinstance(message, NotificationsMessage):
            self.state.replace(message.data)
            self._notify()
        elif isinstance(message, NewNotificationMessage):
            self._handle_new_notification(message)
        elif isinstance(message, (MarkReadSuccessMessage, MarkAllReadSuccessMessage)):
            logger.debug("server_ack", message_type=message.type)

        return None

    @staticmethod
    def _is_expired(message: AuthErrorMessage) -> bool:
        return message.data.code == TOKEN_EXPIRED or "expired" in message.data.message.lower()

    async def _handle_expired_token(self, ws: Any, token: str) -> _Outcome:
        logger.info("token_expired_refreshing")
        self._socket_open = False
        try:
            await ws.close()
        except Exception as e:
            logger.debug("socket_close_failed", error=str(e))

        await asyncio.sleep(self._auth_retry_delay)

        new_token = await self._refresh_token(token)
        if new_token:
            self.token_store.set_token(new_token)
            logger.info("token_refreshed")
            return _Outcome.REAUTH

        logger.warning("session_expired")
        self.token_store.clear()
        self._active = False
        self._cancel_timers()
        await self._close_http_client()
        if self._on_session_expired is not None:
            try:
                self._on_session_expired()
            except Exception as e:
                logger.error("session_expired_callback_failed", error=str(e))
        return _Outcome.STOP

    async def _refresh_token(self, token: str) -> str | None:
        client = self._http_client
        if client is None:
            client = self._http_client = httpx.AsyncClient(timeout=10.0)

        try:
            response = await client.post(
                f"{self.api_base_url}{REFRESH_PATH}",
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.HTTPError as e:
            logger.warning("token_refresh_failed", error=str(e))
            return None

        if response.status_code != 200:
            logger.warning("token_refresh_rejected", status_code=response.status_code)
            return None

        try:
            return response.json().get("token") or None
        except ValueError as e:
            logger.warning("token_refresh_failed", error=str(e))
            return None

    def _handle_new_notification(self, message: NewNotificationMessage) -> None:
        notification = message.data
        if not self.state.add(notification):
            logger.debug("duplicate_notification", notification_id=notification.id)
            return

        for evicted in self.state.push_toast(notification):
            self._cancel_toast_timer(evicted)

        self._pulse(NEW_NOTIFICATION_PULSE_MS)
        self._cancel_toast_timer(notification.id)
        if self._loop is not None:
            self._toast_timers[notification.id] = self._loop.call_later(
                toast_duration(notification.type), self._expire_toast, notification.id
            )

        logger.info(
            "notification_received",
            notification_id=notification.id,
            notification_type=notification.type.value,
            unread_count=self.state.unread_count,
        )
        self._notify()

    # =============================
    # User actions
    # =============================

    async def mark_as_read(self, notification_id: int) -> None:
        """
        Mark one notification as read.

        Skipped unless the socket is open and authenticated. Repeating the call for the same id
        changes nothing locally after the first flip.
        """
        if not self._can_send_actions():
            logger.info("mark_read_skipped_offline", notification_id=notification_id)
            return

        if self.state.mark_read(notification_id):
            self._notify()
        self._pulse(MARK_READ_PULSE_MS)

        await self._send(
            MarkReadMessage(data=NotificationRef(notification_id=notification_id))
        )

    async def mark_all_as_read(self) -> None:
        """Mark every notification as read. Skipped unless the socket is authenticated."""
        if not self._can_send_actions():
            logger.info("mark_all_read_skipped_offline")
            return

        self.state.mark_all_read()
        self._notify()
        self._pulse(MARK_ALL_READ_PULSE_MS)

        await self._send(MarkAllReadMessage())

    def dismiss_toast(self, notification_id: int) -> None:
        """Hide a toast before its timer runs out."""
        self._cancel_toast_timer(notification_id)
        if self.state.dismiss(notification_id):
            self._notify()

    def _can_send_actions(self) -> bool:
        # The gateway ignores actions until auth_success, so a socket that is
        # only open would silently drop them.
        return self._socket_open and self._ws is not None and self.state.is_connected

    async def _send(self, message: Any) -> None:
        ws = self._ws
        if ws is None:
            return
        try:
            await ws.send(json.dumps(dump_message(message)))
        except Exception as e:
            logger.warning("send_failed", message_type=message.type, error=str(e))

    # =============================
    # Listeners and timers
    # =============================

    def on_state_change(self, callback: StateListener) -> None:
        """
        Register a callback run after every state mutation.

        Args:
            callback: Receives the NotificationState
        """
        self._listeners.append(callback)

    def remove_listener(self, callback: StateListener) -> bool:
        """
        Unregister a state callback.

        Returns:
            True if callback was found and removed
        """
        try:
            self._listeners.remove(callback)
            return True
        except ValueError:
            return False

    def _notify(self) -> None:
        for callback in list(self._listeners):
            try:
                callback(self.state)
            except Exception as e:
                logger.error("listener_failed", error=str(e))

    def _pulse(self, duration_ms: int) -> None:
        if self._on_haptic is None:
            return
        try:
            self._on_haptic(duration_ms)
        except Exception as e:
            logger.debug("haptic_failed", error=str(e))

    def _expire_toast(self, notification_id: int) -> None:
        self._toast_timers.pop(notification_id, None)
        if not self._active:
            return
        if self.state.dismiss(notification_id):
            self._notify()

    def _cancel_toast_timer(self, notification_id: int) -> None:
        handle = self._toast_timers.pop(notification_id, None)
        if handle is not None:
            handle.cancel()

    def _cancel_timers(self) -> None:
        if self._reconnect_handle is not None:
            self._reconnect_handle.cancel()
            self._reconnect_handle = None
        for handle in self._toast_timers.values():
            handle.cancel()
        self._toast_timers.clear()

    async def _close_http_client(self) -> None:
        if self._owns_http_client and self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

"""
WebSocket Notification Gateway

Purpose:
--------
Serves the per-user notification channel. A socket starts unauthenticated and
must send `{"type": "auth", "data": {"token": ...}}` before anything else. The
token is checked with the same validation as the REST dependency. On success
the socket is bound to the user id, receives `auth_success`, then the user's
full notification list (newest first). From then on it accepts `mark_read` /
`mark_all_read` and receives `new_notification` pushes.

Session States:
---------------
- UNAUTHENTICATED: only `auth` is acted on; anything else is ignored
- AUTHENTICATED: bound to one user id for the socket's lifetime
- CLOSED: auth failed, or the transport went away; binding released

Failure Semantics:
------------------
- Malformed frames are logged and the socket stays open; binary frames
  holding UTF-8 JSON are read like text frames
- Auth failure sends `auth_error {code, message}` and closes with 1008
- Store errors on list/mark operations are logged; the socket stays open
- Pushes are fire-and-forget: no socket bound, no delivery
- A failed push releases the binding and closes the socket; frames that
  arrive on it afterwards are logged and dropped
"""

import asyncio
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from enum import Enum
from typing import Optional
from uuid import uuid4

import structlog
from fastapi import WebSocket
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from blyss import database
from blyss.api.dependencies import validate_access_token
from blyss.auth.token_service import TokenError
from blyss.models.messages import (
    AuthErrorMessage,
    AuthErrorPayload,
    AuthMessage,
    AuthSuccessMessage,
    AuthSuccessPayload,
    MalformedMessageError,
    MarkAllReadMessage,
    MarkAllReadSuccessMessage,
    MarkReadMessage,
    MarkReadSuccessMessage,
    NewNotificationMessage,
    NotificationRef,
    NotificationsMessage,
    dump_message,
    parse_client_message,
)
from blyss.models.notification import Notification
from blyss.observability.metrics import gateway_auth_attempts_total, gateway_connections_active
from blyss.repositories.notification_repository import NotificationRepository

logger = structlog.get_logger(__name__)

POLICY_VIOLATION = 1008
INTERNAL_ERROR = 1011

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]


def frame_text(frame: dict) -> Optional[str]:
    """
    Text payload of an ASGI `websocket.receive` event.

    Binary frames are accepted when they hold UTF-8 text. Returns None for
    anything that cannot be read as text.
    """
    text = frame.get("text")
    if text is not None:
        return text

    data = frame.get("bytes")
    if data is None:
        return None
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        return None


class SessionState(str, Enum):
    """Lifecycle of one gateway socket."""

    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"
    CLOSED = "closed"


class GatewaySession:
    """
    One live socket and its binding.

    Sends are serialized through `send_lock` so the `auth_success` /
    `notifications` pair is never interleaved with a push.
    """

    def __init__(self, websocket: WebSocket) -> None:
        self.websocket = websocket
        self.connection_id = str(uuid4())
        self.state = SessionState.UNAUTHENTICATED
        self.user_id: Optional[int] = None
        self.send_lock = asyncio.Lock()
        self.transport_closed = False

    @property
    def is_authenticated(self) -> bool:
        return self.state == SessionState.AUTHENTICATED

    async def send(self, message: BaseModel) -> None:
        async with self.send_lock:
            await self.write(message)

    async def write(self, message: BaseModel) -> None:
        """Send without taking the lock; caller must hold `send_lock`."""
        await self.websocket.send_json(dump_message(message))

    async def close(self, code: int = 1000, reason: Optional[str] = None) -> None:
        """Close the transport once; later calls and send errors are ignored."""
        if self.transport_closed:
            return
        self.transport_closed = True
        try:
            await self.websocket.close(code=code, reason=reason)
        except Exception as e:
            logger.debug("socket_close_failed", connection_id=self.connection_id, error=str(e))


class NotificationGateway:
    """
    Tracks authenticated sockets by user id and serves the notification protocol.

    Attributes:
    -----------
    active_connections: Dict mapping user_id to the GatewaySession bound to it

    Methods:
    --------
    - handle_connection(websocket): Run one socket from accept to close
    - handle_frame(session, raw): Dispatch a single text frame
    - push_notification(notification): Deliver `new_notification` to its owner
    - send_to_user(user_id, message): Deliver any server message to a user
    - is_connected(user_id): Whether a socket is bound for the user
    """

    def __init__(self, session_factory: Optional[SessionFactory] = None) -> None:
        """
        Initialize gateway with empty connection tracking.

        Args:
            session_factory: Async session factory (defaults to blyss.database.async_session_maker)
        """
        self.active_connections: dict[int, GatewaySession] = {}
        self.session_factory = session_factory

    def _db_session(self) -> AbstractAsyncContextManager[AsyncSession]:
        factory = self.session_factory or database.async_session_maker
        return factory()

    # =============================
    # Connection lifecycle
    # =============================

    async def handle_connection(self, websocket: WebSocket) -> None:
        """
        Accept a socket and process its frames until it closes.

        Args:
            websocket: FastAPI WebSocket instance
        """
        await websocket.accept()
        session = GatewaySession(websocket)
        log = logger.bind(connection_id=session.connection_id)
        log.info("socket_opened")

        close_code = 1000
        try:
            while session.state != SessionState.CLOSED:
                frame = await websocket.receive()
                if frame["type"] == "websocket.disconnect":
                    session.transport_closed = True
                    log.info(
                        "socket_disconnected",
                        user_id=session.user_id,
                        code=frame.get("code"),
                    )
                    break

                raw = frame_text(frame)
                if raw is None:
                    log.warning("malformed_frame", error="frame is not UTF-8 text")
                    continue

                await self.handle_frame(session, raw)
        except Exception as e:
            log.error("socket_error", user_id=session.user_id, error=str(e))
            close_code = INTERNAL_ERROR
        finally:
            self._release(session)
            await session.close(code=close_code)

    async def handle_frame(self, session: GatewaySession, raw: str) -> None:
        """
        Dispatch one client frame according to the session state.

        Args:
            session: Socket the frame arrived on
            raw: Text frame
        """
        try:
            message = parse_client_message(raw)
        except MalformedMessageError as e:
            logger.warning(
                "malformed_frame",
                connection_id=session.connection_id,
                error=str(e),
            )
            return

        if message is None:
            logger.debug("unknown_frame_type", connection_id=session.connection_id)
            return

        if session.state == SessionState.UNAUTHENTICATED:
            if isinstance(message, AuthMessage):
                await self._authenticate(session, message.data.token)
            else:
                logger.debug(
                    "unauthenticated_frame_ignored",
                    connection_id=session.connection_id,
                    message_type=message.type,
                )
            return

        if session.state != SessionState.AUTHENTICATED:
            logger.info(
                "closed_session_frame_dropped",
                connection_id=session.connection_id,
                user_id=session.user_id,
                message_type=message.type,
            )
            return

        if isinstance(message, MarkReadMessage):
            await self._mark_read(session, message.data.notification_id)
        elif isinstance(message, MarkAllReadMessage):
            await self._mark_all_read(session)
        elif isinstance(message, AuthMessage):
            logger.debug(
                "reauth_ignored",
                connection_id=session.connection_id,
                user_id=session.user_id,
            )

    async def _authenticate(self, session: GatewaySession, token: Optional[str]) -> None:
        try:
            claims = validate_access_token(token)
        except TokenError as e:
            logger.info(
                "socket_auth_failed",
                connection_id=session.connection_id,
                code=e.code,
            )
            gateway_auth_attempts_total.labels(result=e.code).inc()
            session.state = SessionState.CLOSED
            try:
                await session.send(
                    AuthErrorMessage(data=AuthErrorPayload(code=e.code, message=e.message))
                )
            except Exception as send_error:
                logger.debug("auth_error_not_sent", error=str(send_error))
            await session.close(code=POLICY_VIOLATION, reason=e.message)
            return

        user_id = claims["user_id"]
        gateway_auth_attempts_total.labels(result="success").inc()

        async with session.send_lock:
            session.user_id = user_id
            session.state = SessionState.AUTHENTICATED
            self._bind(session)

            await session.write(AuthSuccessMessage(data=AuthSuccessPayload(user_id=user_id)))

            notifications = await self._load_notifications(user_id)
            if notifications is not None:
                await session.write(NotificationsMessage(data=notifications))

        logger.info(
            "socket_authenticated",
            connection_id=session.connection_id,
            user_id=user_id,
            notifications=len(notifications or []),
        )

    def _bind(self, session: GatewaySession) -> None:
        previous = self.active_connections.get(session.user_id)
        if previous is not None and previous is not session:
            logger.info(
                "binding_replaced",
                user_id=session.user_id,
                previous_connection_id=previous.connection_id,
                connection_id=session.connection_id,
            )
        self.active_connections[session.user_id] = session
        gateway_connections_active.set(len(self.active_connections))

    def _release(self, session: GatewaySession) -> None:
        session.state = SessionState.CLOSED
        if session.user_id is None:
            return
        if self.active_connections.get(session.user_id) is session:
            del self.active_connections[session.user_id]
            gateway_connections_active.set(len(self.active_connections))
            logger.info(
                "binding_released",
                connection_id=session.connection_id,
                user_id=session.user_id,
            )

    # =============================
    # Store operations
    # =============================

    async def _load_notifications(self, user_id: int) -> Optional[list[Notification]]:
        try:
            async with self._db_session() as db:
                return await NotificationRepository(db).get_notifications(user_id)
        except SQLAlchemyError as e:
            logger.error("notification_list_failed", user_id=user_id, error=str(e))
            return None

    async def _mark_read(self, session: GatewaySession, notification_id: int) -> None:
        try:
            async with self._db_session() as db:
                changed = await NotificationRepository(db).mark_as_read(
                    notification_id, session.user_id
                )
            logger.debug(
                "notification_marked_read",
                user_id=session.user_id,
                notification_id=notification_id,
                changed=changed,
            )
        except SQLAlchemyError as e:
            logger.error(
                "mark_read_failed",
                user_id=session.user_id,
                notification_id=notification_id,
                error=str(e),
            )

        await session.send(
            MarkReadSuccessMessage(data=NotificationRef(notification_id=notification_id))
        )

    async def _mark_all_read(self, session: GatewaySession) -> None:
        try:
            async with self._db_session() as db:
                updated = await NotificationRepository(db).mark_all_as_read(session.user_id)
            logger.debug("notifications_marked_read", user_id=session.user_id, updated=updated)
        except SQLAlchemyError as e:
            logger.error("mark_all_read_failed", user_id=session.user_id, error=str(e))

        await session.send(MarkAllReadSuccessMessage())

    # =============================
    # Push delivery
    # =============================

    def is_connected(self, user_id: int) -> bool:
        """Whether an authenticated socket is bound for the user."""
        return user_id in self.active_connections

    def connected_user_ids(self) -> list[int]:
        """Ids of users with a bound socket."""
        return list(self.active_connections.keys())

    async def send_to_user(self, user_id: int, message: BaseModel) -> bool:
        """
        Send a server message to the socket bound to `user_id`.

        Returns:
            True if the frame was written, False if no socket is bound or the send failed
        """
        session = self.active_connections.get(user_id)
        if session is None:
            logger.debug("user_not_connected", user_id=user_id)
            return False

        try:
            await session.send(message)
        except Exception as e:
            logger.warning(
                "push_failed",
                user_id=user_id,
                connection_id=session.connection_id,
                error=str(e),
            )
            self._release(session)
            await session.close(code=INTERNAL_ERROR)
            return False

        return True

    async def push_notification(self, notification: Notification) -> bool:
        """
        Emit `new_notification` to the notification's owner.

        Message Format:
            {
                "type": "new_notification",
                "data": {
                    "id": 7,
                    "user_id": 12,
                    "type": "new_booking",
                    "title": "...",
                    "message": "...",
                    "data": {...},
                    "is_read": false,
                    "created_at": "<ISO8601>"
                }
            }
        """
        delivered = await self.send_to_user(
            notification.user_id, NewNotificationMessage(data=notification)
        )
        if delivered:
            logger.info(
                "notification_pushed",
                user_id=notification.user_id,
                notification_id=notification.id,
            )
        return delivered


# Global singleton instance
gateway = NotificationGateway()


async def websocket_endpoint(websocket: WebSocket) -> None:
    """
    WebSocket endpoint handler.

    Endpoint: ws://localhost:8000/ws

    Unlike query-string auth, the token travels in the first frame so it never
    lands in access logs.
    """
    await gateway.handle_connection(websocket)

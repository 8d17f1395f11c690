"""
WebSocket message envelopes for the notification gateway.

Every frame is a JSON object `{"type": ..., "data": ...}`. Each direction is a
closed set of variants discriminated on `type`:

Client -> gateway:
    auth           {"token": str}
    mark_read      {"notificationId": int}
    mark_all_read  null

Gateway -> client:
    auth_success           {"userId": int}
    auth_error             {"code": str, "message": str}
    notifications          [Notification, ...]
    new_notification       Notification
    mark_read_success      {"notificationId": int}
    mark_all_read_success  null

Unknown `type` values parse to None so both ends can ignore them.
"""

import json
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from blyss.models.notification import Notification


class MalformedMessageError(ValueError):
    """Frame is not JSON, not an object, or does not match its declared type."""


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# =============================
# Client -> gateway
# =============================


class AuthPayload(_Payload):
    token: Optional[str] = None


class AuthMessage(BaseModel):
    type: Literal["auth"] = "auth"
    data: AuthPayload = Field(default_factory=AuthPayload)


class NotificationRef(_Payload):
    notification_id: int = Field(..., alias="notificationId")


class MarkReadMessage(BaseModel):
    type: Literal["mark_read"] = "mark_read"
    data: NotificationRef


class MarkAllReadMessage(BaseModel):
    type: Literal["mark_all_read"] = "mark_all_read"
    data: Optional[dict[str, Any]] = None


ClientMessage = Annotated[
    Union[AuthMessage, MarkReadMessage, MarkAllReadMessage],
    Field(discriminator="type"),
]


# =============================
# Gateway -> client
# =============================


class AuthSuccessPayload(_Payload):
    user_id: int = Field(..., alias="userId")


class AuthSuccessMessage(BaseModel):
    type: Literal["auth_success"] = "auth_success"
    data: Optional[AuthSuccessPayload] = None


class AuthErrorPayload(BaseModel):
    code: str
    message: str


class AuthErrorMessage(BaseModel):
    type: Literal["auth_error"] = "auth_error"
    data: AuthErrorPayload


class NotificationsMessage(BaseModel):
    type: Literal["notifications"] = "notifications"
    data: list[Notification] = Field(default_factory=list)


class NewNotificationMessage(BaseModel):
    type: Literal["new_notification"] = "new_notification"
    data: Notification


class MarkReadSuccessMessage(BaseModel):
    type: Literal["mark_read_success"] = "mark_read_success"
    data: Optional[NotificationRef] = None


class MarkAllReadSuccessMessage(BaseModel):
    type: Literal["mark_all_read_success"] = "mark_all_read_success"
    data: Optional[dict[str, Any]] = None


ServerMessage = Annotated[
    Union[
        AuthSuccessMessage,
        AuthErrorMessage,
        NotificationsMessage,
        NewNotificationMessage,
        MarkReadSuccessMessage,
        MarkAllReadSuccessMessage,
    ],
    Field(discriminator="type"),
]

client_message_adapter: TypeAdapter[ClientMessage] = TypeAdapter(ClientMessage)
server_message_adapter: TypeAdapter[ServerMessage] = TypeAdapter(ServerMessage)

CLIENT_MESSAGE_TYPES = frozenset({"auth", "mark_read", "mark_all_read"})
SERVER_MESSAGE_TYPES = frozenset(
    {
        "auth_success",
        "auth_error",
        "notifications",
        "new_notification",
        "mark_read_success",
        "mark_all_read_success",
    }
)


def _load_envelope(raw: Union[str, bytes]) -> dict[str, Any]:
    try:
        envelope = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise MalformedMessageError(f"Frame is not valid JSON: {e}") from e

    if not isinstance(envelope, dict) or not isinstance(envelope.get("type"), str):
        raise MalformedMessageError("Frame must be an object with a string 'type'")

    return envelope


def parse_client_message(raw: Union[str, bytes]) -> Optional[ClientMessage]:
    """
    Parse a frame received by the gateway.

    Returns:
        The typed message, or None when the type is not one the gateway handles

    Raises:
        MalformedMessageError: invalid JSON or a known type with a bad payload
    """
    envelope = _load_envelope(raw)
    if envelope["type"] not in CLIENT_MESSAGE_TYPES:
        return None
    if envelope.get("data") is None:
        envelope.pop("data", None)

    try:
        return client_message_adapter.validate_python(envelope)
    except ValidationError as e:
        raise MalformedMessageError(str(e)) from e


def parse_server_message(raw: Union[str, bytes]) -> Optional[ServerMessage]:
    """
    Parse a frame received by the client runtime.

    Returns:
        The typed message, or None for types the client does not know

    Raises:
        MalformedMessageError: invalid JSON or a known type with a bad payload
    """
    envelope = _load_envelope(raw)
    if envelope["type"] not in SERVER_MESSAGE_TYPES:
        return None

    try:
        return server_message_adapter.validate_python(envelope)
    except ValidationError as e:
        raise MalformedMessageError(str(e)) from e


def dump_message(message: BaseModel) -> dict[str, Any]:
    """Serialize a message model to a JSON-ready dict using wire aliases."""
    return message.model_dump(mode="json", by_alias=True)

"""
End-to-end tests: client runtime ↔ in-process gateway ↔ SQLite.

The client talks to a real NotificationGateway through LoopbackConnector and
refreshes tokens against the FastAPI app through httpx's ASGITransport.
"""

import asyncio

import httpx
import pytest
import pytest_asyncio

from blyss.api.main import app
from blyss.client import InMemoryTokenStore, NotificationClient
from blyss.models.notification import NotificationType
from blyss.notifications.service import NotificationService
from tests.mocks import LoopbackConnector


async def wait_until(predicate, timeout: float = 3.0) -> None:
    async def _poll():
        while not predicate():
            await asyncio.sleep(0.005)

    await asyncio.wait_for(_poll(), timeout)


@pytest_asyncio.fixture
async def loopback(test_gateway):
    connector = LoopbackConnector(test_gateway)
    yield connector
    await connector.aclose()


@pytest_asyncio.fixture
async def refresh_http_client():
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app)) as client:
        yield client


def make_client(token: str, loopback, http_client, haptics=None, on_session_expired=None):
    return NotificationClient(
        "ws://test/ws",
        "http://test",
        InMemoryTokenStore(token),
        connect=loopback,
        http_client=http_client,
        on_haptic=(haptics.append if haptics is not None else None),
        on_session_expired=on_session_expired,
        auth_retry_delay=0.05,
        reconnect_delay=0.2,
    )


@pytest.mark.asyncio
async def test_new_booking_reaches_client_and_mark_read_round_trips(
    test_gateway, repository, loopback, refresh_http_client, auth_token, test_user_id
):
    haptics: list[int] = []
    client = make_client(auth_token, loopback, refresh_http_client, haptics)
    service = NotificationService(repository=repository, gateway=test_gateway)

    await client.start()
    try:
        await wait_until(lambda: client.is_connected)
        await wait_until(lambda: "notifications" in loopback.connections[0].received_types())
        assert client.state.notifications == []

        created = await service.send_notification(
            test_user_id,
            NotificationType.NEW_BOOKING,
            "Nouvelle réservation",
            "Léa a réservé demain 14h",
            {"booking_id": 981},
        )
        await wait_until(lambda: client.state.notifications)

        assert [t.id for t in client.state.toasts] == [created.id]
        assert client.state.unread_count == 1
        assert len(client.state.notifications) == 1
        assert client.state.notifications[0].data == {"booking_id": 981}
        assert haptics == [10]

        await client.mark_as_read(created.id)
        assert client.state.unread_count == 0

        await wait_until(
            lambda: "mark_read_success" in loopback.connections[0].received_types()
        )
        assert await repository.get_unread_count(test_user_id) == 0
    finally:
        await client.stop()


@pytest.mark.asyncio
async def test_reconnect_after_auth_sees_stored_notifications(
    test_gateway, repository, loopback, refresh_http_client, auth_token, test_user_id
):
    await repository.create_notification(test_user_id, NotificationType.PROMOTIONAL, "Offre", "x")
    client = make_client(auth_token, loopback, refresh_http_client)

    await client.start()
    try:
        await wait_until(lambda: client.state.notifications)

        assert loopback.connections[0].received_types()[:2] == ["auth_success", "notifications"]
        assert client.state.unread_count == 1
    finally:
        await client.stop()


@pytest.mark.asyncio
async def test_expired_token_is_refreshed_and_new_socket_authenticates(
    test_gateway, loopback, refresh_http_client, expired_token, test_user_id
):
    client = make_client(expired_token, loopback, refresh_http_client)

    await client.start()
    try:
        await wait_until(lambda: client.is_connected)

        first, second = loopback.connections
        assert first.received_types() == ["auth_error"]
        assert first.received[0]["data"]["code"] == "TOKEN_EXPIRED"
        assert first.closed

        new_token = client.token_store.get_token()
        assert new_token != expired_token
        assert second.sent[0] == {"type": "auth", "data": {"token": new_token}}
        assert second.received_types()[0] == "auth_success"
        assert test_gateway.is_connected(test_user_id)
    finally:
        await client.stop()


@pytest.mark.asyncio
async def test_unrefreshable_token_ends_session(
    test_gateway, loopback, refresh_http_client, token_service, test_user_id
):
    from datetime import UTC, datetime, timedelta

    too_old = token_service.create_access_token(
        test_user_id,
        issued_at=datetime.now(UTC) - timedelta(days=30),
        expires_delta=timedelta(minutes=15),
    )
    expired = asyncio.Event()
    client = make_client(too_old, loopback, refresh_http_client, on_session_expired=expired.set)

    await client.start()
    try:
        await asyncio.wait_for(expired.wait(), 3.0)

        assert client.token_store.get_token() is None
        assert client.is_running is False
        assert len(loopback.connections) == 1
        assert test_gateway.connected_user_ids() == []
    finally:
        await client.stop()

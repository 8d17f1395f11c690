"""
Command line interface for the Blyss notification service.

Commands:
    blyss serve    Run the API and WebSocket gateway with uvicorn
    blyss listen   Connect as a user and print notifications as they arrive
    blyss notify   Create a notification for a user
    blyss token    Mint an access token for local testing
"""

from __future__ import annotations

import asyncio
import json

import click
import httpx
import structlog
import uvicorn

from blyss.api.dependencies import token_service
from blyss.client import FileTokenStore, InMemoryTokenStore, NotificationClient, NotificationState
from blyss.client.display import relative_time, style_for
from blyss.config import settings
from blyss.logging_config import configure_logging
from blyss.models.notification import NotificationType, UserRole

logger = structlog.get_logger(__name__)

NOTIFICATION_TYPES = [t.value for t in NotificationType]


@click.group()
@click.option("--log-level", default=None, help="Override LOG_LEVEL")
def cli(log_level):
    """Blyss notification service CLI."""
    configure_logging(level=log_level)


@cli.command()
@click.option("--host", default="0.0.0.0", help="Bind address")
@click.option("--port", default=8000, type=int, help="Bind port")
@click.option("--reload", is_flag=True, help="Reload on code changes")
def serve(host, port, reload):
    """Run the REST API and the /ws gateway."""
    logger.info("serve_starting", host=host, port=port)
    uvicorn.run("blyss.api.main:app", host=host, port=port, reload=reload)


@cli.command()
@click.argument("user_id", type=int)
@click.option(
    "--role",
    default=UserRole.CLIENT.value,
    type=click.Choice([r.value for r in UserRole]),
    help="Role claim (default: client)",
)
@click.option("--admin", is_flag=True, help="Add the is_admin claim")
@click.option("--save", is_flag=True, help="Store the token for `blyss listen`")
def token(user_id, role, admin, save):
    """
    Print a signed access token for USER_ID.

    Example:
        blyss token 12 --role pro --save
    """
    claims = {"role": role}
    if admin:
        claims["is_admin"] = True

    access_token = token_service.create_access_token(user_id, additional_claims=claims)

    if save:
        FileTokenStore(settings.client_token_file).set_token(access_token)
        click.echo(f"Token saved to {settings.client_token_file}", err=True)

    click.echo(access_token)


@cli.command()
@click.argument("user_id", type=int)
@click.option(
    "--type",
    "notification_type",
    required=True,
    type=click.Choice(NOTIFICATION_TYPES),
    help="Notification kind",
)
@click.option("--title", required=True, help="Notification title")
@click.option("--message", required=True, help="Notification body")
@click.option("--data", default=None, help="JSON payload, e.g. '{\"booking_id\": 42}'")
@click.option(
    "--local",
    is_flag=True,
    help="Write straight to the database instead of calling the running API (no live push)",
)
def notify(user_id, notification_type, title, message, data, local):
    """
    Create a notification for USER_ID.

    By default the admin endpoint of the running API is called so connected
    sockets receive it live.

    Example:
        blyss notify 12 --type new_booking --title "Nouvelle réservation" --message "Demain 14h"
    """
    try:
        payload = json.loads(data) if data else None
    except ValueError as e:
        raise click.BadParameter(f"--data is not valid JSON: {e}") from e
    if payload is not None and not isinstance(payload, dict):
        raise click.BadParameter("--data must be a JSON object")

    if local:
        notification = asyncio.run(
            _notify_local(user_id, NotificationType(notification_type), title, message, payload)
        )
        click.echo(f"Stored notification {notification.id} for user {user_id}")
        return

    admin_token = token_service.create_access_token(0, additional_claims={"is_admin": True})
    body = {
        "user_id": user_id,
        "type": notification_type,
        "title": title,
        "message": message,
        "data": payload,
    }
    try:
        response = httpx.post(
            f"{settings.api_base_url.rstrip('/')}/api/v1/admin/notifications",
            json=body,
            headers={"Authorization": f"Bearer {admin_token}"},
            timeout=10.0,
        )
    except httpx.HTTPError as e:
        raise click.ClickException(f"API unreachable: {e}") from e

    if response.status_code != 201:
        raise click.ClickException(f"API returned {response.status_code}: {response.text}")

    click.echo(f"Created notification {response.json()['id']} for user {user_id}")


async def _notify_local(user_id, notification_type, title, message, data):
    from blyss.database import async_session_maker, init_db
    from blyss.notifications.service import NotificationService
    from blyss.repositories.notification_repository import NotificationRepository

    if settings.auto_create_schema:
        await init_db()

    async with async_session_maker() as session:
        service = NotificationService(NotificationRepository(session))
        return await service.send_notification(user_id, notification_type, title, message, data)


@cli.command()
@click.option("--token", "access_token", default=None, help="Access token (default: saved token)")
def listen(access_token):
    """
    Connect to the gateway and print notifications until Ctrl-C.

    Example:
        blyss token 12 --save && blyss listen
    """
    store = (
        InMemoryTokenStore(access_token)
        if access_token
        else FileTokenStore(settings.client_token_file)
    )
    if store.get_token() is None:
        raise click.ClickException("No token. Pass --token or run `blyss token USER_ID --save`.")

    try:
        asyncio.run(_listen(store))
    except KeyboardInterrupt:
        click.echo("\nStopped.")


async def _listen(store):
    done = asyncio.Event()
    shown: set[int] = set()
    last_unread: list[int] = [-1]

    def render(state: NotificationState) -> None:
        for toast in state.toasts:
            if toast.id in shown:
                continue
            shown.add(toast.id)
            style = style_for(toast.type)
            click.echo(
                f"[{style.icon}] {toast.title}: {toast.message} "
                f"({relative_time(toast.created_at)})"
            )
        if state.unread_count != last_unread[0]:
            last_unread[0] = state.unread_count
            click.echo(f"Unread: {state.unread_count}")

    def session_expired() -> None:
        click.echo("Session expired, log in again with `blyss token`.", err=True)
        done.set()

    client = NotificationClient.from_settings(
        store,
        on_session_expired=session_expired,
    )
    client.on_state_change(render)

    await client.start()
    try:
        await done.wait()
    finally:
        await client.stop()


if __name__ == "__main__":
    cli()

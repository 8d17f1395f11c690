"""FastAPI application entry point for the Blyss notification service."""

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import make_asgi_app

from blyss import __version__
from blyss.api.routes import admin, auth, notifications
from blyss.api.websocket import gateway, websocket_endpoint
from blyss.config import settings
from blyss.database import init_db
from blyss.logging_config import configure_logging

logger = structlog.get_logger(__name__)

app = FastAPI(
    title="Blyss Notifications API",
    description="Real-time notification gateway and REST API for the Blyss booking platform",
    version=__version__,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(notifications.router)
app.include_router(admin.router)
app.add_api_websocket_route("/ws", websocket_endpoint)
app.mount("/metrics", make_asgi_app())


@app.on_event("startup")
async def startup_event():
    """
    FastAPI startup event handler.

    Configures logging and creates the schema when auto_create_schema is set.
    """
    configure_logging()

    if settings.auto_create_schema:
        await init_db()

    logger.info("api_started", environment=settings.environment, version=__version__)


@app.on_event("shutdown")
async def shutdown_event():
    """FastAPI shutdown event handler."""
    logger.info("api_stopped", open_sockets=len(gateway.connected_user_ids()))


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {"message": "Blyss Notifications API", "version": __version__}


@app.get("/health")
async def health_check() -> dict[str, object]:
    """Basic health check endpoint for Docker and monitoring."""
    return {"status": "healthy", "connected_users": len(gateway.connected_user_ids())}

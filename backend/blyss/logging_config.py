"""
Structured logging setup.

Configures structlog for the API process and the CLI. Stdlib logging is routed
to the same level so uvicorn and SQLAlchemy output stays consistent.
"""

import logging
import sys

import structlog

from blyss.config import settings


def configure_logging(level: str | None = None, json_logs: bool | None = None) -> None:
    """
    Configure structlog processors and the stdlib root logger.

    Args:
        level: Minimum level name (defaults to settings.log_level)
        json_logs: Render JSON lines instead of console output (defaults to settings.log_json)
    """
    level_name = (level or settings.log_level).upper()
    use_json = settings.log_json if json_logs is None else json_logs

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level_name, logging.INFO),
    )

    renderer = (
        structlog.processors.JSONRenderer() if use_json else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level_name, logging.INFO)
        ),
        cache_logger_on_first_use=True,
    )

"""
Application configuration module using Pydantic Settings.

This module provides centralized configuration for the Blyss notification
gateway and client runtime: database connection, JWT signing, CORS, client
reconnection timings, and logging.
"""

from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEV_JWT_SECRET = "dev-secret-key-change-in-production-use-64-char-random-string"


class Settings(BaseSettings):
    """
    Application settings with validation.

    Settings are loaded from environment variables with fallback to .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    environment: Literal["development", "staging", "production", "test"] = Field(
        default="development",
        description="Application environment",
    )
    debug: bool = Field(
        default=True,
        description="Debug mode flag",
    )

    # Database Configuration
    database_url: str = Field(
        default="sqlite+aiosqlite:///./blyss.db",
        description="SQLAlchemy connection string with async driver",
    )
    db_echo: bool = Field(
        default=False,
        description="Echo SQL statements to logs (useful for debugging)",
    )
    auto_create_schema: bool = Field(
        default=True,
        description="Create missing tables on startup",
    )

    # JWT Configuration
    jwt_secret_key: str = Field(
        default=DEV_JWT_SECRET,
        description="Secret key used to sign access tokens",
    )
    jwt_algorithm: str = Field(
        default="HS256",
        description="JWT signing algorithm",
    )
    jwt_access_token_expire_minutes: int = Field(
        default=15,
        ge=1,
        le=1440,
        description="Access token lifetime in minutes",
    )
    jwt_refresh_window_days: int = Field(
        default=7,
        ge=1,
        le=90,
        description="How long after issuance an expired access token may still be exchanged",
    )

    # HTTP / WebSocket surface
    cors_origins: list[str] = Field(
        default=["http://localhost:5173", "http://localhost:3000"],
        description="Origins allowed by the CORS middleware",
    )
    ws_url: str = Field(
        default="ws://localhost:8000/ws",
        description="Notification gateway URL used by the client runtime",
    )
    api_base_url: str = Field(
        default="http://localhost:8000",
        description="REST base URL used by the client runtime for token refresh",
    )

    # Client runtime
    client_reconnect_delay: float = Field(
        default=3.0,
        ge=0.0,
        le=60.0,
        description="Seconds before reconnecting after an unexpected close",
    )
    client_auth_retry_delay: float = Field(
        default=0.5,
        ge=0.0,
        le=10.0,
        description="Seconds to wait after an expired-token rejection before refreshing",
    )
    client_max_toasts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Maximum simultaneously visible toasts",
    )
    client_token_file: str = Field(
        default="~/.blyss/token.json",
        description="Where the CLI client persists its bearer token",
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Minimum log level",
    )
    log_json: bool = Field(
        default=False,
        description="Render logs as JSON lines instead of console output",
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """
        Validate that database URL uses an async-compatible driver.

        Ensures sqlite+aiosqlite://, postgresql+psycopg:// or postgresql+asyncpg://.
        """
        if isinstance(v, str):
            if not any(d in v for d in ("+aiosqlite://", "+psycopg://", "+asyncpg://")):
                raise ValueError(
                    "DATABASE_URL must use async driver "
                    "(sqlite+aiosqlite://, postgresql+psycopg:// or postgresql+asyncpg://)"
                )
        return v

    @model_validator(mode="after")
    def validate_production(self) -> "Settings":
        """Reject development defaults when running in production."""
        if self.environment == "production":
            if self.jwt_secret_key == DEV_JWT_SECRET:
                raise ValueError("JWT_SECRET_KEY must be changed in production")
            if self.debug:
                raise ValueError("DEBUG must be False in production")
        return self


# Global settings instance
settings = Settings()

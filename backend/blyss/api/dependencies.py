"""
FastAPI Dependencies

Provides dependency injection for database sessions and authentication.
The token validation here is shared with the WebSocket gateway.
"""

from collections.abc import AsyncGenerator
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from blyss import database
from blyss.auth.token_service import TokenError, TokenService
from blyss.config import settings
from blyss.models.auth import CurrentUser
from blyss.models.notification import UserRole

# Security scheme for Bearer token authentication
security = HTTPBearer(auto_error=False)

# Token service instance (uses settings for configuration)
token_service = TokenService(
    secret_key=settings.jwt_secret_key,
    algorithm=settings.jwt_algorithm,
    access_token_expire_minutes=settings.jwt_access_token_expire_minutes,
    refresh_window_days=settings.jwt_refresh_window_days,
)


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency for database sessions.

    Yields:
        AsyncSession: Database session
    """
    async with database.async_session_maker() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


def validate_access_token(token: Optional[str]) -> dict:
    """
    Validate a bearer access token.

    Args:
        token: JWT token string

    Returns:
        Decoded claims with an int `user_id`

    Raises:
        TokenError: missing, expired or invalid token
    """
    return token_service.validate_access_token(token)


def bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> str:
    """Extract the raw bearer token or fail with 401."""
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="TOKEN_MISSING",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return credentials.credentials


async def get_current_user(token: str = Depends(bearer_token)) -> CurrentUser:
    """
    FastAPI dependency returning the authenticated caller.

    Raises 401 with detail `TOKEN_EXPIRED` or `TOKEN_INVALID` so clients can
    tell a refreshable token from a bad one.

    Example:
        ```python
        @router.get("/me")
        async def me(user: CurrentUser = Depends(get_current_user)):
            return {"user_id": user.id}
        ```
    """
    try:
        claims = validate_access_token(token)
    except TokenError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.code,
            headers={"WWW-Authenticate": "Bearer"},
        ) from e

    try:
        role = UserRole(claims.get("role", UserRole.CLIENT.value))
    except ValueError:
        role = UserRole.CLIENT

    return CurrentUser(
        id=claims["user_id"],
        role=role,
        is_admin=bool(claims.get("is_admin", False)),
    )


async def require_admin(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    """Restrict an endpoint to admin accounts."""
    if not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return user

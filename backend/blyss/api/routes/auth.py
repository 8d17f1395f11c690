"""
Authentication API Routes

Token refresh for the notification client runtime.
"""

import structlog
from fastapi import APIRouter, Depends, HTTPException, status

from blyss.api.dependencies import bearer_token, token_service
from blyss.auth.token_service import TokenError
from blyss.models.auth import RefreshTokenResponse

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/v1/auth", tags=["authentication"])


@router.post("/refresh", response_model=RefreshTokenResponse)
async def refresh_token(token: str = Depends(bearer_token)):
    """
    Exchange the caller's access token for a fresh one.

    The presented token may already be expired, as long as its signature is
    valid and it was issued within the refresh window.

    Example:
        ```bash
        curl -X POST http://localhost:8000/api/v1/auth/refresh \\
          -H "Authorization: Bearer eyJhbGciOi..."
        ```

    Returns:
        RefreshTokenResponse with the new token and its lifetime
    """
    try:
        new_token = token_service.refresh_access_token(token)
    except TokenError as e:
        logger.info("token_refresh_rejected", code=e.code, reason=e.message)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.code,
            headers={"WWW-Authenticate": "Bearer"},
        ) from e

    logger.info("token_refreshed")

    return RefreshTokenResponse(
        token=new_token,
        expires_in=token_service.access_token_expire_minutes * 60,
    )

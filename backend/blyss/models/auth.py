"""
Authentication Models

Pydantic models for authentication requests and responses.
"""

from pydantic import BaseModel, ConfigDict, Field

from blyss.models.notification import UserRole


class RefreshTokenResponse(BaseModel):
    """Response with new access token"""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "token": "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9...",
                "token_type": "bearer",
                "expires_in": 900,
            }
        }
    )

    token: str = Field(..., description="New JWT access token")
    token_type: str = Field(default="bearer", description="Token type")
    expires_in: int = Field(..., description="Access token expiration in seconds")


class CurrentUser(BaseModel):
    """Identity extracted from a validated access token."""

    id: int
    role: UserRole = UserRole.CLIENT
    is_admin: bool = False

"""
JWT Token Service

Handles generation, validation, and refresh of JWT access tokens. The same
validation routine backs the REST dependency and the WebSocket `auth` message.
"""

from datetime import UTC, datetime, timedelta
from typing import Optional

from jose import ExpiredSignatureError, JWTError, jwt

TOKEN_EXPIRED = "TOKEN_EXPIRED"
TOKEN_INVALID = "TOKEN_INVALID"
TOKEN_MISSING = "TOKEN_MISSING"


class TokenError(Exception):
    """Base error for rejected bearer tokens."""

    code = TOKEN_INVALID

    def __init__(self, message: str = "Invalid token"):
        super().__init__(message)
        self.message = message


class TokenExpiredError(TokenError):
    """Token signature is valid but its `exp` claim is in the past."""

    code = TOKEN_EXPIRED

    def __init__(self, message: str = "Token expired"):
        super().__init__(message)


class InvalidTokenError(TokenError):
    """Token is malformed, badly signed, or carries unusable claims."""

    code = TOKEN_INVALID


class MissingTokenError(TokenError):
    """No token was supplied."""

    code = TOKEN_MISSING

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class TokenService:
    """Service for JWT token operations"""

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        access_token_expire_minutes: int = 15,
        refresh_window_days: int = 7,
    ):
        """
        Initialize token service

        Args:
            secret_key: Secret key for JWT signing
            algorithm: JWT algorithm (default: HS256)
            access_token_expire_minutes: Access token expiration in minutes (default: 15)
            refresh_window_days: How long after issuance an expired token can be refreshed
        """
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.access_token_expire_minutes = access_token_expire_minutes
        self.refresh_window_days = refresh_window_days

    def create_access_token(
        self,
        user_id: int,
        additional_claims: Optional[dict] = None,
        expires_delta: Optional[timedelta] = None,
        issued_at: Optional[datetime] = None,
    ) -> str:
        """
        Create JWT access token

        Args:
            user_id: User id
            additional_claims: Optional additional claims (role, is_admin)
            expires_delta: Override the configured lifetime (negative values mint expired tokens)
            issued_at: Override the issuance time

        Returns:
            Encoded JWT token string

        Example:
            ```python
            service = TokenService(secret_key="secret")
            token = service.create_access_token(42, {"role": "pro"})
            ```
        """
        now = issued_at or datetime.now(UTC)
        expire = now + (expires_delta or timedelta(minutes=self.access_token_expire_minutes))

        claims = {
            "sub": str(user_id),
            "type": "access",
            "iat": now,
            "exp": expire,
        }

        if additional_claims:
            claims.update(additional_claims)

        return jwt.encode(claims, self.secret_key, algorithm=self.algorithm)

    def validate_access_token(self, token: Optional[str]) -> dict:
        """
        Validate an access token: signature, expiry and token type.

        Args:
            token: JWT access token string

        Returns:
            Decoded payload with `sub` converted to an int user id under `user_id`

        Raises:
            MissingTokenError: token is empty
            TokenExpiredError: signature valid but token expired
            InvalidTokenError: anything else
        """
        if not token:
            raise MissingTokenError()

        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except ExpiredSignatureError as e:
            raise TokenExpiredError() from e
        except JWTError as e:
            raise InvalidTokenError("Invalid token") from e

        return self._checked_claims(payload)

    def refresh_access_token(self, token: Optional[str]) -> str:
        """
        Exchange a current or recently expired access token for a fresh one.

        The signature must be valid; expiry is ignored as long as the token was
        issued within the refresh window. Role and admin claims are carried over.

        Raises:
            TokenError: token missing, invalid, or older than the refresh window
        """
        if not token:
            raise MissingTokenError()

        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options={"verify_exp": False},
            )
        except JWTError as e:
            raise InvalidTokenError("Invalid token") from e

        payload = self._checked_claims(payload)

        issued_at = payload.get("iat")
        if issued_at is None:
            raise InvalidTokenError("Token has no issue time")

        oldest = datetime.now(UTC) - timedelta(days=self.refresh_window_days)
        if datetime.fromtimestamp(issued_at, UTC) < oldest:
            raise TokenExpiredError("Token too old to refresh")

        extra = {k: payload[k] for k in ("role", "is_admin") if k in payload}
        return self.create_access_token(payload["user_id"], additional_claims=extra)

    def _checked_claims(self, payload: dict) -> dict:
        if payload.get("type") != "access":
            raise InvalidTokenError("Not an access token")

        user_id_str = payload.get("sub")
        if user_id_str is None:
            raise InvalidTokenError("Invalid token payload")

        try:
            user_id = int(user_id_str)
        except (TypeError, ValueError) as e:
            raise InvalidTokenError("Invalid user ID in token") from e

        return {**payload, "user_id": user_id}

"""
Credential storage for the client runtime.

The runtime reads the access token before every connection attempt, replaces
it after a successful refresh, and clears it when the session ends.
"""

import json
from pathlib import Path
from typing import Optional, Protocol, Union

import structlog

logger = structlog.get_logger(__name__)


class TokenStore(Protocol):
    """Where the client keeps its bearer access token."""

    def get_token(self) -> Optional[str]: ...

    def set_token(self, token: str) -> None: ...

    def clear(self) -> None: ...


class InMemoryTokenStore:
    """Token held for the life of the process."""

    def __init__(self, token: Optional[str] = None) -> None:
        self._token = token

    def get_token(self) -> Optional[str]:
        return self._token

    def set_token(self, token: str) -> None:
        self._token = token

    def clear(self) -> None:
        self._token = None


class FileTokenStore:
    """
    Token persisted as `{"token": "..."}` in a JSON file.

    The file is created with owner-only permissions. A missing or unreadable
    file reads as no token.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path).expanduser()

    def get_token(self) -> Optional[str]:
        try:
            content = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            logger.warning("token_file_unreadable", path=str(self.path), error=str(e))
            return None

        token = content.get("token") if isinstance(content, dict) else None
        return token or None

    def set_token(self, token: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps({"token": token}), encoding="utf-8")
        self.path.chmod(0o600)

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)

"""Bearer token providers consulted when requests are built."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional, Protocol

from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)


class AuthTokenProvider(Protocol):
    def get_token(self) -> Optional[str]:
        ...


class StaticTokenProvider:
    """Provider returning a fixed token, or none."""

    def __init__(self, token: Optional[str] = None):
        self._token = token

    def get_token(self) -> Optional[str]:
        return self._token or None


class StoredCredentials(BaseModel):
    token: str
    user: Optional[dict[str, Any]] = None


class TokenStore:
    """File-backed token store shared by the CLI and the client."""

    def __init__(self, path: Path):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Optional[StoredCredentials]:
        """Load stored credentials from disk if they exist."""
        if not self._path.exists():
            return None

        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            return StoredCredentials(**data)
        except (OSError, ValueError, TypeError, ValidationError) as exc:
            logger.warning("Ignoring unreadable token file %s: %s", self._path, exc)
            return None

    def get_token(self) -> Optional[str]:
        credentials = self.load()
        if credentials is None or not credentials.token:
            return None
        return credentials.token

    def login(self, token: str, user: Optional[dict[str, Any]] = None) -> None:
        """Persist the token and user data."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        credentials = StoredCredentials(token=token, user=user)
        self._path.write_text(credentials.model_dump_json(indent=2), encoding="utf-8")

    def logout(self) -> None:
        """Remove stored credentials from disk."""
        if self._path.exists():
            self._path.unlink()


__all__ = ["AuthTokenProvider", "StaticTokenProvider", "StoredCredentials", "TokenStore"]

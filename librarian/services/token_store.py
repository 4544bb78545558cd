"""
Session token storage for the Librarian client.
Holds the bearer token and the refresh cookie under fixed keys.
"""

import json
import logging
import os
from pathlib import Path
from typing import Dict, Optional

logger = logging.getLogger(__name__)

ACCESS_TOKEN_KEY = "accessToken"
REFRESH_TOKEN_KEY = "refreshToken"


class TokenStore:
    """Key-value store for session credentials. Subclasses provide persistence."""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def remove(self, key: str) -> None:
        raise NotImplementedError

    def get_access_token(self) -> Optional[str]:
        return self.get(ACCESS_TOKEN_KEY)

    def set_access_token(self, token: str) -> None:
        self.set(ACCESS_TOKEN_KEY, token)

    def get_refresh_token(self) -> Optional[str]:
        return self.get(REFRESH_TOKEN_KEY)

    def set_refresh_token(self, token: str) -> None:
        self.set(REFRESH_TOKEN_KEY, token)

    def clear_tokens(self) -> None:
        self.remove(ACCESS_TOKEN_KEY)
        self.remove(REFRESH_TOKEN_KEY)

    @property
    def is_authenticated(self) -> bool:
        return self.get_access_token() is not None


class MemoryTokenStore(TokenStore):
    """Process-local store; nothing survives a restart."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._values: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def remove(self, key: str) -> None:
        self._values.pop(key, None)


class FileTokenStore(TokenStore):
    """JSON file store, e.g. ~/.librarian/session.json."""

    def __init__(self, path: str):
        self.path = Path(path).expanduser()
        self._values: Dict[str, str] = {}
        self.load()

    def load(self) -> None:
        """Load stored values; an unreadable file counts as an empty session."""
        if not self.path.exists():
            self._values = {}
            return
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read session file {self.path}: {e}")
            self._values = {}
            return
        if not isinstance(data, dict):
            logger.warning(f"Ignoring malformed session file {self.path}")
            self._values = {}
            return
        self._values = {str(k): str(v) for k, v in data.items() if v is not None}

    def save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        # Credentials: owner read/write only, from the moment the file exists
        fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(self._values, f, indent=2)
        # An older file may have been created with wider permissions
        os.chmod(self.path, 0o600)

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value
        self.save()

    def remove(self, key: str) -> None:
        if key in self._values:
            del self._values[key]
            self.save()

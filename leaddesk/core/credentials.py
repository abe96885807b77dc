"""Bearer token sources.

The token is read synchronously right before every request, so logging in or
out takes effect on the very next fetch. A missing token is a normal state
(the user is not signed in yet) and callers skip the request instead of
treating it as an error.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Protocol

logger = logging.getLogger(__name__)


class TokenStore(Protocol):
    def get_token(self) -> Optional[str]: ...


class MemoryTokenStore:
    """Token held in process memory (login/logout within one session)."""

    def __init__(self, token: Optional[str] = None) -> None:
        self._token = _clean(token)

    def get_token(self) -> Optional[str]:
        return self._token

    def set_token(self, token: str) -> None:
        self._token = _clean(token)

    def clear(self) -> None:
        self._token = None


class FileTokenStore:
    """Token persisted in a file so it survives restarts.

    The file is re-read on every `get_token()` call; another process (or the
    login flow) may replace it at any time.
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def get_token(self) -> Optional[str]:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError):
            logger.warning("credentials.token_read_failed", exc_info=True, extra={"path": str(self._path)})
            return None
        return _clean(raw)

    def set_token(self, token: str) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(token.strip(), encoding="utf-8")
        try:
            self._path.chmod(0o600)
        except OSError:
            pass

    def clear(self) -> None:
        self._path.unlink(missing_ok=True)


def _clean(token: Optional[str]) -> Optional[str]:
    if token is None:
        return None
    token = token.strip()
    return token or None


__all__ = ["FileTokenStore", "MemoryTokenStore", "TokenStore"]

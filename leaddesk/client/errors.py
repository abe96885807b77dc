"""Failures surfaced by the backend API client."""

from __future__ import annotations


class ApiError(RuntimeError):
    """Base class for failed backend calls."""


class RequestFailed(ApiError):
    """The backend answered with a non-2xx status."""

    def __init__(self, status: int, message: str) -> None:
        super().__init__(message)
        self.status = status
        self.message = message

    def __repr__(self) -> str:
        return f"RequestFailed(status={self.status}, message={self.message!r})"


class NetworkError(ApiError):
    """The request never produced a response (offline, refused, timed out)."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


def failure_message(status: int, body: object) -> str:
    """Prefer the backend's own `message`; fall back to a generic one."""

    if isinstance(body, dict):
        message = body.get("message")
        if isinstance(message, str) and message.strip():
            return message
    return f"Request failed ({status})"


__all__ = ["ApiError", "NetworkError", "RequestFailed", "failure_message"]

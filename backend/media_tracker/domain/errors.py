"""Error taxonomy shared by the API client and the stores."""

from __future__ import annotations

from typing import Any, Mapping, Optional


class MediaTrackerError(Exception):
    """Base exception for all media tracker client errors."""


class ApiError(MediaTrackerError):
    """Raised when a backend call does not produce a usable success payload."""

    def __init__(
        self,
        message: str = "",
        *,
        status: Optional[int] = None,
        payload: Any = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.payload = payload


class TransportError(ApiError):
    """No usable response: connection failure, timeout or malformed body."""


class AuthError(ApiError):
    """HTTP 401: missing, invalid or expired credential."""


class ValidationError(ApiError):
    """Server-side validation failure with per-field messages."""

    def __init__(
        self,
        message: str = "",
        *,
        field_errors: Optional[Mapping[str, str]] = None,
        status: Optional[int] = 400,
        payload: Any = None,
    ) -> None:
        super().__init__(message, status=status, payload=payload)
        self.field_errors: dict[str, str] = dict(field_errors or {})


class NotFoundError(ApiError):
    """HTTP 404: entry missing or not owned by the caller."""


class GenericApiError(ApiError):
    """Any other non-2xx response carrying a single server message."""


class CredentialStoreError(MediaTrackerError):
    """Raised when the durable session cache cannot be read."""


def error_message(exc: BaseException, fallback: str) -> str:
    """Message shown to the user for a failed operation."""
    message = getattr(exc, "message", None)
    if message is None:
        message = str(exc)
    message = (message or "").strip()
    return message or fallback

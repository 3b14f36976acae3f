"""SDK-specific exceptions."""

from __future__ import annotations

from typing import Mapping


class SpotifySDKError(Exception):
    """Base exception for all Spotify SDK failures."""


class SpotifyError(SpotifySDKError):
    """Raised when the API response is not ok (status >= 400) after all recovery paths."""

    def __init__(
        self,
        message: str,
        status: int,
        *,
        headers: Mapping[str, str] | None = None,
        body: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.headers = dict(headers) if headers is not None else {}
        self.body = body

    def __str__(self) -> str:  # pragma: no cover - simple formatting
        return f"{self.status}: {self.message}"


class SpotifyProtocolError(SpotifySDKError):
    """Raised when a successful response is missing the body the caller expected."""


class SpotifyValidationError(SpotifySDKError, ValueError):
    """Raised when request options or client configuration are invalid."""


class SpotifyAuthError(SpotifySDKError):
    """Raised when a token source cannot satisfy a request."""


class SpotifyNetworkError(SpotifySDKError):
    """Raised for transport-level failures like DNS and TCP errors."""

    def __init__(self, message: str, *, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class SpotifyTimeoutError(SpotifyNetworkError):
    """Raised when a request exceeds configured timeout."""

    def __init__(self, message: str, *, timeout: float | None = None, cause: Exception | None = None) -> None:
        super().__init__(message, cause=cause)
        self.timeout = timeout

"""Token sources consumed by the Spotify clients.

The clients never obtain tokens themselves. They ask a provider for the
current token before each request and, on a ``401``, ask it once per logical
call to refresh. Providers are shared by every call made through a client, so
a provider used concurrently must make ``refresh_token`` safe to call from
several in-flight requests at once; the clients do not deduplicate refreshes.
"""

from __future__ import annotations

from typing import Awaitable, Protocol, Union

from .exceptions import SpotifyAuthError, SpotifyValidationError


class AuthProvider(Protocol):
    """Token source whose refresh completes synchronously."""

    def get_token(self) -> str: ...

    def refresh_token(self) -> str: ...


class AsyncAuthProvider(Protocol):
    """Token source whose refresh is a coroutine. Only usable with the async client."""

    def get_token(self) -> str: ...

    def refresh_token(self) -> Awaitable[str]: ...


TokenSource = Union[str, AuthProvider, AsyncAuthProvider]


class StaticTokenProvider:
    """A fixed access token with no way to refresh it."""

    supports_refresh = False

    def __init__(self, token: str) -> None:
        if not isinstance(token, str) or not token.strip():
            raise SpotifyValidationError("access token must be a non-empty string")
        self._token = token

    def get_token(self) -> str:
        return self._token

    def refresh_token(self) -> str:
        raise SpotifyAuthError("static access token cannot be refreshed")

    def __repr__(self) -> str:
        return "StaticTokenProvider(token='[REDACTED]')"


def supports_refresh(provider: AuthProvider | AsyncAuthProvider) -> bool:
    return bool(getattr(provider, "supports_refresh", True))


def resolve_auth_provider(source: TokenSource) -> AuthProvider | AsyncAuthProvider:
    """Wrap plain strings in :class:`StaticTokenProvider`, validate everything else."""
    if isinstance(source, str):
        return StaticTokenProvider(source)
    if not callable(getattr(source, "get_token", None)) or not callable(getattr(source, "refresh_token", None)):
        raise SpotifyValidationError("auth provider must define get_token() and refresh_token()")
    return source

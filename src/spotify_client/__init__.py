"""Resilient, authenticated request executor for the Spotify Web API."""

from .auth import AsyncAuthProvider, AuthProvider, StaticTokenProvider, TokenSource, resolve_auth_provider
from .client import AsyncSpotifyClient, ResponseType, SpotifyClient
from .exceptions import (
    SpotifyAuthError,
    SpotifyError,
    SpotifyNetworkError,
    SpotifyProtocolError,
    SpotifySDKError,
    SpotifyTimeoutError,
    SpotifyValidationError,
)
from .query import to_query_string
from .request_options import ClientOptions, HTTPMethod, RequestOptions

__all__ = [
    "AsyncAuthProvider",
    "AsyncSpotifyClient",
    "AuthProvider",
    "ClientOptions",
    "HTTPMethod",
    "RequestOptions",
    "ResponseType",
    "SpotifyAuthError",
    "SpotifyClient",
    "SpotifyError",
    "SpotifyNetworkError",
    "SpotifyProtocolError",
    "SpotifySDKError",
    "SpotifyTimeoutError",
    "SpotifyValidationError",
    "StaticTokenProvider",
    "TokenSource",
    "resolve_auth_provider",
    "to_query_string",
]

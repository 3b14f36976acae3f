"""Per-request and per-client options for the Spotify clients."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Mapping

from .exceptions import SpotifyValidationError

HTTPMethod = Literal["GET", "POST", "PUT", "DELETE", "PATCH"]

HTTP_METHODS = frozenset({"GET", "POST", "PUT", "DELETE", "PATCH"})


@dataclass(frozen=True)
class RequestOptions:
    """Options for a single logical request.

    ``json`` is serialized into the request body and ignored when ``body`` is
    given. ``headers`` replace base headers of the same name.
    """

    method: HTTPMethod = "GET"
    json: Any | None = None
    query: Mapping[str, Any] | None = None
    headers: Mapping[str, str] | None = None
    body: str | bytes | None = None

    def __post_init__(self) -> None:
        if self.method not in HTTP_METHODS:
            raise SpotifyValidationError(f"Unsupported HTTP method: {self.method!r}")


@dataclass(frozen=True)
class ClientOptions:
    retry_times_on_5xx: int = 0
    # milliseconds
    retry_delay_on_5xx: int = 0
    retry_on_rate_limit: bool = False

    def __post_init__(self) -> None:
        if self.retry_times_on_5xx < 0:
            raise SpotifyValidationError("retry_times_on_5xx must be non-negative")
        if self.retry_delay_on_5xx < 0:
            raise SpotifyValidationError("retry_delay_on_5xx must be non-negative")

"""Synchronous and asynchronous request executors for the Spotify Web API."""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Iterator, Literal, Mapping, overload

import httpx
from pydantic import ValidationError

from .auth import AsyncAuthProvider, AuthProvider, TokenSource, resolve_auth_provider, supports_refresh
from .exceptions import (
    SpotifyAuthError,
    SpotifyError,
    SpotifyNetworkError,
    SpotifyProtocolError,
    SpotifyTimeoutError,
    SpotifyValidationError,
)
from .models import RegularError
from .query import to_query_string
from .request_options import ClientOptions, RequestOptions
from .security import normalize_base_url, parse_retry_after, redact_headers

logger = logging.getLogger(__name__)

ResponseType = Literal["json", "void"]


def _resolve_request_options(options: RequestOptions | None) -> RequestOptions:
    return options or RequestOptions()


def _normalize_headers(headers: Mapping[str, str] | None) -> dict[str, str]:
    if not headers:
        return {}
    clean: dict[str, str] = {}
    for key, value in headers.items():
        clean[str(key)] = str(value)
    return clean


def _extract_error_message(response: httpx.Response) -> str:
    """Best-effort message from an already-read error response."""
    if not response.content:
        return "null"
    text = response.text
    try:
        return RegularError.model_validate_json(text).error.message
    except ValidationError:
        return text


def _checked_token(token: object) -> str:
    if not isinstance(token, str) or not token:
        raise SpotifyAuthError("auth provider returned an empty or non-string token")
    return token


@dataclass
class _CallState:
    """Mutable retry bookkeeping for one logical call."""

    remaining_5xx_retries: int
    has_attempted_refresh: bool = False


@dataclass(frozen=True)
class _Retry:
    refresh: bool = False
    delay: float = 0.0


class _BaseSpotifyClient:
    default_base_url = "https://api.spotify.com/v1"
    default_timeout = 30.0
    base_headers = MappingProxyType(
        {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
    )

    def __init__(
        self,
        auth_provider: TokenSource,
        *,
        options: ClientOptions | None = None,
        base_url: str | None = None,
        timeout: float = default_timeout,
        follow_redirects: bool = True,
        allow_http: bool = False,
    ) -> None:
        self.base_url = normalize_base_url(base_url or self.default_base_url, allow_http=allow_http)
        if timeout <= 0:
            raise SpotifyValidationError("timeout must be greater than 0")
        self.timeout = float(timeout)
        self.options = options or ClientOptions()
        self._auth_provider = resolve_auth_provider(auth_provider)

        self._client_kwargs = {
            "timeout": self.timeout,
            "follow_redirects": follow_redirects,
            "trust_env": False,
        }

    @property
    def auth_provider(self) -> AuthProvider | AsyncAuthProvider:
        return self._auth_provider

    def set_auth_provider(self, auth_provider: TokenSource) -> None:
        """Replace the token source used by subsequent calls.

        Calls already in flight keep the provider they started with.
        """
        self._auth_provider = resolve_auth_provider(auth_provider)

    @staticmethod
    def _path(path: str) -> str:
        if "://" in path:
            raise ValueError("Full URLs are not allowed in path for request method")
        if not path.startswith("/"):
            raise ValueError("Path must be absolute and start with '/'")
        if "\x00" in path:
            raise ValueError("Invalid path characters")
        return path

    def _url(self, path: str, query: Mapping[str, Any] | None) -> str:
        url = self.base_url + self._path(path)
        if query:
            query_string = to_query_string(query)
            if query_string:
                url = f"{url}?{query_string}"
        return url

    @staticmethod
    def _body(request_options: RequestOptions) -> str | bytes | None:
        if request_options.body is not None:
            return request_options.body
        if request_options.json is not None:
            return json.dumps(request_options.json)
        return None

    def _headers(self, request_options: RequestOptions) -> httpx.Headers:
        headers = httpx.Headers(dict(self.base_headers))
        for key, value in _normalize_headers(request_options.headers).items():
            headers[key] = value
        return headers

    @contextmanager
    def _transport_errors(self) -> Iterator[None]:
        try:
            yield
        except httpx.TimeoutException as exc:
            raise SpotifyTimeoutError("Request timed out", timeout=self.timeout, cause=exc) from exc
        except httpx.NetworkError as exc:
            raise SpotifyNetworkError("Network error", cause=exc) from exc

    def _build_request(
        self,
        transport: httpx.Client | httpx.AsyncClient,
        request_options: RequestOptions,
        url: str,
        headers: httpx.Headers,
        content: str | bytes | None,
        token: str,
    ) -> httpx.Request:
        attempt_headers = headers.copy()
        attempt_headers["Authorization"] = f"Bearer {token}"
        logger.debug(
            "Sending %s %s headers=%s",
            request_options.method,
            url,
            redact_headers(attempt_headers),
        )
        return transport.build_request(
            request_options.method,
            url,
            headers=attempt_headers,
            content=content,
            timeout=self.timeout,
        )

    def _plan_retry(
        self,
        response: httpx.Response,
        provider: AuthProvider | AsyncAuthProvider,
        state: _CallState,
    ) -> _Retry | None:
        """Decide how to recover from a failed attempt, or ``None`` when the failure is terminal."""
        status = response.status_code

        if status == 401 and supports_refresh(provider) and not state.has_attempted_refresh:
            state.has_attempted_refresh = True
            logger.info("Received 401 for %s, refreshing access token", response.request.url)
            return _Retry(refresh=True)

        if status == 429 and self.options.retry_on_rate_limit:
            retry_after = parse_retry_after(response.headers.get("Retry-After"))
            if retry_after:
                logger.info("Rate limited on %s, retrying in %.3fs", response.request.url, retry_after)
                return _Retry(delay=retry_after)

        if 500 <= status < 600 and state.remaining_5xx_retries > 0:
            state.remaining_5xx_retries -= 1
            logger.info(
                "Server error %s on %s, %d retries left",
                status,
                response.request.url,
                state.remaining_5xx_retries,
            )
            return _Retry(delay=self.options.retry_delay_on_5xx / 1000)

        return None

    @staticmethod
    def _error_from_response(response: httpx.Response) -> SpotifyError:
        message = _extract_error_message(response)
        logger.debug("Request to %s failed with %s: %s", response.request.url, response.status_code, message)
        return SpotifyError(
            message,
            response.status_code,
            headers=response.headers,
            body=response.text if response.content else None,
        )

    @staticmethod
    def _parse_json(response: httpx.Response) -> Any:
        if not response.content:
            raise SpotifyProtocolError("Body not found")
        try:
            return response.json()
        except ValueError as exc:
            raise SpotifyProtocolError("Response body is not valid JSON") from exc

    @staticmethod
    def _check_response_type(response_type: str) -> None:
        if response_type not in ("json", "void"):
            raise SpotifyValidationError(f"Unsupported response type: {response_type!r}")


class SpotifyClient(_BaseSpotifyClient):
    """Synchronous client.

    ``auth_provider`` may be a plain access token or an :class:`AuthProvider`;
    only the latter lets the client recover from an expired token.
    """

    def __init__(
        self,
        auth_provider: TokenSource,
        *,
        options: ClientOptions | None = None,
        base_url: str | None = None,
        timeout: float = _BaseSpotifyClient.default_timeout,
        follow_redirects: bool = True,
        httpx_client: httpx.Client | None = None,
        allow_http: bool = False,
    ) -> None:
        super().__init__(
            auth_provider,
            options=options,
            base_url=base_url,
            timeout=timeout,
            follow_redirects=follow_redirects,
            allow_http=allow_http,
        )
        self._owns_httpx = httpx_client is None
        self._httpx = httpx_client or httpx.Client(**self._client_kwargs)

    def __enter__(self) -> "SpotifyClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_httpx:
            self._httpx.close()

    def _sleep(self, seconds: float) -> None:
        time.sleep(seconds)

    def _refresh(self, provider: AuthProvider | AsyncAuthProvider) -> str:
        token = provider.refresh_token()
        if inspect.isawaitable(token):
            if inspect.iscoroutine(token):
                token.close()
            raise SpotifyAuthError("auth provider refreshes asynchronously; use AsyncSpotifyClient")
        return _checked_token(token)

    def _execute(self, path: str, options: RequestOptions | None) -> httpx.Response:
        """Run the retry loop for one logical call and return the open, successful response."""
        request_options = _resolve_request_options(options)
        url = self._url(path, request_options.query)
        headers = self._headers(request_options)
        content = self._body(request_options)
        provider = self._auth_provider
        state = _CallState(remaining_5xx_retries=self.options.retry_times_on_5xx)

        token: str | None = None
        while True:
            if token is None:
                token = _checked_token(provider.get_token())
            request = self._build_request(self._httpx, request_options, url, headers, content, token)
            token = None
            with self._transport_errors():
                response = self._httpx.send(request, stream=True)
            logger.debug("Received %s for %s %s", response.status_code, request_options.method, url)

            if response.status_code < 400:
                return response

            retry = self._plan_retry(response, provider, state)
            if retry is None:
                try:
                    with self._transport_errors():
                        response.read()
                finally:
                    response.close()
                raise self._error_from_response(response)

            response.close()
            if retry.refresh:
                token = self._refresh(provider)
            elif retry.delay:
                self._sleep(retry.delay)

    def request_json(self, path: str, options: RequestOptions | None = None) -> Any:
        """Send a request and return the decoded JSON body."""
        response = self._execute(path, options)
        try:
            with self._transport_errors():
                response.read()
        finally:
            response.close()
        return self._parse_json(response)

    def request_void(self, path: str, options: RequestOptions | None = None) -> None:
        """Send a request and discard whatever body comes back."""
        response = self._execute(path, options)
        response.close()

    @overload
    def request(self, path: str, response_type: Literal["void"], options: RequestOptions | None = None) -> None: ...

    @overload
    def request(self, path: str, response_type: Literal["json"], options: RequestOptions | None = None) -> Any: ...

    def request(self, path: str, response_type: ResponseType, options: RequestOptions | None = None) -> Any:
        self._check_response_type(response_type)
        if response_type == "json":
            return self.request_json(path, options)
        return self.request_void(path, options)


class AsyncSpotifyClient(_BaseSpotifyClient):
    """Asynchronous client.

    Concurrent calls are independent. When several of them hit a ``401`` at
    once, each asks the provider for its own refresh.
    """

    def __init__(
        self,
        auth_provider: TokenSource,
        *,
        options: ClientOptions | None = None,
        base_url: str | None = None,
        timeout: float = _BaseSpotifyClient.default_timeout,
        follow_redirects: bool = True,
        httpx_client: httpx.AsyncClient | None = None,
        allow_http: bool = False,
    ) -> None:
        super().__init__(
            auth_provider,
            options=options,
            base_url=base_url,
            timeout=timeout,
            follow_redirects=follow_redirects,
            allow_http=allow_http,
        )
        self._owns_httpx = httpx_client is None
        self._httpx = httpx_client or httpx.AsyncClient(**self._client_kwargs)

    async def __aenter__(self) -> "AsyncSpotifyClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_httpx:
            await self._httpx.aclose()

    async def _sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)

    async def _refresh(self, provider: AuthProvider | AsyncAuthProvider) -> str:
        token = provider.refresh_token()
        if inspect.isawaitable(token):
            token = await token
        return _checked_token(token)

    async def _execute(self, path: str, options: RequestOptions | None) -> httpx.Response:
        request_options = _resolve_request_options(options)
        url = self._url(path, request_options.query)
        headers = self._headers(request_options)
        content = self._body(request_options)
        provider = self._auth_provider
        state = _CallState(remaining_5xx_retries=self.options.retry_times_on_5xx)

        token: str | None = None
        while True:
            if token is None:
                token = _checked_token(provider.get_token())
            request = self._build_request(self._httpx, request_options, url, headers, content, token)
            token = None
            with self._transport_errors():
                response = await self._httpx.send(request, stream=True)
            logger.debug("Received %s for %s %s", response.status_code, request_options.method, url)

            if response.status_code < 400:
                return response

            retry = self._plan_retry(response, provider, state)
            if retry is None:
                try:
                    with self._transport_errors():
                        await response.aread()
                finally:
                    await response.aclose()
                raise self._error_from_response(response)

            await response.aclose()
            if retry.refresh:
                token = await self._refresh(provider)
            elif retry.delay:
                await self._sleep(retry.delay)

    async def request_json(self, path: str, options: RequestOptions | None = None) -> Any:
        response = await self._execute(path, options)
        try:
            with self._transport_errors():
                await response.aread()
        finally:
            await response.aclose()
        return self._parse_json(response)

    async def request_void(self, path: str, options: RequestOptions | None = None) -> None:
        response = await self._execute(path, options)
        await response.aclose()

    @overload
    async def request(self, path: str, response_type: Literal["void"], options: RequestOptions | None = None) -> None: ...

    @overload
    async def request(self, path: str, response_type: Literal["json"], options: RequestOptions | None = None) -> Any: ...

    async def request(self, path: str, response_type: ResponseType, options: RequestOptions | None = None) -> Any:
        self._check_response_type(response_type)
        if response_type == "json":
            return await self.request_json(path, options)
        return await self.request_void(path, options)

"""Header, URL and Retry-After helpers."""

from __future__ import annotations

import datetime as _dt
from email.utils import parsedate_to_datetime
from typing import Mapping

import httpx

SECRET_HEADERS = frozenset({"authorization", "proxy-authorization", "cookie"})

LOOPBACK_HOSTS = frozenset({"localhost", "127.0.0.1", "::1"})


def redact_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """Copy of ``headers`` safe to log.

    Credential headers keep their auth scheme (``Bearer``) so a log still shows
    what kind of credential was sent.
    """
    safe: dict[str, str] = {}
    for name, value in headers.items():
        if name.lower() not in SECRET_HEADERS:
            safe[name] = value
            continue
        scheme, _, credential = value.partition(" ")
        safe[name] = f"{scheme} ***" if credential else "***"
    return safe


def normalize_base_url(url: str, *, allow_http: bool = False) -> str:
    """Validate the API root every request path is appended to and strip its trailing slash.

    Paths are concatenated onto the root, so a query string, fragment or
    embedded credentials would end up in the wrong place and are rejected.
    Plain http is limited to loopback hosts unless ``allow_http`` is set.
    """
    if "\x00" in url:
        raise ValueError("Invalid base_url")
    try:
        parsed = httpx.URL(url)
    except httpx.InvalidURL as exc:
        raise ValueError(f"Invalid base_url: {exc}") from exc
    if parsed.scheme not in {"http", "https"} or not parsed.host:
        raise ValueError("base_url must be an absolute http(s) URL")
    if parsed.query or parsed.fragment or parsed.userinfo:
        raise ValueError("base_url must not carry a query, fragment or credentials")
    if parsed.scheme == "http" and not allow_http and parsed.host.lower() not in LOOPBACK_HOSTS:
        raise ValueError("Non-HTTPS base_url is not allowed without allow_http=True")
    return url.rstrip("/")


def parse_retry_after(raw: str | None) -> float | None:
    """Parse Retry-After header values into seconds.

    Spotify sends delta-seconds; HTTP-date values are accepted as well and
    converted relative to now. Dates in the past yield ``0.0``.
    """
    if raw is None:
        return None

    raw = raw.strip()
    if not raw:
        return None

    try:
        return max(0.0, float(raw))
    except ValueError:
        pass

    try:
        parsed = parsedate_to_datetime(raw)
    except (ValueError, TypeError, OverflowError):
        return None

    if parsed is None:
        return None

    now = _dt.datetime.now(_dt.timezone.utc)
    if parsed.utcoffset() is None:
        parsed_utc = parsed.replace(tzinfo=_dt.timezone.utc)
    else:
        parsed_utc = parsed.astimezone(_dt.timezone.utc)

    delta = (parsed_utc - now).total_seconds()
    return max(0.0, float(delta))

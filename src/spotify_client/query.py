"""Query-string serialization for request options."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping

import httpx


def _coerce_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def _coerce_query_params(query: Mapping[str, Any]) -> list[tuple[str, str]]:
    normalized: list[tuple[str, str]] = []
    for key, value in query.items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            normalized.extend((str(key), _coerce_value(v)) for v in value if v is not None)
            continue
        normalized.append((str(key), _coerce_value(value)))
    return normalized


def to_query_string(query: Mapping[str, Any]) -> str:
    """Turn a mapping of parameters into a percent-encoded query string.

    ``None`` values are skipped and sequences are expanded into repeated keys.
    The result carries no leading ``?``.
    """
    return str(httpx.QueryParams(_coerce_query_params(query)))

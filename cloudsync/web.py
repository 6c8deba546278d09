"""JSON helpers and error types shared by the HTTP handlers."""

from __future__ import annotations

import dataclasses
import enum
import json
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from werkzeug.wrappers import Request, Response

ZERO_TIME = "0001-01-01T00:00:00Z"

_ESCAPES = {
    "&": "\\u0026",
    "<": "\\u003c",
    ">": "\\u003e",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


class NotFoundError(LookupError):
    """The requested resource does not exist."""


class ReferencedResourceError(Exception):
    """The resource is still referenced by another resource."""


class ConflictError(Exception):
    """The request conflicts with the current state of the resource."""


def format_time(value: datetime | None) -> str:
    """Render a timestamp as RFC 3339 text; ``None`` renders as the zero time.

    Naive datetimes are taken to be UTC. Trailing zeros of the fraction are dropped.
    """
    if value is None:
        return ZERO_TIME
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    text = (
        f"{value.year:04d}-{value.month:02d}-{value.day:02d}"
        f"T{value.hour:02d}:{value.minute:02d}:{value.second:02d}"
    )
    if value.microsecond:
        text += "." + f"{value.microsecond:06d}".rstrip("0")
    offset = value.utcoffset()
    seconds = int(offset.total_seconds()) if offset is not None else 0
    if seconds == 0:
        return text + "Z"
    sign = "+" if seconds > 0 else "-"
    hours, minutes = divmod(abs(seconds) // 60, 60)
    return f"{text}{sign}{hours:02d}:{minutes:02d}"


def _default(value: Any) -> Any:
    if isinstance(value, datetime):
        return format_time(value)
    if isinstance(value, enum.Enum):
        return value.value
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, Mapping):
        return dict(value)
    raise TypeError(f"cannot encode {type(value).__name__} as JSON")


def _encode(payload: Any) -> str:
    text = json.dumps(payload, default=_default, ensure_ascii=False, separators=(",", ":"))
    for char, escaped in _ESCAPES.items():
        text = text.replace(char, escaped)
    return text + "\n"


def json_response(status: int, payload: Any) -> Response:
    """Build a JSON response with the given status code."""
    return Response(_encode(payload), status=status, content_type="application/json")


def error_response(status: int, message: str) -> Response:
    """Build a JSON error response of the form ``{"error": message}``."""
    return json_response(status, {"error": message})


def _reject_constant(name: str) -> Any:
    raise ValueError(f"invalid JSON literal {name}")


def read_json_object(request: Request) -> dict[str, Any]:
    """Decode the first JSON value of the request body as an object.

    A ``null`` body yields an empty dict. Raises ``ValueError`` when the body
    is empty, malformed, or not an object.
    """
    text = request.get_data().decode("utf-8", errors="replace").lstrip(" \t\r\n")
    decoder = json.JSONDecoder(parse_constant=_reject_constant)
    value, _ = decoder.raw_decode(text)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError("json body must be an object")
    return value
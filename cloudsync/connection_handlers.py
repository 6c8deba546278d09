"""HTTP handlers for connections and the health check."""

from __future__ import annotations

import dataclasses
import enum
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from werkzeug.wrappers import Request, Response

from cloudsync.web import (
    NotFoundError,
    ReferencedResourceError,
    error_response,
    format_time,
    json_response,
    read_json_object,
)

_MISSING = object()
_INT_MIN, _INT_MAX = -(2**63), 2**63 - 1


@dataclass
class ConnectionDraft:
    """Connection fields as submitted by a client, without the password."""

    id: str = ""
    name: str = ""
    endpoint: str = ""
    username: str = ""
    root_path: str = ""
    tls_mode: str = ""
    timeout_sec: int = 0
    status: str = ""


def _lookup(body: dict[str, Any], key: str) -> Any:
    value = _MISSING
    for name, item in body.items():
        if name.lower() == key:
            value = item
    return value


def _string(body: dict[str, Any], key: str) -> str:
    value = _lookup(body, key)
    if value is _MISSING or value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"field {key} must be a string")
    return value


def _integer(body: dict[str, Any], key: str) -> int:
    value = _lookup(body, key)
    if value is _MISSING or value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"field {key} must be an integer")
    if not _INT_MIN <= value <= _INT_MAX:
        raise ValueError(f"field {key} is out of range")
    return value


def _parse_request(request: Request) -> tuple[ConnectionDraft, str]:
    body = read_json_object(request)
    draft = ConnectionDraft(
        id=_string(body, "id"),
        name=_string(body, "name"),
        endpoint=_string(body, "endpoint"),
        username=_string(body, "username"),
        root_path=_string(body, "root_path"),
        tls_mode=_string(body, "tls_mode"),
        timeout_sec=_integer(body, "timeout_sec"),
        status=_string(body, "status"),
    )
    return draft, _string(body, "password")


def _plain(value: Any) -> Any:
    return value.value if isinstance(value, enum.Enum) else value


def connection_to_dict(connection: Any) -> dict[str, Any]:
    """Public view of a connection; secrets are never included."""
    return {
        "id": getattr(connection, "id", ""),
        "name": getattr(connection, "name", ""),
        "endpoint": getattr(connection, "endpoint", ""),
        "username": getattr(connection, "username", ""),
        "root_path": getattr(connection, "root_path", ""),
        "tls_mode": _plain(getattr(connection, "tls_mode", "")),
        "timeout_sec": getattr(connection, "timeout_sec", 0),
        "status": getattr(connection, "status", ""),
        "created_at": format_time(getattr(connection, "created_at", None)),
        "updated_at": format_time(getattr(connection, "updated_at", None)),
    }


def _result_to_payload(result: Any) -> Any:
    if dataclasses.is_dataclass(result) and not isinstance(result, type):
        return dataclasses.asdict(result)
    if isinstance(result, Mapping):
        return dict(result)
    return vars(result)


def health(request: Request) -> Response:
    """Report that the service is up."""
    return json_response(200, {"status": "ok"})


def create_connection(service: Any) -> Callable[[Request], Response]:
    def handler(request: Request) -> Response:
        try:
            draft, password = _parse_request(request)
        except ValueError:
            return error_response(400, "invalid json body")
        try:
            connection = service.create(draft, password)
        except Exception as exc:
            return error_response(400, str(exc))
        return json_response(201, connection_to_dict(connection))

    return handler


def list_connections(service: Any) -> Callable[[Request], Response]:
    def handler(request: Request) -> Response:
        try:
            items = service.list()
        except Exception as exc:
            return error_response(500, str(exc))
        return json_response(200, [connection_to_dict(item) for item in items or ()])

    return handler


def get_connection(service: Any) -> Callable[..., Response]:
    def handler(request: Request, connection_id: str) -> Response:
        try:
            connection = service.get_by_id(connection_id)
        except NotFoundError as exc:
            return error_response(404, str(exc))
        except Exception as exc:
            return error_response(500, str(exc))
        return json_response(200, connection_to_dict(connection))

    return handler


def update_connection(service: Any) -> Callable[..., Response]:
    def handler(request: Request, connection_id: str) -> Response:
        try:
            draft, password = _parse_request(request)
        except ValueError:
            return error_response(400, "invalid json body")
        draft.id = connection_id
        try:
            connection = service.update(draft, password)
        except NotFoundError as exc:
            return error_response(404, str(exc))
        except Exception as exc:
            return error_response(400, str(exc))
        return json_response(200, connection_to_dict(connection))

    return handler


def delete_connection(service: Any) -> Callable[..., Response]:
    def handler(request: Request, connection_id: str) -> Response:
        try:
            service.delete(connection_id)
        except NotFoundError as exc:
            return error_response(404, str(exc))
        except ReferencedResourceError as exc:
            return error_response(409, str(exc))
        except Exception as exc:
            return error_response(500, str(exc))
        return Response(status=204)

    return handler


def test_connection(service: Any) -> Callable[..., Response]:
    def handler(request: Request, connection_id: str) -> Response:
        try:
            result = service.test_connection(connection_id)
        except NotFoundError as exc:
            return error_response(404, str(exc))
        except Exception as exc:
            return error_response(400, str(exc))
        return json_response(200, _result_to_payload(result))

    return handler
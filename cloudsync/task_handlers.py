"""HTTP handlers for sync tasks, their runtime state, failures, events and conflicts."""

from __future__ import annotations

import enum
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from werkzeug.wrappers import Request, Response

from cloudsync.web import (
    ConflictError,
    NotFoundError,
    error_response,
    format_time,
    json_response,
    read_json_object,
)

EVENT_LIST_LIMIT = 100

_MISSING = object()


@dataclass
class TaskDraft:
    """Task fields as submitted by a client."""

    id: str = ""
    name: str = ""
    connection_id: str = ""
    local_path: str = ""
    remote_path: str = ""
    direction: str = ""


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


def _parse_request(request: Request) -> TaskDraft:
    body = read_json_object(request)
    return TaskDraft(
        id=_string(body, "id"),
        name=_string(body, "name"),
        connection_id=_string(body, "connection_id"),
        local_path=_string(body, "local_path"),
        remote_path=_string(body, "remote_path"),
        direction=_string(body, "direction"),
    )


def _plain(value: Any) -> Any:
    return value.value if isinstance(value, enum.Enum) else value


def _get(item: Any, name: str, default: Any) -> Any:
    if isinstance(item, Mapping):
        return item.get(name, default)
    return getattr(item, name, default)


def task_to_dict(task: Any) -> dict[str, Any]:
    """Public view of a task."""
    return {
        "id": _get(task, "id", ""),
        "name": _get(task, "name", ""),
        "connection_id": _get(task, "connection_id", ""),
        "local_path": _get(task, "local_path", ""),
        "remote_path": _get(task, "remote_path", ""),
        "direction": _plain(_get(task, "direction", "")),
        "status": _plain(_get(task, "status", "")),
        "created_at": format_time(_get(task, "created_at", None)),
        "updated_at": format_time(_get(task, "updated_at", None)),
    }


def failure_to_dict(record: Any) -> dict[str, Any]:
    """Public view of a failure record."""
    return {
        "id": _get(record, "id", ""),
        "task_id": _get(record, "task_id", ""),
        "path": _get(record, "path", ""),
        "op_type": _get(record, "op_type", ""),
        "error_code": _get(record, "error_code", ""),
        "error_message": _get(record, "error_message", ""),
        "retryable": bool(_get(record, "retryable", False)),
        "first_failed_at": format_time(_get(record, "first_failed_at", None)),
        "last_failed_at": format_time(_get(record, "last_failed_at", None)),
        "attempt_count": _get(record, "attempt_count", 0),
        "resolved_at": format_time(_get(record, "resolved_at", None)),
    }


def _runtime_to_dict(runtime: Any) -> dict[str, Any]:
    return {
        "phase": _get(runtime, "phase", ""),
        "last_local_scan_at": format_time(_get(runtime, "last_local_scan_at", None)),
        "last_remote_scan_at": format_time(_get(runtime, "last_remote_scan_at", None)),
        "last_reconcile_at": format_time(_get(runtime, "last_reconcile_at", None)),
        "last_success_at": format_time(_get(runtime, "last_success_at", None)),
        "backoff_until": format_time(_get(runtime, "backoff_until", None)),
        "retry_streak": _get(runtime, "retry_streak", 0),
        "last_error": _get(runtime, "last_error", ""),
        "checkpoint_json": _get(runtime, "checkpoint_json", ""),
        "updated_at": format_time(_get(runtime, "updated_at", None)),
    }


def _queue_summary_to_dict(summary: Any) -> dict[str, int]:
    return {
        name: _get(summary, name, 0)
        for name in ("total", "queued", "pending", "executing", "retry_wait", "succeeded", "failed")
    }


def _failure_summary_to_dict(summary: Any) -> dict[str, int]:
    return {name: _get(summary, name, 0) for name in ("total", "resolved", "open")}


def _queue_item_to_dict(item: Any) -> dict[str, Any]:
    return {
        "id": _get(item, "id", ""),
        "op_type": _get(item, "op_type", ""),
        "target_path": _get(item, "target_path", ""),
        "status": _plain(_get(item, "status", "")),
        "attempt_count": _get(item, "attempt_count", 0),
        "next_attempt_at": format_time(_get(item, "next_attempt_at", None)),
        "last_error": _get(item, "last_error", ""),
        "updated_at": format_time(_get(item, "updated_at", None)),
    }


def _event_to_dict(event: Any) -> dict[str, Any]:
    return {
        "id": _get(event, "id", ""),
        "task_id": _get(event, "task_id", ""),
        "event_type": _get(event, "event_type", ""),
        "level": _get(event, "level", ""),
        "message": _get(event, "message", ""),
        "details_json": _get(event, "details_json", ""),
        "created_at": format_time(_get(event, "created_at", None)),
    }


def _conflict_to_dict(record: Any) -> dict[str, Any]:
    return {
        "id": _get(record, "id", ""),
        "task_id": _get(record, "task_id", ""),
        "relative_path": _get(record, "relative_path", ""),
        "local_conflict_path": _get(record, "local_conflict_path", ""),
        "remote_conflict_path": _get(record, "remote_conflict_path", ""),
        "policy": _get(record, "policy", ""),
        "detected_at": format_time(_get(record, "detected_at", None)),
    }


def _not_found_or(status: int, exc: Exception) -> Response:
    if isinstance(exc, NotFoundError):
        return error_response(404, str(exc))
    return error_response(status, str(exc))


def create_task(service: Any) -> Callable[[Request], Response]:
    def handler(request: Request) -> Response:
        try:
            draft = _parse_request(request)
        except ValueError:
            return error_response(400, "invalid json body")
        try:
            task = service.create(draft)
        except Exception as exc:
            return error_response(400, str(exc))
        return json_response(201, task_to_dict(task))

    return handler


def list_tasks(service: Any) -> Callable[[Request], Response]:
    def handler(request: Request) -> Response:
        try:
            items = service.list()
        except Exception as exc:
            return error_response(500, str(exc))
        return json_response(200, [task_to_dict(item) for item in items or ()])

    return handler


def get_task(service: Any) -> Callable[..., Response]:
    def handler(request: Request, task_id: str) -> Response:
        try:
            task = service.get_by_id(task_id)
        except Exception as exc:
            return _not_found_or(500, exc)
        return json_response(200, task_to_dict(task))

    return handler


def update_task(service: Any) -> Callable[..., Response]:
    def handler(request: Request, task_id: str) -> Response:
        try:
            draft = _parse_request(request)
        except ValueError:
            return error_response(400, "invalid json body")
        draft.id = task_id
        try:
            task = service.update(draft)
        except Exception as exc:
            return _not_found_or(400, exc)
        return json_response(200, task_to_dict(task))

    return handler


def delete_task(service: Any) -> Callable[..., Response]:
    def handler(request: Request, task_id: str) -> Response:
        try:
            service.delete(task_id)
        except Exception as exc:
            return _not_found_or(500, exc)
        return Response(status=204)

    return handler


def _lifecycle(action: Callable[[str], Any]) -> Callable[..., Response]:
    def handler(request: Request, task_id: str) -> Response:
        try:
            task = action(task_id)
        except Exception as exc:
            return error_response(400, str(exc))
        return json_response(200, task_to_dict(task))

    return handler


def start_task(service: Any) -> Callable[..., Response]:
    return _lifecycle(lambda task_id: service.start(task_id))


def pause_task(service: Any) -> Callable[..., Response]:
    return _lifecycle(lambda task_id: service.pause(task_id))


def stop_task(service: Any) -> Callable[..., Response]:
    return _lifecycle(lambda task_id: service.stop(task_id))


def get_task_runtime(service: Any) -> Callable[..., Response]:
    def handler(request: Request, task_id: str) -> Response:
        try:
            view = service.get_runtime_view(task_id)
        except Exception as exc:
            return _not_found_or(400, exc)
        queue = [_queue_item_to_dict(item) for item in _get(view, "queue", None) or ()]
        failures = [failure_to_dict(item) for item in _get(view, "failures", None) or ()]
        return json_response(
            200,
            {
                "task": task_to_dict(_get(view, "task", None)),
                "runtime": _runtime_to_dict(_get(view, "runtime", None)),
                "queue_summary": _queue_summary_to_dict(_get(view, "queue_summary", None)),
                "failure_summary": _failure_summary_to_dict(_get(view, "failure_summary", None)),
                "queue": queue or None,
                "failures": failures or None,
            },
        )

    return handler


def list_task_failures(service: Any) -> Callable[..., Response]:
    def handler(request: Request, task_id: str) -> Response:
        try:
            items = service.list_failures(task_id)
        except Exception as exc:
            return _not_found_or(400, exc)
        return json_response(200, [failure_to_dict(item) for item in items or ()])

    return handler


def retry_task_failures(service: Any) -> Callable[..., Response]:
    def handler(request: Request, task_id: str) -> Response:
        try:
            count = service.retry_failures(task_id)
        except Exception as exc:
            return _not_found_or(400, exc)
        return json_response(200, {"retried": count})

    return handler


def retry_task_failure(service: Any) -> Callable[..., Response]:
    def handler(request: Request, task_id: str, failure_id: str) -> Response:
        try:
            count = service.retry_failure_by_id(task_id, failure_id)
        except ConflictError as exc:
            return error_response(409, str(exc))
        except Exception as exc:
            return _not_found_or(400, exc)
        return json_response(200, {"retried": count})

    return handler


def list_task_events(service: Any) -> Callable[..., Response]:
    def handler(request: Request, task_id: str) -> Response:
        try:
            items = service.list_events(task_id, EVENT_LIST_LIMIT)
        except Exception as exc:
            return _not_found_or(400, exc)
        return json_response(200, [_event_to_dict(item) for item in items or ()])

    return handler


def get_metrics(service: Any) -> Callable[[Request], Response]:
    def handler(request: Request) -> Response:
        try:
            metrics = service.get_metrics()
        except Exception as exc:
            return error_response(500, str(exc))
        states = _get(metrics, "task_states", None)
        queue = _get(metrics, "queue", None)
        failures = _get(metrics, "failures", None)
        return json_response(
            200,
            {
                "task_states": None if states is None else dict(sorted(states.items())),
                "queue": {
                    name: _get(queue, name, 0)
                    for name in ("total", "queued", "executing", "retry_wait", "succeeded", "failed")
                },
                "failures": {
                    name: _get(failures, name, 0)
                    for name in ("total", "open", "resolved", "retryable_open")
                },
            },
        )

    return handler


def list_task_conflicts(service: Any) -> Callable[..., Response]:
    def handler(request: Request, task_id: str) -> Response:
        try:
            items = service.list_conflicts(task_id)
        except Exception as exc:
            return _not_found_or(400, exc)
        return json_response(200, [_conflict_to_dict(item) for item in items or ()])

    return handler
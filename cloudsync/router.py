"""WSGI application that routes requests to the connection and task handlers."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

from werkzeug.exceptions import HTTPException, MethodNotAllowed, NotFound
from werkzeug.routing import Map, Rule
from werkzeug.utils import redirect
from werkzeug.wrappers import Request, Response

from cloudsync import connection_handlers as conn
from cloudsync import task_handlers as tasks

API_PREFIX = "/api/v1"

DEFAULT_ADMIN_PATH = Path(__file__).resolve().parent / "static" / "admin.html"
DEFAULT_OPENAPI_PATH = (
    Path(__file__).resolve().parent.parent / "docs" / "openapi" / "openapi.yaml"
)

_Handler = Callable[..., Response]


def _plain_error(status: int, message: str) -> Response:
    return Response(message + "\n", status=status, content_type="text/plain; charset=utf-8")


class Router:
    """Route table for the HTTP API, the health check and the static pages."""

    def __init__(
        self,
        connection_service: Any = None,
        task_service: Any = None,
        openapi_path: str | Path | None = None,
        admin_path: str | Path | None = None,
    ) -> None:
        self.openapi_path = Path(openapi_path) if openapi_path is not None else DEFAULT_OPENAPI_PATH
        self.admin_path = Path(admin_path) if admin_path is not None else DEFAULT_ADMIN_PATH
        self._handlers: dict[str, _Handler] = {}
        rules: list[Rule] = []

        def add(method: str, path: str, handler: _Handler) -> None:
            endpoint = f"{method} {path}"
            self._handlers[endpoint] = handler
            rules.append(Rule(path, methods=[method], endpoint=endpoint))

        add("GET", "/openapi.yaml", self._serve_openapi)
        add("GET", "/admin", self._redirect_admin)
        add("GET", "/admin/", self._serve_admin)
        add("GET", "/healthz", conn.health)

        if connection_service is not None:
            service = connection_service
            base = f"{API_PREFIX}/connections"
            item = f"{base}/<connection_id>"
            add("POST", base, conn.create_connection(service))
            add("GET", base, conn.list_connections(service))
            add("GET", item, conn.get_connection(service))
            add("PUT", item, conn.update_connection(service))
            add("DELETE", item, conn.delete_connection(service))
            add("POST", f"{item}/test", conn.test_connection(service))

        if task_service is not None:
            service = task_service
            base = f"{API_PREFIX}/tasks"
            item = f"{base}/<task_id>"
            add("GET", f"{API_PREFIX}/metrics", tasks.get_metrics(service))
            add("POST", base, tasks.create_task(service))
            add("GET", base, tasks.list_tasks(service))
            add("GET", item, tasks.get_task(service))
            add("PUT", item, tasks.update_task(service))
            add("DELETE", item, tasks.delete_task(service))
            add("POST", f"{item}/start", tasks.start_task(service))
            add("POST", f"{item}/pause", tasks.pause_task(service))
            add("POST", f"{item}/stop", tasks.stop_task(service))
            add("GET", f"{item}/runtime", tasks.get_task_runtime(service))
            add("GET", f"{item}/events", tasks.list_task_events(service))
            add("GET", f"{item}/failures", tasks.list_task_failures(service))
            add("POST", f"{item}/retry", tasks.retry_task_failures(service))
            add(
                "POST",
                f"{item}/failures/<failure_id>/retry",
                tasks.retry_task_failure(service),
            )
            add("GET", f"{item}/conflicts", tasks.list_task_conflicts(service))

        self._map = Map(rules, merge_slashes=False)

    def _serve_openapi(self, request: Request) -> Response:
        try:
            spec = self.openapi_path.read_bytes()
        except OSError:
            return _plain_error(500, "failed to load openapi spec")
        return Response(spec, status=200, content_type="application/yaml; charset=utf-8")

    def _redirect_admin(self, request: Request) -> Response:
        return redirect("/admin/", code=301)

    def _serve_admin(self, request: Request) -> Response:
        try:
            content = self.admin_path.read_bytes()
        except OSError:
            return _plain_error(500, "failed to load admin ui")
        return Response(content, status=200, content_type="text/html; charset=utf-8")

    def dispatch(self, request: Request) -> Response:
        """Find the handler for the request and return its response."""
        adapter = self._map.bind_to_environ(request.environ)
        try:
            endpoint, arguments = adapter.match()
        except NotFound:
            return _plain_error(404, "404 page not found")
        except MethodNotAllowed as exc:
            allowed = sorted(set(exc.valid_methods or ()) - {"HEAD"})
            response = Response(status=405)
            if allowed:
                response.headers["Allow"] = ", ".join(allowed)
            return response
        except HTTPException as exc:
            return exc.get_response(request.environ)
        return self._handlers[endpoint](request, **arguments)

    def __call__(self, environ: dict[str, Any], start_response: Callable[..., Any]) -> Any:
        response = self.dispatch(Request(environ))
        return response(environ, start_response)


def new_router(connection_service: Any, task_service: Any) -> Router:
    """Build the application with the default locations of the static files."""
    return Router(connection_service, task_service)
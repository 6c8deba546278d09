# cloudsync

A small WSGI application that exposes the HTTP API of a WebDAV sync
service: connections to WebDAV servers, sync tasks that use them, and the
runtime state, failures, events, conflicts and metrics of those tasks.

The package holds the HTTP layer only. You supply two service objects;
the router calls them and turns what they return into JSON.

## Building the application

```python
from cloudsync.router import Router, new_router

app = new_router(connection_service, task_service)

# or, choosing the files served at /openapi.yaml and /admin/:
app = Router(
    connection_service,
    task_service,
    openapi_path="docs/openapi.yaml",
    admin_path="static/admin.html",
)
```

A `Router` is a WSGI callable, so it can be handed to any WSGI server.
`Router.dispatch(request)` takes a `werkzeug.wrappers.Request` and returns
the `Response` directly, which is handy in tests.

Either service may be `None`; its routes are then left out, while
`/healthz`, `/openapi.yaml`, `/admin` and `/admin/` are always present.

### The connection service

An object with these methods:

- `create(connection, password)`
- `list()`
- `get_by_id(connection_id)`
- `update(connection, password)`
- `delete(connection_id)`
- `test_connection(connection_id)`

`connection` is a `cloudsync.connection_handlers.ConnectionDraft` built
from the request body (`id`, `name`, `endpoint`, `username`, `root_path`,
`tls_mode`, `timeout_sec`, `status`). On update its `id` is taken from the
URL. The password from the body is passed to the service separately and
never appears in a response.

Connections returned by the service are read by attribute and rendered by
`connection_to_dict`. The result of `test_connection` may be a dataclass,
a mapping or a plain object; it is sent back as its fields.

### The task service

An object with `create(task)`, `list()`, `get_by_id(task_id)`,
`update(task)`, `delete(task_id)`, `start(task_id)`, `pause(task_id)`,
`stop(task_id)`, `list_failures(task_id)`, `retry_failures(task_id)`,
`retry_failure_by_id(task_id, failure_id)`, `get_runtime_view(task_id)`,
`get_metrics()`, `list_events(task_id, limit)` and
`list_conflicts(task_id)`.

New and updated tasks arrive as `cloudsync.task_handlers.TaskDraft`
(`id`, `name`, `connection_id`, `local_path`, `remote_path`,
`direction`); on update the `id` comes from the URL. Values returned by
the task service may be objects with attributes or mappings; missing
fields are rendered as empty strings, zeros or the zero time.
`list_events` is always called with a limit of 100. In the runtime view,
an empty `queue` or `failures` list is sent as `null`; the keys of
`task_states` in the metrics are sent in sorted order.

### Request bodies

Bodies are read as a JSON object; field names are matched without regard
to case, and `null` fields count as absent. A body that is empty, not
valid JSON, not an object, or has a field of the wrong type is answered
with status 400 and `{"error": "invalid json body"}`.

### Errors

Services report problems by raising exceptions from `cloudsync.web`:

| Exception                  | HTTP status |
|----------------------------|-------------|
| `NotFoundError`            | 404 |
| `ReferencedResourceError`  | 409 when deleting a connection |
| `ConflictError`            | 409 when retrying a single failure |

Any other exception becomes 400 or 500, depending on the route. Every
error body from a handler has the form `{"error": "<message>"}`. An
unknown path gets a plain-text 404; a known path with the wrong method
gets 405 with an `Allow` header.

## Routes

| Method | Path | Success |
|--------|------|---------|
| GET    | `/healthz` | 200 `{"status": "ok"}` |
| GET    | `/openapi.yaml` | 200 |
| GET    | `/admin` | 301 to `/admin/` |
| GET    | `/admin/` | 200 |
| POST   | `/api/v1/connections` | 201 |
| GET    | `/api/v1/connections` | 200 |
| GET    | `/api/v1/connections/{connectionID}` | 200 |
| PUT    | `/api/v1/connections/{connectionID}` | 200 |
| DELETE | `/api/v1/connections/{connectionID}` | 204 |
| POST   | `/api/v1/connections/{connectionID}/test` | 200 |
| GET    | `/api/v1/metrics` | 200 |
| POST   | `/api/v1/tasks` | 201 |
| GET    | `/api/v1/tasks` | 200 |
| GET    | `/api/v1/tasks/{taskID}` | 200 |
| PUT    | `/api/v1/tasks/{taskID}` | 200 |
| DELETE | `/api/v1/tasks/{taskID}` | 204 |
| POST   | `/api/v1/tasks/{taskID}/start` | 200 |
| POST   | `/api/v1/tasks/{taskID}/pause` | 200 |
| POST   | `/api/v1/tasks/{taskID}/stop` | 200 |
| GET    | `/api/v1/tasks/{taskID}/runtime` | 200 |
| GET    | `/api/v1/tasks/{taskID}/events` | 200 |
| GET    | `/api/v1/tasks/{taskID}/failures` | 200 |
| POST   | `/api/v1/tasks/{taskID}/retry` | 200 `{"retried": n}` |
| POST   | `/api/v1/tasks/{taskID}/failures/{failureID}/retry` | 200 `{"retried": n}` |
| GET    | `/api/v1/tasks/{taskID}/conflicts` | 200 |

Timestamps in responses are RFC 3339 strings from
`cloudsync.web.format_time`: naive datetimes are taken as UTC, UTC is
written as `Z`, and `None` becomes `0001-01-01T00:00:00Z`.

## What this package does not do

- It stores nothing and syncs nothing: persistence, the WebDAV client,
  scheduling and file watching belong to the services you pass in.
- It has no command and starts no server; run the `Router` under a WSGI
  server of your choice.
- It ships no admin page and no OpenAPI document. By default the router
  looks for `static/admin.html` inside the package directory and
  `docs/openapi/openapi.yaml` next to it; pass `admin_path` and
  `openapi_path` to serve your own. A file that cannot be read is
  answered with 500 and a short plain-text message.
from types import SimpleNamespace

import pytest
from werkzeug.test import Client

from cloudsync.router import Router, new_router
from cloudsync.web import NotFoundError

ADMIN_NEEDLES = [
    "<title>CloudSync 控制台</title>",
    'class="sidebar"',
    'id="open-connection-modal"',
    ">总览<",
    ">任务列表<",
    ">计划<",
    ">设置<",
    ">日志<",
    "连接信息",
    'id="task-table-body"',
    'id="connection-wizard-modal"',
    "Cloud Sync 设置",
    'id="manage-menu"',
]


@pytest.fixture
def static_files(tmp_path):
    openapi = tmp_path / "openapi.yaml"
    openapi.write_text(
        "openapi: 3.0.0\npaths:\n  /api/v1/tasks/{taskID}/conflicts:\n    get: {}\n",
        encoding="utf-8",
    )
    admin = tmp_path / "admin.html"
    admin.write_text(
        "<html><head>" + ADMIN_NEEDLES[0] + "</head><body>"
        + "".join(ADMIN_NEEDLES[1:]) + "</body></html>",
        encoding="utf-8",
    )
    return openapi, admin


class StubConnectionService:
    def __init__(self, get_error=None):
        self.get_error = get_error
        self.seen = []

    def get_by_id(self, connection_id):
        self.seen.append(connection_id)
        if self.get_error is not None:
            raise self.get_error
        return SimpleNamespace(id=connection_id, name="primary")

    def delete(self, connection_id):
        self.seen.append(connection_id)

    def list(self):
        return []


class StubTaskService:
    def __init__(self):
        self.calls = []

    def retry_failure_by_id(self, task_id, failure_id):
        self.calls.append((task_id, failure_id))
        return 1

    def list_events(self, task_id, limit):
        self.calls.append((task_id, limit))
        return [SimpleNamespace(id="event-1", task_id=task_id, event_type="task_started")]

    def start(self, task_id):
        self.calls.append(task_id)
        return SimpleNamespace(id=task_id, status="running")


def test_static_docs_and_admin_routes_are_served(static_files):
    openapi, admin = static_files
    client = Client(Router(None, None, openapi, admin))

    response = client.get("/openapi.yaml")
    assert response.status_code == 200
    assert response.headers["Content-Type"] == "application/yaml; charset=utf-8"
    assert b"/api/v1/tasks/{taskID}/conflicts" in response.data

    response = client.get("/admin/")
    assert response.status_code == 200
    body = response.get_data(as_text=True)
    for needle in ADMIN_NEEDLES:
        assert needle in body


def test_missing_static_files_return_server_error(tmp_path):
    client = Client(Router(None, None, tmp_path / "none.yaml", tmp_path / "none.html"))
    openapi = client.get("/openapi.yaml")
    assert openapi.status_code == 500
    assert openapi.get_data(as_text=True) == "failed to load openapi spec\n"
    admin = client.get("/admin/")
    assert admin.status_code == 500
    assert admin.get_data(as_text=True) == "failed to load admin ui\n"


def test_admin_without_slash_redirects(static_files):
    openapi, admin = static_files
    response = Client(Router(None, None, openapi, admin)).get("/admin")
    assert response.status_code == 301
    assert response.headers["Location"].endswith("/admin/")


def test_health_returns_ok():
    response = Client(new_router(None, None)).get("/healthz")
    assert response.status_code == 200
    assert response.get_json() == {"status": "ok"}


def test_api_routes_absent_without_services():
    client = Client(new_router(None, None))
    assert client.get("/api/v1/connections").status_code == 404
    assert client.get("/api/v1/tasks").status_code == 404


def test_unknown_path_and_wrong_method():
    client = Client(new_router(StubConnectionService(), None))
    missing = client.get("/nowhere")
    assert missing.status_code == 404
    assert missing.get_data(as_text=True) == "404 page not found\n"
    wrong = client.patch("/api/v1/connections")
    assert wrong.status_code == 405
    assert "GET" in wrong.headers["Allow"]


def test_connection_id_is_passed_to_service():
    service = StubConnectionService()
    response = Client(new_router(service, None)).get("/api/v1/connections/conn-1")
    assert response.status_code == 200
    assert response.get_json()["id"] == "conn-1"
    assert service.seen == ["conn-1"]


def test_connection_not_found_maps_to_404():
    service = StubConnectionService(get_error=NotFoundError("not found"))
    response = Client(new_router(service, None)).get("/api/v1/connections/missing")
    assert response.status_code == 404
    assert response.get_json() == {"error": "not found"}


def test_delete_connection_returns_no_content():
    service = StubConnectionService()
    response = Client(new_router(service, None)).delete("/api/v1/connections/conn-1")
    assert response.status_code == 204
    assert service.seen == ["conn-1"]


def test_retry_failure_route_passes_both_ids():
    service = StubTaskService()
    response = Client(new_router(None, service)).post("/api/v1/tasks/task-1/failures/fail-1/retry")
    assert response.status_code == 200
    assert response.get_json() == {"retried": 1}
    assert service.calls == [("task-1", "fail-1")]


def test_events_route_uses_limit_of_100():
    service = StubTaskService()
    response = Client(new_router(None, service)).get("/api/v1/tasks/task-1/events")
    assert response.status_code == 200
    assert response.get_json()[0]["event_type"] == "task_started"
    assert service.calls == [("task-1", 100)]


def test_start_route_returns_task():
    service = StubTaskService()
    response = Client(new_router(None, service)).post("/api/v1/tasks/task-1/start")
    assert response.status_code == 200
    assert response.get_json()["status"] == "running"
    assert service.calls == ["task-1"]
import json
from datetime import datetime, timedelta, timezone

import pytest
from werkzeug.wrappers import Request

from cloudsync import web


def _request(body):
    return Request.from_values("/", method="POST", data=body, content_type="application/json")


def test_format_time_none_is_zero_time():
    assert web.format_time(None) == "0001-01-01T00:00:00Z"


def test_format_time_utc_whole_seconds():
    value = datetime(2026, 3, 24, 10, 0, 0, tzinfo=timezone.utc)
    assert web.format_time(value) == "2026-03-24T10:00:00Z"


def test_format_time_naive_treated_as_utc():
    naive = datetime(2026, 3, 24, 10, 0, 0)
    aware = naive.replace(tzinfo=timezone.utc)
    assert web.format_time(naive) == web.format_time(aware)


def test_format_time_round_trips_microseconds():
    value = datetime(2026, 3, 24, 10, 30, 15, 123456, tzinfo=timezone.utc)
    text = web.format_time(value)
    assert text.endswith("Z")
    assert datetime.fromisoformat(text[:-1] + "+00:00") == value


def test_format_time_keeps_offset():
    value = datetime(2026, 3, 24, 18, 0, 0, tzinfo=timezone(timedelta(hours=8)))
    text = web.format_time(value)
    assert text.endswith("+08:00")
    assert datetime.fromisoformat(text) == value


def test_json_response_round_trip_and_headers():
    payload = {"status": "ok", "items": [1, 2, 3]}
    response = web.json_response(201, payload)
    assert response.status_code == 201
    assert response.headers["Content-Type"] == "application/json"
    assert json.loads(response.get_data(as_text=True)) == payload


def test_json_response_is_compact_with_trailing_newline():
    response = web.json_response(200, {"relative_path": "docs/report.txt"})
    body = response.get_data(as_text=True)
    assert '"relative_path":"docs/report.txt"' in body
    assert body.endswith("\n")


def test_json_response_escapes_html_characters():
    payload = {"html": "<b>a & b</b>"}
    body = web.json_response(200, payload).get_data(as_text=True)
    assert "<" not in body and ">" not in body and "&" not in body
    assert "\\u003c" in body
    assert json.loads(body) == payload


def test_json_response_encodes_datetimes():
    value = datetime(2026, 3, 24, 10, 0, 0, tzinfo=timezone.utc)
    body = json.loads(web.json_response(200, {"at": value}).get_data(as_text=True))
    assert body["at"] == web.format_time(value)


def test_error_response_shape():
    response = web.error_response(404, "not found")
    assert response.status_code == 404
    assert json.loads(response.get_data(as_text=True)) == {"error": "not found"}


def test_read_json_object_returns_dict():
    assert web.read_json_object(_request('{"id":"conn-1","timeout_sec":30}')) == {
        "id": "conn-1",
        "timeout_sec": 30,
    }


def test_read_json_object_null_is_empty():
    assert web.read_json_object(_request("null")) == {}


def test_read_json_object_ignores_trailing_data():
    assert web.read_json_object(_request('  {"a":"b"} trailing')) == {"a": "b"}


@pytest.mark.parametrize("body", ["{", "", "[1,2]", '"text"', "NaN"])
def test_read_json_object_rejects_bad_bodies(body):
    with pytest.raises(ValueError):
        web.read_json_object(_request(body))


def test_error_types_carry_message_and_are_distinct():
    error = web.NotFoundError("missing")
    assert str(error) == "missing"
    assert isinstance(error, LookupError)
    assert not issubclass(web.ReferencedResourceError, web.ConflictError)
    assert not issubclass(web.ConflictError, web.NotFoundError)
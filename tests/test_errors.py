"""
Единый формат ошибок и отображение ошибок хранилища на HTTP-статусы.
"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError

from quillpost.main import app
from quillpost.services import post_service


@pytest.fixture
def failing_stats(monkeypatch):
    def _fail_with(exc):
        def boom(db):
            raise exc
        monkeypatch.setattr(post_service, "get_post_stats", boom)
    return _fail_with


def test_error_body_shape(client):
    response = client.get("/posts/31337")

    body = response.json()
    assert set(body) == {"success", "message", "error", "meta"}
    assert body["success"] is False
    assert body["error"] == "not_found"
    assert body["meta"]["path"] == "/posts/31337"
    assert "timestamp" in body["meta"]


def test_validation_errors_list_fields(client):
    response = client.get("/posts", params={"page": 0})

    assert response.status_code == 422
    errors = response.json()["meta"]["errors"]
    assert any(err["loc"][-1] == "page" for err in errors)


def test_unknown_route_uses_same_format(client):
    response = client.get("/nowhere")

    assert response.status_code == 404
    assert response.json()["error"] == "http_error"


def test_integrity_error_is_client_error(client, admin, headers_for, failing_stats):
    failing_stats(IntegrityError("INSERT ...", {}, Exception("duplicate key")))

    response = client.get("/posts/stats", headers=headers_for(admin))

    assert response.status_code == 400
    assert response.json()["error"] == "database_error"


def test_unreachable_database_is_503(client, admin, headers_for, failing_stats):
    failing_stats(OperationalError("SELECT 1", {}, Exception("connection refused")))

    response = client.get("/posts/stats", headers=headers_for(admin))

    assert response.status_code == 503
    assert response.json()["error"] == "database_unavailable"


def test_other_database_errors_are_500(client, admin, headers_for, failing_stats):
    failing_stats(SQLAlchemyError("internal fault"))

    response = client.get("/posts/stats", headers=headers_for(admin))

    assert response.status_code == 500
    assert response.json()["error"] == "database_error"


def test_unclassified_exception_is_500(admin, headers_for, failing_stats):
    failing_stats(RuntimeError("unexpected"))
    client = TestClient(app, raise_server_exceptions=False)

    response = client.get("/posts/stats", headers=headers_for(admin))

    assert response.status_code == 500
    assert response.json()["error"] == "internal_server_error"


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "redis": False}

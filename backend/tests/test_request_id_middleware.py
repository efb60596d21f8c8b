import logging

from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from backend.core.errors import AppError, NotFoundError, app_error_handler
from backend.core.logging import get_request_id
from backend.core.middleware.request_id import RequestIdMiddleware


def _make_app():
    app = FastAPI()
    app.add_middleware(RequestIdMiddleware)
    app.add_exception_handler(AppError, app_error_handler)

    @app.get("/")
    async def root(request: Request):
        return {
            "request_id": getattr(request.state, "request_id", None),
            "context_request_id": get_request_id(),
        }

    @app.get("/missing")
    async def missing():
        raise NotFoundError("nothing here")

    return app


def test_generates_request_id_when_missing():
    client = TestClient(_make_app())

    resp = client.get("/")
    assert resp.status_code == 200
    rid_header = resp.headers.get("x-request-id")
    body = resp.json()

    assert rid_header
    assert body["request_id"] == rid_header
    assert body["context_request_id"] == rid_header


def test_echoes_provided_request_id():
    client = TestClient(_make_app())

    resp = client.get("/", headers={"X-Request-Id": "rid-tenant-a-001"})
    assert resp.headers.get("x-request-id") == "rid-tenant-a-001"
    assert resp.json()["request_id"] == "rid-tenant-a-001"


def test_error_payload_carries_request_id():
    client = TestClient(_make_app())

    resp = client.get("/missing", headers={"X-Request-Id": "rid-404"})
    assert resp.status_code == 404
    assert resp.headers.get("x-request-id") == "rid-404"
    assert resp.json()["error"]["request_id"] == "rid-404"


def test_completion_is_logged(caplog):
    client = TestClient(_make_app())
    with caplog.at_level(logging.INFO, logger="bizdesk"):
        client.get("/", headers={"X-Request-Id": "rid-logged"})

    records = [r for r in caplog.records if r.getMessage() == "request.complete"]
    assert records
    assert records[-1].request_id == "rid-logged"
    assert records[-1].status == 200
    assert records[-1].path == "/"

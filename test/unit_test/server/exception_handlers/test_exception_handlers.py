"""
Unit tests for server exception handlers.

A small application with the handlers registered exercises every error path
through a real request, so the rendered envelopes are checked end to end.
"""

from unittest.mock import Mock, patch

import pytest
import pytest_asyncio
from fastapi import FastAPI, HTTPException, Request
from httpx import ASGITransport, AsyncClient
from pydantic import BaseModel, Field

from tourbnt.core.errors import ApiError
from tourbnt.server.exception_handlers import global_exception_handler, setup_exception_handlers


class Payload(BaseModel):
    name: str = Field(min_length=1)
    age: int


@pytest.fixture
def app() -> FastAPI:
    app = FastAPI()
    setup_exception_handlers(app)

    @app.get("/api-error")
    async def api_error(request: Request):
        raise ApiError(409, "Email already subscribed", "ALREADY_SUBSCRIBED", {"email": "a@b.c"})

    @app.get("/server-api-error")
    async def server_api_error():
        raise ApiError(500, "Failed to fetch items")

    @app.get("/http-error")
    async def http_error():
        raise HTTPException(status_code=403, detail="Nope")

    @app.post("/validate")
    async def validate(payload: Payload):
        return payload

    @app.get("/boom")
    async def boom():
        raise RuntimeError("kaboom")

    return app


@pytest_asyncio.fixture
async def client(app):
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


class TestApiErrorHandler:
    async def test_envelope(self, client):
        response = await client.get("/api-error")
        assert response.status_code == 409
        assert response.json() == {
            "success": False,
            "message": "Email already subscribed",
            "code": "ALREADY_SUBSCRIBED",
            "errors": {"email": "a@b.c"},
        }

    async def test_server_errors_are_logged(self, client):
        with patch("tourbnt.server.exception_handlers.api_handlers.logger") as mock_logger:
            response = await client.get("/server-api-error")
        assert response.json()["code"] == "SERVER_ERROR"
        mock_logger.error.assert_called_once()


class TestHttpExceptionHandler:
    async def test_detail_becomes_message(self, client):
        response = await client.get("/http-error")
        assert response.status_code == 403
        assert response.json() == {"success": False, "message": "Nope", "code": "FORBIDDEN_ERROR"}

    async def test_unknown_route(self, client):
        response = await client.delete("/nowhere")
        assert response.status_code == 404
        assert response.json()["message"] == "Route DELETE /nowhere not found"
        assert response.json()["code"] == "NOT_FOUND_ERROR"

    async def test_method_not_allowed(self, client):
        response = await client.post("/http-error")
        assert response.status_code == 405
        assert response.json()["code"] == "METHOD_NOT_ALLOWED"
        assert "allow" in response.headers


class TestValidationHandler:
    async def test_single_error_message(self, client):
        response = await client.post("/validate", json={"name": "Ann"})
        body = response.json()
        assert response.status_code == 400
        assert body["code"] == "VALIDATION_ERROR"
        assert body["errors"] == [{"field": "age", "message": "Field required", "type": "missing"}]
        assert body["message"] == "Field required"

    async def test_many_errors(self, client):
        response = await client.post("/validate", json={"name": "", "age": "old"})
        body = response.json()
        assert body["message"] == "Validation failed"
        assert {error["field"] for error in body["errors"]} == {"name", "age"}


class TestGlobalExceptionHandler:
    async def test_unhandled_exception(self, client):
        with patch("tourbnt.server.exception_handlers.global_handler.log_error") as mock_log_error:
            response = await client.get("/boom")

        assert response.status_code == 500
        body = response.json()
        assert body["success"] is False
        assert body["message"] == "Internal server error"
        assert body["code"] == "SERVER_ERROR"
        assert body["error_type"] == "RuntimeError"
        assert isinstance(body["error_id"], int)
        mock_log_error.assert_called_once_with("RuntimeError", "kaboom", {"path": "/boom", "method": "GET"})

    async def test_logs_request_context(self):
        request = Mock(spec=Request)
        request.method = "POST"
        request.url.path = "/api/v1/bookings"
        request.query_params = {"page": "1"}
        request.client = None

        with patch("tourbnt.server.exception_handlers.global_handler.logger") as mock_logger:
            response = await global_exception_handler(request, ValueError("bad"))

        assert response.status_code == 500
        extra = mock_logger.error.call_args[1]["extra"]
        assert extra["client"] == "unknown"
        assert extra["query_params"] == {"page": "1"}
        assert extra["error_type"] == "ValueError"

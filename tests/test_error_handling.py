"""
Tests for error response formatting and the validation middleware.
"""

import json

import pytest
from fastapi import FastAPI, HTTPException
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import IntegrityError, OperationalError

from marketplace_api.middleware.validation import ValidationMiddleware
from marketplace_api.services.error_handler import ErrorHandlerService
from marketplace_api.utils.exceptions import (
    AuthorizationError,
    ListingNotFoundError,
    StorageError,
    UploadError,
    ValidationError,
)


def body(response) -> dict:
    return json.loads(response.body)


class TestErrorHandlerService:
    """Error envelope formatting."""

    def test_format_error_response(self):
        response = ErrorHandlerService.format_error_response(
            error_code="TEST_ERROR",
            message="Test error message",
            details=[{"field": "title", "message": "required"}],
            request_id="abc12345"
        )

        error = response["error"]
        assert error["code"] == "TEST_ERROR"
        assert error["message"] == "Test error message"
        assert error["details"] == [{"field": "title", "message": "required"}]
        assert error["request_id"] == "abc12345"
        assert error["timestamp"].endswith("Z")

    def test_format_error_response_omits_empty_details(self):
        response = ErrorHandlerService.format_error_response("TEST_ERROR", "Test error message")

        assert "details" not in response["error"]
        assert "request_id" not in response["error"]

    def test_not_found(self):
        response = ErrorHandlerService.handle_api_exception(ListingNotFoundError("123"))

        assert response.status_code == 404
        assert body(response)["error"]["code"] == "NOT_FOUND"
        assert body(response)["error"]["message"] == "Listing not found with ID: 123"
        assert len(body(response)["error"]["request_id"]) == 8

    def test_forbidden(self):
        response = ErrorHandlerService.handle_api_exception(AuthorizationError("listing"))

        assert response.status_code == 403
        assert body(response)["error"]["code"] == "FORBIDDEN"

    def test_validation_error_carries_field_errors(self):
        exc = ValidationError("Invalid listing", field_errors=[{"field": "phone", "message": "bad"}])

        response = ErrorHandlerService.handle_api_exception(exc)

        assert response.status_code == 422
        assert body(response)["error"]["details"] == [{"field": "phone", "message": "bad"}]

    def test_storage_errors_are_bad_gateway(self):
        assert ErrorHandlerService.handle_api_exception(StorageError("down")).status_code == 502

        response = ErrorHandlerService.handle_api_exception(UploadError("put failed"))
        assert body(response)["error"]["code"] == "UPLOAD_ERROR"

    def test_request_validation_errors(self):
        errors = [
            {"loc": ("body", "phone"), "msg": "Value error, bad phone", "type": "value_error", "input": "0791"},
            {"loc": ("body", "new_files", 0, "data"), "msg": "bad", "type": "value_error", "input": "A" * 500},
            {"loc": ("body",), "msg": "Field required", "type": "missing", "input": {"title": "x"}},
        ]

        response = ErrorHandlerService.handle_validation_error(errors)
        details = body(response)["error"]["details"]

        assert response.status_code == 422
        assert body(response)["error"]["code"] == "VALIDATION_ERROR"
        assert details[0]["field"] == "body -> phone"
        assert details[0]["input"] == "0791"
        assert details[1]["field"] == "body -> new_files -> 0 -> data"
        assert len(details[1]["input"]) == 203
        assert details[2]["input"] is None

    def test_integrity_error(self):
        exc = IntegrityError("INSERT INTO listing_photos", {}, Exception("UNIQUE constraint failed"))

        response = ErrorHandlerService.handle_database_error(exc)

        assert response.status_code == 409
        assert body(response)["error"]["code"] == "INTEGRITY_ERROR"
        assert body(response)["error"]["message"] == "Constraint violation: Duplicate value for unique field"

    def test_other_database_error(self):
        exc = OperationalError("SELECT 1", {}, Exception("connection refused"))

        response = ErrorHandlerService.handle_database_error(exc)

        assert response.status_code == 502
        assert body(response)["error"]["code"] == "STORAGE_ERROR"

    def test_http_exception(self):
        response = ErrorHandlerService.handle_http_exception(HTTPException(status_code=405, detail="Method Not Allowed"))

        assert response.status_code == 405
        assert body(response)["error"]["code"] == "HTTP_405"

    def test_unexpected_error_hides_details(self):
        response = ErrorHandlerService.handle_unexpected_error(RuntimeError("secret connection string"))

        assert response.status_code == 500
        assert body(response)["error"]["code"] == "INTERNAL_SERVER_ERROR"
        assert "secret" not in body(response)["error"]["message"]


def make_app(**middleware_options) -> FastAPI:
    test_app = FastAPI()
    test_app.add_middleware(ValidationMiddleware, **middleware_options)

    @test_app.post("/api/echo")
    async def echo(payload: dict):
        return payload

    @test_app.get("/api/boom")
    async def boom():
        raise RuntimeError("boom")

    return test_app


class TestValidationMiddleware:
    """Request size, content type and request ID handling."""

    @pytest.mark.asyncio
    async def test_request_id_header(self):
        async with AsyncClient(transport=ASGITransport(app=make_app()), base_url="http://test") as client:
            response = await client.post("/api/echo", json={"a": 1})

        assert response.status_code == 200
        assert len(response.headers["X-Request-ID"]) == 8

    @pytest.mark.asyncio
    async def test_oversized_request_rejected(self):
        async with AsyncClient(
            transport=ASGITransport(app=make_app(max_request_size=100)), base_url="http://test"
        ) as client:
            response = await client.post("/api/echo", json={"data": "x" * 500})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "BAD_REQUEST"
        assert "exceeds maximum allowed size" in response.json()["error"]["message"]

    @pytest.mark.asyncio
    async def test_non_json_write_rejected(self):
        async with AsyncClient(transport=ASGITransport(app=make_app()), base_url="http://test") as client:
            response = await client.post("/api/echo", content=b"a=1", headers={"Content-Type": "text/plain"})

        assert response.status_code == 400
        assert "Unsupported content type" in response.json()["error"]["message"]

    @pytest.mark.asyncio
    async def test_invalid_content_length(self):
        async with AsyncClient(transport=ASGITransport(app=make_app()), base_url="http://test") as client:
            response = await client.get("/api/boom", headers={"Content-Length": "lots"})

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Invalid content-length header"

    @pytest.mark.asyncio
    async def test_unexpected_error_becomes_500(self):
        async with AsyncClient(transport=ASGITransport(app=make_app()), base_url="http://test") as client:
            response = await client.get("/api/boom")

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "INTERNAL_SERVER_ERROR"

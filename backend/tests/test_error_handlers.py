"""Tests for exception classes and the JSON error handlers."""

import pytest
from fastapi import FastAPI, HTTPException
from httpx import ASGITransport, AsyncClient
from pydantic import BaseModel

from config import get_settings
from error_handlers import create_error_response, register_error_handlers
from exceptions import (
    AccountInactiveError,
    AppError,
    ConflictError,
    ForbiddenError,
    InvalidOrExpiredTokenError,
    NotFoundError,
    PayloadTooLargeError,
    UnauthorizedError,
    UpstreamFailure,
    ValidationError,
)


class Item(BaseModel):
    name: str
    quantity: int


def _app() -> FastAPI:
    app = FastAPI()
    register_error_handlers(app)

    @app.get("/not-found")
    async def not_found():
        raise NotFoundError("Video not found")

    @app.get("/upstream")
    async def upstream():
        raise UpstreamFailure("Storage delete failed", details={"status": 502})

    @app.get("/http")
    async def http():
        raise HTTPException(status_code=403, detail="Access denied. Editor role required.")

    @app.post("/items")
    async def items(item: Item):
        return item

    @app.get("/boom")
    async def boom():
        raise RuntimeError("kaput")

    return app


@pytest.fixture
async def client():
    transport = ASGITransport(app=_app(), raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


class TestExceptionClasses:
    """Status codes and default messages."""

    @pytest.mark.parametrize("exc_class,status", [
        (ValidationError, 400),
        (ConflictError, 400),
        (AccountInactiveError, 400),
        (InvalidOrExpiredTokenError, 400),
        (UnauthorizedError, 401),
        (ForbiddenError, 403),
        (NotFoundError, 404),
        (PayloadTooLargeError, 413),
        (UpstreamFailure, 500),
    ])
    def test_status_codes(self, exc_class, status):
        assert exc_class.status_code == status
        assert issubclass(exc_class, AppError)

    def test_default_message(self):
        exc = AccountInactiveError()
        assert exc.message == "Account not activated. Please check your email."
        assert exc.details == {}

    def test_custom_message_and_details(self):
        exc = UpstreamFailure("Auth provider error", details={"status": 422})
        assert str(exc) == "Auth provider error"
        assert exc.details == {"status": 422}


class TestCreateErrorResponse:
    def test_message_only(self):
        assert create_error_response("Video not found") == {"message": "Video not found"}

    def test_empty_extras_dropped(self):
        assert create_error_response("x", details=None, errors=[]) == {"message": "x"}


class TestHandlers:
    async def test_app_error(self, client):
        resp = await client.get("/not-found")
        assert resp.status_code == 404
        assert resp.json() == {"message": "Video not found"}

    async def test_details_only_in_debug(self, client, monkeypatch):
        resp = await client.get("/upstream")
        assert resp.status_code == 500
        assert resp.json()["details"] == {"status": 502}

        monkeypatch.setattr(get_settings(), "debug", False)
        resp = await client.get("/upstream")
        assert resp.json() == {"message": "Storage delete failed"}

    async def test_http_exception_uses_message(self, client):
        resp = await client.get("/http")
        assert resp.status_code == 403
        assert resp.json() == {"message": "Access denied. Editor role required."}

    async def test_unknown_route(self, client):
        resp = await client.get("/nope")
        assert resp.status_code == 404
        assert "message" in resp.json()

    async def test_request_validation_is_400(self, client):
        resp = await client.post("/items", json={"name": "x", "quantity": "many"})
        assert resp.status_code == 400
        body = resp.json()
        assert body["message"].startswith("Invalid quantity")
        assert body["errors"][0]["field"] == "quantity"

    async def test_unhandled_error(self, client, monkeypatch):
        monkeypatch.setattr(get_settings(), "debug", False)
        resp = await client.get("/boom")
        assert resp.status_code == 500
        assert resp.json() == {"message": "Server error"}

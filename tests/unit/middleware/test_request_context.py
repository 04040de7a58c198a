"""
Request Context Middleware Tests.

WHY: Audit rows record the caller's IP and user agent, and log lines carry
the request id. These tests cover:
- Client IP extraction (direct and through proxies)
- Request id propagation to the response
- Context visible inside handlers and cleared afterwards
"""

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from starlette.requests import Request

from agencyos.middleware.request_context import (
    REQUEST_ID_HEADER,
    RequestContextMiddleware,
    get_client_ip,
    get_request_context,
    get_user_agent,
)


def _make_request(headers: dict = None, client_host: str = None) -> Request:
    scope = {
        "type": "http",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": (client_host, 12345) if client_host else None,
    }
    return Request(scope)


class TestGetClientIp:
    """Tests for the get_client_ip function."""

    def test_x_real_ip_wins(self):
        request = _make_request(
            headers={"X-Real-IP": "192.168.1.100", "X-Forwarded-For": "203.0.113.50"},
            client_host="10.0.0.1",
        )
        assert get_client_ip(request) == "192.168.1.100"

    def test_first_forwarded_for_entry(self):
        request = _make_request(
            headers={"X-Forwarded-For": " 203.0.113.50 , 70.41.3.18"},
            client_host="10.0.0.1",
        )
        assert get_client_ip(request) == "203.0.113.50"

    def test_direct_connection(self):
        assert get_client_ip(_make_request(client_host="192.168.1.50")) == "192.168.1.50"

    def test_unknown_fallback(self):
        assert get_client_ip(_make_request()) == "unknown"

    def test_user_agent(self):
        assert get_user_agent(_make_request(headers={"User-Agent": "pytest"})) == "pytest"
        assert get_user_agent(_make_request()) is None


class TestRequestContextMiddleware:
    """The middleware builds the context and echoes the request id."""

    @pytest.fixture
    def app(self):
        app = FastAPI()
        app.add_middleware(RequestContextMiddleware)

        @app.get("/context")
        async def context():
            ctx = get_request_context()
            return {
                "request_id": ctx.request_id,
                "ip_address": ctx.ip_address,
                "user_agent": ctx.user_agent,
                "path": ctx.path,
                "method": ctx.method,
            }

        return app

    async def test_context_available_in_handler(self, app):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            response = await ac.get(
                "/context",
                headers={"User-Agent": "agency-board/1.0", "X-Real-IP": "198.51.100.7"},
            )

        data = response.json()
        assert data["ip_address"] == "198.51.100.7"
        assert data["user_agent"] == "agency-board/1.0"
        assert data["path"] == "/context"
        assert data["method"] == "GET"
        assert response.headers[REQUEST_ID_HEADER] == data["request_id"]

    async def test_caller_request_id_is_kept(self, app):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            response = await ac.get("/context", headers={REQUEST_ID_HEADER: "trace-123"})

        assert response.json()["request_id"] == "trace-123"
        assert response.headers[REQUEST_ID_HEADER] == "trace-123"

    async def test_context_cleared_outside_requests(self, app):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            await ac.get("/context")

        assert get_request_context() is None

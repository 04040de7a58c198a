"""
Tests for the error taxonomy and its HTTP envelope.

WHY: Every failure must reach clients as ``{"error", "code", "details"}``
with the right status:
1. Exceptions serialize without leaking sensitive context
2. Store errors are translated instead of echoed
3. Handlers never expose internals
"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError

from agencyos.core.exceptions import (
    AppException,
    AuthenticationError,
    AuthorizationError,
    CompanyInactiveError,
    ConflictError,
    DatabaseError,
    InvalidAssigneeError,
    InvalidStatusTransitionError,
    LimitReachedError,
    RateLimitExceeded,
    ResourceNotFoundError,
    ValidationError,
)
from agencyos.core.exception_handlers import (
    app_exception_handler,
    database_exception_handler,
    generic_exception_handler,
    translate_store_error,
)


class TestAppException:
    """Test base AppException class."""

    def test_default_message(self):
        exc = AppException()
        assert exc.message == "An unexpected error occurred"
        assert exc.status_code == 500

    def test_custom_message_and_status(self):
        exc = AppException(message="Teapot", status_code=418)
        assert exc.message == "Teapot"
        assert exc.status_code == 418

    def test_to_dict_envelope(self):
        exc = ResourceNotFoundError(message="Request not found", request_id=12)

        assert exc.to_dict() == {
            "error": "Request not found",
            "code": "NOT_FOUND",
            "details": {"request_id": 12},
        }

    def test_to_dict_without_context_omits_details(self):
        assert "details" not in ValidationError(message="Bad input").to_dict()

    def test_to_dict_filters_sensitive_data(self):
        exc = AppException(
            message="Test error",
            user_id=123,
            password="secret123",
            token="abc123",
            api_key="key123",
        )
        details = exc.to_dict()["details"]

        assert details == {"user_id": 123}


class TestTaxonomy:
    """Status codes and codes of the domain errors."""

    @pytest.mark.parametrize(
        "exc,status,code",
        [
            (AuthenticationError(), 401, "UNAUTHORIZED"),
            (AuthorizationError(), 403, "FORBIDDEN"),
            (CompanyInactiveError(), 403, "COMPANY_INACTIVE"),
            (LimitReachedError(limit=1, current=1), 403, "LIMIT_REACHED"),
            (ValidationError(), 400, "VALIDATION_ERROR"),
            (InvalidStatusTransitionError("queue", "review"), 400, "INVALID_STATUS_TRANSITION"),
            (InvalidAssigneeError(), 400, "INVALID_ASSIGNEE"),
            (ResourceNotFoundError(), 404, "NOT_FOUND"),
            (ConflictError(), 409, "CONFLICT"),
            (RateLimitExceeded(), 429, "RATE_LIMIT_EXCEEDED"),
        ],
    )
    def test_status_and_code(self, exc, status, code):
        assert exc.status_code == status
        assert exc.code == code

    def test_limit_reached_details(self):
        """
        Limit errors explain the plan allowance.

        WHY: The board shows "2 of 2 requests in progress" from these details.
        """
        body = LimitReachedError(limit=2, current=2).to_dict()

        assert body["details"] == {"limit": 2, "current": 2}
        assert "2/2" in body["error"]

    def test_invalid_transition_message(self):
        exc = InvalidStatusTransitionError("queue", "review")
        assert exc.message == "Cannot move from queue to review"


class TestStoreErrorTranslation:
    """Store errors map onto the taxonomy, never leak verbatim."""

    @staticmethod
    def _integrity(message: str) -> IntegrityError:
        return IntegrityError("INSERT ...", {}, Exception(message))

    def test_unique_violation_is_conflict(self):
        exc = translate_store_error(self._integrity("UNIQUE constraint failed: profiles.email"))
        assert isinstance(exc, ConflictError)

    def test_postgres_sqlstate_is_used(self):
        class PgError(Exception):
            pgcode = "23505"

        exc = translate_store_error(IntegrityError("INSERT ...", {}, PgError("duplicate key")))
        assert isinstance(exc, ConflictError)

    def test_foreign_key_violation_is_validation_error(self):
        exc = translate_store_error(self._integrity("FOREIGN KEY constraint failed"))
        assert isinstance(exc, ValidationError)
        assert exc.message == "Referenced record does not exist"

    def test_not_null_violation_is_validation_error(self):
        exc = translate_store_error(self._integrity("NOT NULL constraint failed: requests.title"))
        assert isinstance(exc, ValidationError)

    def test_other_errors_are_database_errors(self):
        exc = translate_store_error(OperationalError("SELECT 1", {}, Exception("disk I/O error")))
        assert isinstance(exc, DatabaseError)
        assert "disk" not in exc.message


class TestExceptionHandlerIntegration:
    """Test exception handler integration with FastAPI."""

    @pytest.fixture
    def app(self):
        app = FastAPI()
        app.add_exception_handler(AppException, app_exception_handler)
        app.add_exception_handler(SQLAlchemyError, database_exception_handler)
        app.add_exception_handler(Exception, generic_exception_handler)

        @app.get("/limit")
        async def limit_error():
            raise LimitReachedError(limit=1, current=1)

        @app.get("/rate-limited")
        async def rate_limited():
            raise RateLimitExceeded(retry_after=42, limit=5)

        @app.get("/duplicate")
        async def duplicate():
            raise IntegrityError("INSERT ...", {}, Exception("UNIQUE constraint failed: x"))

        @app.get("/boom")
        async def boom():
            raise RuntimeError("connection string postgres://secret")

        return app

    @pytest.fixture
    def client(self, app):
        return TestClient(app, raise_server_exceptions=False)

    def test_app_exception_envelope(self, client):
        response = client.get("/limit")

        assert response.status_code == 403
        assert response.headers["content-type"] == "application/json"
        assert response.json()["code"] == "LIMIT_REACHED"

    def test_rate_limit_sets_retry_headers(self, client):
        response = client.get("/rate-limited")

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "42"
        assert response.headers["X-RateLimit-Remaining"] == "0"
        assert response.headers["X-RateLimit-Limit"] == "5"

    def test_store_error_is_translated(self, client):
        response = client.get("/duplicate")

        assert response.status_code == 409
        assert "UNIQUE" not in response.text

    def test_unexpected_error_hides_internals(self, client):
        response = client.get("/boom")

        assert response.status_code == 500
        assert response.json() == {"error": "An unexpected error occurred", "code": "INTERNAL_ERROR"}

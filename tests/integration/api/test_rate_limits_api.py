"""
Integration tests for endpoint rate limits.

WHAT: Budgets applied through the rate_limit dependencies, end to end.

WHY: Login is the main credential-guessing target. These tests ensure the
auth budget is enforced per IP, that the 429 carries Retry-After, and that
successful responses advertise the remaining budget.
"""

from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from agencyos.core.config import settings
from tests.factories import UserFactory, auth_headers


class TestLoginBudget:
    async def test_eleventh_login_is_throttled(self, client: AsyncClient):
        budget = settings.RATE_LIMIT_AUTH_PER_MINUTE
        body = {"email": "nobody@example.com", "password": "WrongPassword1!"}

        for _ in range(budget):
            response = await client.post("/api/auth/login", json=body)
            assert response.status_code == 401

        throttled = await client.post("/api/auth/login", json=body)

        assert throttled.status_code == 429
        assert throttled.json()["code"] == "RATE_LIMIT_EXCEEDED"
        assert int(throttled.headers["Retry-After"]) > 0
        assert throttled.headers["X-RateLimit-Remaining"] == "0"


class TestRateLimitHeaders:
    async def test_success_reports_remaining_budget(self, client: AsyncClient, db_session: AsyncSession):
        admin = await UserFactory.create_admin(db_session)

        first = await client.get("/api/notifications", headers=auth_headers(admin))
        second = await client.get("/api/notifications", headers=auth_headers(admin))

        limit = settings.RATE_LIMIT_READ_PER_MINUTE
        assert first.headers["X-RateLimit-Limit"] == str(limit)
        assert first.headers["X-RateLimit-Remaining"] == str(limit - 1)
        assert second.headers["X-RateLimit-Remaining"] == str(limit - 2)

    async def test_budgets_are_per_user(self, client: AsyncClient, db_session: AsyncSession):
        first_admin = await UserFactory.create_admin(db_session)
        second_admin = await UserFactory.create_admin(db_session)

        await client.get("/api/notifications", headers=auth_headers(first_admin))
        response = await client.get("/api/notifications", headers=auth_headers(second_admin))

        assert response.headers["X-RateLimit-Remaining"] == str(settings.RATE_LIMIT_READ_PER_MINUTE - 1)

"""
Integration tests for authentication.

WHAT: Login, /auth/me and the health endpoint over HTTP.

WHY: Every other route depends on the bearer token issued here. These
tests ensure:
1. Valid credentials return a working token
2. Unknown email and wrong password look identical (no enumeration)
3. Disabled profiles cannot log in or keep using old tokens
"""

from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from agencyos.dao.user import UserDAO
from tests.factories import CompanyFactory, UserFactory, auth_headers


class TestLogin:
    async def test_login_returns_usable_token(self, client: AsyncClient, db_session: AsyncSession):
        company = await CompanyFactory.create(db_session)
        await UserFactory.create_client(
            db_session, company, email="owner@acme.com", password="OwnerPassword1!"
        )

        response = await client.post(
            "/api/auth/login",
            json={"email": "owner@acme.com", "password": "OwnerPassword1!"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["expires_in"] == 1440 * 60

        me = await client.get(
            "/api/auth/me", headers={"Authorization": f"Bearer {data['access_token']}"}
        )
        assert me.status_code == 200
        assert me.json()["email"] == "owner@acme.com"
        assert me.json()["role"] == "client"
        assert me.json()["company_id"] == company.id
        assert "hashed_password" not in me.json()

    async def test_email_is_case_insensitive(self, client: AsyncClient, db_session: AsyncSession):
        await UserFactory.create_admin(db_session, email="staff@agency.com", password="StaffPassword1!")

        response = await client.post(
            "/api/auth/login",
            json={"email": "STAFF@Agency.com", "password": "StaffPassword1!"},
        )

        assert response.status_code == 200

    async def test_wrong_password_and_unknown_email_look_the_same(
        self, client: AsyncClient, db_session: AsyncSession
    ):
        await UserFactory.create_admin(db_session, email="staff@agency.com", password="StaffPassword1!")

        wrong_password = await client.post(
            "/api/auth/login", json={"email": "staff@agency.com", "password": "nope"}
        )
        unknown = await client.post(
            "/api/auth/login", json={"email": "ghost@agency.com", "password": "nope"}
        )

        assert wrong_password.status_code == unknown.status_code == 401
        assert wrong_password.json() == unknown.json() == {
            "error": "Invalid email or password",
            "code": "UNAUTHORIZED",
        }

    async def test_inactive_profile_cannot_log_in(self, client: AsyncClient, db_session: AsyncSession):
        company = await CompanyFactory.create(db_session)
        await UserFactory.create_client(
            db_session, company, email="gone@acme.com", password="GonePassword1!", is_active=False
        )

        response = await client.post(
            "/api/auth/login", json={"email": "gone@acme.com", "password": "GonePassword1!"}
        )

        assert response.status_code == 401

    async def test_malformed_body_is_validation_error(self, client: AsyncClient):
        response = await client.post("/api/auth/login", json={"email": "not-an-email"})

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"


class TestCurrentUser:
    async def test_missing_token(self, client: AsyncClient):
        response = await client.get("/api/auth/me")

        assert response.status_code == 401
        assert response.json()["code"] == "UNAUTHORIZED"

    async def test_garbage_token(self, client: AsyncClient):
        response = await client.get("/api/auth/me", headers={"Authorization": "Bearer not.a.jwt"})

        assert response.status_code == 401

    async def test_token_of_deactivated_profile(self, client: AsyncClient, db_session: AsyncSession):
        """
        A token outlives nothing once the profile is disabled.

        WHY: Tokens are stateless; the profile lookup on every request is
        what revokes access.
        """
        user = await UserFactory.create_admin(db_session)
        headers = auth_headers(user)
        await UserDAO(db_session).update(user, is_active=False)
        await db_session.commit()

        response = await client.get("/api/auth/me", headers=headers)

        assert response.status_code == 401
        assert response.json()["error"] == "User account is inactive"


class TestHealth:
    async def test_health_needs_no_auth(self, client: AsyncClient):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["scheduler"]["running"] is False

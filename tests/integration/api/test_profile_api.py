"""
Integration tests for the caller's own profile.

WHY: Profiles are the only self-service account surface: name, avatar and
password. Role and company are never editable here.
"""

from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from tests.factories import CompanyFactory, UserFactory, auth_headers


class TestProfile:
    async def test_get_includes_company_summary(self, client: AsyncClient, db_session: AsyncSession):
        company = await CompanyFactory.create(db_session, name="Acme Coffee")
        owner = await UserFactory.create_client(db_session, company)

        response = await client.get("/api/profile", headers=auth_headers(owner))

        assert response.status_code == 200
        assert response.json()["company"]["name"] == "Acme Coffee"
        assert response.json()["company"]["max_active_limit"] == 1

    async def test_update_name_and_avatar(self, client: AsyncClient, db_session: AsyncSession):
        admin = await UserFactory.create_admin(db_session)

        response = await client.patch(
            "/api/profile",
            headers=auth_headers(admin),
            json={"full_name": "Renamed Admin", "avatar_url": "https://cdn.example.com/a.png", "role": "client"},
        )

        assert response.status_code == 200
        assert response.json()["full_name"] == "Renamed Admin"
        assert response.json()["avatar_url"] == "https://cdn.example.com/a.png"
        assert response.json()["role"] == "admin"

    async def test_empty_update(self, client: AsyncClient, db_session: AsyncSession):
        admin = await UserFactory.create_admin(db_session)

        response = await client.patch("/api/profile", headers=auth_headers(admin), json={})

        assert response.status_code == 400


class TestChangePassword:
    async def test_change_then_login_with_new_password(self, client: AsyncClient, db_session: AsyncSession):
        admin = await UserFactory.create_admin(db_session, email="pw@agency.com", password="OldPassword1!")

        response = await client.post(
            "/api/profile/password",
            headers=auth_headers(admin),
            json={"current_password": "OldPassword1!", "new_password": "NewPassword2!"},
        )
        assert response.status_code == 200

        old = await client.post("/api/auth/login", json={"email": "pw@agency.com", "password": "OldPassword1!"})
        new = await client.post("/api/auth/login", json={"email": "pw@agency.com", "password": "NewPassword2!"})
        assert old.status_code == 401
        assert new.status_code == 200

    async def test_wrong_current_password(self, client: AsyncClient, db_session: AsyncSession):
        admin = await UserFactory.create_admin(db_session, password="OldPassword1!")

        response = await client.post(
            "/api/profile/password",
            headers=auth_headers(admin),
            json={"current_password": "Guess1234!", "new_password": "NewPassword2!"},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Current password is incorrect"

    async def test_new_password_must_differ(self, client: AsyncClient, db_session: AsyncSession):
        admin = await UserFactory.create_admin(db_session, password="SamePassword1!")

        response = await client.post(
            "/api/profile/password",
            headers=auth_headers(admin),
            json={"current_password": "SamePassword1!", "new_password": "SamePassword1!"},
        )

        assert response.status_code == 400

    async def test_weak_new_password(self, client: AsyncClient, db_session: AsyncSession):
        admin = await UserFactory.create_admin(db_session, password="OldPassword1!")

        response = await client.post(
            "/api/profile/password",
            headers=auth_headers(admin),
            json={"current_password": "OldPassword1!", "new_password": "alllowercase"},
        )

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

"""
Integration tests for invitations.

WHAT: Admin invitation management and the public accept flow.

WHY: There is no open registration; this flow is how every profile is
created. These tests ensure:
1. Only admins invite, and the invitee gets an email with the link
2. Tokens can be checked without being consumed
3. Tokens are single-use and expire
4. The accepted profile can log in
"""

from datetime import timedelta

from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from agencyos.models.invitation import InvitationStatus
from agencyos.models.user import UserRole
from agencyos.services.email import EmailType, MockEmailProvider
from tests.factories import CompanyFactory, InvitationFactory, UserFactory, auth_headers


class TestCreateInvitation:
    async def test_admin_invites_client(self, client: AsyncClient, db_session: AsyncSession):
        company = await CompanyFactory.create(db_session)
        admin = await UserFactory.create_admin(db_session)

        response = await client.post(
            "/api/invitations",
            headers=auth_headers(admin),
            json={"email": "newhire@acme.com", "full_name": "New Hire", "company_id": company.id},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["role"] == "client"
        assert data["status"] == "pending"
        assert data["invitation_url"].startswith("http")
        sent = [e for e in MockEmailProvider.sent_emails if e.email_type == EmailType.INVITATION]
        assert [e.to_email for e in sent] == ["newhire@acme.com"]

    async def test_client_invite_without_company(self, client: AsyncClient, db_session: AsyncSession):
        admin = await UserFactory.create_admin(db_session)

        response = await client.post(
            "/api/invitations", headers=auth_headers(admin), json={"email": "newhire@acme.com"}
        )

        assert response.status_code == 400

    async def test_duplicate_pending_invite(self, client: AsyncClient, db_session: AsyncSession):
        admin = await UserFactory.create_admin(db_session)
        await InvitationFactory.create(db_session, email="twice@acme.com", role=UserRole.ADMIN)

        response = await client.post(
            "/api/invitations",
            headers=auth_headers(admin),
            json={"email": "twice@acme.com", "role": "admin"},
        )

        assert response.status_code == 409
        assert response.json()["code"] == "CONFLICT"

    async def test_clients_cannot_invite(self, client: AsyncClient, db_session: AsyncSession):
        company = await CompanyFactory.create(db_session)
        owner = await UserFactory.create_client(db_session, company)

        response = await client.post(
            "/api/invitations",
            headers=auth_headers(owner),
            json={"email": "friend@acme.com", "company_id": company.id},
        )

        assert response.status_code == 403
        assert response.json()["error"] == "Admin access required"


class TestAcceptFlow:
    async def test_validate_then_accept_then_login(self, client: AsyncClient, db_session: AsyncSession):
        company = await CompanyFactory.create(db_session, name="Bean Roasters")
        invitation = await InvitationFactory.create(
            db_session, email="barista@beans.com", full_name="Barista", company=company
        )

        check = await client.get("/api/invitations/accept", params={"token": invitation.token})
        assert check.status_code == 200
        assert check.json()["valid"] is True
        assert check.json()["invitation"]["company_name"] == "Bean Roasters"

        accepted = await client.post(
            "/api/invitations/accept",
            json={"token": invitation.token, "password": "BaristaPassword1!"},
        )
        assert accepted.status_code == 200
        assert accepted.json()["success"] is True

        login = await client.post(
            "/api/auth/login", json={"email": "barista@beans.com", "password": "BaristaPassword1!"}
        )
        assert login.status_code == 200

        reused = await client.post(
            "/api/invitations/accept",
            json={"token": invitation.token, "password": "BaristaPassword1!"},
        )
        assert reused.status_code == 404

        recheck = await client.get("/api/invitations/accept", params={"token": invitation.token})
        assert recheck.json()["valid"] is False
        assert recheck.json()["reason"] == "already_accepted"

    async def test_expired_token_is_marked_expired(self, client: AsyncClient, db_session: AsyncSession):
        invitation = await InvitationFactory.create(
            db_session, role=UserRole.ADMIN, expires_in=timedelta(hours=-1)
        )

        response = await client.post(
            "/api/invitations/accept",
            json={"token": invitation.token, "password": "LatePassword1!"},
        )

        assert response.status_code == 400
        await db_session.refresh(invitation)
        assert invitation.status == InvitationStatus.EXPIRED

    async def test_unknown_token(self, client: AsyncClient):
        response = await client.get(
            "/api/invitations/accept", params={"token": "00000000-0000-0000-0000-000000000000"}
        )

        assert response.status_code == 404

    async def test_short_password_is_rejected(self, client: AsyncClient, db_session: AsyncSession):
        invitation = await InvitationFactory.create(db_session, role=UserRole.ADMIN)

        response = await client.post(
            "/api/invitations/accept", json={"token": invitation.token, "password": "short"}
        )

        assert response.status_code == 400
        await db_session.refresh(invitation)
        assert invitation.status == InvitationStatus.PENDING


class TestManageInvitations:
    async def test_list_and_revoke(self, client: AsyncClient, db_session: AsyncSession):
        admin = await UserFactory.create_admin(db_session)
        pending = await InvitationFactory.create(db_session, role=UserRole.ADMIN)
        await InvitationFactory.create(db_session, role=UserRole.ADMIN, status=InvitationStatus.ACCEPTED)
        headers = auth_headers(admin)

        listed = await client.get("/api/invitations", headers=headers, params={"status": "pending"})
        assert [i["id"] for i in listed.json()["items"]] == [pending.id]

        revoked = await client.delete(f"/api/invitations/{pending.id}", headers=headers)
        assert revoked.status_code == 204

        gone = await client.get("/api/invitations/accept", params={"token": pending.token})
        assert gone.status_code == 404

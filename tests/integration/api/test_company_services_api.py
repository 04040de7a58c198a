"""
Integration tests for a company's services, contacts and pausing.

WHY: Services and contacts hold billing data of one tenant. These tests
ensure members read only their own company's rows, only admins change
them, and that pausing is audited and limited to active companies.
"""

from decimal import Decimal

from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from agencyos.dao.company import CompanyDAO
from agencyos.models.audit_log import AuditAction, AuditLog
from agencyos.models.client_service import ServiceStatus
from agencyos.models.company import CompanyStatus
from tests.factories import ClientServiceFactory, CompanyFactory, ContactFactory, UserFactory, auth_headers


class TestServices:
    async def test_admin_creates_service(self, client: AsyncClient, db_session: AsyncSession):
        admin = await UserFactory.create_admin(db_session)
        company = await CompanyFactory.create(db_session)

        response = await client.post(
            f"/api/companies/{company.id}/services",
            headers=auth_headers(admin),
            json={"service_name": " Logo refresh ", "service_type": "one_time", "price": "800.00"},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["service_name"] == "Logo refresh"
        assert data["service_type"] == "one_time"
        assert data["status"] == "active"
        assert data["billing_cycle"] == "monthly"
        assert Decimal(data["price"]) == Decimal("800")

    async def test_member_lists_with_filters(self, client: AsyncClient, db_session: AsyncSession):
        company = await CompanyFactory.create(db_session)
        owner = await UserFactory.create_client(db_session, company)
        await ClientServiceFactory.create(db_session, company, service_name="Retainer")
        await ClientServiceFactory.create(
            db_session, company, service_name="Logo", service_type="one_time", status=ServiceStatus.COMPLETED
        )
        headers = auth_headers(owner)

        everything = await client.get(f"/api/companies/{company.id}/services", headers=headers)
        one_time = await client.get(
            f"/api/companies/{company.id}/services", headers=headers, params={"type": "one_time"}
        )
        active = await client.get(
            f"/api/companies/{company.id}/services", headers=headers, params={"status": "active"}
        )

        assert [s["service_name"] for s in everything.json()] == ["Retainer", "Logo"]
        assert [s["service_name"] for s in one_time.json()] == ["Logo"]
        assert [s["service_name"] for s in active.json()] == ["Retainer"]

    async def test_other_company_is_not_found(self, client: AsyncClient, db_session: AsyncSession):
        company = await CompanyFactory.create(db_session)
        other = await CompanyFactory.create(db_session, name="Rival Bakery")
        owner = await UserFactory.create_client(db_session, company)
        service = await ClientServiceFactory.create(db_session, other)
        headers = auth_headers(owner)

        listing = await client.get(f"/api/companies/{other.id}/services", headers=headers)
        single = await client.get(f"/api/companies/{other.id}/services/{service.id}", headers=headers)

        assert listing.status_code == 404
        assert single.status_code == 404

    async def test_service_of_another_company_is_not_found(self, client: AsyncClient, db_session: AsyncSession):
        admin = await UserFactory.create_admin(db_session)
        company = await CompanyFactory.create(db_session)
        other = await CompanyFactory.create(db_session, name="Rival Bakery")
        service = await ClientServiceFactory.create(db_session, other)

        response = await client.get(
            f"/api/companies/{company.id}/services/{service.id}", headers=auth_headers(admin)
        )

        assert response.status_code == 404

    async def test_update_and_empty_update(self, client: AsyncClient, db_session: AsyncSession):
        admin = await UserFactory.create_admin(db_session)
        company = await CompanyFactory.create(db_session)
        service = await ClientServiceFactory.create(db_session, company)
        url = f"/api/companies/{company.id}/services/{service.id}"

        updated = await client.patch(
            url, headers=auth_headers(admin), json={"status": "cancelled", "notes": "Moved in-house"}
        )
        empty = await client.patch(url, headers=auth_headers(admin), json={})

        assert updated.status_code == 200
        assert updated.json()["status"] == "cancelled"
        assert updated.json()["notes"] == "Moved in-house"
        assert empty.status_code == 400

    async def test_delete(self, client: AsyncClient, db_session: AsyncSession):
        admin = await UserFactory.create_admin(db_session)
        company = await CompanyFactory.create(db_session)
        service = await ClientServiceFactory.create(db_session, company)
        url = f"/api/companies/{company.id}/services/{service.id}"

        deleted = await client.delete(url, headers=auth_headers(admin))
        again = await client.get(url, headers=auth_headers(admin))

        assert deleted.status_code == 204
        assert again.status_code == 404

    async def test_members_cannot_write(self, client: AsyncClient, db_session: AsyncSession):
        company = await CompanyFactory.create(db_session)
        owner = await UserFactory.create_client(db_session, company)

        response = await client.post(
            f"/api/companies/{company.id}/services",
            headers=auth_headers(owner),
            json={"service_name": "Freebie", "service_type": "one_time"},
        )

        assert response.status_code == 403


class TestContacts:
    async def test_admin_creates_contact(self, client: AsyncClient, db_session: AsyncSession):
        admin = await UserFactory.create_admin(db_session)
        company = await CompanyFactory.create(db_session)

        response = await client.post(
            f"/api/companies/{company.id}/contacts",
            headers=auth_headers(admin),
            json={"name": "Sam Owner", "email": "sam@acme.example", "is_primary": True},
        )

        assert response.status_code == 201
        assert response.json()["is_primary"] is True
        assert response.json()["is_active"] is True

    async def test_blank_name_is_rejected(self, client: AsyncClient, db_session: AsyncSession):
        admin = await UserFactory.create_admin(db_session)
        company = await CompanyFactory.create(db_session)

        response = await client.post(
            f"/api/companies/{company.id}/contacts", headers=auth_headers(admin), json={"name": "  "}
        )

        assert response.status_code == 400

    async def test_primary_first_then_by_name(self, client: AsyncClient, db_session: AsyncSession):
        company = await CompanyFactory.create(db_session)
        owner = await UserFactory.create_client(db_session, company)
        await ContactFactory.create(db_session, company, name="Alex")
        await ContactFactory.create(db_session, company, name="Zoe", is_primary=True)
        await ContactFactory.create(db_session, company, name="Bo", is_active=False)
        url = f"/api/companies/{company.id}/contacts"

        everyone = await client.get(url, headers=auth_headers(owner))
        active = await client.get(url, headers=auth_headers(owner), params={"active_only": True})
        primary = await client.get(url, headers=auth_headers(owner), params={"primary_only": True})

        assert [c["name"] for c in everyone.json()] == ["Zoe", "Alex", "Bo"]
        assert [c["name"] for c in active.json()] == ["Zoe", "Alex"]
        assert [c["name"] for c in primary.json()] == ["Zoe"]

    async def test_update_and_delete(self, client: AsyncClient, db_session: AsyncSession):
        admin = await UserFactory.create_admin(db_session)
        company = await CompanyFactory.create(db_session)
        contact = await ContactFactory.create(db_session, company)
        url = f"/api/companies/{company.id}/contacts/{contact.id}"

        updated = await client.patch(url, headers=auth_headers(admin), json={"is_active": False})
        deleted = await client.delete(url, headers=auth_headers(admin))
        again = await client.delete(url, headers=auth_headers(admin))

        assert updated.json()["is_active"] is False
        assert deleted.status_code == 204
        assert again.status_code == 404

    async def test_other_company_is_not_found(self, client: AsyncClient, db_session: AsyncSession):
        company = await CompanyFactory.create(db_session)
        other = await CompanyFactory.create(db_session, name="Rival Bakery")
        owner = await UserFactory.create_client(db_session, company)
        contact = await ContactFactory.create(db_session, other)

        response = await client.get(
            f"/api/companies/{other.id}/contacts/{contact.id}", headers=auth_headers(owner)
        )

        assert response.status_code == 404


class TestPause:
    async def test_member_pauses_own_company(self, client: AsyncClient, db_session: AsyncSession):
        company = await CompanyFactory.create(db_session)
        owner = await UserFactory.create_client(db_session, company)

        response = await client.post(f"/api/companies/{company.id}/pause", headers=auth_headers(owner))

        assert response.status_code == 200
        assert response.json()["status"] == "paused"
        stored = await CompanyDAO(db_session).get_by_id(company.id)
        await db_session.refresh(stored)
        assert stored.status == CompanyStatus.PAUSED

        result = await db_session.execute(
            select(AuditLog).where(AuditLog.entity_type == "company", AuditLog.entity_id == company.id)
        )
        entry = result.scalar_one()
        assert entry.action == AuditAction.UPDATE
        assert entry.user_id == owner.id
        assert entry.old_values == {"status": "active"}
        assert entry.new_values == {"status": "paused"}

    async def test_already_paused(self, client: AsyncClient, db_session: AsyncSession):
        company = await CompanyFactory.create(db_session, status=CompanyStatus.PAUSED)
        owner = await UserFactory.create_client(db_session, company)

        response = await client.post(f"/api/companies/{company.id}/pause", headers=auth_headers(owner))

        assert response.status_code == 400
        assert response.json()["error"] == "Subscription is not currently active"

    async def test_other_company_is_forbidden(self, client: AsyncClient, db_session: AsyncSession):
        company = await CompanyFactory.create(db_session)
        other = await CompanyFactory.create(db_session, name="Rival Bakery")
        owner = await UserFactory.create_client(db_session, company)

        response = await client.post(f"/api/companies/{other.id}/pause", headers=auth_headers(owner))

        assert response.status_code == 403

    async def test_admin_and_unknown_company(self, client: AsyncClient, db_session: AsyncSession):
        admin = await UserFactory.create_admin(db_session)
        company = await CompanyFactory.create(db_session)

        paused = await client.post(f"/api/companies/{company.id}/pause", headers=auth_headers(admin))
        missing = await client.post("/api/companies/99999/pause", headers=auth_headers(admin))

        assert paused.status_code == 200
        assert missing.status_code == 404

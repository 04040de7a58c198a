"""
Integration tests for the request board API.

WHAT: Request CRUD, comments and timeline over HTTP.

WHY: Requests are the central business entity. These tests ensure:
1. Company scoping hides other tenants' requests (404, never 403)
2. Plan limits and company status gate submission
3. Clients may only delete untouched queue requests
4. Internal notes never reach clients
"""

from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from agencyos.dao.request import RequestDAO
from agencyos.models.company import CompanyStatus, PlanTier
from agencyos.models.request import RequestStatus
from tests.factories import CompanyFactory, RequestFactory, UserFactory, auth_headers


class TestCreateRequest:
    async def test_client_submits_request(self, client: AsyncClient, db_session: AsyncSession):
        company = await CompanyFactory.create(db_session)
        owner = await UserFactory.create_client(db_session, company)

        response = await client.post(
            "/api/requests",
            headers=auth_headers(owner),
            json={
                "title": "Instagram carousel",
                "description": "Five slides for the spring menu",
                "priority": "high",
                "assets_link": "https://drive.example.com/folder",
            },
        )

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "queue"
        assert data["priority"] == "high"
        assert data["company_id"] == company.id
        assert data["created_by"] == owner.id
        assert data["assignee"] is None

    async def test_missing_title(self, client: AsyncClient, db_session: AsyncSession):
        company = await CompanyFactory.create(db_session)
        owner = await UserFactory.create_client(db_session, company)

        response = await client.post("/api/requests", headers=auth_headers(owner), json={})

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    async def test_limit_reached(self, client: AsyncClient, db_session: AsyncSession):
        company = await CompanyFactory.create(db_session, plan_tier=PlanTier.STANDARD)
        owner = await UserFactory.create_client(db_session, company)
        await RequestFactory.create(db_session, company, status=RequestStatus.REVIEW)

        response = await client.post(
            "/api/requests", headers=auth_headers(owner), json={"title": "One too many"}
        )

        assert response.status_code == 403
        body = response.json()
        assert body["code"] == "LIMIT_REACHED"
        assert body["details"] == {"limit": 1, "current": 1}

    async def test_done_requests_free_the_slot(self, client: AsyncClient, db_session: AsyncSession):
        company = await CompanyFactory.create(db_session)
        owner = await UserFactory.create_client(db_session, company)
        await RequestFactory.create(db_session, company, status=RequestStatus.DONE)

        response = await client.post(
            "/api/requests", headers=auth_headers(owner), json={"title": "Next job"}
        )

        assert response.status_code == 201

    async def test_paused_company(self, client: AsyncClient, db_session: AsyncSession):
        company = await CompanyFactory.create(db_session, status=CompanyStatus.PAUSED)
        owner = await UserFactory.create_client(db_session, company)

        response = await client.post(
            "/api/requests", headers=auth_headers(owner), json={"title": "Blocked"}
        )

        assert response.status_code == 403
        assert response.json()["code"] == "COMPANY_INACTIVE"

    async def test_admin_submits_for_a_company(self, client: AsyncClient, db_session: AsyncSession):
        company = await CompanyFactory.create(db_session)
        admin = await UserFactory.create_admin(db_session)

        missing = await client.post(
            "/api/requests", headers=auth_headers(admin), json={"title": "Where?"}
        )
        created = await client.post(
            "/api/requests",
            headers=auth_headers(admin),
            json={"title": "Kickoff deck", "company_id": company.id},
        )

        assert missing.status_code == 400
        assert created.status_code == 201
        assert created.json()["company_id"] == company.id


class TestReadRequests:
    async def test_client_lists_only_own_company(self, client: AsyncClient, db_session: AsyncSession):
        mine = await CompanyFactory.create(db_session)
        theirs = await CompanyFactory.create(db_session, name="Rival Bakery")
        owner = await UserFactory.create_client(db_session, mine)
        own = await RequestFactory.create(db_session, mine, title="Ours")
        await RequestFactory.create(db_session, theirs, title="Theirs")

        response = await client.get(
            "/api/requests", headers=auth_headers(owner), params={"company_id": theirs.id}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert [item["id"] for item in data["items"]] == [own.id]

    async def test_admin_filters(self, client: AsyncClient, db_session: AsyncSession):
        company = await CompanyFactory.create(db_session, max_active_limit=5)
        admin = await UserFactory.create_admin(db_session)
        await RequestFactory.create(db_session, company, title="Menu", status=RequestStatus.ACTIVE)
        await RequestFactory.create(db_session, company, title="Signage")

        response = await client.get(
            "/api/requests", headers=auth_headers(admin), params={"status": "active"}
        )

        assert [item["title"] for item in response.json()["items"]] == ["Menu"]

    async def test_other_tenant_request_is_not_found(self, client: AsyncClient, db_session: AsyncSession):
        """
        Foreign requests are indistinguishable from missing ones.

        WHY: A 403 would confirm the id exists in another company.
        """
        mine = await CompanyFactory.create(db_session)
        theirs = await CompanyFactory.create(db_session, name="Rival Bakery")
        owner = await UserFactory.create_client(db_session, mine)
        foreign = await RequestFactory.create(db_session, theirs)

        foreign_response = await client.get(f"/api/requests/{foreign.id}", headers=auth_headers(owner))
        missing_response = await client.get("/api/requests/99999", headers=auth_headers(owner))

        assert foreign_response.status_code == missing_response.status_code == 404
        assert foreign_response.json() == missing_response.json()

    async def test_requires_authentication(self, client: AsyncClient):
        response = await client.get("/api/requests")

        assert response.status_code == 401


class TestUpdateRequest:
    async def test_patch_changes_brief(self, client: AsyncClient, db_session: AsyncSession):
        company = await CompanyFactory.create(db_session)
        owner = await UserFactory.create_client(db_session, company)
        request = await RequestFactory.create(db_session, company)

        response = await client.patch(
            f"/api/requests/{request.id}",
            headers=auth_headers(owner),
            json={"title": "Landing page v2", "video_brief": "https://video.example.com/brief"},
        )

        assert response.status_code == 200
        assert response.json()["title"] == "Landing page v2"
        assert response.json()["video_brief"] == "https://video.example.com/brief"
        assert response.json()["status"] == "queue"

    async def test_patch_ignores_status(self, client: AsyncClient, db_session: AsyncSession):
        company = await CompanyFactory.create(db_session)
        owner = await UserFactory.create_client(db_session, company)
        request = await RequestFactory.create(db_session, company)

        response = await client.patch(
            f"/api/requests/{request.id}", headers=auth_headers(owner), json={"status": "done"}
        )

        assert response.status_code == 400
        assert response.json()["error"] == "No valid fields to update"

    async def test_patch_other_tenant(self, client: AsyncClient, db_session: AsyncSession):
        mine = await CompanyFactory.create(db_session)
        theirs = await CompanyFactory.create(db_session, name="Rival Bakery")
        owner = await UserFactory.create_client(db_session, mine)
        foreign = await RequestFactory.create(db_session, theirs)

        response = await client.patch(
            f"/api/requests/{foreign.id}", headers=auth_headers(owner), json={"title": "Mine now"}
        )

        assert response.status_code == 404


class TestDeleteRequest:
    async def test_client_deletes_queue_request(self, client: AsyncClient, db_session: AsyncSession):
        company = await CompanyFactory.create(db_session)
        owner = await UserFactory.create_client(db_session, company)
        request = await RequestFactory.create(db_session, company)
        await RequestFactory.add_comment(db_session, request, owner)

        response = await client.delete(f"/api/requests/{request.id}", headers=auth_headers(owner))

        assert response.status_code == 204
        assert await RequestDAO(db_session).get_by_id(request.id, refresh=True) is None

    async def test_client_cannot_delete_active_request(self, client: AsyncClient, db_session: AsyncSession):
        company = await CompanyFactory.create(db_session)
        owner = await UserFactory.create_client(db_session, company)
        request = await RequestFactory.create(db_session, company, status=RequestStatus.ACTIVE)

        response = await client.delete(f"/api/requests/{request.id}", headers=auth_headers(owner))

        assert response.status_code == 403
        assert response.json()["error"] == "Can only delete requests in queue status"

    async def test_admin_deletes_done_request(self, client: AsyncClient, db_session: AsyncSession):
        company = await CompanyFactory.create(db_session)
        admin = await UserFactory.create_admin(db_session)
        request = await RequestFactory.create(db_session, company, status=RequestStatus.DONE)

        response = await client.delete(f"/api/requests/{request.id}", headers=auth_headers(admin))

        assert response.status_code == 204

    async def test_admin_deletes_active_request(self, client: AsyncClient, db_session: AsyncSession):
        company = await CompanyFactory.create(db_session)
        admin = await UserFactory.create_admin(db_session)
        request = await RequestFactory.create(db_session, company, status=RequestStatus.ACTIVE)

        response = await client.delete(f"/api/requests/{request.id}", headers=auth_headers(admin))

        assert response.status_code == 204
        assert await RequestDAO(db_session).get_by_id(request.id, refresh=True) is None


class TestComments:
    async def test_thread_hides_internal_notes_from_clients(
        self, client: AsyncClient, db_session: AsyncSession
    ):
        company = await CompanyFactory.create(db_session)
        owner = await UserFactory.create_client(db_session, company, full_name="Cafe Owner")
        admin = await UserFactory.create_admin(db_session)
        request = await RequestFactory.create(db_session, company)

        posted = await client.post(
            f"/api/requests/{request.id}/comments",
            headers=auth_headers(owner),
            json={"content": "Please use our new logo"},
        )
        await client.post(
            f"/api/requests/{request.id}/comments",
            headers=auth_headers(admin),
            json={"content": "Client logo is low-res", "is_internal": True},
        )

        assert posted.status_code == 201
        assert posted.json()["author"]["full_name"] == "Cafe Owner"

        client_view = await client.get(f"/api/requests/{request.id}/comments", headers=auth_headers(owner))
        admin_view = await client.get(f"/api/requests/{request.id}/comments", headers=auth_headers(admin))
        assert [c["content"] for c in client_view.json()] == ["Please use our new logo"]
        assert len(admin_view.json()) == 2

    async def test_client_cannot_post_internal_note(self, client: AsyncClient, db_session: AsyncSession):
        company = await CompanyFactory.create(db_session)
        owner = await UserFactory.create_client(db_session, company)
        request = await RequestFactory.create(db_session, company)

        response = await client.post(
            f"/api/requests/{request.id}/comments",
            headers=auth_headers(owner),
            json={"content": "sneaky", "is_internal": True},
        )

        assert response.status_code == 403


class TestActivities:
    async def test_timeline_newest_first(self, client: AsyncClient, db_session: AsyncSession):
        company = await CompanyFactory.create(db_session)
        owner = await UserFactory.create_client(db_session, company)
        headers = auth_headers(owner)

        created = await client.post("/api/requests", headers=headers, json={"title": "Poster"})
        request_id = created.json()["id"]
        await client.patch(f"/api/requests/{request_id}", headers=headers, json={"title": "Poster A2"})

        response = await client.get(f"/api/requests/{request_id}/activities", headers=headers)

        assert response.status_code == 200
        assert [a["activity_type"] for a in response.json()] == ["updated", "created"]

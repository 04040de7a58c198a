"""
Unit tests for the request and profile DAOs.

WHY: Tenancy scoping, the status compare-and-swap and comment cascades
are enforced at the query level; a mistake here leaks data or loses
writes regardless of what the services check.
"""

from sqlalchemy import select

from agencyos.dao.request import RequestCommentDAO, RequestDAO
from agencyos.dao.user import UserDAO
from agencyos.models.request import RequestComment, RequestPriority, RequestStatus
from agencyos.models.user import UserRole
from tests.factories import CompanyFactory, RequestFactory, UserFactory


class TestRequestDAO:
    async def test_company_scoped_lookup(self, db_session):
        mine = await CompanyFactory.create(db_session)
        theirs = await CompanyFactory.create(db_session, name="Theirs")
        request = await RequestFactory.create(db_session, theirs)
        dao = RequestDAO(db_session)

        assert await dao.get_by_id(request.id, company_id=mine.id) is None
        assert (await dao.get_by_id(request.id, company_id=theirs.id)).id == request.id
        assert (await dao.get_by_id(request.id)).id == request.id

    async def test_list_filters_and_search(self, db_session):
        company = await CompanyFactory.create(db_session, max_active_limit=10)
        await RequestFactory.create(db_session, company, title="Logo", priority=RequestPriority.HIGH)
        await RequestFactory.create(db_session, company, title="Brochure", description="Tri-fold LOGO placement")
        await RequestFactory.create(db_session, company, title="Website", status=RequestStatus.DONE)
        dao = RequestDAO(db_session)

        items, total = await dao.list(company_id=company.id, search="logo")
        assert total == 2
        assert {r.title for r in items} == {"Logo", "Brochure"}

        items, total = await dao.list(company_id=company.id, priority=RequestPriority.HIGH)
        assert [r.title for r in items] == ["Logo"]

        items, total = await dao.list(status=RequestStatus.DONE)
        assert [r.title for r in items] == ["Website"]

    async def test_pagination_keeps_total(self, db_session):
        company = await CompanyFactory.create(db_session)
        for i in range(5):
            await RequestFactory.create(db_session, company, title=f"Request {i}")

        items, total = await RequestDAO(db_session).list(company_id=company.id, skip=1, limit=2)

        assert total == 5
        assert len(items) == 2

    async def test_status_counts_include_empty_columns(self, db_session):
        company = await CompanyFactory.create(db_session)
        await RequestFactory.create(db_session, company, status=RequestStatus.ACTIVE)
        await RequestFactory.create(db_session, company, status=RequestStatus.DONE)
        await RequestFactory.create(db_session, company, status=RequestStatus.DONE)

        counts = await RequestDAO(db_session).status_counts(company.id)

        assert counts == {
            RequestStatus.QUEUE: 0,
            RequestStatus.ACTIVE: 1,
            RequestStatus.REVIEW: 0,
            RequestStatus.DONE: 2,
        }

    async def test_compare_and_swap(self, db_session):
        """
        Only the caller that saw the current status wins.

        WHY: Two admins dragging the same card must not both succeed.
        """
        company = await CompanyFactory.create(db_session)
        request = await RequestFactory.create(db_session, company)
        dao = RequestDAO(db_session)

        assert await dao.update_status(request.id, RequestStatus.QUEUE, RequestStatus.ACTIVE, None) is True
        assert await dao.update_status(request.id, RequestStatus.QUEUE, RequestStatus.DONE, None) is False

        fresh = await dao.get_by_id(request.id, refresh=True)
        assert fresh.status == RequestStatus.ACTIVE

    async def test_delete_cascades_comments(self, db_session):
        company = await CompanyFactory.create(db_session)
        author = await UserFactory.create_client(db_session, company)
        request = await RequestFactory.create(db_session, company)
        await RequestFactory.add_comment(db_session, request, author)
        await RequestFactory.add_comment(db_session, request, author, is_internal=True)

        await RequestDAO(db_session).delete_request(request)

        remaining = await db_session.execute(select(RequestComment))
        assert remaining.scalars().all() == []

    async def test_comment_listing_hides_internal(self, db_session):
        company = await CompanyFactory.create(db_session)
        author = await UserFactory.create_admin(db_session)
        request = await RequestFactory.create(db_session, company)
        await RequestFactory.add_comment(db_session, request, author, content="visible")
        await RequestFactory.add_comment(db_session, request, author, content="internal", is_internal=True)
        dao = RequestCommentDAO(db_session)

        assert [c.content for c in await dao.list_for_request(request.id, include_internal=False)] == ["visible"]
        assert len(await dao.list_for_request(request.id, include_internal=True)) == 2


class TestUserDAO:
    async def test_email_lookup_is_case_insensitive(self, db_session):
        await UserFactory.create(db_session, email="mixed@example.com")
        dao = UserDAO(db_session)

        assert (await dao.get_by_email("MIXED@Example.com")).email == "mixed@example.com"
        assert await dao.email_exists("Mixed@example.com") is True
        assert await dao.email_exists("other@example.com") is False

    async def test_create_user_lowercases_email(self, db_session):
        user = await UserDAO(db_session).create_user(
            email="New@Example.COM", hashed_password="x", role=UserRole.ADMIN
        )

        assert user.email == "new@example.com"
        assert user.is_active is True

    async def test_list_admins_skips_clients_and_inactive(self, db_session):
        company = await CompanyFactory.create(db_session)
        await UserFactory.create_admin(db_session, full_name="Bea")
        await UserFactory.create_admin(db_session, full_name="Ann")
        await UserFactory.create(db_session, role=UserRole.ADMIN, full_name="Gone", is_active=False)
        await UserFactory.create_client(db_session, company)

        admins = await UserDAO(db_session).list_admins()

        assert [a.full_name for a in admins] == ["Ann", "Bea"]

"""
Unit tests for request operations.

WHY: The request routes are thin; tenancy, plan limits, edit rules and
the audit trail all live in RequestService. These tests pin them down
without HTTP in the way.
"""

from datetime import datetime

import pytest

from agencyos.core.exceptions import (
    AuthorizationError,
    CompanyInactiveError,
    LimitReachedError,
    ResourceNotFoundError,
    ValidationError,
)
from agencyos.dao.audit_log import AuditLogDAO
from agencyos.dao.notification import NotificationDAO
from agencyos.dao.request import RequestDAO
from agencyos.models.activity import ActivityType
from agencyos.models.audit_log import AuditAction
from agencyos.models.company import CompanyStatus, PlanTier
from agencyos.models.request import RequestPriority, RequestStatus
from agencyos.schemas.request import CommentCreate, RequestCreate, RequestUpdate
from agencyos.services.request_service import RequestService, company_scope
from tests.factories import CompanyFactory, RequestFactory, UserFactory


class TestCreate:
    async def test_client_submits_into_queue(self, db_session):
        company = await CompanyFactory.create(db_session)
        client = await UserFactory.create_client(db_session, company)

        request = await RequestService(db_session).create(
            RequestCreate(title="New logo", priority=RequestPriority.HIGH), client
        )

        assert request.status == RequestStatus.QUEUE
        assert request.company_id == company.id
        assert request.created_by == client.id
        assert request.priority == RequestPriority.HIGH

        logs, total = await AuditLogDAO(db_session).list(entity_id=request.id, action=AuditAction.CREATE)
        assert total == 1
        assert logs[0].new_values["title"] == "New logo"

    async def test_client_company_id_is_ignored(self, db_session):
        company = await CompanyFactory.create(db_session)
        other = await CompanyFactory.create(db_session, name="Other Co")
        client = await UserFactory.create_client(db_session, company)

        request = await RequestService(db_session).create(
            RequestCreate(title="Sneaky", company_id=other.id), client
        )

        assert request.company_id == company.id

    @pytest.mark.parametrize("status", [CompanyStatus.PAUSED, CompanyStatus.CHURNED])
    async def test_inactive_company_cannot_submit(self, db_session, status):
        company = await CompanyFactory.create(db_session, status=status)
        client = await UserFactory.create_client(db_session, company)

        with pytest.raises(CompanyInactiveError):
            await RequestService(db_session).create(RequestCreate(title="Blocked"), client)

    async def test_limit_counts_open_requests(self, db_session):
        company = await CompanyFactory.create(db_session, plan_tier=PlanTier.STANDARD)
        client = await UserFactory.create_client(db_session, company)
        service = RequestService(db_session)
        await service.create(RequestCreate(title="First"), client)

        with pytest.raises(LimitReachedError) as exc_info:
            await service.create(RequestCreate(title="Second"), client)

        assert exc_info.value.context == {"limit": 1, "current": 1}

    async def test_admin_must_name_a_company(self, db_session):
        admin = await UserFactory.create_admin(db_session)

        with pytest.raises(ValidationError):
            await RequestService(db_session).create(RequestCreate(title="Orphan"), admin)

    async def test_admin_creates_for_paused_company_within_limit(self, db_session):
        company = await CompanyFactory.create(db_session, status=CompanyStatus.PAUSED)
        admin = await UserFactory.create_admin(db_session)

        request = await RequestService(db_session).create(
            RequestCreate(title="Internal prep", company_id=company.id), admin
        )

        assert request.company_id == company.id

    async def test_admin_is_held_to_the_limit(self, db_session):
        company = await CompanyFactory.create(db_session)
        admin = await UserFactory.create_admin(db_session)
        await RequestFactory.create(db_session, company)

        with pytest.raises(LimitReachedError):
            await RequestService(db_session).create(
                RequestCreate(title="Over", company_id=company.id), admin
            )


class TestVisibility:
    async def test_company_scope(self, db_session):
        company = await CompanyFactory.create(db_session)
        client = await UserFactory.create_client(db_session, company)
        admin = await UserFactory.create_admin(db_session)

        assert company_scope(client) == company.id
        assert company_scope(admin) is None

    async def test_other_company_is_not_found(self, db_session):
        mine = await CompanyFactory.create(db_session)
        theirs = await CompanyFactory.create(db_session, name="Theirs")
        client = await UserFactory.create_client(db_session, mine)
        request = await RequestFactory.create(db_session, theirs)

        with pytest.raises(ResourceNotFoundError):
            await RequestService(db_session).get_visible(request.id, client)

    async def test_list_is_scoped_for_clients(self, db_session):
        mine = await CompanyFactory.create(db_session, max_active_limit=5)
        theirs = await CompanyFactory.create(db_session, name="Theirs")
        client = await UserFactory.create_client(db_session, mine)
        admin = await UserFactory.create_admin(db_session)
        own = await RequestFactory.create(db_session, mine)
        await RequestFactory.create(db_session, theirs)
        service = RequestService(db_session)

        items, total = await service.list(client, company_id=theirs.id)
        assert [r.id for r in items] == [own.id]
        assert total == 1

        _, admin_total = await service.list(admin)
        assert admin_total == 2

    async def test_client_without_company_sees_nothing(self, db_session):
        company = await CompanyFactory.create(db_session)
        await RequestFactory.create(db_session, company)
        loner = await UserFactory.create_client(db_session, None)

        assert await RequestService(db_session).list(loner) == ([], 0)


class TestUpdate:
    async def test_partial_update_is_audited_with_full_snapshots(self, db_session):
        company = await CompanyFactory.create(db_session)
        client = await UserFactory.create_client(db_session, company)
        request = await RequestFactory.create(db_session, company, title="Old title")

        updated = await RequestService(db_session).update(
            request.id, RequestUpdate(title="New title"), client
        )

        assert updated.title == "New title"
        assert updated.description == "New hero section"
        logs, _ = await AuditLogDAO(db_session).list(entity_id=request.id, action=AuditAction.UPDATE)
        assert logs[0].old_values["title"] == "Old title"
        assert logs[0].new_values["title"] == "New title"
        assert logs[0].old_values["description"] == logs[0].new_values["description"]

        timeline = await RequestService(db_session).timeline(request.id, client)
        assert timeline[0].activity_type == ActivityType.UPDATED.value
        assert timeline[0].extra_data == {"fields": ["title"]}

    async def test_client_cannot_move_due_date(self, db_session):
        company = await CompanyFactory.create(db_session)
        client = await UserFactory.create_client(db_session, company)
        request = await RequestFactory.create(db_session, company)

        with pytest.raises(ValidationError):
            await RequestService(db_session).update(
                request.id, RequestUpdate(due_date=datetime(2030, 1, 1)), client
            )

    async def test_admin_moves_due_date(self, db_session):
        company = await CompanyFactory.create(db_session)
        admin = await UserFactory.create_admin(db_session)
        request = await RequestFactory.create(db_session, company)

        updated = await RequestService(db_session).update(
            request.id, RequestUpdate(due_date=datetime(2030, 1, 1)), admin
        )

        assert updated.due_date == datetime(2030, 1, 1)

    async def test_null_title_is_dropped(self, db_session):
        company = await CompanyFactory.create(db_session)
        client = await UserFactory.create_client(db_session, company)
        request = await RequestFactory.create(db_session, company)

        with pytest.raises(ValidationError) as exc_info:
            await RequestService(db_session).update(request.id, RequestUpdate(title=None), client)

        assert exc_info.value.message == "No valid fields to update"

    async def test_empty_body_fails_before_lookup(self, db_session):
        admin = await UserFactory.create_admin(db_session)

        with pytest.raises(ValidationError):
            await RequestService(db_session).update(999, RequestUpdate(), admin)


class TestDelete:
    async def test_client_deletes_own_queue_request(self, db_session):
        company = await CompanyFactory.create(db_session)
        client = await UserFactory.create_client(db_session, company)
        request = await RequestFactory.create(db_session, company)
        await RequestFactory.add_comment(db_session, request, client)

        await RequestService(db_session).delete(request.id, client)

        assert await RequestDAO(db_session).get_by_id(request.id) is None
        logs, _ = await AuditLogDAO(db_session).list(entity_id=request.id, action=AuditAction.DELETE)
        assert logs[0].old_values["title"] == "Landing page refresh"

    async def test_client_cannot_delete_started_work(self, db_session):
        company = await CompanyFactory.create(db_session)
        client = await UserFactory.create_client(db_session, company)
        request = await RequestFactory.create(db_session, company, status=RequestStatus.ACTIVE)

        with pytest.raises(AuthorizationError):
            await RequestService(db_session).delete(request.id, client)

    async def test_admin_deletes_anything(self, db_session):
        company = await CompanyFactory.create(db_session)
        admin = await UserFactory.create_admin(db_session)
        request = await RequestFactory.create(db_session, company, status=RequestStatus.DONE)

        await RequestService(db_session).delete(request.id, admin)

        assert await RequestDAO(db_session).get_by_id(request.id) is None


class TestComments:
    async def test_internal_notes_are_hidden_from_clients(self, db_session):
        company = await CompanyFactory.create(db_session)
        client = await UserFactory.create_client(db_session, company)
        admin = await UserFactory.create_admin(db_session)
        request = await RequestFactory.create(db_session, company)
        service = RequestService(db_session)

        await service.add_comment(request.id, CommentCreate(content="Public"), admin)
        await service.add_comment(request.id, CommentCreate(content="Secret", is_internal=True), admin)

        assert [c.content for c in await service.list_comments(request.id, client)] == ["Public"]
        assert [c.content for c in await service.list_comments(request.id, admin)] == ["Public", "Secret"]

        client_timeline = await service.timeline(request.id, client)
        admin_timeline = await service.timeline(request.id, admin)
        assert len(admin_timeline) == len(client_timeline) + 1

    async def test_client_cannot_post_internal(self, db_session):
        company = await CompanyFactory.create(db_session)
        client = await UserFactory.create_client(db_session, company)
        request = await RequestFactory.create(db_session, company)

        with pytest.raises(AuthorizationError):
            await RequestService(db_session).add_comment(
                request.id, CommentCreate(content="x", is_internal=True), client
            )

    async def test_paused_company_cannot_comment(self, db_session):
        company = await CompanyFactory.create(db_session, status=CompanyStatus.PAUSED)
        client = await UserFactory.create_client(db_session, company)
        request = await RequestFactory.create(db_session, company)

        with pytest.raises(CompanyInactiveError):
            await RequestService(db_session).add_comment(request.id, CommentCreate(content="x"), client)

    async def test_comment_notifies_assignee_and_is_audited(self, db_session):
        company = await CompanyFactory.create(db_session)
        client = await UserFactory.create_client(db_session, company, full_name="Dana")
        designer = await UserFactory.create_admin(db_session)
        request = await RequestFactory.create(db_session, company, title="Flyer", assigned_to=designer)

        comment = await RequestService(db_session).add_comment(
            request.id, CommentCreate(content="Can we use blue?"), client
        )

        assert comment.author.id == client.id
        notifications = await NotificationDAO(db_session).list_for_user(designer.id)
        assert notifications[0].message == 'Dana commented on "Flyer"'
        logs, _ = await AuditLogDAO(db_session).list(entity_type="comment", entity_id=comment.id)
        assert logs[0].new_values["request_id"] == request.id

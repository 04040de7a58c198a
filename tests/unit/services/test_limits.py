"""
Unit tests for plan allowance checks.

WHY: The plan limit is what the agency sells. Creation counts everything
not yet done, activation counts only the active column.
"""

import pytest

from agencyos.core.exceptions import LimitReachedError
from agencyos.models.company import PlanTier
from agencyos.models.request import RequestStatus
from agencyos.services.limits import ActiveLimitEnforcer
from tests.factories import CompanyFactory, RequestFactory


class TestEnsureCanCreate:
    async def test_empty_company_is_admitted(self, db_session):
        company = await CompanyFactory.create(db_session)

        assert await ActiveLimitEnforcer(db_session).ensure_can_create(company) == 0

    async def test_open_requests_fill_the_allowance(self, db_session):
        company = await CompanyFactory.create(db_session, plan_tier=PlanTier.PRO)
        await RequestFactory.create(db_session, company, status=RequestStatus.QUEUE)
        await RequestFactory.create(db_session, company, status=RequestStatus.REVIEW)

        with pytest.raises(LimitReachedError) as exc_info:
            await ActiveLimitEnforcer(db_session).ensure_can_create(company)

        assert exc_info.value.context == {"limit": 2, "current": 2}

    async def test_done_requests_do_not_count(self, db_session):
        company = await CompanyFactory.create(db_session)
        await RequestFactory.create(db_session, company, status=RequestStatus.DONE)
        await RequestFactory.create(db_session, company, status=RequestStatus.DONE)

        assert await ActiveLimitEnforcer(db_session).ensure_can_create(company) == 0

    async def test_other_companies_do_not_count(self, db_session):
        company = await CompanyFactory.create(db_session)
        other = await CompanyFactory.create(db_session, name="Other Co")
        await RequestFactory.create(db_session, other)

        assert await ActiveLimitEnforcer(db_session).ensure_can_create(company) == 0

    async def test_custom_limit_overrides_plan(self, db_session):
        company = await CompanyFactory.create(db_session, max_active_limit=3)
        for _ in range(2):
            await RequestFactory.create(db_session, company)

        assert await ActiveLimitEnforcer(db_session).ensure_can_create(company) == 2


class TestEnsureCanActivate:
    async def test_only_active_column_counts(self, db_session):
        company = await CompanyFactory.create(db_session)
        await RequestFactory.create(db_session, company, status=RequestStatus.QUEUE)
        await RequestFactory.create(db_session, company, status=RequestStatus.REVIEW)

        assert await ActiveLimitEnforcer(db_session).ensure_can_activate(company) == 0

    async def test_full_active_column_is_rejected(self, db_session):
        company = await CompanyFactory.create(db_session)
        await RequestFactory.create(db_session, company, status=RequestStatus.ACTIVE)

        with pytest.raises(LimitReachedError) as exc_info:
            await ActiveLimitEnforcer(db_session).ensure_can_activate(company)

        assert exc_info.value.status_code == 403
        assert "1/1 active" in exc_info.value.message

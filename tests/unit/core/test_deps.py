"""
Unit tests for the authentication dependencies.

WHY: Every protected route depends on these. A missing or stale token must
always end in 401, and role or company checks must fail closed.
"""

import pytest
from fastapi.security import HTTPAuthorizationCredentials

from agencyos.core import deps
from agencyos.core.auth import create_user_token
from agencyos.core.exceptions import AuthenticationError, AuthorizationError, ResourceNotFoundError
from tests.factories import CompanyFactory, UserFactory


def _bearer(token: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


class TestGetCurrentUser:
    async def test_missing_credentials(self, db_session):
        with pytest.raises(AuthenticationError):
            await deps.get_current_user(credentials=None, db=db_session)

    async def test_valid_token(self, db_session):
        user = await UserFactory.create_admin(db_session)

        current = await deps.get_current_user(credentials=_bearer(create_user_token(user)), db=db_session)

        assert current.id == user.id

    async def test_inactive_profile(self, db_session):
        company = await CompanyFactory.create(db_session)
        user = await UserFactory.create_client(db_session, company, is_active=False)

        with pytest.raises(AuthenticationError):
            await deps.get_current_user(credentials=_bearer(create_user_token(user)), db=db_session)


class TestRoleAndCompany:
    async def test_require_admin_rejects_clients(self, db_session):
        company = await CompanyFactory.create(db_session)
        client = await UserFactory.create_client(db_session, company)

        with pytest.raises(AuthorizationError):
            await deps.require_admin(current_user=client)

    async def test_company_of_a_client(self, db_session):
        company = await CompanyFactory.create(db_session)
        client = await UserFactory.create_client(db_session, company)

        assert (await deps.get_current_company(current_user=client, db=db_session)).id == company.id

    async def test_no_company(self, db_session):
        admin = await UserFactory.create_admin(db_session)

        with pytest.raises(ResourceNotFoundError):
            await deps.get_current_company(current_user=admin, db=db_session)

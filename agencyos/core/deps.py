"""
FastAPI dependencies for authentication and authorization.

WHY: Dependencies provide reusable authentication and authorization logic
that can be injected into route handlers, ensuring consistent security
across the API.
"""

from typing import Optional
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from agencyos.core.auth import verify_token
from agencyos.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ResourceNotFoundError,
)
from agencyos.db.session import get_db
from agencyos.models.company import Company
from agencyos.models.user import User, UserRole
from agencyos.dao.company import CompanyDAO
from agencyos.dao.user import UserDAO


# HTTP Bearer token security scheme
# WHY: auto_error=False lets us answer a missing header with our own 401
# envelope instead of FastAPI's default response.
security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Get current authenticated user from JWT token.

    WHY: This dependency:
    1. Extracts token from Authorization header
    2. Verifies token signature and expiration
    3. Fetches the profile from the database
    4. Ensures the profile still exists and is active

    Raises:
        AuthenticationError: If token is missing, invalid, expired, or the
            profile is gone or disabled
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError()

    payload = verify_token(credentials.credentials)

    user_id = payload.get("user_id")
    if not user_id:
        raise AuthenticationError(message="Invalid token")

    # WHY: Claims in the token might be stale; always fetch current data
    user = await UserDAO(db).get_by_id(user_id)

    if not user:
        raise AuthenticationError(message="User not found")

    if not user.is_active:
        raise AuthenticationError(message="User account is inactive")

    return user


async def require_admin(
    current_user: User = Depends(get_current_user),
) -> User:
    """
    Require user to have ADMIN role.

    Raises:
        AuthorizationError: If user is not ADMIN
    """
    if current_user.role != UserRole.ADMIN:
        raise AuthorizationError(message="Admin access required")
    return current_user


async def get_current_company(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Company:
    """
    Get the company the current user belongs to.

    Raises:
        ResourceNotFoundError: If the user is not attached to a company
    """
    if current_user.company_id is None:
        raise ResourceNotFoundError(message="No company associated with this account")

    company = await CompanyDAO(db).get_by_id(current_user.company_id)
    if company is None:
        raise ResourceNotFoundError(message="Company not found")
    return company

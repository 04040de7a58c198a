"""
Profile API endpoints.

WHAT: Self-service view and edit of the caller's own profile.

WHY: Every profile can change its display details and password without
admin help. Password changes get the strict rate limit because they are a
credential-guessing surface.
"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from agencyos.core.auth import hash_password, verify_password
from agencyos.core.deps import get_current_user
from agencyos.core.exceptions import ValidationError
from agencyos.dao.user import UserDAO
from agencyos.db.session import get_db
from agencyos.middleware.rate_limiter import RateLimitCategory, rate_limit
from agencyos.models.user import User
from agencyos.schemas.profile import (
    MessageResponse,
    PasswordChangeRequest,
    ProfileResponse,
    ProfileUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/profile", tags=["profile"])


@router.get(
    "",
    response_model=ProfileResponse,
    status_code=status.HTTP_200_OK,
    summary="Get my profile",
    dependencies=[Depends(rate_limit(RateLimitCategory.READ))],
)
async def get_profile(
    current_user: User = Depends(get_current_user),
) -> ProfileResponse:
    """Caller's profile with a summary of their company."""
    return ProfileResponse.model_validate(current_user)


@router.patch(
    "",
    response_model=ProfileResponse,
    status_code=status.HTTP_200_OK,
    summary="Update my profile",
    dependencies=[Depends(rate_limit(RateLimitCategory.MUTATION))],
)
async def update_profile(
    data: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ProfileResponse:
    """
    Change display name and avatar.

    Raises:
        ValidationError (400): Body carries no fields
    """
    changes = data.model_dump(exclude_unset=True)
    if "full_name" in changes and changes["full_name"] is None:
        del changes["full_name"]
    if not changes:
        raise ValidationError(message="No fields to update")

    user = await UserDAO(db).update(current_user, **changes)
    return ProfileResponse.model_validate(user)


@router.post(
    "/password",
    response_model=MessageResponse,
    status_code=status.HTTP_200_OK,
    summary="Change my password",
    dependencies=[Depends(rate_limit(RateLimitCategory.STRICT))],
)
async def change_password(
    data: PasswordChangeRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    """
    Replace the caller's password.

    Raises:
        ValidationError (400): Current password is wrong, or the new one
            equals it
    """
    if not verify_password(data.current_password, current_user.hashed_password):
        raise ValidationError(message="Current password is incorrect")
    if data.current_password == data.new_password:
        raise ValidationError(message="New password must differ from the current password")

    await UserDAO(db).update(current_user, hashed_password=hash_password(data.new_password))
    logger.info(f"User {current_user.id} changed their password")
    return MessageResponse(message="Password updated")

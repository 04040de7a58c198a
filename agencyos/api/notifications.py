"""
Notification API endpoints.

WHAT: The caller's in-app notification feed and email preferences.

WHY: Notifications are written by request events and workflows; this
router only lets their owner read them and mark them read. Every query is
keyed by the caller's id, so no profile can see or touch another's rows.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from agencyos.core.deps import get_current_user
from agencyos.core.exceptions import ValidationError
from agencyos.dao.notification import NotificationDAO
from agencyos.dao.notification_preference import NotificationPreferenceDAO
from agencyos.db.session import get_db
from agencyos.middleware.rate_limiter import RateLimitCategory, rate_limit
from agencyos.models.user import User
from agencyos.schemas.notification import (
    MarkReadRequest,
    MarkReadResponse,
    NotificationListResponse,
    NotificationPreferencesResponse,
    NotificationPreferencesUpdate,
    NotificationResponse,
)


router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get(
    "",
    response_model=NotificationListResponse,
    status_code=status.HTTP_200_OK,
    summary="List my notifications",
    dependencies=[Depends(rate_limit(RateLimitCategory.READ))],
)
async def list_notifications(
    unread_only: bool = Query(default=False),
    limit: int = Query(default=50, ge=1, le=200),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> NotificationListResponse:
    dao = NotificationDAO(db)
    notifications = await dao.list_for_user(current_user.id, unread_only=unread_only, limit=limit)
    return NotificationListResponse(
        items=[NotificationResponse.model_validate(n) for n in notifications],
        unread_count=await dao.count_unread(current_user.id),
    )


@router.post(
    "/mark-read",
    response_model=MarkReadResponse,
    status_code=status.HTTP_200_OK,
    summary="Mark notifications read",
    dependencies=[Depends(rate_limit(RateLimitCategory.MUTATION))],
)
async def mark_read(
    data: MarkReadRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> MarkReadResponse:
    """
    Mark given notifications, or all of them, as read.

    Raises:
        ValidationError (400): Neither ids nor mark_all given
    """
    dao = NotificationDAO(db)
    if data.mark_all:
        updated = await dao.mark_read(current_user.id)
    elif data.notification_ids:
        updated = await dao.mark_read(current_user.id, data.notification_ids)
    else:
        raise ValidationError(message="Provide notification_ids or mark_all")
    return MarkReadResponse(updated=updated)


@router.get(
    "/preferences",
    response_model=NotificationPreferencesResponse,
    status_code=status.HTTP_200_OK,
    summary="Get my notification preferences",
    dependencies=[Depends(rate_limit(RateLimitCategory.READ))],
)
async def get_preferences(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> NotificationPreferencesResponse:
    settings = await NotificationPreferenceDAO(db).get_settings(current_user.id)
    return NotificationPreferencesResponse(**settings)


@router.patch(
    "/preferences",
    response_model=NotificationPreferencesResponse,
    status_code=status.HTTP_200_OK,
    summary="Update my notification preferences",
    dependencies=[Depends(rate_limit(RateLimitCategory.MUTATION))],
)
async def update_preferences(
    data: NotificationPreferencesUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> NotificationPreferencesResponse:
    """
    Change some settings; the rest keep their current or default value.

    Raises:
        ValidationError (400): No setting given
    """
    changes = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}
    if not changes:
        raise ValidationError(message="No valid fields to update")

    dao = NotificationPreferenceDAO(db)
    await dao.upsert(current_user.id, **changes)
    return NotificationPreferencesResponse(**await dao.get_settings(current_user.id))

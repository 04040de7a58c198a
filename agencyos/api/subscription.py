"""
Subscription and team API endpoints.

WHAT: The caller's plan, services and usage; the list of agency staff.

WHY: Clients see what they pay for and how much of their request
allowance is in use. Both sides need the team list to know who can be
assigned a request.
"""

from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from agencyos.core.deps import get_current_company, get_current_user
from agencyos.dao.client_service import ClientServiceDAO
from agencyos.dao.request import RequestDAO
from agencyos.dao.user import UserDAO
from agencyos.db.session import get_db
from agencyos.middleware.rate_limiter import RateLimitCategory, rate_limit
from agencyos.models.company import Company
from agencyos.models.request import RequestStatus
from agencyos.models.user import User
from agencyos.schemas.company import (
    ClientServiceResponse,
    SubscriptionResponse,
    UsageSummary,
)
from agencyos.schemas.profile import CompanySummary
from agencyos.schemas.request import UserReference


router = APIRouter(tags=["subscription"])

read_limit = Depends(rate_limit(RateLimitCategory.READ))


@router.get(
    "/subscription",
    response_model=SubscriptionResponse,
    status_code=status.HTTP_200_OK,
    summary="My company's plan and usage",
    dependencies=[read_limit],
)
async def get_subscription(
    company: Company = Depends(get_current_company),
    db: AsyncSession = Depends(get_db),
) -> SubscriptionResponse:
    """
    Plan summary, subscribed services and request counts.

    Raises:
        ResourceNotFoundError (404): Caller has no company
    """
    counts = await RequestDAO(db).status_counts(company.id)
    services = await ClientServiceDAO(db).list_for_company(company.id)
    return SubscriptionResponse(
        company=CompanySummary.model_validate(company),
        services=[ClientServiceResponse.model_validate(s) for s in services],
        usage=UsageSummary(
            total=sum(counts.values()),
            active=counts[RequestStatus.ACTIVE],
            completed=counts[RequestStatus.DONE],
            queued=counts[RequestStatus.QUEUE],
            in_review=counts[RequestStatus.REVIEW],
            max_active_limit=company.max_active_limit,
        ),
    )


@router.get(
    "/team-members",
    response_model=List[UserReference],
    status_code=status.HTTP_200_OK,
    summary="Agency team members",
    dependencies=[read_limit],
)
async def list_team_members(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> List[UserReference]:
    """Active admin profiles, ordered by name."""
    admins = await UserDAO(db).list_admins()
    return [UserReference.model_validate(a) for a in admins]

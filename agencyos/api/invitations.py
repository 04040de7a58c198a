"""
Invitation API endpoints.

WHAT: Admin management of invitations and the public accept flow.

WHY: Profiles are never self-registered. An admin invites an email into a
role; the invitee opens the emailed link, checks it, and accepts it by
choosing a password.

HOW: Admin routes require the admin role. The two accept routes are
public and rate limited per client IP, since the token is the only
credential they carry.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from agencyos.core.deps import require_admin
from agencyos.db.session import get_db
from agencyos.middleware.rate_limiter import (
    RateLimitCategory,
    rate_limit,
    rate_limit_by_ip,
)
from agencyos.models.invitation import Invitation, InvitationStatus
from agencyos.models.user import User
from agencyos.schemas.invitation import (
    AcceptInvitationRequest,
    AcceptInvitationResponse,
    InvitationCreate,
    InvitationListResponse,
    InvitationPublic,
    InvitationResponse,
    InvitationValidationResponse,
)
from agencyos.services.invitation_service import InvitationService, build_invitation_url


router = APIRouter(prefix="/invitations", tags=["invitations"])

auth_limit = Depends(rate_limit_by_ip(RateLimitCategory.AUTH))


def _to_response(invitation: Invitation) -> InvitationResponse:
    response = InvitationResponse.model_validate(invitation)
    response.invitation_url = build_invitation_url(invitation.token)
    return response


# ============================================================================
# Public accept flow
# ============================================================================


@router.get(
    "/accept",
    response_model=InvitationValidationResponse,
    status_code=status.HTTP_200_OK,
    summary="Check an invitation token",
    dependencies=[auth_limit],
)
async def validate_invitation(
    token: str = Query(..., min_length=1, max_length=64),
    db: AsyncSession = Depends(get_db),
) -> InvitationValidationResponse:
    """
    Report whether a token can still be accepted, without consuming it.

    Raises:
        ResourceNotFoundError (404): Unknown token
    """
    invitation, reason, company = await InvitationService(db).validate(token)
    return InvitationValidationResponse(
        valid=reason is None,
        reason=reason,
        invitation=InvitationPublic(
            email=invitation.email,
            full_name=invitation.full_name,
            role=invitation.role,
            company_name=company.name if company else None,
            expires_at=invitation.expires_at,
        ),
    )


@router.post(
    "/accept",
    response_model=AcceptInvitationResponse,
    status_code=status.HTTP_200_OK,
    summary="Accept an invitation",
    dependencies=[auth_limit],
)
async def accept_invitation(
    data: AcceptInvitationRequest,
    db: AsyncSession = Depends(get_db),
) -> AcceptInvitationResponse:
    """
    Consume an invitation and create the profile.

    Raises:
        ResourceNotFoundError (404): Token unknown or already used
        ValidationError (400): Invitation expired
    """
    await InvitationService(db).accept(data.token, data.password)
    return AcceptInvitationResponse(message="Account created. You can now log in.")


# ============================================================================
# Admin management
# ============================================================================


@router.get(
    "",
    response_model=InvitationListResponse,
    status_code=status.HTTP_200_OK,
    summary="List invitations",
    dependencies=[Depends(rate_limit(RateLimitCategory.READ))],
)
async def list_invitations(
    status_filter: Optional[InvitationStatus] = Query(default=None, alias="status"),
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=500),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> InvitationListResponse:
    invitations = await InvitationService(db).list(status=status_filter, skip=skip, limit=limit)
    return InvitationListResponse(
        items=[_to_response(i) for i in invitations],
        total=len(invitations),
    )


@router.post(
    "",
    response_model=InvitationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Invite someone",
    dependencies=[Depends(rate_limit(RateLimitCategory.MUTATION))],
)
async def create_invitation(
    data: InvitationCreate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> InvitationResponse:
    """
    Create an invitation and email the accept link.

    Raises:
        ConflictError (409): Email already has a profile or pending invite
        ValidationError (400): Client invitation without company_id
        ResourceNotFoundError (404): Unknown company
    """
    invitation = await InvitationService(db).create(
        email=data.email,
        role=data.role,
        invited_by=admin,
        full_name=data.full_name,
        company_id=data.company_id,
    )
    return _to_response(invitation)


@router.delete(
    "/{invitation_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Revoke an invitation",
    dependencies=[Depends(rate_limit(RateLimitCategory.MUTATION))],
)
async def revoke_invitation(
    invitation_id: int,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> None:
    await InvitationService(db).revoke(invitation_id)

"""
Invitation service.

WHAT: Issues, validates, accepts and revokes invitations.

WHY: Invitations are the only way a profile comes into existence. The
rules around them (one pending invite per email, client invites tied to a
real company, single-use expiring tokens) must hold no matter which
endpoint or job touches an invitation.

HOW: The service owns the checks and calls InvitationDAO/UserDAO for
storage. Acceptance consumes the token with a status-conditioned update so
two concurrent accepts create at most one profile.
"""

import logging
from typing import List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from agencyos.core.auth import hash_password
from agencyos.core.config import settings
from agencyos.core.exceptions import (
    ConflictError,
    ResourceNotFoundError,
    ValidationError,
)
from agencyos.dao.company import CompanyDAO
from agencyos.dao.invitation import InvitationDAO
from agencyos.dao.user import UserDAO
from agencyos.models.company import Company
from agencyos.models.invitation import Invitation, InvitationStatus
from agencyos.models.user import User, UserRole
from agencyos.services.email import get_email_service

logger = logging.getLogger(__name__)

REASON_ALREADY_ACCEPTED = "already_accepted"
REASON_EXPIRED = "expired"


def build_invitation_url(token: str) -> str:
    """Link the invitee opens to accept."""
    return f"{settings.FRONTEND_URL}/invite?token={token}"


class InvitationService:
    """
    Invitation workflows for admins and invitees.

    Example:
        service = InvitationService(db)
        invitation = await service.create(email="a@b.co", role=UserRole.CLIENT,
                                          company_id=3, invited_by=admin)
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.invitations = InvitationDAO(session)
        self.users = UserDAO(session)
        self.companies = CompanyDAO(session)

    # =========================================================================
    # Admin operations
    # =========================================================================

    async def create(
        self,
        email: str,
        role: UserRole,
        invited_by: User,
        full_name: Optional[str] = None,
        company_id: Optional[int] = None,
    ) -> Invitation:
        """
        Invite an email address into a role.

        Raises:
            ConflictError: Profile or pending invitation already exists
            ValidationError: Client invitation without a company
            ResourceNotFoundError: Company does not exist
        """
        email = email.lower()
        if await self.users.email_exists(email):
            raise ConflictError(message="A user with this email already exists")
        if await self.invitations.pending_exists_for_email(email):
            raise ConflictError(message="A pending invitation already exists for this email")

        company: Optional[Company] = None
        if role == UserRole.CLIENT and company_id is None:
            raise ValidationError(message="Client invitations require a company")
        if company_id is not None:
            company = await self.companies.get_by_id(company_id)
            if company is None:
                raise ResourceNotFoundError(message="Company not found")

        invitation = await self.invitations.create(
            email=email,
            full_name=full_name,
            role=role,
            company_id=company_id,
            invited_by=invited_by.id,
            expires_at=Invitation.expiry_from_now(settings.INVITATION_EXPIRY_DAYS),
        )
        logger.info(f"Invitation {invitation.id} created for {email} as {role.value} by user {invited_by.id}")

        await self._send_invitation_email(invitation, invited_by, company)
        return invitation

    async def _send_invitation_email(
        self,
        invitation: Invitation,
        invited_by: User,
        company: Optional[Company],
    ) -> None:
        try:
            await get_email_service().send_invitation_email(
                to_email=invitation.email,
                invitee_name=invitation.full_name,
                inviter_name=invited_by.full_name or invited_by.email,
                role=invitation.role.value,
                invitation_url=build_invitation_url(invitation.token),
                expires_at=invitation.expires_at,
                company_name=company.name if company else None,
            )
        except Exception as e:
            logger.error(f"Failed to send invitation email for invitation {invitation.id}: {e}", exc_info=True)

    async def list(
        self,
        status: Optional[InvitationStatus] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Invitation]:
        return await self.invitations.list(status=status, skip=skip, limit=limit)

    async def revoke(self, invitation_id: int) -> None:
        """
        Delete a pending invitation.

        Raises:
            ResourceNotFoundError: Unknown invitation
            ValidationError: Invitation is no longer pending
        """
        invitation = await self.invitations.get_by_id(invitation_id)
        if invitation is None:
            raise ResourceNotFoundError(message="Invitation not found")
        if invitation.status != InvitationStatus.PENDING:
            raise ValidationError(message="Only pending invitations can be revoked")
        await self.invitations.delete(invitation_id)
        logger.info(f"Invitation {invitation_id} revoked")

    async def expire_stale(self) -> int:
        expired = await self.invitations.expire_stale()
        if expired:
            logger.info(f"Expired {expired} stale invitation(s)")
        return expired

    # =========================================================================
    # Invitee operations
    # =========================================================================

    async def validate(self, token: str) -> Tuple[Invitation, Optional[str], Optional[Company]]:
        """
        Inspect a token without changing anything.

        Returns:
            (invitation, reason, company) where reason is None for a usable
            invitation, else "already_accepted" or "expired"

        Raises:
            ResourceNotFoundError: Unknown token
        """
        invitation = await self.invitations.get_by_token(token)
        if invitation is None:
            raise ResourceNotFoundError(message="Invitation not found")

        reason = None
        if invitation.status == InvitationStatus.ACCEPTED:
            reason = REASON_ALREADY_ACCEPTED
        elif invitation.status == InvitationStatus.EXPIRED or invitation.is_expired():
            reason = REASON_EXPIRED

        company = None
        if invitation.company_id is not None:
            company = await self.companies.get_by_id(invitation.company_id)
        return invitation, reason, company

    async def accept(self, token: str, password: str) -> User:
        """
        Consume an invitation and create its profile.

        WHY: An expired invitation is marked expired and committed before
        the error is raised, so the terminal state survives the request
        rollback.

        Raises:
            ResourceNotFoundError: Token unknown or no longer pending
            ValidationError: Invitation expired
            ConflictError: A profile with the email was created meanwhile
        """
        invitation = await self.invitations.get_pending_by_token(token)
        if invitation is None:
            raise ResourceNotFoundError(message="Invitation not found or already used")

        if invitation.is_expired():
            await self.invitations.mark_expired(invitation)
            await self.session.commit()
            logger.info(f"Invitation {invitation.id} expired on accept")
            raise ValidationError(message="This invitation has expired")

        if await self.users.email_exists(invitation.email):
            raise ConflictError(message="A user with this email already exists")

        user = await self.users.create_user(
            email=invitation.email,
            hashed_password=hash_password(password),
            role=invitation.role,
            full_name=invitation.full_name,
            company_id=invitation.company_id,
        )

        if not await self.invitations.mark_accepted(invitation.id):
            # Lost the race against a concurrent accept; get_db rolls back the profile
            raise ResourceNotFoundError(message="Invitation not found or already used")

        logger.info(f"Invitation {invitation.id} accepted, created user {user.id}")
        return user

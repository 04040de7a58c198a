"""
Invitation Data Access Object.

WHY: Invitation tokens are credentials. All lookups and the state changes
that consume them live here so the single-use rule is enforced in one place.
"""

from typing import Optional, List

from sqlalchemy import select, func, update
from sqlalchemy.ext.asyncio import AsyncSession

from agencyos.dao.base import BaseDAO
from agencyos.models.base import utcnow
from agencyos.models.invitation import Invitation, InvitationStatus


class InvitationDAO(BaseDAO[Invitation]):
    """Data Access Object for invitations."""

    def __init__(self, session: AsyncSession):
        super().__init__(Invitation, session)

    async def get_by_token(self, token: str) -> Optional[Invitation]:
        """Find an invitation by token regardless of its status."""
        result = await self.session.execute(select(Invitation).where(Invitation.token == token))
        return result.scalar_one_or_none()

    async def get_pending_by_token(self, token: str) -> Optional[Invitation]:
        """Find a pending invitation by token."""
        result = await self.session.execute(
            select(Invitation).where(
                Invitation.token == token,
                Invitation.status == InvitationStatus.PENDING,
            )
        )
        return result.scalar_one_or_none()

    async def pending_exists_for_email(self, email: str) -> bool:
        """Whether a pending invitation already targets this email."""
        result = await self.session.execute(
            select(Invitation.id)
            .where(
                func.lower(Invitation.email) == email.lower(),
                Invitation.status == InvitationStatus.PENDING,
            )
            .limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def list(
        self,
        status: Optional[InvitationStatus] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Invitation]:
        """List invitations, newest first."""
        query = select(Invitation)
        if status is not None:
            query = query.where(Invitation.status == status)
        result = await self.session.execute(
            query.order_by(Invitation.created_at.desc(), Invitation.id.desc()).offset(skip).limit(limit)
        )
        return list(result.scalars().all())

    async def mark_accepted(self, invitation_id: int) -> bool:
        """
        Consume a pending invitation.

        WHY: The status condition makes acceptance single-use even when two
        accept calls race on the same token.

        Returns:
            True if this call consumed the invitation
        """
        result = await self.session.execute(
            update(Invitation)
            .where(
                Invitation.id == invitation_id,
                Invitation.status == InvitationStatus.PENDING,
            )
            .values(status=InvitationStatus.ACCEPTED, accepted_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def mark_expired(self, invitation: Invitation) -> Invitation:
        """Move a pending invitation to the terminal expired state."""
        return await self.update(invitation, status=InvitationStatus.EXPIRED)

    async def expire_stale(self, now=None) -> int:
        """
        Expire every pending invitation whose expiry has passed.

        Returns:
            Number of invitations expired
        """
        result = await self.session.execute(
            update(Invitation)
            .where(
                Invitation.status == InvitationStatus.PENDING,
                Invitation.expires_at <= (now or utcnow()),
            )
            .values(status=InvitationStatus.EXPIRED)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

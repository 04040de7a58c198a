"""
Invitation model.

WHY: Profiles are never self-registered. An admin invites an email address
into a role (and, for clients, a company); the single-use token in the
invitation link is consumed exactly once to materialize the profile.
"""

import enum
import uuid
from datetime import datetime, timedelta

from sqlalchemy import Column, Integer, String, ForeignKey, DateTime

from agencyos.models.base import Base, PrimaryKeyMixin, enum_column, utcnow
from agencyos.models.user import UserRole


class InvitationStatus(str, enum.Enum):
    """
    Invitation lifecycle states.

    PENDING is the only non-terminal state; ACCEPTED and EXPIRED are final.
    """

    PENDING = "pending"
    ACCEPTED = "accepted"
    EXPIRED = "expired"


def generate_invitation_token() -> str:
    """Random uuid4 string; always 36 characters."""
    return str(uuid.uuid4())


class Invitation(Base, PrimaryKeyMixin):
    """Single-use, expiring invitation to join the portal."""

    __tablename__ = "invitations"

    email = Column(String(255), nullable=False, index=True)
    full_name = Column(String(255), nullable=True)
    role = Column(enum_column(UserRole, "user_role"), nullable=False, default=UserRole.CLIENT)
    company_id = Column(Integer, ForeignKey("companies.id", ondelete="CASCADE"), nullable=True)

    token = Column(String(36), unique=True, index=True, nullable=False, default=generate_invitation_token)
    status = Column(
        enum_column(InvitationStatus, "invitation_status"),
        nullable=False,
        default=InvitationStatus.PENDING,
    )

    invited_by = Column(Integer, ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True)
    expires_at = Column(DateTime, nullable=False)
    accepted_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    @staticmethod
    def expiry_from_now(days: int) -> datetime:
        return utcnow() + timedelta(days=days)

    def is_expired(self, now: datetime = None) -> bool:
        return self.expires_at <= (now or utcnow())

    def __repr__(self) -> str:
        return f"<Invitation(id={self.id}, email={self.email}, status={self.status})>"

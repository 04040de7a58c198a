"""
User (profile) model.

WHY: Profiles represent individuals who use the portal. The role decides
what they may do (agency ADMIN staff or CLIENT users) and company_id ties a
client to the tenant whose data they may see.
"""

import enum
from sqlalchemy import Column, Integer, String, ForeignKey, Boolean
from sqlalchemy.orm import relationship

from agencyos.models.base import Base, TimestampMixin, PrimaryKeyMixin, enum_column


class UserRole(str, enum.Enum):
    """
    User role enumeration.

    WHY: Enum ensures only valid roles can be assigned, preventing typos
    and making role-based access control (RBAC) more reliable.
    """

    ADMIN = "admin"  # Agency staff, acts across all companies
    CLIENT = "client"  # Customer user scoped to one company


class User(Base, PrimaryKeyMixin, TimestampMixin):
    """
    Profile of a portal user.

    WHY: Clients must belong to a company (enforced when they are created
    through invitations); admins work agency-wide so company_id is optional.
    """

    __tablename__ = "profiles"

    # User identification
    email = Column(String(255), unique=True, index=True, nullable=False)
    full_name = Column(String(255), nullable=True)
    avatar_url = Column(String(500), nullable=True)

    # Authentication
    hashed_password = Column(String(255), nullable=False)

    # Authorization
    # WHY: Default CLIENT role ensures least-privilege access
    role = Column(enum_column(UserRole, "user_role"), nullable=False, default=UserRole.CLIENT)

    # Multi-tenancy
    company_id = Column(Integer, ForeignKey("companies.id", ondelete="SET NULL"), nullable=True, index=True)

    # WHY: is_active allows disabling users without losing audit trail
    is_active = Column(Boolean, default=True, nullable=False)

    # Relationships
    company = relationship("Company", back_populates="profiles", lazy="selectin")

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"

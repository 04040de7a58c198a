"""
Company model.

WHY: Companies are the tenants of the portal. Every client profile and every
request belongs to exactly one company, and the company's plan bounds how many
requests it may have in flight at once.
"""

import enum

from sqlalchemy import Column, String, Text, Integer
from sqlalchemy.orm import relationship

from agencyos.models.base import Base, TimestampMixin, PrimaryKeyMixin, enum_column


class CompanyStatus(str, enum.Enum):
    """
    Subscription status of a company.

    WHY: Only active companies may submit new requests or comment; paused and
    churned companies keep read access to their history.
    """

    ACTIVE = "active"
    PAUSED = "paused"
    CHURNED = "churned"


class PlanTier(str, enum.Enum):
    """Plan tier purchased by the company."""

    STANDARD = "standard"
    PRO = "pro"


# Default concurrent-request allowance per plan tier
PLAN_LIMITS = {
    PlanTier.STANDARD: 1,
    PlanTier.PRO: 2,
}


class Company(Base, PrimaryKeyMixin, TimestampMixin):
    """
    Company model representing a tenant.

    WHY: The company id scopes every client query, so clients can never read
    or mutate another tenant's requests. max_active_limit is stored on the
    row (seeded from the plan tier) so agencies can grant exceptions.
    """

    __tablename__ = "companies"

    name = Column(String(255), nullable=False, index=True)
    status = Column(
        enum_column(CompanyStatus, "company_status"),
        nullable=False,
        default=CompanyStatus.ACTIVE,
    )
    plan_tier = Column(
        enum_column(PlanTier, "plan_tier"),
        nullable=False,
        default=PlanTier.STANDARD,
    )
    max_active_limit = Column(Integer, nullable=False, default=PLAN_LIMITS[PlanTier.STANDARD])
    billing_email = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)

    # Relationships
    profiles = relationship("User", back_populates="company", lazy="dynamic")
    requests = relationship("ServiceRequest", back_populates="company", lazy="dynamic")
    services = relationship(
        "ClientService",
        back_populates="company",
        lazy="selectin",
        cascade="all, delete-orphan",
    )

    @property
    def is_active(self) -> bool:
        """Whether the company may create requests and comments."""
        return self.status == CompanyStatus.ACTIVE

    def __repr__(self) -> str:
        return f"<Company(id={self.id}, name={self.name}, status={self.status})>"

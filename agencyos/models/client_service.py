"""
Client service model.

WHY: A company's subscription is made of one or more services sold to it
(e.g. "Video editing, monthly" or a one-off brand kit). The subscription
page lists them next to the company's usage of its request allowance, and
admins manage them per company.
"""

import enum
from decimal import Decimal

from sqlalchemy import Column, Integer, String, Numeric, ForeignKey, DateTime, Text
from sqlalchemy.orm import relationship

from agencyos.models.base import Base, TimestampMixin, PrimaryKeyMixin, enum_column


class ServiceType(str, enum.Enum):
    SUBSCRIPTION = "subscription"
    ONE_TIME = "one_time"


class ServiceStatus(str, enum.Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    PENDING = "pending"


class BillingCycle(str, enum.Enum):
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"
    ONE_TIME = "one_time"


class ClientService(Base, PrimaryKeyMixin, TimestampMixin):
    """Service sold to a company."""

    __tablename__ = "client_services"

    company_id = Column(Integer, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    service_name = Column(String(255), nullable=False)
    # One of ServiceType; rows created before management existed may hold free text
    service_type = Column(String(100), nullable=True)
    status = Column(enum_column(ServiceStatus, "service_status"), nullable=False, default=ServiceStatus.ACTIVE)

    # WHY: Numeric avoids float rounding on money
    price = Column(Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    billing_cycle = Column(
        enum_column(BillingCycle, "billing_cycle"),
        nullable=False,
        default=BillingCycle.MONTHLY,
    )
    start_date = Column(DateTime, nullable=True)
    end_date = Column(DateTime, nullable=True)
    next_billing_date = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)

    company = relationship("Company", back_populates="services")

    def __repr__(self) -> str:
        return f"<ClientService(id={self.id}, name={self.service_name}, company_id={self.company_id})>"

"""
Pydantic schemas for company management and the subscription page.

WHAT: Company CRUD schemas for admins, the services and contacts kept
per company, and the read-only subscription summary clients see.

WHY: ``max_active_limit`` may be omitted on creation and is then seeded
from the plan tier.
"""

from datetime import datetime
from decimal import Decimal
from typing import List

from pydantic import BaseModel, EmailStr, Field, field_validator

from agencyos.models.client_service import BillingCycle, ServiceStatus, ServiceType
from agencyos.models.company import CompanyStatus, PlanTier
from agencyos.schemas.profile import CompanySummary


class CompanyCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    status: CompanyStatus = CompanyStatus.ACTIVE
    plan_tier: PlanTier = PlanTier.STANDARD
    max_active_limit: int | None = Field(None, ge=0, le=100)
    billing_email: EmailStr | None = None
    notes: str | None = Field(None, max_length=10000)

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Acme Coffee",
                "plan_tier": "pro",
                "billing_email": "billing@acme.example",
            }
        }


class CompanyUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    status: CompanyStatus | None = None
    plan_tier: PlanTier | None = None
    max_active_limit: int | None = Field(None, ge=0, le=100)
    billing_email: EmailStr | None = None
    notes: str | None = Field(None, max_length=10000)


class CompanyResponse(BaseModel):
    id: int
    name: str
    status: CompanyStatus
    plan_tier: PlanTier
    max_active_limit: int
    billing_email: str | None = None
    notes: str | None = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class CompanyListResponse(BaseModel):
    items: List[CompanyResponse]
    total: int


# ============================================================================
# Subscription
# ============================================================================


class ClientServiceResponse(BaseModel):
    id: int
    company_id: int
    service_name: str
    service_type: str | None = None
    status: ServiceStatus
    price: Decimal
    billing_cycle: BillingCycle
    start_date: datetime | None = None
    end_date: datetime | None = None
    next_billing_date: datetime | None = None
    notes: str | None = None

    class Config:
        from_attributes = True


class UsageSummary(BaseModel):
    """Request counts shown next to the plan allowance."""

    total: int
    active: int
    completed: int
    queued: int
    in_review: int
    max_active_limit: int


class SubscriptionResponse(BaseModel):
    company: CompanySummary
    services: List[ClientServiceResponse]
    usage: UsageSummary


class PauseResponse(BaseModel):
    message: str
    status: CompanyStatus


# ============================================================================
# Client Service Management
# ============================================================================


class ClientServiceCreate(BaseModel):
    service_name: str = Field(..., min_length=1, max_length=255)
    service_type: ServiceType
    status: ServiceStatus = ServiceStatus.ACTIVE
    price: Decimal = Field(default=Decimal("0.00"), ge=0, max_digits=10, decimal_places=2)
    billing_cycle: BillingCycle = BillingCycle.MONTHLY
    start_date: datetime | None = None
    end_date: datetime | None = None
    next_billing_date: datetime | None = None
    notes: str | None = Field(None, max_length=10000)

    @field_validator("service_name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Service name is required")
        return v

    class Config:
        json_schema_extra = {
            "example": {
                "service_name": "Social media retainer",
                "service_type": "subscription",
                "price": "1200.00",
                "billing_cycle": "monthly",
            }
        }


class ClientServiceUpdate(BaseModel):
    """Partial update; only provided fields change."""

    service_name: str | None = Field(None, min_length=1, max_length=255)
    service_type: ServiceType | None = None
    status: ServiceStatus | None = None
    price: Decimal | None = Field(None, ge=0, max_digits=10, decimal_places=2)
    billing_cycle: BillingCycle | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    next_billing_date: datetime | None = None
    notes: str | None = Field(None, max_length=10000)


# ============================================================================
# Contacts
# ============================================================================


class ContactCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr | None = None
    phone: str | None = Field(None, max_length=50)
    role: str | None = Field(None, max_length=100)
    is_primary: bool = False
    is_billing_contact: bool = False
    notes: str | None = Field(None, max_length=10000)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Contact name is required")
        return v


class ContactUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    email: EmailStr | None = None
    phone: str | None = Field(None, max_length=50)
    role: str | None = Field(None, max_length=100)
    is_primary: bool | None = None
    is_billing_contact: bool | None = None
    is_active: bool | None = None
    notes: str | None = Field(None, max_length=10000)


class ContactResponse(BaseModel):
    id: int
    company_id: int
    name: str
    email: str | None = None
    phone: str | None = None
    role: str | None = None
    is_primary: bool
    is_billing_contact: bool
    is_active: bool
    notes: str | None = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

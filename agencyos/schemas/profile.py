"""
Pydantic schemas for self-service profile endpoints.
"""

import re

from pydantic import BaseModel, Field, field_validator

from agencyos.models.company import CompanyStatus, PlanTier
from agencyos.schemas.auth import UserResponse


class CompanySummary(BaseModel):
    """Company fields a profile owner may see."""

    id: int
    name: str
    status: CompanyStatus
    plan_tier: PlanTier
    max_active_limit: int

    class Config:
        from_attributes = True


class ProfileResponse(UserResponse):
    company: CompanySummary | None = None


class ProfileUpdate(BaseModel):
    """Editable profile fields; omitted fields are left alone."""

    full_name: str | None = Field(None, min_length=1, max_length=255)
    avatar_url: str | None = Field(None, max_length=500)


class PasswordChangeRequest(BaseModel):
    """
    Password change request.

    WHY: bcrypt only hashes the first 72 bytes, so longer passwords are
    rejected instead of being silently truncated.
    """

    current_password: str = Field(..., min_length=1, max_length=128)
    new_password: str = Field(..., min_length=8, max_length=72)

    @field_validator("new_password")
    @classmethod
    def validate_complexity(cls, v: str) -> str:
        if not re.search(r"[A-Z]", v):
            raise ValueError("Password must contain an uppercase letter")
        if not re.search(r"[a-z]", v):
            raise ValueError("Password must contain a lowercase letter")
        if not re.search(r"\d", v):
            raise ValueError("Password must contain a digit")
        return v


class MessageResponse(BaseModel):
    success: bool = True
    message: str

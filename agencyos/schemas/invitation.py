"""
Pydantic schemas for invitation endpoints.

WHAT: Schemas for creating, listing, validating and accepting invitations.

WHY: Invitation tokens are uuid4 strings, so the accept body rejects any
token that is not exactly 36 characters before touching the store.
"""

from datetime import datetime
from typing import List

from pydantic import BaseModel, EmailStr, Field

from agencyos.models.invitation import InvitationStatus
from agencyos.models.user import UserRole


class InvitationCreate(BaseModel):
    """
    Invitation creation request.

    WHY: Client invitations must name the company the new profile joins;
    admin invitations may omit it.
    """

    email: EmailStr = Field(..., description="Address to invite")
    full_name: str | None = Field(None, max_length=255, description="Invitee's name")
    role: UserRole = Field(default=UserRole.CLIENT, description="Role of the new profile")
    company_id: int | None = Field(None, gt=0, description="Company for client invitations")

    class Config:
        json_schema_extra = {
            "example": {
                "email": "jane@client.example",
                "full_name": "Jane Doe",
                "role": "client",
                "company_id": 1,
            }
        }


class InvitationResponse(BaseModel):
    """Invitation data for admins (includes the token-bearing URL)."""

    id: int
    email: str
    full_name: str | None = None
    role: UserRole
    company_id: int | None = None
    status: InvitationStatus
    invited_by: int | None = None
    expires_at: datetime
    accepted_at: datetime | None = None
    created_at: datetime
    invitation_url: str | None = Field(None, description="Link sent to the invitee")

    class Config:
        from_attributes = True


class InvitationListResponse(BaseModel):
    items: List[InvitationResponse]
    total: int


class InvitationPublic(BaseModel):
    """
    Invitation details shown on the accept page.

    WHY: Anonymous callers holding the token see who is invited and into
    what, never who invited them or the token itself.
    """

    email: str
    full_name: str | None = None
    role: UserRole
    company_name: str | None = None
    expires_at: datetime


class InvitationValidationResponse(BaseModel):
    """Result of checking a token without consuming it."""

    valid: bool
    reason: str | None = Field(None, description="already_accepted or expired when invalid")
    invitation: InvitationPublic


class AcceptInvitationRequest(BaseModel):
    """Body for accepting an invitation and choosing a password."""

    token: str = Field(..., min_length=36, max_length=36, description="Invitation token")
    password: str = Field(..., min_length=8, max_length=128, description="Password for the new profile")


class AcceptInvitationResponse(BaseModel):
    success: bool = True
    message: str

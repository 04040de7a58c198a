"""
Pydantic schemas for authentication endpoints.

WHY: Schemas define request/response contracts, providing:
1. Automatic validation of request data
2. API documentation (OpenAPI/Swagger)
3. Clear separation between API and database models
"""

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field

from agencyos.models.user import UserRole


class LoginRequest(BaseModel):
    """
    Login request schema.

    WHY: Validates login credentials with email format checking. Length is
    not checked here so a short wrong password gets the same 401 as a long
    one.
    """

    email: EmailStr = Field(..., description="Profile email address")
    password: str = Field(..., min_length=1, max_length=128, description="Password")

    class Config:
        json_schema_extra = {
            "example": {
                "email": "admin@agency.example",
                "password": "SecurePassword123",
            }
        }


class TokenResponse(BaseModel):
    """
    JWT token response schema.

    WHY: Returns access token with expiry metadata for client-side token
    management.
    """

    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field(default="bearer", description="Token type (always 'bearer')")
    expires_in: int = Field(..., description="Token lifetime in seconds")


class UserResponse(BaseModel):
    """
    Profile response schema.

    WHY: Returns profile data without sensitive information (no password hash).
    """

    id: int = Field(..., description="Profile ID")
    email: str = Field(..., description="Email address")
    full_name: str | None = Field(None, description="Display name")
    avatar_url: str | None = Field(None, description="Avatar image URL")
    role: UserRole = Field(..., description="admin or client")
    company_id: int | None = Field(None, description="Owning company (clients)")
    is_active: bool = Field(..., description="Whether the account is enabled")
    created_at: datetime = Field(..., description="Account creation timestamp")

    class Config:
        from_attributes = True

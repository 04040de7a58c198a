"""
Authentication API endpoints.

WHY: These endpoints provide the authentication flow:
1. Login - Authenticate a profile and return a JWT token
2. Me - Get the current profile

Security:
- Login is rate limited per client IP (auth preset)
- Passwords are compared using constant-time comparison (bcrypt)
- Generic error messages prevent user enumeration attacks
"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from agencyos.core.auth import create_user_token, verify_password
from agencyos.core.config import settings
from agencyos.core.deps import get_current_user
from agencyos.core.exceptions import AuthenticationError
from agencyos.dao.user import UserDAO
from agencyos.db.session import get_db
from agencyos.middleware.rate_limiter import RateLimitCategory, rate_limit_by_ip
from agencyos.models.user import User
from agencyos.schemas.auth import LoginRequest, TokenResponse, UserResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["authentication"])


@router.post(
    "/login",
    response_model=TokenResponse,
    status_code=status.HTTP_200_OK,
    summary="Login",
    description="Authenticate with email and password, returns JWT token",
    dependencies=[Depends(rate_limit_by_ip(RateLimitCategory.AUTH))],
)
async def login(
    credentials: LoginRequest,
    db: AsyncSession = Depends(get_db),
) -> TokenResponse:
    """
    Authenticate a profile and return a JWT access token.

    WHY: Unknown email and wrong password produce the same message so the
    endpoint cannot be used to discover accounts.

    Raises:
        AuthenticationError (401): Invalid credentials or inactive account
    """
    user = await UserDAO(db).get_by_email(credentials.email)

    if not user or not verify_password(credentials.password, user.hashed_password):
        logger.info(f"Failed login for {credentials.email}")
        raise AuthenticationError(message="Invalid email or password")

    if not user.is_active:
        raise AuthenticationError(message="Account is inactive")

    logger.info(f"User {user.id} logged in")
    return TokenResponse(
        access_token=create_user_token(user),
        token_type="bearer",
        expires_in=settings.JWT_EXPIRATION_MINUTES * 60,
    )


@router.get(
    "/me",
    response_model=UserResponse,
    status_code=status.HTTP_200_OK,
    summary="Get current user",
)
async def get_current_user_info(
    current_user: User = Depends(get_current_user),
) -> UserResponse:
    """Profile of the bearer of the token."""
    return UserResponse.model_validate(current_user)

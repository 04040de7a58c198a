"""
User (profile) Data Access Object.

WHY: UserDAO provides database operations for profiles, following the DAO
pattern for separation of concerns and testability.
"""

from typing import Optional, List
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from agencyos.dao.base import BaseDAO
from agencyos.models.user import User, UserRole


class UserDAO(BaseDAO[User]):
    """
    Data Access Object for profiles.

    WHY: All profile queries go through this DAO, ensuring consistent
    case-insensitive email handling.
    """

    def __init__(self, session: AsyncSession):
        super().__init__(User, session)

    async def get_by_email(self, email: str) -> Optional[User]:
        """
        Retrieve a profile by email address.

        WHY: Case-insensitive comparison prevents duplicate accounts with
        different casing (user@example.com vs USER@EXAMPLE.COM).
        """
        result = await self.session.execute(
            select(User).where(func.lower(User.email) == email.lower())
        )
        return result.scalar_one_or_none()

    async def email_exists(self, email: str) -> bool:
        """Check if a profile already uses this email."""
        result = await self.session.execute(
            select(User.id).where(func.lower(User.email) == email.lower()).limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def create_user(
        self,
        email: str,
        hashed_password: str,
        role: UserRole,
        full_name: Optional[str] = None,
        company_id: Optional[int] = None,
    ) -> User:
        """
        Create a profile.

        WHY: Emails are stored lowercased so lookups and the unique index
        agree.
        """
        return await self.create(
            email=email.lower(),
            hashed_password=hashed_password,
            role=role,
            full_name=full_name,
            company_id=company_id,
            is_active=True,
        )

    async def list_admins(self) -> List[User]:
        """Active agency staff ordered by name (team members)."""
        result = await self.session.execute(
            select(User)
            .where(User.role == UserRole.ADMIN, User.is_active.is_(True))
            .order_by(User.full_name.asc(), User.email.asc())
        )
        return list(result.scalars().all())

    async def list_company_members(self, company_id: int) -> List[User]:
        """Active profiles belonging to a company."""
        result = await self.session.execute(
            select(User).where(User.company_id == company_id, User.is_active.is_(True))
        )
        return list(result.scalars().all())

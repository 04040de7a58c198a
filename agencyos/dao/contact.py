"""Company contact Data Access Object."""

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from agencyos.dao.base import BaseDAO
from agencyos.models.contact import Contact


class ContactDAO(BaseDAO[Contact]):
    """Data Access Object for the people at a client company."""

    def __init__(self, session: AsyncSession):
        super().__init__(Contact, session)

    async def list_for_company(
        self,
        company_id: int,
        active_only: bool = False,
        primary_only: bool = False,
    ) -> List[Contact]:
        """Contacts of a company, primary contacts first, then by name."""
        query = select(Contact).where(Contact.company_id == company_id)
        if active_only:
            query = query.where(Contact.is_active.is_(True))
        if primary_only:
            query = query.where(Contact.is_primary.is_(True))
        result = await self.session.execute(
            query.order_by(Contact.is_primary.desc(), Contact.name.asc(), Contact.id.asc())
        )
        return list(result.scalars().all())

    async def get_for_company(self, contact_id: int, company_id: int) -> Optional[Contact]:
        result = await self.session.execute(
            select(Contact).where(Contact.id == contact_id, Contact.company_id == company_id)
        )
        return result.scalar_one_or_none()

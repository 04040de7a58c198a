"""Client service Data Access Object."""

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from agencyos.dao.base import BaseDAO
from agencyos.models.client_service import ClientService, ServiceStatus, ServiceType


class ClientServiceDAO(BaseDAO[ClientService]):
    """Data Access Object for the services sold to a company."""

    def __init__(self, session: AsyncSession):
        super().__init__(ClientService, session)

    async def list_for_company(
        self,
        company_id: int,
        status: Optional[ServiceStatus] = None,
        service_type: Optional[ServiceType] = None,
    ) -> List[ClientService]:
        query = select(ClientService).where(ClientService.company_id == company_id)
        if status is not None:
            query = query.where(ClientService.status == status)
        if service_type is not None:
            query = query.where(ClientService.service_type == service_type.value)
        result = await self.session.execute(
            query.order_by(ClientService.created_at.asc(), ClientService.id.asc())
        )
        return list(result.scalars().all())

    async def get_for_company(self, service_id: int, company_id: int) -> Optional[ClientService]:
        """A service only when it belongs to ``company_id``."""
        result = await self.session.execute(
            select(ClientService).where(
                ClientService.id == service_id,
                ClientService.company_id == company_id,
            )
        )
        return result.scalar_one_or_none()

"""
Company Data Access Object.

WHY: CompanyDAO owns all reads and writes of tenant rows, including the
plan-tier defaults for the active-request limit.
"""

from typing import Optional, List, Tuple

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from agencyos.dao.base import BaseDAO
from agencyos.models.company import Company, CompanyStatus, PlanTier, PLAN_LIMITS


class CompanyDAO(BaseDAO[Company]):
    """Data Access Object for companies."""

    def __init__(self, session: AsyncSession):
        super().__init__(Company, session)

    async def create_company(
        self,
        name: str,
        plan_tier: PlanTier = PlanTier.STANDARD,
        status: CompanyStatus = CompanyStatus.ACTIVE,
        max_active_limit: Optional[int] = None,
        **kwargs,
    ) -> Company:
        """
        Create a company, seeding the limit from its plan tier.

        Args:
            name: Company name
            plan_tier: Purchased tier
            status: Initial status
            max_active_limit: Explicit limit overriding the tier default
        """
        if max_active_limit is None:
            max_active_limit = PLAN_LIMITS[plan_tier]
        return await self.create(
            name=name,
            plan_tier=plan_tier,
            status=status,
            max_active_limit=max_active_limit,
            **kwargs,
        )

    async def list(
        self,
        skip: int = 0,
        limit: int = 100,
        status: Optional[CompanyStatus] = None,
    ) -> Tuple[List[Company], int]:
        """List companies ordered by name, with the total count."""
        base_query = select(Company)
        if status is not None:
            base_query = base_query.where(Company.status == status)

        total = (
            await self.session.execute(select(func.count()).select_from(base_query.subquery()))
        ).scalar_one()
        result = await self.session.execute(
            base_query.order_by(Company.name.asc()).offset(skip).limit(limit)
        )
        return list(result.scalars().all()), total

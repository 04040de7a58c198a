"""
Request template Data Access Object.

WHY: Template visibility is a tenancy rule: clients see global templates
and their own company's, never another company's. Keeping the filter in
one query means list and fetch cannot disagree.
"""

from typing import List, Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from agencyos.dao.base import BaseDAO
from agencyos.models.template import RequestTemplate


class RequestTemplateDAO(BaseDAO[RequestTemplate]):
    """Data Access Object for request templates."""

    def __init__(self, session: AsyncSession):
        super().__init__(RequestTemplate, session)

    @staticmethod
    def _visible_to(query, company_id: Optional[int]):
        # Profiles without a company only see global templates
        if company_id is None:
            return query.where(RequestTemplate.is_global.is_(True))
        return query.where(
            or_(RequestTemplate.is_global.is_(True), RequestTemplate.company_id == company_id)
        )

    async def list(
        self,
        active_only: bool = True,
        category: Optional[str] = None,
        scoped: bool = False,
        company_id: Optional[int] = None,
    ) -> List[RequestTemplate]:
        """
        Templates ordered by name.

        Args:
            active_only: Skip deactivated templates
            category: Exact category match
            scoped: Apply client visibility for ``company_id``
            company_id: Caller's company when ``scoped``
        """
        query = select(RequestTemplate)
        if active_only:
            query = query.where(RequestTemplate.is_active.is_(True))
        if category:
            query = query.where(RequestTemplate.category == category)
        if scoped:
            query = self._visible_to(query, company_id)
        result = await self.session.execute(
            query.order_by(RequestTemplate.name.asc(), RequestTemplate.id.asc())
        )
        return list(result.scalars().all())

    async def get_visible(self, template_id: int, company_id: Optional[int]) -> Optional[RequestTemplate]:
        """A template if a client of ``company_id`` may see it."""
        query = self._visible_to(select(RequestTemplate).where(RequestTemplate.id == template_id), company_id)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

"""
Request activity Data Access Object.

WHY: The request timeline is read often (every request page load) and
written as a side effect of most mutations.
"""

from typing import Optional, List, Dict, Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from agencyos.dao.base import BaseDAO
from agencyos.models.activity import RequestActivity, ActivityType


class RequestActivityDAO(BaseDAO[RequestActivity]):
    """Data Access Object for request timeline entries."""

    def __init__(self, session: AsyncSession):
        super().__init__(RequestActivity, session)

    async def record(
        self,
        request_id: int,
        activity_type: ActivityType,
        description: str,
        user_id: Optional[int] = None,
        extra_data: Optional[Dict[str, Any]] = None,
    ) -> RequestActivity:
        """Append a timeline entry."""
        return await self.create(
            request_id=request_id,
            activity_type=activity_type.value,
            description=description,
            user_id=user_id,
            extra_data=extra_data,
        )

    async def list_for_request(
        self,
        request_id: int,
        skip: int = 0,
        limit: int = 100,
    ) -> List[RequestActivity]:
        """Timeline of a request, newest first."""
        result = await self.session.execute(
            select(RequestActivity)
            .options(selectinload(RequestActivity.actor))
            .where(RequestActivity.request_id == request_id)
            .order_by(RequestActivity.created_at.desc(), RequestActivity.id.desc())
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all())

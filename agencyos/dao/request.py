"""
Service request Data Access Objects.

WHAT: Database operations for requests and their comments.

WHY: RequestDAO is the only place that reads or writes the requests table.
Status changes go through a conditional UPDATE (compare-and-swap on the
current status) so two racing transitions cannot silently overwrite each
other.
"""

from datetime import datetime
from typing import Optional, List, Tuple, Sequence

from sqlalchemy import select, func, update, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from agencyos.dao.base import BaseDAO
from agencyos.models.base import utcnow
from agencyos.models.request import (
    ServiceRequest,
    RequestComment,
    RequestStatus,
    RequestPriority,
    OPEN_STATUSES,
)


class RequestDAO(BaseDAO[ServiceRequest]):
    """Data Access Object for service requests."""

    def __init__(self, session: AsyncSession):
        super().__init__(ServiceRequest, session)

    async def get_by_id(
        self,
        request_id: int,
        company_id: Optional[int] = None,
        refresh: bool = False,
    ) -> Optional[ServiceRequest]:
        """
        Get a request by ID, optionally scoped to a company.

        Args:
            request_id: Request ID
            company_id: When given, requests of other companies are not found
            refresh: Reload the row from the store even if the session
                already holds it

        Returns:
            ServiceRequest or None
        """
        query = (
            select(ServiceRequest)
            .options(selectinload(ServiceRequest.assignee))
            .where(ServiceRequest.id == request_id)
        )
        if company_id is not None:
            query = query.where(ServiceRequest.company_id == company_id)
        if refresh:
            query = query.execution_options(populate_existing=True)

        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def list(
        self,
        company_id: Optional[int] = None,
        skip: int = 0,
        limit: int = 50,
        status: Optional[RequestStatus] = None,
        priority: Optional[RequestPriority] = None,
        assigned_to: Optional[int] = None,
        search: Optional[str] = None,
    ) -> Tuple[List[ServiceRequest], int]:
        """
        List requests with filtering and pagination.

        Args:
            company_id: Restrict to one company (always set for clients)
            skip: Number of records to skip
            limit: Maximum records to return
            status: Filter by status
            priority: Filter by priority
            assigned_to: Filter by assignee
            search: Search in title and description

        Returns:
            Tuple of (requests list, total count)
        """
        base_query = select(ServiceRequest)

        if company_id is not None:
            base_query = base_query.where(ServiceRequest.company_id == company_id)
        if status is not None:
            base_query = base_query.where(ServiceRequest.status == status)
        if priority is not None:
            base_query = base_query.where(ServiceRequest.priority == priority)
        if assigned_to is not None:
            base_query = base_query.where(ServiceRequest.assigned_to == assigned_to)
        if search:
            pattern = f"%{search}%"
            base_query = base_query.where(
                or_(
                    ServiceRequest.title.ilike(pattern),
                    ServiceRequest.description.ilike(pattern),
                )
            )

        count_query = select(func.count()).select_from(base_query.subquery())
        total = (await self.session.execute(count_query)).scalar_one()

        list_query = (
            base_query.options(selectinload(ServiceRequest.assignee))
            .order_by(ServiceRequest.created_at.desc(), ServiceRequest.id.desc())
            .offset(skip)
            .limit(limit)
        )
        result = await self.session.execute(list_query)
        return list(result.scalars().all()), total

    async def count_by_status(
        self,
        company_id: int,
        statuses: Sequence[RequestStatus],
    ) -> int:
        """
        Count a company's requests in any of the given statuses.

        WHY: Backs the active-request limit; the count runs in the same
        transaction as the insert or status change it guards.
        """
        result = await self.session.execute(
            select(func.count())
            .select_from(ServiceRequest)
            .where(
                ServiceRequest.company_id == company_id,
                ServiceRequest.status.in_(list(statuses)),
            )
        )
        return result.scalar_one()

    async def count_open(self, company_id: int) -> int:
        """Count requests that are not done."""
        return await self.count_by_status(company_id, OPEN_STATUSES)

    async def status_counts(self, company_id: int) -> dict:
        """
        Count a company's requests per status.

        Returns:
            Mapping of RequestStatus to count (missing statuses are 0)
        """
        result = await self.session.execute(
            select(ServiceRequest.status, func.count())
            .where(ServiceRequest.company_id == company_id)
            .group_by(ServiceRequest.status)
        )
        counts = {status: 0 for status in RequestStatus}
        for status, count in result.all():
            counts[status] = count
        return counts

    async def update_status(
        self,
        request_id: int,
        expected_status: RequestStatus,
        new_status: RequestStatus,
        completed_at: Optional[datetime],
    ) -> bool:
        """
        Compare-and-swap the status of a request.

        WHY: The UPDATE only matches while the row still holds the status
        the caller validated against, so a concurrent transition makes this
        one fail instead of being overwritten.

        Args:
            request_id: Request ID
            expected_status: Status the caller loaded and validated
            new_status: Status to write
            completed_at: Completion timestamp to store (None clears it)

        Returns:
            True if the row was updated, False if it changed or vanished
        """
        result = await self.session.execute(
            update(ServiceRequest)
            .where(
                ServiceRequest.id == request_id,
                ServiceRequest.status == expected_status,
            )
            .values(status=new_status, completed_at=completed_at, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def set_assignee(self, request: ServiceRequest, user_id: Optional[int]) -> ServiceRequest:
        """Store a new assignee and reload the request with it."""
        request.assigned_to = user_id
        await self.session.flush()
        return await self.get_by_id(request.id, refresh=True)

    async def delete_request(self, request: ServiceRequest) -> None:
        """
        Delete a request and its comments.

        WHY: Goes through the ORM so the comment cascade runs on every
        backend, including SQLite without foreign key enforcement.
        """
        # The cascade needs the collection loaded; async sessions cannot lazy load
        await self.session.refresh(request, attribute_names=["comments"])
        await self.session.delete(request)
        await self.session.flush()

    async def list_due_between(self, start: datetime, end: datetime) -> List[ServiceRequest]:
        """Open requests whose due date falls within [start, end]."""
        result = await self.session.execute(
            select(ServiceRequest).where(
                ServiceRequest.due_date.is_not(None),
                ServiceRequest.due_date >= start,
                ServiceRequest.due_date <= end,
                ServiceRequest.status.in_(list(OPEN_STATUSES)),
            )
        )
        return list(result.scalars().all())


class RequestCommentDAO(BaseDAO[RequestComment]):
    """Data Access Object for request comments."""

    def __init__(self, session: AsyncSession):
        super().__init__(RequestComment, session)

    async def list_for_request(
        self,
        request_id: int,
        include_internal: bool = True,
    ) -> List[RequestComment]:
        """
        List comments for a request, oldest first.

        Args:
            request_id: Request ID
            include_internal: Whether to include internal (admin-only) notes
        """
        query = (
            select(RequestComment)
            .options(selectinload(RequestComment.author))
            .where(RequestComment.request_id == request_id)
        )

        if not include_internal:
            query = query.where(RequestComment.is_internal.is_(False))

        query = query.order_by(RequestComment.created_at.asc(), RequestComment.id.asc())

        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_with_author(self, comment_id: int) -> Optional[RequestComment]:
        """Reload a comment with its author for the response."""
        result = await self.session.execute(
            select(RequestComment)
            .options(selectinload(RequestComment.author))
            .where(RequestComment.id == comment_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

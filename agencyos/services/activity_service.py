"""
Request timeline service.

WHAT: Business logic for recording and reading the per-request activity
timeline.

WHY: The service layer:
1. Keeps timeline wording in one place ("moved this request to review")
2. Treats timeline writes as secondary effects that never fail the
   operation they describe
3. Gives route handlers one call per event type

HOW: Wraps RequestActivityDAO with helper methods for the lifecycle events.
"""

import logging
from typing import Optional, List, Dict, Any

from sqlalchemy.ext.asyncio import AsyncSession

from agencyos.dao.activity import RequestActivityDAO
from agencyos.models.activity import ActivityType, RequestActivity

logger = logging.getLogger(__name__)


class ActivityService:
    """Service for request timeline operations."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.dao = RequestActivityDAO(session)

    # =========================================================================
    # Activity Recording
    # =========================================================================

    async def record(
        self,
        request_id: int,
        activity_type: ActivityType,
        description: str,
        user_id: Optional[int] = None,
        extra_data: Optional[Dict[str, Any]] = None,
    ) -> Optional[RequestActivity]:
        """
        Append a timeline entry.

        Returns:
            The created entry, or None if it could not be written
        """
        try:
            async with self.session.begin_nested():
                return await self.dao.record(
                    request_id=request_id,
                    activity_type=activity_type,
                    description=description,
                    user_id=user_id,
                    extra_data=extra_data,
                )
        except Exception as e:
            logger.error(f"Failed to record {activity_type.value} activity: {e}", exc_info=True)
            return None

    # =========================================================================
    # Helper Methods for Common Activities
    # =========================================================================

    async def record_created(self, request, user_id: Optional[int]):
        return await self.record(
            request.id, ActivityType.CREATED, "created this request", user_id=user_id
        )

    async def record_updated(self, request, fields: List[str], user_id: Optional[int]):
        return await self.record(
            request.id,
            ActivityType.UPDATED,
            f"updated {', '.join(fields)}",
            user_id=user_id,
            extra_data={"fields": fields},
        )

    async def record_status_change(
        self,
        request,
        old_status: str,
        new_status: str,
        user_id: Optional[int],
        automated: bool = False,
    ):
        description = f"moved this request from {old_status} to {new_status}"
        if automated:
            description = f"Workflow {description}"
        return await self.record(
            request.id,
            ActivityType.WORKFLOW if automated else ActivityType.STATUS_CHANGED,
            description,
            user_id=user_id,
            extra_data={"from": old_status, "to": new_status},
        )

    async def record_assignment(
        self,
        request,
        assignee_id: Optional[int],
        assignee_name: Optional[str],
        user_id: Optional[int],
    ):
        description = f"assigned this request to {assignee_name}" if assignee_id else "unassigned this request"
        return await self.record(
            request.id,
            ActivityType.ASSIGNED,
            description,
            user_id=user_id,
            extra_data={"assigned_to": assignee_id},
        )

    async def record_comment(self, request, comment, user_id: Optional[int]):
        return await self.record(
            request.id,
            ActivityType.COMMENTED,
            "added an internal note" if comment.is_internal else "commented",
            user_id=user_id,
            extra_data={"comment_id": comment.id, "is_internal": comment.is_internal},
        )

    # =========================================================================
    # Timeline Queries
    # =========================================================================

    async def get_timeline(
        self,
        request_id: int,
        include_internal: bool = True,
        skip: int = 0,
        limit: int = 100,
    ) -> List[RequestActivity]:
        """
        Timeline of a request, newest first.

        WHY: Clients must not learn that an internal note exists, so those
        entries are filtered for them.
        """
        entries = await self.dao.list_for_request(request_id, skip=skip, limit=limit)
        if include_internal:
            return entries
        return [e for e in entries if not (e.extra_data or {}).get("is_internal")]

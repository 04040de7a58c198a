"""
In-app notification service for request events.

WHAT: Creates notification rows for assignment, status change, comment and
due date events on requests.

WHY: Centralizes notification wording and recipient rules so the lifecycle
guard, comment endpoint and workflow engine all notify the same way.

HOW: Event-specific methods format the message and write through the
NotificationDAO. Every method is fire-and-forget: failures are logged and
reported as False, never raised into the operation that triggered them.
"""

import logging
from typing import Iterable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from agencyos.core.config import settings
from agencyos.dao.notification import NotificationDAO
from agencyos.models.notification import NotificationType
from agencyos.models.request import ServiceRequest

logger = logging.getLogger(__name__)


class NotificationService:
    """
    Writes in-app notifications for request events.

    Attributes:
        session: Caller's session; each notification is written in a savepoint
        dao: NotificationDAO bound to that session
        base_url: Base URL for generating request links
    """

    def __init__(self, session: AsyncSession, base_url: Optional[str] = None):
        self.session = session
        self.dao = NotificationDAO(session)
        self.base_url = base_url or settings.FRONTEND_URL

    def _build_request_url(self, request_id: int) -> str:
        return f"{self.base_url}/requests/{request_id}"

    async def _send(
        self,
        user_id: int,
        type: NotificationType,
        title: str,
        message: str,
        request: ServiceRequest,
    ) -> bool:
        try:
            async with self.session.begin_nested():
                await self.dao.create_notification(
                    user_id=user_id,
                    type=type,
                    title=title,
                    message=message,
                    link=self._build_request_url(request.id),
                    related_request_id=request.id,
                    related_company_id=request.company_id,
                )
            return True
        except Exception as e:
            logger.error(
                f"Failed to create {type.value} notification for user {user_id}: {e}",
                exc_info=True,
            )
            return False

    # =========================================================================
    # Request Notifications
    # =========================================================================

    async def notify_assignment(self, request: ServiceRequest, assignee_id: int) -> bool:
        """
        Tell a profile a request was assigned to them.

        WHY: Callers only invoke this when the assignee actually changed, so
        re-assigning to the same person never notifies twice.
        """
        logger.info(f"Notifying user {assignee_id} of assignment to request #{request.id}")
        return await self._send(
            user_id=assignee_id,
            type=NotificationType.ASSIGNMENT,
            title="New assignment",
            message=f'You have been assigned to "{request.title}"',
            request=request,
        )

    async def notify_status_change(
        self,
        request: ServiceRequest,
        old_status: str,
        new_status: str,
        actor_id: Optional[int] = None,
    ) -> bool:
        """
        Tell the assignee a request changed status.

        Skipped when there is no assignee or the assignee made the change.
        """
        if request.assigned_to is None or request.assigned_to == actor_id:
            return False
        return await self._send(
            user_id=request.assigned_to,
            type=NotificationType.STATUS_CHANGE,
            title="Status updated",
            message=f'"{request.title}" moved from {old_status} to {new_status}',
            request=request,
        )

    async def notify_comment(
        self,
        request: ServiceRequest,
        author_id: int,
        author_name: str,
    ) -> bool:
        """Tell the assignee someone else commented on their request."""
        if request.assigned_to is None or request.assigned_to == author_id:
            return False
        return await self._send(
            user_id=request.assigned_to,
            type=NotificationType.COMMENT,
            title="New comment",
            message=f'{author_name} commented on "{request.title}"',
            request=request,
        )

    async def notify_custom(
        self,
        request: ServiceRequest,
        user_ids: Iterable[int],
        title: str,
        message: str,
        type: NotificationType = NotificationType.STATUS_CHANGE,
    ) -> int:
        """
        Workflow-driven notification with a caller-supplied message.

        Returns:
            Number of notifications written
        """
        sent = 0
        for user_id in user_ids:
            if await self._send(
                user_id=user_id,
                type=type,
                title=title,
                message=message,
                request=request,
            ):
                sent += 1
        return sent

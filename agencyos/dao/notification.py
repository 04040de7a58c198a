"""
Notification Data Access Object.

WHY: Notifications are always read and changed per recipient; every query
here is scoped by user_id so one user can never touch another's rows.
"""

from typing import Optional, List, Sequence

from sqlalchemy import select, func, update
from sqlalchemy.ext.asyncio import AsyncSession

from agencyos.dao.base import BaseDAO
from agencyos.models.base import utcnow
from agencyos.models.notification import Notification, NotificationType


class NotificationDAO(BaseDAO[Notification]):
    """Data Access Object for in-app notifications."""

    def __init__(self, session: AsyncSession):
        super().__init__(Notification, session)

    async def create_notification(
        self,
        user_id: int,
        type: NotificationType,
        title: str,
        message: str,
        link: Optional[str] = None,
        related_request_id: Optional[int] = None,
        related_company_id: Optional[int] = None,
    ) -> Notification:
        return await self.create(
            user_id=user_id,
            type=type,
            title=title,
            message=message,
            link=link,
            related_request_id=related_request_id,
            related_company_id=related_company_id,
            is_read=False,
        )

    async def list_for_user(
        self,
        user_id: int,
        unread_only: bool = False,
        limit: int = 50,
    ) -> List[Notification]:
        """A user's notifications, newest first."""
        query = select(Notification).where(Notification.user_id == user_id)
        if unread_only:
            query = query.where(Notification.is_read.is_(False))
        result = await self.session.execute(
            query.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit)
        )
        return list(result.scalars().all())

    async def count_unread(self, user_id: int) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(Notification)
            .where(Notification.user_id == user_id, Notification.is_read.is_(False))
        )
        return result.scalar_one()

    async def mark_read(
        self,
        user_id: int,
        notification_ids: Optional[Sequence[int]] = None,
    ) -> int:
        """
        Mark notifications read.

        Args:
            user_id: Owner; rows of other users are never touched
            notification_ids: Specific rows, or None for every unread row

        Returns:
            Number of rows updated
        """
        stmt = update(Notification).where(
            Notification.user_id == user_id,
            Notification.is_read.is_(False),
        )
        if notification_ids is not None:
            stmt = stmt.where(Notification.id.in_(list(notification_ids)))

        result = await self.session.execute(
            stmt.values(is_read=True, read_at=utcnow()).execution_options(synchronize_session=False)
        )
        return result.rowcount

"""
Notification preference Data Access Object.

WHAT: Read and upsert the email settings of a profile.

WHY: Most profiles never open the settings page, so a missing row means
"defaults". Rows are created lazily on the first change.
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from agencyos.dao.base import BaseDAO
from agencyos.models.notification_preference import DEFAULT_PREFERENCES, NotificationPreference


logger = logging.getLogger(__name__)


class NotificationPreferenceDAO(BaseDAO[NotificationPreference]):
    """
    DAO for NotificationPreference operations.

    Example:
        dao = NotificationPreferenceDAO(session)
        await dao.upsert(user.id, email_on_comment=False)
        if await dao.should_email(user.id, "email_on_status_change"):
            ...
    """

    def __init__(self, session: AsyncSession):
        super().__init__(NotificationPreference, session)

    async def get_for_user(self, user_id: int) -> Optional[NotificationPreference]:
        result = await self.session.execute(
            select(NotificationPreference).where(NotificationPreference.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def get_settings(self, user_id: int) -> Dict[str, Any]:
        """
        Effective settings of a profile.

        Returns:
            The stored values, or DEFAULT_PREFERENCES when none are stored
        """
        pref = await self.get_for_user(user_id)
        if pref is None:
            return dict(DEFAULT_PREFERENCES)
        return {field: getattr(pref, field) for field in DEFAULT_PREFERENCES}

    async def upsert(self, user_id: int, **changes: Any) -> NotificationPreference:
        """
        Apply changes, creating the row from defaults when missing.

        Args:
            user_id: Profile the settings belong to
            **changes: Fields of DEFAULT_PREFERENCES to set
        """
        pref = await self.get_for_user(user_id)
        if pref is None:
            pref = await self.create(user_id=user_id, **{**DEFAULT_PREFERENCES, **changes})
            logger.info(f"Created notification preferences for user {user_id}")
            return pref
        return await self.update(pref, **changes)

    async def should_email(self, user_id: int, setting: str) -> bool:
        """Whether the profile wants emails for ``setting`` (e.g. ``email_on_comment``)."""
        settings = await self.get_settings(user_id)
        return bool(settings.get(setting, True))

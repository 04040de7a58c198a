"""
Notification preference model.

WHAT: Per-profile switches for the emails the portal sends.

WHY: Users decide which events reach their inbox. In-app notifications
are always written; these settings gate email. push_enabled is
only stored for the browser client.

HOW: One row per profile, created on the first change. Until then the
defaults in DEFAULT_PREFERENCES apply.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict

from sqlalchemy import Integer, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from agencyos.models.base import Base, enum_column, utcnow


class DigestFrequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"


# Settings of a profile that never changed its preferences
DEFAULT_PREFERENCES: Dict[str, Any] = {
    "email_on_comment": True,
    "email_on_status_change": True,
    "email_on_assignment": True,
    "email_on_mention": True,
    "email_on_due_date": True,
    "email_digest_enabled": False,
    "email_digest_frequency": DigestFrequency.DAILY,
    "push_enabled": True,
}


class NotificationPreference(Base):
    """Email and push settings of one profile."""

    __tablename__ = "notification_preferences"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    email_on_comment: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    email_on_status_change: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    email_on_assignment: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    email_on_mention: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    email_on_due_date: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    email_digest_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    email_digest_frequency: Mapped[DigestFrequency] = mapped_column(
        enum_column(DigestFrequency, "digest_frequency"),
        nullable=False,
        default=DigestFrequency.DAILY,
    )
    push_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<NotificationPreference(user_id={self.user_id})>"

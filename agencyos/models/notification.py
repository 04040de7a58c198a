"""
In-app notification model.

WHY: Notifications tell a user that something happened to a request they
care about (assignment, status change, new comment) and are read from the
notification bell until marked read.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import Integer, String, Text, Boolean, DateTime, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column

from agencyos.models.base import Base, enum_column, utcnow


class NotificationType(str, Enum):
    """Notification categories."""

    COMMENT = "comment"
    STATUS_CHANGE = "status_change"
    ASSIGNMENT = "assignment"
    MENTION = "mention"
    DUE_DATE = "due_date"
    SLA_BREACH = "sla_breach"


class Notification(Base):
    """Notification addressed to one profile."""

    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    type: Mapped[NotificationType] = mapped_column(
        enum_column(NotificationType, "notification_type"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    link: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)

    related_request_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("requests.id", ondelete="SET NULL"), nullable=True
    )
    related_company_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("companies.id", ondelete="SET NULL"), nullable=True
    )

    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    read_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        Index("ix_notifications_user_read", "user_id", "is_read"),
    )

    def __repr__(self) -> str:
        return f"<Notification(id={self.id}, user_id={self.user_id}, type={self.type})>"

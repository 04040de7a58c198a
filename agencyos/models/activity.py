"""
Request activity timeline model.

WHAT: One row per event shown on a request's timeline.

WHY: The audit log is an admin tool holding raw before/after values; the
timeline is the readable history that clients and admins see on the
request page ("Admin moved this request to review").
"""

from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any, TYPE_CHECKING

from sqlalchemy import Integer, String, Text, DateTime, ForeignKey, Index, JSON
from sqlalchemy.orm import relationship, Mapped, mapped_column

from agencyos.models.base import Base, utcnow

if TYPE_CHECKING:
    from agencyos.models.user import User


class ActivityType(str, Enum):
    """Timeline event types."""

    CREATED = "created"
    UPDATED = "updated"
    STATUS_CHANGED = "status_changed"
    ASSIGNED = "assigned"
    COMMENTED = "commented"
    WORKFLOW = "workflow"


class RequestActivity(Base):
    """Timeline entry for a request."""

    __tablename__ = "activities"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    request_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("requests.id", ondelete="CASCADE"), nullable=False
    )
    # Null for automated (workflow) entries
    user_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True
    )

    activity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    extra_data: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    actor: Mapped[Optional["User"]] = relationship("User", lazy="selectin")

    __table_args__ = (
        Index("ix_activities_request_created", "request_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<RequestActivity(id={self.id}, type={self.activity_type}, request={self.request_id})>"

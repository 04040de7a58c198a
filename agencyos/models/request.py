"""
Service request models.

WHAT: SQLAlchemy models for client requests and their comments.

WHY: A request is one unit of client work. It moves through a fixed status
lifecycle (queue → active → review → done), may be assigned to an agency
admin, and collects a comment thread shared between client and agency.

HOW: Uses SQLAlchemy 2.0 typed mappings with:
- Enums for status and priority fields
- Foreign keys to companies and profiles
- Indexes for the board and filter queries
"""

from datetime import datetime
from enum import Enum
from typing import Optional, List, TYPE_CHECKING

from sqlalchemy import (
    Integer,
    String,
    Text,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
)
from sqlalchemy.orm import relationship, Mapped, mapped_column

from agencyos.models.base import Base, enum_column, utcnow

if TYPE_CHECKING:
    from agencyos.models.company import Company
    from agencyos.models.user import User


# ============================================================================
# Enums
# ============================================================================


class RequestStatus(str, Enum):
    """
    Request status values.

    WHAT: The closed set of lifecycle states.

    WHY: Status drives the agency board columns:
    - QUEUE: Submitted, waiting to be picked up (initial state)
    - ACTIVE: Being worked on, counts against the plan limit
    - REVIEW: Delivered, waiting for client review
    - DONE: Completed (terminal unless reopened by an admin)
    """

    QUEUE = "queue"
    ACTIVE = "active"
    REVIEW = "review"
    DONE = "done"

    @classmethod
    def parse(cls, value: str) -> Optional["RequestStatus"]:
        """Return the member for a raw value, or None when unknown."""
        try:
            return cls(value)
        except ValueError:
            return None


class RequestPriority(str, Enum):
    """Request priority levels."""

    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"


# Statuses that still occupy an agency slot
OPEN_STATUSES = (RequestStatus.QUEUE, RequestStatus.ACTIVE, RequestStatus.REVIEW)


# ============================================================================
# Request Model
# ============================================================================


class ServiceRequest(Base):
    """
    Client service request.

    WHAT: The central work item of the portal.

    WHY: Requests carry everything the agency needs to deliver: the brief
    (title, description, assets link, video brief), scheduling (priority,
    due date) and ownership (company, assignee).
    """

    __tablename__ = "requests"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    company_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False
    )
    created_by: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True
    )
    assigned_to: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True
    )

    # Brief
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    assets_link: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)
    video_brief: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)

    # Lifecycle
    status: Mapped[RequestStatus] = mapped_column(
        enum_column(RequestStatus, "request_status"),
        nullable=False,
        default=RequestStatus.QUEUE,
    )
    priority: Mapped[RequestPriority] = mapped_column(
        enum_column(RequestPriority, "request_priority"),
        nullable=False,
        default=RequestPriority.NORMAL,
    )
    due_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    # Relationships
    company: Mapped["Company"] = relationship("Company", back_populates="requests")
    assignee: Mapped[Optional["User"]] = relationship(
        "User", foreign_keys=[assigned_to], lazy="selectin"
    )
    comments: Mapped[List["RequestComment"]] = relationship(
        "RequestComment",
        back_populates="request",
        cascade="all, delete-orphan",
        order_by="RequestComment.created_at",
    )

    __table_args__ = (
        Index("ix_requests_company_id", "company_id"),
        Index("ix_requests_status", "status"),
        Index("ix_requests_assigned_to", "assigned_to"),
        Index("ix_requests_due_date", "due_date"),
        Index("ix_requests_created_at", "created_at"),
    )

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_STATUSES

    def snapshot(self) -> dict:
        """
        Serializable view of the mutable fields.

        WHY: Audit rows store complete before/after pairs, never partial
        diffs, so history can be reconstructed from the log alone.
        """
        return {
            "title": self.title,
            "description": self.description,
            "status": self.status.value if self.status else None,
            "priority": self.priority.value if self.priority else None,
            "assets_link": self.assets_link,
            "video_brief": self.video_brief,
            "assigned_to": self.assigned_to,
            "due_date": self.due_date.isoformat() if self.due_date else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }

    def __repr__(self) -> str:
        return f"<ServiceRequest(id={self.id}, status={self.status}, company_id={self.company_id})>"


# ============================================================================
# Comment Model
# ============================================================================


class RequestComment(Base):
    """
    Comment on a request.

    WHY: Internal comments let agency staff discuss a request without the
    client seeing the thread.
    """

    __tablename__ = "comments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    request_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("requests.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    is_internal: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    request: Mapped["ServiceRequest"] = relationship("ServiceRequest", back_populates="comments")
    author: Mapped[Optional["User"]] = relationship("User", lazy="selectin")

    __table_args__ = (
        Index("ix_comments_request_id", "request_id"),
    )

    def __repr__(self) -> str:
        return f"<RequestComment(id={self.id}, request_id={self.request_id})>"

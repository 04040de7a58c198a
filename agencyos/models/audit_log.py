"""
Audit Log Model.

WHAT: SQLAlchemy model for the append-only record of accepted mutations.

WHY: Every accepted change to a request (status moves, assignment, edits,
comments, deletes) writes one row holding the complete before/after values,
so the history of a request can be reconstructed from the log alone.

HOW: Immutable append-only table with request context (IP address, user
agent). Uses JSON for the before/after snapshots.
"""

import enum
from sqlalchemy import Column, Integer, String, ForeignKey, Text, JSON, Index

from agencyos.models.base import Base, TimestampMixin, PrimaryKeyMixin, enum_column


class AuditAction(str, enum.Enum):
    """
    Enumeration of auditable actions.

    WHY: Using an enum ensures only valid, documented actions can be
    logged, making it easier to query and analyze audit data.
    """

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    STATUS_CHANGE = "status_change"
    ASSIGN = "assign"
    COMMENT = "comment"


class AuditLog(Base, PrimaryKeyMixin, TimestampMixin):
    """
    Immutable audit log entry.

    Fields:
    - company_id: Tenant the affected entity belongs to
    - user_id: Who performed the action (nullable for system actions)
    - action: What type of event occurred (AuditAction enum)
    - entity_type / entity_id: The affected row
    - old_values / new_values: Full snapshots before and after
    - change_summary: Short human readable description
    - ip_address / user_agent: Request context for forensics
    """

    __tablename__ = "audit_logs"

    company_id = Column(
        Integer,
        ForeignKey("companies.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    user_id = Column(
        Integer,
        ForeignKey("profiles.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    action = Column(enum_column(AuditAction, "audit_action"), nullable=False, index=True)

    # WHY: entity_id is not a foreign key so rows survive deletion of the entity
    entity_type = Column(String(100), nullable=False)
    entity_id = Column(Integer, nullable=True)

    old_values = Column(JSON, nullable=True)
    new_values = Column(JSON, nullable=True)
    change_summary = Column(Text, nullable=True)

    # IPv6 addresses are at most 45 characters
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(String(500), nullable=True)

    __table_args__ = (
        Index("ix_audit_logs_entity", "entity_type", "entity_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<AuditLog(id={self.id}, action={self.action}, "
            f"entity={self.entity_type}:{self.entity_id})>"
        )

"""
Workflow automation models.

WHAT: SQLAlchemy models for admin-configured workflow rules and their
execution log.

WHY: Agencies automate routine follow-ups ("when a request enters review,
notify the account manager") without code changes. A rule pairs a trigger
(an event on a request) with one or more actions.

HOW:
- WorkflowRule: trigger type + JSON conditions, action type + JSON config
- WorkflowExecution: one row per run, successful or not
"""

from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any

from sqlalchemy import Integer, String, Text, Boolean, DateTime, ForeignKey, Index, JSON
from sqlalchemy.orm import Mapped, mapped_column

from agencyos.models.base import Base, enum_column, utcnow


# ============================================================================
# Enums
# ============================================================================


class TriggerType(str, Enum):
    """
    Events that can start a workflow.

    WHY: Each trigger corresponds to a hook in the request lifecycle
    (status change, comment, assignment) or to the scheduled due date scan.
    """

    STATUS_CHANGE = "status_change"
    DUE_DATE_APPROACHING = "due_date_approaching"
    COMMENT_ADDED = "comment_added"
    ASSIGNMENT_CHANGE = "assignment_change"
    SLA_BREACH = "sla_breach"


class ActionType(str, Enum):
    """Actions a workflow can perform."""

    NOTIFY = "notify"
    ASSIGN = "assign"
    CHANGE_STATUS = "change_status"
    CHANGE_PRIORITY = "change_priority"
    SEND_EMAIL = "send_email"
    WEBHOOK = "webhook"


# ============================================================================
# Models
# ============================================================================


class WorkflowRule(Base):
    """
    Admin-configured trigger/action pair.

    trigger_conditions keys:
    - from_status / to_status: for status_change triggers
    - hours_before: for due_date_approaching triggers (default 24)

    action_config is either one action ({"type": "notify", "message": ...})
    or a list under "actions".
    """

    __tablename__ = "workflow_rules"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    trigger_type: Mapped[TriggerType] = mapped_column(
        enum_column(TriggerType, "workflow_trigger_type"), nullable=False
    )
    trigger_conditions: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    action_type: Mapped[ActionType] = mapped_column(
        enum_column(ActionType, "workflow_action_type"), nullable=False
    )
    action_config: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    execution_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_executed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    created_by: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        Index("ix_workflow_rules_trigger_active", "trigger_type", "is_active"),
    )

    def __repr__(self) -> str:
        return f"<WorkflowRule(id={self.id}, name={self.name}, trigger={self.trigger_type})>"


class WorkflowExecution(Base):
    """Execution log entry for a workflow run against a request."""

    __tablename__ = "workflow_executions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    workflow_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("workflow_rules.id", ondelete="CASCADE"), nullable=False
    )
    request_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("requests.id", ondelete="SET NULL"), nullable=True
    )
    success: Mapped[bool] = mapped_column(Boolean, nullable=False)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    executed_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        Index("ix_workflow_executions_workflow_request", "workflow_id", "request_id", "executed_at"),
    )

    def __repr__(self) -> str:
        return f"<WorkflowExecution(id={self.id}, workflow={self.workflow_id}, success={self.success})>"

"""
Database models package.

WHY: Centralizing model imports ensures Alembic can discover all models
for migration generation and makes it easier to import models elsewhere.
"""

from agencyos.models.base import Base, TimestampMixin, PrimaryKeyMixin, utcnow
from agencyos.models.company import Company, CompanyStatus, PlanTier, PLAN_LIMITS
from agencyos.models.user import User, UserRole
from agencyos.models.request import (
    ServiceRequest,
    RequestComment,
    RequestStatus,
    RequestPriority,
    OPEN_STATUSES,
)
from agencyos.models.activity import RequestActivity, ActivityType
from agencyos.models.audit_log import AuditLog, AuditAction
from agencyos.models.invitation import Invitation, InvitationStatus
from agencyos.models.notification import Notification, NotificationType
from agencyos.models.workflow import (
    WorkflowRule,
    WorkflowExecution,
    TriggerType,
    ActionType,
)
from agencyos.models.client_service import ClientService, ServiceStatus, ServiceType, BillingCycle
from agencyos.models.contact import Contact
from agencyos.models.template import RequestTemplate
from agencyos.models.notification_preference import (
    NotificationPreference,
    DigestFrequency,
    DEFAULT_PREFERENCES,
)

__all__ = [
    "Base",
    "TimestampMixin",
    "PrimaryKeyMixin",
    "utcnow",
    "Company",
    "CompanyStatus",
    "PlanTier",
    "PLAN_LIMITS",
    "User",
    "UserRole",
    "ServiceRequest",
    "RequestComment",
    "RequestStatus",
    "RequestPriority",
    "OPEN_STATUSES",
    "RequestActivity",
    "ActivityType",
    "AuditLog",
    "AuditAction",
    "Invitation",
    "InvitationStatus",
    "Notification",
    "NotificationType",
    "WorkflowRule",
    "WorkflowExecution",
    "TriggerType",
    "ActionType",
    "ClientService",
    "ServiceStatus",
    "ServiceType",
    "BillingCycle",
    "Contact",
    "RequestTemplate",
    "NotificationPreference",
    "DigestFrequency",
    "DEFAULT_PREFERENCES",
]

"""
Data Access Object (DAO) package.

WHY: DAOs provide a clean separation between database operations and business logic,
making the codebase more testable and maintainable.
"""

from agencyos.dao.base import BaseDAO
from agencyos.dao.company import CompanyDAO
from agencyos.dao.user import UserDAO
from agencyos.dao.request import RequestDAO, RequestCommentDAO
from agencyos.dao.activity import RequestActivityDAO
from agencyos.dao.audit_log import AuditLogDAO
from agencyos.dao.invitation import InvitationDAO
from agencyos.dao.notification import NotificationDAO
from agencyos.dao.workflow import WorkflowRuleDAO, WorkflowExecutionDAO
from agencyos.dao.client_service import ClientServiceDAO
from agencyos.dao.contact import ContactDAO
from agencyos.dao.template import RequestTemplateDAO
from agencyos.dao.notification_preference import NotificationPreferenceDAO

__all__ = [
    "BaseDAO",
    "CompanyDAO",
    "UserDAO",
    "RequestDAO",
    "RequestCommentDAO",
    "RequestActivityDAO",
    "AuditLogDAO",
    "InvitationDAO",
    "NotificationDAO",
    "WorkflowRuleDAO",
    "WorkflowExecutionDAO",
    "ClientServiceDAO",
    "ContactDAO",
    "RequestTemplateDAO",
    "NotificationPreferenceDAO",
]

"""
Audit logging service.

WHAT: Service layer for appending audit log entries with request context.

WHY: Every accepted mutation of a request writes one audit row holding the
complete before/after values. The audit row is a secondary effect: a
failure to write it is logged and never undoes the mutation itself.

HOW: Uses the AuditLogDAO for persistence and the RequestContext middleware
for automatic IP/user-agent capture. Convenience methods cover the request
lifecycle events (create, update, delete, status change, assign, comment).
"""

import logging
from typing import Optional, Dict, Any

from sqlalchemy.ext.asyncio import AsyncSession

from agencyos.dao.audit_log import AuditLogDAO
from agencyos.models.audit_log import AuditLog, AuditAction
from agencyos.middleware.request_context import get_request_context


# Logger for audit service errors (not audit events themselves)
logger = logging.getLogger(__name__)

REQUEST_ENTITY = "request"


class AuditService:
    """
    Service for creating audit log entries.

    Example:
        audit = AuditService(db)
        await audit.log_status_change(request, before, after, user_id=caller.id)
    """

    def __init__(self, session: AsyncSession):
        self.dao = AuditLogDAO(session)
        self._session = session

    def _get_context(self) -> tuple[Optional[str], Optional[str]]:
        """
        Get IP address and user agent from request context.

        Returns:
            Tuple of (ip_address, user_agent), both None outside a request
        """
        ctx = get_request_context()
        if ctx:
            return ctx.ip_address, ctx.user_agent
        return None, None

    async def log_event(
        self,
        action: AuditAction,
        entity_type: str,
        entity_id: Optional[int] = None,
        user_id: Optional[int] = None,
        company_id: Optional[int] = None,
        old_values: Optional[Dict[str, Any]] = None,
        new_values: Optional[Dict[str, Any]] = None,
        change_summary: Optional[str] = None,
    ) -> Optional[AuditLog]:
        """
        Append one audit event.

        Args:
            action: Type of event (from AuditAction enum)
            entity_type: Category of affected entity
            entity_id: Affected row
            user_id: Profile who performed the action (None for automation)
            company_id: Tenant context
            old_values: Full snapshot before the change
            new_values: Full snapshot after the change
            change_summary: Human readable description

        Returns:
            Created AuditLog or None if logging failed

        Note:
            This method never raises, so audit logging cannot break the
            operation it records. Errors go to the application logger.
        """
        try:
            ip_address, user_agent = self._get_context()
            async with self._session.begin_nested():
                return await self.dao.create(
                    action=action,
                    entity_type=entity_type,
                    entity_id=entity_id,
                    user_id=user_id,
                    company_id=company_id,
                    old_values=old_values,
                    new_values=new_values,
                    change_summary=change_summary,
                    ip_address=ip_address,
                    user_agent=user_agent,
                )
        except Exception as e:
            logger.error(f"Failed to create audit log: {e}", exc_info=True)
            return None

    # =========================================================================
    # Request Events
    # =========================================================================

    async def log_request_created(self, request, user_id: Optional[int]) -> Optional[AuditLog]:
        return await self.log_event(
            action=AuditAction.CREATE,
            entity_type=REQUEST_ENTITY,
            entity_id=request.id,
            user_id=user_id,
            company_id=request.company_id,
            new_values=request.snapshot(),
            change_summary=f"Created request '{request.title}'",
        )

    async def log_request_updated(
        self,
        request,
        old_values: Dict[str, Any],
        new_values: Dict[str, Any],
        user_id: Optional[int],
    ) -> Optional[AuditLog]:
        changed = sorted(k for k in new_values if old_values.get(k) != new_values.get(k))
        return await self.log_event(
            action=AuditAction.UPDATE,
            entity_type=REQUEST_ENTITY,
            entity_id=request.id,
            user_id=user_id,
            company_id=request.company_id,
            old_values=old_values,
            new_values=new_values,
            change_summary=f"Updated {', '.join(changed) or 'nothing'}",
        )

    async def log_request_deleted(self, request, user_id: Optional[int]) -> Optional[AuditLog]:
        return await self.log_event(
            action=AuditAction.DELETE,
            entity_type=REQUEST_ENTITY,
            entity_id=request.id,
            user_id=user_id,
            company_id=request.company_id,
            old_values=request.snapshot(),
            change_summary=f"Deleted request '{request.title}'",
        )

    async def log_status_change(
        self,
        request,
        old_values: Dict[str, Any],
        new_values: Dict[str, Any],
        user_id: Optional[int],
    ) -> Optional[AuditLog]:
        """
        Record an accepted status transition.

        WHY: Snapshots are full before/after pairs, never partial diffs.
        """
        return await self.log_event(
            action=AuditAction.STATUS_CHANGE,
            entity_type=REQUEST_ENTITY,
            entity_id=request.id,
            user_id=user_id,
            company_id=request.company_id,
            old_values=old_values,
            new_values=new_values,
            change_summary=f"Status {old_values.get('status')} -> {new_values.get('status')}",
        )

    async def log_assignment(
        self,
        request,
        old_values: Dict[str, Any],
        new_values: Dict[str, Any],
        user_id: Optional[int],
    ) -> Optional[AuditLog]:
        return await self.log_event(
            action=AuditAction.ASSIGN,
            entity_type=REQUEST_ENTITY,
            entity_id=request.id,
            user_id=user_id,
            company_id=request.company_id,
            old_values=old_values,
            new_values=new_values,
            change_summary=(
                f"Assignee {old_values.get('assigned_to')} -> {new_values.get('assigned_to')}"
            ),
        )

    async def log_comment(self, request, comment, user_id: Optional[int]) -> Optional[AuditLog]:
        return await self.log_event(
            action=AuditAction.COMMENT,
            entity_type="comment",
            entity_id=comment.id,
            user_id=user_id,
            company_id=request.company_id,
            new_values={
                "request_id": request.id,
                "content": comment.content,
                "is_internal": comment.is_internal,
            },
            change_summary=f"Commented on request {request.id}",
        )

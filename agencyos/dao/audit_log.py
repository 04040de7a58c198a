"""
Audit Log Data Access Object (DAO).

WHAT: Data access layer for audit log operations.

WHY: The audit log is append-only. This DAO offers creation and query
methods and refuses updates and deletes outright.
"""

from typing import Optional, List, Dict, Any, Tuple
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from agencyos.models.audit_log import AuditLog, AuditAction
from agencyos.core.exceptions import AuditLogImmutableError


class AuditLogDAO:
    """
    Data Access Object for audit log operations.

    WHY: Centralizes all audit log database operations with immutability
    enforcement (no updates or deletes).
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        action: AuditAction,
        entity_type: str,
        entity_id: Optional[int] = None,
        user_id: Optional[int] = None,
        company_id: Optional[int] = None,
        old_values: Optional[Dict[str, Any]] = None,
        new_values: Optional[Dict[str, Any]] = None,
        change_summary: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> AuditLog:
        """
        Create a new audit log entry.

        Args:
            action: Type of event (from AuditAction enum)
            entity_type: Category of affected entity ("request", "profile")
            entity_id: Affected row
            user_id: Profile who performed the action (None for automation)
            company_id: Tenant context
            old_values: Full snapshot before the change
            new_values: Full snapshot after the change
            change_summary: Human readable description
            ip_address: Client IP address
            user_agent: Client browser/application info

        Returns:
            The created AuditLog entry
        """
        log = AuditLog(
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
        self.session.add(log)
        await self.session.flush()
        await self.session.refresh(log)
        return log

    async def get_by_id(self, log_id: int) -> Optional[AuditLog]:
        result = await self.session.execute(select(AuditLog).where(AuditLog.id == log_id))
        return result.scalar_one_or_none()

    async def list(
        self,
        skip: int = 0,
        limit: int = 100,
        entity_type: Optional[str] = None,
        entity_id: Optional[int] = None,
        company_id: Optional[int] = None,
        user_id: Optional[int] = None,
        action: Optional[AuditAction] = None,
    ) -> Tuple[List[AuditLog], int]:
        """
        Query audit logs, newest first.

        Returns:
            Tuple of (entries, total count)
        """
        query = select(AuditLog)
        if entity_type is not None:
            query = query.where(AuditLog.entity_type == entity_type)
        if entity_id is not None:
            query = query.where(AuditLog.entity_id == entity_id)
        if company_id is not None:
            query = query.where(AuditLog.company_id == company_id)
        if user_id is not None:
            query = query.where(AuditLog.user_id == user_id)
        if action is not None:
            query = query.where(AuditLog.action == action)

        total = (
            await self.session.execute(select(func.count()).select_from(query.subquery()))
        ).scalar_one()
        result = await self.session.execute(
            query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).offset(skip).limit(limit)
        )
        return list(result.scalars().all()), total

    async def update(self, log_id: int, **kwargs: Any) -> None:
        """
        Attempt to update an audit log (BLOCKED).

        Raises:
            AuditLogImmutableError: Always raised - updates not allowed
        """
        raise AuditLogImmutableError("Audit logs are immutable and cannot be updated")

    async def delete(self, log_id: int) -> None:
        """
        Attempt to delete an audit log (BLOCKED).

        Raises:
            AuditLogImmutableError: Always raised - deletions not allowed
        """
        raise AuditLogImmutableError("Audit logs cannot be deleted")

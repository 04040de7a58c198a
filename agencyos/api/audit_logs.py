"""
Audit log API endpoints.

WHAT: Read-only, admin-only access to the append-only audit trail.

WHY: Every accepted mutation of a request writes one audit row with full
before/after values. Admins query it to answer "who changed what, when".
There is deliberately no write, update or delete route.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from agencyos.core.deps import require_admin
from agencyos.dao.audit_log import AuditLogDAO
from agencyos.db.session import get_db
from agencyos.middleware.rate_limiter import RateLimitCategory, rate_limit
from agencyos.models.audit_log import AuditAction
from agencyos.models.user import User
from agencyos.schemas.audit_log import AuditLogListResponse, AuditLogResponse


router = APIRouter(prefix="/audit-logs", tags=["audit"])


@router.get(
    "",
    response_model=AuditLogListResponse,
    status_code=status.HTTP_200_OK,
    summary="Query the audit trail",
    dependencies=[Depends(rate_limit(RateLimitCategory.READ))],
)
async def list_audit_logs(
    entity_type: Optional[str] = Query(default=None, max_length=50),
    entity_id: Optional[int] = Query(default=None),
    company_id: Optional[int] = Query(default=None),
    user_id: Optional[int] = Query(default=None),
    action: Optional[AuditAction] = Query(default=None),
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=500),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> AuditLogListResponse:
    """Audit entries, newest first."""
    entries, total = await AuditLogDAO(db).list(
        skip=skip,
        limit=limit,
        entity_type=entity_type,
        entity_id=entity_id,
        company_id=company_id,
        user_id=user_id,
        action=action,
    )
    return AuditLogListResponse(
        items=[AuditLogResponse.model_validate(e) for e in entries],
        total=total,
        skip=skip,
        limit=limit,
    )

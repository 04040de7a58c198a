"""
Pydantic schemas for the audit log endpoint.
"""

from datetime import datetime
from typing import Any, List

from pydantic import BaseModel

from agencyos.models.audit_log import AuditAction


class AuditLogResponse(BaseModel):
    id: int
    company_id: int | None = None
    user_id: int | None = None
    action: AuditAction
    entity_type: str
    entity_id: int | None = None
    old_values: dict[str, Any] | None = None
    new_values: dict[str, Any] | None = None
    change_summary: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    created_at: datetime

    class Config:
        from_attributes = True


class AuditLogListResponse(BaseModel):
    items: List[AuditLogResponse]
    total: int
    skip: int
    limit: int

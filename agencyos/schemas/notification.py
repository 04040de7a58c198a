"""
Pydantic schemas for in-app notifications.
"""

from datetime import datetime
from typing import List

from pydantic import BaseModel, Field

from agencyos.models.notification import NotificationType
from agencyos.models.notification_preference import DigestFrequency


class NotificationResponse(BaseModel):
    id: int
    type: NotificationType
    title: str
    message: str
    link: str | None = None
    related_request_id: int | None = None
    related_company_id: int | None = None
    is_read: bool
    read_at: datetime | None = None
    created_at: datetime

    class Config:
        from_attributes = True


class NotificationListResponse(BaseModel):
    items: List[NotificationResponse]
    unread_count: int = Field(..., description="Unread notifications of the caller")


class MarkReadRequest(BaseModel):
    """
    Mark notifications read.

    WHY: Exactly one of ``notification_ids`` or ``mark_all`` must be given;
    the endpoint answers 400 otherwise.
    """

    notification_ids: List[int] | None = Field(None, max_length=500)
    mark_all: bool = False


class MarkReadResponse(BaseModel):
    success: bool = True
    updated: int


# ============================================================================
# Preferences
# ============================================================================


class NotificationPreferencesResponse(BaseModel):
    """Effective settings; defaults when the profile never changed them."""

    email_on_comment: bool
    email_on_status_change: bool
    email_on_assignment: bool
    email_on_mention: bool
    email_on_due_date: bool
    email_digest_enabled: bool
    email_digest_frequency: DigestFrequency
    push_enabled: bool


class NotificationPreferencesUpdate(BaseModel):
    email_on_comment: bool | None = None
    email_on_status_change: bool | None = None
    email_on_assignment: bool | None = None
    email_on_mention: bool | None = None
    email_on_due_date: bool | None = None
    email_digest_enabled: bool | None = None
    email_digest_frequency: DigestFrequency | None = None
    push_enabled: bool | None = None

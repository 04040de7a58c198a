"""
Pydantic schemas for service request endpoints.

WHAT: Request/response schemas for the request board, comments and the
activity timeline.

WHY: Schemas define API contracts for request operations:
1. Validate incoming data (title length, priority values)
2. Document API for OpenAPI/Swagger
3. Control which fields are exposed (internal comments stay with admins)

HOW: Uses Pydantic v2 with Field constraints, nested models for the
assignee and comment author, and ORM mode for SQLAlchemy integration.
"""

from datetime import datetime
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator

from agencyos.models.request import RequestPriority, RequestStatus


# ============================================================================
# User Reference Schema
# ============================================================================


class UserReference(BaseModel):
    """
    Minimal profile info embedded in request and comment responses.

    WHY: Avoids exposing full profile details while providing what the board
    needs to render an assignee or author.
    """

    id: int = Field(..., description="Profile ID")
    email: str = Field(..., description="Email address")
    full_name: str | None = Field(None, description="Display name")
    avatar_url: str | None = Field(None, description="Avatar image URL")

    class Config:
        from_attributes = True


# ============================================================================
# Request Schemas
# ============================================================================


class RequestCreate(BaseModel):
    """
    Request creation schema.

    WHAT: Data for submitting a new request.

    WHY: Only the title is required; everything else can be filled in later.
    ``company_id`` is honoured for admins only; clients always submit into
    their own company.
    """

    title: str = Field(..., min_length=1, max_length=500, description="Short summary")
    description: str | None = Field(None, max_length=50000, description="Full brief")
    priority: RequestPriority = Field(default=RequestPriority.NORMAL, description="Priority")
    assets_link: str | None = Field(None, max_length=1000, description="Link to assets")
    video_brief: str | None = Field(None, max_length=1000, description="Link to a video brief")
    due_date: datetime | None = Field(None, description="Requested delivery date")
    company_id: int | None = Field(None, gt=0, description="Owning company (admins only)")

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Title must not be blank")
        return v

    class Config:
        json_schema_extra = {
            "example": {
                "title": "Spring campaign landing page",
                "description": "Hero section plus signup form, brand colours attached.",
                "priority": "high",
                "assets_link": "https://drive.example.com/folder/abc",
            }
        }


class RequestUpdate(BaseModel):
    """
    Request update schema.

    WHY: Partial update; only provided fields are changed. ``due_date`` is
    applied for admins only and silently dropped for clients.
    """

    title: str | None = Field(None, min_length=1, max_length=500)
    description: str | None = Field(None, max_length=50000)
    priority: RequestPriority | None = None
    assets_link: str | None = Field(None, max_length=1000)
    video_brief: str | None = Field(None, max_length=1000)
    due_date: datetime | None = None


class MoveRequest(BaseModel):
    """
    Status transition body.

    WHY: ``status`` is a plain string so an unknown value is reported as an
    invalid transition rather than as a schema error.
    """

    status: str = Field(..., max_length=50, description="Target status")


class AssignRequest(BaseModel):
    """Assignment body; ``null`` clears the assignee."""

    user_id: Optional[int] = Field(..., description="Admin profile to assign, or null")


class RequestResponse(BaseModel):
    """
    Request response schema.

    WHAT: Full request data including the embedded assignee.
    """

    id: int
    company_id: int
    created_by: int | None = None
    assigned_to: int | None = None
    title: str
    description: str | None = None
    status: RequestStatus
    priority: RequestPriority
    assets_link: str | None = None
    video_brief: str | None = None
    due_date: datetime | None = None
    completed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime
    assignee: UserReference | None = None

    class Config:
        from_attributes = True


class RequestListResponse(BaseModel):
    """Paginated request list."""

    items: List[RequestResponse]
    total: int = Field(..., description="Total matching requests")
    skip: int
    limit: int


# ============================================================================
# Comment Schemas
# ============================================================================


class CommentCreate(BaseModel):
    """
    Comment creation request.

    WHY: ``is_internal`` marks agency-only notes; clients may not set it.
    """

    content: str = Field(..., min_length=1, max_length=50000, description="Comment text")
    is_internal: bool = Field(default=False, description="Hidden from clients when true")


class CommentResponse(BaseModel):
    """Comment response schema."""

    id: int
    request_id: int
    user_id: int | None = None
    content: str
    is_internal: bool
    created_at: datetime
    author: UserReference | None = None

    class Config:
        from_attributes = True


# ============================================================================
# Activity Schemas
# ============================================================================


class ActivityResponse(BaseModel):
    """One entry of a request's timeline."""

    id: int
    request_id: int
    user_id: int | None = None
    activity_type: str
    description: str
    extra_data: dict[str, Any] | None = None
    created_at: datetime

    class Config:
        from_attributes = True


# ============================================================================
# Bulk Action Schemas
# ============================================================================


class BulkAction(str, Enum):
    UPDATE_STATUS = "update_status"
    UPDATE_PRIORITY = "update_priority"
    ASSIGN = "assign"
    DELETE = "delete"


class BulkActionRequest(BaseModel):
    """
    One action applied to many requests.

    WHY: ``value`` is the target status, the priority or the assignee's
    profile id depending on ``action``; ``delete`` takes none.
    """

    request_ids: List[int] = Field(..., min_length=1, max_length=100)
    action: BulkAction
    value: int | str | None = None

    @field_validator("request_ids")
    @classmethod
    def unique_ids(cls, v: List[int]) -> List[int]:
        return list(dict.fromkeys(v))

    class Config:
        json_schema_extra = {
            "example": {"request_ids": [12, 15, 19], "action": "update_status", "value": "active"}
        }


class BulkFailure(BaseModel):
    id: int
    error: str
    code: str


class BulkActionResponse(BaseModel):
    """
    Per-request outcome of a bulk action.

    ``success`` is true only when every request was processed.
    """

    action: BulkAction
    success: bool
    succeeded: List[int]
    failed: List[BulkFailure]

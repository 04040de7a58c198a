"""
Pydantic schemas for workflow rule endpoints.

WHAT: Request/response schemas for admin workflow automation.

WHY: Schemas define API contracts for workflow operations:
1. Validate trigger and action types against the closed enums
2. Validate the shape of trigger conditions (statuses, hours_before)
3. Document API for OpenAPI/Swagger

HOW: Uses Pydantic v2 with Field validators and ORM mode for SQLAlchemy.
"""

from datetime import datetime
from typing import Any, List

from pydantic import BaseModel, Field, field_validator

from agencyos.models.request import RequestStatus
from agencyos.models.workflow import ActionType, TriggerType


def _validate_conditions(v: dict[str, Any] | None) -> dict[str, Any] | None:
    """Reject status conditions outside the closed status set."""
    if not v:
        return v
    for key in ("from_status", "to_status"):
        value = v.get(key)
        if value is not None and RequestStatus.parse(value) is None:
            raise ValueError(f"{key} must be one of: {', '.join(s.value for s in RequestStatus)}")
    hours = v.get("hours_before")
    if hours is not None and (not isinstance(hours, (int, float)) or hours <= 0):
        raise ValueError("hours_before must be a positive number")
    return v


class WorkflowCreate(BaseModel):
    """
    Workflow rule creation request.

    WHY: ``action_config`` holds either one action's settings or a list
    under ``actions`` for multi-step rules.
    """

    name: str = Field(..., min_length=1, max_length=255, description="Rule name")
    description: str | None = Field(None, max_length=5000)
    trigger_type: TriggerType = Field(..., description="Event that starts the rule")
    trigger_conditions: dict[str, Any] = Field(default_factory=dict)
    action_type: ActionType = Field(..., description="Primary action")
    action_config: dict[str, Any] = Field(default_factory=dict)
    is_active: bool = Field(default=True)

    @field_validator("trigger_conditions")
    @classmethod
    def validate_conditions(cls, v):
        return _validate_conditions(v)

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Ping account manager on review",
                "trigger_type": "status_change",
                "trigger_conditions": {"to_status": "review"},
                "action_type": "notify",
                "action_config": {"message": "{request_title} is ready for review"},
            }
        }


class WorkflowUpdate(BaseModel):
    """Partial update of a workflow rule."""

    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = Field(None, max_length=5000)
    trigger_type: TriggerType | None = None
    trigger_conditions: dict[str, Any] | None = None
    action_type: ActionType | None = None
    action_config: dict[str, Any] | None = None
    is_active: bool | None = None

    @field_validator("trigger_conditions")
    @classmethod
    def validate_conditions(cls, v):
        return _validate_conditions(v)


class WorkflowResponse(BaseModel):
    id: int
    name: str
    description: str | None = None
    trigger_type: TriggerType
    trigger_conditions: dict[str, Any]
    action_type: ActionType
    action_config: dict[str, Any]
    is_active: bool
    execution_count: int
    last_executed_at: datetime | None = None
    created_by: int | None = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class WorkflowListResponse(BaseModel):
    items: List[WorkflowResponse]
    total: int


class WorkflowExecutionResponse(BaseModel):
    id: int
    workflow_id: int
    request_id: int | None = None
    success: bool
    error_message: str | None = None
    executed_at: datetime

    class Config:
        from_attributes = True

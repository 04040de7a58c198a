"""
Pydantic schemas for request templates.

WHY: ``name`` and ``title_template`` are the only required fields; a
template without a company is only useful when marked global.
"""

from datetime import datetime
from typing import List

from pydantic import BaseModel, Field, field_validator

from agencyos.models.request import RequestPriority


class TemplateCreate(BaseModel):
    company_id: int | None = Field(None, gt=0, description="Company the template is for")
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = Field(None, max_length=10000)
    title_template: str = Field(..., min_length=1, max_length=500)
    description_template: str | None = Field(None, max_length=50000)
    default_priority: RequestPriority = RequestPriority.NORMAL
    default_sla_hours: int | None = Field(None, gt=0, le=24 * 365)
    category: str | None = Field(None, max_length=100)
    is_active: bool = True
    is_global: bool = False

    @field_validator("name", "title_template")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name and title_template are required")
        return v

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Instagram post",
                "title_template": "Instagram post: ",
                "description_template": "Copy:\nVisual references:\nPosting date:",
                "category": "social",
                "is_global": True,
            }
        }


class TemplateUpdate(BaseModel):
    """Partial update; only provided fields change."""

    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = Field(None, max_length=10000)
    title_template: str | None = Field(None, min_length=1, max_length=500)
    description_template: str | None = Field(None, max_length=50000)
    default_priority: RequestPriority | None = None
    default_sla_hours: int | None = Field(None, gt=0, le=24 * 365)
    category: str | None = Field(None, max_length=100)
    is_active: bool | None = None
    is_global: bool | None = None


class TemplateResponse(BaseModel):
    id: int
    company_id: int | None = None
    name: str
    description: str | None = None
    title_template: str
    description_template: str | None = None
    default_priority: RequestPriority
    default_sla_hours: int | None = None
    category: str | None = None
    is_active: bool
    is_global: bool
    created_by: int | None = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class TemplateListResponse(BaseModel):
    items: List[TemplateResponse]
    total: int

"""
Request template API endpoints.

WHAT: Templates clients pick from when submitting a request, and their
admin management.

WHY: Admins curate templates; everyone reads them. Clients see global
templates and their own company's, other companies' templates are 404.

HOW: Routes over RequestTemplateDAO. Writes are ADMIN-only.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from agencyos.core.deps import get_current_user, require_admin
from agencyos.core.exceptions import ResourceNotFoundError, ValidationError
from agencyos.dao.company import CompanyDAO
from agencyos.dao.template import RequestTemplateDAO
from agencyos.db.session import get_db
from agencyos.middleware.rate_limiter import RateLimitCategory, rate_limit
from agencyos.models.template import RequestTemplate
from agencyos.models.user import User, UserRole
from agencyos.schemas.template import (
    TemplateCreate,
    TemplateListResponse,
    TemplateResponse,
    TemplateUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/templates", tags=["templates"])

read_limit = Depends(rate_limit(RateLimitCategory.READ))
mutation_limit = Depends(rate_limit(RateLimitCategory.MUTATION))

NON_NULLABLE_FIELDS = ("name", "title_template", "default_priority", "is_active", "is_global")


async def _get_template(db: AsyncSession, template_id: int, caller: User) -> RequestTemplate:
    dao = RequestTemplateDAO(db)
    if caller.role == UserRole.ADMIN:
        template = await dao.get_by_id(template_id)
    else:
        template = await dao.get_visible(template_id, caller.company_id)
    if template is None:
        raise ResourceNotFoundError(message="Template not found")
    return template


@router.get(
    "",
    response_model=TemplateListResponse,
    status_code=status.HTTP_200_OK,
    summary="List request templates",
    dependencies=[read_limit],
)
async def list_templates(
    category: Optional[str] = Query(default=None, max_length=100),
    active: bool = Query(default=True, description="Only active templates"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> TemplateListResponse:
    """Templates ordered by name. Clients see global and own-company ones."""
    templates = await RequestTemplateDAO(db).list(
        active_only=active,
        category=category,
        scoped=current_user.role != UserRole.ADMIN,
        company_id=current_user.company_id,
    )
    return TemplateListResponse(
        items=[TemplateResponse.model_validate(t) for t in templates],
        total=len(templates),
    )


@router.post(
    "",
    response_model=TemplateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a request template",
    dependencies=[mutation_limit],
)
async def create_template(
    data: TemplateCreate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> TemplateResponse:
    """
    Raises:
        ResourceNotFoundError (404): Unknown company_id
    """
    if data.company_id is not None and await CompanyDAO(db).get_by_id(data.company_id) is None:
        raise ResourceNotFoundError(message="Company not found")

    template = await RequestTemplateDAO(db).create(**data.model_dump(), created_by=admin.id)
    logger.info(f"Template {template.id} created by {admin.id}")
    return TemplateResponse.model_validate(template)


@router.get(
    "/{template_id}",
    response_model=TemplateResponse,
    status_code=status.HTTP_200_OK,
    summary="Get a request template",
    dependencies=[read_limit],
)
async def get_template(
    template_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> TemplateResponse:
    return TemplateResponse.model_validate(await _get_template(db, template_id, current_user))


@router.patch(
    "/{template_id}",
    response_model=TemplateResponse,
    status_code=status.HTTP_200_OK,
    summary="Update a request template",
    dependencies=[mutation_limit],
)
async def update_template(
    template_id: int,
    data: TemplateUpdate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> TemplateResponse:
    """
    Raises:
        ValidationError (400): Body carries no fields
        ResourceNotFoundError (404): Unknown template
    """
    changes = {
        field: value
        for field, value in data.model_dump(exclude_unset=True).items()
        if not (value is None and field in NON_NULLABLE_FIELDS)
    }
    if not changes:
        raise ValidationError(message="No valid fields to update")

    template = await _get_template(db, template_id, admin)
    template = await RequestTemplateDAO(db).update(template, **changes)
    logger.info(f"Template {template.id} updated by {admin.id}: {sorted(changes)}")
    return TemplateResponse.model_validate(template)


@router.delete(
    "/{template_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a request template",
    dependencies=[mutation_limit],
)
async def delete_template(
    template_id: int,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> None:
    if not await RequestTemplateDAO(db).delete(template_id):
        raise ResourceNotFoundError(message="Template not found")
    logger.info(f"Template {template_id} deleted by {admin.id}")

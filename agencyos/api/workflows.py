"""
Workflow automation API endpoints.

WHAT: RESTful API for workflow rules and their execution log.

WHY: Agencies configure automation as data:
1. A trigger (status change, comment, assignment, due date approaching)
2. Optional conditions narrowing the trigger
3. One or more actions (notify, assign, change status or priority, email)

HOW: FastAPI router with:
- ADMIN-only access on every route
- Rules interpreted by WorkflowEngine; this router only stores them
- Manual run of the due-date check for operators
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from agencyos.core.deps import require_admin
from agencyos.core.exceptions import ResourceNotFoundError, ValidationError
from agencyos.dao.workflow import WorkflowExecutionDAO, WorkflowRuleDAO
from agencyos.db.session import get_db
from agencyos.middleware.rate_limiter import RateLimitCategory, rate_limit
from agencyos.models.user import User
from agencyos.models.workflow import TriggerType, WorkflowRule
from agencyos.schemas.workflow import (
    WorkflowCreate,
    WorkflowExecutionResponse,
    WorkflowListResponse,
    WorkflowResponse,
    WorkflowUpdate,
)
from agencyos.services.scheduler import get_scheduler_status
from agencyos.services.workflow_engine import WorkflowEngine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/workflows", tags=["workflows"])

read_limit = Depends(rate_limit(RateLimitCategory.READ))
mutation_limit = Depends(rate_limit(RateLimitCategory.MUTATION))


async def _get_rule(db: AsyncSession, workflow_id: int) -> WorkflowRule:
    rule = await WorkflowRuleDAO(db).get_by_id(workflow_id)
    if rule is None:
        raise ResourceNotFoundError(message="Workflow not found")
    return rule


@router.get(
    "",
    response_model=WorkflowListResponse,
    status_code=status.HTTP_200_OK,
    summary="List workflow rules",
    dependencies=[read_limit],
)
async def list_workflows(
    trigger_type: Optional[TriggerType] = Query(default=None),
    is_active: Optional[bool] = Query(default=None),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> WorkflowListResponse:
    rules = await WorkflowRuleDAO(db).list(trigger_type=trigger_type, is_active=is_active)
    return WorkflowListResponse(
        items=[WorkflowResponse.model_validate(r) for r in rules],
        total=len(rules),
    )


@router.post(
    "",
    response_model=WorkflowResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a workflow rule",
    dependencies=[mutation_limit],
)
async def create_workflow(
    data: WorkflowCreate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> WorkflowResponse:
    rule = await WorkflowRuleDAO(db).create(
        name=data.name,
        description=data.description,
        trigger_type=data.trigger_type,
        trigger_conditions=data.trigger_conditions,
        action_type=data.action_type,
        action_config=data.action_config,
        is_active=data.is_active,
        created_by=admin.id,
    )
    logger.info(f"Workflow {rule.id} ({rule.trigger_type.value} -> {rule.action_type.value}) created by {admin.id}")
    return WorkflowResponse.model_validate(rule)


@router.get(
    "/scheduler",
    status_code=status.HTTP_200_OK,
    summary="Background scheduler status",
    dependencies=[read_limit],
)
async def scheduler_status(
    admin: User = Depends(require_admin),
) -> dict:
    return get_scheduler_status()


@router.post(
    "/due-date-check",
    status_code=status.HTTP_200_OK,
    summary="Run due date workflows now",
    dependencies=[mutation_limit],
)
async def run_due_date_check(
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """
    Run the scheduled due-date check immediately.

    WHY: Lets operators verify a new due_date_approaching rule without
    waiting for the next scheduler tick.
    """
    executed = await WorkflowEngine(db).check_due_dates()
    return {"executed": executed}


@router.get(
    "/{workflow_id}",
    response_model=WorkflowResponse,
    status_code=status.HTTP_200_OK,
    summary="Get a workflow rule",
    dependencies=[read_limit],
)
async def get_workflow(
    workflow_id: int,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> WorkflowResponse:
    return WorkflowResponse.model_validate(await _get_rule(db, workflow_id))


@router.patch(
    "/{workflow_id}",
    response_model=WorkflowResponse,
    status_code=status.HTTP_200_OK,
    summary="Update a workflow rule",
    dependencies=[mutation_limit],
)
async def update_workflow(
    workflow_id: int,
    data: WorkflowUpdate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> WorkflowResponse:
    """
    Partially update a rule.

    Raises:
        ValidationError (400): Body carries no fields
        ResourceNotFoundError (404): Unknown rule
    """
    changes = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}
    if not changes:
        raise ValidationError(message="No fields to update")

    rule = await _get_rule(db, workflow_id)
    rule = await WorkflowRuleDAO(db).update(rule, **changes)
    return WorkflowResponse.model_validate(rule)


@router.delete(
    "/{workflow_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a workflow rule",
    dependencies=[mutation_limit],
)
async def delete_workflow(
    workflow_id: int,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> None:
    await _get_rule(db, workflow_id)
    await WorkflowRuleDAO(db).delete(workflow_id)
    logger.info(f"Workflow {workflow_id} deleted by {admin.id}")


@router.get(
    "/{workflow_id}/executions",
    response_model=List[WorkflowExecutionResponse],
    status_code=status.HTTP_200_OK,
    summary="Recent executions of a rule",
    dependencies=[read_limit],
)
async def list_executions(
    workflow_id: int,
    limit: int = Query(default=50, ge=1, le=200),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> List[WorkflowExecutionResponse]:
    await _get_rule(db, workflow_id)
    executions = await WorkflowExecutionDAO(db).list_for_workflow(workflow_id, limit=limit)
    return [WorkflowExecutionResponse.model_validate(e) for e in executions]

"""
Workflow Data Access Objects.

WHAT: Database operations for workflow rules and their execution log.
"""

from datetime import datetime
from typing import Optional, List

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from agencyos.dao.base import BaseDAO
from agencyos.models.base import utcnow
from agencyos.models.workflow import WorkflowRule, WorkflowExecution, TriggerType


class WorkflowRuleDAO(BaseDAO[WorkflowRule]):
    """Data Access Object for workflow rules."""

    def __init__(self, session: AsyncSession):
        super().__init__(WorkflowRule, session)

    async def list(
        self,
        trigger_type: Optional[TriggerType] = None,
        is_active: Optional[bool] = None,
    ) -> List[WorkflowRule]:
        """List rules, newest first."""
        query = select(WorkflowRule)
        if trigger_type is not None:
            query = query.where(WorkflowRule.trigger_type == trigger_type)
        if is_active is not None:
            query = query.where(WorkflowRule.is_active.is_(is_active))
        result = await self.session.execute(
            query.order_by(WorkflowRule.created_at.desc(), WorkflowRule.id.desc())
        )
        return list(result.scalars().all())

    async def get_active_by_trigger(self, trigger_type: TriggerType) -> List[WorkflowRule]:
        """Active rules for a trigger, oldest first so runs are deterministic."""
        result = await self.session.execute(
            select(WorkflowRule)
            .where(
                WorkflowRule.trigger_type == trigger_type,
                WorkflowRule.is_active.is_(True),
            )
            .order_by(WorkflowRule.id.asc())
        )
        return list(result.scalars().all())

    async def record_success(self, workflow_id: int) -> None:
        """
        Bump the execution counter.

        WHY: Increment in SQL so concurrent runs do not lose counts.
        """
        await self.session.execute(
            update(WorkflowRule)
            .where(WorkflowRule.id == workflow_id)
            .values(
                execution_count=WorkflowRule.execution_count + 1,
                last_executed_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )


class WorkflowExecutionDAO(BaseDAO[WorkflowExecution]):
    """Data Access Object for the workflow execution log."""

    def __init__(self, session: AsyncSession):
        super().__init__(WorkflowExecution, session)

    async def log(
        self,
        workflow_id: int,
        request_id: Optional[int],
        success: bool,
        error_message: Optional[str] = None,
    ) -> WorkflowExecution:
        return await self.create(
            workflow_id=workflow_id,
            request_id=request_id,
            success=success,
            error_message=error_message,
        )

    async def has_execution_since(
        self,
        workflow_id: int,
        request_id: int,
        since: datetime,
    ) -> bool:
        """Whether the rule already ran for the request after ``since``."""
        result = await self.session.execute(
            select(WorkflowExecution.id)
            .where(
                WorkflowExecution.workflow_id == workflow_id,
                WorkflowExecution.request_id == request_id,
                WorkflowExecution.executed_at >= since,
            )
            .limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def list_for_workflow(self, workflow_id: int, limit: int = 50) -> List[WorkflowExecution]:
        result = await self.session.execute(
            select(WorkflowExecution)
            .where(WorkflowExecution.workflow_id == workflow_id)
            .order_by(WorkflowExecution.executed_at.desc(), WorkflowExecution.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

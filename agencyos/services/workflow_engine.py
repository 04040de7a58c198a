"""
Workflow automation engine.

WHAT: Runs admin-configured workflow rules when request events happen.

WHY: Agencies automate routine follow-ups without code changes, e.g.
"when a request enters review, notify the team" or "two days before the
due date, raise the priority". Rules are data (trigger + action config),
so this engine is the single interpreter for them.

HOW:
- Trigger hooks (on_status_change, on_comment_added, on_assignment_change)
  are called by the lifecycle guard and the comment endpoint
- check_due_dates() is run periodically by the scheduler
- A rule's action_config is one action or {"actions": [...]}; actions run
  in order and the first failure stops the rule
- Each run writes a workflow_executions row; successes bump
  execution_count. Errors are logged and never reach the triggering
  operation.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from agencyos.core.exceptions import AppException, WorkflowActionError
from agencyos.dao.request import RequestDAO
from agencyos.dao.user import UserDAO
from agencyos.dao.workflow import WorkflowExecutionDAO, WorkflowRuleDAO
from agencyos.models.activity import ActivityType
from agencyos.models.base import utcnow
from agencyos.models.notification import NotificationType
from agencyos.models.request import RequestPriority, RequestStatus, ServiceRequest
from agencyos.models.user import UserRole
from agencyos.models.workflow import ActionType, TriggerType, WorkflowRule
from agencyos.services.activity_service import ActivityService
from agencyos.services.audit import AuditService
from agencyos.services.email import get_email_service
from agencyos.services.lifecycle import LifecycleGuard
from agencyos.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

DEFAULT_HOURS_BEFORE = 24
# A due-date rule fires at most once per request within this window
DUE_DATE_REPEAT_WINDOW = timedelta(hours=24)


@dataclass
class WorkflowContext:
    """Event data available to actions and message interpolation."""

    request: ServiceRequest
    previous_status: Optional[str] = None
    new_status: Optional[str] = None
    triggered_by: Optional[int] = None
    trigger: Optional[TriggerType] = None


def interpolate_message(message: str, context: WorkflowContext) -> str:
    """
    Fill the supported placeholders in a configured message.

    Placeholders: {request_title}, {request_id}, {status}
    """
    status = context.new_status or (context.request.status.value if context.request.status else "")
    return (
        message.replace("{request_title}", context.request.title or "")
        .replace("{request_id}", str(context.request.id))
        .replace("{status}", status)
    )


def action_list(rule: WorkflowRule) -> List[Dict[str, Any]]:
    """
    Normalize a rule's action config into a list of actions.

    A single-action config without ``type`` takes the rule's action_type.
    """
    config = rule.action_config or {}
    actions = config.get("actions")
    if isinstance(actions, list):
        return [a if isinstance(a, dict) else {} for a in actions]
    action = dict(config)
    action.setdefault("type", rule.action_type.value if rule.action_type else None)
    return [action]


class WorkflowEngine:
    """
    Interpreter for workflow rules.

    Example:
        engine = WorkflowEngine(db)
        await engine.on_status_change(request, RequestStatus.ACTIVE, RequestStatus.REVIEW, user.id)
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.rules = WorkflowRuleDAO(session)
        self.executions = WorkflowExecutionDAO(session)
        self.requests = RequestDAO(session)
        self.users = UserDAO(session)
        self.notifications = NotificationService(session)
        self.audit = AuditService(session)
        self.activities = ActivityService(session)

    # =========================================================================
    # Triggers
    # =========================================================================

    async def on_status_change(
        self,
        request: ServiceRequest,
        previous: RequestStatus,
        new: RequestStatus,
        triggered_by: Optional[int] = None,
    ) -> int:
        """
        Run active status_change rules whose conditions match.

        Conditions: optional ``from_status`` and ``to_status``.

        Returns:
            Number of rules executed
        """
        context = WorkflowContext(request, previous.value, new.value, triggered_by)

        def matches(rule: WorkflowRule) -> bool:
            conditions = rule.trigger_conditions or {}
            if conditions.get("from_status") and conditions["from_status"] != previous.value:
                return False
            if conditions.get("to_status") and conditions["to_status"] != new.value:
                return False
            return True

        return await self._run_trigger(TriggerType.STATUS_CHANGE, context, matches)

    async def on_comment_added(
        self,
        request: ServiceRequest,
        triggered_by: Optional[int] = None,
    ) -> int:
        """Run active comment_added rules."""
        return await self._run_trigger(
            TriggerType.COMMENT_ADDED, WorkflowContext(request, triggered_by=triggered_by)
        )

    async def on_assignment_change(
        self,
        request: ServiceRequest,
        previous_assignee: Optional[int],
        new_assignee: Optional[int],
        triggered_by: Optional[int] = None,
    ) -> int:
        """Run active assignment_change rules."""
        return await self._run_trigger(
            TriggerType.ASSIGNMENT_CHANGE, WorkflowContext(request, triggered_by=triggered_by)
        )

    async def check_due_dates(self) -> int:
        """
        Run due_date_approaching rules for requests due soon.

        For each rule, open requests due within ``hours_before`` (default
        24) are considered; a request the rule already ran for in the last
        24 hours is skipped.

        Returns:
            Number of executions
        """
        now = utcnow()
        executed = 0
        try:
            rules = await self.rules.get_active_by_trigger(TriggerType.DUE_DATE_APPROACHING)
        except Exception as e:
            logger.error(f"Failed to load due date workflows: {e}", exc_info=True)
            return 0

        for rule in rules:
            hours_before = (rule.trigger_conditions or {}).get("hours_before") or DEFAULT_HOURS_BEFORE
            due = await self.requests.list_due_between(now, now + timedelta(hours=hours_before))
            for request in due:
                if await self.executions.has_execution_since(rule.id, request.id, now - DUE_DATE_REPEAT_WINDOW):
                    continue
                await self.execute_workflow(
                    rule, WorkflowContext(request, trigger=TriggerType.DUE_DATE_APPROACHING)
                )
                executed += 1

        if executed:
            logger.info(f"Due date check executed {executed} workflow(s)")
        return executed

    async def _run_trigger(self, trigger: TriggerType, context: WorkflowContext, matches=None) -> int:
        try:
            rules = await self.rules.get_active_by_trigger(trigger)
        except Exception as e:
            logger.error(f"Failed to load {trigger.value} workflows: {e}", exc_info=True)
            return 0

        executed = 0
        for rule in rules:
            if matches is not None and not matches(rule):
                continue
            await self.execute_workflow(rule, context)
            executed += 1
        return executed

    # =========================================================================
    # Execution
    # =========================================================================

    async def execute_workflow(self, rule: WorkflowRule, context: WorkflowContext) -> bool:
        """
        Run every action of a rule and log the execution.

        HOW: The actions share one savepoint, so a failing action undoes the
        rule's earlier writes without touching the triggering operation.

        Returns:
            True if all actions succeeded
        """
        rule_id = rule.id
        request_id = context.request.id
        try:
            async with self.session.begin_nested():
                for action in action_list(rule):
                    await self.execute_action(action, context)
        except Exception as e:
            message = e.message if isinstance(e, AppException) else str(e)
            logger.warning(f"Workflow {rule_id} failed for request {request_id}: {message}")
            await self._log_execution(rule_id, request_id, False, message)
            # Rolled-back changes leave the request expired
            await self._reload_request(context, request_id)
            return False

        await self._log_execution(rule_id, request_id, True)
        try:
            async with self.session.begin_nested():
                await self.rules.record_success(rule_id)
        except Exception as e:
            logger.error(f"Failed to update execution count of workflow {rule_id}: {e}", exc_info=True)
        return True

    async def _reload_request(self, context: WorkflowContext, request_id: int) -> None:
        try:
            request = await self.requests.get_by_id(request_id, refresh=True)
        except Exception as e:
            logger.error(f"Failed to reload request {request_id}: {e}", exc_info=True)
            return
        if request is not None:
            context.request = request

    async def _log_execution(
        self,
        workflow_id: int,
        request_id: Optional[int],
        success: bool,
        error_message: Optional[str] = None,
    ) -> None:
        try:
            async with self.session.begin_nested():
                await self.executions.log(workflow_id, request_id, success, error_message)
        except Exception as e:
            logger.error(f"Failed to log execution of workflow {workflow_id}: {e}", exc_info=True)

    async def execute_action(self, action: Dict[str, Any], context: WorkflowContext) -> None:
        """
        Execute a single action.

        Raises:
            WorkflowActionError: Unsupported action or invalid configuration
            AppException: Raised by the lifecycle guard (e.g. invalid edge)
        """
        action_type = action.get("type")
        message = interpolate_message(action.get("message") or "", context)

        if action_type == ActionType.NOTIFY.value:
            await self._notify(context, message)
        elif action_type == ActionType.CHANGE_STATUS.value:
            target = action.get("target_status")
            if not target:
                raise WorkflowActionError("change_status requires target_status")
            await LifecycleGuard(self.session).apply_automated_transition(context.request, target)
        elif action_type == ActionType.CHANGE_PRIORITY.value:
            await self._change_priority(context, action.get("priority"))
        elif action_type == ActionType.ASSIGN.value:
            await self._assign(context, action.get("user_id"))
        elif action_type == ActionType.SEND_EMAIL.value:
            await self._send_email(context, action.get("subject"), message)
        else:
            raise WorkflowActionError(f"Unsupported workflow action: {action_type}")

    # =========================================================================
    # Actions
    # =========================================================================

    async def _notify(self, context: WorkflowContext, message: str) -> None:
        """Notify the assignee and every admin, once each."""
        notification_type = (
            NotificationType.DUE_DATE
            if context.trigger == TriggerType.DUE_DATE_APPROACHING
            else NotificationType.STATUS_CHANGE
        )
        request = context.request
        recipients: List[int] = []
        if request.assigned_to:
            recipients.append(request.assigned_to)
        for admin in await self.users.list_admins():
            if admin.id not in recipients:
                recipients.append(admin.id)

        await self.notifications.notify_custom(
            request,
            recipients,
            title="Workflow notification",
            message=message or f"Update on: {request.title}",
            type=notification_type,
        )

    async def _change_priority(self, context: WorkflowContext, priority: Optional[str]) -> None:
        try:
            target = RequestPriority(priority)
        except ValueError:
            raise WorkflowActionError(f"Invalid priority: {priority}")

        request = await self.requests.get_by_id(context.request.id, refresh=True)
        if request is None or request.priority == target:
            return
        before = request.snapshot()
        request = await self.requests.update(request, priority=target)
        await self.audit.log_request_updated(request, before, request.snapshot(), user_id=None)
        await self.activities.record(
            request.id,
            activity_type=ActivityType.WORKFLOW,
            description=f"Workflow changed priority to {target.value}",
        )

    async def _assign(self, context: WorkflowContext, user_id: Optional[int]) -> None:
        if not user_id:
            raise WorkflowActionError("assign requires user_id")
        target = await self.users.get_by_id(int(user_id))
        if target is None or target.role != UserRole.ADMIN:
            raise WorkflowActionError("Workflows can only assign to team members (admins)")

        request = await self.requests.get_by_id(context.request.id, refresh=True)
        if request is None or request.assigned_to == target.id:
            return
        before = request.snapshot()
        request = await self.requests.set_assignee(request, target.id)
        await self.audit.log_assignment(request, before, request.snapshot(), user_id=None)
        await self.notifications.notify_assignment(request, target.id)

    async def _send_email(self, context: WorkflowContext, subject: Optional[str], message: str) -> None:
        """Email the assignee and the request's company members."""
        request = context.request
        recipients: Dict[str, Optional[str]] = {}
        if request.assigned_to:
            assignee = await self.users.get_by_id(request.assigned_to)
            if assignee is not None:
                recipients[assignee.email] = assignee.full_name
        for member in await self.users.list_company_members(request.company_id):
            recipients.setdefault(member.email, member.full_name)

        email = get_email_service()
        subject = interpolate_message(subject or "Update on: {request_title}", context)
        for address in recipients:
            result = await email.send_workflow_email(
                to_email=address,
                subject=subject,
                message=message or subject,
                request_id=request.id,
            )
            if not result.success:
                raise WorkflowActionError(f"Email to {address} failed: {result.error}")

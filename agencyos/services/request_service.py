"""
Service request operations.

WHAT: Create, read, edit and delete requests; comment threads and the
request timeline.

WHY: Request routes share a set of rules that must not drift apart:
1. Clients only ever see their own company's requests (others are 404)
2. Submission needs an active company with room under its plan limit
3. Every mutation leaves an audit row and a timeline entry

Status changes and assignment are not here: they belong to the
LifecycleGuard.

HOW: Each method loads through RequestDAO with the caller's company scope,
applies the rule checks, writes, then emits side effects that log and
swallow their own failures.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from agencyos.core.exceptions import (
    AppException,
    AuthorizationError,
    CompanyInactiveError,
    InvalidAssigneeError,
    ResourceNotFoundError,
    ValidationError,
)
from agencyos.dao.company import CompanyDAO
from agencyos.dao.request import RequestCommentDAO, RequestDAO
from agencyos.dao.user import UserDAO
from agencyos.models.activity import RequestActivity
from agencyos.models.company import Company
from agencyos.models.request import (
    RequestComment,
    RequestPriority,
    RequestStatus,
    ServiceRequest,
)
from agencyos.models.user import User, UserRole
from agencyos.schemas.request import BulkAction, CommentCreate, RequestCreate, RequestUpdate
from agencyos.services.activity_service import ActivityService
from agencyos.services.audit import AuditService
from agencyos.services.lifecycle import LifecycleGuard, can_delete, parse_status
from agencyos.services.limits import ActiveLimitEnforcer
from agencyos.services.notification_service import NotificationService
from agencyos.services.workflow_engine import WorkflowEngine

logger = logging.getLogger(__name__)

# Fields any caller may change with PATCH; admins may also move the due date
CLIENT_EDITABLE_FIELDS = ("title", "description", "priority", "assets_link", "video_brief")
ADMIN_EDITABLE_FIELDS = CLIENT_EDITABLE_FIELDS + ("due_date",)
NON_NULLABLE_FIELDS = ("title", "priority")


def company_scope(caller: User) -> Optional[int]:
    """Company a caller is confined to; None means agency-wide."""
    return None if caller.role == UserRole.ADMIN else caller.company_id


class RequestService:
    """
    Request operations on behalf of an authenticated caller.

    Example:
        service = RequestService(db)
        request = await service.create(RequestCreate(title="Logo refresh"), current_user)
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.requests = RequestDAO(session)
        self.comments = RequestCommentDAO(session)
        self.companies = CompanyDAO(session)
        self.audit = AuditService(session)
        self.activities = ActivityService(session)
        self.notifications = NotificationService(session)

    async def get_visible(self, request_id: int, caller: User) -> ServiceRequest:
        """
        Load a request the caller may see.

        Raises:
            ResourceNotFoundError: Missing, or outside the caller's company
        """
        if caller.role != UserRole.ADMIN and caller.company_id is None:
            raise ResourceNotFoundError(message="Request not found")
        request = await self.requests.get_by_id(request_id, company_id=company_scope(caller), refresh=True)
        if request is None:
            raise ResourceNotFoundError(message="Request not found")
        return request

    async def _require_active_company(self, company_id: Optional[int]) -> Company:
        if company_id is None:
            raise CompanyInactiveError(message="No company associated with this account")
        company = await self.companies.get_by_id(company_id)
        if company is None or not company.is_active:
            raise CompanyInactiveError()
        return company

    # =========================================================================
    # Requests
    # =========================================================================

    async def list(
        self,
        caller: User,
        skip: int = 0,
        limit: int = 50,
        status: Optional[RequestStatus] = None,
        priority: Optional[RequestPriority] = None,
        company_id: Optional[int] = None,
        assigned_to: Optional[int] = None,
        search: Optional[str] = None,
    ) -> Tuple[List[ServiceRequest], int]:
        """
        List requests visible to the caller.

        The ``company_id`` filter is honoured for admins only.
        """
        if caller.role != UserRole.ADMIN:
            if caller.company_id is None:
                return [], 0
            company_id = caller.company_id
        return await self.requests.list(
            company_id=company_id,
            skip=skip,
            limit=limit,
            status=status,
            priority=priority,
            assigned_to=assigned_to,
            search=search,
        )

    async def create(self, data: RequestCreate, caller: User) -> ServiceRequest:
        """
        Submit a new request into ``queue``.

        Raises:
            CompanyInactiveError: Client's company is not active
            ValidationError: Admin did not say which company
            ResourceNotFoundError: Admin named an unknown company
            LimitReachedError: Company is at its request limit
        """
        if caller.role == UserRole.ADMIN:
            if data.company_id is None:
                raise ValidationError(message="company_id is required")
            company = await self.companies.get_by_id(data.company_id)
            if company is None:
                raise ResourceNotFoundError(message="Company not found")
        else:
            company = await self._require_active_company(caller.company_id)

        await ActiveLimitEnforcer(self.session).ensure_can_create(company)

        request = await self.requests.create(
            company_id=company.id,
            created_by=caller.id,
            title=data.title,
            description=data.description,
            priority=data.priority,
            assets_link=data.assets_link,
            video_brief=data.video_brief,
            due_date=data.due_date,
            status=RequestStatus.QUEUE,
        )
        logger.info(f"Request {request.id} created for company {company.id} by user {caller.id}")

        await self.audit.log_request_created(request, user_id=caller.id)
        await self.activities.record_created(request, user_id=caller.id)
        return await self.requests.get_by_id(request.id, refresh=True)

    async def update(self, request_id: int, data: RequestUpdate, caller: User) -> ServiceRequest:
        """
        Apply a partial edit.

        Raises:
            ResourceNotFoundError: Request not visible
            ValidationError: Nothing editable in the body
        """
        editable = ADMIN_EDITABLE_FIELDS if caller.role == UserRole.ADMIN else CLIENT_EDITABLE_FIELDS
        changes: Dict[str, Any] = {
            field: value
            for field, value in data.model_dump(exclude_unset=True).items()
            if field in editable and not (value is None and field in NON_NULLABLE_FIELDS)
        }
        if not changes:
            raise ValidationError(message="No valid fields to update")

        request = await self.get_visible(request_id, caller)
        before = request.snapshot()
        request = await self.requests.update(request, **changes)
        after = request.snapshot()

        changed = [field for field in changes if before.get(field) != after.get(field)]
        await self.audit.log_request_updated(request, before, after, user_id=caller.id)
        if changed:
            await self.activities.record_updated(request, changed, user_id=caller.id)
        return await self.requests.get_by_id(request.id, refresh=True)

    async def delete(self, request_id: int, caller: User) -> None:
        """
        Delete a request and its comments.

        Raises:
            ResourceNotFoundError: Request not visible
            AuthorizationError: Client deleting a request past ``queue``
        """
        request = await self.get_visible(request_id, caller)
        if not can_delete(request, caller):
            raise AuthorizationError(message="Can only delete requests in queue status")

        await self.audit.log_request_deleted(request, user_id=caller.id)
        await self.requests.delete_request(request)
        logger.info(f"Request {request_id} deleted by user {caller.id}")

    # =========================================================================
    # Bulk Actions
    # =========================================================================

    async def bulk_action(
        self,
        action: BulkAction,
        request_ids: List[int],
        value: Any,
        caller: User,
    ) -> Dict[str, Any]:
        """
        Apply one action to many requests, each on its own.

        WHY: Every request goes through the same checks as the single-request
        endpoints, so a bulk move still follows the status graph and the
        active limit. A rejected request is rolled back and reported alone;
        the others keep their change.

        Returns:
            {"succeeded": [ids], "failed": [{"id", "error", "code"}]}

        Raises:
            AuthorizationError: Caller is not an admin
            InvalidStatusTransitionError: Unknown target status
            ValidationError: Missing or invalid value for the action
            InvalidAssigneeError: Assignee is not an admin
        """
        if caller.role != UserRole.ADMIN:
            raise AuthorizationError(message="Only admins can perform bulk actions")
        apply = await self._bulk_operation(action, value, caller)

        succeeded: List[int] = []
        failed: List[Dict[str, Any]] = []
        for request_id in request_ids:
            try:
                async with self.session.begin_nested():
                    await apply(request_id)
                succeeded.append(request_id)
            except AppException as e:
                failed.append({"id": request_id, "error": e.message, "code": e.code})

        logger.info(
            f"Bulk {action.value} by user {caller.id}: {len(succeeded)} succeeded, {len(failed)} failed"
        )
        return {"succeeded": succeeded, "failed": failed}

    async def _bulk_operation(
        self,
        action: BulkAction,
        value: Any,
        caller: User,
    ) -> Callable[[int], Awaitable[Any]]:
        """Validate ``value`` once and return the per-request operation."""
        guard = LifecycleGuard(self.session)

        if action == BulkAction.UPDATE_STATUS:
            if not isinstance(value, str):
                raise ValidationError(message="Valid status value is required")
            target = parse_status(value)
            return lambda request_id: guard.transition(request_id, target, caller)

        if action == BulkAction.UPDATE_PRIORITY:
            try:
                priority = RequestPriority(value)
            except ValueError:
                raise ValidationError(message="Valid priority value is required")
            changes = RequestUpdate(priority=priority)
            return lambda request_id: self.update(request_id, changes, caller)

        if action == BulkAction.ASSIGN:
            try:
                assignee_id = int(value)
            except (TypeError, ValueError):
                raise ValidationError(message="User ID value is required for assignment")
            assignee = await UserDAO(self.session).get_by_id(assignee_id)
            if assignee is None:
                raise ResourceNotFoundError(message="User not found")
            if assignee.role != UserRole.ADMIN:
                raise InvalidAssigneeError()
            return lambda request_id: guard.assign(request_id, assignee_id, caller)

        return lambda request_id: self.delete(request_id, caller)

    # =========================================================================
    # Comments
    # =========================================================================

    async def list_comments(self, request_id: int, caller: User) -> List[RequestComment]:
        """Comment thread, oldest first; internal notes only for admins."""
        request = await self.get_visible(request_id, caller)
        return await self.comments.list_for_request(
            request.id, include_internal=caller.role == UserRole.ADMIN
        )

    async def add_comment(self, request_id: int, data: CommentCreate, caller: User) -> RequestComment:
        """
        Post a comment.

        Raises:
            ResourceNotFoundError: Request not visible
            AuthorizationError: Client posting an internal note
            CompanyInactiveError: Client's company is not active
        """
        request = await self.get_visible(request_id, caller)
        if caller.role != UserRole.ADMIN:
            if data.is_internal:
                raise AuthorizationError(message="Only team members can post internal comments")
            await self._require_active_company(caller.company_id)

        comment = await self.comments.create(
            request_id=request.id,
            user_id=caller.id,
            content=data.content,
            is_internal=data.is_internal,
        )

        await self.audit.log_comment(request, comment, user_id=caller.id)
        await self.activities.record_comment(request, comment, user_id=caller.id)
        await self.notifications.notify_comment(request, caller.id, caller.full_name or caller.email)

        await WorkflowEngine(self.session).on_comment_added(request, triggered_by=caller.id)
        return await self.comments.get_with_author(comment.id)

    # =========================================================================
    # Timeline
    # =========================================================================

    async def timeline(
        self,
        request_id: int,
        caller: User,
        skip: int = 0,
        limit: int = 100,
    ) -> List[RequestActivity]:
        request = await self.get_visible(request_id, caller)
        return await self.activities.get_timeline(
            request.id,
            include_internal=caller.role == UserRole.ADMIN,
            skip=skip,
            limit=limit,
        )

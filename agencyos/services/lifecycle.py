"""
Request lifecycle guard.

WHAT: Validates and applies status transitions and assignments on requests.

WHY: Status and assignee are the two fields with hard rules:
1. Status always stays in the closed set and only follows the status graph
2. Who may take which edge is decided by one authorization table, not by
   per-route role checks
3. An assignee is always agency staff (admin role)
4. Every accepted change writes exactly one audit row with full
   before/after snapshots

HOW: Each operation loads the request fresh, runs its checks in a fixed
order, persists through the DAO (status via compare-and-swap), and then
emits side effects (audit, timeline, notifications, workflows, email).
Side effects are logged on failure and never undo the change.
"""

import enum
import logging
from typing import Dict, FrozenSet, Optional, Tuple, Union

from sqlalchemy.ext.asyncio import AsyncSession

from agencyos.core.exceptions import (
    AuthorizationError,
    ConflictError,
    InvalidAssigneeError,
    InvalidStatusTransitionError,
    ResourceNotFoundError,
)
from agencyos.dao.company import CompanyDAO
from agencyos.dao.notification_preference import NotificationPreferenceDAO
from agencyos.dao.request import RequestDAO
from agencyos.dao.user import UserDAO
from agencyos.models.base import utcnow
from agencyos.models.request import RequestStatus, ServiceRequest
from agencyos.models.user import User, UserRole
from agencyos.services.activity_service import ActivityService
from agencyos.services.audit import AuditService
from agencyos.services.email import get_email_service
from agencyos.services.limits import ActiveLimitEnforcer
from agencyos.services.notification_service import NotificationService

logger = logging.getLogger(__name__)


# ============================================================================
# Status Graph and Authorization Table
# ============================================================================


class EdgeKind(str, enum.Enum):
    """Classes of status edges, used by the authorization table."""

    FORWARD = "forward"
    CANCEL = "cancel"
    BACKWARD = "backward"


Q, A, R, D = RequestStatus.QUEUE, RequestStatus.ACTIVE, RequestStatus.REVIEW, RequestStatus.DONE

STATUS_GRAPH: Dict[Tuple[RequestStatus, RequestStatus], EdgeKind] = {
    (Q, A): EdgeKind.FORWARD,
    (A, R): EdgeKind.FORWARD,
    (R, D): EdgeKind.FORWARD,
    (Q, D): EdgeKind.CANCEL,
    (A, Q): EdgeKind.BACKWARD,
    (R, A): EdgeKind.BACKWARD,
    (D, Q): EdgeKind.BACKWARD,
}

# role -> edge kinds it may take. Clients take none; their only lifecycle
# power is deleting a queue request of their own company (see can_delete).
TRANSITION_PERMISSIONS: Dict[UserRole, FrozenSet[EdgeKind]] = {
    UserRole.ADMIN: frozenset(EdgeKind),
    UserRole.CLIENT: frozenset(),
}

# Moving into these statuses tells the submitting client by email
CLIENT_EMAIL_STATUSES = (RequestStatus.REVIEW, RequestStatus.DONE)


def parse_status(value: Union[str, RequestStatus]) -> RequestStatus:
    """
    Parse a proposed status.

    Raises:
        InvalidStatusTransitionError: If the value is outside the closed set
    """
    if isinstance(value, RequestStatus):
        return value
    status = RequestStatus.parse(value)
    if status is None:
        allowed = ", ".join(s.value for s in RequestStatus)
        raise InvalidStatusTransitionError(
            None, value, message=f"Invalid status '{value}'. Must be one of: {allowed}"
        )
    return status


def authorize_transition(role: UserRole, current: RequestStatus, target: RequestStatus) -> None:
    """
    Check the authorization table for one edge.

    Edges missing from the graph pass this check so the graph check can
    report them as invalid transitions.

    Raises:
        AuthorizationError: If the role may not take the edge
    """
    allowed = TRANSITION_PERMISSIONS.get(role, frozenset())
    if not allowed:
        raise AuthorizationError(message="Only team members can change request status")
    kind = STATUS_GRAPH.get((current, target))
    if kind is not None and kind not in allowed:
        raise AuthorizationError(message=f"Not allowed to move a request from {current.value} to {target.value}")


def ensure_edge(current: RequestStatus, target: RequestStatus) -> EdgeKind:
    """
    Check the status graph.

    Raises:
        InvalidStatusTransitionError: If ``target`` is not reachable from
            ``current`` in one step
    """
    kind = STATUS_GRAPH.get((current, target))
    if kind is None:
        raise InvalidStatusTransitionError(current.value, target.value)
    return kind


def can_delete(request: ServiceRequest, caller: User) -> bool:
    """Admins delete anything; clients only queue requests of their company."""
    if caller.role == UserRole.ADMIN:
        return True
    return request.company_id == caller.company_id and request.status == RequestStatus.QUEUE


# ============================================================================
# Lifecycle Guard
# ============================================================================


class LifecycleGuard:
    """
    Applies status transitions and assignments to requests.

    Example:
        guard = LifecycleGuard(db)
        request = await guard.transition(request_id, "review", current_user)
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.requests = RequestDAO(session)
        self.users = UserDAO(session)
        self.companies = CompanyDAO(session)
        self.audit = AuditService(session)
        self.activities = ActivityService(session)
        self.notifications = NotificationService(session)

    async def _load_visible(self, request_id: int, caller: User) -> ServiceRequest:
        request = await self.requests.get_by_id(request_id, refresh=True)
        if request is None:
            raise ResourceNotFoundError(message="Request not found")
        if caller.role != UserRole.ADMIN and request.company_id != caller.company_id:
            raise ResourceNotFoundError(message="Request not found")
        return request

    # =========================================================================
    # Status Transitions
    # =========================================================================

    async def transition(
        self,
        request_id: int,
        proposed_status: Union[str, RequestStatus],
        caller: User,
    ) -> ServiceRequest:
        """
        Move a request to a new status.

        Check order: status value, existence and tenancy, authorization
        table, status graph, active limit, compare-and-swap write.

        Args:
            request_id: Request to move
            proposed_status: Target status (raw value or enum)
            caller: Authenticated profile

        Returns:
            The updated request

        Raises:
            InvalidStatusTransitionError: Unknown status or edge not in graph
            ResourceNotFoundError: Request gone or outside caller's company
            AuthorizationError: Role may not take the edge
            LimitReachedError: Active column of the company is full
            ConflictError: Status changed concurrently
        """
        target = parse_status(proposed_status)
        request = await self._load_visible(request_id, caller)
        current = request.status

        authorize_transition(caller.role, current, target)
        ensure_edge(current, target)

        updated = await self._apply_transition(request, target, actor_id=caller.id)

        from agencyos.services.workflow_engine import WorkflowEngine

        await WorkflowEngine(self.session).on_status_change(updated, current, target, caller.id)
        return await self.requests.get_by_id(request_id, refresh=True)

    async def apply_automated_transition(
        self,
        request: ServiceRequest,
        proposed_status: Union[str, RequestStatus],
    ) -> ServiceRequest:
        """
        Move a request on behalf of a workflow rule.

        WHY: Automation follows the same graph, limit and audit contract as
        people do, but never re-triggers workflows.
        """
        target = parse_status(proposed_status)
        fresh = await self.requests.get_by_id(request.id, refresh=True)
        if fresh is None:
            raise ResourceNotFoundError(message="Request not found")
        if fresh.status == target:
            return fresh
        ensure_edge(fresh.status, target)
        return await self._apply_transition(fresh, target, actor_id=None)

    async def _apply_transition(
        self,
        request: ServiceRequest,
        target: RequestStatus,
        actor_id: Optional[int],
    ) -> ServiceRequest:
        request_id = request.id
        current = request.status

        if target == RequestStatus.ACTIVE:
            company = await self.companies.get_by_id(request.company_id)
            await ActiveLimitEnforcer(self.session).ensure_can_activate(company)

        before = request.snapshot()
        completed_at = utcnow() if target == RequestStatus.DONE else None

        swapped = await self.requests.update_status(request_id, current, target, completed_at)
        if not swapped:
            # Deleted in the meantime reads as missing, anything else as a race
            if await self.requests.get_by_id(request_id, refresh=True) is None:
                raise ResourceNotFoundError(message="Request not found")
            raise ConflictError(message="Request was modified by someone else; reload and try again")

        updated = await self.requests.get_by_id(request_id, refresh=True)
        logger.info(f"Request {updated.id} moved {current.value} -> {target.value} by {actor_id or 'workflow'}")

        await self.audit.log_status_change(updated, before, updated.snapshot(), user_id=actor_id)
        await self.activities.record_status_change(
            updated, current.value, target.value, actor_id, automated=actor_id is None
        )
        await self.notifications.notify_status_change(updated, current.value, target.value, actor_id)
        if target in CLIENT_EMAIL_STATUSES:
            await self._email_submitter(updated, current, target, actor_id)
        return updated

    async def _email_submitter(
        self,
        request: ServiceRequest,
        old_status: RequestStatus,
        new_status: RequestStatus,
        actor_id: Optional[int],
    ) -> None:
        if request.created_by is None or request.created_by == actor_id:
            return
        try:
            submitter = await self.users.get_by_id(request.created_by)
            if submitter is None or submitter.role != UserRole.CLIENT:
                return
            if not await NotificationPreferenceDAO(self.session).should_email(
                submitter.id, "email_on_status_change"
            ):
                return
            await get_email_service().send_status_change_email(
                to_email=submitter.email,
                recipient_name=submitter.full_name,
                request_id=request.id,
                request_title=request.title,
                old_status=old_status.value,
                new_status=new_status.value,
            )
        except Exception as e:
            logger.error(f"Failed to email status change for request {request.id}: {e}", exc_info=True)

    # =========================================================================
    # Assignment
    # =========================================================================

    async def assign(
        self,
        request_id: int,
        target_user_id: Optional[int],
        caller: User,
    ) -> ServiceRequest:
        """
        Assign a request to an admin, or clear the assignee.

        Re-assigning to the current assignee succeeds and writes the audit
        row, but sends no notification and runs no workflows.

        Raises:
            AuthorizationError: Caller is not an admin
            ResourceNotFoundError: Request or target profile missing
            InvalidAssigneeError: Target exists but is not an admin
        """
        if caller.role != UserRole.ADMIN:
            raise AuthorizationError(message="Admin access required")

        request = await self._load_visible(request_id, caller)

        target = None
        if target_user_id is not None:
            target = await self.users.get_by_id(target_user_id)
            if target is None:
                raise ResourceNotFoundError(message="User not found")
            if target.role != UserRole.ADMIN:
                raise InvalidAssigneeError()

        previous = request.assigned_to
        before = request.snapshot()
        updated = await self.requests.set_assignee(request, target_user_id)
        changed = previous != target_user_id

        await self.audit.log_assignment(updated, before, updated.snapshot(), user_id=caller.id)

        if changed:
            await self.activities.record_assignment(
                updated,
                target_user_id,
                (target.full_name or target.email) if target else None,
                caller.id,
            )
            if target_user_id is not None:
                await self.notifications.notify_assignment(updated, target_user_id)

            from agencyos.services.workflow_engine import WorkflowEngine

            await WorkflowEngine(self.session).on_assignment_change(
                updated, previous, target_user_id, caller.id
            )
            updated = await self.requests.get_by_id(request_id, refresh=True)

        return updated

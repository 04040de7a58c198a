"""
Service request API endpoints.

WHAT: RESTful API for the request board, comments and timeline.

WHY: Requests are the core of the portal:
1. Clients submit and follow work for their company
2. Agency admins move requests through the lifecycle and assign them
3. Both sides discuss a request in its comment thread

HOW: FastAPI router with:
- Company-scoped queries (multi-tenancy; other tenants' rows are 404)
- Status changes and assignment delegated to the LifecycleGuard
- Bulk actions applied request by request, each with its own checks
- Everything else delegated to RequestService
- Read and mutation rate limits per user
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from agencyos.core.deps import get_current_user
from agencyos.db.session import get_db
from agencyos.middleware.rate_limiter import RateLimitCategory, rate_limit
from agencyos.models.request import RequestPriority, RequestStatus
from agencyos.models.user import User
from agencyos.schemas.request import (
    ActivityResponse,
    AssignRequest,
    BulkActionRequest,
    BulkActionResponse,
    CommentCreate,
    CommentResponse,
    MoveRequest,
    RequestCreate,
    RequestListResponse,
    RequestResponse,
    RequestUpdate,
)
from agencyos.services.lifecycle import LifecycleGuard
from agencyos.services.request_service import RequestService


router = APIRouter(prefix="/requests", tags=["requests"])

read_limit = Depends(rate_limit(RateLimitCategory.READ))
mutation_limit = Depends(rate_limit(RateLimitCategory.MUTATION))


@router.get(
    "",
    response_model=RequestListResponse,
    status_code=status.HTTP_200_OK,
    summary="List requests",
    dependencies=[read_limit],
)
async def list_requests(
    skip: int = Query(default=0, ge=0, description="Number of items to skip"),
    limit: int = Query(default=50, ge=1, le=200, description="Maximum items to return"),
    status_filter: Optional[RequestStatus] = Query(default=None, alias="status"),
    priority: Optional[RequestPriority] = Query(default=None),
    company_id: Optional[int] = Query(default=None, description="Filter by company (admins only)"),
    assigned_to: Optional[int] = Query(default=None),
    search: Optional[str] = Query(default=None, max_length=200, description="Search title and description"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> RequestListResponse:
    """
    List requests visible to the caller, newest first.

    Clients always see only their own company's requests.
    """
    requests, total = await RequestService(db).list(
        current_user,
        skip=skip,
        limit=limit,
        status=status_filter,
        priority=priority,
        company_id=company_id,
        assigned_to=assigned_to,
        search=search,
    )
    return RequestListResponse(
        items=[RequestResponse.model_validate(r) for r in requests],
        total=total,
        skip=skip,
        limit=limit,
    )


@router.post(
    "",
    response_model=RequestResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit a request",
    dependencies=[mutation_limit],
)
async def create_request(
    data: RequestCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> RequestResponse:
    """
    Submit a new request.

    WHY: Submission is where plan limits bite: the company must be active
    and below its max_active_limit of open requests.

    Raises:
        CompanyInactiveError (403): Client's company is paused or churned
        LimitReachedError (403): Company is at its limit
    """
    request = await RequestService(db).create(data, current_user)
    return RequestResponse.model_validate(request)


@router.post(
    "/bulk",
    response_model=BulkActionResponse,
    status_code=status.HTTP_200_OK,
    summary="Apply an action to many requests",
    dependencies=[mutation_limit],
)
async def bulk_action(
    data: BulkActionRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> BulkActionResponse:
    """
    Move, re-prioritize, assign or delete several requests at once.

    Each request is checked like its single-request endpoint; rejected
    ones are listed in ``failed`` and left unchanged.

    Raises:
        AuthorizationError (403): Caller is not an admin
        ValidationError (400): Missing or invalid value for the action
        InvalidAssigneeError (400): Assignee is not an admin
    """
    result = await RequestService(db).bulk_action(data.action, data.request_ids, data.value, current_user)
    return BulkActionResponse(
        action=data.action,
        success=not result["failed"],
        succeeded=result["succeeded"],
        failed=result["failed"],
    )


@router.get(
    "/{request_id}",
    response_model=RequestResponse,
    status_code=status.HTTP_200_OK,
    summary="Get a request",
    dependencies=[read_limit],
)
async def get_request(
    request_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> RequestResponse:
    request = await RequestService(db).get_visible(request_id, current_user)
    return RequestResponse.model_validate(request)


@router.patch(
    "/{request_id}",
    response_model=RequestResponse,
    status_code=status.HTTP_200_OK,
    summary="Edit a request",
    dependencies=[mutation_limit],
)
async def update_request(
    request_id: int,
    data: RequestUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> RequestResponse:
    """
    Partially update the brief of a request.

    Status and assignee are not editable here; use /move and /assign.
    """
    request = await RequestService(db).update(request_id, data, current_user)
    return RequestResponse.model_validate(request)


@router.delete(
    "/{request_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a request",
    dependencies=[mutation_limit],
)
async def delete_request(
    request_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> None:
    """
    Delete a request.

    Raises:
        AuthorizationError (403): Client deleting a request past queue
    """
    await RequestService(db).delete(request_id, current_user)


# ============================================================================
# Lifecycle
# ============================================================================


@router.post(
    "/{request_id}/move",
    response_model=RequestResponse,
    status_code=status.HTTP_200_OK,
    summary="Change request status",
    dependencies=[mutation_limit],
)
async def move_request(
    request_id: int,
    data: MoveRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> RequestResponse:
    """
    Move a request to another status.

    Raises:
        InvalidStatusTransitionError (400): Unknown status or edge
        AuthorizationError (403): Caller may not take the edge
        LimitReachedError (403): Active column is full
        ConflictError (409): Status changed concurrently
    """
    request = await LifecycleGuard(db).transition(request_id, data.status, current_user)
    return RequestResponse.model_validate(request)


@router.post(
    "/{request_id}/assign",
    response_model=RequestResponse,
    status_code=status.HTTP_200_OK,
    summary="Assign a request",
    dependencies=[mutation_limit],
)
async def assign_request(
    request_id: int,
    data: AssignRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> RequestResponse:
    """
    Assign a request to a team member, or clear the assignee with null.

    Raises:
        AuthorizationError (403): Caller is not an admin
        InvalidAssigneeError (400): Target is not an admin
    """
    request = await LifecycleGuard(db).assign(request_id, data.user_id, current_user)
    return RequestResponse.model_validate(request)


# ============================================================================
# Comments and Timeline
# ============================================================================


@router.get(
    "/{request_id}/comments",
    response_model=List[CommentResponse],
    status_code=status.HTTP_200_OK,
    summary="List comments",
    dependencies=[read_limit],
)
async def list_comments(
    request_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> List[CommentResponse]:
    """Comment thread, oldest first. Internal notes are hidden from clients."""
    comments = await RequestService(db).list_comments(request_id, current_user)
    return [CommentResponse.model_validate(c) for c in comments]


@router.post(
    "/{request_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a comment",
    dependencies=[mutation_limit],
)
async def add_comment(
    request_id: int,
    data: CommentCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> CommentResponse:
    comment = await RequestService(db).add_comment(request_id, data, current_user)
    return CommentResponse.model_validate(comment)


@router.get(
    "/{request_id}/activities",
    response_model=List[ActivityResponse],
    status_code=status.HTTP_200_OK,
    summary="Request timeline",
    dependencies=[read_limit],
)
async def list_activities(
    request_id: int,
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=500),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> List[ActivityResponse]:
    """Timeline of a request, newest first."""
    entries = await RequestService(db).timeline(request_id, current_user, skip=skip, limit=limit)
    return [ActivityResponse.model_validate(e) for e in entries]

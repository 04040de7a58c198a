"""
Company management API endpoints.

WHAT: Admin CRUD for the tenants of the portal, the services sold to
them and their contact people; pausing a subscription.

WHY: The agency onboards client companies, pauses or churns them, and
moves them between plan tiers. A company's status and max_active_limit
drive the submission rules enforced on requests.

HOW: Routes over CompanyDAO, ClientServiceDAO and ContactDAO. Writes are
ADMIN-only; members of a company may read its services and contacts and
pause it. Other tenants' companies are 404 to clients. Changing the plan
tier without an explicit limit re-seeds max_active_limit from the tier
default.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from agencyos.core.deps import get_current_user, require_admin
from agencyos.core.exceptions import AuthorizationError, ResourceNotFoundError, ValidationError
from agencyos.dao.client_service import ClientServiceDAO
from agencyos.dao.company import CompanyDAO
from agencyos.dao.contact import ContactDAO
from agencyos.db.session import get_db
from agencyos.middleware.rate_limiter import RateLimitCategory, rate_limit
from agencyos.models.audit_log import AuditAction
from agencyos.models.client_service import ClientService, ServiceStatus, ServiceType
from agencyos.models.company import Company, CompanyStatus, PLAN_LIMITS
from agencyos.models.contact import Contact
from agencyos.models.user import User, UserRole
from agencyos.schemas.company import (
    ClientServiceCreate,
    ClientServiceResponse,
    ClientServiceUpdate,
    CompanyCreate,
    CompanyListResponse,
    CompanyResponse,
    CompanyUpdate,
    ContactCreate,
    ContactResponse,
    ContactUpdate,
    PauseResponse,
)
from agencyos.services.audit import AuditService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/companies", tags=["companies"])

read_limit = Depends(rate_limit(RateLimitCategory.READ))
mutation_limit = Depends(rate_limit(RateLimitCategory.MUTATION))
strict_limit = Depends(rate_limit(RateLimitCategory.STRICT))

SERVICE_NON_NULLABLE_FIELDS = ("service_name", "service_type", "status", "price", "billing_cycle")
CONTACT_NON_NULLABLE_FIELDS = ("name", "is_primary", "is_billing_contact", "is_active")


async def _get_company(db: AsyncSession, company_id: int) -> Company:
    company = await CompanyDAO(db).get_by_id(company_id)
    if company is None:
        raise ResourceNotFoundError(message="Company not found")
    return company


async def _get_member_company(db: AsyncSession, company_id: int, caller: User) -> Company:
    """A company the caller belongs to, or any company for admins."""
    if caller.role != UserRole.ADMIN and caller.company_id != company_id:
        raise ResourceNotFoundError(message="Company not found")
    return await _get_company(db, company_id)


def _changes(data, non_nullable) -> dict:
    return {
        field: value
        for field, value in data.model_dump(exclude_unset=True).items()
        if not (value is None and field in non_nullable)
    }


@router.get(
    "",
    response_model=CompanyListResponse,
    status_code=status.HTTP_200_OK,
    summary="List companies",
    dependencies=[read_limit],
)
async def list_companies(
    status_filter: Optional[CompanyStatus] = Query(default=None, alias="status"),
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=500),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> CompanyListResponse:
    companies, total = await CompanyDAO(db).list(skip=skip, limit=limit, status=status_filter)
    return CompanyListResponse(
        items=[CompanyResponse.model_validate(c) for c in companies],
        total=total,
    )


@router.post(
    "",
    response_model=CompanyResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a company",
    dependencies=[mutation_limit],
)
async def create_company(
    data: CompanyCreate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> CompanyResponse:
    company = await CompanyDAO(db).create_company(
        name=data.name,
        plan_tier=data.plan_tier,
        status=data.status,
        max_active_limit=data.max_active_limit,
        billing_email=data.billing_email,
        notes=data.notes,
    )
    logger.info(f"Company {company.id} created by {admin.id}")
    return CompanyResponse.model_validate(company)


@router.get(
    "/{company_id}",
    response_model=CompanyResponse,
    status_code=status.HTTP_200_OK,
    summary="Get a company",
    dependencies=[read_limit],
)
async def get_company(
    company_id: int,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> CompanyResponse:
    return CompanyResponse.model_validate(await _get_company(db, company_id))


@router.patch(
    "/{company_id}",
    response_model=CompanyResponse,
    status_code=status.HTTP_200_OK,
    summary="Update a company",
    dependencies=[mutation_limit],
)
async def update_company(
    company_id: int,
    data: CompanyUpdate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> CompanyResponse:
    """
    Change status, plan or details of a company.

    Raises:
        ValidationError (400): Body carries no fields
        ResourceNotFoundError (404): Unknown company
    """
    changes = data.model_dump(exclude_unset=True)
    for field in ("name", "status", "plan_tier", "max_active_limit"):
        if field in changes and changes[field] is None:
            del changes[field]
    if not changes:
        raise ValidationError(message="No fields to update")

    company = await _get_company(db, company_id)
    if "plan_tier" in changes and "max_active_limit" not in changes:
        changes["max_active_limit"] = PLAN_LIMITS[changes["plan_tier"]]

    company = await CompanyDAO(db).update(company, **changes)
    logger.info(f"Company {company.id} updated by {admin.id}: {sorted(changes)}")
    return CompanyResponse.model_validate(company)


@router.post(
    "/{company_id}/pause",
    response_model=PauseResponse,
    status_code=status.HTTP_200_OK,
    summary="Pause a company's subscription",
    dependencies=[strict_limit],
)
async def pause_company(
    company_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> PauseResponse:
    """
    Pause an active subscription.

    WHY: A paused company keeps read access but cannot submit or comment
    until the agency reactivates it. Clients may pause their own company.

    Raises:
        AuthorizationError (403): Client of another company
        ResourceNotFoundError (404): Unknown company
        ValidationError (400): Company is not active
    """
    if current_user.role != UserRole.ADMIN and current_user.company_id != company_id:
        raise AuthorizationError(message="Not authorized to pause this subscription")
    company = await _get_company(db, company_id)
    if company.status != CompanyStatus.ACTIVE:
        raise ValidationError(message="Subscription is not currently active")

    company = await CompanyDAO(db).update(company, status=CompanyStatus.PAUSED)
    await AuditService(db).log_event(
        action=AuditAction.UPDATE,
        entity_type="company",
        entity_id=company.id,
        user_id=current_user.id,
        company_id=company.id,
        old_values={"status": CompanyStatus.ACTIVE.value},
        new_values={"status": CompanyStatus.PAUSED.value},
        change_summary="Paused subscription",
    )
    logger.info(f"Company {company.id} paused by user {current_user.id}")
    return PauseResponse(message="Subscription paused successfully", status=company.status)


# ============================================================================
# Client Services
# ============================================================================


async def _get_service(db: AsyncSession, company_id: int, service_id: int) -> ClientService:
    service = await ClientServiceDAO(db).get_for_company(service_id, company_id)
    if service is None:
        raise ResourceNotFoundError(message="Service not found")
    return service


@router.get(
    "/{company_id}/services",
    response_model=List[ClientServiceResponse],
    status_code=status.HTTP_200_OK,
    summary="List a company's services",
    dependencies=[read_limit],
)
async def list_services(
    company_id: int,
    status_filter: Optional[ServiceStatus] = Query(default=None, alias="status"),
    service_type: Optional[ServiceType] = Query(default=None, alias="type"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> List[ClientServiceResponse]:
    await _get_member_company(db, company_id, current_user)
    services = await ClientServiceDAO(db).list_for_company(
        company_id, status=status_filter, service_type=service_type
    )
    return [ClientServiceResponse.model_validate(s) for s in services]


@router.post(
    "/{company_id}/services",
    response_model=ClientServiceResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a service to a company",
    dependencies=[mutation_limit],
)
async def create_service(
    company_id: int,
    data: ClientServiceCreate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> ClientServiceResponse:
    await _get_company(db, company_id)
    values = data.model_dump()
    values["service_type"] = data.service_type.value
    service = await ClientServiceDAO(db).create(company_id=company_id, **values)
    logger.info(f"Service {service.id} added to company {company_id} by {admin.id}")
    return ClientServiceResponse.model_validate(service)


@router.get(
    "/{company_id}/services/{service_id}",
    response_model=ClientServiceResponse,
    status_code=status.HTTP_200_OK,
    summary="Get a company's service",
    dependencies=[read_limit],
)
async def get_service(
    company_id: int,
    service_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ClientServiceResponse:
    await _get_member_company(db, company_id, current_user)
    return ClientServiceResponse.model_validate(await _get_service(db, company_id, service_id))


@router.patch(
    "/{company_id}/services/{service_id}",
    response_model=ClientServiceResponse,
    status_code=status.HTTP_200_OK,
    summary="Update a company's service",
    dependencies=[mutation_limit],
)
async def update_service(
    company_id: int,
    service_id: int,
    data: ClientServiceUpdate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> ClientServiceResponse:
    """
    Raises:
        ValidationError (400): Body carries no fields
        ResourceNotFoundError (404): Unknown service or company
    """
    changes = _changes(data, SERVICE_NON_NULLABLE_FIELDS)
    if not changes:
        raise ValidationError(message="No fields to update")
    if "service_type" in changes:
        changes["service_type"] = changes["service_type"].value

    service = await _get_service(db, company_id, service_id)
    service = await ClientServiceDAO(db).update(service, **changes)
    logger.info(f"Service {service.id} updated by {admin.id}: {sorted(changes)}")
    return ClientServiceResponse.model_validate(service)


@router.delete(
    "/{company_id}/services/{service_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a service from a company",
    dependencies=[mutation_limit],
)
async def delete_service(
    company_id: int,
    service_id: int,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> None:
    service = await _get_service(db, company_id, service_id)
    await ClientServiceDAO(db).delete(service.id)
    logger.info(f"Service {service_id} removed from company {company_id} by {admin.id}")


# ============================================================================
# Contacts
# ============================================================================


async def _get_contact(db: AsyncSession, company_id: int, contact_id: int) -> Contact:
    contact = await ContactDAO(db).get_for_company(contact_id, company_id)
    if contact is None:
        raise ResourceNotFoundError(message="Contact not found")
    return contact


@router.get(
    "/{company_id}/contacts",
    response_model=List[ContactResponse],
    status_code=status.HTTP_200_OK,
    summary="List a company's contacts",
    dependencies=[read_limit],
)
async def list_contacts(
    company_id: int,
    active_only: bool = Query(default=False),
    primary_only: bool = Query(default=False),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> List[ContactResponse]:
    """Primary contacts first, then by name."""
    await _get_member_company(db, company_id, current_user)
    contacts = await ContactDAO(db).list_for_company(
        company_id, active_only=active_only, primary_only=primary_only
    )
    return [ContactResponse.model_validate(c) for c in contacts]


@router.post(
    "/{company_id}/contacts",
    response_model=ContactResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a contact to a company",
    dependencies=[mutation_limit],
)
async def create_contact(
    company_id: int,
    data: ContactCreate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> ContactResponse:
    await _get_company(db, company_id)
    contact = await ContactDAO(db).create(company_id=company_id, is_active=True, **data.model_dump())
    logger.info(f"Contact {contact.id} added to company {company_id} by {admin.id}")
    return ContactResponse.model_validate(contact)


@router.get(
    "/{company_id}/contacts/{contact_id}",
    response_model=ContactResponse,
    status_code=status.HTTP_200_OK,
    summary="Get a company's contact",
    dependencies=[read_limit],
)
async def get_contact(
    company_id: int,
    contact_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ContactResponse:
    await _get_member_company(db, company_id, current_user)
    return ContactResponse.model_validate(await _get_contact(db, company_id, contact_id))


@router.patch(
    "/{company_id}/contacts/{contact_id}",
    response_model=ContactResponse,
    status_code=status.HTTP_200_OK,
    summary="Update a company's contact",
    dependencies=[mutation_limit],
)
async def update_contact(
    company_id: int,
    contact_id: int,
    data: ContactUpdate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> ContactResponse:
    changes = _changes(data, CONTACT_NON_NULLABLE_FIELDS)
    if not changes:
        raise ValidationError(message="No fields to update")

    contact = await _get_contact(db, company_id, contact_id)
    contact = await ContactDAO(db).update(contact, **changes)
    logger.info(f"Contact {contact.id} updated by {admin.id}: {sorted(changes)}")
    return ContactResponse.model_validate(contact)


@router.delete(
    "/{company_id}/contacts/{contact_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a contact from a company",
    dependencies=[mutation_limit],
)
async def delete_contact(
    company_id: int,
    contact_id: int,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> None:
    contact = await _get_contact(db, company_id, contact_id)
    await ContactDAO(db).delete(contact.id)
    logger.info(f"Contact {contact_id} removed from company {company_id} by {admin.id}")

"""
Active-request limit enforcement.

WHAT: Checks a company's plan allowance before a request is admitted.

WHY: A company's plan (max_active_limit) bounds how much work it may have
in flight. Two checks use it:
1. Creating a request: the company's non-done requests must stay below
   the limit
2. Moving a request into ``active``: the requests already in ``active``
   must stay below the limit

HOW: Each check is one count query compared against the limit, run
immediately before the insert or status write it guards and inside the same
transaction. Concurrent submissions can still overrun by a small amount;
true atomicity would need a storage-level constraint.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from agencyos.core.exceptions import LimitReachedError
from agencyos.dao.request import RequestDAO
from agencyos.models.company import Company
from agencyos.models.request import RequestStatus

logger = logging.getLogger(__name__)


class ActiveLimitEnforcer:
    """Admission checks against a company's max_active_limit."""

    def __init__(self, session: AsyncSession):
        self.requests = RequestDAO(session)

    async def ensure_can_create(self, company: Company) -> int:
        """
        Admit a new request for the company.

        Returns:
            Current number of non-done requests

        Raises:
            LimitReachedError: When current >= max_active_limit
        """
        current = await self.requests.count_open(company.id)
        if current >= company.max_active_limit:
            logger.info(
                f"Company {company.id} at request limit ({current}/{company.max_active_limit})"
            )
            raise LimitReachedError(limit=company.max_active_limit, current=current)
        return current

    async def ensure_can_activate(self, company: Company) -> int:
        """
        Admit one more request into ``active``.

        Returns:
            Current number of active requests

        Raises:
            LimitReachedError: When the active column is already full
        """
        current = await self.requests.count_by_status(company.id, [RequestStatus.ACTIVE])
        if current >= company.max_active_limit:
            raise LimitReachedError(
                limit=company.max_active_limit,
                current=current,
                message=f"Active request limit reached ({current}/{company.max_active_limit} active)",
            )
        return current

"""AllocationEngine — one allocation pass for one closed offering.

Runs inside the caller's transaction; the caller commits on success and rolls
back on any exception, so a pass is either fully written or not at all.

Exclusivity across server instances comes from PostgreSQL, not from process
state: the offering row is locked FOR UPDATE, its eligible subscriptions are
locked FOR UPDATE, and the final UPDATE only succeeds while
``allocation_completed`` is still false.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.ipo_allocation.domain.algorithm import allocate_fcfs
from src.ipo_allocation.domain.invariants import verify_allocation
from src.ipo_allocation.domain.models import AllocationResult
from src.ipo_common.enums import RESERVED_SUBSCRIPTION_STATUSES, OfferingStatus
from src.ipo_common.errors import AllocationConflictError, OfferingNotFoundError
from src.ipo_offering.domain.repository import OfferingRepositoryProtocol
from src.ipo_offering.infrastructure.persistence import OfferingRepository
from src.ipo_subscription.domain.repository import SubscriptionRepositoryProtocol
from src.ipo_subscription.infrastructure.persistence import SubscriptionRepository

logger = logging.getLogger(__name__)


class AllocationEngine:
    def __init__(
        self,
        offering_repo: OfferingRepositoryProtocol | None = None,
        subscription_repo: SubscriptionRepositoryProtocol | None = None,
    ) -> None:
        self._offerings: OfferingRepositoryProtocol = offering_repo or OfferingRepository()
        self._subscriptions: SubscriptionRepositoryProtocol = (
            subscription_repo or SubscriptionRepository()
        )

    async def allocate(self, db: AsyncSession, offering_id: int) -> AllocationResult:
        """Allocate the share pool of ``offering_id``.

        Raises:
            OfferingNotFoundError: no such offering.
            AllocationConflictError: the offering is not closed, was already
                allocated, or another pass changed it underneath this one.
        """
        offering = await self._offerings.get_by_id(db, offering_id, lock="update")
        if offering is None:
            raise OfferingNotFoundError(offering_id)
        if offering.allocation_completed:
            raise AllocationConflictError(offering_id, "allocation already completed")
        if offering.status != OfferingStatus.CLOSED:
            raise AllocationConflictError(offering_id, f"offering is {offering.status}")

        subscriptions = await self._subscriptions.list_for_offering(
            db, offering_id, RESERVED_SUBSCRIPTION_STATUSES, lock=True
        )
        decisions, remaining = allocate_fcfs(offering.total_shares, subscriptions)
        result = AllocationResult(
            offering_id=offering_id,
            total_shares=offering.total_shares,
            allocated_shares=offering.total_shares - remaining,
            remaining_shares=remaining,
            decisions=decisions,
        )
        verify_allocation(result)

        written = await self._subscriptions.apply_allocations(db, decisions)
        if written != len(decisions):
            raise AllocationConflictError(
                offering_id, f"{written} of {len(decisions)} subscriptions updated"
            )

        completed = await self._offerings.mark_allocated(
            db, offering_id, result.allocated_shares, result.remaining_shares
        )
        if not completed:
            raise AllocationConflictError(offering_id, "completed by another pass")

        logger.info(
            "Offering %s allocated: %d subscriptions (%d filled, %d partial, %d rejected), "
            "allocated=%d remaining=%d",
            offering_id,
            len(decisions),
            result.allocated_count,
            sum(1 for d in decisions if d.is_partial),
            result.rejected_count,
            result.allocated_shares,
            result.remaining_shares,
        )
        return result

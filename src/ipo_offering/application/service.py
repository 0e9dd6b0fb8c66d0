"""OfferingApplicationService — read projections over offerings.

All methods are read-only; no commit/rollback needed.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from src.ipo_common.datetime_utils import Clock, utc_now
from src.ipo_common.errors import OfferingNotFoundError
from src.ipo_common.pagination import cursor_decode, cursor_encode
from src.ipo_offering.application.schemas import (
    OfferingDetail,
    OfferingListItem,
    OfferingListResponse,
)
from src.ipo_offering.domain.repository import OfferingRepositoryProtocol
from src.ipo_offering.infrastructure.persistence import OfferingRepository
from src.ipo_subscription.application.schemas import SubscriptionItem
from src.ipo_subscription.domain.repository import SubscriptionRepositoryProtocol
from src.ipo_subscription.infrastructure.persistence import SubscriptionRepository


class OfferingApplicationService:
    def __init__(
        self,
        repo: OfferingRepositoryProtocol | None = None,
        subscription_repo: SubscriptionRepositoryProtocol | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._repo: OfferingRepositoryProtocol = repo or OfferingRepository()
        self._subscriptions: SubscriptionRepositoryProtocol = (
            subscription_repo or SubscriptionRepository()
        )
        self._clock = clock

    async def list_offerings(
        self,
        db: AsyncSession,
        status: str | None,
        exchange: str | None,
        cursor: str | None,
        limit: int,
    ) -> OfferingListResponse:
        cursor_ts, cursor_id = cursor_decode(cursor)
        # Fetch limit+1 to detect has_more without COUNT(*)
        offerings = await self._repo.list_offerings(
            db, status, exchange, cursor_ts, cursor_id, limit + 1
        )
        has_more = len(offerings) > limit
        page = offerings[:limit]
        next_cursor = None
        if has_more and page and page[-1].created_at is not None:
            next_cursor = cursor_encode(page[-1].created_at, page[-1].id)
        return OfferingListResponse(
            items=[OfferingListItem.from_domain(o) for o in page],
            next_cursor=next_cursor,
            has_more=has_more,
        )

    async def list_active_offerings(
        self, db: AsyncSession, limit: int
    ) -> list[OfferingListItem]:
        """Open offerings, soonest closing first."""
        offerings = await self._repo.list_active(db, self._clock(), limit)
        return [OfferingListItem.from_domain(o) for o in offerings]

    async def list_upcoming_offerings(
        self, db: AsyncSession, limit: int
    ) -> list[OfferingListItem]:
        """Offerings not yet open, soonest opening first."""
        offerings = await self._repo.list_upcoming(db, limit)
        return [OfferingListItem.from_domain(o) for o in offerings]

    async def get_offering(
        self, db: AsyncSession, offering_id: int, user_id: str | None = None
    ) -> OfferingDetail:
        offering = await self._repo.get_by_id(db, offering_id)
        if offering is None:
            raise OfferingNotFoundError(offering_id)
        mine = None
        if user_id is not None:
            latest = await self._subscriptions.find_latest_for_user(db, user_id, offering_id)
            if latest is not None:
                mine = SubscriptionItem.from_domain(latest)
        return OfferingDetail.from_offering(offering, mine)

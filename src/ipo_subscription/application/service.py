"""SubscriptionApplicationService — subscribe, cancel and read projections.

subscribe/cancel each run as one transaction with a fixed lock order:
  1. users row FOR UPDATE        (serialises all reservation changes of the user)
  2. offerings row FOR SHARE     (holds off closing and allocation until commit)
  3. subscriptions row FOR UPDATE (cancel only)
The allocation pass locks offering then subscriptions, the same order, so the
two paths queue behind each other instead of deadlocking.

All validator checks run again after the locks are taken; the partial unique
index on active (user_id, offering_id) pairs is the final guard.
"""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.ipo_common.datetime_utils import Clock, utc_now
from src.ipo_common.enums import SubscriptionStatus
from src.ipo_common.errors import (
    DuplicateSubscriptionError,
    NotCancellableError,
    OfferingNotFoundError,
    SubscriptionNotFoundError,
    UserNotFoundError,
)
from src.ipo_common.money import cents_to_display
from src.ipo_common.pagination import cursor_decode, cursor_encode
from src.ipo_gateway.user.repository import UserRepository
from src.ipo_offering.domain.repository import OfferingRepositoryProtocol
from src.ipo_offering.infrastructure.persistence import OfferingRepository
from src.ipo_risk.validator import SubscriptionValidator
from src.ipo_subscription.application.schemas import (
    CancelResponse,
    SubscriptionItem,
    SubscriptionListResponse,
)
from src.ipo_subscription.domain.models import Subscription
from src.ipo_subscription.domain.repository import SubscriptionRepositoryProtocol
from src.ipo_subscription.infrastructure.persistence import SubscriptionRepository

logger = logging.getLogger(__name__)

# alembic/versions/005_create_subscriptions.py
ACTIVE_SUBSCRIPTION_INDEX = "uq_subscriptions_active_user_offering"


class SubscriptionApplicationService:
    def __init__(
        self,
        repo: SubscriptionRepositoryProtocol | None = None,
        offering_repo: OfferingRepositoryProtocol | None = None,
        user_repo: UserRepository | None = None,
        validator: SubscriptionValidator | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._repo: SubscriptionRepositoryProtocol = repo or SubscriptionRepository()
        self._offerings: OfferingRepositoryProtocol = offering_repo or OfferingRepository()
        self._users = user_repo or UserRepository()
        self._validator = validator or SubscriptionValidator()
        self._clock = clock

    async def subscribe(
        self,
        db: AsyncSession,
        user_id: str,
        offering_id: int,
        quantity: int,
        price_per_share: int,
    ) -> Subscription:
        try:
            if not await self._users.exists(db, user_id, lock=True):
                raise UserNotFoundError(user_id)
            offering = await self._offerings.get_by_id(db, offering_id, lock="share")
            if offering is None:
                raise OfferingNotFoundError(offering_id)

            total_amount = await self._validator.validate(
                db, offering, user_id, quantity, price_per_share, self._clock()
            )
            subscription = await self._repo.insert_pending(
                db, user_id, offering_id, quantity, price_per_share, total_amount
            )
            await db.commit()
        except IntegrityError as exc:
            await db.rollback()
            if ACTIVE_SUBSCRIPTION_INDEX in str(exc.orig):
                raise DuplicateSubscriptionError(offering_id) from exc
            raise
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Subscription %s created: user=%s offering=%s qty=%d amount=%s",
            subscription.id,
            user_id,
            offering_id,
            quantity,
            cents_to_display(total_amount),
        )
        return subscription

    async def cancel(
        self, db: AsyncSession, user_id: str, subscription_id: int
    ) -> CancelResponse:
        try:
            if not await self._users.exists(db, user_id, lock=True):
                raise UserNotFoundError(user_id)
            current = await self._repo.get_by_id(db, subscription_id)
            if current is None:
                raise SubscriptionNotFoundError(subscription_id)
            if current.user_id != user_id:
                raise NotCancellableError(subscription_id, "not owned by caller")

            offering = await self._offerings.get_by_id(
                db, current.offering_id, lock="share"
            )
            subscription = await self._repo.get_by_id(db, subscription_id, lock=True)
            if subscription is None:
                raise SubscriptionNotFoundError(subscription_id)
            if subscription.status != SubscriptionStatus.PENDING:
                raise NotCancellableError(
                    subscription_id, f"status is {subscription.status}"
                )
            if offering is None or not offering.is_open_at(self._clock()):
                raise NotCancellableError(subscription_id, "offering is no longer active")

            if not await self._repo.delete_pending(db, subscription_id):
                raise NotCancellableError(subscription_id, "status changed concurrently")
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Subscription %s cancelled: user=%s released=%s",
            subscription_id,
            user_id,
            cents_to_display(subscription.total_amount),
        )
        return CancelResponse(
            subscription_id=subscription_id,
            offering_id=subscription.offering_id,
            released_amount_cents=subscription.total_amount,
            released_amount_display=cents_to_display(subscription.total_amount),
        )

    async def list_for_user(
        self,
        db: AsyncSession,
        user_id: str,
        status: str | None,
        cursor: str | None,
        limit: int,
    ) -> SubscriptionListResponse:
        cursor_ts, cursor_id = cursor_decode(cursor)
        # Fetch limit+1 to detect has_more without COUNT(*)
        rows = await self._repo.list_for_user(
            db, user_id, status, cursor_ts, cursor_id, limit + 1
        )
        has_more = len(rows) > limit
        page = rows[:limit]
        next_cursor = (
            cursor_encode(page[-1].created_at, page[-1].id) if has_more and page else None
        )
        return SubscriptionListResponse(
            items=[SubscriptionItem.from_domain(s) for s in page],
            next_cursor=next_cursor,
            has_more=has_more,
        )

    async def list_for_offering(
        self, db: AsyncSession, offering_id: int, status: str | None
    ) -> list[SubscriptionItem]:
        offering = await self._offerings.get_by_id(db, offering_id)
        if offering is None:
            raise OfferingNotFoundError(offering_id)
        statuses = [status] if status else None
        rows = await self._repo.list_for_offering(db, offering_id, statuses)
        return [SubscriptionItem.from_domain(s) for s in rows]

"""AdminService — offering management, statistics and tick control."""

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.ipo_admin.application.schemas import (
    CreateOfferingRequest,
    OfferingStatsResponse,
    RemoveOfferingResponse,
    TickLogItem,
    TickReportResponse,
    UpdateOfferingRequest,
)
from src.ipo_common.datetime_utils import ensure_utc
from src.ipo_common.enums import RESERVED_SUBSCRIPTION_STATUSES, OfferingStatus
from src.ipo_common.errors import (
    InvalidOfferingError,
    OfferingNotArchivableError,
    OfferingNotEditableError,
    OfferingNotFoundError,
    OfferingSymbolExistsError,
)
from src.ipo_lifecycle.application.scheduler import run_tick_with_lock
from src.ipo_lifecycle.domain.models import TickReport
from src.ipo_lifecycle.infrastructure.tick_log import TickLogRepository
from src.ipo_offering.application.schemas import OfferingDetail
from src.ipo_offering.domain.repository import OfferingRepositoryProtocol
from src.ipo_offering.infrastructure.persistence import OfferingRepository
from src.ipo_subscription.domain.repository import SubscriptionRepositoryProtocol
from src.ipo_subscription.infrastructure.persistence import SubscriptionRepository

logger = logging.getLogger(__name__)

# alembic/versions/004_create_offerings.py
SYMBOL_UNIQUE_CONSTRAINT = "uq_offerings_symbol"


def validate_offering_terms(fields: dict[str, Any]) -> None:
    """Cross-field rules for a complete set of offering terms."""
    if fields["price_min"] > fields["price_max"]:
        raise InvalidOfferingError(
            f"price_min {fields['price_min']} exceeds price_max {fields['price_max']}"
        )
    if fields["start_date"] >= fields["end_date"]:
        raise InvalidOfferingError("start_date must be before end_date")
    if fields["lot_size"] > fields["total_shares"]:
        raise InvalidOfferingError(
            f"lot_size {fields['lot_size']} exceeds total_shares {fields['total_shares']}"
        )


class AdminService:
    def __init__(
        self,
        offering_repo: OfferingRepositoryProtocol | None = None,
        tick_log_repo: TickLogRepository | None = None,
        tick_runner: Callable[[], Awaitable[TickReport]] | None = None,
        subscription_repo: SubscriptionRepositoryProtocol | None = None,
    ) -> None:
        self._offerings: OfferingRepositoryProtocol = offering_repo or OfferingRepository()
        self._tick_logs = tick_log_repo or TickLogRepository()
        self._run_tick = tick_runner or run_tick_with_lock
        self._subscriptions: SubscriptionRepositoryProtocol = (
            subscription_repo or SubscriptionRepository()
        )

    async def create_offering(
        self, db: AsyncSession, admin_id: str, body: CreateOfferingRequest
    ) -> OfferingDetail:
        fields = body.to_fields()
        fields["start_date"] = ensure_utc(fields["start_date"])
        fields["end_date"] = ensure_utc(fields["end_date"])
        validate_offering_terms(fields)
        fields["created_by"] = admin_id
        try:
            offering = await self._offerings.create(db, fields)
            await db.commit()
        except IntegrityError as exc:
            await db.rollback()
            if SYMBOL_UNIQUE_CONSTRAINT in str(exc.orig):
                raise OfferingSymbolExistsError(fields["symbol"]) from exc
            raise
        except Exception:
            await db.rollback()
            raise
        logger.info(
            "Offering %s (%s) created by %s: %d shares, window %s .. %s",
            offering.id,
            offering.symbol,
            admin_id,
            offering.total_shares,
            offering.start_date.isoformat(),
            offering.end_date.isoformat(),
        )
        return OfferingDetail.from_offering(offering)

    async def update_offering(
        self, db: AsyncSession, offering_id: int, body: UpdateOfferingRequest
    ) -> OfferingDetail:
        changes = body.to_fields()
        for key in ("start_date", "end_date"):
            if changes.get(key) is not None:
                changes[key] = ensure_utc(changes[key])
        try:
            current = await self._offerings.get_by_id(db, offering_id, lock="update")
            if current is None or current.archived_at is not None:
                raise OfferingNotFoundError(offering_id)
            if current.status != OfferingStatus.UPCOMING:
                raise OfferingNotEditableError(offering_id, current.phase)
            merged = {
                "price_min": current.price_min,
                "price_max": current.price_max,
                "lot_size": current.lot_size,
                "total_shares": current.total_shares,
                "start_date": current.start_date,
                "end_date": current.end_date,
            }
            merged.update({k: v for k, v in changes.items() if k in merged and v is not None})
            validate_offering_terms(merged)

            updated = await self._offerings.update_upcoming(db, offering_id, changes)
            if updated is None:
                raise OfferingNotEditableError(offering_id, "not upcoming")
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Offering %s updated: %s", offering_id, sorted(changes))
        return OfferingDetail.from_offering(updated)

    async def archive_offering(
        self, db: AsyncSession, admin_id: str, offering_id: int
    ) -> RemoveOfferingResponse:
        """Remove an offering from circulation.

        An offering nothing references is deleted outright. One whose
        subscriptions are all settled (allocated or rejected) is archived:
        the row stays for their history but leaves every listing and the
        lifecycle tick. Reserved subscriptions block both.

        The FOR UPDATE lock on the offering keeps subscribe (which takes it
        FOR SHARE) from inserting between the count and the delete.
        """
        try:
            current = await self._offerings.get_by_id(db, offering_id, lock="update")
            if current is None or current.archived_at is not None:
                raise OfferingNotFoundError(offering_id)
            counts = await self._subscriptions.count_by_status(db, offering_id)
            reserved = sum(counts.get(s, 0) for s in RESERVED_SUBSCRIPTION_STATUSES)
            if reserved:
                raise OfferingNotArchivableError(offering_id, reserved)

            if not counts and await self._offerings.delete_unreferenced(db, offering_id):
                response = RemoveOfferingResponse(
                    offering_id=offering_id, symbol=current.symbol, action="deleted"
                )
            else:
                archived = await self._offerings.archive(db, offering_id)
                if archived is None or archived.archived_at is None:
                    raise OfferingNotFoundError(offering_id)
                response = RemoveOfferingResponse(
                    offering_id=offering_id,
                    symbol=current.symbol,
                    action="archived",
                    archived_at=archived.archived_at.isoformat(),
                )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info(
            "Offering %s (%s) %s by %s", offering_id, current.symbol, response.action, admin_id
        )
        return response

    async def get_offering_statistics(self, db: AsyncSession) -> OfferingStatsResponse:
        counts = await self._offerings.count_by_phase(db)
        by_status = {s.value: counts.get(s.value, 0) for s in OfferingStatus}
        return OfferingStatsResponse(total=sum(by_status.values()), by_status=by_status)

    async def list_tick_logs(self, db: AsyncSession, limit: int) -> list[TickLogItem]:
        logs = await self._tick_logs.list_recent(db, limit)
        return [TickLogItem.from_domain(log) for log in logs]

    async def run_tick(self, admin_id: str) -> TickReportResponse:
        logger.info("Manual lifecycle tick requested by %s", admin_id)
        report = await self._run_tick()
        return TickReportResponse.from_report(report)

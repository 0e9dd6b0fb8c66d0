"""Pydantic schemas for ipo_offering API responses."""

from pydantic import BaseModel

from src.ipo_common.money import cents_to_display
from src.ipo_offering.domain.models import Offering
from src.ipo_subscription.application.schemas import SubscriptionItem


class OfferingListItem(BaseModel):
    id: int
    symbol: str
    company_name: str
    exchange: str
    status: str                      # lifecycle phase, 'allocated' once allocation ran
    price_min_cents: int
    price_min_display: str
    price_max_cents: int
    price_max_display: str
    lot_size: int
    total_shares: int
    allocated_shares: int
    remaining_shares: int
    start_date: str
    end_date: str

    @classmethod
    def from_domain(cls, o: Offering) -> "OfferingListItem":
        return cls(
            id=o.id,
            symbol=o.symbol,
            company_name=o.company_name,
            exchange=o.exchange,
            status=o.phase,
            price_min_cents=o.price_min,
            price_min_display=cents_to_display(o.price_min),
            price_max_cents=o.price_max,
            price_max_display=cents_to_display(o.price_max),
            lot_size=o.lot_size,
            total_shares=o.total_shares,
            allocated_shares=o.allocated_shares,
            remaining_shares=o.remaining_shares,
            start_date=o.start_date.isoformat(),
            end_date=o.end_date.isoformat(),
        )


class OfferingListResponse(BaseModel):
    items: list[OfferingListItem]
    next_cursor: str | None
    has_more: bool


class OfferingDetail(OfferingListItem):
    description: str | None
    allocation_completed: bool
    created_at: str | None
    archived_at: str | None = None
    my_subscription: SubscriptionItem | None = None

    @classmethod
    def from_offering(
        cls, o: Offering, my_subscription: SubscriptionItem | None = None
    ) -> "OfferingDetail":
        base = OfferingListItem.from_domain(o).model_dump()
        return cls(
            **base,
            description=o.description,
            allocation_completed=o.allocation_completed,
            created_at=o.created_at.isoformat() if o.created_at else None,
            archived_at=o.archived_at.isoformat() if o.archived_at else None,
            my_subscription=my_subscription,
        )

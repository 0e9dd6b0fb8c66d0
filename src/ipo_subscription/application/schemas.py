"""Pydantic schemas for ipo_subscription API.

Request bodies accept both the canonical snake_case names and the camelCase
names older clients send; both land on the same field.
"""

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from src.ipo_common.money import cents_to_display
from src.ipo_subscription.domain.models import Subscription

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class SubscribeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # Lot-size validation owns quantity range errors, so no bound here
    quantity: int = Field(
        ...,
        validation_alias=AliasChoices("quantity", "shares", "requestedShares"),
        description="Shares requested; must be a multiple of the lot size",
    )
    price_per_share_cents: int = Field(
        ...,
        validation_alias=AliasChoices(
            "price_per_share_cents", "price_per_share", "pricePerShare", "price"
        ),
        description="Bid price per share in cents, inside the offering's band",
    )


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class SubscriptionItem(BaseModel):
    id: int
    offering_id: int
    user_id: str
    quantity: int
    price_per_share_cents: int
    price_per_share_display: str
    total_amount_cents: int
    total_amount_display: str
    status: str
    allocation_quantity: int
    allocation_amount_cents: int
    allocation_amount_display: str
    created_at: str

    @classmethod
    def from_domain(cls, s: Subscription) -> "SubscriptionItem":
        return cls(
            id=s.id,
            offering_id=s.offering_id,
            user_id=s.user_id,
            quantity=s.quantity,
            price_per_share_cents=s.price_per_share,
            price_per_share_display=cents_to_display(s.price_per_share),
            total_amount_cents=s.total_amount,
            total_amount_display=cents_to_display(s.total_amount),
            status=s.status,
            allocation_quantity=s.allocation_quantity,
            allocation_amount_cents=s.allocation_amount,
            allocation_amount_display=cents_to_display(s.allocation_amount),
            created_at=s.created_at.isoformat(),
        )


class SubscriptionListResponse(BaseModel):
    items: list[SubscriptionItem]
    next_cursor: str | None
    has_more: bool


class CancelResponse(BaseModel):
    subscription_id: int
    offering_id: int
    released_amount_cents: int
    released_amount_display: str

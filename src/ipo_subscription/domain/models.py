"""Domain models for ipo_subscription — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime

from src.ipo_common.enums import RESERVED_SUBSCRIPTION_STATUSES


@dataclass
class Subscription:
    id: int                          # BIGSERIAL, tie-breaker for allocation order
    user_id: str
    offering_id: int
    quantity: int
    price_per_share: int             # cents
    total_amount: int                # cents, quantity * price_per_share
    status: str                      # SubscriptionStatus value
    created_at: datetime
    allocation_quantity: int = 0
    allocation_amount: int = 0       # cents
    updated_at: datetime | None = None

    @property
    def is_reserved(self) -> bool:
        return self.status in RESERVED_SUBSCRIPTION_STATUSES

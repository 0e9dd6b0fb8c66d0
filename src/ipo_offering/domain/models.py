"""Domain models for ipo_offering — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime

from src.ipo_common.enums import OfferingStatus


@dataclass
class Offering:
    id: int                          # BIGSERIAL
    symbol: str
    company_name: str
    exchange: str
    price_min: int                   # cents, inclusive
    price_max: int                   # cents, inclusive
    lot_size: int
    total_shares: int
    allocated_shares: int
    remaining_shares: int
    start_date: datetime
    end_date: datetime
    status: str                      # OfferingStatus value, never 'allocated' in storage
    allocation_completed: bool = False
    description: str | None = None
    created_by: str | None = None
    archived_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def phase(self) -> str:
        """Lifecycle phase as presented to clients."""
        if self.status == OfferingStatus.CLOSED and self.allocation_completed:
            return OfferingStatus.ALLOCATED.value
        return self.status

    def is_open_at(self, now: datetime) -> bool:
        return (
            self.status == OfferingStatus.ACTIVE
            and self.start_date <= now <= self.end_date
        )

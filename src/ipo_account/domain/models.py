"""Domain models for ipo_account — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class Deposit:
    id: int                      # BIGSERIAL
    user_id: str
    amount: int                  # cents
    status: str                  # DepositStatus value
    created_at: datetime | None = None


@dataclass(frozen=True)
class Balance:
    """Derived balance, never stored."""
    user_id: str
    total_balance: int       # cents, sum of approved deposits
    reserved_amount: int     # cents, sum of pending/confirmed subscription amounts

    @property
    def available_balance(self) -> int:
        return self.total_balance - self.reserved_amount

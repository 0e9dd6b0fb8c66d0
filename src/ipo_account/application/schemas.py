"""Pydantic schemas for ipo_account API."""

from pydantic import BaseModel

from src.ipo_account.domain.models import Balance
from src.ipo_common.money import cents_to_display


class BalanceResponse(BaseModel):
    user_id: str
    total_balance_cents: int
    total_balance_display: str
    reserved_amount_cents: int
    reserved_amount_display: str
    available_balance_cents: int
    available_balance_display: str

    @classmethod
    def from_balance(cls, balance: Balance) -> "BalanceResponse":
        return cls(
            user_id=balance.user_id,
            total_balance_cents=balance.total_balance,
            total_balance_display=cents_to_display(balance.total_balance),
            reserved_amount_cents=balance.reserved_amount,
            reserved_amount_display=cents_to_display(balance.reserved_amount),
            available_balance_cents=balance.available_balance,
            available_balance_display=cents_to_display(balance.available_balance),
        )

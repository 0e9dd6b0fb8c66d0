"""SubscriptionValidator — ordered, short-circuiting checks for a subscribe request.

Order: phase -> price band -> lot size -> duplicate -> balance. The first
failing rule raises its typed SubscriptionValidationError. No writes.
"""

from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from src.ipo_account.application.ledger_reader import LedgerReader
from src.ipo_common.money import subscription_amount
from src.ipo_offering.domain.models import Offering
from src.ipo_risk.rules.balance_check import check_balance
from src.ipo_risk.rules.duplicate import check_no_active_subscription
from src.ipo_risk.rules.lot_size import check_lot_size
from src.ipo_risk.rules.phase import check_offering_open
from src.ipo_risk.rules.price_band import check_price_band


class SubscriptionValidator:
    def __init__(self, reader: LedgerReader | None = None) -> None:
        self._reader = reader or LedgerReader()

    async def validate(
        self,
        db: AsyncSession,
        offering: Offering,
        user_id: str,
        quantity: int,
        price: int,
        now: datetime,
    ) -> int:
        """Return the subscription's total amount (cents) when every rule passes."""
        check_offering_open(offering, now)
        check_price_band(offering, price)
        check_lot_size(offering, quantity)
        await check_no_active_subscription(user_id, offering.id, db)
        total_amount = subscription_amount(quantity, price)
        await check_balance(user_id, total_amount, self._reader, db)
        return total_amount

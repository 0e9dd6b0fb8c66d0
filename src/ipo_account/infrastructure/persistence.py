"""LedgerRepository — reads deposits and reserved subscription amounts.

Read-only. Deposits are owned by the deposit-review collaborator; only rows
with status 'approved' are ever returned.
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.ipo_account.domain.models import Deposit
from src.ipo_common.enums import RESERVED_SUBSCRIPTION_STATUSES, DepositStatus

_LIST_APPROVED_DEPOSITS_SQL = text("""
    SELECT id, user_id, amount, status, created_at
    FROM deposits
    WHERE user_id = CAST(:user_id AS UUID) AND status = :status
    ORDER BY id
""")

_SUM_RESERVED_SQL = text("""
    SELECT COALESCE(SUM(total_amount), 0)
    FROM subscriptions
    WHERE user_id = CAST(:user_id AS UUID)
      AND status IN (:pending, :confirmed)
""")


def _row_to_deposit(row: object) -> Deposit:
    return Deposit(
        id=row.id,  # type: ignore[attr-defined]
        user_id=str(row.user_id),  # type: ignore[attr-defined]
        amount=row.amount,  # type: ignore[attr-defined]
        status=row.status,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


class LedgerRepository:
    async def list_approved_deposits(
        self, db: AsyncSession, user_id: str
    ) -> list[Deposit]:
        result = await db.execute(
            _LIST_APPROVED_DEPOSITS_SQL,
            {"user_id": user_id, "status": DepositStatus.APPROVED.value},
        )
        return [_row_to_deposit(row) for row in result.fetchall()]

    async def sum_reserved_amount(self, db: AsyncSession, user_id: str) -> int:
        pending, confirmed = RESERVED_SUBSCRIPTION_STATUSES
        result = await db.execute(
            _SUM_RESERVED_SQL,
            {"user_id": user_id, "pending": pending, "confirmed": confirmed},
        )
        return int(result.scalar_one())

"""LedgerReader — the user's balance, derived on every call.

No caching: the subscribe path calls this inside its own transaction after
locking the user row, so the figure it sees is the one the insert commits
against.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from src.ipo_account.domain.models import Balance
from src.ipo_account.domain.repository import LedgerRepositoryProtocol
from src.ipo_account.infrastructure.persistence import LedgerRepository


class LedgerReader:
    def __init__(self, repo: LedgerRepositoryProtocol | None = None) -> None:
        self._repo: LedgerRepositoryProtocol = repo or LedgerRepository()

    async def get_balance(self, db: AsyncSession, user_id: str) -> Balance:
        deposits = await self._repo.list_approved_deposits(db, user_id)
        reserved = await self._repo.sum_reserved_amount(db, user_id)
        return Balance(
            user_id=user_id,
            total_balance=sum(d.amount for d in deposits),
            reserved_amount=reserved,
        )

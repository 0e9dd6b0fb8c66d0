"""Repository Protocol for the ledger reader.

Unit tests inject a mock that conforms to this Protocol.
"""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.ipo_account.domain.models import Deposit


class LedgerRepositoryProtocol(Protocol):
    async def list_approved_deposits(
        self, db: AsyncSession, user_id: str
    ) -> list[Deposit]: ...

    async def sum_reserved_amount(self, db: AsyncSession, user_id: str) -> int: ...

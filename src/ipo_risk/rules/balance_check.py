"""Balance sufficiency: quantity x price must fit in the available balance.

Pure read. The subscribe path calls it after locking the user row, which keeps
the figure valid until the insert commits.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from src.ipo_account.application.ledger_reader import LedgerReader
from src.ipo_account.domain.models import Balance
from src.ipo_common.errors import InsufficientBalanceError


async def check_balance(
    user_id: str, required: int, reader: LedgerReader, db: AsyncSession
) -> Balance:
    balance = await reader.get_balance(db, user_id)
    if required > balance.available_balance:
        raise InsufficientBalanceError(balance.available_balance, required)
    return balance

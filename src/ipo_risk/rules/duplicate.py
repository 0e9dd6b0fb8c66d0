from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.ipo_common.errors import DuplicateSubscriptionError

_SQL = text("""
    SELECT id FROM subscriptions
    WHERE user_id = CAST(:user_id AS UUID)
      AND offering_id = :offering_id
      AND status IN ('pending', 'confirmed')
    LIMIT 1
""")


async def check_no_active_subscription(
    user_id: str, offering_id: int, db: AsyncSession
) -> None:
    result = await db.execute(_SQL, {"user_id": user_id, "offering_id": offering_id})
    if result.scalar_one_or_none() is not None:
        raise DuplicateSubscriptionError(offering_id)

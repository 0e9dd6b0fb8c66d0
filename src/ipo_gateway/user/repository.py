"""User service contract: ``exists(user_id)``.

With ``lock=True`` the user row is taken ``FOR UPDATE``. Subscribe and cancel
both do this first, so every reservation change of one user is serialised
across server instances for the rest of the transaction.
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

_EXISTS_SQL = text("""
    SELECT id FROM users
    WHERE id = CAST(:user_id AS UUID) AND is_active = TRUE
""")

_LOCK_SQL = text("""
    SELECT id FROM users
    WHERE id = CAST(:user_id AS UUID) AND is_active = TRUE
    FOR UPDATE
""")


class UserRepository:
    async def exists(self, db: AsyncSession, user_id: str, lock: bool = False) -> bool:
        sql = _LOCK_SQL if lock else _EXISTS_SQL
        result = await db.execute(sql, {"user_id": user_id})
        return result.fetchone() is not None

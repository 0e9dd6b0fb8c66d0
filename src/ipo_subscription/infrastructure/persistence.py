"""SubscriptionRepository — concrete implementation of SubscriptionRepositoryProtocol.

Transaction ownership: the CALLER (application service, allocation engine)
commits or rolls back. Every listing is ordered by (created_at, id) ascending,
the order allocation walks the queue in.
"""

from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.ipo_allocation.domain.models import AllocationDecision
from src.ipo_common.errors import InternalError
from src.ipo_subscription.domain.models import Subscription

_COLUMNS = """
    id, user_id, offering_id, quantity, price_per_share, total_amount,
    status, allocation_quantity, allocation_amount, created_at, updated_at
"""

_INSERT_SQL = text(f"""
    INSERT INTO subscriptions
        (user_id, offering_id, quantity, price_per_share, total_amount, status)
    VALUES
        (CAST(:user_id AS UUID), :offering_id, :quantity, :price_per_share,
         :total_amount, 'pending')
    RETURNING {_COLUMNS}
""")

_GET_SQL = text(f"SELECT {_COLUMNS} FROM subscriptions WHERE id = :subscription_id")
_GET_FOR_UPDATE_SQL = text(
    f"SELECT {_COLUMNS} FROM subscriptions WHERE id = :subscription_id FOR UPDATE"
)

_DELETE_PENDING_SQL = text("""
    DELETE FROM subscriptions
    WHERE id = :subscription_id AND status = 'pending'
    RETURNING id
""")

_LATEST_FOR_USER_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM subscriptions
    WHERE user_id = CAST(:user_id AS UUID) AND offering_id = :offering_id
    ORDER BY created_at DESC, id DESC
    LIMIT 1
""")

_LIST_FOR_USER_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM subscriptions
    WHERE user_id = CAST(:user_id AS UUID)
      AND (CAST(:status AS TEXT) IS NULL OR status = CAST(:status AS TEXT))
      AND (
          CAST(:cursor_ts AS TIMESTAMPTZ) IS NULL
          OR created_at > CAST(:cursor_ts AS TIMESTAMPTZ)
          OR (
              created_at = CAST(:cursor_ts AS TIMESTAMPTZ)
              AND id > CAST(:cursor_id AS BIGINT)
          )
      )
    ORDER BY created_at ASC, id ASC
    LIMIT :limit
""")

_LIST_FOR_OFFERING_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM subscriptions
    WHERE offering_id = :offering_id
      AND (
          CAST(:statuses AS TEXT[]) IS NULL
          OR status = ANY(CAST(:statuses AS TEXT[]))
      )
    ORDER BY created_at ASC, id ASC
""")

_LIST_FOR_OFFERING_LOCKED_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM subscriptions
    WHERE offering_id = :offering_id
      AND (
          CAST(:statuses AS TEXT[]) IS NULL
          OR status = ANY(CAST(:statuses AS TEXT[]))
      )
    ORDER BY created_at ASC, id ASC
    FOR UPDATE
""")

_COUNT_BY_STATUS_SQL = text("""
    SELECT status, COUNT(*) AS total
    FROM subscriptions
    WHERE offering_id = :offering_id
    GROUP BY status
""")

# One statement for the whole offering; rows already terminal are left alone
# and show up as a short RETURNING count.
_APPLY_ALLOCATIONS_SQL = text("""
    UPDATE subscriptions AS s
    SET status = d.status,
        allocation_quantity = d.allocation_quantity,
        allocation_amount = d.allocation_amount,
        updated_at = NOW()
    FROM unnest(
        CAST(:ids AS BIGINT[]),
        CAST(:statuses AS TEXT[]),
        CAST(:quantities AS BIGINT[]),
        CAST(:amounts AS BIGINT[])
    ) AS d(id, status, allocation_quantity, allocation_amount)
    WHERE s.id = d.id AND s.status IN ('pending', 'confirmed')
    RETURNING s.id
""")


def _row_to_subscription(row: object) -> Subscription:
    return Subscription(
        id=row.id,  # type: ignore[attr-defined]
        user_id=str(row.user_id),  # type: ignore[attr-defined]
        offering_id=row.offering_id,  # type: ignore[attr-defined]
        quantity=row.quantity,  # type: ignore[attr-defined]
        price_per_share=row.price_per_share,  # type: ignore[attr-defined]
        total_amount=row.total_amount,  # type: ignore[attr-defined]
        status=row.status,  # type: ignore[attr-defined]
        allocation_quantity=row.allocation_quantity,  # type: ignore[attr-defined]
        allocation_amount=row.allocation_amount,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


class SubscriptionRepository:
    async def insert_pending(
        self,
        db: AsyncSession,
        user_id: str,
        offering_id: int,
        quantity: int,
        price_per_share: int,
        total_amount: int,
    ) -> Subscription:
        result = await db.execute(
            _INSERT_SQL,
            {
                "user_id": user_id,
                "offering_id": offering_id,
                "quantity": quantity,
                "price_per_share": price_per_share,
                "total_amount": total_amount,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Subscription insert returned no rows — this should never happen")
        return _row_to_subscription(row)

    async def get_by_id(
        self, db: AsyncSession, subscription_id: int, lock: bool = False
    ) -> Subscription | None:
        sql = _GET_FOR_UPDATE_SQL if lock else _GET_SQL
        result = await db.execute(sql, {"subscription_id": subscription_id})
        row = result.fetchone()
        return _row_to_subscription(row) if row else None

    async def delete_pending(self, db: AsyncSession, subscription_id: int) -> bool:
        result = await db.execute(_DELETE_PENDING_SQL, {"subscription_id": subscription_id})
        return result.fetchone() is not None

    async def find_latest_for_user(
        self, db: AsyncSession, user_id: str, offering_id: int
    ) -> Subscription | None:
        result = await db.execute(
            _LATEST_FOR_USER_SQL, {"user_id": user_id, "offering_id": offering_id}
        )
        row = result.fetchone()
        return _row_to_subscription(row) if row else None

    async def list_for_user(
        self,
        db: AsyncSession,
        user_id: str,
        status: str | None,
        cursor_ts: datetime | None,
        cursor_id: int | None,
        limit: int,
    ) -> list[Subscription]:
        result = await db.execute(
            _LIST_FOR_USER_SQL,
            {
                "user_id": user_id,
                "status": status,
                "cursor_ts": cursor_ts,
                "cursor_id": cursor_id,
                "limit": limit,
            },
        )
        return [_row_to_subscription(row) for row in result.fetchall()]

    async def list_for_offering(
        self,
        db: AsyncSession,
        offering_id: int,
        statuses: Sequence[str] | None,
        lock: bool = False,
    ) -> list[Subscription]:
        sql = _LIST_FOR_OFFERING_LOCKED_SQL if lock else _LIST_FOR_OFFERING_SQL
        result = await db.execute(
            sql,
            {
                "offering_id": offering_id,
                "statuses": list(statuses) if statuses is not None else None,
            },
        )
        return [_row_to_subscription(row) for row in result.fetchall()]

    async def count_by_status(self, db: AsyncSession, offering_id: int) -> dict[str, int]:
        result = await db.execute(_COUNT_BY_STATUS_SQL, {"offering_id": offering_id})
        return {row.status: row.total for row in result.fetchall()}

    async def apply_allocations(
        self, db: AsyncSession, decisions: Sequence[AllocationDecision]
    ) -> int:
        """Write every decision in one statement; returns the number of rows changed."""
        if not decisions:
            return 0
        result = await db.execute(
            _APPLY_ALLOCATIONS_SQL,
            {
                "ids": [d.subscription_id for d in decisions],
                "statuses": [d.status for d in decisions],
                "quantities": [d.allocation_quantity for d in decisions],
                "amounts": [d.allocation_amount for d in decisions],
            },
        )
        return len(result.fetchall())

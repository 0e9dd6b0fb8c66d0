"""OfferingRepository — concrete implementation of OfferingRepositoryProtocol.

All queries use raw text() SQL.
asyncpg NULL parameter pattern: CAST(:param AS TYPE) IS NULL required for None values.

Phase transitions are single conditional UPDATE ... RETURNING statements, so a
second run over the same rows matches nothing and changes nothing.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.ipo_common.errors import InternalError
from src.ipo_offering.domain.models import Offering
from src.ipo_offering.domain.repository import RowLock

_COLUMNS = """
    id, symbol, company_name, exchange,
    price_min, price_max, lot_size,
    total_shares, allocated_shares, remaining_shares,
    start_date, end_date, status, allocation_completed,
    description, created_by, archived_at, created_at, updated_at
"""

# ---------------------------------------------------------------------------
# SQL: reads
# ---------------------------------------------------------------------------

_GET_SQL = text(f"SELECT {_COLUMNS} FROM offerings WHERE id = :offering_id")
_GET_FOR_SHARE_SQL = text(
    f"SELECT {_COLUMNS} FROM offerings WHERE id = :offering_id FOR SHARE"
)
_GET_FOR_UPDATE_SQL = text(
    f"SELECT {_COLUMNS} FROM offerings WHERE id = :offering_id FOR UPDATE"
)

_LIST_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM offerings
    WHERE
        archived_at IS NULL
        AND (
            CAST(:phase AS TEXT) IS NULL
            OR (
                CAST(:phase AS TEXT) = 'allocated'
                AND status = 'closed' AND allocation_completed
            )
            OR (
                CAST(:phase AS TEXT) <> 'allocated'
                AND status = CAST(:phase AS TEXT)
                AND NOT (status = 'closed' AND allocation_completed)
            )
        )
        AND (CAST(:exchange AS TEXT) IS NULL OR exchange = CAST(:exchange AS TEXT))
        AND (
            CAST(:cursor_ts AS TIMESTAMPTZ) IS NULL
            OR created_at < CAST(:cursor_ts AS TIMESTAMPTZ)
            OR (
                created_at = CAST(:cursor_ts AS TIMESTAMPTZ)
                AND id < CAST(:cursor_id AS BIGINT)
            )
        )
    ORDER BY created_at DESC, id DESC
    LIMIT :limit
""")

_LIST_ACTIVE_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM offerings
    WHERE status = 'active' AND end_date >= :now AND archived_at IS NULL
    ORDER BY end_date ASC, id ASC
    LIMIT :limit
""")

_LIST_UPCOMING_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM offerings
    WHERE status = 'upcoming' AND archived_at IS NULL
    ORDER BY start_date ASC, id ASC
    LIMIT :limit
""")

_LIST_PENDING_ALLOCATION_SQL = text("""
    SELECT id
    FROM offerings
    WHERE status = 'closed' AND allocation_completed = FALSE AND archived_at IS NULL
    ORDER BY end_date ASC, id ASC
""")

_COUNT_BY_PHASE_SQL = text("""
    SELECT CASE
               WHEN status = 'closed' AND allocation_completed THEN 'allocated'
               ELSE status
           END AS phase,
           COUNT(*) AS total
    FROM offerings
    WHERE archived_at IS NULL
    GROUP BY 1
""")

# ---------------------------------------------------------------------------
# SQL: lifecycle transitions
# ---------------------------------------------------------------------------

_PROMOTE_STARTED_SQL = text("""
    UPDATE offerings
    SET status = 'active', updated_at = NOW()
    WHERE status = 'upcoming' AND start_date <= :now AND archived_at IS NULL
    RETURNING id
""")

_CLOSE_ENDED_SQL = text("""
    UPDATE offerings
    SET status = 'closed', updated_at = NOW()
    WHERE status = 'active' AND end_date < :now AND archived_at IS NULL
    RETURNING id
""")

_MARK_ALLOCATED_SQL = text("""
    UPDATE offerings
    SET allocated_shares = :allocated_shares,
        remaining_shares = :remaining_shares,
        allocation_completed = TRUE,
        updated_at = NOW()
    WHERE id = :offering_id
      AND status = 'closed'
      AND allocation_completed = FALSE
    RETURNING id
""")

# ---------------------------------------------------------------------------
# SQL: admin writes
# ---------------------------------------------------------------------------

_INSERT_SQL = text(f"""
    INSERT INTO offerings
        (symbol, company_name, exchange, price_min, price_max, lot_size,
         total_shares, allocated_shares, remaining_shares,
         start_date, end_date, status, description, created_by)
    VALUES
        (:symbol, :company_name, :exchange, :price_min, :price_max, :lot_size,
         :total_shares, 0, :total_shares,
         :start_date, :end_date, 'upcoming', :description, CAST(:created_by AS UUID))
    RETURNING {_COLUMNS}
""")

_ARCHIVE_SQL = text(f"""
    UPDATE offerings
    SET archived_at = NOW(), updated_at = NOW()
    WHERE id = :offering_id AND archived_at IS NULL
    RETURNING {_COLUMNS}
""")

# Only rows no subscription points at; the FK would refuse the rest anyway.
_DELETE_UNREFERENCED_SQL = text("""
    DELETE FROM offerings o
    WHERE o.id = :offering_id
      AND NOT EXISTS (SELECT 1 FROM subscriptions s WHERE s.offering_id = o.id)
    RETURNING o.id
""")

# Columns an administrator may change while the offering is still upcoming
EDITABLE_COLUMNS: tuple[str, ...] = (
    "company_name",
    "exchange",
    "price_min",
    "price_max",
    "lot_size",
    "total_shares",
    "start_date",
    "end_date",
    "description",
)


def _row_to_offering(row: object) -> Offering:
    created_by = row.created_by  # type: ignore[attr-defined]
    return Offering(
        id=row.id,  # type: ignore[attr-defined]
        symbol=row.symbol,  # type: ignore[attr-defined]
        company_name=row.company_name,  # type: ignore[attr-defined]
        exchange=row.exchange,  # type: ignore[attr-defined]
        price_min=row.price_min,  # type: ignore[attr-defined]
        price_max=row.price_max,  # type: ignore[attr-defined]
        lot_size=row.lot_size,  # type: ignore[attr-defined]
        total_shares=row.total_shares,  # type: ignore[attr-defined]
        allocated_shares=row.allocated_shares,  # type: ignore[attr-defined]
        remaining_shares=row.remaining_shares,  # type: ignore[attr-defined]
        start_date=row.start_date,  # type: ignore[attr-defined]
        end_date=row.end_date,  # type: ignore[attr-defined]
        status=row.status,  # type: ignore[attr-defined]
        allocation_completed=row.allocation_completed,  # type: ignore[attr-defined]
        description=row.description,  # type: ignore[attr-defined]
        created_by=str(created_by) if created_by is not None else None,
        archived_at=row.archived_at,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


class OfferingRepository:
    async def get_by_id(
        self, db: AsyncSession, offering_id: int, lock: RowLock = None
    ) -> Offering | None:
        if lock == "update":
            sql = _GET_FOR_UPDATE_SQL
        elif lock == "share":
            sql = _GET_FOR_SHARE_SQL
        else:
            sql = _GET_SQL
        result = await db.execute(sql, {"offering_id": offering_id})
        row = result.fetchone()
        return _row_to_offering(row) if row else None

    async def list_offerings(
        self,
        db: AsyncSession,
        phase: str | None,
        exchange: str | None,
        cursor_ts: datetime | None,
        cursor_id: int | None,
        limit: int,
    ) -> list[Offering]:
        result = await db.execute(
            _LIST_SQL,
            {
                "phase": phase,
                "exchange": exchange,
                "cursor_ts": cursor_ts,
                "cursor_id": cursor_id,
                "limit": limit,
            },
        )
        return [_row_to_offering(row) for row in result.fetchall()]

    async def list_active(
        self, db: AsyncSession, now: datetime, limit: int
    ) -> list[Offering]:
        result = await db.execute(_LIST_ACTIVE_SQL, {"now": now, "limit": limit})
        return [_row_to_offering(row) for row in result.fetchall()]

    async def list_upcoming(self, db: AsyncSession, limit: int) -> list[Offering]:
        """Includes offerings past start_date that the tick has not promoted yet."""
        result = await db.execute(_LIST_UPCOMING_SQL, {"limit": limit})
        return [_row_to_offering(row) for row in result.fetchall()]

    async def promote_started(self, db: AsyncSession, now: datetime) -> list[int]:
        result = await db.execute(_PROMOTE_STARTED_SQL, {"now": now})
        return [row.id for row in result.fetchall()]

    async def close_ended(self, db: AsyncSession, now: datetime) -> list[int]:
        result = await db.execute(_CLOSE_ENDED_SQL, {"now": now})
        return [row.id for row in result.fetchall()]

    async def list_pending_allocation(self, db: AsyncSession) -> list[int]:
        result = await db.execute(_LIST_PENDING_ALLOCATION_SQL)
        return [row.id for row in result.fetchall()]

    async def mark_allocated(
        self, db: AsyncSession, offering_id: int, allocated_shares: int, remaining_shares: int
    ) -> bool:
        """Commit guard: False when another pass already completed this offering."""
        result = await db.execute(
            _MARK_ALLOCATED_SQL,
            {
                "offering_id": offering_id,
                "allocated_shares": allocated_shares,
                "remaining_shares": remaining_shares,
            },
        )
        return result.fetchone() is not None

    async def create(self, db: AsyncSession, fields: dict[str, Any]) -> Offering:
        result = await db.execute(_INSERT_SQL, fields)
        row = result.fetchone()
        if row is None:
            raise InternalError("Offering insert returned no rows — this should never happen")
        return _row_to_offering(row)

    async def update_upcoming(
        self, db: AsyncSession, offering_id: int, fields: dict[str, Any]
    ) -> Offering | None:
        """Apply a partial update; None when the offering is no longer upcoming."""
        changes = {k: v for k, v in fields.items() if k in EDITABLE_COLUMNS}
        assignments = [f"{column} = :{column}" for column in changes]
        if "total_shares" in changes:
            # nothing is allocated before the window opens
            assignments.append("remaining_shares = :total_shares")
        assignments.append("updated_at = NOW()")
        sql = text(f"""
            UPDATE offerings
            SET {", ".join(assignments)}
            WHERE id = :offering_id AND status = 'upcoming' AND archived_at IS NULL
            RETURNING {_COLUMNS}
        """)
        result = await db.execute(sql, {**changes, "offering_id": offering_id})
        row = result.fetchone()
        return _row_to_offering(row) if row else None

    async def count_by_phase(self, db: AsyncSession) -> dict[str, int]:
        result = await db.execute(_COUNT_BY_PHASE_SQL)
        return {row.phase: row.total for row in result.fetchall()}

    async def archive(self, db: AsyncSession, offering_id: int) -> Offering | None:
        """Stamp archived_at; None when the offering is missing or already archived."""
        result = await db.execute(_ARCHIVE_SQL, {"offering_id": offering_id})
        row = result.fetchone()
        return _row_to_offering(row) if row else None

    async def delete_unreferenced(self, db: AsyncSession, offering_id: int) -> bool:
        result = await db.execute(_DELETE_UNREFERENCED_SQL, {"offering_id": offering_id})
        return result.fetchone() is not None

"""tick_logs table: one audit row per lifecycle tick that did something."""

import json

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.ipo_lifecycle.domain.models import TickLog, TickReport

LIFECYCLE_JOB_NAME = "ipo_lifecycle_tick"

_INSERT_SQL = text("""
    INSERT INTO tick_logs
        (job_name, status, promoted_count, closed_count, allocated_count,
         failed_count, deferred_count, details, execution_time_ms, started_at)
    VALUES
        (:job_name, :status, :promoted_count, :closed_count, :allocated_count,
         :failed_count, :deferred_count, CAST(:details AS JSONB),
         :execution_time_ms, :started_at)
    RETURNING id
""")

_LIST_SQL = text("""
    SELECT id, job_name, status, promoted_count, closed_count, allocated_count,
           failed_count, deferred_count, details, execution_time_ms,
           started_at, created_at
    FROM tick_logs
    WHERE (CAST(:job_name AS TEXT) IS NULL OR job_name = CAST(:job_name AS TEXT))
    ORDER BY id DESC
    LIMIT :limit
""")


def _row_to_tick_log(row: object) -> TickLog:
    details = row.details  # type: ignore[attr-defined]
    if isinstance(details, str):
        details = json.loads(details)
    return TickLog(
        id=row.id,  # type: ignore[attr-defined]
        job_name=row.job_name,  # type: ignore[attr-defined]
        status=row.status,  # type: ignore[attr-defined]
        promoted_count=row.promoted_count,  # type: ignore[attr-defined]
        closed_count=row.closed_count,  # type: ignore[attr-defined]
        allocated_count=row.allocated_count,  # type: ignore[attr-defined]
        failed_count=row.failed_count,  # type: ignore[attr-defined]
        deferred_count=row.deferred_count,  # type: ignore[attr-defined]
        details=details,
        execution_time_ms=row.execution_time_ms,  # type: ignore[attr-defined]
        started_at=row.started_at,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


class TickLogRepository:
    async def insert(
        self, db: AsyncSession, report: TickReport, job_name: str = LIFECYCLE_JOB_NAME
    ) -> int:
        result = await db.execute(
            _INSERT_SQL,
            {
                "job_name": job_name,
                "status": report.status,
                "promoted_count": len(report.promoted),
                "closed_count": len(report.closed),
                "allocated_count": len(report.allocated),
                "failed_count": len(report.failed),
                "deferred_count": len(report.deferred),
                "details": json.dumps(report.details()),
                "execution_time_ms": report.duration_ms,
                "started_at": report.started_at,
            },
        )
        return int(result.scalar_one())

    async def list_recent(
        self, db: AsyncSession, limit: int, job_name: str | None = None
    ) -> list[TickLog]:
        result = await db.execute(_LIST_SQL, {"job_name": job_name, "limit": limit})
        return [_row_to_tick_log(row) for row in result.fetchall()]

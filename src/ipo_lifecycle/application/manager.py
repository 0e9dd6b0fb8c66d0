"""LifecycleManager — explicit ``tick()`` entry point for time-driven transitions.

One tick:
  a. upcoming -> active for every offering whose start_date has passed
  b. active   -> closed for every offering whose end_date has passed
     (a and b commit together as one transaction)
  c. every closed offering with allocation_completed = false is allocated,
     one at a time, each in its own session and transaction

Each step is a conditional UPDATE or guarded by allocation_completed, so a
repeated tick with nothing past a boundary changes nothing. A failing or slow
offering is logged, rolled back and left for the next tick; it never stops the
others. Offerings not reached before the tick budget runs out are deferred.
"""

import asyncio
import logging
import time
from collections.abc import Callable

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.ipo_allocation.engine.engine import AllocationEngine
from src.ipo_common.database import SessionFactory, async_session_factory
from src.ipo_common.datetime_utils import Clock, utc_now
from src.ipo_common.errors import AllocationConflictError
from src.ipo_lifecycle.domain.models import TickReport
from src.ipo_lifecycle.infrastructure.tick_log import TickLogRepository
from src.ipo_offering.domain.repository import OfferingRepositoryProtocol
from src.ipo_offering.infrastructure.persistence import OfferingRepository

logger = logging.getLogger(__name__)


class LifecycleManager:
    def __init__(
        self,
        session_factory: SessionFactory | None = None,
        offering_repo: OfferingRepositoryProtocol | None = None,
        engine: AllocationEngine | None = None,
        tick_log: TickLogRepository | None = None,
        clock: Clock = utc_now,
        tick_budget_seconds: float | None = None,
        allocation_timeout_seconds: float | None = None,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self._session_factory = session_factory or async_session_factory
        self._offerings: OfferingRepositoryProtocol = offering_repo or OfferingRepository()
        self._engine = engine or AllocationEngine(offering_repo=self._offerings)
        self._tick_log = tick_log or TickLogRepository()
        self._clock = clock
        self._budget = (
            tick_budget_seconds
            if tick_budget_seconds is not None
            else settings.TICK_BUDGET_SECONDS
        )
        self._allocation_timeout = (
            allocation_timeout_seconds
            if allocation_timeout_seconds is not None
            else settings.ALLOCATION_TIMEOUT_SECONDS
        )
        self._monotonic = monotonic

    async def tick(self) -> TickReport:
        now = self._clock()
        t0 = self._monotonic()
        report = TickReport(started_at=now)

        await self._run_transitions(report)
        pending = await self._pending_allocation(report)

        for idx, offering_id in enumerate(pending):
            if self._monotonic() - t0 >= self._budget:
                report.deferred = pending[idx:]
                logger.warning(
                    "Tick budget of %.1fs used; deferring %d offering(s): %s",
                    self._budget,
                    len(report.deferred),
                    report.deferred,
                )
                break
            await self._allocate_one(offering_id, report)

        report.duration_ms = int((self._monotonic() - t0) * 1000)
        await self._record(report)
        return report

    async def _run_transitions(self, report: TickReport) -> None:
        async with self._session_factory() as db:
            try:
                report.promoted = await self._offerings.promote_started(db, report.started_at)
                report.closed = await self._offerings.close_ended(db, report.started_at)
                await db.commit()
            except Exception as exc:
                await _rollback_quietly(db)
                report.promoted, report.closed = [], []
                report.error = f"transition pass failed: {exc}"
                logger.exception("Lifecycle transition pass failed")
                return
        for offering_id in report.promoted:
            logger.info("Offering %s: upcoming -> active", offering_id)
        for offering_id in report.closed:
            logger.info("Offering %s: active -> closed", offering_id)

    async def _pending_allocation(self, report: TickReport) -> list[int]:
        async with self._session_factory() as db:
            try:
                return await self._offerings.list_pending_allocation(db)
            except Exception as exc:
                report.error = f"pending allocation lookup failed: {exc}"
                logger.exception("Could not list offerings awaiting allocation")
                return []

    async def _allocate_one(self, offering_id: int, report: TickReport) -> None:
        async with self._session_factory() as db:
            try:
                await asyncio.wait_for(
                    self._engine.allocate(db, offering_id),
                    timeout=self._allocation_timeout,
                )
                await db.commit()
            except AllocationConflictError as exc:
                await _rollback_quietly(db)
                report.skipped[offering_id] = exc.message
                logger.warning("Allocation skipped: %s", exc.message)
            except TimeoutError:
                await _rollback_quietly(db)
                report.failed[offering_id] = (
                    f"timed out after {self._allocation_timeout:.1f}s"
                )
                logger.error(
                    "Allocation of offering %s timed out after %.1fs; will retry",
                    offering_id,
                    self._allocation_timeout,
                )
            except Exception as exc:
                await _rollback_quietly(db)
                report.failed[offering_id] = str(exc) or type(exc).__name__
                logger.exception("Allocation of offering %s failed; will retry", offering_id)
            else:
                report.allocated.append(offering_id)

    async def _record(self, report: TickReport) -> None:
        if report.is_noop:
            logger.debug("Lifecycle tick: nothing to do (%dms)", report.duration_ms)
            return
        logger.info(
            "Lifecycle tick %s: promoted=%d closed=%d allocated=%d skipped=%d "
            "failed=%d deferred=%d (%dms)",
            report.status,
            len(report.promoted),
            len(report.closed),
            len(report.allocated),
            len(report.skipped),
            len(report.failed),
            len(report.deferred),
            report.duration_ms,
        )
        async with self._session_factory() as db:
            try:
                await self._tick_log.insert(db, report)
                await db.commit()
            except Exception:
                await _rollback_quietly(db)
                logger.exception("Could not write tick log")


async def _rollback_quietly(db: AsyncSession) -> None:
    try:
        await db.rollback()
    except Exception:
        logger.exception("Rollback failed; session will be discarded")

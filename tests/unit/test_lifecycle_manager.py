"""Unit tests for LifecycleManager.tick() with a fake session factory."""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

from src.ipo_common.errors import AllocationConflictError
from src.ipo_lifecycle.application.manager import LifecycleManager
from src.ipo_lifecycle.domain.models import TickReport

NOW = datetime(2026, 3, 2, 12, 0, tzinfo=UTC)


class _FakeSessions:
    """Callable like async_sessionmaker; records every session it hands out."""

    def __init__(self) -> None:
        self.sessions: list[AsyncMock] = []

    def __call__(self):  # noqa: ANN204
        @asynccontextmanager
        async def _session() -> AsyncIterator[AsyncMock]:
            db = AsyncMock()
            self.sessions.append(db)
            yield db

        return _session()


class _Ticker:
    """Fake monotonic clock returning scripted values, then repeating the last."""

    def __init__(self, *values: float) -> None:
        self._values = list(values)

    def __call__(self) -> float:
        if len(self._values) > 1:
            return self._values.pop(0)
        return self._values[0]


@dataclass
class _Row:
    status: str
    start_date: datetime
    end_date: datetime
    completed: bool = False


class _OfferingTable:
    """In-memory stand-in for the transition queries of OfferingRepository."""

    def __init__(self, rows: dict[int, _Row]) -> None:
        self.rows = rows

    async def promote_started(self, db: object, now: datetime) -> list[int]:
        ids = [i for i, r in self.rows.items() if r.status == "upcoming" and r.start_date <= now]
        for i in ids:
            self.rows[i].status = "active"
        return ids

    async def close_ended(self, db: object, now: datetime) -> list[int]:
        ids = [i for i, r in self.rows.items() if r.status == "active" and r.end_date < now]
        for i in ids:
            self.rows[i].status = "closed"
        return ids

    async def list_pending_allocation(self, db: object) -> list[int]:
        return [i for i, r in self.rows.items() if r.status == "closed" and not r.completed]


class _TableEngine:
    def __init__(self, table: _OfferingTable) -> None:
        self._table = table

    async def allocate(self, db: object, offering_id: int) -> None:
        row = self._table.rows[offering_id]
        if row.completed:
            raise AllocationConflictError(offering_id, "allocation already completed")
        row.completed = True


def _make_manager(
    promoted: list[int] | None = None,
    closed: list[int] | None = None,
    pending: list[int] | None = None,
    **kwargs: object,
) -> tuple[LifecycleManager, AsyncMock, AsyncMock, AsyncMock, _FakeSessions]:
    offering_repo = AsyncMock()
    offering_repo.promote_started.return_value = promoted or []
    offering_repo.close_ended.return_value = closed or []
    offering_repo.list_pending_allocation.return_value = pending or []
    engine = AsyncMock()
    tick_log = AsyncMock()
    sessions = _FakeSessions()
    params: dict[str, object] = dict(
        session_factory=sessions,
        offering_repo=offering_repo,
        engine=engine,
        tick_log=tick_log,
        clock=lambda: NOW,
        tick_budget_seconds=45.0,
        allocation_timeout_seconds=5.0,
    )
    params.update(kwargs)
    manager = LifecycleManager(**params)  # type: ignore[arg-type]
    return manager, offering_repo, engine, tick_log, sessions


class TestTransitions:
    async def test_promote_and_close_commit_together(self) -> None:
        manager, offering_repo, _, tick_log, sessions = _make_manager(
            promoted=[1], closed=[2]
        )

        report = await manager.tick()

        assert report.promoted == [1]
        assert report.closed == [2]
        offering_repo.promote_started.assert_awaited_once_with(sessions.sessions[0], NOW)
        offering_repo.close_ended.assert_awaited_once_with(sessions.sessions[0], NOW)
        sessions.sessions[0].commit.assert_awaited_once()
        tick_log.insert.assert_awaited_once()

    async def test_transition_failure_recorded_and_allocation_still_runs(self) -> None:
        manager, offering_repo, engine, _, sessions = _make_manager(pending=[7])
        offering_repo.close_ended.side_effect = RuntimeError("db down")

        report = await manager.tick()

        assert report.error is not None and "db down" in report.error
        assert report.promoted == [] and report.closed == []
        sessions.sessions[0].rollback.assert_awaited_once()
        engine.allocate.assert_awaited_once()
        assert report.allocated == [7]
        assert report.status == "partial"


class TestAllocation:
    async def test_each_offering_in_own_session(self) -> None:
        manager, _, engine, _, sessions = _make_manager(pending=[3, 4])

        report = await manager.tick()

        assert report.allocated == [3, 4]
        alloc_sessions = [c.args[0] for c in engine.allocate.await_args_list]
        assert alloc_sessions[0] is not alloc_sessions[1]
        for db in alloc_sessions:
            db.commit.assert_awaited_once()
        assert report.status == "success"

    async def test_failure_isolated_to_one_offering(self) -> None:
        manager, _, engine, _, _ = _make_manager(pending=[3, 4, 5])

        async def _allocate(db: AsyncMock, offering_id: int) -> None:
            if offering_id == 4:
                raise RuntimeError("boom")

        engine.allocate.side_effect = _allocate

        report = await manager.tick()

        assert report.allocated == [3, 5]
        assert report.failed == {4: "boom"}
        failed_db = engine.allocate.await_args_list[1].args[0]
        failed_db.rollback.assert_awaited_once()
        failed_db.commit.assert_not_awaited()
        assert report.status == "partial"

    async def test_conflict_is_skipped_not_failed(self) -> None:
        manager, _, engine, _, _ = _make_manager(pending=[3])
        engine.allocate.side_effect = AllocationConflictError(3, "already allocated")

        report = await manager.tick()

        assert report.failed == {}
        assert 3 in report.skipped
        assert report.status == "success"

    async def test_slow_allocation_times_out(self) -> None:
        manager, _, engine, _, _ = _make_manager(
            pending=[3, 4], allocation_timeout_seconds=0.01
        )

        async def _allocate(db: AsyncMock, offering_id: int) -> None:
            if offering_id == 3:
                await asyncio.sleep(1)

        engine.allocate.side_effect = _allocate

        report = await manager.tick()

        assert "timed out" in report.failed[3]
        assert report.allocated == [4]

    async def test_budget_exhaustion_defers_rest(self) -> None:
        # t0, check #1, check #2, check #3 (over budget), final duration
        manager, _, engine, _, _ = _make_manager(
            pending=[3, 4, 5], tick_budget_seconds=10.0, monotonic=_Ticker(0, 0, 5, 11, 11)
        )

        report = await manager.tick()

        assert report.allocated == [3, 4]
        assert report.deferred == [5]
        assert engine.allocate.await_count == 2
        assert report.status == "partial"
        assert report.duration_ms == 11000

    async def test_pending_lookup_failure(self) -> None:
        manager, offering_repo, engine, _, _ = _make_manager()
        offering_repo.list_pending_allocation.side_effect = RuntimeError("lost")

        report = await manager.tick()

        assert "lost" in (report.error or "")
        engine.allocate.assert_not_awaited()
        assert report.status == "error"


class TestIdempotency:
    async def test_second_tick_finds_nothing_left_to_do(self) -> None:
        offerings = _OfferingTable(
            {
                1: _Row("upcoming", NOW - timedelta(hours=1), NOW + timedelta(days=1)),
                2: _Row("active", NOW - timedelta(days=2), NOW - timedelta(minutes=1)),
                3: _Row("upcoming", NOW + timedelta(days=1), NOW + timedelta(days=2)),
            }
        )
        manager, _, _, tick_log, _ = _make_manager(
            offering_repo=offerings, engine=_TableEngine(offerings)
        )

        first = await manager.tick()
        second = await manager.tick()

        assert first.promoted == [1]
        assert first.closed == [2]
        assert first.allocated == [2]
        assert second.is_noop
        assert tick_log.insert.await_count == 1
        assert offerings.rows[1].status == "active"
        assert offerings.rows[2].completed is True
        assert offerings.rows[3].status == "upcoming"

    async def test_noop_tick_writes_no_log(self) -> None:
        manager, _, _, tick_log, sessions = _make_manager()

        report = await manager.tick()

        assert report.is_noop
        assert report.status == "success"
        tick_log.insert.assert_not_awaited()
        # transitions + pending lookup only
        assert len(sessions.sessions) == 2

    async def test_tick_log_failure_does_not_raise(self) -> None:
        manager, _, _, tick_log, _ = _make_manager(promoted=[1])
        tick_log.insert.side_effect = RuntimeError("tick_logs missing")

        report = await manager.tick()

        assert report.promoted == [1]


class TestTickReport:
    def test_error_without_progress(self) -> None:
        report = TickReport(started_at=NOW, failed={1: "x"})
        assert report.status == "error"

    def test_details_stringify_keys(self) -> None:
        report = TickReport(started_at=NOW, skipped={4: "done"}, failed={5: "boom"})
        details = report.details()
        assert details["skipped"] == {"4": "done"}
        assert details["failed"] == {"5": "boom"}
        assert details["error"] is None

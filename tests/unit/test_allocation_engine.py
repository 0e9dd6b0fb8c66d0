"""Unit tests for AllocationEngine with mock repositories."""

import logging
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.ipo_allocation.engine.engine import AllocationEngine
from src.ipo_common.errors import AllocationConflictError, OfferingNotFoundError
from src.ipo_offering.domain.models import Offering
from src.ipo_subscription.domain.models import Subscription

_T0 = datetime(2026, 3, 2, 9, 0, tzinfo=UTC)


def _make_offering(
    total: int = 100, status: str = "closed", completed: bool = False
) -> Offering:
    return Offering(
        id=7,
        symbol="ACME",
        company_name="Acme Corp",
        exchange="BIST",
        price_min=2000,
        price_max=2500,
        lot_size=10,
        total_shares=total,
        allocated_shares=0,
        remaining_shares=total,
        start_date=_T0 - timedelta(days=3),
        end_date=_T0 - timedelta(hours=1),
        status=status,
        allocation_completed=completed,
    )


def _make_sub(sub_id: int, quantity: int, seconds: int) -> Subscription:
    return Subscription(
        id=sub_id,
        user_id=f"user-{sub_id}",
        offering_id=7,
        quantity=quantity,
        price_per_share=2500,
        total_amount=quantity * 2500,
        status="pending",
        created_at=_T0 + timedelta(seconds=seconds),
    )


def _engine(offering: Offering | None, subs: list[Subscription]) -> tuple[
    AllocationEngine, AsyncMock, AsyncMock
]:
    offering_repo = AsyncMock()
    offering_repo.get_by_id.return_value = offering
    offering_repo.mark_allocated.return_value = True
    sub_repo = AsyncMock()
    sub_repo.list_for_offering.return_value = subs
    sub_repo.apply_allocations.side_effect = lambda db, decisions: len(decisions)
    return AllocationEngine(offering_repo, sub_repo), offering_repo, sub_repo


class TestAllocate:
    async def test_partial_fill_scenario(self) -> None:
        engine, offering_repo, sub_repo = _engine(
            _make_offering(100), [_make_sub(1, 60, 0), _make_sub(2, 50, 1)]
        )
        db = MagicMock()

        result = await engine.allocate(db, 7)

        assert [d.allocation_quantity for d in result.decisions] == [60, 40]
        assert result.allocated_shares == 100
        assert result.remaining_shares == 0
        offering_repo.get_by_id.assert_awaited_once_with(db, 7, lock="update")
        offering_repo.mark_allocated.assert_awaited_once_with(db, 7, 100, 0)
        written = sub_repo.apply_allocations.call_args.args[1]
        assert len(written) == 2

    async def test_log_counts_partial_fills(self, caplog: pytest.LogCaptureFixture) -> None:
        engine, _, _ = _engine(
            _make_offering(100),
            [_make_sub(1, 60, 0), _make_sub(2, 50, 1), _make_sub(3, 10, 2)],
        )

        with caplog.at_level(logging.INFO, logger="src.ipo_allocation.engine.engine"):
            await engine.allocate(MagicMock(), 7)

        assert "(2 filled, 1 partial, 1 rejected)" in caplog.text

    async def test_locks_only_reserved_subscriptions(self) -> None:
        engine, _, sub_repo = _engine(_make_offering(), [])
        db = MagicMock()

        await engine.allocate(db, 7)

        args = sub_repo.list_for_offering.call_args
        assert tuple(args.args[2]) == ("pending", "confirmed")
        assert args.kwargs["lock"] is True

    async def test_zero_subscriptions_marks_allocated_with_full_remainder(self) -> None:
        engine, offering_repo, _ = _engine(_make_offering(500), [])

        result = await engine.allocate(MagicMock(), 7)

        assert result.decisions == []
        offering_repo.mark_allocated.assert_awaited_once()
        assert offering_repo.mark_allocated.call_args.args[2:] == (0, 500)

    async def test_unknown_offering_raises(self) -> None:
        engine, _, _ = _engine(None, [])
        with pytest.raises(OfferingNotFoundError):
            await engine.allocate(MagicMock(), 7)

    async def test_already_completed_is_conflict(self) -> None:
        engine, offering_repo, sub_repo = _engine(_make_offering(completed=True), [])

        with pytest.raises(AllocationConflictError) as exc_info:
            await engine.allocate(MagicMock(), 7)

        assert exc_info.value.code == 5001
        sub_repo.apply_allocations.assert_not_awaited()
        offering_repo.mark_allocated.assert_not_awaited()

    async def test_still_active_is_conflict(self) -> None:
        engine, _, sub_repo = _engine(_make_offering(status="active"), [])
        with pytest.raises(AllocationConflictError):
            await engine.allocate(MagicMock(), 7)
        sub_repo.list_for_offering.assert_not_awaited()

    async def test_commit_guard_miss_is_conflict(self) -> None:
        engine, offering_repo, _ = _engine(_make_offering(), [_make_sub(1, 10, 0)])
        offering_repo.mark_allocated.return_value = False

        with pytest.raises(AllocationConflictError):
            await engine.allocate(MagicMock(), 7)

    async def test_short_subscription_write_is_conflict(self) -> None:
        engine, offering_repo, sub_repo = _engine(
            _make_offering(), [_make_sub(1, 10, 0), _make_sub(2, 10, 1)]
        )
        sub_repo.apply_allocations.side_effect = None
        sub_repo.apply_allocations.return_value = 1

        with pytest.raises(AllocationConflictError):
            await engine.allocate(MagicMock(), 7)
        offering_repo.mark_allocated.assert_not_awaited()

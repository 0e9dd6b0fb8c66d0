"""Unit tests for AdminService and the admin request schemas."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError

from src.ipo_admin.application.schemas import CreateOfferingRequest, UpdateOfferingRequest
from src.ipo_admin.application.service import (
    SYMBOL_UNIQUE_CONSTRAINT,
    AdminService,
    validate_offering_terms,
)
from src.ipo_common.errors import (
    InvalidOfferingError,
    OfferingNotArchivableError,
    OfferingNotEditableError,
    OfferingNotFoundError,
    OfferingSymbolExistsError,
)
from src.ipo_lifecycle.domain.models import TickLog, TickReport
from src.ipo_offering.domain.models import Offering

START = datetime(2026, 4, 1, 9, 0, tzinfo=UTC)
END = START + timedelta(days=3)


def _create_body(**overrides: object) -> CreateOfferingRequest:
    payload: dict[str, object] = {
        "symbol": " acme ",
        "companyName": "Acme Corp",
        "exchange": "NASDAQ",
        "priceMin": 2000,
        "priceMax": 2500,
        "lotSize": 10,
        "totalShares": 1000,
        "startDate": START.isoformat(),
        "endDate": END.isoformat(),
    }
    payload.update(overrides)
    return CreateOfferingRequest.model_validate(payload)


def _make_offering(status: str = "upcoming", **overrides: object) -> Offering:
    fields: dict[str, object] = dict(
        id=11,
        symbol="ACME",
        company_name="Acme Corp",
        exchange="NASDAQ",
        price_min=2000,
        price_max=2500,
        lot_size=10,
        total_shares=1000,
        allocated_shares=0,
        remaining_shares=1000,
        start_date=START,
        end_date=END,
        status=status,
    )
    fields.update(overrides)
    return Offering(**fields)  # type: ignore[arg-type]


def _make_service(offering: Offering | None = None) -> tuple[AdminService, AsyncMock, AsyncMock]:
    offering_repo = AsyncMock()
    offering_repo.get_by_id.return_value = offering
    offering_repo.create.side_effect = lambda db, fields: _make_offering(
        symbol=fields["symbol"]
    )
    offering_repo.update_upcoming.return_value = offering
    tick_logs = AsyncMock()
    runner = AsyncMock()
    return AdminService(offering_repo, tick_logs, runner), offering_repo, tick_logs


class TestCreateOfferingRequest:
    def test_camel_case_and_symbol_normalised(self) -> None:
        fields = _create_body().to_fields()
        assert fields["symbol"] == "ACME"
        assert fields["company_name"] == "Acme Corp"
        assert fields["exchange"] == "NASDAQ"
        assert fields["price_min"] == 2000
        assert fields["lot_size"] == 10

    def test_unknown_exchange_rejected(self) -> None:
        with pytest.raises(ValidationError):
            _create_body(exchange="LSE")

    def test_non_positive_total_rejected(self) -> None:
        with pytest.raises(ValidationError):
            _create_body(totalShares=0)


class TestUpdateOfferingRequest:
    def test_only_sent_fields(self) -> None:
        body = UpdateOfferingRequest.model_validate({"priceMax": 3000, "lotSize": 5})
        assert body.to_fields() == {"price_max": 3000, "lot_size": 5}

    def test_explicit_null_description_clears_it(self) -> None:
        body = UpdateOfferingRequest.model_validate({"description": None, "companyName": None})
        assert body.to_fields() == {"description": None}


class TestValidateOfferingTerms:
    def _terms(self, **overrides: object) -> dict[str, object]:
        terms: dict[str, object] = dict(
            price_min=100, price_max=200, lot_size=10, total_shares=100,
            start_date=START, end_date=END,
        )
        terms.update(overrides)
        return terms

    def test_valid(self) -> None:
        validate_offering_terms(self._terms())

    def test_inverted_band(self) -> None:
        with pytest.raises(InvalidOfferingError):
            validate_offering_terms(self._terms(price_min=300))

    def test_empty_window(self) -> None:
        with pytest.raises(InvalidOfferingError):
            validate_offering_terms(self._terms(end_date=START))

    def test_lot_larger_than_pool(self) -> None:
        with pytest.raises(InvalidOfferingError):
            validate_offering_terms(self._terms(lot_size=500))


class TestCreateOffering:
    async def test_creates_and_commits(self) -> None:
        svc, offering_repo, _ = _make_service()
        db = AsyncMock()

        detail = await svc.create_offering(db, "admin-1", _create_body())

        assert detail.symbol == "ACME"
        assert detail.status == "upcoming"
        fields = offering_repo.create.call_args.args[1]
        assert fields["created_by"] == "admin-1"
        db.commit.assert_awaited_once()

    async def test_naive_dates_treated_as_utc(self) -> None:
        svc, offering_repo, _ = _make_service()
        body = _create_body(startDate="2026-04-01T09:00:00", endDate="2026-04-04T09:00:00")

        await svc.create_offering(AsyncMock(), "admin-1", body)

        fields = offering_repo.create.call_args.args[1]
        assert fields["start_date"].tzinfo is not None

    async def test_invalid_terms_never_reach_db(self) -> None:
        svc, offering_repo, _ = _make_service()
        with pytest.raises(InvalidOfferingError):
            await svc.create_offering(AsyncMock(), "admin-1", _create_body(priceMin=9000))
        offering_repo.create.assert_not_awaited()

    async def test_duplicate_symbol(self) -> None:
        svc, offering_repo, _ = _make_service()
        offering_repo.create.side_effect = IntegrityError(
            "INSERT", {}, Exception(f'unique constraint "{SYMBOL_UNIQUE_CONSTRAINT}"')
        )
        db = AsyncMock()
        with pytest.raises(OfferingSymbolExistsError):
            await svc.create_offering(db, "admin-1", _create_body())
        db.rollback.assert_awaited_once()


class TestUpdateOffering:
    async def test_updates_upcoming(self) -> None:
        svc, offering_repo, _ = _make_service(_make_offering())
        db = AsyncMock()

        await svc.update_offering(
            db, 11, UpdateOfferingRequest.model_validate({"totalShares": 2000})
        )

        offering_repo.get_by_id.assert_awaited_once_with(db, 11, lock="update")
        offering_repo.update_upcoming.assert_awaited_once_with(db, 11, {"total_shares": 2000})
        db.commit.assert_awaited_once()

    async def test_missing(self) -> None:
        svc, _, _ = _make_service(None)
        with pytest.raises(OfferingNotFoundError):
            await svc.update_offering(AsyncMock(), 11, UpdateOfferingRequest())

    @pytest.mark.parametrize("status", ["active", "closed"])
    async def test_not_upcoming(self, status: str) -> None:
        svc, offering_repo, _ = _make_service(_make_offering(status))
        db = AsyncMock()
        with pytest.raises(OfferingNotEditableError):
            await svc.update_offering(
                db, 11, UpdateOfferingRequest.model_validate({"lotSize": 20})
            )
        offering_repo.update_upcoming.assert_not_awaited()
        db.rollback.assert_awaited_once()

    async def test_merged_terms_validated(self) -> None:
        svc, offering_repo, _ = _make_service(_make_offering())
        with pytest.raises(InvalidOfferingError):
            await svc.update_offering(
                AsyncMock(), 11, UpdateOfferingRequest.model_validate({"priceMax": 1500})
            )
        offering_repo.update_upcoming.assert_not_awaited()

    async def test_guarded_update_miss(self) -> None:
        svc, offering_repo, _ = _make_service(_make_offering())
        offering_repo.update_upcoming.return_value = None
        with pytest.raises(OfferingNotEditableError):
            await svc.update_offering(
                AsyncMock(), 11, UpdateOfferingRequest.model_validate({"lotSize": 20})
            )


class TestArchiveOffering:
    def _service(
        self, offering: Offering | None, counts: dict[str, int]
    ) -> tuple[AdminService, AsyncMock]:
        offering_repo = AsyncMock()
        offering_repo.get_by_id.return_value = offering
        offering_repo.delete_unreferenced.return_value = True
        offering_repo.archive.return_value = _make_offering(
            "closed", allocation_completed=True, archived_at=END + timedelta(days=1)
        )
        sub_repo = AsyncMock()
        sub_repo.count_by_status.return_value = counts
        svc = AdminService(offering_repo, AsyncMock(), AsyncMock(), subscription_repo=sub_repo)
        return svc, offering_repo

    async def test_unreferenced_offering_is_deleted(self) -> None:
        svc, offering_repo = self._service(_make_offering(), {})
        db = AsyncMock()

        resp = await svc.archive_offering(db, "admin-1", 11)

        assert resp.action == "deleted"
        assert resp.archived_at is None
        offering_repo.get_by_id.assert_awaited_once_with(db, 11, lock="update")
        offering_repo.delete_unreferenced.assert_awaited_once_with(db, 11)
        offering_repo.archive.assert_not_awaited()
        db.commit.assert_awaited_once()

    async def test_settled_offering_is_archived(self) -> None:
        svc, offering_repo = self._service(
            _make_offering("closed", allocation_completed=True),
            {"allocated": 2, "rejected": 1},
        )

        resp = await svc.archive_offering(AsyncMock(), "admin-1", 11)

        assert resp.action == "archived"
        assert resp.archived_at == (END + timedelta(days=1)).isoformat()
        offering_repo.delete_unreferenced.assert_not_awaited()

    @pytest.mark.parametrize("status", ["pending", "confirmed"])
    async def test_reserved_subscriptions_block_removal(self, status: str) -> None:
        svc, offering_repo = self._service(_make_offering("active"), {status: 3})
        db = AsyncMock()

        with pytest.raises(OfferingNotArchivableError) as exc_info:
            await svc.archive_offering(db, "admin-1", 11)

        assert exc_info.value.http_status == 409
        offering_repo.delete_unreferenced.assert_not_awaited()
        offering_repo.archive.assert_not_awaited()
        db.rollback.assert_awaited_once()

    async def test_missing(self) -> None:
        svc, _ = self._service(None, {})
        with pytest.raises(OfferingNotFoundError):
            await svc.archive_offering(AsyncMock(), "admin-1", 11)

    async def test_already_archived_is_not_found(self) -> None:
        svc, offering_repo = self._service(_make_offering(archived_at=END), {"allocated": 1})
        with pytest.raises(OfferingNotFoundError):
            await svc.archive_offering(AsyncMock(), "admin-1", 11)
        offering_repo.archive.assert_not_awaited()

    async def test_archived_offering_cannot_be_updated(self) -> None:
        svc, offering_repo, _ = _make_service(_make_offering(archived_at=END))
        with pytest.raises(OfferingNotFoundError):
            await svc.update_offering(
                AsyncMock(), 11, UpdateOfferingRequest.model_validate({"lotSize": 20})
            )
        offering_repo.update_upcoming.assert_not_awaited()


class TestStatisticsAndTicks:
    async def test_statistics_cover_every_phase(self) -> None:
        svc, offering_repo, _ = _make_service()
        offering_repo.count_by_phase.return_value = {"active": 2, "allocated": 3}

        stats = await svc.get_offering_statistics(AsyncMock())

        assert stats.total == 5
        assert stats.by_status == {"upcoming": 0, "active": 2, "closed": 0, "allocated": 3}

    async def test_list_tick_logs(self) -> None:
        svc, _, tick_logs = _make_service()
        tick_logs.list_recent.return_value = [
            TickLog(
                id=1,
                job_name="ipo_lifecycle_tick",
                status="success",
                promoted_count=1,
                closed_count=0,
                allocated_count=0,
                failed_count=0,
                deferred_count=0,
                details={"promoted": [4]},
                execution_time_ms=12,
                started_at=START,
            )
        ]

        items = await svc.list_tick_logs(AsyncMock(), 10)

        assert items[0].details == {"promoted": [4]}
        assert items[0].started_at == START.isoformat()

    async def test_run_tick_returns_report(self) -> None:
        runner = AsyncMock(
            return_value=TickReport(started_at=START, allocated=[9], failed={8: "boom"})
        )
        svc = AdminService(AsyncMock(), AsyncMock(), runner)

        resp = await svc.run_tick("admin-1")

        assert resp.status == "partial"
        assert resp.allocated == [9]
        assert resp.failed == {"8": "boom"}

"""Pydantic schemas for the admin API.

Offering bodies accept the camelCase names the admin console sends
(``companyName``, ``priceMin``, ``lotSize``, ...) as well as snake_case.
"""

from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from src.ipo_common.enums import Exchange
from src.ipo_lifecycle.domain.models import TickLog, TickReport


class CreateOfferingRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    symbol: str = Field(..., min_length=1, max_length=16)
    company_name: str = Field(
        ...,
        min_length=1,
        max_length=255,
        validation_alias=AliasChoices("company_name", "companyName"),
    )
    exchange: Exchange = Exchange.BIST
    price_min_cents: int = Field(
        ..., gt=0, validation_alias=AliasChoices("price_min_cents", "price_min", "priceMin")
    )
    price_max_cents: int = Field(
        ..., gt=0, validation_alias=AliasChoices("price_max_cents", "price_max", "priceMax")
    )
    lot_size: int = Field(1, ge=1, validation_alias=AliasChoices("lot_size", "lotSize"))
    total_shares: int = Field(
        ..., gt=0, validation_alias=AliasChoices("total_shares", "totalShares")
    )
    start_date: datetime = Field(..., validation_alias=AliasChoices("start_date", "startDate"))
    end_date: datetime = Field(..., validation_alias=AliasChoices("end_date", "endDate"))
    description: str | None = None

    def to_fields(self) -> dict[str, Any]:
        return {
            "symbol": self.symbol.strip().upper(),
            "company_name": self.company_name,
            "exchange": self.exchange.value,
            "price_min": self.price_min_cents,
            "price_max": self.price_max_cents,
            "lot_size": self.lot_size,
            "total_shares": self.total_shares,
            "start_date": self.start_date,
            "end_date": self.end_date,
            "description": self.description,
        }


class UpdateOfferingRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    company_name: str | None = Field(
        None,
        min_length=1,
        max_length=255,
        validation_alias=AliasChoices("company_name", "companyName"),
    )
    exchange: Exchange | None = None
    price_min_cents: int | None = Field(
        None, gt=0, validation_alias=AliasChoices("price_min_cents", "price_min", "priceMin")
    )
    price_max_cents: int | None = Field(
        None, gt=0, validation_alias=AliasChoices("price_max_cents", "price_max", "priceMax")
    )
    lot_size: int | None = Field(None, ge=1, validation_alias=AliasChoices("lot_size", "lotSize"))
    total_shares: int | None = Field(
        None, gt=0, validation_alias=AliasChoices("total_shares", "totalShares")
    )
    start_date: datetime | None = Field(
        None, validation_alias=AliasChoices("start_date", "startDate")
    )
    end_date: datetime | None = Field(None, validation_alias=AliasChoices("end_date", "endDate"))
    description: str | None = None

    def to_fields(self) -> dict[str, Any]:
        """Only the fields the caller actually sent, keyed by column name."""
        renames = {"price_min_cents": "price_min", "price_max_cents": "price_max"}
        fields: dict[str, Any] = {}
        for name in self.model_fields_set:
            value = getattr(self, name)
            if value is None and name != "description":
                continue
            if isinstance(value, Exchange):
                value = value.value
            fields[renames.get(name, name)] = value
        return fields


class RemoveOfferingResponse(BaseModel):
    offering_id: int
    symbol: str
    action: str                      # "deleted" or "archived"
    archived_at: str | None = None


class OfferingStatsResponse(BaseModel):
    total: int
    by_status: dict[str, int]


class TickLogItem(BaseModel):
    id: int
    job_name: str
    status: str
    promoted_count: int
    closed_count: int
    allocated_count: int
    failed_count: int
    deferred_count: int
    details: dict[str, Any]
    execution_time_ms: int
    started_at: str

    @classmethod
    def from_domain(cls, log: TickLog) -> "TickLogItem":
        return cls(
            id=log.id,
            job_name=log.job_name,
            status=log.status,
            promoted_count=log.promoted_count,
            closed_count=log.closed_count,
            allocated_count=log.allocated_count,
            failed_count=log.failed_count,
            deferred_count=log.deferred_count,
            details=log.details,
            execution_time_ms=log.execution_time_ms,
            started_at=log.started_at.isoformat(),
        )


class TickReportResponse(BaseModel):
    status: str
    started_at: str
    duration_ms: int
    promoted: list[int]
    closed: list[int]
    allocated: list[int]
    skipped: dict[str, str]
    failed: dict[str, str]
    deferred: list[int]
    error: str | None

    @classmethod
    def from_report(cls, report: TickReport) -> "TickReportResponse":
        return cls(
            status=report.status,
            started_at=report.started_at.isoformat(),
            duration_ms=report.duration_ms,
            promoted=report.promoted,
            closed=report.closed,
            allocated=report.allocated,
            skipped={str(k): v for k, v in report.skipped.items()},
            failed={str(k): v for k, v in report.failed.items()},
            deferred=report.deferred,
            error=report.error,
        )

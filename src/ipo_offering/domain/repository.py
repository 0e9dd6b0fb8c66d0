"""Repository Protocol — dependency inversion for testability."""

from datetime import datetime
from typing import Any, Literal, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.ipo_offering.domain.models import Offering

RowLock = Literal["share", "update"] | None


class OfferingRepositoryProtocol(Protocol):
    async def get_by_id(
        self, db: AsyncSession, offering_id: int, lock: RowLock = None
    ) -> Offering | None: ...

    async def list_offerings(
        self,
        db: AsyncSession,
        phase: str | None,
        exchange: str | None,
        cursor_ts: datetime | None,
        cursor_id: int | None,
        limit: int,
    ) -> list[Offering]: ...

    async def list_active(
        self, db: AsyncSession, now: datetime, limit: int
    ) -> list[Offering]: ...

    async def list_upcoming(self, db: AsyncSession, limit: int) -> list[Offering]: ...

    async def promote_started(self, db: AsyncSession, now: datetime) -> list[int]: ...

    async def close_ended(self, db: AsyncSession, now: datetime) -> list[int]: ...

    async def list_pending_allocation(self, db: AsyncSession) -> list[int]: ...

    async def mark_allocated(
        self, db: AsyncSession, offering_id: int, allocated_shares: int, remaining_shares: int
    ) -> bool: ...

    async def create(self, db: AsyncSession, fields: dict[str, Any]) -> Offering: ...

    async def update_upcoming(
        self, db: AsyncSession, offering_id: int, fields: dict[str, Any]
    ) -> Offering | None: ...

    async def count_by_phase(self, db: AsyncSession) -> dict[str, int]: ...

    async def archive(self, db: AsyncSession, offering_id: int) -> Offering | None: ...

    async def delete_unreferenced(self, db: AsyncSession, offering_id: int) -> bool: ...

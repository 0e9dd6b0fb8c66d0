"""Repository Protocol — dependency inversion for testability.

Unit tests inject a mock that conforms to this Protocol.
Infrastructure layer provides the real implementation.
"""

from collections.abc import Sequence
from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.ipo_allocation.domain.models import AllocationDecision
from src.ipo_subscription.domain.models import Subscription


class SubscriptionRepositoryProtocol(Protocol):
    async def insert_pending(
        self,
        db: AsyncSession,
        user_id: str,
        offering_id: int,
        quantity: int,
        price_per_share: int,
        total_amount: int,
    ) -> Subscription: ...

    async def get_by_id(
        self, db: AsyncSession, subscription_id: int, lock: bool = False
    ) -> Subscription | None: ...

    async def delete_pending(self, db: AsyncSession, subscription_id: int) -> bool: ...

    async def find_latest_for_user(
        self, db: AsyncSession, user_id: str, offering_id: int
    ) -> Subscription | None: ...

    async def list_for_user(
        self,
        db: AsyncSession,
        user_id: str,
        status: str | None,
        cursor_ts: datetime | None,
        cursor_id: int | None,
        limit: int,
    ) -> list[Subscription]: ...

    async def list_for_offering(
        self,
        db: AsyncSession,
        offering_id: int,
        statuses: Sequence[str] | None,
        lock: bool = False,
    ) -> list[Subscription]: ...

    async def count_by_status(self, db: AsyncSession, offering_id: int) -> dict[str, int]: ...

    async def apply_allocations(
        self, db: AsyncSession, decisions: Sequence[AllocationDecision]
    ) -> int: ...

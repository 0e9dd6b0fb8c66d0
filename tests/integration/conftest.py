"""Integration-test fixtures.

All integration tests share a single event loop so that the module-level
SQLAlchemy async engine pool (created at import time) stays valid across the
whole session. Tests are skipped when PostgreSQL is not reachable.
"""

import uuid
from datetime import UTC, datetime, timedelta

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import text

from src.ipo_common.database import async_session_factory, engine
from src.ipo_gateway.auth.jwt_handler import create_access_token
from src.main import app


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def db_available() -> bool:
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1 FROM offerings LIMIT 1"))
    except Exception:
        return False
    return True


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def client(db_available: bool) -> AsyncClient:  # type: ignore[override]
    """Session-scoped async HTTP client — keeps the engine pool alive."""
    if not db_available:
        pytest.skip("PostgreSQL with migrations applied is not available")
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def _seed_user(
    role: str = "user", deposit_cents: int = 0
) -> tuple[str, dict[str, str]]:
    """Insert a user (and an approved deposit) directly; return (id, auth headers)."""
    username = f"{role}_{uuid.uuid4().hex[:8]}"
    async with async_session_factory() as db:
        user_id = (
            await db.execute(
                text("INSERT INTO users (username, role) VALUES (:u, :r) RETURNING id"),
                {"u": username, "r": role},
            )
        ).scalar_one()
        if deposit_cents:
            await db.execute(
                text(
                    "INSERT INTO deposits (user_id, amount, status) "
                    "VALUES (:uid, :amount, 'approved')"
                ),
                {"uid": user_id, "amount": deposit_cents},
            )
        await db.commit()
    token = create_access_token(str(user_id), role=role)
    return str(user_id), {"Authorization": f"Bearer {token}"}


@pytest.fixture
def seed_user():  # noqa: ANN201
    return _seed_user


async def _create_offering(
    client: AsyncClient, admin: dict[str, str], total_shares: int = 100
) -> int:
    """Create an offering whose window opened a minute ago (price 10.00, lot 10)."""
    now = datetime.now(UTC)
    resp = await client.post(
        "/api/v1/admin/offerings",
        headers=admin,
        json={
            "symbol": f"T{uuid.uuid4().hex[:6]}",
            "companyName": "Flow Test Corp",
            "exchange": "BIST",
            "priceMin": 1000,
            "priceMax": 1000,
            "lotSize": 10,
            "totalShares": total_shares,
            "startDate": (now - timedelta(minutes=1)).isoformat(),
            "endDate": (now + timedelta(hours=1)).isoformat(),
        },
    )
    assert resp.status_code == 201, resp.text
    return int(resp.json()["data"]["id"])


async def _end_window(offering_id: int, close: bool = False) -> None:
    """Move the window into the past; with close=True also mark it closed (unallocated)."""
    async with async_session_factory() as db:
        await db.execute(
            text(
                "UPDATE offerings SET start_date = NOW() - INTERVAL '2 hours', "
                "end_date = NOW() - INTERVAL '1 second', "
                "status = CASE WHEN CAST(:close AS BOOLEAN) THEN 'closed' ELSE status END "
                "WHERE id = :id"
            ),
            {"id": offering_id, "close": close},
        )
        await db.commit()


@pytest.fixture
def create_offering():  # noqa: ANN201
    return _create_offering


@pytest.fixture
def end_window():  # noqa: ANN201
    return _end_window

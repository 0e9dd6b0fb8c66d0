"""ipo_offering REST endpoints.

GET /offerings                  — list with cursor pagination
GET /offerings/active           — open for subscription, closing soonest first
GET /offerings/upcoming         — not yet open, opening soonest first
GET /offerings/{offering_id}    — detail plus the caller's subscription
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.ipo_common.database import get_db_session
from src.ipo_common.enums import Exchange, OfferingStatus
from src.ipo_common.response import ApiResponse, success_response
from src.ipo_gateway.auth.dependencies import get_current_user
from src.ipo_gateway.user.db_models import UserModel
from src.ipo_offering.application.service import OfferingApplicationService

router = APIRouter(prefix="/offerings", tags=["offerings"])

_service = OfferingApplicationService()


@router.get("")
async def list_offerings(
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    status: OfferingStatus | None = Query(None),
    exchange: Exchange | None = Query(None),
    limit: int = Query(20, ge=1, le=100),
    cursor: str | None = Query(None),
) -> ApiResponse:
    result = await _service.list_offerings(
        db,
        status.value if status else None,
        exchange.value if exchange else None,
        cursor,
        limit,
    )
    return success_response(result.model_dump(), request)


@router.get("/active")
async def list_active_offerings(
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    limit: int = Query(10, ge=1, le=100),
) -> ApiResponse:
    items = await _service.list_active_offerings(db, limit)
    return success_response([i.model_dump() for i in items], request)


@router.get("/upcoming")
async def list_upcoming_offerings(
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    limit: int = Query(10, ge=1, le=100),
) -> ApiResponse:
    items = await _service.list_upcoming_offerings(db, limit)
    return success_response([i.model_dump() for i in items], request)


@router.get("/{offering_id}")
async def get_offering(
    offering_id: int,
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.get_offering(db, offering_id, str(current_user.id))
    return success_response(result.model_dump(), request)

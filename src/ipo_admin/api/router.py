"""Admin REST API — every route requires an administrator token."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.ipo_admin.application.schemas import CreateOfferingRequest, UpdateOfferingRequest
from src.ipo_admin.application.service import AdminService
from src.ipo_common.database import get_db_session
from src.ipo_common.enums import Exchange, OfferingStatus, SubscriptionStatus
from src.ipo_common.response import ApiResponse, success_response
from src.ipo_gateway.auth.dependencies import require_admin
from src.ipo_gateway.user.db_models import UserModel
from src.ipo_offering.application.service import OfferingApplicationService
from src.ipo_subscription.application.service import SubscriptionApplicationService

router = APIRouter(prefix="/admin", tags=["admin"])

_service = AdminService()
_offerings = OfferingApplicationService()
_subscriptions = SubscriptionApplicationService()


@router.post("/offerings", status_code=status.HTTP_201_CREATED)
async def create_offering(
    body: CreateOfferingRequest,
    admin: Annotated[UserModel, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    result = await _service.create_offering(db, str(admin.id), body)
    return success_response(result.model_dump(), request)


@router.get("/offerings")
async def list_offerings(
    admin: Annotated[UserModel, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    status_filter: OfferingStatus | None = Query(None, alias="status"),
    exchange: Exchange | None = Query(None),
    limit: int = Query(20, ge=1, le=100),
    cursor: str | None = Query(None),
) -> ApiResponse:
    result = await _offerings.list_offerings(
        db,
        status_filter.value if status_filter else None,
        exchange.value if exchange else None,
        cursor,
        limit,
    )
    return success_response(result.model_dump(), request)


@router.get("/offerings/stats")
async def offering_statistics(
    admin: Annotated[UserModel, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    result = await _service.get_offering_statistics(db)
    return success_response(result.model_dump(), request)


@router.patch("/offerings/{offering_id}")
async def update_offering(
    offering_id: int,
    body: UpdateOfferingRequest,
    admin: Annotated[UserModel, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    result = await _service.update_offering(db, offering_id, body)
    return success_response(result.model_dump(), request)


@router.delete("/offerings/{offering_id}")
async def remove_offering(
    offering_id: int,
    admin: Annotated[UserModel, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    result = await _service.archive_offering(db, str(admin.id), offering_id)
    return success_response(result.model_dump(), request)


@router.get("/offerings/{offering_id}/subscriptions")
async def list_offering_subscriptions(
    offering_id: int,
    admin: Annotated[UserModel, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    status_filter: SubscriptionStatus | None = Query(None, alias="status"),
) -> ApiResponse:
    items = await _subscriptions.list_for_offering(
        db, offering_id, status_filter.value if status_filter else None
    )
    return success_response([i.model_dump() for i in items], request)


@router.get("/ticks")
async def list_ticks(
    admin: Annotated[UserModel, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    limit: int = Query(20, ge=1, le=200),
) -> ApiResponse:
    items = await _service.list_tick_logs(db, limit)
    return success_response([i.model_dump() for i in items], request)


@router.post("/ticks")
async def run_tick(
    admin: Annotated[UserModel, Depends(require_admin)],
    request: Request,
) -> ApiResponse:
    result = await _service.run_tick(str(admin.id))
    return success_response(result.model_dump(), request)

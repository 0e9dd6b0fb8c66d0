"""ipo_subscription REST endpoints, all JWT protected.

POST   /offerings/{offering_id}/subscriptions   — subscribe
GET    /subscriptions                           — caller's subscriptions, cursor paginated
DELETE /subscriptions/{subscription_id}         — cancel a pending subscription
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.ipo_common.database import get_db_session
from src.ipo_common.enums import SubscriptionStatus
from src.ipo_common.response import ApiResponse, success_response
from src.ipo_gateway.auth.dependencies import get_current_user
from src.ipo_gateway.user.db_models import UserModel
from src.ipo_subscription.application.schemas import SubscribeRequest, SubscriptionItem
from src.ipo_subscription.application.service import SubscriptionApplicationService

router = APIRouter(tags=["subscriptions"])

_service = SubscriptionApplicationService()


@router.post("/offerings/{offering_id}/subscriptions", status_code=status.HTTP_201_CREATED)
async def subscribe(
    offering_id: int,
    body: SubscribeRequest,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    subscription = await _service.subscribe(
        db, str(current_user.id), offering_id, body.quantity, body.price_per_share_cents
    )
    return success_response(SubscriptionItem.from_domain(subscription).model_dump(), request)


@router.get("/subscriptions")
async def list_my_subscriptions(
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    status_filter: SubscriptionStatus | None = Query(None, alias="status"),
    cursor: str | None = Query(None, description="Pagination cursor (opaque Base64)"),
    limit: int = Query(20, ge=1, le=100),
) -> ApiResponse:
    result = await _service.list_for_user(
        db,
        str(current_user.id),
        status_filter.value if status_filter else None,
        cursor,
        limit,
    )
    return success_response(result.model_dump(), request)


@router.delete("/subscriptions/{subscription_id}")
async def cancel_subscription(
    subscription_id: int,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    result = await _service.cancel(db, str(current_user.id), subscription_id)
    return success_response(result.model_dump(), request)

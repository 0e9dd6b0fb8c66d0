"""ipo_account REST API — balance read, JWT required."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.ipo_account.application.ledger_reader import LedgerReader
from src.ipo_account.application.schemas import BalanceResponse
from src.ipo_common.database import get_db_session
from src.ipo_common.response import ApiResponse, success_response
from src.ipo_gateway.auth.dependencies import get_current_user
from src.ipo_gateway.user.db_models import UserModel

router = APIRouter(prefix="/account", tags=["account"])

_reader = LedgerReader()


@router.get("/balance")
async def get_balance(
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    balance = await _reader.get_balance(db, str(current_user.id))
    return success_response(BalanceResponse.from_balance(balance).model_dump(), request)

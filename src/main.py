"""FastAPI application entry point.

Run with: uvicorn src.main:app --reload --port 8000
"""

# ruff: noqa: E402  -- uvloop.install() must run before other imports

import uvloop

uvloop.install()

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text

from config.settings import settings
from src.ipo_account.api.router import router as account_router
from src.ipo_admin.api.router import router as admin_router
from src.ipo_common.database import engine
from src.ipo_common.errors import AppError
from src.ipo_common.redis_client import close_redis, get_redis
from src.ipo_common.response import error_response
from src.ipo_gateway.middleware.request_log import RequestLogMiddleware
from src.ipo_lifecycle.application.scheduler import setup_scheduler, shutdown_scheduler
from src.ipo_offering.api.router import router as offering_router
from src.ipo_subscription.api.router import router as subscription_router

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: verify DB + Redis, start the tick scheduler. Shutdown: reverse."""
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    redis = await get_redis()
    await redis.ping()
    setup_scheduler()
    logger.info("%s started", settings.APP_NAME)
    yield
    shutdown_scheduler()
    await engine.dispose()
    await close_redis()
    logger.info("%s stopped", settings.APP_NAME)


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    lifespan=lifespan,
)


app.add_middleware(RequestLogMiddleware)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    resp = error_response(exc.code, exc.message)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return JSONResponse(
        status_code=exc.http_status,
        content=resp.model_dump(),
    )


app.include_router(account_router, prefix="/api/v1")
app.include_router(offering_router, prefix="/api/v1")
app.include_router(subscription_router, prefix="/api/v1")
app.include_router(admin_router, prefix="/api/v1")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "version": "0.1.0"}

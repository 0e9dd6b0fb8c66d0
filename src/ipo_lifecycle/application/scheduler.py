"""APScheduler driver for the lifecycle tick.

Every instance schedules the job, but a tick only runs while holding the Redis
lock ``ipo:lifecycle:tick``; instances that miss the lock skip that round. The
lock TTL bounds how long a crashed holder can block ticks.
"""

import logging

import redis.asyncio as aioredis
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from redis.exceptions import LockError

from config.settings import settings
from src.ipo_common.errors import TickInProgressError
from src.ipo_common.redis_client import get_redis
from src.ipo_lifecycle.application.manager import LifecycleManager
from src.ipo_lifecycle.domain.models import TickReport
from src.ipo_lifecycle.infrastructure.tick_log import LIFECYCLE_JOB_NAME

logger = logging.getLogger(__name__)

TICK_LOCK_NAME = "ipo:lifecycle:tick"

scheduler = AsyncIOScheduler()

_manager: LifecycleManager | None = None


def get_lifecycle_manager() -> LifecycleManager:
    global _manager  # noqa: PLW0603
    if _manager is None:
        _manager = LifecycleManager()
    return _manager


async def run_tick_with_lock(
    manager: LifecycleManager | None = None,
    redis: aioredis.Redis | None = None,
) -> TickReport:
    """Run one tick under the cross-instance lock.

    Raises:
        TickInProgressError: another tick holds the lock.
    """
    redis = redis or await get_redis()
    lock = redis.lock(
        TICK_LOCK_NAME,
        timeout=settings.TICK_LOCK_TIMEOUT_SECONDS,
        blocking=False,
    )
    if not await lock.acquire():
        raise TickInProgressError()
    try:
        return await (manager or get_lifecycle_manager()).tick()
    finally:
        try:
            await lock.release()
        except LockError:
            logger.warning(
                "Tick lock expired before release (TTL %ss)",
                settings.TICK_LOCK_TIMEOUT_SECONDS,
            )


async def lifecycle_tick_job() -> None:
    """Scheduled entry point; never raises into APScheduler."""
    try:
        await run_tick_with_lock()
    except TickInProgressError:
        logger.info("Lifecycle tick skipped: lock held by another instance")
    except Exception:
        logger.exception("Lifecycle tick failed")


def setup_scheduler() -> None:
    if not settings.SCHEDULER_ENABLED:
        logger.info("Lifecycle scheduler disabled (SCHEDULER_ENABLED=false)")
        return
    scheduler.add_job(
        lifecycle_tick_job,
        IntervalTrigger(seconds=settings.LIFECYCLE_TICK_INTERVAL_SECONDS),
        id=LIFECYCLE_JOB_NAME,
        name="IPO lifecycle tick",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    if not scheduler.running:
        scheduler.start()
    logger.info(
        "Lifecycle scheduler started: every %ss", settings.LIFECYCLE_TICK_INTERVAL_SECONDS
    )


def shutdown_scheduler() -> None:
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Lifecycle scheduler stopped")

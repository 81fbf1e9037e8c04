from __future__ import annotations

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from settleup.config import get_settings
from settleup.logging import get_logger


def setup_scheduler() -> AsyncIOScheduler:
    settings = get_settings()

    # задания отложенной синхронизации: одно на владельца, перезапускается при каждой правке
    scheduler = AsyncIOScheduler(
        timezone=settings.tz,
        job_defaults={"coalesce": True, "max_instances": 1, "misfire_grace_time": 30},
    )
    scheduler.start()
    get_logger(__name__).info("scheduler.start")
    return scheduler

from __future__ import annotations

import asyncio

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode

from settleup.config import get_settings
from settleup.db.repo import Database, GroupStore
from settleup.handlers import basic_router, expenses_router, groups_router
from settleup.logging import configure_logging, get_logger
from settleup.scheduler import setup_scheduler
from settleup.services.replication import GroupReplicator
from settleup.services.session import SessionRegistry


async def main() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)
    bot = Bot(token=settings.bot_token, default=DefaultBotProperties(parse_mode=ParseMode.HTML))
    db = Database(settings.database_url)
    await db.connect()
    store = GroupStore(db)

    scheduler = setup_scheduler()
    sessions = SessionRegistry(
        GroupReplicator(store),
        scheduler,
        debounce_seconds=settings.sync_debounce_seconds,
    )

    dp = Dispatcher(store=store, sessions=sessions)
    dp.include_router(basic_router)
    dp.include_router(groups_router)
    dp.include_router(expenses_router)

    log = get_logger(__name__)
    log.info("bot.start")
    try:
        await dp.start_polling(bot)
    finally:
        sessions.close_all()
        scheduler.shutdown(wait=False)
        await db.close()
        await bot.session.close()
        log.info("bot.stop")


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()

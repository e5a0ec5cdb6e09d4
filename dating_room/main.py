import asyncio
import logging
from datetime import timedelta
from typing import Optional

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode

from dating_room.config import settings
from dating_room.database.session import close_db, init_db
from dating_room.handlers import challenges, economy, games, help
from dating_room.handlers.errors import on_unexpected_error
from dating_room.jobs.scheduler import setup_scheduler, shutdown_scheduler
from dating_room.logger import setup_logging
from dating_room.middleware.logging import MessageLoggerMiddleware
from dating_room.services.battleship import BattleshipEngine
from dating_room.services.casino import CasinoEngine
from dating_room.services.game_engine import GameEngine
from dating_room.services.rps import RpsEngine
from dating_room.services.state_manager import SessionStore
from dating_room.services.wallet_service import WalletLedger

# Logging is configured in the __main__ block
logger = logging.getLogger(__name__)


async def on_startup(bot: Bot, game_engine: GameEngine):
    """Prepare the database and background jobs."""
    logger.info("Initializing database...")
    await init_db()
    logger.info("Database ready")

    await setup_scheduler(bot, game_engine)


def build_dp(store: Optional[SessionStore] = None, ledger=None) -> Dispatcher:
    """
    Build the dispatcher with its handlers and the shared game services.

    The services are handed to handlers as workflow data, so every handler
    sees the same session store.
    """
    store = store if store is not None else SessionStore()
    ledger = ledger if ledger is not None else WalletLedger()
    game_engine = GameEngine(
        store,
        ledger,
        timeout=timedelta(seconds=settings.challenge_timeout_seconds),
    )

    dp = Dispatcher(
        game_engine=game_engine,
        rps_engine=RpsEngine(game_engine),
        battleship_engine=BattleshipEngine(game_engine),
        casino=CasinoEngine(ledger),
    )
    dp.message.middleware(MessageLoggerMiddleware())
    dp.errors.register(on_unexpected_error)

    dp.include_routers(
        challenges.router,
        games.router,
        economy.router,
        help.router,  # catches unknown commands, keep last
    )
    return dp


async def main():
    logger.info("=" * 60)
    logger.info("STARTING DATING ROOM BOT")
    logger.info("=" * 60)
    logger.info(f"Command prefixes: {settings.command_prefix}")
    logger.info(f"Challenge timeout: {settings.challenge_timeout_seconds}s")
    logger.info(f"Log level: {settings.log_level}")

    if not settings.bot_token:
        logger.error("TELEGRAM_BOT_TOKEN is not set!")
        raise RuntimeError("TELEGRAM_BOT_TOKEN is not set")

    bot = Bot(token=settings.bot_token, default=DefaultBotProperties(parse_mode=ParseMode.HTML))
    dp = build_dp()

    await on_startup(bot, dp["game_engine"])

    try:
        await bot.delete_webhook(drop_pending_updates=True)
        bot_info = await bot.get_me()
        logger.info(f"Bot: @{bot_info.username} (id: {bot_info.id})")
        logger.info("Starting polling...")

        await dp.start_polling(bot)
    except Exception as e:
        logger.error(f"Fatal error: {type(e).__name__}: {e}")
        raise
    finally:
        logger.info("Shutting down...")
        shutdown_scheduler()
        await close_db()
        await bot.session.close()
        logger.info("Bot session closed")


def run():
    """Console entry point."""
    setup_logging()
    asyncio.run(main())


if __name__ == "__main__":
    run()

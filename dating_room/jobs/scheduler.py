import logging
from typing import List, Optional

from aiogram import Bot
from aiogram.exceptions import TelegramAPIError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from dating_room.config import settings
from dating_room.handlers.common import card
from dating_room.services.game_engine import GameEngine
from dating_room.services.state_manager import GameSession, GameVariant

logger = logging.getLogger(__name__)

logging.getLogger("apscheduler").setLevel(logging.WARNING)
logging.getLogger("apscheduler.executors.default").setLevel(logging.WARNING)

_scheduler: Optional[AsyncIOScheduler] = None

VARIANT_TITLES = {
    GameVariant.RPS: "Rock Paper Scissors",
    GameVariant.BATTLESHIP: "Battleship",
}


async def job_expire_challenges(bot: Bot, game_engine: GameEngine) -> List[GameSession]:
    """
    Expire challenges nobody answered and setups nobody finished.

    The challenge message, when we know it, is edited so the buttons go away.
    """
    expired = game_engine.expire_stale()
    for session in expired:
        logger.info(
            f"Challenge {session.session_id} expired "
            f"({session.participant_a} vs {session.participant_b})"
        )
        if not session.message_id or not session.chat_id:
            continue
        title = VARIANT_TITLES.get(session.variant, "Challenge")
        try:
            await bot.edit_message_text(
                card(f"{title} — Expired", "Nobody answered in time. No money moved."),
                chat_id=session.chat_id,
                message_id=session.message_id,
                parse_mode="HTML",
            )
        except TelegramAPIError as e:
            logger.warning(f"Could not update expired challenge {session.session_id}: {e}")
    return expired


async def setup_scheduler(bot: Bot, game_engine: GameEngine) -> AsyncIOScheduler:
    global _scheduler
    if _scheduler:
        return _scheduler
    _scheduler = AsyncIOScheduler(timezone="UTC")
    _scheduler.add_job(
        job_expire_challenges,
        IntervalTrigger(seconds=settings.sweep_interval_seconds),
        args=[bot, game_engine],
        id="expire_challenges",
    )
    _scheduler.start()
    logger.info(f"Scheduler started, sweeping challenges every {settings.sweep_interval_seconds}s")
    return _scheduler


def shutdown_scheduler() -> None:
    global _scheduler
    if _scheduler:
        _scheduler.shutdown(wait=False)
        _scheduler = None

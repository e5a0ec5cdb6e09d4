"""Last-resort handler for exceptions no command handled itself."""

import logging

from aiogram.exceptions import TelegramAPIError
from aiogram.types import ErrorEvent

from dating_room.handlers.common import GENERIC_ERROR, card

logger = logging.getLogger(__name__)


async def on_unexpected_error(event: ErrorEvent) -> bool:
    """Log the failure and tell the user something went wrong."""
    update = event.update
    logger.error(
        f"Unhandled error in update {update.update_id}: "
        f"{type(event.exception).__name__}: {event.exception}",
        exc_info=event.exception,
    )

    try:
        if update.message is not None:
            await update.message.reply(card("Error", GENERIC_ERROR, "lose"), parse_mode="HTML")
        elif update.callback_query is not None:
            await update.callback_query.answer(GENERIC_ERROR, show_alert=True)
    except TelegramAPIError as e:
        logger.warning(f"Could not report error to user: {e}")
    return True

import logging
import time
from typing import Any

from aiogram import BaseMiddleware
from aiogram import types
from aiogram.types import Message

from dating_room.config import settings
from dating_room.services import wallet_service

logger = logging.getLogger(__name__)


class MessageLoggerMiddleware(BaseMiddleware):
    """Logs incoming messages and keeps the username directory fresh."""

    async def __call__(self, handler, event: Message, data: dict[str, Any]):
        start_time = time.time()

        if isinstance(event, types.Message) and event.chat and event.from_user:
            user_tag = f"@{event.from_user.username}" if event.from_user.username else f"id:{event.from_user.id}"
            text_preview = (event.text or event.caption or "")[:50]

            if event.text and event.text[:1] in settings.command_prefix:
                logger.info(
                    f"[CMD IN] chat={event.chat.id} | user={user_tag} | "
                    f"cmd={text_preview}"
                )
            else:
                logger.debug(
                    f"[MSG IN] chat={event.chat.id} | type={event.chat.type} | "
                    f"user={user_tag} | msg_id={event.message_id}"
                )

            # @username lookups depend on this; a failure here must not block the command
            try:
                await wallet_service.remember_user(
                    event.from_user.id,
                    event.from_user.username,
                    event.from_user.first_name,
                )
            except Exception as e:
                logger.warning(f"Could not remember user {event.from_user.id}: {e}")

        try:
            result = await handler(event, data)
            duration = time.time() - start_time

            if duration > 5.0:
                logger.warning(
                    f"[MSG SLOW] chat={event.chat.id if event.chat else 'N/A'} | "
                    f"msg_id={event.message_id} | time={duration:.2f}s"
                )

            return result
        except Exception as e:
            duration = time.time() - start_time
            logger.error(
                f"[MSG ERROR] chat={event.chat.id if event.chat else 'N/A'} | "
                f"msg_id={event.message_id} | "
                f"time={duration:.2f}s | error={type(e).__name__}: {e}"
            )
            raise

"""Integration tests for the message logger middleware."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest
from aiogram.types import Chat, Message, User as TgUser

from dating_room.middleware.logging import MessageLoggerMiddleware
from dating_room.services import wallet_service


def _message(text: str, username: str = "dave") -> Message:
    return Message(
        message_id=1,
        date=datetime.now(timezone.utc),
        chat=Chat(id=-100, type="supergroup"),
        from_user=TgUser(id=555, is_bot=False, first_name="Dave", username=username),
        text=text,
    )


@pytest.mark.asyncio
async def test_middleware_remembers_user_and_calls_handler(test_db):
    handler = AsyncMock(return_value="done")
    middleware = MessageLoggerMiddleware()

    result = await middleware(handler, _message("!bal"), {})

    assert result == "done"
    handler.assert_awaited_once()
    assert await wallet_service.find_user_id_by_username("dave") == 555


@pytest.mark.asyncio
async def test_middleware_reraises_handler_errors(test_db):
    handler = AsyncMock(side_effect=ValueError("broken"))
    middleware = MessageLoggerMiddleware()

    with pytest.raises(ValueError):
        await middleware(handler, _message("hello"), {})

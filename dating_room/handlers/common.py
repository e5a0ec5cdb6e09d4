"""Reply cards and argument helpers shared by the command handlers."""

import html
import logging
from typing import Iterable, List, Optional, Tuple

from aiogram import Bot
from aiogram.exceptions import TelegramAPIError
from aiogram.types import Message, User as TgUser

from dating_room.services import wallet_service
from dating_room.utils import parse_amount

logger = logging.getLogger(__name__)

CARD_MARKERS = {
    "win": "🟢",
    "lose": "🔴",
    "tie": "⚪",
    "neutral": "💖",
}

GENERIC_ERROR = "An error occurred while processing that command."


def card(
    title: str,
    body: str = "",
    kind: str = "neutral",
    fields: Iterable[Tuple[str, str]] = ()
) -> str:
    """
    Render a reply in the Dating Room layout.

    Args:
        title: Card title, shown after the "Dating Room" header
        body: Free text (already HTML-safe)
        kind: win | lose | tie | neutral, picks the marker
        fields: (name, value) pairs rendered one per line

    Returns:
        HTML text for ``parse_mode="HTML"``
    """
    marker = CARD_MARKERS.get(kind, CARD_MARKERS["neutral"])
    lines = [f"{marker} <b>Dating Room — {html.escape(title)}</b>"]
    if body:
        lines.append("")
        lines.append(body)
    field_lines = [f"<b>{html.escape(name)}:</b> {value}" for name, value in fields]
    if field_lines:
        lines.append("")
        lines.extend(field_lines)
    return "\n".join(lines)


def display_name(user: Optional[TgUser]) -> str:
    if user is None:
        return "someone"
    return user.username or user.first_name or str(user.id)


def mention(user_id: int, name: Optional[str] = None) -> str:
    """Clickable HTML mention."""
    label = html.escape(name or str(user_id))
    return f'<a href="tg://user?id={user_id}">{label}</a>'


def split_args(args: Optional[str]) -> List[str]:
    return (args or "").split()


async def resolve_target(msg: Message, args: List[str]) -> Tuple[Optional[Tuple[int, str]], List[str]]:
    """
    Find the user a command is aimed at.

    Looks at, in order: the replied-to message, text mentions of users
    without a username, and ``@username`` arguments known to the bot.

    Returns:
        ((user_id, name) or None, the arguments left after removing the
        ``@username`` one)
    """
    rest = [a for a in args if not a.startswith("@")]

    reply = msg.reply_to_message
    if reply and reply.from_user and not reply.from_user.is_bot:
        return (reply.from_user.id, display_name(reply.from_user)), rest

    for entity in msg.entities or []:
        if entity.type == "text_mention" and entity.user and not entity.user.is_bot:
            span = entity.extract_from(msg.text or "").split()
            rest = [a for a in rest if a not in span]
            return (entity.user.id, display_name(entity.user)), rest

    for arg in args:
        if arg.startswith("@") and len(arg) > 1:
            user_id = await wallet_service.find_user_id_by_username(arg[1:])
            if user_id is not None:
                return (user_id, arg[1:]), rest
            return None, rest

    return None, rest


def has_username_arg(args: List[str]) -> bool:
    return any(a.startswith("@") and len(a) > 1 for a in args)


def parse_stake(raw: Optional[str], available: int) -> Optional[int]:
    """Stake argument: missing means 0, malformed or non-positive means None."""
    if raw is None:
        return 0
    amount = parse_amount(raw, available)
    if amount is None or amount <= 0:
        return None
    return amount


async def is_chat_admin(bot: Bot, chat_id: int, user_id: int) -> bool:
    try:
        member = await bot.get_chat_member(chat_id, user_id)
    except TelegramAPIError as e:
        logger.warning(f"Admin check failed for {user_id} in {chat_id}: {e}")
        return False
    return member.status in ("administrator", "creator")

"""Help card, also sent for unknown prefixed commands. Include this router last."""

import re

from aiogram import F, Router
from aiogram.filters import Command
from aiogram.types import Message

from dating_room.config import settings
from dating_room.handlers.common import card

router = Router()

PREFIX = settings.command_prefix

KNOWN_COMMANDS = [
    "bal", "deposit", "withdraw", "give", "work", "daily",
    "cf", "slots", "roulette", "rps", "battleship", "place", "fire",
    "lb", "admingive", "adminremove", "adminreset",
]

HELP_TEXT = card(
    "Help",
    f"Available: {', '.join(KNOWN_COMMANDS)}\n"
    "Examples:\n"
    "<code>!cf 500 h</code>\n"
    "<code>!roulette 100 red</code>\n"
    "<code>!rps rock 1k</code>\n"
    "<code>!rps @user 200</code>\n"
    "<code>!battleship @user 100</code>",
)

# Any word right after one of the prefix characters
_PREFIXED = re.compile(rf"^[{re.escape(PREFIX)}][A-Za-z]\w*")


@router.message(Command("help", "start", prefix=PREFIX))
async def cmd_help(msg: Message):
    await msg.reply(HELP_TEXT, parse_mode="HTML")


@router.message(F.text.regexp(_PREFIXED))
async def unknown_command(msg: Message):
    await msg.reply(HELP_TEXT, parse_mode="HTML")

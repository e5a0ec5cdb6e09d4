"""Casino commands: coin flip, slots, roulette."""

import asyncio
import logging

from aiogram import Router
from aiogram.filters import Command, CommandObject
from aiogram.types import Message

from dating_room.config import settings
from dating_room.handlers.common import card, split_args
from dating_room.services.casino import CasinoEngine
from dating_room.services.errors import GameError
from dating_room.utils import format_currency, parse_amount

logger = logging.getLogger(__name__)

router = Router()

PREFIX = settings.command_prefix

# Pause between the fake reel frames
SLOTS_FRAME_DELAY = 0.5


async def _read_bet(msg: Message, raw, casino: CasinoEngine, usage: str):
    """Parse the bet argument against the wallet; reply with usage on failure."""
    balance = await casino.ledger.get_balance(msg.from_user.id)
    bet = parse_amount(raw, balance)
    if not bet or bet <= 0:
        await msg.reply(usage, parse_mode="HTML")
        return None
    return bet


@router.message(Command("cf", "coinflip", prefix=PREFIX))
async def cmd_coinflip(msg: Message, command: CommandObject, casino: CasinoEngine):
    """``cf <amount> <heads|tails|h|t>``"""
    if not msg.from_user:
        return
    usage = card("Coinflip — Usage", "<code>!cf &lt;amount|all|half|1k&gt; &lt;heads|tails|h|t&gt;</code>")
    args = split_args(command.args)
    bet = await _read_bet(msg, args[0] if args else None, casino, usage)
    if bet is None:
        return

    try:
        result = await casino.flip_coin(msg.from_user.id, bet, args[1] if len(args) > 1 else "")
    except GameError as e:
        await msg.reply(card("Coinflip", e.message), parse_mode="HTML")
        return

    sign = "+" if result.won else "-"
    await msg.reply(
        card(
            "Coinflip",
            kind="win" if result.won else "lose",
            fields=[
                ("Result", f"<b>{result.result}</b>"),
                ("Outcome", f"<b>{sign}{format_currency(result.bet)}</b>"),
                ("New Wallet", format_currency(result.new_balance)),
            ],
        ),
        parse_mode="HTML",
    )


@router.message(Command("slots", prefix=PREFIX))
async def cmd_slots(msg: Message, command: CommandObject, casino: CasinoEngine):
    """``slots <amount>``"""
    if not msg.from_user:
        return
    usage = card("Slots — Usage", "<code>!slots &lt;amount|all|half|1k&gt;</code>")
    args = split_args(command.args)
    bet = await _read_bet(msg, args[0] if args else None, casino, usage)
    if bet is None:
        return

    try:
        result = await casino.spin_slots(msg.from_user.id, bet)
    except GameError as e:
        await msg.reply(card("Slots", e.message), parse_mode="HTML")
        return

    spin_msg = await msg.reply(card("Slots", "🎰 Spinning..."), parse_mode="HTML")
    for _ in range(2):
        await asyncio.sleep(SLOTS_FRAME_DELAY)
        frame = " | ".join(casino.roll_reels())
        await spin_msg.edit_text(card("Slots", f"🎰 | {frame} |"), parse_mode="HTML")

    if result.won:
        outcome = ("Payout", f"<b>{format_currency(result.balance_change)}</b>")
    else:
        outcome = ("Lost", f"<b>{format_currency(result.bet)}</b>")
    await spin_msg.edit_text(
        card(
            "Slots",
            f"🎰 {' | '.join(result.reels)}",
            kind="win" if result.won else "lose",
            fields=[outcome, ("New Wallet", format_currency(result.new_balance))],
        ),
        parse_mode="HTML",
    )


@router.message(Command("roulette", prefix=PREFIX))
async def cmd_roulette(msg: Message, command: CommandObject, casino: CasinoEngine):
    """``roulette <amount> <red|black|green>``"""
    if not msg.from_user:
        return
    usage = card("Roulette — Usage", "<code>!roulette &lt;amount|all|half|1k&gt; &lt;red|black|green&gt;</code>")
    args = split_args(command.args)
    bet = await _read_bet(msg, args[0] if args else None, casino, usage)
    if bet is None:
        return

    try:
        result = await casino.spin_roulette(msg.from_user.id, bet, args[1] if len(args) > 1 else "")
    except GameError as e:
        await msg.reply(card("Roulette", e.message), parse_mode="HTML")
        return

    if result.won:
        outcome = f"<b>+{format_currency(result.balance_change)}</b>"
    else:
        outcome = f"<b>-{format_currency(result.bet)}</b>"
    await msg.reply(
        card(
            "Roulette",
            kind="win" if result.won else "lose",
            fields=[
                ("Result", f"<b>{result.number} {result.result_color.upper()}</b>"),
                ("Outcome", outcome),
                ("New Wallet", format_currency(result.new_balance)),
            ],
        ),
        parse_mode="HTML",
    )

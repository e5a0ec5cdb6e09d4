"""Economy commands: balance, bank, transfers, rewards, leaderboard, admin."""

import logging

from aiogram import Bot, Router
from aiogram.filters import Command, CommandObject
from aiogram.types import Message

from dating_room.config import settings
from dating_room.handlers.common import (
    card,
    display_name,
    is_chat_admin,
    mention,
    resolve_target,
    split_args,
)
from dating_room.services import economy, wallet_service
from dating_room.services.errors import GameError
from dating_room.utils import format_cooldown, format_currency, parse_amount

logger = logging.getLogger(__name__)

router = Router()

PREFIX = settings.command_prefix


@router.message(Command("bal", "balance", "b", prefix=PREFIX))
async def cmd_balance(msg: Message, command: CommandObject):
    """Wallet, bank and wagered of yourself or ``@user``."""
    if not msg.from_user:
        return
    target, _ = await resolve_target(msg, split_args(command.args))
    if target is None:
        target = (msg.from_user.id, display_name(msg.from_user))
    user_id, name = target

    wallet = await wallet_service.get_wallet(user_id)
    await msg.reply(
        card(
            f"{name}'s Balance",
            fields=[
                ("Wallet", format_currency(wallet.balance)),
                ("Bank", format_currency(wallet.bank)),
                ("Wagered", format_currency(wallet.wagered)),
            ],
        ),
        parse_mode="HTML",
    )


@router.message(Command("deposit", "d", prefix=PREFIX))
async def cmd_deposit(msg: Message, command: CommandObject):
    if not msg.from_user:
        return
    user_id = msg.from_user.id
    args = split_args(command.args)
    wallet = await wallet_service.get_wallet(user_id)
    amount = parse_amount(args[0] if args else None, wallet.balance)

    if not amount or amount <= 0:
        await msg.reply(card("Deposit — Usage", "<code>!deposit &lt;amount|all|half|1k&gt;</code>"), parse_mode="HTML")
        return
    if amount > wallet.balance:
        await msg.reply(card("Deposit", f"You only have {format_currency(wallet.balance)} in your wallet."), parse_mode="HTML")
        return

    try:
        wallet = await wallet_service.move_to_bank(user_id, amount)
    except GameError as e:
        await msg.reply(card("Deposit", e.message), parse_mode="HTML")
        return

    await msg.reply(
        card(
            "Bank Deposit",
            kind="win",
            fields=[
                ("Deposited", f"<b>{format_currency(amount)}</b>"),
                ("Wallet", format_currency(wallet.balance)),
                ("Bank", format_currency(wallet.bank)),
            ],
        ),
        parse_mode="HTML",
    )


@router.message(Command("withdraw", "w", prefix=PREFIX))
async def cmd_withdraw(msg: Message, command: CommandObject):
    if not msg.from_user:
        return
    user_id = msg.from_user.id
    args = split_args(command.args)
    wallet = await wallet_service.get_wallet(user_id)
    amount = parse_amount(args[0] if args else None, wallet.bank)

    if not amount or amount <= 0:
        await msg.reply(card("Withdraw — Usage", "<code>!withdraw &lt;amount|all|half|1k&gt;</code>"), parse_mode="HTML")
        return
    if amount > wallet.bank:
        await msg.reply(card("Withdraw", f"You only have {format_currency(wallet.bank)} in the bank."), parse_mode="HTML")
        return

    try:
        wallet = await wallet_service.move_to_bank(user_id, -amount)
    except GameError as e:
        await msg.reply(card("Withdraw", e.message), parse_mode="HTML")
        return

    await msg.reply(
        card(
            "Bank Withdraw",
            fields=[
                ("Withdrawn", f"<b>{format_currency(amount)}</b>"),
                ("Wallet", format_currency(wallet.balance)),
                ("Bank", format_currency(wallet.bank)),
            ],
        ),
        parse_mode="HTML",
    )


@router.message(Command("give", "g", prefix=PREFIX))
async def cmd_give(msg: Message, command: CommandObject):
    """``give @user <amount>``"""
    if not msg.from_user:
        return
    user_id = msg.from_user.id
    usage = card("Give — Usage", "<code>!give @user &lt;amount&gt;</code>")
    target, rest = await resolve_target(msg, split_args(command.args))
    if target is None or not rest:
        await msg.reply(usage, parse_mode="HTML")
        return

    target_id, target_name = target
    balance = await wallet_service.get_balance(user_id)
    amount = parse_amount(rest[0], balance)
    if not amount or amount <= 0:
        await msg.reply(card("Give", "Enter a valid amount."), parse_mode="HTML")
        return

    try:
        await wallet_service.transfer(user_id, target_id, amount)
    except GameError as e:
        await msg.reply(card("Give", e.message), parse_mode="HTML")
        return

    await msg.reply(
        card("Give", f"You gave {mention(target_id, target_name)} <b>{format_currency(amount)}</b>."),
        parse_mode="HTML",
    )


@router.message(Command("work", prefix=PREFIX))
async def cmd_work(msg: Message):
    if not msg.from_user:
        return
    result = await economy.claim_work(msg.from_user.id)
    if not result.claimed:
        await msg.reply(card("Work Cooldown", f"⏳ {format_cooldown(result.remaining)} left"), parse_mode="HTML")
        return
    await msg.reply(
        card(
            "Work",
            kind="win",
            fields=[
                ("Earned", format_currency(result.amount)),
                ("New Wallet", format_currency(result.new_balance)),
            ],
        ),
        parse_mode="HTML",
    )


@router.message(Command("daily", prefix=PREFIX))
async def cmd_daily(msg: Message):
    if not msg.from_user:
        return
    result = await economy.claim_daily(msg.from_user.id)
    if not result.claimed:
        await msg.reply(card("Daily Cooldown", f"⏳ {format_cooldown(result.remaining)} left"), parse_mode="HTML")
        return
    await msg.reply(
        card(
            "Daily",
            kind="win",
            fields=[
                ("Reward", format_currency(result.amount)),
                ("New Wallet", format_currency(result.new_balance)),
            ],
        ),
        parse_mode="HTML",
    )


@router.message(Command("lb", "leaderboard", prefix=PREFIX))
async def cmd_leaderboard(msg: Message):
    top = await wallet_service.top_wallets(10)
    if not top:
        await msg.reply(card("Leaderboard", "No players yet."), parse_mode="HTML")
        return
    lines = [
        f"<b>{i}.</b> {mention(entry.tg_user_id, entry.username)} — {format_currency(entry.total)}"
        for i, entry in enumerate(top, start=1)
    ]
    await msg.reply(card("Leaderboard", "\n".join(lines)), parse_mode="HTML")


# --- Admin ---

async def _require_admin(msg: Message, bot: Bot) -> bool:
    if await is_chat_admin(bot, msg.chat.id, msg.from_user.id):
        return True
    await msg.reply(card("Admin", "Admin only."), parse_mode="HTML")
    return False


@router.message(Command("admingive", prefix=PREFIX))
async def cmd_admin_give(msg: Message, command: CommandObject, bot: Bot):
    if not msg.from_user or not await _require_admin(msg, bot):
        return
    target, rest = await resolve_target(msg, split_args(command.args))
    amount = parse_amount(rest[0], 0) if rest else None
    if target is None or not amount or amount <= 0:
        await msg.reply(card("Admin Give — Usage", "<code>!admingive @user &lt;amount&gt;</code>"), parse_mode="HTML")
        return

    target_id, target_name = target
    await wallet_service.adjust_balance(target_id, amount, f"admin give by {msg.from_user.id}")
    await msg.reply(
        card("Admin Give", f"Gave {format_currency(amount)} to {mention(target_id, target_name)}.", "win"),
        parse_mode="HTML",
    )


@router.message(Command("adminremove", prefix=PREFIX))
async def cmd_admin_remove(msg: Message, command: CommandObject, bot: Bot):
    if not msg.from_user or not await _require_admin(msg, bot):
        return
    target, rest = await resolve_target(msg, split_args(command.args))
    amount = parse_amount(rest[0], 0) if rest else None
    if target is None or not amount or amount <= 0:
        await msg.reply(card("Admin Remove — Usage", "<code>!adminremove @user &lt;amount&gt;</code>"), parse_mode="HTML")
        return

    target_id, target_name = target
    await wallet_service.admin_remove(target_id, amount)
    await msg.reply(
        card("Admin Remove", f"Removed {format_currency(amount)} from {mention(target_id, target_name)}.", "lose"),
        parse_mode="HTML",
    )


@router.message(Command("adminreset", prefix=PREFIX))
async def cmd_admin_reset(msg: Message, bot: Bot):
    if not msg.from_user or not await _require_admin(msg, bot):
        return
    await wallet_service.reset_all()
    await msg.reply(card("Admin Reset", "Economy reset for all users.", "lose"), parse_mode="HTML")

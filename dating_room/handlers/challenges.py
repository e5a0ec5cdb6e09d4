"""
Two-player games: rock-paper-scissors and battleship.

Commands:
    rps <rock|paper|scissors> [bet]   play against the bot
    rps @user [bet]                   challenge someone
    battleship @user [bet]            challenge someone to battleship
    place <sq> <sq> <sq>              place your ships (best in a private chat)
    fire <sq>                         shoot at the opponent's grid

Buttons carry ``RpsAction`` / ``BattleshipAction`` callback payloads.
"""

import logging
from typing import Optional

from aiogram import Bot, F, Router
from aiogram.exceptions import TelegramAPIError
from aiogram.filters import Command, CommandObject
from aiogram.filters.callback_data import CallbackData
from aiogram.types import CallbackQuery, InlineKeyboardButton, InlineKeyboardMarkup, Message

from dating_room.config import settings
from dating_room.handlers.common import (
    card,
    display_name,
    has_username_arg,
    mention,
    parse_stake,
    resolve_target,
    split_args,
)
from dating_room.services.battleship import COLUMNS, ROWS, BattleshipEngine, FleetBoard
from dating_room.services.errors import GameError
from dating_room.services.game_engine import GameEngine
from dating_room.services.rps import CHOICE_EMOJI, CHOICES, Outcome, RpsEngine
from dating_room.services.state_manager import GameSession, GameVariant
from dating_room.utils import format_currency

logger = logging.getLogger(__name__)

router = Router()

PREFIX = settings.command_prefix


class RpsAction(CallbackData, prefix="rps"):
    action: str  # accept | decline | cancel | play
    session_id: str
    choice: Optional[str] = None


class BattleshipAction(CallbackData, prefix="bship"):
    action: str  # accept | decline | cancel
    session_id: str


RPS_USAGE = card(
    "RPS — Usage",
    "<code>!rps &lt;rock|paper|scissors&gt; [bet]</code> to play me\n"
    "<code>!rps @user [bet]</code> to challenge someone",
)

BATTLESHIP_USAGE = card(
    "Battleship — Usage",
    "<code>!battleship @user [bet]</code>\n"
    "Then both players send <code>!place A1 B2 C3</code> and take turns with "
    "<code>!fire D4</code>.",
)


def challenge_keyboard(session_id: str, factory) -> InlineKeyboardMarkup:
    """Accept / Decline for the recipient, Withdraw for the challenger."""
    return InlineKeyboardMarkup(inline_keyboard=[
        [
            InlineKeyboardButton(
                text="✅ Accept",
                callback_data=factory(action="accept", session_id=session_id).pack()
            ),
            InlineKeyboardButton(
                text="❌ Decline",
                callback_data=factory(action="decline", session_id=session_id).pack()
            ),
        ],
        [
            InlineKeyboardButton(
                text="↩️ Withdraw",
                callback_data=factory(action="cancel", session_id=session_id).pack()
            ),
        ],
    ])


def rps_choice_keyboard(session_id: str) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[[
        InlineKeyboardButton(
            text=f"{CHOICE_EMOJI[choice]} {choice.capitalize()}",
            callback_data=RpsAction(action="play", session_id=session_id, choice=choice).pack()
        )
        for choice in CHOICES
    ]])


def stake_line(stake: int) -> str:
    return f"Stake: <b>{format_currency(stake)}</b>" if stake > 0 else "Just for fun, no stake."


def render_shots(board: FleetBoard, shooter_id: int) -> str:
    """Shooter's view of the enemy grid: 💥 hit, 🌊 miss, ▫️ unknown."""
    shots = board.shots.get(shooter_id, set())
    hits = board.hits.get(shooter_id, set())
    lines = ["   " + " ".join(COLUMNS)]
    for row in ROWS:
        cells = []
        for col in COLUMNS:
            square = row + col
            if square in hits:
                cells.append("💥")
            elif square in shots:
                cells.append("🌊")
            else:
                cells.append("▫️")
        lines.append(f"{row}  " + "".join(cells))
    return "<pre>" + "\n".join(lines) + "</pre>"


async def _propose(
    msg: Message,
    command: CommandObject,
    game_engine: GameEngine,
    variant: GameVariant,
    title: str,
    usage: str,
    factory,
) -> None:
    args = split_args(command.args)
    target, rest = await resolve_target(msg, args)
    if target is None:
        if has_username_arg(args):
            await msg.reply(card(title, "I don't know that user yet. Reply to one of their messages instead."), parse_mode="HTML")
        else:
            await msg.reply(usage, parse_mode="HTML")
        return

    target_id, target_name = target
    challenger = msg.from_user
    balance = await game_engine.ledger.get_balance(challenger.id)
    stake = parse_stake(rest[0] if rest else None, balance)
    if stake is None:
        await msg.reply(card(title, "Invalid bet."), parse_mode="HTML")
        return

    try:
        session = await game_engine.propose(
            challenger.id, target_id, stake, variant, chat_id=msg.chat.id
        )
    except GameError as e:
        await msg.reply(card(title, e.message), parse_mode="HTML")
        return

    sent = await msg.answer(
        card(
            title,
            f"{mention(target_id, target_name)}, {mention(challenger.id, display_name(challenger))} "
            f"challenges you!\n{stake_line(stake)}",
        ),
        reply_markup=challenge_keyboard(session.session_id, factory),
        parse_mode="HTML",
    )
    session.message_id = sent.message_id


async def _answer_challenge(
    callback: CallbackQuery,
    session_id: str,
    action: str,
    game_engine: GameEngine,
    title: str,
) -> Optional[GameSession]:
    """Run decline/cancel and edit the card. Returns the session on success."""
    user = callback.from_user
    try:
        if action == "decline":
            session = await game_engine.decline(session_id, user.id)
            text = f"{mention(user.id, display_name(user))} declined the challenge."
        else:
            session = await game_engine.cancel(session_id, user.id)
            text = f"{mention(user.id, display_name(user))} withdrew the challenge."
    except GameError as e:
        await callback.answer(e.message, show_alert=True)
        return None

    await callback.message.edit_text(card(title, text), parse_mode="HTML")
    await callback.answer()
    return session


# --- Rock-paper-scissors ---

@router.message(Command("rps", prefix=PREFIX))
async def cmd_rps(msg: Message, command: CommandObject, game_engine: GameEngine, rps_engine: RpsEngine):
    """Play the bot (``rps rock 100``) or challenge a user (``rps @user 100``)."""
    if not msg.from_user:
        return

    args = split_args(command.args)
    if not args:
        await msg.reply(RPS_USAGE, parse_mode="HTML")
        return

    if args[0].lower() not in CHOICES and args[0].lower() not in ("r", "p", "s"):
        await _propose(msg, command, game_engine, GameVariant.RPS, "RPS", RPS_USAGE, RpsAction)
        return

    user_id = msg.from_user.id
    bet = 0
    if len(args) > 1:
        balance = await game_engine.ledger.get_balance(user_id)
        bet = parse_stake(args[1], balance)
        if bet is None:
            await msg.reply(card("RPS", "Invalid bet."), parse_mode="HTML")
            return

    try:
        result = await rps_engine.play_vs_bot(user_id, args[0], bet)
    except GameError as e:
        await msg.reply(card("RPS", e.message), parse_mode="HTML")
        return

    bot_pick = result.bot_choice.upper()
    if result.outcome == Outcome.TIE:
        text = f"It's a tie — we both chose <b>{bot_pick}</b>."
    elif result.outcome == Outcome.WIN:
        text = f"You <b>WIN</b> — I chose <b>{bot_pick}</b>."
        if result.bet:
            text += f" You gained <b>{format_currency(result.bet)}</b>."
    else:
        text = f"You <b>LOSE</b> — I chose <b>{bot_pick}</b>."
        if result.bet:
            text += f" You lost <b>{format_currency(result.bet)}</b>."

    await msg.reply(card("RPS", text, result.outcome.value), parse_mode="HTML")


@router.callback_query(RpsAction.filter(F.action == "accept"))
async def callback_rps_accept(callback: CallbackQuery, callback_data: RpsAction, game_engine: GameEngine):
    try:
        session = await game_engine.accept(callback_data.session_id, callback.from_user.id)
    except GameError as e:
        await callback.answer(e.message, show_alert=True)
        return

    await callback.message.edit_text(
        card(
            "RPS",
            f"{mention(session.participant_a)} vs {mention(session.participant_b)}\n"
            f"{stake_line(session.stake)}\n\nBoth of you: pick in secret.",
        ),
        reply_markup=rps_choice_keyboard(session.session_id),
        parse_mode="HTML",
    )
    await callback.answer("Challenge accepted!")


@router.callback_query(RpsAction.filter(F.action.in_({"decline", "cancel"})))
async def callback_rps_decline(callback: CallbackQuery, callback_data: RpsAction, game_engine: GameEngine):
    await _answer_challenge(callback, callback_data.session_id, callback_data.action, game_engine, "RPS")


@router.callback_query(RpsAction.filter(F.action == "play"))
async def callback_rps_play(callback: CallbackQuery, callback_data: RpsAction, rps_engine: RpsEngine):
    user_id = callback.from_user.id
    try:
        outcome = await rps_engine.submit_choice(
            callback_data.session_id, user_id, callback_data.choice or ""
        )
    except GameError as e:
        await callback.answer(e.message, show_alert=True)
        return

    if outcome is None:
        await callback.answer(f"You picked {callback_data.choice}. Waiting for your opponent…")
        return

    picks = "\n".join(
        f"{mention(uid)}: {CHOICE_EMOJI[choice]} <b>{choice.upper()}</b>"
        for uid, choice in outcome.choices.items()
    )
    if outcome.is_tie:
        text, kind = f"{picks}\n\nIt's a tie — nobody pays.", "tie"
    else:
        text, kind = f"{picks}\n\n{mention(outcome.winner_id)} <b>WINS</b>!", "win"
        if outcome.amount_transferred:
            text += f"\n{mention(outcome.winner_id)} takes <b>{format_currency(outcome.amount_transferred)}</b>."

    await callback.message.edit_text(card("RPS", text, kind), parse_mode="HTML")
    await callback.answer()


# --- Battleship ---

@router.message(Command("battleship", "bship", prefix=PREFIX))
async def cmd_battleship(msg: Message, command: CommandObject, game_engine: GameEngine):
    """Challenge a user to battleship: ``battleship @user [bet]``."""
    if not msg.from_user:
        return
    await _propose(
        msg, command, game_engine, GameVariant.BATTLESHIP,
        "Battleship", BATTLESHIP_USAGE, BattleshipAction,
    )


@router.callback_query(BattleshipAction.filter(F.action == "accept"))
async def callback_bship_accept(callback: CallbackQuery, callback_data: BattleshipAction, game_engine: GameEngine):
    try:
        session = await game_engine.accept(callback_data.session_id, callback.from_user.id)
    except GameError as e:
        await callback.answer(e.message, show_alert=True)
        return

    await callback.message.edit_text(
        card(
            "Battleship",
            f"{mention(session.participant_a)} vs {mention(session.participant_b)}\n"
            f"{stake_line(session.stake)}\n\n"
            f"Both of you: send me <code>!place A1 B2 C3</code> in a private chat "
            f"(three squares, rows A-E, columns 1-5).",
        ),
        parse_mode="HTML",
    )
    await callback.answer("Challenge accepted!")


@router.callback_query(BattleshipAction.filter(F.action.in_({"decline", "cancel"})))
async def callback_bship_decline(callback: CallbackQuery, callback_data: BattleshipAction, game_engine: GameEngine):
    await _answer_challenge(callback, callback_data.session_id, callback_data.action, game_engine, "Battleship")


async def _notify(bot: Bot, chat_id: int, text: str, fallback: Message) -> None:
    """Post to the game's chat; fall back to replying where the command came from."""
    try:
        await bot.send_message(chat_id, text, parse_mode="HTML")
    except TelegramAPIError as e:
        logger.warning(f"Could not post to chat {chat_id}: {e}")
        await fallback.answer(text, parse_mode="HTML")


@router.message(Command("place", prefix=PREFIX))
async def cmd_place(
    msg: Message,
    command: CommandObject,
    bot: Bot,
    game_engine: GameEngine,
    battleship_engine: BattleshipEngine,
):
    """Place three ships: ``place A1 B2 C3``."""
    if not msg.from_user:
        return
    user_id = msg.from_user.id

    if msg.chat.type != "private":
        try:
            await msg.delete()
        except TelegramAPIError as e:
            logger.warning(f"Could not hide ship placement in chat {msg.chat.id}: {e}")

    session = game_engine.store.find_open_for(user_id, GameVariant.BATTLESHIP)
    if session is None:
        await msg.answer(card("Battleship", "You have no battleship game waiting for ships."), parse_mode="HTML")
        return

    try:
        result = await battleship_engine.place(session.session_id, user_id, split_args(command.args))
    except GameError as e:
        await msg.answer(card("Battleship", e.message), parse_mode="HTML")
        return

    if msg.chat.type == "private":
        await msg.answer(
            card("Battleship", f"Your ships: <b>{' '.join(result.ships)}</b>"),
            parse_mode="HTML",
        )

    if result.both_ready:
        await _notify(
            bot, session.chat_id,
            card(
                "Battleship",
                f"All ships are placed! {mention(result.turn_owner)} fires first: "
                f"<code>!fire A1</code>",
            ),
            msg,
        )
    else:
        await _notify(
            bot, session.chat_id,
            card("Battleship", f"{mention(user_id, display_name(msg.from_user))} has placed their ships."),
            msg,
        )


@router.message(Command("fire", prefix=PREFIX))
async def cmd_fire(
    msg: Message,
    command: CommandObject,
    bot: Bot,
    game_engine: GameEngine,
    battleship_engine: BattleshipEngine,
):
    """Shoot one square: ``fire C3``."""
    if not msg.from_user:
        return
    user_id = msg.from_user.id
    args = split_args(command.args)
    if not args:
        await msg.reply(BATTLESHIP_USAGE, parse_mode="HTML")
        return

    session = game_engine.store.find_open_for(user_id, GameVariant.BATTLESHIP)
    if session is None:
        await msg.reply(card("Battleship", "You're not in a battleship game."), parse_mode="HTML")
        return

    try:
        shot = await battleship_engine.fire(session.session_id, user_id, args[0])
    except GameError as e:
        await msg.reply(card("Battleship", e.message), parse_mode="HTML")
        return

    shooter = mention(user_id, display_name(msg.from_user))
    grid = render_shots(session.phase_data, user_id)
    if shot.hit:
        text = f"{shooter} fires at <b>{shot.coordinate}</b> — 💥 <b>HIT!</b>"
    else:
        text = f"{shooter} fires at <b>{shot.coordinate}</b> — 🌊 miss."

    if shot.game_over:
        text += f"\n\nAll enemy ships sunk. {shooter} <b>WINS</b>!"
        if shot.amount_transferred:
            text += f"\nWinnings: <b>{format_currency(shot.amount_transferred)}</b>."
        await msg.reply(card("Battleship", f"{text}\n{grid}", "win"), parse_mode="HTML")
        return

    text += (
        f"\nShips left: {shot.remaining}\n"
        f"{mention(shot.next_turn)}, your turn: <code>!fire &lt;square&gt;</code>"
    )
    await msg.reply(card("Battleship", f"{text}\n{grid}"), parse_mode="HTML")

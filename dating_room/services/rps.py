"""
Rock-paper-scissors.

Two ways to play: against the bot straight away, or as a challenge where
both players pick in secret and the round resolves when the second pick
comes in.
"""

import logging
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Optional

from dating_room.services.errors import (
    AlreadyChose,
    AlreadyResolved,
    InsufficientFunds,
    InvalidChoice,
    InvalidStake,
    NotParticipant,
)
from dating_room.services.state_manager import SessionStatus

logger = logging.getLogger(__name__)

CHOICES = ("rock", "paper", "scissors")

# key beats value
BEATS = {"rock": "scissors", "scissors": "paper", "paper": "rock"}

ALIASES = {"r": "rock", "p": "paper", "s": "scissors"}

CHOICE_EMOJI = {"rock": "🪨", "paper": "📄", "scissors": "✂️"}


class Outcome(str, Enum):
    """Result from the first player's point of view."""
    WIN = "win"
    LOSE = "lose"
    TIE = "tie"


def parse_choice(raw: Optional[str]) -> str:
    """
    Normalize a typed choice.

    Raises:
        InvalidChoice: If it isn't rock, paper, scissors or r/p/s.
    """
    choice = (raw or "").strip().lower()
    choice = ALIASES.get(choice, choice)
    if choice not in CHOICES:
        raise InvalidChoice()
    return choice


def decide(first: str, second: str) -> Outcome:
    """Outcome of ``first`` against ``second``."""
    if first == second:
        return Outcome.TIE
    if BEATS[first] == second:
        return Outcome.WIN
    return Outcome.LOSE


@dataclass
class RpsRound:
    """Secret picks for the current round, keyed by player id."""
    choices: Dict[int, str] = field(default_factory=dict)


@dataclass
class RpsOutcome:
    """A resolved challenge round."""
    session_id: str
    choices: Dict[int, str]
    winner_id: Optional[int]
    loser_id: Optional[int]
    stake: int
    amount_transferred: int

    @property
    def is_tie(self) -> bool:
        return self.winner_id is None


@dataclass
class BotRpsResult:
    """Result of a game against the bot."""
    choice: str
    bot_choice: str
    outcome: Outcome
    bet: int
    balance_change: int
    new_balance: int


class RpsEngine:
    """Resolver for rock-paper-scissors sessions and games against the bot."""

    def __init__(self, engine, random_func: Optional[Callable[[], float]] = None):
        """
        Args:
            engine: GameEngine that owns the store and the ledger.
            random_func: Optional random function returning a float in
                [0, 1) for the bot's pick. Defaults to random.random.
        """
        self._engine = engine
        self._random = random_func or random.random

    async def submit_choice(
        self,
        session_id: str,
        acting: int,
        choice: str
    ) -> Optional[RpsOutcome]:
        """
        Record one player's secret pick.

        Returns:
            None while the other player hasn't picked yet; the resolved
            outcome once both have. The session is settled and removed in
            the same call.

        Raises:
            SessionNotFound, NotParticipant, AlreadyResolved, AlreadyChose,
            InvalidChoice
        """
        choice = parse_choice(choice)
        store = self._engine.store

        async with store.exclusive(session_id) as session:
            if not session.is_participant(acting):
                raise NotParticipant()
            if session.status != SessionStatus.ACTIVE:
                raise AlreadyResolved()

            round_state: RpsRound = session.phase_data
            if acting in round_state.choices:
                raise AlreadyChose()

            round_state.choices[acting] = choice
            logger.info(f"RPS {session_id}: {acting} picked")

            if len(round_state.choices) < 2:
                return None

            a, b = session.participant_a, session.participant_b
            result = decide(round_state.choices[a], round_state.choices[b])
            if result == Outcome.WIN:
                winner, loser = a, b
            elif result == Outcome.LOSE:
                winner, loser = b, a
            else:
                winner = loser = None

            amount = await self._engine.finish(session, winner)

            logger.info(
                f"RPS {session_id} resolved: "
                f"{round_state.choices[a]} vs {round_state.choices[b]} -> "
                f"{'tie' if winner is None else winner}, moved {amount}"
            )
            return RpsOutcome(
                session_id=session_id,
                choices=dict(round_state.choices),
                winner_id=winner,
                loser_id=loser,
                stake=session.stake,
                amount_transferred=amount,
            )

    async def play_vs_bot(self, user_id: int, choice: str, bet: int = 0) -> BotRpsResult:
        """
        Play one round against the bot.

        Win pays the bet, loss takes it, a tie changes nothing.

        Raises:
            InvalidChoice, InvalidStake, InsufficientFunds
        """
        choice = parse_choice(choice)
        if bet < 0:
            raise InvalidStake()

        ledger = self._engine.ledger
        balance = await ledger.get_balance(user_id)
        if bet > balance:
            raise InsufficientFunds("You don't have enough.")

        bot_choice = CHOICES[int(self._random() * len(CHOICES))]
        outcome = decide(choice, bot_choice)

        change = 0
        if bet > 0 and outcome != Outcome.TIE:
            change = bet if outcome == Outcome.WIN else -bet
            balance = await ledger.adjust_balance(user_id, change)
            await ledger.record_wagered(user_id, bet)

        logger.info(
            f"RPS vs bot: user {user_id} {choice} vs {bot_choice} -> "
            f"{outcome.value}, bet={bet}, change={change}"
        )
        return BotRpsResult(
            choice=choice,
            bot_choice=bot_choice,
            outcome=outcome,
            bet=bet,
            balance_change=change,
            new_balance=balance,
        )

"""
Solo casino games: coin flip, slots and roulette.

Each game checks the bet against the wallet, rolls, applies the net change
through the ledger and counts the bet as wagered.
"""

import logging
import random
from dataclasses import dataclass
from typing import Callable, List, Optional

from dating_room.services.errors import InsufficientFunds, InvalidChoice, InvalidStake

logger = logging.getLogger(__name__)


@dataclass
class CoinFlipResult:
    choice: str
    result: str
    won: bool
    bet: int
    balance_change: int
    new_balance: int


@dataclass
class SlotsResult:
    reels: List[str]
    bet: int
    payout: int  # gross, 0 on a loss
    balance_change: int
    new_balance: int

    @property
    def won(self) -> bool:
        return self.payout > 0


@dataclass
class RouletteResult:
    color: str
    number: int
    result_color: str
    won: bool
    bet: int
    balance_change: int
    new_balance: int


class CasinoEngine:
    """Coin flip, slots and roulette against the house."""

    COIN_ALIASES = {
        "h": "heads", "head": "heads", "heads": "heads",
        "t": "tails", "tail": "tails", "tails": "tails",
    }

    SLOT_SYMBOLS: List[str] = ["🍒", "🍋", "🔔", "💎", "7️⃣"]
    SLOTS_TRIPLE_MULTIPLIER = 5
    SLOTS_PAIR_MULTIPLIER = 2

    ROULETTE_POCKETS = 37  # 0..36
    ROULETTE_COLORS = ("red", "black", "green")
    ROULETTE_GREEN_MULTIPLIER = 14
    ROULETTE_COLOR_MULTIPLIER = 2

    def __init__(self, ledger, random_func: Optional[Callable[[], float]] = None):
        """
        Args:
            ledger: Object with async ``get_balance``, ``adjust_balance`` and
                ``record_wagered``.
            random_func: Optional random function returning a float in
                [0, 1). Defaults to random.random.
        """
        self.ledger = ledger
        self._random = random_func or random.random

    async def _check_bet(self, user_id: int, bet: int) -> None:
        if bet is None or bet <= 0:
            raise InvalidStake()
        balance = await self.ledger.get_balance(user_id)
        if bet > balance:
            raise InsufficientFunds(f"You don't have ${bet:,} in your wallet.")

    async def _apply(self, user_id: int, bet: int, change: int) -> int:
        if change == 0:
            new_balance = await self.ledger.get_balance(user_id)
        else:
            new_balance = await self.ledger.adjust_balance(user_id, change)
        await self.ledger.record_wagered(user_id, bet)
        return new_balance

    async def flip_coin(self, user_id: int, bet: int, choice: str) -> CoinFlipResult:
        """
        50/50 flip, pays 1:1.

        Raises:
            InvalidChoice, InvalidStake, InsufficientFunds
        """
        normalized = self.COIN_ALIASES.get((choice or "").strip().lower())
        if normalized is None:
            raise InvalidChoice("Choose heads or tails (h/t works).")
        await self._check_bet(user_id, bet)

        result = "heads" if self._random() < 0.5 else "tails"
        won = result == normalized
        change = bet if won else -bet
        new_balance = await self._apply(user_id, bet, change)

        logger.info(
            f"CoinFlip: user {user_id} choice={normalized} result={result} "
            f"bet={bet} change={change}"
        )
        return CoinFlipResult(
            choice=normalized,
            result=result,
            won=won,
            bet=bet,
            balance_change=change,
            new_balance=new_balance,
        )

    def roll_reels(self) -> List[str]:
        """Three random symbols."""
        symbols = self.SLOT_SYMBOLS
        return [symbols[int(self._random() * len(symbols))] for _ in range(3)]

    async def spin_slots(self, user_id: int, bet: int) -> SlotsResult:
        """
        Three reels. Three of a kind pays 5x, any pair pays 2x (gross).

        Raises:
            InvalidStake, InsufficientFunds
        """
        await self._check_bet(user_id, bet)

        reels = self.roll_reels()
        distinct = len(set(reels))
        if distinct == 1:
            payout = bet * self.SLOTS_TRIPLE_MULTIPLIER
        elif distinct == 2:
            payout = bet * self.SLOTS_PAIR_MULTIPLIER
        else:
            payout = 0

        change = payout - bet if payout else -bet
        new_balance = await self._apply(user_id, bet, change)

        logger.info(f"Slots: user {user_id} {' '.join(reels)} bet={bet} change={change}")
        return SlotsResult(
            reels=reels,
            bet=bet,
            payout=payout,
            balance_change=change,
            new_balance=new_balance,
        )

    @staticmethod
    def pocket_color(number: int) -> str:
        """0 is green, even numbers black, odd numbers red."""
        if number == 0:
            return "green"
        return "black" if number % 2 == 0 else "red"

    async def spin_roulette(self, user_id: int, bet: int, color: str) -> RouletteResult:
        """
        Bet on a colour. Green pays 14x, red or black 2x (gross).

        Raises:
            InvalidChoice, InvalidStake, InsufficientFunds
        """
        color = (color or "").strip().lower()
        if color not in self.ROULETTE_COLORS:
            raise InvalidChoice("Choose red, black or green.")
        await self._check_bet(user_id, bet)

        number = int(self._random() * self.ROULETTE_POCKETS)
        result_color = self.pocket_color(number)
        won = result_color == color
        if won:
            multiplier = (
                self.ROULETTE_GREEN_MULTIPLIER if color == "green"
                else self.ROULETTE_COLOR_MULTIPLIER
            )
            change = bet * (multiplier - 1)
        else:
            change = -bet
        new_balance = await self._apply(user_id, bet, change)

        logger.info(
            f"Roulette: user {user_id} bet {bet} on {color}, "
            f"landed {number} {result_color}, change={change}"
        )
        return RouletteResult(
            color=color,
            number=number,
            result_color=result_color,
            won=won,
            bet=bet,
            balance_change=change,
            new_balance=new_balance,
        )

"""
Game Engine for two-player games with consent.

Implements the challenge handshake (propose, accept, decline, cancel,
expire) on top of the session store, and the settlement that moves the
stake from loser to winner once a game ends.
"""

import logging
from datetime import datetime, timedelta
from typing import List, Optional

from dating_room.services.battleship import FleetBoard
from dating_room.services.errors import (
    AlreadyResolved,
    InsufficientFunds,
    InvalidStake,
    NotParticipant,
    NotRecipient,
    ParticipantBusy,
    SelfChallenge,
)
from dating_room.services.rps import RpsRound
from dating_room.services.state_manager import (
    GameSession,
    GameVariant,
    SessionStatus,
    SessionStore,
)
from dating_room.utils import utc_now

logger = logging.getLogger(__name__)


class GameEngine:
    """
    Challenge protocol and settlement.

    Balances are only read while a challenge is open; coins move once, in
    ``settle``, when the game has a winner.
    """

    DEFAULT_TIMEOUT = timedelta(minutes=5)

    def __init__(
        self,
        store: SessionStore,
        ledger,
        timeout: timedelta = DEFAULT_TIMEOUT
    ):
        """
        Initialize the engine.

        Args:
            store: Session store shared with the game resolvers.
            ledger: Object with async ``get_balance``, ``adjust_balance`` and
                ``record_wagered``.
            timeout: How long a proposal (or an unfinished ship placement)
                may wait before it expires.
        """
        self.store = store
        self.ledger = ledger
        self.timeout = timeout

    async def propose(
        self,
        initiator: int,
        recipient: int,
        stake: int,
        variant: GameVariant,
        chat_id: int = 0,
        now: Optional[datetime] = None
    ) -> GameSession:
        """
        Create a challenge waiting for the recipient's answer.

        Raises:
            SelfChallenge: initiator and recipient are the same user.
            InvalidStake: negative stake.
            InsufficientFunds: the initiator can't cover a positive stake.
            ParticipantBusy: either player already has an open game of
                this variant.
        """
        if initiator == recipient:
            raise SelfChallenge()
        if stake < 0:
            raise InvalidStake()

        if stake > 0:
            balance = await self.ledger.get_balance(initiator)
            if balance < stake:
                raise InsufficientFunds(
                    f"You only have {balance} coins, the bet is {stake}."
                )

        for player in (initiator, recipient):
            if self.store.find_open_for(player, variant) is not None:
                raise ParticipantBusy()

        session_id = self.store.make_session_id(initiator, recipient, variant, now)
        session = self.store.create(
            session_id, initiator, recipient, stake, variant, chat_id=chat_id
        )
        if now is not None:
            session.created_at = session.state_since = now
        return session

    def _is_stale(self, session: GameSession, now: datetime) -> bool:
        return now - session.state_since > self.timeout

    async def accept(
        self,
        session_id: str,
        acting: int,
        now: Optional[datetime] = None
    ) -> GameSession:
        """
        Accept a challenge and start the game.

        Rock-paper-scissors becomes ``active`` straight away; battleship
        goes through ``setup`` first while both players place their ships.

        Raises:
            SessionNotFound: unknown id.
            NotRecipient: someone other than the challenged user pressed accept.
            AlreadyResolved: the challenge was answered or has expired.
            InsufficientFunds: the recipient can't cover the stake.
        """
        now = now or utc_now()
        async with self.store.exclusive(session_id) as session:
            if acting != session.participant_b:
                raise NotRecipient()
            if session.status != SessionStatus.PROPOSED:
                raise AlreadyResolved()

            if self._is_stale(session, now):
                session.status = SessionStatus.EXPIRED
                self.store.remove(session_id)
                raise AlreadyResolved("This challenge has expired.")

            if session.stake > 0:
                balance = await self.ledger.get_balance(acting)
                if balance < session.stake:
                    raise InsufficientFunds(
                        f"You only have {balance} coins, the bet is {session.stake}."
                    )

            if session.variant == GameVariant.BATTLESHIP:
                session.phase_data = FleetBoard()
                session.status = SessionStatus.SETUP
            else:
                session.phase_data = RpsRound()
                session.status = SessionStatus.ACTIVE
            session.state_since = now

            logger.info(f"Challenge accepted: {session_id} -> {session.status.value}")
            return session

    async def decline(self, session_id: str, acting: int) -> GameSession:
        """
        Decline a challenge. Nobody's balance changes.

        Raises:
            SessionNotFound, NotRecipient, AlreadyResolved
        """
        async with self.store.exclusive(session_id) as session:
            if acting != session.participant_b:
                raise NotRecipient()
            if session.status != SessionStatus.PROPOSED:
                raise AlreadyResolved()

            session.status = SessionStatus.DECLINED
            self.store.remove(session_id)
            logger.info(f"Challenge declined: {session_id}")
            return session

    async def cancel(self, session_id: str, acting: int) -> GameSession:
        """
        Withdraw a challenge before it is answered (initiator only).

        Raises:
            SessionNotFound, NotParticipant, AlreadyResolved
        """
        async with self.store.exclusive(session_id) as session:
            if acting != session.participant_a:
                raise NotParticipant("Only the challenger can cancel this.")
            if session.status != SessionStatus.PROPOSED:
                raise AlreadyResolved()

            session.status = SessionStatus.DECLINED
            self.store.remove(session_id)
            logger.info(f"Challenge cancelled by challenger: {session_id}")
            return session

    def expire_stale(self, now: Optional[datetime] = None) -> List[GameSession]:
        """Expire proposals and setups older than the timeout."""
        return self.store.sweep_expired(self.timeout, now)

    async def settle(self, winner: int, loser: int, stake: int) -> int:
        """
        Move the stake from loser to winner.

        The loser pays ``min(stake, balance)`` so nobody goes negative.

        Returns:
            The amount actually transferred.
        """
        if stake <= 0:
            return 0

        # The loser may spend coins elsewhere between the read and the
        # debit, so retry against the fresh balance.
        amount = 0
        for _ in range(3):
            balance = await self.ledger.get_balance(loser)
            amount = min(stake, balance)
            if amount <= 0:
                amount = 0
                break
            try:
                await self.ledger.adjust_balance(loser, -amount)
            except InsufficientFunds:
                continue
            try:
                await self.ledger.adjust_balance(winner, amount)
            except Exception:
                logger.error(
                    f"Settlement credit to {winner} failed, refunding {amount} to {loser}",
                    exc_info=True,
                )
                await self.ledger.adjust_balance(loser, amount)
                raise
            break
        else:
            amount = 0

        if amount > 0:
            await self.ledger.record_wagered(winner, amount)
            await self.ledger.record_wagered(loser, amount)

        logger.info(f"Settled: {loser} -> {winner}: {amount} (stake {stake})")
        return amount

    async def finish(self, session: GameSession, winner: Optional[int]) -> int:
        """
        Close a finished game: settle when there is a winner, then drop it.

        Must be called with the session lock held.

        Returns:
            The amount transferred.
        """
        session.status = SessionStatus.FINISHED
        try:
            if winner is None:
                return 0
            return await self.settle(winner, session.opponent_of(winner), session.stake)
        finally:
            self.store.remove(session.session_id)

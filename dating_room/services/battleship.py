"""
Battleship on a 5x5 grid.

After a challenge is accepted both players secretly place three ships
(``!place A1 B2 C3``). Then they take turns firing (``!fire D4``). The turn
passes after every shot, hit or miss. Sinking the last enemy ship wins.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set

from dating_room.services.errors import (
    AlreadyPlaced,
    AlreadyResolved,
    AlreadyTargeted,
    DuplicateCoordinate,
    InvalidCoordinate,
    InvalidCoordinateCount,
    NotParticipant,
    NotYourTurn,
)
from dating_room.services.state_manager import SessionStatus

logger = logging.getLogger(__name__)

ROWS = "ABCDE"
COLUMNS = "12345"
SHIP_COUNT = 3


def parse_coordinate(raw: Optional[str]) -> str:
    """
    Normalize a typed square such as ``"b3"`` to ``"B3"``.

    Raises:
        InvalidCoordinate: If it isn't a row A-E followed by a column 1-5.
    """
    text = (raw or "").strip().upper()
    if len(text) != 2 or text[0] not in ROWS or text[1] not in COLUMNS:
        raise InvalidCoordinate(f"'{raw}' isn't a square. Use A1 to E5.")
    return text


@dataclass
class FleetBoard:
    """Per-player hidden ships and the squares each player has fired at."""
    ships: Dict[int, Set[str]] = field(default_factory=dict)
    shots: Dict[int, Set[str]] = field(default_factory=dict)
    hits: Dict[int, Set[str]] = field(default_factory=dict)

    def has_placed(self, user_id: int) -> bool:
        return user_id in self.ships

    def remaining(self, user_id: int) -> int:
        return len(self.ships.get(user_id, ()))


@dataclass
class PlacementResult:
    """Outcome of one player's ship placement."""
    session_id: str
    user_id: int
    ships: List[str]
    both_ready: bool
    turn_owner: Optional[int] = None


@dataclass
class ShotResult:
    """Outcome of one shot."""
    session_id: str
    shooter_id: int
    target_id: int
    coordinate: str
    hit: bool
    remaining: int
    next_turn: Optional[int]
    winner_id: Optional[int] = None
    amount_transferred: int = 0

    @property
    def game_over(self) -> bool:
        return self.winner_id is not None


class BattleshipEngine:
    """Resolver for battleship sessions."""

    def __init__(self, engine, ship_count: int = SHIP_COUNT):
        """
        Args:
            engine: GameEngine that owns the store and the ledger.
            ship_count: How many squares each player must place.
        """
        self._engine = engine
        self.ship_count = ship_count

    async def place(
        self,
        session_id: str,
        acting: int,
        coordinates: Iterable[str]
    ) -> PlacementResult:
        """
        Place one player's fleet.

        Once both fleets are placed the session becomes active and the
        challenger shoots first.

        Raises:
            SessionNotFound, NotParticipant, AlreadyResolved, AlreadyPlaced,
            InvalidCoordinate, InvalidCoordinateCount, DuplicateCoordinate
        """
        squares = [parse_coordinate(c) for c in coordinates]

        async with self._engine.store.exclusive(session_id) as session:
            if not session.is_participant(acting):
                raise NotParticipant()
            if session.status == SessionStatus.PROPOSED:
                raise AlreadyResolved("The challenge hasn't been accepted yet.")
            if session.status != SessionStatus.SETUP:
                raise AlreadyResolved("Ship placement is over for this game.")

            board: FleetBoard = session.phase_data
            if board.has_placed(acting):
                raise AlreadyPlaced()
            if len(squares) != self.ship_count:
                raise InvalidCoordinateCount(
                    f"Place exactly {self.ship_count} ships, you gave {len(squares)}."
                )
            if len(set(squares)) != len(squares):
                raise DuplicateCoordinate()

            board.ships[acting] = set(squares)
            board.shots[acting] = set()
            board.hits[acting] = set()

            both_ready = all(
                board.has_placed(p) for p in (session.participant_a, session.participant_b)
            )
            if both_ready:
                session.status = SessionStatus.ACTIVE
                session.turn_owner = session.participant_a
                logger.info(f"Battleship {session_id}: fleets placed, game on")
            else:
                logger.info(f"Battleship {session_id}: {acting} placed ships")

            return PlacementResult(
                session_id=session_id,
                user_id=acting,
                ships=sorted(squares),
                both_ready=both_ready,
                turn_owner=session.turn_owner,
            )

    async def fire(self, session_id: str, acting: int, coordinate: str) -> ShotResult:
        """
        Fire at one square of the opponent's grid.

        Raises:
            SessionNotFound, NotParticipant, AlreadyResolved, NotYourTurn,
            InvalidCoordinate, AlreadyTargeted
        """
        async with self._engine.store.exclusive(session_id) as session:
            if not session.is_participant(acting):
                raise NotParticipant()
            if session.status == SessionStatus.SETUP:
                raise AlreadyResolved("Both players have to place their ships first.")
            if session.status != SessionStatus.ACTIVE:
                raise AlreadyResolved()
            if acting != session.turn_owner:
                raise NotYourTurn()

            square = parse_coordinate(coordinate)
            board: FleetBoard = session.phase_data
            if square in board.shots[acting]:
                raise AlreadyTargeted(f"You already fired at {square}.")

            target = session.opponent_of(acting)
            board.shots[acting].add(square)
            enemy_fleet = board.ships[target]
            hit = square in enemy_fleet
            if hit:
                enemy_fleet.discard(square)
                board.hits[acting].add(square)

            result = ShotResult(
                session_id=session_id,
                shooter_id=acting,
                target_id=target,
                coordinate=square,
                hit=hit,
                remaining=len(enemy_fleet),
                next_turn=target,
            )
            logger.info(
                f"Battleship {session_id}: {acting} fired {square} "
                f"({'hit' if hit else 'miss'}, {len(enemy_fleet)} left)"
            )

            if enemy_fleet:
                session.turn_owner = target
                return result

            session.turn_owner = None
            result.next_turn = None
            result.winner_id = acting
            result.amount_transferred = await self._engine.finish(session, acting)
            return result

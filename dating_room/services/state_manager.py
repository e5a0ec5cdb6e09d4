"""Session store for two-player games.

Keeps every challenge and match in memory for the lifetime of the process.
One store instance is created at startup and handed to the game services;
tests build their own isolated instances.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, AsyncIterator, Dict, List, Optional

from dating_room.services.errors import DuplicateSessionId, SessionNotFound
from dating_room.utils import utc_now

logger = logging.getLogger(__name__)


class GameVariant(str, Enum):
    """Two-player game types."""
    RPS = "rps"
    BATTLESHIP = "bship"


class SessionStatus(str, Enum):
    """Lifecycle of a session. Only ever moves forward."""
    PROPOSED = "proposed"
    SETUP = "setup"
    ACTIVE = "active"
    FINISHED = "finished"
    DECLINED = "declined"
    EXPIRED = "expired"


# Statuses a session can still leave
OPEN_STATUSES = frozenset({
    SessionStatus.PROPOSED, SessionStatus.SETUP, SessionStatus.ACTIVE,
})

# Statuses that time out when nobody acts
STALE_STATUSES = frozenset({SessionStatus.PROPOSED, SessionStatus.SETUP})


@dataclass
class GameSession:
    """One challenge or match between two players."""
    session_id: str
    variant: GameVariant
    participant_a: int  # initiator
    participant_b: int  # recipient
    stake: int
    chat_id: int = 0
    status: SessionStatus = SessionStatus.PROPOSED
    phase_data: Any = None
    turn_owner: Optional[int] = None
    created_at: datetime = field(default_factory=utc_now)
    # when the current status was entered; expiry is measured from here
    state_since: datetime = field(default_factory=utc_now)
    message_id: Optional[int] = None
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False, compare=False)

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_STATUSES

    def is_participant(self, user_id: int) -> bool:
        return user_id in (self.participant_a, self.participant_b)

    def opponent_of(self, user_id: int) -> int:
        """Return the other player's id."""
        if user_id == self.participant_a:
            return self.participant_b
        if user_id == self.participant_b:
            return self.participant_a
        raise ValueError(f"User {user_id} is not in session {self.session_id}")


class SessionStore:
    """In-memory map of session id to session.

    Lookups by participant are linear scans; expected size is tens of
    sessions.
    """

    def __init__(self):
        self._sessions: Dict[str, GameSession] = {}

    @staticmethod
    def make_session_id(
        participant_a: int,
        participant_b: int,
        variant: GameVariant,
        now: Optional[datetime] = None
    ) -> str:
        """Build an id from the game type, both players and the creation time in ms."""
        now = now or utc_now()
        return (
            f"{GameVariant(variant).value}-{participant_a}-{participant_b}-"
            f"{int(now.timestamp() * 1000)}"
        )

    def create(
        self,
        session_id: str,
        participant_a: int,
        participant_b: int,
        stake: int,
        variant: GameVariant,
        chat_id: int = 0
    ) -> GameSession:
        """
        Register a new session in the ``proposed`` state.

        Raises:
            DuplicateSessionId: If the id is already taken.
        """
        if session_id in self._sessions:
            raise DuplicateSessionId()

        session = GameSession(
            session_id=session_id,
            variant=GameVariant(variant),
            participant_a=participant_a,
            participant_b=participant_b,
            stake=stake,
            chat_id=chat_id,
        )
        self._sessions[session_id] = session
        logger.info(
            f"Session created: {session_id} ({session.variant.value}) "
            f"{participant_a} vs {participant_b}, stake {stake}"
        )
        return session

    def get(self, session_id: str) -> GameSession:
        """
        Get a session by id.

        Raises:
            SessionNotFound: If the session does not exist.
        """
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFound()
        return session

    def find_active_for(self, participant_id: int, variant: GameVariant) -> Optional[GameSession]:
        """Return the participant's ``active`` session of this variant, if any."""
        return self._find(participant_id, variant, {SessionStatus.ACTIVE})

    def find_open_for(self, participant_id: int, variant: GameVariant) -> Optional[GameSession]:
        """Return any not-yet-terminal session of this variant the participant is in."""
        return self._find(participant_id, variant, OPEN_STATUSES)

    def _find(self, participant_id, variant, statuses) -> Optional[GameSession]:
        for session in self._sessions.values():
            if (session.variant == variant
                    and session.status in statuses
                    and session.is_participant(participant_id)):
                return session
        return None

    def remove(self, session_id: str) -> bool:
        """Drop a session. Returns False if it was already gone."""
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        logger.info(f"Session removed: {session_id} ({session.status.value})")
        return True

    def sweep_expired(self, max_age: timedelta, now: Optional[datetime] = None) -> List[GameSession]:
        """
        Expire proposals and unfinished setups that have sat in their
        current status for longer than ``max_age``.

        Sessions whose lock is currently held are skipped; the next sweep
        picks them up if they are still stale.

        Returns:
            The sessions that were expired and removed.
        """
        now = now or utc_now()
        expired = []
        for session in list(self._sessions.values()):
            if session.status not in STALE_STATUSES or session.lock.locked():
                continue
            if now - session.state_since > max_age:
                session.status = SessionStatus.EXPIRED
                self._sessions.pop(session.session_id, None)
                expired.append(session)
                logger.info(f"Session expired: {session.session_id}")
        return expired

    @asynccontextmanager
    async def exclusive(self, session_id: str) -> AsyncIterator[GameSession]:
        """
        Hold a session's lock for the duration of the block.

        Raises:
            SessionNotFound: If the session is missing before or after the
                lock is acquired.
        """
        session = self.get(session_id)
        async with session.lock:
            if self._sessions.get(session_id) is not session:
                raise SessionNotFound()
            yield session

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

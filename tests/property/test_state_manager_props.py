"""
Property-based tests for the session store.

*For any* mix of session ages and statuses, the sweep removes exactly the
proposals and setups older than the timeout and leaves everything else.
"""

import asyncio
from datetime import timedelta

import pytest
from hypothesis import given, strategies as st, settings

from dating_room.services.errors import DuplicateSessionId, SessionNotFound
from dating_room.services.state_manager import (
    GameVariant,
    SessionStatus,
    SessionStore,
    STALE_STATUSES,
)
from dating_room.utils import utc_now


user_id_strategy = st.integers(min_value=1, max_value=10**12)
variant_strategy = st.sampled_from(list(GameVariant))
status_strategy = st.sampled_from([
    SessionStatus.PROPOSED, SessionStatus.SETUP, SessionStatus.ACTIVE,
])
age_strategy = st.integers(min_value=0, max_value=3600)


def run_async(coro):
    """Helper to run async code in sync tests."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


class TestSweepExpired:
    """Sweep removes stale sessions only."""

    @settings(max_examples=100)
    @given(
        sessions=st.lists(
            st.tuples(status_strategy, age_strategy),
            min_size=1,
            max_size=20,
        ),
        timeout_seconds=st.integers(min_value=1, max_value=1800),
    )
    def test_sweep_removes_exactly_stale_sessions(self, sessions, timeout_seconds):
        """
        Property 1: A session is swept iff it is proposed or in setup and
        in that status for longer than the timeout. Swept sessions end in ``expired``.
        """
        store = SessionStore()
        now = utc_now()
        timeout = timedelta(seconds=timeout_seconds)

        expected = set()
        for i, (status, age) in enumerate(sessions):
            session = store.create(f"s{i}", i * 2 + 1, i * 2 + 2, 0, GameVariant.RPS)
            session.status = status
            session.state_since = now - timedelta(seconds=age)
            if status in STALE_STATUSES and timedelta(seconds=age) > timeout:
                expected.add(session.session_id)

        expired = store.sweep_expired(timeout, now)

        assert {s.session_id for s in expired} == expected
        assert all(s.status == SessionStatus.EXPIRED for s in expired)
        assert len(store) == len(sessions) - len(expected)
        for session_id in expected:
            assert session_id not in store

    @settings(max_examples=50)
    @given(age=st.integers(min_value=301, max_value=10**5))
    def test_sweep_skips_locked_session(self, age: int):
        """Property 2: A session whose lock is held survives the sweep."""
        async def _test():
            store = SessionStore()
            now = utc_now()
            session = store.create("locked", 1, 2, 0, GameVariant.BATTLESHIP)
            session.state_since = now - timedelta(seconds=age)

            async with store.exclusive("locked"):
                assert store.sweep_expired(timedelta(seconds=300), now) == []
            assert "locked" in store

            expired = store.sweep_expired(timedelta(seconds=300), now)
            assert [s.session_id for s in expired] == ["locked"]

        run_async(_test())


class TestSessionIdentity:
    """Ids are unique within a store."""

    @settings(max_examples=100)
    @given(
        a=user_id_strategy,
        b=user_id_strategy,
        stake=st.integers(min_value=0, max_value=10**6),
        variant=variant_strategy,
    )
    def test_duplicate_id_rejected(self, a: int, b: int, stake: int, variant: GameVariant):
        """Property 3: Creating a second session under a used id fails and keeps the first."""
        store = SessionStore()
        session_id = store.make_session_id(a, b, variant)
        first = store.create(session_id, a, b, stake, variant)

        with pytest.raises(DuplicateSessionId):
            store.create(session_id, b, a, stake + 1, variant)

        assert store.get(session_id) is first
        assert first.status == SessionStatus.PROPOSED

    @settings(max_examples=100)
    @given(a=user_id_strategy, b=user_id_strategy, offset_ms=st.integers(min_value=1, max_value=10**6))
    def test_ids_differ_by_creation_time(self, a: int, b: int, offset_ms: int):
        """Property 4: The same pair challenging at different instants gets different ids."""
        now = utc_now()
        later = now + timedelta(milliseconds=offset_ms)
        assert (
            SessionStore.make_session_id(a, b, GameVariant.RPS, now)
            != SessionStore.make_session_id(a, b, GameVariant.RPS, later)
        )

    @settings(max_examples=100)
    @given(a=user_id_strategy, b=user_id_strategy)
    def test_ids_differ_by_game_type(self, a: int, b: int):
        """Property 5: The same pair at the same instant gets one id per game type."""
        now = utc_now()
        rps_id = SessionStore.make_session_id(a, b, GameVariant.RPS, now)
        battleship_id = SessionStore.make_session_id(a, b, GameVariant.BATTLESHIP, now)

        assert rps_id != battleship_id

        store = SessionStore()
        store.create(rps_id, a, b, 0, GameVariant.RPS)
        store.create(battleship_id, a, b, 0, GameVariant.BATTLESHIP)
        assert len(store) == 2

    @settings(max_examples=50)
    @given(session_id=st.text(min_size=1, max_size=40))
    def test_removed_session_is_gone(self, session_id: str):
        """Property 6: After remove, get raises and a second remove reports False."""
        store = SessionStore()
        store.create(session_id, 1, 2, 0, GameVariant.RPS)

        assert store.remove(session_id) is True
        assert store.remove(session_id) is False
        with pytest.raises(SessionNotFound):
            store.get(session_id)

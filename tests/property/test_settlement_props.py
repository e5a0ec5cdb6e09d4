"""
Property-based tests for settlement.

*For any* balances and stake, the loser pays ``min(stake, balance)``,
nobody's wallet goes negative and the total supply is unchanged.
"""

import asyncio

from hypothesis import given, strategies as st, settings

from dating_room.services.game_engine import GameEngine
from dating_room.services.state_manager import GameVariant, SessionStatus, SessionStore
from fakes import FakeLedger


balance_strategy = st.integers(min_value=0, max_value=10**7)
stake_strategy = st.integers(min_value=0, max_value=10**7)


def run_async(coro):
    """Helper to run async code in sync tests."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


class TestSettle:

    @settings(max_examples=200)
    @given(winner_balance=balance_strategy, loser_balance=balance_strategy, stake=stake_strategy)
    def test_transfer_is_capped_and_conserving(self, winner_balance, loser_balance, stake):
        """Property 1: amount == min(stake, loser balance); totals preserved."""
        async def _test():
            ledger = FakeLedger({1: winner_balance, 2: loser_balance})
            engine = GameEngine(SessionStore(), ledger)

            amount = await engine.settle(1, 2, stake)

            assert amount == min(stake, loser_balance)
            assert ledger.balances[2] == loser_balance - amount >= 0
            assert ledger.balances[1] == winner_balance + amount
            assert ledger.total() == winner_balance + loser_balance

            if amount > 0:
                assert ledger.wagered == {1: amount, 2: amount}
            else:
                assert ledger.wagered == {}

        run_async(_test())

    @settings(max_examples=100)
    @given(balance=balance_strategy, spent=balance_strategy, stake=st.integers(min_value=1, max_value=10**7))
    def test_loser_spending_before_settlement(self, balance, spent, stake):
        """
        Property 2: If the loser spent coins after the challenge was
        accepted, settlement takes what is left and still never overdraws.
        """
        spent = min(spent, balance)

        async def _test():
            stake_used = min(stake, balance) or 1
            ledger = FakeLedger({1: max(balance, stake_used), 2: max(balance, stake_used)})
            engine = GameEngine(SessionStore(), ledger)
            session = await engine.propose(1, 2, stake_used, GameVariant.RPS)
            await engine.accept(session.session_id, 2)

            await ledger.adjust_balance(2, -min(spent, ledger.balances[2]))
            left = ledger.balances[2]

            async with engine.store.exclusive(session.session_id) as locked:
                amount = await engine.finish(locked, winner=1)

            assert amount == min(stake_used, left)
            assert ledger.balances[2] >= 0
            assert session.status == SessionStatus.FINISHED
            assert session.session_id not in engine.store

        run_async(_test())


class TestProposeKeepsBalance:

    @settings(max_examples=100)
    @given(balance=st.integers(min_value=0, max_value=10**6), stake=st.integers(min_value=0, max_value=10**6))
    def test_propose_and_accept_move_no_coins(self, balance, stake):
        """Property 3: Coins only move at settlement, never on propose or accept."""
        stake = min(stake, balance)

        async def _test():
            ledger = FakeLedger({1: balance, 2: balance})
            engine = GameEngine(SessionStore(), ledger)
            session = await engine.propose(1, 2, stake, GameVariant.BATTLESHIP)
            assert ledger.balances == {1: balance, 2: balance}

            await engine.accept(session.session_id, 2)
            assert ledger.balances == {1: balance, 2: balance}
            assert ledger.wagered == {}

        run_async(_test())

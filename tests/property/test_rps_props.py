"""
Property-based tests for rock-paper-scissors.

*For any* pair of picks, the outcome does not depend on who submits first,
and a resolved challenge never creates or destroys coins.
"""

import asyncio

from hypothesis import given, strategies as st, settings

from dating_room.services.game_engine import GameEngine
from dating_room.services.rps import CHOICES, Outcome, RpsEngine, decide
from dating_room.services.state_manager import GameVariant, SessionStore
from fakes import FakeLedger, SequenceRandom


choice_strategy = st.sampled_from(CHOICES)
balance_strategy = st.integers(min_value=0, max_value=10000)
stake_strategy = st.integers(min_value=0, max_value=2000)


def run_async(coro):
    """Helper to run async code in sync tests."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


class TestDecide:

    @settings(max_examples=100)
    @given(first=choice_strategy, second=choice_strategy)
    def test_decide_is_antisymmetric(self, first: str, second: str):
        """Property 1: a beats b exactly when b loses to a; ties are symmetric."""
        forward = decide(first, second)
        backward = decide(second, first)
        if first == second:
            assert forward == backward == Outcome.TIE
        else:
            assert {forward, backward} == {Outcome.WIN, Outcome.LOSE}


class TestChallengeResolution:

    @settings(max_examples=100)
    @given(
        pick_a=choice_strategy,
        pick_b=choice_strategy,
        balance_a=balance_strategy,
        balance_b=balance_strategy,
        stake=stake_strategy,
        b_first=st.booleans(),
    )
    def test_submission_order_does_not_matter(
        self,
        pick_a: str,
        pick_b: str,
        balance_a: int,
        balance_b: int,
        stake: int,
        b_first: bool
    ):
        """
        Property 2: The winner and the coins moved are the same whichever
        player submits first, and the total supply is unchanged.
        """
        async def _play(b_goes_first: bool):
            stake_used = min(stake, balance_a, balance_b)
            ledger = FakeLedger({1: balance_a, 2: balance_b})
            engine = GameEngine(SessionStore(), ledger)
            rps = RpsEngine(engine)

            session = await engine.propose(1, 2, stake_used, GameVariant.RPS)
            await engine.accept(session.session_id, 2)

            order = [(2, pick_b), (1, pick_a)] if b_goes_first else [(1, pick_a), (2, pick_b)]
            assert await rps.submit_choice(session.session_id, *order[0]) is None
            outcome = await rps.submit_choice(session.session_id, *order[1])
            return outcome, ledger

        first_outcome, first_ledger = run_async(_play(b_first))
        second_outcome, second_ledger = run_async(_play(not b_first))

        assert first_outcome.winner_id == second_outcome.winner_id
        assert first_outcome.amount_transferred == second_outcome.amount_transferred
        assert first_ledger.balances == second_ledger.balances
        assert first_ledger.total() == balance_a + balance_b

        result = decide(pick_a, pick_b)
        if result == Outcome.TIE:
            assert first_outcome.is_tie
            assert first_outcome.amount_transferred == 0
        elif result == Outcome.WIN:
            assert first_outcome.winner_id == 1
        else:
            assert first_outcome.winner_id == 2


class TestPlayVsBot:

    @settings(max_examples=100)
    @given(
        choice=choice_strategy,
        roll=st.floats(min_value=0.0, max_value=0.999),
        balance=st.integers(min_value=0, max_value=10000),
        bet=st.integers(min_value=0, max_value=10000),
    )
    def test_balance_change_matches_outcome(self, choice: str, roll: float, balance: int, bet: int):
        """Property 3: Win pays +bet, loss costs -bet, tie changes nothing."""
        if bet > balance:
            bet = balance

        async def _test():
            ledger = FakeLedger({7: balance})
            rps = RpsEngine(GameEngine(SessionStore(), ledger), random_func=SequenceRandom(roll))
            result = await rps.play_vs_bot(7, choice, bet)

            expected = {Outcome.WIN: bet, Outcome.LOSE: -bet, Outcome.TIE: 0}[result.outcome]
            assert result.outcome == decide(choice, result.bot_choice)
            assert result.balance_change == expected
            assert result.new_balance == balance + expected
            assert ledger.balances[7] == balance + expected

        run_async(_test())

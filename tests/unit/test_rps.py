"""Tests for rock-paper-scissors challenges and games against the bot."""

from datetime import timedelta

import pytest

from dating_room.services.errors import (
    AlreadyChose,
    AlreadyResolved,
    InsufficientFunds,
    InvalidChoice,
    NotParticipant,
    SessionNotFound,
)
from dating_room.services.rps import Outcome, RpsEngine, decide, parse_choice
from dating_room.services.state_manager import GameVariant, SessionStatus
from dating_room.utils import utc_now
from fakes import SequenceRandom


@pytest.fixture
def rps(engine):
    return RpsEngine(engine)


async def _active_session(engine, stake=0):
    session = await engine.propose(1, 2, stake, GameVariant.RPS)
    await engine.accept(session.session_id, 2)
    return session


@pytest.mark.parametrize("raw,expected", [
    ("rock", "rock"), ("R", "rock"), (" paper ", "paper"), ("s", "scissors"),
])
def test_parse_choice(raw, expected):
    assert parse_choice(raw) == expected


@pytest.mark.parametrize("raw", ["", None, "lizard", "rocks"])
def test_parse_choice_rejects_unknown(raw):
    with pytest.raises(InvalidChoice):
        parse_choice(raw)


def test_decide_cycle():
    assert decide("rock", "scissors") == Outcome.WIN
    assert decide("scissors", "paper") == Outcome.WIN
    assert decide("paper", "rock") == Outcome.WIN
    assert decide("rock", "paper") == Outcome.LOSE
    assert decide("paper", "paper") == Outcome.TIE


@pytest.mark.asyncio
async def test_free_challenge_rock_beats_scissors(engine, rps, store, ledger):
    session = await _active_session(engine)

    assert await rps.submit_choice(session.session_id, 1, "rock") is None
    outcome = await rps.submit_choice(session.session_id, 2, "scissors")

    assert outcome.winner_id == 1
    assert outcome.loser_id == 2
    assert outcome.amount_transferred == 0
    assert ledger.balances[1] == 1000
    assert ledger.balances[2] == 1000
    assert session.session_id not in store


@pytest.mark.asyncio
async def test_staked_challenge_pays_winner(engine, rps, ledger):
    session = await _active_session(engine, stake=250)

    await rps.submit_choice(session.session_id, 2, "paper")
    outcome = await rps.submit_choice(session.session_id, 1, "rock")

    assert outcome.winner_id == 2
    assert outcome.amount_transferred == 250
    assert ledger.balances[1] == 750
    assert ledger.balances[2] == 1250


@pytest.mark.asyncio
async def test_tie_moves_nothing(engine, rps, ledger, store):
    session = await _active_session(engine, stake=250)

    await rps.submit_choice(session.session_id, 1, "paper")
    outcome = await rps.submit_choice(session.session_id, 2, "p")

    assert outcome.is_tie
    assert outcome.amount_transferred == 0
    assert ledger.balances[1] == ledger.balances[2] == 1000
    assert session.session_id not in store


@pytest.mark.asyncio
async def test_second_pick_rejected(engine, rps):
    session = await _active_session(engine)
    await rps.submit_choice(session.session_id, 1, "rock")

    with pytest.raises(AlreadyChose):
        await rps.submit_choice(session.session_id, 1, "paper")
    assert session.phase_data.choices == {1: "rock"}


@pytest.mark.asyncio
async def test_outsider_cannot_pick(engine, rps):
    session = await _active_session(engine)
    with pytest.raises(NotParticipant):
        await rps.submit_choice(session.session_id, 3, "rock")


@pytest.mark.asyncio
async def test_pick_before_accept_rejected(engine, rps):
    session = await engine.propose(1, 2, 0, GameVariant.RPS)
    with pytest.raises(AlreadyResolved):
        await rps.submit_choice(session.session_id, 1, "rock")


@pytest.mark.asyncio
async def test_pick_after_resolution_rejected(engine, rps):
    session = await _active_session(engine)
    await rps.submit_choice(session.session_id, 1, "rock")
    await rps.submit_choice(session.session_id, 2, "rock")

    with pytest.raises(SessionNotFound):
        await rps.submit_choice(session.session_id, 1, "paper")


@pytest.mark.asyncio
async def test_bot_game_win(engine, ledger):
    # 0.7 -> index 2 -> scissors
    rps = RpsEngine(engine, random_func=SequenceRandom(0.7))
    result = await rps.play_vs_bot(1, "rock", 100)

    assert result.bot_choice == "scissors"
    assert result.outcome == Outcome.WIN
    assert result.new_balance == 1100
    assert ledger.wagered == {1: 100}


@pytest.mark.asyncio
async def test_bot_game_tie_keeps_bet(engine, ledger):
    rps = RpsEngine(engine, random_func=SequenceRandom(0.0))
    result = await rps.play_vs_bot(1, "rock", 100)

    assert result.outcome == Outcome.TIE
    assert result.balance_change == 0
    assert ledger.balances[1] == 1000


@pytest.mark.asyncio
async def test_bot_game_bet_above_balance(engine):
    rps = RpsEngine(engine)
    with pytest.raises(InsufficientFunds):
        await rps.play_vs_bot(3, "rock", 1)


@pytest.mark.asyncio
async def test_pick_after_decline_rejected(engine, rps, ledger):
    session = await engine.propose(1, 2, 100, GameVariant.RPS)
    await engine.decline(session.session_id, 2)

    for player in (1, 2):
        with pytest.raises(SessionNotFound):
            await rps.submit_choice(session.session_id, player, "rock")
    assert ledger.balances[1] == ledger.balances[2] == 1000
    assert ledger.wagered == {}


@pytest.mark.asyncio
async def test_pick_after_expiry_rejected(engine, rps):
    long_ago = utc_now() - timedelta(minutes=10)
    session = await engine.propose(1, 2, 0, GameVariant.RPS, now=long_ago)
    assert engine.expire_stale() == [session]

    with pytest.raises(SessionNotFound):
        await rps.submit_choice(session.session_id, 2, "paper")
    assert session.status == SessionStatus.EXPIRED

"""Unit tests for persisted records."""
import json
from wager.core.commitment import make_commitment
from wager.core.records import (
    BetRecord,
    GameRecord,
    Phase,
    WagerState,
    bet_key,
    escrow_account_for,
)


def make_game(**overrides):
    data = dict(
        game_id="g1",
        authority="host",
        escrow_account=escrow_account_for("g1"),
        submission_deadline=100,
        reveal_period=10,
        final_claim_period=10,
    )
    data.update(overrides)
    return GameRecord(**data)


def test_game_defaults():
    """Test a new game starts open with an empty pot."""
    game = make_game()
    assert game.phase == Phase.OPEN
    assert game.outcome is None
    assert game.pot == 0
    assert game.bet_count == 0
    assert game.reveal_deadline is None
    assert game.final_claim_deadline is None

def test_phase_flags_are_exclusive():
    """Test the legacy accepting flags derive from a single phase."""
    game = make_game()
    assert game.accepting_bets and not game.accepting_reveals
    game.phase = Phase.REVEAL_OPEN
    assert game.accepting_reveals and not game.accepting_bets
    game.phase = Phase.CLOSED
    assert not game.accepting_bets and not game.accepting_reveals

def test_bet_commitment_serializes_as_hex():
    """Test commitments persist as hex and load back to bytes."""
    commitment = make_commitment(10, 20)
    bet = BetRecord(participant="alice", game_id="g1", commitment=commitment, amount=5)
    data = json.loads(json.dumps(bet.model_dump(mode="json")))
    assert data["commitment"] == commitment.hex()
    assert BetRecord.model_validate(data).commitment == commitment

def test_bet_deferred_flag():
    """Test a bet is deferred only while attempted and unclaimed."""
    bet = BetRecord(participant="alice", game_id="g1", commitment=b"\x00" * 32, amount=5)
    assert not bet.is_deferred
    bet.attempted_reveal = True
    assert bet.is_deferred
    bet.is_claimed = True
    assert not bet.is_deferred

def test_state_lookup_and_totals():
    """Test bets are keyed by game and participant."""
    state = WagerState(game=make_game())
    for name, amount in (("alice", 3), ("bob", 4)):
        state.bets[bet_key("g1", name)] = BetRecord(
            participant=name, game_id="g1", commitment=b"\x01" * 32, amount=amount
        )
    assert state.get_bet("alice").amount == 3
    assert state.get_bet("carol") is None
    assert state.outstanding_total() == 7
    assert WagerState().get_bet("alice") is None

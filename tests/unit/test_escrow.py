"""Unit tests for escrow accounting."""
import pytest
from wager.core.errors import ArithmeticFault, ErrorCode, LiquidityError, ValidationError
from wager.core.escrow import (
    Ledger,
    PayoutDecision,
    checked_add,
    checked_sub,
    decide_payout,
    invariant_violations,
    operator_liquidity,
    release_stake,
    require_refundable,
)
from wager.core.records import BetRecord, GameRecord, Phase, WagerState, bet_key

ESCROW = "treasury:g1"


@pytest.fixture
def state():
    game = GameRecord(
        game_id="g1", authority="host", escrow_account=ESCROW,
        submission_deadline=100, reveal_period=10, final_claim_period=10,
        pot=300, bet_count=1,
    )
    state = WagerState(game=game, balances={ESCROW: 1_000, "alice": 50})
    state.bets[bet_key("g1", "alice")] = BetRecord(
        participant="alice", game_id="g1", commitment=b"\x02" * 32, amount=300
    )
    return state


def test_checked_arithmetic():
    """Test u64 bounds are enforced."""
    assert checked_add(2**64 - 2, 1) == 2**64 - 1
    with pytest.raises(ArithmeticFault) as exc:
        checked_add(2**64 - 1, 1)
    assert exc.value.code == ErrorCode.OVERFLOW
    assert exc.value.fatal
    with pytest.raises(ArithmeticFault):
        checked_sub(1, 2)

def test_ledger_transfer(state):
    """Test transfers move value between accounts."""
    ledger = Ledger(state.balances)
    ledger.transfer("alice", ESCROW, 20)
    assert ledger.balance_of("alice") == 30
    assert ledger.balance_of(ESCROW) == 1_020

def test_ledger_insufficient_funds(state):
    """Test overdrawing fails without touching either balance."""
    ledger = Ledger(state.balances)
    with pytest.raises(LiquidityError) as exc:
        ledger.transfer("alice", "bob", 51)
    assert exc.value.code == ErrorCode.INSUFFICIENT_FUNDS
    assert ledger.balance_of("alice") == 50
    assert ledger.balance_of("bob") == 0

def test_ledger_rejects_non_positive(state):
    with pytest.raises(ValidationError):
        Ledger(state.balances).transfer("alice", "bob", 0)
    with pytest.raises(ValidationError):
        Ledger(state.balances).credit("alice", -5)

def test_operator_liquidity(state):
    """Test liquidity is escrow minus the pot."""
    assert operator_liquidity(state) == 700

def test_operator_liquidity_desync(state):
    """Test a pot larger than escrow is a fatal fault."""
    state.game.pot = 1_001
    with pytest.raises(ArithmeticFault) as exc:
        operator_liquidity(state)
    assert exc.value.code == ErrorCode.POT_DESYNCED

def test_decide_payout(state):
    """Test payouts up to the liquidity are paid, larger ones deferred."""
    assert decide_payout(state, 700) == PayoutDecision.PAY
    assert decide_payout(state, 701) == PayoutDecision.DEFER

def test_require_refundable(state):
    require_refundable(state, 1_000)
    with pytest.raises(LiquidityError) as exc:
        require_refundable(state, 1_001)
    assert exc.value.code == ErrorCode.INSUFFICIENT_TREASURY_FOR_RECLAIM
    assert exc.value.category == "liquidity"

def test_release_stake(state):
    release_stake(state, 300)
    assert state.game.pot == 0
    assert state.game.bet_count == 0
    with pytest.raises(ArithmeticFault):
        release_stake(state, 1)

def test_invariant_violations(state):
    """Test every accounting mismatch is reported."""
    assert invariant_violations(state) == []
    state.game.pot = 1_200
    state.game.bet_count = 2
    problems = invariant_violations(state)
    assert len(problems) == 3

def test_closed_game_tolerates_residual_pot(state):
    """Test a swept game may keep a residual pot."""
    state.balances[ESCROW] = 0
    state.game.phase = Phase.CLOSED
    assert invariant_violations(state) == []

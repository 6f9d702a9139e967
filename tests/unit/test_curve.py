"""Unit tests for the payout curve."""
import pytest
from wager.core.curve import (
    MULTIPLIER_TABLE,
    SCALE,
    build_table,
    curve_value,
    is_win,
    payout_for,
    scaled_multiplier,
)
from wager.core.errors import ErrorCode, ValidationError

STAKE = 1_000_000_000


def test_table_shape():
    """Test the table covers every difference from 0 to 100."""
    assert len(MULTIPLIER_TABLE) == 101
    assert MULTIPLIER_TABLE[0] == 4_000_000
    assert MULTIPLIER_TABLE[1] == 3_490_497
    assert MULTIPLIER_TABLE[100] == 100_003

def test_table_is_non_increasing():
    """Test closer guesses never earn less."""
    for closer, further in zip(MULTIPLIER_TABLE, MULTIPLIER_TABLE[1:]):
        assert closer >= further

def test_table_matches_curve():
    """Test the stored table is the rounded continuous curve."""
    regenerated = build_table()
    assert len(regenerated) == len(MULTIPLIER_TABLE)
    for stored, computed in zip(MULTIPLIER_TABLE, regenerated):
        assert abs(stored - computed) <= 1
    assert curve_value(0) == pytest.approx(4.0)

def test_exact_guess_pays_maximum():
    """Test scenario A: difference 0 pays 4x."""
    assert payout_for(STAKE, 50, 50) == 4_000_000_000

def test_one_under_pays_second_tier():
    """Test scenario B: difference 1 pays 3.490497x."""
    assert payout_for(STAKE, 49, 50) == 3_490_497_000

def test_guess_over_outcome_loses():
    """Test scenario C and the boundary guess == outcome + 1."""
    assert payout_for(STAKE, 51, 50) == 0
    assert not is_win(51, 50)
    assert is_win(50, 50)

def test_floor_payout_at_max_difference():
    """Test difference 100 pays the table floor."""
    assert payout_for(STAKE, 0, 100) == STAKE * MULTIPLIER_TABLE[100] // SCALE
    assert payout_for(STAKE, 0, 100) == 100_003_000

def test_payout_rounds_down():
    """Test payouts use floor division."""
    # 3 * 3.490497 = 10.471491
    assert payout_for(3, 49, 50) == 10
    # 1 * 0.100003 rounds down to nothing
    assert payout_for(1, 0, 100) == 0

def test_payout_monotonic_for_fixed_stake():
    """Test payout never increases as the guess moves away from the outcome."""
    payouts = [payout_for(STAKE, 100 - d, 100) for d in range(101)]
    assert payouts == sorted(payouts, reverse=True)

def test_invalid_difference_rejected():
    """Test out-of-table differences raise a validation error."""
    with pytest.raises(ValidationError) as exc:
        scaled_multiplier(101)
    assert exc.value.code == ErrorCode.INVALID_PAYOUT_INDEX
    with pytest.raises(ValidationError):
        scaled_multiplier(-1)

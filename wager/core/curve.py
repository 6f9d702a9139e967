"""Fixed-point payout curve.

The multiplier for a winning guess depends only on how far below the outcome
it landed:

    M(d) = 3.9 * exp(-0.14 * d) + 0.1,    d = outcome - guess

Values are stored pre-computed as ``round(M(d) * SCALE)`` so payouts are
exact integer arithmetic.
"""
import math
from typing import List, Tuple

from .errors import ArithmeticFault, ErrorCode, ValidationError

SCALE = 1_000_000
MAX_VALUE = 100
U64_MAX = 2**64 - 1

CURVE_AMPLITUDE = 3.9
CURVE_DECAY = 0.14
CURVE_FLOOR = 0.1

MULTIPLIER_TABLE: Tuple[int, ...] = (
    4_000_000, 3_490_497, 3_047_557, 2_662_483, 2_327_715, 2_036_683, 1_783_671, 1_563_713,
    1_372_491, 1_206_251, 1_061_728, 936_086, 826_859, 731_900, 649_348, 577_580, 515_188, 460_947,
    413_792, 372_798, 337_159, 306_176, 279_241, 255_825, 235_468, 217_770, 202_384, 189_008,
    177_380, 167_271, 158_483, 150_842, 144_200, 138_426, 133_406, 129_042, 125_248, 121_949,
    119_082, 116_589, 114_422, 112_538, 110_900, 109_476, 108_238, 107_162, 106_226, 105_413,
    104_705, 104_091, 103_556, 103_092, 102_688, 102_337, 102_031, 101_766, 101_535, 101_335,
    101_160, 101_009, 100_877, 100_762, 100_663, 100_576, 100_501, 100_435, 100_379, 100_329,
    100_286, 100_249, 100_216, 100_188, 100_163, 100_142, 100_124, 100_107, 100_093, 100_081,
    100_071, 100_061, 100_053, 100_046, 100_040, 100_035, 100_030, 100_026, 100_023, 100_020,
    100_017, 100_015, 100_013, 100_011, 100_010, 100_009, 100_008, 100_007, 100_006, 100_005,
    100_004, 100_004, 100_003,
)


def curve_value(difference: float) -> float:
    """Continuous multiplier the table was generated from."""
    return CURVE_AMPLITUDE * math.exp(-CURVE_DECAY * difference) + CURVE_FLOOR


def build_table(size: int = MAX_VALUE + 1) -> List[int]:
    """Regenerate the scaled table from the continuous curve."""
    return [round(curve_value(d) * SCALE) for d in range(size)]


def is_win(guess: int, outcome: int) -> bool:
    """A guess at or below the outcome wins; anything above loses outright."""
    return guess <= outcome


def scaled_multiplier(difference: int) -> int:
    """Get the scaled multiplier for ``outcome - guess``."""
    if not 0 <= difference < len(MULTIPLIER_TABLE):
        raise ValidationError(ErrorCode.INVALID_PAYOUT_INDEX, f"difference={difference}")
    return MULTIPLIER_TABLE[difference]


def payout_for(amount: int, guess: int, outcome: int) -> int:
    """Compute the payout owed for a revealed guess.

    Args:
        amount: Original stake in base units
        guess: Revealed guess (0..100)
        outcome: Submitted outcome (0..100)

    Returns:
        ``floor(amount * table[outcome - guess] / SCALE)``, or 0 on a loss
    """
    if not is_win(guess, outcome):
        return 0
    payout = amount * scaled_multiplier(outcome - guess) // SCALE
    if payout > U64_MAX:
        raise ArithmeticFault(ErrorCode.OVERFLOW, f"payout={payout}")
    return payout

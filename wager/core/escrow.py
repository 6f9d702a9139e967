"""Escrow accounting.

The escrow holds every outstanding stake plus whatever the operator has
deposited on top. ``pot`` tracks the stakes still owed back to
participants, and the game must keep::

    escrow_balance >= pot

at all times. The surplus, ``escrow_balance - pot``, is the operator
liquidity: the only money a payout above a participant's own stake may
come from.
"""
from enum import Enum
from typing import Dict, List

from loguru import logger

from .curve import U64_MAX
from .errors import ArithmeticFault, ErrorCode, LiquidityError, ValidationError
from .records import Phase, WagerState


def checked_add(a: int, b: int) -> int:
    result = a + b
    if result > U64_MAX:
        raise ArithmeticFault(ErrorCode.OVERFLOW, f"{a} + {b}")
    return result


def checked_sub(a: int, b: int, code: ErrorCode = ErrorCode.OVERFLOW) -> int:
    result = a - b
    if result < 0:
        raise ArithmeticFault(code, f"{a} - {b}")
    return result


def validate_amount(amount: int) -> int:
    if isinstance(amount, bool) or not isinstance(amount, int) or not 0 < amount <= U64_MAX:
        raise ValidationError(ErrorCode.INVALID_AMOUNT, f"got {amount!r}")
    return amount


class Ledger:
    """Balance map standing in for the host's value-transfer primitive.

    Operates on the ``balances`` of a ``WagerState`` so transfers commit or
    roll back together with the game records.
    """

    def __init__(self, balances: Dict[str, int]):
        self.balances = balances

    def balance_of(self, account: str) -> int:
        return self.balances.get(account, 0)

    def credit(self, account: str, amount: int) -> None:
        """Mint ``amount`` into ``account`` (faucets and test fixtures)."""
        validate_amount(amount)
        self.balances[account] = checked_add(self.balance_of(account), amount)

    def transfer(self, source: str, destination: str, amount: int) -> None:
        """Move ``amount`` between accounts or fail without side effects."""
        validate_amount(amount)
        available = self.balance_of(source)
        if available < amount:
            raise LiquidityError(
                ErrorCode.INSUFFICIENT_FUNDS,
                f"{source} holds {available}, needs {amount}"
            )
        credited = checked_add(self.balance_of(destination), amount)
        self.balances[source] = available - amount
        self.balances[destination] = credited
        logger.debug(f"Transferred {amount} from {source} to {destination}")


class PayoutDecision(str, Enum):
    PAY = "pay"
    DEFER = "defer"


def escrow_balance(state: WagerState) -> int:
    return Ledger(state.balances).balance_of(state.game.escrow_account)


def operator_liquidity(state: WagerState) -> int:
    """Escrow balance not owed back to participants as stakes.

    Raises:
        ArithmeticFault: If the pot exceeds the escrow balance
    """
    balance = escrow_balance(state)
    if balance < state.game.pot:
        logger.error(
            f"Escrow {state.game.escrow_account} holds {balance} but pot is {state.game.pot}"
        )
    return checked_sub(balance, state.game.pot, ErrorCode.POT_DESYNCED)


def decide_payout(state: WagerState, payout: int) -> PayoutDecision:
    """Pay now only if operator liquidity covers the whole payout."""
    liquidity = operator_liquidity(state)
    if payout > liquidity:
        logger.warning(f"Operator liquidity {liquidity} cannot cover payout {payout}")
        return PayoutDecision.DEFER
    return PayoutDecision.PAY


def require_refundable(state: WagerState, amount: int) -> None:
    """A stake refund needs the escrow to physically hold ``amount``."""
    balance = escrow_balance(state)
    if balance < amount:
        logger.warning(
            f"Escrow {state.game.escrow_account} holds {balance}, cannot refund {amount}"
        )
        raise LiquidityError(
            ErrorCode.INSUFFICIENT_TREASURY_FOR_RECLAIM,
            f"escrow holds {balance}, refund needs {amount}"
        )


def release_stake(state: WagerState, amount: int) -> None:
    """Extinguish a stake obligation: ``pot -= amount``, ``bet_count -= 1``."""
    game = state.game
    game.pot = checked_sub(game.pot, amount, ErrorCode.POT_DESYNCED)
    game.bet_count = checked_sub(game.bet_count, 1, ErrorCode.POT_DESYNCED)


def invariant_violations(state: WagerState) -> List[str]:
    """List every broken accounting invariant (empty when consistent)."""
    game = state.game
    if game is None:
        return []
    problems = []
    balance = escrow_balance(state)
    outstanding = state.outstanding_total()
    if balance < game.pot and game.phase != Phase.CLOSED:
        problems.append(f"escrow balance {balance} < pot {game.pot}")
    if game.pot != outstanding:
        problems.append(f"pot {game.pot} != outstanding stakes {outstanding}")
    if game.bet_count != len(state.bets):
        problems.append(f"bet_count {game.bet_count} != outstanding bets {len(state.bets)}")
    return problems

"""Error taxonomy for wager operations.

Every rejection raised by an operation is a ``WagerError`` carrying a stable
``ErrorCode``. Callers branch on the exception class (the category) or on
``code``; ``retry_later`` tells them whether waiting for a deadline could
make the same call succeed.
"""
from enum import Enum
from typing import Optional


class ErrorCode(str, Enum):
    """Stable error codes surfaced to callers."""
    BETTING_CLOSED = "BETTING_CLOSED"
    RESULT_ALREADY_SUBMITTED = "RESULT_ALREADY_SUBMITTED"
    RESULT_NOT_SUBMITTED = "RESULT_NOT_SUBMITTED"
    INVALID_AUTHORITY = "INVALID_AUTHORITY"
    INVALID_GUESS = "INVALID_GUESS"
    INVALID_OUTCOME = "INVALID_OUTCOME"
    INVALID_BET_AMOUNT = "INVALID_BET_AMOUNT"
    INVALID_AMOUNT = "INVALID_AMOUNT"
    INVALID_SALT = "INVALID_SALT"
    INVALID_COMMITMENT = "INVALID_COMMITMENT"
    INVALID_IDENTITY = "INVALID_IDENTITY"
    COMMITMENT_MISMATCH = "COMMITMENT_MISMATCH"
    PLAYER_ALREADY_COMMITTED = "PLAYER_ALREADY_COMMITTED"
    BET_NOT_FOUND = "BET_NOT_FOUND"
    GAME_NOT_INITIALIZED = "GAME_NOT_INITIALIZED"
    GAME_ALREADY_INITIALIZED = "GAME_ALREADY_INITIALIZED"
    GAME_CLOSED = "GAME_CLOSED"
    SUBMISSION_PERIOD_EXPIRED = "SUBMISSION_PERIOD_EXPIRED"
    SUBMISSION_DEADLINE_NOT_REACHED = "SUBMISSION_DEADLINE_NOT_REACHED"
    REVEAL_PERIOD_CLOSED = "REVEAL_PERIOD_CLOSED"
    WITHDRAW_PERIOD_NOT_REACHED = "WITHDRAW_PERIOD_NOT_REACHED"
    WITHDRAW_PERIOD_EXPIRED = "WITHDRAW_PERIOD_EXPIRED"
    BET_ALREADY_SETTLED = "BET_ALREADY_SETTLED"
    BET_NOT_DEFERRED = "BET_NOT_DEFERRED"
    TREASURY_CLAIM_PERIOD_NOT_REACHED = "TREASURY_CLAIM_PERIOD_NOT_REACHED"
    INSUFFICIENT_PLAYER_POT = "INSUFFICIENT_PLAYER_POT"
    INSUFFICIENT_TREASURY_FOR_RECLAIM = "INSUFFICIENT_TREASURY_FOR_RECLAIM"
    INSUFFICIENT_FUNDS = "INSUFFICIENT_FUNDS"
    OVERFLOW = "OVERFLOW"
    POT_DESYNCED = "POT_DESYNCED"
    INVALID_PAYOUT_INDEX = "INVALID_PAYOUT_INDEX"


MESSAGES = {
    ErrorCode.BETTING_CLOSED: "Betting is currently closed for this game.",
    ErrorCode.RESULT_ALREADY_SUBMITTED: "The result has already been submitted.",
    ErrorCode.RESULT_NOT_SUBMITTED: "The result has not been submitted yet.",
    ErrorCode.INVALID_AUTHORITY: "Invalid authority for this action.",
    ErrorCode.INVALID_GUESS: "Guess must be between 0 and 100.",
    ErrorCode.INVALID_OUTCOME: "Outcome must be between 0 and 100.",
    ErrorCode.INVALID_BET_AMOUNT: "Bet amount is outside the allowed range.",
    ErrorCode.INVALID_AMOUNT: "Amount must be a positive 64-bit integer.",
    ErrorCode.INVALID_SALT: "Salt must be an unsigned 64-bit integer.",
    ErrorCode.INVALID_COMMITMENT: "Commitment must be exactly 32 bytes.",
    ErrorCode.INVALID_IDENTITY: "Identity must be a non-empty string.",
    ErrorCode.COMMITMENT_MISMATCH: "The revealed guess and salt do not match the commitment.",
    ErrorCode.PLAYER_ALREADY_COMMITTED: "Player has already committed to this game.",
    ErrorCode.BET_NOT_FOUND: "No outstanding bet for this player.",
    ErrorCode.GAME_NOT_INITIALIZED: "The game has not been initialized.",
    ErrorCode.GAME_ALREADY_INITIALIZED: "The game has already been initialized.",
    ErrorCode.GAME_CLOSED: "The game is closed; the escrow has been swept.",
    ErrorCode.SUBMISSION_PERIOD_EXPIRED: "Betting/submission period has expired.",
    ErrorCode.SUBMISSION_DEADLINE_NOT_REACHED: "Submission deadline has not been reached yet.",
    ErrorCode.REVEAL_PERIOD_CLOSED: "Reveal period is closed.",
    ErrorCode.WITHDRAW_PERIOD_NOT_REACHED: "Withdrawal period (after reveal deadline) not reached.",
    ErrorCode.WITHDRAW_PERIOD_EXPIRED: "Withdrawal period (final claim deadline) has passed.",
    ErrorCode.BET_ALREADY_SETTLED: "Bet has already been settled.",
    ErrorCode.BET_NOT_DEFERRED: "Bet has no deferred payout to withdraw.",
    ErrorCode.TREASURY_CLAIM_PERIOD_NOT_REACHED: "Treasury claim period not reached.",
    ErrorCode.INSUFFICIENT_PLAYER_POT: "Player pot is insufficient to cover bet amount.",
    ErrorCode.INSUFFICIENT_TREASURY_FOR_RECLAIM: "Insufficient funds in escrow to refund the bet.",
    ErrorCode.INSUFFICIENT_FUNDS: "Insufficient balance for transfer.",
    ErrorCode.OVERFLOW: "Calculation overflow.",
    ErrorCode.POT_DESYNCED: "Player pot is out of sync with the escrow balance.",
    ErrorCode.INVALID_PAYOUT_INDEX: "Payout curve index out of range.",
}

# Codes that may succeed later without any change in input.
RETRY_LATER = frozenset({
    ErrorCode.SUBMISSION_DEADLINE_NOT_REACHED,
    ErrorCode.WITHDRAW_PERIOD_NOT_REACHED,
    ErrorCode.TREASURY_CLAIM_PERIOD_NOT_REACHED,
    ErrorCode.RESULT_NOT_SUBMITTED,
})


class WagerError(Exception):
    """Base class for every rejected operation."""
    category = "wager"
    fatal = False

    def __init__(self, code: ErrorCode, detail: Optional[str] = None):
        self.code = code
        self.detail = detail
        message = MESSAGES[code]
        if detail:
            message = f"{message} ({detail})"
        self.message = message
        super().__init__(message)

    @property
    def retry_later(self) -> bool:
        return self.code in RETRY_LATER

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.code.value!r}, {self.message!r})"


class ValidationError(WagerError):
    """Out-of-range guess, outcome, amount or malformed input."""
    category = "validation"


class AuthorizationError(WagerError):
    """Caller is not allowed to perform a gated operation."""
    category = "authorization"


class PhaseError(WagerError):
    """Operation invoked outside its legal phase or deadline window."""
    category = "phase"


class IntegrityError(WagerError):
    """Revealed guess and salt do not hash to the stored commitment."""
    category = "integrity"


class ArithmeticFault(WagerError):
    """Checked arithmetic left the u64 range; the accounting invariant is broken."""
    category = "arithmetic"
    fatal = True


class LiquidityError(WagerError):
    """Escrow (or a payer) cannot cover a transfer."""
    category = "liquidity"


class NotFoundError(WagerError):
    """A game or bet record does not exist."""
    category = "not_found"


class StateError(WagerError):
    """A record that must be unique already exists."""
    category = "state"

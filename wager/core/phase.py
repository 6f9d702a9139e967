"""Phase and deadline state machine.

The stored ``Phase`` only changes on explicit transitions (SubmitResult,
ClaimRemainingTreasury). Everything time-driven is derived here from the
deadlines and a trusted clock evaluated once at operation entry.
"""
import time
from enum import Enum

from loguru import logger

from .errors import AuthorizationError, ErrorCode, PhaseError
from .records import GameRecord, Phase


class Stage(str, Enum):
    """Time-aware view of a game's lifecycle."""
    OPEN = "open"
    ABANDONED = "abandoned"      # submission deadline passed with no outcome
    REVEAL_OPEN = "reveal_open"
    SETTLING = "settling"        # reveal deadline passed, sweep not done
    CLOSED = "closed"


class SystemClock:
    """Wall clock in whole unix seconds."""

    def now(self) -> int:
        return int(time.time())


class FixedClock:
    """Manually driven clock for tests and offline replays."""

    def __init__(self, now: int = 0):
        self._now = int(now)

    def now(self) -> int:
        return self._now

    def set(self, now: int) -> None:
        self._now = int(now)

    def advance(self, seconds: int) -> int:
        self._now += int(seconds)
        return self._now


def stage_at(game: GameRecord, now: int) -> Stage:
    """Get the lifecycle stage of ``game`` at time ``now``."""
    if game.phase == Phase.CLOSED:
        return Stage.CLOSED
    if game.phase == Phase.OPEN:
        if game.submission_deadline is not None and now >= game.submission_deadline:
            return Stage.ABANDONED
        return Stage.OPEN
    if game.reveal_deadline is not None and now >= game.reveal_deadline:
        return Stage.SETTLING
    return Stage.REVEAL_OPEN


def reveal_deadline_for(game: GameRecord) -> int:
    return game.submission_deadline + game.reveal_period


def final_claim_deadline_for(game: GameRecord) -> int:
    return game.reveal_deadline + game.final_claim_period


def _require_not_closed(game: GameRecord) -> None:
    if game.phase == Phase.CLOSED:
        raise PhaseError(ErrorCode.GAME_CLOSED)


def require_authority(game: GameRecord, caller: str) -> None:
    if caller != game.authority:
        logger.warning(f"Rejected {caller}: not the authority of game {game.game_id}")
        raise AuthorizationError(ErrorCode.INVALID_AUTHORITY, f"caller={caller}")


def require_accepting_bets(game: GameRecord, now: int) -> None:
    """CommitBet: Open, no outcome, before the submission deadline."""
    _require_not_closed(game)
    if game.outcome is not None:
        raise PhaseError(ErrorCode.RESULT_ALREADY_SUBMITTED)
    if game.phase != Phase.OPEN:
        raise PhaseError(ErrorCode.BETTING_CLOSED)
    if now >= game.submission_deadline:
        raise PhaseError(ErrorCode.SUBMISSION_PERIOD_EXPIRED)


def require_can_submit(game: GameRecord, caller: str, now: int) -> None:
    """SubmitResult: authority only, no outcome yet, before the submission deadline."""
    require_authority(game, caller)
    require_accepting_bets(game, now)


def require_reveal_window(game: GameRecord, now: int) -> None:
    """RevealAndClaim: outcome set and before the reveal deadline."""
    _require_not_closed(game)
    if game.phase != Phase.REVEAL_OPEN or game.outcome is None:
        raise PhaseError(ErrorCode.RESULT_NOT_SUBMITTED)
    if now >= game.reveal_deadline:
        raise PhaseError(ErrorCode.REVEAL_PERIOD_CLOSED)


def require_withdraw_window(game: GameRecord, now: int) -> None:
    """WithdrawUnpaidBet: strictly between the reveal and final claim deadlines."""
    _require_not_closed(game)
    if game.phase != Phase.REVEAL_OPEN or game.outcome is None:
        raise PhaseError(ErrorCode.RESULT_NOT_SUBMITTED)
    if game.final_claim_deadline is None:
        raise PhaseError(ErrorCode.BET_NOT_DEFERRED)
    if now <= game.reveal_deadline:
        raise PhaseError(ErrorCode.WITHDRAW_PERIOD_NOT_REACHED)
    if now >= game.final_claim_deadline:
        raise PhaseError(ErrorCode.WITHDRAW_PERIOD_EXPIRED)


def require_abandoned(game: GameRecord, now: int) -> None:
    """ReclaimBetOnTimeout: no outcome and the submission deadline has passed."""
    _require_not_closed(game)
    if game.outcome is not None:
        raise PhaseError(ErrorCode.RESULT_ALREADY_SUBMITTED)
    if now < game.submission_deadline:
        raise PhaseError(ErrorCode.SUBMISSION_DEADLINE_NOT_REACHED)


def require_treasury_claimable(game: GameRecord, caller: str, now: int) -> None:
    """ClaimRemainingTreasury: every participant's window has elapsed.

    Allowed once the reveal deadline has passed and, if any payout was
    deferred, once the final claim deadline has passed too.
    """
    require_authority(game, caller)
    _require_not_closed(game)
    if game.outcome is None:
        raise PhaseError(ErrorCode.RESULT_NOT_SUBMITTED)
    if now < game.reveal_deadline:
        raise PhaseError(ErrorCode.TREASURY_CLAIM_PERIOD_NOT_REACHED, "reveal deadline")
    if game.final_claim_deadline is not None and now < game.final_claim_deadline:
        raise PhaseError(ErrorCode.TREASURY_CLAIM_PERIOD_NOT_REACHED, "final claim deadline")

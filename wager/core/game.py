"""Operation handlers for a single-round commit-reveal wager.

Each public method of ``WagerGame`` is one externally invoked operation.
It runs inside a store transaction: every check happens against a working
copy of the state and nothing is committed unless the whole operation
succeeds. Caller identities are assumed to be authenticated by the host.
"""
from enum import Enum
from typing import List, Optional, Union

from loguru import logger
from pydantic import BaseModel

from .commitment import parse_commitment, validate_guess, validate_salt, verify_commitment
from .curve import payout_for
from .errors import (
    ArithmeticFault,
    ErrorCode,
    IntegrityError,
    NotFoundError,
    PhaseError,
    StateError,
    ValidationError,
)
from .escrow import (
    Ledger,
    PayoutDecision,
    checked_add,
    decide_payout,
    escrow_balance,
    invariant_violations,
    operator_liquidity,
    release_stake,
    require_refundable,
    validate_amount,
)
from .phase import (
    Stage,
    SystemClock,
    final_claim_deadline_for,
    require_abandoned,
    require_accepting_bets,
    require_can_submit,
    require_reveal_window,
    require_treasury_claimable,
    require_withdraw_window,
    reveal_deadline_for,
    stage_at,
)
from .records import BetRecord, GameRecord, Phase, WagerState, bet_key, escrow_account_for
from .settings import GameSettings
from .store import MemoryStore, StateStore


class Settlement(str, Enum):
    WON = "won"
    LOST = "lost"
    DEFERRED = "deferred"
    REFUNDED = "refunded"


class BetReceipt(BaseModel):
    """Result of an operation that settles (or defers) a participant's bet."""
    participant: str
    settlement: Settlement
    stake: int
    transferred: int = 0
    owed: int = 0
    pot_after: int
    bet: BetRecord


class SweepReceipt(BaseModel):
    """Result of sweeping the escrow to the authority."""
    authority: str
    amount: int
    residual_pot: int


class GameStatus(BaseModel):
    """Snapshot of a game for display."""
    game: GameRecord
    stage: Stage
    now: int
    escrow_balance: int
    operator_liquidity: Optional[int]
    outstanding_bets: int


def _require_identity(identity: str) -> str:
    if not isinstance(identity, str) or not identity.strip():
        raise ValidationError(ErrorCode.INVALID_IDENTITY, f"got {identity!r}")
    return identity


class WagerGame:
    """Runs wager operations against a store, using a trusted clock."""

    def __init__(self, store: Optional[StateStore] = None, clock=None):
        """Initialize the operation handlers.

        Args:
            store: State storage; defaults to an in-memory store
            clock: Object with a ``now()`` method returning unix seconds
        """
        self.store = store if store is not None else MemoryStore()
        self.clock = clock if clock is not None else SystemClock()

    # --- helpers ---

    def _game(self, state: WagerState) -> GameRecord:
        if state.game is None:
            raise NotFoundError(ErrorCode.GAME_NOT_INITIALIZED)
        return state.game

    def _bet(self, state: WagerState, participant: str) -> BetRecord:
        bet = state.get_bet(participant)
        if bet is None:
            raise NotFoundError(ErrorCode.BET_NOT_FOUND, f"participant={participant}")
        return bet

    def _settle(self, state: WagerState, bet: BetRecord) -> None:
        """Drop a bet whose settlement is final and release its stake."""
        release_stake(state, bet.amount)
        del state.bets[bet_key(bet.game_id, bet.participant)]

    def _refund(self, state: WagerState, participant: str) -> BetReceipt:
        bet = self._bet(state, participant)
        require_refundable(state, bet.amount)
        self._settle(state, bet)
        Ledger(state.balances).transfer(state.game.escrow_account, participant, bet.amount)
        return BetReceipt(
            participant=participant,
            settlement=Settlement.REFUNDED,
            stake=bet.amount,
            transferred=bet.amount,
            pot_after=state.game.pot,
            bet=bet,
        )

    # --- operations ---

    def initialize_game(self, payer: str, settings: GameSettings) -> GameRecord:
        """Create the game record in the Open phase with an empty pot."""
        _require_identity(payer)
        now = self.clock.now()
        with self.store.transaction() as state:
            if state.game is not None:
                raise StateError(ErrorCode.GAME_ALREADY_INITIALIZED, f"game_id={state.game.game_id}")
            state.game = GameRecord(
                game_id=settings.game_id,
                authority=settings.authority,
                escrow_account=escrow_account_for(settings.game_id),
                submission_deadline=settings.submission_deadline,
                reveal_period=settings.reveal_period,
                final_claim_period=settings.final_claim_period,
                min_bet=settings.min_bet,
                max_bet=settings.max_bet,
            )
            state.bets = {}
            if settings.submission_deadline <= now:
                logger.warning(
                    f"Game {settings.game_id} created with submission deadline "
                    f"{settings.submission_deadline} already passed"
                )
            logger.info(
                f"Game {settings.game_id} initialized by {payer} with authority "
                f"{settings.authority}. Submission deadline: {settings.submission_deadline}"
            )
            return state.game.model_copy(deep=True)

    def fund_escrow(self, funder: str, amount: int) -> int:
        """Deposit operator liquidity into escrow.

        Returns:
            Escrow balance after the deposit
        """
        _require_identity(funder)
        validate_amount(amount)
        with self.store.transaction() as state:
            game = self._game(state)
            if game.phase == Phase.CLOSED:
                raise PhaseError(ErrorCode.GAME_CLOSED)
            Ledger(state.balances).transfer(funder, game.escrow_account, amount)
            balance = escrow_balance(state)
            logger.info(f"{funder} funded escrow of {game.game_id} with {amount}; balance {balance}")
            return balance

    def commit_bet(self, participant: str, commitment: Union[bytes, str], amount: int) -> BetRecord:
        """Stake ``amount`` against a hidden guess."""
        _require_identity(participant)
        commitment = parse_commitment(commitment)
        now = self.clock.now()
        with self.store.transaction() as state:
            game = self._game(state)
            if isinstance(amount, bool) or not isinstance(amount, int) \
                    or not game.min_bet <= amount <= game.max_bet:
                raise ValidationError(
                    ErrorCode.INVALID_BET_AMOUNT,
                    f"{amount!r} not in [{game.min_bet}, {game.max_bet}]"
                )
            require_accepting_bets(game, now)
            key = bet_key(game.game_id, participant)
            if key in state.bets:
                raise StateError(ErrorCode.PLAYER_ALREADY_COMMITTED, f"participant={participant}")

            Ledger(state.balances).transfer(participant, game.escrow_account, amount)
            bet = BetRecord(
                participant=participant,
                game_id=game.game_id,
                commitment=commitment,
                amount=amount,
            )
            state.bets[key] = bet
            game.pot = checked_add(game.pot, amount)
            game.bet_count = checked_add(game.bet_count, 1)
            game.total_bets = checked_add(game.total_bets, 1)
            logger.info(f"Bet committed by player: {participant} for amount: {amount}")
            return bet.model_copy(deep=True)

    def submit_result(self, caller: str, outcome: int) -> GameRecord:
        """Authority discloses the outcome and opens reveals."""
        validate_guess(outcome, ErrorCode.INVALID_OUTCOME)
        now = self.clock.now()
        with self.store.transaction() as state:
            game = self._game(state)
            require_can_submit(game, caller, now)
            game.outcome = outcome
            game.phase = Phase.REVEAL_OPEN
            game.reveal_deadline = reveal_deadline_for(game)
            logger.info(
                f"Result {outcome} submitted by authority: {caller}. "
                f"Reveal deadline: {game.reveal_deadline}"
            )
            return game.model_copy(deep=True)

    def reveal_and_claim(self, participant: str, guess: int, salt: int) -> BetReceipt:
        """Reveal a committed guess and settle it as a win, loss or deferral.

        A win is paid at once when operator liquidity covers it. Otherwise the
        bet is kept, flagged ``attempted_reveal`` and the final claim deadline
        is opened so the participant can later withdraw their stake.
        """
        validate_guess(guess)
        validate_salt(salt)
        now = self.clock.now()
        with self.store.transaction() as state:
            game = self._game(state)
            require_reveal_window(game, now)
            bet = self._bet(state, participant)
            if game.pot < bet.amount:
                raise ArithmeticFault(ErrorCode.INSUFFICIENT_PLAYER_POT, f"pot={game.pot}")
            if not verify_commitment(bet.commitment, guess, salt):
                logger.warning(f"Commitment mismatch for player {participant}")
                raise IntegrityError(ErrorCode.COMMITMENT_MISMATCH)
            logger.info(f"Bet reveal verified for player: {participant} (Bet: {guess}, Amount: {bet.amount})")

            payout = payout_for(bet.amount, guess, game.outcome)
            if payout == 0:
                self._settle(state, bet)
                logger.info(f"Player {participant} lost, no payout. Bet settled.")
                return BetReceipt(
                    participant=participant,
                    settlement=Settlement.LOST,
                    stake=bet.amount,
                    pot_after=game.pot,
                    bet=bet,
                )

            logger.debug(
                f"Player {participant} qualifies for payout {payout} "
                f"(difference {game.outcome - guess})"
            )
            if decide_payout(state, payout) == PayoutDecision.DEFER:
                bet.attempted_reveal = True
                bet.is_claimed = False
                if game.final_claim_deadline is None:
                    game.final_claim_deadline = final_claim_deadline_for(game)
                logger.warning(
                    f"Payout {payout} to {participant} deferred; stake withdrawable until "
                    f"{game.final_claim_deadline}"
                )
                return BetReceipt(
                    participant=participant,
                    settlement=Settlement.DEFERRED,
                    stake=bet.amount,
                    owed=payout,
                    pot_after=game.pot,
                    bet=bet.model_copy(deep=True),
                )

            self._settle(state, bet)
            bet.is_claimed = True
            Ledger(state.balances).transfer(game.escrow_account, participant, payout)
            logger.info(f"Transferred payout {payout} to player {participant}. Bet settled.")
            return BetReceipt(
                participant=participant,
                settlement=Settlement.WON,
                stake=bet.amount,
                transferred=payout,
                pot_after=game.pot,
                bet=bet,
            )

    def withdraw_unpaid_bet(self, participant: str) -> BetReceipt:
        """Refund the stake of a deferred win inside the final claim window."""
        now = self.clock.now()
        with self.store.transaction() as state:
            game = self._game(state)
            bet = self._bet(state, participant)
            if bet.is_claimed:
                raise StateError(ErrorCode.BET_ALREADY_SETTLED)
            if not bet.attempted_reveal:
                raise StateError(ErrorCode.BET_NOT_DEFERRED)
            require_withdraw_window(game, now)
            receipt = self._refund(state, participant)
            logger.info(f"Withdrew unpaid bet {receipt.stake} for player {participant}")
            return receipt

    def reclaim_bet_on_timeout(self, participant: str) -> BetReceipt:
        """Refund a stake after the authority missed the submission deadline."""
        now = self.clock.now()
        with self.store.transaction() as state:
            game = self._game(state)
            require_abandoned(game, now)
            receipt = self._refund(state, participant)
            logger.info(
                f"Authority missed deadline. Reclaimed {receipt.stake} for player {participant}"
            )
            return receipt

    def claim_remaining_treasury(self, caller: str) -> SweepReceipt:
        """Sweep the whole escrow to the authority and close the game.

        An empty escrow still closes the game, with nothing transferred.
        """
        now = self.clock.now()
        with self.store.transaction() as state:
            game = self._game(state)
            require_treasury_claimable(game, caller, now)
            balance = escrow_balance(state)
            if balance == 0:
                logger.info(f"Escrow of {game.game_id} is empty, nothing to claim")
            else:
                Ledger(state.balances).transfer(game.escrow_account, game.authority, balance)
            game.phase = Phase.CLOSED
            if game.pot:
                logger.warning(
                    f"Game {game.game_id} closed with residual pot {game.pot} "
                    f"across {game.bet_count} unwithdrawn bets"
                )
            logger.info(f"Claimed {balance} from escrow for authority {game.authority}")
            return SweepReceipt(authority=game.authority, amount=balance, residual_pot=game.pot)

    # --- views ---

    def status(self) -> GameStatus:
        state = self.store.snapshot()
        game = self._game(state)
        liquidity = None
        # a swept game may keep a residual pot with an empty escrow
        if game.phase != Phase.CLOSED:
            try:
                liquidity = operator_liquidity(state)
            except ArithmeticFault:
                pass
        now = self.clock.now()
        return GameStatus(
            game=game,
            stage=stage_at(game, now),
            now=now,
            escrow_balance=escrow_balance(state),
            operator_liquidity=liquidity,
            outstanding_bets=len(state.bets),
        )

    def get_bet(self, participant: str) -> Optional[BetRecord]:
        return self.store.snapshot().get_bet(participant)

    def operator_liquidity(self) -> int:
        state = self.store.snapshot()
        self._game(state)
        return operator_liquidity(state)

    def balance_of(self, account: str) -> int:
        return Ledger(self.store.snapshot().balances).balance_of(account)

    def airdrop(self, account: str, amount: int) -> int:
        """Credit an account from outside the game (faucet)."""
        _require_identity(account)
        with self.store.transaction() as state:
            ledger = Ledger(state.balances)
            ledger.credit(account, amount)
            logger.info(f"Airdropped {amount} to {account}")
            return ledger.balance_of(account)

    def check_invariants(self) -> List[str]:
        return invariant_violations(self.store.snapshot())

"""Persisted records for a wager game."""
from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, Field, field_serializer, field_validator

from .commitment import parse_commitment


class Phase(str, Enum):
    """Stored lifecycle state of a game."""
    OPEN = "open"                  # accepting bets, no outcome
    REVEAL_OPEN = "reveal_open"    # outcome set, accepting reveals
    CLOSED = "closed"              # escrow swept


def bet_key(game_id: str, participant: str) -> str:
    """Storage key of a participant's bet in a game."""
    return f"{game_id}:{participant}"


def escrow_account_for(game_id: str) -> str:
    """Ledger key of a game's escrow."""
    return f"treasury:{game_id}"


class GameRecord(BaseModel):
    """Singleton state of one game instance."""
    game_id: str
    authority: str
    escrow_account: str
    outcome: Optional[int] = None
    phase: Phase = Phase.OPEN
    bet_count: int = 0
    total_bets: int = 0
    pot: int = 0
    submission_deadline: Optional[int] = None
    reveal_deadline: Optional[int] = None
    final_claim_deadline: Optional[int] = None
    reveal_period: int
    final_claim_period: int
    min_bet: int = 1
    max_bet: int = 1_000_000_000

    @property
    def accepting_bets(self) -> bool:
        return self.phase == Phase.OPEN

    @property
    def accepting_reveals(self) -> bool:
        return self.phase == Phase.REVEAL_OPEN


class BetRecord(BaseModel):
    """A participant's stake and hidden guess."""
    participant: str
    game_id: str
    commitment: bytes
    amount: int
    attempted_reveal: bool = False
    is_claimed: bool = False

    @field_validator("commitment", mode="before")
    @classmethod
    def _parse_commitment(cls, value):
        return parse_commitment(value)

    @field_serializer("commitment")
    def _serialize_commitment(self, value: bytes) -> str:
        return value.hex()

    @property
    def is_deferred(self) -> bool:
        """Won, but escrow could not cover the payout when revealed."""
        return self.attempted_reveal and not self.is_claimed


class WagerState(BaseModel):
    """Everything the store persists: the game, outstanding bets and ledger balances."""
    game: Optional[GameRecord] = None
    bets: Dict[str, BetRecord] = Field(default_factory=dict)
    balances: Dict[str, int] = Field(default_factory=dict)

    def get_bet(self, participant: str) -> Optional[BetRecord]:
        if self.game is None:
            return None
        return self.bets.get(bet_key(self.game.game_id, participant))

    def outstanding_total(self) -> int:
        return sum(bet.amount for bet in self.bets.values())

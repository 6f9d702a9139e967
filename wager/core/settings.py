"""Game configuration."""
import os
from pathlib import Path
from typing import Optional, Union

import yaml
from loguru import logger
from pydantic import BaseModel, field_validator, model_validator

DAY = 24 * 60 * 60
MAX_BET = 1_000_000_000


def get_data_dir() -> Path:
    """Get the directory holding persisted game state."""
    return Path(os.getenv(
        "WAGER_HOME",
        os.path.join(os.path.expanduser("~"), ".commit-wager")
    ))


class GameSettings(BaseModel):
    """Parameters fixed into a game when it is initialized."""
    game_id: str = "global-game"
    authority: str
    submission_deadline: int
    reveal_period: int = 7 * DAY
    final_claim_period: int = 7 * DAY
    min_bet: int = 1
    max_bet: int = MAX_BET

    @field_validator("authority", "game_id")
    @classmethod
    def _non_empty(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("must be a non-empty string")
        return value

    @field_validator("reveal_period", "final_claim_period", "min_bet", "max_bet")
    @classmethod
    def _positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be positive")
        return value

    @field_validator("max_bet")
    @classmethod
    def _bet_cap(cls, value: int) -> int:
        if value > MAX_BET:
            raise ValueError(f"must not exceed {MAX_BET}")
        return value

    @model_validator(mode="after")
    def _bet_range(self) -> "GameSettings":
        if self.min_bet > self.max_bet:
            raise ValueError(f"min_bet {self.min_bet} exceeds max_bet {self.max_bet}")
        return self


def load_settings(path: Optional[Union[str, Path]] = None, **overrides) -> GameSettings:
    """Build settings from a YAML file, the environment and explicit overrides.

    Later sources win: file, then ``WAGER_AUTHORITY`` /
    ``WAGER_SUBMISSION_DEADLINE``, then keyword overrides.
    """
    data = {}
    if path is not None:
        with open(path) as f:
            try:
                data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                logger.error(f"Failed to parse settings file {path}: {e}")
                raise
        logger.debug(f"Loaded settings from {path}")

    if os.getenv("WAGER_AUTHORITY"):
        data["authority"] = os.environ["WAGER_AUTHORITY"]
    if os.getenv("WAGER_SUBMISSION_DEADLINE"):
        data["submission_deadline"] = int(os.environ["WAGER_SUBMISSION_DEADLINE"])

    data.update({k: v for k, v in overrides.items() if v is not None})
    return GameSettings(**data)

"""Commit-reveal wager with escrow accounting."""
from .core.game import WagerGame
from .core.settings import GameSettings, load_settings

__version__ = "0.1.0"

"""Core game logic: payout curve, commitments, escrow accounting and phases."""
import os
import sys

from loguru import logger


def configure_logging(level=None) -> None:
    """Install a single stderr sink at ``WAGER_LOG_LEVEL`` (default INFO)."""
    level = level or os.getenv("WAGER_LOG_LEVEL", "INFO")
    logger.remove()
    logger.add(sys.stderr, level=level.upper(), format="<level>{level: <8}</level> | {message}")

"""Test configuration and fixtures for commit-wager."""
import os
import pytest
from wager.core.commitment import make_commitment
from wager.core.game import WagerGame
from wager.core.phase import FixedClock
from wager.core.settings import GameSettings
from wager.core.store import MemoryStore

START = 1_700_000_000
SUBMISSION_DEADLINE = START + 1_000
REVEAL_DEADLINE = SUBMISSION_DEADLINE + 1_000
FINAL_CLAIM_DEADLINE = REVEAL_DEADLINE + 1_000

ONE_UNIT = 1_000_000_000
AUTHORITY = "host"
PLAYERS = ("alice", "bob", "carol")


@pytest.fixture
def clock():
    """Clock pinned to the start of the game."""
    return FixedClock(START)


@pytest.fixture
def settings():
    return GameSettings(
        authority=AUTHORITY,
        submission_deadline=SUBMISSION_DEADLINE,
        reveal_period=REVEAL_DEADLINE - SUBMISSION_DEADLINE,
        final_claim_period=FINAL_CLAIM_DEADLINE - REVEAL_DEADLINE,
    )


@pytest.fixture
def game(clock, settings):
    """An initialized game with funded wallets and an empty escrow."""
    wager = WagerGame(MemoryStore(), clock)
    wager.initialize_game(AUTHORITY, settings)
    wager.airdrop(AUTHORITY, 100 * ONE_UNIT)
    for player in PLAYERS:
        wager.airdrop(player, 10 * ONE_UNIT)
    return wager


@pytest.fixture
def place_bet(game):
    """Commit a bet and return the salt used."""
    def _place(player, guess, amount=ONE_UNIT, salt=None):
        salt = salt if salt is not None else 1000 + guess
        game.commit_bet(player, make_commitment(guess, salt), amount)
        return salt
    return _place


@pytest.fixture
def assert_invariants(game):
    """Assert escrow/pot accounting is consistent."""
    def _check():
        assert game.check_invariants() == []
    return _check


@pytest.fixture
def env_setup():
    """Set up environment variables for testing."""
    os.environ["WAGER_LOG_LEVEL"] = "DEBUG"
    yield
    del os.environ["WAGER_LOG_LEVEL"]

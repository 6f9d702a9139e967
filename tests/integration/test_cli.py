"""Integration tests for the wager command line."""
import pytest
from click.testing import CliRunner
from conftest import ONE_UNIT, REVEAL_DEADLINE, START, SUBMISSION_DEADLINE
from wager.core.commitment import make_commitment
from wager.core.curve import MULTIPLIER_TABLE
from wager.main import cli


@pytest.fixture
def run(tmp_path):
    """Invoke the CLI against a throwaway data directory."""
    runner = CliRunner(env={"WAGER_ACCOUNT": None, "WAGER_AUTHORITY": None})

    def _run(*args, caller=None, now=START):
        base = ["--home", str(tmp_path), "--now", str(now)]
        if caller:
            base += ["--as", caller]
        return runner.invoke(cli, base + [str(a) for a in args])
    return _run


@pytest.fixture
def initialized(run):
    result = run("init", "--authority", "host", "--submission-deadline", SUBMISSION_DEADLINE,
                 "--reveal-period", REVEAL_DEADLINE - SUBMISSION_DEADLINE, caller="host")
    assert result.exit_code == 0, result.output
    run("airdrop", "host", 100 * ONE_UNIT)
    run("airdrop", "alice", 10 * ONE_UNIT)
    return run


def test_full_round(initialized):
    """Test fund, commit, submit and a paid reveal through the CLI."""
    run = initialized
    assert run("fund", 4 * ONE_UNIT, caller="host").exit_code == 0

    result = run("commitment", 50, "--salt", 7)
    assert result.exit_code == 0
    commitment = make_commitment(50, 7).hex()
    assert f"commitment: {commitment}" in result.output
    assert "salt: 7" in result.output

    result = run("commit", commitment, ONE_UNIT, caller="alice")
    assert result.exit_code == 0, result.output
    assert f"Bet committed by alice for {ONE_UNIT}" in result.output

    result = run("submit", 50, caller="host")
    assert result.exit_code == 0, result.output
    assert "Result 50 submitted" in result.output

    result = run("reveal", 50, 7, caller="alice")
    assert result.exit_code == 0, result.output
    assert "Won! Paid 4000000000" in result.output

    result = run("balance", "alice")
    assert f"alice balance: {13 * ONE_UNIT}" in result.output

def test_deferred_reveal_message(initialized):
    run = initialized
    run("commit", make_commitment(50, 7).hex(), ONE_UNIT, caller="alice")
    run("submit", 50, caller="host")
    result = run("reveal", 50, 7, caller="alice")
    assert result.exit_code == 0, result.output
    assert "escrow cannot pay it yet" in result.output

    result = run("bet", "alice")
    assert "Deferred: True" in result.output

def test_state_persists_between_invocations(initialized):
    run = initialized
    run("commit", make_commitment(3, 9).hex(), ONE_UNIT, caller="alice")
    result = run("status")
    assert result.exit_code == 0, result.output
    assert "open" in result.output
    assert f"{'Pot':<24}{ONE_UNIT}" in result.output

def test_wager_error_exit_code(initialized):
    """Test rejected operations print the error code and exit non-zero."""
    result = initialized("submit", 50, caller="alice")
    assert result.exit_code == 1
    assert "error[INVALID_AUTHORITY]" in result.output

def test_retry_hint(initialized):
    result = initialized("reclaim", caller="alice")
    assert result.exit_code == 1
    assert "error[SUBMISSION_DEADLINE_NOT_REACHED]" in result.output
    assert "may succeed after the relevant deadline" in result.output

def test_missing_caller(initialized):
    result = initialized("fund", ONE_UNIT)
    assert result.exit_code == 2
    assert "--as" in result.output

def test_status_before_init(run):
    result = run("status")
    assert result.exit_code == 1
    assert "error[GAME_NOT_INITIALIZED]" in result.output

def test_init_rejects_bad_settings(run):
    result = run("init", "--authority", "host", "--submission-deadline", SUBMISSION_DEADLINE,
                 "--reveal-period", 0, caller="host")
    assert result.exit_code == 1
    assert "error[INVALID_SETTINGS]" in result.output

def test_curve_table(run):
    result = run("curve", "--amount", ONE_UNIT)
    assert result.exit_code == 0
    lines = result.output.strip().splitlines()
    assert len(lines) == len(MULTIPLIER_TABLE) + 1
    assert lines[1].split()[-1] == "4000000000"

def test_sweep_empty_escrow_closes(initialized):
    run = initialized
    run("submit", 50, caller="host")
    result = run("sweep", caller="host", now=REVEAL_DEADLINE)
    assert result.exit_code == 0, result.output
    assert "Swept 0 to host. Residual pot: 0" in result.output

    result = run("status", now=REVEAL_DEADLINE)
    assert result.exit_code == 0, result.output
    assert f"{'Stage':<24}closed" in result.output
    assert f"{'Operator liquidity':<24}-" in result.output

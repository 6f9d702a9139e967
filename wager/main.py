"""Commit-wager CLI."""
import functools
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

import click
import pydantic
from loguru import logger

from .core import configure_logging
from .core.commitment import make_commitment, random_salt
from .core.curve import MULTIPLIER_TABLE, SCALE
from .core.errors import WagerError
from .core.game import Settlement, WagerGame
from .core.phase import FixedClock, SystemClock
from .core.records import Phase
from .core.settings import get_data_dir, load_settings
from .core.store import JsonFileStore


class WagerCLI:
    """State shared by every command of one invocation."""

    def __init__(self, home: Path, caller: Optional[str] = None, now: Optional[int] = None):
        self.home = home
        self.home.mkdir(parents=True, exist_ok=True)
        self.state_file = self.home / "state.json"
        self.caller = caller
        clock = FixedClock(now) if now is not None else SystemClock()
        self.game = WagerGame(JsonFileStore(self.state_file), clock)

    def require_caller(self) -> str:
        if not self.caller:
            raise click.UsageError("This command needs a caller identity: pass --as ACCOUNT")
        return self.caller


def handle_errors(func):
    """Turn wager errors into ``error[CODE]: message`` and a non-zero exit."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except WagerError as e:
            click.echo(f"error[{e.code.value}]: {e.message}", err=True)
            if e.retry_later:
                click.echo("This may succeed after the relevant deadline.", err=True)
            sys.exit(2 if e.fatal else 1)
        except pydantic.ValidationError as e:
            click.echo(f"error[INVALID_SETTINGS]: {e}", err=True)
            sys.exit(1)
    return wrapper


def _fmt_time(ts: Optional[int]) -> str:
    if ts is None:
        return "-"
    return f"{ts} ({datetime.fromtimestamp(ts).strftime('%Y-%m-%d %H:%M')})"


@click.group()
@click.version_option(package_name="commit-wager")
@click.option('--home', type=click.Path(file_okay=False, path_type=Path), default=None,
              help='Data directory (defaults to $WAGER_HOME or ~/.commit-wager)')
@click.option('--as', 'caller', envvar='WAGER_ACCOUNT', default=None,
              help='Identity performing the operation')
@click.option('--now', type=int, default=None, help='Override the clock (unix seconds)')
@click.pass_context
def cli(ctx, home: Optional[Path], caller: Optional[str], now: Optional[int]):
    """Single-round commit-reveal wager with escrow accounting."""
    configure_logging()
    ctx.obj = WagerCLI(home or get_data_dir(), caller=caller, now=now)


@cli.command()
@click.option('--config', 'config_path', type=click.Path(exists=True, dir_okay=False),
              default=None, help='YAML settings file')
@click.option('--authority', default=None, help='Authority identity')
@click.option('--submission-deadline', type=int, default=None, help='Unix timestamp')
@click.option('--game-id', default=None, help='Game identifier')
@click.option('--reveal-period', type=int, default=None, help='Seconds allowed for reveals')
@click.option('--final-claim-period', type=int, default=None,
              help='Seconds a deferred winner may withdraw their stake')
@click.pass_obj
@handle_errors
def init(obj: WagerCLI, config_path, authority, submission_deadline, game_id,
         reveal_period, final_claim_period):
    """Create the game in the Open phase."""
    payer = obj.require_caller()
    settings = load_settings(
        config_path,
        authority=authority,
        submission_deadline=submission_deadline,
        game_id=game_id,
        reveal_period=reveal_period,
        final_claim_period=final_claim_period,
    )
    game = obj.game.initialize_game(payer, settings)
    click.echo(f"Game {game.game_id} initialized. Authority: {game.authority}")
    click.echo(f"Submission deadline: {_fmt_time(game.submission_deadline)}")


@cli.command()
@click.argument('account')
@click.argument('amount', type=int)
@click.pass_obj
@handle_errors
def airdrop(obj: WagerCLI, account: str, amount: int):
    """Credit AMOUNT base units to ACCOUNT."""
    balance = obj.game.airdrop(account, amount)
    click.echo(f"{account} balance: {balance}")


@cli.command()
@click.argument('account', required=False)
@click.pass_obj
@handle_errors
def balance(obj: WagerCLI, account: Optional[str]):
    """Show the ledger balance of ACCOUNT (defaults to --as)."""
    account = account or obj.require_caller()
    click.echo(f"{account} balance: {obj.game.balance_of(account)}")


@cli.command()
@click.argument('amount', type=int)
@click.pass_obj
@handle_errors
def fund(obj: WagerCLI, amount: int):
    """Deposit operator liquidity into escrow."""
    balance = obj.game.fund_escrow(obj.require_caller(), amount)
    click.echo(f"Escrow balance: {balance}")


@cli.command()
@click.argument('guess', type=click.IntRange(0, 100))
@click.option('--salt', type=int, default=None, help='Salt to use (random if omitted)')
@handle_errors
def commitment(guess: int, salt: Optional[int]):
    """Compute the commitment hash for GUESS. Keep the salt secret until reveal."""
    if salt is None:
        salt = random_salt()
    click.echo(f"commitment: {make_commitment(guess, salt).hex()}")
    click.echo(f"salt: {salt}")


@cli.command()
@click.argument('commitment_hex')
@click.argument('amount', type=int)
@click.pass_obj
@handle_errors
def commit(obj: WagerCLI, commitment_hex: str, amount: int):
    """Stake AMOUNT against COMMITMENT_HEX."""
    bet = obj.game.commit_bet(obj.require_caller(), commitment_hex, amount)
    click.echo(f"Bet committed by {bet.participant} for {bet.amount}")


@cli.command()
@click.argument('outcome', type=int)
@click.pass_obj
@handle_errors
def submit(obj: WagerCLI, outcome: int):
    """Authority discloses OUTCOME."""
    game = obj.game.submit_result(obj.require_caller(), outcome)
    click.echo(f"Result {game.outcome} submitted. Reveal deadline: {_fmt_time(game.reveal_deadline)}")


@cli.command()
@click.argument('guess', type=int)
@click.argument('salt', type=int)
@click.pass_obj
@handle_errors
def reveal(obj: WagerCLI, guess: int, salt: int):
    """Reveal GUESS and SALT and claim any payout."""
    receipt = obj.game.reveal_and_claim(obj.require_caller(), guess, salt)
    if receipt.settlement == Settlement.WON:
        click.echo(f"Won! Paid {receipt.transferred} on a stake of {receipt.stake}")
    elif receipt.settlement == Settlement.DEFERRED:
        deadline = obj.game.status().game.final_claim_deadline
        click.echo(f"Won {receipt.owed}, but escrow cannot pay it yet.")
        click.echo(f"Reveal again once funded, or withdraw your stake before {_fmt_time(deadline)}")
    else:
        click.echo(f"Lost. Stake of {receipt.stake} forfeited.")


@cli.command()
@click.pass_obj
@handle_errors
def withdraw(obj: WagerCLI):
    """Withdraw the stake of a deferred payout."""
    receipt = obj.game.withdraw_unpaid_bet(obj.require_caller())
    click.echo(f"Refunded {receipt.transferred}")


@cli.command()
@click.pass_obj
@handle_errors
def reclaim(obj: WagerCLI):
    """Reclaim a stake after the authority missed the submission deadline."""
    receipt = obj.game.reclaim_bet_on_timeout(obj.require_caller())
    click.echo(f"Refunded {receipt.transferred}")


@cli.command()
@click.pass_obj
@handle_errors
def sweep(obj: WagerCLI):
    """Authority sweeps the remaining escrow and closes the game."""
    receipt = obj.game.claim_remaining_treasury(obj.require_caller())
    click.echo(f"Swept {receipt.amount} to {receipt.authority}. Residual pot: {receipt.residual_pot}")


@cli.command()
@click.pass_obj
@handle_errors
def status(obj: WagerCLI):
    """Show game phase, deadlines and escrow accounting."""
    info = obj.game.status()
    game = info.game
    click.echo(f"\nGame {game.game_id}")
    click.echo("-" * 60)
    click.echo(f"{'Stage':<24}{info.stage.value}")
    click.echo(f"{'Authority':<24}{game.authority}")
    click.echo(f"{'Outcome':<24}{'-' if game.outcome is None else game.outcome}")
    click.echo(f"{'Outstanding bets':<24}{game.bet_count}")
    click.echo(f"{'Pot':<24}{game.pot}")
    click.echo(f"{'Escrow balance':<24}{info.escrow_balance}")
    if game.phase == Phase.CLOSED:
        liquidity = "-"
    elif info.operator_liquidity is None:
        liquidity = "DESYNCED"
    else:
        liquidity = info.operator_liquidity
    click.echo(f"{'Operator liquidity':<24}{liquidity}")
    click.echo(f"{'Submission deadline':<24}{_fmt_time(game.submission_deadline)}")
    click.echo(f"{'Reveal deadline':<24}{_fmt_time(game.reveal_deadline)}")
    click.echo(f"{'Final claim deadline':<24}{_fmt_time(game.final_claim_deadline)}")
    for problem in obj.game.check_invariants():
        logger.error(f"Invariant violated: {problem}")


@cli.command()
@click.argument('account', required=False)
@click.pass_obj
@handle_errors
def bet(obj: WagerCLI, account: Optional[str]):
    """Show the outstanding bet of ACCOUNT (defaults to --as)."""
    account = account or obj.require_caller()
    record = obj.game.get_bet(account)
    if record is None:
        click.echo(f"No outstanding bet for {account}")
        return
    click.echo(f"Participant: {record.participant}")
    click.echo(f"Amount: {record.amount}")
    click.echo(f"Commitment: {record.commitment.hex()}")
    click.echo(f"Deferred: {record.is_deferred}")


@cli.command()
@click.option('--amount', type=int, default=None, help='Show payouts for this stake')
def curve(amount: Optional[int]):
    """Print the payout multiplier table."""
    click.echo(f"{'Diff':<6}{'Multiplier':<14}{'Payout' if amount else ''}")
    for difference, scaled in enumerate(MULTIPLIER_TABLE):
        line = f"{difference:<6}{scaled / SCALE:<14.6f}"
        if amount:
            line += str(amount * scaled // SCALE)
        click.echo(line)


if __name__ == "__main__":
    cli()

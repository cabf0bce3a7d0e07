"""
vestledger/cli/commands.py

Ledger commands. Each opens the journal-backed engine named by the global
options, performs one operation and prints the resulting record as JSON.

Exit codes:
    0  Operation succeeded
    1  Engine rejected the operation   (ERROR [code]: message on stderr)
    2  Journal unreadable or failed verification on open
"""

import json
import sys
from contextlib import contextmanager
from typing import Any, Optional

import click

from vestledger.core.exceptions import JournalError, VestingError
from vestledger.engine import VestingEngine


# ── Helpers ───────────────────────────────────────────────────────────────────

def _open_engine(ctx: click.Context) -> VestingEngine:
    config = ctx.obj["config"]
    try:
        return VestingEngine.open(config)
    except JournalError as e:
        click.echo(f"ERROR [{e.code}]: {e}", err=True)
        sys.exit(2)


@contextmanager
def _reporting_errors():
    try:
        yield
    except VestingError as e:
        click.echo(f"ERROR [{e.code}]: {e}", err=True)
        sys.exit(1)


def _echo_json(obj: Any) -> None:
    click.echo(json.dumps(obj, indent=2, sort_keys=True))


_as_of_option = click.option(
    "--as-of",
    type=int,
    default=None,
    metavar="SECONDS",
    help="Evaluation instant in unix seconds (default: now).",
)


# ── authority ─────────────────────────────────────────────────────────────────

@click.group(name="authority")
def authority_group() -> None:
    """Create or inspect vesting authorities."""


@authority_group.command(name="create")
@click.argument("authority_id")
@click.option("--owner", required=True, help="Principal that will own the authority.")
@click.option("--asset", "asset_id", required=True, help="Asset the treasury holds.")
@_as_of_option
@click.pass_context
def authority_create(
    ctx:          click.Context,
    authority_id: str,
    owner:        str,
    asset_id:     str,
    as_of:        Optional[int],
) -> None:
    """Create authority AUTHORITY_ID and its treasury."""
    engine = _open_engine(ctx)
    with _reporting_errors():
        record = engine.create_authority(authority_id, owner=owner, asset_id=asset_id, as_of=as_of)
    _echo_json(record.to_dict())


@authority_group.command(name="show")
@click.argument("authority_id")
@click.pass_context
def authority_show(ctx: click.Context, authority_id: str) -> None:
    """Show authority AUTHORITY_ID with its treasury balance."""
    engine = _open_engine(ctx)
    with _reporting_errors():
        record  = engine.get_authority(authority_id)
        balance = engine.treasury_balance(authority_id)
    _echo_json({**record.to_dict(), "treasury_balance": balance})


@authority_group.command(name="list")
@click.option("--owner", required=True, help="List authorities owned by this principal.")
@click.pass_context
def authority_list(ctx: click.Context, owner: str) -> None:
    """List authorities owned by OWNER."""
    engine = _open_engine(ctx)
    _echo_json([a.to_dict() for a in engine.authorities_owned_by(owner)])


# ── schedule ──────────────────────────────────────────────────────────────────

@click.group(name="schedule")
def schedule_group() -> None:
    """Create, inspect or list vesting schedules."""


@schedule_group.command(name="create")
@click.argument("authority_id")
@click.argument("beneficiary")
@click.option("--caller", required=True, help="Must be the authority owner.")
@click.option("--start", "start_time", type=int, required=True, help="Unlock start (unix seconds).")
@click.option("--end", "end_time", type=int, required=True, help="Fully unlocked at (unix seconds).")
@click.option("--cliff", "cliff_time", type=int, required=True, help="No claims before (unix seconds).")
@click.option("--amount", "total_amount", type=int, required=True, help="Total units to unlock.")
@click.pass_context
def schedule_create(
    ctx:          click.Context,
    authority_id: str,
    beneficiary:  str,
    caller:       str,
    start_time:   int,
    end_time:     int,
    cliff_time:   int,
    total_amount: int,
) -> None:
    """Create a schedule for BENEFICIARY under AUTHORITY_ID."""
    engine = _open_engine(ctx)
    with _reporting_errors():
        record = engine.create_schedule(
            authority_id,
            caller=       caller,
            beneficiary=  beneficiary,
            start_time=   start_time,
            end_time=     end_time,
            cliff_time=   cliff_time,
            total_amount= total_amount,
        )
    _echo_json(record.to_dict())


@schedule_group.command(name="show")
@click.argument("authority_id")
@click.argument("beneficiary")
@click.pass_context
def schedule_show(ctx: click.Context, authority_id: str, beneficiary: str) -> None:
    """Show BENEFICIARY's schedule under AUTHORITY_ID."""
    engine = _open_engine(ctx)
    with _reporting_errors():
        record = engine.get_schedule(authority_id, beneficiary)
    _echo_json(record.to_dict())


@schedule_group.command(name="list")
@click.option("--authority", "authority_id", default=None, help="Schedules under this authority.")
@click.option("--beneficiary", default=None, help="Schedules naming this beneficiary.")
@click.pass_context
def schedule_list(
    ctx:          click.Context,
    authority_id: Optional[str],
    beneficiary:  Optional[str],
) -> None:
    """List schedules by authority or by beneficiary."""
    if (authority_id is None) == (beneficiary is None):
        raise click.UsageError("Pass exactly one of --authority or --beneficiary")

    engine = _open_engine(ctx)
    with _reporting_errors():
        if authority_id is not None:
            records = engine.schedules_for_authority(authority_id)
        else:
            records = engine.schedules_for_beneficiary(beneficiary)
    _echo_json([s.to_dict() for s in records])


# ── Operations ────────────────────────────────────────────────────────────────

@click.command(name="fund")
@click.argument("authority_id")
@click.argument("amount", type=int)
@click.option("--funder", required=True, help="Principal depositing the funds.")
@click.pass_context
def fund_command(ctx: click.Context, authority_id: str, amount: int, funder: str) -> None:
    """Deposit AMOUNT of the asset into AUTHORITY_ID's treasury."""
    engine = _open_engine(ctx)
    with _reporting_errors():
        balance = engine.fund_treasury(authority_id, amount, funder=funder)
    _echo_json({"authority_id": authority_id, "funded": amount, "treasury_balance": balance})


@click.command(name="claim")
@click.argument("authority_id")
@click.argument("beneficiary")
@click.option("--caller", default=None, help="Claiming principal (default: BENEFICIARY).")
@_as_of_option
@click.pass_context
def claim_command(
    ctx:          click.Context,
    authority_id: str,
    beneficiary:  str,
    caller:       Optional[str],
    as_of:        Optional[int],
) -> None:
    """Withdraw BENEFICIARY's claimable balance."""
    engine = _open_engine(ctx)
    with _reporting_errors():
        receipt = engine.claim(
            authority_id, beneficiary, caller=caller or beneficiary, as_of=as_of,
        )
    _echo_json(receipt.to_dict())


@click.command(name="revoke")
@click.argument("authority_id")
@click.argument("beneficiary")
@click.option("--caller", required=True, help="Must be the authority owner.")
@_as_of_option
@click.pass_context
def revoke_command(
    ctx:          click.Context,
    authority_id: str,
    beneficiary:  str,
    caller:       str,
    as_of:        Optional[int],
) -> None:
    """Freeze BENEFICIARY's unlock under AUTHORITY_ID."""
    engine = _open_engine(ctx)
    with _reporting_errors():
        record = engine.revoke(authority_id, beneficiary, caller=caller, as_of=as_of)
    _echo_json(record.to_dict())


@click.command(name="vested")
@click.argument("authority_id")
@click.argument("beneficiary")
@_as_of_option
@click.pass_context
def vested_command(
    ctx:          click.Context,
    authority_id: str,
    beneficiary:  str,
    as_of:        Optional[int],
) -> None:
    """Show vested and claimable amounts for BENEFICIARY."""
    engine = _open_engine(ctx)
    if as_of is None:
        as_of = engine.clock()
    with _reporting_errors():
        vested    = engine.vested_amount(authority_id, beneficiary, as_of)
        claimable = engine.claimable_amount(authority_id, beneficiary, as_of)
    _echo_json({
        "authority_id": authority_id,
        "beneficiary":  beneficiary,
        "as_of":        as_of,
        "vested":       vested,
        "claimable":    claimable,
    })


@click.command(name="funding")
@click.argument("authority_id")
@click.pass_context
def funding_command(ctx: click.Context, authority_id: str) -> None:
    """Show AUTHORITY_ID's treasury funding report."""
    engine = _open_engine(ctx)
    with _reporting_errors():
        report = engine.funding_report(authority_id)
    _echo_json(report.to_dict())

"""
vestledger/cli/__init__.py

VestLedger CLI — root Click command group.

Registered in pyproject.toml as:

    [project.scripts]
    vestledger = "vestledger.cli:cli"

Global options resolve an EngineConfig (file, then environment, then these
flags). Each command opens a journal-backed engine from it, so state
persists across invocations in the journal file.
"""

import logging
from dataclasses import replace
from pathlib import Path
from typing import Optional

import click

from vestledger.cli.commands import (
    authority_group,
    claim_command,
    fund_command,
    funding_command,
    revoke_command,
    schedule_group,
    vested_command,
)
from vestledger.cli.verify import verify_command
from vestledger.config import ConfigError, load_config


@click.group()
@click.version_option(package_name="vestledger")
@click.option(
    "--config", "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    metavar="PATH",
    help="YAML config file (default: ./vestledger.yaml if present).",
)
@click.option("--journal", type=click.Path(dir_okay=False), default=None, metavar="PATH",
              help="Journal file. Overrides config.")
@click.option("--key", type=click.Path(dir_okay=False), default=None, metavar="PATH",
              help="Ed25519 signer key (PEM). Created on first use.")
@click.option("--namespace", type=str, default=None,
              help="Address namespace (deployment identity).")
@click.pass_context
def cli(
    ctx:         click.Context,
    config_path: Optional[str],
    journal:     Optional[str],
    key:         Optional[str],
    namespace:   Optional[str],
) -> None:
    """
    VestLedger — token vesting ledger.

    \b
    Commands:
      authority   Create or inspect vesting authorities.
      schedule    Create, inspect or list vesting schedules.
      fund        Deposit into an authority's treasury.
      claim       Withdraw a beneficiary's claimable balance.
      revoke      Freeze a schedule's unlock.
      vested      Show vested and claimable amounts.
      funding     Show a treasury's funding report.
      verify      Verify a journal — chain, signatures, schema.

    \b
    Quick start:
      vestledger authority create acme --owner alice --asset ACME
      vestledger fund acme 100000 --funder alice
      vestledger schedule create acme bob --caller alice \\
          --start 0 --cliff 30 --end 31536000 --amount 100000
      vestledger claim acme bob
    """
    try:
        config = load_config(Path(config_path) if config_path else None)
        overrides = {
            name: value
            for name, value in (
                ("journal_path", journal),
                ("key_path",     key),
                ("namespace",    namespace),
            )
            if value
        }
        if overrides:
            config = replace(config, **overrides).validate()
    except (FileNotFoundError, ConfigError) as e:
        raise click.UsageError(str(e)) from e

    level = config.log_level.upper()
    logging.basicConfig(
        level=  level,
        format= "%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger("vestledger").setLevel(level)

    ctx.obj = {"config": config}


cli.add_command(authority_group)
cli.add_command(schedule_group)
cli.add_command(fund_command)
cli.add_command(claim_command)
cli.add_command(revoke_command)
cli.add_command(vested_command)
cli.add_command(funding_command)
cli.add_command(verify_command)

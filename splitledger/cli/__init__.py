"""
splitledger/cli/__init__.py

splitledger CLI — root Click command group.

Registered in pyproject.toml as:

    [project.scripts]
    splitledger = "splitledger.cli:cli"

Adding a new command:
    1. Create splitledger/cli/your_command.py with a @click.command()
    2. Import it here
    3. cli.add_command(your_command)
"""

import logging

import click

from splitledger.cli.settle import settle_command
from splitledger.cli.split import split_command
from splitledger.cli.verify import verify_command


@click.group()
@click.version_option(package_name="splitledger")
@click.option("-v", "--verbose", count=True, help="Log INFO (-v) or DEBUG (-vv) to stderr.")
def cli(verbose: int) -> None:
    """
    splitledger — basis-point payment settlement.

    \b
    Commands:
      split     Preview how an amount splits between beneficiaries.
      settle    Settle one purchase against a JSON balance sheet.
      verify    Verify a settlement audit ledger.

    \b
    Quick start:
      splitledger split 1000000 --fee-bps 500 --referrer-fee-bps 100
      splitledger settle --state state.json --ledger audit.jsonl --key op.pem \\
          --content c-1 --purchase p-1 --amount 1000000 --fee-bps 500 \\
          --payer alice --creator bob --platform plat
      splitledger verify audit.jsonl --format json
    """
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose >= 2:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


cli.add_command(split_command)
cli.add_command(settle_command)
cli.add_command(verify_command)

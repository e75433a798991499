"""
splitledger split — preview a fee split without moving anything.

Exit codes:
    0  Split computed
    1  Rejected (fee above maximum, overflow)
    2  Configuration error
"""

import json
import sys
from typing import Optional

import click

from splitledger.config.loader import load_fee_schedule
from splitledger.core.exceptions import ConfigError, SettlementError
from splitledger.core.fees import DEFAULT_FEE_SCHEDULE, compute_split
from splitledger.core.models import U16_MAX, U64_MAX


@click.command(name="split")
@click.argument("amount", type=click.IntRange(min=0, max=U64_MAX))
@click.option("--fee-bps", type=click.IntRange(min=0, max=U16_MAX), required=True, help="Platform fee in basis points.")
@click.option("--referrer-fee-bps", type=click.IntRange(min=0, max=U16_MAX), default=0, show_default=True,
              help="Referrer fee in basis points.")
@click.option("--config", "config_path", type=click.Path(), default=None,
              help="Fee schedule YAML. Defaults to the built-in schedule.")
@click.option("--format", "fmt", type=click.Choice(["human", "json"], case_sensitive=False),
              default="human", show_default=True)
def split_command(
    amount:           int,
    fee_bps:          int,
    referrer_fee_bps: int,
    config_path:      Optional[str],
    fmt:              str,
) -> None:
    """
    Show how AMOUNT (smallest units) splits between referrer, platform and creator.

    \b
    Examples:
      splitledger split 1000000 --fee-bps 500
      splitledger split 1000000 --fee-bps 500 --referrer-fee-bps 100 --format json
    """
    try:
        schedule = load_fee_schedule(config_path) if config_path else DEFAULT_FEE_SCHEDULE
    except (FileNotFoundError, ConfigError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(2)

    try:
        split = compute_split(amount, fee_bps, referrer_fee_bps, schedule)
    except SettlementError as e:
        if fmt == "json":
            click.echo(json.dumps({"ok": False, "error": e.code, "detail": str(e)}))
        else:
            click.echo(f"Rejected: {e.code}: {e}", err=True)
        sys.exit(1)

    if fmt == "json":
        click.echo(json.dumps({
            "ok":              True,
            "amount":          amount,
            "fee_bps":         fee_bps,
            "referrer_fee_bps": referrer_fee_bps,
            "referrer_amount": split.referrer_amount,
            "platform_amount": split.platform_amount,
            "creator_amount":  split.creator_amount,
        }))
        return

    click.echo(f"  {'amount':<10} {amount:>20,}")
    click.echo(f"  {'referrer':<10} {split.referrer_amount:>20,}  ({referrer_fee_bps} bps)")
    click.echo(f"  {'platform':<10} {split.platform_amount:>20,}  ({fee_bps} bps)")
    click.echo(f"  {'creator':<10} {split.creator_amount:>20,}")

"""
splitledger settle — settle one purchase against a JSON balance sheet.

The balance sheet plays the host ledger. Inside its atomic() blocks the
settlement moves funds, appends the record to the audit ledger, and the
balances are written back. Any failure in that block restores the
in-memory balances and leaves the balance sheet file untouched. The audit
record is appended before the balance sheet is written, so if only the
balance-sheet write fails, the ledger holds a record for balances that
were not saved. That case exits 2 and names the purchase.

Record slots continue from the last slot in the audit ledger.

Exit codes:
    0  Settled
    1  Settlement rejected (error code printed)
    2  Bad input (config, request, key file, balance sheet) or a ledger / balance-sheet write failure
"""

import json
import sys
from typing import Optional

import click

from splitledger.config.loader import load_fee_schedule
from splitledger.core.crypto import AuditSigner
from splitledger.core.exceptions import (
    ConfigError,
    LedgerError,
    SettlementError,
    ValidationError,
)
from splitledger.core.fees import DEFAULT_FEE_SCHEDULE
from splitledger.core.models import U16_MAX, U64_MAX, AssetSelector, PurchaseRequest
from splitledger.core.time import SystemClock
from splitledger.currency.balances import load_state, save_state
from splitledger.ledger.recorder import AuditLedger
from splitledger.settlement.engine import SettlementEngine


@click.command(name="settle")
@click.option("--state", "state_path", type=click.Path(), required=True,
              help="JSON balance sheet, read and written back on success.")
@click.option("--ledger", "ledger_path", type=click.Path(), required=True,
              help="Audit ledger (.jsonl) to append to.")
@click.option("--key", "key_path", type=click.Path(), required=True,
              help="Ed25519 PEM signing key. Created if missing.")
@click.option("--config", "config_path", type=click.Path(), default=None,
              help="Fee schedule YAML. Defaults to the built-in schedule.")
@click.option("--content", "content_id", required=True)
@click.option("--purchase", "purchase_id", required=True)
@click.option("--amount", type=click.IntRange(min=0, max=U64_MAX), required=True)
@click.option("--fee-bps", type=click.IntRange(min=0, max=U16_MAX), required=True)
@click.option("--payer", required=True)
@click.option("--creator", required=True)
@click.option("--platform", required=True)
@click.option("--referrer", default=None)
@click.option("--referrer-fee-bps", type=click.IntRange(min=0, max=U16_MAX), default=0, show_default=True)
@click.option("--mint", default=None, help="Token mint. Omit for native currency.")
def settle_command(
    state_path:       str,
    ledger_path:      str,
    key_path:         str,
    config_path:      Optional[str],
    content_id:       str,
    purchase_id:      str,
    amount:           int,
    fee_bps:          int,
    payer:            str,
    creator:          str,
    platform:         str,
    referrer:         Optional[str],
    referrer_fee_bps: int,
    mint:             Optional[str],
) -> None:
    """
    Settle one purchase and append its record to the audit ledger.

    \b
    Examples:
      splitledger settle --state state.json --ledger audit.jsonl --key op.pem \\
          --content c-1 --purchase p-1 --amount 1000000 --fee-bps 500 \\
          --payer alice --creator bob --platform plat
    """
    try:
        schedule = load_fee_schedule(config_path) if config_path else DEFAULT_FEE_SCHEDULE
        signer   = AuditSigner.load_or_create(key_path)
        request  = PurchaseRequest(
            content_id=       content_id,
            purchase_id=      purchase_id,
            amount=           amount,
            fee_bps=          fee_bps,
            payer=            payer,
            creator=          creator,
            platform=         platform,
            asset=            AssetSelector.token(mint) if mint else AssetSelector.native(),
            referrer=         referrer,
            referrer_fee_bps= referrer_fee_bps,
        )
        native, tokens = load_state(state_path)
    except (FileNotFoundError, ValueError, ConfigError, ValidationError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(2)

    recorder = AuditLedger(signer, ledger_path)
    engine = SettlementEngine(
        recorder=      recorder,
        native_ledger= native,
        token_ledger=  tokens,
        schedule=      schedule,
        clock=         SystemClock(start_slot=recorder.last_slot),
    )

    try:
        with native.atomic(), tokens.atomic():
            record = engine.settle(request)
            try:
                save_state(state_path, native, tokens)
            except OSError as e:
                raise LedgerError(
                    "balance sheet write failed after the audit record was appended",
                    {"purchase_id": purchase_id, "state": state_path, "cause": e},
                ) from e
    except SettlementError as e:
        click.echo(f"Rejected: {e.code}: {e}", err=True)
        sys.exit(1)
    except LedgerError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(2)

    click.echo(json.dumps(record.to_dict(), sort_keys=True))

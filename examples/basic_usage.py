"""
splitledger: Basic Usage Example

Demonstrates:
- Native and token settlements against in-memory host ledgers
- A rejected settlement rolled back by the host's atomic block
- Audit ledger replay
"""

import tempfile
from pathlib import Path

from splitledger import AuditLedger, AuditSigner, SettlementEngine, SettlementError
from splitledger.core.fees import DEVNET_USDC_MINT
from splitledger.currency import InMemoryNativeLedger, InMemoryTokenLedger
from splitledger.ledger.replay import AuditReplay


def main():
    """Basic splitledger usage."""

    print("=" * 60)
    print("splitledger: Basic Usage Example")
    print("=" * 60)
    print()

    workdir = Path(tempfile.mkdtemp(prefix="splitledger-"))
    ledger_path = workdir / "audit.jsonl"

    # 1. Host ledgers
    native = InMemoryNativeLedger({"alice": 5_000_000_000})
    tokens = InMemoryTokenLedger({DEVNET_USDC_MINT: 6})
    tokens.open_account("alice", DEVNET_USDC_MINT, 25_000_000)
    for owner in ("bob", "plat", "carol"):
        tokens.open_account(owner, DEVNET_USDC_MINT)

    engine = SettlementEngine(
        recorder=      AuditLedger(AuditSigner.generate(), str(ledger_path)),
        native_ledger= native,
        token_ledger=  tokens,
    )

    # 2. Native settlement with a referrer
    print("1. Native settlement (5% platform, 1% referrer)...")
    with native.atomic():
        record = engine.settle_native(
            content_id="article-42", purchase_id="p-1", amount=1_000_000, fee_bps=500,
            payer="alice", creator="bob", platform="plat",
            referrer="carol", referrer_fee_bps=100,
        )
    print(f"   creator={record.creator_amount} platform={record.platform_fee} "
          f"referrer={record.referrer_fee} slot={record.slot}")
    print()

    # 3. Token settlement
    print("2. Token settlement (10% platform)...")
    with tokens.atomic():
        record = engine.settle_token(
            content_id="article-42", purchase_id="p-2", amount=2_000_000, fee_bps=1000,
            mint=DEVNET_USDC_MINT, payer="alice", creator="bob", platform="plat",
        )
    print(f"   creator={record.creator_amount} platform={record.platform_fee} "
          f"decimals={record.decimals}")
    print()

    # 4. Rejected: payer cannot cover the creator share
    print("3. Settlement the payer cannot afford...")
    try:
        with native.atomic():
            engine.settle_native(
                content_id="article-43", purchase_id="p-3", amount=9_000_000_000, fee_bps=500,
                payer="alice", creator="bob", platform="plat",
            )
    except SettlementError as e:
        print(f"   rejected: {e.code}")
    print(f"   alice still holds {native.balance_of('alice')}")
    print()

    # 5. Replay
    print("4. Replaying audit ledger...")
    replay = AuditReplay()
    replay.load(ledger_path)
    summary = replay.verify()
    print(f"   entries={summary.total_entries} valid={summary.is_valid}")
    print(f"   settled={summary.total_settled}")
    print(f"   ledger at {ledger_path}")


if __name__ == "__main__":
    main()

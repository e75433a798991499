"""
splitledger Settlement Engine

Splits one payment among creator, platform and an optional referrer,
moves the shares through a currency adapter, and emits the settlement
record.

Invariants:
- referrer + platform + creator == amount for every settled request
- Transfers run referrer, then platform, then creator
- Validation failures move no funds
- The engine performs no rollback; the host commits all or nothing
"""

from splitledger.settlement.engine import SettlementEngine

__all__ = ["SettlementEngine"]

"""
Currency adapters and host ledger collaborators.
"""

from splitledger.currency.adapters import (
    CurrencyAdapter,
    NativeAdapter,
    TokenAdapter,
    select_adapter,
)
from splitledger.currency.balances import (
    HoldingAccount,
    HostLedgerError,
    InMemoryNativeLedger,
    InMemoryTokenLedger,
    NativeLedger,
    TokenLedger,
)

__all__ = [
    "CurrencyAdapter",
    "NativeAdapter",
    "TokenAdapter",
    "select_adapter",
    "HoldingAccount",
    "HostLedgerError",
    "InMemoryNativeLedger",
    "InMemoryTokenLedger",
    "NativeLedger",
    "TokenLedger",
]

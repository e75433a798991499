"""
splitledger/__init__.py

splitledger: basis-point payment settlement with a signed audit trail.

One purchase is split among creator, platform and an optional referrer,
the shares are moved through a native or token currency adapter, and
the resulting SettlementRecord is appended to an Ed25519-signed,
hash-chained JSONL audit ledger.
"""

__version__ = "0.3.0"

from splitledger.core.exceptions import (
    SplitLedgerError,
    SettlementError,
    ValidationError,
    ConfigError,
    LedgerError,
    FeeExceedsMaximum,
    UnsupportedAsset,
    InvalidAccountOwner,
    InvalidAssetMint,
    Overflow,
    Underflow,
    TransferFailed,
)
from splitledger.core.fees import (
    DEFAULT_FEE_SCHEDULE,
    FeeSchedule,
    Split,
    compute_split,
)
from splitledger.core.models import (
    AssetSelector,
    AuthorizationContext,
    CurrencyKind,
    PurchaseRequest,
    SettlementRecord,
)
from splitledger.core.crypto import AuditSigner
from splitledger.config.loader import load_fee_schedule
from splitledger.ledger.recorder import AuditLedger, EventRecorder, MemoryRecorder
from splitledger.settlement.engine import SettlementEngine

__all__ = [
    # Settlement
    "SettlementEngine",
    "PurchaseRequest",
    "AssetSelector",
    "AuthorizationContext",
    "CurrencyKind",
    "SettlementRecord",
    # Fees
    "FeeSchedule",
    "Split",
    "compute_split",
    "DEFAULT_FEE_SCHEDULE",
    "load_fee_schedule",
    # Recording
    "EventRecorder",
    "MemoryRecorder",
    "AuditLedger",
    "AuditSigner",
    # Errors
    "SplitLedgerError",
    "SettlementError",
    "ValidationError",
    "ConfigError",
    "LedgerError",
    "FeeExceedsMaximum",
    "UnsupportedAsset",
    "InvalidAccountOwner",
    "InvalidAssetMint",
    "Overflow",
    "Underflow",
    "TransferFailed",
]

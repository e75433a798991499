"""
splitledger Exception Hierarchy

All exceptions inherit from SplitLedgerError for easy catching.
Settlement failures carry a stable `code` matching the error kind
reported to callers.
"""


class SplitLedgerError(Exception):
    """Base exception for all splitledger errors"""

    code = "SplitLedgerError"

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class ValidationError(SplitLedgerError):
    """Raised when a purchase request is malformed"""
    code = "ValidationError"


class ConfigError(SplitLedgerError):
    """Raised when the fee schedule configuration is invalid"""
    code = "ConfigError"


class LedgerError(SplitLedgerError):
    """Raised when audit ledger operations fail"""
    code = "LedgerError"


class SettlementError(SplitLedgerError):
    """Raised when a settlement is rejected. Terminal for the call."""
    code = "SettlementError"


class FeeExceedsMaximum(SettlementError):
    """Fee basis points exceed the configured maximum"""
    code = "FeeBpsExceedsMaximum"


class UnsupportedAsset(SettlementError):
    """Token mint is not in the allowlist"""
    code = "UnsupportedAsset"


class InvalidAccountOwner(SettlementError):
    """Holding account is not owned by the expected identity"""
    code = "InvalidAccountOwner"


class InvalidAssetMint(SettlementError):
    """Holding account belongs to a different mint"""
    code = "InvalidAssetMint"


class Overflow(SettlementError):
    """Arithmetic exceeded the unsigned 64-bit range"""
    code = "Overflow"


class Underflow(SettlementError):
    """Arithmetic went below zero"""
    code = "Underflow"


class TransferFailed(SettlementError):
    """The host ledger rejected a fund movement"""
    code = "TransferFailed"

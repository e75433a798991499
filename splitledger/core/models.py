"""
splitledger/core/models.py

Settlement data model.

PurchaseRequest     — what the caller asks to settle. Owned by the caller.
AssetSelector       — native currency, or a token identified by its mint.
AuthorizationContext— host-issued proof that the payer approved the movement.
SettlementRecord    — the immutable audit event produced by a successful
                      settlement. Created once, never mutated.

Integer widths follow the wire types: amounts are unsigned 64-bit,
basis points unsigned 16-bit. Range checks happen at construction so the
settlement core only ever sees representable values.
"""

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, Optional

from splitledger.core.exceptions import ValidationError


U64_MAX = 2**64 - 1
U16_MAX = 2**16 - 1

NATIVE_DECIMALS = 9


class CurrencyKind(Enum):
    """Which transfer mechanics a settlement uses."""
    NATIVE = "NATIVE"
    TOKEN  = "TOKEN"


def _require_uint(name: str, value: Any, upper: int) -> None:
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(
            f"{name} must be an integer",
            {"got": type(value).__name__},
        )
    if value < 0 or value > upper:
        raise ValidationError(
            f"{name} out of range",
            {"value": value, "max": upper},
        )


def _require_identity(name: str, value: Any) -> None:
    if not isinstance(value, str) or not value:
        raise ValidationError(f"{name} must be a non-empty string")


@dataclass(frozen=True)
class AssetSelector:
    """Native currency, or a fungible token identified by mint."""
    kind: CurrencyKind
    mint: Optional[str] = None

    def __post_init__(self):
        if self.kind is CurrencyKind.NATIVE and self.mint is not None:
            raise ValidationError("native asset must not carry a mint")
        if self.kind is CurrencyKind.TOKEN:
            _require_identity("mint", self.mint)

    @classmethod
    def native(cls) -> "AssetSelector":
        return cls(kind=CurrencyKind.NATIVE)

    @classmethod
    def token(cls, mint: str) -> "AssetSelector":
        return cls(kind=CurrencyKind.TOKEN, mint=mint)


@dataclass(frozen=True)
class AuthorizationContext:
    """
    Proof that `payer` authorized up to `approved_amount` to move.

    Issued and checked by the host before settlement starts. The core
    only forwards it to the host ledger alongside each MOVE.
    """
    payer:           str
    approved_amount: int
    reference:       str = ""


@dataclass(frozen=True)
class PurchaseRequest:
    """One payment to settle. Immutable for the duration of the call."""
    content_id:       str
    purchase_id:      str
    amount:           int
    fee_bps:          int
    payer:            str
    creator:          str
    platform:         str
    asset:            AssetSelector
    referrer_fee_bps: int = 0
    referrer:         Optional[str] = None
    authorization:    Optional[AuthorizationContext] = None

    def __post_init__(self):
        _require_identity("content_id", self.content_id)
        _require_identity("purchase_id", self.purchase_id)
        _require_uint("amount", self.amount, U64_MAX)
        _require_uint("fee_bps", self.fee_bps, U16_MAX)
        _require_uint("referrer_fee_bps", self.referrer_fee_bps, U16_MAX)
        _require_identity("payer", self.payer)
        _require_identity("creator", self.creator)
        _require_identity("platform", self.platform)
        if self.referrer is not None:
            _require_identity("referrer", self.referrer)
        if not isinstance(self.asset, AssetSelector):
            raise ValidationError("asset must be an AssetSelector")

    @property
    def effective_referrer_fee_bps(self) -> int:
        """Referrer fee rate that actually applies: zero without a referrer."""
        return self.referrer_fee_bps if self.referrer is not None else 0


@dataclass(frozen=True)
class SettlementRecord:
    """
    The audit event for one completed settlement.

    creator_amount + platform_fee + referrer_fee == amount for every
    record this system produces.
    """
    content_id:       str
    purchase_id:      str
    payer:            str
    creator:          str
    platform:         str
    referrer:         Optional[str]
    mint:             Optional[str]
    currency_kind:    CurrencyKind
    decimals:         int
    amount:           int
    creator_amount:   int
    platform_fee:     int
    referrer_fee:     int
    fee_bps:          int
    referrer_fee_bps: int
    slot:             int
    timestamp:        int

    def is_balanced(self) -> bool:
        return self.creator_amount + self.platform_fee + self.referrer_fee == self.amount

    def to_dict(self) -> Dict[str, Any]:
        """JSON-primitive form, used as the audit envelope payload."""
        data = asdict(self)
        data["currency_kind"] = self.currency_kind.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SettlementRecord":
        return cls(
            content_id=       data["content_id"],
            purchase_id=      data["purchase_id"],
            payer=            data["payer"],
            creator=          data["creator"],
            platform=         data["platform"],
            referrer=         data.get("referrer"),
            mint=             data.get("mint"),
            currency_kind=    CurrencyKind(data["currency_kind"]),
            decimals=         data["decimals"],
            amount=           data["amount"],
            creator_amount=   data["creator_amount"],
            platform_fee=     data["platform_fee"],
            referrer_fee=     data["referrer_fee"],
            fee_bps=          data["fee_bps"],
            referrer_fee_bps= data.get("referrer_fee_bps", 0),
            slot=             data["slot"],
            timestamp=        data["timestamp"],
        )

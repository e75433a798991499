"""
Fee schedule and proportional-split arithmetic.

Pure functions only. No I/O, no hidden state: compute_split() called
twice with the same inputs returns equal Splits.

Both fee rates apply to the same base amount. The creator receives the
remainder, so any rounding dust from floor division accrues to the
creator and nothing is dropped or created.
"""

from dataclasses import dataclass, field
from typing import FrozenSet

from splitledger.core.exceptions import ConfigError, FeeExceedsMaximum, Overflow, Underflow
from splitledger.core.models import U16_MAX, U64_MAX, _require_uint


BPS_DENOMINATOR      = 10_000
MAX_FEE_BPS          = 3_000   # 30%
MAX_REFERRER_FEE_BPS = 500     # 5%

# USDC on devnet
DEVNET_USDC_MINT = "Gh9ZwEmdLJ8DscKNTkTqPbNwLNNBjuSzaG9Vp2KGtKJr"


@dataclass(frozen=True)
class FeeSchedule:
    """Process-wide fee limits and token allowlist. Read-only after load."""
    bps_denominator:      int = BPS_DENOMINATOR
    max_fee_bps:          int = MAX_FEE_BPS
    max_referrer_fee_bps: int = MAX_REFERRER_FEE_BPS
    allowed_mints:        FrozenSet[str] = field(default_factory=frozenset)

    def __post_init__(self):
        for name in ("bps_denominator", "max_fee_bps", "max_referrer_fee_bps"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigError(f"{name} must be an integer", {"got": value})
        if self.bps_denominator <= 0:
            raise ConfigError("bps_denominator must be > 0")
        if not (0 <= self.max_referrer_fee_bps <= self.max_fee_bps <= self.bps_denominator):
            raise ConfigError(
                "fee limits must satisfy 0 <= max_referrer_fee_bps <= max_fee_bps <= bps_denominator",
                {
                    "max_referrer_fee_bps": self.max_referrer_fee_bps,
                    "max_fee_bps": self.max_fee_bps,
                    "bps_denominator": self.bps_denominator,
                },
            )
        object.__setattr__(self, "allowed_mints", frozenset(self.allowed_mints))

    def check_fees(self, fee_bps: int, referrer_fee_bps: int = 0) -> None:
        """Raise FeeExceedsMaximum if either rate is above its limit."""
        if fee_bps > self.max_fee_bps or referrer_fee_bps > self.max_referrer_fee_bps:
            raise FeeExceedsMaximum(
                "Fee basis points exceeds maximum allowed",
                {
                    "fee_bps": fee_bps,
                    "max_fee_bps": self.max_fee_bps,
                    "referrer_fee_bps": referrer_fee_bps,
                    "max_referrer_fee_bps": self.max_referrer_fee_bps,
                },
            )

    def is_supported(self, mint: str) -> bool:
        return mint in self.allowed_mints


DEFAULT_FEE_SCHEDULE = FeeSchedule(allowed_mints=frozenset({DEVNET_USDC_MINT}))


@dataclass(frozen=True)
class Split:
    """Per-beneficiary shares of one payment, in the asset's smallest unit."""
    referrer_amount: int
    platform_amount: int
    creator_amount:  int

    @property
    def total(self) -> int:
        return self.referrer_amount + self.platform_amount + self.creator_amount


def apply_bps(amount: int, bps: int, denominator: int = BPS_DENOMINATOR) -> int:
    """
    floor(amount * bps / denominator), with u64 overflow detection.

    Zero bps short-circuits to zero.
    """
    if bps == 0:
        return 0
    product = amount * bps
    if product > U64_MAX:
        raise Overflow(
            "Overflow in arithmetic.",
            {"amount": amount, "bps": bps},
        )
    return product // denominator


def compute_split(
    amount: int,
    fee_bps: int,
    referrer_fee_bps: int = 0,
    schedule: FeeSchedule = DEFAULT_FEE_SCHEDULE,
) -> Split:
    """
    Split `amount` between referrer, platform and creator.

    Args:
        amount:           Total paid, in smallest units (u64)
        fee_bps:          Platform fee rate
        referrer_fee_bps: Referrer fee rate, 0 when there is no referrer
        schedule:         Limits and denominator to apply

    Returns:
        Split whose three parts sum exactly to amount

    Raises:
        ValidationError:   amount is not a u64, or a rate is not a u16
        FeeExceedsMaximum: a rate is above its limit (checked before arithmetic)
        Overflow:          amount * bps exceeds u64
        Underflow:         fees together exceed amount
    """
    _require_uint("amount", amount, U64_MAX)
    _require_uint("fee_bps", fee_bps, U16_MAX)
    _require_uint("referrer_fee_bps", referrer_fee_bps, U16_MAX)
    schedule.check_fees(fee_bps, referrer_fee_bps)

    denominator     = schedule.bps_denominator
    referrer_amount = apply_bps(amount, referrer_fee_bps, denominator)
    platform_amount = apply_bps(amount, fee_bps, denominator)

    creator_amount = amount - platform_amount - referrer_amount
    if creator_amount < 0:
        raise Underflow(
            "Underflow in arithmetic.",
            {
                "amount": amount,
                "platform_amount": platform_amount,
                "referrer_amount": referrer_amount,
            },
        )

    return Split(
        referrer_amount=referrer_amount,
        platform_amount=platform_amount,
        creator_amount=creator_amount,
    )

"""
tests/test_fees.py

Fee schedule limits and split arithmetic.
"""

import random

import pytest

from splitledger.core.exceptions import (
    ConfigError,
    FeeExceedsMaximum,
    Overflow,
    Underflow,
    ValidationError,
)
from splitledger.core.fees import (
    DEFAULT_FEE_SCHEDULE,
    FeeSchedule,
    Split,
    apply_bps,
    compute_split,
)
from splitledger.core.models import U16_MAX, U64_MAX


class TestComputeSplit:

    def test_platform_and_referrer_fee(self):
        split = compute_split(1_000_000, 500, 100)
        assert split == Split(referrer_amount=10_000, platform_amount=50_000, creator_amount=940_000)

    def test_maximum_fees(self):
        split = compute_split(1_000_000, 3000, 500)
        assert split.platform_amount == 300_000
        assert split.referrer_amount == 50_000
        assert split.creator_amount == 650_000

    def test_rounding_favors_creator(self):
        split = compute_split(7, 1)
        assert split.platform_amount == 0
        assert split.creator_amount == 7

    def test_dust_goes_to_creator(self):
        # 333 * 1500 / 10000 = 49.95 -> 49 ; 333 * 100 / 10000 = 3.33 -> 3
        split = compute_split(333, 1500, 100)
        assert split.platform_amount == 49
        assert split.referrer_amount == 3
        assert split.creator_amount == 281
        assert split.total == 333

    def test_zero_fees_send_everything_to_creator(self):
        split = compute_split(1_000, 0, 0)
        assert split == Split(0, 0, 1_000)

    def test_zero_amount(self):
        assert compute_split(0, 3000, 500) == Split(0, 0, 0)

    def test_fee_above_maximum_rejected(self):
        with pytest.raises(FeeExceedsMaximum) as exc:
            compute_split(1_000_000, 3001)
        assert exc.value.code == "FeeBpsExceedsMaximum"

    def test_referrer_fee_above_maximum_rejected(self):
        with pytest.raises(FeeExceedsMaximum):
            compute_split(1_000_000, 500, 501)

    def test_fee_check_happens_before_arithmetic(self):
        # Would overflow, but the bound check must win.
        with pytest.raises(FeeExceedsMaximum):
            compute_split(U64_MAX, 3001)

    def test_overflow(self):
        with pytest.raises(Overflow):
            compute_split(U64_MAX, 3000)

    def test_largest_amount_without_overflow(self):
        amount = U64_MAX // 3000
        split = compute_split(amount, 3000)
        assert split.total == amount

    def test_underflow_when_schedule_allows_fees_above_amount(self):
        # max_fee_bps == denominator, so 100% platform + 5% referrer > amount
        schedule = FeeSchedule(max_fee_bps=10_000, max_referrer_fee_bps=500)
        with pytest.raises(Underflow):
            compute_split(1_000, 10_000, 500, schedule)

    @pytest.mark.parametrize(
        "args",
        [
            (U64_MAX + 1, 0, 0),
            (-1, 0, 0),
            (100, -100, 0),
            (100, 0, -1),
            (100, U16_MAX + 1, 0),
            (100, True, 0),
            (100.0, 0, 0),
        ],
    )
    def test_inputs_outside_wire_ranges_rejected(self, args):
        with pytest.raises(ValidationError):
            compute_split(*args)

    def test_pure(self):
        assert compute_split(123_456_789, 777, 42) == compute_split(123_456_789, 777, 42)

    def test_conservation_over_random_inputs(self):
        rng = random.Random(20240601)
        for _ in range(2_000):
            amount   = rng.randrange(0, 10**15)
            fee      = rng.randrange(0, 3001)
            referrer = rng.randrange(0, 501)
            split = compute_split(amount, fee, referrer)
            assert split.referrer_amount + split.platform_amount + split.creator_amount == amount
            assert split.creator_amount >= 0


class TestApplyBps:

    def test_zero_bps_short_circuits(self):
        # No multiplication happens, so even an absurd amount is fine.
        assert apply_bps(U64_MAX * 10, 0) == 0

    def test_floor_division(self):
        assert apply_bps(9_999, 1) == 0
        assert apply_bps(10_000, 1) == 1


class TestFeeSchedule:

    def test_defaults(self):
        s = FeeSchedule()
        assert (s.bps_denominator, s.max_fee_bps, s.max_referrer_fee_bps) == (10_000, 3_000, 500)
        assert s.allowed_mints == frozenset()

    def test_default_schedule_allowlists_devnet_usdc(self):
        assert DEFAULT_FEE_SCHEDULE.is_supported("Gh9ZwEmdLJ8DscKNTkTqPbNwLNNBjuSzaG9Vp2KGtKJr")
        assert not DEFAULT_FEE_SCHEDULE.is_supported("not-a-mint")

    def test_list_of_mints_becomes_frozenset(self):
        s = FeeSchedule(allowed_mints=["a", "b", "a"])
        assert s.allowed_mints == frozenset({"a", "b"})

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"max_referrer_fee_bps": 3_001},
            {"max_fee_bps": 10_001},
            {"max_referrer_fee_bps": -1},
            {"bps_denominator": 0},
            {"max_fee_bps": "3000"},
        ],
    )
    def test_invalid_limits_rejected(self, kwargs):
        with pytest.raises(ConfigError):
            FeeSchedule(**kwargs)

    def test_check_fees_at_limits(self):
        DEFAULT_FEE_SCHEDULE.check_fees(3000, 500)

    def test_check_fees_details(self):
        with pytest.raises(FeeExceedsMaximum) as exc:
            DEFAULT_FEE_SCHEDULE.check_fees(3001, 0)
        assert exc.value.details["fee_bps"] == 3001
        assert "max_fee_bps=3000" in str(exc.value)

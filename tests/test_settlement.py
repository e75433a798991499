"""
tests/test_settlement.py

SettlementEngine: transfer order, failure semantics, emitted records.
"""

import threading

import pytest

from conftest import (
    CREATOR,
    MINT,
    OTHER_MINT,
    PAYER,
    PLATFORM,
    REFERRER,
    START_SLOT,
    START_TIMESTAMP,
    RecordingNativeLedger,
)
from splitledger.core.exceptions import (
    FeeExceedsMaximum,
    InvalidAccountOwner,
    InvalidAssetMint,
    Overflow,
    TransferFailed,
    UnsupportedAsset,
    ValidationError,
)
from splitledger.core.models import (
    U64_MAX,
    AssetSelector,
    AuthorizationContext,
    CurrencyKind,
    PurchaseRequest,
)
from splitledger.core.time import SystemClock
from splitledger.currency.balances import HoldingAccount
from splitledger.ledger.recorder import MemoryRecorder
from splitledger.settlement.engine import SettlementEngine


def _native(engine, **overrides):
    params = dict(
        content_id="content-1",
        purchase_id="purchase-1",
        amount=1_000_000,
        fee_bps=500,
        payer=PAYER,
        creator=CREATOR,
        platform=PLATFORM,
    )
    params.update(overrides)
    return engine.settle_native(**params)


def _token(engine, **overrides):
    params = dict(
        content_id="content-1",
        purchase_id="purchase-1",
        amount=1_000_000,
        fee_bps=500,
        mint=MINT,
        payer=PAYER,
        creator=CREATOR,
        platform=PLATFORM,
    )
    params.update(overrides)
    return engine.settle_token(**params)


# ─────────────────────────────────────────────────────────────
# Native settlements
# ─────────────────────────────────────────────────────────────

class TestNativeSettlement:

    def test_transfers_in_order(self, engine, native):
        _native(engine, referrer=REFERRER, referrer_fee_bps=100)
        assert native.moves == [
            (PAYER, REFERRER, 10_000),
            (PAYER, PLATFORM, 50_000),
            (PAYER, CREATOR, 940_000),
        ]

    def test_balances(self, engine, native):
        _native(engine, referrer=REFERRER, referrer_fee_bps=100)
        assert native.balance_of(REFERRER) == 10_000
        assert native.balance_of(PLATFORM) == 50_000
        assert native.balance_of(CREATOR) == 940_000
        assert native.balance_of(PAYER) == 10_000_000_000 - 1_000_000

    def test_record_fields(self, engine, recorder):
        record = _native(engine, referrer=REFERRER, referrer_fee_bps=100)
        assert recorder.records == [record]
        assert record.currency_kind is CurrencyKind.NATIVE
        assert record.mint is None
        assert record.decimals == 9
        assert record.amount == 1_000_000
        assert (record.referrer_fee, record.platform_fee, record.creator_amount) == (10_000, 50_000, 940_000)
        assert record.referrer == REFERRER
        assert record.fee_bps == 500
        assert record.referrer_fee_bps == 100
        assert record.slot == START_SLOT + 1
        assert record.timestamp == START_TIMESTAMP
        assert record.is_balanced()

    def test_no_referrer_means_no_referrer_move(self, engine, native):
        record = _native(engine)
        assert [dest for _, dest, _ in native.moves] == [PLATFORM, CREATOR]
        assert record.referrer is None
        assert record.referrer_fee == 0

    def test_referrer_rate_ignored_without_referrer(self, engine, native):
        record = _native(engine, referrer_fee_bps=100)
        assert record.referrer_fee == 0
        assert record.referrer_fee_bps == 0
        assert record.creator_amount == 950_000

    def test_zero_fee_only_creator_moves(self, engine, native):
        _native(engine, fee_bps=0)
        assert native.moves == [(PAYER, CREATOR, 1_000_000)]

    def test_zero_shares_skipped(self, engine, native):
        # 7 * 1 / 10000 floors to 0 for both fees
        record = _native(engine, amount=7, fee_bps=1, referrer=REFERRER, referrer_fee_bps=1)
        assert native.moves == [(PAYER, CREATOR, 7)]
        assert record.creator_amount == 7

    def test_zero_amount_emits_record_without_moves(self, engine, native, recorder):
        record = _native(engine, amount=0)
        assert native.moves == []
        assert recorder.records == [record]
        assert record.amount == 0

    def test_maximum_fees(self, engine, native):
        record = _native(engine, fee_bps=3000, referrer=REFERRER, referrer_fee_bps=500)
        assert (record.referrer_fee, record.platform_fee, record.creator_amount) == (50_000, 300_000, 650_000)

    def test_slots_increase(self, engine):
        first  = _native(engine, purchase_id="p-1")
        second = _native(engine, purchase_id="p-2")
        assert second.slot > first.slot


# ─────────────────────────────────────────────────────────────
# Token settlements
# ─────────────────────────────────────────────────────────────

class TestTokenSettlement:

    def test_transfers_in_order(self, engine, tokens):
        _token(engine, referrer=REFERRER, referrer_fee_bps=100)
        assert tokens.moves == [
            (PAYER, REFERRER, 10_000),
            (PAYER, PLATFORM, 50_000),
            (PAYER, CREATOR, 940_000),
        ]
        assert tokens.balance_of(CREATOR, MINT) == 940_000

    def test_record_carries_mint_and_decimals(self, engine):
        record = _token(engine)
        assert record.currency_kind is CurrencyKind.TOKEN
        assert record.mint == MINT
        assert record.decimals == 6

    def test_unsupported_mint(self, engine, tokens, recorder):
        with pytest.raises(UnsupportedAsset):
            _token(engine, mint=OTHER_MINT)
        assert tokens.moves == []
        assert recorder.records == []

    def test_unsupported_mint_reported_before_bad_fee(self, engine):
        with pytest.raises(UnsupportedAsset):
            _token(engine, mint=OTHER_MINT, fee_bps=3001)

    def test_wrong_owner_moves_nothing(self, engine, tokens, recorder):
        tokens.register(CREATOR, MINT, HoldingAccount("mallory/acct", "mallory", MINT))
        with pytest.raises(InvalidAccountOwner) as exc:
            _token(engine)
        assert exc.value.code == "InvalidAccountOwner"
        assert tokens.moves == []
        assert recorder.records == []

    def test_wrong_mint_moves_nothing(self, engine, tokens):
        tokens.register(PLATFORM, MINT, HoldingAccount("plat/other", PLATFORM, OTHER_MINT))
        with pytest.raises(InvalidAssetMint):
            _token(engine)
        assert tokens.moves == []

    def test_referrer_account_checked(self, engine, tokens):
        with pytest.raises(InvalidAccountOwner):
            _token(engine, referrer="dave", referrer_fee_bps=100)
        assert tokens.moves == []

    def test_referrer_without_account_at_zero_rate(self, engine, tokens):
        record = _token(engine, referrer="dave", referrer_fee_bps=0)
        assert [dest for _, dest, _ in tokens.moves] == [PLATFORM, CREATOR]
        assert record.referrer == "dave"
        assert record.referrer_fee == 0

    def test_insufficient_payer_balance(self, engine, tokens, recorder):
        with pytest.raises(TransferFailed):
            _token(engine, amount=60_000_000)
        assert recorder.records == []


# ─────────────────────────────────────────────────────────────
# Rejections and failure semantics
# ─────────────────────────────────────────────────────────────

class TestFailures:

    def test_fee_above_maximum_moves_nothing(self, engine, native, recorder):
        with pytest.raises(FeeExceedsMaximum):
            _native(engine, fee_bps=3001)
        assert native.moves == []
        assert recorder.records == []

    def test_referrer_fee_above_maximum(self, engine, native):
        with pytest.raises(FeeExceedsMaximum):
            _native(engine, referrer=REFERRER, referrer_fee_bps=501)
        assert native.moves == []

    def test_referrer_fee_checked_even_without_referrer(self, engine):
        with pytest.raises(FeeExceedsMaximum):
            _native(engine, referrer_fee_bps=501)

    def test_overflow(self, engine, native):
        with pytest.raises(Overflow):
            _native(engine, amount=U64_MAX, fee_bps=3000)
        assert native.moves == []

    def test_failed_transfer_aborts_remaining(self, recorder, clock):
        failing = RecordingNativeLedger({PAYER: 10_000_000}, fail_to=PLATFORM)
        engine = SettlementEngine(recorder, native_ledger=failing, clock=clock)

        with pytest.raises(TransferFailed):
            _native(engine, referrer=REFERRER, referrer_fee_bps=100)

        # referrer moved, platform attempted, creator never attempted
        assert [dest for _, dest, _ in failing.moves] == [REFERRER, PLATFORM]
        assert failing.balance_of(REFERRER) == 10_000
        assert recorder.records == []

    def test_host_atomic_block_discards_partial_moves(self, recorder, clock):
        failing = RecordingNativeLedger({PAYER: 10_000_000}, fail_to=CREATOR)
        engine = SettlementEngine(recorder, native_ledger=failing, clock=clock)

        with pytest.raises(TransferFailed):
            with failing.atomic():
                _native(engine)

        assert failing.balance_of(PAYER) == 10_000_000
        assert failing.balance_of(PLATFORM) == 0

    def test_authorization_limit(self, engine, native):
        auth = AuthorizationContext(payer=PAYER, approved_amount=500_000, reference="order-9")
        with pytest.raises(TransferFailed):
            _native(engine, authorization=auth)
        # platform share fit within the approval, creator share did not
        assert [dest for _, dest, _ in native.moves] == [PLATFORM, CREATOR]

    def test_authorization_within_limit(self, engine):
        auth = AuthorizationContext(payer=PAYER, approved_amount=1_000_000, reference="order-10")
        record = _native(engine, authorization=auth)
        assert record.is_balanced()

    def test_authorization_for_other_payer(self, engine):
        auth = AuthorizationContext(payer="mallory", approved_amount=1_000_000)
        with pytest.raises(TransferFailed):
            _native(engine, authorization=auth)

    def test_rejection_logged_with_code(self, engine, caplog):
        with caplog.at_level("WARNING", logger="splitledger.settlement.engine"):
            with pytest.raises(FeeExceedsMaximum):
                _native(engine, fee_bps=9000)
        assert "FeeBpsExceedsMaximum" in caplog.text


class TestRequestValidation:

    @pytest.mark.parametrize(
        "overrides",
        [
            {"amount": -1},
            {"amount": U64_MAX + 1},
            {"amount": True},
            {"fee_bps": 70_000},
            {"payer": ""},
            {"content_id": ""},
            {"referrer": ""},
        ],
    )
    def test_malformed_requests(self, overrides):
        params = dict(
            content_id="c",
            purchase_id="p",
            amount=100,
            fee_bps=0,
            payer=PAYER,
            creator=CREATOR,
            platform=PLATFORM,
            asset=AssetSelector.native(),
        )
        params.update(overrides)
        with pytest.raises(ValidationError):
            PurchaseRequest(**params)

    def test_native_selector_rejects_mint(self):
        with pytest.raises(ValidationError):
            AssetSelector(kind=CurrencyKind.NATIVE, mint=MINT)

    def test_token_selector_requires_mint(self):
        with pytest.raises(ValidationError):
            AssetSelector(kind=CurrencyKind.TOKEN)


class TestConcurrency:

    def test_parallel_settlements_are_independent(self, tokens):
        recorder = MemoryRecorder()
        engine = SettlementEngine(recorder, token_ledger=tokens, clock=SystemClock())
        lock = threading.Lock()
        errors = []

        def worker(i):
            try:
                # host serializes its own balance updates
                with lock:
                    _token(engine, purchase_id=f"p-{i}", amount=10_000, fee_bps=1000)
            except Exception as exc:
                errors.append(exc)

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(20)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert len(recorder.records) == 20
        assert len({r.slot for r in recorder.records}) == 20
        assert tokens.balance_of(PLATFORM, MINT) == 20 * 1_000
        assert tokens.balance_of(CREATOR, MINT) == 20 * 9_000

"""
Settlement engine: split one payment and move it to its beneficiaries.
"""

import logging
from typing import Optional

from splitledger.core.exceptions import SettlementError, Underflow
from splitledger.core.fees import DEFAULT_FEE_SCHEDULE, FeeSchedule, Split, compute_split
from splitledger.core.models import (
    AssetSelector,
    AuthorizationContext,
    PurchaseRequest,
    SettlementRecord,
)
from splitledger.core.time import Clock, SystemClock
from splitledger.currency.adapters import CurrencyAdapter, select_adapter
from splitledger.currency.balances import NativeLedger, TokenLedger
from splitledger.ledger.recorder import EventRecorder


logger = logging.getLogger(__name__)


class SettlementEngine:
    """
    Settles purchase requests against host ledgers.

    Per call, in this order, stopping at the first error:
        1. Validate  — asset allowlist, fee limits, holding accounts
        2. Compute   — compute_split()
        3. Referrer  — only with a referrer and a non-zero share
        4. Platform  — only with a non-zero share
        5. Creator   — only with a non-zero share
        6. Record    — build SettlementRecord, recorder.emit()

    Validation failures move nothing. A failed transfer aborts without
    attempting later ones; the engine never compensates transfers that
    already happened. All-or-nothing commit is the host's job.

    The engine holds only read-only collaborators, so concurrent calls
    share no mutable settlement state.
    """

    def __init__(
        self,
        recorder:      EventRecorder,
        native_ledger: Optional[NativeLedger] = None,
        token_ledger:  Optional[TokenLedger] = None,
        schedule:      FeeSchedule = DEFAULT_FEE_SCHEDULE,
        clock:         Optional[Clock] = None,
    ):
        self.recorder      = recorder
        self.native_ledger = native_ledger
        self.token_ledger  = token_ledger
        self.schedule      = schedule
        self.clock         = clock or SystemClock()

    def settle(self, request: PurchaseRequest) -> SettlementRecord:
        """
        Settle one purchase.

        Returns:
            The SettlementRecord that was emitted

        Raises:
            SettlementError subclass naming the failure; no record is emitted
        """
        try:
            record = self._settle(request)
        except SettlementError as exc:
            logger.warning(
                "settlement %s rejected: %s (%s)",
                request.purchase_id, exc.code, exc,
            )
            raise

        logger.info(
            "settled purchase %s: amount=%d creator=%d platform=%d referrer=%d kind=%s",
            record.purchase_id, record.amount, record.creator_amount,
            record.platform_fee, record.referrer_fee, record.currency_kind.value,
        )
        return record

    def settle_native(
        self,
        content_id:       str,
        purchase_id:      str,
        amount:           int,
        fee_bps:          int,
        payer:            str,
        creator:          str,
        platform:         str,
        referrer:         Optional[str] = None,
        referrer_fee_bps: int = 0,
        authorization:    Optional[AuthorizationContext] = None,
    ) -> SettlementRecord:
        """Native-currency entry point."""
        return self.settle(
            PurchaseRequest(
                content_id=       content_id,
                purchase_id=      purchase_id,
                amount=           amount,
                fee_bps=          fee_bps,
                payer=            payer,
                creator=          creator,
                platform=         platform,
                asset=            AssetSelector.native(),
                referrer=         referrer,
                referrer_fee_bps= referrer_fee_bps,
                authorization=    authorization,
            )
        )

    def settle_token(
        self,
        content_id:       str,
        purchase_id:      str,
        amount:           int,
        fee_bps:          int,
        mint:             str,
        payer:            str,
        creator:          str,
        platform:         str,
        referrer:         Optional[str] = None,
        referrer_fee_bps: int = 0,
        authorization:    Optional[AuthorizationContext] = None,
    ) -> SettlementRecord:
        """Token entry point. Payer and beneficiaries need holding accounts for mint."""
        return self.settle(
            PurchaseRequest(
                content_id=       content_id,
                purchase_id=      purchase_id,
                amount=           amount,
                fee_bps=          fee_bps,
                payer=            payer,
                creator=          creator,
                platform=         platform,
                asset=            AssetSelector.token(mint),
                referrer=         referrer,
                referrer_fee_bps= referrer_fee_bps,
                authorization=    authorization,
            )
        )

    def _settle(self, request: PurchaseRequest) -> SettlementRecord:
        # 1. Validate. An unsupported asset is reported ahead of any
        #    other problem with the request.
        adapter = select_adapter(
            request.asset,
            self.schedule,
            native_ledger=self.native_ledger,
            token_ledger=self.token_ledger,
        )
        self.schedule.check_fees(request.fee_bps, request.referrer_fee_bps)
        adapter.preflight(request)

        # 2. Compute
        referrer_fee_bps = request.effective_referrer_fee_bps
        split = compute_split(request.amount, request.fee_bps, referrer_fee_bps, self.schedule)
        if split.total != request.amount:
            raise Underflow(
                "split does not reconstitute amount",
                {"amount": request.amount, "total": split.total},
            )

        # 3-5. Transfers, fixed order
        if request.referrer is not None:
            self._move(adapter, request, request.referrer, split.referrer_amount)
        self._move(adapter, request, request.platform, split.platform_amount)
        self._move(adapter, request, request.creator, split.creator_amount)

        # 6. Record
        record = self._build_record(request, adapter, split, referrer_fee_bps)
        self.recorder.emit(record)
        return record

    def _move(
        self,
        adapter:     CurrencyAdapter,
        request:     PurchaseRequest,
        beneficiary: str,
        amount:      int,
    ) -> None:
        if amount == 0:
            return
        logger.debug(
            "purchase %s: move %d from %s to %s",
            request.purchase_id, amount, request.payer, beneficiary,
        )
        adapter.move(request.payer, beneficiary, amount, request.authorization)

    def _build_record(
        self,
        request:          PurchaseRequest,
        adapter:          CurrencyAdapter,
        split:            Split,
        referrer_fee_bps: int,
    ) -> SettlementRecord:
        reading = self.clock.now()
        return SettlementRecord(
            content_id=       request.content_id,
            purchase_id=      request.purchase_id,
            payer=            request.payer,
            creator=          request.creator,
            platform=         request.platform,
            referrer=         request.referrer,
            mint=             adapter.asset_id,
            currency_kind=    adapter.kind,
            decimals=         adapter.decimals,
            amount=           request.amount,
            creator_amount=   split.creator_amount,
            platform_fee=     split.platform_amount,
            referrer_fee=     split.referrer_amount,
            fee_bps=          request.fee_bps,
            referrer_fee_bps= referrer_fee_bps,
            slot=             reading.slot,
            timestamp=        reading.timestamp,
        )

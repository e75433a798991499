"""
Currency adapters: the MOVE capability for one settlement.

An adapter is selected once per call by select_adapter() and used for
every transfer in that call, so a settlement never mixes currencies.

NativeAdapter — unconditional balance transfer between identities.
TokenAdapter  — transfer between holding accounts of one allowlisted mint,
                after checking each account's recorded owner and mint.

Host failures of any kind surface as TransferFailed with the host's
exception chained.
"""

import logging
from typing import Optional

from splitledger.core.exceptions import (
    ConfigError,
    InvalidAccountOwner,
    InvalidAssetMint,
    TransferFailed,
    UnsupportedAsset,
)
from splitledger.core.fees import FeeSchedule
from splitledger.core.models import (
    NATIVE_DECIMALS,
    AssetSelector,
    AuthorizationContext,
    CurrencyKind,
    PurchaseRequest,
)
from splitledger.currency.balances import HoldingAccount, NativeLedger, TokenLedger


logger = logging.getLogger(__name__)


class CurrencyAdapter:
    """Transfer mechanics for one currency kind."""

    kind: CurrencyKind

    @property
    def decimals(self) -> int:
        raise NotImplementedError

    @property
    def asset_id(self) -> Optional[str]:
        raise NotImplementedError

    def preflight(self, request: PurchaseRequest) -> None:
        """Check everything that can be checked before any funds move."""

    def move(
        self,
        source: str,
        destination: str,
        amount: int,
        authorization: Optional[AuthorizationContext] = None,
    ) -> None:
        raise NotImplementedError


class NativeAdapter(CurrencyAdapter):

    kind = CurrencyKind.NATIVE

    def __init__(self, ledger: NativeLedger) -> None:
        self.ledger = ledger

    @property
    def decimals(self) -> int:
        return NATIVE_DECIMALS

    @property
    def asset_id(self) -> Optional[str]:
        return None

    def move(self, source, destination, amount, authorization=None) -> None:
        try:
            self.ledger.transfer(source, destination, amount, authorization)
        except Exception as exc:
            raise TransferFailed(
                "Transfer failed",
                {"source": source, "destination": destination, "amount": amount, "cause": exc},
            ) from exc


class TokenAdapter(CurrencyAdapter):
    """
    Moves one mint between holding accounts.

    Construct through select_adapter(), which enforces the allowlist.
    """

    kind = CurrencyKind.TOKEN

    def __init__(self, ledger: TokenLedger, mint: str) -> None:
        self.ledger = ledger
        self.mint   = mint
        try:
            self._decimals = ledger.mint_decimals(mint)
        except LookupError as exc:
            raise UnsupportedAsset(
                "Unknown token mint",
                {"mint": mint},
            ) from exc

    @property
    def decimals(self) -> int:
        return self._decimals

    @property
    def asset_id(self) -> Optional[str]:
        return self.mint

    def holding_account(self, owner: str) -> HoldingAccount:
        """Resolve owner's account for this mint and check what the host recorded."""
        try:
            account = self.ledger.holding_account(owner, self.mint)
        except LookupError as exc:
            raise InvalidAccountOwner(
                "Invalid Token Account Owner",
                {"owner": owner, "mint": self.mint},
            ) from exc
        if account.owner != owner:
            raise InvalidAccountOwner(
                "Invalid Token Account Owner",
                {"account": account.address, "expected": owner, "recorded": account.owner},
            )
        if account.mint != self.mint:
            raise InvalidAssetMint(
                "Invalid Token Mint",
                {"account": account.address, "expected": self.mint, "recorded": account.mint},
            )
        return account

    def preflight(self, request: PurchaseRequest) -> None:
        parties = [request.payer, request.creator, request.platform]
        # no referrer MOVE can happen at a zero rate
        if request.referrer is not None and request.effective_referrer_fee_bps > 0:
            parties.append(request.referrer)
        for party in parties:
            self.holding_account(party)

    def move(self, source, destination, amount, authorization=None) -> None:
        source_account      = self.holding_account(source)
        destination_account = self.holding_account(destination)
        try:
            self.ledger.transfer(source_account, destination_account, amount, authorization)
        except Exception as exc:
            raise TransferFailed(
                "Transfer failed",
                {
                    "source": source_account.address,
                    "destination": destination_account.address,
                    "amount": amount,
                    "cause": exc,
                },
            ) from exc


def select_adapter(
    asset: AssetSelector,
    schedule: FeeSchedule,
    native_ledger: Optional[NativeLedger] = None,
    token_ledger: Optional[TokenLedger] = None,
) -> CurrencyAdapter:
    """
    Pick the adapter for one settlement.

    Raises:
        UnsupportedAsset: token mint not in schedule.allowed_mints
        ConfigError:      no host ledger configured for the requested kind
    """
    if asset.kind is CurrencyKind.NATIVE:
        if native_ledger is None:
            raise ConfigError("no native ledger configured")
        return NativeAdapter(native_ledger)

    if not schedule.is_supported(asset.mint):
        raise UnsupportedAsset("Unsupported token", {"mint": asset.mint})
    if token_ledger is None:
        raise ConfigError("no token ledger configured")
    return TokenAdapter(token_ledger, asset.mint)

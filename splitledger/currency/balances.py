"""
Host ledger collaborators.

The settlement core never touches balances directly. It consumes two
host capabilities through the currency adapters:

    NativeLedger.transfer(source, destination, amount, authorization)
    TokenLedger.transfer(source_account, destination_account, amount, authorization)

The in-memory implementations here back the test suite and the CLI's
JSON balance sheet. Their atomic() block is the host's all-or-nothing
guarantee: balances are restored if anything inside the block raises.
"""

import json
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, Optional, Tuple

from splitledger.core.models import AuthorizationContext


logger = logging.getLogger(__name__)


class HostLedgerError(Exception):
    """Raised by a host ledger when it refuses a movement."""


@dataclass(frozen=True)
class HoldingAccount:
    """A token holding account as recorded by the host."""
    address: str
    owner:   str
    mint:    str


class NativeLedger:
    """Native-currency balance transfer capability."""

    def transfer(
        self,
        source: str,
        destination: str,
        amount: int,
        authorization: Optional[AuthorizationContext] = None,
    ) -> None:
        raise NotImplementedError


class TokenLedger:
    """Fungible-token transfer capability plus holding-account lookup."""

    def holding_account(self, owner: str, mint: str) -> HoldingAccount:
        raise NotImplementedError

    def mint_decimals(self, mint: str) -> int:
        raise NotImplementedError

    def transfer(
        self,
        source: HoldingAccount,
        destination: HoldingAccount,
        amount: int,
        authorization: Optional[AuthorizationContext] = None,
    ) -> None:
        raise NotImplementedError


class _AuthorizationTracker:
    """Tracks how much of each authorization has been drawn."""

    def __init__(self) -> None:
        self.spent: Dict[Tuple[str, str], int] = {}

    def draw(self, source: str, amount: int, authorization: Optional[AuthorizationContext]) -> None:
        if authorization is None:
            return
        if authorization.payer != source:
            raise HostLedgerError(
                f"authorization for {authorization.payer} cannot move funds from {source}"
            )
        key   = (authorization.payer, authorization.reference)
        drawn = self.spent.get(key, 0) + amount
        if drawn > authorization.approved_amount:
            raise HostLedgerError(
                f"authorization {authorization.reference!r} exceeded: "
                f"approved={authorization.approved_amount}, requested={drawn}"
            )
        self.spent[key] = drawn


class InMemoryNativeLedger(NativeLedger):
    """Native balances keyed by identity."""

    def __init__(self, balances: Optional[Dict[str, int]] = None) -> None:
        self.balances: Dict[str, int] = dict(balances or {})
        self._auth = _AuthorizationTracker()

    def balance_of(self, identity: str) -> int:
        return self.balances.get(identity, 0)

    def transfer(self, source, destination, amount, authorization=None) -> None:
        if amount < 0:
            raise HostLedgerError(f"negative transfer amount {amount}")
        available = self.balance_of(source)
        if available < amount:
            raise HostLedgerError(
                f"insufficient balance in {source}: have {available}, need {amount}"
            )
        self._auth.draw(source, amount, authorization)
        self.balances[source]      = available - amount
        self.balances[destination] = self.balance_of(destination) + amount

    @contextmanager
    def atomic(self) -> Iterator["InMemoryNativeLedger"]:
        balances = dict(self.balances)
        spent    = dict(self._auth.spent)
        try:
            yield self
        except BaseException:
            self.balances    = balances
            self._auth.spent = spent
            logger.debug("native ledger rolled back")
            raise


class InMemoryTokenLedger(TokenLedger):
    """
    Token balances keyed by holding-account address.

    open_account() creates a correctly owned account. register() lets the
    caller install any HoldingAccount under an (owner, mint) lookup key,
    including one whose recorded owner or mint does not match.
    """

    def __init__(self, mints: Optional[Dict[str, int]] = None) -> None:
        self.mints:    Dict[str, int] = dict(mints or {})
        self.accounts: Dict[Tuple[str, str], HoldingAccount] = {}
        self.balances: Dict[str, int] = {}
        self._auth = _AuthorizationTracker()

    @staticmethod
    def account_address(owner: str, mint: str) -> str:
        return f"{owner}/{mint}"

    def open_account(self, owner: str, mint: str, balance: int = 0) -> HoldingAccount:
        account = HoldingAccount(
            address=self.account_address(owner, mint),
            owner=owner,
            mint=mint,
        )
        self.register(owner, mint, account, balance)
        return account

    def register(self, owner: str, mint: str, account: HoldingAccount, balance: int = 0) -> None:
        self.accounts[(owner, mint)] = account
        self.balances[account.address] = balance

    def balance_of(self, owner: str, mint: str) -> int:
        account = self.accounts.get((owner, mint))
        if account is None:
            return 0
        return self.balances.get(account.address, 0)

    def holding_account(self, owner, mint) -> HoldingAccount:
        try:
            return self.accounts[(owner, mint)]
        except KeyError:
            raise LookupError(f"no holding account for owner={owner} mint={mint}") from None

    def mint_decimals(self, mint) -> int:
        try:
            return self.mints[mint]
        except KeyError:
            raise LookupError(f"unknown mint {mint}") from None

    def transfer(self, source, destination, amount, authorization=None) -> None:
        if source.mint != destination.mint:
            raise HostLedgerError(
                f"mint mismatch: {source.mint} -> {destination.mint}"
            )
        available = self.balances.get(source.address, 0)
        if available < amount:
            raise HostLedgerError(
                f"insufficient balance in {source.address}: have {available}, need {amount}"
            )
        self._auth.draw(source.owner, amount, authorization)
        self.balances[source.address]      = available - amount
        self.balances[destination.address] = self.balances.get(destination.address, 0) + amount

    @contextmanager
    def atomic(self) -> Iterator["InMemoryTokenLedger"]:
        balances = dict(self.balances)
        spent    = dict(self._auth.spent)
        try:
            yield self
        except BaseException:
            self.balances    = balances
            self._auth.spent = spent
            logger.debug("token ledger rolled back")
            raise


# ── JSON balance sheet (CLI host) ─────────────────────────────

def load_state(path: Path) -> Tuple[InMemoryNativeLedger, InMemoryTokenLedger]:
    """
    Load a JSON balance sheet:

        {
          "native": {"alice": 1000000000},
          "tokens": {
            "<mint>": {"decimals": 6, "accounts": {"alice": 5000000}}
          }
        }

    A missing file yields empty ledgers. A malformed sheet raises ValueError.
    """
    path = Path(path)
    if not path.exists():
        return InMemoryNativeLedger(), InMemoryTokenLedger()

    with open(path, "r", encoding="utf-8") as f:
        raw = json.load(f)

    try:
        native = InMemoryNativeLedger(
            {owner: _non_negative_int(balance) for owner, balance in raw.get("native", {}).items()}
        )
        tokens = InMemoryTokenLedger()
        for mint, section in raw.get("tokens", {}).items():
            tokens.mints[mint] = _non_negative_int(section.get("decimals", 0))
            for owner, balance in section.get("accounts", {}).items():
                tokens.open_account(owner, mint, _non_negative_int(balance))
    except (AttributeError, TypeError, ValueError) as exc:
        raise ValueError(f"Malformed balance sheet {path}: {exc}") from exc
    return native, tokens


def _non_negative_int(value) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f"expected a non-negative integer, got {value!r}")
    return value


def save_state(path: Path, native: InMemoryNativeLedger, tokens: InMemoryTokenLedger) -> None:
    """Write both ledgers back in the load_state() layout."""
    token_section: Dict[str, dict] = {
        mint: {"decimals": decimals, "accounts": {}}
        for mint, decimals in tokens.mints.items()
    }
    for (owner, mint), account in tokens.accounts.items():
        section = token_section.setdefault(mint, {"decimals": 0, "accounts": {}})
        section["accounts"][owner] = tokens.balances.get(account.address, 0)

    state = {
        "native": dict(native.balances),
        "tokens": token_section,
    }
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(state, f, indent=2, sort_keys=True)
        f.write("\n")

"""
Shared fixtures: in-memory host ledgers that record every MOVE they see,
so tests can assert on transfer order and on "zero transfers".
"""

from typing import List, Optional, Tuple

import pytest

from splitledger.core.fees import DEFAULT_FEE_SCHEDULE, DEVNET_USDC_MINT
from splitledger.core.time import ManualClock
from splitledger.currency.balances import (
    HostLedgerError,
    InMemoryNativeLedger,
    InMemoryTokenLedger,
)
from splitledger.ledger.recorder import MemoryRecorder
from splitledger.settlement.engine import SettlementEngine


MINT       = DEVNET_USDC_MINT
OTHER_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"

PAYER    = "alice"
CREATOR  = "bob"
PLATFORM = "platform"
REFERRER = "carol"

START_SLOT      = 100
START_TIMESTAMP = 1_700_000_000


class RecordingNativeLedger(InMemoryNativeLedger):
    """Logs (source, destination, amount) for every attempted transfer."""

    def __init__(self, balances=None, fail_to: Optional[str] = None) -> None:
        super().__init__(balances)
        self.moves: List[Tuple[str, str, int]] = []
        self.fail_to = fail_to

    def transfer(self, source, destination, amount, authorization=None) -> None:
        self.moves.append((source, destination, amount))
        if destination == self.fail_to:
            raise HostLedgerError(f"destination {destination} not movable")
        super().transfer(source, destination, amount, authorization)


class RecordingTokenLedger(InMemoryTokenLedger):
    """Logs (source owner, destination owner, amount) for every attempted transfer."""

    def __init__(self, mints=None) -> None:
        super().__init__(mints)
        self.moves: List[Tuple[str, str, int]] = []

    def transfer(self, source, destination, amount, authorization=None) -> None:
        self.moves.append((source.owner, destination.owner, amount))
        super().transfer(source, destination, amount, authorization)


@pytest.fixture
def native():
    return RecordingNativeLedger({PAYER: 10_000_000_000})


@pytest.fixture
def tokens():
    ledger = RecordingTokenLedger({MINT: 6, OTHER_MINT: 6})
    ledger.open_account(PAYER, MINT, 50_000_000)
    for owner in (CREATOR, PLATFORM, REFERRER):
        ledger.open_account(owner, MINT)
    return ledger


@pytest.fixture
def recorder():
    return MemoryRecorder()


@pytest.fixture
def clock():
    return ManualClock(slot=START_SLOT, timestamp=START_TIMESTAMP)


@pytest.fixture
def engine(native, tokens, recorder, clock):
    return SettlementEngine(
        recorder=      recorder,
        native_ledger= native,
        token_ledger=  tokens,
        schedule=      DEFAULT_FEE_SCHEDULE,
        clock=         clock,
    )

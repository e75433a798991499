"""
splitledger/core/time.py

Time sources for settlement records and audit envelopes.

Audit wire format: YYYY-MM-DDTHH:MM:SS.mmmZ
                   (milliseconds, explicit Z, no +00:00, no microseconds)

Settlement records carry a (slot, unix timestamp) pair read from a Clock.
The slot is the monotonically increasing sequence marker; the timestamp
is wall-clock seconds.
"""

import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone


def audit_timestamp() -> str:
    """
    Return current UTC time in audit wire format.
    Format: YYYY-MM-DDTHH:MM:SS.mmmZ  (exactly 3 fractional digits, Z suffix)
    """
    now = datetime.now(timezone.utc)
    ms  = now.microsecond // 1000
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{ms:03d}Z"


@dataclass(frozen=True)
class ClockReading:
    """One observation of the host clock."""
    slot:      int
    timestamp: int


class Clock:
    """Host clock collaborator. Subclasses return a ClockReading."""

    def now(self) -> ClockReading:
        raise NotImplementedError


class SystemClock(Clock):
    """
    Wall-clock seconds plus a process-local slot counter.

    Slots strictly increase across calls, including concurrent ones.
    """

    def __init__(self, start_slot: int = 0) -> None:
        self._lock = threading.Lock()
        self._slot = start_slot

    def now(self) -> ClockReading:
        with self._lock:
            self._slot += 1
            slot = self._slot
        return ClockReading(slot=slot, timestamp=int(time.time()))


class ManualClock(Clock):
    """Deterministic clock: every reading advances the slot by one."""

    def __init__(self, slot: int = 0, timestamp: int = 0) -> None:
        self.slot      = slot
        self.timestamp = timestamp

    def now(self) -> ClockReading:
        self.slot += 1
        return ClockReading(slot=self.slot, timestamp=self.timestamp)

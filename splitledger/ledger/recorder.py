"""
splitledger/ledger/recorder.py

Event recorders: where a settlement record goes once funds have moved.

AuditLedger.emit() MUST, in this order:
  1. Acquire lock
  2. Build an AuditEnvelope around record.to_dict(), linked to the last one
  3. Sign it
  4. Append it to the JSONL file
  5. Advance sequence / last envelope, only after the write succeeded

A write failure raises LedgerError and leaves the chain state untouched.
The host's transaction then discards the settlement's transfers too, so
"funds moved but no record" cannot be committed.
"""

import json
import logging
import threading
import warnings
from pathlib import Path
from typing import Any, Dict, List, Optional

from splitledger.core.crypto import AuditSigner
from splitledger.core.exceptions import LedgerError
from splitledger.core.models import SettlementRecord
from splitledger.ledger.envelope import GENESIS_HASH, AuditEnvelope


logger = logging.getLogger(__name__)


class EventRecorder:
    """Append-only observation channel for settlement records."""

    def emit(self, record: SettlementRecord) -> None:
        raise NotImplementedError


class MemoryRecorder(EventRecorder):
    """Keeps emitted records in a list, in emission order."""

    def __init__(self) -> None:
        self.records: List[SettlementRecord] = []

    def emit(self, record: SettlementRecord) -> None:
        self.records.append(record)


class AuditLedger(EventRecorder):
    """
    Signed, hash-chained JSONL audit log.

    Thread-safe via an internal lock (single process). Chain state is
    restored from the last line of an existing file on construction.

    last_slot is the slot of the newest record written. A new process
    seeds its clock from it so slots keep increasing across runs.
    """

    def __init__(self, signer: AuditSigner, ledger_path: str = ".splitledger/audit.jsonl") -> None:
        self.signer = signer

        self._lock = threading.Lock()
        self._sequence = 0
        self._last_envelope: Optional[AuditEnvelope] = None
        self.last_slot = 0

        self.ledger_file = Path(ledger_path)
        self.ledger_file.parent.mkdir(parents=True, exist_ok=True)

        self._restore_state()

    def emit(self, record: SettlementRecord) -> None:
        self.append(record)

    def append(self, record: SettlementRecord) -> AuditEnvelope:
        """Sign and append one record. Returns the written envelope."""
        with self._lock:
            envelope = AuditEnvelope.create(
                signer_public_key= self.signer.public_key_hex,
                sequence=          self._sequence,
                payload=           record.to_dict(),
                prev=              self._last_envelope,
            ).sign(self.signer)

            self._write(envelope)

            self._sequence     += 1
            self._last_envelope = envelope
            self.last_slot      = max(self.last_slot, record.slot)

        logger.debug(
            "audit envelope %s written at sequence %d for purchase %s",
            envelope.record_id, envelope.sequence, record.purchase_id,
        )
        return envelope

    def get_stats(self) -> Dict[str, Any]:
        """Current chain state snapshot."""
        last = self._last_envelope
        return {
            "next_sequence":    self._sequence,
            "last_record_id":   last.record_id if last else None,
            "last_causal_hash": AuditEnvelope.chain_hash(last) if last else GENESIS_HASH,
            "ledger_file":      str(self.ledger_file),
            "signer":           self.signer.public_key_hex,
            "last_slot":        self.last_slot,
        }

    def _restore_state(self) -> None:
        """
        Continue the chain from the last line of an existing file.
        A corrupt last line leaves genesis state and issues a RuntimeWarning.
        """
        if not self.ledger_file.exists():
            return

        last_line = None
        with open(self.ledger_file, "r", encoding="utf-8") as f:
            for line in f:
                stripped = line.strip()
                if stripped:
                    last_line = stripped

        if not last_line:
            return

        try:
            envelope = AuditEnvelope.from_dict(json.loads(last_line))
            errors = envelope.validate_schema()
            if errors:
                raise ValueError(f"schema violation in last ledger line: {errors}")
        except (ValueError, KeyError, TypeError) as exc:
            logger.warning("could not restore audit chain from %s: %s", self.ledger_file, exc)
            warnings.warn(
                f"AuditLedger: could not restore state from {self.ledger_file}: {exc}. "
                "Run `splitledger verify` before appending.",
                RuntimeWarning,
                stacklevel=3,
            )
            return

        self._sequence      = envelope.sequence + 1
        self._last_envelope = envelope

        slot = envelope.payload.get("slot") if isinstance(envelope.payload, dict) else None
        if isinstance(slot, int) and not isinstance(slot, bool):
            self.last_slot = slot

    def _write(self, envelope: AuditEnvelope) -> None:
        try:
            with open(self.ledger_file, "a", encoding="utf-8") as f:
                f.write(json.dumps(envelope.to_dict()) + "\n")
        except OSError as exc:
            raise LedgerError(
                "audit ledger write failed",
                {"ledger": str(self.ledger_file), "cause": exc},
            ) from exc

"""
splitledger/ledger/replay.py

Audit replay: re-verify a settlement audit ledger from disk.

Checks, per envelope in file order:
    schema             — validate_schema() is clean
    sequence_gap       — sequence equals line position
    chain_break        — causal_hash matches the previous envelope
    invalid_signature  — Ed25519 signature verifies under signer_public_key
    duplicate_nonce    — no nonce repeats
    unbalanced         — creator_amount + platform_fee + referrer_fee == amount
    duplicate_purchase — no purchase_id is settled twice
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

from splitledger.core.models import SettlementRecord
from splitledger.ledger.envelope import AuditEnvelope


logger = logging.getLogger(__name__)


@dataclass
class AuditViolation:
    """A single detected violation in the audit ledger."""
    at_sequence:    int
    record_id:      str
    violation_type: str
    detail:         str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "at_sequence":    self.at_sequence,
            "record_id":      self.record_id,
            "violation_type": self.violation_type,
            "detail":         self.detail,
        }


@dataclass
class AuditSummary:
    total_entries:      int = 0
    valid_signatures:   int = 0
    invalid_signatures: int = 0
    chain_valid:        bool = True
    total_settled:      Dict[str, int] = field(default_factory=dict)
    signers:            List[str] = field(default_factory=list)
    violations:         List[AuditViolation] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.violations

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_entries":      self.total_entries,
            "valid_signatures":   self.valid_signatures,
            "invalid_signatures": self.invalid_signatures,
            "chain_valid":        self.chain_valid,
            "total_settled":      dict(self.total_settled),
            "signers":            list(self.signers),
            "valid":              self.is_valid,
            "violations":         [v.to_dict() for v in self.violations],
        }


class AuditReplay:
    """Loads an audit ledger and verifies it end to end."""

    def __init__(self) -> None:
        self.envelopes: List[AuditEnvelope] = []

    def load(self, path: Path) -> int:
        """
        Parse every non-empty line as an envelope.

        Raises:
            FileNotFoundError: path does not exist
            ValueError:        a line is not a JSON object or lacks required fields
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Audit ledger not found: {path}")

        self.envelopes = []
        with open(path, "r", encoding="utf-8") as f:
            for line_num, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue
                try:
                    data = json.loads(line)
                except json.JSONDecodeError as exc:
                    raise ValueError(f"Invalid JSON at line {line_num}: {exc}") from exc
                if not isinstance(data, dict):
                    raise ValueError(
                        f"Line {line_num} is a JSON {type(data).__name__}, expected an object"
                    )
                try:
                    self.envelopes.append(AuditEnvelope.from_dict(data))
                except KeyError as exc:
                    raise ValueError(f"Missing field {exc} at line {line_num}") from exc

        logger.debug("loaded %d audit envelopes from %s", len(self.envelopes), path)
        return len(self.envelopes)

    def records(self) -> List[SettlementRecord]:
        return [SettlementRecord.from_dict(env.payload) for env in self.envelopes]

    def verify(self) -> AuditSummary:
        summary = AuditSummary(total_entries=len(self.envelopes))
        seen_nonces:    Set[str] = set()
        seen_purchases: Set[str] = set()
        signers:        Set[str] = set()
        prev: Optional[AuditEnvelope] = None

        for position, env in enumerate(self.envelopes):

            def violation(kind: str, detail: str) -> None:
                summary.violations.append(
                    AuditViolation(
                        at_sequence=    env.sequence if isinstance(env.sequence, int) else position,
                        record_id=      str(env.record_id),
                        violation_type= kind,
                        detail=         detail,
                    )
                )

            for error in env.validate_schema():
                violation("schema", error)

            if env.sequence != position:
                violation("sequence_gap", f"expected sequence {position}, got {env.sequence}")

            if not env.verify_chain(prev):
                summary.chain_valid = False
                violation("chain_break", "causal_hash does not match previous envelope")

            if env.verify_signature():
                summary.valid_signatures += 1
            else:
                summary.invalid_signatures += 1
                violation("invalid_signature", "signature does not verify")

            if isinstance(env.nonce, str):
                if env.nonce in seen_nonces:
                    violation("duplicate_nonce", f"nonce {env.nonce} already used")
                seen_nonces.add(env.nonce)
            signers.add(str(env.signer_public_key))

            try:
                record = SettlementRecord.from_dict(env.payload)
            except (KeyError, ValueError, TypeError) as exc:
                violation("schema", f"payload is not a settlement record: {exc}")
                record = None

            bad_fields = _non_integer_amounts(record) if record is not None else []
            if bad_fields:
                violation("schema", f"payload amounts must be non-negative integers: {bad_fields}")
            elif record is not None:
                if not record.is_balanced():
                    violation(
                        "unbalanced",
                        f"shares sum to {record.creator_amount + record.platform_fee + record.referrer_fee}, "
                        f"amount is {record.amount}",
                    )
                purchase_id = str(record.purchase_id)
                if purchase_id in seen_purchases:
                    violation("duplicate_purchase", f"purchase {purchase_id} settled twice")
                seen_purchases.add(purchase_id)

                asset = str(record.mint or record.currency_kind.value)
                summary.total_settled[asset] = summary.total_settled.get(asset, 0) + record.amount

            prev = env

        summary.signers = sorted(signers)
        return summary


_AMOUNT_FIELDS = ("amount", "creator_amount", "platform_fee", "referrer_fee")


def _non_integer_amounts(record: SettlementRecord) -> List[str]:
    bad = []
    for name in _AMOUNT_FIELDS:
        value = getattr(record, name)
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            bad.append(name)
    return bad

"""
splitledger/ledger/envelope.py

AuditEnvelope — one line of the settlement audit ledger.

Signing
    bytes_signed = canonicalize(env.to_signing_dict())
    algorithm    = Ed25519, base64url without padding

Chain
    causal_hash  = SHA-256(canonicalize(prev.to_signing_dict()))
    first entry  = GENESIS_HASH ("0" * 64)
    The payload is inside the signed dict, so editing a settlement record
    breaks both its own signature and the next entry's causal_hash.

Timestamp
    YYYY-MM-DDTHH:MM:SS.mmmZ from audit_timestamp()

Nonce
    32 random hex characters. Uniqueness only; sequence gives order.
"""

import re
import secrets
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from splitledger.core.canonical import canonical_hash, canonicalize
from splitledger.core.crypto import AuditSigner
from splitledger.core.time import audit_timestamp


AUDIT_VERSION      = "1.0"
GENESIS_HASH       = "0" * 64
RECORD_SETTLEMENT  = "settlement"

_NONCE_HEX_LENGTH      = 32
_PUBLIC_KEY_HEX_LENGTH = 64

_TIMESTAMP_RE = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$")
_HEX_RE       = re.compile(r"^[0-9a-f]+$")


def _is_hex(value: Any, length: int) -> bool:
    return isinstance(value, str) and len(value) == length and bool(_HEX_RE.match(value))


@dataclass
class AuditEnvelope:
    """Signed, hash-chained wrapper around one settlement record payload."""

    version:           str
    record_id:         str
    record_type:       str
    signer_public_key: str
    sequence:          int
    nonce:             str
    timestamp:         str
    causal_hash:       str
    payload:           Dict[str, Any]
    signature:         Optional[str] = None

    @classmethod
    def create(
        cls,
        signer_public_key: str,
        sequence:          int,
        payload:           Dict[str, Any],
        prev:              Optional["AuditEnvelope"] = None,
        record_type:       str = RECORD_SETTLEMENT,
    ) -> "AuditEnvelope":
        """Create an unsigned envelope linked to prev. Call .sign() next."""
        if not isinstance(payload, dict):
            raise TypeError(f"payload must be dict, got {type(payload).__name__}")
        if not isinstance(sequence, int) or sequence < 0:
            raise ValueError(f"sequence must be non-negative int, got {sequence!r}")

        return cls(
            version=           AUDIT_VERSION,
            record_id=         f"stl-{uuid.uuid4()}",
            record_type=       record_type,
            signer_public_key= signer_public_key,
            sequence=          sequence,
            nonce=             secrets.token_hex(_NONCE_HEX_LENGTH // 2),
            timestamp=         audit_timestamp(),
            causal_hash=       cls.chain_hash(prev),
            payload=           payload,
            signature=         None,
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AuditEnvelope":
        """
        Deserialize a JSONL line. Trusts the stored data; callers run
        validate_schema() before relying on it.
        """
        return cls(
            version=           data["version"],
            record_id=         data["record_id"],
            record_type=       data["record_type"],
            signer_public_key= data["signer_public_key"],
            sequence=          data["sequence"],
            nonce=             data["nonce"],
            timestamp=         data["timestamp"],
            causal_hash=       data["causal_hash"],
            payload=           data.get("payload", {}),
            signature=         data.get("signature"),
        )

    def to_signing_dict(self) -> Dict[str, Any]:
        """Every field except the signature."""
        return {
            "causal_hash":       self.causal_hash,
            "nonce":             self.nonce,
            "payload":           self.payload,
            "record_id":         self.record_id,
            "record_type":       self.record_type,
            "sequence":          self.sequence,
            "signer_public_key": self.signer_public_key,
            "timestamp":         self.timestamp,
            "version":           self.version,
        }

    def to_dict(self) -> Dict[str, Any]:
        d = self.to_signing_dict()
        d["signature"] = self.signature
        return d

    def validate_schema(self) -> List[str]:
        """Return a list of schema errors. Empty means valid."""
        errors: List[str] = []

        if self.version != AUDIT_VERSION:
            errors.append(f"version: expected '{AUDIT_VERSION}', got '{self.version}'")
        if self.record_type != RECORD_SETTLEMENT:
            errors.append(f"record_type '{self.record_type}' is not '{RECORD_SETTLEMENT}'")
        if not isinstance(self.record_id, str) or not self.record_id.startswith("stl-"):
            errors.append(f"record_id must start with 'stl-', got {self.record_id!r}")
        if not _is_hex(self.signer_public_key, _PUBLIC_KEY_HEX_LENGTH):
            errors.append("signer_public_key must be 64 lowercase hex chars")
        if isinstance(self.sequence, bool) or not isinstance(self.sequence, int) or self.sequence < 0:
            errors.append(f"sequence must be non-negative int, got {self.sequence!r}")
        if not _is_hex(self.nonce, _NONCE_HEX_LENGTH):
            errors.append("nonce must be 32 lowercase hex chars")
        if not isinstance(self.timestamp, str) or not _TIMESTAMP_RE.match(self.timestamp):
            errors.append(
                f"timestamp {self.timestamp!r} does not match YYYY-MM-DDTHH:MM:SS.mmmZ"
            )
        if not _is_hex(self.causal_hash, 64):
            errors.append("causal_hash must be 64 lowercase hex chars")
        if not isinstance(self.payload, dict):
            errors.append(f"payload must be dict, got {type(self.payload).__name__}")

        return errors

    @staticmethod
    def chain_hash(prev: Optional["AuditEnvelope"]) -> str:
        """causal_hash an entry must carry when it follows prev."""
        if prev is None:
            return GENESIS_HASH
        return canonical_hash(prev.to_signing_dict())

    def sign(self, signer: AuditSigner) -> "AuditEnvelope":
        """Sign in place and return self."""
        self.signature = signer.sign(canonicalize(self.to_signing_dict()))
        return self

    def verify_signature(self) -> bool:
        if not self.signature:
            return False
        return AuditSigner.verify_detached(
            canonicalize(self.to_signing_dict()),
            self.signature,
            self.signer_public_key,
        )

    def verify_chain(self, prev: Optional["AuditEnvelope"]) -> bool:
        return self.causal_hash == AuditEnvelope.chain_hash(prev)

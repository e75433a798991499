"""
splitledger: Canonical JSON Encoding (RFC 8785 / JCS)

Every signature and chain hash over an audit envelope goes through this
module, so that any reader re-deriving them gets identical bytes.

RFC 8785: https://www.rfc-editor.org/rfc/rfc8785
"""

import hashlib

import jcs


def canonicalize(obj: dict) -> bytes:
    """
    Encode a dict to RFC 8785 canonical JSON bytes.

    Output is deterministic regardless of key insertion order.
    Values must be JSON primitives. Settlement records are converted with
    SettlementRecord.to_dict() before they reach this function.
    """
    return jcs.canonicalize(obj)


def canonical_hash(obj: dict) -> str:
    """Lowercase hex SHA-256 of the canonical form (64 characters)."""
    return hashlib.sha256(canonicalize(obj)).hexdigest()

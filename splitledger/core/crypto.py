"""
splitledger/core/crypto.py

Ed25519 signing for audit envelopes.

    public_key_hex        : @property, 64-char lowercase hex
    sign(data)            : bytes -> base64url str, no padding
    verify_detached(...)  : @staticmethod, needs only the signer's public key hex

Replay verifies envelopes with verify_detached(), since an envelope stores
only the signer's public key, never a private key.
"""

import base64
from pathlib import Path

from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
    load_pem_private_key,
)


class AuditSigner:
    """Holds the operator's Ed25519 key used to sign settlement envelopes."""

    def __init__(self, private_key: Ed25519PrivateKey) -> None:
        self._private_key = private_key
        self._public_key_hex: str = (
            private_key.public_key()
            .public_bytes(Encoding.Raw, PublicFormat.Raw)
            .hex()
        )

    @classmethod
    def generate(cls) -> "AuditSigner":
        return cls(Ed25519PrivateKey.generate())

    @classmethod
    def from_file(cls, path: Path) -> "AuditSigner":
        """
        Load a PEM-encoded Ed25519 private key.
        Raises FileNotFoundError if missing, ValueError if not Ed25519.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Key file not found: {path}")
        try:
            private_key = load_pem_private_key(path.read_bytes(), password=None)
        except Exception as exc:
            raise ValueError(f"Failed to load signing key from {path}: {exc}") from exc
        if not isinstance(private_key, Ed25519PrivateKey):
            raise ValueError(f"Key file {path} does not contain an Ed25519 private key")
        return cls(private_key)

    @classmethod
    def load_or_create(cls, path: Path) -> "AuditSigner":
        """Load the key at path, generating and saving a new one if absent."""
        path = Path(path)
        if path.exists():
            return cls.from_file(path)
        signer = cls.generate()
        signer.save(path)
        return signer

    @property
    def public_key_hex(self) -> str:
        return self._public_key_hex

    def sign(self, data: bytes) -> str:
        """Sign data. Returns base64url without '=' padding (86 chars)."""
        raw_sig = self._private_key.sign(data)
        return base64.urlsafe_b64encode(raw_sig).rstrip(b"=").decode("ascii")

    @staticmethod
    def verify_detached(data: bytes, signature_b64: str, public_key_hex: str) -> bool:
        """
        Verify a signature against a public key hex string.

        Returns False for any failure (wrong key, bad encoding, tampered
        data). Never raises.
        """
        try:
            if not isinstance(public_key_hex, str) or len(public_key_hex) != 64:
                return False
            pub = Ed25519PublicKey.from_public_bytes(bytes.fromhex(public_key_hex))

            padded_sig = signature_b64 + "=" * (-len(signature_b64) % 4)
            raw_sig    = base64.urlsafe_b64decode(padded_sig)
            if len(raw_sig) != 64:
                return False

            pub.verify(raw_sig, data)
            return True
        except Exception:
            return False

    def save(self, path: Path) -> None:
        """Write the private key as PKCS8 PEM, creating parent directories."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        pem = self._private_key.private_bytes(
            encoding=             Encoding.PEM,
            format=               PrivateFormat.PKCS8,
            encryption_algorithm= NoEncryption(),
        )
        path.write_bytes(pem)

    def __repr__(self) -> str:
        return f"AuditSigner(public_key_hex={self._public_key_hex[:16]}...)"

"""Local Ed25519 identities.

An identity's address is ``0x`` followed by the last 20 bytes of the
SHA-256 digest of its raw public key. Members prove they own an address
by signing decryption requests with the matching private key.
"""

from __future__ import annotations

import hashlib
import os
from dataclasses import dataclass
from pathlib import Path

from cryptography.exceptions import InvalidSignature
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

from ..core.exceptions import InvalidInputError, StoreException

ADDRESS_BYTES = 20


def _public_key_bytes(pub: Ed25519PublicKey) -> bytes:
    """Extract raw 32-byte public key."""
    return pub.public_bytes(Encoding.Raw, PublicFormat.Raw)


def address_from_public_key(public_key: bytes) -> str:
    """Derive the 0x address for a raw Ed25519 public key."""
    digest = hashlib.sha256(public_key).digest()
    return "0x" + digest[-ADDRESS_BYTES:].hex()


def decryption_statement(handle: str, identity: str) -> bytes:
    """Bytes a member signs to ask the engine for a secret."""
    return f"secretline-decrypt|{handle}|{identity}".encode()


@dataclass(frozen=True)
class DecryptionProof:
    """Evidence that the requester controls the identity's key."""

    public_key: bytes
    signature: bytes

    def verify(self, handle: str, identity: str) -> bool:
        """True when the key matches identity and the signature covers the request."""
        if address_from_public_key(self.public_key) != identity:
            return False
        try:
            pub = Ed25519PublicKey.from_public_bytes(self.public_key)
            pub.verify(self.signature, decryption_statement(handle, identity))
        except (InvalidSignature, ValueError):
            return False
        return True


class LocalIdentity:
    """An Ed25519 key pair acting as a line member."""

    def __init__(self, private_key: Ed25519PrivateKey | None = None) -> None:
        self._private_key = private_key or Ed25519PrivateKey.generate()
        self.public_key = _public_key_bytes(self._private_key.public_key())
        self.address = address_from_public_key(self.public_key)

    def __repr__(self) -> str:
        return f"LocalIdentity({self.address})"

    def prove(self, handle: str) -> DecryptionProof:
        """Sign a decryption request for handle."""
        signature = self._private_key.sign(decryption_statement(handle, self.address))
        return DecryptionProof(public_key=self.public_key, signature=signature)

    def to_pem(self) -> bytes:
        return self._private_key.private_bytes(Encoding.PEM, PrivateFormat.PKCS8, NoEncryption())

    @classmethod
    def from_pem(cls, data: bytes) -> LocalIdentity:
        try:
            key = load_pem_private_key(data, password=None)
        except ValueError as e:
            raise InvalidInputError(f"Invalid identity key: {e}", field="key") from e
        if not isinstance(key, Ed25519PrivateKey):
            raise InvalidInputError("Identity key is not an Ed25519 key", field="key")
        return cls(key)

    def save(self, path: Path) -> None:
        """Write the private key as PEM, readable only by the owner."""
        path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "wb") as f:
            f.write(self.to_pem())

    @classmethod
    def load(cls, path: Path) -> LocalIdentity:
        try:
            data = path.read_bytes()
        except OSError as e:
            raise StoreException(f"Cannot read identity key: {e}", path=str(path)) from e
        return cls.from_pem(data)

    @classmethod
    def load_or_create(cls, path: Path) -> LocalIdentity:
        if path.exists():
            return cls.load(path)
        identity = cls()
        identity.save(path)
        return identity

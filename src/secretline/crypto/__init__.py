"""Cryptographic collaborators for Secretline.

This package provides the pieces that live outside the access-control core:
- cipher: placeholder XOR cipher for message bodies
- identity: Ed25519 member identities and decryption proofs
- engine: in-process confidential engine holding secret values
"""

from secretline.crypto.cipher import (
    decrypt,
    decrypt_message,
    encrypt,
    encrypt_message,
    from_hex,
    to_hex,
)
from secretline.crypto.engine import LocalConfidentialEngine
from secretline.crypto.identity import (
    DecryptionProof,
    LocalIdentity,
    address_from_public_key,
)

__all__ = [
    # Cipher
    "encrypt",
    "decrypt",
    "encrypt_message",
    "decrypt_message",
    "to_hex",
    "from_hex",
    # Identity
    "LocalIdentity",
    "DecryptionProof",
    "address_from_public_key",
    # Engine
    "LocalConfidentialEngine",
]

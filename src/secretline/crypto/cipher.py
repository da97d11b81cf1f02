"""Placeholder symmetric cipher for message bodies.

Each byte is XORed with one byte of the line secret, taken little-endian
and cycled every four bytes: byte ``i`` uses ``(secret >> ((i % 4) * 8)) & 0xff``.
Encryption and decryption are the same operation.

This is not an authenticated or semantically secure cipher. It keeps the
wire format of existing lines readable; the access-control core never
depends on which cipher clients use.

Ciphertexts travel as ``0x``-prefixed lowercase hex text.
"""

from __future__ import annotations

from itertools import cycle

from ..core.config import SECRET_UPPER_BOUND
from ..core.exceptions import InvalidInputError

HEX_PREFIX = "0x"


def keystream(secret: int) -> bytes:
    """The 4-byte little-endian keystream block for secret."""
    if not 0 <= secret < SECRET_UPPER_BOUND:
        raise InvalidInputError("Secret must fit in 32 bits", field="secret")
    return secret.to_bytes(4, "little")


def xor_bytes(data: bytes, secret: int) -> bytes:
    block = keystream(secret)
    return bytes(b ^ k for b, k in zip(data, cycle(block)))


def encrypt(secret: int, plaintext: bytes) -> bytes:
    return xor_bytes(plaintext, secret)


def decrypt(secret: int, ciphertext: bytes) -> bytes:
    return xor_bytes(ciphertext, secret)


def to_hex(data: bytes) -> str:
    return HEX_PREFIX + data.hex()


def from_hex(text: str) -> bytes:
    """Parse 0x-prefixed (or bare) hex text.

    Raises:
        InvalidInputError: If text is not valid hex.
    """
    body = text[len(HEX_PREFIX):] if text.lower().startswith(HEX_PREFIX) else text
    try:
        return bytes.fromhex(body)
    except ValueError as e:
        raise InvalidInputError(f"Not a hex ciphertext: {e}", field="ciphertext") from e


def encrypt_message(plaintext: str, secret: int) -> str:
    """Encrypt UTF-8 text into a hex ciphertext."""
    return to_hex(encrypt(secret, plaintext.encode("utf-8")))


def decrypt_message(ciphertext: str, secret: int) -> str:
    """Decrypt a hex ciphertext back to text.

    Raises:
        InvalidInputError: If ciphertext is not hex or does not decode as UTF-8
            (usually a wrong secret).
    """
    data = decrypt(secret, from_hex(ciphertext))
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise InvalidInputError("Decrypted bytes are not UTF-8 text", field="ciphertext") from e

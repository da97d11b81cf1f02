"""In-process stand-in for the confidential-computation engine.

Holds secret values keyed by random handles, records decrypt
capabilities, and discloses a secret only to an identity that holds a
capability and signs the request. Suitable for tests, demos and the CLI;
production deployments plug in a real engine behind the same interface.
"""

from __future__ import annotations

import logging
import secrets
import threading
from typing import Any

from ..core.exceptions import ForbiddenError, InvalidInputError, NotFoundError
from ..core.models import SecretHandle
from .identity import DecryptionProof

logger = logging.getLogger(__name__)

HANDLE_BYTES = 32


def new_handle() -> SecretHandle:
    return SecretHandle("0x" + secrets.token_hex(HANDLE_BYTES))


class LocalConfidentialEngine:
    """Engine keeping secrets in memory.

    Args:
        require_proof: When False, decrypt() only checks the capability.
            Handy for tests that do not care about key ownership.
    """

    def __init__(self, require_proof: bool = True) -> None:
        self.require_proof = require_proof
        self._values: dict[str, int] = {}
        self._capabilities: dict[str, set[str]] = {}
        self._lock = threading.Lock()

    def generate_secret(self, domain_min: int, domain_max: int) -> SecretHandle:
        """Draw a uniform value from [domain_min, domain_max] and return its handle."""
        if domain_min > domain_max:
            raise InvalidInputError("Empty secret domain", field="domain")
        value = domain_min + secrets.randbelow(domain_max - domain_min + 1)
        with self._lock:
            handle = new_handle()
            while handle in self._values:
                handle = new_handle()
            self._values[handle] = value
            self._capabilities[handle] = set()
        return handle

    def grant_decrypt_capability(self, handle: SecretHandle, identity: str) -> None:
        with self._lock:
            if handle not in self._capabilities:
                raise NotFoundError("Secret", handle)
            self._capabilities[handle].add(identity)

    def discard_secret(self, handle: SecretHandle) -> None:
        """Forget a value whose line was rolled back. Unknown handles are ignored."""
        with self._lock:
            self._values.pop(handle, None)
            self._capabilities.pop(handle, None)

    def can_decrypt(self, handle: SecretHandle, identity: str) -> bool:
        with self._lock:
            return identity in self._capabilities.get(handle, set())

    def decrypt(self, handle: SecretHandle, identity: str, proof: DecryptionProof | None = None) -> int:
        """Disclose a secret to a capable identity.

        Raises:
            NotFoundError: If handle is unknown.
            ForbiddenError: If identity has no capability or the proof fails.
        """
        with self._lock:
            if handle not in self._values:
                raise NotFoundError("Secret", handle)
            capable = identity in self._capabilities[handle]
            value = self._values[handle]

        if not capable:
            logger.warning("Refused decryption of %s for %s: no capability", handle, identity)
            raise ForbiddenError(f"{identity} has no decrypt capability for this secret", identity=identity)
        if self.require_proof and (proof is None or not proof.verify(handle, identity)):
            logger.warning("Refused decryption of %s for %s: invalid proof", handle, identity)
            raise ForbiddenError("Decryption proof rejected", identity=identity)
        return value

    def to_dict(self) -> dict[str, Any]:
        with self._lock:
            return {
                "require_proof": self.require_proof,
                "secrets": {
                    handle: {"value": value, "capabilities": sorted(self._capabilities[handle])}
                    for handle, value in self._values.items()
                },
            }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LocalConfidentialEngine:
        engine = cls(require_proof=data.get("require_proof", True))
        for handle, entry in data.get("secrets", {}).items():
            engine._values[handle] = int(entry["value"])
            engine._capabilities[handle] = set(entry.get("capabilities", []))
        return engine

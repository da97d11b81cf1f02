"""Secret vault: one opaque secret handle per line.

The vault never sees a secret value. It asks the confidential engine to
generate one, keeps the handle the engine returns, and forwards capability
grants for members. Decryption happens directly between a member and the
engine, outside this process's control flow.
"""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

from .config import DEFAULT_SECRET_MAX, DEFAULT_SECRET_MIN
from .exceptions import AlreadyInitializedError, NotFoundError, SecretlineException
from .models import SecretHandle

logger = logging.getLogger(__name__)


@runtime_checkable
class ConfidentialEngine(Protocol):
    """Interface of the external confidential-computation engine."""

    def generate_secret(self, domain_min: int, domain_max: int) -> SecretHandle:
        """Generate a value uniformly in [domain_min, domain_max] and return its handle."""
        ...

    def grant_decrypt_capability(self, handle: SecretHandle, identity: str) -> None:
        """Allow identity to request decryption of handle. Idempotent."""
        ...

    def decrypt(self, handle: SecretHandle, identity: str, proof: object) -> int:
        """Disclose the secret to a member who proves its identity."""
        ...


class SecretVault:
    """Per-line secret handles and the identities granted access to them."""

    def __init__(
        self,
        engine: ConfidentialEngine,
        domain: tuple[int, int] = (DEFAULT_SECRET_MIN, DEFAULT_SECRET_MAX),
    ) -> None:
        self.engine = engine
        self.domain = domain
        self._handles: dict[int, SecretHandle] = {}
        self._grants: dict[int, set[str]] = {}
        self._bound: set[str] = set()

    def issue_secret(self, line_id: int) -> SecretHandle:
        """Have the engine generate the line's secret and store its handle.

        Raises:
            AlreadyInitializedError: If the line already has a secret.
        """
        if line_id in self._handles:
            raise AlreadyInitializedError(line_id)

        handle = SecretHandle(self.engine.generate_secret(*self.domain))
        if handle in self._bound:
            raise SecretlineException(
                "Engine returned a handle already bound to another line",
                {"line_id": line_id},
            )
        self._handles[line_id] = handle
        self._bound.add(handle)
        self._grants[line_id] = set()
        logger.debug("Issued secret handle for line %d", line_id)
        return handle

    def grant_access(self, line_id: int, identity: str) -> None:
        """Register identity as allowed to decrypt the line's secret.

        A repeated grant for the same identity does nothing.

        Raises:
            NotFoundError: If the line has no secret.
        """
        handle = self.get_secret_handle(line_id)
        granted = self._grants[line_id]
        if identity in granted:
            return
        self.engine.grant_decrypt_capability(handle, identity)
        granted.add(identity)
        logger.debug("Granted decrypt capability on line %d to %s", line_id, identity)

    def get_secret_handle(self, line_id: int) -> SecretHandle:
        """Return the line's opaque handle.

        Raises:
            NotFoundError: If the line has no secret.
        """
        handle = self._handles.get(line_id)
        if handle is None:
            raise NotFoundError("Line", line_id)
        return handle

    def has_access(self, line_id: int, identity: str) -> bool:
        if line_id not in self._handles:
            raise NotFoundError("Line", line_id)
        return identity in self._grants[line_id]

    def grants(self, line_id: int) -> set[str]:
        if line_id not in self._handles:
            raise NotFoundError("Line", line_id)
        return set(self._grants[line_id])

    def discard(self, line_id: int) -> None:
        """Drop a staged secret whose line never committed.

        Engines exposing discard_secret() also drop the value.
        """
        handle = self._handles.pop(line_id, None)
        if handle is not None:
            self._bound.discard(handle)
            forget = getattr(self.engine, "discard_secret", None)
            if forget is not None:
                forget(handle)
        self._grants.pop(line_id, None)

    def restore(self, line_id: int, handle: SecretHandle, grants: set[str]) -> None:
        """Load a previously issued handle without calling the engine.

        Raises:
            AlreadyInitializedError: If the line already has a secret.
            SecretlineException: If the handle is already bound to another line.
        """
        if line_id in self._handles:
            raise AlreadyInitializedError(line_id)
        if handle in self._bound:
            raise SecretlineException(
                f"Secret handle for line {line_id} is already bound to another line",
                {"line_id": line_id},
            )
        self._handles[line_id] = SecretHandle(handle)
        self._bound.add(handle)
        self._grants[line_id] = set(grants)

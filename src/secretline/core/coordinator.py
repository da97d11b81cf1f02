# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Access-control coordinator: the public surface of a line store.

Every mutating operation (create, join, post) runs as one indivisible unit
under a single writer lock, checks all of its preconditions before calling
the engine or writing state, and publishes exactly one event once it has
committed. Reads take no lock. They always consult the directory first,
and a line is only published to the directory after its secret, creator
membership and message log exist, so a read never sees half a line.

Usage:
    from secretline.core import LineCoordinator
    from secretline.crypto import LocalConfidentialEngine

    coordinator = LineCoordinator(LocalConfidentialEngine())
    line_id = coordinator.create_line("Night Shift", creator="0xalice")
    coordinator.join_line(line_id, "0xbob")
    coordinator.send_message(line_id, "0xalice", "0xdeadbeef")
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

from .config import get_config
from .directory import LineDirectory
from .events import EventBus, LineCreated, LineJoined, MessageSent
from .exceptions import AlreadyMemberError, ForbiddenError, InvalidInputError
from .ledger import MessageLedger
from .logging import correlation_context, get_correlation_id, operation_logger
from .models import LineInfo, MembershipRecord, Message, SecretHandle
from .registry import MembershipRegistry
from .vault import ConfidentialEngine, SecretVault

logger = logging.getLogger(__name__)


class LineCoordinator:
    """Orchestrates the line directory, membership registry, secret vault and message ledger.

    Args:
        engine: Confidential engine that owns the secret values.
        domain: (min, max) secret domain. Defaults to the configured domain.
        events: Event bus to publish to. A private bus is created if omitted.
        directory, registry, vault, ledger: Pre-built state handles, for
            restoring a snapshot or sharing state in tests.
    """

    def __init__(
        self,
        engine: ConfidentialEngine,
        *,
        domain: tuple[int, int] | None = None,
        events: EventBus | None = None,
        directory: LineDirectory | None = None,
        registry: MembershipRegistry | None = None,
        vault: SecretVault | None = None,
        ledger: MessageLedger | None = None,
    ) -> None:
        self.engine = engine
        self.events = events or EventBus()
        self.directory = directory or LineDirectory()
        self.registry = registry or MembershipRegistry()
        self.vault = vault or SecretVault(engine, domain or get_config().secret_domain)
        self.ledger = ledger or MessageLedger(self.registry)
        self._write_lock = threading.RLock()

    @contextmanager
    def _operation(self, operation: str, **arguments: Any) -> Generator[None, None, None]:
        """Serialize a mutation and log its outcome under one correlation id."""
        with correlation_context(get_correlation_id()), self._write_lock:
            operation_logger.log_call(operation, arguments)
            try:
                yield
            except Exception as e:
                operation_logger.log_result(operation, False, error=type(e).__name__)
                raise
            operation_logger.log_result(operation, True)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create_line(self, name: str, creator: str) -> int:
        """Create a line with a fresh secret and its creator as sole member.

        Returns:
            The new line id.

        Raises:
            InvalidInputError: If name or creator is empty.
        """
        with self._operation("create_line", name=name, creator=creator):
            line = self.directory.reserve(name, creator)
            try:
                self.vault.issue_secret(line.id)
                self.registry.seed(line.id, creator, joined_at=line.created_at)
                self.ledger.open(line.id)
                self.vault.grant_access(line.id, creator)
            except Exception:
                logger.warning("Rolling back staged line %d", line.id)
                self.ledger.discard(line.id)
                self.registry.discard(line.id)
                self.vault.discard(line.id)
                raise
            line_id = self.directory.commit(line)
            logger.info("Line %d created by %s", line_id, creator)
            self.events.publish(LineCreated(line_id=line_id, creator=creator, name=name))
        return line_id

    def join_line(self, line_id: int, identity: str) -> MembershipRecord:
        """Add identity to a line and grant it decrypt capability.

        Raises:
            NotFoundError: If the line does not exist.
            AlreadyMemberError: If identity is already a member.
            InvalidInputError: If identity is empty.
        """
        with self._operation("join_line", line_id=line_id, identity=identity):
            if not identity:
                raise InvalidInputError("Identity must not be empty", field="identity")
            self.directory.require(line_id)
            if self.registry.is_member(line_id, identity):
                raise AlreadyMemberError(line_id, identity)
            # Engine grant first: a refused grant leaves membership untouched.
            self.vault.grant_access(line_id, identity)
            record = self.registry.add_member(line_id, identity)
            logger.info("%s joined line %d", identity, line_id)
            self.events.publish(LineJoined(line_id=line_id, identity=identity))
        return record

    def send_message(self, line_id: int, sender: str, ciphertext: str) -> int:
        """Append an encrypted message posted by a member.

        Returns:
            The message's sequence number within the line.

        Raises:
            NotFoundError: If the line does not exist.
            ForbiddenError: If sender is not a member.
            InvalidInputError: If ciphertext is empty.
        """
        with self._operation("send_message", line_id=line_id, sender=sender, ciphertext=ciphertext):
            self.directory.require(line_id)
            if not self.registry.is_member(line_id, sender):
                raise ForbiddenError(f"{sender} is not a member of line {line_id}", line_id=line_id, identity=sender)
            message_id = self.ledger.append(line_id, sender, ciphertext)
            logger.info("Message %d posted to line %d by %s", message_id, line_id, sender)
            self.events.publish(MessageSent(line_id=line_id, message_id=message_id, sender=sender))
        return message_id

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def line_count(self) -> int:
        return self.directory.line_count()

    def get_line(self, line_id: int) -> LineInfo:
        """Snapshot of a line's metadata, member count and secret handle.

        Raises:
            NotFoundError: If the line does not exist.
        """
        line = self.directory.get_line(line_id)
        return LineInfo(
            id=line.id,
            name=line.name,
            creator=line.creator,
            created_at=line.created_at,
            member_count=self.registry.member_count(line_id),
            secret_handle=self.vault.get_secret_handle(line_id),
        )

    def list_lines(self) -> list[LineInfo]:
        return [self.get_line(line.id) for line in self.directory.lines()]

    def is_member(self, line_id: int, identity: str) -> bool:
        self.directory.require(line_id)
        return self.registry.is_member(line_id, identity)

    def members(self, line_id: int) -> list[MembershipRecord]:
        self.directory.require(line_id)
        return self.registry.members(line_id)

    def lines_for(self, identity: str) -> list[int]:
        """Committed lines identity belongs to."""
        return [line_id for line_id in self.registry.lines_for(identity) if self.directory.exists(line_id)]

    def secret_handle(self, line_id: int) -> SecretHandle:
        self.directory.require(line_id)
        return self.vault.get_secret_handle(line_id)

    def has_access(self, line_id: int, identity: str) -> bool:
        self.directory.require(line_id)
        return self.vault.has_access(line_id, identity)

    def get_message(self, line_id: int, message_id: int) -> Message:
        """Raises NotFoundError for an unknown line or out-of-range message id."""
        self.directory.require(line_id)
        return self.ledger.get(line_id, message_id)

    def message_count(self, line_id: int) -> int:
        self.directory.require(line_id)
        return self.ledger.count(line_id)

    def messages(self, line_id: int, start: int = 0, limit: int | None = None) -> list[Message]:
        self.directory.require(line_id)
        return self.ledger.page(line_id, start, limit)

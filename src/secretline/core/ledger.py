"""Message ledger: append-only encrypted log per line.

Posting is gated on live membership. The ledger asks the registry at
append time rather than caching anything, so it always reflects the
current member set.
"""

from __future__ import annotations

import logging
from datetime import datetime

from .exceptions import AlreadyInitializedError, ForbiddenError, InvalidInputError, NotFoundError
from .models import Message, utcnow
from .registry import MembershipRegistry

logger = logging.getLogger(__name__)


class MessageLedger:
    """Append-only message vectors keyed by line id. Ids start at 0."""

    def __init__(self, registry: MembershipRegistry) -> None:
        self.registry = registry
        self._messages: dict[int, list[Message]] = {}

    def _line(self, line_id: int) -> list[Message]:
        messages = self._messages.get(line_id)
        if messages is None:
            raise NotFoundError("Line", line_id)
        return messages

    def open(self, line_id: int) -> None:
        """Create the empty log for a new line."""
        if line_id in self._messages:
            raise AlreadyInitializedError(line_id, "Message log")
        self._messages[line_id] = []

    def append(self, line_id: int, sender: str, ciphertext: str, timestamp: datetime | None = None) -> int:
        """Append an encrypted entry and return its sequence number.

        Raises:
            NotFoundError: If the line is unknown.
            ForbiddenError: If sender is not currently a member.
            InvalidInputError: If ciphertext is empty.
        """
        messages = self._line(line_id)
        if not self.registry.is_member(line_id, sender):
            raise ForbiddenError(f"{sender} is not a member of line {line_id}", line_id=line_id, identity=sender)
        if not ciphertext:
            raise InvalidInputError("Encrypted message must not be empty", field="ciphertext")

        message = Message(
            line_id=line_id,
            id=len(messages),
            sender=sender,
            ciphertext=ciphertext,
            timestamp=timestamp or utcnow(),
        )
        messages.append(message)
        return message.id

    def get(self, line_id: int, message_id: int) -> Message:
        """Fetch one entry.

        Raises:
            NotFoundError: If the line is unknown or message_id is out of range.
        """
        messages = self._line(line_id)
        if message_id < 0 or message_id >= len(messages):
            raise NotFoundError("Message", f"{line_id}/{message_id}")
        return messages[message_id]

    def count(self, line_id: int) -> int:
        return len(self._line(line_id))

    def page(self, line_id: int, start: int = 0, limit: int | None = None) -> list[Message]:
        """Entries from start (inclusive), at most limit of them, in order."""
        messages = self._line(line_id)
        if start < 0:
            raise InvalidInputError("start must not be negative", field="start", value=start)
        if limit is not None and limit < 0:
            raise InvalidInputError("limit must not be negative", field="limit", value=limit)
        end = None if limit is None else start + limit
        return messages[start:end]

    def discard(self, line_id: int) -> None:
        self._messages.pop(line_id, None)

    def restore(self, line_id: int, messages: list[Message]) -> None:
        """Load stored entries, which must be numbered 0..n-1 in order.

        The line's member set must be restored first: every sender has to
        be one of its members.
        """
        if line_id in self._messages:
            raise AlreadyInitializedError(line_id, "Message log")
        for expected, message in enumerate(messages):
            if message.id != expected or message.line_id != line_id:
                raise InvalidInputError(
                    f"Stored message {message.line_id}/{message.id} out of sequence",
                    field="messages",
                )
            if not self.registry.is_member(line_id, message.sender):
                raise ForbiddenError(
                    f"Stored message {line_id}/{message.id} was sent by non-member {message.sender}",
                    line_id=line_id,
                    identity=message.sender,
                )
        self._messages[line_id] = list(messages)

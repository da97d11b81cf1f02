"""Membership registry: who belongs to which line.

Membership only grows. A line's member set is opened by ``seed`` with the
creator as its first record; ``add_member`` is the only other mutation.
"""

from __future__ import annotations

import logging
from datetime import datetime

from .exceptions import AlreadyInitializedError, AlreadyMemberError, NotFoundError
from .models import MembershipRecord, MembershipStatus, utcnow

logger = logging.getLogger(__name__)


class MembershipRegistry:
    """Per-line membership records keyed by identity, in join order."""

    def __init__(self) -> None:
        self._members: dict[int, dict[str, MembershipRecord]] = {}

    def _line(self, line_id: int) -> dict[str, MembershipRecord]:
        members = self._members.get(line_id)
        if members is None:
            raise NotFoundError("Line", line_id)
        return members

    def seed(self, line_id: int, creator: str, joined_at: datetime | None = None) -> MembershipRecord:
        """Open the member set for a new line with its creator."""
        if line_id in self._members:
            raise AlreadyInitializedError(line_id, "Member set")
        record = MembershipRecord(line_id=line_id, identity=creator, ordinal=0, joined_at=joined_at or utcnow())
        self._members[line_id] = {creator: record}
        return record

    def add_member(self, line_id: int, identity: str) -> MembershipRecord:
        """Insert a membership record.

        Raises:
            NotFoundError: If the line is unknown.
            AlreadyMemberError: If identity already holds a record.
        """
        members = self._line(line_id)
        if identity in members:
            raise AlreadyMemberError(line_id, identity)
        record = MembershipRecord(line_id=line_id, identity=identity, ordinal=len(members))
        members[identity] = record
        logger.debug("Added %s to line %d (member #%d)", identity, line_id, record.ordinal + 1)
        return record

    def is_member(self, line_id: int, identity: str) -> bool:
        record = self._line(line_id).get(identity)
        return record is not None and record.status == MembershipStatus.ACTIVE

    def membership(self, line_id: int, identity: str) -> MembershipRecord | None:
        return self._line(line_id).get(identity)

    def member_count(self, line_id: int) -> int:
        return len(self._line(line_id))

    def members(self, line_id: int) -> list[MembershipRecord]:
        """Membership records in join order."""
        return list(self._line(line_id).values())

    def lines_for(self, identity: str) -> list[int]:
        """Ids of every line identity belongs to, ascending."""
        return sorted(line_id for line_id, members in list(self._members.items()) if identity in members)

    def discard(self, line_id: int) -> None:
        """Drop a staged member set whose line never committed."""
        self._members.pop(line_id, None)

    def restore(self, line_id: int, records: list[MembershipRecord]) -> None:
        """Load stored records for a line in join order."""
        if line_id in self._members:
            raise AlreadyInitializedError(line_id, "Member set")
        self._members[line_id] = {record.identity: record for record in records}

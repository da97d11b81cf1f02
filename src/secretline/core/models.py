"""Data model for lines, memberships, messages and secret handles."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any


def utcnow() -> datetime:
    return datetime.now(UTC)


class SecretHandle(str):
    """Opaque reference to a secret held by the confidential engine.

    The handle is an identifier, never the secret itself. It is a str
    subclass so it serialises as plain text, but its repr marks it as a
    handle to keep it apart from ordinary strings in logs.
    """

    __slots__ = ()

    def __repr__(self) -> str:
        return f"SecretHandle({str.__repr__(self)})"


class LineStatus(str, Enum):
    """Lifecycle state of a line. Lines never leave ACTIVE."""

    ACTIVE = "active"


class MembershipStatus(str, Enum):
    """Status tag on a membership record.

    Only ACTIVE exists today; records are never removed, so a future
    revocation becomes a new tag rather than a deletion.
    """

    ACTIVE = "active"


@dataclass(frozen=True)
class Line:
    """Directory entry for a line (metadata only)."""

    id: int
    name: str
    creator: str
    created_at: datetime = field(default_factory=utcnow)
    status: LineStatus = LineStatus.ACTIVE

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "creator": self.creator,
            "created_at": self.created_at.isoformat(),
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Line:
        return cls(
            id=int(data["id"]),
            name=data["name"],
            creator=data["creator"],
            created_at=datetime.fromisoformat(data["created_at"]),
            status=LineStatus(data.get("status", "active")),
        )


@dataclass(frozen=True)
class LineInfo:
    """Read-only snapshot of a line as served by the public read surface."""

    id: int
    name: str
    creator: str
    created_at: datetime
    member_count: int
    secret_handle: SecretHandle

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "creator": self.creator,
            "created_at": self.created_at.isoformat(),
            "member_count": self.member_count,
            "secret_handle": str(self.secret_handle),
        }


@dataclass(frozen=True)
class MembershipRecord:
    """One identity's membership in one line."""

    line_id: int
    identity: str
    ordinal: int
    joined_at: datetime = field(default_factory=utcnow)
    status: MembershipStatus = MembershipStatus.ACTIVE

    def to_dict(self) -> dict[str, Any]:
        return {
            "line_id": self.line_id,
            "identity": self.identity,
            "ordinal": self.ordinal,
            "joined_at": self.joined_at.isoformat(),
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MembershipRecord:
        return cls(
            line_id=int(data["line_id"]),
            identity=data["identity"],
            ordinal=int(data["ordinal"]),
            joined_at=datetime.fromisoformat(data["joined_at"]),
            status=MembershipStatus(data.get("status", "active")),
        )


@dataclass(frozen=True)
class Message:
    """An immutable entry in a line's message ledger."""

    line_id: int
    id: int
    sender: str
    ciphertext: str
    timestamp: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "line_id": self.line_id,
            "id": self.id,
            "sender": self.sender,
            "ciphertext": self.ciphertext,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Message:
        return cls(
            line_id=int(data["line_id"]),
            id=int(data["id"]),
            sender=data["sender"],
            ciphertext=data["ciphertext"],
            timestamp=datetime.fromisoformat(data["timestamp"]),
        )

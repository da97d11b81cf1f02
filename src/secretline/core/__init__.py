"""Secretline Core - access control and secret distribution for lines."""

from .coordinator import LineCoordinator
from .directory import LineDirectory
from .events import EventBus, LineCreated, LineJoined, MessageSent, event_to_dict
from .exceptions import (
    AlreadyInitializedError,
    AlreadyMemberError,
    ConfigException,
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
    SecretlineException,
    StoreException,
)
from .ledger import MessageLedger
from .logging import (
    OperationLogger,
    configure_logging,
    get_logger,
    operation_logger,
)
from .models import (
    Line,
    LineInfo,
    LineStatus,
    MembershipRecord,
    MembershipStatus,
    Message,
    SecretHandle,
)
from .registry import MembershipRegistry
from .vault import ConfidentialEngine, SecretVault

__all__ = [
    # Coordinator and components
    "LineCoordinator",
    "LineDirectory",
    "MembershipRegistry",
    "SecretVault",
    "ConfidentialEngine",
    "MessageLedger",
    # Events
    "EventBus",
    "LineCreated",
    "LineJoined",
    "MessageSent",
    "event_to_dict",
    # Models
    "Line",
    "LineInfo",
    "LineStatus",
    "MembershipRecord",
    "MembershipStatus",
    "Message",
    "SecretHandle",
    # Exceptions
    "SecretlineException",
    "NotFoundError",
    "InvalidInputError",
    "AlreadyMemberError",
    "ForbiddenError",
    "AlreadyInitializedError",
    "ConfigException",
    "StoreException",
    # Logging
    "configure_logging",
    "get_logger",
    "OperationLogger",
    "operation_logger",
]

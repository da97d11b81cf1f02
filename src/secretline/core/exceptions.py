# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Exception hierarchy for Secretline.

Every precondition the access-control core enforces has its own exception
type. All of them are synchronous and non-retryable: they describe a
request that can never succeed against the current state.
"""

from __future__ import annotations

from typing import Any


class SecretlineException(Exception):  # noqa: N818
    """Base exception for all Secretline errors."""

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


class NotFoundError(SecretlineException):
    """A referenced line or message does not exist.

    Raised when:
    - A line id was never allocated
    - A message id is out of range for its line
    - A secret handle is unknown to the engine
    """

    def __init__(self, resource_type: str, resource_id: Any):
        message = f"{resource_type} not found: {resource_id}"
        details = {
            "resource_type": resource_type,
            "resource_id": str(resource_id),
        }
        super().__init__(message, details)
        self.resource_type = resource_type
        self.resource_id = resource_id


class InvalidInputError(SecretlineException):
    """Input failed validation (empty line name, empty ciphertext)."""

    def __init__(self, message: str, field: str | None = None, value: Any = None):
        details = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)
        super().__init__(message, details)
        self.field = field
        self.value = value


class AlreadyMemberError(SecretlineException):
    """Join attempted by an identity that is already a member."""

    def __init__(self, line_id: int, identity: str):
        super().__init__(
            f"{identity} is already a member of line {line_id}",
            {"line_id": line_id, "identity": identity},
        )
        self.line_id = line_id
        self.identity = identity


class ForbiddenError(SecretlineException):
    """The caller lacks the membership or capability the operation needs.

    Raised when:
    - A non-member posts a message
    - The engine refuses a decryption request
    """

    def __init__(self, message: str, line_id: int | None = None, identity: str | None = None):
        details: dict[str, Any] = {}
        if line_id is not None:
            details["line_id"] = line_id
        if identity:
            details["identity"] = identity
        super().__init__(message, details)
        self.line_id = line_id
        self.identity = identity


class AlreadyInitializedError(SecretlineException):
    """Per-line state was set up twice for the same line."""

    def __init__(self, line_id: int, resource: str = "Secret"):
        super().__init__(
            f"{resource} already initialized for line {line_id}",
            {"line_id": line_id, "resource": resource},
        )
        self.line_id = line_id
        self.resource = resource


class ConfigException(SecretlineException):
    """Exception for configuration errors.

    Raised when:
    - The secret domain is empty or out of the 32-bit range
    - Configuration values cannot be parsed
    """

    def __init__(self, message: str, setting: str | None = None):
        details = {}
        if setting:
            details["setting"] = setting
        super().__init__(message, details)
        self.setting = setting


class StoreException(SecretlineException):
    """A state snapshot could not be read or written."""

    def __init__(self, message: str, path: str | None = None):
        details = {}
        if path:
            details["path"] = path
        super().__init__(message, details)
        self.path = path

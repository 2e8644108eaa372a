"""
Composer errors — the three failure kinds a compilation run can end with.

Every error aborts the current compilation run. None of them is retried:
they signal either malformed input or a genuine mismatch between the
requested change and the organization's current permission state.
"""

from __future__ import annotations

import enum


class ErrorKind(str, enum.Enum):
    """Abstract failure category surfaced to the end user."""

    INVALID_ARGUMENT = "invalid_argument"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"


class ComposerError(Exception):
    """Base class for all compilation failures."""

    kind: ErrorKind = ErrorKind.INVALID_ARGUMENT
    default_name = "ComposerError"

    def __init__(self, message: str, name: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.name = name or self.default_name

    def __str__(self) -> str:
        return f"{self.name}: {self.message}"


class InvalidArgumentError(ComposerError):
    """Malformed role/address encoding, missing manager, bad forwarder chain."""

    kind = ErrorKind.INVALID_ARGUMENT
    default_name = "ErrorInvalid"


class NotFoundError(ComposerError):
    """Unknown role, unknown entity/label, or a missing permission to revoke."""

    kind = ErrorKind.NOT_FOUND
    default_name = "ErrorNotFound"


class ConflictError(ComposerError):
    """The grantee already holds the permission being granted."""

    kind = ErrorKind.CONFLICT
    default_name = "ErrorConflict"

"""
Typed registry errors.

Every failure leaving the persistence core is one of these classes so the
HTTP boundary can map it to a status code from ``kind`` alone, without
inspecting message text.
"""
from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    INVALID_INPUT = "invalid_input"
    CONFLICT = "conflict"
    CANCELLED = "cancelled"
    INTERNAL = "internal"


class RegistryError(Exception):
    """Base class for persistence-core failures."""

    kind: ErrorKind = ErrorKind.INTERNAL


class NotFoundError(RegistryError):
    """No record matched the lookup."""

    kind = ErrorKind.NOT_FOUND


class InvalidInputError(RegistryError):
    """Caller-supplied input was rejected before or instead of a write."""

    kind = ErrorKind.INVALID_INPUT


class DuplicateVersionError(InvalidInputError):
    """A server already has a version record with the same version string."""

    def __init__(self, server_name: str, version: str):
        super().__init__(f"cannot publish duplicate version {version!r} of server {server_name!r}")
        self.server_name = server_name
        self.version = version


class ConflictError(RegistryError):
    """A storage-enforced invariant would be violated."""

    kind = ErrorKind.CONFLICT


class OperationCancelledError(RegistryError):
    """The caller cancelled the operation or its database deadline expired."""

    kind = ErrorKind.CANCELLED


class InternalError(RegistryError):
    """Storage, transport or serialization failure."""

    kind = ErrorKind.INTERNAL

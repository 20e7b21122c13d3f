"""Classified errors surfaced by the hacfg client.

Every failure that crosses the client boundary is a ConfError carrying one
ErrorKind and a message naming the bind and frontend involved. Lower-layer
faults that fit no other kind become EngineError, with the original
exception chained as ``__cause__``.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    ALREADY_EXISTS = "already_exists"
    VALIDATION_FAILED = "validation_failed"
    VERSION_CONFLICT = "version_conflict"
    ENGINE_FAILURE = "engine_failure"
    INVALID_SCOPE = "invalid_scope"


class ConfError(Exception):
    kind: ErrorKind = ErrorKind.ENGINE_FAILURE

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class NotFoundError(ConfError):
    """Bind, frontend or transaction does not exist."""

    kind = ErrorKind.NOT_FOUND


class AlreadyExistsError(ConfError):
    kind = ErrorKind.ALREADY_EXISTS


class ValidationError(ConfError):
    kind = ErrorKind.VALIDATION_FAILED


class VersionConflictError(ConfError):
    """Caller's version is not the committed one."""

    kind = ErrorKind.VERSION_CONFLICT


class EngineError(ConfError):
    kind = ErrorKind.ENGINE_FAILURE


class ScopeError(ConfError):
    """Neither or both of transaction id and version were given."""

    kind = ErrorKind.INVALID_SCOPE

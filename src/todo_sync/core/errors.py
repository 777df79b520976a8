# src/todo_sync/core/errors.py

from __future__ import annotations

"""
Error taxonomy.

- ValidationError: rejected locally before any remote call (empty title, oversized image).
- GatewayError: a single remote step failed; `kind` says how.
  NOT_FOUND covers missing objects (e.g. signing a URL for a deleted image).
"""

from enum import StrEnum


class ErrorKind(StrEnum):
    NETWORK = "network"
    AUTH = "auth"
    NOT_FOUND = "not_found"
    VALIDATION = "validation"
    SERVER = "server"


class TodoSyncError(Exception):
    """Base class for all errors raised by todo_sync."""


class ValidationError(TodoSyncError, ValueError):
    pass


class GatewayError(TodoSyncError):
    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        *,
        operation: str = "",
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.operation = operation
        self.cause = cause

    @property
    def is_not_found(self) -> bool:
        return self.kind == ErrorKind.NOT_FOUND

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.value!r}, operation={self.operation!r}, message={self.message!r})"


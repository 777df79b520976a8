# src/todo_sync/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
This keeps the backend (Supabase today) swappable and makes testing easier:
tests/fakes.py implements every port in memory.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Awaitable, Protocol

Row = dict[str, Any]
# One table row as plain JSON-compatible values: {"id": "...", "title": "...", ...}.


@dataclass(slots=True, frozen=True)
class UserIdentity:
    id: str
    email: str | None = None


@dataclass(slots=True, frozen=True)
class ChangeEvent:
    """
    One row-level mutation notification from the change feed.

    event_type is "INSERT", "UPDATE" or "DELETE". The record payloads are kept
    for logging only: the subscriber always re-reads the whole table.
    """

    event_type: str
    table: str
    record: Row = field(default_factory=dict)
    old_record: Row = field(default_factory=dict)


ChangeCallback = Callable[[ChangeEvent], None]


class AuthClient(Protocol):
    def get_current_user(self) -> Awaitable[UserIdentity | None]: ...
    def sign_in_with_password(self, email: str, password: str) -> Awaitable[UserIdentity]: ...
    def sign_out(self) -> Awaitable[None]: ...


class RowStore(Protocol):
    """
    Relational store, already scoped server-side to the caller's own rows.

    `match` is an equality filter: {"id": task_id}.
    """

    def insert(self, table: str, row: Row) -> Awaitable[None]: ...
    def update(self, table: str, values: Row, *, match: Row) -> Awaitable[None]: ...
    def delete(self, table: str, *, match: Row) -> Awaitable[None]: ...
    def select(
            self,
            table: str,
            *,
            order_by: str | None = None,
            descending: bool = False,
    ) -> Awaitable[list[Row]]: ...


class ObjectStore(Protocol):
    """Object storage bucket; keys are task ids."""

    def upload(
            self,
            key: str,
            data: bytes,
            *,
            content_type: str | None = None,
            overwrite: bool = True,
    ) -> Awaitable[None]: ...

    def remove(self, keys: list[str]) -> Awaitable[None]: ...
    def sign_url(self, key: str, ttl_seconds: int) -> Awaitable[str]: ...
    def list_objects(
            self,
            prefix: str = "",
            *,
            search: str | None = None,
            limit: int = 100,
    ) -> Awaitable[list[str]]: ...


class ChangeFeed(Protocol):
    """
    Push notifications for row mutations.

    The callback is invoked on the event loop that called subscribe().
    """

    def subscribe(self, table: str, event: str, callback: ChangeCallback) -> Awaitable[Any]: ...
    def unsubscribe(self, handle: Any) -> Awaitable[None]: ...


class Notifier(Protocol):
    """Connector-side port: how a terminal mutation outcome reaches the user."""

    def notify(self, outcome: Any) -> None: ...

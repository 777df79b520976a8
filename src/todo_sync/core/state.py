# src/todo_sync/core/state.py

from __future__ import annotations

from dataclasses import dataclass

from ..core.ports import AuthClient, ChangeFeed, UserIdentity
from ..tasks.gateway import RemoteDataGateway
from ..tasks.session import TodoSession


@dataclass
class AppState:
    # Store Settings on the state for easy access in other modules later.
    settings: object

    auth: AuthClient
    gateway: RemoteDataGateway
    feed: ChangeFeed

    user: UserIdentity | None = None
    # Set while the todo view is open; None after sign-out.
    session: TodoSession | None = None

    def require_session(self) -> TodoSession:
        if self.session is None or not self.session.mounted:
            raise RuntimeError("Todo view is not open")
        return self.session

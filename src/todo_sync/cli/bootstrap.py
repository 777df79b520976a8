# src/todo_sync/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures the local (gitignored) data directory exists,
- wires the Supabase adapters into AppState,
- signs in when there is no current user,
- opens / closes the todo view (TodoSession).
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..connectors.supabase_client import create_supabase_backend
from ..core.ports import Notifier, UserIdentity
from ..core.state import AppState
from ..tasks.gateway import RemoteDataGateway, classify_error
from ..tasks.session import TodoSession

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)


async def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    backend = await create_supabase_backend(settings)
    gateway = RemoteDataGateway(backend.rows, backend.objects, table=settings.task_table)

    return AppState(settings=settings, auth=backend.auth, gateway=gateway, feed=backend.feed)


async def ensure_signed_in(state: AppState) -> UserIdentity | None:
    """
    Return the current user, signing in with configured credentials if needed.

    Returns None when nobody is signed in and no credentials are configured.
    """
    try:
        user = await state.auth.get_current_user()
    except Exception as e:
        logger.warning("Could not read current user: %s", classify_error(e, operation="get_user").message)
        user = None

    if user is None:
        email = (getattr(state.settings, "user_email", "") or "").strip()
        password = getattr(state.settings, "user_password", "") or ""
        if not email or not password:
            logger.error("Not signed in: set TODO_USER_EMAIL and TODO_USER_PASSWORD")
            return None
        try:
            user = await state.auth.sign_in_with_password(email, password)
        except Exception as e:
            logger.error("Sign-in failed: %s", classify_error(e, operation="sign_in").message)
            return None

    state.user = user
    return user


async def open_session(state: AppState, *, notifier: Notifier | None = None) -> TodoSession:
    settings = state.settings
    session = TodoSession(
        state.gateway,
        state.feed,
        notifier=notifier,
        owner_id=state.user.id if state.user else None,
        url_ttl_seconds=getattr(settings, "signed_url_ttl_seconds", 3600),
        max_attachment_bytes=getattr(settings, "max_attachment_bytes", 5 * 1024 * 1024),
    )
    await session.mount()
    state.session = session
    return session


async def close_session(state: AppState) -> None:
    """Best-effort teardown (no exceptions should escape)."""
    session, state.session = state.session, None
    if session is None:
        return
    try:
        await session.unmount()
    except Exception:
        logger.exception("Failed to close the todo view.")

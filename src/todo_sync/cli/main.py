# src/todo_sync/cli/main.py

"""
CLI entrypoint.

Initializes logging, connects to Supabase, signs in, opens the todo view and
runs the console REPL until /exit (or EOF / Ctrl+C).
"""

from __future__ import annotations

import asyncio
import contextlib
import logging

from ..cli.bootstrap import close_session, create_initial_state, ensure_signed_in, open_session
from ..config import get_settings
from ..connectors.console_connector import ConsoleNotifier, run_console_loop
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


async def _run(settings) -> int:
    try:
        state = await create_initial_state(settings=settings)
    except RuntimeError as e:
        logger.error("%s", e)
        return 2

    user = await ensure_signed_in(state)
    if user is None:
        return 1
    logger.info("Signed in as %s", user.email or user.id)

    await open_session(state, notifier=ConsoleNotifier())
    try:
        await run_console_loop(state)
    finally:
        await close_session(state)
    return 0


def main() -> int:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)

    log_dir = getattr(settings, "data_dir", ".local/todo_sync")
    setup_logging(log_dir=log_dir, console_level=console_level)

    logger.info("Starting %s...", getattr(settings, "app_name", "todo-sync"))

    code = 1
    with contextlib.suppress(KeyboardInterrupt):
        code = asyncio.run(_run(settings))

    logger.info("Bye.")
    return code


if __name__ == "__main__":
    raise SystemExit(main())

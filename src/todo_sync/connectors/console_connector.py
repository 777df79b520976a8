# src/todo_sync/connectors/console_connector.py

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from ..cli.commands import format_outcome, registry as command_registry
from ..core.state import AppState
from ..tasks.task_list import TaskListState
from ..tasks.task_models import CreateTask, Outcome

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}", flush=True)


class ConsoleNotifier:
    """Notifier port for the console: one printed line per mutation outcome."""

    def __init__(self) -> None:
        self.last: Outcome | None = None

    def notify(self, outcome: Outcome) -> None:
        self.last = outcome
        _print_ts(format_outcome(outcome))


def _on_list_changed(tasks: TaskListState) -> None:
    _print_ts(f"[live] {tasks.summary()}")


async def run_console_loop(state: AppState) -> None:
    logger.info("Console connector started.")
    _print_ts("[CONSOLE] Type a title to add a todo. Use /help for commands. Use /exit to quit.\n")

    def emit(text: str) -> None:
        # Immediate user-visible feedback for long operations (e.g. uploads)
        _print_ts(text)

    session = state.session
    if session is not None:
        _print_ts(await command_registry.handle(state, "/list") or "")
        session.task_list.add_listener(_on_list_changed)

    while True:
        try:
            user_input = (await asyncio.to_thread(input, ">>> ")).strip()
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break
        except KeyboardInterrupt:
            logger.info("Console KeyboardInterrupt, exiting.")
            print()
            break

        if not user_input:
            continue

        if user_input.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        try:
            if user_input.startswith("/"):
                response = await command_registry.handle(state, user_input, emit=emit)
            elif state.session is not None and state.session.mounted:
                # Plain text is a quick add.
                await state.session.mutations.create(CreateTask(title=user_input))
                response = None
            else:
                response = "Todo view is closed. Use /exit to quit."
        except Exception:
            logger.exception("Command handler crashed.")
            response = "Internal error while handling a command."

        if response:
            _print_ts(response)

    if session is not None:
        session.task_list.remove_listener(_on_list_changed)
    logger.info("Console connector finished.")

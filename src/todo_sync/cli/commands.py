# src/todo_sync/cli/commands.py

from __future__ import annotations

import asyncio
import inspect
import logging
import mimetypes
import shlex
from collections.abc import Awaitable, Callable
from datetime import date
from pathlib import Path
from typing import cast

from ..core.errors import ValidationError
from ..core.state import AppState
from ..tasks.attachments import AttachmentState
from ..tasks.session import TodoSession
from ..tasks.task_list import ViewKind
from ..tasks.task_models import (
    ALL,
    AttachmentChange,
    ChangeStatus,
    CreateTask,
    DeleteTask,
    EditTask,
    ImagePayload,
    KeepExisting,
    Outcome,
    RemoveExisting,
    ReplaceWith,
    Task,
    TaskStatus,
    parse_filter,
)

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], Awaitable[str]]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], Awaitable[str]]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)

SHORT_ID = 8


class CommandRegistry:
    """Simple slash-command registry used by the console (/help, /add, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    async def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except Exception:
            nparams = 3

        if nparams >= 3:
            h3 = cast(CommandHandler3, handler)
            return await h3(state, args, emit)

        h2 = cast(CommandHandler2, handler)
        return await h2(state, args)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- helpers ----

def _short(task_id: str) -> str:
    return task_id[:SHORT_ID]


def _session(state: AppState) -> TodoSession | None:
    try:
        return state.require_session()
    except RuntimeError:
        return None


def _resolve_task(session: TodoSession, token: str) -> Task | str:
    """Find a task by id or unique id prefix. Returns an error text otherwise."""
    matches = session.task_list.find_by_prefix(token)
    exact = [t for t in matches if t.id == token]
    if exact:
        return exact[0]
    if not matches:
        return f"No todo matches id {token!r}. Use /list to see ids."
    if len(matches) > 1:
        return f"Id {token!r} is ambiguous ({len(matches)} todos). Type more characters."
    return matches[0]


def _parse_due(raw: str) -> date | None:
    text = raw.strip()
    if not text or text.lower() in ("none", "-", "clear"):
        return None
    try:
        return date.fromisoformat(text)
    except ValueError:
        raise ValidationError(f"Invalid due date {raw!r}. Use YYYY-MM-DD.") from None


def _load_image(raw: str) -> ImagePayload:
    path = Path(raw.strip()).expanduser()
    try:
        data = path.read_bytes()
    except OSError as e:
        raise ValidationError(f"Cannot read image {path}: {e.strerror or e}") from None
    content_type, _ = mimetypes.guess_type(path.name)
    return ImagePayload(data=data, content_type=content_type, filename=path.name)


def format_outcome(outcome: Outcome) -> str:
    marker = {"success": "OK", "success_with_warning": "WARN", "failure": "ERROR"}[outcome.kind.value]
    return f"[{marker}] {outcome.title}: {outcome.message}"


def _format_task(task: Task, image: AttachmentState) -> str:
    due = f" due {task.due_date.isoformat()}" if task.due_date else ""
    img = " [image]" if image == AttachmentState.PRESENT else ""
    created = f" (created {task.created_at.astimezone():%Y-%m-%d})" if task.created_at else ""
    line = f"  {_short(task.id)}  [{task.status.value}] {task.title}{due}{img}{created}"
    if task.description:
        line += f"\n            {task.description}"
    return line


def render_task_list(session: TodoSession) -> str:
    tasks = session.task_list
    kind = tasks.view_kind()
    if kind == ViewKind.EMPTY:
        return "No todos yet. Create your first todo to get started!"

    counts = tasks.counts()
    lines = [
        "Your Tasks "
        f"(All: {counts[ALL]} | Todo: {counts[TaskStatus.TODO.value]} | "
        f"In Progress: {counts[TaskStatus.IN_PROGRESS.value]} | Done: {counts[TaskStatus.DONE.value]})",
        tasks.summary(),
    ]
    if kind == ViewKind.NO_MATCH:
        lines.append("No todos match the current filter. Use /filter all to show all todos.")
        return "\n".join(lines)

    for task in tasks.visible:
        lines.append(_format_task(task, session.attachments.view(task.id).state))
    return "\n".join(lines)


# ---- commands ----

async def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


async def cmd_list(state: AppState, args: list[str]) -> str:
    session = _session(state)
    if session is None:
        return "Todo view is closed. Restart to sign in again."
    visible = session.task_list.visible
    # Image probes are independent per task.
    await asyncio.gather(*(session.attachments.resolve(t.id) for t in visible))
    return render_task_list(session)


async def cmd_filter(state: AppState, args: list[str]) -> str:
    session = _session(state)
    if session is None:
        return "Todo view is closed."
    if not args:
        return f"Current filter: {session.task_list.status_filter}. Usage: /filter all|todo|in-progress|done"
    try:
        session.task_list.set_filter(parse_filter(" ".join(args)))
    except ValidationError as e:
        return str(e)
    return render_task_list(session)


async def cmd_add(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /add <title> [| description [| due YYYY-MM-DD [| image path]]]
    """
    session = _session(state)
    if session is None:
        return "Todo view is closed."
    if not args:
        return "Usage: /add <title> [| description [| YYYY-MM-DD [| image path]]]"

    parts = [p.strip() for p in " ".join(args).split("|")]
    parts += [""] * (4 - len(parts))
    title, description, due_raw, image_raw = parts[:4]

    try:
        due = _parse_due(due_raw)
        image = _load_image(image_raw) if image_raw else None
    except ValidationError as e:
        return str(e)

    if image is not None and emit:
        emit(f"Uploading {image.filename} ({image.size} bytes)...")

    outcome = await session.mutations.create(
        CreateTask(title=title, description=description, due_date=due, image=image)
    )
    if outcome.ok and outcome.task_id:
        return f"Created {_short(outcome.task_id)}."
    return ""


async def cmd_edit(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /edit <id> title="New title" description="..." status=done due=2025-01-31 image=./pic.png|none
    """
    session = _session(state)
    if session is None:
        return "Todo view is closed."
    if len(args) < 2:
        return "Usage: /edit <id> title=... description=... status=... due=YYYY-MM-DD|none image=<path>|none"

    found = _resolve_task(session, args[0])
    if isinstance(found, str):
        return found

    try:
        tokens = shlex.split(" ".join(args[1:]))
    except ValueError as e:
        return f"Cannot parse arguments: {e}"

    title, description = found.title, found.description
    status, due = found.status, found.due_date
    attachment: AttachmentChange = KeepExisting()

    try:
        for token in tokens:
            key, sep, value = token.partition("=")
            if not sep:
                return f"Expected field=value, got {token!r}."
            key = key.strip().lower()
            if key == "title":
                title = value
            elif key in ("description", "desc"):
                description = value
            elif key == "status":
                status = TaskStatus.parse(value)
            elif key in ("due", "due_date"):
                due = _parse_due(value)
            elif key == "image":
                if value.strip().lower() in ("none", "remove", "-"):
                    attachment = RemoveExisting()
                else:
                    attachment = ReplaceWith(_load_image(value))
            else:
                return f"Unknown field {key!r}. Editable: title, description, status, due, image."
    except ValidationError as e:
        return str(e)

    if isinstance(attachment, ReplaceWith) and emit:
        emit(f"Uploading {attachment.image.filename} ({attachment.image.size} bytes)...")

    await session.mutations.edit(
        EditTask(
            task_id=found.id,
            title=title,
            description=description,
            status=status,
            due_date=due,
            attachment=attachment,
        )
    )
    return ""


async def cmd_status(state: AppState, args: list[str]) -> str:
    session = _session(state)
    if session is None:
        return "Todo view is closed."
    if len(args) < 2:
        return "Usage: /status <id> todo|in-progress|done"

    found = _resolve_task(session, args[0])
    if isinstance(found, str):
        return found
    try:
        status = TaskStatus.parse(" ".join(args[1:]))
    except ValidationError as e:
        return str(e)

    await session.mutations.change_status(ChangeStatus(task_id=found.id, status=status))
    return ""


async def cmd_delete(state: AppState, args: list[str]) -> str:
    session = _session(state)
    if session is None:
        return "Todo view is closed."
    if not args:
        return "Usage: /delete <id>"

    found = _resolve_task(session, args[0])
    if isinstance(found, str):
        return found

    await session.mutations.delete(DeleteTask(task_id=found.id))
    return ""


async def cmd_image(state: AppState, args: list[str]) -> str:
    session = _session(state)
    if session is None:
        return "Todo view is closed."
    if not args:
        return "Usage: /image <id>"

    found = _resolve_task(session, args[0])
    if isinstance(found, str):
        return found

    view = await session.attachments.resolve(found.id, force=True)
    if view.state == AttachmentState.PRESENT:
        minutes = max(1, session.attachments.url_ttl_seconds // 60)
        return f"Image for {_short(found.id)} (link valid for {minutes} min):\n{view.url}"
    return f"Todo {_short(found.id)} has no image."


async def cmd_refresh(state: AppState, args: list[str]) -> str:
    session = _session(state)
    if session is None:
        return "Todo view is closed."
    if not await session.subscriber.refresh():
        return "Could not reload todos. See the log for details."
    return render_task_list(session)


async def cmd_whoami(state: AppState, args: list[str]) -> str:
    user = state.user
    if user is None:
        return "Not signed in."
    return f"Signed in as {user.email or user.id}"


async def cmd_signout(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    from .bootstrap import close_session

    await close_session(state)
    try:
        await state.auth.sign_out()
    except Exception:
        logger.exception("Sign-out failed.")
        return "Sign-out failed. See the log for details."
    state.user = None
    return "Signed out. Use /exit to quit."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("list", cmd_list, help_text="Show todos (respects the current filter).", aliases=["ls"])
registry.register("filter", cmd_filter, help_text="Filter by status: /filter all|todo|in-progress|done.")
registry.register(
    "add", cmd_add, help_text="Create a todo: /add title | description | YYYY-MM-DD | image path."
)
registry.register(
    "edit", cmd_edit, help_text="Edit a todo: /edit <id> title=... status=... due=... image=<path>|none."
)
registry.register("status", cmd_status, help_text="Change status: /status <id> todo|in-progress|done.")
registry.register("delete", cmd_delete, help_text="Delete a todo and its image: /delete <id>.", aliases=["rm"])
registry.register("image", cmd_image, help_text="Show a signed link to a todo's image: /image <id>.")
registry.register("refresh", cmd_refresh, help_text="Reload todos from the server.")
registry.register("whoami", cmd_whoami, help_text="Show the signed-in user.")
registry.register("signout", cmd_signout, help_text="Sign out and close the todo view.")

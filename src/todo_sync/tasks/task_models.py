# tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from enum import StrEnum
from typing import Any, Literal

from ..core.errors import GatewayError, ValidationError


class TaskStatus(StrEnum):
    """
    Task status.

    Values are stored verbatim in the `status` column, so "In Progress"
    keeps its space.
    """

    TODO = "Todo"
    IN_PROGRESS = "In Progress"
    DONE = "Done"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskStatus:
        if not raw:
            return cls.TODO
        try:
            return cls(raw)
        except ValueError:
            return cls.TODO

    @classmethod
    def parse(cls, raw: str) -> TaskStatus:
        """Lenient user input: "done", "in-progress", "InProgress", "in progress"..."""
        key = "".join(ch for ch in (raw or "").lower() if ch.isalnum())
        for status in cls:
            if status.value.replace(" ", "").lower() == key:
                return status
        raise ValidationError(f"Unknown status: {raw!r}. Use one of: Todo, In Progress, Done.")


ALL = "all"
StatusFilter = TaskStatus | Literal["all"]


def parse_filter(raw: str) -> StatusFilter:
    if (raw or "").strip().lower() == ALL:
        return ALL
    return TaskStatus.parse(raw)


@dataclass(slots=True)
class Task:
    id: str
    title: str
    status: TaskStatus = TaskStatus.TODO
    description: str = ""
    owner: str | None = None
    created_at: datetime | None = None
    due_date: date | None = None


# ---- row mapping ----

def _parse_timestamp(raw: Any) -> datetime | None:
    if raw is None or raw == "":
        return None
    if isinstance(raw, datetime):
        return raw
    return datetime.fromisoformat(str(raw))


def due_date_to_db(value: date | None) -> str | None:
    """Dates are stored as a timestamp at UTC midnight (what the web form sends)."""
    if value is None:
        return None
    return datetime(value.year, value.month, value.day, tzinfo=UTC).isoformat()


def due_date_from_db(raw: Any) -> date | None:
    if raw is None or raw == "":
        return None
    if isinstance(raw, datetime):
        ts = raw
    elif isinstance(raw, date):
        return raw
    else:
        text = str(raw)
        if len(text) == 10:
            return date.fromisoformat(text)
        ts = datetime.fromisoformat(text)
    if ts.tzinfo is not None:
        ts = ts.astimezone(UTC)
    return ts.date()


def task_from_row(row: dict[str, Any]) -> Task:
    return Task(
        id=str(row["id"]),
        title=str(row.get("title") or ""),
        status=TaskStatus.from_db(row.get("status")),
        description=str(row.get("description") or ""),
        owner=row.get("user_id"),
        created_at=_parse_timestamp(row.get("created_at")),
        due_date=due_date_from_db(row.get("due_date")),
    )


def task_to_row(task: Task) -> dict[str, Any]:
    # created_at is assigned by the server.
    row: dict[str, Any] = {
        "id": task.id,
        "title": task.title,
        "description": task.description,
        "status": task.status.value,
        "due_date": due_date_to_db(task.due_date),
    }
    if task.owner:
        row["user_id"] = task.owner
    return row


_COLUMNS = {
    "title": "title",
    "description": "description",
    "status": "status",
    "due_date": "due_date",
}


def fields_to_row(fields: dict[str, Any]) -> dict[str, Any]:
    """Map a partial update {task field -> value} onto column values."""
    out: dict[str, Any] = {}
    for name, value in fields.items():
        column = _COLUMNS.get(name)
        if column is None:
            raise ValueError(f"Field {name!r} cannot be updated")
        if name == "status":
            value = TaskStatus(value).value
        elif name == "due_date":
            value = due_date_to_db(value)
        out[column] = value
    return out


# ---- mutation intents ----

@dataclass(slots=True, frozen=True)
class ImagePayload:
    data: bytes
    content_type: str | None = None
    filename: str | None = None

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(slots=True, frozen=True)
class KeepExisting:
    pass


@dataclass(slots=True, frozen=True)
class ReplaceWith:
    image: ImagePayload


@dataclass(slots=True, frozen=True)
class RemoveExisting:
    pass


AttachmentChange = KeepExisting | ReplaceWith | RemoveExisting


@dataclass(slots=True, frozen=True)
class CreateTask:
    title: str
    description: str = ""
    status: TaskStatus = TaskStatus.TODO
    due_date: date | None = None
    image: ImagePayload | None = None


@dataclass(slots=True, frozen=True)
class EditTask:
    task_id: str
    title: str
    description: str = ""
    status: TaskStatus = TaskStatus.TODO
    due_date: date | None = None
    attachment: AttachmentChange = field(default_factory=KeepExisting)


@dataclass(slots=True, frozen=True)
class ChangeStatus:
    task_id: str
    status: TaskStatus


@dataclass(slots=True, frozen=True)
class DeleteTask:
    task_id: str


MutationIntent = CreateTask | EditTask | ChangeStatus | DeleteTask


# ---- outcomes ----

class OutcomeKind(StrEnum):
    SUCCESS = "success"
    SUCCESS_WITH_WARNING = "success_with_warning"
    FAILURE = "failure"


@dataclass(slots=True, frozen=True)
class Outcome:
    """
    The single user-facing result of one mutation.

    title/message mirror a toast: a short headline plus a sentence.
    """

    kind: OutcomeKind
    title: str
    message: str
    task_id: str | None = None
    error: ValidationError | GatewayError | None = None

    @property
    def ok(self) -> bool:
        return self.kind != OutcomeKind.FAILURE

    @classmethod
    def success(cls, title: str, message: str, *, task_id: str | None = None) -> Outcome:
        return cls(OutcomeKind.SUCCESS, title, message, task_id=task_id)

    @classmethod
    def warning(
        cls,
        title: str,
        message: str,
        *,
        task_id: str | None = None,
        error: GatewayError | None = None,
    ) -> Outcome:
        return cls(OutcomeKind.SUCCESS_WITH_WARNING, title, message, task_id=task_id, error=error)

    @classmethod
    def failure(
        cls,
        title: str,
        message: str,
        *,
        task_id: str | None = None,
        error: ValidationError | GatewayError | None = None,
    ) -> Outcome:
        return cls(OutcomeKind.FAILURE, title, message, task_id=task_id, error=error)

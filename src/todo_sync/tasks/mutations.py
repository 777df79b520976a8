# src/todo_sync/tasks/mutations.py

from __future__ import annotations

"""
Mutation coordinator.

One user action -> a fixed sequence of remote calls -> exactly one Outcome.

    Create:        validate -> new id -> insert row -> [upload image]
    Edit:          validate -> update row -> [replace/remove image]
    Status change: update status
    Delete:        remove image (best effort) -> delete row -> drop locally

Steps run strictly one after another. Nothing is rolled back: once the row is
committed, a failed storage step only downgrades the outcome to a warning.
"""

import logging
import uuid
from collections.abc import Callable

from ..core.errors import ValidationError
from ..core.ports import Notifier
from .attachments import AttachmentReconciler
from .gateway import RemoteDataGateway
from .task_list import TaskListState
from .task_models import (
    ChangeStatus,
    CreateTask,
    DeleteTask,
    EditTask,
    MutationIntent,
    Outcome,
    Task,
)

logger = logging.getLogger(__name__)

IdFactory = Callable[[], str]


def _new_task_id() -> str:
    return str(uuid.uuid4())


def _require_title(title: str) -> str:
    if not title or not title.strip():
        raise ValidationError("Title is required")
    return title


class MutationCoordinator:
    def __init__(
        self,
        gateway: RemoteDataGateway,
        attachments: AttachmentReconciler,
        *,
        task_list: TaskListState | None = None,
        notifier: Notifier | None = None,
        owner_id: str | None = None,
        id_factory: IdFactory = _new_task_id,
    ) -> None:
        self._gateway = gateway
        self._attachments = attachments
        self._task_list = task_list
        self._notifier = notifier
        self._owner_id = owner_id
        self._new_id = id_factory
        self._detached = False

    @property
    def detached(self) -> bool:
        return self._detached

    def detach(self) -> None:
        """Stop touching the view: later outcomes are only logged."""
        self._detached = True

    async def execute(self, intent: MutationIntent) -> Outcome:
        if isinstance(intent, CreateTask):
            return await self.create(intent)
        if isinstance(intent, EditTask):
            return await self.edit(intent)
        if isinstance(intent, ChangeStatus):
            return await self.change_status(intent)
        if isinstance(intent, DeleteTask):
            return await self.delete(intent)
        raise TypeError(f"Unsupported mutation: {intent!r}")

    async def create(self, intent: CreateTask) -> Outcome:
        try:
            _require_title(intent.title)
            self._attachments.validate(intent.image)
        except ValidationError as e:
            return self._emit(Outcome.failure("Failed to create todo", str(e), error=e))

        task = Task(
            id=self._new_id(),
            title=intent.title,
            status=intent.status,
            description=intent.description,
            owner=self._owner_id,
            due_date=intent.due_date,
        )

        inserted = await self._gateway.insert_task(task)
        if not inserted.ok:
            err = inserted.error
            return self._emit(
                Outcome.failure(
                    "Failed to create todo",
                    f"Failed to create todo: {err.message if err else 'unknown error'}",
                    error=err,
                )
            )

        if intent.image is None:
            return self._emit(
                Outcome.success("Todo created", "Your todo was created successfully.", task_id=task.id)
            )

        step = await self._attachments.upload_new(task.id, intent.image)
        if step.warning:
            return self._emit(
                Outcome.warning("Image upload failed", step.warning, task_id=task.id, error=step.error)
            )
        return self._emit(Outcome.success("Todo created", step.message, task_id=task.id))

    async def edit(self, intent: EditTask) -> Outcome:
        try:
            _require_title(intent.title)
            self._attachments.validate_change(intent.attachment)
        except ValidationError as e:
            return self._emit(
                Outcome.failure("Failed to update todo", str(e), task_id=intent.task_id, error=e)
            )

        updated = await self._gateway.update_task(
            intent.task_id,
            {
                "title": intent.title,
                "description": intent.description,
                "status": intent.status,
                "due_date": intent.due_date,
            },
        )
        if not updated.ok:
            err = updated.error
            return self._emit(
                Outcome.failure(
                    "Failed to update todo",
                    f"Failed to update todo: {err.message if err else 'unknown error'}",
                    task_id=intent.task_id,
                    error=err,
                )
            )

        step = await self._attachments.apply_change(intent.task_id, intent.attachment)
        if step.warning:
            return self._emit(
                Outcome.warning("Todo updated", step.warning, task_id=intent.task_id, error=step.error)
            )
        return self._emit(Outcome.success("Todo updated", step.message, task_id=intent.task_id))

    async def change_status(self, intent: ChangeStatus) -> Outcome:
        updated = await self._gateway.update_task(intent.task_id, {"status": intent.status})
        if not updated.ok:
            err = updated.error
            return self._emit(
                Outcome.failure(
                    "Failed to update status",
                    f"Failed to update status: {err.message if err else 'unknown error'}",
                    task_id=intent.task_id,
                    error=err,
                )
            )
        return self._emit(
            Outcome.success(
                "Status updated",
                f"Todo status changed to {intent.status.value}",
                task_id=intent.task_id,
            )
        )

    async def delete(self, intent: DeleteTask) -> Outcome:
        # Always attempted; if the row delete then fails the image stays gone.
        await self._attachments.discard(intent.task_id)

        deleted = await self._gateway.delete_task(intent.task_id)
        if not deleted.ok:
            err = deleted.error
            return self._emit(
                Outcome.failure(
                    "Failed to delete todo",
                    f"Failed to delete todo: {err.message if err else 'unknown error'}",
                    task_id=intent.task_id,
                    error=err,
                )
            )

        if self._task_list is not None and not self._detached:
            self._task_list.apply_local_delete(intent.task_id)

        return self._emit(
            Outcome.success(
                "Todo deleted", "The todo has been permanently removed", task_id=intent.task_id
            )
        )

    def _emit(self, outcome: Outcome) -> Outcome:
        if outcome.ok:
            logger.info("%s: %s (task_id=%s)", outcome.title, outcome.message, outcome.task_id)
        else:
            logger.warning("%s: %s (task_id=%s)", outcome.title, outcome.message, outcome.task_id)

        if self._detached:
            logger.debug("View closed; outcome not shown (task_id=%s)", outcome.task_id)
            return outcome

        if self._notifier is not None:
            try:
                self._notifier.notify(outcome)
            except Exception:
                logger.exception("Notifier failed for outcome %s", outcome.kind.value)
        return outcome

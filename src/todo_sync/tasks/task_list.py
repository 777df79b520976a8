# src/todo_sync/tasks/task_list.py

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from enum import StrEnum

from .task_models import ALL, StatusFilter, Task, TaskStatus

logger = logging.getLogger(__name__)

TaskListListener = Callable[["TaskListState"], None]


class ViewKind(StrEnum):
    EMPTY = "empty"  # no tasks exist at all
    NO_MATCH = "no_match"  # tasks exist, none match the filter
    ITEMS = "items"


class TaskListState:
    """
    The viewer's tasks, in the order the last snapshot delivered them
    (newest first), plus the filtered view derived from them.

    All mutation happens on the event loop; there is no locking. A full
    snapshot always wins over earlier local edits: a stale refresh that lands
    after an optimistic delete brings the deleted task back until the next
    refresh.
    """

    def __init__(self, initial: Iterable[Task] = (), *, status_filter: StatusFilter = ALL) -> None:
        self._tasks: list[Task] = list(initial)
        self._filter: StatusFilter = status_filter
        self._visible: list[Task] = []
        self._listeners: list[TaskListListener] = []
        self._recompute()

    # ---- reads ----

    @property
    def tasks(self) -> tuple[Task, ...]:
        return tuple(self._tasks)

    @property
    def visible(self) -> tuple[Task, ...]:
        return tuple(self._visible)

    @property
    def status_filter(self) -> StatusFilter:
        return self._filter

    def __len__(self) -> int:
        return len(self._tasks)

    def get(self, task_id: str) -> Task | None:
        for task in self._tasks:
            if task.id == task_id:
                return task
        return None

    def find_by_prefix(self, prefix: str) -> list[Task]:
        prefix = (prefix or "").strip().lower()
        if not prefix:
            return []
        return [t for t in self._tasks if t.id.lower().startswith(prefix)]

    def counts(self) -> dict[str, int]:
        out = {status.value: 0 for status in TaskStatus}
        for task in self._tasks:
            out[task.status.value] += 1
        out[ALL] = len(self._tasks)
        return out

    def view_kind(self) -> ViewKind:
        if not self._tasks:
            return ViewKind.EMPTY
        if not self._visible:
            return ViewKind.NO_MATCH
        return ViewKind.ITEMS

    def summary(self) -> str:
        if self._filter == ALL:
            return f"Showing all {len(self._tasks)} items"
        return f"Showing {len(self._visible)} {self._filter} items"

    # ---- writes ----

    def apply_snapshot(self, tasks: Iterable[Task]) -> None:
        self._tasks = list(tasks)
        logger.debug("Snapshot applied: %d tasks", len(self._tasks))
        self._changed()

    def apply_local_delete(self, task_id: str) -> bool:
        before = len(self._tasks)
        self._tasks = [t for t in self._tasks if t.id != task_id]
        removed = len(self._tasks) != before
        if removed:
            logger.debug("Task %s removed locally", task_id)
            self._changed()
        return removed

    def set_filter(self, status_filter: StatusFilter) -> None:
        if status_filter != ALL and not isinstance(status_filter, TaskStatus):
            status_filter = TaskStatus(status_filter)
        self._filter = status_filter
        self._changed()

    # ---- listeners ----

    def add_listener(self, listener: TaskListListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: TaskListListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _recompute(self) -> None:
        if self._filter == ALL:
            self._visible = list(self._tasks)
        else:
            self._visible = [t for t in self._tasks if t.status == self._filter]

    def _changed(self) -> None:
        self._recompute()
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("Task list listener failed")

# tests/test_task_list.py

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from todo_sync.tasks.task_list import TaskListState, ViewKind
from todo_sync.tasks.task_models import ALL, Task, TaskStatus

BASE = datetime(2025, 1, 1, tzinfo=UTC)


def _task(task_id: str, status: TaskStatus, minutes: int) -> Task:
    return Task(id=task_id, title=f"task {task_id}", status=status, created_at=BASE + timedelta(minutes=minutes))


def _snapshot() -> list[Task]:
    # Newest first, the order list_tasks delivers.
    return [
        _task("d", TaskStatus.TODO, 4),
        _task("c", TaskStatus.DONE, 3),
        _task("b", TaskStatus.IN_PROGRESS, 2),
        _task("a", TaskStatus.TODO, 1),
    ]


def test_filter_done_then_all_restores_order() -> None:
    state = TaskListState(_snapshot())

    state.set_filter(TaskStatus.DONE)
    assert [t.id for t in state.visible] == ["c"]

    state.set_filter(ALL)
    assert [t.id for t in state.visible] == ["d", "c", "b", "a"]


def test_filter_keeps_snapshot_order() -> None:
    state = TaskListState(_snapshot())
    state.set_filter(TaskStatus.TODO)
    assert [t.id for t in state.visible] == ["d", "a"]


def test_filter_accepts_status_text() -> None:
    state = TaskListState(_snapshot())
    state.set_filter("In Progress")
    assert state.status_filter is TaskStatus.IN_PROGRESS
    assert [t.id for t in state.visible] == ["b"]


def test_empty_and_no_match_are_distinct() -> None:
    state = TaskListState()
    assert state.view_kind() == ViewKind.EMPTY

    state.apply_snapshot([_task("a", TaskStatus.TODO, 1)])
    state.set_filter(TaskStatus.DONE)
    assert state.view_kind() == ViewKind.NO_MATCH

    state.set_filter(ALL)
    assert state.view_kind() == ViewKind.ITEMS


def test_counts_and_summary() -> None:
    state = TaskListState(_snapshot())

    counts = state.counts()
    assert counts["Todo"] == 2
    assert counts["In Progress"] == 1
    assert counts["Done"] == 1
    assert counts[ALL] == 4

    assert state.summary() == "Showing all 4 items"
    state.set_filter(TaskStatus.TODO)
    assert state.summary() == "Showing 2 Todo items"


def test_local_delete_updates_filtered_view() -> None:
    state = TaskListState(_snapshot())
    state.set_filter(TaskStatus.TODO)

    assert state.apply_local_delete("a") is True
    assert [t.id for t in state.visible] == ["d"]
    assert state.apply_local_delete("a") is False
    assert len(state) == 3


def test_snapshot_replaces_everything_and_keeps_filter() -> None:
    state = TaskListState(_snapshot())
    state.set_filter(TaskStatus.DONE)

    state.apply_snapshot([_task("x", TaskStatus.DONE, 9), _task("y", TaskStatus.TODO, 8)])

    assert [t.id for t in state.tasks] == ["x", "y"]
    assert [t.id for t in state.visible] == ["x"]


def test_stale_snapshot_after_local_delete_brings_task_back() -> None:
    # Last applied snapshot wins, even over a newer optimistic delete.
    stale = _snapshot()
    state = TaskListState(stale)

    state.apply_local_delete("c")
    assert state.get("c") is None

    state.apply_snapshot(stale)
    assert state.get("c") is not None


def test_listeners_see_every_change() -> None:
    state = TaskListState(_snapshot())
    seen: list[int] = []
    state.add_listener(lambda s: seen.append(len(s.visible)))

    state.set_filter(TaskStatus.TODO)
    state.apply_local_delete("d")
    state.apply_snapshot([])

    assert seen == [2, 1, 0]


def test_failing_listener_does_not_break_updates() -> None:
    state = TaskListState()

    def boom(_state: TaskListState) -> None:
        raise RuntimeError("render failed")

    state.add_listener(boom)
    state.apply_snapshot(_snapshot())
    assert len(state) == 4


def test_find_by_prefix() -> None:
    state = TaskListState(
        [Task(id="abc-1", title="x"), Task(id="abd-2", title="y"), Task(id="zzz", title="z")]
    )
    assert [t.id for t in state.find_by_prefix("ab")] == ["abc-1", "abd-2"]
    assert [t.id for t in state.find_by_prefix("ABC")] == ["abc-1"]
    assert state.find_by_prefix("") == []

# tests/test_task_models.py

from __future__ import annotations

from datetime import date

import pytest

from todo_sync.core.errors import ValidationError
from todo_sync.tasks.task_models import (
    ALL,
    Task,
    TaskStatus,
    due_date_from_db,
    due_date_to_db,
    fields_to_row,
    parse_filter,
    task_from_row,
    task_to_row,
)


def test_status_from_db_falls_back_to_todo() -> None:
    assert TaskStatus.from_db("In Progress") is TaskStatus.IN_PROGRESS
    assert TaskStatus.from_db(None) is TaskStatus.TODO
    assert TaskStatus.from_db("archived") is TaskStatus.TODO


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("done", TaskStatus.DONE),
        ("Todo", TaskStatus.TODO),
        ("in-progress", TaskStatus.IN_PROGRESS),
        ("InProgress", TaskStatus.IN_PROGRESS),
        ("in progress", TaskStatus.IN_PROGRESS),
    ],
)
def test_status_parse_is_lenient(raw: str, expected: TaskStatus) -> None:
    assert TaskStatus.parse(raw) is expected


def test_status_parse_rejects_unknown() -> None:
    with pytest.raises(ValidationError):
        TaskStatus.parse("blocked")


def test_parse_filter() -> None:
    assert parse_filter("ALL") == ALL
    assert parse_filter("done") is TaskStatus.DONE


def test_due_date_is_normalized_to_utc() -> None:
    # 23:30 at -05:00 is already the next day in UTC.
    assert due_date_from_db("2025-03-31T23:30:00-05:00") == date(2025, 4, 1)
    assert due_date_from_db("2025-03-31T00:00:00+00:00") == date(2025, 3, 31)
    assert due_date_from_db("2025-03-31") == date(2025, 3, 31)
    assert due_date_from_db(None) is None
    assert due_date_to_db(date(2025, 3, 31)) == "2025-03-31T00:00:00+00:00"


def test_row_mapping() -> None:
    task = Task(id="a", title="Buy milk", owner="user-1", due_date=date(2025, 1, 2))
    row = task_to_row(task)

    assert row["status"] == "Todo"
    assert row["user_id"] == "user-1"
    assert "created_at" not in row

    row["created_at"] = "2025-01-01T10:00:00+00:00"
    back = task_from_row(row)
    assert back.title == "Buy milk"
    assert back.due_date == date(2025, 1, 2)
    assert back.created_at is not None


def test_fields_to_row_clears_due_date() -> None:
    assert fields_to_row({"due_date": None, "status": "Done"}) == {"due_date": None, "status": "Done"}

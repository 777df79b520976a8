# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from todo_sync.core.ports import UserIdentity
from todo_sync.core.state import AppState
from todo_sync.tasks.attachments import AttachmentReconciler
from todo_sync.tasks.gateway import RemoteDataGateway
from todo_sync.tasks.mutations import MutationCoordinator
from todo_sync.tasks.task_list import TaskListState

from .fakes import FakeAuth, FakeChangeFeed, FakeObjects, FakeRows, RecordingNotifier


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the bootstrap helpers.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated from the environment.
    """
    return SimpleNamespace(
        app_name="todo-sync-test",
        data_dir=tmp_path / "data",
        task_table="Todo",
        user_email="",
        user_password="",
        signed_url_ttl_seconds=3600,
        max_attachment_bytes=5 * 1024 * 1024,
    )


@pytest.fixture()
def rows() -> FakeRows:
    return FakeRows()


@pytest.fixture()
def objects() -> FakeObjects:
    return FakeObjects()


@pytest.fixture()
def feed() -> FakeChangeFeed:
    return FakeChangeFeed()


@pytest.fixture()
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture()
def gateway(rows: FakeRows, objects: FakeObjects) -> RemoteDataGateway:
    return RemoteDataGateway(rows, objects, table="Todo")


@pytest.fixture()
def task_list() -> TaskListState:
    return TaskListState()


@pytest.fixture()
def attachments(gateway: RemoteDataGateway) -> AttachmentReconciler:
    return AttachmentReconciler(gateway)


@pytest.fixture()
def coordinator(
    gateway: RemoteDataGateway,
    attachments: AttachmentReconciler,
    task_list: TaskListState,
    notifier: RecordingNotifier,
) -> MutationCoordinator:
    return MutationCoordinator(
        gateway,
        attachments,
        task_list=task_list,
        notifier=notifier,
        owner_id="user-1",
    )


@pytest.fixture()
def state(settings: SimpleNamespace, gateway: RemoteDataGateway, feed: FakeChangeFeed) -> AppState:
    """AppState wired with in-memory fakes; the todo view is not opened yet."""
    return AppState(
        settings=settings,
        auth=FakeAuth(UserIdentity(id="user-1", email="me@example.com")),
        gateway=gateway,
        feed=feed,
    )

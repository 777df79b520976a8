# tests/test_change_feed.py

from __future__ import annotations

import asyncio

import httpx
import pytest

from todo_sync.core.errors import ErrorKind, GatewayError
from todo_sync.tasks.change_feed import ChangeFeedSubscriber, SubscriptionState
from todo_sync.tasks.gateway import RemoteDataGateway
from todo_sync.tasks.task_list import TaskListState

from .fakes import FakeChangeFeed, FakeRows


def _subscriber(feed: FakeChangeFeed, gateway: RemoteDataGateway, task_list: TaskListState) -> ChangeFeedSubscriber:
    return ChangeFeedSubscriber(feed, gateway, task_list)


@pytest.mark.asyncio
async def test_lifecycle(feed: FakeChangeFeed, gateway: RemoteDataGateway, task_list: TaskListState) -> None:
    sub = _subscriber(feed, gateway, task_list)
    assert sub.state == SubscriptionState.UNSUBSCRIBED

    await sub.start()
    assert sub.state == SubscriptionState.ACTIVE
    ((table, event, _cb),) = feed.subscriptions.values()
    assert (table, event) == ("Todo", "*")

    await sub.start()  # no-op
    assert len(feed.subscriptions) == 1

    await sub.stop()
    assert sub.state == SubscriptionState.UNSUBSCRIBED
    assert feed.subscriptions == {}

    await sub.stop()  # no-op


@pytest.mark.asyncio
async def test_any_event_triggers_full_refresh(
    feed: FakeChangeFeed, gateway: RemoteDataGateway, rows: FakeRows, task_list: TaskListState
) -> None:
    async with _subscriber(feed, gateway, task_list) as sub:
        # A row written by another client; the payload itself is not used.
        rows.seed({"id": "remote-1", "title": "From another tab", "status": "Todo"})
        feed.emit("INSERT", {"id": "remote-1"})
        await sub.wait_idle()

        assert [t.id for t in task_list.tasks] == ["remote-1"]

        rows.rows["remote-1"]["status"] = "Done"
        feed.emit("UPDATE", {"id": "remote-1"})
        await sub.wait_idle()
        assert task_list.get("remote-1").status.value == "Done"

        del rows.rows["remote-1"]
        feed.emit("DELETE", {})
        await sub.wait_idle()
        assert len(task_list) == 0

        assert sub.events_seen == 3
        assert sub.refreshes_applied == 3


@pytest.mark.asyncio
async def test_failed_refresh_keeps_current_state(
    feed: FakeChangeFeed, gateway: RemoteDataGateway, rows: FakeRows, task_list: TaskListState
) -> None:
    rows.seed({"id": "a", "title": "keep me", "status": "Todo"})
    async with _subscriber(feed, gateway, task_list) as sub:
        assert await sub.refresh() is True

        rows.fail["select"] = httpx.ConnectError("offline")
        feed.emit("INSERT", {"id": "b"})
        await sub.wait_idle()

        assert [t.id for t in task_list.tasks] == ["a"]


@pytest.mark.asyncio
async def test_no_events_after_stop(
    feed: FakeChangeFeed, gateway: RemoteDataGateway, rows: FakeRows, task_list: TaskListState
) -> None:
    sub = _subscriber(feed, gateway, task_list)
    await sub.start()
    await sub.stop()

    rows.seed({"id": "late", "title": "late", "status": "Todo"})
    assert feed.emit("INSERT", {"id": "late"}) == 0
    assert len(task_list) == 0


@pytest.mark.asyncio
async def test_stop_cancels_pending_refresh(
    feed: FakeChangeFeed, gateway: RemoteDataGateway, rows: FakeRows, task_list: TaskListState
) -> None:
    sub = _subscriber(feed, gateway, task_list)
    await sub.start()

    rows.seed({"id": "a", "title": "a", "status": "Todo"})
    rows.select_gate = asyncio.Event()
    feed.emit("INSERT", {"id": "a"})
    await asyncio.sleep(0)  # let the refresh reach the gate

    await sub.stop()
    rows.select_gate.set()
    await asyncio.sleep(0)

    assert len(task_list) == 0
    assert sub.refreshes_applied == 0


@pytest.mark.asyncio
async def test_refresh_finishing_after_stop_is_dropped(
    feed: FakeChangeFeed, gateway: RemoteDataGateway, rows: FakeRows, task_list: TaskListState
) -> None:
    sub = _subscriber(feed, gateway, task_list)
    await sub.start()

    rows.seed({"id": "a", "title": "a", "status": "Todo"})
    rows.select_gate = asyncio.Event()
    in_flight = asyncio.create_task(sub.refresh())
    await asyncio.sleep(0)

    await sub.stop()
    rows.select_gate.set()

    assert await in_flight is False
    assert len(task_list) == 0


@pytest.mark.asyncio
async def test_subscribe_failure_is_classified(
    feed: FakeChangeFeed, gateway: RemoteDataGateway, task_list: TaskListState
) -> None:
    feed.subscribe_error = httpx.ConnectError("websocket refused")
    sub = _subscriber(feed, gateway, task_list)

    with pytest.raises(GatewayError) as info:
        await sub.start()

    assert info.value.kind == ErrorKind.NETWORK
    assert sub.state == SubscriptionState.UNSUBSCRIBED


@pytest.mark.asyncio
async def test_stop_while_subscribing_releases_handle(
    feed: FakeChangeFeed, gateway: RemoteDataGateway, task_list: TaskListState
) -> None:
    feed.subscribe_gate = asyncio.Event()
    sub = _subscriber(feed, gateway, task_list)

    starting = asyncio.create_task(sub.start())
    await asyncio.sleep(0)
    assert sub.state == SubscriptionState.SUBSCRIBING

    await sub.stop()
    feed.subscribe_gate.set()
    await starting

    assert sub.state == SubscriptionState.UNSUBSCRIBED
    assert feed.subscriptions == {}


@pytest.mark.asyncio
async def test_unsubscribe_failure_still_tears_down(
    feed: FakeChangeFeed, gateway: RemoteDataGateway, task_list: TaskListState
) -> None:
    sub = _subscriber(feed, gateway, task_list)
    await sub.start()
    feed.unsubscribe_error = RuntimeError("socket already closed")

    await sub.stop()

    assert sub.state == SubscriptionState.UNSUBSCRIBED

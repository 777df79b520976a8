# src/todo_sync/tasks/change_feed.py

from __future__ import annotations

"""
Change feed subscriber.

Listens for every mutation on the task table and answers each one with a
full list_tasks() refresh. Payloads are never merged into local state: the
server applies row-level security to the select, so a re-read is always
correct for the current viewer, while a raw payload may not be.

Lifecycle:
    UNSUBSCRIBED -> SUBSCRIBING -> ACTIVE -> UNSUBSCRIBED

stop() is immediate: pending refreshes are cancelled and a refresh that
completes after teardown is dropped.
"""

import asyncio
import logging
from enum import StrEnum
from typing import Any

from ..core.errors import GatewayError
from ..core.ports import ChangeEvent, ChangeFeed
from .gateway import RemoteDataGateway, classify_error
from .task_list import TaskListState

logger = logging.getLogger(__name__)

ALL_EVENTS = "*"


class SubscriptionState(StrEnum):
    UNSUBSCRIBED = "unsubscribed"
    SUBSCRIBING = "subscribing"
    ACTIVE = "active"


class ChangeFeedSubscriber:
    def __init__(
        self,
        feed: ChangeFeed,
        gateway: RemoteDataGateway,
        task_list: TaskListState,
        *,
        table: str | None = None,
    ) -> None:
        self._feed = feed
        self._gateway = gateway
        self._task_list = task_list
        self._table = table or gateway.table

        self._state = SubscriptionState.UNSUBSCRIBED
        self._handle: Any = None
        # Bumped on every start/stop; a refresh only applies if it still matches.
        self._generation = 0
        self._pending: set[asyncio.Task[None]] = set()

        self.events_seen = 0
        self.refreshes_applied = 0

    @property
    def state(self) -> SubscriptionState:
        return self._state

    @property
    def active(self) -> bool:
        return self._state == SubscriptionState.ACTIVE

    async def start(self) -> None:
        if self._state != SubscriptionState.UNSUBSCRIBED:
            return

        self._state = SubscriptionState.SUBSCRIBING
        self._generation += 1
        try:
            handle = await self._feed.subscribe(self._table, ALL_EVENTS, self._on_event)
        except Exception as e:
            self._state = SubscriptionState.UNSUBSCRIBED
            err = classify_error(e, operation="subscribe")
            logger.error("Change feed subscribe failed table=%s: %s", self._table, err.message)
            raise err from e

        if self._state != SubscriptionState.SUBSCRIBING:
            # stop() ran while we were waiting for the server.
            await self._release(handle)
            return

        self._handle = handle
        self._state = SubscriptionState.ACTIVE
        logger.info("Change feed active table=%s", self._table)

    async def stop(self) -> None:
        if self._state == SubscriptionState.UNSUBSCRIBED:
            return

        self._state = SubscriptionState.UNSUBSCRIBED
        self._generation += 1

        for task in list(self._pending):
            task.cancel()
        self._pending.clear()

        handle, self._handle = self._handle, None
        if handle is not None:
            await self._release(handle)
        logger.info("Change feed released table=%s", self._table)

    async def refresh(self) -> bool:
        """Re-read the whole table into the task list. Returns True if applied."""
        generation = self._generation
        result = await self._gateway.list_tasks()

        if generation != self._generation:
            logger.debug("Dropping refresh result from a previous subscription")
            return False

        if not result.ok:
            # Keep what we have; the next event triggers another attempt.
            err = result.error
            logger.warning("Refresh failed: %s", err.message if err else "unknown error")
            return False

        self._task_list.apply_snapshot(result.value or [])
        self.refreshes_applied += 1
        return True

    async def wait_idle(self) -> None:
        """Wait until every scheduled refresh has finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def __aenter__(self) -> ChangeFeedSubscriber:
        await self.start()
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.stop()

    # ---- internals ----

    def _on_event(self, event: ChangeEvent) -> None:
        if self._state != SubscriptionState.ACTIVE:
            return

        self.events_seen += 1
        logger.debug(
            "Change event %s on %s id=%s",
            event.event_type,
            event.table,
            (event.record or event.old_record).get("id"),
        )

        task = asyncio.get_running_loop().create_task(self._refresh_safely())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _refresh_safely(self) -> None:
        try:
            await self.refresh()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Change feed refresh crashed")

    async def _release(self, handle: Any) -> None:
        try:
            await self._feed.unsubscribe(handle)
        except Exception as e:
            err: GatewayError = classify_error(e, operation="unsubscribe")
            logger.warning("Change feed unsubscribe failed: %s", err.message)

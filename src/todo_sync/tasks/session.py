# src/todo_sync/tasks/session.py

from __future__ import annotations

import logging

from ..core.errors import GatewayError
from ..core.ports import ChangeFeed, Notifier
from .attachments import MAX_ATTACHMENT_BYTES, SIGNED_URL_TTL_SECONDS, AttachmentReconciler
from .change_feed import ChangeFeedSubscriber
from .gateway import RemoteDataGateway
from .mutations import MutationCoordinator
from .task_list import TaskListState

logger = logging.getLogger(__name__)


class TodoSession:
    """
    Everything one open todo view owns.

    Built when the view is entered, torn down when it is left:
    - mount(): initial snapshot, then the change feed subscription
    - unmount(): subscription released, pending image probes forgotten

    Row mutations still in flight at unmount are not cancelled. They finish
    remotely, but their outcome is only logged: no notification, no local
    list change.
    """

    def __init__(
        self,
        gateway: RemoteDataGateway,
        feed: ChangeFeed,
        *,
        notifier: Notifier | None = None,
        owner_id: str | None = None,
        url_ttl_seconds: int = SIGNED_URL_TTL_SECONDS,
        max_attachment_bytes: int = MAX_ATTACHMENT_BYTES,
    ) -> None:
        self.gateway = gateway
        self.task_list = TaskListState()
        self.attachments = AttachmentReconciler(
            gateway, url_ttl_seconds=url_ttl_seconds, max_bytes=max_attachment_bytes
        )
        self.subscriber = ChangeFeedSubscriber(feed, gateway, self.task_list)
        self.mutations = MutationCoordinator(
            gateway,
            self.attachments,
            task_list=self.task_list,
            notifier=notifier,
            owner_id=owner_id,
        )
        self._mounted = False

    @property
    def mounted(self) -> bool:
        return self._mounted

    async def mount(self) -> None:
        if self._mounted:
            return

        result = await self.gateway.list_tasks()
        if result.ok:
            self.task_list.apply_snapshot(result.value or [])
        else:
            # Render an empty list; the first change event will retry.
            err = result.error
            logger.error("Error fetching todos: %s", err.message if err else "unknown error")

        try:
            await self.subscriber.start()
        except GatewayError:
            logger.warning("Live updates unavailable; use /refresh to reload manually")

        self._mounted = True
        logger.info("Todo view mounted (%d tasks)", len(self.task_list))

    async def unmount(self) -> None:
        if not self._mounted:
            return
        self._mounted = False
        self.mutations.detach()
        self.attachments.close()
        await self.subscriber.stop()
        logger.info("Todo view unmounted")

    async def __aenter__(self) -> TodoSession:
        await self.mount()
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.unmount()

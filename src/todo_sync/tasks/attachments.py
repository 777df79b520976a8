# src/todo_sync/tasks/attachments.py

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum

from ..core.errors import GatewayError, ValidationError
from .gateway import RemoteDataGateway
from .task_models import (
    AttachmentChange,
    ImagePayload,
    KeepExisting,
    RemoveExisting,
    ReplaceWith,
)

logger = logging.getLogger(__name__)

MAX_ATTACHMENT_BYTES = 5 * 1024 * 1024
SIGNED_URL_TTL_SECONDS = 60 * 60


class AttachmentState(StrEnum):
    LOADING = "loading"
    PRESENT = "present"
    ABSENT = "absent"


@dataclass(slots=True, frozen=True)
class AttachmentView:
    state: AttachmentState
    url: str | None = None


LOADING = AttachmentView(AttachmentState.LOADING)
ABSENT = AttachmentView(AttachmentState.ABSENT)


@dataclass(slots=True, frozen=True)
class AttachmentStepResult:
    """
    What the storage half of a mutation did.

    warning is set when the step failed after the row was already committed.
    """

    message: str
    warning: str | None = None
    error: GatewayError | None = None


class AttachmentReconciler:
    """
    Image handling for tasks.

    Display: resolve() probes the bucket for the task id and, only if an object
    exists, signs a URL for it. Any failure shows as "no image".

    Mutations: storage calls are sequenced after the row write and can fail on
    their own; callers turn the returned step result into a warning.
    """

    def __init__(
        self,
        gateway: RemoteDataGateway,
        *,
        url_ttl_seconds: int = SIGNED_URL_TTL_SECONDS,
        max_bytes: int = MAX_ATTACHMENT_BYTES,
    ) -> None:
        self._gateway = gateway
        self._ttl = int(url_ttl_seconds)
        self._max_bytes = int(max_bytes)
        self._views: dict[str, AttachmentView] = {}
        self._closed = False

    @property
    def max_bytes(self) -> int:
        return self._max_bytes

    @property
    def url_ttl_seconds(self) -> int:
        return self._ttl

    # ---- validation ----

    def validate(self, image: ImagePayload | None) -> None:
        if image is None:
            return
        if image.size > self._max_bytes:
            limit_mb = self._max_bytes / (1024 * 1024)
            raise ValidationError(
                f"Image size exceeds {limit_mb:g}MB limit. Please choose a smaller image."
            )

    def validate_change(self, change: AttachmentChange) -> None:
        if isinstance(change, ReplaceWith):
            self.validate(change.image)

    # ---- display ----

    def view(self, task_id: str) -> AttachmentView:
        return self._views.get(task_id, LOADING)

    def invalidate(self, task_id: str) -> None:
        self._views.pop(task_id, None)

    def close(self) -> None:
        """Forget everything; probes still in flight will not record their result."""
        self._closed = True
        self._views.clear()

    async def resolve(self, task_id: str, *, force: bool = False) -> AttachmentView:
        if not force and task_id in self._views and self._views[task_id] is not LOADING:
            return self._views[task_id]

        if self._closed:
            return ABSENT

        self._views[task_id] = LOADING
        view = await self._fetch(task_id)

        if self._closed:
            logger.debug("Attachment probe for %s finished after close; dropped", task_id)
            return view

        self._views[task_id] = view
        return view

    async def _fetch(self, task_id: str) -> AttachmentView:
        exists = await self._gateway.attachment_exists(task_id)
        if not exists.ok:
            logger.info("Could not check image for task %s; showing none", task_id)
            return ABSENT
        if not exists.value:
            logger.debug("No image for task %s", task_id)
            return ABSENT

        signed = await self._gateway.sign_attachment_url(task_id, self._ttl)
        if not signed.ok:
            # Deleted between probe and sign, or a transient failure: same display.
            logger.info("Could not sign image URL for task %s", task_id)
            return ABSENT

        return AttachmentView(AttachmentState.PRESENT, signed.value)

    # ---- mutations ----

    async def upload_new(self, task_id: str, image: ImagePayload) -> AttachmentStepResult:
        """Create path: the row exists already; the image is optional extra."""
        result = await self._gateway.upload_attachment(task_id, image.data, image.content_type)
        self.invalidate(task_id)
        if not result.ok:
            return AttachmentStepResult(
                message="Your todo was created, but we couldn't upload the image.",
                warning=(
                    "Your todo was created, but we couldn't upload the image. "
                    "You can try again by editing the todo."
                ),
                error=result.error,
            )
        return AttachmentStepResult(message="Your todo was created successfully with the image.")

    async def apply_change(self, task_id: str, change: AttachmentChange) -> AttachmentStepResult:
        """Edit path, run after the row update committed."""
        if isinstance(change, KeepExisting):
            return AttachmentStepResult(message="Your changes have been saved.")

        self.invalidate(task_id)

        if isinstance(change, ReplaceWith):
            removed = await self._gateway.remove_attachment(task_id)
            if not removed.ok:
                # The upload overwrites anyway.
                logger.info("Removing old image for task %s failed; uploading over it", task_id)

            uploaded = await self._gateway.upload_attachment(
                task_id, change.image.data, change.image.content_type
            )
            if not uploaded.ok:
                msg = "Your todo was updated, but we couldn't upload the new image."
                return AttachmentStepResult(message=msg, warning=msg, error=uploaded.error)
            return AttachmentStepResult(message="Your todo and image were updated successfully.")

        if isinstance(change, RemoveExisting):
            removed = await self._gateway.remove_attachment(task_id)
            if not removed.ok:
                msg = "Your todo was updated, but we couldn't remove the image."
                return AttachmentStepResult(message=msg, warning=msg, error=removed.error)
            return AttachmentStepResult(message="Your todo was updated and image was removed.")

        raise TypeError(f"Unsupported attachment change: {change!r}")

    async def discard(self, task_id: str) -> None:
        """Delete path: best effort, the row delete goes ahead regardless."""
        self.invalidate(task_id)
        result = await self._gateway.remove_attachment(task_id)
        if not result.ok:
            logger.info("Could not remove image of task %s; deleting the todo anyway", task_id)

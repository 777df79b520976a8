# src/todo_sync/tasks/gateway.py

from __future__ import annotations

"""
Remote data gateway.

A typed façade over the row store and the object store. Every operation is a
coroutine returning a GatewayResult: remote failures are classified into a
GatewayError and returned, never raised. Programming errors (unknown update
fields) still raise.
"""

import logging
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

import httpx

from ..core.errors import ErrorKind, GatewayError
from ..core.ports import ObjectStore, RowStore
from .task_models import Task, fields_to_row, task_from_row, task_to_row

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(slots=True, frozen=True)
class GatewayResult(Generic[T]):
    value: T | None = None
    error: GatewayError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]


def _ok(value: Any = None) -> GatewayResult[Any]:
    return GatewayResult(value=value)


def _fail(error: GatewayError) -> GatewayResult[Any]:
    return GatewayResult(error=error)


# ---- error classification ----

_AUTH_NAMES = {
    "AuthApiError",
    "AuthSessionMissingError",
    "AuthInvalidCredentialsError",
    "AuthenticationError",
    "PermissionDeniedError",
    "UnauthorizedError",
}

_NETWORK_NAMES = {
    "ConnectionClosed",
    "ConnectionClosedError",
    "WebSocketException",
    "TimeoutError",
}


def _status_code(exc: BaseException) -> int | None:
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code

    for attr in ("status_code", "status", "statusCode", "code"):
        raw = getattr(exc, attr, None)
        if raw is None and exc.args and isinstance(exc.args[0], dict):
            # storage3 / postgrest put the response body in args[0]
            raw = exc.args[0].get(attr)
        if raw is None:
            continue
        try:
            return int(raw)
        except (TypeError, ValueError):
            continue
    return None


def _message(exc: BaseException) -> str:
    msg = getattr(exc, "message", None)
    if isinstance(msg, str) and msg:
        return msg
    if exc.args and isinstance(exc.args[0], dict):
        body = exc.args[0]
        for key in ("message", "error", "msg"):
            if body.get(key):
                return str(body[key])
    text = str(exc).strip()
    return text or exc.__class__.__name__


def _is_network_error(exc: BaseException) -> bool:
    if isinstance(exc, (httpx.TransportError, ConnectionError, TimeoutError)):
        return True
    return exc.__class__.__name__ in _NETWORK_NAMES


def _is_auth_error(exc: BaseException, status: int | None) -> bool:
    if status in (401, 403):
        return True
    if exc.__class__.__name__ in _AUTH_NAMES:
        return True
    text = _message(exc).lower()
    return "jwt" in text or "row-level security" in text or "permission denied" in text


def _is_not_found(exc: BaseException, status: int | None) -> bool:
    if status == 404:
        return True
    return "not found" in _message(exc).lower()


def _is_validation_error(exc: BaseException, status: int | None) -> bool:
    if status in (400, 409, 413, 422):
        return True
    text = _message(exc).lower()
    return "too large" in text or "violates" in text or "invalid input" in text


def classify_error(exc: BaseException, *, operation: str = "") -> GatewayError:
    """Turn any backend exception into a GatewayError with a stable kind."""
    if isinstance(exc, GatewayError):
        if not exc.operation:
            exc.operation = operation
        return exc

    status = _status_code(exc)
    message = _message(exc)

    # Order matters: storage answers 400 + "Object not found" for missing keys.
    if _is_network_error(exc):
        kind = ErrorKind.NETWORK
    elif _is_auth_error(exc, status):
        kind = ErrorKind.AUTH
    elif _is_not_found(exc, status):
        kind = ErrorKind.NOT_FOUND
    elif _is_validation_error(exc, status):
        kind = ErrorKind.VALIDATION
    else:
        kind = ErrorKind.SERVER

    return GatewayError(kind, message, operation=operation, cause=exc)


class RemoteDataGateway:
    """
    Task rows + task attachments.

    Attachments live in the object store under the task id; the row does not
    record whether one exists.
    """

    def __init__(self, rows: RowStore, objects: ObjectStore, *, table: str = "Todo") -> None:
        self._rows = rows
        self._objects = objects
        self._table = table

    @property
    def table(self) -> str:
        return self._table

    # ---- rows ----

    async def insert_task(self, task: Task) -> GatewayResult[None]:
        try:
            await self._rows.insert(self._table, task_to_row(task))
        except Exception as e:
            return self._failed("insert_task", task.id, e)
        logger.debug("Inserted task id=%s status=%s", task.id, task.status.value)
        return _ok()

    async def update_task(self, task_id: str, fields: dict[str, Any]) -> GatewayResult[None]:
        values = fields_to_row(fields)
        if not values:
            return _ok()
        try:
            await self._rows.update(self._table, values, match={"id": task_id})
        except Exception as e:
            return self._failed("update_task", task_id, e)
        logger.debug("Updated task id=%s fields=%s", task_id, sorted(values))
        return _ok()

    async def delete_task(self, task_id: str) -> GatewayResult[None]:
        try:
            await self._rows.delete(self._table, match={"id": task_id})
        except Exception as e:
            return self._failed("delete_task", task_id, e)
        logger.debug("Deleted task id=%s", task_id)
        return _ok()

    async def list_tasks(self) -> GatewayResult[list[Task]]:
        try:
            rows = await self._rows.select(self._table, order_by="created_at", descending=True)
        except Exception as e:
            return self._failed("list_tasks", None, e)
        return _ok([task_from_row(r) for r in rows])

    # ---- attachments ----

    async def upload_attachment(
        self,
        task_id: str,
        data: bytes,
        content_type: str | None = None,
    ) -> GatewayResult[None]:
        try:
            await self._objects.upload(task_id, data, content_type=content_type, overwrite=True)
        except Exception as e:
            return self._failed("upload_attachment", task_id, e)
        logger.debug("Uploaded attachment task_id=%s bytes=%d", task_id, len(data))
        return _ok()

    async def remove_attachment(self, task_id: str) -> GatewayResult[None]:
        try:
            await self._objects.remove([task_id])
        except Exception as e:
            err = classify_error(e, operation="remove_attachment")
            if err.is_not_found:
                return _ok()
            return self._failed("remove_attachment", task_id, err)
        return _ok()

    async def attachment_exists(self, task_id: str) -> GatewayResult[bool]:
        try:
            names = await self._objects.list_objects("", search=task_id, limit=1)
        except Exception as e:
            return self._failed("attachment_exists", task_id, e)
        # search is a prefix match; only the exact key counts.
        return _ok(task_id in names)

    async def sign_attachment_url(self, task_id: str, ttl_seconds: int) -> GatewayResult[str]:
        try:
            url = await self._objects.sign_url(task_id, int(ttl_seconds))
        except Exception as e:
            return self._failed("sign_attachment_url", task_id, e)
        if not url:
            return _fail(
                GatewayError(ErrorKind.SERVER, "Empty signed URL", operation="sign_attachment_url")
            )
        return _ok(url)

    @staticmethod
    def _failed(operation: str, task_id: str | None, exc: BaseException) -> GatewayResult[Any]:
        err = classify_error(exc, operation=operation)
        if err.is_not_found:
            logger.debug("%s: not found task_id=%s", operation, task_id)
        else:
            logger.warning(
                "%s failed task_id=%s kind=%s: %s", operation, task_id, err.kind.value, err.message
            )
        return _fail(err)

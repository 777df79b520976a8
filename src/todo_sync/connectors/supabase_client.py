# src/todo_sync/connectors/supabase_client.py

from __future__ import annotations

"""
Supabase implementation of the core ports.

Each adapter is a thin translation layer: it calls the async supabase client
and lets the library's exceptions propagate. Classification into GatewayError
happens in tasks/gateway.py, so the adapters stay free of policy.
"""

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from typing import Any

from supabase import AsyncClient, acreate_client

from ..core.ports import ChangeCallback, ChangeEvent, Row, UserIdentity

logger = logging.getLogger(__name__)

JOIN_TIMEOUT_S = 15.0


def _identity(user: Any) -> UserIdentity | None:
    if user is None:
        return None
    return UserIdentity(id=str(user.id), email=getattr(user, "email", None))


class SupabaseAuth:
    def __init__(self, client: AsyncClient) -> None:
        self._client = client

    async def get_current_user(self) -> UserIdentity | None:
        # No stored session is "nobody signed in", not an error.
        session = await self._client.auth.get_session()
        if session is None:
            return None
        resp = await self._client.auth.get_user()
        return _identity(resp.user if resp is not None else None)

    async def sign_in_with_password(self, email: str, password: str) -> UserIdentity:
        resp = await self._client.auth.sign_in_with_password({"email": email, "password": password})
        identity = _identity(resp.user)
        if identity is None:
            raise RuntimeError("Sign-in returned no user")
        logger.info("Signed in as %s", identity.email or identity.id)
        return identity

    async def sign_out(self) -> None:
        await self._client.auth.sign_out()


class SupabaseRows:
    def __init__(self, client: AsyncClient) -> None:
        self._client = client

    async def insert(self, table: str, row: Row) -> None:
        await self._client.table(table).insert(row).execute()

    async def update(self, table: str, values: Row, *, match: Row) -> None:
        await self._client.table(table).update(values).match(match).execute()

    async def delete(self, table: str, *, match: Row) -> None:
        await self._client.table(table).delete().match(match).execute()

    async def select(
        self,
        table: str,
        *,
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[Row]:
        query = self._client.table(table).select("*")
        if order_by:
            query = query.order(order_by, desc=descending)
        resp = await query.execute()
        return list(resp.data or [])


class SupabaseObjects:
    def __init__(self, client: AsyncClient, bucket: str, *, cache_control: str = "3600") -> None:
        self._client = client
        self._bucket_name = bucket
        self._cache_control = cache_control

    def _bucket(self):
        return self._client.storage.from_(self._bucket_name)

    async def upload(
        self,
        key: str,
        data: bytes,
        *,
        content_type: str | None = None,
        overwrite: bool = True,
    ) -> None:
        file_options = {
            "cache-control": self._cache_control,
            "upsert": "true" if overwrite else "false",
        }
        if content_type:
            file_options["content-type"] = content_type
        await self._bucket().upload(key, data, file_options=file_options)

    async def remove(self, keys: list[str]) -> None:
        # Missing keys are silently skipped by the storage API.
        await self._bucket().remove(keys)

    async def sign_url(self, key: str, ttl_seconds: int) -> str:
        resp = await self._bucket().create_signed_url(key, ttl_seconds)
        if not isinstance(resp, dict):
            return ""
        return str(resp.get("signedURL") or resp.get("signedUrl") or "")

    async def list_objects(
        self,
        prefix: str = "",
        *,
        search: str | None = None,
        limit: int = 100,
    ) -> list[str]:
        options: dict[str, Any] = {"limit": int(limit)}
        if search:
            options["search"] = search
        items = await self._bucket().list(prefix, options)
        return [str(item.get("name")) for item in items or [] if item.get("name")]


class ChannelJoinError(ConnectionError):
    """The server refused the realtime join (CHANNEL_ERROR / CLOSED)."""


def _status_name(status: Any) -> str:
    return str(getattr(status, "value", status) or "").upper()


class SupabaseChangeFeed:
    def __init__(
        self,
        client: AsyncClient,
        *,
        schema: str = "public",
        channel_name: str = "todos-changes",
        join_timeout_s: float = JOIN_TIMEOUT_S,
    ) -> None:
        self._client = client
        self._schema = schema
        self._channel_name = channel_name
        self._join_timeout_s = float(join_timeout_s)

    async def subscribe(self, table: str, event: str, callback: ChangeCallback) -> Any:
        def _on_change(payload: dict[str, Any]) -> None:
            data = payload.get("data", payload) if isinstance(payload, dict) else {}
            callback(
                ChangeEvent(
                    event_type=str(data.get("type") or data.get("eventType") or ""),
                    table=str(data.get("table") or table),
                    record=dict(data.get("record") or {}),
                    old_record=dict(data.get("old_record") or {}),
                )
            )

        # subscribe() only sends the join; the server's answer arrives on the status callback.
        joined: asyncio.Future[None] = asyncio.get_running_loop().create_future()

        def _on_status(status: Any, err: Exception | None = None) -> None:
            name = _status_name(status)
            if joined.done():
                if name != "SUBSCRIBED":
                    logger.warning("Realtime channel %s status %s: %s", self._channel_name, name, err or "")
                return
            if name == "SUBSCRIBED":
                joined.set_result(None)
            elif name == "TIMED_OUT":
                joined.set_exception(TimeoutError(f"Realtime join timed out for {table}"))
            elif name in ("CHANNEL_ERROR", "CLOSED"):
                joined.set_exception(ChannelJoinError(f"Realtime join failed for {table}: {err or name}"))

        channel = self._client.channel(self._channel_name)
        channel.on_postgres_changes(event, schema=self._schema, table=table, callback=_on_change)
        try:
            await channel.subscribe(_on_status)
            await asyncio.wait_for(joined, timeout=self._join_timeout_s)
        except BaseException:
            with contextlib.suppress(Exception):
                await self._client.remove_channel(channel)
            raise

        logger.debug("Realtime channel %s subscribed (table=%s)", self._channel_name, table)
        return channel

    async def unsubscribe(self, handle: Any) -> None:
        await self._client.remove_channel(handle)


@dataclass(slots=True)
class SupabaseBackend:
    client: AsyncClient
    auth: SupabaseAuth
    rows: SupabaseRows
    objects: SupabaseObjects
    feed: SupabaseChangeFeed


async def create_supabase_backend(settings) -> SupabaseBackend:
    """
    Create the async Supabase client and wrap it in port adapters.

    Requires TODO_SUPABASE_URL and TODO_SUPABASE_KEY (the project's anon key).
    """
    url = (getattr(settings, "supabase_url", "") or "").strip()
    key = (getattr(settings, "supabase_key", "") or "").strip()
    if not url or not key:
        raise RuntimeError("Supabase is not configured: set TODO_SUPABASE_URL and TODO_SUPABASE_KEY")

    client = await acreate_client(url, key)
    logger.info("Supabase client ready url=%s", url)

    return SupabaseBackend(
        client=client,
        auth=SupabaseAuth(client),
        rows=SupabaseRows(client),
        objects=SupabaseObjects(
            client,
            getattr(settings, "attachment_bucket", "todo-images"),
            cache_control=getattr(settings, "upload_cache_control", "3600"),
        ),
        feed=SupabaseChangeFeed(
            client,
            schema=getattr(settings, "db_schema", "public"),
            channel_name=getattr(settings, "realtime_channel", "todos-changes"),
        ),
    )

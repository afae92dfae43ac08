"""
Hosted backend client (Supabase REST).

Talks to the project's auth (`/auth/v1/*`) and PostgREST (`/rest/v1/<table>`) endpoints
with httpx. The live insert feed is implemented by polling: each channel runs an
asyncio task that re-queries rows newer than the last one it delivered.

Errors are raised as `httpx.HTTPError`; the stores translate them into the
`spotshare.core.errors` taxonomy.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

import httpx

from spotshare.backend.base import InsertCallback, Row
from spotshare.config.settings import Settings
from spotshare.core.http import build_client, request_json
from spotshare.domain.models import Identity

logger = logging.getLogger(__name__)


@dataclass
class PollingChannel:
    collection: str
    callback: InsertCallback
    cursor: str | None = None
    seen_at_cursor: set[str] = field(default_factory=set)
    task: asyncio.Task[None] | None = None


def _identity_from_user(user: Mapping[str, Any] | None) -> Identity | None:
    if not user or not user.get("id"):
        return None
    return Identity(id=str(user["id"]), email=user.get("email"))


def _filter_value(value: Any) -> str:
    if isinstance(value, bool):
        return "eq." + ("true" if value else "false")
    if value is None:
        return "is.null"
    return f"eq.{value}"


class SupabaseBackend:
    """Auth + rows + polled insert feed against a hosted Supabase project."""

    def __init__(
        self,
        settings: Settings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        cfg = settings.backend
        if not cfg.url or not cfg.anon_key:
            raise ValueError("SupabaseBackend requires backend.url and backend.anon_key")
        self._anon_key = cfg.anon_key
        self._poll_interval = float(settings.feed.poll_interval_seconds)
        self._client = build_client(
            cfg.url, timeout_seconds=settings.app.http_timeout_seconds, transport=transport
        )
        self._access_token: str | None = None
        self._channels: list[PollingChannel] = []

    def _headers(self, *, prefer: str | None = None) -> dict[str, str]:
        headers = {
            "apikey": self._anon_key,
            "Authorization": f"Bearer {self._access_token or self._anon_key}",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    def _store_session(self, payload: Mapping[str, Any] | None) -> Identity | None:
        if not payload:
            return None
        token = payload.get("access_token")
        if token:
            self._access_token = str(token)
        # Sign-up without auto-confirm returns the bare user object.
        user = payload.get("user") if "user" in payload else payload
        return _identity_from_user(user)

    # -- identity / auth -------------------------------------------------

    async def current_identity(self) -> Identity | None:
        if not self._access_token:
            return None
        try:
            user = await request_json(self._client, "GET", "/auth/v1/user", headers=self._headers())
        except httpx.HTTPStatusError as exc:
            if exc.response.status_code in (401, 403):
                logger.info("Stored session rejected by auth service; treating as signed out.")
                self._access_token = None
                return None
            raise
        return _identity_from_user(user)

    async def sign_in_with_password(self, email: str, password: str) -> Identity:
        payload = await request_json(
            self._client,
            "POST",
            "/auth/v1/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
            headers=self._headers(),
        )
        identity = self._store_session(payload)
        if identity is None:
            raise ValueError("Auth service returned no user for password sign-in")
        return identity

    async def sign_up(self, email: str, password: str, metadata: Mapping[str, Any]) -> Identity | None:
        payload = await request_json(
            self._client,
            "POST",
            "/auth/v1/signup",
            json={"email": email, "password": password, "data": dict(metadata)},
            headers=self._headers(),
        )
        return self._store_session(payload)

    async def sign_out(self) -> None:
        if self._access_token:
            await request_json(self._client, "POST", "/auth/v1/logout", headers=self._headers())
        self._access_token = None

    async def update_password(self, new_password: str) -> None:
        await request_json(
            self._client, "PUT", "/auth/v1/user", json={"password": new_password}, headers=self._headers()
        )

    # -- rows --------------------------------------------------------------

    async def insert(self, collection: str, record: Mapping[str, Any]) -> Row:
        rows = await request_json(
            self._client,
            "POST",
            f"/rest/v1/{collection}",
            json=dict(record),
            headers=self._headers(prefer="return=representation"),
        )
        if not isinstance(rows, list) or not rows:
            raise ValueError(f"Insert into {collection} returned no representation")
        return dict(rows[0])

    async def select_all(
        self,
        collection: str,
        *,
        order_by: str = "created_at",
        descending: bool = True,
        match: Mapping[str, Any] | None = None,
        extra_params: Mapping[str, str] | None = None,
    ) -> list[Row]:
        params: dict[str, Any] = {
            "select": "*",
            "order": f"{order_by}.{'desc' if descending else 'asc'}",
        }
        for key, value in (match or {}).items():
            params[key] = _filter_value(value)
        if extra_params:
            params.update(extra_params)
        rows = await request_json(self._client, "GET", f"/rest/v1/{collection}", params=params, headers=self._headers())
        return [dict(r) for r in rows or []]

    # -- live feed (polling) -------------------------------------------------

    async def subscribe(
        self,
        collection: str,
        on_insert: InsertCallback,
        *,
        known_rows: Sequence[Row] | None = None,
    ) -> PollingChannel:
        """Open a polled insert feed on `collection`.

        With `known_rows` (what the caller just bulk-fetched), delivery resumes from the
        newest of those rows, so nothing inserted after the fetch is skipped. Without it
        only rows newer than the current latest row are delivered.
        """
        channel = PollingChannel(collection=collection, callback=on_insert)
        if known_rows is None:
            known_rows = await self.select_all(collection, extra_params={"limit": "1"})
        stamps = [str(r.get("created_at")) for r in known_rows if r.get("created_at")]
        if stamps:
            channel.cursor = max(stamps)
            channel.seen_at_cursor = {
                str(r.get("id")) for r in known_rows if str(r.get("created_at")) == channel.cursor
            }
        channel.task = asyncio.create_task(self._poll(channel), name=f"feed:{collection}")
        self._channels.append(channel)
        return channel

    async def unsubscribe(self, handle: PollingChannel) -> None:
        if handle in self._channels:
            self._channels.remove(handle)
        task = handle.task
        handle.task = None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def poll_once(self, channel: PollingChannel) -> int:
        """Fetch and deliver rows newer than the channel cursor; returns rows delivered."""
        extra = {"created_at": f"gte.{channel.cursor}"} if channel.cursor else None
        rows = await self.select_all(channel.collection, descending=False, extra_params=extra)
        delivered = 0
        for row in rows:
            row_id = str(row.get("id"))
            created_at = str(row.get("created_at"))
            if created_at == channel.cursor and row_id in channel.seen_at_cursor:
                continue
            if created_at != channel.cursor:
                channel.cursor = created_at
                channel.seen_at_cursor = set()
            # The cursor moves past a row even when its handler fails.
            channel.seen_at_cursor.add(row_id)
            try:
                channel.callback(row)
            except Exception:
                logger.exception("Feed handler failed for %s row %s", channel.collection, row_id)
                continue
            delivered += 1
        return delivered

    async def _poll(self, channel: PollingChannel) -> None:
        while True:
            await asyncio.sleep(self._poll_interval)
            try:
                await self.poll_once(channel)
            except (httpx.HTTPError, ValueError) as exc:
                # Next tick retries from the same cursor.
                logger.warning("Feed poll failed for %s: %s", channel.collection, str(exc))

    async def aclose(self) -> None:
        for channel in list(self._channels):
            await self.unsubscribe(channel)
        await self._client.aclose()

"""
In-process backend.

Implements auth, row storage and the live insert feed in memory. Used by the demo
server (`backend.kind: memory`) and by tests. Feed delivery is scheduled with
`loop.call_soon`, so subscribers observe inserts out-of-band, as they would from the
hosted realtime service.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

from spotshare.backend.base import InsertCallback, Row
from spotshare.core.errors import AuthFailure
from spotshare.core.time import to_iso, utc_now
from spotshare.domain.models import Identity

logger = logging.getLogger(__name__)


@dataclass
class MemoryChannel:
    collection: str
    callback: InsertCallback
    channel_id: int
    closed: bool = False


@dataclass
class _Account:
    identity: Identity
    password: str
    metadata: dict[str, Any] = field(default_factory=dict)


class InMemoryBackend:
    """A single-tenant stand-in for the hosted auth + database + realtime service."""

    def __init__(self) -> None:
        self._tables: dict[str, list[Row]] = {}
        self._channels: list[MemoryChannel] = []
        self._accounts: dict[str, _Account] = {}
        self._current: Identity | None = None
        self._channel_ids = itertools.count(1)

    # -- identity / auth -------------------------------------------------

    async def current_identity(self) -> Identity | None:
        return self._current

    async def sign_in_with_password(self, email: str, password: str) -> Identity:
        account = self._accounts.get(email.lower())
        if account is None or account.password != password:
            raise AuthFailure("Invalid login credentials")
        self._current = account.identity
        return account.identity

    async def sign_up(self, email: str, password: str, metadata: Mapping[str, Any]) -> Identity | None:
        key = email.lower()
        if key in self._accounts:
            raise AuthFailure("User already registered")
        identity = Identity(id=str(uuid.uuid4()), email=email)
        self._accounts[key] = _Account(identity=identity, password=password, metadata=dict(metadata))
        self._current = identity
        return identity

    async def sign_out(self) -> None:
        self._current = None

    async def update_password(self, new_password: str) -> None:
        if self._current is None:
            raise AuthFailure("Auth session missing")
        account = self._accounts[(self._current.email or "").lower()]
        account.password = new_password

    # -- rows --------------------------------------------------------------

    async def insert(self, collection: str, record: Mapping[str, Any]) -> Row:
        row: Row = dict(record)
        row.setdefault("id", str(uuid.uuid4()))
        row.setdefault("created_at", to_iso(utc_now()))
        self._tables.setdefault(collection, []).append(row)
        self._dispatch(collection, row)
        return dict(row)

    async def select_all(
        self,
        collection: str,
        *,
        order_by: str = "created_at",
        descending: bool = True,
        match: Mapping[str, Any] | None = None,
    ) -> list[Row]:
        rows = [dict(r) for r in self._tables.get(collection, [])]
        if match:
            rows = [r for r in rows if all(r.get(k) == v for k, v in match.items())]
        # Insertion order breaks ties between equal timestamps.
        indexed = list(enumerate(rows))
        indexed.sort(key=lambda pair: (str(pair[1].get(order_by) or ""), pair[0]), reverse=descending)
        return [r for _, r in indexed]

    # -- live feed -----------------------------------------------------------

    async def subscribe(
        self,
        collection: str,
        on_insert: InsertCallback,
        *,
        known_rows: Sequence[Row] | None = None,
    ) -> MemoryChannel:
        # Inserts are pushed as they happen, so there is no gap to catch up on.
        channel = MemoryChannel(collection=collection, callback=on_insert, channel_id=next(self._channel_ids))
        self._channels.append(channel)
        logger.debug("Opened channel %s on %s", channel.channel_id, collection)
        return channel

    async def unsubscribe(self, handle: MemoryChannel) -> None:
        handle.closed = True
        if handle in self._channels:
            self._channels.remove(handle)
        logger.debug("Closed channel %s on %s", handle.channel_id, handle.collection)

    def emit_insert(self, collection: str, row: Mapping[str, Any]) -> None:
        """Deliver an insert event without storing the row (simulates a feed-only event)."""
        self._dispatch(collection, dict(row))

    @property
    def open_channels(self) -> int:
        return len(self._channels)

    def _dispatch(self, collection: str, row: Row) -> None:
        channels = [c for c in self._channels if c.collection == collection]
        if not channels:
            return
        loop = asyncio.get_running_loop()
        for channel in channels:
            loop.call_soon(self._deliver, channel, dict(row))

    @staticmethod
    def _deliver(channel: MemoryChannel, row: Row) -> None:
        # Events queued before an unsubscribe must not reach the closed channel.
        if not channel.closed:
            channel.callback(row)

    async def aclose(self) -> None:
        for channel in list(self._channels):
            await self.unsubscribe(channel)

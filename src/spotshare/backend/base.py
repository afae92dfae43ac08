"""
Collaborator interfaces consumed by the stores.

The hosted backend (auth, row storage, realtime inserts) and the billing state are
external; the stores only see these narrow protocols, so they can be exercised with
`InMemoryBackend` in tests and demos and with `SupabaseBackend` in production.
"""

from __future__ import annotations

from typing import Any, Callable, Mapping, Protocol, Sequence

from spotshare.domain.models import Coordinate, Identity, SubscriptionTier

Row = dict[str, Any]
InsertCallback = Callable[[Row], None]


class FeedHandle(Protocol):
    @property
    def collection(self) -> str: ...


class IdentityProvider(Protocol):
    async def current_identity(self) -> Identity | None: ...


class AuthBackend(IdentityProvider, Protocol):
    async def sign_in_with_password(self, email: str, password: str) -> Identity: ...

    async def sign_up(self, email: str, password: str, metadata: Mapping[str, Any]) -> Identity | None: ...

    async def sign_out(self) -> None: ...

    async def update_password(self, new_password: str) -> None: ...


class RowStore(Protocol):
    async def insert(self, collection: str, record: Mapping[str, Any]) -> Row: ...

    async def select_all(
        self,
        collection: str,
        *,
        order_by: str = "created_at",
        descending: bool = True,
        match: Mapping[str, Any] | None = None,
    ) -> list[Row]: ...


class LiveFeed(Protocol):
    async def subscribe(
        self,
        collection: str,
        on_insert: InsertCallback,
        *,
        known_rows: Sequence[Row] | None = None,
    ) -> FeedHandle:
        """Deliver inserts into `collection` that are not among `known_rows`."""
        ...

    async def unsubscribe(self, handle: FeedHandle) -> None: ...


class TierOracle(Protocol):
    def current_tier(self) -> SubscriptionTier: ...


class GeolocationSource(Protocol):
    async def get_current_position(self) -> Coordinate: ...


class Backend(AuthBackend, RowStore, LiveFeed, Protocol):
    """Everything a session needs from the hosted service."""

    async def aclose(self) -> None: ...

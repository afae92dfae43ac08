"""
Session wiring.

A `Session` owns one instance of every store for the lifetime of a signed-in client:
created at session start, torn down with `aclose()` (pending spot promotions cancelled,
live channel closed). There are no process-wide store singletons.
"""

from __future__ import annotations

import logging

from spotshare.backend.base import Backend, GeolocationSource
from spotshare.backend.memory import InMemoryBackend
from spotshare.backend.supabase import SupabaseBackend
from spotshare.config.settings import Settings
from spotshare.core.time import LoopScheduler, Scheduler
from spotshare.domain.models import Coordinate
from spotshare.geolocation import locate
from spotshare.presentation.map_view import MapView
from spotshare.stores.auth import AuthStore
from spotshare.stores.locations import LocationSharingStore
from spotshare.stores.parking import SpotVisibilityStore
from spotshare.stores.subscription import SubscriptionStore

logger = logging.getLogger(__name__)


def build_backend(settings: Settings) -> Backend:
    if settings.backend.kind == "supabase":
        return SupabaseBackend(settings)
    return InMemoryBackend()


class Session:
    def __init__(
        self,
        settings: Settings,
        backend: Backend,
        *,
        scheduler: Scheduler | None = None,
    ):
        tables = settings.backend.tables
        self.settings = settings
        self.backend = backend
        self.auth = AuthStore(backend, backend, profiles_collection=tables.profiles)
        self.subscription = SubscriptionStore(backend, collection=tables.profiles)
        self.spots = SpotVisibilityStore(
            scheduler or LoopScheduler(), self.subscription, settings=settings.visibility
        )
        self.locations = LocationSharingStore(
            backend,
            backend,
            backend,
            collection=tables.locations,
            dedupe_by_id=settings.feed.dedupe_by_id,
        )
        self.map = MapView(self.spots, self.locations, navigation=settings.navigation)
        self._closed = False

    async def start(self) -> None:
        """Restore any existing auth session and load the account's tier."""
        user = await self.auth.restore()
        await self.subscription.refresh(user)

    async def refresh_tier(self) -> None:
        await self.subscription.refresh(self.auth.user)

    async def update_position(self, source: GeolocationSource) -> Coordinate:
        """Acquire the device position and make it the map's center."""
        coordinate = await locate(source, timeout_seconds=self.settings.geolocation.timeout_seconds)
        self.spots.set_user_location(coordinate)
        return coordinate

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.spots.close()
        await self.locations.unsubscribe_from_locations()
        await self.backend.aclose()
        logger.info("Session closed")

    async def __aenter__(self) -> "Session":
        await self.start()
        return self

    async def __aexit__(self, *_exc: object) -> None:
        await self.aclose()

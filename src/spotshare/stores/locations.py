"""
Location sharing store.

`share_location` persists the device position; it does not touch `locations`.
The live feed is the only path that appends, so the sharer sees their own record
exactly when every other observer does and there is no optimistic-append/feed race.
"""

from __future__ import annotations

import logging

from spotshare.backend.base import FeedHandle, IdentityProvider, LiveFeed, Row, RowStore
from spotshare.core.errors import FeedFailure, PersistenceFailure, SpotShareError, Unauthenticated
from spotshare.domain.models import Coordinate, SharedLocation, location_row

logger = logging.getLogger(__name__)

LOCATIONS_COLLECTION = "locations"


class LocationSharingStore:
    def __init__(
        self,
        identity: IdentityProvider,
        rows: RowStore,
        feed: LiveFeed,
        *,
        collection: str = LOCATIONS_COLLECTION,
        dedupe_by_id: bool = False,
    ):
        self._identity = identity
        self._rows = rows
        self._feed = feed
        self._collection = collection
        self._dedupe_by_id = dedupe_by_id
        self._locations: list[SharedLocation] = []
        self._channel: FeedHandle | None = None

    @property
    def locations(self) -> list[SharedLocation]:
        return list(self._locations)

    @property
    def subscribed(self) -> bool:
        return self._channel is not None

    async def share_location(self, coordinate: Coordinate) -> SharedLocation:
        """Persist a new shared location for the signed-in user."""
        try:
            identity = await self._identity.current_identity()
        except SpotShareError:
            raise
        except Exception as exc:
            logger.error("Identity lookup failed: %s", str(exc))
            raise PersistenceFailure(f"Could not resolve the signed-in user: {exc}") from exc
        if identity is None:
            raise Unauthenticated()

        try:
            row = await self._rows.insert(self._collection, location_row(identity, coordinate))
        except Exception as exc:
            logger.error("Insert into %s failed: %s", self._collection, str(exc))
            raise PersistenceFailure(f"Could not share location: {exc}") from exc

        shared = SharedLocation.from_row(row)
        logger.info("Shared location %s for user %s", shared.id, identity.id)
        return shared

    async def subscribe_to_locations(self) -> None:
        """Load existing locations (newest first), then follow new inserts."""
        await self.unsubscribe_from_locations()

        try:
            rows = await self._rows.select_all(self._collection, order_by="created_at", descending=True)
        except Exception as exc:
            logger.error("Fetching %s failed: %s", self._collection, str(exc))
            raise PersistenceFailure(f"Could not load locations: {exc}") from exc
        self._locations = [SharedLocation.from_row(r) for r in rows]

        try:
            self._channel = await self._feed.subscribe(self._collection, self._on_insert, known_rows=rows)
        except Exception as exc:
            logger.error("Subscribing to %s failed: %s", self._collection, str(exc))
            raise FeedFailure(f"Could not subscribe to live locations: {exc}") from exc
        logger.info("Subscribed to %s with %d existing rows", self._collection, len(self._locations))

    async def unsubscribe_from_locations(self) -> None:
        channel = self._channel
        if channel is None:
            return
        self._channel = None
        await self._feed.unsubscribe(channel)
        logger.info("Unsubscribed from %s", self._collection)

    def _on_insert(self, row: Row) -> None:
        if self._channel is None:
            return
        try:
            location = SharedLocation.from_row(row)
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Dropping malformed %s row %s: %s", self._collection, row.get("id"), str(exc))
            return
        if self._dedupe_by_id and any(loc.id == location.id for loc in self._locations):
            logger.debug("Dropping duplicate feed insert %s", location.id)
            return
        self._locations.insert(0, location)

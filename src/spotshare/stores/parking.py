"""
Spot visibility store.

Holds the known parking spots and applies the tier-gated release delay:
- premium sharers' spots become visible immediately,
- free sharers' spots are held back for `delay_window_ms` and then promoted.

Promotion is a cancelable timer keyed by spot id; `remove_spot` cancels it, so a
removed spot can never be resurrected. Distance filtering is not done here; the
presentation layer filters the snapshot using `selected_distance_km` and
`user_location` (see `spotshare.presentation.map_view`).
"""

from __future__ import annotations

import logging
import math
from typing import Iterable

from spotshare.backend.base import TierOracle
from spotshare.config.settings import VisibilitySettings
from spotshare.core.time import Scheduler, TimerHandle
from spotshare.domain.models import Coordinate, DelayedSpot, ParkingSpot, SubscriptionTier

logger = logging.getLogger(__name__)

DELAY_WINDOW_MS = 60_000


class SpotVisibilityStore:
    """Owns `spots` (newest first) and `delayed_spots`; callers only ever get copies."""

    def __init__(
        self,
        scheduler: Scheduler,
        tier_oracle: TierOracle | None = None,
        *,
        settings: VisibilitySettings | None = None,
    ):
        cfg = settings or VisibilitySettings(delay_window_ms=DELAY_WINDOW_MS)
        self._scheduler = scheduler
        self._tier_oracle = tier_oracle
        self._delay_window_ms = int(cfg.delay_window_ms)
        self._min_distance_km = float(cfg.min_distance_km)
        self._max_distance_km = float(cfg.max_distance_km)

        self._spots: list[ParkingSpot] = []
        self._delayed: list[DelayedSpot] = []
        self._timers: dict[str, TimerHandle] = {}
        self._selected_distance_km = float(cfg.default_distance_km)
        self._user_location: Coordinate | None = None
        self._selected_spot: ParkingSpot | None = None

    # -- read-only views -----------------------------------------------------

    @property
    def spots(self) -> list[ParkingSpot]:
        return list(self._spots)

    @property
    def delayed_spots(self) -> list[DelayedSpot]:
        return list(self._delayed)

    @property
    def selected_distance_km(self) -> float:
        return self._selected_distance_km

    @property
    def user_location(self) -> Coordinate | None:
        return self._user_location

    @property
    def selected_spot(self) -> ParkingSpot | None:
        return self._selected_spot

    @property
    def pending_promotions(self) -> int:
        return len(self._timers)

    def current_tier(self) -> SubscriptionTier:
        """Tier of the current account; falls back to free when it cannot be read."""
        if self._tier_oracle is None:
            return SubscriptionTier.FREE
        try:
            tier = self._tier_oracle.current_tier()
        except Exception as exc:
            logger.warning("Subscription tier unavailable (%s); applying free-tier delay.", str(exc))
            return SubscriptionTier.FREE
        return tier if isinstance(tier, SubscriptionTier) else SubscriptionTier.FREE

    # -- mutations -------------------------------------------------------------

    def add_spot(self, spot: ParkingSpot) -> None:
        # A re-shared id replaces the earlier copy wherever it lives.
        self.remove_spot(spot.id)

        if self.current_tier() is SubscriptionTier.PREMIUM:
            self._spots.insert(0, spot)
            logger.debug("Spot %s visible immediately (premium).", spot.id)
            return

        delayed = spot.delayed_until(self._scheduler.now_ms() + self._delay_window_ms)
        self._delayed.append(delayed)
        self._timers[spot.id] = self._scheduler.call_later(
            self._delay_window_ms, lambda: self._promote(spot.id)
        )
        logger.debug("Spot %s held until %.0f ms (free tier).", spot.id, delayed.available_at_ms)

    def remove_spot(self, spot_id: str) -> None:
        timer = self._timers.pop(spot_id, None)
        if timer is not None:
            timer.cancel()
        self._spots = [s for s in self._spots if s.id != spot_id]
        self._delayed = [s for s in self._delayed if s.id != spot_id]
        if self._selected_spot is not None and self._selected_spot.id == spot_id:
            self._selected_spot = None

    def set_spots(self, spots: Iterable[ParkingSpot]) -> None:
        """Replace the released spots wholesale (e.g. after a bulk load)."""
        new_spots = list(spots)
        for spot in new_spots:
            if spot.id in self._timers:
                self._timers.pop(spot.id).cancel()
        ids = {s.id for s in new_spots}
        self._delayed = [s for s in self._delayed if s.id not in ids]
        self._spots = new_spots

    def _promote(self, spot_id: str) -> None:
        self._timers.pop(spot_id, None)
        match = next((s for s in self._delayed if s.id == spot_id), None)
        if match is None:
            return
        self._delayed = [s for s in self._delayed if s.id != spot_id]
        self._spots.insert(0, match.release())
        logger.debug("Spot %s released after delay window.", spot_id)

    def set_selected_distance(self, km: float) -> float:
        value = float(km)
        if not math.isfinite(value):
            raise ValueError("selected distance must be a finite number of kilometers")
        self._selected_distance_km = min(self._max_distance_km, max(self._min_distance_km, value))
        return self._selected_distance_km

    def set_user_location(self, coordinate: Coordinate) -> None:
        self._user_location = coordinate

    def select_spot(self, spot: ParkingSpot | None) -> None:
        self._selected_spot = spot

    # -- snapshot ----------------------------------------------------------------

    def visible_spots(self) -> list[ParkingSpot]:
        """Spots the current account may see right now (not distance-filtered)."""
        if self.current_tier() is SubscriptionTier.PREMIUM:
            return list(self._spots)
        now = self._scheduler.now_ms()
        released = [s.release() for s in self._delayed if s.is_available(now)]
        return [*self._spots, *released]

    def close(self) -> None:
        """Cancel every pending promotion (session teardown)."""
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()

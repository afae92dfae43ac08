from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from typing import Callable

import pytest

from spotshare.backend.memory import InMemoryBackend
from spotshare.domain.models import Coordinate, ParkingSpot, SubscriptionTier


@dataclass
class ManualTimer:
    due_ms: float
    seq: int
    callback: Callable[[], None]
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


@dataclass
class ManualScheduler:
    """Deterministic clock: time only moves when a test calls `advance`."""

    now: float = 0.0
    timers: list[ManualTimer] = field(default_factory=list)
    _seq: itertools.count = field(default_factory=itertools.count)

    def now_ms(self) -> float:
        return self.now

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> ManualTimer:
        timer = ManualTimer(due_ms=self.now + delay_ms, seq=next(self._seq), callback=callback)
        self.timers.append(timer)
        return timer

    def set_time(self, ms: float, *, fire: bool = False) -> None:
        """Move the clock without (or with) firing timers, to observe the gap between the two."""
        if fire:
            self.advance(ms - self.now)
        else:
            self.now = ms

    def advance(self, ms: float) -> None:
        target = self.now + ms
        while True:
            due = [t for t in self.timers if not t.cancelled and t.due_ms <= target]
            if not due:
                break
            timer = min(due, key=lambda t: (t.due_ms, t.seq))
            self.timers.remove(timer)
            self.now = max(self.now, timer.due_ms)
            timer.callback()
        self.now = target

    @property
    def active(self) -> int:
        return sum(1 for t in self.timers if not t.cancelled)


class FixedTier:
    def __init__(self, tier: SubscriptionTier):
        self.tier = tier

    def current_tier(self) -> SubscriptionTier:
        return self.tier


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def backend() -> InMemoryBackend:
    return InMemoryBackend()


def make_spot(spot_id: str, lat: float = 0.0, lon: float = 0.0, **kwargs) -> ParkingSpot:
    return ParkingSpot(
        id=spot_id,
        owner_id=kwargs.pop("owner_id", "user-1"),
        coordinate=Coordinate(latitude=lat, longitude=lon),
        **kwargs,
    )

"""
Domain models (Pydantic).

These types are the contract between the stores, the backend adapters and the
presentation layer:
- `Coordinate`, `ParkingSpot`, `DelayedSpot` for the spot visibility policy,
- `SharedLocation` for the live location feed,
- `Identity` / `SubscriptionTier` read from the auth and billing collaborators.

Backend rows are flat dicts (`latitude`, `longitude`, `user_id`, ...); the
`from_row` / `to_row` helpers keep that mapping in one place.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field

from spotshare.core.time import ensure_utc, utc_now


class SubscriptionTier(str, Enum):
    FREE = "free"
    PREMIUM = "premium"


class SpotSize(str, Enum):
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"


class Coordinate(BaseModel):
    """A geographic point in decimal degrees."""

    model_config = ConfigDict(frozen=True)

    latitude: float = Field(..., ge=-90, le=90, allow_inf_nan=False)
    longitude: float = Field(..., ge=-180, le=180, allow_inf_nan=False)


class Identity(BaseModel):
    """The signed-in user as reported by the identity provider."""

    model_config = ConfigDict(frozen=True)

    id: str
    email: str | None = None


class ParkingSpot(BaseModel):
    """A spot someone is leaving, shared with nearby users."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    owner_id: str
    coordinate: Coordinate
    size: SpotSize = SpotSize.MEDIUM
    is_accessible: bool = False
    created_at: datetime = Field(default_factory=utc_now)
    owner_name: str | None = None

    def delayed_until(self, available_at_ms: float) -> "DelayedSpot":
        return DelayedSpot(**self.model_dump(), available_at_ms=available_at_ms)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "ParkingSpot":
        return cls(
            id=str(row["id"]),
            owner_id=str(row.get("user_id") or ""),
            coordinate=Coordinate(latitude=row["latitude"], longitude=row["longitude"]),
            size=row.get("size") or SpotSize.MEDIUM,
            is_accessible=bool(row.get("is_accessible", False)),
            created_at=ensure_utc(_parse_ts(row["created_at"])) if row.get("created_at") else utc_now(),
            owner_name=row.get("user_name"),
        )


class DelayedSpot(ParkingSpot):
    """A free-tier spot waiting out its release window."""

    available_at_ms: float

    def is_available(self, now_ms: float) -> bool:
        return self.available_at_ms <= now_ms

    def release(self) -> ParkingSpot:
        """Strip the release timestamp, returning the plain spot."""
        return ParkingSpot(**self.model_dump(exclude={"available_at_ms"}))


class SharedLocation(BaseModel):
    """A location a user explicitly shared. Append-only from the client's view."""

    model_config = ConfigDict(frozen=True)

    id: str
    owner_id: str
    coordinate: Coordinate
    shared_at: datetime
    owner_email: str | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "SharedLocation":
        # Older rows carry `timestamp` instead of `created_at`.
        ts = row.get("created_at") or row.get("timestamp")
        return cls(
            id=str(row["id"]),
            owner_id=str(row["user_id"]),
            coordinate=Coordinate(latitude=row["latitude"], longitude=row["longitude"]),
            shared_at=ensure_utc(_parse_ts(ts)),
            owner_email=row.get("user_email"),
        )


def location_row(identity: Identity, coordinate: Coordinate) -> dict[str, Any]:
    """Build the insert payload for a new shared location (server assigns id/created_at)."""
    return {
        "user_id": identity.id,
        "latitude": coordinate.latitude,
        "longitude": coordinate.longitude,
        "user_email": identity.email,
    }


def _parse_ts(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        return datetime.fromisoformat(text)
    raise ValueError(f"Missing or invalid timestamp: {value!r}")

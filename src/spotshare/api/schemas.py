"""Request/response payloads for the HTTP API."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from spotshare.domain.models import Coordinate, SpotSize, SubscriptionTier


class Credentials(BaseModel):
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=1)


class PasswordChange(BaseModel):
    new_password: str
    confirm_password: str


class UserOut(BaseModel):
    id: str | None = None
    email: str | None = None
    tier: SubscriptionTier = SubscriptionTier.FREE


class SpotIn(BaseModel):
    id: str | None = None
    coordinate: Coordinate
    size: SpotSize = SpotSize.MEDIUM
    is_accessible: bool = False
    owner_name: str | None = None


class SpotAdded(BaseModel):
    id: str
    visible_now: bool
    available_at_ms: float | None = None


class DistanceIn(BaseModel):
    km: float


class DistanceOut(BaseModel):
    selected_distance_km: float


class LocationOut(BaseModel):
    id: str
    owner_id: str
    latitude: float
    longitude: float
    shared_at: datetime
    owner_email: str | None = None


class MapOut(BaseModel):
    center: Coordinate | None
    selected_distance_km: float
    markers: list[dict[str, Any]]
    locations: list[LocationOut]

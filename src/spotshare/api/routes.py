"""
API routes.

Endpoints:
- `/api/auth/*`: sign in/up/out, password change, current user + tier.
- `/api/spots`: visible spots around the user (distance-filtered markers), add/remove/open.
- `/api/preferences/*`: search radius and current position.
- `/api/locations`: share the current position, list/follow shared locations.
- `/api/map`: one aggregated payload for the map view.
"""

from __future__ import annotations

import uuid
from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from spotshare.core.errors import Unauthenticated
from spotshare.domain.models import Coordinate, ParkingSpot, SharedLocation
from spotshare.session import Session

from .schemas import (
    Credentials,
    DistanceIn,
    DistanceOut,
    LocationOut,
    MapOut,
    PasswordChange,
    SpotAdded,
    SpotIn,
    UserOut,
)

router = APIRouter(prefix="/api")


def get_session(request: Request) -> Session:
    return request.app.state.session


def _location_out(loc: SharedLocation) -> LocationOut:
    return LocationOut(
        id=loc.id,
        owner_id=loc.owner_id,
        latitude=loc.coordinate.latitude,
        longitude=loc.coordinate.longitude,
        shared_at=loc.shared_at,
        owner_email=loc.owner_email,
    )


def _user_out(session: Session) -> UserOut:
    user = session.auth.user
    if user is None:
        return UserOut()
    return UserOut(id=user.id, email=user.email, tier=session.subscription.current_tier())


@router.get("/health")
async def health() -> dict:
    return {"status": "ok"}


@router.get("/auth/me", response_model=UserOut)
async def me(session: Session = Depends(get_session)) -> UserOut:
    return _user_out(session)


@router.post("/auth/sign-in", response_model=UserOut)
async def sign_in(body: Credentials, session: Session = Depends(get_session)) -> UserOut:
    await session.auth.sign_in(body.email, body.password)
    await session.refresh_tier()
    return _user_out(session)


@router.post("/auth/sign-up", response_model=UserOut)
async def sign_up(body: Credentials, session: Session = Depends(get_session)) -> UserOut:
    await session.auth.sign_up(body.email, body.password)
    await session.refresh_tier()
    return _user_out(session)


@router.post("/auth/sign-out", status_code=204)
async def sign_out(session: Session = Depends(get_session)) -> Response:
    await session.auth.sign_out()
    await session.refresh_tier()
    return Response(status_code=204)


@router.post("/auth/password", status_code=204)
async def change_password(body: PasswordChange, session: Session = Depends(get_session)) -> Response:
    await session.auth.change_password(body.new_password, body.confirm_password)
    return Response(status_code=204)


@router.get("/spots")
async def list_spots(session: Session = Depends(get_session)) -> dict:
    """Visible spots within the selected radius of the user's position."""
    return {"markers": [asdict(m) for m in session.map.visible_markers()]}


@router.post("/spots", response_model=SpotAdded, status_code=201)
async def add_spot(body: SpotIn, session: Session = Depends(get_session)) -> SpotAdded:
    user = session.auth.user
    if user is None:
        raise Unauthenticated()
    spot = ParkingSpot(
        id=body.id or str(uuid.uuid4()),
        owner_id=user.id,
        coordinate=body.coordinate,
        size=body.size,
        is_accessible=body.is_accessible,
        owner_name=body.owner_name or (user.email or "").split("@")[0] or None,
    )
    session.spots.add_spot(spot)
    delayed = next((d for d in session.spots.delayed_spots if d.id == spot.id), None)
    return SpotAdded(
        id=spot.id,
        visible_now=delayed is None,
        available_at_ms=delayed.available_at_ms if delayed else None,
    )


@router.delete("/spots/{spot_id}", status_code=204)
async def remove_spot(spot_id: str, session: Session = Depends(get_session)) -> Response:
    session.spots.remove_spot(spot_id)
    return Response(status_code=204)


@router.post("/spots/{spot_id}/open")
async def open_spot(spot_id: str, session: Session = Depends(get_session)) -> dict:
    try:
        url = session.map.open_spot(spot_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Spot not visible: {spot_id}")
    return {"spot_id": spot_id, "navigation_url": url}


@router.put("/preferences/distance", response_model=DistanceOut)
async def set_distance(body: DistanceIn, session: Session = Depends(get_session)) -> DistanceOut:
    try:
        km = session.spots.set_selected_distance(body.km)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return DistanceOut(selected_distance_km=km)


@router.put("/preferences/location", response_model=Coordinate)
async def set_location(body: Coordinate, session: Session = Depends(get_session)) -> Coordinate:
    session.spots.set_user_location(body)
    return body


@router.post("/locations", response_model=LocationOut, status_code=201)
async def share_location(body: Coordinate, session: Session = Depends(get_session)) -> LocationOut:
    shared = await session.locations.share_location(body)
    return _location_out(shared)


@router.get("/locations", response_model=list[LocationOut])
async def list_locations(session: Session = Depends(get_session)) -> list[LocationOut]:
    return [_location_out(loc) for loc in session.locations.locations]


@router.post("/locations/subscription", status_code=204)
async def subscribe_locations(session: Session = Depends(get_session)) -> Response:
    await session.locations.subscribe_to_locations()
    return Response(status_code=204)


@router.delete("/locations/subscription", status_code=204)
async def unsubscribe_locations(session: Session = Depends(get_session)) -> Response:
    await session.locations.unsubscribe_from_locations()
    return Response(status_code=204)


@router.get("/map", response_model=MapOut)
async def get_map(session: Session = Depends(get_session)) -> MapOut:
    snap = session.map.snapshot()
    return MapOut(
        center=snap.center,
        selected_distance_km=snap.selected_distance_km,
        markers=[asdict(m) for m in snap.markers],
        locations=[_location_out(loc) for loc in snap.locations],
    )

from __future__ import annotations

from dataclasses import dataclass

from spotshare.config.settings import NavigationSettings
from spotshare.core.geo import distance_km
from spotshare.domain.models import Coordinate, ParkingSpot, SharedLocation
from spotshare.stores.locations import LocationSharingStore
from spotshare.stores.parking import SpotVisibilityStore


@dataclass(frozen=True)
class SpotMarker:
    spot_id: str
    title: str
    latitude: float
    longitude: float
    size: str
    is_accessible: bool
    distance_km: float | None
    distance_label: str | None
    navigation_url: str | None


@dataclass(frozen=True)
class MapSnapshot:
    center: Coordinate | None
    selected_distance_km: float
    markers: list[SpotMarker]
    locations: list[SharedLocation]


def filter_by_distance(
    spots: list[ParkingSpot], origin: Coordinate | None, max_km: float
) -> list[ParkingSpot]:
    """Keep spots within `max_km` of `origin`; without an origin nothing is filtered."""
    if origin is None:
        return list(spots)
    return [s for s in spots if distance_km(origin, s.coordinate) <= max_km]


def spot_title(spot: ParkingSpot) -> str:
    if spot.owner_name:
        return f"{spot.owner_name}'s Spot"
    return f"Spot {spot.id[-6:]}"


def navigation_url(
    origin: Coordinate | None, spot: ParkingSpot, *, settings: NavigationSettings | None = None
) -> str | None:
    """Directions link from the user's position to the spot."""
    if origin is None:
        return None
    template = (settings or NavigationSettings()).directions_url_template
    return template.format(
        origin_lat=origin.latitude,
        origin_lon=origin.longitude,
        dest_lat=spot.coordinate.latitude,
        dest_lon=spot.coordinate.longitude,
    )


def build_markers(
    spots: list[ParkingSpot],
    origin: Coordinate | None,
    *,
    settings: NavigationSettings | None = None,
) -> list[SpotMarker]:
    markers: list[SpotMarker] = []
    for spot in spots:
        d = distance_km(origin, spot.coordinate) if origin is not None else None
        markers.append(
            SpotMarker(
                spot_id=spot.id,
                title=spot_title(spot),
                latitude=spot.coordinate.latitude,
                longitude=spot.coordinate.longitude,
                size=spot.size.value,
                is_accessible=spot.is_accessible,
                distance_km=d,
                distance_label=f"{d:.1f} km" if d is not None else None,
                navigation_url=navigation_url(origin, spot, settings=settings),
            )
        )
    return markers


class MapView:
    """Read-only presenter over the two stores."""

    def __init__(
        self,
        spots: SpotVisibilityStore,
        locations: LocationSharingStore,
        *,
        navigation: NavigationSettings | None = None,
    ):
        self._spots = spots
        self._locations = locations
        self._navigation = navigation or NavigationSettings()

    def visible_markers(self) -> list[SpotMarker]:
        origin = self._spots.user_location
        nearby = filter_by_distance(self._spots.visible_spots(), origin, self._spots.selected_distance_km)
        return build_markers(nearby, origin, settings=self._navigation)

    def snapshot(self) -> MapSnapshot:
        return MapSnapshot(
            center=self._spots.user_location,
            selected_distance_km=self._spots.selected_distance_km,
            markers=self.visible_markers(),
            locations=self._locations.locations,
        )

    def open_spot(self, spot_id: str) -> str | None:
        """Select a spot (marker click) and return its directions link, if any."""
        spot = next((s for s in self._spots.visible_spots() if s.id == spot_id), None)
        if spot is None:
            raise KeyError(spot_id)
        self._spots.select_spot(spot)
        return navigation_url(self._spots.user_location, spot, settings=self._navigation)

"""
SpotShare CLI entrypoint.

Intended for quick local checks and debugging without a frontend:
- `distance`: great-circle distance between two coordinates
- `nearby`: list spots from a JSON file within a radius of a position
- `share`: sign in and share a position through the configured backend
- `serve`: run the HTTP API
"""

from __future__ import annotations

import argparse
import asyncio
import json
from dataclasses import asdict
from pathlib import Path
from typing import Any

from spotshare.config.settings import get_settings
from spotshare.core.geo import distance_km
from spotshare.core.logging import configure_logging
from spotshare.domain.models import Coordinate, ParkingSpot
from spotshare.geolocation import StaticGeolocation
from spotshare.presentation.map_view import build_markers, filter_by_distance
from spotshare.session import Session, build_backend


def _load_spots(path: str | Path) -> list[ParkingSpot]:
    """Load spot rows (`id`, `latitude`, `longitude`, ...) from a JSON list."""
    payload = json.loads(Path(path).expanduser().read_text(encoding="utf-8"))
    if not isinstance(payload, list):
        raise ValueError(f"{path}: expected a JSON list of spot rows")
    return [ParkingSpot.from_row(row) for row in payload]


def _cmd_distance(args: argparse.Namespace) -> int:
    a = Coordinate(latitude=args.from_lat, longitude=args.from_lon)
    b = Coordinate(latitude=args.to_lat, longitude=args.to_lon)
    print(f"{distance_km(a, b):.3f} km")
    return 0


def _cmd_nearby(args: argparse.Namespace) -> int:
    settings = get_settings()
    origin = Coordinate(latitude=args.lat, longitude=args.lon)
    km = float(args.km) if args.km is not None else settings.visibility.default_distance_km

    spots = filter_by_distance(_load_spots(args.spots), origin, km)
    markers = build_markers(spots, origin, settings=settings.navigation)
    markers.sort(key=lambda m: m.distance_km or 0.0)

    if args.json:
        print(json.dumps([asdict(m) for m in markers], ensure_ascii=False, indent=2))
        return 0

    print(f"{len(markers)} spot(s) within {km:g} km of ({origin.latitude}, {origin.longitude}):")
    for m in markers:
        accessible = " accessible" if m.is_accessible else ""
        print(f"  {m.title:<24} {m.distance_label:>8}  {m.size}{accessible}")
        print(f"    {m.navigation_url}")
    return 0


async def _share(args: argparse.Namespace) -> dict[str, Any]:
    settings = get_settings()
    async with Session(settings, build_backend(settings)) as session:
        await session.auth.sign_in(args.email, args.password)
        position = await session.update_position(
            StaticGeolocation(Coordinate(latitude=args.lat, longitude=args.lon))
        )
        shared = await session.locations.share_location(position)
        return shared.model_dump(mode="json")


def _cmd_share(args: argparse.Namespace) -> int:
    print(json.dumps(asyncio.run(_share(args)), ensure_ascii=False, indent=2))
    return 0


def _cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("spotshare.api.app:app", host=args.host, port=int(args.port), log_config=None)
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the SpotShare CLI."""
    parser = argparse.ArgumentParser(prog="spotshare")
    sub = parser.add_subparsers(dest="command", required=True)

    dist = sub.add_parser("distance", help="Great-circle distance between two coordinates.")
    dist.add_argument("--from-lat", required=True, type=float)
    dist.add_argument("--from-lon", required=True, type=float)
    dist.add_argument("--to-lat", required=True, type=float)
    dist.add_argument("--to-lon", required=True, type=float)
    dist.set_defaults(func=_cmd_distance)

    near = sub.add_parser("nearby", help="List spots from a JSON file within a radius.")
    near.add_argument("--spots", required=True, help="JSON list of spot rows")
    near.add_argument("--lat", required=True, type=float)
    near.add_argument("--lon", required=True, type=float)
    near.add_argument("--km", type=float, default=None, help="Radius (default from config)")
    near.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    near.set_defaults(func=_cmd_nearby)

    share = sub.add_parser("share", help="Sign in and share a position via the configured backend.")
    share.add_argument("--email", required=True)
    share.add_argument("--password", required=True)
    share.add_argument("--lat", required=True, type=float)
    share.add_argument("--lon", required=True, type=float)
    share.set_defaults(func=_cmd_share)

    serve = sub.add_parser("serve", help="Run the HTTP API.")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.set_defaults(func=_cmd_serve)
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint callable used by `python -m spotshare.cli`."""
    configure_logging()
    parser = build_parser()
    args = parser.parse_args(argv)
    func: Any = getattr(args, "func")
    return int(func(args))


if __name__ == "__main__":
    raise SystemExit(main())

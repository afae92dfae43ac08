"""
Device geolocation.

A one-shot position read with a timeout. Sources raise `PermissionError` when the user
declined location access; everything is normalized to `GeolocationFailure`.
"""

from __future__ import annotations

import asyncio
import logging

from spotshare.backend.base import GeolocationSource
from spotshare.core.errors import GeolocationFailure
from spotshare.domain.models import Coordinate

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0


class StaticGeolocation:
    """A fixed position (CLI flags, config, or a device without GPS)."""

    def __init__(self, coordinate: Coordinate):
        self._coordinate = coordinate

    async def get_current_position(self) -> Coordinate:
        return self._coordinate


async def locate(source: GeolocationSource, *, timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS) -> Coordinate:
    """Acquire the current position once."""
    try:
        return await asyncio.wait_for(source.get_current_position(), timeout=timeout_seconds)
    except PermissionError as exc:
        logger.warning("Location permission denied: %s", str(exc))
        raise GeolocationFailure("permission_denied") from exc
    except asyncio.TimeoutError as exc:
        logger.warning("Location request timed out after %.1fs", timeout_seconds)
        raise GeolocationFailure("timeout") from exc
    except OSError as exc:
        logger.warning("Location unavailable: %s", str(exc))
        raise GeolocationFailure("unavailable", str(exc)) from exc

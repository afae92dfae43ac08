import asyncio

import pytest

from spotshare.core.errors import GeolocationFailure
from spotshare.domain.models import Coordinate
from spotshare.geolocation import StaticGeolocation, locate


class _Denied:
    async def get_current_position(self):
        raise PermissionError("User denied Geolocation")


class _Hangs:
    async def get_current_position(self):
        await asyncio.sleep(3600)


class _NoFix:
    async def get_current_position(self):
        raise OSError("position unavailable")


@pytest.mark.asyncio
async def test_static_source_returns_coordinate():
    here = Coordinate(latitude=37.98, longitude=23.72)
    assert await locate(StaticGeolocation(here)) == here


@pytest.mark.asyncio
async def test_permission_denied():
    with pytest.raises(GeolocationFailure) as info:
        await locate(_Denied())
    assert info.value.reason == "permission_denied"


@pytest.mark.asyncio
async def test_timeout():
    with pytest.raises(GeolocationFailure) as info:
        await locate(_Hangs(), timeout_seconds=0.01)
    assert info.value.reason == "timeout"


@pytest.mark.asyncio
async def test_unavailable():
    with pytest.raises(GeolocationFailure) as info:
        await locate(_NoFix())
    assert info.value.reason == "unavailable"

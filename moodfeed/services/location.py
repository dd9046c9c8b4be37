from __future__ import annotations

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Callable

import httpx

from moodfeed.core.config import Settings
from moodfeed.core.errors import MalformedResponseError, PermissionDeniedError
from moodfeed.core.http import get_json
from moodfeed.schemas.weather import Location


logger = logging.getLogger(__name__)


class LocationProvider(ABC):
    """Source of the device position.

    Subclasses implement ``_locate``; this base class owns the permission gate,
    the timeout and the cached-position allowance window.
    """

    def __init__(self, *, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._cached: tuple[float, Location] | None = None

    @abstractmethod
    async def request_permission(self) -> bool:
        ...

    @abstractmethod
    async def _locate(self) -> Location:
        ...

    async def current_position(
        self, *, timeout: float, maximum_age: float, permission_granted: bool = False
    ) -> Location:
        """Return a position no older than ``maximum_age`` seconds.

        Pass ``permission_granted=True`` when the caller has already obtained
        permission, so it is not requested a second time.

        Raises:
            PermissionDeniedError: permission was not granted.
            asyncio.TimeoutError: no fix within ``timeout`` seconds.
        """
        if not permission_granted and not await self.request_permission():
            raise PermissionDeniedError("Location permission denied")

        if self._cached is not None:
            taken_at, location = self._cached
            if self._clock() - taken_at <= maximum_age:
                logger.debug("Using cached position from %.0fs ago", self._clock() - taken_at)
                return location

        location = await asyncio.wait_for(self._locate(), timeout=timeout)
        self._cached = (self._clock(), location)
        return location


class StaticLocationProvider(LocationProvider):
    """A fixed device position; permission is granted only when one is configured."""

    def __init__(self, location: Location | None, **kwargs):
        super().__init__(**kwargs)
        self._location = location

    async def request_permission(self) -> bool:
        return self._location is not None

    async def _locate(self) -> Location:
        if self._location is None:
            raise PermissionDeniedError("No device location configured")
        return self._location


class IpLocationProvider(LocationProvider):
    """Approximate position from an IP geolocation service."""

    def __init__(self, client: httpx.AsyncClient, url: str, **kwargs):
        super().__init__(**kwargs)
        self._client = client
        self._url = url

    async def request_permission(self) -> bool:
        return True

    async def _locate(self) -> Location:
        data = await get_json(self._client, provider="Geolocation", url=self._url, params={})
        try:
            return Location(latitude=float(data["latitude"]), longitude=float(data["longitude"]))
        except (KeyError, TypeError, ValueError) as exc:
            raise MalformedResponseError(
                f"Geolocation response missing field: {exc}", provider="Geolocation"
            ) from exc


def create_location_provider(settings: Settings, client: httpx.AsyncClient) -> LocationProvider:
    if settings.location_source == "ip":
        return IpLocationProvider(client, settings.ip_geolocation_url)
    device = None
    if settings.device_latitude is not None and settings.device_longitude is not None:
        device = Location(latitude=settings.device_latitude, longitude=settings.device_longitude)
    return StaticLocationProvider(device)

"""Device location collaborator and best-effort reverse geocoding."""
from __future__ import annotations

import asyncio
import logging
from typing import Optional, Protocol

from geopy.exc import GeopyError
from geopy.geocoders import Nominatim

from geoattend.errors import LocationUnavailable
from geoattend.models.location import Coordinates

logger = logging.getLogger(__name__)


class LocationProvider(Protocol):
    async def request_permission(self) -> bool: ...

    async def get_current_location(self) -> Coordinates: ...


class ReportedLocationProvider:
    """Position reported by the mobile client with the request.

    A client without permission (or with location services off) sends no
    position, which reads as a denied permission.
    """

    def __init__(self, location: Optional[Coordinates]):
        self._location = location

    async def request_permission(self) -> bool:
        return self._location is not None

    async def get_current_location(self) -> Coordinates:
        if self._location is None:
            raise LocationUnavailable("Could not determine your location. Please try again.")
        return self._location


async def acquire_location(provider: LocationProvider) -> Coordinates:
    if not await provider.request_permission():
        raise LocationUnavailable("Location permission not granted")
    return await provider.get_current_location()


class ReverseGeocoder:
    """Address lookup through Nominatim. Never raises; failures give ``None``."""

    def __init__(self, user_agent: str, timeout: float = 5.0):
        self._geolocator = Nominatim(user_agent=user_agent, timeout=timeout)

    async def address_for(self, latitude: float, longitude: float) -> Optional[str]:
        try:
            location = await asyncio.to_thread(
                self._geolocator.reverse, (latitude, longitude), exactly_one=True
            )
        except GeopyError as e:
            logger.warning(f"Reverse geocoding failed for ({latitude}, {longitude}): {e}")
            return None
        if not location:
            return None
        return location.address
